"""Security utilities for FastAPI authentication"""
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from services.auth_service import AuthService
from services.session_service import SessionIdentity
from services.workspace_service import Workspace, WorkspaceManager, get_workspace_manager
from typing import Dict
import logging

logger = logging.getLogger(__name__)

# Create security scheme
security = HTTPBearer(auto_error=False)

def get_auth_service() -> AuthService:
    """Get authentication service instance"""
    return AuthService()

async def get_current_user_required(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> Dict:
    """
    Get current user from token (required - raises HTTP 401 if no token or invalid token)
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_info = auth_service.get_user_from_token(credentials.credentials)
    if not user_info or not user_info.get("sid"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user_info

async def get_admin_user(
    current_user: Dict = Depends(get_current_user_required),
    auth_service: AuthService = Depends(get_auth_service)
) -> Dict:
    """
    Get current user and verify admin role (raises HTTP 403 if not admin)
    """
    if not auth_service.is_admin(current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user

def identity_from_token(current_user: Dict) -> SessionIdentity:
    return SessionIdentity(
        user_id=current_user["user_id"],
        email=current_user.get("email", ""),
        first_name=current_user.get("first_name"),
        role=current_user.get("role", "user"),
    )

async def get_workspace(
    current_user: Dict = Depends(get_current_user_required),
    manager: WorkspaceManager = Depends(get_workspace_manager)
) -> Workspace:
    """
    Workspace of the token's client session. A valid token whose workspace is
    unknown (e.g. after a restart) reopens it, which reloads the history; a
    signed-out session stays closed.
    """
    session_id = current_user["sid"]
    if manager.is_revoked(session_id):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session has been signed out",
            headers={"WWW-Authenticate": "Bearer"},
        )

    workspace = manager.get(session_id)
    if workspace is None:
        logger.info(f"Reopening workspace {session_id} for {current_user.get('email')}")
        workspace = await manager.open(session_id, identity_from_token(current_user),
                                       expires_at=current_user.get("exp"))
    return workspace
