"""Authentication API"""
from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy.orm import Session
from database import get_db
from schemas import LoginRequest, LoginResponse, SignupRequest, SignupResponse, UserInfoResponse
from services.auth_service import AuthService
from services.workspace_service import WorkspaceManager, get_workspace_manager
from security import get_auth_service, get_current_user_required, identity_from_token
from typing import Dict
import uuid
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["authentication"])

@router.post("/signup", response_model=SignupResponse)
async def signup(
    request: SignupRequest,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service)
):
    """Create an account; the profile always starts with the 'user' role"""
    result = auth_service.create_user(
        request.email,
        request.password,
        db,
        first_name=request.first_name,
        mobile=request.mobile,
    )
    if not result["success"]:
        raise HTTPException(status_code=400, detail=result["error"])

    user_info = {key: value for key, value in result.items() if key != "success"}
    return SignupResponse(
        success=True,
        message=f"Account created for {result['email']}",
        user_info=user_info
    )

@router.post("/login", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
    manager: WorkspaceManager = Depends(get_workspace_manager)
):
    """Authenticate, open a client session and load its history"""
    try:
        user_info = auth_service.authenticate_user(request.email, request.password, db)

        if not user_info:
            raise HTTPException(
                status_code=401,
                detail="Invalid email or password."
            )

        session_id = str(uuid.uuid4())
        token = auth_service.create_access_token(user_info, session_id=session_id)
        claims = auth_service.verify_token(token)
        await manager.open(session_id, identity_from_token(user_info), expires_at=claims["exp"])

        return LoginResponse(
            access_token=token,
            token_type="bearer",
            user_info={**user_info, "is_admin": auth_service.is_admin(user_info)}
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Login error: {e}")
        raise HTTPException(
            status_code=500,
            detail=f"Authentication error: {str(e)}"
        )

@router.post("/logout")
async def logout(
    current_user: Dict = Depends(get_current_user_required),
    manager: WorkspaceManager = Depends(get_workspace_manager)
):
    """Sign the client session out; its in-memory history is released"""
    closed = await manager.close(current_user["sid"], expires_at=current_user.get("exp"))
    return {"success": True, "session_closed": closed}

@router.get("/me", response_model=UserInfoResponse)
async def get_current_user(
    current_user: Dict = Depends(get_current_user_required),
    auth_service: AuthService = Depends(get_auth_service)
):
    """Get current user information from JWT token"""
    return UserInfoResponse(
        user_id=current_user["user_id"],
        email=current_user.get("email", ""),
        first_name=current_user.get("first_name"),
        role=current_user.get("role", "user"),
        is_admin=auth_service.is_admin(current_user)
    )
