"""Authentication service"""
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from models.users import Profile
from shared.enums import ProfileRole
from typing import Optional, Dict
import jwt
import os
import uuid
from datetime import datetime, timedelta, timezone
import logging
from passlib.context import CryptContext

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

class AuthService:
    def __init__(self):
        self.secret_key = os.getenv("SECRET_KEY", "your-secret-key-change-in-production-environment")
        self.algorithm = "HS256"
        self.token_expire_minutes = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))
        self.admin_email = os.getenv("ADMIN_EMAIL", "admin@admin.com")

    def hash_password(self, password: str) -> str:
        """Hash a password using bcrypt"""
        return pwd_context.hash(password)

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """Verify a password against its hash"""
        return pwd_context.verify(plain_password, hashed_password)

    def is_admin(self, user_info: Dict) -> bool:
        """The configured admin e-mail, or a profile promoted to admin in the database"""
        return user_info.get("email") == self.admin_email or user_info.get("role") == ProfileRole.ADMIN.value

    def _user_info(self, profile: Profile) -> Dict:
        return {
            "user_id": profile.id,
            "email": profile.email,
            "first_name": profile.first_name,
            "role": profile.role,
        }

    def authenticate_user(self, email: str, password: str, db: Session) -> Optional[Dict]:
        """Authenticate user and return user info with role"""
        try:
            # Password is required for authentication
            if not password:
                logger.warning(f"Authentication failed for {email}: No password provided")
                return None

            profile = db.query(Profile).filter(Profile.email == email.strip().lower()).first()

            if not profile:
                logger.warning(f"Authentication failed for {email}: User not found")
                return None

            if not profile.password_hash:
                logger.warning(f"Authentication failed for {email}: No password hash stored")
                return None

            if not self.verify_password(password, profile.password_hash):
                logger.warning(f"Authentication failed for {email}: Invalid password")
                return None

            logger.info(f"User {email} authenticated successfully")
            return self._user_info(profile)

        except SQLAlchemyError as e:
            logger.error(f"Authentication error for {email}: {e}")
            return None

    def create_user(self, email: str, password: str, db: Session,
                    first_name: Optional[str] = None, mobile: Optional[str] = None) -> Dict:
        """Create a profile with hashed password; role is always 'user' on sign-up"""
        email = (email or "").strip().lower()
        if not email or "@" not in email:
            return {"success": False, "error": "A valid e-mail address is required"}
        if not password:
            return {"success": False, "error": "Password is required"}

        try:
            existing = db.query(Profile).filter(Profile.email == email).first()
            if existing:
                return {
                    "success": False,
                    "error": f"An account for '{email}' already exists"
                }

            profile = Profile(
                id=str(uuid.uuid4()),
                email=email,
                first_name=first_name or email.split("@")[0] or "User",
                mobile=mobile or "",
                role=ProfileRole.USER.value,
                password_hash=self.hash_password(password),
            )

            db.add(profile)
            db.commit()
            db.refresh(profile)

            logger.info(f"Profile '{email}' created successfully")

            return {"success": True, **self._user_info(profile)}

        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error creating profile '{email}': {e}")
            return {
                "success": False,
                "error": f"Failed to create user: {str(e)}"
            }

    def create_access_token(self, user_data: dict, session_id: Optional[str] = None) -> str:
        """Create JWT access token bound to one client session (`sid`)"""
        to_encode = user_data.copy()
        expire = datetime.now(timezone.utc) + timedelta(minutes=self.token_expire_minutes)
        to_encode.update({
            "exp": expire,
            "sid": session_id or str(uuid.uuid4()),
        })
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def verify_token(self, token: str) -> Optional[Dict]:
        """Verify JWT token and return user data"""
        try:
            return jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            logger.warning("Token expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.warning(f"Token verification failed: {e}")
            return None

    def get_user_from_token(self, token: str) -> Optional[Dict]:
        """Get user information from JWT token"""
        return self.verify_token(token)
