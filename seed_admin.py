"""
Seed the administrator profile if it does not exist
"""
import os
import uuid
from sqlalchemy.orm import Session
from database import SessionLocal
from models.users import Profile
from shared.enums import ProfileRole
from services.auth_service import AuthService

def seed_admin(db: Session = None, password: str = None) -> bool:
    """Create the ADMIN_EMAIL profile; returns False when it already exists"""
    auth_service = AuthService()
    owns_session = db is None
    db = db or SessionLocal()
    try:
        admin = db.query(Profile).filter(Profile.email == auth_service.admin_email).first()
        if admin:
            print("Admin profile already exists.")
            return False
        db.add(Profile(
            id=str(uuid.uuid4()),
            email=auth_service.admin_email,
            first_name="Administrator",
            mobile="",
            role=ProfileRole.ADMIN.value,
            password_hash=auth_service.hash_password(password or os.getenv("ADMIN_PASSWORD", "admin@123")),
        ))
        db.commit()
        print(f"Admin profile created for {auth_service.admin_email}")
        return True
    finally:
        if owns_session:
            db.close()

if __name__ == "__main__":
    seed_admin()
