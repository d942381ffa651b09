"""User profile model"""
from sqlalchemy import Column, String, DateTime, Enum
import datetime
from database import Base

class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True)  # uuid4 string
    email = Column(String(255), nullable=False, unique=True, index=True)
    first_name = Column(String(255), nullable=True)
    mobile = Column(String(50), nullable=True)
    role = Column(Enum('user', 'admin', name='profile_role'), nullable=False, default='user')
    password_hash = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.datetime.utcnow)

    def __repr__(self):
        return f"<Profile(id='{self.id}', email='{self.email}', role='{self.role}')>"
