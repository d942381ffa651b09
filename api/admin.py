"""Admin API"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Dict

from database import get_db
from schemas import AdminOverviewResponse
from security import get_admin_user
from services.admin_service import AdminService

router = APIRouter(prefix="/admin", tags=["admin"])

@router.get("/overview", response_model=AdminOverviewResponse)
async def get_admin_overview(
    current_user: Dict = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """Users, error totals, the 200 newest errors across users and the top-20 feed"""
    return AdminService(db).get_overview()
