"""Admin overview: users, error totals and the cross-user error feed"""
from sqlalchemy.orm import Session
from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError
from typing import Any, Dict, List
import logging

from models.users import Profile
from models.error_history import ErrorHistory
from schemas import AdminErrorEntry, AdminOverviewResponse
from services.history_store import record_to_row, stored_error_from_row
from services.store_errors import CIRCULAR_POLICY_CODE, to_store_error

logger = logging.getLogger(__name__)

ADMIN_HISTORY_LIMIT = 200
FEED_LIMIT = 20


class AdminService:
    """Service for the admin dashboard; each section fails independently"""

    def __init__(self, db_session: Session):
        self.db = db_session

    def _fetch_users(self) -> List[Dict[str, Any]]:
        profiles = self.db.query(Profile).order_by(Profile.created_at).all()
        return [
            {
                "id": profile.id,
                "email": profile.email,
                "first_name": profile.first_name,
                "mobile": profile.mobile,
                "role": profile.role,
                "created_at": profile.created_at.isoformat() if profile.created_at else None,
            }
            for profile in profiles
        ]

    def _enrich(self, records: List[ErrorHistory], users: List[Dict[str, Any]]) -> List[AdminErrorEntry]:
        by_id = {user["id"]: user for user in users}
        enriched = []
        for record in records:
            entry = stored_error_from_row(record_to_row(record))
            user = by_id.get(record.user_id)
            enriched.append(AdminErrorEntry(
                id=entry.id,
                timestamp=entry.timestamp,
                fingerprint=entry.fingerprint,
                result=entry.result,
                count=entry.count,
                user_email=user["email"] if user else "Unknown User",
                user_name=(user.get("first_name") or "Unknown") if user else "Unknown",
            ))
        return enriched

    def get_overview(self) -> AdminOverviewResponse:
        error = None
        users: List[Dict[str, Any]] = []
        total_errors = 0
        all_errors: List[AdminErrorEntry] = []

        # 1. Users
        try:
            users = self._fetch_users()
        except SQLAlchemyError as e:
            self.db.rollback()
            store_error = to_store_error(e, "profile select")
            if store_error.code == CIRCULAR_POLICY_CODE:
                error = "DB Policy Error: Infinite Recursion. Please update the row-level access policies."
            else:
                error = f"User fetch failed: {store_error.message}"

        # 2. Stats and 3. History
        try:
            total_errors = self.db.query(ErrorHistory).count()
            records = (
                self.db.query(ErrorHistory)
                .order_by(desc(ErrorHistory.created_at))
                .limit(ADMIN_HISTORY_LIMIT)
                .all()
            )
            all_errors = self._enrich(records, users)
        except SQLAlchemyError as e:
            self.db.rollback()
            store_error = to_store_error(e, "admin history select")
            # keep the more specific user-section error if there already is one
            error = error or store_error.message or "Failed to load dashboard data"

        return AdminOverviewResponse(
            total_users=len(users),
            total_errors=total_errors,
            users=users,
            recent_feed=all_errors[:FEED_LIMIT],
            all_errors=all_errors,
            error=error,
        )
