"""Error history model: one row per recorded analysis result"""
from sqlalchemy import Column, String, DateTime, JSON, Index
import datetime
from database import Base

class ErrorHistory(Base):
    __tablename__ = "error_history"

    id = Column(String(36), primary_key=True)         # Same id as the analysis result
    user_id = Column(String(36), nullable=False)      # Owning profile id
    tool = Column(String(50), nullable=True)          # ETL tool code, e.g. Talend
    error_type = Column(String(255), nullable=True)
    component = Column(String(255), nullable=True)
    full_result = Column(JSON, nullable=False)        # camelCase AnalysisResult payload
    created_at = Column(DateTime, default=datetime.datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_error_history_user_created", "user_id", "created_at"),
    )

    def __repr__(self):
        return f"<ErrorHistory(id='{self.id}', user_id='{self.user_id}', tool='{self.tool}', error_type='{self.error_type}')>"
