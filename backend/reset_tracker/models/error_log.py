"""Error sink for scan cycles, failed batches and per-nation failures. Read by GET /api/admin/errors."""
from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from reset_tracker.db.base import Base


class ErrorLog(Base):
    __tablename__ = "error_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    error_type = Column(String(100), nullable=True)
    error_message = Column(Text, nullable=True)
    stack_trace = Column(Text, nullable=True)
    context_json = Column(Text, nullable=True)  # JSON object: ids, counts, etc.
    occurred_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
