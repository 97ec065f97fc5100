"""One row per observation of espionage_available. Append-only: rows are never updated or deleted by the scanner."""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer
from sqlalchemy.sql import func

from reset_tracker.db.base import Base


class ScanHistory(Base):
    __tablename__ = "scan_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    nation_id = Column(Integer, ForeignKey("nations.id"), nullable=False)
    espionage_available = Column(Boolean, nullable=False)
    scanned_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (Index("idx_scan_history_nation_scanned", "nation_id", "scanned_at"),)
