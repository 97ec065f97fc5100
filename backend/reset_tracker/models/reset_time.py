"""At most one row per nation: the detected reset time-of-day (UTC). Upserted on a false -> true transition."""
from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, Time
from sqlalchemy.sql import func

from reset_tracker.db.base import Base


class ResetTime(Base):
    __tablename__ = "reset_times"

    id = Column(Integer, primary_key=True, autoincrement=True)
    nation_id = Column(Integer, ForeignKey("nations.id"), nullable=False, unique=True)
    reset_time = Column(Time, nullable=False)  # wall-clock time of the check that saw the flip, not last_active
    detected_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    confidence_score = Column(Numeric(3, 2), nullable=False, default=1.00)
