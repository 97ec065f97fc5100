"""Canonical nation record; imported by the bootstrap and touched on every scan."""
from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.sql import func

from reset_tracker.db.base import Base


class Nation(Base):
    __tablename__ = "nations"

    id = Column(Integer, primary_key=True, autoincrement=False)  # provider nation id
    nation_name = Column(String(255), nullable=True)
    leader_name = Column(String(255), nullable=True)
    alliance_id = Column(Integer, nullable=True)
    last_active = Column(DateTime(timezone=True), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
