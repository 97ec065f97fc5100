from reset_tracker.db.base import Base
from reset_tracker.db.session import get_db, engine, SessionLocal
from reset_tracker.db.tables import ALL_TABLE_NAMES, DETECTION_TABLE_NAMES

__all__ = ["get_db", "engine", "SessionLocal", "Base", "ALL_TABLE_NAMES", "DETECTION_TABLE_NAMES"]
