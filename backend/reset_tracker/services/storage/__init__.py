"""
Storage collaborator for the scanner. SqlStorage is the SQLAlchemy implementation;
anything with the same methods (see Storage) can stand in for it.
"""
from reset_tracker.services.storage.base import Candidate, FlagObservation, Storage
from reset_tracker.services.storage.sql_storage import SqlStorage

__all__ = [
    "Candidate",
    "FlagObservation",
    "SqlStorage",
    "Storage",
]
