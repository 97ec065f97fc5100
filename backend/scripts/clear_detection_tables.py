#!/usr/bin/env python3
"""
Clear detection state (reset_times, scan_history) so every recently active nation becomes
a candidate again. Nations are kept, so no re-import is needed. Fast (TRUNCATE, PostgreSQL).
Run with backend stopped to avoid locks: cd backend && python scripts/clear_detection_tables.py
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import text

from reset_tracker.db.session import engine
from reset_tracker.db.tables import DETECTION_TABLE_NAMES


def main():
    tables = ", ".join(DETECTION_TABLE_NAMES)
    print(f"Connecting to DB and truncating {tables} ...")
    with engine.connect() as conn:
        conn.execute(text(f"TRUNCATE TABLE {tables} RESTART IDENTITY CASCADE"))
        conn.commit()
    print("Done. Detection tables are empty. Next scan cycle starts from fresh baselines.")


if __name__ == "__main__":
    main()
