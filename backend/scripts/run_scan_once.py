#!/usr/bin/env python3
"""
Run one scan cycle (candidates -> fetch -> detect) and print its summary.
Does not start the hourly schedule. Stop the backend first so two scanners do not overlap.
Run: cd backend && python scripts/run_scan_once.py
"""
import json
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from reset_tracker.db.session import SessionLocal
from reset_tracker.services.pnw import PnwClient
from reset_tracker.services.scanner import ScanOrchestrator


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    orchestrator = ScanOrchestrator(PnwClient(), SessionLocal)
    result = orchestrator.perform_scan()
    print(json.dumps(result.to_dict(), indent=2))
    sys.exit(1 if result.error else 0)


if __name__ == "__main__":
    main()
