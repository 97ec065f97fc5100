#!/usr/bin/env python3
"""
Import (or re-import) the full nation catalog from the Politics & War API.
The app only bootstraps when the nations table is empty; run this to finish a partial
import or refresh names/alliances. Upserts, so it is safe to re-run.
Run: cd backend && python scripts/init_nations.py [--page-size 500]
"""
import argparse
import logging
import sys
from pathlib import Path

# backend/scripts/ -> backend/
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from reset_tracker.core.constants import BOOTSTRAP_PAGE_SIZE
from reset_tracker.db.session import SessionLocal
from reset_tracker.services.pnw import PnwClient
from reset_tracker.services.scanner import ScanOrchestrator


def main():
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--page-size", type=int, default=BOOTSTRAP_PAGE_SIZE)
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    orchestrator = ScanOrchestrator(PnwClient(), SessionLocal)
    total = orchestrator.initialize_nations(page_size=args.page_size)
    print(f"Done. Imported {total} nations.")


if __name__ == "__main__":
    main()
