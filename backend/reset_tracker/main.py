"""
FastAPI app entrypoint.

Lifespan owns the nation scanner: bootstrap the nation catalog when empty, run the first
scan cycle, then scan every hour. The HTTP routes are a read-only view of the results.
"""
import logging
import threading
from contextlib import asynccontextmanager
from pathlib import Path

from apscheduler.schedulers.background import BackgroundScheduler
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load .env from backend/ before any app code
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from reset_tracker.api.routes import admin, nations
from reset_tracker.config import settings
from reset_tracker.db.session import SessionLocal
from reset_tracker.services.pnw import PnwClient
from reset_tracker.services.scanner import ScanOrchestrator

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

_scheduler = BackgroundScheduler()


@asynccontextmanager
async def lifespan(app: FastAPI):
    orchestrator = ScanOrchestrator(
        PnwClient(),
        SessionLocal,
        scheduler=_scheduler,
        interval_seconds=settings.scan_interval_seconds,
    )
    _scheduler.start()
    app.state.scheduler = _scheduler
    app.state.orchestrator = orchestrator

    def startup_background():
        # Bootstrap + first cycle can take minutes (rate limits); keep them off the event loop.
        try:
            orchestrator.initialize_if_empty()
            if orchestrator.start():
                logger.info("Nation scanner started; next cycle in %ss", settings.scan_interval_seconds)
        except Exception as e:
            logger.error("Nation scanner startup failed: %s", e, exc_info=True)

    if settings.scan_on_startup:
        threading.Thread(target=startup_background, daemon=True, name="scanner_startup").start()
    else:
        logger.info("SCAN_ON_STARTUP disabled; scanner not started")
    logger.info("Backend ready")
    yield
    orchestrator.close()
    _scheduler.shutdown(wait=False)


app = FastAPI(title="PnW Reset Tracker", version="0.1.0", lifespan=lifespan)

# CORS: dev origins + optional CORS_ORIGINS (comma-separated) for a deployed frontend
_cors_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
if settings.cors_origins:
    _cors_origins.extend(o.strip() for o in settings.cors_origins.split(",") if o.strip())
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(nations.router, prefix="/api", tags=["nations"])
app.include_router(admin.router, prefix="/api", tags=["admin"])


@app.get("/", include_in_schema=False)
def root():
    """Root: point to API docs and health."""
    return {"message": "PnW Reset Tracker API", "docs": "/docs", "health": "/health"}


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
