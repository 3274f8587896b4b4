import asyncio
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager, suppress
from app.config import settings
from app.db.database import connect, init_db
from app.services.session_pipeline import complete_pending
from app.services.training_session import SessionRegistry, run_countdown

logger = logging.getLogger(__name__)

# CORS: use CORS_ORIGINS env var (comma-separated) or sensible defaults.
if settings.cors_origins:
    _allowed_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
else:
    _allowed_origins = [
        "http://localhost:8000",
        "http://127.0.0.1:8000",
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]


async def _complete_expired(sessions):
    db = await connect()
    try:
        results = await complete_pending(db, sessions)
    finally:
        await db.close()
    if results:
        logger.info(f"Stored {len(results)} timed-out session(s)")


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    sweeper = asyncio.create_task(
        run_countdown(app.state.sessions, settings.sweep_interval_seconds, _complete_expired)
    )
    logger.info("Countdown sweeper started (every %ss)", settings.sweep_interval_seconds)
    yield
    sweeper.cancel()
    with suppress(asyncio.CancelledError):
        await sweeper


app = FastAPI(title="MathForce Training", lifespan=lifespan)
app.state.sessions = SessionRegistry()

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "X-Role"],
)

# Import and register routes
from app.routes.training import router as training_router
from app.routes.history import router as history_router
from app.routes.reports import router as reports_router
from app.routes.review import router as review_router

app.include_router(training_router)
app.include_router(history_router)
app.include_router(reports_router)
app.include_router(review_router)


@app.get("/health")
async def health_check():
    return {"status": "ok"}
