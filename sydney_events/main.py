import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sydney_events.api.routes.events import router as events_router
from sydney_events.core.config import settings
from sydney_events.core.logging import setup_logging
from sydney_events.crawlers.scheduler import create_scheduler
from sydney_events.db.session import SessionLocal, init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level)
    init_db()
    scheduler = create_scheduler(settings, SessionLocal)
    app.state.scheduler = scheduler
    if settings.scheduler_enabled:
        scheduler.start()
    else:
        logger.info("Scheduler disabled; passes run only on manual trigger")
    try:
        yield
    finally:
        await scheduler.stop()


app = FastAPI(title=settings.app_name, lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(events_router, prefix="/api")


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
