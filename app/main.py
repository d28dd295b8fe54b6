from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from app.settings import settings
from app.api.v1.runners import router as runners_router
from app.api.v1.metrics import router as metrics_router
from app.coordinator import Coordinator
from app.logging_config import configure_logging
from app.scheduler.service import WatchdogService


def create_app(coordinator: Optional[Coordinator] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        configure_logging()
        watchdog = WatchdogService(app.state.coordinator)
        await watchdog.start()

        yield

        # Shutdown
        await watchdog.stop()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        lifespan=lifespan
    )
    app.state.coordinator = coordinator or Coordinator()

    app.include_router(runners_router, prefix="/api/v1/runners", tags=["runners"])
    app.include_router(metrics_router, tags=["metrics"])

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app

app = create_app()
