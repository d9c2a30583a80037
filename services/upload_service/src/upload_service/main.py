from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.logging.config import configure_logging
from upload_service.api.dependencies import build_upload_service
from upload_service.api.routes import router
from upload_service.infrastructure.repository import SqlFileRepository
from upload_service.settings import Settings

settings = Settings()
configure_logging(settings.service_name, settings.log_level)
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info(
        "service.starting",
        version=settings.app_version,
        environment=settings.environment,
        disk=settings.storage.disk,
        naming_strategy=settings.naming.strategy,
    )

    repository = SqlFileRepository(
        database_url=settings.database_url.get_secret_value(),
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=True,
    )
    if settings.auto_create_schema:
        try:
            await repository.create_schema()
        except Exception as exc:
            logger.critical("service.startup.failed", component="database", error=str(exc))
            raise

    app.state.settings = settings
    app.state.repository = repository
    app.state.upload_service = build_upload_service(settings, repository)

    logger.info("service.ready", port=settings.service_port, file_types=sorted(settings.file_types))
    yield

    await repository.dispose()
    logger.info("service.stopped")


app = FastAPI(
    title="Upload Service",
    description="Accepts file uploads or remote URLs, validates them, stores bytes and metadata.",
    version=settings.app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["POST", "GET", "DELETE"],
    allow_headers=["*"],
)

app.include_router(router)
