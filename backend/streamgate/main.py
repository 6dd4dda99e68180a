"""FastAPI application entry point.

Only thin adapters live here: the token and catalog endpoints the playback
client calls. Upload intake is the PackagingService.ingest call.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Response
from sqlalchemy.ext.asyncio import AsyncEngine

from streamgate.core.config import Settings, settings
from streamgate.core.database import create_session_maker, engine as default_engine, init_db
from streamgate.core.logging import setup_logging
from streamgate.core.metrics import get_content_type, get_metrics, set_app_info
from streamgate.core.middleware import (
    CorrelationIdMiddleware,
    MetricsMiddleware,
    RequestLoggingMiddleware,
)
from streamgate.modules.catalog.router import router as catalog_router
from streamgate.modules.catalog.service import CatalogUpdater
from streamgate.modules.packaging.service import PackagingService
from streamgate.modules.packaging.storage import clear_temp_uploads
from streamgate.modules.signing.config import TokenSigningConfig
from streamgate.modules.signing.jwt import TokenIssuer, TokenVerifier
from streamgate.modules.signing.router import router as signing_router

logger = logging.getLogger(__name__)


def create_app(config: Settings = settings, engine: Optional[AsyncEngine] = None) -> FastAPI:
    """Build the application.

    Args:
        config: Application settings
        engine: Catalog database engine (defaults to DATABASE_URL)

    Returns:
        Configured FastAPI app
    """
    db_engine = engine or default_engine

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(level=config.LOG_LEVEL, json_format=config.LOG_JSON)
        set_app_info(config.VERSION, config.ENVIRONMENT)

        # Fails startup when the signing secret is missing
        signing_config = TokenSigningConfig.from_settings(config)
        app.state.token_issuer = TokenIssuer(signing_config)
        app.state.token_verifier = TokenVerifier(signing_config)

        # Leftovers of half-finished uploads from a previous run
        clear_temp_uploads(config.TEMP_UPLOAD_DIR)

        await init_db(db_engine)
        app.state.session_maker = create_session_maker(db_engine)
        app.state.catalog_updater = CatalogUpdater(app.state.session_maker)
        app.state.packaging_service = PackagingService(
            catalog=app.state.catalog_updater,
            config=config,
        )

        logger.info("%s %s started", config.PROJECT_NAME, config.VERSION)
        yield
        await db_engine.dispose()

    app = FastAPI(
        title=config.PROJECT_NAME,
        version=config.VERSION,
        lifespan=lifespan,
    )
    app.state.settings = config

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    @app.get("/health", tags=["health"])
    async def health_check() -> dict:
        return {"status": "healthy"}

    @app.get("/metrics", tags=["health"], include_in_schema=False)
    async def metrics() -> Response:
        return Response(content=get_metrics(), media_type=get_content_type())

    app.include_router(signing_router)
    app.include_router(catalog_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("streamgate.main:app", host="0.0.0.0", port=settings.PORT)
