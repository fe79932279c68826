"""FastAPI application factory for the licensing API."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from medixpos import __version__
from medixpos.api.config import ApiConfig
from medixpos.api.routers import feature_licensing, health
from medixpos.api.routers import license as license_router
from medixpos.bootstrap import build_feature_licensing
from medixpos.config import load_config
from medixpos.entitlements import FeatureLicensingService

logger = logging.getLogger(__name__)


def create_app(
    config: ApiConfig | None = None,
    licensing: FeatureLicensingService | None = None,
) -> FastAPI:
    """Build and return the FastAPI application.

    When *licensing* is not given it is wired from ``medixpos.yaml``
    (``config.config_file`` or auto-discovery). The tier is derived once
    at startup.
    """
    if config is None:
        config = ApiConfig.from_env()

    if licensing is None:
        medix_cfg = load_config(config.config_file)
        licensing = build_feature_licensing(medix_cfg)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        await licensing.initialize()
        logger.info("Licensing API ready, tier=%s", licensing.get_current_tier().value)
        yield

    app = FastAPI(
        title="MedixPOS Licensing",
        version=__version__,
        docs_url="/api/docs",
        openapi_url="/api/openapi.json",
        lifespan=lifespan,
    )

    # --- CORS (dev mode only) ---
    if config.dev_mode:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["http://localhost:5173"],
            allow_methods=["*"],
            allow_headers=["*"],
        )

    feature_licensing.init_router(licensing)
    license_router.init_router(licensing.license_service)
    health.init_router(licensing, version=__version__)

    app.include_router(feature_licensing.router)
    app.include_router(license_router.router)
    app.include_router(health.router)

    return app
