"""
FastAPI application factory with temp-file maintenance.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from print_dispatch import __version__
from print_dispatch.api.dependencies import ServiceInfo, init_dependencies
from print_dispatch.api.routes import register_error_handlers, router
from print_dispatch.config_store import ConfigStore
from print_dispatch.engine import DispatchEngine
from print_dispatch.maintenance import TempSweeper

logger = logging.getLogger(__name__)


def create_app(
    engine: DispatchEngine,
    config_store: ConfigStore,
    service_info: ServiceInfo,
    cors_origins: list[str] = None,
    debug: bool = False,
    sweeper: Optional[TempSweeper] = None
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        engine: Wired dispatch engine
        config_store: JSON print configuration store
        service_info: Platform and paths reported by GET /config
        cors_origins: List of allowed CORS origins (None = allow all)
        debug: Enable debug mode
        sweeper: Temp-file sweeper started and stopped with the app

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(
        title="Print Dispatch Service",
        description="Local HTTP job API for printing documents, web pages and UI fragments",
        version=__version__,
        debug=debug
    )

    # CORS configuration
    if cors_origins is None:
        # Development: allow all origins
        cors_origins = ["*"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    init_dependencies(engine, config_store, service_info)

    app.include_router(router)
    register_error_handlers(app)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": str(exc) or type(exc).__name__}
        )

    @app.on_event("startup")
    async def startup():
        logger.info("Print Dispatch Service starting...")
        logger.info(f"  Platform: {service_info.platform}")
        logger.info(f"  Print configuration: {config_store.path}")
        for strategy in engine.registry.list_all():
            logger.info(f"  {strategy.document_class.value} -> {type(strategy).__name__}")

        if sweeper:
            await sweeper.start()

    @app.on_event("shutdown")
    async def shutdown():
        logger.info("Print Dispatch Service shutting down...")
        if sweeper:
            await sweeper.stop()

    return app
