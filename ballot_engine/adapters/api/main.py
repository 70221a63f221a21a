# ballot_engine/adapters/api/main.py
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ballot_engine import __version__
from ballot_engine.core.domain.exceptions import BallotError
from ballot_engine.shared.config import AppEnv, settings
from ballot_engine.shared.container import container
from ballot_engine.shared.logging_config import configure_logging
from ballot_engine.shared.observability import instrument_fastapi, setup_telemetry

# Import Routers
# Note: We import the modules directly to ensure 'container.wire' works correctly
from ballot_engine.adapters.api.routers import health, vote

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application Lifecycle Manager.
    Handles startup (logging, telemetry) and shutdown (ledger connection pool).
    """
    configure_logging()
    setup_telemetry(settings.OTEL_SERVICE_NAME)

    logger.info(
        "app_startup",
        app=settings.APP_NAME,
        env=settings.APP_ENV.value,
        rpc_url=settings.LEDGER_RPC_URL,
        program_id=settings.LEDGER_PROGRAM_ID,
        fallback_enabled=settings.FALLBACK_ENABLED,
    )

    yield

    logger.info("app_shutdown")
    await container.ledger_gateway().close()


def create_app() -> FastAPI:
    """Factory function to create the FastAPI application."""

    # We must explicitly tell the container which modules use the @inject decorator.
    container.wire(modules=[
        "ballot_engine.adapters.api.dependencies",
        "ballot_engine.adapters.api.routers.health",
    ])

    app = FastAPI(
        title=settings.APP_NAME,
        version=__version__,
        description="D21 Ballot Engine (off-chain validation and transaction building)",
        docs_url="/docs" if settings.APP_ENV != AppEnv.PRODUCTION else None,
        redoc_url=None,
        lifespan=lifespan,
    )

    # Wallet action clients call from arbitrary origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # Auto-Instrument FastAPI for Tracing
    instrument_fastapi(app)

    # Global Exception Handlers
    @app.exception_handler(BallotError)
    async def ballot_error_handler(request: Request, exc: BallotError):
        """
        Renders the ballot taxonomy. Local and ledger-reported errors share
        one body shape; `source` tells them apart.
        """
        logger.warning(
            "ballot_rejected",
            path=request.url.path,
            code=exc.code,
            error=exc.name,
            source=exc.source,
            message=exc.message,
        )
        return JSONResponse(status_code=exc.http_status, content=exc.to_dict())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """
        Standardizes framework HTTP errors (404 routes, 405 methods).
        """
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "status": "error",
                "code": exc.status_code,
                "message": exc.detail,
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catches unhandled exceptions to prevent crashing and leaking stack traces in Prod.
        """
        logger.error("unhandled_exception", path=request.url.path, error=str(exc), exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "status": "error",
                "code": 500,
                "message": "Internal Server Error" if not settings.DEBUG else str(exc),
            },
        )

    # Register Routers
    app.include_router(health.router)
    app.include_router(vote.router)

    return app


# Entry point for local debugging (e.g. `python -m ballot_engine.adapters.api.main`)
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "ballot_engine.adapters.api.main:create_app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        factory=True,
    )
