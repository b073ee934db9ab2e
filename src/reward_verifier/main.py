"""
Reward Root Verifier - API Entry Point

Serves root verification over HTTP alongside health and metrics endpoints.
"""

import signal
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI
from prometheus_client import make_asgi_app
from starlette.responses import Response

from reward_verifier.api.v1 import router as api_v1_router
from reward_verifier.core.config import settings
from reward_verifier.core.logging import setup_logging
from reward_verifier.metrics import get_verification_metrics

setup_logging()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    logger.info(
        "Starting Reward Root Verifier",
        version=settings.VERSION,
        environment=settings.ENV,
        proofs_base_url=settings.PROOFS_BASE_URL,
        max_concurrent_proof_fetches=settings.MAX_CONCURRENT_PROOF_FETCHES,
    )

    get_verification_metrics().set_service_info(
        version=settings.VERSION,
        environment=settings.ENV,
        proofs_base_url=settings.PROOFS_BASE_URL,
    )

    yield

    logger.info("Reward Root Verifier shutdown complete")


def create_application() -> FastAPI:
    """Create FastAPI application."""
    app = FastAPI(
        title="Reward Root Verifier API",
        description="Independent verification of reward distribution Merkle roots",
        version=settings.VERSION,
        docs_url="/docs" if settings.ENV != "production" else None,
        redoc_url="/redoc" if settings.ENV != "production" else None,
        lifespan=lifespan,
    )

    app.include_router(api_v1_router, prefix="/api/v1")

    if settings.METRICS_ENABLED:
        app.mount("/metrics", make_asgi_app())

    @app.get("/health")
    async def health() -> dict:
        """Overall service health check."""
        return {
            "status": "healthy",
            "service": "reward-verifier",
            "version": settings.VERSION,
            "proofs_base_url": settings.PROOFS_BASE_URL,
        }

    @app.get("/live")
    async def live() -> Response:
        """Liveness check."""
        return Response(status_code=200, content="alive")

    return app


app = create_application()


def handle_signal(signum: int, frame: object) -> None:
    """Handle shutdown signals."""
    logger.info(f"Received signal {signum}, initiating shutdown")
    sys.exit(0)


def main() -> None:
    """Run the service."""
    signal.signal(signal.SIGTERM, handle_signal)
    signal.signal(signal.SIGINT, handle_signal)

    logger.info("Starting Reward Root Verifier API", host=settings.HOST, port=settings.PORT)

    uvicorn.run(
        "reward_verifier.main:app",
        host=settings.HOST,
        port=settings.PORT,
        workers=settings.WORKERS,
        log_level=settings.LOG_LEVEL.lower(),
        access_log=False,
    )


if __name__ == "__main__":
    main()
