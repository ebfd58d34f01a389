"""FastAPI application entry point for the Intake Portal."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from intake_portal import __version__
from intake_portal.api.middleware import RouteAuthorizationMiddleware
from intake_portal.api.routes import router
from intake_portal.config import get_settings

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info(f"Starting Intake Portal Server v{__version__}")
    settings = get_settings()
    logger.info(f"Debug mode: {settings.debug}")
    if not settings.resend_api_key:
        logger.info("Form notifications disabled (set RESEND_API_KEY to enable)")

    yield

    logger.info("Shutting down Intake Portal Server")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Intake Portal",
        description="Access control and change tracking for law-firm intake forms",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )

    app.add_middleware(RouteAuthorizationMiddleware)

    # Added last so it runs outermost
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.site_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)

    return app


# Create app instance for uvicorn
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "intake_portal.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
