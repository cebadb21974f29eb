import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app import __version__
from app.api.relay_routes import router as relay_router
from app.auth.keys import KeyVerifier
from app.config import Settings, get_settings
from app.middleware import (
    AllowContentTypeMiddleware,
    CleanPathMiddleware,
    NoCacheMiddleware,
    RequestIDMiddleware,
    RecovererMiddleware,
    RequestLoggingMiddleware,
    ThrottleMiddleware,
    TimeoutMiddleware,
)
from app.relay.webhook import RelayWebhook
from app.slack.dispatcher import SlackDispatcher

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the relay application around one immutable settings object."""
    if settings is None:
        settings = get_settings()
    logging.getLogger().setLevel(settings.log_level)

    dispatcher = SlackDispatcher(timeout=settings.dispatch_timeout_seconds)
    webhook_handler = RelayWebhook(
        settings=settings,
        verifier=KeyVerifier(settings.key_hash),
        dispatcher=dispatcher,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting Directus Slack relay on {settings.addr}:{settings.port}...")
        logger.info(f"Configuration loaded: directus_base_url={settings.directus_base_url}")

        yield

        logger.info("Shutting down Directus Slack relay...")
        await dispatcher.drain(settings.shutdown_grace_seconds)

    app = FastAPI(
        title="Directus Slack Relay",
        description="Relays Directus change webhooks to Slack incoming webhooks",
        version=__version__,
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.webhook_handler = webhook_handler

    # Last added runs first
    app.add_middleware(ThrottleMiddleware, limit=settings.max_concurrent_requests)
    app.add_middleware(NoCacheMiddleware)
    app.add_middleware(CleanPathMiddleware)
    app.add_middleware(AllowContentTypeMiddleware, content_types=("application/json",))
    app.add_middleware(TimeoutMiddleware, timeout=settings.request_timeout_seconds)
    app.add_middleware(RecovererMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "service": "directus-slack-relay",
            "version": __version__,
            "pending_dispatches": dispatcher.pending
        }

    # Last resort for faults outside the middleware stack
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"}
        )

    app.include_router(relay_router)

    return app
