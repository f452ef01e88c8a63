"""FastAPI application: messaging webhook, cron trigger and health check."""

import json
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import PlainTextResponse

from reminder_bot import __version__
from reminder_bot.config import get
from reminder_bot.errors import ReminderBotError
from .auth import verify_cron_token
from .schemas import HealthResponse, SweepResponse

logger = logging.getLogger(__name__)


def create_app(services=None, cron_token: Optional[str] = None) -> FastAPI:
    """
    Create the API application.

    Args:
        services: Prebuilt bootstrap.Services. When omitted they are built from
            configuration at startup and closed at shutdown.
        cron_token: Shared secret for /cron. Defaults to cron.token when
            services are built from configuration.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = None
        if app.state.services is None:
            from reminder_bot.bootstrap import build_services

            owned = app.state.services = build_services()
            if app.state.cron_token is None:
                app.state.cron_token = get("cron.token")
        try:
            yield
        finally:
            if owned is not None:
                await owned.aclose()

    app = FastAPI(
        title="Reminder Bot",
        description="Chat reminder assistant: webhook intake and due reminder sweep",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.services = services
    app.state.cron_token = cron_token

    @app.exception_handler(ReminderBotError)
    async def dependency_failure(request: Request, exc: ReminderBotError):
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return PlainTextResponse("Error", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    @app.get("/", tags=["general"])
    async def root():
        """Root endpoint - API information."""
        return {
            "name": "Reminder Bot",
            "version": __version__,
            "status": "online",
            "endpoints": {
                "webhook": "POST /webhook - Messaging platform webhook",
                "cron": "GET|POST /cron - Send due reminders",
                "health": "GET /health - Health check",
            },
        }

    @app.get("/health", response_model=HealthResponse, tags=["general"])
    async def health_check(request: Request):
        """Health check endpoint."""
        services = request.app.state.services
        return HealthResponse(
            status="healthy",
            platform=services.messenger.platform,
            store=type(services.store).__name__,
        )

    @app.post("/webhook", response_class=PlainTextResponse, tags=["messaging"])
    async def webhook(request: Request):
        """Handle every event in a messaging platform webhook call."""
        services = request.app.state.services
        body = await request.body()

        if not services.messenger.verify_request(body, request.headers):
            logger.warning("Rejected webhook call with invalid signature")
            return PlainTextResponse("Invalid signature", status_code=status.HTTP_401_UNAUTHORIZED)

        try:
            payload = json.loads(body or b"{}")
        except ValueError:
            return PlainTextResponse("Bad Request", status_code=status.HTTP_400_BAD_REQUEST)
        if not isinstance(payload, dict):
            return PlainTextResponse("Bad Request", status_code=status.HTTP_400_BAD_REQUEST)

        for event in services.messenger.parse_events(payload):
            await services.intake.handle(event)

        return "OK"

    @app.api_route(
        "/cron",
        methods=["GET", "POST"],
        response_model=SweepResponse,
        dependencies=[Depends(verify_cron_token)],
        tags=["scheduler"],
    )
    async def cron(request: Request):
        """Send every due reminder once and remove it."""
        report = await request.app.state.services.dispatcher.sweep()
        return SweepResponse(**report.to_dict())

    return app


app = create_app()
