"""Rollcall – FastAPI application."""
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rollcall.config import Settings, get_settings
from rollcall.database import Database
from rollcall.errors import register_error_handlers
from rollcall.models.account import AccountRole
from rollcall.routers import notifications, users
from rollcall.routers.auth import create_auth_router
from rollcall.services.cleanup import run_cleanup_job
from rollcall.services.outbox import EmailOutbox
from rollcall.services.security import TokenIssuer
from rollcall.utils.timezone import now_utc

logger = logging.getLogger(__name__)

AUTH_PREFIXES = {
    AccountRole.user: "/api/auth",
    AccountRole.school: "/api/schools/auth",
    AccountRole.participant: "/api/participants/auth",
}


def _log_mail_config(settings: Settings) -> None:
    if settings.mailgun_api_key and settings.mailgun_domain:
        from_addr = settings.mailgun_from_email
        from_domain = from_addr.split("@")[-1].lower() if "@" in from_addr else ""
        if from_domain and from_domain != settings.mailgun_domain.lower():
            logger.warning(
                "Mailgun from=%s does not match domain=%s; sending as noreply@%s",
                from_addr, settings.mailgun_domain, settings.mailgun_domain,
            )
        else:
            logger.info("Mailgun configured: domain=%s from=%s", settings.mailgun_domain, from_addr)
    elif settings.sendgrid_api_key:
        logger.info("SendGrid configured: from=%s", settings.sendgrid_from_email)
    else:
        logger.warning("No email provider configured; emails will be logged and dropped")


def create_app(
    settings: Settings | None = None,
    notifier=None,
    clock: Callable[[], datetime] = now_utc,
) -> FastAPI:
    """Build the application. `notifier` replaces the email outbox (tests pass a recording one)."""
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        state = app.state
        state.database.create_all()
        _log_mail_config(settings)
        if settings.cleanup_cron_enabled:
            state.scheduler.add_job(
                run_cleanup_job,
                "cron",
                minute=0,
                args=[state.database.session, clock],
                id="cleanup",
                replace_existing=True,
            )
        state.scheduler.start()
        try:
            yield
        finally:
            state.scheduler.shutdown(wait=False)
            state.database.dispose()

    app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)

    app.state.settings = settings
    app.state.clock = clock
    app.state.database = Database(settings.database_url)
    app.state.token_issuer = TokenIssuer(settings, clock=clock)
    app.state.scheduler = BackgroundScheduler(timezone="UTC")
    app.state.notifier = notifier or EmailOutbox(settings, app.state.scheduler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    for role, prefix in AUTH_PREFIXES.items():
        app.include_router(create_auth_router(role, prefix))
    app.include_router(users.router)
    app.include_router(notifications.router)

    @app.get("/")
    def root():
        return {"app": settings.app_name, "status": "ok"}

    @app.get("/health")
    def health():
        return {"status": "healthy"}

    return app
