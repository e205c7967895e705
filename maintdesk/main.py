from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

from fastapi import FastAPI

from maintdesk.api.errors import install_error_handlers
from maintdesk.api.routes import auth, dashboards, master, notifications, ping, tickets
from maintdesk.core.config import Settings, get_settings
from maintdesk.core.logging import configure_logging, init_tracer, shutdown_tracer
from maintdesk.core.metrics import MetricsRegistry, register_default_metrics
from maintdesk.errors import PersistenceError
from maintdesk.identity.directory import UserDirectory
from maintdesk.identity.tokens import TokenCodec
from maintdesk.notifications import (
    DisabledPushSender,
    NotificationDispatcher,
    SubscriptionRegistry,
    WebPushSender,
)
from maintdesk.security.guard import AuthorizationGuard
from maintdesk.services.master_data import MasterDataStore
from maintdesk.services.postgres import PostgresExecutor
from maintdesk.services.records import IncidentRecordRepository
from maintdesk.tickets.repository import TicketRepository
from maintdesk.tickets.service import TicketLifecycleService


def _build_sender(settings: Settings):
    if settings.vapid_private_key:
        return WebPushSender(
            private_key=settings.vapid_private_key,
            subject=settings.vapid_subject,
            timeout=settings.push_timeout_seconds,
        )
    return DisabledPushSender()


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - executed by framework
    settings: Settings = app.state.settings
    logger = configure_logging(settings)
    tracer_provider = init_tracer(settings)
    app.state.logger = logger
    app.state.tracer_provider = tracer_provider

    if not settings.vapid_private_key:
        logger.warning("VAPID keys are not configured; push notifications will fail and be dropped")

    executor = PostgresExecutor(
        dsn=settings.postgres_dsn,
        min_size=settings.postgres_pool_min_size,
        max_size=settings.postgres_pool_max_size,
        command_timeout=settings.postgres_command_timeout,
    )
    app.state.executor = executor
    try:
        users = UserDirectory(executor)
        records = IncidentRecordRepository(executor)
        service = TicketLifecycleService(
            TicketRepository(executor),
            users,
            app.state.guard,
            app.state.dispatcher,
            metrics=app.state.metrics,
            notification_title=settings.notification_title,
        )
        await service.ensure_schema()
        await records.ensure_schema()
        app.state.user_directory = users
        app.state.record_repository = records
        app.state.ticket_service = service
    except PersistenceError:
        logger.exception("Database unavailable; ticket endpoints will answer 503")
        app.state.user_directory = None
        app.state.record_repository = None
        app.state.ticket_service = None
    try:
        yield
    finally:
        await app.state.dispatcher.drain()
        await executor.close()
        shutdown_tracer(tracer_provider)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)

    metrics = register_default_metrics(MetricsRegistry())
    registry = SubscriptionRegistry()
    app.state.settings = settings
    app.state.metrics = metrics
    app.state.token_codec = TokenCodec(
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        ttl=timedelta(days=settings.token_ttl_days),
    )
    app.state.guard = AuthorizationGuard(settings.headquarters_location)
    app.state.auth_cookie_name = settings.auth_cookie_name
    app.state.auth_cookie_secure = settings.auth_cookie_secure
    app.state.vapid_public_key = settings.vapid_public_key
    app.state.subscription_registry = registry
    app.state.dispatcher = NotificationDispatcher(registry, _build_sender(settings), metrics=metrics)
    app.state.master_data_store = MasterDataStore(settings.master_data_path)

    install_error_handlers(app)
    app.include_router(ping.router)
    app.include_router(auth.router)
    app.include_router(tickets.router)
    app.include_router(notifications.router)
    app.include_router(dashboards.router)
    app.include_router(master.router)
    return app


app = create_app()
