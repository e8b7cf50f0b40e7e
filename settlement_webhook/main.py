import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncEngine

from settlement_webhook.dto.notification import ErrorResponse
from settlement_webhook.models.settlement import Settlement  # noqa: F401
from settlement_webhook.router.routes_health import router as health_router
from settlement_webhook.router.routes_settlements import router as settlements_router
from settlement_webhook.router.routes_webhooks import router as webhooks_router
from settlement_webhook.services.audit import AuditSink, LoggingAuditSink
from settlement_webhook.services.ledger import Ledger, SqlLedger
from settlement_webhook.services.webhook_service import PaymentWebhookService
from settlement_webhook.utils.config import Settings, settings as default_settings
from settlement_webhook.utils.db import build_engine, build_session_factory, check_db_connection, ensure_tables_exist
from settlement_webhook.utils.exceptions import WebhookError
from settlement_webhook.utils.logging import configure_logging

logger = logging.getLogger(__name__)


async def handle_webhook_error(_: Request, exc: WebhookError) -> JSONResponse:
    if exc.detail:
        logger.info("Request rejected. status=%s reason=%s", exc.status_code, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=ErrorResponse(message=exc.message).model_dump())


def create_app(
    settings: Settings | None = None,
    *,
    engine: AsyncEngine | None = None,
    ledger: Ledger | None = None,
    audit_sink: AuditSink | None = None,
) -> FastAPI:
    """
    Build the webhook application.

    Args:
        settings: Configuration; the module-level settings are used if omitted
        engine: Database engine to use instead of one built from ``settings``
        ledger: Ledger to use instead of the SQL ledger (no database is touched)
        audit_sink: Receiver of settlement audit events; logs by default
    """
    if settings is None:
        settings = default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)
        if settings.webhook_secret() is None:
            logger.error("PAYMENT_WEBHOOK_SECRET is not set; payment notifications will be rejected")

        owned_engine = None
        if ledger is None:
            db_engine = engine
            if db_engine is None:
                db_engine = owned_engine = build_engine(settings)
            logger.info("Starting app and validating DB connectivity")
            await asyncio.wait_for(check_db_connection(db_engine), timeout=settings.db_operation_timeout_seconds)
            logger.info("Database connection check successful")
            if settings.db_auto_create:
                # Keep schema bootstrapped for local/dev usage when Alembic was not run.
                await ensure_tables_exist(db_engine)
                logger.info("Schema ensure step completed")
            app.state.session_factory = build_session_factory(db_engine)
            app.state.ledger = SqlLedger(
                app.state.session_factory,
                operation_timeout_seconds=settings.db_operation_timeout_seconds,
            )
        else:
            app.state.ledger = ledger

        app.state.webhook_service = PaymentWebhookService(
            secret=settings.webhook_secret(),
            ledger=app.state.ledger,
            audit_sink=audit_sink or LoggingAuditSink(),
        )
        try:
            yield
        finally:
            if owned_engine is not None:
                # Only close pooled DB connections; this does not drop tables.
                await owned_engine.dispose()

    app = FastAPI(title="Payment Settlement Webhook", lifespan=lifespan)
    app.add_exception_handler(WebhookError, handle_webhook_error)
    app.include_router(health_router)
    app.include_router(webhooks_router)
    app.include_router(settlements_router)
    return app


app = create_app()
