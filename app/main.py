from __future__ import annotations

import logging

from fastapi import FastAPI

from app.config import AppConfig, load_config
from app.db.base import get_engine
from app.db.migrations_runner import apply_migrations
from app.http.errors import register_error_handlers
from app.http.request_id import RequestIdMiddleware
from app.logging_setup import configure_logging
from app.logic.shopify_client import ClientFactory, client_factory_from_config
from app.middleware.cors import apply_cors
from app.routes import api_router

logger = logging.getLogger(__name__)


def create_app(config: AppConfig | None = None, *, client_factory: ClientFactory | None = None) -> FastAPI:
    """Build the FastAPI application.

    `client_factory` overrides how per-shop Admin API clients are built; by
    default they talk to Shopify with the configured API version and timeout.
    """
    configure_logging()
    config = config or load_config()

    engine = get_engine(config.database.dsn)
    if config.database.auto_apply_migrations:
        apply_migrations(engine)

    app = FastAPI(title="Thank-you page survey")
    app.state.config = config
    app.state.client_factory = client_factory or client_factory_from_config(config.shopify)

    register_error_handlers(app)
    app.add_middleware(RequestIdMiddleware)
    apply_cors(app)
    app.include_router(api_router)

    logger.info(
        "app.created api_version=%s namespace=%s",
        config.shopify.api_version,
        config.shopify.metafield_namespace,
    )
    return app
