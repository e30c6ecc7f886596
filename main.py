"""
Integrations service — application entry point.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.middleware import register_middleware
from config.settings import Settings, get_settings
from connectors.encryption import TokenCipher
from connectors.registry import ConnectorRegistry
from connectors.routes import router as integrations_router
from connectors.state import CookieStateStore
from database.session import build_engine, build_session_factory

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
        stream=sys.stdout,
    )
    for _noisy in ("httpcore", "httpx", "urllib3"):
        logging.getLogger(_noisy).setLevel(logging.WARNING)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application.

    Fails fast with ``ConfigurationError`` when the encryption key is
    missing or too short.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Integrations Service",
        version="1.0.0",
        description="OAuth connections for third-party providers.",
    )

    app.state.settings = settings
    app.state.cipher = TokenCipher(settings.encryption_key)
    app.state.registry = ConnectorRegistry(settings)
    app.state.state_store = CookieStateStore(secure=settings.secure_cookies)
    app.state.engine = build_engine(settings.database_url)
    app.state.session_factory = build_session_factory(app.state.engine)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_middleware(app)

    app.include_router(integrations_router, prefix="/api/v1/integrations")

    @app.on_event("shutdown")
    async def dispose_engine() -> None:
        await app.state.engine.dispose()

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    logger.info("Application ready to accept requests.")
    return app


if __name__ == "__main__":
    _settings = get_settings()
    configure_logging(_settings)
    uvicorn.run(
        create_app(_settings),
        host=_settings.host,
        port=_settings.port,
        log_level="debug" if _settings.debug else "info",
    )
