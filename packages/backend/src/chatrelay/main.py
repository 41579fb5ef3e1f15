"""FastAPI application factory.

Learn: create_app() returns a configured FastAPI instance. Each app owns
its own GroupRegistry on app.state, so two apps (or two tests) never
share rooms. Lifespan stops every room's task on shutdown.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from chatrelay import __version__
from chatrelay.api import api_router
from chatrelay.config import Settings, settings as default_settings
from chatrelay.realtime.registry import GroupRegistry

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    config: Settings = app.state.settings
    logger.info(
        "chatrelay.starting",
        version=__version__,
        environment=config.environment,
        message_buffer_size=config.message_buffer_size,
        delivery_timeout=config.delivery_timeout,
    )

    yield

    logger.info("chatrelay.shutdown", groups=len(app.state.registry))
    await app.state.registry.close()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build and return the FastAPI application."""
    settings = settings or default_settings

    app = FastAPI(
        title="chatrelay",
        description="Minimal real-time chat relay over WebSockets",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.registry = GroupRegistry(delivery_timeout=settings.delivery_timeout)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from chatrelay.realtime.websocket import router as ws_router
    from chatrelay.web.routes import STATIC_DIR, web_router

    app.include_router(api_router)
    app.include_router(ws_router)
    app.include_router(web_router)
    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

    return app


# Default app instance (used by uvicorn: chatrelay.main:app)
app = create_app()
