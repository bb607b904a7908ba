"""
Tweet Archive - FastAPI Application

Creates the FastAPI app, wires up routers and owns the TweetStore for the
life of the process.

Run with: uvicorn tweetarchive.main:app
      or: python -m tweetarchive --dbname tweetarchive --port 13331
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.concurrency import run_in_threadpool

from . import __version__
from .config import Settings, configure_logging, get_settings
from .core.errors import StoreError, register_exception_handlers
from .core.middleware import RequestLoggingMiddleware
from .db import TweetStore
from .routers.health import router as health_router
from .routers.pages import router as pages_router
from .routers.search import router as search_router
from .routers.upload import router as upload_router

logger = logging.getLogger(__name__)


def _open_store(settings: Settings) -> Optional[TweetStore]:
    store = TweetStore.from_settings(settings)
    try:
        store.open()
        store.ensure_schema()
    except StoreError as e:
        logger.error(f"Tweet store unavailable, starting degraded: {e}")
        store.close()
        return None
    return store


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan handler.

    - Startup: open the store pool and provision the tweets table, unless a
      store was injected through create_app()
    - Shutdown: close the pool if this lifespan opened it
    """
    settings: Settings = app.state.settings
    logger.info(f"Starting Tweet Archive v{__version__}")

    owned: Optional[TweetStore] = None
    if app.state.store is None:
        owned = await run_in_threadpool(_open_store, settings)
        app.state.store = owned

    yield

    logger.info("Shutting down Tweet Archive...")
    if owned is not None:
        await run_in_threadpool(owned.close)
        app.state.store = None


def create_app(settings: Optional[Settings] = None, store: Optional[TweetStore] = None) -> FastAPI:
    """
    Application factory.

    Args:
        settings: Settings to use (defaults to the environment)
        store: Pre-built store; when given, the lifespan neither opens nor
            closes it

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title="Tweet Archive",
        description="Upload a tweet archive and search it with Postgres full-text search.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store

    app.add_middleware(RequestLoggingMiddleware)
    register_exception_handlers(app)

    app.include_router(pages_router)
    app.include_router(search_router)
    app.include_router(upload_router)
    app.include_router(health_router)

    return app


app = create_app()
