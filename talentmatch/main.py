"""FastAPI application entrypoint.

``create_app`` is the composition root; the module-level ``app`` is what
uvicorn serves.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .api import auth_callback, metrics, oauth_github
from .cache import UserCache
from .env_utils import load_env
from .http_client import build_async_httpx_client
from .logging_config import configure_logging
from .error_handlers import register_error_handlers
from .middleware import RequestIDMiddleware
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    app.state.http_client = build_async_httpx_client(settings=settings)
    app.state.user_cache = UserCache(
        ttl_seconds=settings.USER_CACHE_TTL_SECONDS,
        max_entries=settings.USER_CACHE_MAX_ENTRIES,
    )
    logger.info("Startup complete", extra={"meta": {"env": settings.ENV}})
    try:
        yield
    finally:
        await app.state.http_client.aclose()
        app.state.user_cache.clear()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Composition root for the FastAPI application."""
    load_env()
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(title="talentmatch", lifespan=lifespan)
    app.state.settings = settings
    app.dependency_overrides[get_settings] = lambda: settings
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    app.include_router(auth_callback.router)
    app.include_router(oauth_github.router)
    app.include_router(metrics.router)

    @app.get("/healthz", include_in_schema=False)
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("talentmatch.main:app", host="0.0.0.0", port=8000)
