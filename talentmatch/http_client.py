import httpx

from .settings import Settings, get_settings


def build_async_httpx_client(
    timeout: float | None = None, settings: Settings | None = None, **kwargs
) -> httpx.AsyncClient:
    """Create the shared outbound client.

    One instance lives for the lifetime of the app (see ``main.lifespan``);
    tests pass ``transport=httpx.MockTransport(...)`` through ``kwargs``.
    """
    s = settings or get_settings()
    t = timeout or s.HTTP_CLIENT_TIMEOUT
    return httpx.AsyncClient(timeout=t, **kwargs)
