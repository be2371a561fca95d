import logging
from typing import Optional

from fastapi import FastAPI, Request

from chocolatey_server import __version__
from chocolatey_server.api.odata import router as odata_router
from chocolatey_server.core.config import ServerSettings, load_settings
from chocolatey_server.core.dependencies import get_feed, set_feed
from chocolatey_server.data.loader import load_feed
from chocolatey_server.domain.entities import PackageFeed

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)


def create_app(settings: Optional[ServerSettings] = None, feed: Optional[PackageFeed] = None) -> FastAPI:
    """
    Build the FastAPI application.

    If `feed` is given it is served as-is; otherwise the feed is loaded from
    `settings` on startup, before any request is handled.
    """
    if feed is not None:
        prefix = feed.prefix
    else:
        settings = settings or load_settings()
        prefix = settings.prefix

    app = FastAPI(
        title="Chocolatey Package Feed",
        version=__version__,
        description="Minimal NuGet v2 / OData feed for serving packages to Chocolatey clients.",
    )

    if feed is not None:
        set_feed(feed)

    @app.on_event("startup")
    async def startup_event() -> None:
        """
        Extract and normalize every package archive. Failures here propagate
        and abort startup.
        """
        if feed is None:
            set_feed(await load_feed(settings))

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info(f"{request.method} {request.url.path} {dict(request.query_params)}")
        return await call_next(request)

    @app.get("/health")
    async def health() -> dict:
        """
        Lightweight health check endpoint.
        """
        return {"status": "ok", "packages": len(get_feed())}

    # The feed prefix always ends with "/"; routers are mounted without it.
    app.include_router(odata_router, prefix=prefix.rstrip("/"), tags=["odata"])
    return app


if __name__ == "__main__":
    """
    Allow running `python -m chocolatey_server.main` with settings taken
    from the environment.
    """
    import uvicorn

    _settings = load_settings()
    configure_logging(_settings.log_level)
    uvicorn.run(create_app(_settings), host=_settings.host, port=_settings.port)
