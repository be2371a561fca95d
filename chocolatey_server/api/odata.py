"""
The NuGet v2 / OData routes required by the Chocolatey client.

Rather than build a complete OData server, only the handful of routes the
client actually calls are provided. Every route is relative to the feed
prefix the router is mounted under.
"""

from __future__ import annotations

from typing import Any, Callable, Coroutine, Optional
import logging

from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse
from fastapi.routing import APIRoute
from starlette.exceptions import HTTPException

from chocolatey_server.core.dependencies import get_feed
from chocolatey_server.domain.entities import PackageFeed
from chocolatey_server.domain.errors import PackageNotFoundError, UnrecognizedFilterError
from chocolatey_server.domain.odata_filters import strip_quotes

logger = logging.getLogger(__name__)

ATOM_MIME_TYPE = "application/atom+xml; charset=utf-8"
BINARY_MIME_TYPE = "application/octet-stream"


class FeedRoute(APIRoute):
    """
    Route class that contains failures to the request that caused them.

    Any exception escaping a handler is logged and turned into a bare 500,
    so internal details never reach the client.
    """

    def get_route_handler(self) -> Callable[[Request], Coroutine[Any, Any, Response]]:
        route_handler = super().get_route_handler()

        async def feed_route_handler(request: Request) -> Response:
            try:
                return await route_handler(request)
            except (HTTPException, RequestValidationError):
                raise
            except Exception:
                logger.exception(f"Error handling {request.method} {request.url.path}")
                return PlainTextResponse(
                    "Exception!", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
                )

        return feed_route_handler


router = APIRouter(route_class=FeedRoute)


def request_url_root(request: Request) -> str:
    """
    The externally visible `scheme://host` of the current request.
    """
    host = request.headers.get("host") or request.url.netloc
    return f"{request.url.scheme}://{host}"


def atom_response(content: str, status_code: int = status.HTTP_200_OK) -> Response:
    return Response(content=content, status_code=status_code, media_type=ATOM_MIME_TYPE)


# ---------------------------------------------------------------------------
# 1. GET /  (service document)
# ---------------------------------------------------------------------------

@router.get("/")
async def service_document(feed: PackageFeed = Depends(get_feed)) -> Response:
    return atom_response(feed.renderer.service_document)


# ---------------------------------------------------------------------------
# 2. GET /$metadata
# ---------------------------------------------------------------------------

@router.get("/$metadata")
async def metadata_document(feed: PackageFeed = Depends(get_feed)) -> Response:
    return atom_response(feed.renderer.metadata_document)


# ---------------------------------------------------------------------------
# 3. GET /Packages()?$filter=...
# ---------------------------------------------------------------------------

@router.get("/Packages()")
async def packages(
    request: Request,
    filter_expression: Optional[str] = Query(default=None, alias="$filter"),
    feed: PackageFeed = Depends(get_feed),
) -> Response:
    """
    Package query. Only the exact-id and substring filter shapes sent by the
    client are understood; anything else gets the error document and a 400.
    """
    try:
        matched = feed.query_filter(filter_expression)
    except UnrecognizedFilterError:
        logger.info(f"Unrecognized filter: {filter_expression!r}")
        return atom_response(feed.renderer.error_document, status.HTTP_400_BAD_REQUEST)

    return atom_response(feed.renderer.render_packages(matched, request_url_root(request)))


# ---------------------------------------------------------------------------
# 4. GET /FindPackagesById()?id='...'
# ---------------------------------------------------------------------------

@router.get("/FindPackagesById()")
async def find_packages_by_id(
    request: Request,
    package_id: Optional[str] = Query(default=None, alias="id"),
    feed: PackageFeed = Depends(get_feed),
) -> Response:
    # The raw id arrives wrapped in single quotes.
    wanted = strip_quotes(package_id)
    matched = feed.find_by_id(wanted)
    logger.debug(f"Matched package by id {wanted!r}: {[e.id for e in matched]}")
    return atom_response(feed.renderer.render_packages(matched, request_url_root(request)))


# ---------------------------------------------------------------------------
# 5. GET /download/{name}
# ---------------------------------------------------------------------------

@router.get("/download/{name}")
async def download_package(name: str, feed: PackageFeed = Depends(get_feed)) -> Response:
    try:
        data = feed.get_archive(name)
    except PackageNotFoundError:
        return PlainTextResponse("Not found", status_code=status.HTTP_404_NOT_FOUND)

    return Response(content=data, media_type=BINARY_MIME_TYPE)
