from __future__ import annotations

import logging
from typing import Callable

from aiohttp import web
from aiohttp.web_request import Request

from .constants import ROUTE_PREFIX
from .errors import (
    AssetNotFound,
    AssetStoreError,
    BackendFailure,
    ConfigurationMissing,
    NamingCollision,
    ValidationFailed,
)
from .provider_base import AssetProvider
from .provider_router import get_asset_provider

logger = logging.getLogger(__name__)

PROVIDER_FACTORY = web.AppKey("provider_factory", Callable[[], AssetProvider])

routes = web.RouteTableDef()

_STATUS_BY_ERROR: list[tuple[type[AssetStoreError], int]] = [
    (ConfigurationMissing, 503),
    (ValidationFailed, 400),
    (NamingCollision, 409),
    (AssetNotFound, 404),
    (BackendFailure, 502),
]


@web.middleware
async def oversized_body_as_validation_error(request: Request, handler):
    try:
        return await handler(request)
    except web.HTTPRequestEntityTooLarge as error:
        logger.warning("Rejected oversized request to %s: %s", request.path, error.text)
        return error_response(ValidationFailed(error.text or "Request body is too large"))


def _provider(request: Request) -> AssetProvider:
    factory = request.app.get(PROVIDER_FACTORY, get_asset_provider)
    return factory()


def error_response(error: AssetStoreError) -> web.Response:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return web.json_response({"error": str(error), "type": error_type.__name__}, status=status)
    return web.json_response({"error": str(error), "type": type(error).__name__}, status=500)


@routes.get(f"{ROUTE_PREFIX}/images")
async def list_images(request: Request) -> web.Response:
    try:
        provider = _provider(request)
    except AssetStoreError as error:
        return error_response(error)

    try:
        await provider.ensure_directory_exists()
    except AssetStoreError as error:
        logger.warning("Image directory bootstrap failed: %s", error)

    listing = await provider.list_snapshot()
    return web.json_response(listing.to_dict())


@routes.get(f"{ROUTE_PREFIX}/images/meta")
async def describe_images(request: Request) -> web.Response:
    try:
        provider = _provider(request)
    except AssetStoreError as error:
        return error_response(error)
    listing = await provider.list_snapshot()
    body = {
        "status": listing.status,
        "count": len(listing.assets),
        "images": [ref.to_dict() for ref in listing.assets],
    }
    if listing.error:
        body["error"] = listing.error
    return web.json_response(body)


@routes.post(f"{ROUTE_PREFIX}/images/upload")
async def upload_image(request: Request) -> web.Response:
    if not request.content_type.startswith("multipart/"):
        return web.json_response(
            {"error": "Expected multipart/form-data with field 'file'"},
            status=400,
        )

    reader = await request.multipart()
    part = await reader.next()
    if part is None or part.name != "file":
        return web.json_response({"error": "Missing multipart field 'file'"}, status=400)

    filename = (part.filename or "").strip()
    payload = await part.read(decode=False)

    def on_progress(percent: int) -> None:
        logger.debug("Upload of %s at %d%%", filename, percent)

    try:
        provider = _provider(request)
        url = await provider.store(
            bytes(payload),
            filename,
            content_type=part.headers.get("Content-Type"),
            on_progress=on_progress,
        )
    except AssetStoreError as error:
        return error_response(error)
    return web.json_response({"ok": True, "url": url})


@routes.delete(f"{ROUTE_PREFIX}/images")
async def delete_image(request: Request) -> web.Response:
    url = request.query.get("url", "")
    if not url and request.can_read_body:
        try:
            payload = await request.json()
        except ValueError:
            return web.json_response({"error": "Invalid JSON body"}, status=400)
        if isinstance(payload, dict):
            url = str(payload.get("url", "") or "")
    if not url:
        return web.json_response({"error": "url is required"}, status=400)

    try:
        provider = _provider(request)
        await provider.remove(url)
    except AssetStoreError as error:
        return error_response(error)
    return web.json_response({"ok": True})


@routes.post(f"{ROUTE_PREFIX}/images/bootstrap")
async def bootstrap_directory(request: Request) -> web.Response:
    try:
        provider = _provider(request)
        await provider.ensure_directory_exists()
    except AssetStoreError as error:
        return error_response(error)
    return web.json_response({"ok": True, "repository": provider.repository_info()})
