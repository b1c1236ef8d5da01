from __future__ import annotations

from typing import Callable, Optional

from aiohttp import web

from . import config_routes  # noqa: F401  registers /imagehub/config on the shared table
from .asset_routes import PROVIDER_FACTORY, oversized_body_as_validation_error, routes
from .config_store import load_effective_config
from .constants import DEFAULT_MAX_UPLOAD_BYTES
from .provider_base import AssetProvider

# Multipart framing on top of the largest accepted image.
_BODY_OVERHEAD_BYTES = 1024 * 1024


def _max_body_size() -> int:
    raw = load_effective_config().get("limits", {}).get("max_upload_bytes", "")
    try:
        limit = int(raw)
    except (TypeError, ValueError):
        limit = DEFAULT_MAX_UPLOAD_BYTES
    return max(limit, DEFAULT_MAX_UPLOAD_BYTES) + _BODY_OVERHEAD_BYTES


def create_app(
    provider_factory: Optional[Callable[[], AssetProvider]] = None,
    *,
    max_body_size: Optional[int] = None,
) -> web.Application:
    app = web.Application(
        client_max_size=max_body_size or _max_body_size(),
        middlewares=[oversized_body_as_validation_error],
    )
    if provider_factory is not None:
        app[PROVIDER_FACTORY] = provider_factory
    app.add_routes(routes)
    return app
