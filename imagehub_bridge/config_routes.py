from __future__ import annotations

from aiohttp import web
from aiohttp.web_request import Request

from .asset_routes import PROVIDER_FACTORY, routes
from .config_store import load_effective_config, redact_config
from .constants import ROUTE_PREFIX
from .errors import AssetStoreError
from .provider_router import get_asset_provider


@routes.get(f"{ROUTE_PREFIX}/config")
async def get_bridge_config(request: Request) -> web.Response:
    effective = load_effective_config()
    body: dict = {"config": redact_config(effective), "configured": True}
    try:
        provider = request.app.get(PROVIDER_FACTORY, get_asset_provider)()
    except AssetStoreError as error:
        body["configured"] = False
        body["error"] = str(error)
    else:
        body["repository"] = provider.repository_info()
    return web.json_response(body)
