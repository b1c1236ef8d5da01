from __future__ import annotations

from .config_store import load_effective_config
from .errors import ConfigurationMissing
from .provider_base import AssetProvider
from .provider_github import GitHubAssetProvider


def get_asset_provider() -> AssetProvider:
    cfg = load_effective_config()
    mode = str(cfg.get("mode", "github")).strip().lower()
    if mode == "github":
        return GitHubAssetProvider(cfg)
    raise ConfigurationMissing(f"Unsupported asset provider configuration (mode={mode})")
