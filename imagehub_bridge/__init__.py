from __future__ import annotations

from .asset_ref import AssetRef
from .errors import (
    AssetNotFound,
    AssetStoreError,
    BackendFailure,
    ConfigurationMissing,
    NamingCollision,
    ValidationFailed,
)
from .provider_base import AssetProvider, ListingResult, UploadPhase
from .provider_github import GitHubAssetProvider
from .provider_router import get_asset_provider

__version__ = "0.1.0"

__all__ = [
    "AssetNotFound",
    "AssetProvider",
    "AssetRef",
    "AssetStoreError",
    "BackendFailure",
    "ConfigurationMissing",
    "GitHubAssetProvider",
    "ListingResult",
    "NamingCollision",
    "UploadPhase",
    "ValidationFailed",
    "get_asset_provider",
]
