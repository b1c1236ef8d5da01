from __future__ import annotations


class AssetStoreError(Exception):
    """Base class for asset store errors."""


class ConfigurationMissing(AssetStoreError, ValueError):
    """Raised when backend coordinates or credentials are absent."""


class ValidationFailed(AssetStoreError, ValueError):
    """Raised for a bad payload type, size or URL shape, before any I/O."""


class NamingCollision(AssetStoreError):
    """Raised when the target path is already taken."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"An asset already exists at {path}")


class AssetNotFound(AssetStoreError):
    def __init__(self, path: str, reason: str = "not found") -> None:
        self.path = path
        super().__init__(f"Asset {reason}: {path}")


class BackendFailure(AssetStoreError):
    """Raised for any other transport or API failure."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)
