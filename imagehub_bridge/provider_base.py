from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from .asset_ref import AssetRef

ProgressCallback = Callable[[int], None]


class UploadPhase:
    """Coarse progress milestones; the backing API exposes no byte-level progress."""

    ACCEPTED = 30
    ENCODED = 60
    WRITTEN = 100


@dataclass(frozen=True)
class ListingResult:
    status: str
    urls: list[str] = field(default_factory=list)
    error: str = ""
    assets: list[AssetRef] = field(default_factory=list)

    OK = "ok"
    EMPTY = "empty"
    UNAVAILABLE = "unavailable"

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "status": self.status,
            "count": len(self.urls),
            "images": list(self.urls),
        }
        if self.error:
            payload["error"] = self.error
        return payload


class AssetProvider(ABC):
    @abstractmethod
    async def store(
        self,
        payload: bytes,
        declared_name: str,
        *,
        content_type: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        raise NotImplementedError

    @abstractmethod
    async def list_snapshot(self) -> ListingResult:
        raise NotImplementedError

    async def list(self) -> list[str]:
        return (await self.list_snapshot()).urls

    async def describe(self) -> list[AssetRef]:
        return (await self.list_snapshot()).assets

    @abstractmethod
    async def remove(self, url: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def ensure_directory_exists(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def repository_info(self) -> dict[str, str]:
        raise NotImplementedError
