from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Any, Optional

from .naming import mime_type_for, parse_stored_filename


@dataclass(frozen=True)
class AssetRef:
    path: str
    url: str
    logical_name: str
    uploaded_at_ms: Optional[int]
    revision_tag: str = ""
    size_bytes: int = 0
    mime_type: str = "application/octet-stream"

    @property
    def filename(self) -> str:
        return PurePosixPath(self.path).name

    @classmethod
    def for_path(cls, path: str, url: str, *, revision_tag: str = "", size_bytes: int = 0) -> "AssetRef":
        filename = PurePosixPath(path).name
        uploaded_at_ms, logical_name = parse_stored_filename(filename)
        return cls(
            path=path,
            url=url,
            logical_name=logical_name,
            uploaded_at_ms=uploaded_at_ms,
            revision_tag=revision_tag,
            size_bytes=size_bytes,
            mime_type=mime_type_for(filename),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "url": self.url,
            "filename": self.filename,
            "logical_name": self.logical_name,
            "uploaded_at_ms": self.uploaded_at_ms,
            "revision_tag": self.revision_tag,
            "size_bytes": self.size_bytes,
            "mime_type": self.mime_type,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "AssetRef":
        uploaded_at = raw.get("uploaded_at_ms")
        return cls(
            path=str(raw.get("path", "")),
            url=str(raw.get("url", "")),
            logical_name=str(raw.get("logical_name", "")),
            uploaded_at_ms=int(uploaded_at) if uploaded_at is not None else None,
            revision_tag=str(raw.get("revision_tag", "")),
            size_bytes=int(raw.get("size_bytes", 0) or 0),
            mime_type=str(raw.get("mime_type", "application/octet-stream")),
        )
