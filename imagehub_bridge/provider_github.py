from __future__ import annotations

import asyncio
import base64
import logging
import time
from pathlib import PurePosixPath
from typing import Any, Callable, Optional
from urllib.parse import unquote

import httpx

from .asset_ref import AssetRef
from .config_store import load_effective_config, normalize_config, parse_bool, parse_positive_number
from .constants import DEFAULT_API_BASE_URL, DEFAULT_BRANCH, PLACEHOLDER_FILENAME
from .errors import (
    AssetNotFound,
    BackendFailure,
    ConfigurationMissing,
    NamingCollision,
    ValidationFailed,
)
from .github_client import ContentAPIError, ContentConflict, ContentNotFound, GitHubContentsClient
from .naming import compose_asset_path, is_listable_image, resolve_image_filename
from .provider_base import AssetProvider, ListingResult, ProgressCallback, UploadPhase

logger = logging.getLogger(__name__)


def _epoch_millis() -> int:
    return time.time_ns() // 1_000_000


def _report(on_progress: Optional[ProgressCallback], percent: int) -> None:
    if on_progress is not None:
        on_progress(percent)


class GitHubAssetProvider(AssetProvider):
    """
    Image store backed by a directory of a GitHub repository.

    The repository is the only source of truth: nothing is cached between
    calls, and every operation re-reads the contents API.
    """

    def __init__(
        self,
        config: Optional[dict[str, Any]] = None,
        *,
        client: Optional[GitHubContentsClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        effective = normalize_config(config) if config is not None else load_effective_config()
        cfg = effective.get("github", {})
        if not isinstance(cfg, dict):
            cfg = {}
        limits = effective.get("limits", {})
        if not isinstance(limits, dict):
            limits = {}

        self.token = str(cfg.get("token", "")).strip()
        self.owner = str(cfg.get("owner", "")).strip()
        self.repo = str(cfg.get("repo", "")).strip()
        self.branch = str(cfg.get("branch", "")).strip() or DEFAULT_BRANCH
        self.directory = str(cfg.get("directory", "")).strip().strip("/")
        self.content_host = str(cfg.get("content_host", "")).strip().rstrip("/")

        if not self.token or not self.owner or not self.repo:
            raise ConfigurationMissing(
                "GitHub configuration is missing (github.token, github.owner, github.repo)"
            )
        if not self.directory:
            raise ConfigurationMissing("Missing image directory in config (github.directory)")
        if not self.content_host:
            raise ConfigurationMissing("Missing content host in config (github.content_host)")

        try:
            self.max_upload_bytes = int(
                parse_positive_number(
                    limits.get("max_upload_bytes"), name="limits.max_upload_bytes", integer=True
                )
            )
            timeout = parse_positive_number(cfg.get("timeout_seconds", "30"), name="github.timeout_seconds")
            self.probe_before_write = parse_bool(cfg.get("probe_before_write", "true"))
        except ValueError as error:
            raise ConfigurationMissing(f"Invalid GitHub configuration: {error}") from error

        self._client = client or GitHubContentsClient(
            token=self.token,
            owner=self.owner,
            repo=self.repo,
            api_base_url=str(cfg.get("api_base_url", "")).strip() or DEFAULT_API_BASE_URL,
            timeout=timeout,
            transport=transport,
        )
        self._clock = clock or _epoch_millis

    def _content_base(self) -> str:
        if "://" in self.content_host:
            return self.content_host
        return f"https://{self.content_host}"

    def url_for(self, path: str) -> str:
        return f"{self._content_base()}/{self.owner}/{self.repo}/{self.branch}/{path}"

    def path_from_url(self, url: str) -> str:
        """Recover the storage path from a retrieval URL returned by ``store``."""
        marker = f"/{self.branch}/"
        raw = (url or "").split("#", 1)[0].split("?", 1)[0]
        if marker not in raw:
            raise ValidationFailed(f"URL does not contain the branch segment '{marker}': {url!r}")

        start = raw.find(marker)
        while start != -1:
            path = unquote(raw[start + len(marker) :])
            if path.startswith(f"{self.directory}/") and path != f"{self.directory}/":
                if ".." in PurePosixPath(path).parts:
                    break
                return path
            start = raw.find(marker, start + 1)
        raise ValidationFailed(f"URL does not point into {self.directory}/: {url!r}")

    def repository_info(self) -> dict[str, str]:
        return {
            "owner": self.owner,
            "repository": self.repo,
            "branch": self.branch,
            "directory": self.directory,
            "browse_url": f"https://github.com/{self.owner}/{self.repo}/tree/{self.branch}/{self.directory}",
        }

    def _validate_upload(self, payload: bytes, declared_name: str, content_type: Optional[str]) -> str:
        if not payload:
            raise ValidationFailed("Uploaded file is empty")
        if len(payload) > self.max_upload_bytes:
            raise ValidationFailed(
                f"File is {len(payload)} bytes; the limit is {self.max_upload_bytes} bytes"
            )
        filename = resolve_image_filename(declared_name, content_type)
        if filename is None:
            raise ValidationFailed(
                f"Unsupported image type for {declared_name!r} (content type {content_type or 'unknown'})"
            )
        return filename

    async def _ensure_path_free(self, path: str) -> None:
        try:
            await self._client.get_content(path, ref=self.branch)
        except ContentNotFound:
            return
        except ContentAPIError as error:
            logger.warning("Refusing to write %s: existence check failed: %s", path, error)
            raise NamingCollision(path) from error
        raise NamingCollision(path)

    async def store(
        self,
        payload: bytes,
        declared_name: str,
        *,
        content_type: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        filename = self._validate_upload(payload, declared_name, content_type)
        path = compose_asset_path(self.directory, self._clock(), filename)
        _report(on_progress, UploadPhase.ACCEPTED)

        if self.probe_before_write:
            await self._ensure_path_free(path)

        encoded = await asyncio.to_thread(base64.b64encode, payload)
        _report(on_progress, UploadPhase.ENCODED)

        # No sha: GitHub treats this as a create and refuses it if the path exists.
        try:
            await self._client.create_or_update_file(
                path,
                content_b64=encoded.decode("ascii"),
                message=f"Upload image: {path}",
                branch=self.branch,
            )
        except ContentConflict as error:
            logger.warning("Upload of %s rejected, path already exists: %s", path, error)
            raise NamingCollision(path) from error
        except ContentAPIError as error:
            logger.error("Upload of %s failed: %s", path, error)
            raise BackendFailure(f"Failed to upload image {filename}", status_code=error.status_code) from error

        _report(on_progress, UploadPhase.WRITTEN)
        logger.info("Stored image %s (%d bytes)", path, len(payload))
        return self.url_for(path)

    async def _read_directory(self) -> tuple[str, list[dict[str, Any]], str]:
        try:
            entries = await self._client.list_directory(self.directory, ref=self.branch)
        except ContentNotFound:
            logger.info("Image directory %s does not exist yet", self.directory)
            return ListingResult.EMPTY, [], ""
        except ContentAPIError as error:
            logger.warning("Listing %s failed: %s", self.directory, error)
            return ListingResult.UNAVAILABLE, [], str(error)

        images = [
            entry
            for entry in entries
            if entry.get("type") == "file" and is_listable_image(str(entry.get("name", "")))
        ]
        images.sort(key=lambda entry: str(entry.get("name", "")), reverse=True)
        return (ListingResult.OK if images else ListingResult.EMPTY), images, ""

    def _entry_path(self, entry: dict[str, Any]) -> str:
        return str(entry.get("path") or f"{self.directory}/{entry.get('name', '')}")

    async def list_snapshot(self) -> ListingResult:
        status, entries, error = await self._read_directory()
        refs: list[AssetRef] = []
        for entry in entries:
            path = self._entry_path(entry)
            refs.append(
                AssetRef.for_path(
                    path,
                    self.url_for(path),
                    revision_tag=str(entry.get("sha", "")),
                    size_bytes=int(entry.get("size", 0) or 0),
                )
            )
        return ListingResult(status=status, urls=[ref.url for ref in refs], error=error, assets=refs)

    async def remove(self, url: str) -> None:
        path = self.path_from_url(url)

        try:
            entry = await self._client.get_content(path, ref=self.branch)
        except ContentNotFound as error:
            raise AssetNotFound(path) from error
        except ContentAPIError as error:
            logger.error("Looking up %s before delete failed: %s", path, error)
            raise BackendFailure(f"Failed to delete image {path}", status_code=error.status_code) from error

        if not isinstance(entry, dict) or entry.get("type") != "file":
            raise AssetNotFound(path, reason="is not a file")
        sha = str(entry.get("sha", "")).strip()
        if not sha:
            raise BackendFailure(f"Failed to delete image {path}: no revision tag returned")

        try:
            await self._client.delete_file(
                path,
                message=f"Delete image: {path}",
                sha=sha,
                branch=self.branch,
            )
        except ContentAPIError as error:
            logger.error("Delete of %s failed: %s", path, error)
            raise BackendFailure(f"Failed to delete image {path}", status_code=error.status_code) from error
        logger.info("Removed image %s", path)

    async def ensure_directory_exists(self) -> None:
        try:
            await self._client.list_directory(self.directory, ref=self.branch)
            return
        except ContentNotFound:
            pass
        except ContentAPIError as error:
            raise BackendFailure(
                f"Failed to read image directory {self.directory}", status_code=error.status_code
            ) from error

        placeholder = f"{self.directory}/{PLACEHOLDER_FILENAME}"
        try:
            await self._client.create_or_update_file(
                placeholder,
                content_b64="",
                message="Create images directory",
                branch=self.branch,
            )
        except ContentConflict:
            # Another caller bootstrapped the directory first.
            return
        except ContentAPIError as error:
            raise BackendFailure(
                f"Failed to create image directory {self.directory}", status_code=error.status_code
            ) from error
        logger.info("Created image directory %s", self.directory)
