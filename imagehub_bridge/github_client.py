from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from .constants import CONTENTS_LISTING_LIMIT, DEFAULT_API_BASE_URL

logger = logging.getLogger(__name__)


class ContentAPIError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class ContentNotFound(ContentAPIError):
    pass


class ContentConflict(ContentAPIError):
    """The write was refused because the path's current state does not match."""


class GitHubContentsClient:
    """
    Thin async wrapper around the GitHub REST "contents" API.

    Each call opens its own short-lived ``httpx.AsyncClient``. Pass ``transport``
    to route requests somewhere other than the network (tests use
    ``httpx.MockTransport``).
    """

    def __init__(
        self,
        *,
        token: str,
        owner: str,
        repo: str,
        api_base_url: str = DEFAULT_API_BASE_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.token = token
        self.owner = owner
        self.repo = repo
        self.api_base_url = api_base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _url(self, path: str) -> str:
        encoded = quote(path.strip("/"), safe="/")
        return f"{self.api_base_url}/repos/{self.owner}/{self.repo}/contents/{encoded}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            headers=self._headers(),
            transport=self._transport,
        )

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            async with self._client() as client:
                return await client.request(method, self._url(path), **kwargs)
        except httpx.HTTPError as error:
            raise ContentAPIError(f"{method} {path} failed: {error}") from error

    def _read_json(self, response: httpx.Response, *, method: str, path: str, write: bool = False) -> Any:
        status = response.status_code
        if status == 404:
            raise ContentNotFound(f"{path} not found", status_code=status)
        if write and status in (409, 422):
            raise ContentConflict(_error_message(response, f"{method} {path} conflicted"), status_code=status)
        if status >= 400:
            raise ContentAPIError(_error_message(response, f"{method} {path} failed"), status_code=status)
        try:
            return response.json()
        except ValueError as error:
            raise ContentAPIError(f"Invalid JSON response from {method} {path}", status_code=status) from error

    async def get_content(self, path: str, *, ref: Optional[str] = None) -> Any:
        """Return the file object for ``path``, or a list when it is a directory."""
        params = {"ref": ref} if ref else None
        response = await self._send("GET", path, params=params)
        return self._read_json(response, method="GET", path=path)

    async def list_directory(self, path: str, *, ref: Optional[str] = None) -> list[dict[str, Any]]:
        payload = await self.get_content(path, ref=ref)
        if not isinstance(payload, list):
            raise ContentAPIError(f"{path} is not a directory")
        entries = [entry for entry in payload if isinstance(entry, dict)]
        if len(entries) >= CONTENTS_LISTING_LIMIT:
            logger.warning(
                "Directory listing for %s hit the %d entry limit; results may be truncated",
                path,
                CONTENTS_LISTING_LIMIT,
            )
        return entries

    async def create_or_update_file(
        self,
        path: str,
        *,
        content_b64: str,
        message: str,
        branch: str,
        sha: Optional[str] = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "message": message,
            "content": content_b64,
            "branch": branch,
        }
        if sha:
            body["sha"] = sha
        response = await self._send("PUT", path, json=body)
        payload = self._read_json(response, method="PUT", path=path, write=True)
        if not isinstance(payload, dict):
            raise ContentAPIError(f"Invalid create-or-update response for {path}")
        return payload

    async def delete_file(self, path: str, *, message: str, sha: str, branch: str) -> dict[str, Any]:
        # httpx only accepts a body on DELETE through the generic request API.
        response = await self._send(
            "DELETE",
            path,
            json={"message": message, "sha": sha, "branch": branch},
        )
        payload = self._read_json(response, method="DELETE", path=path, write=True)
        if not isinstance(payload, dict):
            raise ContentAPIError(f"Invalid delete response for {path}")
        return payload


def _error_message(response: httpx.Response, fallback: str) -> str:
    try:
        payload = response.json()
    except ValueError:
        return f"{fallback} (HTTP {response.status_code})"
    if isinstance(payload, dict) and payload.get("message"):
        return f"{fallback} (HTTP {response.status_code}): {payload['message']}"
    return f"{fallback} (HTTP {response.status_code})"
