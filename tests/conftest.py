from __future__ import annotations

import base64
import hashlib
import json
from typing import Any, Optional
from urllib.parse import unquote

import httpx
import pytest

from imagehub_bridge.provider_github import GitHubAssetProvider

OWNER = "octo"
REPO = "gallery"
BRANCH = "main"
DIRECTORY = "public/images"
RAW_BASE = f"https://raw.githubusercontent.com/{OWNER}/{REPO}/{BRANCH}"


class FakeContentsAPI:
    """In-memory stand-in for the GitHub contents API of a single repository."""

    def __init__(self, owner: str = OWNER, repo: str = REPO) -> None:
        self.prefix = f"/repos/{owner}/{repo}/contents/"
        self.files: dict[str, dict[str, Any]] = {}
        self.requests: list[httpx.Request] = []
        self.failures: dict[tuple[str, str], int] = {}
        self._writes = 0

    def add_file(self, path: str, content: bytes = b"x") -> str:
        self._writes += 1
        sha = hashlib.sha1(f"{path}:{self._writes}".encode("utf-8") + content).hexdigest()
        self.files[path] = {"sha": sha, "content": content}
        return sha

    def fail(self, method: str, path: str, status: int) -> None:
        self.failures[(method, path)] = status

    def methods(self) -> list[str]:
        return [request.method for request in self.requests]

    def _entry(self, path: str) -> dict[str, Any]:
        stored = self.files[path]
        return {
            "type": "file",
            "name": path.rsplit("/", 1)[-1],
            "path": path,
            "sha": stored["sha"],
            "size": len(stored["content"]),
        }

    def _children(self, directory: str) -> list[dict[str, Any]]:
        children: dict[str, dict[str, Any]] = {}
        for path in sorted(self.files):
            if not path.startswith(f"{directory}/"):
                continue
            rest = path[len(directory) + 1 :]
            if "/" in rest:
                name = rest.split("/", 1)[0]
                children.setdefault(
                    name,
                    {"type": "dir", "name": name, "path": f"{directory}/{name}", "sha": "d" * 40, "size": 0},
                )
            else:
                children[rest] = self._entry(path)
        return list(children.values())

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = unquote(request.url.path[len(self.prefix) :]).strip("/")

        status = self.failures.get((request.method, path))
        if status is not None:
            return httpx.Response(status, json={"message": "Server Error"})

        if request.method == "GET":
            if path in self.files:
                return httpx.Response(200, json=self._entry(path))
            children = self._children(path)
            if children:
                return httpx.Response(200, json=children)
            return httpx.Response(404, json={"message": "Not Found"})

        body = json.loads(request.content or b"{}")
        current = self.files.get(path)

        if request.method == "PUT":
            if current is not None and not body.get("sha"):
                return httpx.Response(422, json={"message": "Invalid request.\n\n\"sha\" wasn't supplied."})
            if current is not None and body.get("sha") != current["sha"]:
                return httpx.Response(409, json={"message": "does not match"})
            sha = self.add_file(path, base64.b64decode(body.get("content", "")))
            return httpx.Response(
                201 if current is None else 200,
                json={"content": {"path": path, "sha": sha}, "commit": {"message": body.get("message")}},
            )

        if request.method == "DELETE":
            if current is None:
                return httpx.Response(404, json={"message": "Not Found"})
            if body.get("sha") != current["sha"]:
                return httpx.Response(409, json={"message": "does not match"})
            del self.files[path]
            return httpx.Response(200, json={"content": None, "commit": {"message": body.get("message")}})

        return httpx.Response(405, json={"message": "Method Not Allowed"})


class StepClock:
    def __init__(self, start: int = 1_700_000_000_000, step: int = 1) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> int:
        value = self.now
        self.now += self.step
        return value


def make_config(**overrides: Any) -> dict[str, Any]:
    github = {
        "token": "ghp_test",
        "owner": OWNER,
        "repo": REPO,
        "branch": BRANCH,
        "directory": DIRECTORY,
        "api_base_url": "https://api.github.com",
        "content_host": "raw.githubusercontent.com",
        "timeout_seconds": "5",
        "probe_before_write": "true",
    }
    limits = {"max_upload_bytes": str(10 * 1024 * 1024)}
    for key, value in overrides.items():
        if key == "max_upload_bytes":
            limits[key] = value
        else:
            github[key] = value
    return {"mode": "github", "github": github, "limits": limits}


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    monkeypatch.setenv("IMAGEHUB_CONFIG_PATH", str(tmp_path / "config.json"))
    for name in (
        "IMAGEHUB_MODE",
        "IMAGEHUB_GITHUB_TOKEN",
        "IMAGEHUB_GITHUB_OWNER",
        "IMAGEHUB_GITHUB_REPO",
        "IMAGEHUB_GITHUB_BRANCH",
        "IMAGEHUB_GITHUB_DIRECTORY",
        "IMAGEHUB_GITHUB_API_BASE_URL",
        "IMAGEHUB_GITHUB_CONTENT_HOST",
        "IMAGEHUB_GITHUB_TIMEOUT_SECONDS",
        "IMAGEHUB_GITHUB_PROBE_BEFORE_WRITE",
        "IMAGEHUB_MAX_UPLOAD_BYTES",
    ):
        monkeypatch.delenv(name, raising=False)
    return tmp_path / "config.json"


@pytest.fixture
def fake_api() -> FakeContentsAPI:
    return FakeContentsAPI()


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


def build_provider(
    fake_api: FakeContentsAPI,
    clock: Optional[StepClock] = None,
    **overrides: Any,
) -> GitHubAssetProvider:
    return GitHubAssetProvider(
        make_config(**overrides),
        transport=httpx.MockTransport(fake_api.handler),
        clock=clock or StepClock(),
    )


@pytest.fixture
def provider(fake_api: FakeContentsAPI, clock: StepClock) -> GitHubAssetProvider:
    return build_provider(fake_api, clock)
