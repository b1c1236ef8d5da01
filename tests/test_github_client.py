from __future__ import annotations

import json

import httpx
import pytest

from imagehub_bridge.github_client import (
    ContentAPIError,
    ContentConflict,
    ContentNotFound,
    GitHubContentsClient,
)


def make_client(handler) -> GitHubContentsClient:
    return GitHubContentsClient(
        token="ghp_test",
        owner="octo",
        repo="gallery",
        transport=httpx.MockTransport(handler),
    )


async def test_get_content_sends_auth_headers_and_ref() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"type": "file", "sha": "abc"})

    payload = await make_client(handler).get_content("public/images/a.png", ref="main")

    assert payload == {"type": "file", "sha": "abc"}
    request = seen[0]
    assert request.url.path == "/repos/octo/gallery/contents/public/images/a.png"
    assert request.url.params["ref"] == "main"
    assert request.headers["Authorization"] == "Bearer ghp_test"
    assert request.headers["Accept"] == "application/vnd.github+json"


async def test_not_found_maps_to_content_not_found() -> None:
    client = make_client(lambda request: httpx.Response(404, json={"message": "Not Found"}))

    with pytest.raises(ContentNotFound) as exc_info:
        await client.list_directory("public/images")

    assert exc_info.value.status_code == 404


async def test_write_conflict_maps_to_content_conflict() -> None:
    client = make_client(lambda request: httpx.Response(422, json={"message": "sha wasn't supplied"}))

    with pytest.raises(ContentConflict) as exc_info:
        await client.create_or_update_file("p/a.png", content_b64="", message="m", branch="main")

    assert "sha wasn't supplied" in str(exc_info.value)


async def test_read_422_is_a_plain_api_error() -> None:
    client = make_client(lambda request: httpx.Response(422, json={"message": "bad ref"}))

    with pytest.raises(ContentAPIError) as exc_info:
        await client.get_content("p/a.png")

    assert not isinstance(exc_info.value, ContentConflict)
    assert exc_info.value.status_code == 422


async def test_server_error_keeps_status_code() -> None:
    client = make_client(lambda request: httpx.Response(503, text="unavailable"))

    with pytest.raises(ContentAPIError) as exc_info:
        await client.get_content("p")

    assert exc_info.value.status_code == 503


async def test_transport_error_is_wrapped() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ContentAPIError) as exc_info:
        await make_client(handler).get_content("p")

    assert exc_info.value.status_code is None
    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


async def test_list_directory_rejects_file_payload() -> None:
    client = make_client(lambda request: httpx.Response(200, json={"type": "file", "sha": "abc"}))

    with pytest.raises(ContentAPIError):
        await client.list_directory("public/images/a.png")


async def test_create_and_delete_send_json_bodies() -> None:
    bodies: list[tuple[str, dict]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append((request.method, json.loads(request.content)))
        return httpx.Response(200, json={"commit": {}})

    client = make_client(handler)
    await client.create_or_update_file("p/a.png", content_b64="QQ==", message="Upload image: p/a.png", branch="main")
    await client.delete_file("p/a.png", message="Delete image: p/a.png", sha="abc", branch="main")

    assert bodies[0] == ("PUT", {"message": "Upload image: p/a.png", "content": "QQ==", "branch": "main"})
    assert bodies[1] == ("DELETE", {"message": "Delete image: p/a.png", "sha": "abc", "branch": "main"})
