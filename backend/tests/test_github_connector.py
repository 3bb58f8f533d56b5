import base64
import json
from datetime import datetime

import httpx
import pytest

from app.connectors.exceptions import GitHubAPIError
from app.connectors.github_connector import GitHubConnector


def make_connector(handler) -> GitHubConnector:
    connector = GitHubConnector({"access_token": "gho_test", "api_url": "https://api.github.test"})
    connector.client = httpx.AsyncClient(base_url=connector.base_url, transport=httpx.MockTransport(handler))
    return connector


@pytest.mark.asyncio
async def test_sends_token_and_api_headers():
    seen = {}

    def handler(request: httpx.Request):
        seen["auth"] = request.headers["Authorization"]
        seen["accept"] = request.headers["Accept"]
        return httpx.Response(200, json={"default_branch": "trunk"})

    async with make_connector(handler) as connector:
        branch = await connector.get_default_branch("octocat", "streak")

    assert branch == "trunk"
    assert seen == {"auth": "Bearer gho_test", "accept": "application/vnd.github+json"}


@pytest.mark.asyncio
async def test_http_error_carries_status():
    def handler(request: httpx.Request):
        return httpx.Response(503, json={"message": "Service Unavailable"})

    async with make_connector(handler) as connector:
        with pytest.raises(GitHubAPIError) as exc_info:
            await connector.get_commit("octocat", "streak", "abc")

    assert exc_info.value.status_code == 503
    assert exc_info.value.is_transient
    assert "Service Unavailable" in str(exc_info.value)


@pytest.mark.asyncio
async def test_network_error_is_transient():
    def handler(request: httpx.Request):
        raise httpx.ConnectError("connection refused", request=request)

    async with make_connector(handler) as connector:
        with pytest.raises(GitHubAPIError) as exc_info:
            await connector.get_branch_head("octocat", "streak", "main")

    assert exc_info.value.status_code is None
    assert exc_info.value.is_transient


@pytest.mark.asyncio
async def test_missing_file_has_no_sha():
    def handler(request: httpx.Request):
        return httpx.Response(404, json={"message": "Not Found"})

    async with make_connector(handler) as connector:
        assert await connector.get_file_sha("octocat", "streak", "streak.md") is None


@pytest.mark.asyncio
async def test_put_file_encodes_content():
    captured = {}

    def handler(request: httpx.Request):
        captured["path"] = request.url.path
        captured["body"] = json.loads(request.content)
        return httpx.Response(201, json={"commit": {"sha": "abc123"}})

    identity = {"name": "octocat", "email": "octocat@users.noreply.github.com", "date": "2024-01-01T10:00:00+00:00"}
    async with make_connector(handler) as connector:
        commit = await connector.put_file(
            "octocat", "streak", "notes/log.md", "héllo", "Add log", sha="old", author=identity, committer=identity
        )

    assert commit["sha"] == "abc123"
    assert captured["path"] == "/repos/octocat/streak/contents/notes/log.md"
    body = captured["body"]
    assert base64.b64decode(body["content"]).decode("utf-8") == "héllo"
    assert body["sha"] == "old"
    assert body["author"]["date"] == "2024-01-01T10:00:00+00:00"
    assert "branch" not in body


@pytest.mark.asyncio
async def test_create_tree_layers_blobs_on_base():
    captured = {}

    def handler(request: httpx.Request):
        captured["body"] = json.loads(request.content)
        return httpx.Response(201, json={"sha": "tree1"})

    async with make_connector(handler) as connector:
        sha = await connector.create_tree("octocat", "streak", "tree0", {"a.md": "blob1"})

    assert sha == "tree1"
    assert captured["body"]["base_tree"] == "tree0"
    assert captured["body"]["tree"] == [{"path": "a.md", "mode": "100644", "type": "blob", "sha": "blob1"}]


@pytest.mark.asyncio
async def test_contributions_unknown_user():
    def handler(request: httpx.Request):
        return httpx.Response(200, json={
            "data": {"user": None},
            "errors": [{"type": "NOT_FOUND", "message": "Could not resolve to a User"}]
        })

    async with make_connector(handler) as connector:
        with pytest.raises(GitHubAPIError) as exc_info:
            await connector.fetch_contributions("ghost", datetime(2024, 1, 1), datetime(2024, 2, 1))

    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_contributions_collection_returned():
    collection = {"totalCommitContributions": 5, "contributionCalendar": {"totalContributions": 5, "weeks": []}}

    def handler(request: httpx.Request):
        body = json.loads(request.content)
        assert body["variables"]["username"] == "octocat"
        return httpx.Response(200, json={"data": {"user": {"contributionsCollection": collection}}})

    async with make_connector(handler) as connector:
        result = await connector.fetch_contributions("octocat", datetime(2024, 1, 1), datetime(2024, 2, 1))

    assert result == collection


@pytest.mark.asyncio
async def test_list_directory_entries():
    seen = {}

    def handler(request: httpx.Request):
        seen["path"] = request.url.path
        seen["ref"] = request.url.params.get("ref")
        return httpx.Response(200, json=[
            {"name": "README.md", "path": "docs/README.md", "type": "file", "sha": "s1", "size": 12, "url": "x"},
            {"name": "img", "path": "docs/img", "type": "dir", "sha": "s2", "size": 0, "url": "y"},
        ])

    async with make_connector(handler) as connector:
        entries = await connector.list_directory("octocat", "streak", "/docs/", ref="dev")

    assert seen == {"path": "/repos/octocat/streak/contents/docs", "ref": "dev"}
    assert entries == [
        {"name": "README.md", "path": "docs/README.md", "type": "file", "sha": "s1", "size": 12},
        {"name": "img", "path": "docs/img", "type": "dir", "sha": "s2", "size": 0},
    ]


@pytest.mark.asyncio
async def test_list_directory_on_file_is_empty():
    def handler(request: httpx.Request):
        return httpx.Response(200, json={"type": "file", "name": "a.md", "path": "a.md", "sha": "s", "content": ""})

    async with make_connector(handler) as connector:
        assert await connector.list_directory("octocat", "streak", "a.md") == []


@pytest.mark.asyncio
async def test_get_file_content_decodes_base64():
    # GitHub wraps the encoded content at 60 characters
    encoded = base64.b64encode("streak day\n".encode("utf-8") * 10).decode("ascii")
    wrapped = "\n".join(encoded[i:i + 60] for i in range(0, len(encoded), 60))

    def handler(request: httpx.Request):
        return httpx.Response(200, json={
            "type": "file", "name": "streak.md", "path": "streak.md",
            "sha": "abc", "size": 110, "encoding": "base64", "content": wrapped
        })

    async with make_connector(handler) as connector:
        data = await connector.get_file_content("octocat", "streak", "streak.md")

    assert data == {
        "content": "streak day\n" * 10, "sha": "abc", "name": "streak.md", "path": "streak.md", "size": 110
    }


@pytest.mark.asyncio
async def test_get_file_content_rejects_directory():
    def handler(request: httpx.Request):
        return httpx.Response(200, json=[{"name": "a.md", "path": "docs/a.md", "type": "file", "sha": "s"}])

    async with make_connector(handler) as connector:
        with pytest.raises(GitHubAPIError) as exc_info:
            await connector.get_file_content("octocat", "streak", "docs")

    assert exc_info.value.status_code == 400
    assert "directory" in str(exc_info.value)
