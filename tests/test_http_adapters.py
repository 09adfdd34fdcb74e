"""Tests for the Drive origin and Gemini adapters over a mock transport."""

import json

import httpx
import pytest

from contextpack.assets import GeminiFileHost
from contextpack.embedders import GeminiEmbedder
from contextpack.errors import ConfigurationError, TransientFetchError
from contextpack.origin import GoogleDriveOrigin
from contextpack.protocols import OriginEntry
from contextpack.protocols.asset_host import STATE_PROCESSING

FOLDER = "application/vnd.google-apps.folder"


def _drive_handler(request: httpx.Request) -> httpx.Response:
    assert request.headers["Authorization"] == "Bearer token-1"
    query = request.url.params.get("q", "")
    if request.url.path.endswith("/files") and "'root' in parents" in query:
        if request.url.params.get("pageToken") == "p2":
            return httpx.Response(200, json={"files": [{"id": "f2", "name": "Schedule", "mimeType": "text/plain"}]})
        return httpx.Response(
            200,
            json={
                "files": [
                    {"id": "f1", "name": "Welcome", "mimeType": "application/vnd.google-apps.document"},
                    {"id": "sub", "name": "Instructor", "mimeType": FOLDER},
                    {"id": "broken"},
                ],
                "nextPageToken": "p2",
            },
        )
    if request.url.path.endswith("/files") and "'sub' in parents" in query:
        return httpx.Response(200, json={"files": [{"id": "deep", "name": "Week 1", "mimeType": FOLDER}]})
    if request.url.path.endswith("/files") and "'deep' in parents" in query:
        return httpx.Response(200, json={"files": [{"id": "f3", "name": "rubric.png", "mimeType": "image/png"}]})
    if request.url.path.endswith("/files/f1/export"):
        assert request.url.params["mimeType"] == "text/plain"
        return httpx.Response(200, text="Welcome text")
    if request.url.path.endswith("/files/f3"):
        return httpx.Response(200, content=b"\x89PNG")
    return httpx.Response(500)


@pytest.mark.asyncio
async def test_drive_lists_recursively_with_inherited_tags():
    origin = GoogleDriveOrigin("root", "token-1", transport=httpx.MockTransport(_drive_handler))

    entries = await origin.list_recursive(origin.root_id)

    tags = {e.name: e.folder_tag for e in entries}
    assert tags == {"Welcome": "public", "Schedule": "public", "rubric.png": "instructor"}


@pytest.mark.asyncio
async def test_drive_exports_and_downloads():
    origin = GoogleDriveOrigin("root", "token-1", transport=httpx.MockTransport(_drive_handler))

    text = await origin.read_text(
        OriginEntry("f1", "Welcome", "application/vnd.google-apps.document"), "text/plain"
    )
    data = await origin.read_bytes(OriginEntry("f3", "rubric.png", "image/png", "instructor"))

    assert text == "Welcome text"
    assert data == b"\x89PNG"


@pytest.mark.asyncio
async def test_drive_http_errors_are_transient():
    origin = GoogleDriveOrigin("root", "token-1", transport=httpx.MockTransport(lambda r: httpx.Response(503)))

    with pytest.raises(TransientFetchError):
        await origin.list_recursive("root")


def test_drive_without_folder_id_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        GoogleDriveOrigin(None, "token").root_id


@pytest.mark.asyncio
async def test_drive_without_token_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        await GoogleDriveOrigin("root", None).list_recursive("root")


@pytest.mark.asyncio
async def test_gemini_resumable_upload_and_poll(tmp_path):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.headers.get("X-Goog-Upload-Command") == "start":
            return httpx.Response(200, headers={"x-goog-upload-url": "https://upload.test/session-1"})
        if request.url.host == "upload.test":
            assert request.content == b"%PDF-1.4"
            return httpx.Response(
                200, json={"file": {"name": "files/abc", "uri": "https://files.test/abc", "state": "PROCESSING"}}
            )
        return httpx.Response(200, json={"name": "files/abc", "uri": "https://files.test/abc", "state": "ACTIVE"})

    path = tmp_path / "doc.pdf"
    path.write_bytes(b"%PDF-1.4")
    host = GeminiFileHost("key-1", transport=httpx.MockTransport(handler))

    hosted = await host.upload(path, "doc.pdf", "application/pdf")
    polled = await host.poll_state(hosted.ref)

    assert hosted.state == STATE_PROCESSING
    assert hosted.mime_type == "application/pdf"
    assert polled.state == "ACTIVE"
    assert json.loads(seen[0].content) == {"file": {"display_name": "doc.pdf"}}
    assert seen[0].url.params["key"] == "key-1"


@pytest.mark.asyncio
async def test_gemini_host_without_key_is_a_configuration_error(tmp_path):
    path = tmp_path / "a.png"
    path.write_bytes(b"x")

    with pytest.raises(ConfigurationError):
        await GeminiFileHost(None).upload(path, "a.png", "image/png")


@pytest.mark.asyncio
async def test_gemini_embedder_batches_documents():
    batch_sizes = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if request.url.path.endswith(":batchEmbedContents"):
            batch_sizes.append(len(body["requests"]))
            return httpx.Response(200, json={"embeddings": [{"values": [1.0, 0.0]} for _ in body["requests"]]})
        return httpx.Response(200, json={"embedding": {"values": [0.0, 1.0]}})

    embedder = GeminiEmbedder("key-1", transport=httpx.MockTransport(handler))

    vectors = await embedder.embed_documents([f"text {i}" for i in range(150)])
    query = await embedder.embed_query("question")

    assert batch_sizes == [100, 50]
    assert vectors.shape == (150, 2)
    assert list(query) == [0.0, 1.0]


def _html_page(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, text="<html>proxy error</html>")


@pytest.mark.asyncio
async def test_drive_non_json_listing_is_transient():
    origin = GoogleDriveOrigin("root", "token-1", transport=httpx.MockTransport(_html_page))

    with pytest.raises(TransientFetchError):
        await origin.list_recursive("root")


@pytest.mark.asyncio
async def test_gemini_non_json_upload_response_is_transient(tmp_path):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.headers.get("X-Goog-Upload-Command") == "start":
            return httpx.Response(200, headers={"x-goog-upload-url": "https://upload.test/session-1"})
        return _html_page(request)

    path = tmp_path / "a.png"
    path.write_bytes(b"x")
    host = GeminiFileHost("key-1", transport=httpx.MockTransport(handler))

    with pytest.raises(TransientFetchError):
        await host.upload(path, "a.png", "image/png")
    with pytest.raises(TransientFetchError):
        await host.poll_state("files/abc")


@pytest.mark.asyncio
async def test_gemini_embedder_non_json_response_is_transient():
    embedder = GeminiEmbedder("key-1", transport=httpx.MockTransport(_html_page))

    with pytest.raises(TransientFetchError):
        await embedder.embed_query("question")
