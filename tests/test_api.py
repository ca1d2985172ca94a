"""Tests for the upload API using httpx AsyncClient over the ASGI app"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from api.main import create_app
from api.responders import DefaultResponder
from core.config import Settings

LOG_TEST_CONTENT = b"hello, world\nthis is log test\n"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def storage(tmp_path) -> Path:
    path = tmp_path / "storage"
    path.mkdir()
    return path


@pytest.fixture
def scratch(tmp_path) -> Path:
    path = tmp_path / "scratch"
    path.mkdir()
    return path


@pytest.fixture
def test_settings(storage: Path, scratch: Path) -> Settings:
    return Settings(
        STORAGE_PATH=str(storage),
        UPLOAD_TEMP_DIR=str(scratch),
        ALLOWED_EXTENSIONS=[".txt"],
        ALLOWED_METHODS=["POST"],
        UPLOAD_ROUTE="/upload",
    )


@pytest_asyncio.fixture
async def client(test_settings: Settings):
    app = create_app(test_settings)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ---------------------------------------------------------------------------
# Tests: POST /upload
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_upload_stores_content_addressed_file(client: AsyncClient, storage: Path, scratch: Path):
    resp = await client.post(
        "/upload",
        files={"file": ("test.txt", LOG_TEST_CONTENT, "text/plain")},
    )
    assert resp.status_code == 200

    expected = storage / f"upload_{hashlib.sha256(LOG_TEST_CONTENT).hexdigest()}.txt"
    assert resp.json() == {"files": [str(expected)]}
    assert [p.name for p in storage.iterdir()] == [expected.name]
    assert expected.read_bytes() == LOG_TEST_CONTENT
    assert list(scratch.iterdir()) == []


@pytest.mark.asyncio
async def test_upload_dedup_same_content(client: AsyncClient, storage: Path):
    content = b"duplicate content"
    resp1 = await client.post("/upload", files={"file": ("a.txt", content, "text/plain")})
    resp2 = await client.post("/upload", files={"file": ("b.txt", content, "text/plain")})

    assert resp1.status_code == 200
    assert resp2.status_code == 200
    assert resp1.json()["files"] == resp2.json()["files"]
    assert len(list(storage.iterdir())) == 1


@pytest.mark.asyncio
async def test_upload_multiple_files_in_field_order(client: AsyncClient):
    files = [
        ("first", ("one.txt", b"one", "text/plain")),
        ("second", ("two.txt", b"two", "text/plain")),
        ("first", ("three.txt", b"three", "text/plain")),
    ]
    resp = await client.post("/upload", files=files, data={"note": "ignored"})

    assert resp.status_code == 200
    names = resp.json()["files"]
    assert [Path(n).read_bytes() for n in names] == [b"one", b"two", b"three"]


@pytest.mark.asyncio
async def test_upload_disallowed_extension_returns_400(client: AsyncClient, storage: Path, scratch: Path):
    resp = await client.post("/upload", files={"file": ("a.exe", b"MZ", "application/octet-stream")})

    assert resp.status_code == 400
    body = resp.json()
    assert body["detail"] == "Validation failed"
    assert "not allowed" in body["errors"][0]["message"]
    assert list(storage.iterdir()) == []
    assert list(scratch.iterdir()) == []


@pytest.mark.asyncio
async def test_upload_non_multipart_returns_400(client: AsyncClient):
    resp = await client.post("/upload", json={"file": "nope"})

    assert resp.status_code == 400
    assert resp.json()["detail"] == "Malformed upload request"


@pytest.mark.asyncio
async def test_upload_malformed_multipart_returns_400(client: AsyncClient, storage: Path):
    resp = await client.post(
        "/upload",
        content=b"this is not a multipart body",
        headers={"content-type": "multipart/form-data"},
    )

    assert resp.status_code == 400
    assert list(storage.iterdir()) == []


@pytest.mark.asyncio
async def test_upload_storage_failure_hides_detail(test_settings: Settings, storage: Path):
    storage.rmdir()
    app = create_app(test_settings)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        resp = await ac.post("/upload", files={"file": ("a.txt", b"data", "text/plain")})

    assert resp.status_code == 500
    assert resp.json() == {"detail": "Upload failed"}
    assert str(storage) not in resp.text


@pytest.mark.asyncio
async def test_default_responder_empty_bodies(test_settings: Settings):
    app = create_app(test_settings, responder=DefaultResponder())
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        ok = await ac.post("/upload", files={"file": ("a.txt", b"data", "text/plain")})
        bad = await ac.post("/upload", files={"file": ("a.exe", b"data", "text/plain")})

    assert ok.status_code == 200
    assert ok.content == b""
    assert bad.status_code == 500
    assert bad.content == b""


# ---------------------------------------------------------------------------
# Tests: method filter and logging on the upload route
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_upload_options_lists_methods(client: AsyncClient):
    resp = await client.options("/upload")
    assert resp.status_code == 200
    assert resp.headers["allow"] == "OPTIONS, POST"


@pytest.mark.asyncio
async def test_upload_get_not_allowed(client: AsyncClient):
    resp = await client.get("/upload")
    assert resp.status_code == 405


@pytest.mark.asyncio
async def test_upload_request_is_access_logged(client: AsyncClient, caplog):
    caplog.set_level(logging.INFO, logger="api.middleware")
    resp = await client.post("/upload", files={"file": ("log.txt", LOG_TEST_CONTENT, "text/plain")})

    records = [r for r in caplog.records if r.name == "api.middleware"]
    assert len(records) == 1
    assert records[0].method == "POST"
    assert records[0].uri == "/upload"
    assert records[0].status == 200
    assert records[0].size == len(resp.content)


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_upload_media_type_is_case_insensitive(client: AsyncClient, storage: Path):
    body = (
        b"--XX\r\n"
        b'Content-Disposition: form-data; name="file"; filename="a.txt"\r\n'
        b"Content-Type: text/plain\r\n"
        b"\r\n"
        b"mixed case header\r\n"
        b"--XX--\r\n"
    )
    resp = await client.post(
        "/upload",
        content=body,
        headers={"content-type": "Multipart/Form-Data; boundary=XX"},
    )

    assert resp.status_code == 200
    expected = storage / f"upload_{hashlib.sha256(b'mixed case header').hexdigest()}.txt"
    assert resp.json() == {"files": [str(expected)]}
    assert expected.read_bytes() == b"mixed case header"


@pytest.mark.asyncio
async def test_upload_too_many_files_returns_400(test_settings: Settings, storage: Path):
    app = create_app(test_settings.model_copy(update={"MAX_UPLOAD_FILES": 1}))
    files = [
        ("file", ("one.txt", b"one", "text/plain")),
        ("file", ("two.txt", b"two", "text/plain")),
    ]
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        resp = await ac.post("/upload", files=files)

    assert resp.status_code == 400
    body = resp.json()
    assert body["detail"] == "Malformed upload request"
    assert "Too many files" in body["errors"][0]["message"]
    assert list(storage.iterdir()) == []


# ---------------------------------------------------------------------------
# Tests: response language
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_error_detail_follows_accept_language(client: AsyncClient):
    resp = await client.post(
        "/upload",
        files={"file": ("a.exe", b"MZ", "application/octet-stream")},
        headers={"accept-language": "zh-CN,zh;q=0.9,en;q=0.8"},
    )

    assert resp.status_code == 400
    assert resp.headers["content-language"] == "zh"
    assert resp.json()["detail"] == "验证失败"


@pytest.mark.asyncio
async def test_language_header_overrides_accept_language(client: AsyncClient):
    resp = await client.post(
        "/upload",
        files={"file": ("a.exe", b"MZ", "application/octet-stream")},
        headers={"language": "en", "accept-language": "zh"},
    )

    assert resp.status_code == 400
    assert resp.headers["content-language"] == "en"
    assert resp.json()["detail"] == "Validation failed"
