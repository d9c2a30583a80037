import io

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from fakes import CATEGORIES, InMemoryFileRepository, mock_transport, pdf_bytes, png_bytes, signature_sniffer
from upload_service.api.routes import router
from upload_service.domain.services import UploadService
from upload_service.domain.validator import FileValidator
from upload_service.infrastructure.http_client import HttpxRemoteFetcher
from upload_service.infrastructure.storage import LocalDiskStorage


class _Settings:
    service_name = "upload_service"
    app_version = "0.1.0"


@pytest.fixture
def service(tmp_path):
    routes = {
        "https://cdn.example.com/doc.pdf": httpx.Response(200, content=pdf_bytes()),
    }
    return UploadService(
        validator=FileValidator(CATEGORIES, sniffer=signature_sniffer),
        disks={"public": LocalDiskStorage(name="public", root=str(tmp_path), url_prefix="/storage")},
        repository=InMemoryFileRepository(),
        fetcher=HttpxRemoteFetcher(timeout=5, user_agent="tests", transport=mock_transport(routes)),
    )


@pytest.fixture
def client(service):
    app = FastAPI()
    app.include_router(router)
    app.state.settings = _Settings()
    app.state.upload_service = service
    return TestClient(app)


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["service"] == "upload_service"


def test_upload_creates_record(client):
    files = {"file": ("photo.png", io.BytesIO(png_bytes()), "image/png")}
    data = {"file_type": "image", "folder": "avatars", "owner_type": "user", "owner_id": "42"}

    resp = client.post("/files", data=data, files=files)
    assert resp.status_code == 201, resp.text

    body = resp.json()
    assert body["mime_type"] == "image/png"
    assert body["extension"] == "png"
    assert body["file_size"] == 10240
    assert body["source_type"] == "upload"
    assert body["owner_id"] == "42"
    assert body["file_path"].startswith("files/avatars/")
    assert body["url"] == f"/storage/{body['file_path']}"

    fetched = client.get(f"/files/{body['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["file_name"] == body["file_name"]


def test_upload_rejects_wrong_type(client):
    files = {"file": ("photo.pdf", io.BytesIO(png_bytes()), "application/pdf")}

    resp = client.post("/files", data={"file_type": "pdf"}, files=files)

    assert resp.status_code == 415
    body = resp.json()
    assert body["error_code"] == "INVALID_MIME_TYPE"
    assert body["details"] == {"mime_type": "image/png"}
    assert body["correlation_id"]


def test_upload_rejects_unknown_category(client):
    files = {"file": ("photo.png", io.BytesIO(png_bytes()), "image/png")}

    resp = client.post("/files", data={"file_type": "nonexistent"}, files=files)

    assert resp.status_code == 404
    assert resp.json()["error_code"] == "UNKNOWN_CATEGORY"


def test_upload_ignores_client_filename_suffix_for_staging(client):
    name = "p." + "x" * 240
    files = {"file": (name, io.BytesIO(png_bytes()), "image/png")}

    resp = client.post("/files", data={"file_type": "image"}, files=files)

    assert resp.status_code == 201, resp.text
    assert resp.json()["original_name"] == name
    assert resp.json()["extension"] == "png"


def test_upload_rejects_half_owner(client):
    files = {"file": ("photo.png", io.BytesIO(png_bytes()), "image/png")}

    resp = client.post("/files", data={"file_type": "image", "owner_type": "user"}, files=files)

    assert resp.status_code == 422


def test_upload_from_url(client):
    resp = client.post("/files/from-url", json={"url": "https://cdn.example.com/doc.pdf", "file_type": "pdf"})

    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["source_type"] == "url"
    assert body["source_url"] == "https://cdn.example.com/doc.pdf"
    assert body["original_name"] == "doc.pdf"


def test_upload_from_url_not_found(client):
    resp = client.post(
        "/files/from-url",
        json={"url": "https://cdn.example.com/missing.pdf", "file_type": "pdf"},
        headers={"X-Correlation-ID": "req-1"},
    )

    assert resp.status_code == 502
    assert resp.json()["error_code"] == "DOWNLOAD_FAILED"
    assert resp.json()["correlation_id"] == "req-1"


def test_upload_from_url_invalid(client):
    resp = client.post("/files/from-url", json={"url": "ftp://cdn.example.com/doc.pdf"})

    assert resp.status_code == 422
    assert resp.json()["error_code"] == "INVALID_URL"


def test_delete_file(client):
    files = {"file": ("photo.png", io.BytesIO(png_bytes()), "image/png")}
    file_id = client.post("/files", data={"file_type": "image"}, files=files).json()["id"]

    assert client.delete(f"/files/{file_id}").status_code == 204
    assert client.get(f"/files/{file_id}").status_code == 404
    assert client.delete(f"/files/{file_id}").status_code == 404


def test_file_type_config(client):
    resp = client.get("/file-types/image")
    assert resp.status_code == 200
    body = resp.json()
    assert body["mimes"] == ["jpg", "jpeg", "png", "gif"]
    assert body["max_size"] == 5120
    assert body["mime_types"] == ["image/gif", "image/jpeg", "image/png"]

    assert client.get("/file-types/nonexistent").status_code == 404
