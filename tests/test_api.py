import json
import os
import time
from datetime import datetime
from io import BytesIO

import pytest
from fastapi.testclient import TestClient
from pypdf import PdfReader

from conftest import blank_pdf, image_bytes, list_files, page_sizes
from pdf_merger.api.merge import get_pipeline
from pdf_merger.core.config import Settings
from pdf_merger.main import app
from pdf_merger.services.merge_pipeline import MergePipeline
from pdf_merger.storage.local import EphemeralStorage


@pytest.fixture
def client(pipeline):
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    yield TestClient(app)
    app.dependency_overrides.clear()


def _wait_until_empty(directory, timeout=5.0):
    deadline = time.monotonic() + timeout
    while list_files(directory) and time.monotonic() < deadline:
        time.sleep(0.02)
    return list_files(directory)


def test_health_reports_status_and_timestamp(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert datetime.fromisoformat(body["timestamp"].replace("Z", "+00:00"))


def test_merge_returns_pdf_in_requested_order(client, settings):
    files = [
        ("files", ("first.pdf", blank_pdf((100, 100), (110, 110)), "application/pdf")),
        ("files", ("photo.png", image_bytes((200, 100)), "image/png")),
    ]
    data = {"file_ids": json.dumps(["f1", "f2"]), "order": json.dumps(["f2", "f1"])}

    response = client.post("/api/merge", files=files, data=data)

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert "merged-invoice.pdf" in response.headers["content-disposition"]
    reader = PdfReader(BytesIO(response.content))
    assert page_sizes(reader.pages) == [(200, 100), (100, 100), (110, 110)]
    assert list_files(settings.temp_dir) == []
    assert _wait_until_empty(settings.outputs_dir) == []


def test_merge_without_files_is_a_validation_error(client):
    response = client.post("/api/merge", data={"order": "[]"})

    assert response.status_code == 400
    assert response.json() == {"error": "No files uploaded"}


def test_unsupported_type_is_rejected(client, settings):
    files = [("files", ("notes.txt", b"hello", "text/plain"))]

    response = client.post("/api/merge", files=files)

    assert response.status_code == 400
    assert response.json()["filename"] == "notes.txt"
    assert list_files(settings.temp_dir) == []


def test_corrupt_file_is_named_in_error(client, settings):
    files = [
        ("files", ("good.pdf", blank_pdf((100, 100)), "application/pdf")),
        ("files", ("broken.pdf", b"%PDF-1.4\nnope", "application/pdf")),
    ]

    response = client.post("/api/merge", files=files)

    assert response.status_code == 422
    assert response.json() == {"error": "Failed to process broken.pdf", "filename": "broken.pdf"}
    assert list_files(settings.temp_dir) == []
    assert list_files(settings.outputs_dir) == []


def test_oversize_upload_is_rejected_with_filename(tmp_path):
    settings = Settings(storage_dir=tmp_path / "store", max_file_size_mb=1)
    settings.configure_paths()
    small_limit = MergePipeline(EphemeralStorage(settings.temp_dir), settings=settings)
    app.dependency_overrides[get_pipeline] = lambda: small_limit
    try:
        files = [("files", ("huge.pdf", b"0" * (settings.max_file_size_bytes + 10), "application/pdf"))]
        response = TestClient(app).post("/api/merge", files=files)
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 400
    assert response.json()["filename"] == "huge.pdf"
    assert list_files(settings.temp_dir) == []


def test_startup_sweeps_outputs_older_than_retention_window():
    pipeline = get_pipeline()
    stale = pipeline.output_storage.put(b"old", suffix=".pdf", name="merged-stale")
    fresh = pipeline.output_storage.put(b"new", suffix=".pdf", name="merged-fresh")
    five_minutes_ago = time.time() - 300
    os.utime(stale, (five_minutes_ago, five_minutes_ago))
    assert pipeline.settings.stale_after_seconds < 300

    with TestClient(app) as started:
        assert started.get("/api/health").status_code == 200

    assert not stale.exists()
    assert fresh.exists()
    pipeline.output_storage.remove(fresh)
