"""Pytest fixtures for the postcard inbox.

Provides reusable test fixtures for:
- File-system entry stores rooted in tmp_path
- Minimal valid file payloads (PDF, PNG, JPEG, GIF, WebP)
- Submitter fields and uploaded-file factories
- A TestClient wired to a tmp_path store with admin credentials

Usage:
    async def test_store(store, sample_fields, make_pdf_upload):
        entry = await store.create(sample_fields, True, make_pdf_upload(), [], received_at)
"""

import asyncio
import os
import sys
from datetime import datetime, timezone
from pathlib import Path

# Set environment variables BEFORE any imports to ensure they take effect
os.environ.setdefault("ADMIN_USER", "reviewer")
os.environ.setdefault("ADMIN_PASS", "test-admin-password")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient

backend_src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(backend_src))

from postcards.config import Settings, get_settings
from postcards.dependencies import get_entry_store
from postcards.domain.entries.models import EntryFields, UploadedFile
from postcards.infrastructure.storage.filesystem_entry_store import FilesystemEntryStore


ADMIN_AUTH = ("reviewer", "test-admin-password")

RECEIVED_AT = datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)

PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\ntrailer\n<< /Root 1 0 R >>\n%%EOF\n"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00\x00\x00\rIHDR" + b"\x00" * 17
JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00" + b"\x00" * 16 + b"\xff\xd9"


@pytest.fixture
def pdf_bytes() -> bytes:
    return PDF_BYTES


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES


@pytest.fixture
def jpeg_bytes() -> bytes:
    return JPEG_BYTES


@pytest.fixture
def received_at() -> datetime:
    return RECEIVED_AT


@pytest.fixture
def store_root(tmp_path) -> Path:
    root = tmp_path / "uploads"
    root.mkdir()
    return root


@pytest.fixture
def store(store_root) -> FilesystemEntryStore:
    """Entry store without index, rooted in a fresh directory"""
    return FilesystemEntryStore(store_root)


@pytest.fixture
def sample_fields() -> EntryFields:
    return EntryFields(
        full_name="Ada Lovelace",
        email="ada@example.org",
        faculty="Informatik/Mathematik",
        location="Lund, Sweden",
        term="WS 2024/25",
        message="Greetings from the north!",
    )


@pytest.fixture
def make_pdf_upload():
    def _make(name: str = "Karte.pdf", content: bytes = PDF_BYTES, mime_type: str = "application/pdf"):
        return UploadedFile(original_name=name, content=content, mime_type=mime_type)
    return _make


@pytest.fixture
def make_image_upload():
    def _make(name: str = "foto.jpg", content: bytes = JPEG_BYTES, mime_type: str = "image/jpeg"):
        return UploadedFile(original_name=name, content=content, mime_type=mime_type)
    return _make


@pytest.fixture
def test_settings(store_root) -> Settings:
    return Settings(
        UPLOAD_DIR=str(store_root),
        ADMIN_USER=ADMIN_AUTH[0],
        ADMIN_PASS=ADMIN_AUTH[1],
        LOG_JSON=False,
    )


@pytest.fixture
def client(store, test_settings):
    """TestClient whose dependencies point at the tmp_path store"""
    from postcards.main import app

    app.dependency_overrides[get_entry_store] = lambda: store
    app.dependency_overrides[get_settings] = lambda: test_settings
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def admin_client(client):
    """TestClient sending valid admin credentials with every request"""
    client.auth = ADMIN_AUTH
    return client


@pytest.fixture
def form_data():
    """Builder for valid text fields of the submission form"""
    def _build(**overrides) -> dict:
        data = {
            "fullName": "Ada Lovelace",
            "email": "Ada@Example.org",
            "faculty": "Informatik/Mathematik",
            "location": "Lund, Sweden",
            "term": "WS 2024/25",
            "message": "Greetings from the north!",
            "agree": "true",
        }
        data.update(overrides)
        return {key: value for key, value in data.items() if value is not None}
    return _build


@pytest.fixture
def seed_entry(store, sample_fields, make_pdf_upload, make_image_upload):
    """Create an entry synchronously, optionally moving it to a status"""
    def _seed(received_at=RECEIVED_AT, status=None, images=1, fields=None, ref=None):
        async def _create():
            entry = await store.create(
                fields=fields or sample_fields,
                consent=True,
                postcard=make_pdf_upload(),
                images=[make_image_upload() for _ in range(images)],
                received_at=received_at,
                ref=ref,
            )
            if status is not None:
                entry = await store.update_status(entry.ref, status)
            return entry
        return asyncio.run(_create())
    return _seed
