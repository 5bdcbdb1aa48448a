"""Tests for the filesystem document area."""

import hashlib
import os
import time

import pytest

from shelby.domain.errors import DocumentFileMissing, StorageIoError, ValidationError
from shelby.storage.documents import TEMP_DIRNAME, DocumentStore


def test_put_and_get(document_store):
    """Test storing a payload and reading it back."""
    handle = document_store.put(b"%PDF-1.7 invoice", "invoice.pdf", "application/pdf")

    assert handle.filename == "invoice.pdf"
    assert handle.mime_type == "application/pdf"
    assert handle.size == 16
    assert handle.checksum == hashlib.sha256(b"%PDF-1.7 invoice").hexdigest()
    assert document_store.get(handle) == b"%PDF-1.7 invoice"
    assert document_store.get(handle.storage_key) == b"%PDF-1.7 invoice"


def test_put_shards_by_key_prefix(document_store):
    """Test that files land in a two-character shard directory."""
    handle = document_store.put(b"data", "a.txt")

    path = document_store.path_for(handle.storage_key)
    assert path.parent.name == handle.storage_key[:2]
    assert path.is_file()


def test_put_defaults_mime_type(document_store):
    handle = document_store.put(b"data", "blob")
    assert handle.mime_type == "application/octet-stream"


def test_put_same_payload_twice_gives_distinct_keys(document_store):
    """Test that equal payloads never share or overwrite a file."""
    first = document_store.put(b"same", "a.txt")
    second = document_store.put(b"same", "a.txt")

    assert first.storage_key != second.storage_key
    document_store.remove(first)
    assert document_store.get(second) == b"same"


def test_put_leaves_no_temporaries(document_store):
    document_store.put(b"data", "a.txt")
    assert list((document_store.root / TEMP_DIRNAME).iterdir()) == []


def test_put_rejects_empty_filename(document_store):
    with pytest.raises(ValidationError):
        document_store.put(b"data", "  ")


def test_put_rejects_non_bytes(document_store):
    with pytest.raises(ValidationError):
        document_store.put("text", "a.txt")


def test_put_retries_colliding_key(document_store, monkeypatch):
    """Test that an existing final path is never replaced."""
    existing = document_store.put(b"first", "a.txt")
    keys = iter([existing.storage_key, "b" * 32])

    class FakeUUID:
        def __init__(self, value):
            self.hex = value

    monkeypatch.setattr(
        "shelby.storage.documents.uuid.uuid4", lambda: FakeUUID(next(keys))
    )
    handle = document_store.put(b"second", "b.txt")

    assert handle.storage_key == "b" * 32
    assert document_store.get(existing) == b"first"
    assert document_store.get(handle) == b"second"


def test_get_missing_file(document_store):
    with pytest.raises(DocumentFileMissing):
        document_store.get("0" * 32)


def test_get_missing_file_is_storage_error(document_store):
    with pytest.raises(StorageIoError):
        document_store.get("0" * 32)


def test_invalid_key_rejected(document_store):
    """Test that keys cannot escape the document area."""
    with pytest.raises(ValidationError):
        document_store.get("../shelby.db")


def test_remove_is_idempotent(document_store):
    handle = document_store.put(b"data", "a.txt")

    document_store.remove(handle)
    document_store.remove(handle)

    assert not document_store.exists(handle)


def test_iter_keys_skips_temporaries(document_store):
    first = document_store.put(b"one", "1.txt")
    second = document_store.put(b"two", "2.txt")
    (document_store.root / TEMP_DIRNAME / "upload-leftover").write_bytes(b"partial")

    assert set(document_store.iter_keys()) == {first.storage_key, second.storage_key}


def test_purge_stale_temporaries(document_store):
    """Test that only old temporaries are purged."""
    temp_dir = document_store.root / TEMP_DIRNAME
    old = temp_dir / "upload-old"
    fresh = temp_dir / "upload-fresh"
    old.write_bytes(b"old")
    fresh.write_bytes(b"fresh")
    an_hour_ago = time.time() - 3600
    os.utime(old, (an_hour_ago, an_hour_ago))

    assert document_store.purge_stale_temporaries(60) == 1
    assert not old.exists()
    assert fresh.exists()


def test_open_creates_area(tmp_path):
    store = DocumentStore(tmp_path / "documents")
    store.open()
    assert (tmp_path / "documents" / TEMP_DIRNAME).is_dir()
