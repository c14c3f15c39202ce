"""Unit tests for blob stores."""

import builtins

import pytest

from patient_case_service.infrastructure.storage import blob_store as blob_store_module
from patient_case_service.infrastructure.storage import (
    BlobStoreException,
    InMemoryBlobStore,
    LocalBlobStore,
    generate_storage_key,
    is_valid_storage_key,
)


@pytest.fixture(params=["local", "inmemory"])
def store(request, tmp_path):
    if request.param == "local":
        return LocalBlobStore(str(tmp_path / "uploads"))
    return InMemoryBlobStore()


@pytest.mark.unit
class TestBlobStore:
    """Behavior shared by every BlobStore implementation"""

    def test_put_then_exists_and_open(self, store):
        key = store.put(b"hello", "report.pdf")

        assert store.exists(key)
        assert store.open(key) == b"hello"

    def test_put_generates_distinct_keys(self, store):
        keys = {store.put(b"x", "same.png") for _ in range(20)}

        assert len(keys) == 20

    def test_delete_removes_blob(self, store):
        key = store.put(b"hello", "report.pdf")

        assert store.delete(key) is True
        assert not store.exists(key)

    def test_delete_missing_key_is_noop(self, store):
        assert store.delete("1700000000000-deadbeef.pdf") is False

    def test_open_missing_key_raises(self, store):
        with pytest.raises(FileNotFoundError):
            store.open("1700000000000-deadbeef.pdf")


@pytest.mark.unit
class TestLocalBlobStore:
    """Local disk specifics"""

    def test_creates_upload_directory(self, tmp_path):
        root = tmp_path / "a" / "b"

        LocalBlobStore(str(root))

        assert root.is_dir()

    def test_blob_written_inside_root(self, tmp_path):
        store = LocalBlobStore(str(tmp_path))

        key = store.put(b"data", "scan.dcm")

        assert (tmp_path / key).read_bytes() == b"data"

    @pytest.mark.parametrize("key", ["../secret.txt", "a/b.pdf", "", ".hidden", "..\\x"])
    def test_path_like_keys_are_treated_as_absent(self, tmp_path, key):
        (tmp_path / "secret.txt").write_text("keep me")
        store = LocalBlobStore(str(tmp_path / "uploads"))

        assert store.exists(key) is False
        assert store.delete(key) is False
        assert (tmp_path / "secret.txt").exists()

    def test_failed_write_leaves_no_partial_file(self, tmp_path, monkeypatch):
        root = tmp_path / "uploads"
        store = LocalBlobStore(str(root))

        class DiskFullFile:
            def __init__(self, f):
                self._f = f

            def __enter__(self):
                return self

            def __exit__(self, *exc_info):
                self._f.close()
                return False

            def write(self, data):
                self._f.write(data[:3])
                self._f.flush()
                raise OSError(28, "No space left on device")

        monkeypatch.setattr(
            blob_store_module,
            "open",
            lambda path, mode: DiskFullFile(builtins.open(path, mode)),
            raising=False,
        )

        with pytest.raises(BlobStoreException):
            store.put(b"%PDF-1.4 scan", "ct.pdf")

        assert list(root.iterdir()) == []

    def test_existing_blob_is_never_overwritten(self, tmp_path, monkeypatch):
        store = LocalBlobStore(str(tmp_path))
        (tmp_path / "1700000000000-taken.pdf").write_bytes(b"original")
        monkeypatch.setattr(
            blob_store_module, "generate_storage_key", lambda name: "1700000000000-taken.pdf"
        )

        with pytest.raises(BlobStoreException):
            store.put(b"replacement", "ct.pdf")

        assert (tmp_path / "1700000000000-taken.pdf").read_bytes() == b"original"


@pytest.mark.unit
class TestStorageKeys:
    """Test storage key generation"""

    def test_key_keeps_extension(self):
        assert generate_storage_key("CT Scan.PDF").endswith(".pdf")

    def test_key_drops_unsafe_extension(self):
        key = generate_storage_key("evil.p/df")

        assert "/" not in key
        assert is_valid_storage_key(key)

    def test_key_without_extension(self):
        key = generate_storage_key("README")

        assert "." not in key
        assert is_valid_storage_key(key)
