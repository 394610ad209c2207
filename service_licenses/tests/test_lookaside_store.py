"""
Unit tests for the lookaside store.
"""

import errno
import os
import pytest
from unittest.mock import patch

import sys
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_licenses.app.storage.lookaside_store import InvalidStorageKeyError, LookasideStore
from service_licenses.app.domain.models import LicenseFound, LicenseNotFound
from shared.errors import StorageError


class TestLookasideStore:
    """Test cases for LookasideStore."""

    @pytest.fixture
    def store_dir(self, tmp_path):
        return tmp_path / "licenses"

    @pytest.fixture
    def store(self, store_dir):
        return LookasideStore(str(store_dir))

    def test_get_missing_returns_not_found(self, store):
        result = store.get("never-stored")
        assert result == LicenseNotFound("never-stored")

    def test_get_before_directory_exists_is_a_miss(self, store, store_dir):
        assert not store_dir.exists()
        assert isinstance(store.get("abc123"), LicenseNotFound)

    def test_put_creates_directory_and_returns_key(self, store, store_dir):
        saved = store.put("abc123", b'{"id":"abc123"}')

        assert saved == "abc123"
        assert store_dir.is_dir()
        assert (store_dir / "abc123.json").read_bytes() == b'{"id":"abc123"}'

    def test_get_returns_exact_bytes(self, store):
        document = '{"id":"abc123","provider":"https://example.com","note":"é"}'.encode("utf-8")
        store.put("abc123", document)

        result = store.get("abc123")

        assert isinstance(result, LicenseFound)
        assert result.body == document

    def test_put_replaces_previous_entry(self, store):
        store.put("abc123", b'{"id":"abc123","v":1}')
        store.put("abc123", b'{"id":"abc123","v":2}')

        assert store.get("abc123").body == b'{"id":"abc123","v":2}'

    def test_put_leaves_no_temporary_files(self, store, store_dir):
        store.put("abc123", b'{"id":"abc123"}')
        store.put("def456", b'{"id":"def456"}')

        assert sorted(p.name for p in store_dir.iterdir()) == ["abc123.json", "def456.json"]

    @pytest.mark.parametrize("license_id", ["", ".", "..", "../escape", "a/b", "a\\b", "nul\x00byte"])
    def test_unsafe_keys(self, store, store_dir, license_id):
        assert LookasideStore.is_valid_key(license_id) is False
        assert isinstance(store.get(license_id), LicenseNotFound)
        with pytest.raises(InvalidStorageKeyError):
            store.put(license_id, b"{}")
        assert not store_dir.exists()

    def test_overlong_id_is_a_miss(self, store, store_dir):
        store_dir.mkdir()
        license_id = "a" * 300

        assert LookasideStore.is_valid_key(license_id) is False
        assert store.get(license_id) == LicenseNotFound(license_id)
        with pytest.raises(InvalidStorageKeyError):
            store.put(license_id, b"{}")
        assert list(store_dir.iterdir()) == []

    def test_longest_allowed_id_round_trips(self, store):
        license_id = "a" * (255 - len(LookasideStore.SUFFIX))

        assert store.put(license_id, b"{}") == license_id
        assert store.get(license_id).body == b"{}"

    def test_name_too_long_from_filesystem_is_a_miss(self, store):
        error = OSError(errno.ENAMETOOLONG, "File name too long")
        with patch("pathlib.Path.read_bytes", side_effect=error):
            assert store.get("abc123") == LicenseNotFound("abc123")

    def test_permission_denied_is_not_a_miss(self, store):
        error = PermissionError(errno.EACCES, "Permission denied")
        with patch("pathlib.Path.read_bytes", side_effect=error):
            with pytest.raises(StorageError):
                store.get("abc123")

    def test_read_error_is_not_a_miss(self, store, store_dir):
        store_dir.mkdir()
        # A directory where the license file should be cannot be read
        (store_dir / "abc123.json").mkdir()

        with pytest.raises(StorageError) as exc_info:
            store.get("abc123")
        assert exc_info.value.status_code == 500

    def test_write_failure_raises_and_keeps_previous_entry(self, store, store_dir):
        store.put("abc123", b'{"id":"abc123","v":1}')

        with patch("service_licenses.app.storage.lookaside_store.os.replace",
                   side_effect=OSError("disk full")):
            with pytest.raises(StorageError) as exc_info:
                store.put("abc123", b'{"id":"abc123","v":2}')

        assert exc_info.value.error == "Failed to store license"
        assert store.get("abc123").body == b'{"id":"abc123","v":1}'
        assert [p.name for p in store_dir.iterdir()] == ["abc123.json"]

    def test_is_writable(self, store, store_dir):
        assert store.is_writable() is False
        store.ensure_directory()
        assert store.is_writable() is True

    def test_path_for(self, store, store_dir):
        assert store.path_for("abc123") == store_dir / "abc123.json"
