"""
Unit tests for Showcase key-value storage backends.
"""

import json
import pytest
from unittest.mock import MagicMock

from service_showcase.app.config import ShowcaseConfig
from service_showcase.app.storage import (
    MemoryStorage, FileStorage, RedisStorage, create_storage
)
from shared.errors import ConfigurationError


class TestMemoryStorage:
    """Test cases for MemoryStorage."""

    def test_get_set_remove(self):
        """Test basic operations."""
        storage = MemoryStorage()

        assert storage.get("k") is None
        storage.set("k", "v")
        assert storage.get("k") == "v"
        storage.remove("k")
        assert storage.get("k") is None

    def test_remove_missing_key(self):
        """Test removing a missing key is a no-op."""
        storage = MemoryStorage({"a": "1"})
        storage.remove("missing")
        assert storage.keys() == ["a"]


class TestFileStorage:
    """Test cases for FileStorage."""

    def test_persists_across_instances(self, tmp_path):
        """Test values survive a new instance on the same file."""
        path = tmp_path / "cache" / "storage.json"

        FileStorage(path).set("showcase:projects_cache", "[]")

        assert FileStorage(path).get("showcase:projects_cache") == "[]"
        assert json.loads(path.read_text()) == {"showcase:projects_cache": "[]"}

    def test_remove(self, tmp_path):
        """Test removal is persisted."""
        path = tmp_path / "storage.json"
        storage = FileStorage(path)
        storage.set("a", "1")
        storage.set("b", "2")
        storage.remove("a")

        assert FileStorage(path).get("a") is None
        assert FileStorage(path).get("b") == "2"

    def test_corrupt_file_starts_empty(self, tmp_path):
        """Test an unreadable file is treated as empty and replaced on write."""
        path = tmp_path / "storage.json"
        path.write_text("{{{")

        storage = FileStorage(path)
        assert storage.get("a") is None

        storage.set("a", "1")
        assert json.loads(path.read_text()) == {"a": "1"}

    def test_non_object_file_starts_empty(self, tmp_path):
        """Test a JSON document that is not an object is ignored."""
        path = tmp_path / "storage.json"
        path.write_text("[1, 2, 3]")

        assert FileStorage(path).get("a") is None

    def test_no_temp_files_left_behind(self, tmp_path):
        """Test atomic writes clean up after themselves."""
        path = tmp_path / "storage.json"
        FileStorage(path).set("a", "1")

        assert [p.name for p in tmp_path.iterdir()] == ["storage.json"]


class TestRedisStorage:
    """Test cases for RedisStorage."""

    @pytest.fixture
    def mock_redis(self):
        """Mock synchronous Redis client."""
        return MagicMock()

    def test_get(self, mock_redis):
        """Test get passes through and decodes bytes."""
        mock_redis.get.return_value = b"[1]"
        storage = RedisStorage(client=mock_redis)

        assert storage.get("k") == "[1]"
        mock_redis.get.assert_called_once_with("k")

    def test_set_and_remove(self, mock_redis):
        """Test set and remove map onto SET and DEL."""
        storage = RedisStorage(client=mock_redis)

        storage.set("k", "v")
        storage.remove("k")

        mock_redis.set.assert_called_once_with("k", "v")
        mock_redis.delete.assert_called_once_with("k")

    def test_requires_url_or_client(self):
        """Test construction without a target fails."""
        with pytest.raises(ConfigurationError):
            RedisStorage()


class TestCreateStorage:
    """Test cases for create_storage."""

    def test_memory(self):
        """Test memory backend selection."""
        assert isinstance(create_storage(ShowcaseConfig(storage_backend="memory")), MemoryStorage)

    def test_file(self, tmp_path):
        """Test file backend selection."""
        config = ShowcaseConfig(storage_backend="file", storage_path=str(tmp_path / "s.json"))
        storage = create_storage(config)

        assert isinstance(storage, FileStorage)
        assert storage.path == tmp_path / "s.json"

    def test_redis(self):
        """Test redis backend selection (no connection is made until first use)."""
        config = ShowcaseConfig(storage_backend="redis", redis_url="redis://localhost:6379/3")
        assert isinstance(create_storage(config), RedisStorage)

    def test_unknown_backend(self):
        """Test unsupported backends are rejected."""
        with pytest.raises(ConfigurationError) as exc_info:
            create_storage(ShowcaseConfig(storage_backend="indexeddb"))

        assert exc_info.value.code == "CONFIGURATION_ERROR"
