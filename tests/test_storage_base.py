import io

import pytest

from saveany.enums import StorageType
from saveany.storage.base import (
    Storage,
    StorageConfig,
    StorageError,
    StorageNameEmptyError,
    current_storage,
    use_storage,
)


class MemoryStorage(Storage):
    kind = StorageType.LOCAL

    def __init__(self, config, existing=()):
        super().__init__(config)
        self.files = {path: b"" for path in existing}

    def save(self, reader, storage_path, content_length=None):
        target = self.unique_path(storage_path)
        self.files[target] = reader.read()
        return target

    def exists(self, storage_path):
        return storage_path in self.files


class AlwaysTaken(MemoryStorage):
    max_unique_attempts = 3

    def exists(self, storage_path):
        return True


def make(existing=(), base_path="", cls=MemoryStorage):
    return cls(StorageConfig(name="mem", type=StorageType.LOCAL, base_path=base_path), existing)


def test_config_parses_type_from_string():
    config = StorageConfig(name="dav", type="WebDAV")
    assert config.type is StorageType.WEBDAV


def test_config_rejects_unknown_type():
    with pytest.raises(ValueError):
        StorageConfig(name="x", type="floppy")


def test_config_get_option_default():
    config = StorageConfig(name="x", type="local", options={"url": "http://example.com"})
    assert config.get("url") == "http://example.com"
    assert config.get("missing", 7) == 7


def test_empty_name_rejected():
    with pytest.raises(StorageNameEmptyError, match="storage name is empty"):
        MemoryStorage(StorageConfig(name="", type=StorageType.LOCAL))


def test_wrong_type_rejected():
    with pytest.raises(StorageError):
        MemoryStorage(StorageConfig(name="x", type=StorageType.WEBDAV))


def test_name_and_type():
    storage = make()
    assert storage.name() == "mem"
    assert storage.storage_type() is StorageType.LOCAL


def test_unique_path_free():
    assert make().unique_path("a/b.txt") == "a/b.txt"


def test_unique_path_numbers_in_order():
    assert make(["a/b.txt"]).unique_path("a/b.txt") == "a/b_1.txt"
    assert make(["a/b.txt", "a/b_1.txt"]).unique_path("a/b.txt") == "a/b_2.txt"


def test_unique_path_without_extension_keeps_directory_dots():
    storage = make(["v1.0/readme"])
    result = storage.unique_path("v1.0/readme")
    assert result.startswith("v1.0/readme_")
    assert not storage.exists(result)


def test_unique_path_gives_up_after_limit():
    storage = make(cls=AlwaysTaken)
    result = storage.unique_path("a/b.txt")
    assert result.startswith("a/b_")
    assert result.endswith(".txt")
    assert result not in {f"a/b_{i}.txt" for i in range(1, 5)}


def test_save_twice_keeps_both():
    storage = make()
    first = storage.save(io.BytesIO(b"one"), "x/f.bin")
    second = storage.save(io.BytesIO(b"two"), "x/f.bin")
    assert first != second
    assert storage.files[first] == b"one"
    assert storage.files[second] == b"two"


def test_join_storage_path_cleans():
    storage = make(base_path="/data")
    assert storage.join_storage_path("x/../y.txt") == "/data/y.txt"


def test_use_storage_sets_and_restores():
    outer = make()
    inner = make()
    assert current_storage() is None
    with use_storage(outer) as got:
        assert got is outer
        assert current_storage() is outer
        with use_storage(inner):
            assert current_storage() is inner
        assert current_storage() is outer
        with use_storage(None):
            assert current_storage() is outer
    assert current_storage() is None