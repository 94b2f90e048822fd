import io

import pytest

from saveany.enums import StorageType
from saveany.storage.base import StorageConfig, StorageError
from saveany.storage.local import LocalStorage


def make(tmp_path):
    return LocalStorage(StorageConfig(name="disk", type="local", base_path=str(tmp_path / "base")))


def test_init_creates_base_directory(tmp_path):
    storage = make(tmp_path)
    assert (tmp_path / "base").is_dir()
    assert storage.name() == "disk"
    assert storage.storage_type() == StorageType.LOCAL


def test_base_path_required(tmp_path):
    with pytest.raises(StorageError):
        LocalStorage(StorageConfig(name="disk", type="local"))


def test_wrong_type_rejected(tmp_path):
    with pytest.raises(StorageError):
        LocalStorage(
            StorageConfig(name="disk", type="webdav", base_path=str(tmp_path / "base"))
        )


def test_join_storage_path(tmp_path):
    storage = make(tmp_path)
    assert storage.join_storage_path("a/b.txt") == str(tmp_path / "base" / "a" / "b.txt")
    assert storage.join_storage_path("/a/b.txt") == str(tmp_path / "base" / "a" / "b.txt")
    assert storage.join_storage_path("") == str(tmp_path / "base")


def test_save_from_file_object(tmp_path):
    storage = make(tmp_path)
    path = storage.join_storage_path("dir/doc.txt")
    written = storage.save(io.BytesIO(b"hello"), path)
    assert written == path
    assert (tmp_path / "base" / "dir" / "doc.txt").read_bytes() == b"hello"
    assert storage.exists(path) is True


def test_save_twice_picks_unique_name(tmp_path):
    storage = make(tmp_path)
    path = storage.join_storage_path("doc.txt")
    storage.save(b"one", path)
    second = storage.save(b"two", path)
    assert second == storage.join_storage_path("doc_1.txt")
    assert (tmp_path / "base" / "doc.txt").read_bytes() == b"one"
    assert (tmp_path / "base" / "doc_1.txt").read_bytes() == b"two"


def test_save_from_chunks(tmp_path):
    storage = make(tmp_path)
    path = storage.join_storage_path("chunks.bin")
    storage.save(iter([b"ab", b"cd"]), path)
    assert (tmp_path / "base" / "chunks.bin").read_bytes() == b"abcd"


def test_exists_false_for_missing(tmp_path):
    storage = make(tmp_path)
    assert storage.exists(storage.join_storage_path("missing.txt")) is False