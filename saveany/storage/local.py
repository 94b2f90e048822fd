"""Storage backend that writes into a directory on the local file system."""

from __future__ import annotations

import logging
import os
import shutil
from typing import Any

from ..enums import StorageType
from .base import Storage, StorageConfig, StorageError

__all__ = ["LocalStorage"]

_log = logging.getLogger(__name__)


class LocalStorage(Storage):
    """Stores files under the configured ``base_path`` directory."""

    kind = StorageType.LOCAL

    def __init__(self, config: StorageConfig) -> None:
        super().__init__(config)
        if not config.base_path:
            raise StorageError("local base_path is required")
        try:
            os.makedirs(config.base_path, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"failed to create local storage directory: {exc}") from exc

    def join_storage_path(self, path: str) -> str:
        relative = path.lstrip("/" + os.sep)
        if not relative:
            return os.path.normpath(self.config.base_path)
        return os.path.normpath(os.path.join(self.config.base_path, relative))

    def save(self, reader: Any, storage_path: str, content_length: int | None = None) -> str:
        _log.info("local[%s]: saving file to %s", self.name(), storage_path)
        candidate = self.unique_path(storage_path)
        abs_path = os.path.abspath(candidate)
        os.makedirs(os.path.dirname(abs_path), exist_ok=True)
        with open(abs_path, "wb") as out:
            if isinstance(reader, (bytes, bytearray)):
                out.write(reader)
            elif isinstance(reader, str):
                out.write(reader.encode())
            elif hasattr(reader, "read"):
                shutil.copyfileobj(reader, out)
            else:
                for chunk in reader:
                    out.write(chunk)
        return candidate

    def exists(self, storage_path: str) -> bool:
        return os.path.exists(os.path.abspath(storage_path))