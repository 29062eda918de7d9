"""Filesystem blob storage with JSON metadata sidecars."""

from __future__ import annotations

from dataclasses import dataclass, field
import json
import logging
import os
from pathlib import Path
import re
import threading
from typing import Any

logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,127}$")
_DATA_SUFFIX = ".bin"
_METADATA_SUFFIX = ".meta.json"


@dataclass(frozen=True)
class StoredBlob:
    key: str
    data: bytes
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BlobEntry:
    key: str
    metadata: dict[str, Any] = field(default_factory=dict)


def is_valid_key(key: str) -> bool:
    return bool(_KEY_PATTERN.match(key or ""))


class FileBlobStore:
    """Key/value blob store rooted at a directory.

    Each key maps to ``<key>.bin`` plus ``<key>.meta.json``. Writes go through
    a temporary file so readers never observe a partial blob.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def set(self, key: str, data: bytes, metadata: dict[str, Any] | None = None) -> None:
        if not is_valid_key(key):
            raise ValueError(f"Invalid blob key: {key!r}")
        with self._lock:
            _atomic_write(self._data_path(key), data)
            _atomic_write(
                self._metadata_path(key),
                json.dumps(metadata or {}, separators=(",", ":")).encode("utf-8"),
            )

    def get(self, key: str) -> bytes | None:
        stored = self.get_with_metadata(key)
        return stored.data if stored is not None else None

    def get_with_metadata(self, key: str) -> StoredBlob | None:
        if not is_valid_key(key):
            return None
        try:
            data = self._data_path(key).read_bytes()
        except FileNotFoundError:
            return None
        return StoredBlob(key=key, data=data, metadata=self._read_metadata(key))

    def get_metadata(self, key: str) -> dict[str, Any] | None:
        if not is_valid_key(key) or not self._data_path(key).exists():
            return None
        return self._read_metadata(key)

    def exists(self, key: str) -> bool:
        return is_valid_key(key) and self._data_path(key).exists()

    def delete(self, key: str) -> bool:
        """Remove a blob. Returns False when the key was not stored."""
        if not is_valid_key(key):
            return False
        with self._lock:
            data_path = self._data_path(key)
            if not data_path.exists():
                return False
            data_path.unlink()
            self._metadata_path(key).unlink(missing_ok=True)
        return True

    def list_entries(self) -> list[BlobEntry]:
        entries: list[BlobEntry] = []
        for data_path in sorted(self.root.glob(f"*{_DATA_SUFFIX}")):
            key = data_path.name[: -len(_DATA_SUFFIX)]
            if is_valid_key(key):
                entries.append(BlobEntry(key=key, metadata=self._read_metadata(key)))
        return entries

    def _read_metadata(self, key: str) -> dict[str, Any]:
        try:
            payload = json.loads(self._metadata_path(key).read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable metadata for blob %s", key)
            return {}
        return payload if isinstance(payload, dict) else {}

    def _data_path(self, key: str) -> Path:
        return self.root / f"{key}{_DATA_SUFFIX}"

    def _metadata_path(self, key: str) -> Path:
        return self.root / f"{key}{_METADATA_SUFFIX}"


def _atomic_write(path: Path, data: bytes) -> None:
    temp_path = path.with_name(f".{path.name}.{os.getpid()}.{threading.get_ident()}.tmp")
    temp_path.write_bytes(data)
    os.replace(temp_path, path)
