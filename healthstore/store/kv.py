"""Durable key-value stores backing the local caches.

A store maps string keys to opaque bytes with synchronous get/set/remove.
``FileKeyValueStore`` keeps one file per key and replaces it atomically
(temp file + ``os.replace``), so a failed write never leaves a half-written
value behind. ``lock(key)`` serializes read-modify-write cycles on a key
across threads and, for the file store, across processes via filelock.
"""

import logging
import os
import re
import tempfile
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, Optional

from filelock import FileLock

logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class StoreError(Exception):
    """Raised when the underlying storage cannot be read or written."""

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(f"{message} (key: {key})")


class KeyValueStore(ABC):
    """Abstract process-wide key to bytes mapping."""

    def __init__(self):
        self._key_locks: Dict[str, threading.RLock] = {}
        self._registry_lock = threading.Lock()

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """Return the stored bytes, or None if the key is absent."""

    @abstractmethod
    def set(self, key: str, data: bytes) -> None:
        """Store bytes under a key, replacing any prior value atomically."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Remove a key. Removing an absent key is not an error."""

    def contains(self, key: str) -> bool:
        return self.get(key) is not None

    def _thread_lock(self, key: str) -> threading.RLock:
        with self._registry_lock:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._key_locks[key] = lock
            return lock

    @contextmanager
    def lock(self, key: str) -> Iterator[None]:
        """Hold the serializing lock for a key."""
        with self._thread_lock(key):
            yield


class MemoryKeyValueStore(KeyValueStore):
    """In-process store. Data lives as long as the instance."""

    def __init__(self):
        super().__init__()
        self._data: Dict[str, bytes] = {}

    def get(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    def set(self, key: str, data: bytes) -> None:
        self._data[key] = bytes(data)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def contains(self, key: str) -> bool:
        return key in self._data


class FileKeyValueStore(KeyValueStore):
    """File-backed store, one ``<key>.json`` file per key.

    Stores data in ~/.healthstore/data by default. Once a write fails with
    an OS error the store marks itself read-only and rejects further writes.
    """

    def __init__(self, data_dir: Optional[Path] = None, lock_timeout: float = 10.0):
        """Initialize the file store.

        Args:
            data_dir: Directory holding one file per key. Defaults to ~/.healthstore/data
            lock_timeout: Seconds to wait for the inter-process lock on a key.
        """
        super().__init__()
        self.data_dir = Path(data_dir) if data_dir else self._get_default_data_dir()
        self.lock_timeout = lock_timeout
        self._file_locks: Dict[str, FileLock] = {}
        self._writable = True

        self._ensure_directory()

    @staticmethod
    def _get_default_data_dir() -> Path:
        """Get the default data directory path."""
        return Path.home() / ".healthstore" / "data"

    @property
    def writable(self) -> bool:
        return self._writable

    def _ensure_directory(self) -> None:
        """Create the data directory if it doesn't exist."""
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(f"Cannot create data directory {self.data_dir}: {e}")
            self._writable = False

    def path_for(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise ValueError(f"Invalid store key: {key!r}")
        return self.data_dir / f"{key}.json"

    def get(self, key: str) -> Optional[bytes]:
        path = self.path_for(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StoreError(key, f"Cannot read {path}: {e}") from e

    def contains(self, key: str) -> bool:
        return self.path_for(key).exists()

    def set(self, key: str, data: bytes) -> None:
        if not self._writable:
            raise StoreError(key, "Store is not writable")

        path = self.path_for(key)
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=self.data_dir, prefix=f".{key}.", suffix=".tmp"
            )
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as e:
            self._writable = False
            raise StoreError(key, f"Cannot write {path}: {e}") from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.debug(f"Could not remove temp file {tmp_name}")

    def remove(self, key: str) -> None:
        path = self.path_for(key)
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StoreError(key, f"Cannot remove {path}: {e}") from e

    def _file_lock(self, key: str) -> FileLock:
        with self._registry_lock:
            lock = self._file_locks.get(key)
            if lock is None:
                lock_path = self.data_dir / f"{key}.lock"
                lock = FileLock(str(lock_path), timeout=self.lock_timeout)
                self._file_locks[key] = lock
            return lock

    @contextmanager
    def lock(self, key: str) -> Iterator[None]:
        """Hold the thread lock and the inter-process file lock for a key."""
        self.path_for(key)
        with self._thread_lock(key):
            with self._file_lock(key):
                yield
