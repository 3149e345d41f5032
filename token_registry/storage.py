"""
Token Registry - Entity Storage

This module provides the ordered key -> record stores backing each registry
collection: an in-memory store and a JSON file store with locked, atomic
whole-collection writes. Key and record sizes are bounded; oversize writes
fail instead of being truncated.
"""

import fcntl
import json
import logging
import os
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from threading import RLock
from typing import Any, Dict, Generic, Iterator, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError


# Bounds of the original stable B-tree maps
DEFAULT_MAX_KEY_SIZE = 44
DEFAULT_MAX_VALUE_SIZE = 1024

R = TypeVar("R", bound=BaseModel)


class StorageError(Exception):
    """Base storage exception."""
    pass


class LockTimeoutError(StorageError):
    """Lock acquisition timeout exception."""
    pass


class IntegrityError(StorageError):
    """Persisted data could not be decoded."""
    pass


class KeyTooLongError(StorageError):
    """Key exceeds the store's key size bound."""
    pass


class RecordTooLargeError(StorageError):
    """Encoded record exceeds the store's value size bound."""
    pass


class FileLock:
    """Advisory lock on a sidecar ``.lock`` file.

    Reentrant for the owning thread. Other threads of the process wait on the
    instance's thread lock, other processes on the lock file itself.
    """

    def __init__(self, file_path: Union[str, Path], timeout: float = 30.0):
        self.file_path = Path(file_path)
        self.lock_file_path = self.file_path.with_suffix(self.file_path.suffix + '.lock')
        self.timeout = timeout
        self.lock_fd = None
        self._depth = 0
        self._thread_lock = RLock()

    def acquire(self) -> bool:
        """Acquire file lock with timeout."""
        deadline = time.time() + self.timeout

        if not self._thread_lock.acquire(timeout=self.timeout):
            raise LockTimeoutError(f"Failed to acquire lock within {self.timeout} seconds")

        if self.lock_fd is not None:
            self._depth += 1
            return True

        try:
            while time.time() < deadline:
                try:
                    self.lock_fd = os.open(
                        str(self.lock_file_path),
                        os.O_CREAT | os.O_EXCL | os.O_RDWR
                    )
                except FileExistsError:
                    time.sleep(0.05)
                    continue
                except OSError as e:
                    raise StorageError(f"Failed to acquire lock: {e}")

                try:
                    fcntl.flock(self.lock_fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                    self._depth = 1
                    return True
                except BlockingIOError:
                    self._discard_lock_file()

            raise LockTimeoutError(f"Failed to acquire lock within {self.timeout} seconds")
        except Exception:
            self._thread_lock.release()
            raise

    def release(self) -> None:
        """Release file lock held by the calling thread."""
        if self.lock_fd is None:
            return

        self._depth -= 1
        if self._depth == 0:
            fcntl.flock(self.lock_fd, fcntl.LOCK_UN)
            self._discard_lock_file()

        self._thread_lock.release()

    def is_locked(self) -> bool:
        return self.lock_fd is not None

    def _discard_lock_file(self) -> None:
        try:
            os.close(self.lock_fd)
            os.unlink(self.lock_file_path)
        finally:
            self.lock_fd = None

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()


class JSONStorage:
    """JSON document file with locked reads and atomic replace-on-write."""

    def __init__(self, file_path: Union[str, Path], lock_timeout: float = 30.0):
        self.file_path = Path(file_path)
        self.lock_timeout = lock_timeout
        self._file_lock = FileLock(self.file_path, timeout=lock_timeout)

        self.file_path.parent.mkdir(parents=True, exist_ok=True)

        with self.locked():
            if not self.file_path.exists():
                self._write_file({})

    def _read_file(self) -> Dict[str, Any]:
        try:
            with open(self.file_path, 'rb') as f:
                data = f.read()
        except OSError as e:
            raise StorageError(f"Failed to read storage: {e}")

        if not data:
            return {}

        try:
            return json.loads(data.decode('utf-8'))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise IntegrityError(f"Invalid JSON data in {self.file_path}: {e}")

    def _write_file(self, data: Dict[str, Any]) -> None:
        """Write data to file atomically."""
        json_data = json.dumps(data, indent=2).encode('utf-8')
        temp_file = self.file_path.with_suffix(self.file_path.suffix + '.tmp')

        try:
            with open(temp_file, 'wb') as f:
                f.write(json_data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_file, self.file_path)
        except OSError as e:
            if temp_file.exists():
                temp_file.unlink()
            raise StorageError(f"Failed to write file: {e}")

    @contextmanager
    def locked(self):
        """Hold the file lock across several reads and writes."""
        with self._file_lock:
            yield

    def read(self) -> Dict[str, Any]:
        """Read and deserialize data from storage."""
        with self.locked():
            return self._read_file()

    def write(self, data: Dict[str, Any]) -> None:
        """Replace the stored document atomically."""
        with self.locked():
            self._write_file(data)

    def update(self, updater_func) -> Dict[str, Any]:
        """Update data using a function atomically."""
        with self.locked():
            current_data = self._read_file()
            updated_data = updater_func(current_data)
            self._write_file(updated_data)
            return updated_data

    def signature(self) -> Optional[tuple]:
        """Identity of the current file version; changes on every write."""
        try:
            st = self.file_path.stat()
        except FileNotFoundError:
            return None
        return (st.st_ino, st.st_mtime_ns, st.st_size)

    def exists(self) -> bool:
        return self.file_path.exists()

    def size(self) -> int:
        """Get storage file size in bytes."""
        if not self.file_path.exists():
            return 0
        return self.file_path.stat().st_size


class EntityStore(ABC, Generic[R]):
    """Ordered key -> record mapping with bounded key and record sizes.

    Records are pydantic models. Reads hand out deep copies, so callers
    never hold references into store contents. Enumeration is in ascending
    key order.
    """

    def __init__(
        self,
        model: Type[R],
        max_key_size: int = DEFAULT_MAX_KEY_SIZE,
        max_value_size: int = DEFAULT_MAX_VALUE_SIZE
    ):
        self.model = model
        self.max_key_size = max_key_size
        self.max_value_size = max_value_size
        self.logger = logging.getLogger(__name__)

    def get(self, key: str) -> Optional[R]:
        """Get record by key, or None if absent."""
        encoded = self._load(key)
        if encoded is None:
            return None
        return self._decode(encoded)

    def put(self, key: str, record: R) -> None:
        """Insert or replace the record stored under key."""
        self._check_key(key)
        encoded = self._encode(record)
        self._store(key, encoded)

    def remove(self, key: str) -> Optional[R]:
        """Remove record by key and return it; absent keys are a no-op."""
        encoded = self._discard(key)
        if encoded is None:
            return None
        return self._decode(encoded)

    def values(self) -> List[R]:
        """All live records in key order."""
        return [self._decode(encoded) for _, encoded in self._items()]

    def keys(self) -> List[str]:
        return [key for key, _ in self._items()]

    def __len__(self) -> int:
        return len(self.keys())

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self._load(key) is not None

    def __iter__(self) -> Iterator[R]:
        return iter(self.values())

    @contextmanager
    def transaction(self):
        """Keep other writers out while a check-then-write sequence runs."""
        yield

    def _check_key(self, key: str) -> None:
        if not isinstance(key, str) or not key:
            raise StorageError("Store keys must be non-empty strings")
        size = len(key.encode('utf-8'))
        if size > self.max_key_size:
            raise KeyTooLongError(
                f"Key of {size} bytes exceeds maximum key size of {self.max_key_size} bytes"
            )

    def _encode(self, record: R) -> Dict[str, Any]:
        if not isinstance(record, self.model):
            raise StorageError(
                f"Expected {self.model.__name__} record, got {type(record).__name__}"
            )
        encoded = record.model_dump(mode="json", by_alias=True)
        size = len(json.dumps(encoded, separators=(',', ':')).encode('utf-8'))
        if size > self.max_value_size:
            raise RecordTooLargeError(
                f"{self.model.__name__} record of {size} bytes exceeds "
                f"maximum record size of {self.max_value_size} bytes"
            )
        return encoded

    def _decode(self, encoded: Dict[str, Any]) -> R:
        try:
            return self.model.model_validate(encoded)
        except ValidationError as e:
            raise IntegrityError(f"Corrupt {self.model.__name__} record: {e}")

    @abstractmethod
    def _load(self, key: str) -> Optional[Dict[str, Any]]:
        """Return the encoded record for key."""

    @abstractmethod
    def _store(self, key: str, encoded: Dict[str, Any]) -> None:
        """Insert or replace an encoded record."""

    @abstractmethod
    def _discard(self, key: str) -> Optional[Dict[str, Any]]:
        """Remove and return an encoded record."""

    @abstractmethod
    def _items(self) -> List[tuple]:
        """(key, encoded record) pairs in key order."""


class MemoryEntityStore(EntityStore[R]):
    """Process-local entity store."""

    def __init__(self, model: Type[R], **kwargs):
        super().__init__(model, **kwargs)
        self._records: Dict[str, Dict[str, Any]] = {}

    def _load(self, key):
        return self._records.get(key)

    def _store(self, key, encoded):
        self._records[key] = encoded

    def _discard(self, key):
        return self._records.pop(key, None)

    def _items(self):
        return sorted(self._records.items())


class JSONEntityStore(EntityStore[R]):
    """Entity store persisted as one JSON document per collection.

    The collection is cached in memory and re-read whenever the file changes,
    so several stores (or processes) can share one file. Writes are
    read-modify-write under the file lock; the cached view only changes once
    the file write succeeds.
    """

    def __init__(
        self,
        model: Type[R],
        file_path: Union[str, Path],
        lock_timeout: float = 30.0,
        **kwargs
    ):
        super().__init__(model, **kwargs)
        self.json_storage = JSONStorage(file_path, lock_timeout=lock_timeout)
        self._records: Dict[str, Dict[str, Any]] = {}
        self._signature = None
        self.reload()

    @property
    def file_path(self) -> Path:
        return self.json_storage.file_path

    def _as_collection(self, data: Any) -> Dict[str, Dict[str, Any]]:
        if not isinstance(data, dict):
            raise IntegrityError(f"Expected a JSON object in {self.file_path}")
        return data

    def reload(self) -> None:
        """Re-read the collection from disk."""
        with self.json_storage.locked():
            self._records = self._as_collection(self.json_storage.read())
            self._signature = self.json_storage.signature()
        self.logger.debug(f"Loaded {len(self._records)} {self.model.__name__} records from {self.file_path}")

    def _refresh(self) -> None:
        if self.json_storage.signature() != self._signature:
            self.reload()

    @contextmanager
    def transaction(self):
        """Hold the file lock over the current on-disk collection."""
        with self.json_storage.locked():
            self.reload()
            yield

    def _update(self, updater) -> None:
        with self.json_storage.locked():
            records = self.json_storage.update(
                lambda data: updater(dict(self._as_collection(data)))
            )
            self._records = records
            self._signature = self.json_storage.signature()

    def _load(self, key):
        self._refresh()
        return self._records.get(key)

    def _store(self, key, encoded):
        def put_record(records):
            records[key] = encoded
            return records

        self._update(put_record)

    def _discard(self, key):
        with self.transaction():
            encoded = self._records.get(key)
            if encoded is None:
                return None

            def drop_record(records):
                records.pop(key, None)
                return records

            self._update(drop_record)
            return encoded

    def _items(self):
        self._refresh()
        return sorted(self._records.items())

    def get_storage_info(self) -> Dict[str, Any]:
        self._refresh()
        return {
            'file_path': str(self.file_path),
            'size_bytes': self.json_storage.size(),
            'records': len(self._records),
        }
