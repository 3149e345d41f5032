"""
Token Registry - Concurrency Utilities

Read-write locking with contention metrics, used to serialize registry
writes against each other and against reads when the registry is shared
between threads.
"""

import threading
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from threading import Condition, RLock
from typing import Any, Dict


class ConcurrencyError(Exception):
    """General concurrency operation exception."""
    pass


class LockTimeoutError(ConcurrencyError):
    """Lock could not be acquired within the timeout."""
    pass


class LockMetrics:
    """Lock performance metrics."""

    def __init__(self):
        self.acquisition_count = 0
        self.contention_count = 0
        self.total_wait_time = 0.0
        self.max_wait_time = 0.0
        self.last_acquisition = None

    def record_acquisition(self, wait_time: float, contended: bool) -> None:
        """Record lock acquisition metrics."""
        self.acquisition_count += 1
        self.total_wait_time += wait_time
        self.max_wait_time = max(self.max_wait_time, wait_time)
        self.last_acquisition = datetime.now(timezone.utc)

        if contended:
            self.contention_count += 1

    def get_contention_ratio(self) -> float:
        if self.acquisition_count == 0:
            return 0.0
        return self.contention_count / self.acquisition_count

    def get_average_wait_time(self) -> float:
        if self.acquisition_count == 0:
            return 0.0
        return self.total_wait_time / self.acquisition_count


class ReadWriteLock:
    """Shared-reader / exclusive-writer lock.

    Both modes are reentrant for the owning thread, and the writer may also
    take the read side. Upgrading a read lock to a write lock is refused.
    """

    def __init__(self, name: str = "unnamed", timeout: float = 30.0):
        self.name = name
        self.timeout = timeout
        self._lock = RLock()
        self._ready = Condition(self._lock)
        self._readers: Dict[int, int] = {}
        self._writer = None
        self._write_depth = 0
        self._metrics = LockMetrics()

    @contextmanager
    def read_lock(self):
        """Acquire read lock with context manager."""
        if not self.acquire_read():
            raise LockTimeoutError(f"Timed out acquiring read lock '{self.name}'")
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_lock(self):
        """Acquire write lock with context manager."""
        if not self.acquire_write():
            raise LockTimeoutError(f"Timed out acquiring write lock '{self.name}'")
        try:
            yield
        finally:
            self.release_write()

    def acquire_read(self) -> bool:
        thread_id = threading.get_ident()
        start_time = time.time()
        deadline = start_time + self.timeout
        contended = False

        with self._lock:
            if self._writer != thread_id and thread_id not in self._readers:
                while self._writer is not None:
                    contended = True
                    if not self._wait_until(deadline):
                        return False

            self._readers[thread_id] = self._readers.get(thread_id, 0) + 1
            self._metrics.record_acquisition(time.time() - start_time, contended)
            return True

    def release_read(self) -> None:
        thread_id = threading.get_ident()

        with self._lock:
            depth = self._readers.get(thread_id)
            if not depth:
                raise ConcurrencyError("Thread does not hold read lock")

            if depth == 1:
                del self._readers[thread_id]
            else:
                self._readers[thread_id] = depth - 1

            if not self._readers:
                self._ready.notify_all()

    def acquire_write(self) -> bool:
        thread_id = threading.get_ident()
        start_time = time.time()
        deadline = start_time + self.timeout
        contended = False

        with self._lock:
            if self._writer == thread_id:
                self._write_depth += 1
                return True

            if thread_id in self._readers:
                raise ConcurrencyError("Cannot upgrade read lock to write lock")

            while self._writer is not None or self._readers:
                contended = True
                if not self._wait_until(deadline):
                    return False

            self._writer = thread_id
            self._write_depth = 1
            self._metrics.record_acquisition(time.time() - start_time, contended)
            return True

    def release_write(self) -> None:
        thread_id = threading.get_ident()

        with self._lock:
            if self._writer != thread_id:
                raise ConcurrencyError("Thread does not hold write lock")

            self._write_depth -= 1
            if self._write_depth == 0:
                self._writer = None
                self._ready.notify_all()

    def _wait_until(self, deadline: float) -> bool:
        """Wait for a state change, giving up once deadline has passed."""
        remaining = deadline - time.time()
        if remaining <= 0:
            return False
        self._ready.wait(timeout=remaining)
        return True

    def get_metrics(self) -> Dict[str, Any]:
        """Get lock performance metrics."""
        with self._lock:
            return {
                'name': self.name,
                'readers': sum(self._readers.values()),
                'writer_active': self._writer is not None,
                'acquisition_count': self._metrics.acquisition_count,
                'contention_count': self._metrics.contention_count,
                'contention_ratio': self._metrics.get_contention_ratio(),
                'average_wait_time': self._metrics.get_average_wait_time(),
                'max_wait_time': self._metrics.max_wait_time,
                'last_acquisition': self._metrics.last_acquisition
            }
