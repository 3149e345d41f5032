"""
Unit tests for concurrency utilities.
"""

import threading
import time

import pytest

from token_registry.concurrency import (
    ConcurrencyError, LockTimeoutError, ReadWriteLock
)


class TestReadWriteLock:
    """Test read-write lock implementation."""

    @pytest.fixture
    def rw_lock(self):
        return ReadWriteLock(name="test", timeout=1.0)

    def test_read_lock_basic(self, rw_lock):
        assert rw_lock.acquire_read()
        rw_lock.release_read()

    def test_write_lock_basic(self, rw_lock):
        assert rw_lock.acquire_write()
        rw_lock.release_write()

    def test_reentrant_locks(self, rw_lock):
        with rw_lock.write_lock():
            with rw_lock.write_lock():
                with rw_lock.read_lock():
                    pass
        with rw_lock.read_lock():
            with rw_lock.read_lock():
                pass

        assert rw_lock.get_metrics()['readers'] == 0
        assert rw_lock.get_metrics()['writer_active'] is False

    def test_upgrade_refused(self, rw_lock):
        with rw_lock.read_lock():
            with pytest.raises(ConcurrencyError):
                rw_lock.acquire_write()

    def test_release_without_hold(self, rw_lock):
        with pytest.raises(ConcurrencyError):
            rw_lock.release_read()
        with pytest.raises(ConcurrencyError):
            rw_lock.release_write()

    def test_multiple_readers(self, rw_lock):
        inside = []
        barrier = threading.Barrier(3)

        def reader():
            with rw_lock.read_lock():
                barrier.wait(timeout=1.0)
                inside.append(threading.get_ident())

        threads = [threading.Thread(target=reader) for _ in range(3)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(inside) == 3

    def test_writer_excludes_readers(self, rw_lock):
        events = []

        def reader():
            with rw_lock.read_lock():
                events.append("read")

        with rw_lock.write_lock():
            thread = threading.Thread(target=reader)
            thread.start()
            time.sleep(0.1)
            events.append("write-done")

        thread.join()
        assert events == ["write-done", "read"]

    def test_write_timeout(self):
        rw_lock = ReadWriteLock(timeout=0.1)
        failures = []

        def writer():
            try:
                with rw_lock.write_lock():
                    pass
            except LockTimeoutError:
                failures.append(True)

        with rw_lock.read_lock():
            thread = threading.Thread(target=writer)
            thread.start()
            thread.join()

        assert failures == [True]

    @pytest.mark.concurrency
    def test_metrics_record_contention(self, rw_lock):
        def writer():
            with rw_lock.write_lock():
                pass

        with rw_lock.write_lock():
            thread = threading.Thread(target=writer)
            thread.start()
            time.sleep(0.05)

        thread.join()
        metrics = rw_lock.get_metrics()

        assert metrics['acquisition_count'] == 2
        assert metrics['contention_count'] == 1
        assert metrics['contention_ratio'] == 0.5

    @pytest.mark.concurrency
    def test_timeout_not_extended_by_wakeups(self):
        rw_lock = ReadWriteLock(timeout=0.3)
        outcome = []

        def reader():
            start = time.time()
            try:
                with rw_lock.read_lock():
                    outcome.append('acquired')
            except LockTimeoutError:
                outcome.append('timeout')
            outcome.append(time.time() - start)

        with rw_lock.write_lock():
            thread = threading.Thread(target=reader)
            thread.start()
            # Each nested read release wakes the waiting reader
            for _ in range(20):
                with rw_lock.read_lock():
                    pass
                time.sleep(0.05)

        thread.join()

        assert outcome[0] == 'timeout'
        assert outcome[1] < 0.9
