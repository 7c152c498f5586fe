"""Unit tests for mlearning/patching/locks.py: per-path mutual exclusion."""
import threading
import time

import pytest

from mlearning.patching.errors import LockTimeoutError
from mlearning.patching.locks import FileLockManager


def test_acquire_and_release():
    locks = FileLockManager()
    locks.acquire("index.js")
    assert locks.is_locked("index.js")
    locks.release("index.js")
    assert not locks.is_locked("index.js")


def test_release_of_free_path_is_noop():
    """Releasing something never acquired does not raise."""
    locks = FileLockManager()
    locks.release("never-held.js")
    assert not locks.is_locked("never-held.js")


def test_different_paths_do_not_block_each_other():
    locks = FileLockManager()
    with locks.hold("a.js"):
        with locks.hold("b.js", timeout=0.1):
            assert locks.is_locked("a.js") and locks.is_locked("b.js")


def test_timeout_raises_lock_timeout_error():
    """Held path + timeout: LockTimeoutError with 503 status."""
    locks = FileLockManager()
    with locks.hold("index.js"):
        with pytest.raises(LockTimeoutError) as ei:
            locks.acquire("index.js", timeout=0.05)
    assert ei.value.status == 503


def test_hold_releases_on_exception():
    locks = FileLockManager()
    with pytest.raises(RuntimeError):
        with locks.hold("index.js"):
            raise RuntimeError("boom")
    assert not locks.is_locked("index.js")


def test_second_holder_waits_for_first():
    """Critical sections on the same path never overlap."""
    locks = FileLockManager()
    inside = []
    overlaps = []

    def worker():
        with locks.hold("index.js"):
            if inside:
                overlaps.append(True)
            inside.append(1)
            time.sleep(0.02)
            inside.pop()

    threads = [threading.Thread(target=worker) for _ in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert overlaps == []
    assert not locks.is_locked("index.js")
