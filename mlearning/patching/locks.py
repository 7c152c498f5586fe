"""Per-file mutual exclusion for orchestrated patch operations (process-local)."""
import threading
from contextlib import contextmanager

from .errors import LockTimeoutError


class FileLockManager:
    """One lock per target path. Callers block until the path is free.

    Locks live in memory only: they do not survive a restart and give no
    guarantee across processes.
    """

    def __init__(self):
        self._registry = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def _lock_for(self, path: str) -> threading.Lock:
        with self._registry:
            lock = self._locks.get(path)
            if lock is None:
                lock = self._locks[path] = threading.Lock()
            return lock

    def acquire(self, path: str, timeout: float | None = None) -> None:
        lock = self._lock_for(path)
        if timeout is None:
            lock.acquire()
            return
        if not lock.acquire(timeout=timeout):
            raise LockTimeoutError(path, timeout)

    def release(self, path: str) -> None:
        """Clear the held marker. Releasing a free path is a no-op."""
        lock = self._lock_for(path)
        try:
            lock.release()
        except RuntimeError:
            pass

    def is_locked(self, path: str) -> bool:
        with self._registry:
            lock = self._locks.get(path)
        return bool(lock and lock.locked())

    @contextmanager
    def hold(self, path: str, timeout: float | None = None):
        self.acquire(path, timeout)
        try:
            yield
        finally:
            self.release(path)
