from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import ContextManager, Iterator, Protocol

from filelock import FileLock, Timeout

from . import logger as log
from .errors import LockTimeoutError


class LockProvider(Protocol):
    def hold(self, timeout: float) -> ContextManager[None]: ...


class ThreadLockProvider:
    """One lock shared by every request thread of this process."""

    def __init__(self):
        self._lock = threading.Lock()

    @contextmanager
    def hold(self, timeout: float) -> Iterator[None]:
        if not self._lock.acquire(timeout=timeout):
            log.warning("Lock wait timed out after %ss", timeout)
            raise LockTimeoutError(f"Could not obtain lock after {timeout} seconds")
        try:
            yield
        finally:
            self._lock.release()


class FileLockProvider:
    """Lock shared by every worker process on the host through a lock file."""

    def __init__(self, path: str):
        self.path = path
        self._lock = FileLock(path, thread_local=True)

    @contextmanager
    def hold(self, timeout: float) -> Iterator[None]:
        try:
            self._lock.acquire(timeout=timeout)
        except Timeout as e:
            log.warning("Lock wait timed out after %ss: lock_file=%s", timeout, self.path)
            raise LockTimeoutError(
                f"Could not obtain lock after {timeout} seconds"
            ) from e
        try:
            yield
        finally:
            self._lock.release()
