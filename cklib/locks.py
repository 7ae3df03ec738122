"""Timed, contention-reporting locks and a run-with-timeout helper."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator

log = logging.getLogger(__name__)

# Each acquisition attempt waits this many seconds before warning.
LOCK_TIMEOUT = 10.0
# Number of attempts made before giving up on a lock.
LOCK_RETRIES = 6


class LockContentionError(RuntimeError):
    """Raised when a lock could not be obtained after repeated attempts."""


def _acquire_with_retry(attempt: Callable[[float], bool], timeout: float, what: str) -> None:
    """Call attempt(timeout) until it succeeds, warning on each timeout."""
    for _ in range(LOCK_RETRIES):
        if attempt(timeout):
            return
        log.error(
            "WARNING: Prolonged %s contention from thread %s",
            what,
            threading.current_thread().name,
        )
    raise LockContentionError(f"failed to grab {what}")


class RWLock:
    """A readers-writer lock: many readers or one writer at a time."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer: int | None = None

    def acquire_read(self, timeout: float = LOCK_TIMEOUT) -> None:
        """Take a shared lock, waiting up to timeout seconds per attempt."""

        def attempt(wait: float) -> bool:
            with self._cond:
                if not self._cond.wait_for(lambda: self._writer is None, wait):
                    return False
                self._readers += 1
                return True

        _acquire_with_retry(attempt, timeout, "read lock")

    def acquire_write(self, timeout: float = LOCK_TIMEOUT) -> None:
        """Take the exclusive lock, waiting up to timeout seconds per attempt."""

        def attempt(wait: float) -> bool:
            with self._cond:
                free = self._cond.wait_for(
                    lambda: self._writer is None and self._readers == 0, wait
                )
                if not free:
                    return False
                self._writer = threading.get_ident()
                return True

        _acquire_with_retry(attempt, timeout, "write lock")

    def release_read(self) -> None:
        """Drop one shared hold."""
        with self._cond:
            if self._readers == 0:
                raise RuntimeError("read unlock of a lock not held for reading")
            self._readers -= 1
            self._cond.notify_all()

    def release_write(self) -> None:
        """Drop the exclusive hold."""
        with self._cond:
            if self._writer is None:
                raise RuntimeError("write unlock of a lock not held for writing")
            self._writer = None
            self._cond.notify_all()


class CkLock:
    """A write-biased lock: a mutex in front of a readers-writer lock.

    Writers keep the mutex for as long as they hold the lock, so new readers
    queue behind a waiting writer instead of starving it.
    """

    def __init__(self) -> None:
        self.mutex = threading.Lock()
        self.rwlock = RWLock()

    def _lock_mutex(self) -> None:
        _acquire_with_retry(
            lambda wait: self.mutex.acquire(timeout=wait), LOCK_TIMEOUT, "mutex lock"
        )

    def read_lock(self) -> None:
        """Take a shared hold; cannot be promoted to a write hold."""
        self._lock_mutex()
        try:
            self.rwlock.acquire_read()
        finally:
            self.mutex.release()

    def read_unlock(self) -> None:
        """Drop a shared hold."""
        self.rwlock.release_read()

    def write_lock(self) -> None:
        """Take the exclusive hold."""
        self._lock_mutex()
        try:
            self.rwlock.acquire_write()
        except BaseException:
            self.mutex.release()
            raise

    def write_unlock(self) -> None:
        """Drop the exclusive hold."""
        self.rwlock.release_write()
        self.mutex.release()

    def downgrade(self) -> None:
        """Turn an exclusive hold into a shared one."""
        self.rwlock.release_write()
        self.rwlock.acquire_read()
        self.mutex.release()

    def demote(self) -> None:
        """Turn an exclusive hold into an intermediate one that keeps the mutex."""
        self.rwlock.release_write()

    @contextmanager
    def reading(self) -> Iterator[CkLock]:
        """Hold the lock shared for the duration of the block."""
        self.read_lock()
        try:
            yield self
        finally:
            self.read_unlock()

    @contextmanager
    def writing(self) -> Iterator[CkLock]:
        """Hold the lock exclusively for the duration of the block."""
        self.write_lock()
        try:
            yield self
        finally:
            self.write_unlock()


def completion_timeout(fn: Callable[[Any], Any], arg: Any, timeout: float) -> bool:
    """Run fn(arg) in a thread and return whether it finished within timeout ms.

    A call that overruns is left to finish on its own in the background.
    """
    done = threading.Event()

    def runner() -> None:
        try:
            fn(arg)
        finally:
            done.set()

    worker = threading.Thread(target=runner, name="ck-completion", daemon=True)
    worker.start()
    if done.wait(timeout / 1000):
        worker.join()
        return True
    return False