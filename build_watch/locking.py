"""
Reader/writer lock for state shared between the watch loop and reloads.

Many readers may hold the lock at once; a writer holds it exclusively.
Waiting writers block new readers so a reload is never starved.
"""

import threading
from contextlib import contextmanager


class ReadWriteLock:
    """
    Reader/writer lock built on a single condition variable.

    Usage:
        lock = ReadWriteLock()
        with lock.read_locked():
            # Shared section
            ...
        with lock.write_locked():
            # Exclusive section
            ...
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    def acquire_read(self) -> None:
        """Acquire a shared lock, waiting while a writer holds or awaits it."""
        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        """Release a shared lock."""
        with self._cond:
            if self._readers <= 0:
                raise RuntimeError("release_read() called without a read lock")
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        """Acquire the exclusive lock."""
        with self._cond:
            self._waiting_writers += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._waiting_writers -= 1
            self._writer = True

    def release_write(self) -> None:
        """Release the exclusive lock."""
        with self._cond:
            if not self._writer:
                raise RuntimeError("release_write() called without the write lock")
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self):
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self):
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()
