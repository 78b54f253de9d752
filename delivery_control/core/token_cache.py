"""
In-memory access token holder, one per platform client.

Readers never wait for a token to appear: get() returns whatever is cached
right now, including None before the first successful login. Writers are
exclusive against other writers and all readers.
"""
import threading
from contextlib import contextmanager
from typing import Iterator, Optional


class _ReadWriteLock:
    """Many concurrent readers, or a single writer."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._readers:
                self._cond.wait()
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class TokenCache:
    """Lock-guarded access token. The lock itself is never exposed."""

    def __init__(self, token: Optional[str] = None):
        self._lock = _ReadWriteLock()
        self._token = token or None

    def get(self) -> Optional[str]:
        with self._lock.read():
            return self._token

    def set(self, token: str) -> None:
        with self._lock.write():
            self._token = token or None

    def is_ready(self) -> bool:
        return self.get() is not None
