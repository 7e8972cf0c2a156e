"""
In-memory, thread-safe two-way mapping between short codes and URLs.

Both directions sit behind one reader/writer lock so a reader can never see
a code without its URL, or the other way round.
"""
import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

from core_logic import ShortCodeCollisionException

logger = logging.getLogger("url_shortener.store")


class ReadWriteLock:
    """
    Many concurrent readers or a single writer.
    Waiting writers hold back new readers so a steady read load cannot
    starve an insert.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


class LinkStore:
    """Forward (code -> URL) and reverse (URL -> code) mappings."""

    def __init__(self):
        self._lock = ReadWriteLock()
        self._by_code: Dict[str, str] = {}
        self._by_url: Dict[str, str] = {}

    def lookup_by_code(self, short_code: str) -> Optional[str]:
        with self._lock.read_locked():
            return self._by_code.get(short_code)

    def lookup_by_url(self, url: str) -> Optional[str]:
        with self._lock.read_locked():
            return self._by_url.get(url)

    def insert(self, short_code: str, url: str) -> str:
        """
        Records the pair in both directions and returns the code now
        associated with `url`.

        Re-inserting an identical pair is a no-op. If `url` was stored by a
        concurrent caller in the meantime, its existing code is returned.
        A code that already belongs to another URL is never overwritten:
        ShortCodeCollisionException is raised and nothing changes.
        """
        with self._lock.write_locked():
            existing_code = self._by_url.get(url)
            if existing_code is not None:
                return existing_code

            existing_url = self._by_code.get(short_code)
            if existing_url is not None:
                raise ShortCodeCollisionException(short_code, existing_url)

            self._by_code[short_code] = url
            self._by_url[url] = short_code

        logger.debug(f"Stored {short_code} -> {url}")
        return short_code

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._by_code)

    def __contains__(self, short_code: str) -> bool:
        return self.lookup_by_code(short_code) is not None
