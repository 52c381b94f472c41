"""In-memory slug registry guarded by a reader/writer lock.

WHY: Converted books are served by short public identifiers. Every
finished conversion writes one entry, and every HTTP download reads one,
often at the same time. Reads vastly outnumber writes, so readers should
not block each other, while a writer must see the map alone.

HOW: Three pieces work together:
  generate_slug  — 3 random bytes, URL-safe base64, first 3 characters
  ReadWriteLock  — condition-variable lock with shared/exclusive modes
  SlugRegistry   — dict of slug → Path behind the lock

RULES:
- Slugs come from the secrets module (OS entropy source)
- insert() overwrites silently at this level (last writer wins) and
  returns the previous path so callers can log the collision
- lookup() raises SlugNotFoundError for unknown slugs
- Entries are never expired; the registry lives as long as the process
- The registry is an explicit instance, created once at startup and
  passed to both the pipeline and the HTTP app
"""

from __future__ import annotations

import base64
import logging
import secrets
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Dict, Iterator, Optional, Union

from mobi_bridge.core.errors import RandomSourceError, SlugNotFoundError

logger = logging.getLogger(__name__)

SLUG_BYTES = 3
SLUG_LENGTH = 3


def generate_slug(randbytes: Callable[[int], bytes] = secrets.token_bytes) -> str:
    """Return a fresh 3-character URL-safe slug.

    WHY: Download links must be short enough to type on an e-reader,
    and unguessable enough that users don't stumble over each other's
    books by counting.

    HOW: Draws SLUG_BYTES from the entropy source, encodes them with
    URL-safe base64 (4 characters for 3 bytes, no padding), and keeps
    the first SLUG_LENGTH characters.

    RULES:
    - Raises RandomSourceError if the entropy source fails
    - Result only contains [A-Za-z0-9_-]
    """
    try:
        raw = randbytes(SLUG_BYTES)
    except (OSError, NotImplementedError) as exc:
        raise RandomSourceError("Entropy source unavailable: {}".format(exc)) from exc
    return base64.urlsafe_b64encode(raw).decode("ascii")[:SLUG_LENGTH]


class ReadWriteLock:
    """Many concurrent readers, or a single writer.

    HOW: A Condition guards a reader count and a writer flag. Writers
    announce themselves in _writers_waiting so that a steady stream of
    readers cannot starve them: new readers wait while a writer is queued.
    """

    def __init__(self) -> None:
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


class SlugRegistry:
    """Thread-safe mapping from public slugs to converted artifact paths.

    WHY: The pipeline threads and the HTTP request handlers share this
    map and nothing else. Keeping it behind one small class makes the
    locking discipline impossible to bypass.

    RULES:
    - insert() takes the write lock; lookup(), len() and `in` take the read lock
    - A successful insert() is visible to every lookup() that starts after it
    """

    def __init__(self, lock: Optional[ReadWriteLock] = None) -> None:
        self._files: Dict[str, Path] = {}
        self._lock = lock or ReadWriteLock()

    def insert(self, slug: str, path: Union[str, Path]) -> Optional[Path]:
        """Register *path* under *slug*, returning the path it replaced, if any."""
        path = Path(path)
        with self._lock.write_locked():
            previous = self._files.get(slug)
            self._files[slug] = path
        if previous is not None and previous != path:
            logger.warning("Slug %s reassigned from %s to %s", slug, previous, path)
        return previous

    def lookup(self, slug: str) -> Path:
        """Return the path registered under *slug*.

        RULES:
        - Raises SlugNotFoundError for unknown (or empty) slugs
        """
        with self._lock.read_locked():
            path = self._files.get(slug)
        if path is None:
            raise SlugNotFoundError(slug)
        return path

    def __contains__(self, slug: object) -> bool:
        with self._lock.read_locked():
            return slug in self._files

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._files)
