"""
Local subject cache.

Subjects change rarely, so they are kept in memory and in a JSON file and
refreshed incrementally:

- get() is a pure lookup and never touches the network
- update() is a no-op while the cache is younger than the freshness window;
  otherwise it walks /subjects?updated_after=<last_modified> page by page,
  merging each page as it arrives (last write wins per id)
- last_modified only advances once a walk has drained every page, and then
  to the time the walk started; a failed walk keeps the pages it merged
- one refresh runs at a time; concurrent update() calls await the same task,
  and a caller that stops waiting does not cancel the refresh
- save() rewrites the whole file atomically; load() takes the file's mtime
  as last_modified when the document decodes
"""

import asyncio
import functools
import logging
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Iterable

from pydantic import TypeAdapter, ValidationError

from wanikani_client import resources
from wanikani_client.errors import NotModified
from wanikani_client.protocols import ResourceSender, RetryingSender
from wanikani_client.retry import RateLimitPolicy
from wanikani_client.types import Subject, SubjectId

logger = logging.getLogger(__name__)

DEFAULT_FRESHNESS_WINDOW = timedelta(hours=6)

_subjects_adapter: TypeAdapter[dict[int, Subject]] = TypeAdapter(dict[int, Subject])


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SubjectCache:
    """
    In-memory subject map backed by a JSON file.

    Example:
        cache = await SubjectCache.load(settings.cache_path)
        await cache.update(client)
        kanji = cache.get(440)
        await cache.save()
    """

    def __init__(
        self,
        path: Path,
        freshness_window: timedelta = DEFAULT_FRESHNESS_WINDOW,
        policy: RateLimitPolicy | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.path = path
        self.freshness_window = freshness_window
        self.policy = policy or RateLimitPolicy()
        self._clock = clock
        self._subjects: dict[SubjectId, Subject] = {}
        self.last_modified: datetime | None = None
        self._refresh_task: asyncio.Task[None] | None = None

    @classmethod
    async def load(
        cls,
        path: Path,
        freshness_window: timedelta = DEFAULT_FRESHNESS_WINDOW,
        policy: RateLimitPolicy | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> "SubjectCache":
        """
        Build a cache from the file at `path`.

        A missing or undecodable file yields an empty cache with no
        last_modified, so the next update() refreshes everything.
        """
        cache = cls(path, freshness_window, policy, clock)
        try:
            content, mtime = await asyncio.to_thread(_read_with_mtime, path)
        except FileNotFoundError:
            logger.debug(f"No subject cache at {path}, starting empty")
            return cache
        except OSError as e:
            logger.warning(f"Could not read subject cache {path}: {e}")
            return cache

        try:
            subjects = _subjects_adapter.validate_json(content)
        except ValidationError as e:
            logger.warning(
                f"Subject cache {path} is malformed ({e.error_count()} errors), starting empty"
            )
            return cache

        cache._subjects = subjects
        cache.last_modified = datetime.fromtimestamp(mtime, tz=timezone.utc)
        logger.info(f"Loaded {len(subjects)} subjects from {path}")
        return cache

    def __len__(self) -> int:
        return len(self._subjects)

    def __contains__(self, subject_id: object) -> bool:
        return subject_id in self._subjects

    def get(self, subject_id: SubjectId) -> Subject | None:
        return self._subjects.get(subject_id)

    def subjects(self) -> list[Subject]:
        """Snapshot of every cached subject, ordered by id."""
        return [self._subjects[k] for k in sorted(self._subjects)]

    def merge(self, subjects: Iterable[Subject]) -> None:
        """Insert or replace subjects by id; later entries win."""
        for subject in subjects:
            self._subjects[subject.id] = subject

    def is_stale(self, now: datetime | None = None) -> bool:
        if self.last_modified is None:
            return True
        now = now or self._clock()
        return now - self.last_modified >= self.freshness_window

    async def update(self, sender: ResourceSender) -> None:
        """
        Refresh from the API if the cache is stale.

        Raises whatever the refresh raised, except NotModified which ends the
        walk as complete. Rate limits are waited out by the sender when it is a
        RetryingSender such as Authenticator, otherwise by this cache's policy.
        """
        if self._refresh_task is None or self._refresh_task.done():
            if not self.is_stale():
                logger.debug("Subject cache is fresh, skipping refresh")
                return
            self._refresh_task = asyncio.create_task(self._refresh(sender))
            self._refresh_task.add_done_callback(_log_refresh_failure)
        else:
            logger.debug("Subject refresh already running, waiting for it")
        await asyncio.shield(self._refresh_task)

    async def _refresh(self, sender: ResourceSender) -> None:
        resource = resources.subjects(updated_after=self.last_modified)
        page_options = None
        pages = merged = 0
        started = self._clock()

        while True:
            send = functools.partial(sender.send, resource, page_options)
            try:
                if isinstance(sender, RetryingSender):
                    response = await send()
                else:
                    response = await self.policy.run(send)
            except NotModified:
                logger.debug("Subjects not modified since last refresh")
                break

            self.merge(response.data)
            pages += 1
            merged += len(response.data)
            if response.page is None or response.page.next is None:
                break
            page_options = response.page.next

        self.last_modified = started
        logger.info(f"Subject refresh merged {merged} subjects from {pages} pages")

    async def save(self) -> None:
        """Write the whole map to disk, replacing the previous file atomically."""
        content = _subjects_adapter.dump_json(self._subjects)
        await asyncio.to_thread(_write_atomic, self.path, content)
        logger.debug(f"Saved {len(self._subjects)} subjects to {self.path}")


def _read_with_mtime(path: Path) -> tuple[bytes, float]:
    with path.open("rb") as f:
        return f.read(), os.fstat(f.fileno()).st_mtime


def _write_atomic(path: Path, content: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f".{path.name}.tmp")
    try:
        tmp.write_bytes(content)
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


def _log_refresh_failure(task: asyncio.Task[None]) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.warning(f"Subject refresh failed: {error}")
