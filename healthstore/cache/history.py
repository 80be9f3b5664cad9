"""Capped, append-optimized history cache over a key-value store.

The whole collection lives under one store key as a JSON array in insertion
order (newest first by default, oldest first for tail-appending caches).
Every mutation is a full read-modify-write held under the
store's per-key lock, so concurrent writers cannot lose updates.

The cache is best-effort and never the system of record: decode, encode and
storage failures are logged here and surface to callers only as empty
results, ``None`` or a ``False`` return value.
"""

import logging
from datetime import date, datetime, timedelta, tzinfo
from typing import Any, Callable, Generic, Iterable, List, Optional, Type, TypeVar, Union
from uuid import UUID

from healthstore.cache.codec import CacheError, DecodeError, JsonCodec, RecordNotFound
from healthstore.models.schemas import Reading, utc_now
from healthstore.store.kv import KeyValueStore, StoreError

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=Reading)

Clock = Callable[[], datetime]

# Failures that never cross the public boundary of a cache
HANDLED_ERRORS = (CacheError, StoreError, OSError)


class LocalHistoryCache(Generic[R]):
    """Durable history of timestamped readings.

    Args:
        store: Key-value store holding the serialized collection.
        key: Store key of the collection.
        model: Reading subclass stored in the collection.
        cap: Maximum number of readings kept. None means unbounded.
        clock: Returns the current time. Defaults to UTC now.
        tz: Timezone used for calendar-day grouping. None means system local.
        sort_descending: Sort reads by timestamp, newest first.
        append_at_tail: Append new readings at the end of the stored list
            instead of the front. The cap then drops from the front.
    """

    def __init__(
        self,
        store: KeyValueStore,
        key: str,
        model: Type[R],
        cap: Optional[int] = None,
        clock: Optional[Clock] = None,
        tz: Optional[tzinfo] = None,
        sort_descending: bool = True,
        append_at_tail: bool = False,
    ):
        self.store = store
        self.key = key
        self.model = model
        self.cap = cap
        self.tz = tz
        self.sort_descending = sort_descending
        self.append_at_tail = append_at_tail
        self.codec: JsonCodec[R] = JsonCodec(model)
        self._clock = clock or utc_now

    def now(self) -> datetime:
        now = self._clock()
        return now if now.tzinfo else now.astimezone()

    def local_date(self, moment: datetime) -> date:
        """Calendar day of a moment in the cache's timezone."""
        return moment.astimezone(self.tz).date()

    # ===== Internal helpers (raise, caller holds the lock) =====

    def _load_unlocked(self) -> List[R]:
        data = self.store.get(self.key)
        if data is None:
            return []
        return self.codec.decode_list(data)

    def _load_for_update(self) -> List[R]:
        try:
            return self._load_unlocked()
        except DecodeError as e:
            logger.warning(f"Discarding undecodable data under {self.key}: {e}")
            return []

    def _save_unlocked(self, items: List[R]) -> None:
        self.store.set(self.key, self.codec.encode_list(items))

    def _migrate_unlocked(self) -> bool:
        """Migrate data from an older format. Returns True if anything was written."""
        return False

    def _extra_keys(self) -> Iterable[str]:
        """Other store keys owned by this cache, removed by clear()."""
        return ()

    def _rewrite(self, action: str, mutate: Callable[[List[R]], List[R]]) -> bool:
        """Run a full read-modify-write of the collection under the key lock."""
        try:
            with self.store.lock(self.key):
                self._migrate_unlocked()
                items = mutate(self._load_for_update())
                self._save_unlocked(items)
            return True
        except RecordNotFound as e:
            logger.debug(f"Skipping {action} on {self.key}: {e}")
            return False
        except HANDLED_ERRORS as e:
            logger.warning(f"Error {action} on {self.key}: {e}")
            return False

    # ===== Public API =====

    def ensure_migrated(self) -> bool:
        """Run the one-time legacy migration if it has not happened yet.

        Returns:
            True if a migration was performed by this call.
        """
        try:
            with self.store.lock(self.key):
                return self._migrate_unlocked()
        except HANDLED_ERRORS as e:
            logger.warning(f"Error migrating {self.key}: {e}")
            return False

    def load_all(self, limit: Optional[int] = None) -> List[R]:
        """Load the collection.

        Args:
            limit: Maximum number of readings returned. Defaults to the cap.

        Returns:
            Readings (newest first when sorting is enabled), or an empty list
            if nothing is stored or the stored data cannot be decoded.
        """
        try:
            with self.store.lock(self.key):
                self._migrate_unlocked()
                items = self._load_unlocked()
        except HANDLED_ERRORS as e:
            logger.warning(f"Error loading {self.key}: {e}")
            return []

        if self.sort_descending:
            items.sort(key=lambda r: r.timestamp, reverse=True)

        limit = self.cap if limit is None else limit
        if limit is not None:
            items = items[: max(limit, 0)]
        return items

    def append(self, reading: R, cap: Optional[int] = None) -> bool:
        """Insert a reading at the most-recent position and re-apply the cap.

        Readings beyond the cap are dropped oldest-inserted first. A stored
        reading with the same id is replaced.
        """
        cap = self.cap if cap is None else cap

        def insert(items: List[R]) -> List[R]:
            items = [r for r in items if r.id != reading.id]
            if self.append_at_tail:
                items.append(reading)
                if cap is None:
                    return items
                return items[-cap:] if cap > 0 else []
            items.insert(0, reading)
            return items if cap is None else items[: max(cap, 0)]

        return self._rewrite("appending", insert)

    def update(self, reading: R) -> bool:
        """Replace the stored reading with the same id.

        Nothing is written when no reading matches.
        """

        def replace(items: List[R]) -> List[R]:
            for i, existing in enumerate(items):
                if existing.id == reading.id:
                    items[i] = reading
                    return items
            raise RecordNotFound(reading.id)

        return self._rewrite("updating", replace)

    def delete(self, reading_id: UUID) -> bool:
        """Remove every reading with the given id. Absent ids are not an error."""
        return self._rewrite(
            "deleting", lambda items: [r for r in items if r.id != reading_id]
        )

    def get_for_date(self, day: Union[date, datetime]) -> List[R]:
        """Readings whose timestamp falls on the same local calendar day."""
        if isinstance(day, datetime):
            day = self.local_date(day)
        return [r for r in self.load_all() if self.local_date(r.timestamp) == day]

    def get_weekly(self) -> List[List[R]]:
        """Seven daily buckets ending today, today first."""
        today = self.local_date(self.now())
        items = self.load_all()
        buckets = []
        for offset in range(7):
            day = today - timedelta(days=offset)
            buckets.append([r for r in items if self.local_date(r.timestamp) == day])
        return buckets

    def clear(self) -> bool:
        """Remove the whole collection from the store."""
        try:
            with self.store.lock(self.key):
                self.store.remove(self.key)
                for key in self._extra_keys():
                    self.store.remove(key)
            return True
        except HANDLED_ERRORS as e:
            logger.warning(f"Error clearing {self.key}: {e}")
            return False

    def _latest_for_fallback(self) -> Optional[Any]:
        items = self.load_all(limit=1)
        return items[0] if items else None

    def recency_filtered_last(self, max_age_seconds: float) -> Optional[Any]:
        """Value of the most recent reading, if it is no older than max_age_seconds."""
        reading = self._latest_for_fallback()
        if reading is None:
            return None
        age = abs((self.now() - reading.timestamp).total_seconds())
        if age > max_age_seconds:
            logger.debug(f"Latest reading under {self.key} is stale ({age:.0f}s old)")
            return None
        return reading.value
