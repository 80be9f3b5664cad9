"""Local heart rate history with fallback to the last camera reading.

Older app versions stored only the most recent reading under a separate
key. The first read of an empty history turns that reading into a
one-element history. Once the history key exists, even holding an empty
list, the legacy key is never consulted for migration again.
"""

import logging
from datetime import datetime, tzinfo
from typing import Iterable, Optional

from healthstore.cache.codec import DecodeError, JsonCodec
from healthstore.cache.history import HANDLED_ERRORS, Clock, LocalHistoryCache
from healthstore.models.schemas import HeartRateMeasurement, LegacyHeartRateReading
from healthstore.store.kv import KeyValueStore

logger = logging.getLogger(__name__)

HISTORY_KEY = "camera_heart_rate_history_v1"
LEGACY_KEY = "last_camera_heart_rate_reading_v1"
DEFAULT_HISTORY_CAP = 200
DEFAULT_MAX_AGE_SECONDS = 24 * 60 * 60


class HeartRateHistoryCache(LocalHistoryCache[HeartRateMeasurement]):
    """Capped heart rate history, newest measurement first."""

    def __init__(
        self,
        store: KeyValueStore,
        cap: int = DEFAULT_HISTORY_CAP,
        clock: Optional[Clock] = None,
        tz: Optional[tzinfo] = None,
    ):
        super().__init__(
            store,
            HISTORY_KEY,
            HeartRateMeasurement,
            cap=cap,
            clock=clock,
            tz=tz,
            sort_descending=True,
        )
        self.legacy_codec = JsonCodec(LegacyHeartRateReading)

    def _read_legacy(self) -> Optional[LegacyHeartRateReading]:
        data = self.store.get(LEGACY_KEY)
        if data is None:
            return None
        return self.legacy_codec.decode(data)

    def _migrate_unlocked(self) -> bool:
        if self.store.contains(self.key):
            return False

        try:
            legacy = self._read_legacy()
        except DecodeError as e:
            logger.warning(f"Ignoring undecodable legacy heart rate reading: {e}")
            return False
        if legacy is None:
            return False

        migrated = [HeartRateMeasurement(bpm=legacy.bpm, measured_at=legacy.measured_at)]
        self._save_unlocked(migrated)
        logger.info(f"Migrated legacy heart rate reading ({legacy.bpm} bpm) into history")
        return True

    def _extra_keys(self) -> Iterable[str]:
        return (LEGACY_KEY,)

    def _latest_for_fallback(self):
        candidates = [self.load_last_measured(), super()._latest_for_fallback()]
        candidates = [c for c in candidates if c is not None]
        if not candidates:
            return None
        return max(candidates, key=lambda c: c.timestamp)

    # ===== Last reading =====

    def save_last_measured(self, bpm: int, measured_at: Optional[datetime] = None) -> bool:
        """Store the single most recent reading under the legacy key."""
        reading = LegacyHeartRateReading(bpm=bpm, measured_at=measured_at or self.now())
        try:
            with self.store.lock(LEGACY_KEY):
                self.store.set(LEGACY_KEY, self.legacy_codec.encode(reading))
            return True
        except HANDLED_ERRORS as e:
            logger.warning(f"Error saving last heart rate reading: {e}")
            return False

    def load_last_measured(self) -> Optional[LegacyHeartRateReading]:
        try:
            return self._read_legacy()
        except HANDLED_ERRORS as e:
            logger.warning(f"Error loading last heart rate reading: {e}")
            return None

    def last_bpm_if_recent(
        self, max_age_seconds: float = DEFAULT_MAX_AGE_SECONDS
    ) -> Optional[int]:
        """Last measured bpm, only if it is recent enough to show as a fallback."""
        return self.recency_filtered_last(max_age_seconds)

    # ===== History =====

    def append_measurement(
        self,
        bpm: int,
        measured_at: Optional[datetime] = None,
        confidence: Optional[float] = None,
        device_used: Optional[str] = None,
        source: str = "camera",
        max_items: Optional[int] = None,
    ) -> Optional[HeartRateMeasurement]:
        """Append a new measurement to the history.

        Returns:
            The stored measurement, or None if it could not be persisted.
        """
        measurement = HeartRateMeasurement(
            bpm=bpm,
            measured_at=measured_at or self.now(),
            confidence=confidence,
            device_used=device_used,
            source=source,
        )
        if not self.append(measurement, cap=max_items):
            return None
        return measurement

    def record_measurement(
        self,
        bpm: int,
        measured_at: Optional[datetime] = None,
        confidence: Optional[float] = None,
        device_used: Optional[str] = None,
        source: str = "camera",
    ) -> Optional[HeartRateMeasurement]:
        """Append to the history and refresh the last-reading fallback."""
        measured_at = measured_at or self.now()
        measurement = self.append_measurement(
            bpm,
            measured_at=measured_at,
            confidence=confidence,
            device_used=device_used,
            source=source,
        )
        self.save_last_measured(bpm, measured_at)
        return measurement
