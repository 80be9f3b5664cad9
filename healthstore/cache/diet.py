"""Offline storage for diet logs, goals and the food catalogue."""

import logging
from datetime import date, datetime, tzinfo
from typing import Awaitable, Callable, Iterable, List, Optional, Union
from uuid import UUID

from healthstore.cache.document import DocumentCache, ListDocumentCache
from healthstore.cache.history import Clock, LocalHistoryCache
from healthstore.models.schemas import DietGoals, DietLogEntry, FoodItem
from healthstore.store.kv import KeyValueStore

logger = logging.getLogger(__name__)

LOGS_KEY = "diet_logs"
GOALS_KEY = "diet_goals"
FOOD_ITEMS_KEY = "food_items_cache"

# Receives unsynced entries, returns the ids the backend acknowledged
LogPusher = Callable[[List[DietLogEntry]], Awaitable[Iterable[UUID]]]


class DietLogCache(LocalHistoryCache[DietLogEntry]):
    """Uncapped diet log with per-entry sync flags."""

    def __init__(
        self,
        store: KeyValueStore,
        clock: Optional[Clock] = None,
        tz: Optional[tzinfo] = None,
    ):
        super().__init__(
            store,
            LOGS_KEY,
            DietLogEntry,
            cap=None,
            clock=clock,
            tz=tz,
            sort_descending=False,
            append_at_tail=True,
        )

    def add_log(self, entry: DietLogEntry) -> bool:
        return self.append(entry)

    def update_log(self, entry: DietLogEntry) -> bool:
        return self.update(entry)

    def delete_log(self, entry_id: UUID) -> bool:
        return self.delete(entry_id)

    def get_unsynced(self) -> List[DietLogEntry]:
        return [entry for entry in self.load_all() if not entry.synced]

    def mark_synced(self, ids: Iterable[UUID]) -> bool:
        """Flag entries as acknowledged by the backend, in a single write."""
        wanted = set(ids)
        if not wanted:
            return True

        def mark(items: List[DietLogEntry]) -> List[DietLogEntry]:
            return [
                entry.model_copy(update={"synced": True}) if entry.id in wanted else entry
                for entry in items
            ]

        return self._rewrite("marking synced", mark)

    def get_logs_for_date(self, day: Union[date, datetime]) -> List[DietLogEntry]:
        return self.get_for_date(day)

    def get_weekly_logs(self) -> List[List[DietLogEntry]]:
        return self.get_weekly()

    async def sync_pending(self, push: LogPusher) -> int:
        """Push unsynced entries and mark the acknowledged ones as synced.

        Args:
            push: Coroutine function sending entries to the backend.

        Returns:
            Number of entries marked as synced. Zero if nothing was pending
            or the push failed.
        """
        pending = self.get_unsynced()
        if not pending:
            return 0

        try:
            acknowledged = set(await push(pending))
        except Exception as e:
            logger.warning(f"Failed to sync {len(pending)} diet logs: {e}")
            return 0

        pending_ids = {entry.id for entry in pending}
        synced = acknowledged & pending_ids
        if synced and self.mark_synced(synced):
            logger.info(f"Synced {len(synced)} of {len(pending)} diet logs")
            return len(synced)
        return 0


class DietLocalStorage:
    """All locally persisted diet data: logs, goals and cached food items."""

    def __init__(
        self,
        store: KeyValueStore,
        clock: Optional[Clock] = None,
        tz: Optional[tzinfo] = None,
    ):
        self.logs = DietLogCache(store, clock=clock, tz=tz)
        self.goals = DocumentCache(store, GOALS_KEY, DietGoals, default=DietGoals)
        self.food_items = ListDocumentCache(store, FOOD_ITEMS_KEY, FoodItem)

    def load_goals(self) -> DietGoals:
        return self.goals.load()

    def save_goals(self, goals: DietGoals) -> bool:
        return self.goals.save(goals)

    def load_food_items(self) -> List[FoodItem]:
        return self.food_items.load()

    def save_food_items(self, items: List[FoodItem]) -> bool:
        return self.food_items.save(items)

    def clear_all(self) -> bool:
        results = [self.logs.clear(), self.goals.clear(), self.food_items.clear()]
        logger.info("Cleared local diet data")
        return all(results)
