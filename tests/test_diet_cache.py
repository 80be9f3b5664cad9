"""Tests for diet log storage, sync marking and the goals / food caches."""

from datetime import date, datetime, timedelta, timezone
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

NOW = datetime(2026, 3, 10, 20, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# Test Fixtures
# =============================================================================


@pytest.fixture
def storage(memory_store, clock):
    from healthstore.cache.diet import DietLocalStorage

    return DietLocalStorage(memory_store, clock=clock, tz=timezone.utc)


@pytest.fixture
def logs(storage):
    return storage.logs


def make_entry(food_name="Dal", calories=180.0, logged_at=NOW, **kwargs):
    from healthstore.models.schemas import DietLogEntry, MealType, ServingUnit

    return DietLogEntry(
        meal_type=kwargs.pop("meal_type", MealType.LUNCH),
        food_name=food_name,
        quantity=kwargs.pop("quantity", 1),
        serving_unit=kwargs.pop("serving_unit", ServingUnit.BOWL),
        calories=calories,
        logged_at=logged_at,
        **kwargs,
    )


# =============================================================================
# Diet logs
# =============================================================================


class TestDietLogs:
    """Tests for adding, updating and deleting logs."""

    def test_add_and_load(self, logs):
        entry = make_entry()

        assert logs.add_log(entry) is True
        assert logs.load_all() == [entry]

    def test_logs_keep_insertion_order(self, logs, memory_store):
        import json

        from healthstore.cache.diet import LOGS_KEY

        first = make_entry("Idli", logged_at=NOW - timedelta(hours=2))
        second = make_entry("Dosa", logged_at=NOW - timedelta(hours=1))
        backdated = make_entry("Vada", logged_at=NOW - timedelta(hours=5))
        for e in (first, second, backdated):
            logs.add_log(e)

        assert [e.food_name for e in logs.load_all()] == ["Idli", "Dosa", "Vada"]
        stored = json.loads(memory_store.get(LOGS_KEY))
        assert [e["foodName"] for e in stored] == ["Idli", "Dosa", "Vada"]

    def test_logs_are_uncapped(self, logs):
        for i in range(250):
            logs.add_log(make_entry(calories=i, logged_at=NOW - timedelta(minutes=i)))

        assert len(logs.load_all()) == 250

    def test_update_log(self, logs):
        entry = make_entry(notes="half portion")
        logs.add_log(entry)

        logs.update_log(entry.model_copy(update={"calories": 90.0}))

        assert logs.load_all()[0].calories == 90.0
        assert logs.load_all()[0].notes == "half portion"

    def test_update_unknown_log_returns_false(self, logs):
        logs.add_log(make_entry())

        assert logs.update_log(make_entry(food_name="Other")) is False
        assert [e.food_name for e in logs.load_all()] == ["Dal"]

    def test_delete_log(self, logs):
        a, b = make_entry("Idli"), make_entry("Dosa")
        logs.add_log(a)
        logs.add_log(b)

        logs.delete_log(a.id)

        assert [e.id for e in logs.load_all()] == [b.id]


class TestSyncMarking:
    """Tests for the unsynced / mark-synced flow."""

    def test_new_entries_are_unsynced(self, logs):
        logs.add_log(make_entry())

        assert len(logs.get_unsynced()) == 1

    def test_mark_synced_excludes_exactly_those_ids(self, logs):
        entries = [make_entry(f"Food {i}") for i in range(4)]
        for e in entries:
            logs.add_log(e)

        logs.mark_synced([entries[0].id, entries[1].id])

        unsynced = logs.get_unsynced()
        assert {e.id for e in unsynced} == {entries[2].id, entries[3].id}
        by_id = {e.id: e for e in unsynced}
        assert by_id[entries[2].id] == entries[2]
        assert by_id[entries[3].id] == entries[3]

    def test_mark_synced_writes_once(self, logs, memory_store):
        from unittest.mock import patch

        entries = [make_entry(f"Food {i}") for i in range(3)]
        for e in entries:
            logs.add_log(e)

        with patch.object(memory_store, "set", wraps=memory_store.set) as mock_set:
            logs.mark_synced([e.id for e in entries])

        assert mock_set.call_count == 1
        assert logs.get_unsynced() == []

    def test_mark_synced_ignores_unknown_ids(self, logs):
        entry = make_entry()
        logs.add_log(entry)

        assert logs.mark_synced([uuid4()]) is True
        assert [e.id for e in logs.get_unsynced()] == [entry.id]


class TestSyncPending:
    """Tests for pushing unsynced logs to the backend."""

    @pytest.mark.asyncio
    async def test_marks_acknowledged_ids(self, logs):
        entries = [make_entry(f"Food {i}") for i in range(3)]
        for e in entries:
            logs.add_log(e)
        push = AsyncMock(return_value=[entries[0].id, entries[2].id])

        synced = await logs.sync_pending(push)

        assert synced == 2
        push.assert_awaited_once()
        assert [e.id for e in logs.get_unsynced()] == [entries[1].id]

    @pytest.mark.asyncio
    async def test_push_failure_marks_nothing(self, logs):
        logs.add_log(make_entry())
        push = AsyncMock(side_effect=ConnectionError("offline"))

        synced = await logs.sync_pending(push)

        assert synced == 0
        assert len(logs.get_unsynced()) == 1

    @pytest.mark.asyncio
    async def test_nothing_pending_skips_push(self, logs):
        push = AsyncMock(return_value=[])

        assert await logs.sync_pending(push) == 0
        push.assert_not_awaited()


class TestDietDateQueries:
    """Scenario: today 09:00, today 18:00, yesterday 10:00."""

    def test_logs_for_date_and_week(self, logs):
        breakfast = make_entry("Poha", logged_at=datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc))
        dinner = make_entry("Roti", logged_at=datetime(2026, 3, 10, 18, 0, tzinfo=timezone.utc))
        yesterday = make_entry("Rice", logged_at=datetime(2026, 3, 9, 10, 0, tzinfo=timezone.utc))
        for e in (breakfast, dinner, yesterday):
            logs.add_log(e)

        today_logs = logs.get_logs_for_date(date(2026, 3, 10))
        weekly = logs.get_weekly_logs()

        assert {e.id for e in today_logs} == {breakfast.id, dinner.id}
        assert len(weekly) == 7
        assert {e.id for e in weekly[0]} == {breakfast.id, dinner.id}
        assert [e.id for e in weekly[1]] == [yesterday.id]

    def test_entries_older_than_a_week_excluded(self, logs):
        logs.add_log(make_entry(logged_at=NOW - timedelta(days=7)))

        assert all(bucket == [] for bucket in logs.get_weekly_logs())


# =============================================================================
# Goals and food items
# =============================================================================


class TestGoalsAndFoodItems:
    """Tests for the single-document caches."""

    def test_goals_default_when_absent(self, storage):
        goals = storage.load_goals()

        assert goals.daily_calories == 2000
        assert goals.water_goal_ml == 2500
        assert goals.protein_grams == 125
        assert goals.fat_grams == 55

    def test_goals_round_trip_with_snake_case_keys(self, storage, memory_store):
        import json

        from healthstore.cache.diet import GOALS_KEY
        from healthstore.models.schemas import DietGoals

        storage.save_goals(DietGoals(daily_calories=1800, updated_at=NOW))

        assert storage.load_goals().daily_calories == 1800
        raw = json.loads(memory_store.get(GOALS_KEY))
        assert raw["daily_calories"] == 1800
        assert raw["updated_at"] == "2026-03-10T20:00:00Z"

    def test_corrupt_goals_fall_back_to_defaults(self, storage, memory_store):
        from healthstore.cache.diet import GOALS_KEY

        memory_store.set(GOALS_KEY, b"{broken")

        assert storage.load_goals().daily_calories == 2000

    def test_food_items_cache(self, storage):
        from healthstore.models.schemas import FoodCategory, FoodItem, ServingUnit

        items = [
            FoodItem(
                name="Banana",
                serving_size=1,
                serving_unit=ServingUnit.PIECE,
                calories=105,
                category=FoodCategory.FRUITS,
                created_at=NOW,
            )
        ]

        assert storage.load_food_items() == []
        storage.save_food_items(items)
        assert storage.load_food_items() == items

    def test_clear_all(self, storage, memory_store):
        from healthstore.models.schemas import DietGoals

        storage.logs.add_log(make_entry())
        storage.save_goals(DietGoals(daily_calories=1500))
        storage.save_food_items([])

        assert storage.clear_all() is True
        assert storage.logs.load_all() == []
        assert storage.load_goals().daily_calories == 2000
        assert storage.load_food_items() == []
