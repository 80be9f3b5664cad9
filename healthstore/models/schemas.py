"""Pydantic models for locally cached health records.

Persisted field names are camelCase (``measuredAt``, ``deviceUsed``) and
timestamps use a fixed ``YYYY-MM-DDTHH:MM:SSZ`` encoding. Both are part of
the on-disk format and must stay stable across versions.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Optional
from uuid import UUID, uuid4

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def normalize_timestamp(value: datetime) -> datetime:
    """Make a datetime aware (naive means local time), UTC, whole seconds."""
    if value.tzinfo is None:
        value = value.astimezone()
    return value.astimezone(timezone.utc).replace(microsecond=0)


def format_timestamp(value: datetime) -> str:
    return normalize_timestamp(value).strftime(TIMESTAMP_FORMAT)


Timestamp = Annotated[
    datetime,
    AfterValidator(normalize_timestamp),
    PlainSerializer(format_timestamp, return_type=str, when_used="json"),
]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MealType(str, Enum):
    """Meal slot a diet entry was logged against."""

    BREAKFAST = "breakfast"
    MORNING_SNACK = "morning_snack"
    LUNCH = "lunch"
    EVENING_SNACK = "evening_snack"
    DINNER = "dinner"
    LATE_NIGHT = "late_night"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()


class ServingUnit(str, Enum):
    G = "g"
    ML = "ml"
    PIECE = "piece"
    CUP = "cup"
    TBSP = "tbsp"
    TSP = "tsp"
    OZ = "oz"
    BOWL = "bowl"
    PLATE = "plate"


class FoodCategory(str, Enum):
    FRUITS = "fruits"
    VEGETABLES = "vegetables"
    GRAINS = "grains"
    PROTEIN = "protein"
    DAIRY = "dairy"
    BEVERAGES = "beverages"
    SNACKS = "snacks"
    SWEETS = "sweets"
    OTHER = "other"


class CamelModel(BaseModel):
    """Base model persisted with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Reading(CamelModel):
    """Base for records kept in a history cache. Not stored on its own.

    Subclasses declare a ``timestamp`` property returning the event time,
    and may override ``value`` to expose the domain payload.
    """

    id: UUID = Field(default_factory=uuid4, frozen=True)

    @property
    def value(self) -> Any:
        return self


class LegacyHeartRateReading(CamelModel):
    """The single "last reading" record that predates the history list."""

    bpm: int
    measured_at: Timestamp

    @property
    def timestamp(self) -> datetime:
        return self.measured_at

    @property
    def value(self) -> int:
        return self.bpm


class HeartRateMeasurement(Reading):
    """A camera-measured heart rate reading."""

    bpm: int = Field(description="Beats per minute")
    measured_at: Timestamp = Field(default_factory=utc_now)
    confidence: Optional[float] = Field(default=None, description="Signal quality 0-1")
    device_used: Optional[str] = Field(default=None, description="Camera or sensor identifier")
    source: str = Field(default="camera", description="Where the reading came from")

    @property
    def timestamp(self) -> datetime:
        return self.measured_at

    @property
    def value(self) -> int:
        return self.bpm


class DietLogEntry(Reading):
    """A logged food intake entry."""

    food_item_id: Optional[UUID] = None
    meal_type: MealType
    food_name: str
    quantity: float
    serving_unit: ServingUnit
    calories: float
    protein_g: float = 0
    carbs_g: float = 0
    fat_g: float = 0
    fiber_g: Optional[float] = None
    logged_at: Timestamp = Field(default_factory=utc_now)
    notes: Optional[str] = None
    synced: bool = Field(default=False, description="Acknowledged by the remote backend")

    @property
    def timestamp(self) -> datetime:
        return self.logged_at


class FoodItem(CamelModel):
    """A food catalogue entry cached from the backend."""

    id: UUID = Field(default_factory=uuid4)
    name: str
    brand: Optional[str] = None
    serving_size: float
    serving_unit: ServingUnit
    calories: float
    protein_g: float = 0
    carbs_g: float = 0
    fat_g: float = 0
    fiber_g: Optional[float] = None
    sugar_g: Optional[float] = None
    sodium_mg: Optional[float] = None
    is_vegetarian: bool = True
    is_vegan: bool = False
    category: FoodCategory
    created_at: Timestamp = Field(default_factory=utc_now)


class DietGoals(BaseModel):
    """Daily nutrition targets. Persisted with snake_case keys."""

    user_id: Optional[UUID] = None
    daily_calories: int = 2000
    protein_percent: int = 25
    carbs_percent: int = 50
    fat_percent: int = 25
    water_goal_ml: int = 2500
    meal_reminders_enabled: bool = True
    updated_at: Optional[Timestamp] = None

    @property
    def protein_grams(self) -> int:
        return int(self.daily_calories * self.protein_percent / 100 / 4)

    @property
    def carbs_grams(self) -> int:
        return int(self.daily_calories * self.carbs_percent / 100 / 4)

    @property
    def fat_grams(self) -> int:
        return int(self.daily_calories * self.fat_percent / 100 / 9)


class WeatherData(BaseModel):
    """Current conditions returned by the weather lookup."""

    temperature: float = Field(description="Temperature in Celsius")
    humidity: int
    description: str = "Unknown"
    fetched_at: datetime

    def is_expired(self, now: datetime, ttl_seconds: float) -> bool:
        return (now - self.fetched_at).total_seconds() > ttl_seconds
