"""Pydantic models for structured data."""

from .schemas import (
    DietGoals,
    DietLogEntry,
    FoodCategory,
    FoodItem,
    HeartRateMeasurement,
    LegacyHeartRateReading,
    MealType,
    Reading,
    ServingUnit,
    WeatherData,
)

__all__ = [
    "DietGoals",
    "DietLogEntry",
    "FoodCategory",
    "FoodItem",
    "HeartRateMeasurement",
    "LegacyHeartRateReading",
    "MealType",
    "Reading",
    "ServingUnit",
    "WeatherData",
]
