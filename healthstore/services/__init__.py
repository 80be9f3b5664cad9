"""Network-backed services consumed alongside the local caches."""

from healthstore.services.weather import WeatherClient, WeatherError, adjust_hydration_goal

__all__ = ["WeatherClient", "WeatherError", "adjust_hydration_goal"]
