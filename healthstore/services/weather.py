"""Current temperature lookup used to adjust the daily hydration goal."""

import logging
from datetime import datetime
from typing import Callable, Optional

import httpx

from healthstore.config import Settings
from healthstore.models.schemas import WeatherData, utc_now
from healthstore.utils.timeout import OperationTimeoutError, run_with_timeout

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openweathermap.org/data/2.5/weather"
DEFAULT_TEMPERATURE_C = 28.0
HEAT_THRESHOLD_C = 30.0
HEAT_MULTIPLIER = 1.2


class WeatherError(Exception):
    """Raised when the weather API cannot be reached or parsed."""

    pass


class WeatherClient:
    """
    Fetch the current temperature from OpenWeatherMap.

    The last result is kept in memory for ``cache_ttl`` seconds. Every
    failure (unknown location, missing API key, HTTP error, timeout) yields
    the default temperature instead of an error.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10.0,
        cache_ttl: float = 3600,
        default_temperature: float = DEFAULT_TEMPERATURE_C,
        clock: Optional[Callable[[], datetime]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the weather client."""
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.cache_ttl = cache_ttl
        self.default_temperature = default_temperature
        self._clock = clock or utc_now
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._cached: Optional[WeatherData] = None

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "WeatherClient":
        return cls(
            api_key=settings.openweather_api_key,
            base_url=settings.openweather_base_url,
            timeout=settings.weather_timeout,
            cache_ttl=settings.weather_cache_ttl,
            default_temperature=settings.default_temperature_c,
            **kwargs,
        )

    async def get_client(self) -> httpx.AsyncClient:
        """Get or create an HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
                headers={"Accept": "application/json"},
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def fetch_weather(self, latitude: float, longitude: float) -> WeatherData:
        """
        Fetch current conditions for a location.

        Raises:
            WeatherError: If the request fails or the response is malformed.
        """
        client = await self.get_client()
        response = await client.get(
            self.base_url,
            params={
                "lat": str(latitude),
                "lon": str(longitude),
                "appid": self.api_key,
                "units": "metric",
            },
        )

        if response.status_code != 200:
            raise WeatherError(f"Weather API returned HTTP {response.status_code}")

        try:
            data = response.json()
            main = data["main"]
            conditions = data.get("weather") or [{}]
            return WeatherData(
                temperature=float(main["temp"]),
                humidity=int(main["humidity"]),
                description=conditions[0].get("description", "Unknown"),
                fetched_at=self._clock(),
            )
        except (ValueError, KeyError, TypeError, IndexError) as e:
            raise WeatherError(f"Malformed weather response: {e}") from e

    async def fetch_current_temperature(
        self,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> float:
        """Current temperature in Celsius, served from cache while fresh."""
        if self._cached and not self._cached.is_expired(self._clock(), self.cache_ttl):
            return self._cached.temperature

        if latitude is None or longitude is None:
            logger.debug("No location available, using default temperature")
            return self.default_temperature

        if not self.api_key:
            logger.debug("Weather API key not configured, using default temperature")
            return self.default_temperature

        try:
            weather = await run_with_timeout(
                self.fetch_weather(latitude, longitude),
                timeout=self.timeout,
                service="weather",
            )
        except (WeatherError, OperationTimeoutError, httpx.HTTPError) as e:
            logger.warning(f"Failed to fetch weather: {e}")
            return self.default_temperature

        self._cached = weather
        return weather.temperature

    def last_known_temperature(self) -> Optional[float]:
        """Last fetched temperature, without a network call."""
        return self._cached.temperature if self._cached else None


def adjust_hydration_goal(goal_ml: int, temperature: Optional[float]) -> int:
    """Raise a hydration goal by 20% when it is hotter than 30°C."""
    if temperature is not None and temperature > HEAT_THRESHOLD_C:
        return int(goal_ml * HEAT_MULTIPLIER)
    return goal_ml
