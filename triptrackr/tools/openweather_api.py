"""OpenWeatherMap API wrapper (current weather, 5-day forecast, alerts)"""
import httpx
from typing import Dict, Optional
from ..config import settings
from ..utils.fallback import ProviderError


class OpenWeatherMapAPI:
    """Wrapper for OpenWeatherMap 2.5 endpoints"""

    BASE_URL = "https://api.openweathermap.org/data/2.5"
    PROVIDER = "openweathermap"

    def __init__(self, api_key: Optional[str] = None, client: Optional[httpx.AsyncClient] = None):
        self.api_key = api_key if api_key is not None else settings.openweather_api_key
        self.client = client or httpx.AsyncClient(timeout=10.0)

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def close(self):
        """Close the HTTP client"""
        await self.client.aclose()

    async def _get(self, path: str, params: Dict) -> Dict:
        if not self.api_key:
            raise ProviderError(self.PROVIDER, "API key not configured")

        try:
            response = await self.client.get(
                f"{self.BASE_URL}/{path}",
                params={**params, "appid": self.api_key}
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            try:
                message = e.response.json().get("message", e.response.text)
            except ValueError:
                message = e.response.text
            raise ProviderError(self.PROVIDER, message, status_code=e.response.status_code)

        return response.json()

    async def get_current(self, city: str, units: str = "metric", lang: str = "en") -> Dict:
        """Current weather by city name"""
        return await self._get("weather", {"q": city, "units": units, "lang": lang})

    async def get_forecast(self, city: str, units: str = "metric", lang: str = "en") -> Dict:
        """5-day forecast in 3-hour steps by city name"""
        return await self._get("forecast", {"q": city, "units": units, "lang": lang})

    async def get_alerts(self, latitude: float, longitude: float, units: str = "metric", lang: str = "en") -> Dict:
        """Government weather alerts via One Call for a coordinate"""
        return await self._get("onecall", {
            "lat": latitude,
            "lon": longitude,
            "units": units,
            "lang": lang,
            "exclude": "current,minutely,hourly,daily"
        })
