"""Open-Meteo Weather API integration (100% free, no API key needed)"""
import httpx
from typing import Dict, List, Optional

# Temperature / wind unit parameters matching OpenWeatherMap's unit systems
UNIT_PARAMS = {
    "metric": {"temperature_unit": "celsius", "wind_speed_unit": "ms"},
    "imperial": {"temperature_unit": "fahrenheit", "wind_speed_unit": "mph"},
    "standard": {"temperature_unit": "celsius", "wind_speed_unit": "ms"},
}

WEATHER_CODES = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Foggy",
    48: "Foggy",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    61: "Light rain",
    63: "Moderate rain",
    65: "Heavy rain",
    71: "Light snow",
    73: "Moderate snow",
    75: "Heavy snow",
    77: "Snow grains",
    80: "Light rain showers",
    81: "Moderate rain showers",
    82: "Violent rain showers",
    85: "Light snow showers",
    86: "Heavy snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm with light hail",
    99: "Thunderstorm with heavy hail"
}


def weathercode_to_description(code: Optional[int]) -> str:
    """
    Convert WMO weather code to human-readable description

    WMO codes: https://open-meteo.com/en/docs
    """
    if code is None:
        return "Current conditions"
    return WEATHER_CODES.get(int(code), "Unknown")


class OpenMeteoAPI:
    """
    Free weather API using Open-Meteo
    Docs: https://open-meteo.com/en/docs
    """

    BASE_URL = "https://api.open-meteo.com/v1/forecast"
    GEOCODING_URL = "https://geocoding-api.open-meteo.com/v1/search"

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self.client = client or httpx.AsyncClient(timeout=10.0)

    async def close(self):
        """Close HTTP client"""
        await self.client.aclose()

    async def geocode_city(self, city_name: str, language: str = "en") -> Optional[Dict]:
        """
        Get coordinates for a city

        Args:
            city_name: City name (e.g., "Miami")
            language: Language for the returned place name

        Returns:
            Dict with latitude and longitude, or None if the city is unknown
        """
        params = {
            "name": city_name,
            "count": 1,
            "language": language,
            "format": "json"
        }

        response = await self.client.get(self.GEOCODING_URL, params=params)
        response.raise_for_status()

        data = response.json()

        if not data.get("results"):
            return None

        result = data["results"][0]

        return {
            "latitude": result["latitude"],
            "longitude": result["longitude"],
            "name": result["name"],
            "country": result.get("country_code", result.get("country", "")),
            "state": result.get("admin1", "")
        }

    async def get_current(self, latitude: float, longitude: float, units: str = "metric") -> Dict:
        """
        Get current conditions plus today's sunrise/sunset

        Returns:
            Raw Open-Meteo payload with "current" and "daily" blocks
        """
        params = {
            "latitude": latitude,
            "longitude": longitude,
            "current": ",".join([
                "temperature_2m",
                "apparent_temperature",
                "relative_humidity_2m",
                "surface_pressure",
                "weather_code",
                "wind_speed_10m",
                "wind_direction_10m"
            ]),
            "daily": "sunrise,sunset",
            "forecast_days": 1,
            "timezone": "auto",
            "timeformat": "unixtime",
            **UNIT_PARAMS.get(units, UNIT_PARAMS["metric"])
        }

        response = await self.client.get(self.BASE_URL, params=params)
        response.raise_for_status()
        return response.json()

    async def get_daily_forecast(
        self,
        latitude: float,
        longitude: float,
        units: str = "metric",
        days: int = 5
    ) -> List[Dict]:
        """
        Get a daily forecast

        Returns:
            List of daily forecasts with date, weather, and temperature

        Example return:
        [
            {
                "date": "2025-11-01",
                "weather_description": "Partly cloudy",
                "temperature_max": 31.2,
                "temperature_min": 24.8,
                "precipitation_probability": 20,
                "wind_speed_max": 5.1
            },
            ...
        ]
        """
        params = {
            "latitude": latitude,
            "longitude": longitude,
            "daily": ",".join([
                "weather_code",
                "temperature_2m_max",
                "temperature_2m_min",
                "precipitation_probability_max",
                "wind_speed_10m_max"
            ]),
            "forecast_days": days,
            "timezone": "auto",
            **UNIT_PARAMS.get(units, UNIT_PARAMS["metric"])
        }

        response = await self.client.get(self.BASE_URL, params=params)
        response.raise_for_status()

        daily = response.json().get("daily", {})

        dates = daily.get("time", [])
        weathercodes = daily.get("weather_code", [])
        temps_max = daily.get("temperature_2m_max", [])
        temps_min = daily.get("temperature_2m_min", [])
        precip_prob = daily.get("precipitation_probability_max") or []
        wind_max = daily.get("wind_speed_10m_max") or []

        forecasts = []
        for i in range(min(len(dates), days)):
            forecasts.append({
                "date": dates[i],
                "weather_description": weathercode_to_description(
                    weathercodes[i] if i < len(weathercodes) else None
                ),
                "temperature_max": temps_max[i],
                "temperature_min": temps_min[i],
                "precipitation_probability": (precip_prob[i] if i < len(precip_prob) else None) or 0,
                "wind_speed_max": wind_max[i] if i < len(wind_max) else None
            })

        return forecasts
