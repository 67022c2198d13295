"""Weather lookups with OpenWeatherMap first and Open-Meteo as the keyless fallback"""
import logging
from collections import OrderedDict
from datetime import date, datetime, timezone
from typing import Dict, List, Optional
from ..schemas.weather import (
    CurrentConditions,
    CurrentWeather,
    DaySummary,
    ForecastCity,
    ForecastDay,
    ForecastEntry,
    WeatherAlert,
    WeatherAlerts,
    WeatherCoordinates,
    WeatherForecast,
)
from ..tools.openweather_api import OpenWeatherMapAPI
from ..tools.weather_api import OpenMeteoAPI, weathercode_to_description
from ..utils.fallback import FallbackChain, ProviderError, ProvidersExhaustedError

logger = logging.getLogger(__name__)

KELVIN_OFFSET = 273.15


class LocationNotFoundError(Exception):
    """Raised when no provider can resolve a city"""
    def __init__(self, city: str):
        self.city = city
        super().__init__(f"City not found: {city}")


def _from_timestamp(value: Optional[float]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


def _to_celsius(value: float, units: str) -> float:
    if units == "imperial":
        return (value - 32) * 5 / 9
    if units == "standard":
        return value - KELVIN_OFFSET
    return value


def day_recommendations(
    avg_temperature: float,
    max_precipitation_probability: float,
    avg_humidity: Optional[float] = None,
    units: str = "metric"
) -> List[str]:
    """
    Packing advice for one forecast day

    Temperature thresholds are in Celsius; values in other unit systems are
    converted before comparison.
    """
    celsius = _to_celsius(avg_temperature, units)
    recommendations = []
    if celsius < 10:
        recommendations.append("Pack warm clothing")
    if celsius > 25:
        recommendations.append("Pack light clothing and sunscreen")
    if max_precipitation_probability > 70:
        recommendations.append("High chance of rain - pack umbrella/raincoat")
    if avg_humidity is not None and avg_humidity > 80:
        recommendations.append("High humidity - stay hydrated")
    return recommendations


class WeatherService:
    """Normalizes current weather, forecasts and alerts across providers"""

    def __init__(
        self,
        openweather: Optional[OpenWeatherMapAPI] = None,
        open_meteo: Optional[OpenMeteoAPI] = None
    ):
        self.openweather = openweather or OpenWeatherMapAPI()
        self.open_meteo = open_meteo or OpenMeteoAPI()

    async def close(self):
        """Close provider clients"""
        await self.openweather.close()
        await self.open_meteo.close()

    @staticmethod
    def _temperature(value: Optional[float], units: str) -> Optional[float]:
        # Open-Meteo has no Kelvin option
        if value is None:
            return None
        return round(value + KELVIN_OFFSET, 2) if units == "standard" else value

    async def _openweather(self, method, city: str, units: str, lang: str) -> Optional[Dict]:
        try:
            return await method(city, units=units, lang=lang)
        except ProviderError as e:
            if e.status_code == 404:
                return None
            raise

    async def _run(self, chain: FallbackChain, city: str):
        try:
            return await chain.run()
        except ProvidersExhaustedError as e:
            if e.any_empty:
                raise LocationNotFoundError(city) from e
            raise

    async def get_current(self, city: str, units: str = "metric", lang: str = "en") -> CurrentWeather:
        """
        Current conditions for a city

        Raises:
            LocationNotFoundError: If no provider knows the city
            ProvidersExhaustedError: If every provider failed
        """
        chain = FallbackChain("current weather")
        chain.add(
            OpenWeatherMapAPI.PROVIDER,
            lambda: self._openweather(self.openweather.get_current, city, units, lang),
            enabled=self.openweather.configured
        )
        chain.add("open-meteo", lambda: self._open_meteo_current(city, units, lang))

        source, result = await self._run(chain, city)
        if source == OpenWeatherMapAPI.PROVIDER:
            return self._normalize_openweather_current(result)
        return result

    def _normalize_openweather_current(self, data: Dict) -> CurrentWeather:
        main = data.get("main", {})
        wind = data.get("wind", {})
        sys = data.get("sys", {})
        conditions = (data.get("weather") or [{}])[0]

        return CurrentWeather(
            city=data.get("name", ""),
            country=sys.get("country"),
            coordinates=WeatherCoordinates(lat=data["coord"]["lat"], lon=data["coord"]["lon"]),
            current=CurrentConditions(
                temperature=main.get("temp"),
                feels_like=main.get("feels_like"),
                humidity=main.get("humidity"),
                pressure=main.get("pressure"),
                description=conditions.get("description"),
                icon=conditions.get("icon"),
                wind_speed=wind.get("speed"),
                wind_direction=wind.get("deg"),
                visibility=data.get("visibility"),
                sunrise=_from_timestamp(sys.get("sunrise")),
                sunset=_from_timestamp(sys.get("sunset"))
            ),
            timestamp=_from_timestamp(data.get("dt")) or datetime.now(timezone.utc),
            source=OpenWeatherMapAPI.PROVIDER
        )

    async def _open_meteo_current(self, city: str, units: str, lang: str) -> Optional[CurrentWeather]:
        location = await self.open_meteo.geocode_city(city, language=lang)
        if not location:
            return None

        data = await self.open_meteo.get_current(location["latitude"], location["longitude"], units=units)
        current = data.get("current") or {}
        daily = data.get("daily") or {}
        sunrise = (daily.get("sunrise") or [None])[0]
        sunset = (daily.get("sunset") or [None])[0]

        return CurrentWeather(
            city=location["name"],
            country=location["country"] or None,
            coordinates=WeatherCoordinates(lat=location["latitude"], lon=location["longitude"]),
            current=CurrentConditions(
                temperature=self._temperature(current.get("temperature_2m"), units),
                feels_like=self._temperature(current.get("apparent_temperature"), units),
                humidity=current.get("relative_humidity_2m"),
                pressure=current.get("surface_pressure"),
                description=weathercode_to_description(current.get("weather_code")),
                wind_speed=current.get("wind_speed_10m"),
                wind_direction=current.get("wind_direction_10m"),
                sunrise=_from_timestamp(sunrise),
                sunset=_from_timestamp(sunset)
            ) if current else None,
            timestamp=_from_timestamp(current.get("time")) or datetime.now(timezone.utc),
            source="open-meteo"
        )

    async def get_forecast(self, city: str, units: str = "metric", lang: str = "en") -> WeatherForecast:
        """
        5-day forecast grouped by day with packing recommendations

        Raises:
            LocationNotFoundError: If no provider knows the city
            ProvidersExhaustedError: If every provider failed
        """
        chain = FallbackChain("weather forecast")
        chain.add(
            OpenWeatherMapAPI.PROVIDER,
            lambda: self._openweather(self.openweather.get_forecast, city, units, lang),
            enabled=self.openweather.configured
        )
        chain.add("open-meteo", lambda: self._open_meteo_forecast(city, units, lang))

        source, result = await self._run(chain, city)
        if source == OpenWeatherMapAPI.PROVIDER:
            return self._normalize_openweather_forecast(result, units)
        return result

    def _normalize_openweather_forecast(self, data: Dict, units: str) -> WeatherForecast:
        city = data.get("city", {})
        days: "OrderedDict[str, List[ForecastEntry]]" = OrderedDict()

        for item in data.get("list", []):
            moment = _from_timestamp(item["dt"])
            main = item.get("main", {})
            conditions = (item.get("weather") or [{}])[0]

            days.setdefault(moment.date().isoformat(), []).append(ForecastEntry(
                time=moment.strftime("%H:%M"),
                temperature=main.get("temp"),
                feels_like=main.get("feels_like"),
                humidity=main.get("humidity"),
                description=conditions.get("description"),
                icon=conditions.get("icon"),
                wind_speed=(item.get("wind") or {}).get("speed"),
                precipitation_probability=(item.get("pop") or 0) * 100
            ))

        forecast = []
        for day_key, entries in days.items():
            avg_temperature = sum(e.temperature for e in entries) / len(entries)
            humidities = [e.humidity for e in entries if e.humidity is not None]
            avg_humidity = sum(humidities) / len(humidities) if humidities else None
            max_precipitation = max(e.precipitation_probability for e in entries)

            forecast.append(ForecastDay(
                date=day_key,
                day_name=date.fromisoformat(day_key).strftime("%A"),
                forecasts=entries,
                summary=DaySummary(
                    avg_temperature=round(avg_temperature, 1),
                    avg_humidity=round(avg_humidity) if avg_humidity is not None else None,
                    max_precipitation_probability=round(max_precipitation),
                    recommendations=day_recommendations(avg_temperature, max_precipitation, avg_humidity, units)
                )
            ))

        return WeatherForecast(
            city=ForecastCity(
                name=city.get("name", ""),
                country=city.get("country"),
                coordinates=WeatherCoordinates(lat=city["coord"]["lat"], lon=city["coord"]["lon"])
            ),
            forecast=forecast,
            generated_at=datetime.now(timezone.utc),
            source=OpenWeatherMapAPI.PROVIDER
        )

    async def _open_meteo_forecast(self, city: str, units: str, lang: str) -> Optional[WeatherForecast]:
        location = await self.open_meteo.geocode_city(city, language=lang)
        if not location:
            return None

        daily = await self.open_meteo.get_daily_forecast(location["latitude"], location["longitude"], units=units, days=5)

        forecast = []
        for day in daily:
            avg_temperature = self._temperature((day["temperature_max"] + day["temperature_min"]) / 2, units)
            precipitation = day["precipitation_probability"]
            forecast.append(ForecastDay(
                date=day["date"],
                day_name=date.fromisoformat(day["date"]).strftime("%A"),
                forecasts=[],
                summary=DaySummary(
                    avg_temperature=round(avg_temperature, 1),
                    avg_humidity=None,
                    max_precipitation_probability=precipitation,
                    recommendations=day_recommendations(avg_temperature, precipitation, None, units)
                )
            ))

        return WeatherForecast(
            city=ForecastCity(
                name=location["name"],
                country=location["country"] or None,
                coordinates=WeatherCoordinates(lat=location["latitude"], lon=location["longitude"])
            ),
            forecast=forecast,
            generated_at=datetime.now(timezone.utc),
            source="open-meteo"
        )

    async def get_alerts(self, city: str, units: str = "metric", lang: str = "en") -> WeatherAlerts:
        """
        Government weather alerts via OpenWeatherMap One Call

        Raises:
            ProviderError: If OpenWeatherMap is not configured or fails
            LocationNotFoundError: If OpenWeatherMap does not know the city
        """
        if not self.openweather.configured:
            raise ProviderError(OpenWeatherMapAPI.PROVIDER, "Weather API key not configured")

        current = await self._openweather(self.openweather.get_current, city, units, lang)
        if current is None:
            raise LocationNotFoundError(city)

        lat, lon = current["coord"]["lat"], current["coord"]["lon"]
        data = await self.openweather.get_alerts(lat, lon, units=units, lang=lang)
        alerts = data.get("alerts") or []

        return WeatherAlerts(
            city=current.get("name", city),
            coordinates=WeatherCoordinates(lat=lat, lon=lon),
            alerts=[
                WeatherAlert(
                    event=alert.get("event"),
                    description=alert.get("description"),
                    start=_from_timestamp(alert.get("start")),
                    end=_from_timestamp(alert.get("end")),
                    severity=(alert.get("tags") or ["Unknown"])[0],
                    sender=alert.get("sender_name")
                )
                for alert in alerts
            ],
            has_alerts=bool(alerts)
        )
