"""Weather endpoints: current conditions, 5-day forecast and alerts"""
import logging
from typing import Literal
from fastapi import APIRouter, Depends, Query
from ..schemas.response import ErrorResponse
from ..schemas.weather import CurrentWeather, WeatherAlerts, WeatherForecast
from ..services.weather_service import LocationNotFoundError, WeatherService
from ..utils.errors import api_error, internal_error, not_found
from ..utils.fallback import ProviderError
from ..validators.input_validator import ValidationError, validate_city

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/weather", tags=["weather"])

Units = Literal["metric", "imperial", "standard"]

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse}
}


async def get_weather_service():
    """Per-request weather service; provider clients are closed afterwards"""
    service = WeatherService()
    try:
        yield service
    finally:
        await service.close()


def _checked_city(city: str) -> str:
    try:
        return validate_city(city)
    except ValidationError as e:
        raise api_error(400, "ValidationError", e.message, e.details)


@router.get("/forecast/{city}", response_model=WeatherForecast, responses=ERROR_RESPONSES)
async def get_forecast(
    city: str,
    units: Units = Query("metric"),
    lang: str = Query("en", max_length=10),
    service: WeatherService = Depends(get_weather_service)
):
    """
    5-day forecast grouped by day, with packing recommendations per day

    Raises:
        HTTPException: 404 if the city is unknown, 500 if every provider failed
    """
    city = _checked_city(city)
    try:
        return await service.get_forecast(city, units=units, lang=lang)
    except LocationNotFoundError:
        raise not_found(f"City not found: {city}")
    except Exception as e:
        logger.error(f"❌ Weather forecast failed for '{city}': {e}")
        raise internal_error("Failed to fetch weather forecast", e)


@router.get("/alerts/{city}", response_model=WeatherAlerts, responses=ERROR_RESPONSES)
async def get_alerts(
    city: str,
    units: Units = Query("metric"),
    lang: str = Query("en", max_length=10),
    service: WeatherService = Depends(get_weather_service)
):
    """
    Government weather alerts (requires an OpenWeatherMap key)

    Raises:
        HTTPException: 404 if the city is unknown, 500 without a key or on provider failure
    """
    city = _checked_city(city)
    try:
        return await service.get_alerts(city, units=units, lang=lang)
    except LocationNotFoundError:
        raise not_found(f"City not found: {city}")
    except ProviderError as e:
        logger.error(f"❌ Weather alerts failed for '{city}': {e}")
        raise api_error(500, "InternalServerError", e.message, {"provider": e.provider})
    except Exception as e:
        logger.error(f"❌ Weather alerts failed for '{city}': {e}")
        raise internal_error("Failed to fetch weather alerts", e)


@router.get("/{city}", response_model=CurrentWeather, responses=ERROR_RESPONSES)
async def get_current_weather(
    city: str,
    units: Units = Query("metric"),
    lang: str = Query("en", max_length=10),
    service: WeatherService = Depends(get_weather_service)
):
    """
    Current conditions for a city

    Raises:
        HTTPException: 404 if the city is unknown, 500 if every provider failed
    """
    city = _checked_city(city)
    try:
        return await service.get_current(city, units=units, lang=lang)
    except LocationNotFoundError:
        raise not_found(f"City not found: {city}")
    except Exception as e:
        logger.error(f"❌ Current weather failed for '{city}': {e}")
        raise internal_error("Failed to fetch weather data", e)
