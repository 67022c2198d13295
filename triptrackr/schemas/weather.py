"""Normalized weather shapes returned regardless of the answering provider"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field


class WeatherCoordinates(BaseModel):
    lat: float
    lon: float


class CurrentConditions(BaseModel):
    """Current conditions; fields a provider does not report stay null"""
    temperature: Optional[float] = None
    feels_like: Optional[float] = None
    humidity: Optional[float] = None
    pressure: Optional[float] = None
    description: Optional[str] = None
    icon: Optional[str] = None
    wind_speed: Optional[float] = None
    wind_direction: Optional[float] = None
    visibility: Optional[float] = None
    sunrise: Optional[datetime] = None
    sunset: Optional[datetime] = None


class CurrentWeather(BaseModel):
    """Response for GET /api/weather/{city}"""
    city: str
    country: Optional[str] = None
    coordinates: WeatherCoordinates
    current: Optional[CurrentConditions] = None
    timestamp: datetime
    source: str = Field(..., description="Provider that answered (openweathermap, open-meteo)")


class ForecastEntry(BaseModel):
    """A single 3-hourly forecast slot"""
    time: str
    temperature: float
    feels_like: Optional[float] = None
    humidity: Optional[float] = None
    description: Optional[str] = None
    icon: Optional[str] = None
    wind_speed: Optional[float] = None
    precipitation_probability: float = 0


class DaySummary(BaseModel):
    avg_temperature: float
    avg_humidity: Optional[float] = None
    max_precipitation_probability: float = 0
    recommendations: List[str] = Field(default_factory=list)


class ForecastDay(BaseModel):
    date: str = Field(..., description="Date in YYYY-MM-DD format")
    day_name: str
    forecasts: List[ForecastEntry] = Field(default_factory=list)
    summary: DaySummary


class ForecastCity(BaseModel):
    name: str
    country: Optional[str] = None
    coordinates: WeatherCoordinates


class WeatherForecast(BaseModel):
    """Response for GET /api/weather/forecast/{city}"""
    city: ForecastCity
    forecast: List[ForecastDay]
    generated_at: datetime
    source: str


class WeatherAlert(BaseModel):
    event: Optional[str] = None
    description: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    severity: str = "Unknown"
    sender: Optional[str] = None


class WeatherAlerts(BaseModel):
    """Response for GET /api/weather/alerts/{city}"""
    city: str
    coordinates: WeatherCoordinates
    alerts: List[WeatherAlert] = Field(default_factory=list)
    has_alerts: bool = False
