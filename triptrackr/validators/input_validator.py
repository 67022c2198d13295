"""Input validation for API requests"""
from typing import Optional
from ..config import settings
from ..services.maps_service import parse_coordinates

MAX_SEARCH_RADIUS = 50000
INVALID_CHARS = ['<', '>', '{', '}', '[', ']', '|', '\\']


class ValidationError(Exception):
    """Custom validation error"""
    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


def validate_city(city: str) -> str:
    """
    Validate city name

    Args:
        city: City name

    Returns:
        The trimmed city name

    Raises:
        ValidationError: If city name is invalid
    """
    if not city or city.strip() == "":
        raise ValidationError("City name cannot be empty")

    city = city.strip()

    if len(city) > settings.max_city_length:
        raise ValidationError(
            f"City name too long. Maximum is {settings.max_city_length} characters",
            {"max_length": settings.max_city_length, "provided_length": len(city)}
        )

    # Check for suspicious characters
    if any(char in city for char in INVALID_CHARS):
        raise ValidationError(
            "City name contains invalid characters",
            {"invalid_characters": INVALID_CHARS}
        )

    return city


def validate_search_text(value: str, field: str = "query") -> str:
    """Free-text search input: non-empty, without markup characters"""
    if not value or not value.strip():
        raise ValidationError(f"{field.capitalize()} cannot be empty", {"field": field})
    if any(char in value for char in ('<', '>')):
        raise ValidationError(f"{field.capitalize()} contains invalid characters", {"field": field})
    return value.strip()


def validate_location(location: Optional[str]) -> Optional[str]:
    """
    Validate an optional 'lat,lng' center

    Returns:
        Normalized 'lat,lng' string, or None when no location was given

    Raises:
        ValidationError: If the value is not a coordinate pair in range
    """
    if location is None or not location.strip():
        return None

    coordinates = parse_coordinates(location)
    if coordinates is None:
        raise ValidationError(
            "Location must be formatted as 'lat,lng'",
            {"location": location}
        )

    lat, lng = coordinates
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        raise ValidationError(
            "Location coordinates out of range",
            {"lat": lat, "lng": lng}
        )

    return f"{lat},{lng}"


def validate_radius(radius: float) -> float:
    """
    Validate a search radius in meters

    Raises:
        ValidationError: If radius is not positive or exceeds the maximum
    """
    if radius <= 0:
        raise ValidationError("Radius must be positive", {"radius": radius})
    if radius > MAX_SEARCH_RADIUS:
        raise ValidationError(
            f"Radius too large. Maximum is {MAX_SEARCH_RADIUS} meters",
            {"radius": radius, "max_radius": MAX_SEARCH_RADIUS}
        )
    return radius
