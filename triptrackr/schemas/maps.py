"""Normalized place, geocoding and routing shapes"""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class LatLng(BaseModel):
    lat: Optional[float] = None
    lng: Optional[float] = None


class PlacePhoto(BaseModel):
    photo_reference: Optional[str] = None
    height: Optional[int] = None
    width: Optional[int] = None
    html_attributions: List[str] = Field(default_factory=list)


class OpeningHours(BaseModel):
    open_now: Optional[bool] = None
    periods: Optional[List[Dict[str, Any]]] = None
    weekday_text: Optional[List[str]] = None


class Place(BaseModel):
    """A point of interest from Google Places or OpenStreetMap"""
    place_id: str
    name: str
    address: Optional[str] = None
    coordinates: LatLng
    rating: Optional[float] = None
    user_ratings_total: Optional[int] = None
    types: List[str] = Field(default_factory=list)
    price_level: Optional[int] = Field(None, description="Price level 0-4 (0=Free, 4=Very expensive)")
    opening_hours: Optional[OpeningHours] = None
    photos: List[PlacePhoto] = Field(default_factory=list)
    icon: Optional[str] = None


class PlaceReview(BaseModel):
    author_name: Optional[str] = None
    rating: Optional[float] = None
    text: Optional[str] = None
    time: Optional[int] = Field(None, description="Unix timestamp of the review")
    profile_photo_url: Optional[str] = None


class PlaceDetails(Place):
    """Place with contact details and reviews"""
    website: Optional[str] = None
    phone: Optional[str] = None
    reviews: List[PlaceReview] = Field(default_factory=list)
    source: str


class AddressComponent(BaseModel):
    long_name: str
    short_name: str
    types: List[str] = Field(default_factory=list)


class GeocodeResult(BaseModel):
    """Response for GET /api/maps/geocode/{address}"""
    address: str
    coordinates: LatLng
    location_type: Optional[str] = None
    viewport: Optional[Dict[str, Any]] = None
    bounds: Optional[Dict[str, Any]] = None
    place_id: Optional[str] = None
    types: List[str] = Field(default_factory=list)
    components: List[AddressComponent] = Field(default_factory=list)
    source: str


class PlaceSearchResponse(BaseModel):
    """Response for GET /api/maps/places/{query}"""
    query: str
    results: List[Place]
    total_results: int
    source: str
    next_page_token: Optional[str] = None


class TextValue(BaseModel):
    text: str
    value: float


class RouteStep(BaseModel):
    instruction: Optional[str] = None
    distance: Optional[TextValue] = None
    duration: Optional[TextValue] = None
    travel_mode: Optional[str] = None
    polyline: Optional[str] = None


class Directions(BaseModel):
    """Response for GET /api/maps/directions"""
    summary: str
    distance: TextValue
    duration: TextValue
    duration_in_traffic: Optional[TextValue] = None
    start_address: str
    end_address: str
    steps: List[RouteStep] = Field(default_factory=list)
    polyline: Optional[str] = None
    bounds: Optional[Dict[str, Any]] = None
    fare: Optional[Dict[str, Any]] = None
    warnings: List[str] = Field(default_factory=list)
    source: str


class AreaSearchResponse(BaseModel):
    """Response for GET /api/maps/nearby and /api/maps/accommodations"""
    center: Optional[str] = Field(None, description="Resolved search center as 'lat,lng'")
    radius: float
    results: List[Place]
    total_results: int
    source: str
    note: Optional[str] = None


class MapsConfig(BaseModel):
    routing: bool = True
    routing_provider: str
    places: bool
    geocoding: bool
