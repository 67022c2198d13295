"""Maps endpoints: geocoding, place search and details, directions, area searches"""
import logging
from typing import Literal, Optional
from fastapi import APIRouter, Depends, Query
from ..schemas.maps import (
    AreaSearchResponse,
    Directions,
    GeocodeResult,
    MapsConfig,
    PlaceDetails,
    PlaceSearchResponse,
)
from ..schemas.response import ErrorResponse
from ..services.maps_service import MapsRequestError, MapsService, PlaceNotFoundError
from ..utils.errors import api_error, internal_error, not_found
from ..validators.input_validator import (
    ValidationError,
    validate_location,
    validate_radius,
    validate_search_text,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/maps", tags=["maps"])

TravelMode = Literal["driving", "walking", "bicycling", "transit"]

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse}
}


async def get_maps_service():
    """Per-request maps service; provider clients are closed afterwards"""
    service = MapsService()
    try:
        yield service
    finally:
        await service.close()


def _bad_request(e: ValidationError):
    return api_error(400, "ValidationError", e.message, e.details)


def _area_inputs(location: Optional[str], query: Optional[str], radius: float):
    try:
        center = validate_location(location)
        text = validate_search_text(query) if query is not None and query.strip() else None
        validate_radius(radius)
    except ValidationError as e:
        raise _bad_request(e)
    if center is None and text is None:
        raise api_error(400, "ValidationError", "Provide either location or query")
    return center, text


@router.get("/config", response_model=MapsConfig)
async def get_config(service: MapsService = Depends(get_maps_service)):
    """Which map capabilities are backed by Google keys"""
    return service.get_config()


@router.get("/geocode/{address}", response_model=GeocodeResult, responses=ERROR_RESPONSES)
async def geocode(
    address: str,
    language: str = Query("en", max_length=10),
    service: MapsService = Depends(get_maps_service)
):
    """Address to coordinates"""
    try:
        address = validate_search_text(address, "address")
    except ValidationError as e:
        raise _bad_request(e)

    try:
        return await service.geocode(address, language=language)
    except PlaceNotFoundError as e:
        raise not_found(str(e))
    except Exception as e:
        logger.error(f"❌ Geocoding failed for '{address}': {e}")
        raise internal_error("Failed to geocode address", e)


@router.get("/places/{query}", response_model=PlaceSearchResponse, responses=ERROR_RESPONSES)
async def search_places(
    query: str,
    location: Optional[str] = None,
    radius: float = 5000,
    type: Optional[str] = Query("establishment", description="Google place type"),
    language: str = Query("en", max_length=10),
    minprice: Optional[int] = Query(None, ge=0, le=4),
    maxprice: Optional[int] = Query(None, ge=0, le=4),
    opennow: bool = False,
    source: Optional[str] = Query(None, description="'osm' skips Google"),
    service: MapsService = Depends(get_maps_service)
):
    """Free-text place search; administrative areas are filtered out"""
    try:
        query = validate_search_text(query)
        location = validate_location(location)
        validate_radius(radius)
    except ValidationError as e:
        raise _bad_request(e)

    try:
        return await service.search_places(
            query,
            location=location,
            radius=radius,
            place_type=type,
            language=language,
            minprice=minprice,
            maxprice=maxprice,
            opennow=opennow,
            source=source
        )
    except Exception as e:
        logger.error(f"❌ Place search failed for '{query}': {e}")
        raise internal_error("Failed to search places", e)


@router.get("/place/{place_id}", response_model=PlaceDetails, responses=ERROR_RESPONSES)
async def get_place_details(
    place_id: str,
    language: str = Query("en", max_length=10),
    service: MapsService = Depends(get_maps_service)
):
    """Details for a Google place id or an OSM id such as 'osm-node-123'"""
    try:
        return await service.place_details(place_id, language=language)
    except MapsRequestError as e:
        raise api_error(400, "InvalidRequest", str(e))
    except PlaceNotFoundError as e:
        raise not_found(str(e))
    except Exception as e:
        logger.error(f"❌ Place details failed for '{place_id}': {e}")
        raise internal_error("Failed to get place details", e)


@router.get("/directions", response_model=Directions, responses=ERROR_RESPONSES)
async def get_directions(
    origin: str = Query(..., min_length=1),
    destination: str = Query(..., min_length=1),
    mode: TravelMode = "driving",
    language: str = Query("en", max_length=10),
    units: Literal["metric", "imperial"] = "metric",
    avoid: Optional[str] = None,
    traffic_model: str = "best_guess",
    departure_time: str = "now",
    service: MapsService = Depends(get_maps_service)
):
    """Route between origin and destination (addresses need Google; OSRM needs 'lat,lng')"""
    try:
        return await service.directions(
            origin,
            destination,
            mode=mode,
            language=language,
            units=units,
            avoid=avoid,
            traffic_model=traffic_model,
            departure_time=departure_time
        )
    except MapsRequestError as e:
        raise api_error(400, "InvalidRequest", str(e), {"origin": origin, "destination": destination})
    except Exception as e:
        logger.error(f"❌ Directions failed: {e}")
        raise internal_error("Failed to get directions", e)


@router.get("/accommodations", response_model=AreaSearchResponse, responses={400: {"model": ErrorResponse}})
async def find_accommodations(
    location: Optional[str] = Query(None, description="'lat,lng'"),
    query: Optional[str] = Query(None, description="Free-text place name"),
    radius: float = 3000,
    language: str = Query("en", max_length=10),
    service: MapsService = Depends(get_maps_service)
):
    """Lodging around a point; provider failures yield an empty result with a note"""
    center, text = _area_inputs(location, query, radius)
    return await service.find_accommodations(location=center, query=text, radius=radius, language=language)


@router.get("/nearby", response_model=AreaSearchResponse, responses={400: {"model": ErrorResponse}})
async def find_nearby(
    location: Optional[str] = Query(None, description="'lat,lng'"),
    query: Optional[str] = Query(None, description="Free-text place name or 'lat,lng'"),
    radius: float = 5000,
    types: Optional[str] = Query(None, description="Comma-separated Google place types"),
    language: str = Query("en", max_length=10),
    source: Optional[str] = Query(None, description="'osm' skips Google"),
    service: MapsService = Depends(get_maps_service)
):
    """Attractions, food and sights around a point"""
    center, text = _area_inputs(location, query, radius)
    try:
        return await service.find_nearby(
            location=center,
            query=text,
            radius=radius,
            types=types,
            language=language,
            source=source
        )
    except MapsRequestError as e:
        raise api_error(400, "InvalidRequest", str(e))
    except Exception as e:
        logger.error(f"❌ Nearby search failed: {e}")
        return AreaSearchResponse(
            center=center,
            radius=radius,
            results=[],
            total_results=0,
            source="error",
            note="Fallback empty response due to error"
        )
