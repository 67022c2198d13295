"""Google Maps Platform wrapper: Geocoding, Places and Directions"""
import httpx
from typing import Dict, List, Optional, Tuple
from ..config import settings
from ..schemas.maps import (
    AddressComponent,
    Directions,
    GeocodeResult,
    LatLng,
    OpeningHours,
    Place,
    PlaceDetails,
    PlacePhoto,
    PlaceReview,
    RouteStep,
    TextValue,
)
from ..utils.fallback import ProviderError

DETAIL_FIELDS = (
    "place_id,name,formatted_address,geometry,rating,user_ratings_total,types,price_level,"
    "opening_hours,photos,website,formatted_phone_number,reviews"
)


def _photos(place: Dict) -> List[PlacePhoto]:
    return [
        PlacePhoto(
            photo_reference=photo.get("photo_reference"),
            height=photo.get("height"),
            width=photo.get("width"),
            html_attributions=photo.get("html_attributions", [])
        )
        for photo in place.get("photos") or []
    ]


def _opening_hours(place: Dict) -> Optional[OpeningHours]:
    hours = place.get("opening_hours")
    if not hours:
        return None
    return OpeningHours(
        open_now=hours.get("open_now"),
        periods=hours.get("periods"),
        weekday_text=hours.get("weekday_text")
    )


def to_place(place: Dict) -> Place:
    """Map a Places API result onto the shared Place shape"""
    location = (place.get("geometry") or {}).get("location") or {}
    return Place(
        place_id=place.get("place_id", ""),
        name=place.get("name", "Place"),
        address=place.get("formatted_address") or place.get("vicinity"),
        coordinates=LatLng(lat=location.get("lat"), lng=location.get("lng")),
        rating=place.get("rating"),
        user_ratings_total=place.get("user_ratings_total"),
        types=place.get("types", []),
        price_level=place.get("price_level"),
        opening_hours=_opening_hours(place),
        photos=_photos(place),
        icon=place.get("icon")
    )


def _text_value(block: Optional[Dict]) -> Optional[TextValue]:
    if not block:
        return None
    return TextValue(text=block.get("text", ""), value=block.get("value", 0))


class GoogleMapsAPI:
    """Wrapper for the Google Maps web service APIs"""

    BASE_URL = "https://maps.googleapis.com/maps/api"
    PROVIDER = "google"

    def __init__(
        self,
        geocode_key: Optional[str] = None,
        places_key: Optional[str] = None,
        routing_key: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.geocode_key = geocode_key if geocode_key is not None else settings.geocode_api_key
        self.places_key = places_key if places_key is not None else settings.places_api_key
        self.routing_key = routing_key if routing_key is not None else settings.routing_api_key
        self.client = client or httpx.AsyncClient(timeout=15.0)

    async def close(self):
        """Close the HTTP client"""
        await self.client.aclose()

    async def _get(
        self,
        path: str,
        params: Dict,
        key: Optional[str],
        timeout: Optional[float] = None,
        empty_statuses: Tuple[str, ...] = ("ZERO_RESULTS",)
    ) -> Dict:
        """
        Call an endpoint and check Google's in-band status

        Returns:
            Response JSON; empty_statuses are returned as-is so callers see no result

        Raises:
            ProviderError: If the key is missing or Google reports anything but OK or one of empty_statuses
        """
        if not key:
            raise ProviderError(self.PROVIDER, "API key not configured")

        request_kwargs = {"params": {**params, "key": key}}
        if timeout is not None:
            request_kwargs["timeout"] = timeout

        response = await self.client.get(f"{self.BASE_URL}/{path}", **request_kwargs)
        response.raise_for_status()
        data = response.json()

        status = data.get("status")
        if status != "OK" and status not in empty_statuses:
            raise ProviderError(self.PROVIDER, data.get("error_message") or str(status))
        return data

    async def geocode(self, address: str, language: str = "en") -> Optional[GeocodeResult]:
        """
        Geocode a free-text address

        Returns:
            First match or None when Google has no result
        """
        data = await self._get("geocode/json", {"address": address, "language": language}, self.geocode_key, timeout=7.0)

        if not data.get("results"):
            return None

        result = data["results"][0]
        geometry = result.get("geometry", {})
        location = geometry.get("location", {})

        return GeocodeResult(
            address=result.get("formatted_address", address),
            coordinates=LatLng(lat=location.get("lat"), lng=location.get("lng")),
            location_type=geometry.get("location_type"),
            viewport=geometry.get("viewport"),
            bounds=geometry.get("bounds"),
            place_id=result.get("place_id"),
            types=result.get("types", []),
            components=[
                AddressComponent(
                    long_name=component.get("long_name", ""),
                    short_name=component.get("short_name", ""),
                    types=component.get("types", [])
                )
                for component in result.get("address_components", [])
            ],
            source=self.PROVIDER
        )

    async def text_search(
        self,
        query: str,
        location: Optional[str] = None,
        radius: Optional[float] = None,
        place_type: Optional[str] = None,
        language: str = "en",
        minprice: Optional[int] = None,
        maxprice: Optional[int] = None,
        opennow: bool = False
    ) -> Tuple[List[Place], Optional[str]]:
        """
        Places Text Search

        Returns:
            Tuple of (places, next_page_token)
        """
        params = {"query": query, "language": language}
        if place_type:
            params["type"] = place_type
        if minprice is not None:
            params["minprice"] = minprice
        if maxprice is not None:
            params["maxprice"] = maxprice
        if opennow:
            params["opennow"] = "true"
        if location:
            params["location"] = location
            if radius:
                params["radius"] = int(radius)

        data = await self._get("place/textsearch/json", params, self.places_key)

        places = [to_place(place) for place in data.get("results", [])]
        return places, data.get("next_page_token")

    async def nearby_search(
        self,
        location: str,
        radius: float,
        place_type: Optional[str] = None,
        language: str = "en",
        timeout: float = 7.0
    ) -> List[Place]:
        """
        Places Nearby Search around a 'lat,lng' center (radius capped at 25 km)
        """
        params = {
            "location": location,
            "radius": int(min(radius, 25000)),
            "language": language
        }
        if place_type:
            params["type"] = place_type

        data = await self._get("place/nearbysearch/json", params, self.places_key, timeout=timeout)
        return [to_place(place) for place in data.get("results", [])]

    async def place_details(self, place_id: str, language: str = "en", fields: str = DETAIL_FIELDS) -> Optional[PlaceDetails]:
        """Place Details by Google place id"""
        data = await self._get(
            "place/details/json",
            {"place_id": place_id, "language": language, "fields": fields},
            self.places_key,
            empty_statuses=("ZERO_RESULTS", "NOT_FOUND")
        )

        result = data.get("result")
        if not result:
            return None

        base = to_place(result)
        return PlaceDetails(
            **base.model_dump(exclude={"place_id"}),
            place_id=result.get("place_id", place_id),
            website=result.get("website"),
            phone=result.get("formatted_phone_number"),
            reviews=[
                PlaceReview(
                    author_name=review.get("author_name"),
                    rating=review.get("rating"),
                    text=review.get("text"),
                    time=review.get("time"),
                    profile_photo_url=review.get("profile_photo_url")
                )
                for review in result.get("reviews") or []
            ],
            source=self.PROVIDER
        )

    async def directions(
        self,
        origin: str,
        destination: str,
        mode: str = "driving",
        language: str = "en",
        units: str = "metric",
        avoid: Optional[str] = None,
        traffic_model: str = "best_guess",
        departure_time: str = "now"
    ) -> Optional[Directions]:
        """
        Directions for the first route and its first leg
        """
        params = {
            "origin": origin,
            "destination": destination,
            "mode": mode,
            "language": language,
            "units": units,
            "traffic_model": traffic_model,
            "departure_time": departure_time
        }
        if avoid:
            params["avoid"] = avoid

        data = await self._get("directions/json", params, self.routing_key)

        if not data.get("routes"):
            return None

        route = data["routes"][0]
        leg = route["legs"][0]

        return Directions(
            summary=route.get("summary", ""),
            distance=_text_value(leg.get("distance")),
            duration=_text_value(leg.get("duration")),
            duration_in_traffic=_text_value(leg.get("duration_in_traffic")),
            start_address=leg.get("start_address", origin),
            end_address=leg.get("end_address", destination),
            steps=[
                RouteStep(
                    instruction=step.get("html_instructions"),
                    distance=_text_value(step.get("distance")),
                    duration=_text_value(step.get("duration")),
                    travel_mode=step.get("travel_mode"),
                    polyline=(step.get("polyline") or {}).get("points")
                )
                for step in leg.get("steps", [])
            ],
            polyline=(route.get("overview_polyline") or {}).get("points"),
            bounds=route.get("bounds"),
            fare=route.get("fare"),
            warnings=route.get("warnings", []),
            source=self.PROVIDER
        )
