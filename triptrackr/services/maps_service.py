"""Maps features with Google first and OpenStreetMap services as keyless fallbacks"""
import asyncio
import logging
import math
import re
from typing import Iterable, List, Optional, Tuple
from ..config import settings
from ..schemas.maps import (
    AreaSearchResponse,
    Directions,
    GeocodeResult,
    MapsConfig,
    Place,
    PlaceDetails,
    PlaceSearchResponse,
)
from ..tools.google_maps import GoogleMapsAPI
from ..tools.openstreetmap import (
    NominatimAPI,
    OSRMAPI,
    OverpassAPI,
    nominatim_to_place,
    overpass_to_place,
)
from ..utils.fallback import FallbackChain, ProvidersExhaustedError

logger = logging.getLogger(__name__)

# Google place types describing regions rather than visitable places
ADMINISTRATIVE_TYPES = {
    "political",
    "locality",
    "country",
    "sublocality",
    "neighborhood",
    "colloquial_area",
    "route",
    "postal_code",
    "sublocality_level_1",
    "sublocality_level_2",
}
_ADMIN_LEVEL = re.compile(r"^administrative_area_level_\d+$")

# OSM values that mean a region only when paired with the "place" class
OSM_PLACE_VALUES = {
    "city", "state", "region", "province", "county", "district", "quarter", "town",
    "village", "hamlet", "suburb", "island", "archipelago", "continent",
    "municipality", "borough", "state_district",
}

COORDINATES_PATTERN = re.compile(r"^\s*(-?\d+(?:\.\d+)?)\s*,\s*(-?\d+(?:\.\d+)?)\s*$")
OSM_ID_PATTERN = re.compile(r"(?:^|[-_])(node|way|relation)-(\d+)", re.IGNORECASE)

DEFAULT_NEARBY_TYPES = [
    "tourist_attraction", "park", "museum", "art_gallery", "amusement_park", "zoo",
    "aquarium", "point_of_interest", "shopping_mall", "church", "hindu_temple", "mosque",
    "viewpoint", "restaurant", "cafe", "fast_food", "bar", "night_club", "hotel",
    "lodging", "food", "food_court",
]
MAX_NEARBY_TYPES = 12
MAX_GOOGLE_RADIUS = 25000
BOUNDED_SEARCH_TARGET = 25

LODGING_TOURISM = "hotel|guest_house|motel|hostel|apartment|chalet|resort|alpine_hut|camp_site|caravan_site"
LODGING_SELECTORS = [
    f'node["tourism"~"{LODGING_TOURISM}"]',
    f'way["tourism"~"{LODGING_TOURISM}"]',
    f'relation["tourism"~"{LODGING_TOURISM}"]',
]
LODGING_QUERIES = ["hotel", "guest house", "resort", "hostel", "lodging", "motel", "homestay"]

ATTRACTION_SELECTORS = [
    'node["tourism"~"attraction|museum|gallery|viewpoint"]',
    'way["tourism"~"attraction|museum|gallery|viewpoint"]',
    'node["leisure"~"park|garden"]',
    'way["leisure"~"park|garden"]',
    'node["historic"]',
    'way["historic"]',
    'node["natural"~"peak|volcano|waterfall"]',
    'node["amenity"~"restaurant|cafe|fast_food|bar|pub|food_court"]',
    'way["amenity"~"restaurant|cafe|fast_food|bar|pub|food_court"]',
    'node["tourism"~"hotel|guest_house|motel"]',
    'way["tourism"~"hotel|guest_house|motel"]',
    'node["amenity"="place_of_worship"]',
]
ATTRACTION_QUERIES = [
    "tourist attraction", "park", "museum", "zoo", "aquarium",
    "viewpoint", "garden", "historic", "restaurant", "hotel",
]


class PlaceNotFoundError(Exception):
    """Raised when no provider resolves an address or place id"""


class MapsRequestError(Exception):
    """Raised when a request cannot be served with the providers available"""


def is_administrative(types: Iterable[str]) -> bool:
    """
    True for entries describing a region (country, city, state...) rather than a place

    Covers Google's political/administrative types and OSM's "place" class
    values. Other OSM values that merely contain "place" (place_of_worship)
    are not regions.
    """
    lowered = [str(t or "").lower() for t in types or []]
    if any(t in ADMINISTRATIVE_TYPES or _ADMIN_LEVEL.match(t) for t in lowered):
        return True
    return "place" in lowered and any(t in OSM_PLACE_VALUES for t in lowered)


def filter_places(places: Iterable[Place]) -> List[Place]:
    return [place for place in places if not is_administrative(place.types)]


def parse_coordinates(value: Optional[str]) -> Optional[Tuple[float, float]]:
    """Parse 'lat,lng' into floats, or None when the text is not a coordinate pair"""
    if not value:
        return None
    match = COORDINATES_PATTERN.match(value)
    if not match:
        return None
    lat, lng = float(match.group(1)), float(match.group(2))
    if not (math.isfinite(lat) and math.isfinite(lng)):
        return None
    return lat, lng


def bounding_viewbox(lat: float, lng: float, radius: float) -> str:
    """Nominatim viewbox 'left,top,right,bottom' roughly covering radius meters around a point"""
    radius_km = (radius or 5000) / 1000
    delta_lat = radius_km / 111
    delta_lng = radius_km / ((111 * math.cos(math.radians(lat))) or 1)
    return ",".join(f"{v:.6f}" for v in (lng - delta_lng, lat + delta_lat, lng + delta_lng, lat - delta_lat))


def geocoding_candidates(query: str) -> List[str]:
    """The query itself, plus the query qualified with DEFAULT_REGION when one is set"""
    candidates = [query.strip()]
    if settings.default_region:
        candidates.append(f"{query.strip()}, {settings.default_region}")
    return list(dict.fromkeys(c for c in candidates if c))


def dedupe_places(places: Iterable[Place]) -> List[Place]:
    seen = set()
    unique = []
    for place in places:
        if place.place_id in seen:
            continue
        seen.add(place.place_id)
        unique.append(place)
    return unique


class MapsService:
    """Geocoding, place search, directions and area searches across providers"""

    def __init__(
        self,
        google: Optional[GoogleMapsAPI] = None,
        nominatim: Optional[NominatimAPI] = None,
        overpass: Optional[OverpassAPI] = None,
        osrm: Optional[OSRMAPI] = None
    ):
        self.google = google or GoogleMapsAPI()
        self.nominatim = nominatim or NominatimAPI()
        self.overpass = overpass or OverpassAPI()
        self.osrm = osrm or OSRMAPI()

    async def close(self):
        """Close provider clients"""
        await self.google.close()
        await self.nominatim.close()
        await self.overpass.close()
        await self.osrm.close()

    def get_config(self) -> MapsConfig:
        return MapsConfig(
            routing=True,
            routing_provider="GOOGLE" if self.google.routing_key else "OSRM",
            places=bool(self.google.places_key),
            geocoding=bool(self.google.geocode_key)
        )

    async def geocode(self, address: str, language: str = "en") -> GeocodeResult:
        """
        Geocode a free-text address

        Raises:
            PlaceNotFoundError: If no provider resolves the address
            ProvidersExhaustedError: If every provider failed outright
        """
        chain = FallbackChain("geocode")
        chain.add(GoogleMapsAPI.PROVIDER, lambda: self.google.geocode(address, language), enabled=bool(self.google.geocode_key))
        chain.add(NominatimAPI.PROVIDER, lambda: self.nominatim.geocode(address))

        try:
            _, result = await chain.run()
        except ProvidersExhaustedError as e:
            if e.any_empty:
                raise PlaceNotFoundError(f"Unable to geocode address: {address}") from e
            raise
        return result

    async def search_places(
        self,
        query: str,
        location: Optional[str] = None,
        radius: float = 5000,
        place_type: Optional[str] = None,
        language: str = "en",
        minprice: Optional[int] = None,
        maxprice: Optional[int] = None,
        opennow: bool = False,
        source: Optional[str] = None
    ) -> PlaceSearchResponse:
        """
        Text search for places, administrative entries removed

        An empty result is a valid answer; only outright failure of every
        provider raises ProvidersExhaustedError.
        """
        next_page_token = None

        async def google_search():
            nonlocal next_page_token
            places, next_page_token = await self.google.text_search(
                query,
                location=location,
                radius=radius,
                place_type=place_type,
                language=language,
                minprice=minprice,
                maxprice=maxprice,
                opennow=opennow
            )
            return filter_places(places)

        async def nominatim_search():
            items = await self.nominatim.search(query, limit=15, addressdetails=True)
            return filter_places(nominatim_to_place(item) for item in items)

        chain = FallbackChain("place search")
        chain.add(
            GoogleMapsAPI.PROVIDER,
            google_search,
            enabled=bool(self.google.places_key) and (source or "").lower() != "osm"
        )
        chain.add(NominatimAPI.PROVIDER, nominatim_search)

        try:
            provider, places = await chain.run()
        except ProvidersExhaustedError as e:
            if not e.any_empty:
                raise
            provider, places = chain.providers[-1], []

        return PlaceSearchResponse(
            query=query,
            results=places,
            total_results=len(places),
            source=provider,
            next_page_token=next_page_token if provider == GoogleMapsAPI.PROVIDER else None
        )

    async def place_details(self, place_id: str, language: str = "en") -> PlaceDetails:
        """
        Place details by Google place id or an OSM-style id ("osm-node-123")

        Raises:
            MapsRequestError: If the id is not an OSM id and Google is unavailable
            PlaceNotFoundError: If no provider knows the id
            ProvidersExhaustedError: If the providers failed without reporting the place missing
        """
        osm_match = OSM_ID_PATTERN.search(place_id)

        chain = FallbackChain("place details")
        chain.add(
            GoogleMapsAPI.PROVIDER,
            lambda: self.google.place_details(place_id, language=language),
            enabled=bool(self.google.places_key)
        )
        if osm_match:
            chain.add(
                NominatimAPI.PROVIDER,
                lambda: self.nominatim.lookup(osm_match.group(1).lower(), osm_match.group(2))
            )

        if not chain.providers:
            raise MapsRequestError("Place details unavailable without Google key")

        try:
            provider, details = await chain.run()
        except ProvidersExhaustedError as e:
            if e.any_empty:
                raise PlaceNotFoundError(f"Place not found: {place_id}") from e
            raise

        if provider == NominatimAPI.PROVIDER:
            details.place_id = place_id
        return details

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
    ) -> Directions:
        """
        Route between two places

        Raises:
            MapsRequestError: If Google cannot answer and either end is not a 'lat,lng' pair
            ProvidersExhaustedError: If every routing provider failed
        """
        async def osrm_route():
            start = parse_coordinates(origin)
            end = parse_coordinates(destination)
            if not start or not end:
                raise MapsRequestError("Invalid coordinates for routing")
            directions = await self.osrm.route(
                {"lat": start[0], "lng": start[1]},
                {"lat": end[0], "lng": end[1]},
                mode=mode
            )
            directions.start_address = origin
            directions.end_address = destination
            return directions

        chain = FallbackChain("directions")
        chain.add(
            GoogleMapsAPI.PROVIDER,
            lambda: self.google.directions(
                origin,
                destination,
                mode=mode,
                language=language,
                units=units,
                avoid=avoid,
                traffic_model=traffic_model,
                departure_time=departure_time
            ),
            enabled=bool(self.google.routing_key)
        )
        chain.add(OSRMAPI.PROVIDER, osrm_route)

        try:
            _, directions = await chain.run()
        except ProvidersExhaustedError as e:
            if parse_coordinates(origin) is None or parse_coordinates(destination) is None:
                raise MapsRequestError("Invalid coordinates for routing") from e
            raise
        return directions

    async def resolve_center(self, query: str, language: str = "en", use_google: bool = True) -> Optional[str]:
        """
        Resolve free text to a 'lat,lng' center

        Coordinates pass through unchanged. Otherwise each geocoding candidate
        is tried with Google, then with Nominatim (most important match wins).
        """
        coordinates = parse_coordinates(query)
        if coordinates:
            return f"{coordinates[0]},{coordinates[1]}"

        candidates = geocoding_candidates(query)

        if use_google and self.google.geocode_key:
            for candidate in candidates:
                try:
                    result = await self.google.geocode(candidate, language)
                except Exception as e:
                    logger.warning(f"Center lookup via Google failed for '{candidate}': {e}")
                    continue
                if result and result.coordinates.lat is not None:
                    return f"{result.coordinates.lat},{result.coordinates.lng}"

        for candidate in candidates:
            try:
                items = await self.nominatim.search(candidate, limit=5)
            except Exception as e:
                logger.warning(f"Center lookup via Nominatim failed for '{candidate}': {e}")
                continue
            if items:
                best = max(items, key=lambda item: item.get("importance") or 0)
                return f"{best['lat']},{best['lon']}"

        return None

    async def _bounded_search(
        self,
        center: Tuple[float, float],
        radius: float,
        queries: List[str],
        limit: int,
        default_name: str
    ) -> List[Place]:
        viewbox = bounding_viewbox(center[0], center[1], radius)
        places: List[Place] = []
        seen = set()

        for query in queries:
            items = await self.nominatim.search(query, limit=limit, viewbox=viewbox, bounded=True)
            for item in items:
                place = nominatim_to_place(item, default_name=default_name)
                if place.place_id in seen or is_administrative(place.types):
                    continue
                seen.add(place.place_id)
                places.append(place)
            if len(places) >= BOUNDED_SEARCH_TARGET:
                break

        return places

    async def find_accommodations(
        self,
        location: Optional[str] = None,
        query: Optional[str] = None,
        radius: float = 3000,
        language: str = "en"
    ) -> AreaSearchResponse:
        """
        Hotels and other lodging around a point or a named place

        Never raises for provider failures: the result is empty with a note.
        """
        try:
            center = location or await self.resolve_center(query, language)
            coordinates = parse_coordinates(center)
            chain = FallbackChain("accommodations")

            async def nearby_progressive():
                base = radius or 3000
                for step in (base, base * 2, base * 4, MAX_GOOGLE_RADIUS):
                    try:
                        places = await self.google.nearby_search(center, step, place_type="lodging", language=language)
                    except Exception as e:
                        logger.warning(f"Lodging search at {int(min(step, MAX_GOOGLE_RADIUS))}m failed: {e}")
                        continue
                    if places:
                        return places
                return []

            async def text_search():
                if center:
                    places, _ = await self.google.text_search("hotels", location=center, radius=radius, language=language)
                else:
                    places, _ = await self.google.text_search(f"hotels in {query or ''}", language=language)
                return places

            async def overpass_search():
                elements = await self.overpass.around(LODGING_SELECTORS, coordinates[0], coordinates[1], radius, limit=40)
                return [
                    overpass_to_place(element, default_name="Hotel", id_prefix="lodging")
                    for element in elements
                ]

            places_enabled = bool(self.google.places_key)
            chain.add("google-nearby", nearby_progressive, enabled=places_enabled and coordinates is not None)
            chain.add("google-text", text_search, enabled=places_enabled)
            chain.add(OverpassAPI.PROVIDER, overpass_search, enabled=coordinates is not None)
            chain.add(
                NominatimAPI.PROVIDER,
                lambda: self._bounded_search(coordinates, radius, LODGING_QUERIES, 25, "Hotel"),
                enabled=coordinates is not None
            )

            try:
                source, places = await chain.run()
            except ProvidersExhaustedError:
                source, places = "none", []

            return AreaSearchResponse(
                center=center,
                radius=radius,
                results=places,
                total_results=len(places),
                source=source,
                note=None if places else ("No accommodations found nearby" if center else "Unable to resolve location")
            )
        except Exception as e:
            logger.error(f"❌ Accommodation search failed: {type(e).__name__}: {e}")
            return AreaSearchResponse(
                center=None,
                radius=radius,
                results=[],
                total_results=0,
                source="error",
                note="Fallback empty response due to error"
            )

    async def find_nearby(
        self,
        location: Optional[str] = None,
        query: Optional[str] = None,
        radius: float = 5000,
        types: Optional[str] = None,
        language: str = "en",
        source: Optional[str] = None
    ) -> AreaSearchResponse:
        """
        Attractions, food and sights around a point or a named place

        Raises:
            MapsRequestError: If the center cannot be resolved
        """
        use_google = (source or "").lower() != "osm"
        center = location or await self.resolve_center(query or "", language, use_google=use_google)
        coordinates = parse_coordinates(center)
        if not coordinates:
            raise MapsRequestError("Unable to resolve location")

        desired_types = [t.strip() for t in (types.split(",") if types else DEFAULT_NEARBY_TYPES) if t.strip()]

        async def google_fanout():
            async def one_type(place_type: str) -> List[Place]:
                try:
                    return await self.google.nearby_search(center, radius, place_type=place_type, language=language)
                except Exception as e:
                    logger.warning(f"Nearby search for '{place_type}' failed: {e}")
                    return []

            batches = await asyncio.gather(*(one_type(t) for t in desired_types[:MAX_NEARBY_TYPES]))
            return filter_places(dedupe_places(place for batch in batches for place in batch))

        async def overpass_search():
            elements = await self.overpass.around(ATTRACTION_SELECTORS, coordinates[0], coordinates[1], radius, limit=60)
            return filter_places(overpass_to_place(element) for element in elements)

        chain = FallbackChain("nearby")
        chain.add(GoogleMapsAPI.PROVIDER, google_fanout, enabled=bool(self.google.places_key) and use_google)
        chain.add(OverpassAPI.PROVIDER, overpass_search)
        chain.add(
            NominatimAPI.PROVIDER,
            lambda: self._bounded_search(coordinates, radius, ATTRACTION_QUERIES, 20, "Attraction")
        )

        try:
            provider, places = await chain.run()
        except ProvidersExhaustedError:
            provider, places = "none", []

        return AreaSearchResponse(
            center=center,
            radius=radius,
            results=places,
            total_results=len(places),
            source=provider
        )
