"""OpenStreetMap services: Nominatim geocoding, Overpass queries and OSRM routing"""
import httpx
from typing import Dict, List, Optional
from ..config import settings
from ..schemas.maps import Directions, GeocodeResult, LatLng, Place, PlaceDetails, TextValue
from ..utils.fallback import ProviderError


def _float(value) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def nominatim_to_place(item: Dict, default_name: str = "Place", id_prefix: str = "osm") -> Place:
    """Map a Nominatim search/lookup item onto the shared Place shape"""
    display_name = item.get("display_name") or ""
    return Place(
        place_id=f"{id_prefix}-{item.get('osm_type')}-{item.get('osm_id')}",
        name=display_name.split(",")[0] or item.get("name") or default_name,
        address=display_name,
        coordinates=LatLng(lat=_float(item.get("lat")), lng=_float(item.get("lon"))),
        types=[t for t in (item.get("type"), item.get("class")) if t]
    )


def overpass_to_place(element: Dict, default_name: str = "Attraction", id_prefix: str = "osm") -> Place:
    """Map an Overpass element (node/way/relation with center) onto the shared Place shape"""
    tags = element.get("tags") or {}
    center = element.get("center") or {}
    address = " ".join(
        part for part in (
            tags.get("addr:housenumber"),
            tags.get("addr:street"),
            tags.get("addr:city"),
            tags.get("addr:postcode")
        ) if part
    ) or tags.get("addr:full") or ""

    return Place(
        place_id=f"{id_prefix}-{element.get('type')}-{element.get('id')}",
        name=tags.get("name") or tags.get("name:en") or default_name,
        address=address,
        coordinates=LatLng(
            lat=element.get("lat", center.get("lat")),
            lng=element.get("lon", center.get("lon"))
        ),
        types=[
            tags[key] for key in ("tourism", "historic", "natural", "leisure", "amenity")
            if tags.get(key)
        ]
    )


class NominatimAPI:
    """Wrapper for the Nominatim search and lookup endpoints"""

    BASE_URL = "https://nominatim.openstreetmap.org"
    PROVIDER = "nominatim"

    def __init__(self, client: Optional[httpx.AsyncClient] = None, user_agent: Optional[str] = None):
        self.client = client or httpx.AsyncClient(timeout=10.0)
        self.headers = {"User-Agent": user_agent or settings.nominatim_user_agent}

    async def close(self):
        """Close the HTTP client"""
        await self.client.aclose()

    async def search(
        self,
        query: str,
        limit: int = 1,
        viewbox: Optional[str] = None,
        bounded: bool = False,
        addressdetails: bool = False
    ) -> List[Dict]:
        """Free-text search; returns raw Nominatim items"""
        params = {"format": "jsonv2", "q": query, "limit": limit}
        if viewbox:
            params["viewbox"] = viewbox
        if bounded:
            params["bounded"] = 1
        if addressdetails:
            params["addressdetails"] = 1

        response = await self.client.get(f"{self.BASE_URL}/search", params=params, headers=self.headers)
        response.raise_for_status()
        data = response.json()
        return data if isinstance(data, list) else []

    async def geocode(self, address: str) -> Optional[GeocodeResult]:
        """Geocode an address onto the shared GeocodeResult shape"""
        items = await self.search(address, limit=1)
        if not items:
            return None

        item = items[0]
        return GeocodeResult(
            address=item.get("display_name", address),
            coordinates=LatLng(lat=_float(item.get("lat")), lng=_float(item.get("lon"))),
            place_id=f"osm-{item.get('osm_type')}-{item.get('osm_id')}",
            types=[t for t in (item.get("type"), item.get("class")) if t],
            source=self.PROVIDER
        )

    async def lookup(self, osm_type: str, osm_id: str) -> Optional[PlaceDetails]:
        """Look up a single OSM object, e.g. ("node", "123")"""
        response = await self.client.get(
            f"{self.BASE_URL}/lookup",
            params={
                "format": "jsonv2",
                "osm_ids": f"{osm_type[0].upper()}{osm_id}",
                "addressdetails": 1
            },
            headers=self.headers
        )
        response.raise_for_status()
        data = response.json()

        if not isinstance(data, list) or not data:
            return None

        place = nominatim_to_place(data[0])
        return PlaceDetails(**place.model_dump(), source=self.PROVIDER)


class OverpassAPI:
    """Wrapper for the Overpass API interpreter"""

    URL = "https://overpass-api.de/api/interpreter"
    PROVIDER = "overpass"

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self.client = client or httpx.AsyncClient(timeout=30.0)

    async def close(self):
        """Close the HTTP client"""
        await self.client.aclose()

    async def around(self, selectors: List[str], latitude: float, longitude: float, radius: float, limit: int = 60) -> List[Dict]:
        """
        Run a union of tag selectors around a point

        Args:
            selectors: Overpass statements without the area filter,
                e.g. 'node["tourism"~"museum|gallery"]'
            latitude: Center latitude
            longitude: Center longitude
            radius: Radius in meters
            limit: Maximum number of elements to return

        Returns:
            Raw Overpass elements
        """
        area = f"(around:{int(radius)},{latitude},{longitude})"
        body = "\n".join(f"  {selector}{area};" for selector in selectors)
        query = f"[out:json][timeout:25];\n(\n{body}\n);\nout center {limit};"

        response = await self.client.post(self.URL, data={"data": query})
        response.raise_for_status()
        return response.json().get("elements", [])


class OSRMAPI:
    """Wrapper for the public OSRM routing demo server (no key required)"""

    BASE_URL = "https://router.project-osrm.org/route/v1"
    PROVIDER = "osrm"

    PROFILES = {
        "driving": "driving",
        "walking": "foot",
        "bicycling": "bike",
        "transit": "driving"
    }

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self.client = client or httpx.AsyncClient(timeout=15.0)

    async def close(self):
        """Close the HTTP client"""
        await self.client.aclose()

    async def route(
        self,
        origin: Dict[str, float],
        destination: Dict[str, float],
        mode: str = "driving"
    ) -> Directions:
        """
        Route between two {"lat", "lng"} points

        Raises:
            ProviderError: If OSRM has no route
        """
        profile = self.PROFILES.get(mode, "driving")
        coordinates = f"{origin['lng']},{origin['lat']};{destination['lng']},{destination['lat']}"

        response = await self.client.get(
            f"{self.BASE_URL}/{profile}/{coordinates}",
            params={"overview": "false", "alternatives": "false"}
        )
        response.raise_for_status()
        data = response.json()

        if data.get("code") != "Ok" or not data.get("routes"):
            raise ProviderError(self.PROVIDER, data.get("message") or "No route")

        route = data["routes"][0]
        meters = route.get("distance") or 0
        seconds = route.get("duration") or 0

        return Directions(
            summary="OSRM route",
            distance=TextValue(text=f"{meters / 1000:.1f} km", value=meters),
            duration=TextValue(text=f"{round(seconds / 60)} mins", value=seconds),
            start_address=f"{origin['lat']},{origin['lng']}",
            end_address=f"{destination['lat']},{destination['lng']}",
            source=self.PROVIDER
        )
