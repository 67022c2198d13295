"""Maps endpoints with Google first and OpenStreetMap fallbacks"""
from urllib.parse import parse_qs
import httpx
import pytest
from triptrackr.config import settings
from triptrackr.services.maps_service import (
    bounding_viewbox,
    geocoding_candidates,
    is_administrative,
    parse_coordinates,
)

GOOGLE = "maps.googleapis.com"
NOMINATIM = "nominatim.openstreetmap.org"
OVERPASS = "overpass-api.de"
OSRM = "router.project-osrm.org"

EIFFEL = {
    "osm_type": "way",
    "osm_id": 5013364,
    "lat": "48.8582599",
    "lon": "2.2945006",
    "display_name": "Eiffel Tower, Avenue Gustave Eiffel, Paris, France",
    "class": "tourism",
    "type": "attraction",
    "importance": 0.7
}


def google_place(place_id, name, types, lat=48.86, lng=2.29):
    return {
        "place_id": place_id,
        "name": name,
        "formatted_address": f"{name}, Paris",
        "geometry": {"location": {"lat": lat, "lng": lng}},
        "types": types,
        "rating": 4.6
    }


def test_config_without_google_key(client):
    body = client.get("/api/maps/config").json()

    assert body == {"routing": True, "routing_provider": "OSRM", "places": False, "geocoding": False}


def test_config_with_google_key(client, keys):
    keys["google"] = "g-key"

    body = client.get("/api/maps/config").json()

    assert body["routing_provider"] == "GOOGLE"
    assert body["places"] is True
    assert body["geocoding"] is True


def test_geocode_uses_nominatim_without_google(client, upstream):
    upstream.add(NOMINATIM, "/search", [EIFFEL])

    response = client.get("/api/maps/geocode/Eiffel Tower")

    assert response.status_code == 200
    body = response.json()
    assert body["source"] == "nominatim"
    assert body["place_id"] == "osm-way-5013364"
    assert body["coordinates"] == {"lat": 48.8582599, "lng": 2.2945006}
    assert upstream.called(NOMINATIM)[0].headers["user-agent"] == "TripTrackr tests"
    assert not upstream.called(GOOGLE)


def test_geocode_falls_back_when_google_is_denied(client, upstream, keys):
    keys["google"] = "g-key"
    upstream.add(GOOGLE, "/maps/api/geocode", {"status": "REQUEST_DENIED", "error_message": "API key invalid"})
    upstream.add(NOMINATIM, "/search", [EIFFEL])

    body = client.get("/api/maps/geocode/Eiffel Tower").json()

    assert body["source"] == "nominatim"
    assert upstream.called(GOOGLE)


def test_geocode_prefers_google(client, upstream, keys):
    keys["google"] = "g-key"
    upstream.add(GOOGLE, "/maps/api/geocode", {
        "status": "OK",
        "results": [{
            "formatted_address": "Champ de Mars, 5 Av. Anatole France, 75007 Paris, France",
            "geometry": {"location": {"lat": 48.8584, "lng": 2.2945}, "location_type": "ROOFTOP"},
            "place_id": "ChIJLU7jZClu5kcR4PcOOO6p3I0",
            "types": ["tourist_attraction"],
            "address_components": [{"long_name": "Paris", "short_name": "Paris", "types": ["locality"]}]
        }]
    })

    body = client.get("/api/maps/geocode/Eiffel Tower").json()

    assert body["source"] == "google"
    assert body["location_type"] == "ROOFTOP"
    assert body["components"][0]["long_name"] == "Paris"
    assert not upstream.called(NOMINATIM)


def test_geocode_unknown_address_is_404(client, upstream):
    upstream.add(NOMINATIM, "/search", [])

    response = client.get("/api/maps/geocode/qwertyuiopasdf")

    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "NotFound"


def test_place_search_filters_administrative_results(client, upstream, keys):
    keys["google"] = "g-key"
    upstream.add(GOOGLE, "/maps/api/place/textsearch", {
        "status": "OK",
        "results": [
            google_place("louvre", "Louvre Museum", ["museum", "point_of_interest"]),
            google_place("paris", "Paris", ["locality", "political"]),
            google_place("idf", "Île-de-France", ["administrative_area_level_1", "political"]),
        ],
        "next_page_token": "next-123"
    })

    body = client.get("/api/maps/places/museums in paris").json()

    assert body["source"] == "google"
    assert [p["place_id"] for p in body["results"]] == ["louvre"]
    assert body["total_results"] == 1
    assert body["next_page_token"] == "next-123"


def test_place_search_osm_source_skips_google(client, upstream, keys):
    keys["google"] = "g-key"
    upstream.add(NOMINATIM, "/search", [
        EIFFEL,
        {"osm_type": "relation", "osm_id": 7444, "lat": "48.85", "lon": "2.35",
         "display_name": "Paris, France", "class": "place", "type": "city"},
    ])

    body = client.get("/api/maps/places/paris sights", params={"source": "osm"}).json()

    assert body["source"] == "nominatim"
    assert [p["name"] for p in body["results"]] == ["Eiffel Tower"]
    assert body["next_page_token"] is None
    assert not upstream.called(GOOGLE)


def test_place_search_with_no_results_is_empty_200(client, upstream):
    upstream.add(NOMINATIM, "/search", [])

    response = client.get("/api/maps/places/nothing here")

    assert response.status_code == 200
    assert response.json()["results"] == []


def test_place_search_rejects_bad_location(client):
    response = client.get("/api/maps/places/cafes", params={"location": "north pole"})

    assert response.status_code == 400


def test_place_details_for_osm_id_without_google(client, upstream):
    upstream.add(NOMINATIM, "/lookup", [EIFFEL])

    response = client.get("/api/maps/place/osm-way-5013364")

    assert response.status_code == 200
    body = response.json()
    assert body["place_id"] == "osm-way-5013364"
    assert body["name"] == "Eiffel Tower"
    assert body["source"] == "nominatim"
    assert upstream.called(NOMINATIM, "/lookup")[0].url.params["osm_ids"] == "W5013364"


def test_place_details_accepts_prefixed_osm_ids(client, upstream):
    upstream.add(NOMINATIM, "/lookup", [EIFFEL])

    body = client.get("/api/maps/place/lodging-node-42").json()

    assert body["place_id"] == "lodging-node-42"
    assert upstream.called(NOMINATIM, "/lookup")[0].url.params["osm_ids"] == "N42"


def test_place_details_for_google_id_without_key_is_400(client):
    response = client.get("/api/maps/place/ChIJLU7jZClu5kcR4PcOOO6p3I0")

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "InvalidRequest"


def test_place_details_unknown_osm_id_is_404(client, upstream):
    upstream.add(NOMINATIM, "/lookup", [])

    assert client.get("/api/maps/place/osm-node-1").status_code == 404


def test_place_details_google_outage_is_500(client, upstream, keys):
    keys["google"] = "g-key"
    upstream.add(GOOGLE, "/maps/api/place/details", lambda request: httpx.Response(503, text="unavailable"))

    response = client.get("/api/maps/place/ChIJabc123")

    assert response.status_code == 500
    assert response.json()["detail"]["message"] == "Failed to get place details"


def test_place_details_google_not_found_is_404(client, upstream, keys):
    keys["google"] = "g-key"
    upstream.add(GOOGLE, "/maps/api/place/details", {"status": "NOT_FOUND"})

    response = client.get("/api/maps/place/ChIJabc123")

    assert response.status_code == 404
    assert response.json()["detail"]["message"] == "Place not found: ChIJabc123"


def test_directions_with_osrm(client, upstream):
    upstream.add(OSRM, "/route/v1/foot/", {
        "code": "Ok",
        "routes": [{"distance": 12340, "duration": 754}]
    })

    response = client.get("/api/maps/directions", params={
        "origin": "48.8584,2.2945",
        "destination": "48.8606,2.3376",
        "mode": "walking"
    })

    assert response.status_code == 200
    body = response.json()
    assert body["source"] == "osrm"
    assert body["distance"] == {"text": "12.3 km", "value": 12340}
    assert body["duration"] == {"text": "13 mins", "value": 754}
    assert body["start_address"] == "48.8584,2.2945"
    # OSRM takes lng,lat pairs
    assert upstream.called(OSRM)[0].url.path.endswith("/2.2945,48.8584;2.3376,48.8606")


def test_directions_between_addresses_without_google_is_400(client):
    response = client.get("/api/maps/directions", params={"origin": "Louvre", "destination": "Eiffel Tower"})

    assert response.status_code == 400
    assert response.json()["detail"]["message"] == "Invalid coordinates for routing"


def test_directions_fall_back_to_osrm_when_google_fails(client, upstream, keys):
    keys["google"] = "g-key"
    upstream.add(GOOGLE, "/maps/api/directions", {"status": "OVER_QUERY_LIMIT"})
    upstream.add(OSRM, "/route/v1/driving/", {"code": "Ok", "routes": [{"distance": 1000, "duration": 120}]})

    body = client.get("/api/maps/directions", params={"origin": "1,2", "destination": "3,4"}).json()

    assert body["source"] == "osrm"


def test_nearby_requires_location_or_query(client):
    response = client.get("/api/maps/nearby")

    assert response.status_code == 400
    assert response.json()["detail"]["message"] == "Provide either location or query"


def test_nearby_radius_limits(client):
    assert client.get("/api/maps/nearby", params={"location": "1,2", "radius": 0}).status_code == 400
    assert client.get("/api/maps/nearby", params={"location": "1,2", "radius": 60000}).status_code == 400


def test_nearby_google_results_are_deduplicated(client, upstream, keys):
    keys["google"] = "g-key"

    def nearby(request):
        place_type = request.url.params["type"]
        results = [google_place("louvre", "Louvre Museum", ["museum", "tourist_attraction"])]
        if place_type == "park":
            results.append(google_place("tuileries", "Jardin des Tuileries", ["park"]))
        return httpx.Response(200, json={"status": "OK", "results": results})

    upstream.add(GOOGLE, "/maps/api/place/nearbysearch", nearby)

    body = client.get("/api/maps/nearby", params={
        "location": "48.8606,2.3376",
        "types": "museum,park,tourist_attraction"
    }).json()

    assert body["source"] == "google"
    assert body["center"] == "48.8606,2.3376"
    assert sorted(p["place_id"] for p in body["results"]) == ["louvre", "tuileries"]
    assert len(upstream.called(GOOGLE, "/maps/api/place/nearbysearch")) == 3


def test_nearby_uses_overpass_without_google(client, upstream):
    upstream.add(OVERPASS, "/api/interpreter", {
        "elements": [
            {"type": "node", "id": 1, "lat": 48.86, "lon": 2.33,
             "tags": {"name": "Musée du Louvre", "tourism": "museum",
                      "addr:street": "Rue de Rivoli", "addr:city": "Paris"}},
            {"type": "way", "id": 2, "center": {"lat": 48.863, "lon": 2.327},
             "tags": {"leisure": "park"}},
        ]
    })

    body = client.get("/api/maps/nearby", params={"location": "48.8606,2.3376", "radius": 1000}).json()

    assert body["source"] == "overpass"
    louvre, park = body["results"]
    assert louvre["place_id"] == "osm-node-1"
    assert louvre["address"] == "Rue de Rivoli Paris"
    assert park["name"] == "Attraction"
    assert park["coordinates"] == {"lat": 48.863, "lng": 2.327}
    query = parse_qs(upstream.called(OVERPASS)[0].content.decode())["data"][0]
    assert "around:1000,48.8606,2.3376" in query
    assert query.endswith("out center 60;")


def test_nearby_resolves_query_through_nominatim(client, upstream):
    upstream.add(NOMINATIM, "/search", [
        {**EIFFEL, "lat": "10.0", "lon": "20.0", "importance": 0.2},
        {**EIFFEL, "lat": "48.85", "lon": "2.35", "importance": 0.9},
    ])
    upstream.add(OVERPASS, "/api/interpreter", {"elements": [
        {"type": "node", "id": 9, "lat": 48.85, "lon": 2.35, "tags": {"name": "Notre-Dame", "historic": "cathedral"}}
    ]})

    body = client.get("/api/maps/nearby", params={"query": "Paris"}).json()

    assert body["center"] == "48.85,2.35"
    assert body["results"][0]["name"] == "Notre-Dame"


def test_nearby_unresolvable_query_is_400(client, upstream):
    upstream.add(NOMINATIM, "/search", [])

    response = client.get("/api/maps/nearby", params={"query": "zzzzzz"})

    assert response.status_code == 400
    assert response.json()["detail"]["message"] == "Unable to resolve location"


def test_accommodations_from_overpass(client, upstream):
    upstream.add(OVERPASS, "/api/interpreter", {"elements": [
        {"type": "node", "id": 77, "lat": 9.96, "lon": 76.24, "tags": {"tourism": "guest_house"}}
    ]})

    body = client.get("/api/maps/accommodations", params={"location": "9.9658,76.2421"}).json()

    assert body["source"] == "overpass"
    assert body["results"][0]["place_id"] == "lodging-node-77"
    assert body["results"][0]["name"] == "Hotel"
    assert body["note"] is None


def test_accommodations_google_radius_grows_until_results(client, upstream, keys):
    keys["google"] = "g-key"
    radii = []

    def nearby(request):
        radii.append(request.url.params["radius"])
        if len(radii) < 3:
            return httpx.Response(200, json={"status": "ZERO_RESULTS", "results": []})
        return httpx.Response(200, json={"status": "OK", "results": [google_place("taj", "Taj Hotel", ["lodging"])]})

    upstream.add(GOOGLE, "/maps/api/place/nearbysearch", nearby)

    body = client.get("/api/maps/accommodations", params={"location": "18.92,72.83", "radius": 2000}).json()

    assert body["source"] == "google-nearby"
    assert radii == ["2000", "4000", "8000"]
    assert body["results"][0]["name"] == "Taj Hotel"


def test_accommodations_never_fail(client, upstream):
    upstream.add(OVERPASS, "/", lambda r: httpx.Response(504))
    upstream.add(NOMINATIM, "/", lambda r: httpx.Response(503))

    response = client.get("/api/maps/accommodations", params={"location": "9.9658,76.2421"})

    assert response.status_code == 200
    body = response.json()
    assert body["results"] == []
    assert body["source"] == "none"
    assert body["note"] == "No accommodations found nearby"


def test_parse_coordinates():
    assert parse_coordinates(" 12.5, -70.25 ") == (12.5, -70.25)
    assert parse_coordinates("Paris") is None
    assert parse_coordinates("") is None


@pytest.mark.parametrize("types, expected", [
    (["locality", "political"], True),
    (["administrative_area_level_3"], True),
    (["city", "place"], True),
    (["place_of_worship", "amenity"], False),
    (["museum", "tourism"], False),
])
def test_is_administrative(types, expected):
    assert is_administrative(types) is expected


def test_geocoding_candidates_include_default_region(monkeypatch):
    assert geocoding_candidates("Kochi") == ["Kochi"]

    monkeypatch.setattr(settings, "default_region", "India")
    assert geocoding_candidates(" Kochi ") == ["Kochi", "Kochi, India"]


def test_bounding_viewbox_surrounds_center():
    left, top, right, bottom = (float(v) for v in bounding_viewbox(10.0, 20.0, 11100).split(","))

    assert left < 20.0 < right
    assert bottom < 10.0 < top
    assert top - 10.0 == pytest.approx(0.1, abs=1e-6)
