"""Shared fixtures: the app wired to in-memory storage and mocked upstream APIs"""
from typing import Callable, Dict, List, Optional, Tuple, Union
import httpx
import pytest
from fastapi.testclient import TestClient
from triptrackr.config import settings
from triptrackr.main import app, rate_limiter
from triptrackr.routes.chat import get_conversation_store, get_gemini
from triptrackr.routes.maps import get_maps_service
from triptrackr.routes.weather import get_weather_service
from triptrackr.services.chat_service import ConversationStore
from triptrackr.services.maps_service import MapsService
from triptrackr.services.weather_service import WeatherService
from triptrackr.tools.google_maps import GoogleMapsAPI
from triptrackr.tools.openstreetmap import NominatimAPI, OSRMAPI, OverpassAPI
from triptrackr.tools.openweather_api import OpenWeatherMapAPI
from triptrackr.tools.weather_api import OpenMeteoAPI
from triptrackr.utils.database import InMemoryItineraryStore, get_itinerary_store

Responder = Union[Dict, List, Callable[[httpx.Request], httpx.Response]]


class FakeUpstream:
    """
    Routes outgoing httpx requests to canned responses

    Routes are matched by host and path prefix in registration order; an
    unmatched request gets a 404 so the code under test sees a provider failure.
    """

    def __init__(self):
        self.routes: List[Tuple[str, str, Responder]] = []
        self.calls: List[httpx.Request] = []

    def add(self, host: str, path: str, responder: Responder) -> "FakeUpstream":
        self.routes.append((host, path, responder))
        return self

    def called(self, host: str, path: str = "/") -> List[httpx.Request]:
        return [r for r in self.calls if r.url.host == host and r.url.path.startswith(path)]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        for host, path, responder in self.routes:
            if request.url.host == host and request.url.path.startswith(path):
                if callable(responder):
                    return responder(request)
                return httpx.Response(200, json=responder)
        return httpx.Response(404, json={"error": "no route"})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


class FakeGemini:
    """Stands in for GeminiAPI; replies are consumed in order, exceptions are raised"""

    def __init__(self, replies: Optional[List] = None):
        self.replies = list(replies or [])
        self.prompts: List[str] = []
        self.histories: List[List[Tuple[str, str]]] = []

    def _next(self):
        reply = self.replies.pop(0) if self.replies else "ok"
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def generate_text(self, prompt: str, system_prompt: Optional[str] = None, history=None) -> str:
        self.prompts.append(prompt)
        self.histories.append(list(history or []))
        return self._next()

    async def generate_json(self, prompt: str, temperature: float = 0.15) -> str:
        self.prompts.append(prompt)
        return self._next()


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Start every test without provider keys, regardless of the local .env"""
    for name in (
        "openweather_api_key",
        "google_maps_api_key",
        "geocode_api_key_override",
        "places_api_key_override",
        "routing_api_key_override",
        "gemini_api_key",
        "default_region",
    ):
        monkeypatch.setattr(settings, name, None)
    monkeypatch.setattr(settings, "env", "development")
    rate_limiter.requests.clear()
    yield
    rate_limiter.requests.clear()


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def keys():
    """Provider keys used by the service overrides; tests set them before requesting"""
    return {"openweather": "", "google": ""}


@pytest.fixture
def store():
    return InMemoryItineraryStore()


@pytest.fixture
def conversations():
    return ConversationStore(max_messages=20, idle_timeout_seconds=3600)


@pytest.fixture
def gemini():
    """Holder for the Gemini stand-in; set gemini["client"] to a FakeGemini to enable AI"""
    return {"client": None}


@pytest.fixture
def use_gemini(gemini):
    """Enable AI features with canned replies; returns the FakeGemini for inspection"""
    def install(replies: Optional[List] = None) -> FakeGemini:
        fake = FakeGemini(replies)
        gemini["client"] = fake
        return fake
    return install


@pytest.fixture
def client(upstream, keys, store, conversations, gemini):
    async def weather_service():
        service = WeatherService(
            OpenWeatherMapAPI(api_key=keys["openweather"], client=upstream.client()),
            OpenMeteoAPI(client=upstream.client())
        )
        try:
            yield service
        finally:
            await service.close()

    async def maps_service():
        service = MapsService(
            GoogleMapsAPI(
                geocode_key=keys["google"],
                places_key=keys["google"],
                routing_key=keys["google"],
                client=upstream.client()
            ),
            NominatimAPI(client=upstream.client(), user_agent="TripTrackr tests"),
            OverpassAPI(client=upstream.client()),
            OSRMAPI(client=upstream.client())
        )
        try:
            yield service
        finally:
            await service.close()

    app.dependency_overrides[get_weather_service] = weather_service
    app.dependency_overrides[get_maps_service] = maps_service
    app.dependency_overrides[get_itinerary_store] = lambda: store
    app.dependency_overrides[get_conversation_store] = lambda: conversations
    app.dependency_overrides[get_gemini] = lambda: gemini["client"]

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
