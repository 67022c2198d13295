"""API routers mounted under /api"""
from .chat import router as chat_router
from .itineraries import router as itineraries_router
from .maps import router as maps_router
from .weather import router as weather_router

__all__ = ["chat_router", "itineraries_router", "maps_router", "weather_router"]
