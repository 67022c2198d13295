"""
TripTrackr Backend - travel planning API

- Weather: OpenWeatherMap with Open-Meteo fallback
- Maps: Google Maps Platform with OpenStreetMap fallbacks (Nominatim, Overpass, OSRM)
- Chat: Gemini assistant with rule-based and heuristic fallbacks
- Itineraries: Supabase document store or in-memory storage
- Per-IP rate limiting on /api (100 requests / 15 minutes by default)
"""
import logging
from datetime import datetime, timezone
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from .config import settings
from .middleware import CustomTimeoutMiddleware, RateLimitMiddleware, SecurityHeadersMiddleware
from .routes import chat_router, itineraries_router, maps_router, weather_router
from .schemas.response import HealthResponse
from .utils.database import ItineraryStore, get_itinerary_store
from .utils.errors import validation_error_detail
from .utils.logging_config import configure_logging
from .utils.rate_limiter import InMemoryRateLimiter

configure_logging(settings.log_level, settings.log_file)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="TripTrackr API",
    description="Travel planning backend: weather, maps, AI assistant and itineraries",
    version="1.0.0"
)

rate_limiter = InMemoryRateLimiter(
    max_requests=settings.rate_limit_max_requests,
    window_seconds=settings.rate_limit_window_seconds
)

# Middleware runs bottom to top: CORS first, security headers last
# 1. Security headers (outermost - applied last)
app.add_middleware(SecurityHeadersMiddleware, enable_hsts=settings.is_production)

# 2. Request timeout
app.add_middleware(CustomTimeoutMiddleware, timeout_seconds=settings.request_timeout_seconds)

# 3. Rate limit on /api/*
app.add_middleware(RateLimitMiddleware, limiter=rate_limiter)

# 4. CORS middleware for the browser client
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "x-gemini-key"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report malformed requests as 400 with the shared error body"""
    detail = validation_error_detail(exc.errors())
    logger.info(f"Rejected {request.method} {request.url.path}: {detail['message']}")
    return JSONResponse(status_code=400, content={"detail": detail})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"❌ Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={
            "detail": {
                "error": "InternalServerError",
                "message": "An unexpected error occurred. Please try again.",
                "details": {"original_error": str(exc)}
            }
        }
    )


app.include_router(weather_router)
app.include_router(maps_router)
app.include_router(chat_router)
app.include_router(itineraries_router)


def _health(store: ItineraryStore) -> HealthResponse:
    return HealthResponse(
        status="OK",
        message="TripTrackr API is running",
        timestamp=datetime.now(timezone.utc).isoformat(),
        database=store.name
    )


@app.get("/", response_model=HealthResponse)
async def root(store: ItineraryStore = Depends(get_itinerary_store)):
    """Health check endpoint"""
    return _health(store)


@app.get("/api/health", response_model=HealthResponse)
async def health(store: ItineraryStore = Depends(get_itinerary_store)):
    """Health check endpoint"""
    return _health(store)
