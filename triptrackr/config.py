"""Configuration settings using Pydantic"""
from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Weather providers (Open-Meteo needs no key)
    openweather_api_key: Optional[str] = Field(default=None, alias="OPENWEATHER_API_KEY")

    # Google Maps: one shared key, optionally overridden per capability
    google_maps_api_key: Optional[str] = Field(default=None, alias="GOOGLE_MAPS_API_KEY")
    geocode_api_key_override: Optional[str] = Field(default=None, alias="GEOCODE_API_KEY")
    places_api_key_override: Optional[str] = Field(default=None, alias="PLACES_API_KEY")
    routing_api_key_override: Optional[str] = Field(default=None, alias="ROUTING_API_KEY")

    # OpenStreetMap services ask every client to identify itself
    nominatim_user_agent: str = Field(
        default="TripTrackr/1.0 (contact@example.com)",
        alias="NOMINATIM_USER_AGENT"
    )
    default_region: Optional[str] = Field(
        default=None,
        alias="DEFAULT_REGION",
        description="Appended to free-text locations as a second geocoding candidate (e.g. 'India')"
    )

    # Gemini chat assistant
    gemini_api_key: Optional[str] = Field(default=None, alias="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-2.5-flash", alias="GEMINI_MODEL")
    model_temperature: float = 0.4

    # Supabase document store (in-memory storage when unset)
    supabase_url: Optional[str] = Field(default=None, alias="SUPABASE_URL")
    supabase_key: Optional[str] = Field(default=None, alias="SUPABASE_KEY")
    supabase_itinerary_table: str = Field(default="itineraries", alias="SUPABASE_ITINERARY_TABLE")

    # Application Settings
    env: str = Field(default="development", alias="ENV")
    log_level: str = Field(default="info", alias="LOG_LEVEL")
    log_file: Optional[str] = Field(default="logs.txt", alias="LOG_FILE")

    # Security Settings
    request_timeout_seconds: int = Field(default=60, alias="REQUEST_TIMEOUT_SECONDS")
    rate_limit_max_requests: int = Field(default=100, alias="RATE_LIMIT_MAX_REQUESTS")
    rate_limit_window_seconds: int = Field(default=15 * 60, alias="RATE_LIMIT_WINDOW_SECONDS")
    max_city_length: int = Field(default=100, alias="MAX_CITY_LENGTH")

    # Chat history kept per user
    chat_history_max_messages: int = 20
    chat_context_messages: int = 5
    chat_idle_timeout_seconds: int = 60 * 60

    # CORS Settings
    allowed_origins: str = Field(
        default="http://localhost:3000",
        alias="ALLOWED_ORIGINS",
        description="Comma-separated list of allowed origins for CORS"
    )

    class Config:
        env_file = ".env"
        case_sensitive = False
        populate_by_name = True

    @property
    def geocode_api_key(self) -> Optional[str]:
        return self.geocode_api_key_override or self.google_maps_api_key

    @property
    def places_api_key(self) -> Optional[str]:
        return self.places_api_key_override or self.google_maps_api_key

    @property
    def routing_api_key(self) -> Optional[str]:
        return self.routing_api_key_override or self.google_maps_api_key

    @property
    def is_production(self) -> bool:
        return self.env.lower() == "production"

    @property
    def allowed_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


# Global settings instance
settings = Settings()
