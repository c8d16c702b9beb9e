"""
Settings for the SOS tracker backend.
Loaded from environment variables (and an optional .env file) with pydantic-settings.
"""

from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "SOS Tracker"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Comma separated list of dashboard origins, "*" for any
    CORS_ORIGINS: str = "*"

    # Database
    DATABASE_URL: str = "sqlite:///./sostrack.db"

    # location reports stamped further ahead of server time than this are rejected
    MAX_CLOCK_SKEW_SECONDS: float = 300.0

    # Alert channel
    ALERT_QUEUE_SIZE: int = 100
    ALERT_IDLE_TIMEOUT_SECONDS: Optional[float] = None

    # Routing
    # - ROUTING_PROVIDER: "osrm" (default, no API key) or "google"
    # - GOOGLE_MAPS_API_KEY: only used when provider is "google"
    ROUTING_PROVIDER: str = "osrm"
    OSRM_BASE_URL: str = "https://router.project-osrm.org"
    GOOGLE_MAPS_API_KEY: Optional[str] = None
    ROUTE_TIMEOUT_SECONDS: float = 5.0

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "allow"

    @property
    def database_url(self) -> str:
        url = self.DATABASE_URL
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql://", 1)
        return url

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
