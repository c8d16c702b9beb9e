import logging
from typing import Optional

from sostrack.config import settings
from .base import RouteProvider
from .google_provider import GoogleDirectionsProvider
from .osrm_provider import OsrmProvider

logger = logging.getLogger(__name__)

_provider_instance: Optional[RouteProvider] = None


def get_route_provider() -> RouteProvider:
    """
    Resolve the active routing provider based on settings.

    Rules:
    - Default: OSRM (no API key required).
    - If ROUTING_PROVIDER='google' AND GOOGLE_MAPS_API_KEY is set: Google Directions.
    - 'google' without a key falls back to OSRM with a warning.
    """
    global _provider_instance
    if _provider_instance is not None:
        return _provider_instance

    provider_name = (settings.ROUTING_PROVIDER or "osrm").lower()

    if provider_name == "google":
        if settings.GOOGLE_MAPS_API_KEY:
            _provider_instance = GoogleDirectionsProvider(api_key=settings.GOOGLE_MAPS_API_KEY)
            logger.info("Routing provider initialized: google")
            return _provider_instance
        logger.warning("ROUTING_PROVIDER=google but GOOGLE_MAPS_API_KEY is not set. Falling back to OSRM.")
    elif provider_name != "osrm":
        logger.warning(f"Unknown ROUTING_PROVIDER '{provider_name}'. Falling back to OSRM.")

    _provider_instance = OsrmProvider(base_url=settings.OSRM_BASE_URL)
    logger.info("Routing provider initialized: osrm")
    return _provider_instance


def reset_route_provider():
    global _provider_instance
    _provider_instance = None
