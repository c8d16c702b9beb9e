import logging
from typing import Any, Dict, List

import requests

from sostrack.errors import NoRoute, ProviderUnavailable
from sostrack.schemas import Coordinate, RouteResult, RouteSegment, TravelMode
from .base import RouteProvider, summarize

logger = logging.getLogger(__name__)

# statuses meaning the request was fine but there is nothing to travel along
NO_ROUTE_STATUSES = {"ZERO_RESULTS", "NOT_FOUND"}


class GoogleDirectionsProvider(RouteProvider):
    """
    Google Maps Directions API provider.

    - Used only when ROUTING_PROVIDER=google AND GOOGLE_MAPS_API_KEY is set.
    - Supports every TravelMode.
    """

    name = "google"
    BASE_URL = "https://maps.googleapis.com/maps/api/directions/json"

    def __init__(self, api_key: str):
        if not api_key:
            raise ValueError("GoogleDirectionsProvider requires an API key")
        self.api_key = api_key

    def directions(self, origin: Coordinate, destination: Coordinate, mode: TravelMode, timeout: float) -> RouteResult:
        params = {
            "origin": f"{origin.lat},{origin.lng}",
            "destination": f"{destination.lat},{destination.lng}",
            "mode": mode.value,
            "key": self.api_key,
        }
        try:
            resp = requests.get(self.BASE_URL, params=params, timeout=timeout)
        except requests.RequestException as e:
            logger.warning(f"Google directions request error: {e}")
            raise ProviderUnavailable(f"Google directions request failed: {e}") from e

        if resp.status_code != 200:
            logger.warning(f"Google directions failed with HTTP {resp.status_code}")
            raise ProviderUnavailable(f"Google directions returned HTTP {resp.status_code}")

        try:
            data: Dict[str, Any] = resp.json()
        except ValueError as e:
            raise ProviderUnavailable("Google directions returned malformed JSON") from e

        status = data.get("status")
        if status in NO_ROUTE_STATUSES:
            raise NoRoute(f"No {mode.value} route found ({status})")
        if status != "OK":
            logger.warning(f"Google directions status {status}: {data.get('error_message')}")
            raise ProviderUnavailable(f"Google directions status {status}")

        routes = data.get("routes") or []
        if not routes:
            raise NoRoute(f"No {mode.value} route found")
        route = routes[0]

        try:
            segments = _segments(route)
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderUnavailable(f"Google directions returned an unexpected route: {e}") from e
        if not segments:
            raise NoRoute(f"No {mode.value} route found")

        overview = (route.get("overview_polyline") or {}).get("points")
        return summarize(self.name, mode, segments, overview)


def _coordinate(loc: Dict[str, Any]) -> Coordinate:
    return Coordinate(lat=loc["lat"], lng=loc["lng"])


def _segments(route: Dict[str, Any]) -> List[RouteSegment]:
    segments = []
    for leg in route.get("legs") or []:
        for step in leg.get("steps") or []:
            segments.append(
                RouteSegment(
                    start=_coordinate(step["start_location"]),
                    end=_coordinate(step["end_location"]),
                    distance_meters=(step.get("distance") or {}).get("value", 0),
                    duration_seconds=(step.get("duration") or {}).get("value", 0),
                    instruction=step.get("html_instructions"),
                    polyline=(step.get("polyline") or {}).get("points"),
                )
            )
    return segments
