import logging
from typing import Any, Dict, List

import requests

from sostrack.errors import NoRoute, ProviderUnavailable
from sostrack.schemas import Coordinate, RouteResult, RouteSegment, TravelMode
from .base import RouteProvider, summarize

logger = logging.getLogger(__name__)

PROFILES = {
    TravelMode.DRIVING: "driving",
    TravelMode.WALKING: "foot",
    TravelMode.BICYCLING: "bike",
}

NO_ROUTE_CODES = {"NoRoute", "NoSegment"}


class OsrmProvider(RouteProvider):
    """
    OSRM routing provider.

    - No API key required (default provider).
    - No transit routing; a transit request is answered with NoRoute.
    - Coordinates go on the wire as lng,lat.
    """

    name = "osrm"

    def __init__(self, base_url: str = "https://router.project-osrm.org", user_agent: str = "sostrack/0.1"):
        self.base_url = base_url.rstrip("/")
        self.user_agent = user_agent

    def directions(self, origin: Coordinate, destination: Coordinate, mode: TravelMode, timeout: float) -> RouteResult:
        profile = PROFILES.get(mode)
        if profile is None:
            raise NoRoute(f"OSRM does not support {mode.value} routing")

        url = (
            f"{self.base_url}/route/v1/{profile}/"
            f"{origin.lng},{origin.lat};{destination.lng},{destination.lat}"
        )
        params = {"overview": "full", "geometries": "polyline", "steps": "true"}
        headers = {"User-Agent": self.user_agent}
        try:
            resp = requests.get(url, params=params, headers=headers, timeout=timeout)
        except requests.RequestException as e:
            logger.warning(f"OSRM request error: {e}")
            raise ProviderUnavailable(f"OSRM request failed: {e}") from e

        # OSRM reports NoRoute with a 400 and a JSON body
        try:
            data: Dict[str, Any] = resp.json()
        except ValueError:
            data = {}

        code = data.get("code")
        if code in NO_ROUTE_CODES:
            raise NoRoute(data.get("message") or f"No {mode.value} route found")
        if resp.status_code != 200 or code != "Ok":
            logger.warning(f"OSRM failed with HTTP {resp.status_code}, code {code}")
            raise ProviderUnavailable(f"OSRM returned HTTP {resp.status_code} ({code})")

        routes = data.get("routes") or []
        if not routes:
            raise NoRoute(f"No {mode.value} route found")
        route = routes[0]

        try:
            segments = _segments(route)
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise ProviderUnavailable(f"OSRM returned an unexpected route: {e}") from e
        if not segments:
            raise NoRoute(f"No {mode.value} route found")

        return summarize(self.name, mode, segments, route.get("geometry"))


def _location(maneuver: Dict[str, Any]) -> Coordinate:
    lng, lat = maneuver["location"]
    return Coordinate(lat=lat, lng=lng)


def _instruction(step: Dict[str, Any]) -> str:
    maneuver = step.get("maneuver") or {}
    parts = [maneuver.get("type"), maneuver.get("modifier")]
    text = " ".join(p for p in parts if p)
    if step.get("name"):
        text = f"{text} onto {step['name']}"
    return text


def _segments(route: Dict[str, Any]) -> List[RouteSegment]:
    steps = [step for leg in route.get("legs") or [] for step in leg.get("steps") or []]
    segments = []
    for i, step in enumerate(steps):
        start = _location(step["maneuver"])
        # a step ends where the next maneuver begins; the arrival step is a point
        end = _location(steps[i + 1]["maneuver"]) if i + 1 < len(steps) else start
        segments.append(
            RouteSegment(
                start=start,
                end=end,
                distance_meters=step.get("distance", 0),
                duration_seconds=step.get("duration", 0),
                instruction=_instruction(step),
                polyline=step.get("geometry"),
            )
        )
    return segments
