"""
Route advisor gateway.

Validates the two endpoints, forwards the request to the configured
provider and normalizes every failure into MissingEndpoint,
InvalidCoordinate, NoRoute or ProviderUnavailable. Nothing is cached and
nothing is retried; identical requests are simply asked again.
"""

import asyncio
import functools
import logging
from typing import Any, Optional

from pydantic import ValidationError

from sostrack.errors import InvalidCoordinate, MissingEndpoint, ProviderUnavailable
from sostrack.roster import map_center
from sostrack.schemas import Coordinate, RouteResult, TravelMode, UserOut
from .base import RouteProvider

logger = logging.getLogger(__name__)


def as_coordinate(value: Any, label: str) -> Coordinate:
    if value is None:
        raise MissingEndpoint(f"The {label} is missing")
    if isinstance(value, Coordinate):
        return value
    try:
        return Coordinate.model_validate(value)
    except ValidationError as e:
        raise InvalidCoordinate(f"The {label} is not a valid coordinate: {value!r}") from e


class RouteGateway:
    def __init__(self, provider: RouteProvider, timeout: float = 5.0):
        self.provider = provider
        self.timeout = timeout

    async def compute_route(
        self,
        origin: Optional[Any],
        destination: Optional[Any],
        mode: TravelMode = TravelMode.DRIVING,
    ) -> RouteResult:
        # both endpoints are checked before the provider is contacted
        origin = as_coordinate(origin, "origin")
        destination = as_coordinate(destination, "destination")
        mode = TravelMode(mode)

        loop = asyncio.get_running_loop()
        call = functools.partial(self.provider.directions, origin, destination, mode, self.timeout)
        try:
            result = await asyncio.wait_for(loop.run_in_executor(None, call), self.timeout)
        except asyncio.TimeoutError as e:
            logger.warning(f"Routing provider {self.provider.name} timed out after {self.timeout}s")
            raise ProviderUnavailable(f"Routing provider did not answer within {self.timeout}s") from e

        logger.info(
            f"Route {origin.lat},{origin.lng} -> {destination.lat},{destination.lng} ({mode.value}): "
            f"{result.distance_meters:.0f} m via {result.provider}"
        )
        return result

    async def route_to_user(
        self,
        origin: Optional[Any],
        user: UserOut,
        mode: TravelMode = TravelMode.DRIVING,
    ) -> RouteResult:
        """Route from the viewer's position to the user's last known location."""
        as_coordinate(origin, "origin")
        destination = map_center(user)
        if destination is None:
            raise MissingEndpoint(f"User {user.id} has no known location")
        return await self.compute_route(origin, destination, mode)
