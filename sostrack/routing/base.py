from abc import ABC, abstractmethod
from typing import List

from sostrack.schemas import Coordinate, RouteResult, RouteSegment, TravelMode


class RouteProvider(ABC):
    """
    Abstract routing provider.

    Contract:
    - Input: origin and destination coordinates, travel mode, network timeout (seconds)
    - Output: RouteResult with at least one segment
    - Raises NoRoute when the provider answers that there is no route,
      ProviderUnavailable for transport errors, timeouts and any other
      provider-reported failure.
    - Never retries.
    """

    name = "base"

    @abstractmethod
    def directions(
        self,
        origin: Coordinate,
        destination: Coordinate,
        mode: TravelMode,
        timeout: float,
    ) -> RouteResult:
        raise NotImplementedError


def summarize(provider: str, mode: TravelMode, segments: List[RouteSegment], overview_polyline=None) -> RouteResult:
    return RouteResult(
        provider=provider,
        mode=mode,
        distance_meters=sum(s.distance_meters for s in segments),
        duration_seconds=sum(s.duration_seconds for s in segments),
        overview_polyline=overview_polyline,
        segments=segments,
    )
