"""
Shared service instances and the FastAPI dependencies that hand them out.
Tests swap them through app.dependency_overrides.
"""

from fastapi import Depends

from sostrack.alerts import AlertChannel
from sostrack.config import settings
from sostrack.database import SessionLocal
from sostrack.roster import RosterService
from sostrack.routing.gateway import RouteGateway
from sostrack.routing.resolver import get_route_provider
from sostrack.store import LocationStore

store = LocationStore(SessionLocal)
channel = AlertChannel(queue_size=settings.ALERT_QUEUE_SIZE)

_gateway = None


def get_location_store() -> LocationStore:
    return store


def get_roster_service(store: LocationStore = Depends(get_location_store)) -> RosterService:
    return RosterService(store)


def get_alert_channel() -> AlertChannel:
    return channel


def get_route_gateway() -> RouteGateway:
    global _gateway
    if _gateway is None:
        _gateway = RouteGateway(get_route_provider(), timeout=settings.ROUTE_TIMEOUT_SECONDS)
    return _gateway
