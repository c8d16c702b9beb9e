import os

os.environ["DATABASE_URL"] = "sqlite://"

import time
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from sostrack.alerts import AlertChannel
from sostrack.database import init_db, make_engine, make_session_factory
from sostrack.dependencies import (
    get_alert_channel,
    get_location_store,
    get_route_gateway,
)
from sostrack.main import app
from sostrack.routing.base import RouteProvider, summarize
from sostrack.routing.gateway import RouteGateway
from sostrack.schemas import RouteSegment
from sostrack.store import LocationStore


def ts(seconds):
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


class FakeProvider(RouteProvider):
    name = "fake"

    def __init__(self):
        self.calls = []
        self.error = None
        self.delay = 0

    def directions(self, origin, destination, mode, timeout):
        self.calls.append((origin, destination, mode))
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        segment = RouteSegment(
            start=origin,
            end=destination,
            distance_meters=1200,
            duration_seconds=180,
            instruction="Head north",
        )
        return summarize(self.name, mode, [segment])


@pytest.fixture()
def store():
    engine = make_engine("sqlite://")
    init_db(bind=engine)
    yield LocationStore(make_session_factory(engine))
    engine.dispose()


@pytest.fixture()
def channel():
    ch = AlertChannel(queue_size=10)
    yield ch
    ch.close_all()


@pytest.fixture()
def provider():
    return FakeProvider()


@pytest.fixture()
def gateway(provider):
    return RouteGateway(provider, timeout=1.0)


@pytest.fixture()
def client(store, channel, gateway):
    app.dependency_overrides[get_location_store] = lambda: store
    app.dependency_overrides[get_alert_channel] = lambda: channel
    app.dependency_overrides[get_route_gateway] = lambda: gateway
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
