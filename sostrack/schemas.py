from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Python names in code, camelCase names on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# -------------------
# Locations
# -------------------
class Coordinate(CamelModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class LocationOut(CamelModel):
    latitude: float
    longitude: float
    timestamp: datetime


class LocationReport(CamelModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    timestamp: Optional[datetime] = None  # default: now


class PresenceUpdate(CamelModel):
    is_online: bool


# -------------------
# Users
# -------------------
class UserCreate(CamelModel):
    id: Optional[str] = Field(None, min_length=1, max_length=64)
    name: str = Field(..., min_length=1)
    mobile_number: str = Field(..., min_length=1)
    email: Optional[str] = None
    age: Optional[int] = Field(None, ge=0)
    gender: Optional[str] = None


class UserOut(CamelModel):
    id: str
    name: str
    mobile_number: str
    email: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    is_online: bool = False
    last_location: Optional[LocationOut] = None


class UserDetail(UserOut):
    # display only; None when the user never reported a position
    map_center: Optional[Coordinate] = None


# -------------------
# Alerts
# -------------------
class AlertLocation(CamelModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class AlertEvent(CamelModel):
    name: str
    message: str
    email: Optional[str] = None
    mobile_number: Optional[str] = None
    location: Optional[AlertLocation] = None


class UserAlertRequest(CamelModel):
    message: str
    location: Optional[AlertLocation] = None  # default: user's last location


class AlertReceipt(CamelModel):
    status: str
    recipients: int


# -------------------
# Routing
# -------------------
class TravelMode(str, Enum):
    DRIVING = "driving"
    WALKING = "walking"
    BICYCLING = "bicycling"
    TRANSIT = "transit"


class RouteRequest(CamelModel):
    origin: Optional[Coordinate] = None
    destination: Optional[Coordinate] = None
    mode: TravelMode = TravelMode.DRIVING


class UserRouteRequest(CamelModel):
    origin: Optional[Coordinate] = None
    mode: TravelMode = TravelMode.DRIVING


class RouteSegment(CamelModel):
    start: Coordinate
    end: Coordinate
    distance_meters: float
    duration_seconds: float
    instruction: Optional[str] = None
    polyline: Optional[str] = None


class RouteResult(CamelModel):
    provider: str
    mode: TravelMode
    distance_meters: float
    duration_seconds: float
    overview_polyline: Optional[str] = None
    segments: List[RouteSegment] = []
