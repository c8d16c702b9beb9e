"""
Error taxonomy for the tracker.

Every error knows the HTTP status and the machine readable code it is
reported with, so the API layer can map all of them with one handler.
"""

from datetime import datetime


class TrackerError(Exception):
    status_code = 500
    code = "internal_error"

    def __init__(self, message: str = None):
        super().__init__(message or self.__class__.__doc__ or self.code)

    @property
    def message(self) -> str:
        return str(self)


# ----------------------
# Location store
# ----------------------
class UnknownUser(TrackerError):
    """User not found"""
    status_code = 404
    code = "unknown_user"

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User {user_id} not found")


class DuplicateUser(TrackerError):
    """User already registered"""
    status_code = 409
    code = "duplicate_user"

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User {user_id} already registered")


class StaleTimestamp(TrackerError):
    """Location report is older than the stored one"""
    status_code = 409
    code = "stale_timestamp"

    def __init__(self, user_id: str, stored: datetime, offered: datetime):
        self.user_id = user_id
        self.stored = stored
        self.offered = offered
        super().__init__(
            f"Location for user {user_id} at {offered.isoformat()} "
            f"is older than stored {stored.isoformat()}"
        )


class InvalidLocation(TrackerError, ValueError):
    """Latitude or longitude out of range"""
    status_code = 422
    code = "invalid_location"


class ServiceUnavailable(TrackerError):
    """Location store unavailable"""
    status_code = 503
    code = "service_unavailable"


# ----------------------
# Routing
# ----------------------
class RoutingError(TrackerError):
    """Route could not be computed"""


class MissingEndpoint(RoutingError):
    """Origin or destination is missing"""
    status_code = 422
    code = "missing_endpoint"


class InvalidCoordinate(RoutingError, ValueError):
    """Origin or destination is not a valid coordinate"""
    status_code = 422
    code = "invalid_coordinate"


class NoRoute(RoutingError):
    """No route between origin and destination"""
    status_code = 404
    code = "no_route"


class ProviderUnavailable(RoutingError):
    """Routing provider unavailable"""
    status_code = 503
    code = "provider_unavailable"
