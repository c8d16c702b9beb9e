from typing import List, Optional

from sostrack.schemas import Coordinate, UserDetail, UserOut
from sostrack.store import LocationStore


class RosterService:
    """Read side of the roster: all users with their latest known state."""

    def __init__(self, store: LocationStore):
        self.store = store

    def list_users(self) -> List[UserOut]:
        # no filtering or pagination, the store returns a complete snapshot or raises
        return self.store.get_all()

    def get_user(self, user_id: str) -> UserDetail:
        user = self.store.get(user_id)
        return UserDetail(**user.model_dump(), map_center=map_center(user))


def map_center(user: Optional[UserOut]) -> Optional[Coordinate]:
    """Where a map focused on `user` should be centered, None if nowhere."""
    if user is None or user.last_location is None:
        return None
    return Coordinate(lat=user.last_location.latitude, lng=user.last_location.longitude)
