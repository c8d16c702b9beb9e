import logging
from datetime import datetime, timezone
from typing import List

from fastapi import APIRouter, Depends, status

from sostrack.dependencies import get_location_store, get_roster_service
from sostrack.errors import StaleTimestamp
from sostrack.roster import RosterService
from sostrack.schemas import LocationReport, PresenceUpdate, UserCreate, UserDetail, UserOut
from sostrack.store import LocationStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Users"])


# -------------------
# Register user
# -------------------
@router.post("/users", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register_user(user: UserCreate, store: LocationStore = Depends(get_location_store)):
    return store.add_user(
        name=user.name,
        mobile_number=user.mobile_number,
        age=user.age,
        gender=user.gender,
        email=user.email,
        user_id=user.id,
    )


# -------------------
# Roster
# -------------------
@router.get("/getAllUsers", response_model=List[UserOut])
@router.get("/users", response_model=List[UserOut])
def get_all_users(roster: RosterService = Depends(get_roster_service)):
    return roster.list_users()


@router.get("/users/{user_id}", response_model=UserDetail)
def get_user(user_id: str, roster: RosterService = Depends(get_roster_service)):
    return roster.get_user(user_id)


# -------------------
# Location and presence reports
# -------------------
@router.put("/users/{user_id}/location", response_model=UserOut)
def report_location(
    user_id: str,
    report: LocationReport,
    store: LocationStore = Depends(get_location_store),
):
    timestamp = report.timestamp or datetime.now(timezone.utc)
    try:
        return store.upsert_location(user_id, report.latitude, report.longitude, timestamp)
    except StaleTimestamp as e:
        logger.info(f"Ignored stale location report: {e}")
        raise


@router.put("/users/{user_id}/presence", response_model=UserOut)
def report_presence(
    user_id: str,
    update: PresenceUpdate,
    store: LocationStore = Depends(get_location_store),
):
    return store.set_online(user_id, update.is_online)
