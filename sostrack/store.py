"""
Location store: latest known position and online flag per user.

All writes go through this class. The staleness invariant (a report older
than the stored one is rejected) is enforced by a single conditional UPDATE,
so concurrent writers for the same user are serialized by the database and
readers never wait on more than one SELECT.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from sostrack.config import settings
from sostrack.errors import (
    DuplicateUser,
    InvalidLocation,
    ServiceUnavailable,
    StaleTimestamp,
    UnknownUser,
)
from sostrack.models import User, new_user_id
from sostrack.schemas import LocationOut, UserOut

logger = logging.getLogger(__name__)


def to_utc_naive(ts: datetime) -> datetime:
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc).replace(tzinfo=None)
    return ts


def from_utc_naive(ts: datetime) -> datetime:
    return ts.replace(tzinfo=timezone.utc)


def validate_location(latitude: float, longitude: float):
    if latitude is None or longitude is None:
        raise InvalidLocation("Latitude and longitude are required")
    if not -90 <= latitude <= 90:
        raise InvalidLocation(f"Latitude {latitude} out of range [-90, 90]")
    if not -180 <= longitude <= 180:
        raise InvalidLocation(f"Longitude {longitude} out of range [-180, 180]")


def user_to_schema(user: User) -> UserOut:
    last_location = None
    if user.last_location_at is not None:
        last_location = LocationOut(
            latitude=user.last_latitude,
            longitude=user.last_longitude,
            timestamp=from_utc_naive(user.last_location_at),
        )
    return UserOut(
        id=user.id,
        name=user.name,
        mobile_number=user.mobile_number,
        email=user.email,
        age=user.age,
        gender=user.gender,
        is_online=bool(user.is_online),
        last_location=last_location,
    )


class LocationStore:
    def __init__(self, session_factory, max_clock_skew: Optional[float] = None):
        self._session_factory = session_factory
        if max_clock_skew is None:
            max_clock_skew = settings.MAX_CLOCK_SKEW_SECONDS
        self.max_clock_skew = timedelta(seconds=max_clock_skew)

    @contextmanager
    def _session(self):
        db: Session = self._session_factory()
        try:
            yield db
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Location store failure: {e}")
            raise ServiceUnavailable() from e
        finally:
            db.close()

    def _load(self, db: Session, user_id: str) -> User:
        user = db.query(User).filter(User.id == user_id).first()
        if user is None:
            raise UnknownUser(user_id)
        return user

    def add_user(
        self,
        name: str,
        mobile_number: str,
        age: Optional[int] = None,
        gender: Optional[str] = None,
        email: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> UserOut:
        if user_id is None:
            user_id = new_user_id()
        db: Session = self._session_factory()
        try:
            user = User(
                id=user_id,
                name=name,
                mobile_number=mobile_number,
                email=email,
                age=age,
                gender=gender,
                is_online=False,
            )
            db.add(user)
            db.commit()
            db.refresh(user)
            logger.info(f"Registered user {user.id}")
            return user_to_schema(user)
        except IntegrityError as e:
            db.rollback()
            raise DuplicateUser(user_id) from e
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Location store failure: {e}")
            raise ServiceUnavailable() from e
        finally:
            db.close()

    def upsert_location(self, user_id: str, latitude: float, longitude: float, timestamp: datetime) -> UserOut:
        """
        Replace the user's last location and mark them online.

        Raises StaleTimestamp if `timestamp` is older than the stored one,
        InvalidLocation if it is ahead of server time by more than the
        allowed clock skew, UnknownUser if there is no such user.
        """
        validate_location(latitude, longitude)
        ts = to_utc_naive(timestamp)
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        if ts > now + self.max_clock_skew:
            raise InvalidLocation(
                f"Location timestamp {from_utc_naive(ts).isoformat()} is in the future"
            )

        with self._session() as db:
            updated = (
                db.query(User)
                .filter(User.id == user_id)
                .filter(or_(User.last_location_at.is_(None), User.last_location_at <= ts))
                .update(
                    {
                        User.last_latitude: latitude,
                        User.last_longitude: longitude,
                        User.last_location_at: ts,
                        User.is_online: True,
                    },
                    synchronize_session=False,
                )
            )
            if updated == 0:
                db.rollback()
                user = self._load(db, user_id)
                raise StaleTimestamp(user_id, from_utc_naive(user.last_location_at), from_utc_naive(ts))
            db.commit()
            return user_to_schema(self._load(db, user_id))

    def set_online(self, user_id: str, online: bool) -> UserOut:
        with self._session() as db:
            updated = (
                db.query(User)
                .filter(User.id == user_id)
                .update({User.is_online: bool(online)}, synchronize_session=False)
            )
            if updated == 0:
                db.rollback()
                raise UnknownUser(user_id)
            db.commit()
            return user_to_schema(self._load(db, user_id))

    def get(self, user_id: str) -> UserOut:
        with self._session() as db:
            return user_to_schema(self._load(db, user_id))

    def get_all(self) -> List[UserOut]:
        with self._session() as db:
            users = db.query(User).all()
            # converted inside the session so a failure surfaces before anything is returned
            return [user_to_schema(u) for u in users]
