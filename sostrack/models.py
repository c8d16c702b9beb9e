from sqlalchemy import Column, String, Float, Integer, Boolean, DateTime
import uuid
from sostrack.database import Base


def new_user_id():
    return uuid.uuid4().hex


class User(Base):
    __tablename__ = "users"

    id = Column(String(64), primary_key=True, default=new_user_id)
    name = Column(String, nullable=False)
    mobile_number = Column(String, nullable=False)
    email = Column(String, nullable=True)
    age = Column(Integer, nullable=True)
    gender = Column(String, nullable=True)
    is_online = Column(Boolean, nullable=False, default=False)

    # last known location, always written together
    last_latitude = Column(Float, nullable=True)
    last_longitude = Column(Float, nullable=True)
    last_location_at = Column(DateTime, nullable=True)  # naive UTC
