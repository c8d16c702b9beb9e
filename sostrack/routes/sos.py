from fastapi import APIRouter, Depends

from sostrack.alerts import AlertChannel
from sostrack.dependencies import get_alert_channel, get_location_store
from sostrack.schemas import AlertEvent, AlertLocation, AlertReceipt, UserAlertRequest
from sostrack.store import LocationStore

router = APIRouter(prefix="/sos", tags=["SOS"])


# -------------------
# Trigger SOS
# -------------------
@router.post("/trigger", response_model=AlertReceipt)
async def trigger_sos(alert: AlertEvent, channel: AlertChannel = Depends(get_alert_channel)):
    recipients = channel.publish(alert)
    return AlertReceipt(status="SOS broadcast", recipients=recipients)


# -------------------
# Trigger SOS on behalf of a registered user
# -------------------
@router.post("/users/{user_id}", response_model=AlertReceipt)
def trigger_user_sos(
    user_id: str,
    request: UserAlertRequest,
    store: LocationStore = Depends(get_location_store),
    channel: AlertChannel = Depends(get_alert_channel),
):
    user = store.get(user_id)

    location = request.location
    if location is None and user.last_location is not None:
        location = AlertLocation(
            latitude=user.last_location.latitude,
            longitude=user.last_location.longitude,
        )

    alert = AlertEvent(
        name=user.name,
        email=user.email,
        mobile_number=user.mobile_number,
        message=request.message,
        location=location,
    )
    recipients = channel.publish(alert)
    return AlertReceipt(status="SOS broadcast", recipients=recipients)
