from fastapi import APIRouter, Depends
from starlette.concurrency import run_in_threadpool

from sostrack.dependencies import get_roster_service, get_route_gateway
from sostrack.roster import RosterService
from sostrack.routing.gateway import RouteGateway
from sostrack.schemas import RouteRequest, RouteResult, UserRouteRequest

router = APIRouter(tags=["Directions"])


@router.post("/directions", response_model=RouteResult)
async def get_directions(request: RouteRequest, gateway: RouteGateway = Depends(get_route_gateway)):
    return await gateway.compute_route(request.origin, request.destination, request.mode)


@router.post("/users/{user_id}/directions", response_model=RouteResult)
async def get_directions_to_user(
    user_id: str,
    request: UserRouteRequest,
    roster: RosterService = Depends(get_roster_service),
    gateway: RouteGateway = Depends(get_route_gateway),
):
    """Route from the viewer's position (request.origin) to the user's last known location."""
    user = await run_in_threadpool(roster.get_user, user_id)
    return await gateway.route_to_user(request.origin, user, request.mode)
