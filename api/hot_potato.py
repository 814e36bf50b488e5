"""Hot potato endpoints."""

from fastapi import APIRouter, Depends

from api.deps import get_container, respond
from api.schemas import HotPotatoWagerRequest
from infrastructure.service_container import ServiceContainer

router = APIRouter(prefix="/api/hot-potato", tags=["hot-potato"])


@router.get("/active")
def active_rounds(container: ServiceContainer = Depends(get_container)):
    return {"rounds": container.hot_potato_service.get_active_rounds()}


@router.get("/{round_id}")
def get_round(round_id: int, container: ServiceContainer = Depends(get_container)):
    return respond(container.hot_potato_service.get_round(round_id))


@router.post("/{round_id}/wagers")
def place_wager(
    round_id: int,
    req: HotPotatoWagerRequest,
    container: ServiceContainer = Depends(get_container),
):
    result = container.hot_potato_service.place_hot_potato_wager(
        round_id, req.reddit_id, req.predicted_hours, req.amount
    )
    return respond(result)
