"""Classic round endpoints."""

from fastapi import APIRouter, Depends, Query

from api.deps import get_container, respond
from api.schemas import WagerRequest
from infrastructure.service_container import ServiceContainer

router = APIRouter(prefix="/api/rounds", tags=["rounds"])


@router.get("/active")
def active_rounds(container: ServiceContainer = Depends(get_container)):
    return {"rounds": container.round_service.get_active_rounds()}


@router.get("/history")
def previous_rounds(
    limit: int = Query(10, ge=1, le=100), container: ServiceContainer = Depends(get_container)
):
    return {"rounds": container.round_service.get_previous_rounds(limit)}


@router.get("/{round_id}")
def get_round(round_id: int, container: ServiceContainer = Depends(get_container)):
    return respond(container.round_service.get_round(round_id))


@router.get("/{round_id}/wagers")
def round_wagers(round_id: int, container: ServiceContainer = Depends(get_container)):
    return {"wagers": container.wager_service.get_round_wagers(round_id)}


@router.post("/{round_id}/wagers")
def place_wager(
    round_id: int, req: WagerRequest, container: ServiceContainer = Depends(get_container)
):
    result = container.wager_service.place_wager(round_id, req.reddit_id, req.side, req.amount)
    return respond(result)
