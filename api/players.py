"""Player account endpoints."""

from fastapi import APIRouter, Depends, Query

from api.deps import get_container, respond
from api.schemas import LoginRequest
from infrastructure.service_container import ServiceContainer

router = APIRouter(prefix="/api", tags=["players"])


@router.post("/players/login")
def login(req: LoginRequest, container: ServiceContainer = Depends(get_container)):
    result = container.player_service.get_or_create_player(
        req.reddit_id, req.reddit_username, req.avatar_url
    )
    return respond(result)


@router.get("/players/{reddit_id}")
def get_player(reddit_id: str, container: ServiceContainer = Depends(get_container)):
    return respond(container.player_service.get_player(reddit_id))


@router.get("/players/{reddit_id}/wagers")
def get_wager_history(
    reddit_id: str,
    limit: int = Query(20, ge=1, le=100),
    container: ServiceContainer = Depends(get_container),
):
    return respond(container.wager_service.get_player_history(reddit_id, limit))


@router.post("/players/{reddit_id}/welfare")
def claim_welfare(reddit_id: str, container: ServiceContainer = Depends(get_container)):
    return respond(container.player_service.claim_welfare(reddit_id))


@router.get("/leaderboard")
def leaderboard(
    limit: int = Query(10, ge=1, le=100), container: ServiceContainer = Depends(get_container)
):
    return {"players": container.player_service.get_leaderboard(limit)}
