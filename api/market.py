"""Meme stock market endpoints."""

from fastapi import APIRouter, Depends, Query

from api.deps import get_container, respond
from api.schemas import BuyRequest, SellRequest
from infrastructure.service_container import ServiceContainer

router = APIRouter(prefix="/api/market", tags=["market"])


@router.get("/stocks")
def list_stocks(active_only: bool = True, container: ServiceContainer = Depends(get_container)):
    return {"stocks": container.market_service.list_stocks(active_only)}


@router.post("/buy")
def buy(req: BuyRequest, container: ServiceContainer = Depends(get_container)):
    return respond(container.market_service.buy(req.reddit_id, req.stock_id, req.chip_amount))


@router.post("/sell")
def sell(req: SellRequest, container: ServiceContainer = Depends(get_container)):
    return respond(container.market_service.sell(req.reddit_id, req.stock_id, req.shares))


@router.get("/portfolio/{reddit_id}")
def portfolio(reddit_id: str, container: ServiceContainer = Depends(get_container)):
    return respond(container.market_service.get_portfolio(reddit_id))


@router.get("/trades/{reddit_id}")
def trades(
    reddit_id: str,
    limit: int = Query(20, ge=1, le=100),
    container: ServiceContainer = Depends(get_container),
):
    return respond(container.market_service.get_trades(reddit_id, limit))


@router.get("/leaderboard")
def leaderboard(
    limit: int = Query(10, ge=1, le=100), container: ServiceContainer = Depends(get_container)
):
    return {"players": container.market_service.get_leaderboard(limit)}
