"""Scheduler trigger endpoints, called by cron."""

from fastapi import APIRouter, Depends

from api.deps import get_container, require_scheduler_token, respond
from infrastructure.service_container import ServiceContainer

router = APIRouter(
    prefix="/api/scheduler",
    tags=["scheduler"],
    dependencies=[Depends(require_scheduler_token)],
)


@router.post("/check-round")
def check_round(container: ServiceContainer = Depends(get_container)):
    return respond(container.round_service.check_and_create_round())


@router.post("/create-round")
def create_round(container: ServiceContainer = Depends(get_container)):
    return respond(container.round_service.create_auto_round())


@router.post("/settle")
def settle(container: ServiceContainer = Depends(get_container)):
    return {"success": True, **container.settlement_service.settle_due_rounds()}


@router.post("/hot-potato/resolve")
def resolve_hot_potato(container: ServiceContainer = Depends(get_container)):
    return {"success": True, **container.hot_potato_service.resolve_hot_potato_rounds()}


@router.post("/tick")
def tick(container: ServiceContainer = Depends(get_container)):
    return {"success": True, **container.scheduler_service.run_tick()}
