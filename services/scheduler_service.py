"""
Scheduler trigger: one idempotent maintenance tick.

Cron (or the /api/scheduler/tick endpoint) calls run_tick on any cadence.
Each step is individually safe to repeat, and a failure in one step does not
stop the later ones.
"""

import logging
import time

from services.hot_potato_service import HotPotatoService
from services.round_service import RoundService
from services.settlement_service import SettlementService

logger = logging.getLogger("gamerit.services.scheduler")


class SchedulerService:
    """Runs round creation, settlement and hot potato upkeep in order."""

    def __init__(
        self,
        round_service: RoundService,
        settlement_service: SettlementService,
        hot_potato_service: HotPotatoService | None = None,
    ):
        self.round_service = round_service
        self.settlement_service = settlement_service
        self.hot_potato_service = hot_potato_service

    def run_tick(self, now: int | None = None) -> dict:
        now = now if now is not None else int(time.time())
        report: dict = {"timestamp": now, "errors": []}

        # Settle first so a round that just expired frees the slot for a new one
        try:
            report["settlement"] = self.settlement_service.settle_due_rounds(now)
        except Exception:
            logger.exception("Settlement step failed")
            report["errors"].append("settlement")

        try:
            result = self.round_service.create_auto_round(now)
            report["round_creation"] = result.to_response()
        except Exception:
            logger.exception("Round creation step failed")
            report["errors"].append("round_creation")

        if self.hot_potato_service is not None:
            try:
                report["hot_potato"] = self.hot_potato_service.resolve_hot_potato_rounds(now)
            except Exception:
                logger.exception("Hot potato resolution step failed")
                report["errors"].append("hot_potato_resolution")

            try:
                created = self.hot_potato_service.top_up_rounds(now)
                report["hot_potato_created"] = sum(1 for r in created if r.success)
            except Exception:
                logger.exception("Hot potato creation step failed")
                report["errors"].append("hot_potato_creation")

        logger.info(f"Scheduler tick complete (errors: {report['errors'] or 'none'})")
        return report
