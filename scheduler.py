"""
Cron entry point: run one scheduler tick and exit.

Usage:
    python scheduler.py            # full tick
    python scheduler.py settle     # settlement only
    python scheduler.py check      # report whether a new round is due
"""

import json
import logging
import sys

from config import DB_PATH, LOG_LEVEL

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    force=True,
)
logger = logging.getLogger("gamerit.scheduler")

from infrastructure.service_container import ServiceConfig, ServiceContainer


def run(command: str, container: ServiceContainer) -> dict:
    container.initialize()
    if command == "tick":
        return container.scheduler_service.run_tick()
    if command == "settle":
        return container.settlement_service.settle_due_rounds()
    if command == "check":
        return container.round_service.check_and_create_round().to_response()
    if command == "hot-potato":
        return container.hot_potato_service.resolve_hot_potato_rounds()
    raise ValueError(f"Unknown command: {command}")


def main(argv: list[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    command = argv[0] if argv else "tick"
    container = ServiceContainer(ServiceConfig(db_path=DB_PATH))
    try:
        report = run(command, container)
    except ValueError as exc:
        logger.error(str(exc))
        return 2
    print(json.dumps(report, indent=2, default=str))
    return 1 if report.get("errors") else 0


if __name__ == "__main__":
    sys.exit(main())
