"""
Main HTTP entry for the Gamerit round and ledger engine.
"""

import logging

from config import API_HOST, API_PORT, DB_PATH, LOG_LEVEL

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    force=True,
)
logger = logging.getLogger("gamerit")

from api.app import create_app
from infrastructure.service_container import ServiceConfig, ServiceContainer


def build_app():
    container = ServiceContainer(ServiceConfig(db_path=DB_PATH))
    return create_app(container)


def main() -> None:
    import uvicorn

    logger.info(f"Starting Gamerit API on {API_HOST}:{API_PORT} (db={DB_PATH})")
    uvicorn.run(build_app(), host=API_HOST, port=API_PORT, log_config=None)


if __name__ == "__main__":
    main()
