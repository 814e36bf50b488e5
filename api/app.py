"""
FastAPI application factory.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import config
from infrastructure.service_container import ServiceContainer
from services import error_codes

logger = logging.getLogger("gamerit.api")


def create_app(container: ServiceContainer) -> FastAPI:
    """Build the app around an explicitly constructed container."""
    container.initialize()

    app = FastAPI(title="Gamerit", version="1.0.0")
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from api.hot_potato import router as hot_potato_router
    from api.market import router as market_router
    from api.players import router as players_router
    from api.rounds import router as rounds_router
    from api.scheduler import router as scheduler_router

    app.include_router(players_router)
    app.include_router(rounds_router)
    app.include_router(hot_potato_router)
    app.include_router(market_router)
    app.include_router(scheduler_router)

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError):
        problems = []
        for error in exc.errors():
            loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
            field = ".".join(loc)
            problems.append(f"{field}: {error.get('msg')}" if field else error.get("msg"))
        return JSONResponse(
            status_code=422,
            content={
                "success": False,
                "error": "; ".join(problems) or "Invalid request",
                "error_code": error_codes.VALIDATION_ERROR,
            },
        )

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Something went wrong. Please try again."},
        )

    @app.get("/")
    def root():
        return {"status": "ok", "game": "Gamerit"}

    return app
