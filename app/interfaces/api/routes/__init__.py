from fastapi import FastAPI

from .alerts import router as alerts_router
from .checkins import router as checkins_router
from .internal import router as internal_router
from .records import router as records_router


def register_routes(app: FastAPI) -> None:
    """Register every API router on the FastAPI application."""

    app.include_router(checkins_router)
    app.include_router(internal_router)
    app.include_router(records_router)
    app.include_router(alerts_router)
