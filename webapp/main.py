"""FastAPI backend for the duty-roster calendar."""
from __future__ import annotations

import logging

import psycopg2
from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from repositories import employee_repository, schedule_repository
from roster.errors import RosterError, StorageUnavailableError

from .config import get_settings
from .routes.roster import legacy_router, router as roster_router

log = logging.getLogger(__name__)


api = APIRouter(prefix="/api", tags=["api"])
api.include_router(roster_router)
api.include_router(legacy_router)


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(title=settings.title)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(api)

    @app.on_event("startup")
    def _startup_ensure_tables() -> None:
        """Refuse to start without a reachable roster store."""
        try:
            schedule_repository.ensure_schedule_tables()
            count = employee_repository.employees_count()
            folds = schedule_repository.lower_folds_cyrillic()
        except (RosterError, psycopg2.Error) as exc:
            log.error("Roster store is unreachable, aborting startup: %s", exc)
            raise StorageUnavailableError(str(exc)) from exc
        if not folds:
            log.warning(
                "Database LOWER() does not fold Cyrillic; department filters will be case-sensitive. "
                "Use a UTF-8 locale (LC_CTYPE) for the roster database."
            )
        log.info("Roster store ready (%s employees)", count)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()
