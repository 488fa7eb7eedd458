from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from daylog.db_init import init_db
from daylog.logging_config import configure_logging
from daylog.routes import goals, logs
from daylog.settings import get_settings


def create_app(initialize_db: bool = True) -> FastAPI:
    configure_logging(get_settings().log_level)
    app = FastAPI(title="Daylog API", version="0.1.0")

    app.include_router(logs.router)
    app.include_router(goals.router)

    if initialize_db:
        @app.on_event("startup")
        async def _startup():
            await init_db()

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):
        logging.getLogger("daylog").exception("Unhandled exception: %s", exc)
        return JSONResponse(status_code=500, content={"detail": "Internal error"})

    @app.get("/health")
    async def health():
        return {"ok": True}

    return app


app = create_app()
