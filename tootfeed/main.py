from __future__ import annotations

import logging
import time

from fastapi import FastAPI, Request, Response

from tootfeed import config, db
from tootfeed.routes import router
from tootfeed.session import SessionManager
from tootfeed.storage import SessionRepository, SqlStorage

logger = logging.getLogger("tootfeed")


def create_app(manager: SessionManager | None = None) -> FastAPI:
    app = FastAPI(title="tootfeed")

    @app.on_event("startup")
    async def startup() -> None:
        session_manager = manager
        if session_manager is None:
            db.init_db()
            session_manager = SessionManager(SessionRepository(SqlStorage()))
        app.state.session_manager = session_manager
        await session_manager.restore()
        logger.info("startup_complete state=%s", session_manager.state.value)

    @app.middleware("http")
    async def log_requests(request: Request, call_next) -> Response:
        start_time = time.perf_counter()
        response_status = 500
        try:
            response = await call_next(request)
            response_status = response.status_code
            return response
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.info(
                "request method=%s path=%s status=%s duration_ms=%.2f",
                request.method,
                request.url.path,
                response_status,
                duration_ms,
            )

    @app.get("/health")
    def health() -> dict[str, bool]:
        return {"ok": True}

    @app.head("/health")
    def health_head() -> Response:
        return Response(status_code=200)

    app.include_router(router)
    return app


config.configure_logging()
app = create_app()
