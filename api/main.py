# api/main.py
"""
Front Desk Visitor Log - API Application

create_app() builds the FastAPI app: the lifespan runs the startup
pipeline (integrity check and restore, schema, daily backup, retention
cleanup), then the visitor, admin and audit routers are mounted next to
the system routes (/, /healthz, /api/status).

Run with: uvicorn api.main:app --port 3001 (or python -m api.main)
"""

from __future__ import annotations

import datetime as dt
import shutil
import sqlite3
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import ORJSONResponse
from fastapi.staticfiles import StaticFiles

from frontdesk import (
    DB_FILE,
    AdminGate,
    StatusTracker,
    initialize_database,
    run_scheduled_cleanup,
    setup_logging,
    get_logger,
)
from frontdesk.config import (
    API_PORT,
    CLEANUP_ON_STARTUP,
    HISTORY_PASSWORD,
    MASTER_PASSWORD,
    UPLOADS_DIR_NAME,
)
from frontdesk.logging_config import set_request_id
from frontdesk.visitors import VisitorBannedError, VisitorNotFoundError

from . import admin, audit, visitors

# ==========================================================
# Logging Setup
# ==========================================================
setup_logging()
logger = get_logger(__name__)


# ==========================================================
# Lifespan: integrity check -> open -> backup -> cleanup
# ==========================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    cfg = app.state.config
    status: StatusTracker = app.state.status

    # Raises DatabaseUnrecoverableError: the server must not start on a corrupt file
    store = initialize_database(cfg["db_file"], status, base_dir=cfg["data_dir"])
    app.state.store = store

    if cfg["cleanup_on_startup"]:
        run_scheduled_cleanup(store, status)

    logger.info("Front desk API ready (db=%s)", cfg["db_file"])
    try:
        yield
    finally:
        store.close()
        app.state.store = None


# ==========================================================
# Exception Handlers
# ==========================================================
async def _not_found(request: Request, exc: VisitorNotFoundError):
    return ORJSONResponse(status_code=404, content={"detail": str(exc)})


async def _banned(request: Request, exc: VisitorBannedError):
    return ORJSONResponse(status_code=403, content={"detail": str(exc)})


async def _db_error(request: Request, exc: sqlite3.Error):
    logger.error("SQL Error on %s %s: %s", request.method, request.url.path, exc)
    return ORJSONResponse(status_code=500, content={"detail": "Database error."})


# ==========================================================
# App Factory
# ==========================================================
def create_app(
    db_file: Path | None = None,
    data_dir: Path | None = None,
    *,
    cleanup_on_startup: bool = CLEANUP_ON_STARTUP,
    master_password: str | None = MASTER_PASSWORD,
    history_password: str | None = HISTORY_PASSWORD,
) -> FastAPI:
    """
    Build the API application.

    Args:
        db_file: Primary database file (default: DB_FILE)
        data_dir: Directory holding backups/ and uploads/ (default: db_file's parent)
        cleanup_on_startup: Run the retention cleanup once during startup
        master_password: Password for unban
        history_password: Password for the history screen
    """
    db_file = Path(db_file or DB_FILE)
    data_dir = Path(data_dir or db_file.parent)
    uploads_dir = data_dir / UPLOADS_DIR_NAME
    uploads_dir.mkdir(parents=True, exist_ok=True)

    app = FastAPI(
        title="Front Desk Visitor API",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    app.state.config = {
        "db_file": db_file,
        "data_dir": data_dir,
        "cleanup_on_startup": cleanup_on_startup,
    }
    app.state.status = StatusTracker()
    app.state.store = None
    app.state.uploads_dir = uploads_dir
    app.state.unban_gate = AdminGate(master_password, name="unban")
    app.state.history_gate = AdminGate(history_password, name="history")

    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

    @app.middleware("http")
    async def add_request_id(request, call_next):
        request_id = set_request_id()
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    app.add_exception_handler(VisitorNotFoundError, _not_found)
    app.add_exception_handler(VisitorBannedError, _banned)
    app.add_exception_handler(sqlite3.Error, _db_error)

    app.mount(f"/{UPLOADS_DIR_NAME}", StaticFiles(directory=str(uploads_dir)), name="uploads")

    app.include_router(visitors.router)
    app.include_router(admin.router)
    app.include_router(audit.router)

    _add_system_routes(app)
    return app


# ==========================================================
# System Routes
# ==========================================================
def _add_system_routes(app: FastAPI) -> None:
    @app.get("/")
    def read_root():
        return {"status": "active", "system": "Front Desk Visitor API"}

    @app.get("/healthz")
    def health_check(request: Request):
        """API health check endpoint (lightweight)."""
        status = {
            "status": "ok",
            "timestamp": dt.datetime.now().isoformat(),
        }

        store = request.app.state.store
        if store is not None and store.ping():
            status["database"] = "connected"
            if store.db_path.exists():
                status["db_size_mb"] = round(store.db_path.stat().st_size / (1024 * 1024), 2)
        else:
            status["status"] = "degraded"
            status["database"] = "unavailable"

        try:
            _, _, free = shutil.disk_usage(str(request.app.state.config["data_dir"]))
            status["disk_free_gb"] = round(free / (1024**3), 2)
        except OSError as e:
            logger.warning("Disk usage check failed: %s", e)

        status["system"] = request.app.state.status.snapshot()
        return status

    @app.get("/api/status")
    def system_status(request: Request):
        """Fields for the front-desk status widget."""
        return request.app.state.status.snapshot()


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api.main:app", host="0.0.0.0", port=API_PORT)
