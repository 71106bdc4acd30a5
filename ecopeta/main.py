# ecopeta/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from ecopeta.api.v1.auth import router as auth_router
from ecopeta.api.v1.health import router as health_router
from ecopeta.api.v1.locations import router as locations_router
from ecopeta.api.v1.notifications import router as notifications_router
from ecopeta.api.v1.pickups import router as pickups_router
from ecopeta.api.v1.reviews import router as reviews_router
from ecopeta.api.v1.waste_categories import router as waste_categories_router
from ecopeta.core.config import get_settings
from ecopeta.core.errors import EcoPetaError
from ecopeta.core.responses import error_body
from ecopeta.db.migrations import run_minimal_migrations
from ecopeta.db.session import get_engine, init_db

# -----------------------------------------------------------------------------
# Logging: make sure we see clear startup errors in the console
# -----------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
log = logging.getLogger("ecopeta")

# -----------------------------------------------------------------------------
# App
# -----------------------------------------------------------------------------
app = FastAPI(title="Eco-Peta", debug=get_settings().DEBUG)

# -----------------------------------------------------------------------------
# Routers
# -----------------------------------------------------------------------------
API_PREFIX = "/api/v1"

app.include_router(health_router, prefix=API_PREFIX)
app.include_router(auth_router, prefix=API_PREFIX)
app.include_router(pickups_router, prefix=API_PREFIX)
app.include_router(waste_categories_router, prefix=API_PREFIX)
app.include_router(locations_router, prefix=API_PREFIX)
app.include_router(reviews_router, prefix=API_PREFIX)
app.include_router(notifications_router, prefix=API_PREFIX)


# -----------------------------------------------------------------------------
# Startup: create tables if missing (non-destructive) + minimal migrations
# -----------------------------------------------------------------------------
@app.on_event("startup")
def _startup() -> None:
    """
    Ensure all tables exist, seed demo data once, then patch older schemas.

    - init_db() only creates missing tables; nothing is dropped.
    - run_minimal_migrations(engine) adds columns introduced later
      (PostgreSQL only, idempotent).
    """
    try:
        engine = get_engine()
        init_db()
        run_minimal_migrations(engine)
        log.info("DB init + minimal migrations completed.")
    except Exception as e:
        # Never crash the app on init errors; /ping keeps answering.
        log.exception("DB init or migrations failed: %s", e)


# -----------------------------------------------------------------------------
# Minimal liveness endpoint
# -----------------------------------------------------------------------------
@app.get("/ping")
def ping():
    """Simple liveness check."""
    return {"ok": True}


# -----------------------------------------------------------------------------
# Exception handlers: every error leaves in the {success, error} envelope
# -----------------------------------------------------------------------------
@app.exception_handler(EcoPetaError)
async def eco_peta_error_handler(request: Request, exc: EcoPetaError):
    return JSONResponse(content=error_body(exc.message), status_code=exc.status_code)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail if isinstance(exc.detail, str) else "Request failed"
    if exc.status_code == 404 and detail == "Not Found":
        detail = f"Route {request.url.path} not found"
    return JSONResponse(
        content=error_body(detail),
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies are plain 400s; the first problem becomes the message."""
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    return JSONResponse(
        content=error_body(message, errors=[_plain_error(e) for e in errors]),
        status_code=400,
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    log.exception("Unhandled database error on %s %s", request.method, request.url.path)
    return JSONResponse(content=error_body("Server Error"), status_code=500)


def _plain_error(err: dict) -> dict:
    """Keep only JSON-safe keys of a pydantic error entry."""
    return {
        "loc": [str(p) for p in err.get("loc", ())],
        "msg": str(err.get("msg")),
        "type": str(err.get("type")),
    }
