from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ecopeta.core.deps import get_session
from ecopeta.core.responses import error_body, ok

router = APIRouter(tags=["health"])
log = logging.getLogger(__name__)


@router.get("/health")
def health(session: Session = Depends(get_session)):
    """Liveness plus a `SELECT 1` round trip to the database."""
    try:
        session.exec(text("SELECT 1"))
    except SQLAlchemyError:
        log.exception("Health check: database unreachable")
        return JSONResponse(content=error_body("Database unavailable"), status_code=503)
    return ok({"status": "ok", "database": "ok"})
