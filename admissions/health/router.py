"""Health domain router.

Liveness for load balancers: the directory store must answer, and the
identity provider SDK state is reported alongside.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from firebase_admin import get_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from admissions.core.constants import Routes
from admissions.core.deps import SessionDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix=Routes.HEALTH.prefix, tags=[Routes.HEALTH.tag])


def _firebase_status() -> str:
    try:
        get_app()
    except ValueError:
        return "uninitialized"
    return "ok"


@router.get("")
async def health(session: SessionDep):
    """Report store connectivity. Only the store decides healthy vs unhealthy."""
    firebase = _firebase_status()
    try:
        session.exec(text("SELECT 1"))  # type: ignore[call-overload]
    except SQLAlchemyError:
        logger.warning("Health check failed: directory store unreachable", exc_info=True)
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "database": "error", "firebase": firebase},
        )
    return {"status": "ok", "database": "ok", "firebase": firebase}
