import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, text

from commerce.config import settings
from commerce.database import get_session
from commerce.utils.timestamps import utcnow

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/check")
def health_check(response: Response, session: Session = Depends(get_session)):
    """Liveness plus a datastore ping; 503 while the database is unreachable."""
    try:
        session.exec(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError as exc:
        logger.error(f"Health check could not reach the database: {exc}")
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        database = "unavailable"

    return {
        "status": "ok" if database == "ok" else "degraded",
        "database": database,
        "environment": settings.ENV,
        "timestamp": utcnow().isoformat(),
    }
