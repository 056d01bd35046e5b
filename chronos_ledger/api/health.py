"""
Health check endpoint.

Used by load balancers and monitoring to verify the service is
up and can reach its database.
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from chronos_ledger.logging_config import get_logger
from chronos_ledger.models.base import get_db

router = APIRouter(tags=["Health"])

logger = get_logger("health")


@router.get("/health")
def health_check(db: Session = Depends(get_db)):
    """
    Report service health including database connectivity.

    A failing database check reports "degraded" rather than
    raising, so the load balancer can take this instance out.
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "healthy"
    except SQLAlchemyError:
        logger.exception("Database health check failed")
        db_status = "unhealthy"

    return {
        "status": "healthy" if db_status == "healthy" else "degraded",
        "service": "chronos-ledger",
        "database": db_status,
    }
