"""Health check endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from abexp.database import get_db
from abexp.models import DeviceRecord, ExperimentRecord

router = APIRouter()


@router.get("/health")
@router.head("/health")
async def health_check():
    """Basic health check."""
    return {"status": "healthy", "service": "abexp"}


@router.get("/health/detailed")
async def detailed_health_check(db: Session = Depends(get_db)):
    """
    Health check that reads the experiment store.

    Reports how many experiments are running or finished and how many
    devices are registered; "degraded" if the tables can't be read.
    """
    try:
        active = db.scalar(
            select(func.count()).select_from(ExperimentRecord)
            .where(ExperimentRecord.finished_at.is_(None))
        )
        total = db.scalar(select(func.count()).select_from(ExperimentRecord))
        devices = db.scalar(select(func.count()).select_from(DeviceRecord))
    except SQLAlchemyError as e:
        db.rollback()
        return {
            "status": "degraded",
            "checks": {"database": f"unhealthy: {e.__class__.__name__}"}
        }

    return {
        "status": "healthy",
        "checks": {"database": "healthy"},
        "experiments": {"active": active, "finished": total - active},
        "devices": devices
    }
