"""
Health check route.
"""
from fastapi import APIRouter
from pastebin.models import HealthCheck
from pastebin.database import db

router = APIRouter()


@router.get("/api/healthz", response_model=HealthCheck)
def health_check() -> HealthCheck:
    """
    Health check endpoint.
    Returns ok=true if the storage backend answers a ping.
    """
    return HealthCheck(ok=db.is_healthy(), backend=db.backend)
