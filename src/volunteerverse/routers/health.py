from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, text

from volunteerverse.config import config, validate_config
from volunteerverse.models.database import get_db

health = APIRouter()


@health.get("/health")
async def health_check():
    """Basic health check endpoint"""
    return {
        "status": "healthy",
        "service": "volunteerverse",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": config.get("environment", "development"),
    }


@health.get("/health/detailed")
async def detailed_health_check(db: Session = Depends(get_db)):
    """Detailed health check with database and configuration checks"""
    health_status = {
        "status": "healthy",
        "service": "volunteerverse",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": config.get("environment", "development"),
        "checks": {},
    }

    # Database connectivity check
    try:
        result = db.exec(text("SELECT 1")).first()
        health_status["checks"]["database"] = "healthy" if result else "unhealthy"
    except Exception as e:
        health_status["checks"]["database"] = f"unhealthy: {str(e)}"
        health_status["status"] = "unhealthy"

    missing = validate_config(config)
    if missing:
        env_names = [key.upper() for key in missing]
        health_status["checks"]["environment"] = f"missing: {', '.join(env_names)}"
        health_status["status"] = "unhealthy"
    else:
        health_status["checks"]["environment"] = "healthy"

    if health_status["status"] == "unhealthy":
        raise HTTPException(status_code=503, detail=health_status)

    return health_status
