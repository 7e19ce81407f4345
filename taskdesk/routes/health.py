import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from taskdesk.config import settings
from taskdesk.db import db_ping
from taskdesk.redis_client import redis_ping

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

# liveness only; no dependencies touched
@router.get("/health")
def health() -> dict:
    return {"status": "ok", "env": settings.app_env}

@router.get("/ready")
def ready():
    # redis only throttles activity writes and rate limits, both fail open,
    # so a missing redis degrades the service instead of failing readiness
    db_ok = db_ping()
    redis_ok = redis_ping()

    body: dict = {
        "status": "ok" if db_ok else "unready",
        "checks": {"db": db_ok, "redis": redis_ok},
    }
    if db_ok and not redis_ok:
        body["status"] = "degraded"
        logger.warning("redis unreachable; activity throttling and rate limits are open")
    if not db_ok:
        logger.error("database unreachable")

    return JSONResponse(status_code=200 if db_ok else 503, content=body)
