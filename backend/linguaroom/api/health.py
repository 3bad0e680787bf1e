from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from linguaroom.database import get_db
from linguaroom.redis.client import get_redis

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(db: Session = Depends(get_db)) -> dict:
    redis_state = "connected" if get_redis() is not None else "disabled"
    try:
        db.execute(text("SELECT 1"))
        return {"status": "healthy", "database": "connected", "redis": redis_state}
    except Exception as exc:
        return {"status": "unhealthy", "database": "disconnected", "redis": redis_state, "error": str(exc)}
