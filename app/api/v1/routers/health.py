# app/api/v1/routers/health.py
import time
from typing import Awaitable, Callable, Optional

from fastapi import APIRouter

from app.core.config import get_settings
from app.db import mongo
from app.db.redis import get_redis

router = APIRouter(tags=["health"])
START_TIME = time.time()


async def _probe(ping: Callable[[], Optional[Awaitable]]) -> dict:
    """Run one backing-store ping; `ping` returns None when the store is not configured."""
    t0 = time.perf_counter()
    try:
        aw = ping()
        if aw is None:
            return {"status": "skipped"}
        await aw
        return {"status": "ok", "latency_ms": round((time.perf_counter() - t0) * 1000, 1)}
    except Exception as e:
        return {"status": f"error: {e}"}


def _mongo_ping():
    return mongo.get_db().command("ping")


def _redis_ping():
    r = get_redis()
    return r.ping() if r else None


@router.get("/health")
async def health():
    """
    Tolerant health check. Mongo backs every recommendation source; Redis is
    optional (rankings are cached in process memory without it), so a missing
    Redis reports 'skipped', not an error.
    """
    settings = get_settings()
    stores = {
        "mongodb": await _probe(_mongo_ping),
        "redis": await _probe(_redis_ping),
    }
    status = "ok" if all(s["status"] in ("ok", "skipped") for s in stores.values()) else "error"
    return {
        "status": status,
        "app_name": settings.APP_NAME,
        "env": settings.APP_ENV,
        "version": settings.GIT_SHA,
        "uptime_seconds": int(time.time() - START_TIME),
        "stores": stores,
        "timestamp": int(time.time()),
    }
