from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable

from sqlalchemy import text

from app.core.settings import settings
from app.db.session import engine
from app.utils.redis_client import get_redis_client

APP_VERSION = "0.1.0"

logger = logging.getLogger(__name__)

Probe = Callable[[], Awaitable[None]]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


async def _probe_database() -> None:
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def _probe_redis() -> None:
    await get_redis_client().ping()


async def _probe_upload_dir() -> None:
    root = Path(settings.upload_dir)
    root.mkdir(parents=True, exist_ok=True)
    marker = root / ".ready"
    marker.write_bytes(b"")
    marker.unlink()


async def _run(name: str, probe: Probe) -> dict[str, Any]:
    started = time.perf_counter()
    try:
        await probe()
    except Exception as exc:
        logger.warning("Readiness probe %s failed: %s", name, exc)
        return {"status": "error", "error": str(exc)}
    return {"status": "ok", "latencyMs": round((time.perf_counter() - started) * 1000, 2)}


async def _check_db() -> dict[str, Any]:
    return await _run("database", _probe_database)


async def _check_redis() -> dict[str, Any]:
    return await _run("redis", _probe_redis)


async def _check_storage() -> dict[str, Any]:
    return await _run("storage", _probe_upload_dir)


async def live_payload() -> dict[str, str]:
    return {"status": "ok", "version": APP_VERSION, "timestamp": _now()}


async def ready_payload() -> dict[str, Any]:
    checks = {
        "database": await _check_db(),
        "redis": await _check_redis(),
        "storage": await _check_storage(),
    }
    ready = all(check["status"] == "ok" for check in checks.values())
    return {
        "status": "ok" if ready else "degraded",
        "ready": ready,
        "environment": settings.environment,
        "version": APP_VERSION,
        "timestamp": _now(),
        "checks": checks,
    }
