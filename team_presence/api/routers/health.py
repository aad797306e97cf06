from __future__ import annotations

import time
from typing import Any

from fastapi import APIRouter, Request

from team_presence.domain.value_objects.clock import utcnow

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request) -> dict[str, Any]:
    started = getattr(request.app.state, "started_at", None)
    uptime = time.monotonic() - started if started is not None else 0.0
    return {
        "status": "ok",
        "timestamp": utcnow().isoformat(),
        "uptime": round(uptime, 3),
    }
