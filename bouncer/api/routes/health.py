from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter

from bouncer.core.config import get_settings

router = APIRouter(tags=["health"])


@router.get("/health")
def read_health() -> Dict[str, Any]:
    settings = get_settings()
    cutoff = settings.event_cutoff_date
    now = datetime.now(timezone.utc)
    return {
        "status": "ok",
        "timestamp": now.isoformat(),
        "eventOpen": cutoff is None or now <= cutoff,
    }
