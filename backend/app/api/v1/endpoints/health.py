# backend/app/api/v1/endpoints/health.py
from datetime import datetime, timezone

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
def health_check(request: Request):
    return {
        "status": "ok",
        "service": request.app.title,
        "time": datetime.now(timezone.utc).isoformat(),
    }
