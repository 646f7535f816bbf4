from fastapi import APIRouter

from app.core.config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health():
    """Liveness probe"""
    return {"status": "ok", "environment": settings.ENVIRONMENT}
