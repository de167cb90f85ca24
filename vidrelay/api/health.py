from fastapi import APIRouter

from vidrelay.core.state import state
from vidrelay.i18n import i18n

router = APIRouter()


@router.get("/health")
async def health_check():
    """Lightweight health check"""
    return {
        "status": i18n.get("health.status"),
        "ytdlp_version": state.ytdlp_version,
    }
