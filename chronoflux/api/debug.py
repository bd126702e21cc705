"""
Debug endpoints for inspecting recorded AI interactions
"""

from fastapi import APIRouter

from chronoflux.utils.debug import get_ai_interaction_log

router = APIRouter()


@router.get("/ai-logs")
async def get_ai_logs():
    log = get_ai_interaction_log()
    return {"logs": log.entries(), "count": len(log)}


@router.delete("/ai-logs")
async def clear_ai_logs():
    get_ai_interaction_log().clear()
    return {"success": True}
