"""Business coach endpoints for tenant operators."""

from typing import Any

from fastapi import APIRouter, HTTPException, Query

from app.chains.coach import run_coach
from app.core.logging import get_logger
from app.core.schemas_coach import CoachChatRequest, CoachChatResponse
from app.db.coach_messages import list_coach_messages

logger = get_logger(__name__)

router = APIRouter(prefix="/coach")


@router.get("/messages")
async def coach_messages(project_id: str = Query(..., description="Project UUID")) -> list[dict[str, Any]]:
    """Coach chat history, oldest first."""
    try:
        return list_coach_messages(project_id)
    except Exception as e:
        logger.exception("Failed to fetch coach messages", extra={"project_id": project_id})
        raise HTTPException(status_code=500, detail="Failed to fetch messages") from e


@router.post("/chat", response_model=CoachChatResponse)
async def coach_chat(request: CoachChatRequest) -> CoachChatResponse:
    """Ask the business coach."""
    if not request.project_id or not request.message:
        raise HTTPException(status_code=400, detail="project_id and message required")

    try:
        reply = await run_coach(request.project_id, request.message)
    except Exception as e:
        logger.exception("Coach chat failed", extra={"project_id": request.project_id})
        raise HTTPException(status_code=500, detail="Coach chat failed") from e

    return CoachChatResponse(response=reply)
