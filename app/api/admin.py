"""Platform-operator endpoints."""

from fastapi import APIRouter, HTTPException

from app.chains.knowledge_trainer import run_trainer
from app.core.logging import get_logger
from app.core.schemas_coach import TrainerChatRequest, TrainerChatResponse

logger = get_logger(__name__)

router = APIRouter(prefix="/admin")


@router.post("/knowledge/chat", response_model=TrainerChatResponse)
async def knowledge_chat(request: TrainerChatRequest) -> TrainerChatResponse:
    """Chat with the knowledge trainer; confirmed snippets are stored."""
    if not request.message:
        raise HTTPException(status_code=400, detail="message required")

    try:
        return await run_trainer(request.message, request.history, project_id=request.project_id)
    except Exception as e:
        logger.exception("Knowledge trainer chat failed")
        raise HTTPException(status_code=500, detail="Chat failed") from e
