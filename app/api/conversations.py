"""Operator endpoints for managing live conversations."""

from fastapi import APIRouter, HTTPException, Query

from app.chains.classify_conversation import ClassificationError
from app.core.conversation_lifecycle import ConversationTransitionError
from app.core.logging import get_logger
from app.core.schemas_conversations import (
    AiToggleRequest,
    ClassifyConversationResponse,
    ConversationResponse,
    OperatorReplyRequest,
)
from app.services.conversation_service import (
    ConversationNotFoundError,
    classify_and_score,
    close_conversation,
    send_operator_reply,
    set_ai_enabled,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/conversations")


def _to_response(row: dict) -> ConversationResponse:
    return ConversationResponse(
        id=str(row["id"]),
        status=row.get("status", "active"),
        ai_enabled=row.get("ai_enabled", True),
        message_count=row.get("message_count") or 0,
        last_message_at=row.get("last_message_at"),
        closed_at=row.get("closed_at"),
    )


@router.patch("/{conversation_id}/ai", response_model=ConversationResponse)
async def toggle_ai(
    conversation_id: str,
    request: AiToggleRequest,
    project_id: str = Query(..., description="Project UUID"),
) -> ConversationResponse:
    """Hand the conversation to a human operator, or give it back to the AI."""
    try:
        return _to_response(set_ai_enabled(project_id, conversation_id, request.ai_enabled))
    except ConversationNotFoundError as e:
        raise HTTPException(status_code=404, detail="Conversation not found") from e
    except Exception as e:
        logger.exception("AI toggle failed", extra={"conversation_id": conversation_id})
        raise HTTPException(status_code=500, detail="Failed to update conversation") from e


@router.post("/{conversation_id}/reply")
async def operator_reply(
    conversation_id: str,
    request: OperatorReplyRequest,
    project_id: str = Query(..., description="Project UUID"),
):
    """Send a human-authored reply. The sales agent is not involved."""
    try:
        messages = await send_operator_reply(project_id, conversation_id, request.message)
    except ConversationNotFoundError as e:
        raise HTTPException(status_code=404, detail="Conversation not found") from e
    except Exception as e:
        logger.exception("Operator reply failed", extra={"conversation_id": conversation_id})
        raise HTTPException(status_code=500, detail="Failed to send reply") from e

    return {"success": True, "message_count": len(messages)}


@router.post("/{conversation_id}/close", response_model=ConversationResponse)
async def close(
    conversation_id: str,
    project_id: str = Query(..., description="Project UUID"),
) -> ConversationResponse:
    """Close an active conversation."""
    try:
        return _to_response(close_conversation(project_id, conversation_id))
    except ConversationNotFoundError as e:
        raise HTTPException(status_code=404, detail="Conversation not found") from e
    except ConversationTransitionError as e:
        raise HTTPException(
            status_code=409, detail={"code": "INVALID_TRANSITION", "message": str(e)}
        ) from e
    except Exception as e:
        logger.exception("Close failed", extra={"conversation_id": conversation_id})
        raise HTTPException(status_code=500, detail="Failed to close conversation") from e


@router.post("/{conversation_id}/classify", response_model=ClassifyConversationResponse)
async def classify(
    conversation_id: str,
    project_id: str = Query(..., description="Project UUID"),
) -> ClassifyConversationResponse:
    """Classify the conversation and raise the customer's lead score from the verdict."""
    try:
        classification, lead_score = await classify_and_score(project_id, conversation_id)
    except ConversationNotFoundError as e:
        raise HTTPException(status_code=404, detail="Conversation not found") from e
    except ClassificationError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e
    except Exception as e:
        logger.exception("Classification failed", extra={"conversation_id": conversation_id})
        raise HTTPException(status_code=500, detail="Classification failed") from e

    return ClassifyConversationResponse(classification=classification, lead_score=lead_score)
