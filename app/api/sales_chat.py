"""Sales chat endpoints: operator test chat and the embeddable web widget."""

from fastapi import APIRouter, HTTPException, Response

from app.chains.sales_agent import ResearchProfileMissingError
from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.schemas_sales import (
    CustomerMessageEvent,
    SalesChatRequest,
    SalesChatResponse,
    WidgetChatRequest,
    WidgetChatResponse,
)
from app.db.projects import get_project
from app.services.channel_turns import (
    UnknownParticipantError,
    new_session_key,
    process_customer_message,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/sales")

WIDGET_VISITOR_NAME = "Web Visitor"


def _cors_headers() -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": get_settings().WIDGET_ALLOWED_ORIGINS,
        "Access-Control-Allow-Methods": "POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
    }


@router.post("/chat", response_model=SalesChatResponse)
async def sales_chat(request: SalesChatRequest) -> SalesChatResponse:
    """
    Run one sales turn synchronously (dashboard test chat).

    Raises:
        HTTPException 400: Missing fields, or the project is not trained (code NO_RESEARCH)
        HTTPException 404: Unknown customer or conversation
        HTTPException 409: AI is disabled for the conversation (code AI_DISABLED)
        HTTPException 500: Turn failed
    """
    if not request.project_id or not request.message:
        raise HTTPException(status_code=400, detail="project_id and message required")

    event = CustomerMessageEvent(
        project_id=request.project_id,
        platform="api",
        sender_key=request.customer_id or request.conversation_id or new_session_key("test"),
        text=request.message,
        conversation_id=request.conversation_id,
        customer_id=request.customer_id,
        history_override=request.history,
    )

    try:
        outcome = await process_customer_message(
            event, knowledge_limit=get_settings().KNOWLEDGE_SALES_LIMIT
        )
    except ResearchProfileMissingError as e:
        raise HTTPException(
            status_code=400,
            detail={"code": "NO_RESEARCH", "message": "AI not trained yet. Please run research first."},
        ) from e
    except UnknownParticipantError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except Exception as e:
        logger.exception("Sales chat failed", extra={"project_id": request.project_id})
        raise HTTPException(status_code=500, detail="Chat failed") from e

    if outcome.handed_off:
        raise HTTPException(
            status_code=409,
            detail={"code": "AI_DISABLED", "message": "A human operator is handling this conversation"},
        )

    return SalesChatResponse(
        response=outcome.reply or "",
        images=outcome.image_urls,
        conversation_id=outcome.conversation_id,
        order=outcome.order,
    )


@router.options("/widget-chat")
async def widget_chat_preflight() -> Response:
    """CORS preflight for the embedded widget."""
    return Response(status_code=200, headers=_cors_headers())


@router.post("/widget-chat", response_model=WidgetChatResponse)
async def widget_chat(request: WidgetChatRequest, response: Response) -> WidgetChatResponse:
    """
    Run one sales turn for an anonymous website visitor.

    The widget keeps ``session_id`` and sends it back on every message; a
    request without one starts a new session.

    Raises:
        HTTPException 400: Missing fields or the project is not trained
        HTTPException 404: Project missing or inactive
        HTTPException 500: Turn failed
    """
    response.headers.update(_cors_headers())

    if not request.project_id or not request.message:
        raise HTTPException(status_code=400, detail="project_id and message required")

    project = get_project(request.project_id)
    if not project or project.get("status") != "active":
        raise HTTPException(status_code=404, detail="Project not found or inactive")

    session_id = request.session_id or new_session_key("web")
    visitor_name = request.visitor_info.name if request.visitor_info else None

    event = CustomerMessageEvent(
        project_id=request.project_id,
        platform="web",
        sender_key=session_id,
        text=request.message,
        display_name=visitor_name or WIDGET_VISITOR_NAME,
    )

    try:
        outcome = await process_customer_message(
            event, knowledge_limit=get_settings().KNOWLEDGE_SALES_LIMIT
        )
    except ResearchProfileMissingError as e:
        raise HTTPException(
            status_code=400, detail={"code": "NO_RESEARCH", "message": "AI not configured"}
        ) from e
    except Exception as e:
        logger.exception("Widget chat failed", extra={"project_id": request.project_id})
        raise HTTPException(status_code=500, detail="Chat failed") from e

    return WidgetChatResponse(
        response=outcome.reply or "",
        images=outcome.image_urls,
        session_id=session_id,
    )
