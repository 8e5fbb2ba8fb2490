"""API endpoints for research profile synthesis and editing."""

from fastapi import APIRouter, HTTPException, Query

from app.chains.research_synthesizer import (
    ManualEditsPendingError,
    ProjectNotFoundError,
    ResearchSynthesisError,
    get_research_status,
    synthesize_research,
    update_research_profile,
)
from app.core.logging import get_logger
from app.core.schemas_research import (
    ResearchProfileUpdateRequest,
    ResearchRunRequest,
    ResearchRunResponse,
    ResearchStatusResponse,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/research")


@router.post("/run", response_model=ResearchRunResponse)
async def run_research(request: ResearchRunRequest) -> ResearchRunResponse:
    """
    (Re)train a project: synthesize and store its research profile.

    Raises:
        HTTPException 400: project_id missing
        HTTPException 404: Project not found
        HTTPException 409: Manual edits would be discarded (code MANUAL_EDITS_PENDING)
        HTTPException 502: Model output was not a complete profile
        HTTPException 500: Anything else
    """
    if not request.project_id:
        raise HTTPException(status_code=400, detail="project_id required")

    try:
        profile = await synthesize_research(
            request.project_id, confirm_overwrite=request.confirm_overwrite
        )
    except ProjectNotFoundError as e:
        raise HTTPException(status_code=404, detail="Project not found") from e
    except ManualEditsPendingError as e:
        raise HTTPException(
            status_code=409,
            detail={
                "code": "MANUAL_EDITS_PENDING",
                "message": "Regenerating will discard manual edits. Resend with confirm_overwrite=true.",
            },
        ) from e
    except ResearchSynthesisError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e
    except Exception as e:
        logger.exception("Research failed", extra={"project_id": request.project_id})
        raise HTTPException(status_code=500, detail="Research failed") from e

    return ResearchRunResponse(research=profile)


@router.get("/status", response_model=ResearchStatusResponse)
async def research_status(project_id: str = Query(..., description="Project UUID")) -> ResearchStatusResponse:
    """Whether the project's AI is trained."""
    try:
        return get_research_status(project_id)
    except Exception as e:
        logger.exception("Research status failed", extra={"project_id": project_id})
        raise HTTPException(status_code=500, detail="Failed to get status") from e


@router.put("/profile", response_model=ResearchRunResponse)
async def edit_research_profile(request: ResearchProfileUpdateRequest) -> ResearchRunResponse:
    """Save a hand-edited research profile."""
    try:
        profile = update_research_profile(request.project_id, request.research)
    except ProjectNotFoundError as e:
        raise HTTPException(status_code=404, detail="Project not found") from e
    except Exception as e:
        logger.exception("Research profile save failed", extra={"project_id": request.project_id})
        raise HTTPException(status_code=500, detail="Failed to save research profile") from e

    return ResearchRunResponse(research=profile)
