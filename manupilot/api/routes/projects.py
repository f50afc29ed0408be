"""
Project readiness and feasibility API routes.
"""

from fastapi import APIRouter, HTTPException

from manupilot.api.dependencies import CurrentUserDep, StoreDep
from manupilot.schemas import FeasibilityFeatures, SpecCompletenessResponse
from manupilot.services.project import ProjectService, calculate_feasibility

router = APIRouter()


@router.get("/projects/{project_id}/readiness", response_model=SpecCompletenessResponse)
async def get_project_readiness(
    project_id: str,
    store: StoreDep,
    current_user: CurrentUserDep,
):
    """Specification completeness of one of the user's projects."""
    completeness = await ProjectService(store).get_readiness(project_id, current_user)
    if completeness is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return completeness.to_dict()


@router.post("/feasibility")
async def score_feasibility(
    body: FeasibilityFeatures,
    current_user: CurrentUserDep,
):
    """Score product feasibility from its feature set."""
    return calculate_feasibility(body)
