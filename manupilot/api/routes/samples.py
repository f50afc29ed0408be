"""
Sample QC checklist and photo inspection API routes.
"""

from typing import Any

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from manupilot.api.dependencies import CompletionClientDep, CurrentUserDep, StoreDep
from manupilot.services.qc_service import ChecklistGenerationError, PhotoAnalysisError, QCService

router = APIRouter()


# Schemas
class QCGenerateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_id: str | None = Field(None, alias="projectId")
    sample_id: str | None = Field(None, alias="sampleId")
    playbook: dict[str, Any] | None = None


class QCResultUpdate(BaseModel):
    result: str
    comment: str | None = None


class PhotoAnalyzeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sample_id: str | None = Field(None, alias="sampleId")
    photo_url: str | None = Field(None, alias="photoUrl")
    photo_id: str | None = Field(None, alias="photoId")
    context: str | None = None


@router.post("/qc/generate")
async def generate_qc_checklist(
    body: QCGenerateRequest,
    store: StoreDep,
    client: CompletionClientDep,
    current_user: CurrentUserDep,
):
    """Generate a QC checklist for a sample from its playbook."""
    service = QCService(store, client)

    try:
        items = await service.generate_checklist(body.project_id, body.sample_id, body.playbook)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ChecklistGenerationError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))

    return {"success": True, "items": items}


@router.get("/samples/{sample_id}/qc")
async def list_qc_items(
    sample_id: str,
    store: StoreDep,
    current_user: CurrentUserDep,
):
    items = await QCService(store).list_items(sample_id)
    return {"items": items}


@router.patch("/qc/{item_id}")
async def record_qc_result(
    item_id: str,
    body: QCResultUpdate,
    store: StoreDep,
    current_user: CurrentUserDep,
):
    """Record a pass/fail result on a checklist item."""
    try:
        item = await QCService(store).record_result(item_id, body.result, body.comment)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if not item:
        raise HTTPException(status_code=404, detail="QC item not found")
    return {"item": item}


@router.post("/samples/analyze")
async def analyze_sample_photo(
    body: PhotoAnalyzeRequest,
    store: StoreDep,
    client: CompletionClientDep,
    current_user: CurrentUserDep,
):
    """Visual inspection of a sample photo."""
    service = QCService(store, client)

    try:
        analysis = await service.analyze_photo(
            body.sample_id,
            body.photo_url,
            context=body.context,
            photo_id=body.photo_id,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except PhotoAnalysisError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))

    return {"success": True, "analysis": analysis}
