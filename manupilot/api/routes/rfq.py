"""
RFQ API routes.

Submission with supplier matching, RFQ lookup and status, manufacturer
responses and quote normalization.
"""

from typing import Any

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from manupilot.api.dependencies import CurrentUserDep, QuoteAnalyzerDep, StoreDep
from manupilot.schemas import ErrorResponse, QuoteAnalysisResponse
from manupilot.services.sourcing import QuoteNormalizer, RFQService

router = APIRouter()

NOT_FOUND = {404: {"model": ErrorResponse}}


# Schemas
class RFQSubmit(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_id: str | None = Field(None, alias="projectId")
    rfq_data: dict[str, Any] | None = Field(None, alias="rfqData")


class RFQStatusUpdate(BaseModel):
    status: str


class ResponseCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    manufacturer_id: str | None = Field(None, alias="manufacturerId")
    raw_text: str | None = Field(None, alias="rawText")
    pricing_data: dict[str, Any] | None = Field(None, alias="pricingData")


class AnalyzeResponseRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    response_id: str | None = Field(None, alias="responseId")
    raw_text: str | None = Field(None, alias="rawText")
    target_price: float | None = Field(None, gt=0, alias="targetPrice")
    target_moq: int | None = Field(None, gt=0, alias="targetMoq")


class AnalyzeResponseResult(BaseModel):
    success: bool
    analysis: QuoteAnalysisResponse
    data: dict[str, Any]


@router.post("/submit", responses=NOT_FOUND)
async def submit_rfq(
    body: RFQSubmit,
    store: StoreDep,
    current_user: CurrentUserDep,
):
    """Submit an RFQ and match it against the manufacturer directory."""
    service = RFQService(store)

    try:
        result = await service.submit_rfq(current_user, body.project_id, body.rfq_data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if result is None:
        raise HTTPException(status_code=404, detail="Project not found")

    return {
        "message": "RFQ submitted successfully",
        "rfq_id": result.rfq["id"],
        "matches": result.matches.partners,
    }


@router.post("/analyze-response", response_model=AnalyzeResponseResult, responses=NOT_FOUND)
async def analyze_response(
    body: AnalyzeResponseRequest,
    store: StoreDep,
    analyzer: QuoteAnalyzerDep,
    current_user: CurrentUserDep,
):
    """Extract structured metrics from a supplier's quote text."""
    normalizer = QuoteNormalizer(store, analyzer)

    try:
        result = await normalizer.normalize(
            body.response_id,
            body.raw_text,
            target_price=body.target_price,
            target_moq=body.target_moq,
            user_id=current_user,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if result is None:
        raise HTTPException(status_code=404, detail="Response not found")

    return {"success": True, "analysis": result.analysis.to_dict(), "data": result.record}


@router.get("", responses=NOT_FOUND)
async def list_rfqs(
    project_id: str,
    store: StoreDep,
    current_user: CurrentUserDep,
):
    """List a project's RFQs, newest first."""
    rfqs = await RFQService(store).list_rfqs(project_id, current_user)
    if rfqs is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return {"rfqs": rfqs}


@router.get("/{rfq_id}", responses=NOT_FOUND)
async def get_rfq(
    rfq_id: str,
    store: StoreDep,
    current_user: CurrentUserDep,
):
    rfq = await RFQService(store).get_rfq(rfq_id, current_user)
    if not rfq:
        raise HTTPException(status_code=404, detail="RFQ not found")
    return {"rfq": rfq}


@router.patch("/{rfq_id}/status", responses=NOT_FOUND)
async def update_rfq_status(
    rfq_id: str,
    body: RFQStatusUpdate,
    store: StoreDep,
    current_user: CurrentUserDep,
):
    """Move an RFQ through its workflow."""
    try:
        rfq = await RFQService(store).update_status(rfq_id, body.status, user_id=current_user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if not rfq:
        raise HTTPException(status_code=404, detail="RFQ not found")
    return {"rfq": rfq}


@router.get("/{rfq_id}/matches", responses=NOT_FOUND)
async def get_rfq_matches(
    rfq_id: str,
    store: StoreDep,
    current_user: CurrentUserDep,
):
    """Partners recorded as matches when the RFQ was submitted."""
    partners = await RFQService(store).get_matched_partners(rfq_id, current_user)
    if partners is None:
        raise HTTPException(status_code=404, detail="RFQ not found")
    return {"partners": partners}


@router.get("/{rfq_id}/responses", responses=NOT_FOUND)
async def list_responses(
    rfq_id: str,
    store: StoreDep,
    current_user: CurrentUserDep,
):
    responses = await RFQService(store).list_responses(rfq_id, current_user)
    if responses is None:
        raise HTTPException(status_code=404, detail="RFQ not found")
    return {"responses": responses}


@router.post("/{rfq_id}/responses", status_code=status.HTTP_201_CREATED, responses=NOT_FOUND)
async def create_response(
    rfq_id: str,
    body: ResponseCreate,
    store: StoreDep,
    current_user: CurrentUserDep,
):
    """Record a manufacturer's reply to an RFQ."""
    try:
        response = await RFQService(store).submit_response(
            rfq_id,
            manufacturer_id=body.manufacturer_id,
            user_id=current_user,
            raw_text=body.raw_text,
            pricing_data=body.pricing_data,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if not response:
        raise HTTPException(status_code=404, detail="RFQ not found")
    return {"response": response}
