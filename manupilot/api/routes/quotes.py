"""
Structured quote API routes.
"""

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from manupilot.api.dependencies import CurrentUserDep, StoreDep
from manupilot.schemas import ErrorResponse
from manupilot.services.sourcing import QuoteService

router = APIRouter()

NOT_FOUND = {404: {"model": ErrorResponse}}


# Schemas
class QuoteSubmit(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    rfq_id: str | None = Field(None, alias="rfqId")
    partner_id: str | None = Field(None, alias="partnerId")
    unit_price: float | None = Field(None, alias="unitPrice")
    currency: str = "USD"
    lead_time_days: int | None = Field(None, alias="leadTimeDays")
    moq: int | None = None
    payment_terms: str | None = Field(None, alias="paymentTerms")
    shipping_terms: str | None = Field(None, alias="shippingTerms")
    production_capacity: str | None = Field(None, alias="productionCapacity")
    notes: str | None = None
    validity_days: int | None = Field(None, alias="validityDays")


class QuoteStatusUpdate(BaseModel):
    status: str


@router.get("", responses=NOT_FOUND)
async def list_quotes(
    rfq_id: str,
    store: StoreDep,
    current_user: CurrentUserDep,
):
    """List quotes for an RFQ with partner summaries, newest first."""
    quotes = await QuoteService(store).list_quotes(rfq_id, current_user)
    if quotes is None:
        raise HTTPException(status_code=404, detail="RFQ not found")
    return {"quotes": quotes}


@router.post("", responses=NOT_FOUND)
async def submit_quote(
    body: QuoteSubmit,
    store: StoreDep,
    current_user: CurrentUserDep,
):
    """Submit or revise a partner's quote for an RFQ."""
    service = QuoteService(store)

    try:
        quote = await service.submit_quote(
            rfq_id=body.rfq_id,
            partner_id=body.partner_id,
            unit_price=body.unit_price,
            lead_time_days=body.lead_time_days,
            moq=body.moq,
            submitted_by_user_id=current_user,
            currency=body.currency,
            validity_days=body.validity_days,
            payment_terms=body.payment_terms,
            shipping_terms=body.shipping_terms,
            production_capacity=body.production_capacity,
            notes=body.notes,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if quote is None:
        raise HTTPException(status_code=404, detail="RFQ not found")
    return {"quote": quote}


@router.get("/{quote_id}", responses=NOT_FOUND)
async def get_quote(
    quote_id: str,
    store: StoreDep,
    current_user: CurrentUserDep,
):
    quote = await QuoteService(store).get_quote(quote_id, current_user)
    if not quote:
        raise HTTPException(status_code=404, detail="Quote not found")
    return {"quote": quote}


@router.patch("/{quote_id}", responses=NOT_FOUND)
async def update_quote_status(
    quote_id: str,
    body: QuoteStatusUpdate,
    store: StoreDep,
    current_user: CurrentUserDep,
):
    """Accept or reject a quote."""
    try:
        quote = await QuoteService(store).set_status(quote_id, body.status, user_id=current_user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if not quote:
        raise HTTPException(status_code=404, detail="Quote not found")
    return {"quote": quote}
