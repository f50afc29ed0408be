"""
Partner review API routes.
"""

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from manupilot.api.dependencies import CurrentUserDep, StoreDep
from manupilot.schemas import ErrorResponse
from manupilot.services import ReviewService

router = APIRouter()


# Schemas
class ReviewSubmit(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    partner_id: str | None = Field(None, alias="partnerId")
    rating: int | None = None
    review_text: str | None = Field(None, alias="reviewText")


@router.get("")
async def list_reviews(
    store: StoreDep,
    current_user: CurrentUserDep,
    partner_id: str | None = None,
):
    """All reviews of a partner, newest first."""
    try:
        reviews = await ReviewService(store).list_reviews(partner_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {"reviews": reviews}


@router.get("/{partner_id}/mine")
async def get_my_review(
    partner_id: str,
    store: StoreDep,
    current_user: CurrentUserDep,
):
    review = await ReviewService(store).get_user_review(partner_id, current_user)
    return {"review": review}


@router.post("", responses={404: {"model": ErrorResponse}})
async def submit_review(
    body: ReviewSubmit,
    store: StoreDep,
    current_user: CurrentUserDep,
):
    """Submit or revise the caller's review of a partner."""
    try:
        review = await ReviewService(store).submit_review(
            current_user,
            body.partner_id,
            body.rating,
            review_text=body.review_text,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if review is None:
        raise HTTPException(status_code=404, detail="Partner not found")
    return {"review": review}
