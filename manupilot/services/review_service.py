"""
Partner review service.

Buyers rate partners from 1 to 5, once each; a second review from the
same user replaces the first. The partner's directory ``rating`` is the
mean of its reviews.
"""

from typing import Any

from manupilot.database.store import DataStore, Row
from manupilot.utils.logging import ServiceLogger

REVIEW_KEY = ("partner_id", "user_id")

MIN_RATING = 1
MAX_RATING = 5


class ReviewService:
    """
    Service for partner reviews.

    Provides:
    - Review listing per partner, newest first
    - The caller's own review of a partner
    - Review submission (upsert on partner and user) with rating refresh
    """

    def __init__(self, store: DataStore):
        self.store = store
        self.logger = ServiceLogger("review")

    async def list_reviews(self, partner_id: str | None) -> list[Row]:
        """
        Raises:
            ValueError: If partner_id is missing
        """
        if not partner_id:
            raise ValueError("Partner ID required")
        return await self.store.select(
            "reviews",
            {"partner_id": partner_id},
            order_by="created_at",
            descending=True,
        )

    async def get_user_review(self, partner_id: str, user_id: str) -> Row | None:
        rows = await self.store.select("reviews", {"partner_id": partner_id, "user_id": user_id}, limit=1)
        return rows[0] if rows else None

    async def submit_review(
        self,
        user_id: str,
        partner_id: str | None,
        rating: Any,
        review_text: str | None = None,
    ) -> Row | None:
        """
        Create or replace the user's review of a partner.

        Args:
            user_id: Reviewing user
            partner_id: Partner being reviewed
            rating: Whole number from 1 to 5
            review_text: Optional free text

        Returns:
            The stored review, or None if the partner does not exist

        Raises:
            ValueError: If partner_id or rating is missing or out of range
        """
        if not partner_id or not rating:
            raise ValueError("Partner ID and rating required")
        if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
            raise ValueError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")

        if await self.store.get("partners", partner_id) is None:
            return None

        review = await self.store.upsert(
            "reviews",
            {
                "partner_id": partner_id,
                "user_id": user_id,
                "rating": rating,
                "review_text": review_text or None,
            },
            on_conflict=REVIEW_KEY,
        )

        average = await self.refresh_rating(partner_id)

        self.logger.log_operation_complete(
            "submit_review",
            partner_id=partner_id,
            review_id=review["id"],
            rating=rating,
            partner_rating=average,
        )
        return review

    async def refresh_rating(self, partner_id: str) -> float | None:
        """Store the mean review rating on the partner, to two decimals."""
        reviews = await self.store.select("reviews", {"partner_id": partner_id})
        if not reviews:
            return None

        average = round(sum(r["rating"] for r in reviews) / len(reviews), 2)
        await self.store.replace("partners", partner_id, {"rating": average})
        return average
