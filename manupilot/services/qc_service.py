"""
Sample quality-control service.

Generates QC checklists for a sample from its product playbook and
records inspection results against each checklist item. Sample photos
get a visual inspection from the vision model.
"""

from typing import Any

import httpx

from manupilot.config.settings import settings
from manupilot.database.store import DataStore, Row
from manupilot.models.account import QCResult
from manupilot.utils.ai_client import CompletionClient, CompletionError, load_json_response, prompt_builder
from manupilot.utils.logging import ServiceLogger

CHECKLIST_KEYS = ("items", "checklist", "checks")


class ChecklistGenerationError(Exception):
    """The completion service produced no usable checklist."""


class PhotoAnalysisError(Exception):
    """The completion service produced no usable photo inspection."""


def extract_checklist_items(payload: Any) -> list[str]:
    """
    Pull checklist criteria out of a parsed completion.

    Accepts a bare list or an object holding the list under ``items``,
    ``checklist`` or ``checks``. Blank entries are dropped.
    """
    items: Any = []
    if isinstance(payload, list):
        items = payload
    elif isinstance(payload, dict):
        items = next(
            (payload[key] for key in CHECKLIST_KEYS if isinstance(payload.get(key), list)),
            [],
        )

    return [str(item).strip() for item in items if str(item).strip()]


def coerce_photo_analysis(payload: Any) -> dict[str, Any]:
    """
    Shape a visual inspection reply.

    Raises:
        ValueError: If the payload is not an object
    """
    if not isinstance(payload, dict):
        raise ValueError("Photo analysis is not an object")

    defects = payload.get("defects") or []
    if not isinstance(defects, list):
        defects = [defects]

    try:
        confidence = float(payload.get("confidence") or 0)
    except (TypeError, ValueError):
        confidence = 0.0

    return {
        "description": str(payload.get("description") or ""),
        "defects": [str(d).strip() for d in defects if str(d).strip()],
        "recommendation": str(payload.get("recommendation") or ""),
        "confidence": max(0.0, min(100.0, confidence)),
    }


class QCService:
    """
    Service for sample QC checklists.

    Provides:
    - AI checklist generation from a playbook
    - Checklist listing per sample
    - Pass/fail result recording
    - Visual inspection of sample photos
    """

    def __init__(self, store: DataStore, client: CompletionClient | None = None):
        self.store = store
        self.client = client
        self.logger = ServiceLogger("qc")

    async def generate_checklist(
        self,
        project_id: str | None,
        sample_id: str | None,
        playbook: dict[str, Any] | None,
    ) -> list[Row]:
        """
        Generate and store a QC checklist for a sample.

        Args:
            project_id: Project the sample belongs to
            sample_id: Sample to attach the checklist to
            playbook: Product playbook (productName, category, materials, ...)

        Returns:
            The inserted checklist rows, each ``not_checked``

        Raises:
            ValueError: If a required field is missing
            ChecklistGenerationError: If the completion fails or yields no items
        """
        if not project_id or not sample_id or not playbook:
            raise ValueError("Missing required fields")
        if self.client is None:
            raise ChecklistGenerationError("No completion client configured")

        self.logger.log_operation_start("generate_checklist", project_id=project_id, sample_id=sample_id)

        messages = [
            {"role": "system", "content": prompt_builder.QC_SYSTEM_PROMPT},
            {
                "role": "user",
                "content": prompt_builder.qc_checklist_prompt(
                    playbook,
                    min_items=settings.sourcing.qc_min_items,
                    max_items=settings.sourcing.qc_max_items,
                ),
            },
        ]

        try:
            content = await self.client.complete_json(messages, model=settings.ai.qc_model)
            items = extract_checklist_items(load_json_response(content))
        except (CompletionError, httpx.HTTPError, ValueError) as e:
            self.logger.log_operation_failed("generate_checklist", e, sample_id=sample_id)
            raise ChecklistGenerationError(f"Failed to generate QC checklist: {e}") from e

        if not items:
            raise ChecklistGenerationError("Invalid AI response format: No items found")

        rows = await self.store.insert_many(
            "sample_qc",
            [
                {"sample_id": sample_id, "criteria": criteria, "result": QCResult.NOT_CHECKED.value}
                for criteria in items
            ],
        )

        self.logger.log_operation_complete("generate_checklist", sample_id=sample_id, item_count=len(rows))
        return rows

    async def list_items(self, sample_id: str) -> list[Row]:
        return await self.store.select("sample_qc", {"sample_id": sample_id}, order_by="created_at")

    async def record_result(
        self,
        item_id: str,
        result: str,
        comment: str | None = None,
    ) -> Row | None:
        """
        Record an inspection result on a checklist item.

        Raises:
            ValueError: If the result is not pass, fail or not_checked
        """
        try:
            qc_result = QCResult(result)
        except ValueError:
            raise ValueError(f"Invalid QC result: {result}")

        values: dict[str, Any] = {"result": qc_result.value}
        if comment is not None:
            values["comment"] = comment

        return await self.store.replace("sample_qc", item_id, values)

    async def analyze_photo(
        self,
        sample_id: str | None,
        photo_url: str | None,
        context: str | None = None,
        photo_id: str | None = None,
    ) -> dict[str, Any]:
        """
        Inspect a sample photo with the vision model.

        When ``photo_id`` is given the result is cached on that
        ``sample_photos`` row.

        Returns:
            description, defects, recommendation and confidence (0-100)

        Raises:
            ValueError: If sample_id or photo_url is missing
            PhotoAnalysisError: If the completion fails or is not an object
        """
        if not sample_id or not photo_url:
            raise ValueError("Missing required fields")
        if self.client is None:
            raise PhotoAnalysisError("No completion client configured")

        self.logger.log_operation_start("analyze_photo", sample_id=sample_id, photo_id=photo_id)

        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt_builder.photo_inspection_prompt(context)},
                    {"type": "image_url", "image_url": {"url": photo_url}},
                ],
            },
        ]

        try:
            content = await self.client.complete_json(
                messages,
                model=settings.ai.qc_model,
                max_tokens=settings.ai.photo_analysis_max_tokens,
            )
            analysis = coerce_photo_analysis(load_json_response(content))
        except (CompletionError, httpx.HTTPError, ValueError) as e:
            self.logger.log_operation_failed("analyze_photo", e, sample_id=sample_id)
            raise PhotoAnalysisError(f"Failed to analyze sample photo: {e}") from e

        if photo_id:
            await self.store.replace("sample_photos", photo_id, {"ai_analysis": analysis})

        self.logger.log_operation_complete(
            "analyze_photo",
            sample_id=sample_id,
            defect_count=len(analysis["defects"]),
            recommendation=analysis["recommendation"],
        )
        return analysis
