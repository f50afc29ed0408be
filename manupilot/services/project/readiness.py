"""
Project readiness scoring.

A project is ready for RFQ submission once its specification covers
the weighted fields below.
"""

from dataclasses import dataclass, field
from typing import Any

from manupilot.database.store import DataStore, Row
from manupilot.utils.logging import ServiceLogger


@dataclass(frozen=True)
class SpecField:
    key: str
    label: str
    required: bool
    weight: int


SPEC_FIELDS = (
    SpecField("materials", "Materials", True, 20),
    SpecField("features", "Key Features", True, 15),
    SpecField("dimensions", "Dimensions", True, 20),
    SpecField("weightCapacity", "Weight Capacity", True, 15),
    SpecField("colors", "Color Options", False, 10),
    SpecField("packaging", "Packaging", False, 10),
    SpecField("targetMarkets", "Target Markets", False, 10),
)


@dataclass
class SpecCompleteness:
    percentage: int
    missing: list[dict[str, Any]] = field(default_factory=list)

    @property
    def missing_required(self) -> list[dict[str, Any]]:
        return [m for m in self.missing if m["required"]]

    def to_dict(self) -> dict[str, Any]:
        return {"percentage": self.percentage, "missing": list(self.missing)}


def _has_value(value: Any) -> bool:
    if isinstance(value, (list, tuple)):
        return len(value) > 0
    if isinstance(value, str):
        return bool(value.strip())
    return False


def calculate_spec_completeness(specs: dict[str, Any] | None) -> SpecCompleteness:
    """
    Score a project's specification.

    A field counts when it holds a non-empty list or a non-blank string;
    any other value (numbers, dicts, None) counts as missing.

    Args:
        specs: The project's ``specs`` payload

    Returns:
        SpecCompleteness with the earned percentage and missing fields
        in declaration order
    """
    specs = specs or {}
    earned = 0
    missing = []

    for spec_field in SPEC_FIELDS:
        if _has_value(specs.get(spec_field.key)):
            earned += spec_field.weight
        else:
            missing.append({
                "field": spec_field.key,
                "label": spec_field.label,
                "required": spec_field.required,
            })

    return SpecCompleteness(percentage=max(0, min(earned, 100)), missing=missing)


class ProjectService:
    """Read access to a user's projects and their readiness."""

    def __init__(self, store: DataStore):
        self.store = store
        self.logger = ServiceLogger("project")

    async def get_project(self, project_id: str, user_id: str) -> Row | None:
        """Return the project if it exists and belongs to the user."""
        project = await self.store.get("projects", project_id)
        if project is None or project.get("user_id") != user_id:
            return None
        return project

    async def get_readiness(self, project_id: str, user_id: str) -> SpecCompleteness | None:
        project = await self.get_project(project_id, user_id)
        if project is None:
            return None

        completeness = calculate_spec_completeness(project.get("specs"))

        self.logger.log_operation_complete(
            "get_readiness",
            project_id=project_id,
            percentage=completeness.percentage,
            missing_required=len(completeness.missing_required),
        )
        return completeness
