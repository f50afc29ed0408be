"""
Project services.

Provides:
- Specification completeness (readiness) scoring
- Deterministic feasibility scoring
"""

from manupilot.services.project.readiness import (
    SPEC_FIELDS,
    SpecCompleteness,
    ProjectService,
    calculate_spec_completeness,
)
from manupilot.services.project.feasibility import calculate_feasibility

__all__ = [
    "SPEC_FIELDS",
    "SpecCompleteness",
    "ProjectService",
    "calculate_spec_completeness",
    "calculate_feasibility",
]
