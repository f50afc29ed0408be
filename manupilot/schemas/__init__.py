"""
Pydantic schemas shared between services and API routes.

Feasibility features arrive from the playbook generator in camelCase;
the models accept either camelCase or snake_case field names.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

CostBand = Literal["Low", "Medium", "High"]
ToolingBand = Literal["None", "Low", "Medium", "High"]
WeightClass = Literal["Light", "Medium", "Heavy"]
FragilityBand = Literal["Low", "Medium", "High"]
ComplianceLevel = Literal["Basic", "Moderate", "Strict"]
ManufacturingProcess = Literal[
    "sheet_metal",
    "welding",
    "cnc",
    "injection_moulding",
    "casting",
    "forging",
    "textile_sewing",
    "electronics_pcba",
    "assembly_only",
]
CompetitionCategory = Literal["Commodity", "Brandable", "Niche"]
SaturationBand = Literal["Low", "Medium", "High"]
DifferentiationBand = Literal["Low", "Medium", "High"]
TrendDirection = Literal["Declining", "Flat", "Growing", "Exploding"]
MarketMaturity = Literal["New", "Emerging", "Established", "Saturated"]
SourcingMode = Literal["white-label", "combination", "custom", "auto"]
UniquenessFactor = Literal[
    "branding_only",
    "light_improvements",
    "moderate_innovation",
    "highly_unique",
    "category_creating",
]


class CamelModel(BaseModel):
    """Base model accepting camelCase or snake_case keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegionSuitability(CamelModel):
    region: str
    suitability: float = Field(ge=0, le=100)
    notes: str = ""


class FeasibilityFeatures(CamelModel):
    """Indicators describing a product for feasibility scoring."""
    product_category: str = ""

    processes: list[ManufacturingProcess] = []
    parts_count: int = 0

    has_electronics: bool = False
    requires_custom_tooling: bool = False
    tooling_cost_band: ToolingBand = "None"

    unit_cost_band: CostBand = "Medium"
    moq_band: CostBand = "Medium"

    weight_class: WeightClass = "Medium"
    fragility: FragilityBand = "Medium"

    compliance_level: ComplianceLevel = "Basic"

    typical_regions: list[RegionSuitability] = []

    competition_category: CompetitionCategory = "Brandable"
    amazon_saturation: SaturationBand = "Medium"
    differentiation_difficulty: DifferentiationBand = "Medium"

    trend_direction: TrendDirection = "Flat"
    market_maturity: MarketMaturity = "Established"
    sourcing_mode: SourcingMode | None = None
    uniqueness_factor: UniquenessFactor | None = None


# Response schemas
class ErrorResponse(BaseModel):
    """Error response schema."""
    detail: str
    errors: list[Any] | None = None


class MissingSpecField(BaseModel):
    field: str
    label: str
    required: bool


class SpecCompletenessResponse(BaseModel):
    """Readiness of a project's specification."""
    percentage: int
    missing: list[MissingSpecField]


class QuoteAnalysisResponse(BaseModel):
    """Structured result of normalizing a supplier's quote text."""
    metrics: dict[str, Any]
    score: int
    flags: list[str]
    summary: str


__all__ = [
    "CamelModel",
    "RegionSuitability",
    "FeasibilityFeatures",
    "ErrorResponse",
    "MissingSpecField",
    "SpecCompletenessResponse",
    "QuoteAnalysisResponse",
]
