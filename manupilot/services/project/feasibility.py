"""
Feasibility scoring engine.

Turns the feasibility features produced for a playbook into
deterministic block scores and a weighted overall score. Pure and
stateless; every score is clamped to [0, 100].
"""

import math
from datetime import datetime, timezone
from typing import Any

from manupilot.schemas import FeasibilityFeatures

ENGINE_VERSION = "1.0"

PROCESS_BASE_SCORES = {
    "sheet_metal": 85,
    "welding": 80,
    "cnc": 75,
    "injection_moulding": 65,
    "casting": 70,
    "forging": 70,
    "textile_sewing": 85,
    "electronics_pcba": 55,
    "assembly_only": 90,
}
DEFAULT_PROCESS_SCORE = 70

# Lower cost band is better
COST_BAND_SCORES = {"Low": 90, "Medium": 70, "High": 45}
TOOLING_SCORES = {"None": 95, "Low": 80, "Medium": 65, "High": 40}
FREIGHT_SCORES = {"Light": 90, "Medium": 70, "Heavy": 45}
TREND_SCORES = {"Declining": 30, "Flat": 50, "Growing": 75, "Exploding": 90}

TOOLING_PENALTIES = {"None": 0, "Low": 5, "Medium": 10, "High": 20}
COMPLIANCE_PENALTIES = {"Basic": 0, "Moderate": 8, "Strict": 18}

COMPETITION_BASE = {"Commodity": 80, "Brandable": 60, "Niche": 20}
BAND_ADJUSTMENTS = {"Low": -10, "Medium": 0, "High": 10}

FRAGILITY_RISK = {"Low": 20, "Medium": 50, "High": 80}
COMPLIANCE_RISK = {"Basic": 10, "Moderate": 30, "Strict": 60}
MATURITY_RISK = {"New": 40, "Emerging": 20, "Established": 0, "Saturated": 10}
UNIQUENESS_RISK = {"branding_only": -20, "highly_unique": 10, "category_creating": 30}
WEIGHT_RISK = {"Heavy": 15, "Medium": 5}

OVERALL_WEIGHTS = {
    "manufacturability": 0.35,
    "cost_structure": 0.25,
    "advantage": 0.20,
    "momentum": 0.10,
    "risk_adjusted": 0.10,
}


def clamp(value: float, low: float = 0, high: float = 100) -> float:
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _is_off_the_shelf(f: FeasibilityFeatures) -> bool:
    return f.sourcing_mode == "white-label" or f.uniqueness_factor == "branding_only"


def process_base_score(processes: list[str]) -> int:
    """Hardest process wins; no processes scores neutral."""
    if not processes:
        return DEFAULT_PROCESS_SCORE
    return min(PROCESS_BASE_SCORES.get(p, DEFAULT_PROCESS_SCORE) for p in processes)


def parts_complexity_penalty(parts_count: int) -> int:
    if parts_count <= 5:
        return 0
    if parts_count <= 15:
        return 5
    if parts_count <= 30:
        return 10
    return 20


def manufacturability_label(score: float) -> str:
    if score >= 75:
        return "High"
    if score >= 50:
        return "Medium"
    return "Low"


def competition_label(score: float) -> str:
    if score < 35:
        return "Low"
    if score < 60:
        return "Medium"
    if score < 80:
        return "High"
    return "Extreme"


def risk_label(score: float) -> str:
    if score < 35:
        return "Low"
    if score < 70:
        return "Medium"
    return "High"


def calculate_manufacturability(f: FeasibilityFeatures) -> dict[str, Any]:
    if _is_off_the_shelf(f):
        return {
            "score": 95,
            "manufacturabilityLabel": "High",
            "notes": [
                "White Label / Branding Only: Already manufactured and available.",
                "No custom tooling or engineering required.",
                "Immediate availability from suppliers.",
            ],
        }

    score = process_base_score(f.processes)

    if f.sourcing_mode == "combination" or f.uniqueness_factor == "light_improvements":
        score += 10

    if f.uniqueness_factor == "highly_unique":
        score -= 10
    elif f.uniqueness_factor == "category_creating":
        score -= 20

    if f.requires_custom_tooling:
        score -= TOOLING_PENALTIES[f.tooling_cost_band]

    if f.has_electronics:
        score -= 10

    score -= COMPLIANCE_PENALTIES[f.compliance_level]
    score -= parts_complexity_penalty(f.parts_count)

    score = clamp(score)

    notes = []
    if f.sourcing_mode == "combination":
        notes.append("Combination approach: Uses standard parts with some custom modification.")
    if f.uniqueness_factor == "category_creating":
        notes.append("Category-creating product: Requires fresh engineering approach.")

    if score >= 75:
        notes.append("Standard manufacturing processes, easy to scale.")
    elif score >= 50:
        notes.append("Moderate complexity, requires experienced manufacturer.")
    else:
        notes.append("Complex manufacturing, likely requires custom engineering and multiple suppliers.")

    if f.requires_custom_tooling:
        notes.append("Requires custom tooling or moulds.")
    if f.has_electronics:
        notes.append("Includes electronic components, which adds complexity.")

    return {
        "score": score,
        "manufacturabilityLabel": manufacturability_label(score),
        "notes": notes,
    }


def calculate_cost_structure(f: FeasibilityFeatures) -> dict[str, Any]:
    raw = (
        0.35 * COST_BAND_SCORES[f.unit_cost_band]
        + 0.25 * COST_BAND_SCORES[f.moq_band]
        + 0.20 * TOOLING_SCORES[f.tooling_cost_band]
        + 0.20 * FREIGHT_SCORES[f.weight_class]
    )

    notes = []
    if f.unit_cost_band == "Low":
        notes.append("Favourable unit cost band for healthy margins.")
    elif f.unit_cost_band == "High":
        notes.append("High unit cost band, consider premium positioning or cost reduction.")

    if f.moq_band == "High":
        notes.append("High minimum order quantities likely required by suppliers.")

    if f.tooling_cost_band == "High":
        notes.append("Expect significant upfront tooling or mould costs.")
    elif f.tooling_cost_band == "None":
        notes.append("No significant tooling costs expected.")

    if f.weight_class == "Heavy":
        notes.append("Heavy product class, freight costs will be a major factor.")

    return {
        "score": round_half_up(raw),
        "unitCostBand": f.unit_cost_band,
        "moqBand": f.moq_band,
        "toolingCostBand": f.tooling_cost_band,
        "freightCostBand": f.weight_class,
        "notes": notes,
    }


def calculate_competition(f: FeasibilityFeatures) -> dict[str, Any]:
    if _is_off_the_shelf(f):
        score = 80
    elif f.sourcing_mode == "custom" or f.uniqueness_factor == "highly_unique":
        score = 20
    elif f.uniqueness_factor == "category_creating":
        score = 10
    else:
        score = COMPETITION_BASE[f.competition_category]

    score += BAND_ADJUSTMENTS[f.amazon_saturation]
    score += BAND_ADJUSTMENTS[f.differentiation_difficulty]

    intensity = clamp(score)
    advantage = clamp(100 - intensity)

    notes = []
    if f.uniqueness_factor == "branding_only":
        notes.append("Branding-Only: High competition, differentiation relies solely on brand.")
    elif f.uniqueness_factor == "category_creating":
        notes.append("Category-Creating: No direct competitors, but requires market education.")
    elif f.sourcing_mode == "white-label":
        notes.append("White Label: High competition as product is widely available.")
    elif f.sourcing_mode == "custom":
        notes.append("Custom Design: Low direct competition due to uniqueness.")
    elif f.competition_category == "Commodity":
        notes.append("Highly commoditised category, expect many similar products.")
    elif f.competition_category == "Brandable":
        notes.append("Category allows differentiation through brand and design.")
    else:
        notes.append("Niche category, more focused competition.")

    if f.amazon_saturation == "High":
        notes.append("High marketplace saturation, expect price pressure.")
    elif f.amazon_saturation == "Low":
        notes.append("Relatively low marketplace saturation, more room to stand out.")

    return {
        "intensityScore": intensity,
        "advantageScore": advantage,
        "intensityLabel": competition_label(intensity),
        "notes": notes,
    }


MARKET_NOTES = {
    "Exploding": "Rapidly growing category, strong demand momentum.",
    "Growing": "Growing category with positive demand trend.",
    "Flat": "Stable category with consistent demand.",
    "Declining": "Declining category, validate demand carefully.",
}


def calculate_market(f: FeasibilityFeatures) -> dict[str, Any]:
    return {
        "momentumScore": TREND_SCORES[f.trend_direction],
        "trendLabel": f.trend_direction,
        "notes": [MARKET_NOTES[f.trend_direction]],
    }


def calculate_risk(f: FeasibilityFeatures) -> dict[str, Any]:
    score = FRAGILITY_RISK[f.fragility]
    if f.has_electronics:
        score += 10
    score += COMPLIANCE_RISK[f.compliance_level]
    score += MATURITY_RISK[f.market_maturity]
    score += UNIQUENESS_RISK.get(f.uniqueness_factor, 0)
    score += WEIGHT_RISK.get(f.weight_class, 0)

    score = clamp(score)

    notes = []
    if f.uniqueness_factor == "branding_only":
        notes.append("Low technical risk (Branding Only).")
    elif f.uniqueness_factor == "category_creating":
        notes.append("High market risk (Category Creating): Unknown adoption.")

    if f.market_maturity == "New":
        notes.append("New/Untested market: High risk of product-market fit.")
    elif f.market_maturity == "Emerging":
        notes.append("Emerging market: Adds moderate market risk.")

    if f.fragility == "High":
        notes.append("High fragility: High risk of damage in transit.")
    if f.has_electronics:
        notes.append("Electronics: Increases failure risk and QC complexity.")
    if f.compliance_level == "Strict":
        notes.append("Strict compliance: High regulatory and testing risk.")

    return {
        "riskScore": score,
        "riskLabel": risk_label(score),
        "notes": notes,
    }


def calculate_regions(f: FeasibilityFeatures) -> dict[str, Any]:
    if not f.typical_regions:
        return {"mainRegion": None, "alternatives": []}

    ranked = sorted(f.typical_regions, key=lambda r: r.suitability, reverse=True)
    main, *rest = ranked

    return {
        "mainRegion": main.region,
        "alternatives": [r.model_dump() for r in rest[:3]],
    }


def calculate_overall_score(
    manufacturability: float,
    cost_structure: float,
    advantage: float,
    momentum: float,
    risk: float,
) -> int:
    w = OVERALL_WEIGHTS
    raw = (
        w["manufacturability"] * manufacturability
        + w["cost_structure"] * cost_structure
        + w["advantage"] * advantage
        + w["momentum"] * momentum
        + w["risk_adjusted"] * (100 - risk)
    )
    return int(clamp(round_half_up(raw)))


def calculate_feasibility(
    features: FeasibilityFeatures | dict[str, Any],
    generated_at: datetime | None = None,
) -> dict[str, Any]:
    """
    Score a product's feasibility.

    Args:
        features: Feature set, as a model or a camelCase/snake_case dict
        generated_at: Timestamp recorded in the result metadata

    Returns:
        Block scores, the overall score and result metadata
    """
    if not isinstance(features, FeasibilityFeatures):
        features = FeasibilityFeatures.model_validate(features)

    manufacturability = calculate_manufacturability(features)
    cost_structure = calculate_cost_structure(features)
    competition = calculate_competition(features)
    market = calculate_market(features)
    risk = calculate_risk(features)

    overall = calculate_overall_score(
        manufacturability=manufacturability["score"],
        cost_structure=cost_structure["score"],
        advantage=competition["advantageScore"],
        momentum=market["momentumScore"],
        risk=risk["riskScore"],
    )

    return {
        "overallScore": overall,
        "manufacturability": manufacturability,
        "costStructure": cost_structure,
        "competition": competition,
        "market": market,
        "risk": risk,
        "regions": calculate_regions(features),
        "meta": {
            "version": ENGINE_VERSION,
            "generatedAt": (generated_at or datetime.now(timezone.utc)).isoformat(),
        },
    }
