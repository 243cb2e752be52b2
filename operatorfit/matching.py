"""Venture matcher: ranks venture profiles against a scored assessment.

overall = round(0.4 * operator_type_fit + 0.4 * dimension_fit + 0.2 * compatibility_fit)

Each component is an integer 0-100 and the overall score is computed from
the rounded components, so the formula holds exactly on stored rows.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field

from operatorfit.narratives import (
    GROWTH_CATALYST,
    OPERATIONAL_LEADER,
    PRODUCT_ARCHITECT,
    VISIONARY_BUILDER,
)
from operatorfit.scoring import DIMENSIONS, TEAM_DIMENSIONS, AssessmentResult

OPERATOR_TYPE_WEIGHT = 0.4
DIMENSION_WEIGHT = 0.4
COMPATIBILITY_WEIGHT = 0.2

DEFAULT_DIMENSION_WEIGHT = 0.5
DIMENSION_SCALE = 50

# applicant primary type -> venture ideal type -> fit
OPERATOR_TYPE_SCORES: dict[str, dict[str, int]] = {
    OPERATIONAL_LEADER: {
        OPERATIONAL_LEADER: 100, PRODUCT_ARCHITECT: 60, GROWTH_CATALYST: 55, VISIONARY_BUILDER: 50,
    },
    PRODUCT_ARCHITECT: {
        PRODUCT_ARCHITECT: 100, VISIONARY_BUILDER: 70, GROWTH_CATALYST: 65, OPERATIONAL_LEADER: 55,
    },
    GROWTH_CATALYST: {
        GROWTH_CATALYST: 100, PRODUCT_ARCHITECT: 70, VISIONARY_BUILDER: 65, OPERATIONAL_LEADER: 60,
    },
    VISIONARY_BUILDER: {
        VISIONARY_BUILDER: 100, PRODUCT_ARCHITECT: 70, GROWTH_CATALYST: 70, OPERATIONAL_LEADER: 55,
    },
}
DEFAULT_OPERATOR_TYPE_SCORE = 50

# team dimension -> venture preference label -> modifier; unlisted pairs use 1.0
TEAM_COMPATIBILITY_MAP: dict[str, dict[str, float]] = {
    "workingStyle": {"structured": 0.8, "high_autonomy": 0.7, "balanced": 0.9, "creative_flexible": 0.6},
    "communication": {"direct": 0.8, "frequent": 0.7, "structured": 0.9, "storytelling": 0.6},
    "decisionMaking": {"analytical": 0.9, "data_driven": 0.85, "instinct_based": 0.6, "quick": 0.7},
}

ROLE_KEYWORDS: dict[str, tuple[str, ...]] = {
    "ownership": ("Lead", "Manager", "Director"),
    "execution": ("Operations", "Manager", "Coordinator"),
    "hustle": ("Growth", "Business Development", "Sales"),
    "problemSolving": ("Strategy", "Operations", "Logistics"),
    "leadership": ("Lead", "Head", "Director"),
}
FALLBACK_ROLE = "General Operator"

HIGH_WEIGHT = 0.9
STRONG_RAW_SCORE = 40
WEAK_RAW_SCORE = 35

DIMENSION_REASONS = {
    "execution": "High execution score matches the venture's fast-paced environment",
    "ownership": "Strong ownership mindset suits the autonomous role requirements",
    "hustle": "Entrepreneurial hustle aligns with growth-stage needs",
    "problemSolving": "Problem-solving capabilities match operational complexity",
    "leadership": "Leadership skills suit the team management responsibilities",
}
# hustle and problemSolving deliberately have no concern text
DIMENSION_CONCERNS = {
    "execution": "May need execution support or structured processes",
    "ownership": "Consider pairing with strong accountability systems",
    "leadership": "May benefit from leadership development or co-lead structure",
}
FALLBACK_REASON = "General profile alignment with venture needs"


@dataclass(frozen=True)
class VentureProfile:
    id: int
    name: str
    ideal_operator_type: str
    industry: str = ""
    description: str = ""
    secondary_operator_type: str | None = None
    dimension_weights: dict[str, float] = field(default_factory=dict)
    team_profile: dict[str, str] = field(default_factory=dict)
    suggested_roles: tuple[str, ...] = ()
    is_active: bool = True


@dataclass
class VentureMatch:
    venture_id: int
    venture_name: str
    industry: str
    overall_score: int
    operator_type_score: int
    dimension_score: int
    compatibility_score: int
    match_reasons: list[str]
    concerns: list[str]
    suggested_role: str


def _round(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


# ---------------------------------------------------------------------------
# Components
# ---------------------------------------------------------------------------

def operator_type_fit(primary: str, secondary: str | None, venture: VentureProfile) -> int:
    if primary == venture.ideal_operator_type:
        return 100
    if venture.secondary_operator_type and primary == venture.secondary_operator_type:
        return 85
    if secondary and secondary == venture.ideal_operator_type:
        return 75
    return OPERATOR_TYPE_SCORES.get(primary, {}).get(venture.ideal_operator_type, DEFAULT_OPERATOR_TYPE_SCORE)


def dimension_weight(venture: VentureProfile, dim: str) -> float:
    """Explicit weights are honoured, including 0; absent ones default to 0.5."""
    weight = venture.dimension_weights.get(dim)
    if weight is None:
        return DEFAULT_DIMENSION_WEIGHT
    return float(weight)


def dimension_fit(dims: dict[str, float], venture: VentureProfile) -> float:
    weighted = 0.0
    total = 0.0
    for dim in DIMENSIONS:
        weight = dimension_weight(venture, dim)
        weighted += dims.get(dim, 0.0) / DIMENSION_SCALE * 100 * weight
        total += weight
    if total <= 0:
        return 50.0
    return weighted / total


def compatibility_fit(team: dict[str, float], venture: VentureProfile) -> float:
    total = 0.0
    for dim in TEAM_DIMENSIONS:
        label = venture.team_profile.get(dim)
        modifier = TEAM_COMPATIBILITY_MAP.get(dim, {}).get(label, 1.0) if label else 1.0
        total += team.get(dim, 0.0) / 5 * 100 * modifier
    return total / len(TEAM_DIMENSIONS)


def suggested_role(dims: dict[str, float], roles: tuple[str, ...] | list[str]) -> str:
    if not roles:
        return FALLBACK_ROLE
    # ties resolve to the later dimension
    top = DIMENSIONS[0]
    for dim in DIMENSIONS[1:]:
        if dims.get(dim, 0.0) >= dims.get(top, 0.0):
            top = dim
    keywords = ROLE_KEYWORDS.get(top, ())
    for role in roles:
        if any(k.lower() in role.lower() for k in keywords):
            return role
    return roles[0]


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------

def match_venture(result: AssessmentResult, venture: VentureProfile) -> VentureMatch:
    primary = result.primary_operator_type
    dims = result.dimension_scores
    team = result.team_compatibility_scores

    op_raw = operator_type_fit(primary, result.secondary_operator_type, venture)
    dim_raw = _clamp(dimension_fit(dims, venture))
    compat_raw = _clamp(compatibility_fit(team, venture))

    op_score = _round(_clamp(op_raw))
    dim_score = _round(dim_raw)
    compat_score = _round(compat_raw)
    overall = _round(
        op_score * OPERATOR_TYPE_WEIGHT + dim_score * DIMENSION_WEIGHT + compat_score * COMPATIBILITY_WEIGHT
    )

    reasons: list[str] = []
    concerns: list[str] = []

    if op_raw >= 85:
        reasons.append(f"Strong {primary} profile aligns well with {venture.name}'s operational needs")
    elif op_raw >= 70:
        reasons.append(f"{primary} tendencies complement {venture.name}'s team structure")

    for dim in DIMENSIONS:
        if dimension_weight(venture, dim) < HIGH_WEIGHT:
            continue
        raw = dims.get(dim, 0.0)
        if raw >= STRONG_RAW_SCORE:
            reasons.append(DIMENSION_REASONS[dim])
        elif raw < WEAK_RAW_SCORE and dim in DIMENSION_CONCERNS:
            concerns.append(DIMENSION_CONCERNS[dim])

    if dim_raw >= 75:
        reasons.append(f"Overall dimension profile strongly matches {venture.industry} requirements")

    if op_raw < 60:
        concerns.append(f"{primary} style may require adaptation for this role")
    if team.get("communication", 0.0) < 3:
        concerns.append("Communication style may need alignment with team norms")
    if team.get("collaboration", 0.0) < 3:
        concerns.append("Collaboration approach may require adjustment")

    if not reasons:
        reasons.append(FALLBACK_REASON)

    return VentureMatch(
        venture_id=venture.id,
        venture_name=venture.name,
        industry=venture.industry,
        overall_score=overall,
        operator_type_score=op_score,
        dimension_score=dim_score,
        compatibility_score=compat_score,
        match_reasons=reasons,
        concerns=concerns,
        suggested_role=suggested_role(dims, venture.suggested_roles),
    )


def match_ventures(result: AssessmentResult, ventures: list[VentureProfile]) -> list[VentureMatch]:
    """Score every venture independently; best first, ties keep input order."""
    matches = [match_venture(result, v) for v in ventures]
    return sorted(matches, key=lambda m: -m.overall_score)
