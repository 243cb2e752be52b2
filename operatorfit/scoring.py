"""Assessment scoring engine.

Turns a set of questionnaire answers into dimension scores, venture-fit
scores, team-compatibility scores, style traits, a trap (social
desirability) analysis, an operator-type classification and the narrative
shown to reviewers.

Pipeline
--------
1. trap analysis over the ``is_trap`` items (37-40)
2. likert dimension sums for 1-36 plus the mixed-construct table for 41-50,
   reverse scoring applied once per answer
3. scenario adjustments on top of the dimension sums
4. venture-fit averages for 51-60, then cross-validation against step 3
5. style traits from forced-choice answers, team compatibility from the
   style traits plus scenario bonuses
6. operator type, confidence level, narrative

Every function here is pure. A missing or malformed answer contributes
nothing; scoring never raises on sparse input.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from operatorfit.catalog import FORCED_CHOICE, LIKERT, SCENARIO, Question, Response
from operatorfit.narratives import (
    GROWTH_CATALYST,
    OPERATIONAL_LEADER,
    PRODUCT_ARCHITECT,
    STRENGTHS,
    TRAIT_LABELS,
    VISIONARY_BUILDER,
    WEAKNESSES,
    summary_for,
    weakness_summary_for,
)

# ---------------------------------------------------------------------------
# Lookup tables
# ---------------------------------------------------------------------------

DIMENSIONS = ("ownership", "execution", "hustle", "problemSolving", "leadership")
DIMENSION_MAX = {"ownership": 40, "execution": 40, "hustle": 40, "problemSolving": 30, "leadership": 30}

_DIMENSION_RANGES = (
    (range(1, 9), "ownership"),
    (range(9, 17), "execution"),
    (range(17, 25), "hustle"),
    (range(25, 31), "problemSolving"),
    (range(31, 37), "leadership"),
)

MIXED_CONSTRUCT: dict[int, tuple[tuple[str, float], ...]] = {
    41: (("execution", 0.5),),
    42: (("execution", 0.5), ("hustle", 0.25)),
    43: (("leadership", 0.5), ("problemSolving", 0.25)),
    44: (("leadership", 0.5),),
    45: (("ownership", 0.5), ("hustle", 0.25)),
    46: (("execution", 0.5),),
    47: (("execution", 0.5),),
    48: (("hustle", 0.5),),
    49: (("execution", 0.5),),
    50: (("execution", 0.5),),
}

# question number -> ((dimension, fraction), ...); 37-40 (trap) are absent
CONTRIBUTIONS: dict[int, tuple[tuple[str, float], ...]] = {
    **{n: ((dim, 1.0),) for numbers, dim in _DIMENSION_RANGES for n in numbers},
    **MIXED_CONSTRUCT,
}

SCENARIO_WEIGHT = 0.5
TRAIT_ALIASES = {"problem_solving": "problemSolving"}

VENTURE_FIT_GROUPS: dict[str, tuple[int, ...]] = {
    "operator": (51, 52, 53),
    "product": (54, 55, 56),
    "growth": (57, 58, 59),
    "vision": (60,),
}

STYLE_TRAITS = (
    "action_bias", "deliberation_bias", "autonomy", "collaboration",
    "direct", "diplomatic", "vision_focus", "execution_focus",
)

TEAM_DIMENSIONS = ("workingStyle", "communication", "conflictResponse", "decisionMaking", "collaboration")
SCENARIO_TEAM_BONUS = 0.2
TEAM_SCORE_CAP = 5.0

# declared order doubles as the tie-break priority
OPERATOR_TYPE_SOURCES = (
    (OPERATIONAL_LEADER, "operator"),
    (PRODUCT_ARCHITECT, "product"),
    (GROWTH_CATALYST, "growth"),
    (VISIONARY_BUILDER, "vision"),
)
# inclusive cutoff; a gap that reports as 0.41 (4.5 vs 4.09) still qualifies, 0.43 does not
SECONDARY_CUTOFF = 0.41 + 1e-9

TRAP_NORMAL = "normal"
TRAP_ELEVATED = "elevated"
TRAP_LIKELY_EXAGGERATION = "likely_exaggeration"

CONFIDENCE_STRONG = "Strong"
CONFIDENCE_MODERATE = "Moderate"
CONFIDENCE_EMERGING = "Emerging"


# ---------------------------------------------------------------------------
# Data types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Answer:
    """A response joined with the scoring metadata of its question."""
    number: int
    value: Any
    type: str = LIKERT
    is_reverse: bool = False
    is_trap: bool = False
    option_mappings: dict[str, dict[str, float]] = field(default_factory=dict)


@dataclass(frozen=True)
class TrapAnalysis:
    score: float = 0.0
    level: str = TRAP_NORMAL
    flagged: bool = False


@dataclass
class AssessmentResult:
    dimension_scores: dict[str, float]
    venture_fit_scores: dict[str, float]
    team_compatibility_scores: dict[str, float]
    style_traits: dict[str, float]
    trap_analysis: TrapAnalysis
    primary_operator_type: str
    secondary_operator_type: str | None
    confidence_level: str
    summary: str
    strengths: list[str]
    weaknesses: list[str]
    weakness_summary: str
    top_traits: list[str]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _numeric(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return float(value)


def _likert(value: Any) -> float | None:
    v = _numeric(value)
    if v is None or not 1 <= v <= 5:
        return None
    return v


def reverse_score(value: float) -> float:
    return 6 - value


def adjusted_likert(answer: Answer) -> float | None:
    """Likert value after reverse scoring, or None when the answer is unusable."""
    if answer.type != LIKERT:
        return None
    v = _likert(answer.value)
    if v is None:
        return None
    return reverse_score(v) if answer.is_reverse else v


def selected_mapping(answer: Answer) -> dict[str, float]:
    """Trait deltas attached to the option the applicant picked; empty if none."""
    if answer.type == SCENARIO:
        v = _numeric(answer.value)
        if v is None or not v.is_integer():
            return {}
        key = str(int(v))
    elif answer.type == FORCED_CHOICE:
        if not isinstance(answer.value, str):
            return {}
        key = answer.value
    else:
        return {}
    mapping = answer.option_mappings.get(key)
    return mapping if isinstance(mapping, dict) else {}


def join_answers(questions: list[Question], responses: list[Response]) -> list[Answer]:
    """Pair responses with their questions; responses to unknown questions are dropped."""
    by_id = {q.id: q for q in questions}
    answers = []
    for r in responses:
        q = by_id.get(r.question_id)
        if q is None:
            continue
        answers.append(Answer(
            number=q.number, value=r.value, type=q.type, is_reverse=q.is_reverse,
            is_trap=q.is_trap, option_mappings=q.option_mappings,
        ))
    return answers


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------

def classify_trap_score(score: float) -> tuple[str, bool]:
    if score >= 16:
        return TRAP_LIKELY_EXAGGERATION, True
    if score >= 11:
        return TRAP_ELEVATED, True
    return TRAP_NORMAL, False


def analyze_traps(answers: list[Answer]) -> TrapAnalysis:
    values = [v for a in answers if a.is_trap and (v := _likert(a.value)) is not None]
    if not values:
        return TrapAnalysis()
    score = sum(values)
    level, flagged = classify_trap_score(score)
    return TrapAnalysis(score=score, level=level, flagged=flagged)


def dimension_scores(answers: list[Answer]) -> dict[str, float]:
    scores = {dim: 0.0 for dim in DIMENSIONS}
    for a in answers:
        if a.is_trap:
            continue
        contributions = CONTRIBUTIONS.get(a.number)
        if not contributions:
            continue
        v = adjusted_likert(a)
        if v is None:
            continue
        for dim, fraction in contributions:
            scores[dim] += v * fraction
    return scores


def apply_scenario_adjustments(scores: dict[str, float], answers: list[Answer]) -> dict[str, float]:
    adjusted = dict(scores)
    for a in answers:
        if a.type != SCENARIO:
            continue
        for trait, delta in selected_mapping(a).items():
            dim = TRAIT_ALIASES.get(trait, trait)
            d = _numeric(delta)
            if dim in adjusted and d is not None:
                adjusted[dim] += d * SCENARIO_WEIGHT
    return adjusted


def venture_fit_scores(answers: list[Answer]) -> dict[str, float]:
    """Average likert answer per venture-fit group; missing answers count as 0."""
    by_number: dict[int, float] = {}
    for a in answers:
        v = adjusted_likert(a)
        if v is not None:
            by_number[a.number] = v
    return {
        group: sum(by_number.get(n, 0.0) for n in numbers) / len(numbers)
        for group, numbers in VENTURE_FIT_GROUPS.items()
    }


def cross_validate(fit: dict[str, float], dims: dict[str, float]) -> dict[str, float]:
    """Dampen venture-fit claims the dimension evidence does not back up."""
    out = dict(fit)
    hustle5 = dims.get("hustle", 0.0) / DIMENSION_MAX["hustle"] * 5
    leadership5 = dims.get("leadership", 0.0) / DIMENSION_MAX["leadership"] * 5
    execution5 = dims.get("execution", 0.0) / DIMENSION_MAX["execution"] * 5
    if out["growth"] >= 4 and hustle5 < 3 and leadership5 < 3:
        out["growth"] *= 0.85
    if out["operator"] >= 4 and execution5 < 3:
        out["operator"] *= 0.9
    return out


def style_traits(answers: list[Answer]) -> dict[str, float]:
    traits = {t: 0.0 for t in STYLE_TRAITS}
    for a in answers:
        if a.type != FORCED_CHOICE:
            continue
        for trait, delta in selected_mapping(a).items():
            d = _numeric(delta)
            if trait in traits and d is not None:
                traits[trait] += d
    return traits


def _dominance(leading: float, trailing: float) -> float:
    if leading + trailing > 0:
        return 4.0 if leading > trailing else 3.5
    return 3.0


def team_compatibility(traits: dict[str, float], answers: list[Answer]) -> dict[str, float]:
    t = {name: traits.get(name, 0.0) for name in STYLE_TRAITS}
    scores = {
        "workingStyle": _dominance(t["autonomy"], t["collaboration"]),
        "communication": _dominance(t["direct"], t["diplomatic"]),
        "conflictResponse": _dominance(t["diplomatic"], t["direct"]),
        "decisionMaking": _dominance(t["action_bias"], t["deliberation_bias"]),
        "collaboration": 4.0 if t["collaboration"] > 0 else 3.0,
    }
    for a in answers:
        if a.type != SCENARIO:
            continue
        mapping = selected_mapping(a)
        if "communication" in mapping:
            scores["communication"] += SCENARIO_TEAM_BONUS
        if "collaboration" in mapping:
            scores["collaboration"] += SCENARIO_TEAM_BONUS
    return {k: min(v, TEAM_SCORE_CAP) for k, v in scores.items()}


def classify_operator_type(fit: dict[str, float]) -> tuple[str, str | None]:
    """Primary is the highest venture-fit score; secondary only when within 0.4 of it.

    The comparison tolerates binary float error and the 0.41 gap of 4.5 vs
    4.09, but nothing wider: 13/3 vs 3.9 (gap 0.433) has no secondary.
    """
    ranked = sorted(OPERATOR_TYPE_SOURCES, key=lambda t: -fit.get(t[1], 0.0))
    primary, primary_key = ranked[0]
    runner_up, runner_key = ranked[1]
    gap = fit.get(primary_key, 0.0) - fit.get(runner_key, 0.0)
    return primary, runner_up if gap <= SECONDARY_CUTOFF else None


def confidence_level(primary_score: float, trap_level: str) -> str:
    if trap_level == TRAP_LIKELY_EXAGGERATION:
        return CONFIDENCE_EMERGING
    if trap_level == TRAP_ELEVATED:
        return CONFIDENCE_MODERATE if primary_score >= 4.0 else CONFIDENCE_EMERGING
    if primary_score >= 4.0:
        return CONFIDENCE_STRONG
    if primary_score >= 3.4:
        return CONFIDENCE_MODERATE
    return CONFIDENCE_EMERGING


def top_traits(dims: dict[str, float], limit: int = 3) -> list[str]:
    ranked = sorted(DIMENSIONS, key=lambda d: -dims.get(d, 0.0))
    return [TRAIT_LABELS[d] for d in ranked[:limit]]


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def score_answers(answers: list[Answer], applicant_name: str) -> AssessmentResult:
    trap = analyze_traps(answers)
    dims = apply_scenario_adjustments(dimension_scores(answers), answers)
    fit = cross_validate(venture_fit_scores(answers), dims)
    traits = style_traits(answers)
    team = team_compatibility(traits, answers)

    primary, secondary = classify_operator_type(fit)
    primary_key = dict(OPERATOR_TYPE_SOURCES)[primary]
    confidence = confidence_level(fit[primary_key], trap.level)

    return AssessmentResult(
        dimension_scores=dims,
        venture_fit_scores=fit,
        team_compatibility_scores=team,
        style_traits=traits,
        trap_analysis=trap,
        primary_operator_type=primary,
        secondary_operator_type=secondary,
        confidence_level=confidence,
        summary=summary_for(applicant_name, primary, secondary, confidence, trap.score, trap.flagged),
        strengths=list(STRENGTHS[primary]),
        weaknesses=list(WEAKNESSES[primary]),
        weakness_summary=weakness_summary_for(applicant_name, primary),
        top_traits=top_traits(dims),
    )


def score_assessment(questions: list[Question], responses: list[Response],
                     applicant_name: str) -> AssessmentResult:
    """Score raw responses against the catalog they answer."""
    return score_answers(join_answers(questions, responses), applicant_name)
