"""Pydantic request/response schemas for the operatorfit API."""
from __future__ import annotations

from pydantic import BaseModel, field_validator

from operatorfit.catalog import Response


class QuestionOut(BaseModel):
    id: int
    number: int
    text: str
    dimension: str
    type: str
    options: list[str] = []
    option_keys: list[str] = []


class ApplicantCreate(BaseModel):
    name: str
    email: str = ""

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name must not be blank")
        return v.strip()


class ApplicantOut(BaseModel):
    id: int
    name: str
    email: str


class SessionCreate(BaseModel):
    applicant_id: int


class SessionOut(BaseModel):
    id: int
    applicant_id: int
    applicant_name: str
    status: str
    answered: int
    total: int
    started_at: str | None = None
    completed_at: str | None = None
    result_id: int | None = None


class ResponseIn(BaseModel):
    question_id: int
    value: int | str

    def to_domain(self) -> Response:
        return Response(question_id=self.question_id, value=self.value)


class ResponsesIn(BaseModel):
    responses: list[ResponseIn]


class SubmitIn(BaseModel):
    responses: list[ResponseIn] = []


class RecordedOut(BaseModel):
    session_id: int
    answered: int


class TrapAnalysisOut(BaseModel):
    score: float
    level: str
    flagged: bool


class AssessmentResultOut(BaseModel):
    id: int | None = None
    session_id: int | None = None
    dimension_scores: dict[str, float]
    venture_fit_scores: dict[str, float]
    team_compatibility_scores: dict[str, float]
    style_traits: dict[str, float]
    trap_analysis: TrapAnalysisOut
    primary_operator_type: str
    secondary_operator_type: str | None = None
    confidence_level: str
    summary: str
    strengths: list[str]
    weaknesses: list[str]
    weakness_summary: str
    top_traits: list[str] = []


class VentureMatchOut(BaseModel):
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
    rank: int | None = None


class SubmitOut(BaseModel):
    session_id: int
    result_id: int
    already_completed: bool
    result: AssessmentResultOut
    matches: list[VentureMatchOut]


class ScorePreviewIn(BaseModel):
    applicant_name: str = "Applicant"
    responses: list[ResponseIn]


class ScorePreviewOut(BaseModel):
    result: AssessmentResultOut
    matches: list[VentureMatchOut]


class VentureCreate(BaseModel):
    name: str
    ideal_operator_type: str
    description: str = ""
    industry: str = ""
    secondary_operator_type: str | None = None
    dimension_weights: dict[str, float] = {}
    team_profile: dict[str, str] = {}
    suggested_roles: list[str] = []
    is_active: bool = True


class VentureUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    industry: str | None = None
    ideal_operator_type: str | None = None
    secondary_operator_type: str | None = None
    dimension_weights: dict[str, float] | None = None
    team_profile: dict[str, str] | None = None
    suggested_roles: list[str] | None = None
    is_active: bool | None = None


class VentureOut(BaseModel):
    id: int
    name: str
    description: str
    industry: str
    ideal_operator_type: str
    secondary_operator_type: str | None = None
    dimension_weights: dict[str, float] = {}
    team_profile: dict[str, str] = {}
    suggested_roles: list[str] = []
    is_active: bool


class ImportResult(BaseModel):
    created: int
    updated: int
    skipped: int


class RecomputeIn(BaseModel):
    result_ids: list[int] | None = None


class RecomputeOut(BaseModel):
    results: int
    matches: int
    ventures: int


class StatsOut(BaseModel):
    sessions: int
    results: int
    active_ventures: int
    by_status: dict[str, int]
    by_operator_type: dict[str, int]
    by_confidence: dict[str, int]
    by_trap_level: dict[str, int]
