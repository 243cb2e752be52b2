"""Storage boundaries of the submission pipeline.

The Protocols name what the pipeline reads and writes; the ``Sql*`` classes
implement them on a single SQLAlchemy ``Session`` so one submission shares
one transaction. Store methods flush but never commit: the caller owns the
transaction.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from operatorfit import models
from operatorfit.catalog import Question, Response
from operatorfit.matching import VentureMatch, VentureProfile
from operatorfit.scoring import AssessmentResult, TrapAnalysis
from operatorfit.utils import json_dump, json_parse


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class SessionRecord:
    id: int
    applicant_id: int
    applicant_name: str
    status: str


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------

class QuestionCatalog(Protocol):
    def list_active(self) -> list[Question]: ...


class ResponseStore(Protocol):
    def get_all_for_session(self, session_id: int) -> list[Response]: ...
    def save(self, session_id: int, responses: list[Response]) -> None: ...


class VentureProfileStore(Protocol):
    def list_active(self) -> list[VentureProfile]: ...


class AssessmentResultStore(Protocol):
    def upsert_by_session(self, session_id: int, result: AssessmentResult) -> int: ...
    def get_by_session(self, session_id: int) -> tuple[int, AssessmentResult] | None: ...


class VentureMatchStore(Protocol):
    def replace_all_for_result(self, result_id: int, matches: list[VentureMatch]) -> None: ...
    def list_for_result(self, result_id: int) -> list[VentureMatch]: ...


class SessionStore(Protocol):
    def get(self, session_id: int, for_update: bool = False) -> SessionRecord | None: ...
    def mark_in_progress(self, session_id: int) -> None: ...
    def mark_completed(self, session_id: int) -> bool: ...


# ---------------------------------------------------------------------------
# ORM <-> domain conversion
# ---------------------------------------------------------------------------

def question_from_row(row: models.Question) -> Question:
    return Question(
        id=row.id,
        number=row.number,
        text=row.text,
        dimension=row.dimension,
        type=row.question_type,
        is_reverse=bool(row.is_reverse),
        is_trap=bool(row.is_trap),
        options=tuple(json_parse(row.options_json, [])),
        option_mappings=json_parse(row.option_mappings_json),
    )


def venture_from_row(row: models.Venture) -> VentureProfile:
    return VentureProfile(
        id=row.id,
        name=row.name,
        ideal_operator_type=row.ideal_operator_type,
        industry=row.industry or "",
        description=row.description or "",
        secondary_operator_type=row.secondary_operator_type or None,
        dimension_weights=json_parse(row.dimension_weights_json),
        team_profile=json_parse(row.team_profile_json),
        suggested_roles=tuple(json_parse(row.suggested_roles_json, [])),
        is_active=bool(row.is_active),
    )


def result_from_row(row: models.AssessmentResult) -> AssessmentResult:
    return AssessmentResult(
        dimension_scores=json_parse(row.dimension_scores_json),
        venture_fit_scores=json_parse(row.venture_fit_scores_json),
        team_compatibility_scores=json_parse(row.team_compatibility_scores_json),
        style_traits=json_parse(row.style_traits_json),
        trap_analysis=TrapAnalysis(score=row.trap_score, level=row.trap_level, flagged=bool(row.trap_flag)),
        primary_operator_type=row.primary_operator_type,
        secondary_operator_type=row.secondary_operator_type,
        confidence_level=row.confidence_level,
        summary=row.summary,
        strengths=json_parse(row.strengths_json, []),
        weaknesses=json_parse(row.weaknesses_json, []),
        weakness_summary=row.weakness_summary,
        top_traits=json_parse(row.top_traits_json, []),
    )


def _fill_result_row(row: models.AssessmentResult, result: AssessmentResult) -> None:
    row.dimension_scores_json = json_dump(result.dimension_scores)
    row.venture_fit_scores_json = json_dump(result.venture_fit_scores)
    row.team_compatibility_scores_json = json_dump(result.team_compatibility_scores)
    row.style_traits_json = json_dump(result.style_traits)
    row.trap_score = result.trap_analysis.score
    row.trap_level = result.trap_analysis.level
    row.trap_flag = result.trap_analysis.flagged
    row.primary_operator_type = result.primary_operator_type
    row.secondary_operator_type = result.secondary_operator_type
    row.confidence_level = result.confidence_level
    row.summary = result.summary
    row.strengths_json = json_dump(result.strengths)
    row.weaknesses_json = json_dump(result.weaknesses)
    row.weakness_summary = result.weakness_summary
    row.top_traits_json = json_dump(result.top_traits)


def match_from_row(row: models.VentureMatch) -> VentureMatch:
    return VentureMatch(
        venture_id=row.venture_id,
        venture_name=row.venture_name,
        industry=row.industry,
        overall_score=row.overall_score,
        operator_type_score=row.operator_type_score,
        dimension_score=row.dimension_score,
        compatibility_score=row.compatibility_score,
        match_reasons=json_parse(row.match_reasons_json, []),
        concerns=json_parse(row.concerns_json, []),
        suggested_role=row.suggested_role,
    )


# ---------------------------------------------------------------------------
# SQLAlchemy implementations
# ---------------------------------------------------------------------------

class SqlQuestionCatalog:
    def __init__(self, session: Session):
        self.session = session

    def list_active(self) -> list[Question]:
        rows = self.session.execute(
            select(models.Question).where(models.Question.is_active.is_(True)).order_by(models.Question.number)
        ).scalars().all()
        return [question_from_row(r) for r in rows]


class SqlResponseStore:
    def __init__(self, session: Session):
        self.session = session

    def get_all_for_session(self, session_id: int) -> list[Response]:
        rows = self.session.execute(
            select(models.AssessmentResponse)
            .where(models.AssessmentResponse.session_id == session_id)
            .order_by(models.AssessmentResponse.question_id)
        ).scalars().all()
        return [Response(question_id=r.question_id, value=json_parse(r.value_json, None)) for r in rows]

    def save(self, session_id: int, responses: list[Response]) -> None:
        """Insert or overwrite one answer per question."""
        existing = {
            r.question_id: r
            for r in self.session.execute(
                select(models.AssessmentResponse).where(models.AssessmentResponse.session_id == session_id)
            ).scalars()
        }
        now = utcnow()
        for resp in responses:
            row = existing.get(resp.question_id)
            if row is None:
                row = models.AssessmentResponse(session_id=session_id, question_id=resp.question_id)
                self.session.add(row)
                existing[resp.question_id] = row
            row.value_json = json_dump(resp.value)
            row.answered_at = now
        self.session.flush()


class SqlVentureProfileStore:
    def __init__(self, session: Session):
        self.session = session

    def list_active(self) -> list[VentureProfile]:
        rows = self.session.execute(
            select(models.Venture).where(models.Venture.is_active.is_(True)).order_by(models.Venture.id)
        ).scalars().all()
        return [venture_from_row(r) for r in rows]


class SqlAssessmentResultStore:
    def __init__(self, session: Session):
        self.session = session

    def _row_for_session(self, session_id: int) -> models.AssessmentResult | None:
        return self.session.execute(
            select(models.AssessmentResult).where(models.AssessmentResult.session_id == session_id)
        ).scalar_one_or_none()

    def upsert_by_session(self, session_id: int, result: AssessmentResult) -> int:
        row = self._row_for_session(session_id)
        if row is None:
            row = models.AssessmentResult(session_id=session_id)
            self.session.add(row)
        _fill_result_row(row, result)
        row.scored_at = utcnow()
        self.session.flush()
        return row.id

    def get_by_session(self, session_id: int) -> tuple[int, AssessmentResult] | None:
        row = self._row_for_session(session_id)
        if row is None:
            return None
        return row.id, result_from_row(row)


class SqlVentureMatchStore:
    def __init__(self, session: Session):
        self.session = session

    def replace_all_for_result(self, result_id: int, matches: list[VentureMatch]) -> None:
        """Delete existing matches for the result, then insert the new ranking. Caller must commit."""
        self.session.execute(
            delete(models.VentureMatch).where(models.VentureMatch.result_id == result_id)
        )
        for rank, m in enumerate(matches, start=1):
            self.session.add(models.VentureMatch(
                result_id=result_id,
                venture_id=m.venture_id,
                venture_name=m.venture_name,
                industry=m.industry,
                overall_score=m.overall_score,
                operator_type_score=m.operator_type_score,
                dimension_score=m.dimension_score,
                compatibility_score=m.compatibility_score,
                match_reasons_json=json_dump(m.match_reasons),
                concerns_json=json_dump(m.concerns),
                suggested_role=m.suggested_role,
                rank=rank,
            ))
        self.session.flush()

    def list_for_result(self, result_id: int) -> list[VentureMatch]:
        rows = self.session.execute(
            select(models.VentureMatch)
            .where(models.VentureMatch.result_id == result_id)
            .order_by(models.VentureMatch.rank)
        ).scalars().all()
        return [match_from_row(r) for r in rows]


class SqlSessionStore:
    def __init__(self, session: Session):
        self.session = session

    def _row(self, session_id: int, for_update: bool = False) -> models.AssessmentSession | None:
        stmt = select(models.AssessmentSession).where(models.AssessmentSession.id == session_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.execute(stmt).scalar_one_or_none()

    def get(self, session_id: int, for_update: bool = False) -> SessionRecord | None:
        row = self._row(session_id, for_update=for_update)
        if row is None:
            return None
        return SessionRecord(
            id=row.id, applicant_id=row.applicant_id, applicant_name=row.applicant.name, status=row.status,
        )

    def mark_in_progress(self, session_id: int) -> None:
        row = self._row(session_id)
        if row is not None and row.status == models.SESSION_PENDING:
            row.status = models.SESSION_IN_PROGRESS
            row.started_at = utcnow()

    def mark_completed(self, session_id: int) -> bool:
        """Move the session to completed unless it already is. Returns False if another writer got there first."""
        now = utcnow()
        claimed = self.session.execute(
            update(models.AssessmentSession)
            .where(
                models.AssessmentSession.id == session_id,
                models.AssessmentSession.status != models.SESSION_COMPLETED,
            )
            .values(status=models.SESSION_COMPLETED, completed_at=now)
        ).rowcount == 1
        if claimed:
            row = self._row(session_id)
            if row.started_at is None:
                row.started_at = now
            self.session.flush()
        return claimed


@dataclass
class Stores:
    """The full set of stores a submission touches, bound to one session."""
    questions: QuestionCatalog
    responses: ResponseStore
    ventures: VentureProfileStore
    results: AssessmentResultStore
    matches: VentureMatchStore
    sessions: SessionStore

    @classmethod
    def bind(cls, session: Session) -> Stores:
        return cls(
            questions=SqlQuestionCatalog(session),
            responses=SqlResponseStore(session),
            ventures=SqlVentureProfileStore(session),
            results=SqlAssessmentResultStore(session),
            matches=SqlVentureMatchStore(session),
            sessions=SqlSessionStore(session),
        )
