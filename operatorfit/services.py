"""Shared business logic for the operatorfit API, MCP server and batch jobs."""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import asdict, dataclass
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from operatorfit import models
from operatorfit.catalog import FORCED_CHOICE, LIKERT, SCENARIO, Question, Response
from operatorfit.events import EnrichmentPublisher, EnrichmentRequested, build_event
from operatorfit.matching import VentureMatch, match_ventures
from operatorfit.narratives import OPERATOR_TYPES
from operatorfit.scoring import DIMENSIONS, TEAM_DIMENSIONS, AssessmentResult, score_assessment
from operatorfit.stores import Stores, match_from_row, result_from_row
from operatorfit.utils import json_dump, json_parse

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class ValidationError(Exception):
    """The request cannot be applied as given."""


class NotFoundError(ValidationError):
    pass


class StateConflictError(ValidationError):
    """The target exists but is in a state that forbids the operation."""


class IncompleteSubmissionError(Exception):
    def __init__(self, missing: int):
        self.missing = missing
        super().__init__(f"Assessment incomplete: {missing} responses outstanding")


class PersistenceError(Exception):
    """A write failed and the transaction was rolled back; retrying is safe."""


@dataclass
class SubmissionOutcome:
    session_id: int
    result_id: int
    result: AssessmentResult
    matches: list[VentureMatch]
    already_completed: bool = False
    event: EnrichmentRequested | None = None


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def question_summary(q: Question) -> dict:
    return {
        "id": q.id, "number": q.number, "text": q.text, "dimension": q.dimension,
        "type": q.type, "options": list(q.options), "option_keys": list(q.option_keys()),
    }


def result_detail(result_id: int | None, session_id: int | None, result: AssessmentResult) -> dict:
    data = asdict(result)
    data["id"] = result_id
    data["session_id"] = session_id
    return data


def match_summary(m: VentureMatch, rank: int | None = None) -> dict:
    data = asdict(m)
    if rank is not None:
        data["rank"] = rank
    return data


def venture_summary(v: models.Venture) -> dict:
    return {
        "id": v.id, "name": v.name, "description": v.description, "industry": v.industry,
        "ideal_operator_type": v.ideal_operator_type,
        "secondary_operator_type": v.secondary_operator_type,
        "dimension_weights": json_parse(v.dimension_weights_json),
        "team_profile": json_parse(v.team_profile_json),
        "suggested_roles": json_parse(v.suggested_roles_json, []),
        "is_active": v.is_active,
    }


def session_summary(session: Session, row: models.AssessmentSession) -> dict:
    answered = session.scalar(
        select(func.count()).select_from(models.AssessmentResponse)
        .where(models.AssessmentResponse.session_id == row.id)
    ) or 0
    total = session.scalar(
        select(func.count()).select_from(models.Question).where(models.Question.is_active.is_(True))
    ) or 0
    return {
        "id": row.id, "applicant_id": row.applicant_id, "applicant_name": row.applicant.name,
        "status": row.status, "answered": answered, "total": total,
        "started_at": row.started_at.isoformat() if row.started_at else None,
        "completed_at": row.completed_at.isoformat() if row.completed_at else None,
        "result_id": row.result.id if row.result else None,
    }


# ---------------------------------------------------------------------------
# Response validation
# ---------------------------------------------------------------------------

def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def response_problem(q: Question, value: Any) -> str | None:
    """Describe why *value* is not an acceptable answer to *q*, or return None."""
    if q.type == LIKERT:
        if _is_int(value) and 1 <= value <= 5:
            return None
        return f"Q{q.number} expects an integer from 1 to 5"
    if q.type == SCENARIO:
        if _is_int(value) and str(value) in q.option_keys():
            return None
        return f"Q{q.number} expects an option number from 1 to {len(q.options)}"
    if q.type == FORCED_CHOICE:
        if isinstance(value, str) and value in q.option_keys():
            return None
        return f"Q{q.number} expects one of {', '.join(q.option_keys())}"
    return f"Q{q.number} has unsupported type {q.type!r}"


def check_batch(catalog: dict[int, Question], responses: list[Response], check_values: bool = True) -> None:
    """Reject duplicate answers, unknown question ids and (optionally) malformed values."""
    counts = Counter(r.question_id for r in responses)
    duplicates = sorted(qid for qid, n in counts.items() if n > 1)
    if duplicates:
        raise ValidationError(f"Duplicate answers for question ids {duplicates}")
    unknown = sorted(qid for qid in counts if qid not in catalog)
    if unknown:
        raise ValidationError(f"Unknown question ids {unknown}")
    if check_values:
        problems = [p for r in responses if (p := response_problem(catalog[r.question_id], r.value))]
        if problems:
            raise ValidationError("; ".join(problems))


# ---------------------------------------------------------------------------
# Applicants and sessions
# ---------------------------------------------------------------------------

def create_applicant(session: Session, name: str, email: str = "") -> models.Applicant:
    """Create an applicant (caller must commit)."""
    name = name.strip()
    if not name:
        raise ValidationError("Applicant name is required")
    applicant = models.Applicant(name=name, email=email.strip())
    session.add(applicant)
    session.flush()
    return applicant


def open_session(session: Session, applicant_id: int) -> models.AssessmentSession:
    """Open a pending assessment session (caller must commit)."""
    if session.get(models.Applicant, applicant_id) is None:
        raise NotFoundError(f"Applicant {applicant_id} not found")
    row = models.AssessmentSession(applicant_id=applicant_id, status=models.SESSION_PENDING)
    session.add(row)
    session.flush()
    return row


def _commit(session: Session, what: str) -> None:
    try:
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        raise PersistenceError(f"Could not save {what}: {exc}") from exc


def record_responses(session: Session, session_id: int, responses: list[Response]) -> int:
    """Insert or overwrite answers for an open session. Returns the answered count."""
    stores = Stores.bind(session)
    record = stores.sessions.get(session_id, for_update=True)
    if record is None:
        raise NotFoundError(f"Session {session_id} not found")
    if record.status == models.SESSION_COMPLETED:
        raise StateConflictError(f"Session {session_id} is already completed")
    catalog = {q.id: q for q in stores.questions.list_active()}
    check_batch(catalog, responses)
    stores.responses.save(session_id, responses)
    stores.sessions.mark_in_progress(session_id)
    _commit(session, f"responses for session {session_id}")
    return len(stores.responses.get_all_for_session(session_id))


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------

def _existing_outcome(stores: Stores, session_id: int) -> SubmissionOutcome | None:
    found = stores.results.get_by_session(session_id)
    if found is None:
        return None
    result_id, result = found
    return SubmissionOutcome(
        session_id=session_id, result_id=result_id, result=result,
        matches=stores.matches.list_for_result(result_id), already_completed=True,
    )


def submit_assessment(
    session: Session,
    session_id: int,
    responses: list[Response] | None = None,
    publisher: EnrichmentPublisher | None = None,
) -> SubmissionOutcome:
    """Score a session, match it against active ventures and persist both atomically.

    A completed session returns its stored result unchanged. *responses*, if
    given, are recorded before the completeness check. The enrichment event is
    published through *publisher* after the commit; without one the event is
    only attached to the outcome for the caller to deliver.
    """
    stores = Stores.bind(session)
    record = stores.sessions.get(session_id, for_update=True)
    if record is None:
        raise NotFoundError(f"Session {session_id} not found")

    if record.status == models.SESSION_COMPLETED:
        existing = _existing_outcome(stores, session_id)
        if existing is None:
            raise StateConflictError(f"Session {session_id} is completed but has no result")
        log.info("Session %s already completed; returning result %s", session_id, existing.result_id)
        return existing

    questions = stores.questions.list_active()
    if responses:
        check_batch({q.id: q for q in questions}, responses)
        stores.responses.save(session_id, responses)

    answered = stores.responses.get_all_for_session(session_id)
    answered_ids = {r.question_id for r in answered}
    missing = sum(1 for q in questions if q.id not in answered_ids)
    if missing:
        session.rollback()
        raise IncompleteSubmissionError(missing)

    result = score_assessment(questions, answered, record.applicant_name)
    matches = match_ventures(result, stores.ventures.list_active())
    log.info(
        "Scored session %s: %s / %s (%s), %d ventures matched",
        session_id, result.primary_operator_type, result.secondary_operator_type,
        result.confidence_level, len(matches),
    )

    try:
        # the conditional status update is the claim; the read above is not locked on SQLite
        if not stores.sessions.mark_completed(session_id):
            session.rollback()
            existing = _existing_outcome(stores, session_id)
            if existing is None:
                raise StateConflictError(f"Session {session_id} is completed but has no result")
            log.warning("Session %s was completed concurrently; returning result %s",
                        session_id, existing.result_id)
            return existing
        result_id = stores.results.upsert_by_session(session_id, result)
        stores.matches.replace_all_for_result(result_id, matches)
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        log.warning("Concurrent submission for session %s: %s", session_id, exc)
        existing = _existing_outcome(stores, session_id)
        if existing is None:
            raise PersistenceError(f"Could not save result for session {session_id}") from exc
        return existing
    except SQLAlchemyError as exc:
        session.rollback()
        raise PersistenceError(f"Could not save result for session {session_id}: {exc}") from exc

    log.info("Session %s completed with result %s", session_id, result_id)
    event = build_event(result_id, record.applicant_name, result, matches)
    if publisher is not None:
        publisher.publish(event)
    return SubmissionOutcome(
        session_id=session_id, result_id=result_id, result=result, matches=matches, event=event,
    )


def preview_score(
    session: Session, responses: list[Response], applicant_name: str = "Applicant",
) -> tuple[AssessmentResult, list[VentureMatch]]:
    """Score a raw response list against the active catalog and ventures. Persists nothing."""
    stores = Stores.bind(session)
    questions = stores.questions.list_active()
    check_batch({q.id: q for q in questions}, responses, check_values=False)
    result = score_assessment(questions, responses, applicant_name)
    return result, match_ventures(result, stores.ventures.list_active())


def rematch_results(session: Session, result_ids: list[int] | None = None) -> dict:
    """Re-rank stored results against the current active venture set (caller must commit)."""
    stores = Stores.bind(session)
    ventures = stores.ventures.list_active()
    stmt = select(models.AssessmentResult).order_by(models.AssessmentResult.id)
    if result_ids:
        stmt = stmt.where(models.AssessmentResult.id.in_(result_ids))
    rows = session.execute(stmt).scalars().all()
    total = 0
    for row in rows:
        matches = match_ventures(result_from_row(row), ventures)
        stores.matches.replace_all_for_result(row.id, matches)
        total += len(matches)
    return {"results": len(rows), "matches": total, "ventures": len(ventures)}


def recompute_matches(session: Session, result_ids: list[int] | None = None) -> dict:
    summary = rematch_results(session, result_ids)
    _commit(session, "recomputed matches")
    log.info("Recomputed %d matches for %d results against %d ventures",
             summary["matches"], summary["results"], summary["ventures"])
    return summary


def stored_matches(session: Session, result_id: int) -> list[dict]:
    rows = session.execute(
        select(models.VentureMatch)
        .where(models.VentureMatch.result_id == result_id)
        .order_by(models.VentureMatch.rank)
    ).scalars().all()
    return [match_summary(match_from_row(r), rank=r.rank) for r in rows]


# ---------------------------------------------------------------------------
# Ventures
# ---------------------------------------------------------------------------

VENTURE_FIELDS = (
    "name", "description", "industry", "ideal_operator_type", "secondary_operator_type",
    "dimension_weights", "team_profile", "suggested_roles", "is_active",
)

_JSON_FIELDS = {
    "dimension_weights": "dimension_weights_json",
    "team_profile": "team_profile_json",
    "suggested_roles": "suggested_roles_json",
}


def validate_venture_fields(data: dict[str, Any]) -> None:
    if "name" in data and not str(data["name"] or "").strip():
        raise ValidationError("Venture name is required")
    ideal = data.get("ideal_operator_type")
    if ideal is not None and ideal not in OPERATOR_TYPES:
        raise ValidationError(f"Unknown operator type {ideal!r}")
    secondary = data.get("secondary_operator_type")
    if secondary and secondary not in OPERATOR_TYPES:
        raise ValidationError(f"Unknown operator type {secondary!r}")
    weights = data.get("dimension_weights") or {}
    bad = sorted(k for k in weights if k not in DIMENSIONS)
    if bad:
        raise ValidationError(f"Unknown dimensions in weights: {bad}")
    if any(w is not None and w < 0 for w in weights.values()):
        raise ValidationError("Dimension weights must not be negative")
    bad = sorted(k for k in (data.get("team_profile") or {}) if k not in TEAM_DIMENSIONS)
    if bad:
        raise ValidationError(f"Unknown team dimensions: {bad}")


def apply_venture_updates(venture: models.Venture, updates: dict[str, Any]) -> None:
    """Apply non-None values from updates to a Venture row."""
    for field in VENTURE_FIELDS:
        val = updates.get(field)
        if val is None:
            continue
        if field in _JSON_FIELDS:
            setattr(venture, _JSON_FIELDS[field], json_dump(val))
        elif isinstance(val, str):
            setattr(venture, field, val.strip())
        else:
            setattr(venture, field, val)
    if updates.get("secondary_operator_type") == "":
        venture.secondary_operator_type = None


def _check_name_free(session: Session, name: str, venture_id: int | None = None) -> None:
    stmt = select(models.Venture.id).where(models.Venture.name == name.strip())
    if venture_id is not None:
        stmt = stmt.where(models.Venture.id != venture_id)
    if session.execute(stmt).first() is not None:
        raise StateConflictError(f"Venture {name.strip()!r} already exists")


def create_venture(session: Session, data: dict[str, Any]) -> models.Venture:
    """Create a venture profile and re-rank stored results against it (caller must commit)."""
    if not data.get("name") or not data.get("ideal_operator_type"):
        raise ValidationError("Venture name and ideal_operator_type are required")
    validate_venture_fields(data)
    _check_name_free(session, data["name"])
    venture = models.Venture(name=data["name"].strip(), ideal_operator_type=data["ideal_operator_type"])
    apply_venture_updates(venture, data)
    session.add(venture)
    session.flush()
    rematch_results(session)
    return venture


def update_venture(session: Session, venture: models.Venture, updates: dict[str, Any]) -> models.Venture:
    """Update a venture profile and re-rank stored results (caller must commit)."""
    validate_venture_fields(updates)
    if updates.get("name"):
        _check_name_free(session, updates["name"], venture.id)
    apply_venture_updates(venture, updates)
    session.flush()
    rematch_results(session)
    return venture


def deactivate_venture(session: Session, venture: models.Venture) -> models.Venture:
    """Soft-delete a venture and drop it from stored rankings (caller must commit)."""
    venture.is_active = False
    session.flush()
    rematch_results(session)
    return venture


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------

def compute_stats(session: Session) -> dict:
    by_status: Counter[str] = Counter(
        session.execute(select(models.AssessmentSession.status)).scalars().all()
    )
    results = session.execute(select(models.AssessmentResult)).scalars().all()
    by_operator_type: Counter[str] = Counter()
    by_confidence: Counter[str] = Counter()
    by_trap_level: Counter[str] = Counter()
    for r in results:
        by_operator_type[r.primary_operator_type] += 1
        by_confidence[r.confidence_level] += 1
        by_trap_level[r.trap_level] += 1
    active_ventures = session.scalar(
        select(func.count()).select_from(models.Venture).where(models.Venture.is_active.is_(True))
    ) or 0
    return {
        "sessions": sum(by_status.values()),
        "results": len(results),
        "active_ventures": active_ventures,
        "by_status": dict(by_status),
        "by_operator_type": dict(by_operator_type),
        "by_confidence": dict(by_confidence),
        "by_trap_level": dict(by_trap_level),
    }
