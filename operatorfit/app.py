from __future__ import annotations

import logging
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Generator

from fastapi import BackgroundTasks, Depends, FastAPI, File, HTTPException, Query, UploadFile
from sqlalchemy import select
from sqlalchemy.orm import Session

from operatorfit import services
from operatorfit.db import get_session, init_db
from operatorfit.events import EnrichmentPublisher, publisher_from_env
from operatorfit.importer import import_ventures_xlsx
from operatorfit.models import AssessmentResult, AssessmentSession, Venture
from operatorfit.schemas import (
    ApplicantCreate,
    ApplicantOut,
    AssessmentResultOut,
    ImportResult,
    QuestionOut,
    RecomputeIn,
    RecomputeOut,
    RecordedOut,
    ResponsesIn,
    ScorePreviewIn,
    ScorePreviewOut,
    SessionCreate,
    SessionOut,
    StatsOut,
    SubmitIn,
    SubmitOut,
    VentureCreate,
    VentureMatchOut,
    VentureOut,
    VentureUpdate,
)
from operatorfit.stores import SqlQuestionCatalog, result_from_row

log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(
    title="Operatorfit",
    version="0.1.0",
    description=(
        "Operator assessment scoring and venture matching for a venture studio. "
        "Applicants answer the 70-question assessment; submissions are scored, "
        "classified into operator types and ranked against active ventures. "
        "All endpoints return JSON. No authentication required."
    ),
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Assessment", "description": "Questions, applicants, sessions and submission."},
        {"name": "Results", "description": "Stored assessment results and venture matches."},
        {"name": "Scoring", "description": "Stateless preview scoring."},
        {"name": "Ventures", "description": "Venture profiles used for matching."},
        {"name": "Import", "description": "Bulk import venture profiles from XLSX spreadsheets."},
        {"name": "Stats", "description": "Aggregate statistics and breakdowns."},
    ],
)


# ---------------------------------------------------------------------------
# Dependencies & Helpers
# ---------------------------------------------------------------------------


def db_session() -> Generator[Session, None, None]:
    session = get_session()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def enrichment_publisher() -> EnrichmentPublisher:
    return publisher_from_env()


def _get_or_404(session: Session, model, entity_id: int, label: str = "Entity"):
    obj = session.execute(select(model).where(model.id == entity_id)).scalars().first()
    if not obj:
        raise HTTPException(404, f"{label} not found")
    return obj


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, services.NotFoundError):
        return HTTPException(404, str(exc))
    if isinstance(exc, services.StateConflictError):
        return HTTPException(409, str(exc))
    if isinstance(exc, (services.ValidationError, services.IncompleteSubmissionError)):
        return HTTPException(422, str(exc))
    log.error("Request failed: %s", exc)
    return HTTPException(500, str(exc))


_SERVICE_ERRORS = (services.ValidationError, services.IncompleteSubmissionError, services.PersistenceError)


# ---------------------------------------------------------------------------
# Routes: Assessment
# ---------------------------------------------------------------------------


@app.get("/api/questions", response_model=list[QuestionOut],
         tags=["Assessment"], summary="List the active question catalog")
async def list_questions(session: Session = Depends(db_session)):
    return [services.question_summary(q) for q in SqlQuestionCatalog(session).list_active()]


@app.post("/api/applicants", response_model=ApplicantOut, status_code=201,
          tags=["Assessment"], summary="Create an applicant")
async def create_applicant(body: ApplicantCreate, session: Session = Depends(db_session)):
    try:
        applicant = services.create_applicant(session, body.name, body.email)
    except services.ValidationError as exc:
        raise _http_error(exc) from exc
    session.commit()
    return {"id": applicant.id, "name": applicant.name, "email": applicant.email}


@app.post("/api/sessions", response_model=SessionOut, status_code=201,
          tags=["Assessment"], summary="Open an assessment session for an applicant")
async def create_session(body: SessionCreate, session: Session = Depends(db_session)):
    try:
        row = services.open_session(session, body.applicant_id)
    except services.ValidationError as exc:
        raise _http_error(exc) from exc
    session.commit()
    return services.session_summary(session, row)


@app.get("/api/sessions/{session_id}", response_model=SessionOut,
         tags=["Assessment"], summary="Get session status and progress")
async def get_session_status(session_id: int, session: Session = Depends(db_session)):
    row = _get_or_404(session, AssessmentSession, session_id, "Session")
    return services.session_summary(session, row)


@app.put("/api/sessions/{session_id}/responses", response_model=RecordedOut,
         tags=["Assessment"], summary="Record or overwrite answers for an open session")
async def record_responses(session_id: int, body: ResponsesIn, session: Session = Depends(db_session)):
    try:
        answered = services.record_responses(session, session_id, [r.to_domain() for r in body.responses])
    except _SERVICE_ERRORS as exc:
        raise _http_error(exc) from exc
    return {"session_id": session_id, "answered": answered}


@app.post("/api/sessions/{session_id}/submit", response_model=SubmitOut,
          tags=["Assessment"], summary="Score, match and complete a session")
async def submit_session(
    session_id: int,
    background_tasks: BackgroundTasks,
    body: SubmitIn | None = None,
    session: Session = Depends(db_session),
    publisher: EnrichmentPublisher = Depends(enrichment_publisher),
):
    responses = [r.to_domain() for r in body.responses] if body else []
    try:
        outcome = services.submit_assessment(session, session_id, responses)
    except _SERVICE_ERRORS as exc:
        raise _http_error(exc) from exc
    if outcome.event is not None:
        background_tasks.add_task(publisher.publish, outcome.event)
    return {
        "session_id": outcome.session_id,
        "result_id": outcome.result_id,
        "already_completed": outcome.already_completed,
        "result": services.result_detail(outcome.result_id, outcome.session_id, outcome.result),
        "matches": [services.match_summary(m, rank=i) for i, m in enumerate(outcome.matches, start=1)],
    }


@app.get("/api/sessions/{session_id}/result", response_model=AssessmentResultOut,
         tags=["Results"], summary="Get the result of a completed session")
async def get_session_result(session_id: int, session: Session = Depends(db_session)):
    row = _get_or_404(session, AssessmentSession, session_id, "Session")
    if row.result is None:
        raise HTTPException(404, "Result not found")
    return services.result_detail(row.result.id, row.id, result_from_row(row.result))


# ---------------------------------------------------------------------------
# Routes: Results
# ---------------------------------------------------------------------------


@app.get("/api/results/{result_id}", response_model=AssessmentResultOut,
         tags=["Results"], summary="Get an assessment result")
async def get_result(result_id: int, session: Session = Depends(db_session)):
    row = _get_or_404(session, AssessmentResult, result_id, "Result")
    return services.result_detail(row.id, row.session_id, result_from_row(row))


@app.get("/api/results/{result_id}/matches", response_model=list[VentureMatchOut],
         tags=["Results"], summary="Ranked venture matches for a result")
async def get_result_matches(result_id: int, session: Session = Depends(db_session)):
    _get_or_404(session, AssessmentResult, result_id, "Result")
    return services.stored_matches(session, result_id)


@app.post("/api/matches/recompute", response_model=RecomputeOut,
          tags=["Results"], summary="Recompute matches against the current ventures")
async def recompute_matches(body: RecomputeIn | None = None, session: Session = Depends(db_session)):
    try:
        return services.recompute_matches(session, body.result_ids if body else None)
    except services.PersistenceError as exc:
        raise _http_error(exc) from exc


# ---------------------------------------------------------------------------
# Routes: Scoring
# ---------------------------------------------------------------------------


@app.post("/api/score", response_model=ScorePreviewOut,
          tags=["Scoring"], summary="Score raw responses without saving anything")
async def preview_score(body: ScorePreviewIn, session: Session = Depends(db_session)):
    try:
        result, matches = services.preview_score(
            session, [r.to_domain() for r in body.responses], body.applicant_name,
        )
    except services.ValidationError as exc:
        raise _http_error(exc) from exc
    return {
        "result": services.result_detail(None, None, result),
        "matches": [services.match_summary(m, rank=i) for i, m in enumerate(matches, start=1)],
    }


# ---------------------------------------------------------------------------
# Routes: Ventures
# ---------------------------------------------------------------------------


@app.get("/api/ventures", response_model=list[VentureOut],
         tags=["Ventures"], summary="List venture profiles")
async def list_ventures(
    include_inactive: bool = Query(False, description="Include deactivated ventures"),
    session: Session = Depends(db_session),
):
    stmt = select(Venture).order_by(Venture.id)
    if not include_inactive:
        stmt = stmt.where(Venture.is_active.is_(True))
    return [services.venture_summary(v) for v in session.execute(stmt).scalars().all()]


@app.post("/api/ventures", response_model=VentureOut, status_code=201,
          tags=["Ventures"], summary="Create a venture profile")
async def create_venture(body: VentureCreate, session: Session = Depends(db_session)):
    try:
        venture = services.create_venture(session, body.model_dump())
    except services.ValidationError as exc:
        raise _http_error(exc) from exc
    session.commit()
    return services.venture_summary(venture)


@app.put("/api/ventures/{venture_id}", response_model=VentureOut,
         tags=["Ventures"], summary="Update a venture profile")
async def update_venture(venture_id: int, body: VentureUpdate, session: Session = Depends(db_session)):
    venture = _get_or_404(session, Venture, venture_id, "Venture")
    try:
        services.update_venture(session, venture, body.model_dump(exclude_unset=True))
    except services.ValidationError as exc:
        raise _http_error(exc) from exc
    session.commit()
    return services.venture_summary(venture)


@app.delete("/api/ventures/{venture_id}", response_model=VentureOut,
            tags=["Ventures"], summary="Deactivate a venture profile")
async def deactivate_venture(venture_id: int, session: Session = Depends(db_session)):
    venture = _get_or_404(session, Venture, venture_id, "Venture")
    services.deactivate_venture(session, venture)
    session.commit()
    return services.venture_summary(venture)


@app.post("/api/ventures/import", response_model=ImportResult,
          tags=["Import"], summary="Import venture profiles from XLSX spreadsheet")
async def import_ventures(file: UploadFile = File(...), session: Session = Depends(db_session)):
    if not file.filename or not file.filename.endswith(".xlsx"):
        raise HTTPException(400, "Only .xlsx files are supported")
    content = await file.read()
    tmp_path = None
    try:
        with tempfile.NamedTemporaryFile(suffix=".xlsx", delete=False) as f:
            tmp_path = Path(f.name)
            f.write(content)
        return import_ventures_xlsx(tmp_path, session)
    finally:
        if tmp_path:
            tmp_path.unlink(missing_ok=True)


# ---------------------------------------------------------------------------
# Routes: Stats
# ---------------------------------------------------------------------------


@app.get("/api/stats", response_model=StatsOut,
         tags=["Stats"], summary="Pipeline statistics")
async def get_stats(session: Session = Depends(db_session)):
    return services.compute_stats(session)


def main():
    import uvicorn
    uvicorn.run("operatorfit.app:app", host="127.0.0.1", port=8001, reload=True)


if __name__ == "__main__":
    main()
