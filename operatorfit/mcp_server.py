from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from mcp.server.fastmcp import FastMCP
from sqlalchemy import select

from operatorfit import services
from operatorfit.catalog import Response
from operatorfit.db import init_db, session_scope
from operatorfit.models import AssessmentResult, AssessmentSession
from operatorfit.narratives import OPERATOR_TYPES
from operatorfit.stores import result_from_row

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def operatorfit_lifespan(server: FastMCP) -> AsyncIterator[None]:
    init_db()
    yield


mcp = FastMCP(
    "Operatorfit",
    instructions=(
        "Operatorfit scores operator assessments and matches applicants to ventures. "
        "Use these tools to review results and venture fit. Start with get_stats() "
        "for an overview, then list_results() to browse, then get_result(id) for "
        "the full profile and ranked venture matches."
    ),
    lifespan=operatorfit_lifespan,
    json_response=True,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get_or_error(session, model, entity_id, label="Entity"):
    obj = session.execute(select(model).where(model.id == entity_id)).scalars().first()
    if not obj:
        return None, {"error": f"{label} {entity_id} not found"}
    return obj, None


# ---------------------------------------------------------------------------
# Resource
# ---------------------------------------------------------------------------


@mcp.resource("operatorfit://overview")
def operatorfit_overview() -> str:
    """Overview of Operatorfit: data model, workflow, and result vocabulary."""
    return json.dumps({
        "system": "Operatorfit: operator assessment scoring and venture matching",
        "data_model": {
            "session": "One applicant's run through the 70-question assessment.",
            "result": "Scored profile: dimension scores, venture fit, team compatibility, operator type, narrative.",
            "venture": "Venture profile with ideal operator type, dimension weights and team preferences.",
            "venture_match": "Per-result ranking of active ventures with reasons, concerns and a suggested role.",
        },
        "workflow": [
            "1. get_stats(): session, result and venture counts.",
            "2. list_results(): browse scored applicants, optionally by operator type.",
            "3. get_result(id): full profile with ranked venture matches.",
            "4. preview_score(responses): score answers without saving.",
            "5. recompute_matches(): re-rank stored results after venture changes.",
        ],
        "operator_types": list(OPERATOR_TYPES),
        "confidence_levels": ["Strong", "Moderate", "Emerging"],
        "trap_levels": {
            "normal": "Trap score 10 or lower.",
            "elevated": "Trap score 11-15; confidence is downgraded one tier.",
            "likely_exaggeration": "Trap score 16+; confidence is forced to Emerging.",
        },
    }, indent=2)


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


@mcp.tool()
def get_stats() -> dict:
    """Counts of sessions by status and results by operator type, confidence and trap level."""
    with session_scope() as session:
        return services.compute_stats(session)


@mcp.tool()
def list_results(operator_type: str | None = None, limit: int = 50) -> list[dict]:
    """List scored applicants, newest first.

    Args:
        operator_type: Only results with this primary operator type.
        limit: Maximum number of results.
    """
    with session_scope() as session:
        stmt = (
            select(AssessmentResult, AssessmentSession)
            .join(AssessmentSession, AssessmentResult.session_id == AssessmentSession.id)
            .order_by(AssessmentResult.id.desc())
            .limit(limit)
        )
        if operator_type:
            stmt = stmt.where(AssessmentResult.primary_operator_type == operator_type)
        return [
            {
                "id": r.id, "session_id": s.id, "applicant_name": s.applicant.name,
                "primary_operator_type": r.primary_operator_type,
                "secondary_operator_type": r.secondary_operator_type,
                "confidence_level": r.confidence_level, "trap_level": r.trap_level,
            }
            for r, s in session.execute(stmt).all()
        ]


@mcp.tool()
def get_result(result_id: int) -> dict:
    """Full assessment result with its ranked venture matches."""
    with session_scope() as session:
        row, err = _get_or_error(session, AssessmentResult, result_id, "Result")
        if err:
            return err
        detail = services.result_detail(row.id, row.session_id, result_from_row(row))
        detail["matches"] = services.stored_matches(session, row.id)
        return detail


@mcp.tool()
def preview_score(responses: list[dict], applicant_name: str = "Applicant") -> dict:
    """Score answers without saving anything.

    Args:
        responses: List of {"question_id": int, "value": int | str}.
        applicant_name: Name used in the narrative text.
    """
    try:
        parsed = [Response(question_id=int(r["question_id"]), value=r.get("value")) for r in responses]
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        return {"error": f"Each response needs an integer question_id and a value: {exc!r}"}
    with session_scope() as session:
        try:
            result, matches = services.preview_score(session, parsed, applicant_name)
        except services.ValidationError as exc:
            return {"error": str(exc)}
        return {
            "result": services.result_detail(None, None, result),
            "matches": [services.match_summary(m, rank=i) for i, m in enumerate(matches, start=1)],
        }


@mcp.tool()
def recompute_matches(result_ids: list[int] | None = None) -> dict:
    """Re-rank stored results against the current active ventures.

    Args:
        result_ids: Limit to these results; all results when omitted.
    """
    with session_scope() as session:
        try:
            return services.recompute_matches(session, result_ids)
        except services.PersistenceError as exc:
            return {"error": str(exc)}


def main():
    mcp.run()


if __name__ == "__main__":
    main()
