"""Venture profile import from an XLSX workbook.

The first sheet is read; row 1 holds headers (case and spacing are ignored):

    name | industry | description | ideal_operator_type | secondary_operator_type
    weight_ownership | weight_execution | weight_hustle | weight_problem_solving | weight_leadership
    working_style | communication | conflict_response | decision_making | collaboration
    suggested_roles (separated by ";") | active

Rows upsert by venture name; stored results are re-ranked in the same transaction.
"""
from __future__ import annotations

import logging
import re
from pathlib import Path

import openpyxl
from sqlalchemy import select
from sqlalchemy.orm import Session

from operatorfit.models import Venture
from operatorfit.narratives import OPERATOR_TYPES
from operatorfit.schemas import ImportResult
from operatorfit.services import ValidationError, apply_venture_updates, rematch_results, validate_venture_fields

log = logging.getLogger(__name__)


def _s(value: object) -> str:
    """Safely coerce cell value to stripped string."""
    if value is None:
        return ""
    return str(value).strip()


def _f(value: object) -> float | None:
    """Coerce cell value to float, None if blank or unparseable."""
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (ValueError, TypeError):
        return None


def _b(value: object, default: bool = True) -> bool:
    """Coerce cell value to bool; blank cells take *default*."""
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes", "y")


def _header(value: object) -> str:
    return re.sub(r"[\s\-]+", "_", _s(value).casefold())


_WEIGHT_COLS = {
    "weight_ownership": "ownership",
    "weight_execution": "execution",
    "weight_hustle": "hustle",
    "weight_problem_solving": "problemSolving",
    "weight_leadership": "leadership",
}

_TEAM_COLS = {
    "working_style": "workingStyle",
    "communication": "communication",
    "conflict_response": "conflictResponse",
    "decision_making": "decisionMaking",
    "collaboration": "collaboration",
}

_OPERATOR_TYPES_BY_KEY = {t.casefold(): t for t in OPERATOR_TYPES}


def _operator_type(value: object) -> str | None:
    text = _s(value)
    if not text:
        return None
    return _OPERATOR_TYPES_BY_KEY.get(re.sub(r"[\s_]+", " ", text).casefold(), text)


def parse_row(cells: dict[str, object]) -> dict:
    """Turn one header-keyed row into venture fields."""
    weights = {dim: w for col, dim in _WEIGHT_COLS.items() if (w := _f(cells.get(col))) is not None}
    team = {dim: _s(cells.get(col)) for col, dim in _TEAM_COLS.items() if _s(cells.get(col))}
    roles = [r.strip() for r in _s(cells.get("suggested_roles")).split(";") if r.strip()]
    return {
        "name": _s(cells.get("name")),
        "industry": _s(cells.get("industry")),
        "description": _s(cells.get("description")),
        "ideal_operator_type": _operator_type(cells.get("ideal_operator_type")),
        "secondary_operator_type": _operator_type(cells.get("secondary_operator_type")) or "",
        "dimension_weights": weights,
        "team_profile": team,
        "suggested_roles": roles,
        "is_active": _b(cells.get("active")),
    }


def import_ventures_xlsx(file_path: str | Path, session: Session) -> ImportResult:
    """Import venture profiles from the first sheet of an XLSX file. Upserts by name."""
    wb = openpyxl.load_workbook(Path(file_path), read_only=True, data_only=True)
    try:
        ws = wb.worksheets[0]
        rows = list(ws.iter_rows(values_only=True))
    finally:
        wb.close()

    if not rows:
        return ImportResult(created=0, updated=0, skipped=0)

    headers = [_header(h) for h in rows[0]]
    existing = {v.name.casefold(): v for v in session.execute(select(Venture)).scalars().all()}
    created = updated = skipped = 0

    for line, row in enumerate(rows[1:], start=2):
        if not row or not any(c not in (None, "") for c in row):
            continue
        data = parse_row(dict(zip(headers, row)))
        if not data["name"] or not data["ideal_operator_type"]:
            log.warning("Skipping row %d: name and ideal_operator_type are required", line)
            skipped += 1
            continue
        try:
            validate_venture_fields(data)
        except ValidationError as exc:
            log.warning("Skipping row %d (%s): %s", line, data["name"], exc)
            skipped += 1
            continue

        venture = existing.get(data["name"].casefold())
        if venture is None:
            venture = Venture(name=data["name"], ideal_operator_type=data["ideal_operator_type"])
            session.add(venture)
            existing[data["name"].casefold()] = venture
            created += 1
        else:
            updated += 1
        apply_venture_updates(venture, data)

    session.flush()
    rematch_results(session)
    session.commit()
    log.info("Venture import: %d created, %d updated, %d skipped", created, updated, skipped)
    return ImportResult(created=created, updated=updated, skipped=skipped)
