from __future__ import annotations

import json

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from operatorfit.catalog import FORCED_CHOICE, SCENARIO, Question, Response, default_catalog
from operatorfit.db import seed_question_catalog
from operatorfit.models import Applicant, AssessmentSession, Base, Venture


def answer_value(q: Question):
    """A valid answer for every question type: 4 on likert (2 on traps), first option otherwise."""
    if q.type == FORCED_CHOICE:
        return "A"
    if q.type == SCENARIO:
        return 1
    return 2 if q.is_trap else 4


@pytest.fixture()
def engine():
    """In-memory SQLite with the default catalog seeded."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    seed_question_catalog(engine)
    return engine


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def session(session_factory) -> Session:
    s = session_factory()
    yield s
    s.close()


@pytest.fixture()
def full_responses() -> list[Response]:
    return [Response(question_id=q.id, value=answer_value(q)) for q in default_catalog()]


@pytest.fixture()
def open_session_id(session: Session) -> int:
    applicant = Applicant(name="Ada Example", email="ada@example.com")
    session.add(applicant)
    session.flush()
    row = AssessmentSession(applicant_id=applicant.id)
    session.add(row)
    session.commit()
    return row.id


@pytest.fixture()
def add_venture(session: Session):
    def _add(name: str, ideal: str, *, industry: str = "", secondary: str | None = None,
             weights: dict | None = None, team: dict | None = None, roles: list | None = None,
             active: bool = True) -> Venture:
        venture = Venture(
            name=name,
            industry=industry,
            ideal_operator_type=ideal,
            secondary_operator_type=secondary,
            dimension_weights_json=json.dumps(weights or {}),
            team_profile_json=json.dumps(team or {}),
            suggested_roles_json=json.dumps(roles or []),
            is_active=active,
        )
        session.add(venture)
        session.commit()
        return venture
    return _add
