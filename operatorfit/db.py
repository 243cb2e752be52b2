from __future__ import annotations

import logging
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from operatorfit.models import Base, Question
from operatorfit.utils import json_dump

log = logging.getLogger(__name__)

_lock = threading.Lock()
_engine = None
_SessionLocal = None

DATA_DIR = Path(__file__).parent / "data"


def default_db_path() -> Path:
    return Path(os.environ.get("OPERATORFIT_DB") or DATA_DIR / "operatorfit.db")


def init_db(db_path: str | Path | None = None) -> None:
    global _engine, _SessionLocal
    with _lock:
        if _engine is not None:
            _engine.dispose()
        db_path = Path(db_path) if db_path is not None else default_db_path()
        db_path.parent.mkdir(parents=True, exist_ok=True)
        url = f"sqlite:///{db_path}"
        _engine = create_engine(url, connect_args={"check_same_thread": False})
        Base.metadata.create_all(_engine)
        _SessionLocal = sessionmaker(bind=_engine, autoflush=False, expire_on_commit=False)
        seed_question_catalog(_engine)


def get_session() -> Session:
    with _lock:
        if _SessionLocal is None:
            raise RuntimeError("init_db() has not been called")
        factory = _SessionLocal
    return factory()  # type: ignore[misc]


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """Context manager providing a transactional session scope.

    Usage (MCP server, scripts, etc.)::

        with session_scope() as session:
            ...
    """
    session = get_session()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def seed_question_catalog(engine: Engine) -> int:
    """Insert the default question catalog if the questions table is empty.

    Returns the number of questions inserted.
    """
    from operatorfit.catalog import catalog_problems, default_catalog

    with Session(engine) as session:
        if session.scalar(select(func.count()).select_from(Question)):
            return 0
        questions = default_catalog()
        problems = catalog_problems(questions)
        if problems:
            raise ValueError("Default question catalog is invalid: " + "; ".join(problems))
        for q in questions:
            session.add(Question(
                id=q.id,
                number=q.number,
                text=q.text,
                dimension=q.dimension,
                question_type=q.type,
                is_reverse=q.is_reverse,
                is_trap=q.is_trap,
                options_json=json_dump(list(q.options)),
                option_mappings_json=json_dump(q.option_mappings),
            ))
        session.commit()
    log.info("Seeded %d default questions", len(questions))
    return len(questions)
