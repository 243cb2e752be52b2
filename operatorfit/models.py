from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


SESSION_PENDING = "pending"
SESSION_IN_PROGRESS = "in_progress"
SESSION_COMPLETED = "completed"


class Applicant(Base):
    __tablename__ = "applicants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(300), nullable=False)
    email: Mapped[str] = mapped_column(String(300), default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    sessions: Mapped[list[AssessmentSession]] = relationship(
        "AssessmentSession", back_populates="applicant", cascade="all, delete-orphan",
    )


class Question(Base):
    __tablename__ = "questions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    number: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    dimension: Mapped[str] = mapped_column(String(50), nullable=False)
    question_type: Mapped[str] = mapped_column(String(30), default="likert")  # likert | forcedChoice | scenario
    is_reverse: Mapped[bool] = mapped_column(Boolean, default=False)
    is_trap: Mapped[bool] = mapped_column(Boolean, default=False)
    options_json: Mapped[str] = mapped_column(Text, default="[]")
    option_mappings_json: Mapped[str] = mapped_column(Text, default="{}")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class AssessmentSession(Base):
    __tablename__ = "assessment_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    applicant_id: Mapped[int] = mapped_column(Integer, ForeignKey("applicants.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=SESSION_PENDING)  # pending | in_progress | completed
    started_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    applicant: Mapped[Applicant] = relationship("Applicant", back_populates="sessions")
    responses: Mapped[list[AssessmentResponse]] = relationship(
        "AssessmentResponse", back_populates="session", cascade="all, delete-orphan",
    )
    result: Mapped[AssessmentResult | None] = relationship(
        "AssessmentResult", back_populates="session", uselist=False,
    )


class AssessmentResponse(Base):
    __tablename__ = "assessment_responses"
    __table_args__ = (UniqueConstraint("session_id", "question_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[int] = mapped_column(Integer, ForeignKey("assessment_sessions.id"), nullable=False)
    question_id: Mapped[int] = mapped_column(Integer, ForeignKey("questions.id"), nullable=False)
    value_json: Mapped[str] = mapped_column(Text, default="null")
    answered_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    session: Mapped[AssessmentSession] = relationship("AssessmentSession", back_populates="responses")


class AssessmentResult(Base):
    __tablename__ = "assessment_results"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("assessment_sessions.id"), unique=True, nullable=False,
    )
    dimension_scores_json: Mapped[str] = mapped_column(Text, default="{}")
    venture_fit_scores_json: Mapped[str] = mapped_column(Text, default="{}")
    team_compatibility_scores_json: Mapped[str] = mapped_column(Text, default="{}")
    style_traits_json: Mapped[str] = mapped_column(Text, default="{}")
    trap_score: Mapped[float] = mapped_column(Float, default=0.0)
    trap_level: Mapped[str] = mapped_column(String(30), default="normal")  # normal | elevated | likely_exaggeration
    trap_flag: Mapped[bool] = mapped_column(Boolean, default=False)
    primary_operator_type: Mapped[str] = mapped_column(String(50), nullable=False)
    secondary_operator_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    confidence_level: Mapped[str] = mapped_column(String(20), nullable=False)  # Strong | Moderate | Emerging
    summary: Mapped[str] = mapped_column(Text, default="")
    strengths_json: Mapped[str] = mapped_column(Text, default="[]")
    weaknesses_json: Mapped[str] = mapped_column(Text, default="[]")
    weakness_summary: Mapped[str] = mapped_column(Text, default="")
    top_traits_json: Mapped[str] = mapped_column(Text, default="[]")
    scored_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    session: Mapped[AssessmentSession] = relationship("AssessmentSession", back_populates="result")
    matches: Mapped[list[VentureMatch]] = relationship(
        "VentureMatch", back_populates="result", cascade="all, delete-orphan",
        order_by="VentureMatch.rank",
    )


class Venture(Base):
    __tablename__ = "ventures"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(300), unique=True, nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    industry: Mapped[str] = mapped_column(String(200), default="")
    ideal_operator_type: Mapped[str] = mapped_column(String(50), nullable=False)
    secondary_operator_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    dimension_weights_json: Mapped[str] = mapped_column(Text, default="{}")
    team_profile_json: Mapped[str] = mapped_column(Text, default="{}")
    suggested_roles_json: Mapped[str] = mapped_column(Text, default="[]")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())


class VentureMatch(Base):
    __tablename__ = "venture_matches"
    __table_args__ = (UniqueConstraint("result_id", "venture_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    result_id: Mapped[int] = mapped_column(Integer, ForeignKey("assessment_results.id"), nullable=False)
    venture_id: Mapped[int] = mapped_column(Integer, ForeignKey("ventures.id"), nullable=False)
    venture_name: Mapped[str] = mapped_column(String(300), default="")
    industry: Mapped[str] = mapped_column(String(200), default="")
    overall_score: Mapped[int] = mapped_column(Integer, default=0)
    operator_type_score: Mapped[int] = mapped_column(Integer, default=0)
    dimension_score: Mapped[int] = mapped_column(Integer, default=0)
    compatibility_score: Mapped[int] = mapped_column(Integer, default=0)
    match_reasons_json: Mapped[str] = mapped_column(Text, default="[]")
    concerns_json: Mapped[str] = mapped_column(Text, default="[]")
    suggested_role: Mapped[str] = mapped_column(String(200), default="")
    rank: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    result: Mapped[AssessmentResult] = relationship("AssessmentResult", back_populates="matches")
