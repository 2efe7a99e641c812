"""
Exam, section, question, grading segment and rubric models.

Question content columns hold the serialized segment list as text and are
copied verbatim when an exam is duplicated.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from sqlalchemy import JSON, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from api.database import Base

if TYPE_CHECKING:
    from api.models.db.organization import Course, SchoolClass


def _new_id() -> str:
    return uuid.uuid4().hex


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ExamStatus(str, enum.Enum):
    """Publication status of an exam."""

    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"


class QuestionType(str, enum.Enum):
    TEXT = "TEXT"
    MCQ = "MCQ"
    CODE = "CODE"


class Exam(Base):
    """
    A base exam (no parent, no class) or a per-class variant of one
    (both ``parent_exam_id`` and ``class_id`` set, empty ``class_ids``).
    """

    __tablename__ = "exams"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    course_id: Mapped[str] = mapped_column(
        ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    class_id: Mapped[str | None] = mapped_column(
        ForeignKey("classes.id", ondelete="CASCADE"), nullable=True, index=True
    )
    class_ids: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    parent_exam_id: Mapped[str | None] = mapped_column(
        ForeignKey("exams.id", ondelete="CASCADE"), nullable=True, index=True
    )
    author_id: Mapped[str | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    status: Mapped[str] = mapped_column(
        String(20), default=ExamStatus.DRAFT.value, nullable=False, index=True
    )
    start_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    end_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    duration_minutes: Mapped[int | None] = mapped_column(nullable=True)
    require_honor_commitment: Mapped[bool] = mapped_column(default=False, nullable=False)
    allowed_materials: Mapped[str | None] = mapped_column(Text, nullable=True)
    anti_cheat_config: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    grading_config: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    archived_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utc_now, onupdate=_utc_now, nullable=False
    )

    # Relationships
    course: Mapped["Course"] = relationship("Course", back_populates="exams")
    school_class: Mapped["SchoolClass | None"] = relationship("SchoolClass")
    sections: Mapped[list["ExamSection"]] = relationship(
        "ExamSection",
        back_populates="exam",
        cascade="all, delete-orphan",
        order_by="ExamSection.order",
    )


class ExamSection(Base):
    __tablename__ = "exam_sections"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    exam_id: Mapped[str] = mapped_column(
        ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    order: Mapped[int] = mapped_column(default=0, nullable=False)
    is_default: Mapped[bool] = mapped_column(default=False, nullable=False)
    custom_label: Mapped[str | None] = mapped_column(String(100), nullable=True)
    intro_content: Mapped[str | None] = mapped_column(Text, nullable=True)

    exam: Mapped["Exam"] = relationship("Exam", back_populates="sections")
    questions: Mapped[list["Question"]] = relationship(
        "Question",
        back_populates="section",
        cascade="all, delete-orphan",
        order_by="Question.order",
    )


class Question(Base):
    __tablename__ = "questions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    section_id: Mapped[str] = mapped_column(
        ForeignKey("exam_sections.id", ondelete="CASCADE"), nullable=False, index=True
    )
    content: Mapped[str] = mapped_column(Text, default="", nullable=False)
    answer_template: Mapped[str | None] = mapped_column(Text, nullable=True)
    answer_template_locked: Mapped[bool] = mapped_column(default=False, nullable=False)
    student_tools: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    shuffle_options: Mapped[bool] = mapped_column(default=False, nullable=False)
    type: Mapped[str] = mapped_column(String(20), default=QuestionType.TEXT.value, nullable=False)
    order: Mapped[int] = mapped_column(default=0, nullable=False)
    custom_label: Mapped[str | None] = mapped_column(String(100), nullable=True)
    require_all_correct: Mapped[bool] = mapped_column(default=False, nullable=False)
    max_points: Mapped[float | None] = mapped_column(nullable=True)

    section: Mapped["ExamSection"] = relationship("ExamSection", back_populates="questions")
    segments: Mapped[list["QuestionSegment"]] = relationship(
        "QuestionSegment",
        back_populates="question",
        cascade="all, delete-orphan",
        order_by="QuestionSegment.order",
    )


class QuestionSegment(Base):
    """A graded part of a question (or an MCQ option), not a content segment."""

    __tablename__ = "question_segments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    question_id: Mapped[str] = mapped_column(
        ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    order: Mapped[int] = mapped_column(default=0, nullable=False)
    instruction: Mapped[str] = mapped_column(Text, default="", nullable=False)
    max_points: Mapped[float | None] = mapped_column(nullable=True)
    is_correct: Mapped[bool | None] = mapped_column(nullable=True)

    question: Mapped["Question"] = relationship("Question", back_populates="segments")
    rubric: Mapped["Rubric | None"] = relationship(
        "Rubric", back_populates="segment", cascade="all, delete-orphan", uselist=False
    )


class Rubric(Base):
    __tablename__ = "rubrics"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    segment_id: Mapped[str] = mapped_column(
        ForeignKey("question_segments.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    criteria: Mapped[str | None] = mapped_column(Text, nullable=True)
    levels: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    examples: Mapped[Any | None] = mapped_column(JSON, nullable=True)

    segment: Mapped["QuestionSegment"] = relationship("QuestionSegment", back_populates="rubric")
