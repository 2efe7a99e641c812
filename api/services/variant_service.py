"""Exam variants: per-class copies of a base exam."""

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Protocol, Sequence, TypeVar

from sqlalchemy import select
from sqlalchemy.orm import Session as DbSession, joinedload, selectinload

from api.config import ADMIN_ROLES
from api.models.db.exam import Exam, ExamSection, ExamStatus, Question, QuestionSegment, Rubric
from api.models.db.organization import SchoolClass
from api.models.db.user import User
from api.services.permission_service import get_exam_permissions

log = logging.getLogger(__name__)


class ExamVariantShapeError(ValueError):
    """Exam row is neither a valid base exam nor a valid variant."""


class VariantCreationError(ValueError):
    """Variant creation rejected; ``status_code`` maps to the HTTP response."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class PublishPolicy(str, enum.Enum):
    PUBLISH_ALL = "PUBLISH_ALL"
    PUBLISH_EXCEPT_DRAFT_SECTIONS = "PUBLISH_EXCEPT_DRAFT_SECTIONS"
    DELETE_DRAFTS_THEN_PUBLISH = "DELETE_DRAFTS_THEN_PUBLISH"


class ExamVariantShape(Protocol):
    id: str
    parent_exam_id: str | None
    class_id: str | None
    class_ids: list[str] | None


ExamT = TypeVar("ExamT", bound=ExamVariantShape)


@dataclass
class DraftVariantInfo:
    id: str
    class_id: str
    title: str
    updated_at: datetime
    class_name: str | None


@dataclass
class PublishPolicyResult:
    updated_class_ids: list[str]
    deleted_draft_variant_ids: list[str]
    affected_draft_sections: list[dict[str, str | None]]


@dataclass
class VariantCreationResult:
    created: list[dict[str, str]] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def normalize_class_ids(class_ids: object) -> list[str]:
    if not isinstance(class_ids, (list, tuple)):
        return []
    return [class_id for class_id in class_ids if isinstance(class_id, str)]


def exam_applies_to_class_ids(exam: ExamVariantShape, class_ids: Iterable[str]) -> bool:
    """A base exam with no class list applies to every class."""
    normalized = normalize_class_ids(exam.class_ids)
    if not normalized:
        return True
    wanted = set(class_ids)
    return any(class_id in wanted for class_id in normalized)


def assert_exam_variant_shape(
    exam: ExamVariantShape,
    context: str,
    expect: str | None = None,
) -> None:
    """
    Raise ExamVariantShapeError unless ``exam`` is a base exam (no parent,
    no class) or a variant (parent and class set, empty class list).
    ``expect`` may be "base" or "variant".
    """
    is_base = exam.parent_exam_id is None and exam.class_id is None
    is_variant = exam.parent_exam_id is not None and exam.class_id is not None
    class_ids = normalize_class_ids(exam.class_ids)

    if is_base and expect == "variant":
        log.error("[ExamInvariant] Expected variant, got base (context=%s, exam=%s)", context, exam.id)
        raise ExamVariantShapeError("Invalid exam variant shape (expected variant)")

    if is_variant and class_ids:
        log.error("[ExamInvariant] Variant has classIds set (context=%s, exam=%s)", context, exam.id)
        raise ExamVariantShapeError("Invalid exam variant shape (classIds must be empty)")

    if is_variant and expect == "base":
        log.error("[ExamInvariant] Expected base, got variant (context=%s, exam=%s)", context, exam.id)
        raise ExamVariantShapeError("Invalid exam variant shape (expected base)")

    if not is_base and not is_variant:
        log.error("[ExamInvariant] Invalid base/variant shape (context=%s, exam=%s)", context, exam.id)
        raise ExamVariantShapeError("Invalid exam variant shape")


def resolve_published_exams_for_classes(
    base_exams: Sequence[ExamT],
    variant_exams: Sequence[ExamT],
    class_ids: Sequence[str],
    context: str,
) -> list[ExamT]:
    """Exams visible to the given classes: variants win over their base."""
    for exam in base_exams:
        assert_exam_variant_shape(exam, context)
    for exam in variant_exams:
        assert_exam_variant_shape(exam, context, expect="variant")

    applicable = [exam for exam in base_exams if exam_applies_to_class_ids(exam, class_ids)]
    replaced_base_ids = {exam.parent_exam_id for exam in variant_exams if exam.parent_exam_id}

    return [
        *variant_exams,
        *(exam for exam in applicable if exam.id not in replaced_base_ids),
    ]


def get_draft_variants_for_base_exam(db: DbSession, base_exam_id: str) -> list[DraftVariantInfo]:
    stmt = (
        select(Exam)
        .options(joinedload(Exam.school_class))
        .where(
            Exam.parent_exam_id == base_exam_id,
            Exam.status == ExamStatus.DRAFT.value,
            Exam.archived_at.is_(None),
        )
    )
    variants = db.execute(stmt).scalars().all()
    return [
        DraftVariantInfo(
            id=variant.id,
            class_id=variant.class_id,
            title=variant.title,
            updated_at=variant.updated_at,
            class_name=variant.school_class.name if variant.school_class else None,
        )
        for variant in variants
        if variant.class_id
    ]


def get_publish_policy_result(
    policy: PublishPolicy,
    base_class_ids: Sequence[str],
    draft_variants: Sequence[DraftVariantInfo],
) -> PublishPolicyResult:
    draft_class_ids = {variant.class_id for variant in draft_variants}
    affected = [
        {"class_id": variant.class_id, "class_name": variant.class_name}
        for variant in draft_variants
    ]

    if policy == PublishPolicy.PUBLISH_EXCEPT_DRAFT_SECTIONS:
        return PublishPolicyResult(
            updated_class_ids=[cid for cid in base_class_ids if cid not in draft_class_ids],
            deleted_draft_variant_ids=[],
            affected_draft_sections=affected,
        )

    if policy == PublishPolicy.DELETE_DRAFTS_THEN_PUBLISH:
        return PublishPolicyResult(
            updated_class_ids=list(base_class_ids),
            deleted_draft_variant_ids=[variant.id for variant in draft_variants],
            affected_draft_sections=affected,
        )

    return PublishPolicyResult(
        updated_class_ids=list(base_class_ids),
        deleted_draft_variant_ids=[],
        affected_draft_sections=affected,
    )


def clone_exam_content(db: DbSession, source_exam_id: str, target_exam_id: str) -> None:
    """
    Copy sections, questions, grading segments and rubrics of one exam into
    another. Stored content is copied as-is, without re-parsing.
    """
    stmt = (
        select(ExamSection)
        .options(
            selectinload(ExamSection.questions)
            .selectinload(Question.segments)
            .selectinload(QuestionSegment.rubric)
        )
        .where(ExamSection.exam_id == source_exam_id)
        .order_by(ExamSection.order.asc())
    )
    sections = db.execute(stmt).scalars().all()

    for section in sections:
        new_section = ExamSection(
            exam_id=target_exam_id,
            title=section.title,
            order=section.order,
            is_default=section.is_default,
            custom_label=section.custom_label,
            intro_content=section.intro_content,
        )
        db.add(new_section)

        for question in section.questions:
            new_question = Question(
                content=question.content,
                answer_template=question.answer_template,
                answer_template_locked=question.answer_template_locked,
                student_tools=question.student_tools,
                shuffle_options=question.shuffle_options,
                type=question.type,
                order=question.order,
                custom_label=question.custom_label,
                require_all_correct=question.require_all_correct,
                max_points=question.max_points,
            )
            new_section.questions.append(new_question)

            for segment in question.segments:
                new_segment = QuestionSegment(
                    order=segment.order,
                    instruction=segment.instruction,
                    max_points=segment.max_points,
                    is_correct=segment.is_correct,
                )
                if segment.rubric is not None:
                    new_segment.rubric = Rubric(
                        criteria=segment.rubric.criteria,
                        levels=segment.rubric.levels,
                        examples=segment.rubric.examples,
                    )
                new_question.segments.append(new_segment)

    db.flush()
    log.debug("Cloned %d sections from exam %s to %s", len(sections), source_exam_id, target_exam_id)


def create_exam_variants(
    db: DbSession,
    base_exam_id: str,
    class_ids: Sequence[object],
    user: User,
) -> VariantCreationResult:
    """
    Create one variant of a base exam per target class, copying its content.

    Classes that already have a variant are skipped. Everything is
    committed in a single transaction.
    """
    requested = list(
        dict.fromkeys(
            cid for cid in class_ids if isinstance(cid, str) and cid.strip()
        )
    )
    if not requested:
        raise VariantCreationError("Missing classIds")

    permission = get_exam_permissions(db, base_exam_id, user)
    base_exam = permission.exam
    if base_exam is None:
        raise VariantCreationError("Unauthorized", status_code=403)

    assert_exam_variant_shape(base_exam, "create-exam-variants", expect="base")
    if base_exam.parent_exam_id:
        raise VariantCreationError("Cannot duplicate from a variant")

    if not permission.can_edit:
        raise VariantCreationError("Forbidden", status_code=403)

    stmt = select(SchoolClass.id).where(
        SchoolClass.id.in_(requested),
        SchoolClass.course_id == base_exam.course_id,
        SchoolClass.archived_at.is_(None),
    )
    valid_ids = set(db.execute(stmt).scalars().all())
    if any(cid not in valid_ids for cid in requested):
        raise VariantCreationError("Invalid classIds for this course")

    if user.role not in ADMIN_ROLES:
        if any(cid not in permission.teacher_class_ids for cid in requested):
            raise VariantCreationError("Forbidden", status_code=403)

    stmt = select(Exam.class_id).where(
        Exam.parent_exam_id == base_exam.id,
        Exam.class_id.in_(requested),
    )
    existing = set(db.execute(stmt).scalars().all())
    to_create = [cid for cid in requested if cid not in existing]

    result = VariantCreationResult(skipped=[cid for cid in requested if cid in existing])

    try:
        if to_create:
            current = normalize_class_ids(base_exam.class_ids)
            base_exam.class_ids = list(dict.fromkeys([*current, *to_create]))

        for class_id in to_create:
            variant = Exam(
                title=base_exam.title,
                description=base_exam.description,
                course_id=base_exam.course_id,
                class_ids=[],
                class_id=class_id,
                parent_exam_id=base_exam.id,
                start_at=base_exam.start_at,
                end_at=base_exam.end_at,
                duration_minutes=base_exam.duration_minutes,
                author_id=base_exam.author_id or user.id,
                status=base_exam.status,
                require_honor_commitment=base_exam.require_honor_commitment,
                allowed_materials=base_exam.allowed_materials,
                anti_cheat_config=base_exam.anti_cheat_config,
                grading_config=base_exam.grading_config,
            )
            db.add(variant)
            db.flush()
            clone_exam_content(db, base_exam.id, variant.id)
            result.created.append({"id": variant.id, "class_id": class_id})

        db.commit()
    except Exception:
        db.rollback()
        log.exception("Failed to create variants for exam %s", base_exam_id)
        raise

    log.info(
        "Exam %s: created %d variants, skipped %d",
        base_exam_id,
        len(result.created),
        len(result.skipped),
    )
    return result
