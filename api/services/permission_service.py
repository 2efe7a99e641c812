"""Exam edit permissions for teachers and admins."""

from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.orm import Session as DbSession, joinedload

from api.config import ADMIN_ROLES, DEFAULT_SECTION_NAME
from api.models.db.exam import Exam
from api.models.db.organization import Enrollment, SchoolClass
from api.models.db.user import User, UserRole


@dataclass
class ExamPermission:
    exam: Exam | None
    can_edit: bool = False
    teacher_class_ids: list[str] = field(default_factory=list)


def is_admin(role: str) -> bool:
    return role in ADMIN_ROLES


def get_teacher_class_ids(db: DbSession, user_id: str, course_id: str) -> list[str]:
    """
    Classes of a course the user teaches. Teaching the ``__DEFAULT__``
    section means teaching every active class of the course.
    """
    stmt = (
        select(Enrollment)
        .options(joinedload(Enrollment.school_class))
        .join(SchoolClass, Enrollment.class_id == SchoolClass.id)
        .where(
            Enrollment.user_id == user_id,
            Enrollment.role == UserRole.TEACHER,
            SchoolClass.course_id == course_id,
            SchoolClass.archived_at.is_(None),
        )
    )
    enrollments = db.execute(stmt).scalars().all()

    if any(e.school_class.name == DEFAULT_SECTION_NAME for e in enrollments):
        stmt = select(SchoolClass.id).where(
            SchoolClass.course_id == course_id,
            SchoolClass.archived_at.is_(None),
        )
        return list(db.execute(stmt).scalars().all())

    return [e.class_id for e in enrollments]


def get_exam_permissions(db: DbSession, exam_id: str, user: User) -> ExamPermission:
    """Resolve whether ``user`` may edit the exam, and which classes they teach."""
    stmt = select(Exam).options(joinedload(Exam.course)).where(Exam.id == exam_id)
    exam = db.execute(stmt).scalar_one_or_none()

    if (
        exam is None
        or exam.archived_at is not None
        or exam.course.archived_at is not None
        or exam.course.institution_id != user.institution_id
    ):
        return ExamPermission(exam=None)

    if is_admin(user.role):
        return ExamPermission(exam=exam, can_edit=True)

    teacher_class_ids = get_teacher_class_ids(db, user.id, exam.course_id)

    if exam.class_id:
        can_edit = exam.class_id in teacher_class_ids
    else:
        can_edit = exam.author_id == user.id

    return ExamPermission(exam=exam, can_edit=can_edit, teacher_class_ids=teacher_class_ids)
