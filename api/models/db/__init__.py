"""Database models."""
from api.models.db.user import User, UserRole
from api.models.db.organization import Course, Enrollment, Institution, SchoolClass
from api.models.db.exam import (
    Exam,
    ExamSection,
    ExamStatus,
    Question,
    QuestionSegment,
    QuestionType,
    Rubric,
)

__all__ = [
    "User",
    "UserRole",
    "Course",
    "Enrollment",
    "Institution",
    "SchoolClass",
    "Exam",
    "ExamSection",
    "ExamStatus",
    "Question",
    "QuestionSegment",
    "QuestionType",
    "Rubric",
]
