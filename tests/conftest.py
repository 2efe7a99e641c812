import os

# keep the module-level engine off the filesystem
os.environ.setdefault("DATABASE_URL", "sqlite://")

from dataclasses import dataclass
from datetime import datetime, timezone

import pytest
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from api.database import init_db, make_engine
from api.models.db import (
    Course,
    Enrollment,
    Exam,
    ExamSection,
    Institution,
    Question,
    QuestionSegment,
    Rubric,
    SchoolClass,
    User,
    UserRole,
)
from content import create_math_segment, create_text_segment, serialize_content

QUESTION_CONTENT = serialize_content(
    [create_text_segment("Solve "), create_math_segment("x^2 = 4")]
)


@dataclass
class Seed:
    admin: User
    teacher: User
    course_teacher: User
    student: User
    outsider: User
    exam: Exam
    question: Question


@pytest.fixture
def engine():
    engine = make_engine("sqlite://", poolclass=StaticPool)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def _user(user_id: str, role: str, institution_id: str = "inst-1") -> User:
    return User(
        id=user_id,
        email=f"{user_id}@example.com",
        name=user_id,
        role=role,
        institution_id=institution_id,
    )


@pytest.fixture
def seed(db: Session) -> Seed:
    db.add_all(
        [
            Institution(id="inst-1", name="North School"),
            Institution(id="inst-2", name="South School"),
        ]
    )
    db.flush()

    admin = _user("admin", UserRole.SCHOOL_ADMIN)
    teacher = _user("teacher", UserRole.TEACHER)
    course_teacher = _user("course-teacher", UserRole.TEACHER)
    student = _user("student", UserRole.STUDENT)
    outsider = _user("outsider", UserRole.ADMIN, institution_id="inst-2")
    db.add_all([admin, teacher, course_teacher, student, outsider])

    db.add(Course(id="course-1", institution_id="inst-1", code="MATH101", name="Algebra"))
    db.flush()
    db.add_all(
        [
            SchoolClass(id="class-a", course_id="course-1", name="Group A"),
            SchoolClass(id="class-b", course_id="course-1", name="Group B"),
            SchoolClass(
                id="class-old",
                course_id="course-1",
                name="Group Old",
                archived_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
            ),
            SchoolClass(id="class-default", course_id="course-1", name="__DEFAULT__"),
        ]
    )
    db.flush()
    db.add_all(
        [
            Enrollment(user_id="teacher", class_id="class-a", role=UserRole.TEACHER),
            Enrollment(user_id="student", class_id="class-a", role=UserRole.STUDENT),
            Enrollment(user_id="course-teacher", class_id="class-default", role=UserRole.TEACHER),
        ]
    )

    exam = Exam(
        id="exam-1",
        title="Quadratics",
        course_id="course-1",
        class_ids=[],
        author_id="teacher",
        duration_minutes=45,
        grading_config={"mode": "manual"},
    )
    db.add(exam)
    db.flush()

    section = ExamSection(
        exam_id="exam-1",
        title="Part 1",
        order=0,
        intro_content=serialize_content([create_text_segment("Read carefully")]),
    )
    question = Question(
        id="question-1",
        content=QUESTION_CONTENT,
        answer_template=None,
        order=0,
        max_points=4,
    )
    segment = QuestionSegment(order=0, instruction="Find x", max_points=4)
    segment.rubric = Rubric(criteria="Both roots", levels=[{"points": 4, "label": "full"}])
    question.segments.append(segment)
    section.questions.append(question)
    db.add(section)
    db.commit()

    return Seed(
        admin=admin,
        teacher=teacher,
        course_teacher=course_teacher,
        student=student,
        outsider=outsider,
        exam=exam,
        question=question,
    )


@pytest.fixture
def make_variant(db: Session):
    def _make(class_id: str, exam_id: str = "variant-1", parent_id: str = "exam-1") -> Exam:
        variant = Exam(
            id=exam_id,
            title="Quadratics",
            course_id="course-1",
            class_id=class_id,
            class_ids=[],
            parent_exam_id=parent_id,
            author_id="teacher",
        )
        db.add(variant)
        db.commit()
        return variant

    return _make
