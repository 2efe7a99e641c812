"""Service layer for question content stored as serialized segments."""
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session as DbSession, joinedload

from api.models.db.exam import ExamSection, Question
from content import (
    content_to_dicts,
    parse_content,
    segments_to_latex_string,
    segments_to_plain_text,
    serialize_content,
)
from models import ContentSegment

log = logging.getLogger(__name__)


def get_question(db: DbSession, question_id: str) -> Question | None:
    """Get question with its section and exam loaded."""
    stmt = (
        select(Question)
        .options(joinedload(Question.section).joinedload(ExamSection.exam))
        .where(Question.id == question_id)
    )
    return db.execute(stmt).scalar_one_or_none()


def load_question_content(question: Question) -> dict[str, list[ContentSegment] | None]:
    """Parse stored content and answer template into segment lists."""
    return {
        "content": parse_content(question.content),
        "answer_template": (
            parse_content(question.answer_template)
            if question.answer_template is not None
            else None
        ),
    }


def content_payload(question: Question) -> dict[str, object]:
    loaded = load_question_content(question)
    template = loaded["answer_template"]
    return {
        "question_id": question.id,
        "content": content_to_dicts(loaded["content"]),
        "answer_template": content_to_dicts(template) if template is not None else None,
        "answer_template_locked": question.answer_template_locked,
    }


def save_question_content(
    db: DbSession,
    question: Question,
    content: object,
    answer_template: object = None,
    update_template: bool = False,
) -> Question:
    """
    Normalize and store new content. ``content`` may be any shape
    parse_content accepts; it is always re-validated before writing.
    """
    question.content = serialize_content(parse_content(content))
    if update_template:
        question.answer_template = (
            serialize_content(parse_content(answer_template))
            if answer_template is not None
            else None
        )
    db.commit()
    db.refresh(question)
    log.debug("Saved content for question %s", question.id)
    return question


def question_text(question: Question) -> dict[str, str]:
    """Plain-text and LaTeX projections of the question content."""
    segments = parse_content(question.content)
    return {
        "plain_text": segments_to_plain_text(segments),
        "latex": segments_to_latex_string(segments),
    }
