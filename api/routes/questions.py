"""Question content endpoints."""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session as DbSession

from api.database import get_db
from api.dependencies.auth import get_current_user
from api.models.content import (
    QuestionContentResponse,
    QuestionContentUpdate,
    QuestionTextResponse,
)
from api.models.db.exam import Question
from api.models.db.user import User
from api.services import question_service
from api.services.permission_service import get_exam_permissions
from api.utils.validation import validate_id

router = APIRouter(prefix="/api/questions/{question_id}", tags=["questions"])


def _load_question(db: DbSession, question_id: str, user: User, edit: bool = False) -> Question:
    question_id = validate_id("question_id", question_id)
    question = question_service.get_question(db, question_id)
    if question is None:
        raise HTTPException(status_code=404, detail="Question not found")

    permission = get_exam_permissions(db, question.section.exam_id, user)
    if permission.exam is None:
        raise HTTPException(status_code=404, detail="Question not found")
    if edit and not permission.can_edit:
        raise HTTPException(status_code=403, detail="Forbidden")
    return question


@router.get("/content", response_model=QuestionContentResponse)
def get_question_content(
    question_id: str,
    current_user: User = Depends(get_current_user),
    db: DbSession = Depends(get_db),
) -> QuestionContentResponse:
    """Get normalized question content."""
    question = _load_question(db, question_id, current_user)
    return QuestionContentResponse(**question_service.content_payload(question))


@router.put("/content", response_model=QuestionContentResponse)
def update_question_content(
    question_id: str,
    payload: QuestionContentUpdate,
    current_user: User = Depends(get_current_user),
    db: DbSession = Depends(get_db),
) -> QuestionContentResponse:
    """Replace question content (and optionally its answer template)."""
    question = _load_question(db, question_id, current_user, edit=True)
    question = question_service.save_question_content(
        db,
        question,
        payload.content,
        answer_template=payload.answer_template,
        update_template=payload.update_answer_template,
    )
    return QuestionContentResponse(**question_service.content_payload(question))


@router.get("/content/text", response_model=QuestionTextResponse)
def get_question_text(
    question_id: str,
    current_user: User = Depends(get_current_user),
    db: DbSession = Depends(get_db),
) -> QuestionTextResponse:
    """Plain-text and LaTeX renderings of the question, e.g. for grading prompts."""
    question = _load_question(db, question_id, current_user)
    return QuestionTextResponse(question_id=question.id, **question_service.question_text(question))
