"""Exam variant endpoints."""
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session as DbSession

from api.database import get_db
from api.dependencies.auth import get_current_user
from api.models.db.user import User, UserRole
from api.models.variants import CreatedVariant, VariantCreateRequest, VariantCreateResponse
from api.services import variant_service
from api.utils.validation import validate_id

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/exams/{exam_id}/variants", tags=["variants"])


@router.post("", response_model=VariantCreateResponse)
def create_variants(
    exam_id: str,
    payload: VariantCreateRequest,
    current_user: User = Depends(get_current_user),
    db: DbSession = Depends(get_db),
) -> VariantCreateResponse:
    """Duplicate a base exam into one variant per requested class."""
    exam_id = validate_id("exam_id", exam_id)
    if current_user.role == UserRole.STUDENT:
        raise HTTPException(status_code=401, detail="Unauthorized")

    try:
        result = variant_service.create_exam_variants(
            db, exam_id, payload.class_ids, current_user
        )
    except variant_service.VariantCreationError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc))
    except variant_service.ExamVariantShapeError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    return VariantCreateResponse(
        created=[
            CreatedVariant(id=item["id"], class_id=item["class_id"])
            for item in result.created
        ],
        skipped=result.skipped,
    )
