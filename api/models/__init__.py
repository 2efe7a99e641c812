"""Pydantic models."""
from api.models.content import (
    ContentPayload,
    ContentResponse,
    QuestionContentResponse,
    QuestionContentUpdate,
    QuestionTextResponse,
    SegmentsRequest,
    SegmentsResponse,
)
from api.models.variants import CreatedVariant, VariantCreateRequest, VariantCreateResponse

__all__ = [
    "ContentPayload",
    "ContentResponse",
    "CreatedVariant",
    "QuestionContentResponse",
    "QuestionContentUpdate",
    "QuestionTextResponse",
    "SegmentsRequest",
    "SegmentsResponse",
    "VariantCreateRequest",
    "VariantCreateResponse",
]
