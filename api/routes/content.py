"""Stateless content normalization endpoints."""
from fastapi import APIRouter

from api.models.content import ContentPayload, ContentResponse, SegmentsRequest, SegmentsResponse
from content import (
    content_to_dicts,
    migrate_content,
    parse_content,
    segments_to_latex_string,
    segments_to_plain_text,
    serialize_content,
    string_to_segments,
)

router = APIRouter(prefix="/api/content", tags=["content"])


@router.post("/normalize", response_model=ContentResponse)
def normalize_content(payload: ContentPayload) -> ContentResponse:
    """Normalize content of any stored shape and return its projections."""
    segments = migrate_content(payload.content) if payload.legacy else parse_content(payload.content)
    return ContentResponse(
        segments=content_to_dicts(segments),
        serialized=serialize_content(segments),
        plain_text=segments_to_plain_text(segments),
        latex=segments_to_latex_string(segments),
    )


@router.post("/segments", response_model=SegmentsResponse)
def split_segments(payload: SegmentsRequest) -> SegmentsResponse:
    """Re-split an edited flat string, keeping ids of unchanged pieces."""
    previous = parse_content(payload.previous) if payload.previous else None
    segments = string_to_segments(payload.value, previous)
    return SegmentsResponse(segments=[segment.to_dict() for segment in segments])
