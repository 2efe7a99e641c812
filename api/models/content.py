"""Pydantic models for content API.

Segment payloads stay untyped (``Any``) on purpose: the content normalizer
is the only place that validates them.
"""
from typing import Any

from pydantic import BaseModel


class ContentPayload(BaseModel):
    """Raw content in any stored shape: segment list, JSON string or legacy text."""

    content: Any = None
    legacy: bool = False


class QuestionContentUpdate(BaseModel):
    content: Any = None
    answer_template: Any = None
    update_answer_template: bool = False


class ContentResponse(BaseModel):
    segments: list[dict[str, Any]]
    serialized: str
    plain_text: str
    latex: str


class SegmentsRequest(BaseModel):
    """Flat string to re-split, with the segments it was produced from."""

    value: str = ""
    previous: list[Any] | None = None


class SegmentsResponse(BaseModel):
    segments: list[dict[str, Any]]


class QuestionContentResponse(BaseModel):
    question_id: str
    content: list[dict[str, Any]]
    answer_template: list[dict[str, Any]] | None = None
    answer_template_locked: bool = False


class QuestionTextResponse(BaseModel):
    question_id: str
    plain_text: str
    latex: str
