"""
Document-level content handling: storage parse/serialize, string projections
and identity-preserving re-segmentation of flat strings.
"""
from __future__ import annotations

import dataclasses
import json
import logging
import re
from typing import Any, Callable, Iterable, Optional, Sequence

from legacy_math import normalize_math_value
from models import (
    BoundingBox,
    ContentSegment,
    GraphSegment,
    ImageRefSegment,
    ImageSegment,
    MathSegment,
    TableSegment,
    TextSegment,
)
from normalize import (
    MAX_NESTING_DEPTH,
    create_segment_id,
    normalize_segment,
    replace_lone_surrogates,
    sanitize_text,
)

log = logging.getLogger(__name__)

GRAPH_PLACEHOLDER = "[graph]"
IMAGE_PLACEHOLDER = "[image]"

_MATH_SPAN_RE = re.compile(r"\$\$([^$]*)\$\$|\$([^$]*)\$")


def create_text_segment(text: str) -> TextSegment:
    return TextSegment(id=create_segment_id(), text=text)


def create_math_segment(latex: str) -> MathSegment:
    return MathSegment(id=create_segment_id(), latex=latex)


def _empty_document() -> list[ContentSegment]:
    return [create_text_segment("")]


def _normalize_list(items: Sequence[Any]) -> list[ContentSegment]:
    if not items:
        return _empty_document()
    return [normalize_segment(item) for item in items]


def parse_content(raw: object) -> list[ContentSegment]:
    """
    Read stored content in any historical shape.

    Accepts a list of segment-like objects, a JSON string encoding one,
    or a legacy bare string (kept as a single text segment). Anything
    else, including ``None``, yields the empty document.
    """
    if isinstance(raw, (list, tuple)):
        return _normalize_list(raw)

    if isinstance(raw, str):
        try:
            parsed = json.loads(raw)
        except (ValueError, RecursionError):
            parsed = None
        if isinstance(parsed, list):
            return _normalize_list(parsed)
        return [create_text_segment(sanitize_text(raw))]

    return _empty_document()


def content_to_dicts(segments: Optional[Iterable[object]]) -> list[dict[str, Any]]:
    """Re-normalize and convert to the JSON storage shape."""
    items = list(segments or [])
    if not items:
        return [segment.to_dict() for segment in _empty_document()]
    normalized = []
    for segment in items:
        kind = getattr(segment, "type", None)
        if isinstance(segment, dict):
            kind = segment.get("type")
        normalized.append(normalize_segment(segment, "math" if kind == "math" else "text"))
    return [segment.to_dict() for segment in normalized]


def serialize_content(segments: Optional[Iterable[object]]) -> str:
    # segments built in code skip normalization and may still hold lone surrogates
    return replace_lone_surrogates(json.dumps(content_to_dicts(segments), ensure_ascii=False))


def migrate_content(raw: object) -> list[ContentSegment]:
    """
    Like parse_content, but legacy strings are converted to portable LaTeX
    (old editor HTML) and split on their $...$ delimiters.
    """
    if isinstance(raw, str):
        try:
            parsed = json.loads(raw)
        except (ValueError, RecursionError):
            parsed = None
        if isinstance(parsed, list):
            return _normalize_list(parsed)
        return string_to_segments(normalize_math_value(raw))
    return parse_content(raw)


# ---- projections ----

def _project(
    segments: Sequence[ContentSegment],
    render: Callable[[ContentSegment], Optional[str]],
    depth: int = 0,
) -> str:
    if depth > MAX_NESTING_DEPTH:
        return ""
    parts: list[str] = []
    for segment in segments:
        if isinstance(segment, TableSegment):
            parts.append(
                "\n".join(
                    "\t".join(_project(cell, render, depth + 1) for cell in row)
                    for row in segment.rows
                )
            )
            continue
        parts.append(render(segment) or "")
    return "".join(parts)


def _latex_piece(segment: ContentSegment) -> str:
    if isinstance(segment, MathSegment):
        return f"${segment.latex}$"
    if isinstance(segment, GraphSegment):
        return GRAPH_PLACEHOLDER
    if isinstance(segment, ImageSegment):
        return f"![{segment.alt or 'image'}]({segment.url})"
    if isinstance(segment, ImageRefSegment):
        return IMAGE_PLACEHOLDER
    return getattr(segment, "text", "")


def _plain_piece(segment: ContentSegment) -> str:
    if isinstance(segment, MathSegment):
        return segment.latex
    if isinstance(segment, GraphSegment):
        return GRAPH_PLACEHOLDER
    if isinstance(segment, (ImageSegment, ImageRefSegment)):
        return IMAGE_PLACEHOLDER
    return getattr(segment, "text", "")


def segments_to_latex_string(segments: Optional[Sequence[ContentSegment]]) -> str:
    """Flatten for math-capable consumers such as grading prompts."""
    if not segments:
        return ""
    return _project(segments, _latex_piece)


def segments_to_plain_text(segments: Optional[Sequence[ContentSegment]]) -> str:
    if not segments:
        return ""
    return _project(segments, _plain_piece)


# ---- re-segmentation ----

def string_to_segments(
    value: Optional[str],
    previous: Optional[Sequence[ContentSegment]] = None,
) -> list[ContentSegment]:
    """
    Split ``value`` on $...$ / $$...$$ spans into text and math segments.

    A produced segment takes the id of the first unused ``previous``
    segment of the same kind with identical content, so unchanged pieces
    keep their identity even if they moved.
    """
    reuse_pool = list(previous or [])

    def reuse(kind: str, content: str) -> ContentSegment:
        for index, candidate in enumerate(reuse_pool):
            if kind == "math" and isinstance(candidate, MathSegment) and candidate.latex == content:
                return dataclasses.replace(reuse_pool.pop(index), latex=content)
            if kind == "text" and isinstance(candidate, TextSegment) and candidate.text == content:
                return dataclasses.replace(reuse_pool.pop(index), text=content)
        if kind == "math":
            return create_math_segment(content)
        return create_text_segment(content)

    if not value:
        return _empty_document()
    value = sanitize_text(value)

    segments: list[ContentSegment] = []
    last_index = 0
    for match in _MATH_SPAN_RE.finditer(value):
        if match.start() > last_index:
            segments.append(reuse("text", value[last_index:match.start()]))
        latex = match.group(1) if match.group(1) is not None else match.group(2)
        segments.append(reuse("math", latex or ""))
        last_index = match.end()

    if last_index < len(value):
        segments.append(reuse("text", value[last_index:]))

    return segments or _empty_document()


# ---- imported image references ----

def bounding_box_to_pixels(
    box: BoundingBox, page_width: int, page_height: int
) -> tuple[int, int, int, int]:
    """Convert a percentage crop box to (left, top, width, height) pixels,
    clamped to the page and at least 1x1."""
    left = max(0, round(box.x_percent / 100 * page_width))
    top = max(0, round(box.y_percent / 100 * page_height))
    width = round(box.width_percent / 100 * page_width)
    height = round(box.height_percent / 100 * page_height)
    if left + width > page_width:
        width = page_width - left
    if top + height > page_height:
        height = page_height - top
    return left, top, max(1, width), max(1, height)


def resolve_image_refs(
    segments: Sequence[ContentSegment],
    resolver: Callable[[ImageRefSegment], Optional[str]],
) -> list[ContentSegment]:
    """
    Replace every image_ref by an image segment whose URL comes from
    ``resolver``. Failed lookups keep the alt text with an empty URL.
    """
    resolved: list[ContentSegment] = []
    for segment in segments:
        if not isinstance(segment, ImageRefSegment):
            resolved.append(segment)
            continue
        try:
            url = resolver(segment) or ""
        except Exception:
            log.exception(
                "Failed to resolve image ref %s (page %d)", segment.id, segment.page_number
            )
            url = ""
        if not url:
            log.warning("No image URL for ref %s (page %d)", segment.id, segment.page_number)
        resolved.append(ImageSegment(id=segment.id, url=url, alt=segment.alt or None))
    return resolved
