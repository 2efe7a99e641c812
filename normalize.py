"""
Coercion of loosely-typed segment payloads into canonical segments.

Everything here is total: malformed input is repaired, never rejected.
"""
from __future__ import annotations

import logging
import math
import re
import uuid
from collections.abc import Mapping
from typing import Any, Literal

from models import (
    BoundingBox,
    CellSegment,
    ContentSegment,
    CoordAnchor,
    GraphAnchor,
    GraphArea,
    GraphAxes,
    GraphCurve,
    GraphFunction,
    GraphLine,
    GraphPoint,
    GraphSegment,
    GraphText,
    ImageRefSegment,
    ImageSegment,
    MathSegment,
    PointAnchor,
    TableSegment,
    TextSegment,
)

log = logging.getLogger(__name__)

MAX_GRAPH_WIDTH = 820
DEFAULT_GRAPH_WIDTH = 480
DEFAULT_GRAPH_HEIGHT = 280
MIN_TABLE_DIMENSION = 24
MAX_NESTING_DEPTH = 32

LINE_KINDS = ("segment", "line", "ray")
AREA_MODES = (
    "polygon",
    "under-function",
    "between-functions",
    "between-line-and-function",
    "bounded-region",
)

Fallback = Literal["text", "math"]

_LONE_SURROGATE_RE = re.compile("[\ud800-\udfff]")


def create_segment_id() -> str:
    return str(uuid.uuid4())


def replace_lone_surrogates(value: str) -> str:
    # lone surrogates cannot be encoded as UTF-8
    return _LONE_SURROGATE_RE.sub("\ufffd", value)


def _str_or(value: object, default: str = "") -> str:
    return replace_lone_surrogates(value) if isinstance(value, str) else default


def sanitize_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return replace_lone_surrogates(value)
    try:
        return replace_lone_surrogates(str(value))
    except Exception:
        return ""


def normalize_number(value: object, fallback: float) -> float:
    """Return ``value`` as a finite float, or ``fallback`` if it is not one."""
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return float(fallback)
    try:
        num = float(value.strip() if isinstance(value, str) else value)
    except (ValueError, OverflowError):
        return float(fallback)
    return num if math.isfinite(num) else float(fallback)


def _optional_number(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    num = normalize_number(value, math.nan)
    return None if math.isnan(num) else num


def _optional_str(value: object) -> str | None:
    return replace_lone_surrogates(value) if isinstance(value, str) else None


def _str_list(value: object) -> list[str] | None:
    if not isinstance(value, (list, tuple)):
        return None
    return [replace_lone_surrogates(item) for item in value if isinstance(item, str)]


def _normalize_id(value: object) -> str:
    if isinstance(value, str) and value:
        return replace_lone_surrogates(value)
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return create_segment_id()


def _as_mapping(value: object) -> Mapping[str, Any]:
    if isinstance(value, Mapping):
        return value
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        try:
            data = to_dict()
        except Exception:
            log.debug("to_dict() failed on %r, treating as empty", type(value))
            return {}
        if isinstance(data, Mapping):
            return data
    return {}


def _as_list(value: object) -> list[Any]:
    return list(value) if isinstance(value, (list, tuple)) else []


def _normalize_style(value: object) -> dict[str, Any] | None:
    if not isinstance(value, Mapping):
        return None
    return {
        replace_lone_surrogates(str(key)): replace_lone_surrogates(item) if isinstance(item, str) else item
        for key, item in value.items()
        if isinstance(item, (str, bool)) or _optional_number(item) is not None
    }


def _normalize_domain(value: object) -> dict[str, float] | None:
    if not isinstance(value, Mapping):
        return None
    domain: dict[str, float] = {}
    for key in ("min", "max"):
        num = _optional_number(value.get(key))
        if num is not None:
            domain[key] = num
    return domain or None


# ---- tables ----

def _empty_cell() -> list[CellSegment]:
    return [TextSegment(id=create_segment_id(), text="")]


def _flatten_for_cell(segment: ContentSegment) -> str:
    if isinstance(segment, (TextSegment, MathSegment)):
        return segment.text if isinstance(segment, TextSegment) else segment.latex
    if isinstance(segment, TableSegment):
        return "\n".join(
            "\t".join("".join(_flatten_for_cell(s) for s in cell) for cell in row)
            for row in segment.rows
        )
    if isinstance(segment, GraphSegment):
        return "[graph]"
    return "[image]"


def _normalize_cell(cell: object, depth: int) -> list[CellSegment]:
    items = _as_list(cell)
    if not items:
        return _empty_cell()
    normalized: list[CellSegment] = []
    for item in items:
        segment = normalize_segment(item, "text", _depth=depth + 1)
        if isinstance(segment, (TextSegment, MathSegment)):
            normalized.append(segment)
        else:
            # cells only hold text/math
            normalized.append(TextSegment(id=segment.id, text=_flatten_for_cell(segment)))
    return normalized or _empty_cell()


def normalize_table_rows(rows: object, _depth: int = 0) -> list[list[list[CellSegment]]]:
    """Build a rectangular grid; short rows are padded and long rows
    truncated to the column count of the first row."""
    raw_rows = _as_list(rows)
    if not raw_rows:
        return [[_empty_cell()]]

    grid: list[list[list[CellSegment]]] = []
    for row in raw_rows:
        cells = _as_list(row)
        if not cells:
            grid.append([_empty_cell()])
            continue
        grid.append([_normalize_cell(cell, _depth) for cell in cells])

    cols = len(grid[0])
    for index, row in enumerate(grid):
        if len(row) > cols:
            grid[index] = row[:cols]
        while len(grid[index]) < cols:
            grid[index].append(_empty_cell())
    return grid


def _normalize_dimensions(value: object, expected: int) -> list[float] | None:
    if not isinstance(value, (list, tuple)) or len(value) != expected:
        return None
    return [max(float(MIN_TABLE_DIMENSION), normalize_number(item, 0)) for item in value]


def normalize_table(data: Mapping[str, Any], _depth: int = 0) -> TableSegment:
    rows = normalize_table_rows(data.get("rows"), _depth)
    cols = len(rows[0]) if rows else 1
    return TableSegment(
        id=_normalize_id(data.get("id")),
        rows=rows,
        col_widths=_normalize_dimensions(data.get("colWidths"), cols),
        row_heights=_normalize_dimensions(data.get("rowHeights"), len(rows)),
    )


# ---- graphs ----

def normalize_graph_anchor(value: object) -> GraphAnchor:
    anchor = _as_mapping(value)
    point_id = anchor.get("pointId")
    if anchor.get("type") == "point" and isinstance(point_id, str):
        return PointAnchor(point_id=replace_lone_surrogates(point_id))
    return CoordAnchor(
        x=normalize_number(anchor.get("x"), 0),
        y=normalize_number(anchor.get("y"), 0),
    )


def normalize_graph_axes(value: object) -> GraphAxes:
    data = _as_mapping(value)
    axes = GraphAxes(
        x_min=normalize_number(data.get("xMin"), -5),
        x_max=normalize_number(data.get("xMax"), 5),
        y_min=normalize_number(data.get("yMin"), -5),
        y_max=normalize_number(data.get("yMax"), 5),
        x_label=_str_or(data.get("xLabel")),
        y_label=_str_or(data.get("yLabel")),
        x_label_is_math=bool(data.get("xLabelIsMath")),
        y_label_is_math=bool(data.get("yLabelIsMath")),
        show_grid=data.get("showGrid") is not False,
        grid_step=normalize_number(data.get("gridStep"), 1),
    )
    if axes.x_max <= axes.x_min:
        axes.x_min, axes.x_max = -5.0, 5.0
    if axes.y_max <= axes.y_min:
        axes.y_min, axes.y_max = -5.0, 5.0
    return axes


def _normalize_point(value: object) -> GraphPoint:
    data = _as_mapping(value)
    return GraphPoint(
        id=_normalize_id(data.get("id")),
        x=normalize_number(data.get("x"), 0),
        y=normalize_number(data.get("y"), 0),
        label=_str_or(data.get("label")),
        label_is_math=bool(data.get("labelIsMath")),
        color=_optional_str(data.get("color")),
        size=normalize_number(data.get("size"), 4),
        filled=data.get("filled") is not False,
    )


def _normalize_line(value: object) -> GraphLine:
    data = _as_mapping(value)
    kind = data.get("kind")
    return GraphLine(
        id=_normalize_id(data.get("id")),
        start=normalize_graph_anchor(data.get("start")),
        end=normalize_graph_anchor(data.get("end")),
        kind=kind if kind in LINE_KINDS else "segment",
        style=_normalize_style(data.get("style")),
    )


def _normalize_curve(value: object) -> GraphCurve:
    data = _as_mapping(value)
    return GraphCurve(
        id=_normalize_id(data.get("id")),
        start=normalize_graph_anchor(data.get("start")),
        end=normalize_graph_anchor(data.get("end")),
        curvature=normalize_number(data.get("curvature"), 0),
        style=_normalize_style(data.get("style")),
    )


def _normalize_function(value: object) -> GraphFunction:
    data = _as_mapping(value)
    expression = data.get("expression")
    return GraphFunction(
        id=_normalize_id(data.get("id")),
        expression=_str_or(expression),
        domain=_normalize_domain(data.get("domain")),
        offset_x=_optional_number(data.get("offsetX")),
        offset_y=_optional_number(data.get("offsetY")),
        scale_y=_optional_number(data.get("scaleY")),
        style=_normalize_style(data.get("style")),
    )


def _normalize_area(value: object) -> GraphArea:
    data = _as_mapping(value)
    mode = data.get("mode")
    points = data.get("points")
    return GraphArea(
        id=_normalize_id(data.get("id")),
        mode=mode if mode in AREA_MODES else "polygon",
        points=(
            [normalize_graph_anchor(point) for point in points]
            if isinstance(points, (list, tuple))
            else None
        ),
        function_id=_optional_str(data.get("functionId")),
        function_id2=_optional_str(data.get("functionId2")),
        line_id=_optional_str(data.get("lineId")),
        boundary_ids=_str_list(data.get("boundaryIds")),
        ignored_boundaries=_str_list(data.get("ignoredBoundaries")),
        domain=_normalize_domain(data.get("domain")),
        fill=_normalize_style(data.get("fill")),
    )


def _normalize_graph_text(value: object) -> GraphText:
    data = _as_mapping(value)
    return GraphText(
        id=_normalize_id(data.get("id")),
        x=normalize_number(data.get("x"), 0),
        y=normalize_number(data.get("y"), 0),
        text=_str_or(data.get("text")),
        is_math=bool(data.get("isMath")),
    )


def normalize_graph(data: Mapping[str, Any]) -> GraphSegment:
    return GraphSegment(
        id=_normalize_id(data.get("id")),
        axes=normalize_graph_axes(data.get("axes")),
        points=[_normalize_point(item) for item in _as_list(data.get("points"))],
        lines=[_normalize_line(item) for item in _as_list(data.get("lines"))],
        curves=[_normalize_curve(item) for item in _as_list(data.get("curves"))],
        functions=[_normalize_function(item) for item in _as_list(data.get("functions"))],
        areas=[_normalize_area(item) for item in _as_list(data.get("areas"))],
        texts=[_normalize_graph_text(item) for item in _as_list(data.get("texts"))],
        width=min(float(MAX_GRAPH_WIDTH), normalize_number(data.get("width"), DEFAULT_GRAPH_WIDTH)),
        height=normalize_number(data.get("height"), DEFAULT_GRAPH_HEIGHT),
        background=_optional_str(data.get("background")),
    )


# ---- images ----

def _clamp_percent(value: object, fallback: float) -> float:
    return min(100.0, max(0.0, normalize_number(value, fallback)))


def normalize_bounding_box(value: object) -> BoundingBox:
    data = _as_mapping(value)
    return BoundingBox(
        x_percent=_clamp_percent(data.get("xPercent"), 0),
        y_percent=_clamp_percent(data.get("yPercent"), 0),
        width_percent=_clamp_percent(data.get("widthPercent"), 100),
        height_percent=_clamp_percent(data.get("heightPercent"), 100),
    )


def normalize_image_ref(data: Mapping[str, Any]) -> ImageRefSegment:
    return ImageRefSegment(
        id=_normalize_id(data.get("id")),
        page_number=max(1, int(normalize_number(data.get("pageNumber"), 1))),
        bounding_box=normalize_bounding_box(data.get("boundingBox")),
        alt=sanitize_text(data.get("alt")),
    )


def normalize_image(data: Mapping[str, Any]) -> ImageSegment:
    url = data.get("url")
    return ImageSegment(
        id=_normalize_id(data.get("id")),
        url=_str_or(url),
        alt=_optional_str(data.get("alt")),
    )


# ---- dispatch ----

def normalize_segment(
    value: object,
    fallback: Fallback = "text",
    _depth: int = 0,
) -> ContentSegment:
    """
    Coerce ``value`` into a valid segment of the same kind.

    Unknown or missing type tags produce an empty segment of ``fallback``
    kind. Ids already present are kept; missing ones are generated.
    """
    data = _as_mapping(value)
    kind = data.get("type")

    if _depth > MAX_NESTING_DEPTH:
        log.warning("Segment nesting deeper than %d, dropping content", MAX_NESTING_DEPTH)
        kind = None

    if kind == "table":
        return normalize_table(data, _depth)
    if kind == "graph":
        return normalize_graph(data)
    if kind == "math":
        return MathSegment(id=_normalize_id(data.get("id")), latex=sanitize_text(data.get("latex")))
    if kind == "text":
        return TextSegment(id=_normalize_id(data.get("id")), text=sanitize_text(data.get("text")))
    if kind == "image":
        return normalize_image(data)
    if kind == "image_ref":
        return normalize_image_ref(data)

    if fallback == "math":
        return MathSegment(id=create_segment_id(), latex="")
    return TextSegment(id=create_segment_id(), text="")
