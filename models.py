from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional, Union


def _compact(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}


# ---- graph pieces ----

@dataclass
class CoordAnchor:
    x: float = 0.0
    y: float = 0.0
    type: ClassVar[str] = "coord"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "x": self.x, "y": self.y}


@dataclass
class PointAnchor:
    """Back-reference to a GraphPoint id in the same graph (not ownership)."""

    point_id: str
    type: ClassVar[str] = "point"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "pointId": self.point_id}


GraphAnchor = Union[CoordAnchor, PointAnchor]


@dataclass
class GraphAxes:
    x_min: float = -5.0
    x_max: float = 5.0
    y_min: float = -5.0
    y_max: float = 5.0
    x_label: str = ""
    y_label: str = ""
    x_label_is_math: bool = False
    y_label_is_math: bool = False
    show_grid: bool = True
    grid_step: float = 1.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "xMin": self.x_min,
            "xMax": self.x_max,
            "yMin": self.y_min,
            "yMax": self.y_max,
            "xLabel": self.x_label,
            "yLabel": self.y_label,
            "xLabelIsMath": self.x_label_is_math,
            "yLabelIsMath": self.y_label_is_math,
            "showGrid": self.show_grid,
            "gridStep": self.grid_step,
        }


@dataclass
class GraphPoint:
    id: str
    x: float = 0.0
    y: float = 0.0
    label: str = ""
    label_is_math: bool = False
    color: Optional[str] = None
    size: float = 4.0
    filled: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return _compact(
            {
                "id": self.id,
                "x": self.x,
                "y": self.y,
                "label": self.label,
                "labelIsMath": self.label_is_math,
                "color": self.color,
                "size": self.size,
                "filled": self.filled,
            }
        )


@dataclass
class GraphLine:
    id: str
    start: GraphAnchor = field(default_factory=CoordAnchor)
    end: GraphAnchor = field(default_factory=CoordAnchor)
    kind: str = "segment"  # "segment" | "line" | "ray"
    style: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact(
            {
                "id": self.id,
                "start": self.start.to_dict(),
                "end": self.end.to_dict(),
                "kind": self.kind,
                "style": self.style,
            }
        )


@dataclass
class GraphCurve:
    id: str
    start: GraphAnchor = field(default_factory=CoordAnchor)
    end: GraphAnchor = field(default_factory=CoordAnchor)
    curvature: float = 0.0
    style: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact(
            {
                "id": self.id,
                "start": self.start.to_dict(),
                "end": self.end.to_dict(),
                "curvature": self.curvature,
                "style": self.style,
            }
        )


@dataclass
class GraphFunction:
    id: str
    expression: str = ""
    domain: Optional[Dict[str, float]] = None
    offset_x: Optional[float] = None
    offset_y: Optional[float] = None
    scale_y: Optional[float] = None
    style: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact(
            {
                "id": self.id,
                "expression": self.expression,
                "domain": self.domain,
                "offsetX": self.offset_x,
                "offsetY": self.offset_y,
                "scaleY": self.scale_y,
                "style": self.style,
            }
        )


@dataclass
class GraphArea:
    id: str
    mode: str = "polygon"
    points: Optional[List[GraphAnchor]] = None
    function_id: Optional[str] = None
    function_id2: Optional[str] = None
    line_id: Optional[str] = None
    boundary_ids: Optional[List[str]] = None
    ignored_boundaries: Optional[List[str]] = None
    domain: Optional[Dict[str, float]] = None
    fill: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact(
            {
                "id": self.id,
                "mode": self.mode,
                "points": (
                    [anchor.to_dict() for anchor in self.points]
                    if self.points is not None
                    else None
                ),
                "functionId": self.function_id,
                "functionId2": self.function_id2,
                "lineId": self.line_id,
                "boundaryIds": self.boundary_ids,
                "ignoredBoundaries": self.ignored_boundaries,
                "domain": self.domain,
                "fill": self.fill,
            }
        )


@dataclass
class GraphText:
    id: str
    x: float = 0.0
    y: float = 0.0
    text: str = ""
    is_math: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "x": self.x,
            "y": self.y,
            "text": self.text,
            "isMath": self.is_math,
        }


@dataclass
class BoundingBox:
    """Crop region on a PDF page, every value a percentage (0-100)."""

    x_percent: float = 0.0
    y_percent: float = 0.0
    width_percent: float = 100.0
    height_percent: float = 100.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "xPercent": self.x_percent,
            "yPercent": self.y_percent,
            "widthPercent": self.width_percent,
            "heightPercent": self.height_percent,
        }


# ---- segments ----

@dataclass
class TextSegment:
    id: str
    text: str = ""
    type: ClassVar[str] = "text"

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "type": self.type, "text": self.text}


@dataclass
class MathSegment:
    id: str
    latex: str = ""  # raw body, no $ delimiters
    type: ClassVar[str] = "math"

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "type": self.type, "latex": self.latex}


@dataclass
class ImageSegment:
    id: str
    url: str = ""
    alt: Optional[str] = None
    type: ClassVar[str] = "image"

    def to_dict(self) -> Dict[str, Any]:
        return _compact(
            {"id": self.id, "type": self.type, "url": self.url, "alt": self.alt}
        )


@dataclass
class ImageRefSegment:
    """Import-only placeholder; resolved to an ImageSegment before storage."""

    id: str
    page_number: int = 1
    bounding_box: BoundingBox = field(default_factory=BoundingBox)
    alt: str = ""
    type: ClassVar[str] = "image_ref"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "pageNumber": self.page_number,
            "boundingBox": self.bounding_box.to_dict(),
            "alt": self.alt,
        }


CellSegment = Union[TextSegment, MathSegment]


@dataclass
class TableSegment:
    id: str
    rows: List[List[List[CellSegment]]] = field(default_factory=list)
    col_widths: Optional[List[float]] = None
    row_heights: Optional[List[float]] = None
    type: ClassVar[str] = "table"

    def to_dict(self) -> Dict[str, Any]:
        return _compact(
            {
                "id": self.id,
                "type": self.type,
                "rows": [
                    [[segment.to_dict() for segment in cell] for cell in row]
                    for row in self.rows
                ],
                "colWidths": self.col_widths,
                "rowHeights": self.row_heights,
            }
        )


@dataclass
class GraphSegment:
    id: str
    axes: GraphAxes = field(default_factory=GraphAxes)
    points: List[GraphPoint] = field(default_factory=list)
    lines: List[GraphLine] = field(default_factory=list)
    curves: List[GraphCurve] = field(default_factory=list)
    functions: List[GraphFunction] = field(default_factory=list)
    areas: List[GraphArea] = field(default_factory=list)
    texts: List[GraphText] = field(default_factory=list)
    width: float = 480.0
    height: float = 280.0
    background: Optional[str] = None
    type: ClassVar[str] = "graph"

    def to_dict(self) -> Dict[str, Any]:
        return _compact(
            {
                "id": self.id,
                "type": self.type,
                "axes": self.axes.to_dict(),
                "points": [point.to_dict() for point in self.points],
                "lines": [line.to_dict() for line in self.lines],
                "curves": [curve.to_dict() for curve in self.curves],
                "functions": [fn.to_dict() for fn in self.functions],
                "areas": [area.to_dict() for area in self.areas],
                "texts": [text.to_dict() for text in self.texts],
                "width": self.width,
                "height": self.height,
                "background": self.background,
            }
        )


ContentSegment = Union[
    TextSegment,
    MathSegment,
    ImageSegment,
    ImageRefSegment,
    TableSegment,
    GraphSegment,
]

SEGMENT_TYPES = ("text", "math", "table", "graph", "image", "image_ref")
