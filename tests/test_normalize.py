import math

import pytest

import normalize
from models import (
    CoordAnchor,
    GraphSegment,
    ImageRefSegment,
    ImageSegment,
    MathSegment,
    PointAnchor,
    TableSegment,
    TextSegment,
)
from normalize import normalize_number, normalize_segment


def _cell(text: str) -> list[dict]:
    return [{"type": "text", "text": text}]


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (3, 3.0),
        (2.5, 2.5),
        ("7.25", 7.25),
        (" 4 ", 4.0),
        ("", 9.0),
        ("abc", 9.0),
        (None, 9.0),
        (True, 9.0),
        (math.nan, 9.0),
        (math.inf, 9.0),
        ("inf", 9.0),
        (10 ** 400, 9.0),
        ([1], 9.0),
    ],
)
def test_normalize_number(value, expected) -> None:
    assert normalize_number(value, 9) == expected


def test_sanitize_text() -> None:
    class Broken:
        def __str__(self) -> str:
            raise RuntimeError("boom")

    assert normalize.sanitize_text(None) == ""
    assert normalize.sanitize_text("x") == "x"
    assert normalize.sanitize_text(12) == "12"
    assert normalize.sanitize_text(Broken()) == ""


def test_create_segment_id_is_unique() -> None:
    ids = {normalize.create_segment_id() for _ in range(100)}
    assert len(ids) == 100


@pytest.mark.parametrize("value", [None, 5, "text", [], {"type": "unknown"}, {"text": "no tag"}])
def test_unknown_input_uses_text_fallback(value) -> None:
    segment = normalize_segment(value)
    assert isinstance(segment, TextSegment)
    assert segment.text == ""
    assert segment.id


def test_unknown_input_uses_math_fallback() -> None:
    segment = normalize_segment({"type": "???"}, "math")
    assert isinstance(segment, MathSegment)
    assert segment.latex == ""


def test_text_and_math_keep_ids_and_coerce_values() -> None:
    text = normalize_segment({"id": "a", "type": "text", "text": None})
    math_segment = normalize_segment({"id": 7, "type": "math", "latex": 12})
    assert text == TextSegment(id="a", text="")
    assert math_segment == MathSegment(id="7", latex="12")


def test_normalize_segment_accepts_dataclasses() -> None:
    original = MathSegment(id="m", latex="x")
    assert normalize_segment(original) == original


def test_table_empty_input_is_one_by_one() -> None:
    for rows in (None, [], "bad", [[]]):
        table = normalize_segment({"type": "table", "rows": rows})
        assert isinstance(table, TableSegment)
        assert len(table.rows) == 1
        assert len(table.rows[0]) == 1
        cell = table.rows[0][0]
        assert len(cell) == 1
        assert isinstance(cell[0], TextSegment)
        assert cell[0].text == ""


def test_table_ragged_rows_become_rectangular() -> None:
    table = normalize_segment(
        {
            "type": "table",
            "rows": [
                [_cell("a"), _cell("b")],
                [_cell("c")],
                [_cell("d"), _cell("e"), _cell("f")],
            ],
        }
    )
    assert all(len(row) == 2 for row in table.rows)
    assert table.rows[1][0][0].text == "c"
    assert table.rows[1][1][0].text == ""
    assert [cell[0].text for cell in table.rows[2]] == ["d", "e"]


def test_table_cells_only_hold_text_or_math() -> None:
    table = normalize_segment(
        {
            "type": "table",
            "rows": [
                [
                    [
                        {"id": "g", "type": "graph"},
                        {"type": "math", "latex": "x"},
                        {"id": "inner", "type": "table", "rows": [[_cell("p"), _cell("q")]]},
                    ]
                ]
            ],
        }
    )
    cell = table.rows[0][0]
    assert all(isinstance(segment, (TextSegment, MathSegment)) for segment in cell)
    assert cell[0] == TextSegment(id="g", text="[graph]")
    assert isinstance(cell[1], MathSegment)
    assert cell[2] == TextSegment(id="inner", text="p\tq")


def test_table_dimensions_kept_only_when_lengths_match() -> None:
    rows = [[_cell("a"), _cell("b")]]
    table = normalize_segment({"type": "table", "rows": rows, "colWidths": [10, "80"], "rowHeights": [1, 2]})
    assert table.col_widths == [24.0, 80.0]
    assert table.row_heights is None


def test_deeply_nested_tables_do_not_blow_up() -> None:
    value: dict = {"type": "text", "text": "deep"}
    for _ in range(200):
        value = {"type": "table", "rows": [[[value]]]}
    table = normalize_segment(value)
    assert isinstance(table, TableSegment)


def test_graph_inverted_axes_fall_back() -> None:
    graph = normalize_segment({"type": "graph", "axes": {"xMin": 5, "xMax": 1, "yMin": 0, "yMax": 3}})
    assert isinstance(graph, GraphSegment)
    assert (graph.axes.x_min, graph.axes.x_max) == (-5.0, 5.0)
    assert (graph.axes.y_min, graph.axes.y_max) == (0.0, 3.0)


def test_graph_defaults() -> None:
    graph = normalize_segment({"type": "graph"})
    assert graph.axes.show_grid is True
    assert graph.axes.grid_step == 1.0
    assert graph.width == 480.0
    assert graph.height == 280.0
    assert graph.background is None
    assert graph.points == []


def test_graph_width_is_capped() -> None:
    graph = normalize_segment({"type": "graph", "width": 5000, "showGrid": False})
    assert graph.width == 820.0


def test_graph_shapes_get_ids_and_defaults() -> None:
    graph = normalize_segment(
        {
            "type": "graph",
            "axes": {"showGrid": False, "xLabel": "t", "xLabelIsMath": True},
            "points": [{"x": "2", "y": 3}],
            "lines": [{"kind": "arrow", "start": {"type": "point", "pointId": "missing"}}],
            "curves": [{"curvature": "bad"}],
            "functions": [{"expression": "x^2", "offsetX": "1", "scaleY": 2, "domain": {"min": -1, "max": "x"}}],
            "texts": [{"text": "A", "isMath": 1}],
        }
    )
    assert graph.axes.show_grid is False
    assert graph.axes.x_label == "t"
    assert graph.axes.x_label_is_math is True

    point = graph.points[0]
    assert point.id
    assert (point.x, point.y, point.size, point.filled) == (2.0, 3.0, 4.0, True)

    line = graph.lines[0]
    assert line.kind == "segment"
    # dangling references are kept as-is
    assert line.start == PointAnchor(point_id="missing")
    assert line.end == CoordAnchor(x=0.0, y=0.0)

    assert graph.curves[0].curvature == 0.0

    function = graph.functions[0]
    assert function.offset_x is None
    assert function.scale_y == 2.0
    assert function.domain == {"min": -1.0}

    assert graph.texts[0].is_math is True


def test_graph_strings_replace_lone_surrogates() -> None:
    graph = normalize_segment(
        {
            "type": "graph",
            "id": "g\ud800",
            "axes": {"xLabel": "\udc00"},
            "points": [{"label": "P\ud800"}],
            "functions": [{"expression": "x\udfff"}],
        }
    )
    assert graph.id == "g\ufffd"
    assert graph.axes.x_label == "\ufffd"
    assert graph.points[0].label == "P\ufffd"
    assert graph.functions[0].expression == "x\ufffd"


def test_graph_anchor_requires_string_point_id() -> None:
    assert normalize.normalize_graph_anchor({"type": "point", "pointId": 3}) == CoordAnchor()
    assert normalize.normalize_graph_anchor({"type": "coord", "x": 1, "y": "2"}) == CoordAnchor(x=1.0, y=2.0)
    assert normalize.normalize_graph_anchor(None) == CoordAnchor()


def test_graph_areas() -> None:
    graph = normalize_segment(
        {
            "type": "graph",
            "areas": [
                {
                    "id": "a1",
                    "mode": "between-functions",
                    "functionId": "f1",
                    "functionId2": "f2",
                    "domain": {"min": 0, "max": 2},
                    "fill": {"color": "#00f", "opacity": 0.3, "bad": {"nested": 1}},
                },
                {"mode": "nonsense", "points": [{"x": 1, "y": 1}, {"type": "point", "pointId": "p"}]},
                {"mode": "bounded-region", "boundaryIds": ["l1", 3, "f1"], "ignoredBoundaries": "x"},
            ],
        }
    )
    first, second, third = graph.areas
    assert first.mode == "between-functions"
    assert (first.function_id, first.function_id2) == ("f1", "f2")
    assert first.fill == {"color": "#00f", "opacity": 0.3}
    assert first.points is None

    assert second.mode == "polygon"
    assert second.points == [CoordAnchor(x=1.0, y=1.0), PointAnchor(point_id="p")]

    assert third.boundary_ids == ["l1", "f1"]
    assert third.ignored_boundaries is None


def test_graph_area_to_dict_omits_unset_fields() -> None:
    graph = normalize_segment({"type": "graph", "areas": [{"id": "a"}]})
    assert graph.areas[0].to_dict() == {"id": "a", "mode": "polygon"}


def test_image_segment() -> None:
    image = normalize_segment({"id": "i", "type": "image", "url": 5, "alt": "x"})
    assert image == ImageSegment(id="i", url="", alt="x")
    assert image.to_dict() == {"id": "i", "type": "image", "url": "", "alt": "x"}


def test_image_ref_segment_is_clamped() -> None:
    ref = normalize_segment(
        {
            "type": "image_ref",
            "pageNumber": 0,
            "boundingBox": {"xPercent": -10, "yPercent": 20, "widthPercent": 150},
            "alt": None,
        }
    )
    assert isinstance(ref, ImageRefSegment)
    assert ref.page_number == 1
    assert ref.bounding_box.x_percent == 0.0
    assert ref.bounding_box.y_percent == 20.0
    assert ref.bounding_box.width_percent == 100.0
    assert ref.bounding_box.height_percent == 100.0
    assert ref.alt == ""
