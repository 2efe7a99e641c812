"""
Convert math HTML from the previous editor into portable LaTeX strings.

The old editor stored structures as ``<span data-structure="...">`` nodes.
They are translated to LaTeX so stored values render like modern content.
Unknown nodes are flattened to their text; placeholders are kept as □.
"""
from __future__ import annotations

import logging
import re
from typing import Optional

from lxml import etree, html as lxml_html

log = logging.getLogger(__name__)

PLACEHOLDER_CHAR = "□"

_WHITESPACE_RE = re.compile(r"\s+")
_TAG_RE = re.compile(r"<[^>]+>")

# libxml2 silently drops content nested deeper than ~256 elements
MAX_MARKUP_DEPTH = 200


def _tree_depth(root) -> int:
    deepest = 0
    stack = [(root, 0)]
    while stack:
        el, level = stack.pop()
        deepest = max(deepest, level)
        stack.extend((child, level + 1) for child in el)
    return deepest


def _normalize_text(text: Optional[str]) -> str:
    return _WHITESPACE_RE.sub(" ", (text or "").replace("\u00a0", " "))


def _find(el, xpath: str, index: Optional[int] = None):
    """First descendant matching ``xpath``, else the element child at ``index``."""
    found = el.xpath(xpath)
    if found:
        return found[0]
    children = [child for child in el if isinstance(child.tag, str)]
    if index is None or not children:
        return None
    try:
        return children[index]
    except IndexError:
        return None


def _class_contains(fragment: str) -> str:
    return f'.//*[contains(@class, "{fragment}")]'


def _placeholder_with_class(fragment: str) -> str:
    return f'.//*[@data-placeholder and contains(@class, "{fragment}")]'


def _serialize_children(el, wrap: bool = True) -> str:
    if el is None:
        return ""
    parts = [_normalize_text(el.text)]
    for child in el:
        parts.append(_serialize_node(child, wrap))
        parts.append(_normalize_text(child.tail))
    return "".join(parts)


def _serialize_node(el, wrap: bool = True) -> str:
    # comments and processing instructions carry no content
    if not isinstance(el.tag, str):
        return ""

    structure = el.get("data-structure")

    def wrapped(latex: str) -> str:
        return f"${latex}$" if wrap else latex

    if structure == "fraction":
        numerator = _find(el, _class_contains("math-fraction__numerator"), 0)
        denominator = _find(el, _class_contains("math-fraction__denominator"), 2)
        return wrapped(
            f"\\frac{{{_serialize_children(numerator, False)}}}"
            f"{{{_serialize_children(denominator, False)}}}"
        )

    if structure in ("sum", "integral"):
        upper = _find(el, _placeholder_with_class("Upper"), 0)
        lower = _find(el, _placeholder_with_class("Lower"), 2)
        command = "\\sum" if structure == "sum" else "\\int"
        return wrapped(
            f"{command}_{{{_serialize_children(lower, False)}}}"
            f"^{{{_serialize_children(upper, False)}}}"
        )

    if structure == "sqrt":
        content = _find(el, ".//*[@data-placeholder]", -1)
        return wrapped(f"\\sqrt{{{_serialize_children(content, False)}}}")

    if structure == "cbrt":
        index = _find(el, _class_contains("mathCbrtIndex"), 0)
        content = _find(el, ".//*[@data-placeholder]", -1)
        return wrapped(
            f"\\sqrt[{_serialize_children(index, False)}]"
            f"{{{_serialize_children(content, False)}}}"
        )

    if structure == "superscript":
        base = _find(el, _class_contains("Base"), 0)
        exponent = _find(el, _class_contains("Exp"), 1)
        return wrapped(
            f"{_serialize_children(base, False)}^{{{_serialize_children(exponent, False)}}}"
        )

    if structure == "subscript":
        base = _find(el, _class_contains("Base"), 0)
        sub = _find(el, _class_contains("Sub"), 1)
        return wrapped(
            f"{_serialize_children(base, False)}_{{{_serialize_children(sub, False)}}}"
        )

    return _serialize_children(el, wrap)


def strip_tags(value: str) -> str:
    return _TAG_RE.sub("", value).replace("\u00a0", " ")


def legacy_math_html_to_latex(value: str) -> str:
    """
    Translate legacy editor HTML to a LaTeX-ish string.

    Falls back to stripping all tags when the markup cannot be parsed
    or is nested too deep to parse completely.
    """
    if not value or not value.strip():
        return ""
    try:
        root = lxml_html.fragment_fromstring(value, create_parent="div")
    except (etree.LxmlError, ValueError) as exc:
        log.warning("Failed to parse legacy math HTML: %s", exc)
        return strip_tags(value)
    if _tree_depth(root) >= MAX_MARKUP_DEPTH:
        log.warning("Legacy math HTML nested deeper than %d, stripping tags", MAX_MARKUP_DEPTH)
        return strip_tags(value)
    latex = _serialize_children(root)
    return latex.replace("\u00a0", " ").strip()


def normalize_math_value(value: Optional[str]) -> str:
    """
    Bring a stored value to the modern format: plain text with inline
    LaTeX in $...$. Values with a literal $ are assumed already portable.
    """
    if value is None:
        return ""
    if "$" in value:
        return value
    if "<span" in value or "data-structure" in value:
        return legacy_math_html_to_latex(value)
    return value
