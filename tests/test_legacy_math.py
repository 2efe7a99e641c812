import logging

import pytest

import legacy_math
from legacy_math import PLACEHOLDER_CHAR, legacy_math_html_to_latex, normalize_math_value

FRACTION = (
    '<span data-structure="fraction">'
    '<span class="math-fraction__numerator">1</span>'
    '<span class="math-fraction__line"></span>'
    '<span class="math-fraction__denominator">2</span>'
    "</span>"
)


def test_fraction() -> None:
    assert legacy_math_html_to_latex(FRACTION) == "$\\frac{1}{2}$"


def test_fraction_positional_fallback() -> None:
    html = '<span data-structure="fraction"><span>a</span><span></span><span>b</span></span>'
    assert legacy_math_html_to_latex(html) == "$\\frac{a}{b}$"


def test_text_around_structures_is_kept() -> None:
    html = f"Compute&nbsp;&nbsp; {FRACTION} please"
    assert legacy_math_html_to_latex(html) == "Compute $\\frac{1}{2}$ please"


def test_sum_and_integral() -> None:
    sum_html = (
        '<span data-structure="sum">'
        '<span data-placeholder class="mathSumUpper">n</span>'
        '<span class="mathSumSymbol">∑</span>'
        '<span data-placeholder class="mathSumLower">i=1</span>'
        "</span>"
    )
    int_html = sum_html.replace('"sum"', '"integral"').replace("mathSum", "mathInt")
    assert legacy_math_html_to_latex(sum_html) == "$\\sum_{i=1}^{n}$"
    assert legacy_math_html_to_latex(int_html) == "$\\int_{i=1}^{n}$"


def test_sqrt_and_cbrt() -> None:
    sqrt_html = (
        '<span data-structure="sqrt"><span class="mathSqrtSign">√</span>'
        '<span data-placeholder class="mathSqrtContent">x+1</span></span>'
    )
    cbrt_html = (
        '<span data-structure="cbrt"><span class="mathCbrtIndex">3</span>'
        '<span data-placeholder class="mathCbrtContent">8</span></span>'
    )
    assert legacy_math_html_to_latex(sqrt_html) == "$\\sqrt{x+1}$"
    assert legacy_math_html_to_latex(cbrt_html) == "$\\sqrt[3]{8}$"


def test_superscript_and_subscript() -> None:
    sup = (
        '<span data-structure="superscript"><span class="mathSupBase">x</span>'
        '<span class="mathSupExp">2</span></span>'
    )
    sub = (
        '<span data-structure="subscript"><span class="mathScriptBase">a</span>'
        '<span class="mathScriptSub">n</span></span>'
    )
    assert legacy_math_html_to_latex(sup) == "$x^{2}$"
    assert legacy_math_html_to_latex(sub) == "$a_{n}$"


def test_nested_structures_are_wrapped_once() -> None:
    html = (
        '<span data-structure="fraction">'
        '<span class="math-fraction__numerator">'
        '<span data-structure="superscript"><span class="mathSupBase">x</span>'
        '<span class="mathSupExp">2</span></span>'
        "</span>"
        '<span class="math-fraction__line"></span>'
        '<span class="math-fraction__denominator">y</span>'
        "</span>"
    )
    assert legacy_math_html_to_latex(html) == "$\\frac{x^{2}}{y}$"


def test_unknown_elements_are_flattened() -> None:
    html = "<div><b>bold</b> and <i>italic</i><!-- note --> text</div>"
    assert legacy_math_html_to_latex(html) == "bold and italic text"


def test_placeholders_survive() -> None:
    html = (
        '<span data-structure="fraction">'
        f'<span class="math-fraction__numerator">{PLACEHOLDER_CHAR}</span>'
        '<span class="math-fraction__line"></span>'
        f'<span class="math-fraction__denominator">{PLACEHOLDER_CHAR}</span>'
        "</span>"
    )
    assert legacy_math_html_to_latex(html) == f"$\\frac{{{PLACEHOLDER_CHAR}}}{{{PLACEHOLDER_CHAR}}}$"


@pytest.mark.parametrize("value", ["", "   "])
def test_blank_input(value: str) -> None:
    assert legacy_math_html_to_latex(value) == ""


def test_parse_failure_strips_tags(monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture) -> None:
    def broken(*_args, **_kwargs):
        raise legacy_math.etree.ParserError("broken markup")

    monkeypatch.setattr(legacy_math.lxml_html, "fragment_fromstring", broken)
    with caplog.at_level(logging.WARNING, logger="legacy_math"):
        result = legacy_math_html_to_latex("<b>x</b> y")

    assert result == "x y"
    assert "Failed to parse legacy math HTML" in caplog.text


def test_deeply_nested_markup_keeps_text(caplog: pytest.LogCaptureFixture) -> None:
    value = "a<span>" * 300 + "x" + "</span>" * 300
    with caplog.at_level(logging.WARNING, logger="legacy_math"):
        result = legacy_math_html_to_latex(value)

    assert result == "a" * 300 + "x"
    assert "nested deeper than" in caplog.text


def test_moderately_nested_markup_is_converted() -> None:
    value = "<span>" * 20 + FRACTION + "</span>" * 20
    assert legacy_math_html_to_latex(value) == "$\\frac{1}{2}$"


def test_strip_tags() -> None:
    assert legacy_math.strip_tags("<p>a<br/>b</p>") == "ab"


def test_normalize_math_value() -> None:
    assert normalize_math_value(None) == ""
    assert normalize_math_value("plain text") == "plain text"
    assert normalize_math_value("already $x$ <span>") == "already $x$ <span>"
    assert normalize_math_value(FRACTION) == "$\\frac{1}{2}$"
    assert normalize_math_value('<i data-structure="sqrt"><b>4</b></i>') == "$\\sqrt{4}$"
