"""Whole-translation properties: scenarios, indentation, determinism, diagnostics."""

import pytest

from swiftkt import (
    ASSUMED_IDENTITY_MAPPING,
    DIAGNOSTIC_KINDS,
    NON_TRIVIAL_INITIALIZER_BODY,
    UNSUPPORTED_CONSTRUCT,
    Diagnostic,
    ParseFailure,
    TranslationResult,
    translate,
)
from swiftkt.ast import SInterpSegment, SStringLit
from swiftkt.cli import Options, run_pipeline
from swiftkt.context import TranslationContext
from swiftkt.expressions import ExpressionTranslator
from swiftkt.parse import parse

SAMPLE = """\
import Foundation

struct Item {
    let name: String
    var price: Double
    init(name: String, price: Double) {
        self.name = name
        self.price = price
    }
}

class Cart {
    var items: [Item] = []
    private(set) var total: Double = 0

    func add(_ item: Item) {
        items.append(item)
        total += item.price
        if total > 100 {
            print("big cart")
        } else if total > 10 {
            print("medium cart")
        }
    }

    func names() -> [String] {
        var out: [String] = []
        for item in items {
            out.append(item.name)
        }
        return out
    }
}

let cart = Cart()
cart.add(Item(name: "pen", price: 2))
for i in 0..<3 {
    switch i {
    case 0:
        print("zero")
    default:
        print(i)
    }
}
"""


# ── Scenarios ────────────────────────────────────────────────


def test_bindings_keep_mutability_types_and_literals():
    result = translate('let name: String = "John"\nvar age: Int = 25\n')
    assert result.text == 'val name: String = "John"\nvar age: Int = 25\n'
    assert result.ok()


def test_trivial_initializer_becomes_constructor_header():
    source = (
        "class Person {\n"
        "    var name: String\n"
        "    var age: Int\n"
        "    init(name: String, age: Int) {\n"
        "        self.name = name\n"
        "        self.age = age\n"
        "    }\n"
        "}\n"
    )
    result = translate(source)
    assert result.text == "class Person(var name: String, var age: Int) {\n}\n"
    assert result.diagnostics == []


def test_return_annotation_only_when_declared():
    result = translate(
        'func greet(name: String) -> String {\n    return "Hello, \\(name)!"\n}\n'
        "func wave(name: String) {\n    print(name)\n}\n"
    )
    lines = result.text.split("\n")
    assert "fun greet(name: String): String {" in lines
    assert "fun wave(name: String) {" in lines


# ── Layout ───────────────────────────────────────────────────


def test_indentation_is_a_multiple_of_the_unit():
    result = translate(SAMPLE)
    for line in result.text.split("\n"):
        if not line:
            continue
        spaces = len(line) - len(line.lstrip(" "))
        assert spaces % 4 == 0, line


def test_custom_indent_unit():
    result = translate("func f() {\n    if true {\n        print(1)\n    }\n}\n", indent="  ")
    assert result.text == "fun f() {\n  if (true) {\n    println(1)\n  }\n}\n"


def test_output_ends_with_one_newline():
    result = translate(SAMPLE)
    assert result.text.endswith("}\n")
    assert not result.text.endswith("\n\n")


def test_no_let_keyword_survives():
    result = translate(SAMPLE)
    for line in result.text.split("\n"):
        assert not line.lstrip().startswith("let ")


@pytest.mark.parametrize("source", ["", "\n\n", "// only a comment\n", "/* block */"])
def test_empty_input_gives_empty_output(source: str):
    result = translate(source)
    assert result.text == ""
    assert result.diagnostics == []


# ── Determinism and failure ──────────────────────────────────


def test_translation_is_deterministic():
    first = translate(SAMPLE)
    second = translate(SAMPLE)
    assert first.text == second.text
    assert first.diagnostics == second.diagnostics


def test_sample_translates_without_anomalies():
    result = translate(SAMPLE)
    assert result.ok(), [str(d) for d in result.diagnostics]
    assert "data class Item(val name: String, var price: Double) {" in result.text
    assert "        private set" in result.text
    assert "cart.add(Item(name = \"pen\", price = 2))" in result.text


def test_parse_failure_carries_position():
    with pytest.raises(ParseFailure) as info:
        translate("let ok = 1\nfunc broken( {\n}\n")
    assert info.value.line == 2
    assert info.value.col >= 1
    assert "line 2" in str(info.value)


# ── Diagnostics ──────────────────────────────────────────────


def test_diagnostics_follow_source_order():
    source = (
        "let a: Alpha = make()\n"
        "struct S {\n"
        "    var x: Int\n"
        "    init(x: Int) {\n"
        "        print(x)\n"
        "    }\n"
        "}\n"
        "let b: Beta = make()\n"
    )
    result = translate(source)
    assert [d.kind for d in result.diagnostics] == [
        ASSUMED_IDENTITY_MAPPING,
        NON_TRIVIAL_INITIALIZER_BODY,
        ASSUMED_IDENTITY_MAPPING,
    ]
    assert [d.line for d in result.diagnostics] == [1, 5, 8]


def test_diagnostic_rendering():
    result = translate("let p: Point = make()\n")
    (diag,) = result.diagnostics
    assert (diag.line, diag.col) == (1, 8)
    assert str(diag) == (
        "warning:1:8: [AssumedIdentityMapping] no mapping for type 'Point'; "
        "assuming it exists unchanged"
    )


def test_result_helpers():
    result = translate("enum E {\n    case a\n}\nlet p: Point = make()\n")
    assert not result.ok()
    assert len(result.of_kind(UNSUPPORTED_CONSTRUCT)) == 1
    assert len(result.of_kind(ASSUMED_IDENTITY_MAPPING)) == 1
    assert TranslationResult("x\n").ok()


def test_diagnostic_kinds_are_closed():
    assert len(DIAGNOSTIC_KINDS) == 5
    with pytest.raises(ValueError):
        Diagnostic("SomethingElse", "message", 1, 1)


# ── Pipeline ─────────────────────────────────────────────────


def test_pipeline_skip_directive():
    code, output = run_pipeline("// swiftkt: skip\nlet x = 1\n", Options())
    assert (code, output) == (0, "")


def test_pipeline_strict_keeps_output():
    opts = Options()
    opts.strict = True
    opts.quiet = True
    code, output = run_pipeline("let p: Point = make()\n", opts)
    assert code == 1
    assert output == "val p: Point = make()\n"


def test_pipeline_indent_option():
    opts = Options()
    opts.indent = 3
    code, output = run_pipeline("func f() {\n    print(1)\n}\n", opts)
    assert code == 0
    assert output == "fun f() {\n   println(1)\n}\n"


# ── Interpolation ────────────────────────────────────────────


def _render_segment(seg) -> str:
    """Translate one string segment with a fresh translator."""
    translator = ExpressionTranslator(TranslationContext())
    if isinstance(seg, SInterpSegment):
        return "${" + translator.expr(seg.expr) + "}"
    alone = SStringLit(seg.pos, seg.text, [seg], False)
    return translator.expr(alone)[1:-1]


@pytest.mark.parametrize(
    "swift,kotlin",
    [
        ('"a \\("b \\(y)") c"', '"a ${"b ${y}"} c"'),
        ('"cost: $\\(price)\\n"', '"cost: \\$${price}\\n"'),
        ('"tab\\t\\(x + 1)\\0end"', '"tab\\t${x + 1}\\u0000end"'),
    ],
)
def test_interpolation_is_the_concatenation_of_its_segments(swift: str, kotlin: str):
    literal = parse("let s = " + swift).body[0].bindings[0].value
    assert isinstance(literal, SStringLit)
    whole = ExpressionTranslator(TranslationContext()).expr(literal)
    assert whole == kotlin
    assert whole == '"' + "".join(_render_segment(seg) for seg in literal.segments) + '"'
