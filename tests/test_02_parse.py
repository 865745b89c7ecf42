"""Pytest-based parser tests."""

import signal
from pathlib import Path

import pytest

from swiftkt.ast import (
    SBinaryOp,
    SCall,
    SClassDecl,
    SClosure,
    SDictType,
    SForceUnwrap,
    SFuncDecl,
    SIf,
    SMember,
    SOptionalBinding,
    STernary,
    STypeName,
    SUnsupportedDecl,
    SUnsupportedExpr,
    SUnsupportedStmt,
    SVarDecl,
)
from swiftkt.diagnostics import ParseFailure
from swiftkt.parse import parse

PARSE_TIMEOUT = 5


def _timeout_handler(signum, frame):
    raise TimeoutError("parse() timed out")


signal.signal(signal.SIGALRM, _timeout_handler)

PARSE_DIR = Path(__file__).parent / "02_parse"


def parse_test_file(path: Path) -> list[tuple[str, str, str]]:
    """Parse .tests file into (name, input, expected) tuples.

    Expected is one of: 'ok', 'error: <message>', 'unsupported: <construct>'
    """
    lines = path.read_text().split("\n")
    result: list[tuple[str, str, str]] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        if line.startswith("=== "):
            test_name = line[4:].strip()
            i += 1
            input_lines: list[str] = []
            while i < len(lines) and lines[i] != "---":
                input_lines.append(lines[i])
                i += 1
            i += 1
            expected_lines: list[str] = []
            while i < len(lines) and lines[i] != "---":
                expected_lines.append(lines[i])
                i += 1
            i += 1
            result.append((test_name, "\n".join(input_lines), "\n".join(expected_lines).strip()))
        else:
            i += 1
    return result


def discover_parse_tests() -> list[tuple[str, str, str]]:
    """Find all parse tests, returns (test_id, input, expected)."""
    results = []
    for test_file in sorted(PARSE_DIR.glob("*.tests")):
        for name, input_code, expected in parse_test_file(test_file):
            results.append((f"{test_file.stem}/{name}", input_code, expected))
    return results


def pytest_generate_tests(metafunc):
    """Parametrize tests over parse test files."""
    if "parse_input" in metafunc.fixturenames:
        params = [
            pytest.param(input_code, expected, id=test_id)
            for test_id, input_code, expected in discover_parse_tests()
        ]
        metafunc.parametrize("parse_input,parse_expected", params)


def test_parse(parse_input: str, parse_expected: str):
    """Verify parser produces expected result."""
    module = None
    parse_error: ParseFailure | None = None
    try:
        signal.alarm(PARSE_TIMEOUT)
        module = parse(parse_input)
    except ParseFailure as e:
        parse_error = e
    finally:
        signal.alarm(0)

    if parse_expected == "ok":
        if parse_error is not None:
            pytest.fail(f"Expected ok, got parse error: {parse_error}")
    elif parse_expected.startswith("error:"):
        expected_msg = parse_expected[6:].strip()
        if parse_error is None:
            pytest.fail(f"Expected error containing '{expected_msg}', but parsing succeeded")
        assert expected_msg in parse_error.msg
    elif parse_expected.startswith("unsupported:"):
        construct = parse_expected[12:].strip()
        if parse_error is not None:
            pytest.fail(f"Expected unsupported {construct}, got parse error: {parse_error}")
        assert module is not None and module.body
        first = module.body[0]
        assert isinstance(first, (SUnsupportedDecl, SUnsupportedStmt))
        assert first.construct == construct
        assert first.text == parse_input.strip()
    else:
        pytest.fail(f"Unknown expected format: {parse_expected}")


# ── Tree shape ───────────────────────────────────────────────


def test_precedence_product_binds_tighter():
    decl = parse("let x = 1 + 2 * 3").body[0]
    assert isinstance(decl, SVarDecl)
    value = decl.bindings[0].value
    assert isinstance(value, SBinaryOp) and value.op == "+"
    assert isinstance(value.right, SBinaryOp) and value.right.op == "*"


def test_else_if_nests_a_single_if():
    stmt = parse("if a {\n} else if b {\n} else {\n}").body[0]
    assert isinstance(stmt, SIf)
    assert stmt.else_body is not None and len(stmt.else_body) == 1
    inner = stmt.else_body[0]
    assert isinstance(inner, SIf)
    assert inner.else_body == []


def test_optional_binding_conditions():
    stmt = parse("if let a = f(), var b, a > 0 {\n}").body[0]
    assert isinstance(stmt, SIf)
    first, second, third = stmt.conditions
    assert isinstance(first, SOptionalBinding) and not first.mutable
    assert isinstance(first.value, SCall)
    assert isinstance(second, SOptionalBinding) and second.mutable and second.value is None
    assert isinstance(third, SBinaryOp)


def test_ternary_versus_optional_chain():
    ternary = parse("let x = a ? b : c").body[0].bindings[0].value
    chained = parse("let y = a?.b").body[0].bindings[0].value
    unwrapped = parse("let z = a!.b").body[0].bindings[0].value
    assert isinstance(ternary, STernary)
    assert isinstance(chained, SMember) and chained.optional
    assert isinstance(unwrapped, SMember) and isinstance(unwrapped.obj, SForceUnwrap)


def test_trailing_closure_attaches_to_call():
    value = parse("let d = nums.map { $0 * 2 }").body[0].bindings[0].value
    assert isinstance(value, SCall)
    assert not value.has_parens
    assert isinstance(value.trailing, SClosure)
    assert value.trailing.params == []


def test_no_trailing_closure_in_condition():
    stmt = parse("if ready {\n    go()\n}").body[0]
    assert isinstance(stmt, SIf)
    assert len(stmt.body) == 1


def test_nested_generic_closing_angles_split():
    decl = parse("let m: [String: Array<Array<Int>>] = [:]").body[0]
    typ = decl.bindings[0].typ
    assert isinstance(typ, SDictType)
    outer = typ.value
    assert isinstance(outer, STypeName) and outer.name == "Array"
    inner = outer.args[0]
    assert isinstance(inner, STypeName) and inner.args[0].text == "Int"


def test_node_text_covers_source():
    source = "func add(a: Int, b: Int) -> Int {\n    return a + b\n}"
    decl = parse(source).body[0]
    assert isinstance(decl, SFuncDecl)
    assert decl.text == source
    assert decl.pos.line == 1 and decl.pos.col == 1
    assert decl.params[1].label is None and decl.params[1].name == "b"


def test_class_members_and_modifiers():
    source = "public final class A: B {\n    private(set) var x = 1\n    static func f() {}\n}"
    decl = parse(source).body[0]
    assert isinstance(decl, SClassDecl)
    assert decl.modifiers == ["public", "final"]
    assert [t.text for t in decl.inherits] == ["B"]
    assert decl.members[0].modifiers == ["private(set)"]
    assert decl.members[1].modifiers == ["static"]


def test_unsupported_expression_keeps_text():
    value = parse("let k = \\Person.name").body[0].bindings[0].value
    assert isinstance(value, SUnsupportedExpr)
    assert value.construct == "key path expression"
    assert value.text == "\\Person.name"


def test_parse_failure_position():
    with pytest.raises(ParseFailure) as info:
        parse("let a = 1\nlet b = )")
    assert info.value.line == 2
    assert info.value.col == 9
    assert info.value.msg == "expected expression, got ')'"


def test_deep_nesting_is_a_parse_failure():
    depth = 3000
    with pytest.raises(ParseFailure) as info:
        parse("let x = " + "(" * depth + "1" + ")" * depth)
    assert info.value.msg == "input nested too deeply"
    assert info.value.line == 1
