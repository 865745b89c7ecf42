"""Type mapping tests: Swift type spellings to Kotlin type text."""

import pytest

from swiftkt.diagnostics import ASSUMED_IDENTITY_MAPPING, UNSUPPORTED_TYPE
from swiftkt.parse import Parser
from swiftkt.tokens import tokenize
from swiftkt.types import collection_kind, element_type, map_type, unwrap_optional


def parse_type(source: str):
    return Parser(tokenize(source), source).parse_type()


def map_source(source: str, known: frozenset[str] = frozenset(), mutable: bool = False):
    return map_type(parse_type(source), known, mutable)


@pytest.mark.parametrize(
    "swift,kotlin",
    [
        ("Int", "Int"),
        ("Int8", "Byte"),
        ("Int16", "Short"),
        ("Int64", "Long"),
        ("UInt8", "UByte"),
        ("UInt64", "ULong"),
        ("Double", "Double"),
        ("Float", "Float"),
        ("Bool", "Boolean"),
        ("String", "String"),
        ("Character", "Char"),
        ("Void", "Unit"),
        ("AnyObject", "Any"),
        ("()", "Unit"),
        ("[Int]", "List<Int>"),
        ("Array<Int>", "List<Int>"),
        ("[String: Int]", "Map<String, Int>"),
        ("Dictionary<String, [Bool]>", "Map<String, List<Boolean>>"),
        ("Set<String>", "Set<String>"),
        ("Int?", "Int?"),
        ("Int!", "Int?"),
        ("Int??", "Int?"),
        ("Optional<String>", "String?"),
        ("[Int?]", "List<Int?>"),
        ("(Int, String) -> Bool", "(Int, String) -> Boolean"),
        ("() -> Void", "() -> Unit"),
        ("((Int) -> Int)?", "((Int) -> Int)?"),
    ],
)
def test_builtin_mapping(swift: str, kotlin: str):
    text, diags = map_source(swift)
    assert text == kotlin
    assert diags == []


def test_mutable_selects_outermost_collection():
    text, _ = map_source("[String: [Int]]", mutable=True)
    assert text == "MutableMap<String, List<Int>>"
    text, _ = map_source("[Int]?", mutable=True)
    assert text == "MutableList<Int>?"
    text, _ = map_source("Set<Int>", mutable=True)
    assert text == "MutableSet<Int>"


def test_unknown_name_passes_through_with_assumption():
    text, diags = map_source("Point")
    assert text == "Point"
    assert [d.kind for d in diags] == [ASSUMED_IDENTITY_MAPPING]
    assert "Point" in diags[0].message


def test_known_name_maps_silently():
    text, diags = map_source("[Point]", known=frozenset({"Point"}))
    assert text == "List<Point>"
    assert diags == []


def test_nested_unknown_reports_its_own_position():
    _, diags = map_source("[Point]")
    assert len(diags) == 1
    assert (diags[0].line, diags[0].col) == (1, 2)


def test_qualified_name_is_assumed():
    text, diags = map_source("Foo.Bar")
    assert text == "Foo.Bar"
    assert [d.kind for d in diags] == [ASSUMED_IDENTITY_MAPPING]


@pytest.mark.parametrize("swift", ["(Int, String)", "Queue<Int>", "any Shape", "some View"])
def test_unmappable_types_are_copied(swift: str):
    text, diags = map_source(swift)
    assert text == swift
    assert [d.kind for d in diags] == [UNSUPPORTED_TYPE]


def test_type_inspection_helpers():
    assert unwrap_optional(parse_type("Int??")).text == "Int"
    assert collection_kind(parse_type("[Int]?")) == "list"
    assert collection_kind(parse_type("[String: Int]")) == "map"
    assert collection_kind(parse_type("Set<Int>")) == "set"
    assert collection_kind(parse_type("String")) == "string"
    assert collection_kind(parse_type("Int")) is None
    assert element_type(parse_type("Array<Bool>")).text == "Bool"
    assert element_type(parse_type("[String: Int]")) is None
