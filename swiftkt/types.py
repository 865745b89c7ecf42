"""Type Mapper: Swift type nodes to Kotlin type text.

Mapping never fails. Names with no rule pass through unchanged and are
reported, so a reader can find every place the output relies on an
assumption.
"""

from __future__ import annotations

from .ast import (
    Pos,
    SArrayType,
    SDictType,
    SExistentialType,
    SFuncType,
    SOptionalType,
    STupleType,
    SType,
    STypeName,
)
from .diagnostics import (
    ASSUMED_IDENTITY_MAPPING,
    UNSUPPORTED_TYPE,
    Diagnostic,
)

SCALAR_TYPES: dict[str, str] = {
    "Int": "Int",
    "Int8": "Byte",
    "Int16": "Short",
    "Int32": "Int",
    "Int64": "Long",
    "UInt": "UInt",
    "UInt8": "UByte",
    "UInt16": "UShort",
    "UInt32": "UInt",
    "UInt64": "ULong",
    "Double": "Double",
    "Float": "Float",
    "Float64": "Double",
    "Float32": "Float",
    "Bool": "Boolean",
    "String": "String",
    "Character": "Char",
    "Void": "Unit",
    "Any": "Any",
    "AnyObject": "Any",
}

# Generic collection name -> (Kotlin name, type argument count)
COLLECTION_TYPES: dict[str, tuple[str, int]] = {
    "Array": ("List", 1),
    "Dictionary": ("Map", 2),
    "Set": ("Set", 1),
}

MUTABLE_COLLECTIONS: dict[str, str] = {
    "List": "MutableList",
    "Map": "MutableMap",
    "Set": "MutableSet",
}


def map_type(
    typ: SType, known: frozenset[str] | set[str] = frozenset(), mutable: bool = False
) -> tuple[str, list[Diagnostic]]:
    """Map a type node to Kotlin text.

    known holds the type names declared in the translated source, which map
    to themselves without a diagnostic. mutable selects the mutable variant
    of an outermost collection type, for var bindings.
    """
    diags: list[Diagnostic] = []
    text = _map(typ, known, mutable, diags)
    return text, diags


def _report(diags: list[Diagnostic], kind: str, message: str, typ: SType) -> None:
    diags.append(Diagnostic(kind, message, typ.pos.line, typ.pos.col))


def _collection(name: str, args: list[str], mutable: bool) -> str:
    if mutable:
        name = MUTABLE_COLLECTIONS[name]
    return name + "<" + ", ".join(args) + ">"


def _map(typ: SType, known: frozenset[str] | set[str], mutable: bool, diags: list[Diagnostic]) -> str:
    if isinstance(typ, STypeName):
        if typ.name == "Optional" and len(typ.args) == 1:
            return _optional(typ.args[0], _map(typ.args[0], known, mutable, diags))
        if not typ.args:
            if typ.name in SCALAR_TYPES:
                return SCALAR_TYPES[typ.name]
            if typ.name in known:
                return typ.name
            if typ.name not in COLLECTION_TYPES:
                _report(
                    diags,
                    ASSUMED_IDENTITY_MAPPING,
                    "no mapping for type '" + typ.name + "'; assuming it exists unchanged",
                    typ,
                )
                return typ.name
        rule = COLLECTION_TYPES.get(typ.name)
        if rule is not None and rule[1] == len(typ.args):
            args = [_map(a, known, False, diags) for a in typ.args]
            return _collection(rule[0], args, mutable)
        _report(diags, UNSUPPORTED_TYPE, "no mapping for generic type '" + typ.text + "'", typ)
        return typ.text
    if isinstance(typ, SArrayType):
        return _collection("List", [_map(typ.element, known, False, diags)], mutable)
    if isinstance(typ, SDictType):
        key = _map(typ.key, known, False, diags)
        value = _map(typ.value, known, False, diags)
        return _collection("Map", [key, value], mutable)
    if isinstance(typ, SOptionalType):
        return _optional(typ.inner, _map(typ.inner, known, mutable, diags))
    if isinstance(typ, SFuncType):
        params = [_map(p, known, False, diags) for p in typ.params]
        ret = _map(typ.ret, known, False, diags)
        return "(" + ", ".join(params) + ") -> " + ret
    if isinstance(typ, STupleType) and not typ.elements:
        return "Unit"
    if isinstance(typ, STupleType):
        _report(diags, UNSUPPORTED_TYPE, "tuple type '" + typ.text + "' has no Kotlin mapping", typ)
        return typ.text
    if isinstance(typ, SExistentialType):
        _report(diags, UNSUPPORTED_TYPE, "'" + typ.keyword + "' type '" + typ.text + "' has no Kotlin mapping", typ)
        return typ.text
    _report(diags, UNSUPPORTED_TYPE, "no mapping for type '" + typ.text + "'", typ)
    return typ.text


def _optional(inner: SType, text: str) -> str:
    # Kotlin nullability does not nest
    if text.endswith("?"):
        return text
    if isinstance(inner, SFuncType):
        return "(" + text + ")?"
    return text + "?"


# ── Type inspection ──────────────────────────────────────────


def named(name: str, pos: Pos, args: list[SType] | None = None) -> STypeName:
    """A synthesized type node, for types inferred from literals."""
    return STypeName(pos, name, name, args if args is not None else [])


def unwrap_optional(typ: SType | None) -> SType | None:
    while isinstance(typ, SOptionalType):
        typ = typ.inner
    if isinstance(typ, STypeName) and typ.name == "Optional" and len(typ.args) == 1:
        return unwrap_optional(typ.args[0])
    return typ


def is_named(typ: SType | None, *names: str) -> bool:
    return isinstance(typ, STypeName) and not typ.args and typ.name in names


def collection_kind(typ: SType | None) -> str | None:
    """'list', 'map', 'set' or 'string' for receivers with member rewrites."""
    typ = unwrap_optional(typ)
    if isinstance(typ, SArrayType):
        return "list"
    if isinstance(typ, SDictType):
        return "map"
    if isinstance(typ, STypeName):
        if typ.name == "Array" and len(typ.args) == 1:
            return "list"
        if typ.name == "Dictionary" and len(typ.args) == 2:
            return "map"
        if typ.name == "Set" and len(typ.args) == 1:
            return "set"
        if typ.name == "String" and not typ.args:
            return "string"
    return None


def element_type(typ: SType | None) -> SType | None:
    """Element type of an array or set type, if known."""
    typ = unwrap_optional(typ)
    if isinstance(typ, SArrayType):
        return typ.element
    if isinstance(typ, STypeName) and typ.name in ("Array", "Set") and len(typ.args) == 1:
        return typ.args[0]
    return None
