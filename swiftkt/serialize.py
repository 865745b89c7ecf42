"""Serialization of tokens and parse trees to JSON, for --stop-at dumps."""

from __future__ import annotations

from dataclasses import fields

from .ast import SNode, SUnsupportedDecl, SUnsupportedExpr, SUnsupportedStmt
from .tokens import Token


def to_dict(obj: object) -> object:
    """Recursively convert a parse tree to a JSON-compatible structure."""
    if obj is None or isinstance(obj, (bool, int, float, str)):
        return obj
    if isinstance(obj, (list, tuple)):
        return [to_dict(x) for x in obj]
    if isinstance(obj, SNode):
        d: dict[str, object] = {
            "_type": type(obj).__name__,
            "line": obj.pos.line,
            "col": obj.pos.col,
        }
        for f in fields(obj):
            if f.name == "pos" or f.name == "text":
                continue
            d[f.name] = to_dict(getattr(obj, f.name))
        if isinstance(obj, (SUnsupportedDecl, SUnsupportedExpr, SUnsupportedStmt)):
            d["text"] = obj.text
        return d
    return "<unserializable>"


def token_to_dict(tok: Token) -> dict[str, object]:
    d: dict[str, object] = {
        "type": tok.type,
        "value": tok.value,
        "line": tok.line,
        "col": tok.col,
    }
    if tok.segments:
        d["segments"] = [
            seg if isinstance(seg, str) else [token_to_dict(t) for t in seg]
            for seg in tok.segments
        ]
    return d


def _json_escape(s: str) -> str:
    """Escape a string for JSON output."""
    result: list[str] = []
    for c in s:
        if c == "\\":
            result.append("\\\\")
        elif c == '"':
            result.append('\\"')
        elif c == "\n":
            result.append("\\n")
        elif c == "\r":
            result.append("\\r")
        elif c == "\t":
            result.append("\\t")
        elif ord(c) < 0x20:
            result.append("\\u%04x" % ord(c))
        else:
            result.append(c)
    return "".join(result)


def _to_json(obj: object, indent: int, level: int) -> str:
    if obj is None:
        return "null"
    if isinstance(obj, bool):
        return "true" if obj else "false"
    if isinstance(obj, (int, float)):
        return str(obj)
    if isinstance(obj, str):
        return '"' + _json_escape(obj) + '"'
    pad = " " * (indent * (level + 1))
    pad_close = " " * (indent * level)
    if isinstance(obj, list):
        if not obj:
            return "[]"
        parts = [pad + _to_json(x, indent, level + 1) for x in obj]
        return "[\n" + ",\n".join(parts) + "\n" + pad_close + "]"
    if isinstance(obj, dict):
        if not obj:
            return "{}"
        parts = [
            pad + '"' + _json_escape(str(k)) + '": ' + _to_json(v, indent, level + 1)
            for k, v in obj.items()
        ]
        return "{\n" + ",\n".join(parts) + "\n" + pad_close + "}"
    return '"<unserializable>"'


def to_json(obj: object) -> str:
    """Serialize to pretty-printed JSON."""
    return _to_json(obj, 2, 0)
