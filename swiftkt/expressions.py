"""Expression Translator: renders Swift expression subtrees as Kotlin text."""

from __future__ import annotations

from .ast import (
    SArg,
    SArrayLit,
    SArrayType,
    SBinaryOp,
    SBoolLit,
    SCall,
    SCast,
    SClosure,
    SDictLit,
    SDictType,
    SExpr,
    SFloatLit,
    SForceUnwrap,
    SIdent,
    SIntLit,
    SLiteralSegment,
    SMember,
    SNilLit,
    SNode,
    SParen,
    SStringLit,
    SSubscript,
    STernary,
    SType,
    STypeCheck,
    STypeExpr,
    STypeName,
    SUnaryOp,
    SUnsupportedExpr,
)
from .diagnostics import UNSUPPORTED_CONSTRUCT
from .emitter import Emitter, escape_char, escape_string, inline_comment
from .types import (
    collection_kind,
    element_type,
    is_named,
    map_type,
    named,
    unwrap_optional,
)

KOTLIN_KEYWORDS = frozenset(
    {
        "as",
        "break",
        "class",
        "continue",
        "do",
        "else",
        "false",
        "for",
        "fun",
        "if",
        "in",
        "interface",
        "is",
        "null",
        "object",
        "package",
        "return",
        "super",
        "this",
        "throw",
        "true",
        "try",
        "typealias",
        "typeof",
        "val",
        "var",
        "when",
        "while",
    }
)

BINARY_OPS: dict[str, str] = {
    "??": "?:",
    "&": "and",
    "|": "or",
    "^": "xor",
    "<<": "shl",
    ">>": "shr",
    "..<": "until",
    "&+": "+",
    "&-": "-",
    "&*": "*",
}

COMPARE_OPS = frozenset({"==", "!=", "<", "<=", ">", ">=", "===", "!=="})

CAST_OPS: dict[str, str] = {"as": "as", "as?": "as?", "as!": "as"}

# Subtrees that get parentheses when nested inside another operator
OPERATOR_NODES = (SBinaryOp, STernary, SCast, STypeCheck)

# Receiver group -> Swift property -> Kotlin member
PROPERTY_REWRITES: dict[tuple[str, str], str] = {
    ("collection", "count"): "size",
    ("collection", "isEmpty"): "isEmpty()",
    ("collection", "first"): "firstOrNull()",
    ("collection", "last"): "lastOrNull()",
    ("string", "count"): "length",
    ("string", "isEmpty"): "isEmpty()",
    ("string", "first"): "firstOrNull()",
    ("string", "last"): "lastOrNull()",
}

METHOD_REWRITES: dict[tuple[str, str], str] = {
    ("list", "append"): "add",
    ("set", "insert"): "add",
    ("collection", "removeAll"): "clear",
    ("collection", "enumerated"): "withIndex",
    ("string", "uppercased"): "uppercase",
    ("string", "lowercased"): "lowercase",
    ("string", "hasPrefix"): "startsWith",
    ("string", "hasSuffix"): "endsWith",
    ("string", "enumerated"): "withIndex",
}

CONVERSIONS: dict[str, str] = {
    "Int": "toInt",
    "Int64": "toLong",
    "Double": "toDouble",
    "Float": "toFloat",
}

COLLECTION_FACTORIES: dict[str, str] = {
    "list": "listOf",
    "map": "mapOf",
    "set": "setOf",
}


def safe_name(name: str) -> str:
    """Backtick a name that is a hard keyword in Kotlin."""
    if name in KOTLIN_KEYWORDS:
        return "`" + name + "`"
    return name


def _mutable_factory(factory: str) -> str:
    return "mutable" + factory[0].upper() + factory[1:]


def _rewrite(table: dict[tuple[str, str], str], kind: str, name: str) -> str | None:
    if kind in ("list", "map", "set"):
        found = table.get(("collection", name))
        if found is not None:
            return found
    return table.get((kind, name))


class ExpressionTranslator(Emitter):
    """Expression rendering shared by the statement and declaration stages."""

    # ── helpers ──────────────────────────────────────────────

    def type_text(self, typ: SType, mutable: bool = False) -> str:
        text, diags = map_type(typ, self.ctx.known_types, mutable)
        self.ctx.extend(diags)
        return text

    def _quiet_type_text(self, typ: SType) -> str:
        text, _ = map_type(typ, self.ctx.known_types)
        return text

    def unsupported_expr(self, node: SNode, construct: str) -> str:
        self.ctx.report(UNSUPPORTED_CONSTRUCT, construct + " is not supported", node)
        return "TODO() /* " + inline_comment(node.text) + " */"

    def _operand(self, e: SExpr, expected: SType | None = None) -> str:
        text = self.expr(e, expected)
        if isinstance(e, OPERATOR_NODES):
            return "(" + text + ")"
        return text

    def _receiver(self, e: SExpr) -> str:
        text = self.expr(e)
        if isinstance(e, OPERATOR_NODES) or isinstance(e, SUnaryOp):
            return "(" + text + ")"
        return text

    def receiver_kind(self, e: SExpr) -> str | None:
        return collection_kind(self.infer_type(e))

    # ── type inference ───────────────────────────────────────

    def infer_type(self, e: SExpr) -> SType | None:
        """Best-effort static type from declarations in scope and literal shapes."""
        if isinstance(e, SIntLit):
            return named("Int", e.pos)
        if isinstance(e, SFloatLit):
            return named("Double", e.pos)
        if isinstance(e, SStringLit):
            return named("String", e.pos)
        if isinstance(e, SBoolLit):
            return named("Bool", e.pos)
        if isinstance(e, SArrayLit):
            if not e.elements:
                return None
            elem = self.infer_type(e.elements[0])
            if elem is None:
                return None
            return SArrayType(e.pos, "[" + elem.text + "]", elem)
        if isinstance(e, SDictLit):
            if not e.entries:
                return None
            key = self.infer_type(e.entries[0].key)
            value = self.infer_type(e.entries[0].value)
            if key is None or value is None:
                return None
            return SDictType(e.pos, "[" + key.text + ": " + value.text + "]", key, value)
        if isinstance(e, SIdent):
            if e.name == "self":
                return None
            entry = self.ctx.lookup(e.name)
            return entry.typ if entry is not None else None
        if isinstance(e, SMember):
            if isinstance(e.obj, SIdent) and e.obj.name == "self":
                entry = self.ctx.lookup(e.name)
                return entry.typ if entry is not None else None
            if e.name == "count" and self.receiver_kind(e.obj) is not None:
                return named("Int", e.pos)
            return None
        if isinstance(e, SParen):
            return self.infer_type(e.expr)
        if isinstance(e, SForceUnwrap):
            return unwrap_optional(self.infer_type(e.expr))
        if isinstance(e, SCall):
            if isinstance(e.func, STypeExpr):
                return e.func.typ
            if isinstance(e.func, SIdent):
                if e.func.name in self.ctx.known_types:
                    return named(e.func.name, e.pos)
                if e.func.name == "String":
                    return named("String", e.pos)
            return None
        if isinstance(e, SBinaryOp):
            if e.op in COMPARE_OPS or e.op in ("&&", "||"):
                return named("Bool", e.pos)
            if e.op == "??":
                return self.infer_type(e.right)
            if e.op in ("+", "-", "*", "/", "%"):
                return self.infer_type(e.left) or self.infer_type(e.right)
            return None
        if isinstance(e, STernary):
            return self.infer_type(e.then_expr)
        if isinstance(e, SCast) and e.op != "as?":
            return e.typ
        if isinstance(e, SUnaryOp):
            if e.op == "!":
                return named("Bool", e.pos)
            return self.infer_type(e.operand)
        if isinstance(e, SSubscript) and not e.optional:
            return element_type(self.infer_type(e.obj))
        return None

    # ── expressions ──────────────────────────────────────────

    def expr(self, e: SExpr, expected: SType | None = None, mutable: bool = False) -> str:
        """Render an expression; expected is the type the context demands, if known."""
        if isinstance(e, SIntLit):
            return self._emit_IntLit(e, expected)
        if isinstance(e, SFloatLit):
            return self._emit_FloatLit(e, expected)
        if isinstance(e, SStringLit):
            return self._emit_StringLit(e, expected)
        if isinstance(e, SBoolLit):
            return "true" if e.value else "false"
        if isinstance(e, SNilLit):
            return "null"
        if isinstance(e, SIdent):
            return self._emit_Ident(e)
        if isinstance(e, SParen):
            return "(" + self.expr(e.expr, expected) + ")"
        if isinstance(e, SBinaryOp):
            return self._emit_BinaryOp(e, expected)
        if isinstance(e, SUnaryOp):
            return self._emit_UnaryOp(e, expected)
        if isinstance(e, SForceUnwrap):
            return self._receiver(e.expr) + "!!"
        if isinstance(e, SMember):
            return self._emit_Member(e)
        if isinstance(e, SSubscript):
            return self._emit_Subscript(e)
        if isinstance(e, SCall):
            return self._emit_Call(e, mutable)
        if isinstance(e, STernary):
            return self._emit_Ternary(e, expected)
        if isinstance(e, SCast):
            return self._operand(e.expr) + " " + CAST_OPS[e.op] + " " + self.type_text(e.typ)
        if isinstance(e, STypeCheck):
            return self._operand(e.expr) + " is " + self.type_text(e.typ)
        if isinstance(e, SArrayLit):
            return self._emit_ArrayLit(e, expected, mutable)
        if isinstance(e, SDictLit):
            return self._emit_DictLit(e, expected, mutable)
        if isinstance(e, SClosure):
            return self._emit_Closure(e)
        if isinstance(e, STypeExpr):
            return self.unsupported_expr(e, "type expression")
        if isinstance(e, SUnsupportedExpr):
            return self.unsupported_expr(e, e.construct)
        return self.unsupported_expr(e, type(e).__name__)

    def _emit_IntLit(self, e: SIntLit, expected: SType | None) -> str:
        raw = e.raw
        if raw.startswith("0o"):
            raw = str(int(raw[2:].replace("_", ""), 8))
        target = unwrap_optional(expected)
        if is_named(target, "Double", "Float64", "Float", "Float32"):
            single = is_named(target, "Float", "Float32")
            if raw.startswith("0x") or raw.startswith("0b"):
                return raw + (".toFloat()" if single else ".toDouble()")
            return raw + (".0f" if single else ".0")
        if is_named(target, "UInt", "UInt8", "UInt16", "UInt32", "UInt64"):
            return raw + "u"
        return raw

    def _emit_FloatLit(self, e: SFloatLit, expected: SType | None) -> str:
        if is_named(unwrap_optional(expected), "Float", "Float32"):
            return e.raw + "f"
        return e.raw

    def _emit_StringLit(self, e: SStringLit, expected: SType | None) -> str:
        if is_named(unwrap_optional(expected), "Character") and len(e.segments) == 1:
            seg = e.segments[0]
            if (
                isinstance(seg, SLiteralSegment)
                and len(seg.value) == 1
                and ord(seg.value) < 0x10000
            ):
                return "'" + escape_char(seg.value) + "'"
        parts: list[str] = []
        for seg in e.segments:
            if isinstance(seg, SLiteralSegment):
                parts.append(escape_string(seg.value))
            else:
                parts.append("${" + self.expr(seg.expr) + "}")
        return '"' + "".join(parts) + '"'

    def _emit_Ident(self, e: SIdent) -> str:
        if e.name == "self":
            return "this"
        if e.name == "super":
            return "super"
        if e.name == "Self":
            return self.unsupported_expr(e, "Self expression")
        if e.name.startswith("$"):
            if e.name == "$0" and self.ctx.closures and self.ctx.closures[-1]:
                return "it"
            return self.unsupported_expr(e, "shorthand argument " + e.name)
        return safe_name(e.name)

    def _emit_BinaryOp(self, e: SBinaryOp, expected: SType | None) -> str:
        op = e.op
        if op == "~=":
            return self.unsupported_expr(e, "pattern match operator")
        left_expected: SType | None = None
        right_expected: SType | None = None
        if op == "??":
            right_expected = expected
        elif op not in ("&&", "||", "..<", "..."):
            base = None if op in COMPARE_OPS else expected
            left_expected = base or self.infer_type(e.right)
            right_expected = base or self.infer_type(e.left)
        left = self._operand(e.left, left_expected)
        right = self._operand(e.right, right_expected)
        if op == "...":
            return left + ".." + right
        return left + " " + BINARY_OPS.get(op, op) + " " + right

    def _emit_UnaryOp(self, e: SUnaryOp, expected: SType | None) -> str:
        if e.op == "~":
            return self._receiver(e.operand) + ".inv()"
        operand = self._operand(e.operand, expected if e.op in ("-", "+") else None)
        return e.op + operand

    def _emit_Member(self, e: SMember) -> str:
        obj = self._receiver(e.obj)
        dot = "?." if e.optional else "."
        kind = self.receiver_kind(e.obj)
        if kind is not None:
            rewrite = _rewrite(PROPERTY_REWRITES, kind, e.name)
            if rewrite is not None:
                return obj + dot + rewrite
        return obj + dot + safe_name(e.name)

    def _emit_Subscript(self, e: SSubscript) -> str:
        obj = self._receiver(e.obj)
        args = ", ".join(self.expr(a.value) for a in e.args)
        if e.optional:
            return obj + "?.get(" + args + ")"
        return obj + "[" + args + "]"

    def _emit_Ternary(self, e: STernary, expected: SType | None) -> str:
        cond = self.expr(e.cond)
        then_text = self._operand(e.then_expr, expected)
        else_text = self._operand(e.else_expr, expected)
        return "if (" + cond + ") " + then_text + " else " + else_text

    def _emit_ArrayLit(self, e: SArrayLit, expected: SType | None, mutable: bool) -> str:
        target = unwrap_optional(expected)
        elem = element_type(target)
        factory = "listOf"
        if isinstance(target, STypeName) and target.name == "Set":
            factory = "setOf"
        if mutable:
            factory = _mutable_factory(factory)
        if not e.elements and elem is not None:
            factory += "<" + self._quiet_type_text(elem) + ">"
        items = ", ".join(self.expr(x, elem) for x in e.elements)
        return factory + "(" + items + ")"

    def _emit_DictLit(self, e: SDictLit, expected: SType | None, mutable: bool) -> str:
        target = unwrap_optional(expected)
        key_type: SType | None = None
        value_type: SType | None = None
        if isinstance(target, SDictType):
            key_type = target.key
            value_type = target.value
        elif isinstance(target, STypeName) and target.name == "Dictionary" and len(target.args) == 2:
            key_type = target.args[0]
            value_type = target.args[1]
        factory = _mutable_factory("mapOf") if mutable else "mapOf"
        if not e.entries and key_type is not None and value_type is not None:
            factory += (
                "<" + self._quiet_type_text(key_type) + ", " + self._quiet_type_text(value_type) + ">"
            )
        items = ", ".join(
            self._operand(entry.key, key_type) + " to " + self._operand(entry.value, value_type)
            for entry in e.entries
        )
        return factory + "(" + items + ")"

    def _emit_Closure(self, e: SClosure) -> str:
        self.ctx.closures.append(not e.params)
        self.ctx.push_scope()
        for name in e.params:
            self.ctx.declare(name, None, False)
        body = self.expr(e.body)
        self.ctx.pop_scope()
        self.ctx.closures.pop()
        if e.params:
            return "{ " + ", ".join(safe_name(p) for p in e.params) + " -> " + body + " }"
        return "{ " + body + " }"

    # ── calls ────────────────────────────────────────────────

    def _emit_Call(self, e: SCall, mutable: bool) -> str:
        func = e.func
        if isinstance(func, STypeExpr):
            return self._emit_type_call(e, func, mutable)
        if isinstance(func, SIdent):
            builtin = self._builtin_call(e, func.name)
            if builtin is not None:
                return builtin
        if isinstance(func, SMember):
            method = self._method_call(e, func)
            if method is not None:
                return method
            callee = self._receiver(func.obj) + ("?." if func.optional else ".") + safe_name(func.name)
        else:
            callee = self._receiver(func)
        return self._finish_call(callee, e)

    def _finish_call(self, callee: str, e: SCall) -> str:
        text = callee
        if e.has_parens or e.trailing is None:
            text += "(" + self._args(e.args) + ")"
        if e.trailing is not None:
            text += " " + self.expr(e.trailing)
        return text

    def _args(self, args: list[SArg]) -> str:
        parts: list[str] = []
        for a in args:
            value = self.expr(a.value)
            if a.label is not None and a.label != "_":
                parts.append(safe_name(a.label) + " = " + value)
            else:
                parts.append(value)
        return ", ".join(parts)

    def _builtin_call(self, e: SCall, name: str) -> str | None:
        if e.trailing is not None or self.ctx.lookup(name) is not None:
            return None
        args = e.args
        if name == "print":
            return self._emit_print(e)
        if name == "stride":
            rng = self.stride_range(e)
            return "(" + rng + ")" if rng is not None else None
        if name in ("min", "max") and len(args) >= 2 and all(a.label is None for a in args):
            return name + "Of(" + self._args(args) + ")"
        if len(args) != 1:
            return None
        arg = args[0]
        if name == "String" and arg.label in (None, "describing"):
            return self._receiver(arg.value) + ".toString()"
        if name in CONVERSIONS and arg.label is None:
            method = CONVERSIONS[name]
            if self.receiver_kind(arg.value) == "string":
                method += "OrNull"
            return self._receiver(arg.value) + "." + method + "()"
        return None

    def _emit_print(self, e: SCall) -> str | None:
        fn = "println"
        positional: list[SArg] = []
        for a in e.args:
            if a.label is None:
                positional.append(a)
            elif (
                a.label == "terminator"
                and isinstance(a.value, SStringLit)
                and not a.value.segments
            ):
                fn = "print"
            else:
                return None
        if len(positional) <= 1:
            return fn + "(" + self._args(positional) + ")"
        parts = ", ".join(self.expr(a.value) for a in positional)
        return fn + '(listOf(' + parts + ').joinToString(" "))'

    def stride_range(self, e: SCall) -> str | None:
        """stride(from:to:by:) with a positive literal step as a Kotlin progression."""
        labels = [a.label for a in e.args]
        if labels != ["from", "to", "by"] and labels != ["from", "through", "by"]:
            return None
        start = e.args[0].value
        end = e.args[1].value
        step = e.args[2].value
        if not isinstance(step, SIntLit):
            return None
        if labels[1] == "to":
            rng = self._operand(start) + " until " + self._operand(end)
        else:
            rng = self._operand(start) + ".." + self._operand(end)
        return rng + " step " + self.expr(step)

    def _method_call(self, e: SCall, func: SMember) -> str | None:
        kind = self.receiver_kind(func.obj)
        if kind is None:
            return None
        obj = self._receiver(func.obj)
        dot = "?." if func.optional else "."
        labels = [a.label for a in e.args]
        if e.trailing is None and kind == "list":
            if func.name == "insert" and labels == [None, "at"]:
                return (
                    obj + dot + "add(" + self.expr(e.args[1].value) + ", "
                    + self.expr(e.args[0].value) + ")"
                )
            if func.name == "remove" and labels == ["at"]:
                return obj + dot + "removeAt(" + self.expr(e.args[0].value) + ")"
        rewrite = _rewrite(METHOD_REWRITES, kind, func.name)
        if rewrite is None:
            return None
        return self._finish_call(obj + dot + rewrite, e)

    def _emit_type_call(self, e: SCall, func: STypeExpr, mutable: bool) -> str:
        """[Int](), Set<String>(), [Int](repeating: 0, count: n)."""
        kind = collection_kind(func.typ)
        if kind not in COLLECTION_FACTORIES or e.trailing is not None:
            return self._finish_call(self.type_text(func.typ), e)
        mapped = self.type_text(func.typ)
        labels = [a.label for a in e.args]
        if kind == "list" and labels == ["repeating", "count"]:
            ctor = "MutableList" if mutable else "List"
            elem = element_type(func.typ)
            value = self.expr(e.args[0].value, elem)
            return ctor + "(" + self.expr(e.args[1].value) + ") { " + value + " }"
        if e.args:
            return self.unsupported_expr(e, "collection initializer with arguments")
        factory = COLLECTION_FACTORIES[kind]
        if mutable:
            factory = _mutable_factory(factory)
        return factory + mapped[mapped.index("<") :] + "()"
