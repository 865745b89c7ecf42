"""Swift parse tree: one dataclass per grammar production.

Every node records its 1-indexed position and the exact source text it
covers; the translator copies that text into placeholders for constructs it
has no rule for.
"""

from __future__ import annotations

from dataclasses import dataclass, fields


# ============================================================
# POSITION
# ============================================================


@dataclass
class Pos:
    """Source position, 1-indexed."""

    line: int
    col: int


@dataclass
class SNode:
    """Base for all parse tree nodes."""

    pos: Pos
    text: str

    def children(self) -> list[SNode]:
        """Direct child nodes in source order."""
        out: list[SNode] = []
        for f in fields(self):
            if f.name == "pos" or f.name == "text":
                continue
            _collect(getattr(self, f.name), out)
        return out


def _collect(value: object, out: list[SNode]) -> None:
    if isinstance(value, SNode):
        out.append(value)
    elif isinstance(value, (list, tuple)):
        for item in value:
            _collect(item, out)


def walk(node: SNode) -> list[SNode]:
    """The node and all its descendants, depth-first in source order."""
    out: list[SNode] = [node]
    for child in node.children():
        out.extend(walk(child))
    return out


# ============================================================
# TYPES
# ============================================================


@dataclass
class SType(SNode):
    """Base for all type nodes."""


@dataclass
class STypeName(SType):
    """Int, Foo.Bar, Array<Int>, Dictionary<String, Int>."""

    name: str
    args: list[SType]


@dataclass
class SArrayType(SType):
    """[T]."""

    element: SType


@dataclass
class SDictType(SType):
    """[K: V]."""

    key: SType
    value: SType


@dataclass
class SOptionalType(SType):
    """T? or, with implicit set, T!."""

    inner: SType
    implicit: bool


@dataclass
class STupleType(SType):
    """(A, B) and the empty tuple ()."""

    elements: list[SType]


@dataclass
class SFuncType(SType):
    """(A, B) -> R."""

    params: list[SType]
    ret: SType
    throws: bool


@dataclass
class SExistentialType(SType):
    """some P / any P."""

    keyword: str
    inner: SType


# ============================================================
# EXPRESSIONS
# ============================================================


@dataclass
class SExpr(SNode):
    """Base for all expression nodes."""


@dataclass
class SIntLit(SExpr):
    """Integer literal, raw source spelling (0x1F, 1_000, 0o17)."""

    raw: str


@dataclass
class SFloatLit(SExpr):
    raw: str


@dataclass
class SBoolLit(SExpr):
    value: bool


@dataclass
class SNilLit(SExpr):
    pass


@dataclass
class SLiteralSegment(SNode):
    """Literal run of a string, escapes already resolved."""

    value: str


@dataclass
class SInterpSegment(SNode):
    """\\(expr) inside a string literal."""

    expr: SExpr


@dataclass
class SStringLit(SExpr):
    segments: list[SLiteralSegment | SInterpSegment]
    multiline: bool


@dataclass
class SIdent(SExpr):
    """Name reference, including self, super, Self and $0."""

    name: str


@dataclass
class SParen(SExpr):
    expr: SExpr


@dataclass
class SBinaryOp(SExpr):
    """Infix operator application, ranges and ?? included."""

    op: str
    left: SExpr
    right: SExpr


@dataclass
class SUnaryOp(SExpr):
    """Prefix -x, !x, ~x, +x."""

    op: str
    operand: SExpr


@dataclass
class SForceUnwrap(SExpr):
    """x!"""

    expr: SExpr


@dataclass
class SMember(SExpr):
    """obj.name, or obj?.name with optional set."""

    obj: SExpr
    name: str
    optional: bool


@dataclass
class SArg(SNode):
    """Call or subscript argument, with its label if any."""

    label: str | None
    value: SExpr


@dataclass
class SSubscript(SExpr):
    obj: SExpr
    args: list[SArg]
    optional: bool


@dataclass
class SClosure(SExpr):
    """{ a, b in expr } or { expr }: single-expression closures only."""

    params: list[str]
    body: SExpr


@dataclass
class SCall(SExpr):
    """f(args) with an optional trailing closure; has_parens is False for f { }."""

    func: SExpr
    args: list[SArg]
    has_parens: bool
    trailing: SClosure | None


@dataclass
class STernary(SExpr):
    cond: SExpr
    then_expr: SExpr
    else_expr: SExpr


@dataclass
class SCast(SExpr):
    """x as T, x as? T, x as! T."""

    expr: SExpr
    op: str
    typ: SType


@dataclass
class STypeCheck(SExpr):
    """x is T."""

    expr: SExpr
    typ: SType


@dataclass
class SArrayLit(SExpr):
    elements: list[SExpr]


@dataclass
class SDictEntry(SNode):
    key: SExpr
    value: SExpr


@dataclass
class SDictLit(SExpr):
    entries: list[SDictEntry]


@dataclass
class STypeExpr(SExpr):
    """A type in call position: [Int](), Set<String>()."""

    typ: SType


@dataclass
class SUnsupportedExpr(SExpr):
    """Expression the grammar recognizes but the translator has no rule for."""

    construct: str


# ============================================================
# STATEMENTS
# ============================================================


@dataclass
class SStmt(SNode):
    """Base for all statement nodes."""


@dataclass
class SExprStmt(SStmt):
    expr: SExpr


@dataclass
class SAssign(SStmt):
    """target = value, target += value, ..."""

    target: SExpr
    op: str
    value: SExpr


@dataclass
class SReturn(SStmt):
    value: SExpr | None


@dataclass
class SBreak(SStmt):
    pass


@dataclass
class SContinue(SStmt):
    pass


@dataclass
class SFallthrough(SStmt):
    pass


@dataclass
class SThrow(SStmt):
    expr: SExpr


@dataclass
class SOptionalBinding(SNode):
    """let x = e / var x = e / let x, as one clause of a condition list."""

    mutable: bool
    name: str
    typ: SType | None
    value: SExpr | None


@dataclass
class SIf(SStmt):
    """if conditions { body } else ...; else_body holds a lone SIf for else-if."""

    conditions: list[SExpr | SOptionalBinding]
    body: list[SStmt]
    else_body: list[SStmt] | None


@dataclass
class SWhile(SStmt):
    conditions: list[SExpr | SOptionalBinding]
    body: list[SStmt]


@dataclass
class SRepeatWhile(SStmt):
    body: list[SStmt]
    cond: SExpr


@dataclass
class SForIn(SStmt):
    """for x in seq / for (i, x) in seq, with an optional where clause."""

    names: list[str]
    iterable: SExpr
    where: SExpr | None
    body: list[SStmt]


@dataclass
class SCase(SNode):
    """One switch case; patterns keep their source spelling."""

    patterns: list[str]
    is_default: bool
    body: list[SStmt]


@dataclass
class SSwitch(SStmt):
    subject: SExpr
    cases: list[SCase]


@dataclass
class SUnsupportedStmt(SStmt):
    """guard, defer, do/catch and other statements without a translation rule."""

    construct: str


# ============================================================
# DECLARATIONS
# ============================================================


@dataclass
class SDecl(SStmt):
    """Base for declarations; modifiers include attributes spelled @name."""

    modifiers: list[str]


@dataclass
class SBinding(SNode):
    """One name of a let/var; getter is set for computed properties."""

    name: str
    typ: SType | None
    value: SExpr | None
    getter: list[SStmt] | None


@dataclass
class SVarDecl(SDecl):
    mutable: bool
    bindings: list[SBinding]


@dataclass
class SParam(SNode):
    """label name: Type = default; label is None when it equals the name."""

    label: str | None
    name: str
    typ: SType
    default: SExpr | None
    variadic: bool
    inout: bool


@dataclass
class SFuncDecl(SDecl):
    name: str
    generic_params: list[str]
    params: list[SParam]
    ret: SType | None
    throws: bool
    is_async: bool
    body: list[SStmt]


@dataclass
class SInitDecl(SDecl):
    """init, init? or init!; failable holds the suffix."""

    failable: str
    params: list[SParam]
    throws: bool
    body: list[SStmt]


@dataclass
class SClassDecl(SDecl):
    """class or struct."""

    kind: str
    name: str
    generic_params: list[str]
    inherits: list[SType]
    members: list[SDecl]


@dataclass
class STypeAlias(SDecl):
    name: str
    typ: SType


@dataclass
class SImport(SDecl):
    module: str


@dataclass
class SUnsupportedDecl(SDecl):
    """enum, protocol, extension and other declarations without a translation rule."""

    construct: str


@dataclass
class SModule(SNode):
    body: list[SStmt]
