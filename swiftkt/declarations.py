"""Declaration Translator: bindings, functions, classes/structs, typealias, import."""

from __future__ import annotations

from typing import Callable

from .ast import (
    SArrayType,
    SAssign,
    SBinding,
    SClassDecl,
    SDecl,
    SExprStmt,
    SFuncDecl,
    SIdent,
    SImport,
    SInitDecl,
    SMember,
    SParam,
    SReturn,
    SStmt,
    STypeAlias,
    SUnsupportedDecl,
    SVarDecl,
)
from .diagnostics import (
    NON_TRIVIAL_INITIALIZER_BODY,
    UNSUPPORTED_CONSTRUCT,
    UNSUPPORTED_MULTIPLE_INITIALIZERS,
)
from .expressions import safe_name
from .statements import StatementTranslator, block_bindings

ACCESS_MODIFIERS: dict[str, str] = {
    "private": "private",
    "fileprivate": "private",
    "internal": "internal",
    "public": "public",
    "open": "open",
    "override": "override",
}

# Setter visibility: private(set) var x
SETTER_MODIFIERS: dict[str, str] = {
    "private(set)": "private",
    "fileprivate(set)": "private",
    "internal(set)": "internal",
}

DROPPED_MODIFIERS = frozenset(
    {
        "final",
        "mutating",
        "nonmutating",
        "required",
        "convenience",
        "lazy",
        "dynamic",
        "static",
        "class",
    }
)

IMPLICIT_IMPORTS = frozenset({"Foundation", "Swift"})


def _is_static(decl: SDecl) -> bool:
    return "static" in decl.modifiers or "class" in decl.modifiers


def _is_spaced(stmt: SStmt) -> bool:
    return isinstance(stmt, (SFuncDecl, SClassDecl, SInitDecl))


class DeclarationTranslator(StatementTranslator):
    """Full translator: statements plus every declaration kind."""

    # ── modifiers ────────────────────────────────────────────

    def _modifiers(self, decl: SDecl) -> str | None:
        """Kotlin modifier prefix such as 'private ', or None if one has no mapping."""
        out: list[str] = []
        for m in decl.modifiers:
            if m in ACCESS_MODIFIERS:
                if ACCESS_MODIFIERS[m] not in out:
                    out.append(ACCESS_MODIFIERS[m])
            elif m in DROPPED_MODIFIERS or m in SETTER_MODIFIERS or m.startswith("@"):
                continue
            else:
                return None
        return "".join(m + " " for m in out)

    def _unsupported_modifier(self, decl: SDecl) -> str:
        for m in decl.modifiers:
            if not (
                m in ACCESS_MODIFIERS
                or m in DROPPED_MODIFIERS
                or m in SETTER_MODIFIERS
                or m.startswith("@")
            ):
                return "'" + m + "' modifier"
        return "modifier"

    # ── dispatch ─────────────────────────────────────────────

    def emit_decl(self, decl: SDecl) -> None:
        if isinstance(decl, SUnsupportedDecl):
            self.unsupported_stmt(decl, decl.construct)
            return
        if self._modifiers(decl) is None:
            self.unsupported_stmt(decl, self._unsupported_modifier(decl))
            return
        if isinstance(decl, SVarDecl):
            self._emit_VarDecl(decl)
        elif isinstance(decl, SFuncDecl):
            self._emit_FuncDecl(decl)
        elif isinstance(decl, SClassDecl):
            self._emit_ClassDecl(decl)
        elif isinstance(decl, STypeAlias):
            self._emit_TypeAlias(decl)
        elif isinstance(decl, SImport):
            self._emit_Import(decl)
        elif isinstance(decl, SInitDecl):
            self.unsupported_stmt(decl, "initializer outside a type")
        else:
            self.unsupported_stmt(decl, type(decl).__name__)

    def emit_body(
        self,
        stmts: list[SStmt],
        emit: Callable[[SStmt], None] | None = None,
        started: bool = False,
    ) -> None:
        """Emit a declaration sequence, blank lines around functions and classes.

        started is set when lines were already emitted at this level, so the
        first spaced declaration gets a blank line before it.
        """
        emit = emit or self.emit_stmt
        prev_spaced: bool | None = False if started else None
        self.ctx.block_names.append(block_bindings(stmts))
        for stmt in stmts:
            mark = len(self.lines)
            emit(stmt)
            if len(self.lines) == mark:
                continue
            spaced = _is_spaced(stmt)
            if prev_spaced is not None and (spaced or prev_spaced):
                self.lines.insert(mark, "")
            prev_spaced = spaced
        self.ctx.block_names.pop()

    # ── bindings ─────────────────────────────────────────────

    def _emit_VarDecl(self, d: SVarDecl, skip: frozenset[str] = frozenset(), is_property: bool = False) -> None:
        prefix = self._modifiers(d) or ""
        setter = next((SETTER_MODIFIERS[m] for m in d.modifiers if m in SETTER_MODIFIERS), None)
        if self.ctx.return_types and any(b.getter is not None for b in d.bindings):
            self.unsupported_stmt(d, "local computed variable")
            return
        for b in d.bindings:
            if b.name in skip:
                continue
            if b.getter is not None:
                self._emit_computed(b, prefix)
                continue
            self._emit_binding(b, prefix, d.mutable, is_property)
            if setter is not None and d.mutable:
                self.enter()
                self.line(setter + " set")
                self.exit()

    def _emit_binding(self, b: SBinding, prefix: str, mutable: bool, is_property: bool) -> None:
        kw = "var" if mutable else "val"
        text = prefix + kw + " " + safe_name(b.name)
        if b.typ is not None:
            text += ": " + self.type_text(b.typ, mutable)
        typ = b.typ
        if b.value is not None:
            text += " = " + self.expr(b.value, b.typ, mutable)
            if typ is None:
                typ = self.infer_type(b.value)
        self.line(text)
        self.ctx.declare(b.name, typ, mutable, is_property)

    def _emit_computed(self, b: SBinding, prefix: str) -> None:
        """Read-only computed property: val x: T with a get() accessor."""
        assert b.getter is not None and b.typ is not None
        self.ctx.declare(b.name, b.typ, False, True)
        self.line(prefix + "val " + safe_name(b.name) + ": " + self.type_text(b.typ))
        self.enter()
        self.ctx.return_types.append(b.typ)
        body = b.getter
        value = None
        if len(body) == 1 and isinstance(body[0], SReturn):
            value = body[0].value
        elif len(body) == 1 and isinstance(body[0], SExprStmt):
            value = body[0].expr
        if value is not None:
            self.line("get() = " + self.expr(value, b.typ))
        else:
            self.line("get() {")
            self.emit_block(body)
            self.line("}")
        self.ctx.return_types.pop()
        self.exit()

    # ── functions ────────────────────────────────────────────

    def _param(self, p: SParam) -> str:
        """Render one parameter and declare it in the current scope."""
        text = safe_name(p.name) + ": " + self.type_text(p.typ)
        if p.variadic:
            text = "vararg " + text
            self.ctx.declare(p.name, SArrayType(p.pos, "[" + p.typ.text + "]", p.typ), False)
        else:
            self.ctx.declare(p.name, p.typ, False)
        if p.default is not None:
            text += " = " + self.expr(p.default, p.typ)
        return text

    def _func_unsupported(self, d: SFuncDecl) -> str | None:
        if d.generic_params:
            return "generic function"
        if d.is_async:
            return "async function"
        if any(p.inout for p in d.params):
            return "inout parameter"
        return None

    def _emit_FuncDecl(self, d: SFuncDecl) -> None:
        construct = self._func_unsupported(d)
        if construct is not None:
            self.unsupported_stmt(d, construct)
            return
        prefix = self._modifiers(d) or ""
        self.ctx.push_scope()
        params = ", ".join(self._param(p) for p in d.params)
        header = prefix + "fun " + safe_name(d.name) + "(" + params + ")"
        if d.ret is not None:
            header += ": " + self.type_text(d.ret)
        self.line(header + " {")
        body = d.body
        if d.ret is not None and len(body) == 1 and isinstance(body[0], SExprStmt):
            # Implicit return of a single-expression body
            body = [SReturn(body[0].pos, body[0].text, body[0].expr)]
        self.ctx.return_types.append(d.ret)
        self.emit_block(body)
        self.ctx.return_types.pop()
        self.ctx.pop_scope()
        self.line("}")

    # ── classes and structs ──────────────────────────────────

    def _stored_properties(self, d: SClassDecl) -> dict[str, tuple[SVarDecl, SBinding]]:
        stored: dict[str, tuple[SVarDecl, SBinding]] = {}
        for m in d.members:
            if isinstance(m, SVarDecl) and not _is_static(m):
                for b in m.bindings:
                    if b.getter is None:
                        stored[b.name] = (m, b)
        return stored

    def _declare_members(self, d: SClassDecl) -> None:
        for m in d.members:
            if isinstance(m, SVarDecl) and not _is_static(m):
                for b in m.bindings:
                    typ = b.typ
                    if typ is None and b.value is not None:
                        typ = self.infer_type(b.value)
                    self.ctx.declare(b.name, typ, m.mutable and b.getter is None, True)

    def _constructor(
        self, init: SInitDecl, stored: dict[str, tuple[SVarDecl, SBinding]]
    ) -> tuple[list[str], dict[str, SParam]]:
        """Primary constructor parameters, and the folded ones keyed by name."""
        params: list[str] = []
        folded: dict[str, SParam] = {}
        for p in init.params:
            entry = stored.get(p.name)
            if entry is None or p.variadic or p.inout:
                params.append(self._param(p))
                continue
            decl, _ = entry
            kw = "var" if decl.mutable else "val"
            text = (self._modifiers(decl) or "") + kw + " " + safe_name(p.name)
            text += ": " + self.type_text(p.typ, decl.mutable)
            if p.default is not None:
                text += " = " + self.expr(p.default, p.typ, decl.mutable)
            params.append(text)
            folded[p.name] = p
        return params, folded

    def _is_trivial_assign(self, stmt: SStmt, folded: dict[str, SParam]) -> bool:
        """self.p = p for a folded parameter p."""
        return (
            isinstance(stmt, SAssign)
            and stmt.op == "="
            and isinstance(stmt.target, SMember)
            and not stmt.target.optional
            and isinstance(stmt.target.obj, SIdent)
            and stmt.target.obj.name == "self"
            and isinstance(stmt.value, SIdent)
            and stmt.value.name == stmt.target.name
            and stmt.target.name in folded
        )

    def _emit_init_block(self, init: SInitDecl, folded: dict[str, SParam]) -> None:
        kept = [s for s in init.body if not self._is_trivial_assign(s, folded)]
        if not kept:
            return
        self.line("init {")
        self.enter()
        for stmt in kept:
            self.ctx.report(
                NON_TRIVIAL_INITIALIZER_BODY,
                "initializer statement kept as a comment",
                stmt,
            )
            self.placeholder(NON_TRIVIAL_INITIALIZER_BODY, stmt)
        self.exit()
        self.line("}")

    def _emit_ClassDecl(self, d: SClassDecl) -> None:
        if d.generic_params:
            self.unsupported_stmt(d, "generic type")
            return
        prefix = self._modifiers(d) or ""
        inits = [m for m in d.members if isinstance(m, SInitDecl)]
        first = inits[0] if inits else None
        stored = self._stored_properties(d)
        self.ctx.push_scope()
        self._declare_members(d)
        header = d.name
        folded: dict[str, SParam] = {}
        if first is not None:
            params, folded = self._constructor(first, stored)
            access = [ACCESS_MODIFIERS[m] for m in first.modifiers if m in ACCESS_MODIFIERS and m != "override"]
            if access:
                header += " " + access[0] + " constructor"
            header += "(" + ", ".join(params) + ")"
        all_folded = first is not None and len(folded) == len(first.params)
        if d.kind == "struct" and folded and all_folded:
            header = "data class " + header
        else:
            header = "class " + header
        self.line(prefix + header + " {")
        self.enter()
        if d.inherits:
            self.ctx.report(
                UNSUPPORTED_CONSTRUCT, "inheritance clause is not supported", d.inherits[0]
            )
            clause = d.kind + " " + d.name + ": " + ", ".join(t.text for t in d.inherits)
            self.line("// " + UNSUPPORTED_CONSTRUCT + ": " + clause)
        statics: list[SDecl] = []
        members: list[SStmt] = []
        for m in d.members:
            if _is_static(m):
                statics.append(m)
            else:
                members.append(m)
        self.emit_body(
            members, lambda m: self._emit_member(m, first, folded), started=bool(d.inherits)
        )
        if statics:
            if len(self.lines) > 0 and not self.lines[-1].endswith("{"):
                self.line()
            self.line("companion object {")
            self.enter()
            self.ctx.push_scope()
            self.emit_body(statics)
            self.ctx.pop_scope()
            self.exit()
            self.line("}")
        self.exit()
        self.ctx.pop_scope()
        self.line("}")

    def _emit_member(self, m: SStmt, first: SInitDecl | None, folded: dict[str, SParam]) -> None:
        if isinstance(m, SInitDecl):
            if m is first:
                self._emit_init_block(m, folded)
            else:
                self.ctx.report(
                    UNSUPPORTED_MULTIPLE_INITIALIZERS,
                    "only the first initializer becomes the primary constructor",
                    m,
                )
                self.placeholder(UNSUPPORTED_MULTIPLE_INITIALIZERS, m)
        elif isinstance(m, SVarDecl) and self._modifiers(m) is not None:
            self._emit_VarDecl(m, frozenset(folded), True)
        elif isinstance(m, STypeAlias):
            self.unsupported_stmt(m, "nested typealias")
        else:
            self.emit_stmt(m)

    # ── typealias and import ─────────────────────────────────

    def _emit_TypeAlias(self, d: STypeAlias) -> None:
        prefix = self._modifiers(d) or ""
        self.line(prefix + "typealias " + d.name + " = " + self.type_text(d.typ))

    def _emit_Import(self, d: SImport) -> None:
        if d.module in IMPLICIT_IMPORTS:
            return
        self.unsupported_stmt(d, "import of '" + d.module + "'")
