"""Statement/Control-Flow Translator: blocks, conditionals, loops and switch."""

from __future__ import annotations

from .ast import (
    SAssign,
    SBinaryOp,
    SBreak,
    SCall,
    SCase,
    SContinue,
    SDecl,
    SDictType,
    SExpr,
    SExprStmt,
    SFallthrough,
    SForIn,
    SIdent,
    SIf,
    SMember,
    SOptionalBinding,
    SRepeatWhile,
    SReturn,
    SStmt,
    SSwitch,
    SThrow,
    SType,
    STypeName,
    SUnsupportedStmt,
    SVarDecl,
    SWhile,
)
from .diagnostics import UNSUPPORTED_CONSTRUCT
from .expressions import ExpressionTranslator, safe_name
from .types import element_type, named, unwrap_optional

BITWISE_ASSIGN_OPS: dict[str, str] = {
    "&=": "and",
    "|=": "or",
    "^=": "xor",
    "<<=": "shl",
    ">>=": "shr",
}

# (name, type, mutable) of a binding introduced for a block
Local = tuple[str, "SType | None", bool]


def block_bindings(stmts: list[SStmt]) -> dict[str, int]:
    """How many times each name is bound directly in a statement list.

    Counts variable bindings and the value an if let would hoist next to them.
    """
    counts: dict[str, int] = {}
    for stmt in stmts:
        names: list[str] = []
        if isinstance(stmt, SVarDecl):
            names = [b.name for b in stmt.bindings]
        elif isinstance(stmt, SIf) and len(stmt.conditions) == 1:
            c = stmt.conditions[0]
            if isinstance(c, SOptionalBinding) and c.value is not None:
                if not isinstance(c.value, SIdent):
                    names = [c.name]
        for name in names:
            counts[name] = counts.get(name, 0) + 1
    return counts



def _case_body(case: SCase) -> list[SStmt]:
    """Case statements without the trailing break, which when makes implicit."""
    body = list(case.body)
    if body and isinstance(body[-1], SBreak):
        body.pop()
    return body


def _breaks_switch(stmts: list[SStmt]) -> bool:
    """A break that would leave the enclosing switch rather than a loop."""
    for stmt in stmts:
        if isinstance(stmt, SBreak):
            return True
        if isinstance(stmt, SIf):
            if _breaks_switch(stmt.body) or _breaks_switch(stmt.else_body or []):
                return True
    return False


class StatementTranslator(ExpressionTranslator):
    """Statement rendering; declarations are handed to emit_decl."""

    def emit_block(
        self, stmts: list[SStmt], prelude: list[str] | None = None, locals_: list[Local] | None = None
    ) -> None:
        """Emit statements one level deeper, inside a fresh scope."""
        self.enter()
        self.ctx.push_scope()
        for name, typ, mutable in locals_ or []:
            self.ctx.declare(name, typ, mutable)
        for text in prelude or []:
            self.line(text)
        self.ctx.block_names.append(block_bindings(stmts))
        for stmt in stmts:
            self.emit_stmt(stmt)
        self.ctx.block_names.pop()
        self.ctx.pop_scope()
        self.exit()

    def unsupported_stmt(self, node: SStmt, construct: str) -> None:
        self.ctx.report(UNSUPPORTED_CONSTRUCT, construct + " is not supported", node)
        self.placeholder(UNSUPPORTED_CONSTRUCT, node)

    def emit_decl(self, decl: SDecl) -> None:
        self.unsupported_stmt(decl, type(decl).__name__)

    # ── dispatch ─────────────────────────────────────────────

    def emit_stmt(self, stmt: SStmt) -> None:
        if isinstance(stmt, SDecl):
            self.emit_decl(stmt)
        elif isinstance(stmt, SExprStmt):
            self.line(self.expr(stmt.expr))
        elif isinstance(stmt, SAssign):
            self._emit_Assign(stmt)
        elif isinstance(stmt, SReturn):
            self._emit_Return(stmt)
        elif isinstance(stmt, SBreak):
            self.line("break")
        elif isinstance(stmt, SContinue):
            self.line("continue")
        elif isinstance(stmt, SThrow):
            self.line("throw " + self.expr(stmt.expr))
        elif isinstance(stmt, SIf):
            self._emit_If(stmt)
        elif isinstance(stmt, SWhile):
            self._emit_While(stmt)
        elif isinstance(stmt, SRepeatWhile):
            self._emit_RepeatWhile(stmt)
        elif isinstance(stmt, SForIn):
            self._emit_ForIn(stmt)
        elif isinstance(stmt, SSwitch):
            self._emit_Switch(stmt)
        elif isinstance(stmt, SFallthrough):
            self.unsupported_stmt(stmt, "fallthrough")
        elif isinstance(stmt, SUnsupportedStmt):
            self.unsupported_stmt(stmt, stmt.construct)
        else:
            self.unsupported_stmt(stmt, type(stmt).__name__)

    def _emit_Assign(self, s: SAssign) -> None:
        target = self.expr(s.target)
        expected = self.infer_type(s.target)
        if s.op in BITWISE_ASSIGN_OPS:
            value = self._operand(s.value, expected)
            self.line(f"{target} = {target} {BITWISE_ASSIGN_OPS[s.op]} {value}")
        else:
            self.line(f"{target} {s.op} {self.expr(s.value, expected)}")

    def _emit_Return(self, s: SReturn) -> None:
        if s.value is None:
            self.line("return")
            return
        expected = self.ctx.return_types[-1] if self.ctx.return_types else None
        self.line("return " + self.expr(s.value, expected))

    # ── conditionals ─────────────────────────────────────────

    def _binding_form(self, b: SOptionalBinding, single: bool) -> str | None:
        """'smart' for a null check on a local, 'hoist' for a lifted value, else None."""
        value = b.value if b.value is not None else SIdent(b.pos, b.name, b.name)
        if isinstance(value, SIdent) and value.name not in ("self", "super"):
            entry = self.ctx.lookup(value.name)
            if entry is not None and not (entry.is_property and entry.mutable):
                return "smart"
        if single and b.value is not None and not self._hoist_clashes(b.name):
            return "hoist"
        return None

    def _hoist_clashes(self, name: str) -> bool:
        """A hoisted val would redeclare a name in the enclosing Kotlin scope."""
        if name in self.ctx.scopes[-1]:
            return True
        return bool(self.ctx.block_names) and self.ctx.block_names[-1].get(name, 0) > 1

    def _if_supported(self, s: SIf, head: bool) -> bool:
        single = len(s.conditions) == 1
        for c in s.conditions:
            if isinstance(c, SOptionalBinding):
                form = self._binding_form(c, single)
                if form is None or (form == "hoist" and not head):
                    return False
        if s.else_body is not None and len(s.else_body) == 1 and isinstance(s.else_body[0], SIf):
            return self._if_supported(s.else_body[0], False)
        return True

    def _conditions(
        self, conditions: list[SExpr | SOptionalBinding]
    ) -> tuple[list[str], str, list[str], list[Local]]:
        """Hoisted lines, condition text, body prelude and body locals."""
        hoisted: list[str] = []
        parts: list[str] = []
        prelude: list[str] = []
        locals_: list[Local] = []
        single = len(conditions) == 1
        for c in conditions:
            if not isinstance(c, SOptionalBinding):
                parts.append(self.expr(c) if single else self._operand(c))
                continue
            kw = "var" if c.mutable else "val"
            name = safe_name(c.name)
            form = self._binding_form(c, single)
            if form == "smart":
                source = c.value.name if isinstance(c.value, SIdent) else c.name
                entry = self.ctx.lookup(source)
                typ = c.typ or unwrap_optional(entry.typ if entry is not None else None)
                parts.append(safe_name(source) + " != null")
                if source != c.name or c.mutable:
                    prelude.append(f"{kw} {name} = {safe_name(source)}")
            else:
                assert c.value is not None
                typ = c.typ or unwrap_optional(self.infer_type(c.value))
                annotation = ""
                if c.typ is not None:
                    annotation = ": " + self.type_text(c.typ)
                    if not annotation.endswith("?"):
                        annotation += "?"
                hoisted.append(f"{kw} {name}{annotation} = {self.expr(c.value, c.typ)}")
                self.ctx.declare(c.name, typ, c.mutable)
                parts.append(name + " != null")
            locals_.append((c.name, typ, c.mutable))
        return hoisted, " && ".join(parts), prelude, locals_

    def _emit_If(self, s: SIf) -> None:
        if not self._if_supported(s, True):
            self.unsupported_stmt(s, "optional binding form")
            return
        hoisted, cond, prelude, locals_ = self._conditions(s.conditions)
        for text in hoisted:
            self.line(text)
        self.line(f"if ({cond}) {{")
        self.emit_block(s.body, prelude, locals_)
        self._emit_else(s.else_body)
        self.line("}")

    def _emit_else(self, else_body: list[SStmt] | None) -> None:
        while else_body is not None:
            if len(else_body) == 1 and isinstance(else_body[0], SIf):
                elif_ = else_body[0]
                _, cond, prelude, locals_ = self._conditions(elif_.conditions)
                self.line(f"}} else if ({cond}) {{")
                self.emit_block(elif_.body, prelude, locals_)
                else_body = elif_.else_body
            else:
                self.line("} else {")
                self.emit_block(else_body)
                else_body = None

    # ── loops ────────────────────────────────────────────────

    def _emit_While(self, s: SWhile) -> None:
        if any(isinstance(c, SOptionalBinding) for c in s.conditions):
            self.unsupported_stmt(s, "while let loop")
            return
        _, cond, _, _ = self._conditions(s.conditions)
        self.line(f"while ({cond}) {{")
        self.emit_block(s.body)
        self.line("}")

    def _emit_RepeatWhile(self, s: SRepeatWhile) -> None:
        self.line("do {")
        self.emit_block(s.body)
        self.line(f"}} while ({self.expr(s.cond)})")

    def _loop_source(self, s: SForIn) -> tuple[str, list[SType | None]]:
        """Iterable text and the element types bound to each loop name."""
        it = s.iterable
        if isinstance(it, SBinaryOp) and it.op in ("..<", "..."):
            return self.expr(it), [named("Int", it.pos)]
        if isinstance(it, SCall) and isinstance(it.func, SIdent) and it.func.name == "stride":
            rng = self.stride_range(it)
            if rng is not None:
                return rng, [named("Int", it.pos)]
        if (
            isinstance(it, SCall)
            and isinstance(it.func, SMember)
            and it.func.name == "enumerated"
            and not it.args
            and it.trailing is None
        ):
            obj = it.func.obj
            elem = element_type(self.infer_type(obj))
            return self._receiver(obj) + ".withIndex()", [named("Int", it.pos), elem]
        typ = unwrap_optional(self.infer_type(it))
        if isinstance(typ, SDictType):
            return self.expr(it), [typ.key, typ.value]
        if isinstance(typ, STypeName) and typ.name == "Dictionary" and len(typ.args) == 2:
            return self.expr(it), list(typ.args)
        return self.expr(it), [element_type(typ)]

    def _emit_ForIn(self, s: SForIn) -> None:
        if s.where is not None:
            self.unsupported_stmt(s, "for-in where clause")
            return
        source, types = self._loop_source(s)
        if len(s.names) == 1:
            binder = "ignored" if s.names[0] == "_" else safe_name(s.names[0])
        else:
            binder = "(" + ", ".join(safe_name(n) for n in s.names) + ")"
        locals_: list[Local] = []
        for i, name in enumerate(s.names):
            if name != "_":
                typ = types[i] if i < len(types) and len(types) == len(s.names) else None
                locals_.append((name, typ, False))
        self.line(f"for ({binder} in {source}) {{")
        self.emit_block(s.body, None, locals_)
        self.line("}")

    # ── switch ───────────────────────────────────────────────

    def _emit_Switch(self, s: SSwitch) -> None:
        if any(_breaks_switch(_case_body(case)) for case in s.cases):
            self.unsupported_stmt(s, "break out of a switch case")
            return
        self.line(f"when ({self.expr(s.subject)}) {{")
        self.enter()
        for case in s.cases:
            self._emit_Case(case)
        self.exit()
        self.line("}")

    def _emit_Case(self, case: SCase) -> None:
        label = "else" if case.is_default else ", ".join(case.patterns)
        body = _case_body(case)
        if not body:
            self.line(f"{label} -> {{}}")
            return
        self.line(f"{label} -> {{")
        self.emit_block(body)
        self.line("}")
