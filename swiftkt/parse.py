"""Swift parser: recursive descent, one method per grammar production.

Statements end at a newline or ';'. Constructs the grammar recognizes but
the translator has no rule for (guard, defer, enum, ...) are captured whole
as Unsupported nodes carrying their source text.
"""

from __future__ import annotations

from .ast import (
    Pos,
    SArg,
    SArrayLit,
    SArrayType,
    SAssign,
    SBinaryOp,
    SBinding,
    SBoolLit,
    SBreak,
    SCall,
    SCase,
    SCast,
    SClassDecl,
    SClosure,
    SContinue,
    SDecl,
    SDictEntry,
    SDictLit,
    SDictType,
    SExistentialType,
    SExpr,
    SExprStmt,
    SFallthrough,
    SFloatLit,
    SForceUnwrap,
    SForIn,
    SFuncDecl,
    SFuncType,
    SIdent,
    SIf,
    SImport,
    SInitDecl,
    SInterpSegment,
    SIntLit,
    SLiteralSegment,
    SMember,
    SModule,
    SNilLit,
    SOptionalBinding,
    SOptionalType,
    SParam,
    SParen,
    SRepeatWhile,
    SReturn,
    SStmt,
    SStringLit,
    SSubscript,
    SSwitch,
    STernary,
    SThrow,
    STupleType,
    SType,
    STypeAlias,
    STypeCheck,
    STypeExpr,
    STypeName,
    SUnaryOp,
    SUnsupportedDecl,
    SUnsupportedExpr,
    SUnsupportedStmt,
    SVarDecl,
    SWhile,
)
from .diagnostics import ParseFailure
from .tokens import (
    KEYWORDS,
    OPERATOR_CHARS,
    TK_EOF,
    TK_FLOAT,
    TK_IDENT,
    TK_INT,
    TK_OP,
    TK_STRING,
    Token,
    tokenize,
)

ASSIGN_OPS: set[str] = {
    "=",
    "+=",
    "-=",
    "*=",
    "/=",
    "%=",
    "&=",
    "|=",
    "^=",
    "<<=",
    ">>=",
}

COMPARE_OPS: set[str] = {"==", "!=", "<", "<=", ">", ">=", "===", "!==", "~="}

ADDITIVE_OPS: set[str] = {"+", "-", "|", "^", "&+", "&-"}

MULTIPLICATIVE_OPS: set[str] = {"*", "/", "%", "&", "&*"}

SHIFT_OPS: set[str] = {"<<", ">>"}

DECL_KEYWORDS: set[str] = {
    "let",
    "var",
    "func",
    "init",
    "class",
    "struct",
    "enum",
    "protocol",
    "extension",
    "typealias",
    "import",
    "deinit",
    "subscript",
    "operator",
    "static",
}

MODIFIERS: set[str] = {
    "private",
    "fileprivate",
    "internal",
    "public",
    "open",
    "final",
    "override",
    "mutating",
    "nonmutating",
    "lazy",
    "weak",
    "unowned",
    "required",
    "convenience",
    "dynamic",
    "optional",
    "indirect",
    "nonisolated",
    "prefix",
    "postfix",
    "infix",
}

# Contextual keywords that open a declaration when followed by a name
CONTEXTUAL_DECLS: set[str] = {"actor", "precedencegroup"}

UNSUPPORTED_DECLS: dict[str, str] = {
    "enum": "enum declaration",
    "protocol": "protocol declaration",
    "extension": "extension declaration",
    "deinit": "deinitializer",
    "subscript": "subscript declaration",
    "operator": "operator declaration",
    "precedencegroup": "precedence group declaration",
    "actor": "actor declaration",
}

ACCESSOR_NAMES: set[str] = {"get", "set", "willSet", "didSet"}


class _Unsupported(Exception):
    """Raised inside a statement that should be captured as an Unsupported node."""

    def __init__(self, construct: str):
        self.construct: str = construct
        super().__init__(construct)


class Parser:
    """Recursive descent parser for the Swift subset."""

    def __init__(self, tokens: list[Token], source: str):
        self.tokens: list[Token] = tokens
        self.source: str = source
        self.pos: int = 0
        self.no_trailing_closure: bool = False

    # ── Helpers ──────────────────────────────────────────────

    def current(self) -> Token:
        return self.tokens[self.pos]

    def peek(self, offset: int) -> Token:
        idx = self.pos + offset
        if idx >= len(self.tokens):
            return self.tokens[len(self.tokens) - 1]
        return self.tokens[idx]

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        if tok.type != TK_EOF:
            self.pos += 1
        return tok

    def at(self, value: str) -> bool:
        tok = self.current()
        return tok.value == value and tok.type != TK_STRING

    def at_type(self, type_: str) -> bool:
        return self.current().type == type_

    def at_ident(self) -> bool:
        return self.current().type == TK_IDENT

    def at_name(self) -> bool:
        """Identifier or keyword, as accepted for labels and member names."""
        tok = self.current()
        return tok.type == TK_IDENT or tok.type in KEYWORDS

    def expect(self, value: str) -> Token:
        tok = self.current()
        if tok.value != value or tok.type == TK_STRING:
            got = tok.value if tok.type != TK_EOF else "end of input"
            raise self.error("expected '" + value + "', got '" + got + "'")
        return self.advance()

    def expect_ident(self) -> Token:
        tok = self.current()
        if tok.type != TK_IDENT:
            got = tok.value if tok.type != TK_EOF else "end of input"
            raise self.error("expected identifier, got '" + got + "'")
        return self.advance()

    def expect_name(self) -> Token:
        if not self.at_name():
            raise self.error("expected name, got '" + self.current().value + "'")
        return self.advance()

    def error(self, msg: str) -> ParseFailure:
        tok = self.current()
        return ParseFailure(msg, tok.line, tok.col)

    def _tok_pos(self, tok: Token) -> Pos:
        return Pos(tok.line, tok.col)

    def _text(self, start: Token) -> str:
        """Source text from start through the last consumed token."""
        if self.pos == 0:
            return ""
        end = self.tokens[self.pos - 1].end
        if end < start.offset:
            return ""
        return self.source[start.offset : end]

    def _at_op(self, ops: set[str]) -> bool:
        tok = self.current()
        return tok.type == TK_OP and tok.value in ops and tok.is_binary()

    def _at_postfix(self, value: str) -> bool:
        tok = self.current()
        return tok.type == TK_OP and tok.value == value and not tok.space_before

    def _at_stmt_end(self) -> bool:
        tok = self.current()
        if tok.type == TK_EOF or tok.newline_before:
            return True
        if tok.type == "case" or tok.type == "default":
            return True
        return tok.type == TK_OP and (tok.value == ";" or tok.value == "}")

    def end_stmt(self) -> None:
        """Statements on one line must be separated by ';'."""
        if self.at(";"):
            self.advance()
            return
        if not self._at_stmt_end():
            raise self.error(
                "consecutive statements on a line must be separated by ';'"
            )

    # ── Top Level ────────────────────────────────────────────

    def parse_module(self) -> SModule:
        body: list[SStmt] = []
        while not self.at_type(TK_EOF):
            if self.at(";"):
                self.advance()
                continue
            body.append(self.parse_stmt())
            self.end_stmt()
        return SModule(Pos(1, 1), self.source, body)

    def parse_block(self) -> list[SStmt]:
        """Block = '{' Stmt* '}'"""
        self.expect("{")
        saved = self.no_trailing_closure
        self.no_trailing_closure = False
        stmts: list[SStmt] = []
        while not self.at("}"):
            if self.at_type(TK_EOF):
                raise self.error("expected '}', got end of input")
            if self.at(";"):
                self.advance()
                continue
            stmts.append(self.parse_stmt())
            self.end_stmt()
        self.expect("}")
        self.no_trailing_closure = saved
        return stmts

    # ── Unsupported capture ──────────────────────────────────

    def skip_unsupported(self, construct: str) -> SStmt:
        """Consume one whole statement and keep it as an Unsupported node."""
        start = self.current()
        pos = self._tok_pos(start)
        if self._at_decl_start():
            modifiers = self.parse_modifiers()
            self._skip_to_stmt_end()
            return SUnsupportedDecl(pos, self._text(start), modifiers, construct)
        self._skip_to_stmt_end()
        return SUnsupportedStmt(pos, self._text(start), construct)

    def _skip_to_stmt_end(self) -> None:
        depth = 0
        first = True
        while True:
            tok = self.current()
            if tok.type == TK_EOF:
                if depth > 0:
                    raise self.error("expected '}', got end of input")
                return
            if depth == 0 and not first:
                if tok.type == TK_OP and (tok.value == ";" or tok.value == "}"):
                    return
                if tok.newline_before and not self._continues_line(
                    self.tokens[self.pos - 1], tok
                ):
                    return
            if tok.type == TK_OP and tok.value in ("(", "[", "{"):
                depth += 1
            elif tok.type == TK_OP and tok.value in (")", "]", "}"):
                depth -= 1
            self.advance()
            first = False

    def _continues_line(self, prev: Token, tok: Token) -> bool:
        """Whether a token starting a new line still belongs to the statement."""
        if tok.type in ("else", "catch", "where"):
            return True
        if tok.type == TK_OP and tok.value == ".":
            return True
        if tok.type == TK_OP and tok.value[0] in OPERATOR_CHARS and tok.is_binary():
            return True
        if prev.type in ("else", "in", "where"):
            return True
        if prev.type == TK_OP and prev.value not in (")", "]", "}"):
            return not (prev.value in ("!", "?") and prev.is_postfix())
        return False

    def _skip_balanced(self) -> None:
        """Consume a bracketed group starting at the current opener."""
        depth = 0
        while True:
            tok = self.current()
            if tok.type == TK_EOF:
                raise self.error("unbalanced brackets")
            self.advance()
            if tok.type != TK_OP:
                continue
            if tok.value in ("(", "[", "{"):
                depth += 1
            elif tok.value in (")", "]", "}"):
                depth -= 1
                if depth == 0:
                    return

    # ── Statements ───────────────────────────────────────────

    def parse_stmt(self) -> SStmt:
        mark = self.pos
        saved = self.no_trailing_closure
        try:
            return self._parse_stmt()
        except _Unsupported as e:
            self.pos = mark
            self.no_trailing_closure = saved
            return self.skip_unsupported(e.construct)

    def _parse_stmt(self) -> SStmt:
        if self._at_decl_start():
            return self.parse_decl()
        tok = self.current()
        t = tok.type
        if t == "if":
            if self.peek(1).type == "case":
                raise _Unsupported("if case statement")
            return self.parse_if()
        if t == "guard":
            raise _Unsupported("guard statement")
        if t == "defer":
            raise _Unsupported("defer statement")
        if t == "do":
            raise _Unsupported("do statement")
        if t == "while":
            if self.peek(1).type == "case":
                raise _Unsupported("while case statement")
            return self.parse_while()
        if t == "repeat":
            return self.parse_repeat()
        if t == "for":
            if self.peek(1).type in ("case", "try", "await"):
                raise _Unsupported("for " + self.peek(1).value + " statement")
            return self.parse_for()
        if t == "switch":
            return self.parse_switch()
        if t == "return":
            return self.parse_return()
        if t == "break" or t == "continue":
            self.advance()
            if not self._at_stmt_end():
                raise _Unsupported("labeled " + t)
            if t == "break":
                return SBreak(self._tok_pos(tok), self._text(tok))
            return SContinue(self._tok_pos(tok), self._text(tok))
        if t == "fallthrough":
            self.advance()
            return SFallthrough(self._tok_pos(tok), self._text(tok))
        if t == "throw":
            self.advance()
            expr = self.parse_expr()
            return SThrow(self._tok_pos(tok), self._text(tok), expr)
        if (
            t == TK_IDENT
            and self.peek(1).value == ":"
            and self.peek(2).type in ("for", "while", "repeat", "if", "switch", "do")
        ):
            raise _Unsupported("labeled statement")
        return self.parse_expr_stmt()

    def parse_if(self) -> SIf:
        """If = 'if' ConditionList Block ( 'else' ( If | Block ) )?"""
        start = self.expect("if")
        conditions = self.parse_condition_list()
        body = self.parse_block()
        else_body: list[SStmt] | None = None
        if self.at("else"):
            self.advance()
            if self.at("if"):
                if self.peek(1).type == "case":
                    raise _Unsupported("if case statement")
                else_body = [self.parse_if()]
            else:
                else_body = self.parse_block()
        return SIf(self._tok_pos(start), self._text(start), conditions, body, else_body)

    def parse_condition_list(self) -> list[SExpr | SOptionalBinding]:
        """ConditionList = Condition ( ',' Condition )*"""
        saved = self.no_trailing_closure
        self.no_trailing_closure = True
        conditions: list[SExpr | SOptionalBinding] = [self.parse_condition()]
        while self.at(","):
            self.advance()
            conditions.append(self.parse_condition())
        self.no_trailing_closure = saved
        return conditions

    def parse_condition(self) -> SExpr | SOptionalBinding:
        """Condition = ( 'let' | 'var' ) IDENT ( ':' Type )? ( '=' Expr )? | Expr"""
        tok = self.current()
        if tok.type == "case":
            raise _Unsupported("pattern matching condition")
        if tok.type == "let" or tok.type == "var":
            self.advance()
            if not self.at_ident():
                raise _Unsupported("optional binding pattern")
            name = self.advance().value
            typ: SType | None = None
            if self.at(":"):
                self.advance()
                typ = self.parse_type()
            value: SExpr | None = None
            if self.at("="):
                self.advance()
                value = self.parse_expr()
            return SOptionalBinding(
                self._tok_pos(tok), self._text(tok), tok.type == "var", name, typ, value
            )
        return self.parse_expr()

    def parse_while(self) -> SWhile:
        start = self.expect("while")
        conditions = self.parse_condition_list()
        body = self.parse_block()
        return SWhile(self._tok_pos(start), self._text(start), conditions, body)

    def parse_repeat(self) -> SRepeatWhile:
        """Repeat = 'repeat' Block 'while' Expr"""
        start = self.expect("repeat")
        body = self.parse_block()
        self.expect("while")
        saved = self.no_trailing_closure
        self.no_trailing_closure = True
        cond = self.parse_expr()
        self.no_trailing_closure = saved
        return SRepeatWhile(self._tok_pos(start), self._text(start), body, cond)

    def parse_for(self) -> SForIn:
        """For = 'for' ( IDENT | '(' IDENT ( ',' IDENT )* ')' ) 'in' Expr ( 'where' Expr )? Block"""
        start = self.expect("for")
        names: list[str] = []
        if self.at("("):
            self.advance()
            while True:
                if not self.at_ident():
                    raise _Unsupported("for-in pattern")
                names.append(self.advance().value)
                if not self.at(","):
                    break
                self.advance()
            self.expect(")")
        else:
            if not self.at_ident():
                raise _Unsupported("for-in pattern")
            names.append(self.advance().value)
        if self.at(":"):
            raise _Unsupported("typed for-in pattern")
        self.expect("in")
        saved = self.no_trailing_closure
        self.no_trailing_closure = True
        iterable = self.parse_expr()
        where: SExpr | None = None
        if self.at("where"):
            self.advance()
            where = self.parse_expr()
        self.no_trailing_closure = saved
        body = self.parse_block()
        return SForIn(self._tok_pos(start), self._text(start), names, iterable, where, body)

    def parse_switch(self) -> SSwitch:
        """Switch = 'switch' Expr '{' Case* '}'"""
        start = self.expect("switch")
        saved = self.no_trailing_closure
        self.no_trailing_closure = True
        subject = self.parse_expr()
        self.no_trailing_closure = saved
        self.expect("{")
        cases: list[SCase] = []
        while not self.at("}"):
            if self.at_type(TK_EOF):
                raise self.error("expected '}', got end of input")
            cases.append(self.parse_case())
        self.expect("}")
        return SSwitch(self._tok_pos(start), self._text(start), subject, cases)

    def parse_case(self) -> SCase:
        """Case = ( 'case' Pattern ( ',' Pattern )* | 'default' ) ':' Stmt*"""
        start = self.current()
        if self.at("@"):
            self.advance()
            self.expect_ident()
        patterns: list[str] = []
        is_default = False
        if self.at("default"):
            self.advance()
            self.expect(":")
            is_default = True
        else:
            self.expect("case")
            patterns = self.parse_case_patterns()
        body: list[SStmt] = []
        while not (
            self.at("case") or self.at("default") or self.at("}") or self.at("@")
        ):
            if self.at_type(TK_EOF):
                raise self.error("expected '}', got end of input")
            if self.at(";"):
                self.advance()
                continue
            body.append(self.parse_stmt())
            self.end_stmt()
        return SCase(self._tok_pos(start), self._text(start), patterns, is_default, body)

    def parse_case_patterns(self) -> list[str]:
        """Patterns are kept as source text, split at top-level commas."""
        patterns: list[str] = []
        piece = self.current()
        depth = 0
        while True:
            tok = self.current()
            if tok.type == TK_EOF:
                raise self.error("expected ':' after case pattern")
            if depth == 0 and tok.type == TK_OP and tok.value in (",", ":"):
                if tok is piece:
                    raise self.error("expected pattern")
                patterns.append(self._text(piece))
                self.advance()
                if tok.value == ":":
                    return patterns
                piece = self.current()
                continue
            if tok.type == TK_OP and tok.value in ("(", "[", "{"):
                depth += 1
            elif tok.type == TK_OP and tok.value in (")", "]", "}"):
                depth -= 1
            self.advance()

    def parse_return(self) -> SReturn:
        start = self.expect("return")
        value: SExpr | None = None
        if not self._at_stmt_end():
            value = self.parse_expr()
        return SReturn(self._tok_pos(start), self._text(start), value)

    def parse_expr_stmt(self) -> SStmt:
        """ExprStmt = Expr ( AssignOp Expr )?"""
        start = self.current()
        expr = self.parse_expr()
        tok = self.current()
        if tok.type == TK_OP and tok.value in ASSIGN_OPS:
            self.advance()
            value = self.parse_expr()
            return SAssign(self._tok_pos(start), self._text(start), expr, tok.value, value)
        return SExprStmt(self._tok_pos(start), self._text(start), expr)

    # ── Declarations ─────────────────────────────────────────

    def _modifier_follows(self, offset: int) -> bool:
        tok = self.peek(offset)
        if tok.type in DECL_KEYWORDS or tok.type == "class":
            return True
        if tok.type == TK_OP:
            # private(set) var ...
            if tok.value == "(":
                return self.peek(offset + 1).value == "set"
            return tok.value == "@"
        if tok.type == TK_IDENT:
            return tok.value in MODIFIERS or tok.value in CONTEXTUAL_DECLS
        return False

    def _at_decl_start(self) -> bool:
        tok = self.current()
        if tok.type in DECL_KEYWORDS:
            return True
        if tok.type == TK_OP and tok.value == "@":
            return True
        if tok.type == TK_IDENT:
            if tok.value in MODIFIERS and self._modifier_follows(1):
                return True
            if tok.value in CONTEXTUAL_DECLS and self.peek(1).type == TK_IDENT:
                return True
        return False

    def parse_modifiers(self) -> list[str]:
        """Modifiers = ( '@' NAME Args? | MODIFIER ( '(' NAME ')' )? )*"""
        modifiers: list[str] = []
        while True:
            tok = self.current()
            if tok.type == TK_OP and tok.value == "@":
                self.advance()
                self.expect_name()
                if self.at("(") and not self.current().space_before:
                    self._skip_balanced()
                modifiers.append(self._text(tok))
            elif tok.type == "static":
                self.advance()
                modifiers.append("static")
            elif tok.type == "class" and self._modifier_follows(1):
                self.advance()
                modifiers.append("class")
            elif (
                tok.type == TK_IDENT
                and tok.value in MODIFIERS
                and self._modifier_follows(1)
            ):
                self.advance()
                if self.at("("):
                    self._skip_balanced()
                modifiers.append(self._text(tok))
            else:
                return modifiers

    def parse_decl(self) -> SDecl:
        start = self.current()
        modifiers = self.parse_modifiers()
        tok = self.current()
        t = tok.type
        if t == "let" or t == "var":
            return self.parse_var_decl(start, modifiers)
        if t == "func":
            return self.parse_func_decl(start, modifiers)
        if t == "init":
            return self.parse_init_decl(start, modifiers)
        if t == "class" or t == "struct":
            return self.parse_class_decl(start, modifiers)
        if t == "typealias":
            return self.parse_typealias(start, modifiers)
        if t == "import":
            return self.parse_import(start, modifiers)
        if tok.value in UNSUPPORTED_DECLS and tok.type != TK_STRING:
            raise _Unsupported(UNSUPPORTED_DECLS[tok.value])
        raise self.error("expected declaration, got '" + tok.value + "'")

    def parse_var_decl(self, start: Token, modifiers: list[str]) -> SVarDecl:
        """VarDecl = ( 'let' | 'var' ) Binding ( ',' Binding )*"""
        kw = self.advance()
        if self.at("("):
            raise _Unsupported("tuple pattern binding")
        bindings = [self.parse_binding()]
        while self.at(","):
            self.advance()
            bindings.append(self.parse_binding())
        return SVarDecl(
            self._tok_pos(start), self._text(start), modifiers, kw.type == "var", bindings
        )

    def parse_binding(self) -> SBinding:
        """Binding = IDENT ( ':' Type )? ( '=' Expr )? AccessorBlock?"""
        start = self.current()
        if not self.at_ident():
            raise _Unsupported("binding pattern")
        name = self.advance().value
        typ: SType | None = None
        if self.at(":"):
            self.advance()
            typ = self.parse_type()
        value: SExpr | None = None
        if self.at("="):
            self.advance()
            value = self.parse_expr()
        getter: list[SStmt] | None = None
        if self.at("{"):
            construct = self._unsupported_accessor()
            if construct is not None:
                raise _Unsupported(construct)
            if value is None and typ is not None:
                getter = self.parse_getter()
        return SBinding(self._tok_pos(start), self._text(start), name, typ, value, getter)

    def _unsupported_accessor(self) -> str | None:
        """Classify an accessor block that has no translation rule."""
        first = self.peek(1)
        if first.type != TK_IDENT:
            return None
        if first.value == "willSet" or first.value == "didSet":
            return "property observer"
        if first.value == "set":
            return "computed property setter"
        if first.value == "get" and self.peek(2).value == "{":
            i = self.pos + 2
            depth = 0
            while i < len(self.tokens) - 1:
                tok = self.tokens[i]
                if tok.type == TK_OP and tok.value == "{":
                    depth += 1
                elif tok.type == TK_OP and tok.value == "}":
                    depth -= 1
                    if depth == 0:
                        after = self.tokens[i + 1]
                        if after.type == TK_IDENT and after.value == "set":
                            return "computed property setter"
                        return None
                i += 1
        return None

    def parse_getter(self) -> list[SStmt]:
        """Getter = '{' 'get' Block '}' | Block"""
        first = self.peek(1)
        if first.type == TK_IDENT and first.value == "get" and self.peek(2).value == "{":
            self.advance()
            self.advance()
            body = self.parse_block()
            self.expect("}")
            return body
        return self.parse_block()

    def parse_func_decl(self, start: Token, modifiers: list[str]) -> SDecl:
        """FuncDecl = 'func' IDENT Generics? '(' Params ')' Effects ( '->' Type )? Block"""
        self.expect("func")
        if not self.at_ident():
            raise _Unsupported("operator function")
        name = self.advance().value
        generic_params: list[str] = []
        if self.at("<"):
            generic_params = self.parse_generic_params()
        self.expect("(")
        params = self.parse_params()
        self.expect(")")
        is_async = False
        throws = False
        while True:
            if self.at_ident() and self.current().value == "async":
                self.advance()
                is_async = True
            elif self.at("throws") or self.at("rethrows"):
                self.advance()
                throws = True
            else:
                break
        ret: SType | None = None
        if self.at("->"):
            self.advance()
            ret = self.parse_type()
        if self.at("where"):
            generic_params.append(self._skip_where_clause())
        body = self.parse_block()
        return SFuncDecl(
            self._tok_pos(start),
            self._text(start),
            modifiers,
            name,
            generic_params,
            params,
            ret,
            throws,
            is_async,
            body,
        )

    def parse_generic_params(self) -> list[str]:
        """Generics = '<' IDENT ( ':' Type )? ( ',' IDENT ( ':' Type )? )* '>'"""
        self.expect("<")
        names: list[str] = []
        depth = 1
        want_name = True
        while depth > 0:
            tok = self.current()
            if tok.type == TK_EOF:
                raise self.error("expected '>', got end of input")
            if tok.type == TK_OP and tok.value == "<":
                depth += 1
            elif tok.type == TK_OP and tok.value == ">":
                depth -= 1
            elif tok.type == TK_OP and tok.value == ">>":
                depth -= 2
            elif tok.type == TK_IDENT and want_name and depth == 1:
                names.append(tok.value)
            want_name = tok.type == TK_OP and tok.value == "," and depth == 1
            self.advance()
        return names

    def _skip_where_clause(self) -> str:
        start = self.expect("where")
        while not self.at("{"):
            if self.at_type(TK_EOF):
                raise self.error("expected '{', got end of input")
            self.advance()
        return self._text(start)

    def parse_params(self) -> list[SParam]:
        """Params = ( Param ( ',' Param )* )?"""
        saved = self.no_trailing_closure
        self.no_trailing_closure = False
        params: list[SParam] = []
        while not self.at(")"):
            params.append(self.parse_param())
            if not self.at(","):
                break
            self.advance()
        self.no_trailing_closure = saved
        return params

    def parse_param(self) -> SParam:
        """Param = NAME NAME? ':' 'inout'? Type '...'? ( '=' Expr )?"""
        start = self.current()
        first = self.expect_name()
        label: str | None = None
        name = first.value
        if not self.at(":"):
            second = self.expect_name()
            label = first.value
            name = second.value
        self.expect(":")
        inout = False
        if self.at("inout"):
            self.advance()
            inout = True
        typ = self.parse_type()
        variadic = False
        if self.at("..."):
            self.advance()
            variadic = True
        default: SExpr | None = None
        if self.at("="):
            self.advance()
            default = self.parse_expr()
        return SParam(
            self._tok_pos(start), self._text(start), label, name, typ, default, variadic, inout
        )

    def parse_init_decl(self, start: Token, modifiers: list[str]) -> SInitDecl:
        """InitDecl = 'init' ( '?' | '!' )? '(' Params ')' Effects Block"""
        self.expect("init")
        failable = ""
        if self._at_postfix("?") or self._at_postfix("!"):
            failable = self.advance().value
        if self.at("<"):
            raise _Unsupported("generic initializer")
        self.expect("(")
        params = self.parse_params()
        self.expect(")")
        throws = False
        while True:
            if self.at_ident() and self.current().value == "async":
                self.advance()
            elif self.at("throws") or self.at("rethrows"):
                self.advance()
                throws = True
            else:
                break
        body = self.parse_block()
        return SInitDecl(
            self._tok_pos(start), self._text(start), modifiers, failable, params, throws, body
        )

    def parse_class_decl(self, start: Token, modifiers: list[str]) -> SClassDecl:
        """ClassDecl = ( 'class' | 'struct' ) IDENT Generics? ( ':' Type ( ',' Type )* )? '{' Decl* '}'"""
        kind = self.advance().value
        name = self.expect_ident().value
        generic_params: list[str] = []
        if self.at("<"):
            generic_params = self.parse_generic_params()
        inherits: list[SType] = []
        if self.at(":"):
            self.advance()
            inherits.append(self.parse_type())
            while self.at(","):
                self.advance()
                inherits.append(self.parse_type())
        if self.at("where"):
            generic_params.append(self._skip_where_clause())
        self.expect("{")
        members: list[SDecl] = []
        while not self.at("}"):
            if self.at_type(TK_EOF):
                raise self.error("expected '}', got end of input")
            if self.at(";"):
                self.advance()
                continue
            if not self._at_decl_start():
                raise self.error("expected declaration in " + kind + " body")
            member = self.parse_stmt()
            if isinstance(member, SDecl):
                members.append(member)
            self.end_stmt()
        self.expect("}")
        return SClassDecl(
            self._tok_pos(start),
            self._text(start),
            modifiers,
            kind,
            name,
            generic_params,
            inherits,
            members,
        )

    def parse_typealias(self, start: Token, modifiers: list[str]) -> STypeAlias:
        self.expect("typealias")
        name = self.expect_ident().value
        if self.at("<"):
            raise _Unsupported("generic typealias")
        self.expect("=")
        typ = self.parse_type()
        return STypeAlias(self._tok_pos(start), self._text(start), modifiers, name, typ)

    def parse_import(self, start: Token, modifiers: list[str]) -> SImport:
        """Import = 'import' ImportKind? NAME ( '.' NAME )*"""
        self.expect("import")
        if self.current().type in ("class", "struct", "enum", "protocol", "func", "var", "let", "typealias"):
            self.advance()
        module = self.expect_name().value
        while self.at("."):
            self.advance()
            module += "." + self.expect_name().value
        return SImport(self._tok_pos(start), self._text(start), modifiers, module)

    # ── Types ────────────────────────────────────────────────

    def parse_type(self) -> SType:
        """Type = ( 'some' | 'any' ) Type | Attribute* BaseType ( '?' | '!' )*"""
        start = self.current()
        if (
            start.type == TK_IDENT
            and start.value in ("some", "any")
            and self.peek(1).type in (TK_IDENT, "Self")
        ):
            self.advance()
            inner = self.parse_type()
            return SExistentialType(self._tok_pos(start), self._text(start), start.value, inner)
        while self.at("@"):
            self.advance()
            self.expect_name()
            start = self.current()
        typ = self.parse_base_type()
        while self._at_postfix("?") or self._at_postfix("!"):
            implicit = self.advance().value == "!"
            typ = SOptionalType(self._tok_pos(start), self._text(start), typ, implicit)
        return typ

    def parse_base_type(self) -> SType:
        start = self.current()
        pos = self._tok_pos(start)
        if self.at("["):
            self.advance()
            first = self.parse_type()
            if self.at(":"):
                self.advance()
                value = self.parse_type()
                self.expect("]")
                return SDictType(pos, self._text(start), first, value)
            self.expect("]")
            return SArrayType(pos, self._text(start), first)
        if self.at("("):
            self.advance()
            elements: list[SType] = []
            while not self.at(")"):
                # Element and parameter names are not part of the type
                if self.at_name() and self.peek(1).value == ":":
                    self.advance()
                    self.advance()
                elif (
                    self.at_name()
                    and (self.peek(1).type == TK_IDENT or self.peek(1).type in KEYWORDS)
                    and self.peek(2).value == ":"
                ):
                    self.advance()
                    self.advance()
                    self.advance()
                if self.at("inout"):
                    self.advance()
                elements.append(self.parse_type())
                if self.at("..."):
                    self.advance()
                if not self.at(","):
                    break
                self.advance()
            self.expect(")")
            throws = False
            if self.at_ident() and self.current().value == "async":
                self.advance()
            if self.at("throws") or self.at("rethrows"):
                self.advance()
                throws = True
            if self.at("->"):
                self.advance()
                ret = self.parse_type()
                return SFuncType(pos, self._text(start), elements, ret, throws)
            if len(elements) == 1:
                return elements[0]
            return STupleType(pos, self._text(start), elements)
        if start.type == TK_IDENT or start.type == "Self":
            name = self.advance().value
            args: list[SType] = []
            if self._at_postfix("<"):
                args = self.parse_type_args()
            while self.at(".") and self.peek(1).type == TK_IDENT:
                self.advance()
                name += "." + self.advance().value
                if self._at_postfix("<"):
                    args = self.parse_type_args()
            return STypeName(pos, self._text(start), name, args)
        got = start.value if start.type != TK_EOF else "end of input"
        raise self.error("expected type, got '" + got + "'")

    def parse_type_args(self) -> list[SType]:
        """TypeArgs = '<' Type ( ',' Type )* '>'"""
        self.expect("<")
        args = [self.parse_type()]
        while self.at(","):
            self.advance()
            args.append(self.parse_type())
        self._expect_close_angle()
        return args

    def _expect_close_angle(self) -> None:
        """Consume one '>', splitting tokens such as '>>' or '>?'."""
        tok = self.current()
        if tok.type != TK_OP or not tok.value.startswith(">"):
            raise self.error("expected '>', got '" + tok.value + "'")
        if tok.value == ">":
            self.advance()
            return
        closing = Token(TK_OP, ">", tok.line, tok.col, tok.offset, tok.offset + 1)
        closing.space_before = tok.space_before
        closing.newline_before = tok.newline_before
        rest = Token(TK_OP, tok.value[1:], tok.line, tok.col + 1, tok.offset + 1, tok.end)
        rest.space_after = tok.space_after
        self.tokens[self.pos] = closing
        self.tokens.insert(self.pos + 1, rest)
        self.advance()

    # ── Expressions ──────────────────────────────────────────

    def parse_expr(self) -> SExpr:
        return self.parse_ternary()

    def parse_ternary(self) -> SExpr:
        """Ternary = Or ( '?' Expr ':' Ternary )?"""
        start = self.current()
        cond = self.parse_or()
        tok = self.current()
        if tok.type == TK_OP and tok.value == "?" and tok.space_before:
            self.advance()
            then_expr = self.parse_ternary()
            self.expect(":")
            else_expr = self.parse_ternary()
            return STernary(
                self._tok_pos(start), self._text(start), cond, then_expr, else_expr
            )
        return cond

    def _binary(self, start: Token, op: str, left: SExpr, right: SExpr) -> SBinaryOp:
        return SBinaryOp(self._tok_pos(start), self._text(start), op, left, right)

    def parse_or(self) -> SExpr:
        """Or = And ( '||' And )*"""
        start = self.current()
        left = self.parse_and()
        while self._at_op({"||"}):
            self.advance()
            right = self.parse_and()
            left = self._binary(start, "||", left, right)
        return left

    def parse_and(self) -> SExpr:
        """And = Compare ( '&&' Compare )*"""
        start = self.current()
        left = self.parse_compare()
        while self._at_op({"&&"}):
            self.advance()
            right = self.parse_compare()
            left = self._binary(start, "&&", left, right)
        return left

    def parse_compare(self) -> SExpr:
        """Compare = Coalesce ( CompOp Coalesce )?"""
        start = self.current()
        left = self.parse_coalesce()
        if self._at_op(COMPARE_OPS):
            op = self.advance().value
            right = self.parse_coalesce()
            return self._binary(start, op, left, right)
        return left

    def parse_coalesce(self) -> SExpr:
        """Coalesce = Cast ( '??' Coalesce )?"""
        start = self.current()
        left = self.parse_cast()
        if self._at_op({"??"}):
            self.advance()
            right = self.parse_coalesce()
            return self._binary(start, "??", left, right)
        return left

    def parse_cast(self) -> SExpr:
        """Cast = Range ( 'is' Type | 'as' ( '?' | '!' )? Type )*"""
        start = self.current()
        expr = self.parse_range()
        while True:
            if self.at("is"):
                self.advance()
                typ = self.parse_type()
                expr = STypeCheck(self._tok_pos(start), self._text(start), expr, typ)
            elif self.at("as"):
                self.advance()
                op = "as"
                if self._at_postfix("?") or self._at_postfix("!"):
                    op += self.advance().value
                typ = self.parse_type()
                expr = SCast(self._tok_pos(start), self._text(start), expr, op, typ)
            else:
                return expr

    def parse_range(self) -> SExpr:
        """Range = Sum ( ( '..<' | '...' ) Sum )?"""
        start = self.current()
        left = self.parse_sum()
        if self._at_op({"..<", "..."}):
            op = self.advance().value
            right = self.parse_sum()
            return self._binary(start, op, left, right)
        return left

    def parse_sum(self) -> SExpr:
        """Sum = Product ( ( '+' | '-' | '|' | '^' ) Product )*"""
        start = self.current()
        left = self.parse_product()
        while self._at_op(ADDITIVE_OPS):
            op = self.advance().value
            right = self.parse_product()
            left = self._binary(start, op, left, right)
        return left

    def parse_product(self) -> SExpr:
        """Product = Shift ( ( '*' | '/' | '%' | '&' ) Shift )*"""
        start = self.current()
        left = self.parse_shift()
        while self._at_op(MULTIPLICATIVE_OPS):
            op = self.advance().value
            right = self.parse_shift()
            left = self._binary(start, op, left, right)
        return left

    def parse_shift(self) -> SExpr:
        """Shift = Prefix ( ( '<<' | '>>' ) Prefix )*"""
        start = self.current()
        left = self.parse_prefix()
        while self._at_op(SHIFT_OPS):
            op = self.advance().value
            right = self.parse_prefix()
            left = self._binary(start, op, left, right)
        return left

    def parse_prefix(self) -> SExpr:
        """Prefix = ( '-' | '+' | '!' | '~' ) Prefix | ( 'try' | 'await' ) Prefix | Postfix"""
        tok = self.current()
        pos = self._tok_pos(tok)
        if tok.type == TK_OP and tok.value in ("-", "+", "!", "~") and not tok.space_after:
            self.advance()
            operand = self.parse_prefix()
            return SUnaryOp(pos, self._text(tok), tok.value, operand)
        if tok.type == TK_OP and tok.value == "&" and not tok.space_after:
            self.advance()
            self.parse_prefix()
            return SUnsupportedExpr(pos, self._text(tok), "inout argument")
        if tok.type == "try" or tok.type == "await":
            self.advance()
            if self._at_postfix("?") or self._at_postfix("!"):
                self.advance()
            self.parse_prefix()
            return SUnsupportedExpr(pos, self._text(tok), tok.type + " expression")
        return self.parse_postfix()

    def _trailing_closure_allowed(self, expr: SExpr) -> bool:
        tok = self.current()
        if self.no_trailing_closure or tok.newline_before:
            return False
        after = self.peek(1)
        if after.type == TK_IDENT and after.value in ACCESSOR_NAMES:
            return False
        if isinstance(expr, SCall):
            return expr.trailing is None
        return isinstance(expr, (SIdent, SMember))

    def parse_postfix(self) -> SExpr:
        """Postfix = Primary ( '.' NAME | '?' | '!' | Args | Subscript | Closure )*"""
        start = self.current()
        pos = self._tok_pos(start)
        expr = self.parse_primary()
        while True:
            tok = self.current()
            if tok.type == TK_OP and tok.value == ".":
                self.advance()
                if self.at_type(TK_INT):
                    self.advance()
                    expr = SUnsupportedExpr(pos, self._text(start), "tuple element access")
                    continue
                name = self.expect_name().value
                expr = SMember(pos, self._text(start), expr, name, False)
            elif self._at_postfix("?") and self.peek(1).value in (".", "["):
                self.advance()
                if self.at("."):
                    self.advance()
                    name = self.expect_name().value
                    expr = SMember(pos, self._text(start), expr, name, True)
                else:
                    self.advance()
                    args = self.parse_args("]")
                    self.expect("]")
                    expr = SSubscript(pos, self._text(start), expr, args, True)
            elif self._at_postfix("!"):
                self.advance()
                expr = SForceUnwrap(pos, self._text(start), expr)
            elif tok.type == TK_OP and tok.value == "(" and not tok.newline_before:
                self.advance()
                args = self.parse_args(")")
                self.expect(")")
                expr = SCall(pos, self._text(start), expr, args, True, None)
            elif tok.type == TK_OP and tok.value == "[" and not tok.newline_before:
                self.advance()
                args = self.parse_args("]")
                self.expect("]")
                expr = SSubscript(pos, self._text(start), expr, args, False)
            elif (
                tok.type == TK_OP
                and tok.value == "{"
                and self._trailing_closure_allowed(expr)
            ):
                closure = self.parse_closure()
                if not isinstance(closure, SClosure):
                    expr = SUnsupportedExpr(pos, self._text(start), "trailing closure")
                elif isinstance(expr, SCall):
                    expr = SCall(
                        pos, self._text(start), expr.func, expr.args, expr.has_parens, closure
                    )
                else:
                    expr = SCall(pos, self._text(start), expr, [], False, closure)
            else:
                return expr

    def parse_args(self, close: str) -> list[SArg]:
        """Args = ( Arg ( ',' Arg )* )?"""
        saved = self.no_trailing_closure
        self.no_trailing_closure = False
        args: list[SArg] = []
        while not self.at(close):
            args.append(self.parse_arg())
            if not self.at(","):
                break
            self.advance()
        self.no_trailing_closure = saved
        return args

    def parse_arg(self) -> SArg:
        """Arg = ( NAME ':' )? Expr"""
        start = self.current()
        pos = self._tok_pos(start)
        label: str | None = None
        if self.at_name() and self.peek(1).type == TK_OP and self.peek(1).value == ":":
            label = self.advance().value
            self.advance()
        tok = self.current()
        # Operator passed as a function: reduce(0, +)
        if (
            tok.type == TK_OP
            and tok.value[0] in OPERATOR_CHARS
            and self.peek(1).value in (",", ")")
        ):
            self.advance()
            value: SExpr = SUnsupportedExpr(
                self._tok_pos(tok), self._text(tok), "operator reference"
            )
            return SArg(pos, self._text(start), label, value)
        value = self.parse_expr()
        return SArg(pos, self._text(start), label, value)

    def parse_primary(self) -> SExpr:
        """Parse a primary expression."""
        tok = self.current()
        pos = self._tok_pos(tok)

        # Literals
        if tok.type == TK_INT:
            self.advance()
            return SIntLit(pos, tok.value, tok.value)
        if tok.type == TK_FLOAT:
            self.advance()
            return SFloatLit(pos, tok.value, tok.value)
        if tok.type == TK_STRING:
            return self.parse_string_lit()
        if tok.type == "true" or tok.type == "false":
            self.advance()
            return SBoolLit(pos, tok.value, tok.type == "true")
        if tok.type == "nil":
            self.advance()
            return SNilLit(pos, tok.value)

        # Names; Array<Int>() is a type in call position
        if tok.type == TK_IDENT:
            if self.peek(1).value == "<" and not self.peek(1).space_before:
                type_expr = self._try_type_call()
                if type_expr is not None:
                    return type_expr
            self.advance()
            return SIdent(pos, self._text(tok), tok.value)
        if tok.type in ("self", "super", "Self"):
            self.advance()
            return SIdent(pos, tok.value, tok.value)

        # ( parenthesized expression or tuple
        if tok.value == "(" and tok.type == TK_OP:
            self.advance()
            saved = self.no_trailing_closure
            self.no_trailing_closure = False
            if self.at(")"):
                self.advance()
                self.no_trailing_closure = saved
                return SUnsupportedExpr(pos, self._text(tok), "empty tuple")
            first = self.parse_arg()
            if self.at(","):
                while self.at(","):
                    self.advance()
                    self.parse_arg()
                self.expect(")")
                self.no_trailing_closure = saved
                return SUnsupportedExpr(pos, self._text(tok), "tuple expression")
            self.expect(")")
            self.no_trailing_closure = saved
            if first.label is not None:
                return SUnsupportedExpr(pos, self._text(tok), "tuple expression")
            return SParen(pos, self._text(tok), first.value)

        # [ typed empty collection, array or dictionary literal
        if tok.value == "[" and tok.type == TK_OP:
            type_expr = self._try_type_call()
            if type_expr is not None:
                return type_expr
            return self.parse_collection_lit()

        if tok.value == "{" and tok.type == TK_OP:
            return self.parse_closure()

        # .member with an implied base
        if tok.value == "." and tok.type == TK_OP:
            self.advance()
            self.expect_name()
            if self.at("(") and not self.current().newline_before:
                self.advance()
                self.parse_args(")")
                self.expect(")")
            return SUnsupportedExpr(pos, self._text(tok), "implicit member expression")

        # \Type.path
        if tok.value == "\\" and tok.type == TK_OP:
            self.advance()
            if self.at_ident():
                self.advance()
            while self.at("."):
                self.advance()
                self.expect_name()
            return SUnsupportedExpr(pos, self._text(tok), "key path expression")

        got = tok.value if tok.type != TK_EOF else "end of input"
        raise self.error("expected expression, got '" + got + "'")

    def _try_type_call(self) -> STypeExpr | None:
        """Parse a type followed by '(' if one is here; otherwise rewind."""
        start = self.current()
        mark = self.pos
        try:
            typ = self.parse_base_type()
        except ParseFailure:
            self.pos = mark
            return None
        if self.at("(") and not self.current().newline_before:
            return STypeExpr(self._tok_pos(start), self._text(start), typ)
        self.pos = mark
        return None

    def parse_collection_lit(self) -> SExpr:
        """ArrayLit = '[' ( Expr ( ',' Expr )* ','? )? ']'
        DictLit = '[' ':' ']' | '[' Expr ':' Expr ( ',' Expr ':' Expr )* ','? ']'"""
        start = self.expect("[")
        pos = self._tok_pos(start)
        saved = self.no_trailing_closure
        self.no_trailing_closure = False
        if self.at("]"):
            self.advance()
            self.no_trailing_closure = saved
            return SArrayLit(pos, self._text(start), [])
        if self.at(":") and self.peek(1).value == "]":
            self.advance()
            self.advance()
            self.no_trailing_closure = saved
            return SDictLit(pos, self._text(start), [])
        first_tok = self.current()
        first = self.parse_expr()
        if self.at(":"):
            self.advance()
            value = self.parse_expr()
            entries = [SDictEntry(first.pos, self._text(first_tok), first, value)]
            while self.at(","):
                self.advance()
                if self.at("]"):
                    break
                entry_tok = self.current()
                key = self.parse_expr()
                self.expect(":")
                value = self.parse_expr()
                entries.append(SDictEntry(key.pos, self._text(entry_tok), key, value))
            self.expect("]")
            self.no_trailing_closure = saved
            return SDictLit(pos, self._text(start), entries)
        elements = [first]
        while self.at(","):
            self.advance()
            if self.at("]"):
                break
            elements.append(self.parse_expr())
        self.expect("]")
        self.no_trailing_closure = saved
        return SArrayLit(pos, self._text(start), elements)

    def parse_string_lit(self) -> SExpr:
        """Interpolated segments are parsed by a sub-parser over their own tokens."""
        tok = self.advance()
        pos = self._tok_pos(tok)
        segments: list[SLiteralSegment | SInterpSegment] = []
        for seg in tok.segments:
            if isinstance(seg, str):
                segments.append(SLiteralSegment(pos, seg, seg))
                continue
            sub = Parser(seg, self.source)
            expr = sub.parse_expr()
            if not sub.at_type(TK_EOF):
                return SUnsupportedExpr(pos, tok.value, "custom string interpolation")
            segments.append(SInterpSegment(expr.pos, expr.text, expr))
        return SStringLit(pos, tok.value, segments, tok.value.startswith('"""'))

    def parse_closure(self) -> SExpr:
        """Closure = '{' ( IDENT ( ',' IDENT )* 'in' )? Expr '}'; anything else is kept unsupported."""
        start = self.current()
        mark = self.pos
        saved = self.no_trailing_closure
        self.no_trailing_closure = False
        closure: SClosure | None
        try:
            closure = self._parse_simple_closure()
        except ParseFailure:
            closure = None
        self.no_trailing_closure = saved
        if closure is not None:
            return closure
        self.pos = mark
        self._skip_balanced()
        return SUnsupportedExpr(self._tok_pos(start), self._text(start), "closure")

    def _parse_simple_closure(self) -> SClosure | None:
        start = self.expect("{")
        params: list[str] = []
        if self.at_ident() and self._closure_params_ahead():
            params.append(self.advance().value)
            while self.at(","):
                self.advance()
                params.append(self.expect_ident().value)
            self.expect("in")
        body = self.parse_expr()
        if not self.at("}"):
            return None
        self.advance()
        return SClosure(self._tok_pos(start), self._text(start), params, body)

    def _closure_params_ahead(self) -> bool:
        """IDENT ( ',' IDENT )* 'in' from the current token."""
        i = self.pos
        while True:
            if self.tokens[i].type != TK_IDENT:
                return False
            i += 1
            tok = self.tokens[i]
            if tok.type == "in":
                return True
            if not (tok.type == TK_OP and tok.value == ","):
                return False
            i += 1


def parse(source: str) -> SModule:
    """Parse Swift source into a module tree; raises ParseFailure."""
    parser = Parser(tokenize(source), source)
    try:
        return parser.parse_module()
    except RecursionError:
        raise parser.error("input nested too deeply") from None
