"""Swift tokenizer: lexes source into a flat token list.

Tokens carry source offsets so the parser can slice the exact text a node
covers, and the whitespace flags Swift uses to tell prefix, postfix and
binary operators apart.
"""

from __future__ import annotations

from .diagnostics import ParseFailure

# Token type constants
TK_INT = "INT"
TK_FLOAT = "FLOAT"
TK_STRING = "STRING"
TK_IDENT = "IDENT"
TK_OP = "OP"
TK_EOF = "EOF"

KEYWORDS: set[str] = {
    "Self",
    "as",
    "await",
    "break",
    "case",
    "catch",
    "class",
    "continue",
    "default",
    "defer",
    "deinit",
    "do",
    "else",
    "enum",
    "extension",
    "fallthrough",
    "false",
    "for",
    "func",
    "guard",
    "if",
    "import",
    "in",
    "init",
    "inout",
    "is",
    "let",
    "nil",
    "operator",
    "protocol",
    "repeat",
    "rethrows",
    "return",
    "self",
    "static",
    "struct",
    "subscript",
    "super",
    "switch",
    "throw",
    "throws",
    "true",
    "try",
    "typealias",
    "var",
    "where",
    "while",
}

OPERATOR_CHARS = "/=-+!*%<>&|^~?"

PUNCTUATION = "()[]{},:;@"

ESCAPE_MAP: dict[str, str] = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "\\": "\\",
    '"': '"',
    "'": "'",
    "0": "\0",
}

# Characters that count as whitespace when they sit left or right of an operator
_LEFT_BOUND = "([{,;:"
_RIGHT_BOUND = ")]},;:."


class TokenizeError(ParseFailure):
    """Error during tokenization."""


class Token:
    """A token with type, value, position and spacing flags."""

    def __init__(
        self, type_: str, value: str, line: int, col: int, offset: int, end: int
    ):
        self.type: str = type_
        self.value: str = value
        self.line: int = line
        self.col: int = col
        self.offset: int = offset
        self.end: int = end
        self.space_before: bool = False
        self.space_after: bool = False
        self.newline_before: bool = False
        # String literals: literal text pieces and token lists of interpolations
        self.segments: list[str | list[Token]] = []

    def is_binary(self) -> bool:
        """Operator with whitespace on both sides or on neither."""
        return self.space_before == self.space_after

    def is_prefix(self) -> bool:
        return self.space_before and not self.space_after

    def is_postfix(self) -> bool:
        return not self.space_before

    def __repr__(self) -> str:
        return (
            "Token("
            + self.type
            + ", "
            + repr(self.value)
            + ", "
            + str(self.line)
            + ", "
            + str(self.col)
            + ")"
        )


def _is_digit(c: str) -> bool:
    return c >= "0" and c <= "9"


def _is_hex(c: str) -> bool:
    return (c >= "0" and c <= "9") or (c >= "a" and c <= "f") or (c >= "A" and c <= "F")


def _is_alpha(c: str) -> bool:
    return (c >= "a" and c <= "z") or (c >= "A" and c <= "Z") or c == "_"


def _is_alnum(c: str) -> bool:
    return _is_alpha(c) or _is_digit(c)


class Lexer:
    """Character cursor over the source; one instance per string interpolation."""

    def __init__(self, source: str, pos: int = 0, line: int = 1, col: int = 1):
        self.src: str = source
        self.pos: int = pos
        self.line: int = line
        self.col: int = col

    def error(self, msg: str, line: int, col: int) -> TokenizeError:
        return TokenizeError(msg, line, col)

    def at_end(self) -> bool:
        return self.pos >= len(self.src)

    def char(self, offset: int = 0) -> str:
        idx = self.pos + offset
        if idx >= len(self.src):
            return ""
        return self.src[idx]

    def advance(self, n: int = 1) -> None:
        for _ in range(n):
            if self.src[self.pos] == "\n":
                self.line += 1
                self.col = 1
            else:
                self.col += 1
            self.pos += 1

    # ── Token stream ─────────────────────────────────────────

    def lex(self, interpolation: bool = False) -> list[Token]:
        """Lex to end of input, or to the ')' closing an interpolation."""
        tokens: list[Token] = []
        depth = 0
        newline = False
        while True:
            if self._skip_trivia():
                newline = True
            if self.at_end():
                if interpolation:
                    raise self.error(
                        "unterminated string interpolation", self.line, self.col
                    )
                break
            c = self.char()
            if interpolation:
                if c == "(":
                    depth += 1
                elif c == ")":
                    if depth == 0:
                        break
                    depth -= 1
            tok = self._lex_token()
            tok.newline_before = newline or len(tokens) == 0
            newline = False
            self._set_spacing(tok)
            tokens.append(tok)
        tokens.append(Token(TK_EOF, "", self.line, self.col, self.pos, self.pos))
        return tokens

    def _set_spacing(self, tok: Token) -> None:
        if tok.offset == 0:
            tok.space_before = True
        else:
            before = self.src[tok.offset - 1]
            tok.space_before = before.isspace() or before in _LEFT_BOUND
        if tok.end >= len(self.src):
            tok.space_after = True
        else:
            after = self.src[tok.end]
            tok.space_after = after.isspace() or after in _RIGHT_BOUND

    def _skip_trivia(self) -> bool:
        """Skip whitespace and comments; report whether a newline was crossed."""
        crossed = False
        while not self.at_end():
            c = self.char()
            if c == "\n":
                crossed = True
                self.advance()
            elif c == " " or c == "\t" or c == "\r":
                self.advance()
            elif c == "/" and self.char(1) == "/":
                while not self.at_end() and self.char() != "\n":
                    self.advance()
            elif c == "/" and self.char(1) == "*":
                if self._skip_block_comment():
                    crossed = True
            else:
                break
        return crossed

    def _skip_block_comment(self) -> bool:
        start_line = self.line
        start_col = self.col
        crossed = False
        depth = 0
        while True:
            if self.at_end():
                raise self.error("unterminated block comment", start_line, start_col)
            if self.char() == "/" and self.char(1) == "*":
                depth += 1
                self.advance(2)
            elif self.char() == "*" and self.char(1) == "/":
                depth -= 1
                self.advance(2)
                if depth == 0:
                    return crossed
            else:
                if self.char() == "\n":
                    crossed = True
                self.advance()

    def _lex_token(self) -> Token:
        c = self.char()
        start = self.pos
        line = self.line
        col = self.col

        if _is_digit(c):
            return self._lex_number()

        if c == '"':
            if self.src.startswith('"""', self.pos):
                return self._lex_multiline_string()
            return self._lex_string()

        if _is_alpha(c):
            while not self.at_end() and _is_alnum(self.char()):
                self.advance()
            word = self.src[start : self.pos]
            if word in KEYWORDS:
                return Token(word, word, line, col, start, self.pos)
            return Token(TK_IDENT, word, line, col, start, self.pos)

        # Escaped identifier: `default`
        if c == "`":
            self.advance()
            name_start = self.pos
            while not self.at_end() and _is_alnum(self.char()):
                self.advance()
            if self.char() != "`" or self.pos == name_start:
                raise self.error("malformed escaped identifier", line, col)
            name = self.src[name_start : self.pos]
            self.advance()
            return Token(TK_IDENT, name, line, col, start, self.pos)

        # Closure shorthand argument ($0) or property wrapper projection ($x)
        if c == "$":
            self.advance()
            if self.at_end() or not _is_alnum(self.char()):
                raise self.error("expected identifier after '$'", line, col)
            while not self.at_end() and _is_alnum(self.char()):
                self.advance()
            return Token(TK_IDENT, self.src[start : self.pos], line, col, start, self.pos)

        if c == ".":
            if self.src.startswith("..<", self.pos):
                self.advance(3)
                return Token(TK_OP, "..<", line, col, start, self.pos)
            if self.src.startswith("...", self.pos):
                self.advance(3)
                return Token(TK_OP, "...", line, col, start, self.pos)
            self.advance()
            return Token(TK_OP, ".", line, col, start, self.pos)

        if c in OPERATOR_CHARS:
            return self._lex_operator()

        # Punctuation, and the backslash that opens a key path
        if c in PUNCTUATION or c == "\\":
            self.advance()
            return Token(TK_OP, c, line, col, start, self.pos)

        if c == "#":
            raise self.error("compiler directives are not supported", line, col)
        raise self.error("unexpected character '" + c + "'", line, col)

    def _lex_operator(self) -> Token:
        start = self.pos
        line = self.line
        col = self.col
        c = self.char()
        glued = start > 0 and not (
            self.src[start - 1].isspace() or self.src[start - 1] in _LEFT_BOUND
        )
        # Postfix '?' and '!' stand alone: x?.y, x!, T?=
        if glued and c == "?":
            self.advance()
            return Token(TK_OP, "?", line, col, start, self.pos)
        if glued and c == "!" and self.char(1) != "=":
            self.advance()
            return Token(TK_OP, "!", line, col, start, self.pos)
        while not self.at_end() and self.char() in OPERATOR_CHARS:
            # A comment start ends the operator
            if self.char() == "/" and self.char(1) in ("/", "*") and self.pos > start:
                break
            self.advance()
        return Token(TK_OP, self.src[start : self.pos], line, col, start, self.pos)

    # ── Literals ─────────────────────────────────────────────

    def _lex_number(self) -> Token:
        start = self.pos
        line = self.line
        col = self.col
        if self.char() == "0" and self.char(1) in ("x", "b", "o"):
            base = self.char(1)
            self.advance(2)
            digits_start = self.pos
            while not self.at_end() and (_is_hex(self.char()) or self.char() == "_"):
                self.advance()
            digits = self.src[digits_start : self.pos].replace("_", "")
            valid = "0123456789abcdefABCDEF"
            if base == "b":
                valid = "01"
            elif base == "o":
                valid = "01234567"
            if not digits or any(d not in valid for d in digits):
                raise self.error("invalid integer literal", line, col)
            return Token(TK_INT, self.src[start : self.pos], line, col, start, self.pos)
        while not self.at_end() and (_is_digit(self.char()) or self.char() == "_"):
            self.advance()
        is_float = False
        if self.char() == "." and _is_digit(self.char(1)):
            is_float = True
            self.advance()
            while not self.at_end() and (_is_digit(self.char()) or self.char() == "_"):
                self.advance()
        if self.char() in ("e", "E"):
            is_float = True
            self.advance()
            if self.char() in ("+", "-"):
                self.advance()
            if not _is_digit(self.char()):
                raise self.error("invalid float exponent", line, col)
            while not self.at_end() and _is_digit(self.char()):
                self.advance()
        if _is_alpha(self.char()):
            raise self.error("invalid numeric literal", line, col)
        raw = self.src[start : self.pos]
        if is_float:
            return Token(TK_FLOAT, raw, line, col, start, self.pos)
        return Token(TK_INT, raw, line, col, start, self.pos)

    def _lex_string(self) -> Token:
        start = self.pos
        line = self.line
        col = self.col
        self.advance()  # skip opening "
        segments: list[str | list[Token]] = []
        buf: list[str] = []
        while True:
            if self.at_end() or self.char() == "\n":
                raise self.error("unterminated string literal", line, col)
            c = self.char()
            if c == '"':
                self.advance()
                break
            if c == "\\":
                if self.char(1) == "(":
                    if buf:
                        segments.append("".join(buf))
                        buf = []
                    segments.append(self._lex_interpolation())
                    continue
                buf.append(self._process_escape())
                continue
            buf.append(c)
            self.advance()
        if buf:
            segments.append("".join(buf))
        tok = Token(TK_STRING, self.src[start : self.pos], line, col, start, self.pos)
        tok.segments = segments
        return tok

    def _lex_multiline_string(self) -> Token:
        """Lex a triple-quoted literal, stripping the closing delimiter's indentation."""
        start = self.pos
        line = self.line
        col = self.col
        self.advance(3)
        while self.char() in (" ", "\t", "\r"):
            self.advance()
        if self.char() != "\n":
            raise self.error(
                "multi-line string literal content must begin on a new line", line, col
            )
        self.advance()
        indent = self._closing_indent(line, col)
        segments: list[str | list[Token]] = []
        buf: list[str] = []
        at_line_start = True
        while True:
            if at_line_start:
                at_line_start = False
                probe = self.pos
                while probe < len(self.src) and self.src[probe] in (" ", "\t"):
                    probe += 1
                if self.src.startswith('"""', probe):
                    self.advance(probe - self.pos + 3)
                    break
                if self.src.startswith(indent, self.pos):
                    self.advance(len(indent))
                elif probe >= len(self.src) or self.src[probe] in ("\n", "\r"):
                    self.advance(probe - self.pos)
                else:
                    raise self.error(
                        "insufficient indentation of line in multi-line string literal",
                        self.line,
                        self.col,
                    )
            if self.at_end():
                raise self.error("unterminated string literal", line, col)
            c = self.char()
            if c == "\n":
                buf.append("\n")
                self.advance()
                at_line_start = True
                continue
            if c == "\\":
                if self.char(1) == "\n":
                    self.advance(2)
                    at_line_start = True
                    continue
                if self.char(1) == "(":
                    if buf:
                        segments.append("".join(buf))
                        buf = []
                    segments.append(self._lex_interpolation())
                    continue
                buf.append(self._process_escape())
                continue
            if c != "\r":
                buf.append(c)
            self.advance()
        # The newline before the closing delimiter is not part of the value
        if buf and buf[-1] == "\n":
            buf.pop()
        if buf:
            segments.append("".join(buf))
        tok = Token(TK_STRING, self.src[start : self.pos], line, col, start, self.pos)
        tok.segments = segments
        return tok

    def _closing_indent(self, line: int, col: int) -> str:
        probe = self.pos
        while probe < len(self.src):
            eol = self.src.find("\n", probe)
            if eol == -1:
                eol = len(self.src)
            text = self.src[probe:eol]
            stripped = text.lstrip(" \t")
            if stripped.startswith('"""'):
                return text[: len(text) - len(stripped)]
            probe = eol + 1
        raise self.error("unterminated string literal", line, col)

    def _lex_interpolation(self) -> list[Token]:
        """Lex the expression inside \\( ... ) and consume the closing ')'."""
        self.advance(2)
        sub = Lexer(self.src, self.pos, self.line, self.col)
        tokens = sub.lex(interpolation=True)
        self.pos = sub.pos
        self.line = sub.line
        self.col = sub.col
        if len(tokens) == 1:
            raise self.error("empty string interpolation", self.line, self.col)
        self.advance()  # skip )
        return tokens

    def _process_escape(self) -> str:
        line = self.line
        col = self.col
        self.advance()  # skip backslash
        if self.at_end():
            raise self.error("unexpected end of string in escape", line, col)
        c = self.char()
        if c in ESCAPE_MAP:
            self.advance()
            return ESCAPE_MAP[c]
        if c == "u" and self.char(1) == "{":
            self.advance(2)
            digits_start = self.pos
            while not self.at_end() and _is_hex(self.char()):
                self.advance()
            digits = self.src[digits_start : self.pos]
            if self.char() != "}" or not (1 <= len(digits) <= 8):
                raise self.error("invalid unicode escape", line, col)
            self.advance()
            value = int(digits, 16)
            if value > 0x10FFFF or 0xD800 <= value <= 0xDFFF:
                raise self.error("invalid unicode scalar", line, col)
            return chr(value)
        raise self.error("invalid escape: \\" + c, line, col)


def tokenize(source: str) -> list[Token]:
    """Tokenize Swift source into a flat list ending with TK_EOF."""
    return Lexer(source).lex()
