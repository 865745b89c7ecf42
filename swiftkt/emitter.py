"""Code Emitter: indented line buffer shared by the translation stages."""

from __future__ import annotations

from .ast import SNode
from .context import TranslationContext

_KOTLIN_ESCAPES: dict[str, str] = {
    "\\": "\\\\",
    '"': '\\"',
    "$": "\\$",
    "\n": "\\n",
    "\t": "\\t",
    "\r": "\\r",
    "\b": "\\b",
}


def escape_string(value: str) -> str:
    """Escape a string for use in a Kotlin string literal (without quotes)."""
    out: list[str] = []
    for ch in value:
        if ch in _KOTLIN_ESCAPES:
            out.append(_KOTLIN_ESCAPES[ch])
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            out.append("\\u%04x" % ord(ch))
        else:
            out.append(ch)
    return "".join(out)


def escape_char(ch: str) -> str:
    """Escape one character for use in a Kotlin char literal (without quotes)."""
    if ch == "'":
        return "\\'"
    if ch == '"':
        return '"'
    if ch == "$":
        return "$"
    return escape_string(ch)


class Emitter:
    """Base class for code emitters with indentation tracking.

    The depth counter lives on the translation context, so every stage that
    shares the context also shares one indentation level.
    """

    def __init__(self, ctx: TranslationContext, indent_str: str = "    ") -> None:
        self.ctx: TranslationContext = ctx
        self.lines: list[str] = []
        self._indent_str = indent_str

    def line(self, text: str = "") -> None:
        """Emit a line with current indentation."""
        if text:
            self.lines.append(self._indent_str * self.ctx.depth + text)
        else:
            self.lines.append("")

    def enter(self) -> None:
        self.ctx.depth += 1

    def exit(self) -> None:
        self.ctx.depth -= 1

    def placeholder(self, kind: str, node: SNode) -> None:
        """Comment out a node's source text, one '// <kind>: ' line per source line."""
        for text in source_lines(node):
            self.line(("// " + kind + ": " + text).rstrip())

    def output(self) -> str:
        """Return the accumulated output, ending with a single newline."""
        while self.lines and self.lines[-1] == "":
            self.lines.pop()
        if not self.lines:
            return ""
        return "\n".join(self.lines) + "\n"


def source_lines(node: SNode) -> list[str]:
    """A node's source lines, continuation lines dedented by the node's column."""
    lines = node.text.split("\n")
    strip = node.pos.col - 1
    out = [lines[0].rstrip()]
    for text in lines[1:]:
        n = 0
        while n < strip and n < len(text) and text[n] in (" ", "\t"):
            n += 1
        out.append(text[n:].rstrip())
    return out


def inline_comment(text: str) -> str:
    """Collapse text onto one line, safe inside a /* */ comment."""
    return " ".join(text.split()).replace("*/", "* /")
