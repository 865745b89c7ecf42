"""Per-run translation state threaded through the visit."""

from __future__ import annotations

from dataclasses import dataclass

from .ast import SNode, SType
from .diagnostics import Diagnostic


@dataclass
class ScopeEntry:
    """What the translator knows about a declared name."""

    typ: SType | None
    mutable: bool
    is_property: bool = False


class TranslationContext:
    """Indentation depth, lexical scopes and accumulated diagnostics for one run."""

    def __init__(self, known_types: set[str] | None = None) -> None:
        self.depth: int = 0
        self.scopes: list[dict[str, ScopeEntry]] = [{}]
        self.diagnostics: list[Diagnostic] = []
        self.known_types: set[str] = known_types if known_types is not None else set()
        # Innermost first: declared return type of each enclosing function
        self.return_types: list[SType | None] = []
        # One entry per enclosing closure; True when it takes $0 as 'it'
        self.closures: list[bool] = []
        # One entry per statement list being emitted: name -> direct binding count
        self.block_names: list[dict[str, int]] = []

    # ── Scopes ───────────────────────────────────────────────

    def push_scope(self) -> None:
        self.scopes.append({})

    def pop_scope(self) -> None:
        self.scopes.pop()

    def declare(
        self, name: str, typ: SType | None, mutable: bool, is_property: bool = False
    ) -> None:
        self.scopes[-1][name] = ScopeEntry(typ, mutable, is_property)

    def lookup(self, name: str) -> ScopeEntry | None:
        for scope in reversed(self.scopes):
            entry = scope.get(name)
            if entry is not None:
                return entry
        return None

    # ── Diagnostics ──────────────────────────────────────────

    def report(self, kind: str, message: str, node: SNode) -> None:
        self.diagnostics.append(Diagnostic(kind, message, node.pos.line, node.pos.col))

    def extend(self, diags: list[Diagnostic]) -> None:
        self.diagnostics.extend(diags)
