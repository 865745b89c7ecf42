"""Diagnostics: the closed taxonomy of translation anomalies and parse failures."""

from __future__ import annotations

from dataclasses import dataclass, field

UNSUPPORTED_TYPE = "UnsupportedType"
ASSUMED_IDENTITY_MAPPING = "AssumedIdentityMapping"
NON_TRIVIAL_INITIALIZER_BODY = "NonTrivialInitializerBody"
UNSUPPORTED_MULTIPLE_INITIALIZERS = "UnsupportedMultipleInitializers"
UNSUPPORTED_CONSTRUCT = "UnsupportedConstruct"

DIAGNOSTIC_KINDS = frozenset(
    {
        UNSUPPORTED_TYPE,
        ASSUMED_IDENTITY_MAPPING,
        NON_TRIVIAL_INITIALIZER_BODY,
        UNSUPPORTED_MULTIPLE_INITIALIZERS,
        UNSUPPORTED_CONSTRUCT,
    }
)


class ParseFailure(Exception):
    """Source could not be parsed; fatal, no output text is produced."""

    def __init__(self, msg: str, line: int, col: int):
        self.msg: str = msg
        self.line: int = line
        self.col: int = col
        super().__init__(msg + " at line " + str(line) + " col " + str(col))


@dataclass
class Diagnostic:
    """A non-fatal anomaly found while translating."""

    kind: str
    message: str
    line: int
    col: int

    def __post_init__(self) -> None:
        if self.kind not in DIAGNOSTIC_KINDS:
            raise ValueError("unknown diagnostic kind: " + self.kind)

    def __str__(self) -> str:
        return f"warning:{self.line}:{self.col}: [{self.kind}] {self.message}"


@dataclass
class TranslationResult:
    """Target text plus the diagnostics collected in traversal order."""

    text: str
    diagnostics: list[Diagnostic] = field(default_factory=list)

    def ok(self) -> bool:
        return len(self.diagnostics) == 0

    def of_kind(self, kind: str) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.kind == kind]
