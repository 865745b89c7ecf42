"""swiftkt: translate a Swift subset to Kotlin."""

from __future__ import annotations

from .diagnostics import (
    ASSUMED_IDENTITY_MAPPING,
    DIAGNOSTIC_KINDS,
    NON_TRIVIAL_INITIALIZER_BODY,
    UNSUPPORTED_CONSTRUCT,
    UNSUPPORTED_MULTIPLE_INITIALIZERS,
    UNSUPPORTED_TYPE,
    Diagnostic,
    ParseFailure,
    TranslationResult,
)
from .parse import parse
from .translator import translate_module

__all__ = [
    "ASSUMED_IDENTITY_MAPPING",
    "DIAGNOSTIC_KINDS",
    "NON_TRIVIAL_INITIALIZER_BODY",
    "UNSUPPORTED_CONSTRUCT",
    "UNSUPPORTED_MULTIPLE_INITIALIZERS",
    "UNSUPPORTED_TYPE",
    "Diagnostic",
    "ParseFailure",
    "TranslationResult",
    "parse",
    "translate",
    "translate_module",
]


def translate(source: str, indent: str = "    ") -> TranslationResult:
    """Parse and translate Swift source. Raises ParseFailure on malformed input."""
    return translate_module(parse(source), indent)
