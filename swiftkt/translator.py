"""Orchestration: one depth-first visit of a parsed module."""

from __future__ import annotations

from .ast import SClassDecl, SModule, STypeAlias, walk
from .context import TranslationContext
from .declarations import DeclarationTranslator
from .diagnostics import TranslationResult


def collect_known_types(module: SModule) -> set[str]:
    """Names of the classes, structs and typealiases the module declares."""
    known: set[str] = set()
    for node in walk(module):
        if isinstance(node, (SClassDecl, STypeAlias)):
            known.add(node.name)
    return known


def translate_module(module: SModule, indent: str = "    ") -> TranslationResult:
    """Translate a parsed module to Kotlin text plus diagnostics."""
    ctx = TranslationContext(collect_known_types(module))
    translator = DeclarationTranslator(ctx, indent)
    translator.emit_body(module.body)
    return TranslationResult(translator.output(), ctx.diagnostics)
