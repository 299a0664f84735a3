"""Syntax domain: tree-sitter adapter and the normalized node model."""

from e2elint.syntax.adapter import (
    check_parser_availability,
    clear_cache,
    get_lang_config,
    load_source,
    parse_source,
    supported_extensions,
)
from e2elint.syntax.nodes import ALL_KINDS, Node, NodeKind, SourceUnit, Span

__all__ = [
    "ALL_KINDS",
    "Node",
    "NodeKind",
    "SourceUnit",
    "Span",
    "check_parser_availability",
    "clear_cache",
    "get_lang_config",
    "load_source",
    "parse_source",
    "supported_extensions",
]
