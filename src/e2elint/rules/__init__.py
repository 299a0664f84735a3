"""Rules domain: rule base, convention catalog, and registry."""

from e2elint.rules.base import (
    ERROR,
    META_ERROR,
    WARNING,
    Finding,
    Rule,
    RuleContext,
    TypeInfoProvider,
)
from e2elint.rules.registry import (
    ActiveRule,
    RuleInfo,
    RuleRegistry,
    default_registry,
    default_rules,
)

__all__ = [
    "ERROR",
    "META_ERROR",
    "WARNING",
    "ActiveRule",
    "Finding",
    "Rule",
    "RuleContext",
    "RuleInfo",
    "RuleRegistry",
    "TypeInfoProvider",
    "default_registry",
    "default_rules",
]
