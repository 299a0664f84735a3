"""Analyzer configuration: defaults, YAML loading, and validation."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import yaml

from e2elint.errors import ConfigurationError

if TYPE_CHECKING:
    from pathlib import Path

DEFAULT_CONFIG_NAMES: tuple[str, ...] = ("e2elint.yml", "e2elint.yaml", ".e2elint.yml")

VALID_SEVERITIES: frozenset[str] = frozenset({"error", "warning"})

DEFAULT_WAIT_DENY_LIST: frozenset[str] = frozenset(
    {"waitForTimeout", "waitForLoadState", "waitForSelector"}
)

DEFAULT_CLEANUP_DECORATORS: frozenset[str] = frozenset(
    {"cleanup", "autoCleanup", "registerCleanup", "trackForCleanup"}
)

DEFAULT_AUTH_FIXTURES: frozenset[str] = frozenset(
    {"authenticatedPage", "authedPage", "adminPage", "userPage", "loggedInPage"}
)

# test.use() options that configure an authenticated context.
DEFAULT_AUTH_CONTEXT_KEYS: frozenset[str] = frozenset({"storageState", "httpCredentials"})

DEFAULT_INCLUDE: tuple[str, ...] = (
    "*.ts",
    "*.tsx",
    "*.js",
    "*.jsx",
    "*.mts",
    "*.cts",
    "*.mjs",
    "*.cjs",
)

DEFAULT_EXCLUDE: tuple[str, ...] = (
    "node_modules/*",
    "*/node_modules/*",
    "dist/*",
    "*.d.ts",
)


@dataclass(frozen=True)
class AnalyzerConfig:
    """Per-run configuration; passed explicitly, never stored globally."""

    disabled_rule_ids: frozenset[str] = frozenset()
    severity_overrides: dict[str, str] = field(default_factory=dict)
    max_actions_per_step: int = 4
    tag_allowlist_pattern: str | None = None
    path_alias_prefixes: frozenset[str] = frozenset()
    wait_deny_list: frozenset[str] = DEFAULT_WAIT_DENY_LIST
    feature_keywords: frozenset[str] = frozenset()
    cleanup_decorators: frozenset[str] = DEFAULT_CLEANUP_DECORATORS
    auth_fixture_names: frozenset[str] = DEFAULT_AUTH_FIXTURES
    auth_context_keys: frozenset[str] = DEFAULT_AUTH_CONTEXT_KEYS
    include: tuple[str, ...] = DEFAULT_INCLUDE
    exclude: tuple[str, ...] = DEFAULT_EXCLUDE
    max_workers: int | None = None

    def __post_init__(self) -> None:
        validate_config(self)

    @property
    def tag_regex(self) -> re.Pattern[str] | None:
        if self.tag_allowlist_pattern is None:
            return None
        return re.compile(self.tag_allowlist_pattern)


def validate_config(config: AnalyzerConfig) -> None:
    """Check value ranges; rule-id checks happen in the registry."""
    if isinstance(config.max_actions_per_step, bool) or not isinstance(
        config.max_actions_per_step, int
    ):
        msg = "max_actions_per_step must be an integer"
        raise ConfigurationError(msg)
    if config.max_actions_per_step < 1:
        msg = f"max_actions_per_step must be at least 1, got {config.max_actions_per_step}"
        raise ConfigurationError(msg)

    for rule_id, severity in config.severity_overrides.items():
        if severity not in VALID_SEVERITIES:
            msg = (
                f"severity override for '{rule_id}' is '{severity}', "
                f"must be one of {sorted(VALID_SEVERITIES)}"
            )
            raise ConfigurationError(msg)

    if config.tag_allowlist_pattern is not None:
        try:
            re.compile(config.tag_allowlist_pattern)
        except re.error as exc:
            msg = f"tag_allowlist_pattern is not a valid regular expression: {exc}"
            raise ConfigurationError(msg) from exc

    if config.max_workers is not None and (
        isinstance(config.max_workers, bool)
        or not isinstance(config.max_workers, int)
        or config.max_workers < 1
    ):
        msg = f"max_workers must be a positive integer, got {config.max_workers!r}"
        raise ConfigurationError(msg)


# ---------------------------------------------------------------------------
# YAML loading
# ---------------------------------------------------------------------------

# YAML key -> dataclass field.  camelCase spellings are accepted too.
_KEY_ALIASES: dict[str, str] = {
    "disabled_rules": "disabled_rule_ids",
    "disabled_rule_ids": "disabled_rule_ids",
    "disabledRuleIds": "disabled_rule_ids",
    "severity_overrides": "severity_overrides",
    "severityOverrides": "severity_overrides",
    "max_actions_per_step": "max_actions_per_step",
    "maxActionsPerStep": "max_actions_per_step",
    "tag_allowlist_pattern": "tag_allowlist_pattern",
    "tagAllowlistPattern": "tag_allowlist_pattern",
    "path_alias_prefixes": "path_alias_prefixes",
    "pathAliasPrefixes": "path_alias_prefixes",
    "wait_deny_list": "wait_deny_list",
    "waitDenyList": "wait_deny_list",
    "feature_keywords": "feature_keywords",
    "cleanup_decorators": "cleanup_decorators",
    "auth_fixtures": "auth_fixture_names",
    "auth_context_keys": "auth_context_keys",
    "include": "include",
    "exclude": "exclude",
    "max_workers": "max_workers",
}

_SET_FIELDS: frozenset[str] = frozenset(
    {
        "disabled_rule_ids",
        "path_alias_prefixes",
        "wait_deny_list",
        "feature_keywords",
        "cleanup_decorators",
        "auth_fixture_names",
        "auth_context_keys",
    }
)
_TUPLE_FIELDS: frozenset[str] = frozenset({"include", "exclude"})


def _string_list(key: str, value: object) -> list[str]:
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        msg = f"config: '{key}' must be a list of strings"
        raise ConfigurationError(msg)
    return list(value)


def config_from_mapping(data: dict[str, Any]) -> AnalyzerConfig:
    """Build an :class:`AnalyzerConfig` from a parsed YAML mapping."""
    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        field_name = _KEY_ALIASES.get(str(key))
        if field_name is None:
            msg = f"config: unknown option '{key}'"
            raise ConfigurationError(msg)

        if field_name in _SET_FIELDS:
            kwargs[field_name] = frozenset(_string_list(key, value))
        elif field_name in _TUPLE_FIELDS:
            kwargs[field_name] = tuple(_string_list(key, value))
        elif field_name == "severity_overrides":
            if not isinstance(value, dict):
                msg = f"config: '{key}' must be a mapping of rule id to severity"
                raise ConfigurationError(msg)
            kwargs[field_name] = {str(k): str(v) for k, v in value.items()}
        elif field_name == "tag_allowlist_pattern":
            if value is not None and not isinstance(value, str):
                msg = f"config: '{key}' must be a string"
                raise ConfigurationError(msg)
            kwargs[field_name] = value
        else:
            kwargs[field_name] = value

    return AnalyzerConfig(**kwargs)


def find_config(project_root: Path) -> Path | None:
    """Return the first default-named config file under *project_root*, if any."""
    for name in DEFAULT_CONFIG_NAMES:
        candidate = project_root / name
        if candidate.is_file():
            return candidate
    return None


def load_config(config_path: Path | None) -> AnalyzerConfig:
    """Load configuration from *config_path*.

    A ``None`` path yields the defaults.  An unreadable or malformed file
    raises :class:`ConfigurationError`.
    """
    if config_path is None:
        return AnalyzerConfig()

    try:
        with config_path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as exc:
        msg = f"cannot read config {config_path}: {exc}"
        raise ConfigurationError(msg) from exc

    if data is None:
        return AnalyzerConfig()
    if not isinstance(data, dict):
        msg = f"{config_path.name} must be a YAML mapping"
        raise ConfigurationError(msg)

    return config_from_mapping(data)
