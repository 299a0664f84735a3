"""Syntax tree adapter: tree-sitter parsing normalized into the e2elint node model."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from tree_sitter import Language, Parser

from e2elint.errors import ParseError
from e2elint.syntax.nodes import Node, NodeKind, SourceUnit, Span

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from tree_sitter import Node as TSNode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LangConfig:
    """Tree-sitter configuration for one grammar."""

    name: str
    language: Language


# ---- Language loaders (lazy, handle ImportError) ----


def _load_typescript() -> LangConfig:
    import tree_sitter_typescript as tstypescript

    return LangConfig(name="typescript", language=Language(tstypescript.language_typescript()))


def _load_tsx() -> LangConfig:
    import tree_sitter_typescript as tstypescript

    return LangConfig(name="tsx", language=Language(tstypescript.language_tsx()))


# Extension -> loader function mapping.  Plain JavaScript parses with the
# TypeScript grammar, which is a superset for the syntax tests use.
_EXTENSION_LOADERS: dict[str, Callable[[], LangConfig]] = {
    ".ts": _load_typescript,
    ".mts": _load_typescript,
    ".cts": _load_typescript,
    ".js": _load_typescript,
    ".mjs": _load_typescript,
    ".cjs": _load_typescript,
    ".tsx": _load_tsx,
    ".jsx": _load_tsx,
}

# Cache for loaded languages (None means "tried and failed / unsupported").
_LANG_CACHE: dict[str, LangConfig | None] = {}


def get_lang_config(extension: str) -> LangConfig | None:
    """Get language config for a file extension, or ``None`` if unsupported/unavailable."""
    if extension in _LANG_CACHE:
        return _LANG_CACHE[extension]

    loader = _EXTENSION_LOADERS.get(extension)
    if loader is None:
        _LANG_CACHE[extension] = None
        return None

    try:
        config = loader()
    except ImportError:
        logger.warning("tree-sitter grammar for %s is not installed", extension)
        _LANG_CACHE[extension] = None
        return None

    _LANG_CACHE[extension] = config
    return config


def supported_extensions() -> frozenset[str]:
    """Return the file extensions the adapter knows how to parse."""
    return frozenset(_EXTENSION_LOADERS)


def clear_cache() -> None:
    """Clear the language config cache (useful for testing)."""
    _LANG_CACHE.clear()


def check_parser_availability(extensions: Iterable[str]) -> dict[str, bool]:
    """Map each extension to whether its grammar can be loaded."""
    return {ext: get_lang_config(ext) is not None for ext in extensions}


# ---------------------------------------------------------------------------
# Normalization tables
# ---------------------------------------------------------------------------

_SIMPLE_KINDS: dict[str, str] = {
    "program": NodeKind.PROGRAM,
    "import_statement": NodeKind.IMPORT,
    "call_expression": NodeKind.CALL,
    "new_expression": NodeKind.NEW,
    "await_expression": NodeKind.AWAIT,
    "expression_statement": NodeKind.EXPRESSION_STATEMENT,
    "statement_block": NodeKind.BLOCK,
    "arrow_function": NodeKind.FUNCTION,
    "function_expression": NodeKind.FUNCTION,
    "function": NodeKind.FUNCTION,
    "function_declaration": NodeKind.FUNCTION,
    "generator_function": NodeKind.FUNCTION,
    "generator_function_declaration": NodeKind.FUNCTION,
    "class_declaration": NodeKind.CLASS,
    "abstract_class_declaration": NodeKind.CLASS,
    "class": NodeKind.CLASS,
    "public_field_definition": NodeKind.CLASS_FIELD,
    "field_definition": NodeKind.CLASS_FIELD,
    "method_definition": NodeKind.METHOD,
    "decorator": NodeKind.DECORATOR,
    "object": NodeKind.OBJECT,
    "pair": NodeKind.PROPERTY,
    "shorthand_property_identifier": NodeKind.PROPERTY,
    "array": NodeKind.ARRAY,
    "string": NodeKind.STRING,
    "template_string": NodeKind.TEMPLATE,
    "variable_declarator": NodeKind.VARIABLE,
    "assignment_expression": NodeKind.ASSIGNMENT,
    "identifier": NodeKind.IDENTIFIER,
    "this": NodeKind.IDENTIFIER,
    "member_expression": NodeKind.MEMBER,
    "binary_expression": NodeKind.BINARY,
    "return_statement": NodeKind.RETURN,
}

# Subtrees that carry no information rules care about.
_DROPPED_TYPES: frozenset[str] = frozenset(
    {
        "comment",
        "type_annotation",
        "type_arguments",
        "type_parameters",
        "interface_declaration",
        "type_alias_declaration",
        "formal_parameters",
        "accessibility_modifier",
        "override_modifier",
    }
)

# Wrappers whose children are hoisted into the parent.
_TRANSPARENT_TYPES: frozenset[str] = frozenset({"class_body", "arguments", "class_heritage"})


def _text(node: TSNode | None) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def _span(node: TSNode, path: str) -> Span:
    # tree-sitter rows and columns are 0-based.
    return Span(
        path=path,
        start_line=node.start_point.row + 1,
        start_column=node.start_point.column + 1,
        end_line=node.end_point.row + 1,
        end_column=node.end_point.column + 1,
        start_offset=node.start_byte,
        end_offset=node.end_byte,
    )


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"`":
        return value[1:-1]
    return value


def _callee_path(node: TSNode | None) -> str:
    """Render a callee expression as a dotted path (``page.getByRole().click``)."""
    if node is None:
        return ""
    if node.type in ("identifier", "this", "super", "property_identifier", "import"):
        return _text(node)
    if node.type == "member_expression":
        obj = _callee_path(node.child_by_field_name("object"))
        prop = _text(node.child_by_field_name("property"))
        return f"{obj}.{prop}" if obj else prop
    if node.type == "call_expression":
        return _callee_path(node.child_by_field_name("function")) + "()"
    if node.type in ("parenthesized_expression", "non_null_expression", "await_expression"):
        named = node.named_children
        return _callee_path(named[0]) if named else ""
    return _text(node)


def _has_token(node: TSNode, token: str, *, before: TSNode | None = None) -> bool:
    """Return True if an anonymous *token* child appears (optionally before *before*)."""
    for child in node.children:
        if before is not None and child.start_byte >= before.start_byte:
            break
        if not child.is_named and child.type == token:
            return True
    return False


def _pattern_names(node: TSNode | None) -> list[str]:
    """Collect the names bound by a parameter pattern.

    For destructured object patterns the *keys* are collected, since those
    are the fixture names a test receives.
    """
    if node is None:
        return []
    kind = node.type
    if kind in ("identifier", "shorthand_property_identifier_pattern"):
        return [_text(node)]
    if kind == "pair_pattern":
        return [_strip_quotes(_text(node.child_by_field_name("key")))]
    if kind in ("required_parameter", "optional_parameter"):
        return _pattern_names(node.child_by_field_name("pattern"))
    if kind in ("object_assignment_pattern", "assignment_pattern"):
        return _pattern_names(node.child_by_field_name("left"))
    if kind == "rest_pattern":
        return [name for child in node.named_children for name in _pattern_names(child)]
    if kind in ("object_pattern", "array_pattern", "formal_parameters"):
        return [name for child in node.named_children for name in _pattern_names(child)]
    return []


def _function_params(node: TSNode) -> tuple[str, ...]:
    params = node.child_by_field_name("parameters")
    if params is None:
        # Single bare parameter: ``page => ...``
        params = node.child_by_field_name("parameter")
    return tuple(_pattern_names(params))


def _decorator_name(node: TSNode) -> str:
    for child in node.named_children:
        if child.type == "call_expression":
            return _callee_path(child.child_by_field_name("function"))
        return _callee_path(child)
    return ""


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------


class _Converter:
    """Turns one tree-sitter tree into a normalized Node tree."""

    def __init__(self, path: str) -> None:
        self.path = path
        self.async_functions: set[str] = set()

    def convert(self, ts_node: TSNode) -> list[Node]:
        """Convert *ts_node*; returns zero or more nodes (wrappers are hoisted)."""
        ts_type = ts_node.type
        if not ts_node.is_named or ts_type in _DROPPED_TYPES:
            return []
        if ts_type in _TRANSPARENT_TYPES:
            return self._convert_children(ts_node)
        if ts_type == "export_statement" and ts_node.child_by_field_name("source") is not None:
            return [self._import(ts_node)]

        kind = _SIMPLE_KINDS.get(ts_type, NodeKind.OTHER)
        builder = _BUILDERS.get(kind)
        if builder is not None:
            return [builder(self, ts_node)]
        return [self._node(kind, ts_node, children=self._convert_children(ts_node))]

    def _convert_children(self, ts_node: TSNode) -> list[Node]:
        children: list[Node] = []
        pending_decorators: list[str] = []
        for child in ts_node.children:
            converted = self.convert(child)
            for node in converted:
                if node.kind == NodeKind.DECORATOR and ts_node.type == "class_body":
                    # Decorators preceding a class member as siblings.
                    pending_decorators.append(node.payload["name"])
                    children.append(node)
                    continue
                if pending_decorators and node.kind in (NodeKind.METHOD, NodeKind.CLASS_FIELD):
                    node.payload["decorators"] = (
                        *pending_decorators,
                        *node.payload.get("decorators", ()),
                    )
                    pending_decorators = []
                children.append(node)
        return children

    def _node(
        self,
        kind: str,
        ts_node: TSNode,
        *,
        children: list[Node] | None = None,
        **payload: Any,
    ) -> Node:
        return Node(
            kind=kind,
            span=_span(ts_node, self.path),
            text=_text(ts_node),
            children=children or [],
            payload=payload,
        )

    # ---- kind-specific builders ----

    def _import(self, ts_node: TSNode) -> Node:
        source = ts_node.child_by_field_name("source")
        specifier = _strip_quotes(_text(source)) if source is not None else ""
        return self._node(NodeKind.IMPORT, ts_node, specifier=specifier)

    def _call(self, ts_node: TSNode) -> Node:
        function = ts_node.child_by_field_name("function")
        args_node = ts_node.child_by_field_name("arguments")
        callee = _callee_path(function)
        callee_nodes = self.convert(function) if function is not None else []
        arguments: list[Node] = []
        if args_node is not None:
            if args_node.type == "arguments":
                for child in args_node.children:
                    arguments.extend(self.convert(child))
            else:
                # Tagged template: fn`...`
                arguments.extend(self.convert(args_node))
        segments = callee.split(".")
        return self._node(
            NodeKind.CALL,
            ts_node,
            children=[*callee_nodes, *arguments],
            callee=callee,
            name=segments[-1].removesuffix("()"),
            receiver=segments[0].removesuffix("()") if len(segments) > 1 else None,
            arguments=tuple(arguments),
        )

    def _new(self, ts_node: TSNode) -> Node:
        constructor = ts_node.child_by_field_name("constructor")
        return self._node(
            NodeKind.NEW,
            ts_node,
            children=self._convert_children(ts_node),
            constructor=_callee_path(constructor),
        )

    def _function(self, ts_node: TSNode) -> Node:
        name_node = ts_node.child_by_field_name("name")
        name = _text(name_node) if name_node is not None else None
        is_async = _has_token(ts_node, "async")
        if is_async and name:
            self.async_functions.add(name)
        return self._node(
            NodeKind.FUNCTION,
            ts_node,
            children=self._convert_children(ts_node),
            name=name,
            params=_function_params(ts_node),
            is_async=is_async,
        )

    def _class(self, ts_node: TSNode) -> Node:
        name_node = ts_node.child_by_field_name("name")
        return self._node(
            NodeKind.CLASS,
            ts_node,
            children=self._convert_children(ts_node),
            name=_text(name_node) if name_node is not None else None,
        )

    def _own_decorators(self, ts_node: TSNode) -> tuple[str, ...]:
        return tuple(
            _decorator_name(child) for child in ts_node.children if child.type == "decorator"
        )

    def _method(self, ts_node: TSNode) -> Node:
        name_node = ts_node.child_by_field_name("name")
        accessor: str | None = None
        for token in ("get", "set"):
            if _has_token(ts_node, token, before=name_node):
                accessor = token
        name = _text(name_node)
        is_async = _has_token(ts_node, "async", before=name_node)
        if is_async and name:
            self.async_functions.add(name)
        return self._node(
            NodeKind.METHOD,
            ts_node,
            children=self._convert_children(ts_node),
            name=name,
            params=_function_params(ts_node),
            is_async=is_async,
            accessor=accessor,
            decorators=self._own_decorators(ts_node),
        )

    def _class_field(self, ts_node: TSNode) -> Node:
        name_node = ts_node.child_by_field_name("name") or ts_node.child_by_field_name("property")
        return self._node(
            NodeKind.CLASS_FIELD,
            ts_node,
            children=self._convert_children(ts_node),
            name=_text(name_node),
            decorators=self._own_decorators(ts_node),
        )

    def _decorator(self, ts_node: TSNode) -> Node:
        return self._node(
            NodeKind.DECORATOR,
            ts_node,
            children=self._convert_children(ts_node),
            name=_decorator_name(ts_node),
        )

    def _property(self, ts_node: TSNode) -> Node:
        if ts_node.type == "shorthand_property_identifier":
            return self._node(NodeKind.PROPERTY, ts_node, key=_text(ts_node), shorthand=True)
        key = _strip_quotes(_text(ts_node.child_by_field_name("key")))
        value = ts_node.child_by_field_name("value")
        children = self.convert(value) if value is not None else []
        return self._node(NodeKind.PROPERTY, ts_node, children=children, key=key, shorthand=False)

    def _string(self, ts_node: TSNode) -> Node:
        return self._node(NodeKind.STRING, ts_node, value=_strip_quotes(_text(ts_node)))

    def _template(self, ts_node: TSNode) -> Node:
        substitutions = [c for c in ts_node.named_children if c.type == "template_substitution"]
        children: list[Node] = []
        for sub in substitutions:
            for expr in sub.named_children:
                children.extend(self.convert(expr))
        return self._node(
            NodeKind.TEMPLATE,
            ts_node,
            children=children,
            value=_strip_quotes(_text(ts_node)),
            interpolations=len(substitutions),
        )

    def _variable(self, ts_node: TSNode) -> Node:
        name_node = ts_node.child_by_field_name("name")
        value = ts_node.child_by_field_name("value")
        name = _text(name_node)
        if value is not None and value.type in ("arrow_function", "function_expression"):
            if _has_token(value, "async"):
                self.async_functions.add(name)
        children = self.convert(value) if value is not None else []
        return self._node(NodeKind.VARIABLE, ts_node, children=children, name=name)

    def _assignment(self, ts_node: TSNode) -> Node:
        left = ts_node.child_by_field_name("left")
        return self._node(
            NodeKind.ASSIGNMENT,
            ts_node,
            children=self._convert_children(ts_node),
            target=_callee_path(left) if left is not None else "",
        )

    def _identifier(self, ts_node: TSNode) -> Node:
        return self._node(NodeKind.IDENTIFIER, ts_node, name=_text(ts_node))

    def _member(self, ts_node: TSNode) -> Node:
        obj = ts_node.child_by_field_name("object")
        children = self.convert(obj) if obj is not None else []
        return self._node(
            NodeKind.MEMBER,
            ts_node,
            children=children,
            path=_callee_path(ts_node),
            property=_text(ts_node.child_by_field_name("property")),
        )

    def _binary(self, ts_node: TSNode) -> Node:
        operator = ts_node.child_by_field_name("operator")
        return self._node(
            NodeKind.BINARY,
            ts_node,
            children=self._convert_children(ts_node),
            operator=operator.type if operator is not None else "",
        )


_BUILDERS: dict[str, Callable[[_Converter, TSNode], Node]] = {
    NodeKind.IMPORT: _Converter._import,
    NodeKind.CALL: _Converter._call,
    NodeKind.NEW: _Converter._new,
    NodeKind.FUNCTION: _Converter._function,
    NodeKind.CLASS: _Converter._class,
    NodeKind.METHOD: _Converter._method,
    NodeKind.CLASS_FIELD: _Converter._class_field,
    NodeKind.DECORATOR: _Converter._decorator,
    NodeKind.PROPERTY: _Converter._property,
    NodeKind.STRING: _Converter._string,
    NodeKind.TEMPLATE: _Converter._template,
    NodeKind.VARIABLE: _Converter._variable,
    NodeKind.ASSIGNMENT: _Converter._assignment,
    NodeKind.IDENTIFIER: _Converter._identifier,
    NodeKind.MEMBER: _Converter._member,
    NodeKind.BINARY: _Converter._binary,
}


def _first_error(root: TSNode) -> TSNode | None:
    """Return the first ERROR or MISSING node in document order."""
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            return node
        if node.has_error:
            stack.extend(reversed(node.children))
    return None


def parse_source(text: str, path: str) -> SourceUnit:
    """Parse *text* (the contents of *path*) into a :class:`SourceUnit`.

    Raises :class:`ParseError` when the extension is unsupported, the
    grammar is unavailable, or the tree contains syntax errors.  No partial
    recovery is attempted.
    """
    extension = Path(path).suffix
    config = get_lang_config(extension)
    if config is None:
        msg = f"no parser available for '{extension or path}'"
        raise ParseError(msg, path=path)

    parser = Parser(config.language)
    tree = parser.parse(text.encode("utf-8"))
    root = tree.root_node

    if root.has_error:
        bad = _first_error(root) or root
        what = f"missing '{bad.type}'" if bad.is_missing else "syntax error"
        msg = f"{what} (file skipped)"
        raise ParseError(
            msg,
            path=path,
            line=bad.start_point.row + 1,
            column=bad.start_point.column + 1,
        )

    converter = _Converter(path)
    converted = converter.convert(root)
    program = converted[0] if converted else Node(kind=NodeKind.PROGRAM, span=_span(root, path))
    logger.debug("Parsed %s with %s grammar", path, config.name)
    return SourceUnit(
        path=path,
        text=text,
        root=program,
        parsed=True,
        async_functions=frozenset(converter.async_functions),
    )


def load_source(file_path: Path, *, display_path: str | None = None) -> SourceUnit:
    """Read *file_path* and parse it.  Unreadable files raise :class:`ParseError`."""
    path = display_path or file_path.as_posix()
    try:
        text = file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        msg = f"cannot read file: {exc}"
        raise ParseError(msg, path=path) from exc
    return parse_source(text, path)
