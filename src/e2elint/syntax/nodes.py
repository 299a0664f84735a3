"""Parser-independent node model that rules traverse."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterator


class NodeKind:
    """Normalized node kind vocabulary.

    Rules only ever compare against these names; the adapter maps the
    underlying grammar's node types onto them.
    """

    PROGRAM = "program"
    IMPORT = "import"
    CALL = "call"
    NEW = "new"
    AWAIT = "await"
    EXPRESSION_STATEMENT = "expression_statement"
    BLOCK = "block"
    FUNCTION = "function"
    CLASS = "class"
    CLASS_FIELD = "class_field"
    METHOD = "method"
    DECORATOR = "decorator"
    OBJECT = "object"
    PROPERTY = "property"
    ARRAY = "array"
    STRING = "string"
    TEMPLATE = "template"
    VARIABLE = "variable"
    ASSIGNMENT = "assignment"
    IDENTIFIER = "identifier"
    MEMBER = "member"
    BINARY = "binary"
    RETURN = "return"
    OTHER = "other"


ALL_KINDS: frozenset[str] = frozenset(
    value for name, value in vars(NodeKind).items() if name.isupper()
)


@dataclass(frozen=True)
class Span:
    """Source location of a node.

    Lines and columns are 1-based; offsets are 0-based byte offsets.
    """

    path: str
    start_line: int
    start_column: int
    end_line: int
    end_column: int
    start_offset: int = 0
    end_offset: int = 0

    def sort_key(self) -> tuple[int, int, int, int]:
        return (self.start_line, self.start_column, self.end_line, self.end_column)

    def to_dict(self) -> dict[str, int]:
        return {
            "start_line": self.start_line,
            "start_column": self.start_column,
            "end_line": self.end_line,
            "end_column": self.end_column,
        }


@dataclass(eq=False)
class Node:
    """One element of a normalized syntax tree.

    ``payload`` carries kind-specific data.  Notable keys:

    - ``call``: ``callee`` (dotted path, ``()`` marks an intermediate call,
      e.g. ``page.getByRole().click``), ``name`` (last segment),
      ``receiver`` (first segment, ``None`` for bare calls), ``arguments``
      (tuple of argument nodes, also present in ``children``).
    - ``new``: ``constructor`` (class name).
    - ``import``: ``specifier``.
    - ``function`` / ``method``: ``name``, ``params`` (tuple of bound
      parameter names, destructured fixture keys included), ``is_async``.
    - ``method`` / ``class_field``: ``decorators`` (tuple of names),
      ``accessor`` (``"get"``/``"set"``/``None``, methods only).
    - ``string`` / ``template``: ``value``; templates add ``interpolations``.
    - ``variable``: ``name``; ``assignment``: ``target``;
      ``property``: ``key``; ``identifier``: ``name``; ``member``: ``path``;
      ``binary``: ``operator``; ``decorator``: ``name``; ``class``: ``name``.
    """

    kind: str
    span: Span
    text: str = ""
    children: list[Node] = field(default_factory=list)
    payload: dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        return self.payload.get(key, default)

    @property
    def arguments(self) -> tuple[Node, ...]:
        return tuple(self.payload.get("arguments", ()))

    def walk(self) -> Iterator[Node]:
        """Yield this node and all descendants in document order."""
        stack: list[Node] = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def find_all(self, kind: str) -> Iterator[Node]:
        """Yield descendants (not ``self``) of the given kind in document order."""
        for node in self.walk():
            if node is not self and node.kind == kind:
                yield node

    def __repr__(self) -> str:
        return f"Node({self.kind!r}, line={self.span.start_line}, text={self.text[:40]!r})"


@dataclass(eq=False)
class SourceUnit:
    """One analyzed file and the tree it owns for the duration of analysis."""

    path: str
    text: str
    root: Node | None
    parsed: bool = True
    # Names of functions and methods declared ``async`` anywhere in the file.
    async_functions: frozenset[str] = frozenset()
