"""
Named-parameter rewriting: ``:key`` placeholders to driver-ready SQL.

Two passes: ``scan`` splits a template into literal and placeholder nodes,
then a dialect-specific substitution pass produces a ``BoundQuery``.

- ``bind_positional``: ``:key`` -> ``$1, $2, ...`` plus an ordered value tuple.
  Values never become part of the SQL text.
- ``bind_inline``: ``:key`` -> escaped literal produced by the dialect's escape
  function. Strictly less safe than positional binding: correctness depends
  entirely on the escape routine.

Placeholders whose name is not a key of ``params`` are left verbatim.
Scanning is lexical only; ``:name`` inside quoted literals is matched too.
"""

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from boilerplate.db.errors import InvalidStatement

_PLACEHOLDER = re.compile(r":(\w+)")


@dataclass(frozen=True)
class Literal:
    text: str


@dataclass(frozen=True)
class Placeholder:
    name: str
    raw: str


Node = Literal | Placeholder


@dataclass(frozen=True)
class BoundQuery:
    """Query text ready for the driver plus positional values (may be empty)."""

    text: str
    values: tuple[Any, ...] = field(default_factory=tuple)


def scan(template: str) -> list[Node]:
    """Split *template* into ``Literal`` and ``Placeholder`` nodes, left to right."""
    nodes: list[Node] = []
    pos = 0
    for match in _PLACEHOLDER.finditer(template):
        if match.start() > pos:
            nodes.append(Literal(template[pos : match.start()]))
        nodes.append(Placeholder(name=match.group(1), raw=match.group(0)))
        pos = match.end()
    if pos < len(template):
        nodes.append(Literal(template[pos:]))
    return nodes


def _check_params(params: Any) -> Mapping[str, Any] | None:
    if params is None:
        return None
    if not isinstance(params, Mapping):
        raise InvalidStatement(
            f"Query parameters must be a mapping, got {type(params).__name__}"
        )
    return params


def assign_markers(nodes: list[Node], params: Mapping[str, Any]) -> dict[str, int]:
    """Marker number per distinct bound identifier, in first-occurrence order."""
    markers: dict[str, int] = {}
    for node in nodes:
        if isinstance(node, Placeholder) and node.name in params:
            if node.name not in markers:
                markers[node.name] = len(markers) + 1
    return markers


def bind_positional(template: str, params: Mapping[str, Any] | None = None) -> BoundQuery:
    """Rewrite ``:key`` to ``$n``; repeated keys reuse their marker."""
    params = _check_params(params)
    if not params:
        return BoundQuery(template)

    nodes = scan(template)
    markers = assign_markers(nodes, params)
    parts: list[str] = []
    for node in nodes:
        if isinstance(node, Placeholder) and node.name in markers:
            parts.append(f"${markers[node.name]}")
        elif isinstance(node, Placeholder):
            parts.append(node.raw)
        else:
            parts.append(node.text)

    # markers is insertion-ordered by marker number
    values = tuple(params[name] for name in markers)
    return BoundQuery("".join(parts), values)


def bind_inline(
    template: str,
    params: Mapping[str, Any] | None,
    escape: Callable[[Any], str],
) -> BoundQuery:
    """Rewrite ``:key`` to ``escape(params[key])``; no values are returned."""
    params = _check_params(params)
    if not params:
        return BoundQuery(template)

    parts: list[str] = []
    for node in scan(template):
        if isinstance(node, Placeholder):
            parts.append(escape(params[node.name]) if node.name in params else node.raw)
        else:
            parts.append(node.text)
    return BoundQuery("".join(parts))
