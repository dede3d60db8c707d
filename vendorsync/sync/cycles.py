"""Cycle detection over internal vendor mappings.

Every internal mapping is an edge from its source file to its destination
file. A cycle means a sync could feed its own output back into its input, so
the configuration is rejected before any sync runs. Positions are stripped:
any write to a file can invalidate every read from it.
"""

from __future__ import annotations

from vendorsync.errors import CycleError
from vendorsync.models.vendor import VendorConfig
from vendorsync.position.address import strip_position
from vendorsync.store.filesystem import normalize_path

_WHITE, _GRAY, _BLACK = 0, 1, 2


def build_mapping_graph(config: VendorConfig) -> dict[str, list[str]]:
    """Adjacency list ``source file -> [destination files]`` for internal vendors.

    Remote vendors contribute nothing; mappings without an explicit
    destination are skipped.
    """
    graph: dict[str, list[str]] = {}
    for vendor in config.vendors:
        if not vendor.is_internal:
            continue
        for spec in vendor.specs:
            for mapping in spec.mapping:
                if not mapping.to_path:
                    continue
                src = normalize_path(strip_position(mapping.from_path))
                dest = normalize_path(strip_position(mapping.to_path))
                neighbours = graph.setdefault(src, [])
                if dest not in neighbours:
                    neighbours.append(dest)
    return graph


def find_cycle(graph: dict[str, list[str]]) -> list[str] | None:
    """Return the first cycle found as ``[a, b, ..., a]``, or None.

    Depth-first search with an explicit stack, so long mapping chains do not
    hit the recursion limit.
    """
    color: dict[str, int] = {}

    for root in graph:
        if color.get(root, _WHITE) != _WHITE:
            continue

        path = [root]
        pending = [iter(graph.get(root, []))]
        color[root] = _GRAY

        while pending:
            neighbour = next(pending[-1], None)
            if neighbour is None:
                color[path.pop()] = _BLACK
                pending.pop()
                continue

            state = color.get(neighbour, _WHITE)
            if state == _GRAY:
                return path[path.index(neighbour) :] + [neighbour]
            if state == _WHITE:
                color[neighbour] = _GRAY
                path.append(neighbour)
                pending.append(iter(graph.get(neighbour, [])))
    return None


def detect_internal_cycles(config: VendorConfig) -> None:
    """Raise ``CycleError`` if internal mappings form a circular dependency."""
    cycle = find_cycle(build_mapping_graph(config))
    if cycle:
        raise CycleError(cycle)
