# src/cleansheet/validator/dependency_graph.py
"""
@brief
Task dependency graph and cycle detection.

@details
Nodes are task identifiers; an edge runs from a task to every identifier in its
`Dependencies` cell. References to unknown tasks are dead ends. Cycles are
found with a depth-first search that keeps a visited set and a recursion
stack: reaching a node that is still on the stack closes a cycle, and the
cyclic suffix of the current path is recorded. The search is iterative so very
long dependency chains cannot exhaust the interpreter stack.
"""

from __future__ import annotations

from collections.abc import Sequence

from cleansheet.schemas.models import EntityKind, Finding, Severity, Task
from cleansheet.validator.parsing import split_list

_EXHAUSTED = object()


def build_dependency_graph(tasks: Sequence[Task]) -> dict[str, list[str]]:
    """
    @brief
    Build the adjacency map in task order.

    @details
    Rows without an identifier are skipped. When an identifier repeats, the
    last row's dependencies win while the node keeps its first position.
    """
    graph: dict[str, list[str]] = {}
    for task in tasks:
        if not task.row_id:
            continue
        graph[task.row_id] = split_list(task.dependencies)
    return graph


def _canonical(cycle: list[str]) -> tuple[str, ...]:
    pivot = cycle.index(min(cycle))
    return tuple(cycle[pivot:] + cycle[:pivot])


def find_cycles(graph: dict[str, list[str]]) -> list[list[str]]:
    """
    @brief
    Return every distinct cycle reachable by DFS, in discovery order.

    @details
    DFS restarts from each unvisited node in graph order; fully explored nodes
    are never entered again, so the walk is O(nodes + edges). A cycle reached
    through different rotations is reported once.

    @returns
        List of cycles, each a list of task ids without the closing repeat.
    """
    visited: set[str] = set()
    on_stack: set[str] = set()
    seen: set[tuple[str, ...]] = set()
    cycles: list[list[str]] = []

    for root in graph:
        if root in visited:
            continue

        # (1) Enter the root
        path = [root]
        visited.add(root)
        on_stack.add(root)
        frames = [iter(graph[root])]

        while frames:
            neighbor = next(frames[-1], _EXHAUSTED)

            # (2) All edges of the current node explored: leave it
            if neighbor is _EXHAUSTED:
                frames.pop()
                on_stack.discard(path.pop())
                continue

            # (3) Unknown ids are dead ends
            if neighbor not in graph:
                continue

            # (4) Back edge closes a cycle
            if neighbor in on_stack:
                cycle = path[path.index(neighbor) :]
                key = _canonical(cycle)
                if key not in seen:
                    seen.add(key)
                    cycles.append(cycle)
                continue

            if neighbor in visited:
                continue

            # (5) Descend
            visited.add(neighbor)
            on_stack.add(neighbor)
            path.append(neighbor)
            frames.append(iter(graph[neighbor]))

    return cycles


def render_cycle(cycle: Sequence[str]) -> str:
    """T1 → T2 → T1"""
    return " → ".join([*cycle, cycle[0]])


def check_circular_dependencies(tasks: Sequence[Task]) -> list[Finding]:
    """One error per task on each detected cycle, carrying the full chain."""
    findings: list[Finding] = []
    for cycle in find_cycles(build_dependency_graph(tasks)):
        chain = render_cycle(cycle)
        for task_id in cycle:
            findings.append(
                Finding(
                    entity=EntityKind.TASKS,
                    row_id=task_id,
                    field="Dependencies",
                    message=f"Circular dependency detected: {chain}",
                    severity=Severity.ERROR,
                    context={"cycle": list(cycle)},
                )
            )
    return findings


__all__ = ["build_dependency_graph", "find_cycles", "render_cycle", "check_circular_dependencies"]
