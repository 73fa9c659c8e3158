"""Simple heuristics that produce topological orders of a graph."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Sequence

from sortedcontainers import SortedList

from .graph import Graph

_CAP = 0x3F3F3F3F3F3F3F3F


def _post_order(
    successors: Sequence[Sequence[tuple[int, int]]],
    roots: Iterable[int],
    visited: list[bool],
) -> list[int]:
    """Depth-first post order from each unvisited root, children in edge order."""
    order: list[int] = []
    for root in roots:
        if visited[root]:
            continue
        visited[root] = True
        stack = [(root, iter(successors[root]))]
        while stack:
            node, children = stack[-1]
            for child, _ in children:
                if not visited[child]:
                    visited[child] = True
                    stack.append((child, iter(successors[child])))
                    break
            else:
                stack.pop()
                order.append(node)
    return order


def post_order_schedule(graph: Graph) -> list[int]:
    """Reverse post order of a depth-first search started at nodes 0, 1, ..."""
    n = graph.node_count
    order = _post_order(graph.successors, range(n), [False] * n)
    order.reverse()
    return order


def dfs_schedule(graph: Graph) -> list[int]:
    """Depth-first order that enters the heaviest subgraphs first.

    Each node is weighted by the extra fan-out and total output size reachable
    from it; roots and children are visited in decreasing weight.
    """
    n = graph.node_count
    weights = [
        [max(0, len(graph.successors[i]) - 1), graph.out_value(i)] for i in range(n)
    ]
    for node in _post_order(graph.successors, range(n), [False] * n):
        for child, _ in graph.successors[node]:
            weights[node][0] = min(_CAP, weights[node][0] + weights[child][0])
            weights[node][1] = min(_CAP, weights[node][1] + weights[child][1])

    ranked = sorted(range(n), key=lambda i: (-weights[i][0], -weights[i][1], i))
    rank = [0] * n
    for position, node in enumerate(ranked):
        rank[node] = position
    successors = [sorted(succs, key=lambda edge: rank[edge[0]]) for succs in graph.successors]

    order = _post_order(successors, ranked, [False] * n)
    order.reverse()
    return order


def list_schedule(graph: Graph) -> list[int]:
    """Greedy list scheduling that prefers nodes whose execution frees memory.

    Among ready nodes, the one that would release the most memory comes first,
    then the one with more successors, then the one with the larger index.
    """
    n = graph.node_count
    values = [graph.out_value(i) for i in range(n)]
    pending_in = [len(preds) for preds in graph.predecessors]
    pending_out = [len(succs) for succs in graph.successors]
    fan_out = list(pending_out)
    freeable = [0] * n
    queued = [False] * n
    done = [False] * n

    def key(node: int) -> tuple[int, int, int]:
        return (-freeable[node], -fan_out[node], -node)

    ready = SortedList(key=key)
    for node in range(n):
        if not pending_in[node]:
            ready.add(node)
            queued[node] = True

    order: list[int] = []
    while ready:
        node = ready.pop(0)
        queued[node] = False
        done[node] = True
        order.append(node)

        for child, _ in graph.successors[node]:
            pending_in[child] -= 1
            if not pending_in[child]:
                queued[child] = True
                ready.add(child)

        for parent, _ in graph.predecessors[node]:
            pending_out[parent] -= 1
            if pending_out[parent] != 1:
                continue
            for other, _ in graph.successors[parent]:
                if done[other]:
                    continue
                was_queued = queued[other]
                if was_queued:
                    ready.remove(other)
                freeable[other] += values[parent]
                if was_queued:
                    ready.add(other)
    return order


def bfs_schedule(graph: Graph) -> list[int]:
    """Kahn's topological sort with a first-in first-out queue."""
    pending_in = [len(preds) for preds in graph.predecessors]
    ready = deque(node for node in range(graph.node_count) if not pending_in[node])
    order: list[int] = []
    while ready:
        node = ready.popleft()
        order.append(node)
        for child, _ in graph.successors[node]:
            pending_in[child] -= 1
            if not pending_in[child]:
                ready.append(child)
    return order