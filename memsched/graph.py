"""Weighted computation graphs and peak-memory evaluation of schedules."""

from __future__ import annotations

import os
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path


class ScheduleError(ValueError):
    """Raised for malformed graphs and for schedules that cannot be evaluated."""


@dataclass
class Graph:
    """A directed graph whose edge weights are the sizes of produced tensors.

    A node's output stays in memory from the moment it runs until every one
    of its successors has run.
    """

    node_count: int
    edges: list[tuple[int, int, int]] = field(default_factory=list, init=False, repr=False)
    successors: list[list[tuple[int, int]]] = field(init=False, repr=False)
    predecessors: list[list[tuple[int, int]]] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.node_count < 0:
            raise ScheduleError(f"node count must not be negative: {self.node_count}")
        self.successors = [[] for _ in range(self.node_count)]
        self.predecessors = [[] for _ in range(self.node_count)]

    def add_edge(self, u: int, v: int, w: int) -> None:
        """Add an edge from ``u`` to ``v`` carrying ``w`` units of memory."""
        for node in (u, v):
            if not 0 <= node < self.node_count:
                raise ScheduleError(f"node {node} is outside 0..{self.node_count - 1}")
        self.edges.append((u, v, w))
        self.successors[u].append((v, w))
        self.predecessors[v].append((u, w))

    def out_value(self, node: int) -> int:
        """Total weight of the edges leaving ``node``."""
        return sum(w for _, w in self.successors[node])


def parse_graph(text: str) -> Graph:
    """Parse ``n m`` followed by ``m`` lines of ``u v w``."""
    tokens = text.split()
    try:
        numbers = [int(token) for token in tokens]
    except ValueError as exc:
        raise ScheduleError(f"graph text holds a non-integer token: {exc}") from None
    if len(numbers) < 2:
        raise ScheduleError("graph text must start with the node and edge counts")
    n, m = numbers[0], numbers[1]
    if m < 0:
        raise ScheduleError(f"edge count must not be negative: {m}")
    body = numbers[2:]
    if len(body) < 3 * m:
        raise ScheduleError(f"expected {m} edges, found only {len(body) // 3}")
    graph = Graph(n)
    for u, v, w in zip(body[0:3 * m:3], body[1:3 * m:3], body[2:3 * m:3]):
        graph.add_edge(u, v, w)
    return graph


def read_graph(path: str | os.PathLike[str]) -> Graph:
    """Read a graph in the text format accepted by :func:`parse_graph`."""
    return parse_graph(Path(path).read_text())


def format_graph(graph: Graph) -> str:
    """Render ``graph`` in the text format accepted by :func:`parse_graph`."""
    lines = [f"{graph.node_count} {len(graph.edges)}"]
    lines.extend(f"{u} {v} {w}" for u, v, w in graph.edges)
    return "\n".join(lines) + "\n"


def graph_from_nodes(
    nodes: Sequence[Mapping[str, Sequence[str]]],
    outputs: Mapping[str, Sequence[int]],
) -> Graph:
    """Build a graph from operator descriptions.

    Each node maps ``"name"`` to a one-element list and ``"input"`` and
    ``"output"`` to tensor names. ``outputs`` gives each tensor's size as its
    first element. Only the first consumer of a tensor carries its size; later
    consumers get weight zero. Edges are grouped by tensor name in sorted order.
    """
    ids: dict[str, int] = {}
    producer: dict[str, int] = {}
    for spec in nodes:
        name = spec["name"][0]
        ids.setdefault(name, len(ids))
        for tensor in spec.get("output", ()):
            producer[tensor] = ids[name]

    consumers: dict[str, list[tuple[int, int, int]]] = {}
    for spec in nodes:
        target = ids[spec["name"][0]]
        for tensor in spec.get("input", ()):
            try:
                size = outputs[tensor][0]
            except (KeyError, IndexError):
                raise ScheduleError(f"no size given for tensor {tensor!r}") from None
            edges = consumers.setdefault(tensor, [])
            edges.append((producer.get(tensor, 0), target, 0 if edges else size))

    graph = Graph(len(nodes))
    for tensor in sorted(consumers):
        for u, v, w in consumers[tensor]:
            graph.add_edge(u, v, w)
    return graph


def peak_memory(graph: Graph, order: Iterable[int]) -> int:
    """Return the peak memory needed to run ``order``.

    Raises :class:`ScheduleError` if the order does not name as many nodes as
    the graph holds or is not a topological order.
    """
    order = list(order)
    if len(order) != graph.node_count:
        raise ScheduleError("schedule does not cover every node")
    values = [graph.out_value(node) for node in range(graph.node_count)]
    pending_in = [len(preds) for preds in graph.predecessors]
    pending_out = [len(succs) for succs in graph.successors]

    current = peak = 0
    for node in order:
        if not 0 <= node < graph.node_count:
            raise ScheduleError(f"node {node} is outside 0..{graph.node_count - 1}")
        if pending_in[node]:
            raise ScheduleError("schedule is not a topological order")
        current += values[node]
        peak = max(peak, current)
        for v, _ in graph.successors[node]:
            pending_in[v] -= 1
        for u, _ in graph.predecessors[node]:
            pending_out[u] -= 1
            if not pending_out[u]:
                current -= values[u]
    return peak