"""Exact minimum peak memory by dynamic programming over node subsets."""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from pathlib import Path

from .graph import Graph, ScheduleError, read_graph

INF = 0x3F3F3F3F
MAX_NODES = 27


def optimal_peak_memory(graph: Graph) -> int:
    """Return the smallest peak memory over all topological orders of ``graph``.

    The state space has ``2 ** n`` entries, so at most :data:`MAX_NODES` nodes
    are accepted.
    """
    n = graph.node_count
    if n > MAX_NODES:
        raise ScheduleError(f"graph has {n} nodes, at most {MAX_NODES} are supported")
    if n == 0:
        return 0

    in_mask = [0] * n
    out_mask = [0] * n
    values = [0] * n
    parents: list[list[int]] = [[] for _ in range(n)]
    for u, v, w in graph.edges:
        if not in_mask[v] & (1 << u):
            parents[v].append(u)
        in_mask[v] |= 1 << u
        out_mask[u] |= 1 << v
        values[u] += w

    size = 1 << n
    current = [INF] * size
    peak = [INF] * size
    for node in range(n):
        if not in_mask[node]:
            current[1 << node] = peak[1 << node] = values[node]

    for state in range(size):
        memory = current[state]
        if memory >= INF:
            continue
        best = peak[state]
        for node in range(n):
            bit = 1 << node
            if state & bit or (in_mask[node] & state) != in_mask[node]:
                continue
            nxt = state | bit
            grown = memory + values[node]
            new_peak = max(grown, best)
            if new_peak > peak[nxt]:
                continue
            if current[nxt] >= INF:
                grown -= sum(
                    values[parent]
                    for parent in parents[node]
                    if (nxt & out_mask[parent]) == out_mask[parent]
                )
            else:
                grown = current[nxt]
            peak[nxt] = new_peak
            current[nxt] = grown

    result = peak[size - 1]
    if result >= INF:
        raise ScheduleError("graph has no topological order")
    return result


def main(argv: Sequence[str] | None = None) -> int:
    """Read a graph file and write its minimum peak memory to another file."""
    parser = argparse.ArgumentParser(
        description="Compute the minimum peak memory over all schedules of a graph."
    )
    parser.add_argument("input", nargs="?", default="50.in", help="graph file to read")
    parser.add_argument("output", nargs="?", default="50dp.out", help="file to write")
    args = parser.parse_args(argv)
    graph = read_graph(args.input)
    Path(args.output).write_text(f"{optimal_peak_memory(graph)}\n")
    return 0