"""Compare the schedulers, each followed by local improvement, on one graph."""

from __future__ import annotations

import argparse
import sys
import time
from collections.abc import Callable, Sequence
from pathlib import Path

from .graph import Graph, ScheduleError, peak_memory, read_graph
from .graph_analysis import graph_analysis_schedule
from .improve import IMPROVE_ROUNDS, Method, improve
from .schedulers import bfs_schedule, dfs_schedule, list_schedule, post_order_schedule

_SCHEDULERS: tuple[tuple[str, Callable[[Graph], list[int]]], ...] = (
    ("PostOrderMemoryScheduler", post_order_schedule),
    ("DFSMemoryScheduler", dfs_schedule),
    ("ListMemoryScheduler", list_schedule),
    ("BfsMemoryScheduler", bfs_schedule),
    ("GraphAnalysisScheduler", graph_analysis_schedule),
)


def run_all(
    graph: Graph,
    rounds: int = IMPROVE_ROUNDS,
    method: Method | int = Method.LIST,
) -> list[tuple[str, int, float]]:
    """Run every scheduler and then improve its order.

    Returns ``(name, peak memory, seconds)`` rows: each scheduler's row is
    followed by an ``"Improve"`` row for the improved order.
    """
    rows: list[tuple[str, int, float]] = []
    for name, schedule in _SCHEDULERS:
        began = time.perf_counter()
        order = schedule(graph)
        rows.append((name, peak_memory(graph, order), time.perf_counter() - began))
        began = time.perf_counter()
        improved = improve(graph, order, rounds, method)
        rows.append(("Improve", peak_memory(graph, improved), time.perf_counter() - began))
    return rows


def _report(rows: Sequence[tuple[str, int, float]]) -> str:
    lines = [""]
    for name, cost, seconds in rows:
        lines.append(f"{name}  Cost:{cost}  Time:{seconds * 1000:.3f}ms")
        if name == "Improve":
            lines.append("")
    return "\n".join(lines) + "\n"


def main(argv: Sequence[str] | None = None) -> int:
    """Report the peak memory each scheduler reaches on a graph file."""
    parser = argparse.ArgumentParser(
        description="Compare memory-aware schedulers on a weighted graph."
    )
    parser.add_argument("input", nargs="?", default="1.in", help="graph file to read")
    parser.add_argument("-o", "--output", help="write the report here instead of standard output")
    parser.add_argument("--rounds", type=int, default=IMPROVE_ROUNDS, help="improvement rounds")
    parser.add_argument(
        "--method",
        choices=[method.name.lower() for method in Method],
        default=Method.LIST.name.lower(),
        help="how improvement passes move nodes",
    )
    args = parser.parse_args(argv)

    try:
        graph = read_graph(args.input)
        rows = run_all(graph, args.rounds, Method[args.method.upper()])
    except (OSError, ScheduleError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    report = _report(rows)
    if args.output:
        Path(args.output).write_text(report)
    else:
        sys.stdout.write(report)
    return 0