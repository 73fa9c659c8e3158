"""Random graph generation and subsampling of existing graphs."""

from __future__ import annotations

import argparse
import os
import random
from collections.abc import Iterable, Sequence
from pathlib import Path

from .graph import Graph, ScheduleError, format_graph, read_graph

TREE_NODES = 20
TREE_EDGES = 30
TREE_MIN_WEIGHT = 1
TREE_MAX_WEIGHT = 200
SAMPLE_MIN_WEIGHT = 1
SAMPLE_MAX_WEIGHT = 100
_PERCENTS = (80, 60, 40, 20)


def _check_weights(min_weight: int, max_weight: int) -> None:
    if min_weight > max_weight:
        raise ValueError(f"minimum weight {min_weight} exceeds maximum {max_weight}")


def random_tree(
    n: int = TREE_NODES,
    m: int = TREE_EDGES,
    min_weight: int = TREE_MIN_WEIGHT,
    max_weight: int = TREE_MAX_WEIGHT,
    rng: random.Random | None = None,
) -> Graph:
    """Return a random tree on ``n`` nodes plus extra forward edges, ``m`` in all.

    Node ``i`` hangs below a random earlier node; each extra edge joins two
    distinct random nodes, from the smaller index to the larger.
    """
    if n < 1:
        raise ScheduleError(f"a tree needs at least one node, got {n}")
    if m < n - 1:
        raise ScheduleError(f"{m} edges cannot hold a tree on {n} nodes")
    if n < 2 and m > n - 1:
        raise ScheduleError("extra edges need at least two nodes")
    _check_weights(min_weight, max_weight)
    rng = rng if rng is not None else random.Random()

    graph = Graph(n)
    for child in range(1, n):
        parent = rng.randint(0, child - 1)
        graph.add_edge(parent, child, rng.randint(min_weight, max_weight))
    for _ in range(n - 1, m):
        u = rng.randint(0, n - 1)
        v = rng.randint(0, n - 1)
        while u == v:
            v = rng.randint(0, n - 1)
        u, v = min(u, v), max(u, v)
        graph.add_edge(u, v, rng.randint(min_weight, max_weight))
    return graph


def relabel(
    edges: Iterable[Sequence[int]],
    node_count: int,
    min_weight: int = SAMPLE_MIN_WEIGHT,
    max_weight: int = SAMPLE_MAX_WEIGHT,
    rng: random.Random | None = None,
) -> Graph:
    """Renumber edge endpoints by first appearance and draw fresh weights.

    The renumbered edges are sorted before their weights are drawn. Old
    weights are ignored.
    """
    _check_weights(min_weight, max_weight)
    rng = rng if rng is not None else random.Random()
    ids: dict[int, int] = {}
    pairs = []
    for u, v, *_ in edges:
        a = ids.setdefault(u, len(ids))
        b = ids.setdefault(v, len(ids))
        pairs.append((a, b))
    pairs.sort()

    graph = Graph(node_count)
    for a, b in pairs:
        graph.add_edge(a, b, rng.randint(min_weight, max_weight))
    return graph


def edge_subsamples(
    graph: Graph,
    min_weight: int = SAMPLE_MIN_WEIGHT,
    max_weight: int = SAMPLE_MAX_WEIGHT,
    rng: random.Random | None = None,
) -> dict[str, Graph]:
    """Drop a fifth of the original edges four times in a row.

    Returns the relabelled graphs under the keys ``"80e"``, ``"60e"``,
    ``"40e"`` and ``"20e"``; each keeps the original node count.
    """
    rng = rng if rng is not None else random.Random()
    drop = len(graph.edges) // 5
    edges = list(graph.edges)
    samples: dict[str, Graph] = {}
    for percent in _PERCENTS:
        rng.shuffle(edges)
        edges = edges[drop:]
        samples[f"{percent}e"] = relabel(edges, graph.node_count, min_weight, max_weight, rng)
    return samples


def node_subsamples(
    graph: Graph,
    min_weight: int = SAMPLE_MIN_WEIGHT,
    max_weight: int = SAMPLE_MAX_WEIGHT,
    rng: random.Random | None = None,
) -> dict[str, Graph]:
    """Remove a fifth of the original nodes four times in a row.

    Edges touching a removed node go with it. Returns the relabelled graphs
    under the keys ``"80"``, ``"60"``, ``"40"`` and ``"20"``; each declares
    as many nodes as remain.
    """
    rng = rng if rng is not None else random.Random()
    drop = graph.node_count // 5
    alive = list(range(graph.node_count))
    banned: set[int] = set()
    edges = list(graph.edges)
    samples: dict[str, Graph] = {}
    for percent in _PERCENTS:
        rng.shuffle(alive)
        banned.update(alive[:drop])
        alive = alive[drop:]
        edges = [edge for edge in edges if edge[0] not in banned and edge[1] not in banned]
        samples[str(percent)] = relabel(edges, len(alive), min_weight, max_weight, rng)
    return samples


def _write(path: str | os.PathLike[str], graph: Graph) -> None:
    Path(path).write_text(format_graph(graph) + "\n")


def _add_weights(parser: argparse.ArgumentParser, low: int, high: int) -> None:
    parser.add_argument("--min-weight", type=int, default=low)
    parser.add_argument("--max-weight", type=int, default=high)
    parser.add_argument("--seed", type=int, default=None, help="random seed")


def main(argv: Sequence[str] | None = None) -> int:
    """Generate random graphs or subsample an existing one."""
    parser = argparse.ArgumentParser(description="Generate and subsample weighted graphs.")
    commands = parser.add_subparsers(dest="command", required=True)

    tree = commands.add_parser("tree", help="random tree with extra edges")
    tree.add_argument("--nodes", type=int, default=TREE_NODES)
    tree.add_argument("--edges", type=int, default=TREE_EDGES)
    tree.add_argument("--output", default="1.in")
    _add_weights(tree, TREE_MIN_WEIGHT, TREE_MAX_WEIGHT)

    for name, text in (("edges", "drop edges"), ("nodes", "drop nodes")):
        sub = commands.add_parser(name, help=f"{text} in steps of a fifth")
        sub.add_argument("input", nargs="?", default="1.in")
        sub.add_argument("--prefix", default="1")
        sub.add_argument("--suffix", default=".in")
        _add_weights(sub, SAMPLE_MIN_WEIGHT, SAMPLE_MAX_WEIGHT)

    args = parser.parse_args(argv)
    rng = random.Random(args.seed)
    try:
        if args.command == "tree":
            graph = random_tree(args.nodes, args.edges, args.min_weight, args.max_weight, rng)
            _write(args.output, graph)
        else:
            sample = edge_subsamples if args.command == "edges" else node_subsamples
            source = read_graph(args.input)
            for label, graph in sample(source, args.min_weight, args.max_weight, rng).items():
                _write(f"{args.prefix}-{label}{args.suffix}", graph)
    except ValueError as exc:
        parser.error(str(exc))
    return 0