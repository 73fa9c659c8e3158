import random

import pytest

from memsched.generators import (
    edge_subsamples,
    main,
    node_subsamples,
    random_tree,
    relabel,
)
from memsched.graph import ScheduleError, format_graph, read_graph
from memsched.schedulers import bfs_schedule


def _tree(seed=1, n=20, m=30):
    return random_tree(n, m, 1, 200, random.Random(seed))


def test_random_tree_shape():
    graph = _tree()
    assert graph.node_count == 20
    assert len(graph.edges) == 30
    tree_edges = graph.edges[:19]
    assert [v for _, v, _ in tree_edges] == list(range(1, 20))
    assert all(u < v for u, v, _ in graph.edges)
    assert all(1 <= w <= 200 for _, _, w in graph.edges)


def test_random_tree_is_acyclic():
    graph = _tree(seed=5)
    assert sorted(bfs_schedule(graph)) == list(range(20))


def test_random_tree_reproducible():
    first = _tree(seed=3)
    second = _tree(seed=3)
    assert first.edges == second.edges
    assert len(first.edges) == 30
    text = format_graph(first)
    assert text.split()[:2] == ["20", "30"]
    assert text == format_graph(second)


@pytest.mark.parametrize("n, m", [(5, 3), (1, 1), (0, 0)])
def test_random_tree_rejects_bad_sizes(n, m):
    with pytest.raises(ScheduleError):
        random_tree(n, m, 1, 10, random.Random(0))


def test_random_tree_rejects_bad_weights():
    with pytest.raises(ValueError):
        random_tree(5, 6, 10, 1, random.Random(0))


def test_relabel_maps_in_order_of_first_appearance():
    graph = relabel([(5, 7, 1), (7, 9, 1), (5, 9, 1)], 3, 7, 7, random.Random(0))
    assert graph.node_count == 3
    assert graph.edges == [(0, 1, 7), (0, 2, 7), (1, 2, 7)]


def test_relabel_rejects_too_few_nodes():
    with pytest.raises(ScheduleError):
        relabel([(5, 7, 1), (7, 9, 1)], 2, 1, 1, random.Random(0))


def test_edge_subsamples():
    source = _tree(seed=2)
    samples = edge_subsamples(source, 1, 100, random.Random(4))
    assert list(samples) == ["80e", "60e", "40e", "20e"]
    counts = [len(source.edges)] + [len(g.edges) for g in samples.values()]
    assert all(a - b == len(source.edges) // 5 for a, b in zip(counts, counts[1:]))
    for graph in samples.values():
        assert graph.node_count == source.node_count
        pairs = [(u, v) for u, v, _ in graph.edges]
        assert pairs == sorted(pairs)
        assert all(1 <= w <= 100 for _, _, w in graph.edges)


def test_node_subsamples():
    source = _tree(seed=6)
    samples = node_subsamples(source, 1, 100, random.Random(8))
    assert list(samples) == ["80", "60", "40", "20"]
    nodes = [source.node_count] + [g.node_count for g in samples.values()]
    assert all(a - b == source.node_count // 5 for a, b in zip(nodes, nodes[1:]))
    edge_counts = [len(g.edges) for g in samples.values()]
    assert edge_counts == sorted(edge_counts, reverse=True)
    for graph in samples.values():
        assert all(u < graph.node_count and v < graph.node_count for u, v, _ in graph.edges)
        pairs = [(u, v) for u, v, _ in graph.edges]
        assert pairs == sorted(pairs)


def test_main_tree(tmp_path):
    out = tmp_path / "g.in"
    assert main(["tree", "--nodes", "5", "--edges", "7", "--output", str(out), "--seed", "1"]) == 0
    graph = read_graph(out)
    assert graph.node_count == 5
    assert len(graph.edges) == 7


def test_main_tree_rejects_bad_sizes(tmp_path):
    with pytest.raises(SystemExit):
        main(["tree", "--nodes", "5", "--edges", "2", "--output", str(tmp_path / "x.in")])


@pytest.mark.parametrize(
    "command, labels",
    [("edges", ["80e", "60e", "40e", "20e"]), ("nodes", ["80", "60", "40", "20"])],
)
def test_main_subsamples(tmp_path, command, labels):
    source = tmp_path / "src.in"
    source.write_text(format_graph(_tree(seed=9)))
    prefix = str(tmp_path / "out")
    assert main([command, str(source), "--prefix", prefix, "--seed", "2"]) == 0
    graphs = [read_graph(f"{prefix}-{label}.in") for label in labels]
    assert all(len(g.edges) <= 30 for g in graphs)
    assert [g.node_count for g in graphs] == sorted(
        (g.node_count for g in graphs), reverse=True
    )