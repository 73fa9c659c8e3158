import random

import pytest

from memsched.graph import Graph, ScheduleError, parse_graph, peak_memory
from memsched.schedulers import (
    bfs_schedule,
    dfs_schedule,
    list_schedule,
    post_order_schedule,
)

SCHEDULERS = [post_order_schedule, dfs_schedule, list_schedule, bfs_schedule]

DIAMOND = "4 4\n0 1 1\n0 2 1\n1 3 5\n2 3 1\n"

EXAMPLE_EIGHT = (
    "8 9\n0 1 10\n1 2 10\n2 3 10\n0 4 0\n4 5 40\n5 3 10\n0 6 0\n6 7 10\n7 3 10\n"
)

EXAMPLE_MULTI = "5 7\n0 1 22\n1 2 21\n1 3 20\n2 4 24\n1 3 21\n1 3 22\n1 4 22\n"


def _random_dag(seed, n=12, m=20):
    rng = random.Random(seed)
    graph = Graph(n)
    for _ in range(m):
        u, v = sorted(rng.sample(range(n), 2))
        graph.add_edge(u, v, rng.randint(1, 50))
    return graph


def _assert_topological(graph, order):
    assert sorted(order) == list(range(graph.node_count))
    position = {node: i for i, node in enumerate(order)}
    for u, v, _ in graph.edges:
        assert position[u] < position[v]


GRAPHS = [
    parse_graph(DIAMOND),
    parse_graph(EXAMPLE_EIGHT),
    parse_graph(EXAMPLE_MULTI),
    *(_random_dag(seed) for seed in range(5)),
]


@pytest.mark.parametrize("scheduler", SCHEDULERS)
@pytest.mark.parametrize("graph", GRAPHS)
def test_schedule_is_topological(scheduler, graph):
    order = scheduler(graph)
    _assert_topological(graph, order)
    assert peak_memory(graph, order) >= max(
        graph.out_value(node) for node in range(graph.node_count)
    )


def test_bfs_diamond():
    assert bfs_schedule(parse_graph(DIAMOND)) == [0, 1, 2, 3]


def test_post_order_diamond():
    assert post_order_schedule(parse_graph(DIAMOND)) == [0, 2, 1, 3]


@pytest.mark.parametrize("scheduler", SCHEDULERS)
def test_chain_has_single_order(scheduler):
    graph = parse_graph("4 3\n0 1 1\n1 2 1\n2 3 1\n")
    assert scheduler(graph) == [0, 1, 2, 3]


@pytest.mark.parametrize("scheduler", [list_schedule, bfs_schedule])
def test_kahn_style_schedulers_stop_at_cycle(scheduler):
    graph = parse_graph("3 3\n0 1 1\n1 2 1\n2 1 1\n")
    order = scheduler(graph)
    assert order == [0]
    with pytest.raises(ScheduleError):
        peak_memory(graph, order)


@pytest.mark.parametrize("scheduler", SCHEDULERS)
def test_isolated_nodes_are_scheduled(scheduler):
    graph = Graph(3)
    assert sorted(scheduler(graph)) == [0, 1, 2]