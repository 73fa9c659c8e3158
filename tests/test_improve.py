import random

import pytest

from memsched.generators import random_tree
from memsched.graph import Graph, ScheduleError, peak_memory
from memsched.improve import (
    ImplicitTreap,
    KeyedOrder,
    Method,
    improve,
    improve_together,
    move_basic,
    move_by_list,
    move_by_treap,
    move_together,
)
from memsched.schedulers import bfs_schedule, dfs_schedule, list_schedule, post_order_schedule


def _graph(n, edges):
    graph = Graph(n)
    for edge in edges:
        graph.add_edge(*edge)
    return graph


def _lifetime_graph():
    return _graph(4, [(0, 1, 10), (2, 3, 10)])


LIFETIME_ORDER = [0, 2, 3, 1]

MOVES = [
    lambda g, o: move_basic(g, o),
    lambda g, o: move_together(g, o),
    lambda g, o: move_by_treap(g, o, rng=random.Random(1)),
    lambda g, o: move_by_list(g, o),
]
SCHEDULERS = [post_order_schedule, dfs_schedule, list_schedule, bfs_schedule]


def _tree(seed):
    return random_tree(20, 30, rng=random.Random(seed))


def test_treap_keeps_insertion_order():
    values = [5, 3, 9, 1]
    treap = ImplicitTreap(rng=random.Random(0))
    for position, value in enumerate(values):
        treap.insert(position, value)
    assert treap.to_list() == values
    treap.insert(0, 7)
    assert treap.to_list() == [7, *values]
    assert len(treap) == 5


def test_treap_rank_matches_position():
    values = list(range(40))
    random.Random(3).shuffle(values)
    treap = ImplicitTreap(values, random.Random(4))
    for index, value in enumerate(values):
        assert treap.rank(value) == index + 1


def test_treap_move_preserves_other_values():
    rng = random.Random(7)
    values = list(range(30))
    treap = ImplicitTreap(values, random.Random(8))
    for _ in range(50):
        before = treap.to_list()
        x = rng.randint(1, 29)
        y = rng.randint(x + 1, 31)
        moved = before[x - 1]
        treap.move(x, y)
        after = treap.to_list()
        assert treap.rank(moved) == y - 1
        assert [v for v in after if v != moved] == [v for v in before if v != moved]
        assert sorted(after) == values


def test_treap_errors():
    treap = ImplicitTreap([1, 2, 3])
    with pytest.raises(ValueError):
        treap.insert(0, 2)
    with pytest.raises(ValueError):
        treap.move(3, 2)
    with pytest.raises(ValueError):
        treap.rank(99)


def test_keyed_order_keys_increase():
    order = [4, 2, 0, 3, 1]
    keyed = KeyedOrder(order)
    assert keyed.to_list() == order
    keys = [keyed.key(node) for node in keyed.to_list()]
    assert keys == sorted(set(keys))


def test_keyed_order_move_before():
    keyed = KeyedOrder([0, 1, 2, 3, 4])
    keyed.move_before(0, 3)
    result = keyed.to_list()
    assert result.index(0) + 1 == result.index(3)
    assert sorted(result) == [0, 1, 2, 3, 4]
    keyed.move_before(4, 1)
    result = keyed.to_list()
    assert result.index(4) + 1 == result.index(1)


def test_keyed_order_move_before_head():
    keyed = KeyedOrder([0, 1, 2])
    keyed.move_before(2, 0)
    assert keyed.to_list()[:2] == [2, 0]


def test_keyed_order_rebuilds_when_gap_runs_out():
    keyed = KeyedOrder([0, 1, 2, 3])
    for i in range(200):
        keyed.move_before(1 if i % 2 == 0 else 2, 3)
    assert keyed.rebuilds >= 1
    assert keyed.to_list() == [0, 1, 2, 3]


def test_keyed_order_rejects_self_move():
    keyed = KeyedOrder([0, 1])
    with pytest.raises(ValueError):
        keyed.move_before(1, 1)


@pytest.mark.parametrize("move", MOVES)
@pytest.mark.parametrize("schedule", SCHEDULERS)
@pytest.mark.parametrize("seed", [1, 2, 3])
def test_moves_keep_topological_permutation(move, schedule, seed):
    graph = _tree(seed)
    order = schedule(graph)
    result = move(graph, order)
    assert sorted(result) == list(range(graph.node_count))
    assert peak_memory(graph, result) >= 0


@pytest.mark.parametrize("method", list(Method))
@pytest.mark.parametrize("schedule", SCHEDULERS)
@pytest.mark.parametrize("seed", [4, 5])
def test_improve_never_worse(method, schedule, seed):
    graph = _tree(seed)
    order = schedule(graph)
    result = improve(graph, order, 3, method)
    assert peak_memory(graph, result) <= peak_memory(graph, order)


@pytest.mark.parametrize("seed", [6, 7])
def test_improve_together_never_worse(seed):
    graph = _tree(seed)
    order = bfs_schedule(graph)
    result = improve_together(graph, order, 3)
    assert peak_memory(graph, result) <= peak_memory(graph, order)


def test_improve_finds_better_order():
    graph = _lifetime_graph()
    result = improve(graph, LIFETIME_ORDER)
    assert peak_memory(graph, result) < peak_memory(graph, LIFETIME_ORDER)


def test_improve_without_rounds_returns_input():
    graph = _tree(8)
    order = post_order_schedule(graph)
    assert improve(graph, order, 0) == order


def test_improve_accepts_integer_method():
    graph = _tree(9)
    order = bfs_schedule(graph)
    assert improve(graph, order, 2, 2) == improve(graph, order, 2, Method.TREAP)


def test_improve_rejects_invalid_order():
    graph = _lifetime_graph()
    with pytest.raises(ScheduleError):
        improve(graph, [1, 0, 2, 3])


def test_moves_reject_non_permutation():
    graph = _lifetime_graph()
    with pytest.raises(ScheduleError):
        move_basic(graph, [0, 0, 2, 3])
    with pytest.raises(ScheduleError):
        move_by_list(graph, [0, 2, 3])