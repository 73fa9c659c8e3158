"""Local search that shortens tensor lifetimes in a schedule.

Every pass ranks nodes by how long and how heavily their output stays in
memory, then pushes the worst offenders later in the order, as close to their
first consumer as the dependencies allow. Every move keeps the order
topological.
"""

from __future__ import annotations

import random
from collections.abc import Callable, Iterable, Sequence
from enum import IntEnum

from .graph import Graph, ScheduleError, peak_memory

PERCENT = 0.4
MOVE_LIMIT = 100_000
IMPROVE_ROUNDS = 3
MAX_GROUP = 4
_KEY_SPAN = 0x3F3F3F3F3F3F3F3F


class Method(IntEnum):
    """How a single improvement pass moves nodes."""

    BASIC = 0
    LIST = 1
    TREAP = 2


class ImplicitTreap:
    """A sequence of distinct values with logarithmic rank queries and moves.

    Positions are 1-based.
    """

    def __init__(self, values: Iterable[object] = (), rng: random.Random | None = None) -> None:
        self._rng = rng if rng is not None else random.Random()
        self._values: list[object] = [None]
        self._left = [0]
        self._right = [0]
        self._parent = [0]
        self._size = [0]
        self._priority = [0.0]
        self._slot: dict[object, int] = {}
        self._root = 0
        for position, value in enumerate(values):
            self.insert(position, value)

    def __len__(self) -> int:
        return self._size[self._root]

    def _pull(self, node: int) -> None:
        left, right = self._left[node], self._right[node]
        self._size[node] = self._size[left] + self._size[right] + 1
        if left:
            self._parent[left] = node
        if right:
            self._parent[right] = node

    def _set_root(self, node: int) -> None:
        self._root = node
        if node:
            self._parent[node] = 0

    def _split(self, node: int, count: int) -> tuple[int, int]:
        """Split off the first ``count`` elements of the subtree at ``node``."""
        if not node:
            return 0, 0
        left = self._left[node]
        if count <= self._size[left]:
            first, self._left[node] = self._split(left, count)
            self._pull(node)
            return first, node
        self._right[node], second = self._split(self._right[node], count - self._size[left] - 1)
        self._pull(node)
        return node, second

    def _merge(self, first: int, second: int) -> int:
        if not first or not second:
            return first or second
        if self._priority[first] < self._priority[second]:
            self._right[first] = self._merge(self._right[first], second)
            self._pull(first)
            return first
        self._left[second] = self._merge(first, self._left[second])
        self._pull(second)
        return second

    def insert(self, position: int, value: object) -> None:
        """Insert ``value`` so that ``position`` elements precede it."""
        if value in self._slot:
            raise ValueError(f"value {value!r} is already present")
        if not 0 <= position <= len(self):
            raise ValueError(f"position {position} is outside 0..{len(self)}")
        node = len(self._values)
        self._values.append(value)
        self._left.append(0)
        self._right.append(0)
        self._parent.append(0)
        self._size.append(1)
        self._priority.append(self._rng.random())
        self._slot[value] = node
        head, tail = self._split(self._root, position)
        self._set_root(self._merge(self._merge(head, node), tail))

    def rank(self, value: object) -> int:
        """Return the 1-based position of ``value``."""
        try:
            node = self._slot[value]
        except KeyError:
            raise ValueError(f"value {value!r} is not present") from None
        result = self._size[self._left[node]] + 1
        while self._parent[node]:
            parent = self._parent[node]
            if self._right[parent] == node:
                result += self._size[self._left[parent]] + 1
            node = parent
        return result

    def move(self, x: int, y: int) -> None:
        """Move the element at position ``x`` to just before position ``y``."""
        if not 1 <= x < y <= len(self) + 1:
            raise ValueError(f"cannot move position {x} before position {y}")
        head, tail = self._split(self._root, y - 1)
        head, middle = self._split(head, x)
        head, moved = self._split(head, x - 1)
        self._set_root(self._merge(head, self._merge(middle, self._merge(moved, tail))))

    def to_list(self) -> list[object]:
        """Return the values in sequence order."""
        result: list[object] = []
        stack: list[int] = []
        node = self._root
        while stack or node:
            while node:
                stack.append(node)
                node = self._left[node]
            node = stack.pop()
            result.append(self._values[node])
            node = self._right[node]
        return result


class KeyedOrder:
    """A doubly linked order whose nodes carry increasing integer keys.

    Moving a node gives it the midpoint key of its new neighbours; when no
    room is left, all keys are spread out again and :attr:`rebuilds` grows.
    """

    def __init__(self, order: Iterable[int]) -> None:
        self.rebuilds = 0
        self._build(list(order))

    def _build(self, order: list[int]) -> None:
        if len(set(order)) != len(order):
            raise ValueError("order holds a node more than once")
        step = _KEY_SPAN // (len(order) + 1)
        self._key = {node: (index + 1) * step for index, node in enumerate(order)}
        self._prev: dict[int, int | None] = {}
        self._next: dict[int, int | None] = {}
        for index, node in enumerate(order):
            self._prev[node] = order[index - 1] if index else None
            self._next[node] = order[index + 1] if index + 1 < len(order) else None

    def _unlink(self, node: int) -> None:
        before, after = self._prev[node], self._next[node]
        if before is not None:
            self._next[before] = after
        if after is not None:
            self._prev[after] = before
        self._prev[node] = self._next[node] = None

    def move_before(self, x: int, y: int) -> None:
        """Place ``x`` immediately before ``y``."""
        if x == y:
            raise ValueError("a node cannot be moved before itself")
        if x not in self._key or y not in self._key:
            raise ValueError("both nodes must belong to the order")
        while self._next[x] != y:
            before = self._prev[y]
            low = self._key[before] if before is not None else 0
            high = self._key[y]
            middle = (low + high) // 2
            if high - middle < 2 or middle - low < 2:
                self.rebuilds += 1
                self._build(self.to_list())
                continue
            self._unlink(x)
            before = self._prev[y]
            self._prev[x], self._next[x] = before, y
            if before is not None:
                self._next[before] = x
            self._prev[y] = x
            self._key[x] = middle

    def key(self, node: int) -> int:
        """Return the current key of ``node``."""
        return self._key[node]

    def to_list(self) -> list[int]:
        """Return the nodes in order."""
        return sorted(self._key, key=self._key.__getitem__)


def _checked(graph: Graph, order: Iterable[int]) -> list[int]:
    order = list(order)
    if sorted(order) != list(range(graph.node_count)):
        raise ScheduleError("schedule must name every node exactly once")
    return order


def _candidates(graph: Graph, order: Sequence[int], percent: float, by_start: bool) -> list[int]:
    """Nodes whose outputs occupy the most memory for the longest time."""
    n = graph.node_count
    start = [0] * n
    end = [0] * n
    pending = [len(succs) for succs in graph.successors]
    for time, node in enumerate(order, 1):
        start[node] = time
        for parent, _ in graph.predecessors[node]:
            pending[parent] -= 1
            if not pending[parent]:
                end[parent] = time
    values = [graph.out_value(node) for node in range(n)]

    def key(node: int) -> tuple[int, int, int]:
        span = end[node] - start[node]
        weight = (span + 1) ** 2 * values[node]
        return (-weight, -span, -start[node] if by_start else node)

    count = max(int(n * percent), min(n, 20))
    return sorted(range(n), key=key)[:count]


def _shift(
    graph: Graph,
    order: Iterable[int],
    percent: float,
    limit: int,
    groups: dict[int, int] | None,
) -> list[int]:
    """Bubble candidates later one step at a time, optionally with a group."""
    order = _checked(graph, order)
    successors = [{child for child, _ in succs} for succs in graph.successors]
    position = [0] * graph.node_count
    for index, node in enumerate(order):
        position[node] = index
    last = graph.node_count - 1

    moves = 0
    for x in _candidates(graph, order, percent, by_start=False):
        if moves >= limit:
            break
        moves += 1
        while position[x] < last:
            here = position[x]
            y = order[here + 1]
            if y in successors[x]:
                break
            size = 0
            if groups is not None:
                groups[x] = min(groups.get(x, 0), MAX_GROUP)
                size = min(groups[x], here)
                if any(y in successors[z] for z in order[here - size:here]):
                    break
            moves += size + 1
            low = here - size
            order[low:here + 2] = [y, *order[low:here + 1]]
            for index in range(low, here + 2):
                position[order[index]] = index
        if groups is not None and position[x] < last:
            groups[order[position[x] + 1]] = groups.get(x, 0) + 1
    return order


def move_basic(
    graph: Graph, order: Iterable[int], percent: float = PERCENT, limit: int = MOVE_LIMIT
) -> list[int]:
    """Move each candidate later by swaps until it meets one of its successors."""
    return _shift(graph, order, percent, limit, None)


def move_together(
    graph: Graph, order: Iterable[int], percent: float = PERCENT, limit: int = MOVE_LIMIT
) -> list[int]:
    """Like :func:`move_basic`, but a node that blocked an earlier move later
    carries up to :data:`MAX_GROUP` of its predecessors in the order with it."""
    return _shift(graph, order, percent, limit, {})


def move_by_treap(
    graph: Graph,
    order: Iterable[int],
    percent: float = PERCENT,
    rng: random.Random | None = None,
) -> list[int]:
    """Move each candidate to just before its earliest successor, using a treap."""
    order = _checked(graph, order)
    treap = ImplicitTreap(order, rng)
    for x in _candidates(graph, order, percent, by_start=True):
        if not graph.successors[x]:
            continue
        here = treap.rank(x)
        first = min(treap.rank(child) for child, _ in graph.successors[x])
        if here + 1 != first:
            treap.move(here, first)
    return treap.to_list()


def move_by_list(graph: Graph, order: Iterable[int], percent: float = PERCENT) -> list[int]:
    """Move each candidate to just before its earliest successor, using keys."""
    order = _checked(graph, order)
    keyed = KeyedOrder(order)
    for x in _candidates(graph, order, percent, by_start=True):
        if not graph.successors[x]:
            continue
        first = min((child for child, _ in graph.successors[x]), key=keyed.key)
        keyed.move_before(x, first)
    return keyed.to_list()


def _search(
    graph: Graph,
    order: Iterable[int],
    rounds: int,
    step: Callable[[Graph, list[int]], list[int]],
) -> list[int]:
    current = list(order)
    best, best_cost = current, peak_memory(graph, current)
    for _ in range(rounds):
        current = step(graph, current)
        cost = peak_memory(graph, current)
        if cost < best_cost:
            best, best_cost = current, cost
    return list(best)


def improve(
    graph: Graph,
    order: Iterable[int],
    rounds: int = IMPROVE_ROUNDS,
    method: Method | int = Method.LIST,
) -> list[int]:
    """Run ``rounds`` passes of ``method`` and return the best order seen.

    Raises :class:`ScheduleError` if ``order`` is not a topological order.
    """
    steps: dict[Method, Callable[[Graph, list[int]], list[int]]] = {
        Method.BASIC: move_basic,
        Method.LIST: move_by_list,
        Method.TREAP: move_by_treap,
    }
    return _search(graph, order, rounds, steps[Method(method)])


def improve_together(graph: Graph, order: Iterable[int], rounds: int = IMPROVE_ROUNDS) -> list[int]:
    """Run ``rounds`` group-moving passes and return the best order seen.

    Group sizes learnt in one pass carry over to the next.
    """
    groups: dict[int, int] = {}
    return _search(
        graph,
        order,
        rounds,
        lambda g, current: _shift(g, current, PERCENT, MOVE_LIMIT, groups),
    )