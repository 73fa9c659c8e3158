"""Greedy scheduler guided by an analysis of chains and branches in the graph.

The scheduler works best on sparse graphs. Before scheduling it walks the
graph from its sources, recording single-input chains and the branches that
later merge again, and uses that information to decide which ready node to
run next.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator
from itertools import groupby
from operator import itemgetter

from sortedcontainers import SortedList

from .graph import Graph, ScheduleError

DEFAULT_MAX_DEGREE = 3
DEFAULT_BRANCH_BONUS = 100
BRANCH_TIMES_BONUS = 50
SHARED_BRANCH_BONUS = 10_000_000

_CAP = 0x3F3F3F3F
_UNSET = 10**9

# (node, incoming weight, branch origin, branch head, chain peak, chain level, after a merge)
_Visit = tuple[int, int, int, int, int, int, bool]


class _Analysis:
    """State of one scheduling run."""

    def __init__(self, graph: Graph, max_degree: int, branch_bonus: int) -> None:
        n = graph.node_count
        self.n = n
        self.successors = graph.successors
        self.predecessors = graph.predecessors
        self.max_degree = max_degree
        self.branch_bonus = branch_bonus

        self.values = [graph.out_value(i) for i in range(n)]
        self.indeg = [len(preds) for preds in graph.predecessors]
        self.outdeg = [len(succs) for succs in graph.successors]
        self.last_deg = list(self.outdeg)
        self.freeable = [0] * n
        self.first_choice = [0] * n
        self.chain: list[tuple[int, int]] = [(0, _UNSET)] * n
        # For every node, its producers as (remaining fan-out, -output size, producer).
        self.producers: list[SortedList] = [SortedList() for _ in range(n)]
        for node in range(n):
            for child, _ in self.successors[node]:
                self.producers[child].add((self.outdeg[node], -self.values[node], node))
                if self.outdeg[node] == 1:
                    self.freeable[child] += self.values[node]

        self.branch_heads: list[set[tuple[int, int]]] = [set() for _ in range(n)]
        self.merge_sources: list[set[tuple[int, int]]] = [set() for _ in range(n)]
        self.visited = [False] * n
        for node in range(n):
            if not self.indeg[node]:
                self.producers[node].add((self.outdeg[node], -self.values[node], n))
                self._walk(node)

        self._score_branches()
        self.position, self.reach = self._reverse_levels()

    def _enter(self, visit: _Visit) -> bool:
        x, _, pre, nxt, peak, level, after_merge = visit
        if self.indeg[x] > 1 and pre != -1:
            if not after_merge:
                self.branch_heads[pre].add((x, nxt))
            self.merge_sources[x].add((pre, nxt))
            if peak:
                self.chain[nxt] = (peak, peak - level)
        if peak and self.chain[x][1] == _UNSET:
            self.chain[x] = (peak, peak - level)
        if self.visited[x]:
            return False
        self.visited[x] = True
        return True

    def _children(self, visit: _Visit) -> Iterator[_Visit]:
        x, incoming, pre, nxt, peak, level, after_merge = visit
        for child, w in self.successors[x]:
            if self.outdeg[x] > 1:
                yield (child, 0, x, child, 0, 0, False)
            elif self.indeg[x] == 0:
                yield (child, 0, x, x, 0, 0, False)
            elif self.indeg[x] <= 1:
                grown = level + w
                yield (child, w, pre, nxt, max(peak, grown), grown - incoming, after_merge)
            else:
                yield (child, 0, x, x, 0, 0, True)

    def _walk(self, root: int) -> None:
        start: _Visit = (root, 0, -1, -1, 0, 0, False)
        if not self._enter(start):
            return
        stack = [self._children(start)]
        while stack:
            visit = next(stack[-1], None)
            if visit is None:
                stack.pop()
            elif self._enter(visit):
                stack.append(self._children(visit))

    def _score_branches(self) -> None:
        for node in range(self.n):
            if self.outdeg[node] <= 1:
                continue
            for head, group in groupby(sorted(self.branch_heads[node]), key=itemgetter(0)):
                heads = [nxt for _, nxt in group]
                repeats = len(heads) - 1
                if self.indeg[head] == repeats:
                    bonus = SHARED_BRANCH_BONUS
                else:
                    bonus = BRANCH_TIMES_BONUS * repeats
                for nxt in heads:
                    self.first_choice[nxt] += bonus

    def _reverse_levels(self) -> tuple[list[int], list[int]]:
        remaining = list(self.outdeg)
        ready = deque(node for node in range(self.n) if not remaining[node])
        order: list[int] = []
        while ready:
            node = ready.popleft()
            order.append(node)
            for parent, _ in self.predecessors[node]:
                remaining[parent] -= 1
                if not remaining[parent]:
                    ready.append(parent)
        if len(order) != self.n:
            raise ScheduleError("graph has a cycle")
        order.reverse()

        position = [0] * self.n
        for index, node in enumerate(order):
            position[node] = index
        reach = list(self.outdeg)
        for node in order:
            for child, _ in self.successors[node]:
                reach[node] = min(reach[node] + reach[child], _CAP)
        return position, reach

    def _priority(self, node: int) -> tuple[int, ...]:
        deg, neg_value, producer = self.producers[node][0]
        if deg <= 1:
            return (0, -self.freeable[node], node)
        peak, gap = self.chain[node]
        producer_reach = self.reach[producer] if producer < self.n else 0
        return (
            1,
            -self.first_choice[node],
            deg,
            -producer_reach,
            -gap,
            peak,
            neg_value,
            -self.freeable[node],
            -self.reach[node],
            self.values[node],
            -self.position[node],
        )

    def run(self) -> list[int]:
        done = [False] * self.n
        queued = [False] * self.n
        ready = SortedList(key=self._priority)

        def update(node: int, change) -> None:
            was_queued = queued[node]
            if was_queued:
                ready.remove(node)
            change()
            if was_queued:
                ready.add(node)

        for node in range(self.n):
            if not self.indeg[node]:
                ready.add(node)
                queued[node] = True

        order: list[int] = []
        while ready:
            x = ready.pop(0)
            queued[x] = False
            done[x] = True
            order.append(x)

            for parent, _ in self.predecessors[x]:
                remaining = self.outdeg[parent]
                value = self.values[parent]
                self.outdeg[parent] -= 1
                if remaining >= self.max_degree:
                    continue
                old_entry = (self.last_deg[parent], -value, parent)
                new_entry = (remaining - 1, -value, parent)
                for other, _ in self.successors[parent]:
                    if done[other]:
                        continue

                    def release(other: int = other) -> None:
                        entries = self.producers[other]
                        entries.remove(old_entry)
                        entries.add(new_entry)
                        if remaining == 2:
                            self.freeable[other] += value

                    update(other, release)
                self.last_deg[parent] = remaining - 1

            for child, _ in self.successors[x]:
                self.indeg[child] -= 1
                if not self.indeg[child]:
                    ready.add(child)
                    queued[child] = True
                elif self.indeg[child] <= self.max_degree:
                    for _, nxt in sorted(self.merge_sources[child]):

                        def boost(nxt: int = nxt) -> None:
                            self.first_choice[nxt] += self.branch_bonus

                        update(nxt, boost)
        return order


def graph_analysis_schedule(
    graph: Graph,
    max_degree: int = DEFAULT_MAX_DEGREE,
    branch_bonus: int = DEFAULT_BRANCH_BONUS,
) -> list[int]:
    """Return a topological order of ``graph`` chosen to keep memory low.

    ``max_degree`` bounds the fan-out and fan-in at which the scheduler starts
    reacting to released producers and nearly completed merges;
    ``branch_bonus`` is the priority given to a branch each time one of its
    merges moves closer to completion. Raises :class:`ScheduleError` if the
    graph has a cycle.
    """
    return _Analysis(graph, max_degree, branch_bonus).run()