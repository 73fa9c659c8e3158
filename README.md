# memsched

Tools for ordering the nodes of a computation graph so that the peak
amount of live memory stays low.

A graph is a directed graph whose edges carry a weight. When a node
runs, it allocates the sum of the weights of its outgoing edges. That
memory is released once every consumer of the node has run. The cost of
an order is the highest total of live memory seen while the nodes run
in that order.

## Graph files

The file is plain text. It starts with the node count `n` and the edge
count `m`, followed by `m` triples `u v w`. Each triple is an edge from
`u` to `v` of weight `w`. Nodes are numbered from `0` to `n - 1`.

```
8 9
0 1 10
1 2 10
2 3 10
0 4 0
4 5 40
5 3 10
0 6 0
6 7 10
7 3 10
```

## Command line

Installing the package provides three commands.

### `memsched`

```
memsched [INPUT] [-o OUTPUT] [--rounds N] [--method {basic,list,treap}]
```

This runs the five schedulers on the graph in `INPUT` (default `1.in`).
After each scheduler it runs `N` improvement rounds (default 3) with the
chosen method (default `list`). For every scheduler, and then for its
improved order, the report gives the peak memory and the time taken.

The report goes to standard output, or to `OUTPUT` when `-o` is given.
If the file cannot be read, or the graph is malformed, the command
writes an error to standard error and exits with status 1.

### `memsched-dp`

```
memsched-dp [INPUT] [OUTPUT]
```

This computes the exact minimum peak memory over all topological orders
of the graph in `INPUT` (default `50.in`). It writes the number to
`OUTPUT` (default `50dp.out`).

It works by dynamic programming over subsets of nodes, so its time and
memory grow as `2 ** n`. Graphs with more than 27 nodes are refused.

### `memsched-gen`

```
memsched-gen tree [--nodes N] [--edges M] [--output FILE] [--min-weight A] [--max-weight B] [--seed S]
memsched-gen edges [INPUT] [--prefix P] [--suffix S] [--min-weight A] [--max-weight B] [--seed S]
memsched-gen nodes [INPUT] [--prefix P] [--suffix S] [--min-weight A] [--max-weight B] [--seed S]
```

- `tree` writes a random tree with extra forward edges. The defaults
  are 20 nodes, 30 edges, weights 1 to 200 and output file `1.in`.
- `edges` drops a fifth of the original edges four times in a row. It
  writes `P-80e S`, `P-60e S`, `P-40e S` and `P-20e S`, for example
  `1-80e.in`.
- `nodes` removes a fifth of the original nodes four times in a row. It
  writes `P-80 S`, `P-60 S`, `P-40 S` and `P-20 S`.

In every sample the nodes are renumbered and the weights are drawn
again, 1 to 100 by default. `--seed` makes the output reproducible.

## Library

```python
from memsched.graph import read_graph, peak_memory
from memsched.schedulers import (
    post_order_schedule,
    dfs_schedule,
    list_schedule,
    bfs_schedule,
)
from memsched.graph_analysis import graph_analysis_schedule
from memsched.improve import improve, Method
from memsched.dp import optimal_peak_memory

graph = read_graph("graph.in")

for schedule in (post_order_schedule, dfs_schedule, list_schedule,
                 bfs_schedule, graph_analysis_schedule):
    order = schedule(graph)
    better = improve(graph, order, rounds=3, method=Method.LIST)
    print(schedule.__name__, peak_memory(graph, order), peak_memory(graph, better))

print("optimal", optimal_peak_memory(graph))
```

### `memsched.graph`

- `Graph(node_count)` holds the graph.
  - `add_edge(u, v, w)` adds an edge.
  - `out_value(node)` gives the total weight leaving a node.
- `parse_graph(text)`, `read_graph(path)` and `format_graph(graph)`
  read and write the text format.
- `graph_from_nodes(nodes, outputs)` builds a graph from operator
  descriptions. Each operator has a `"name"` and lists its `"input"`
  and `"output"` tensors; `outputs` gives each tensor's size.
- `peak_memory(graph, order)` returns the cost of an order.

Malformed input raises `ScheduleError`, which is a `ValueError`.
`peak_memory` also raises it when the order does not cover every node
or is not a topological order.

### `memsched.schedulers` and `memsched.graph_analysis`

- `post_order_schedule`: reverse post-order of a depth-first search.
- `dfs_schedule`: depth-first search that enters the subgraphs with the
  most fan-out and output size first.
- `list_schedule`: list scheduling that prefers ready nodes whose
  execution frees the most memory.
- `bfs_schedule`: Kahn's topological sort with a first-in first-out
  queue.
- `graph_analysis_schedule(graph, max_degree=3, branch_bonus=100)`: a
  greedy scheduler guided by an analysis of chains and merging
  branches. It works best on sparse graphs. It raises `ScheduleError`
  if the graph has a cycle.

### `memsched.improve`

`improve(graph, order, rounds, method)` runs local-search passes. Each
pass pushes nodes that hold heavy outputs for a long time later in the
order, towards their consumers. It returns the best order seen. It
raises `ScheduleError` if `order` is not a topological order.

`Method` selects how a single pass moves nodes:

| Method | Pass | How it works |
| --- | --- | --- |
| `BASIC` | `move_basic` | Adjacent swaps. |
| `LIST` | `move_by_list` | A keyed linked order, `KeyedOrder`. |
| `TREAP` | `move_by_treap` | An implicit treap, `ImplicitTreap`. |

`move_together` and `improve_together` are a variant of the swap pass
in which a node may carry a few of its predecessors along with it.

### `memsched.generators`

This module offers `random_tree`, `relabel`, `edge_subsamples` and
`node_subsamples`. Each takes an optional `random.Random` instance.

### `memsched.dp`

`optimal_peak_memory(graph)` returns the exact minimum peak memory for
graphs of up to 27 nodes.

## Limits

- Only `graph_analysis_schedule` checks for cycles. The other
  schedulers may return an incomplete order for a cyclic graph, and
  `peak_memory` then rejects that order.
- There is no graphical output and no storage of results. Reports are
  plain text.