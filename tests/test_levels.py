from dependency_scheduler.core.graph.build_graph import build_graph
from dependency_scheduler.core.graph.levels import compute_levels
from dependency_scheduler.core.model import DependencyEdge, Task


def _graph(ids: str, pairs: list[tuple[str, str]]):
    tasks = [Task(id=i) for i in ids]
    edges = [
        DependencyEdge(id=str(n), task_id=succ, depends_on_task_id=pred)
        for n, (pred, succ) in enumerate(pairs)
    ]
    return build_graph(tasks, edges)


def test_single_task_is_level_zero():
    assignment = compute_levels(_graph("A", []))
    assert assignment.levels == {"A": 0}
    assert assignment.unleveled == []


def test_longest_path_leveling():
    # A -> B -> C and A -> C: C must sit after B, not at BFS depth 1
    assignment = compute_levels(_graph("ABC", [("A", "B"), ("B", "C"), ("A", "C")]))
    assert assignment.levels == {"A": 0, "B": 1, "C": 2}


def test_levels_strictly_increase_along_edges():
    pairs = [("A", "C"), ("B", "C"), ("C", "E"), ("D", "E"), ("A", "D"), ("B", "F"), ("F", "E")]
    graph = _graph("ABCDEF", pairs)
    assignment = compute_levels(graph)
    for e in graph.edges:
        assert assignment.levels[e.task_id] > assignment.levels[e.depends_on_task_id]


def test_fifo_order_and_columns():
    graph = _graph("DCBA", [("D", "A"), ("C", "A")])
    assignment = compute_levels(graph)
    assert assignment.order == ["D", "C", "B", "A"]
    assert assignment.columns() == [["D", "C", "B"], ["A"]]
    assert compute_levels(graph) == assignment


def test_cycle_members_are_reported_unleveled():
    graph = _graph("ABCD", [("A", "B"), ("B", "C"), ("C", "B"), ("C", "D")])
    assignment = compute_levels(graph)
    assert assignment.levels == {"A": 0}
    assert assignment.unleveled == ["B", "C", "D"]
    assert assignment.columns() == [["A"]]


def test_empty_graph():
    assignment = compute_levels(_graph("", []))
    assert assignment.levels == {}
    assert assignment.columns() == []
