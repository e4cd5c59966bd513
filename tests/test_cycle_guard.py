import random

from dependency_scheduler.core.errors import INVALID_EDGE, REJECTED_CYCLE
from dependency_scheduler.core.graph.build_graph import build_graph
from dependency_scheduler.core.graph.cycle_guard import can_add_edge, check_edge
from dependency_scheduler.core.model import DependencyEdge, Task


def _chain_graph():
    # A -> B -> C
    tasks = [Task(id="A"), Task(id="B"), Task(id="C")]
    edges = [
        DependencyEdge(id="1", task_id="B", depends_on_task_id="A"),
        DependencyEdge(id="2", task_id="C", depends_on_task_id="B"),
    ]
    return build_graph(tasks, edges)


def test_rejects_edge_closing_cycle():
    graph = _chain_graph()
    # C -> A: A would depend on C
    check = check_edge(graph, task_id="A", depends_on_task_id="C")
    assert check.ok is False
    assert check.code == REJECTED_CYCLE
    assert check.message == "This would create a circular dependency"
    assert check.circular_path == ["A", "B", "C", "A"]
    assert can_add_edge(graph, "A", "C") is False


def test_rejects_two_node_cycle():
    graph = _chain_graph()
    assert can_add_edge(graph, "A", "B") is False


def test_accepts_forward_and_redundant_edges():
    graph = _chain_graph()
    assert can_add_edge(graph, "C", "A") is True
    assert can_add_edge(graph, "C", "B") is True


def test_self_edge_is_invalid():
    check = check_edge(_chain_graph(), "B", "B")
    assert check.ok is False
    assert check.code == INVALID_EDGE


def test_self_edge_rejected_even_for_unknown_id():
    assert can_add_edge(_chain_graph(), "ZZZ", "ZZZ") is False


def test_unknown_ids_are_accepted():
    graph = _chain_graph()
    assert can_add_edge(graph, "A", "ZZZ") is True
    assert can_add_edge(graph, "ZZZ", "C") is True


def _has_cycle(ids: list[str], edges: list[tuple[str, str]]) -> bool:
    succ: dict[str, list[str]] = {i: [] for i in ids}
    for pred, s in edges:
        succ[pred].append(s)
    WHITE, GRAY, BLACK = 0, 1, 2
    state = {i: WHITE for i in ids}

    def dfs(u: str) -> bool:
        state[u] = GRAY
        for v in succ[u]:
            if state[v] == GRAY:
                return True
            if state[v] == WHITE and dfs(v):
                return True
        state[u] = BLACK
        return False

    return any(state[i] == WHITE and dfs(i) for i in ids)


def test_accepted_sequences_stay_acyclic():
    rng = random.Random(7)
    for _round in range(30):
        ids = [f"T{i}" for i in range(rng.randint(2, 9))]
        tasks = [Task(id=i) for i in ids]
        accepted: list[DependencyEdge] = []
        for n in range(25):
            succ, pred = rng.choice(ids), rng.choice(ids)
            graph = build_graph(tasks, accepted)
            if can_add_edge(graph, succ, pred):
                accepted.append(DependencyEdge(id=str(n), task_id=succ, depends_on_task_id=pred))
        pairs = [(e.depends_on_task_id, e.task_id) for e in accepted]
        assert not _has_cycle(ids, pairs)
