"""Cycle detection for dependency edges.

Adding ``source -> target`` closes a loop exactly when ``source`` is already
reachable from ``target`` along existing edges.
"""

from collections.abc import Iterable

import networkx as nx

from pipeline_editor.models.editor import Step
from pipeline_editor.types import ClientId, Edge


def dependency_edges(steps: Iterable[Step]) -> list[Edge]:
    """Derive ``(source, target)`` pairs from step-local ``depends_on`` sets."""
    return [(dep, step.client_id) for step in steps for dep in step.depends_on]


def dependency_graph(steps: Iterable[Step]) -> nx.DiGraph:
    """Build a directed graph of all steps, edges pointing from predecessor to dependent."""
    graph: nx.DiGraph = nx.DiGraph()
    steps = list(steps)
    graph.add_nodes_from(step.client_id for step in steps)
    graph.add_edges_from(dependency_edges(steps))
    return graph


def would_create_cycle(edges: Iterable[Edge], source: ClientId, target: ClientId) -> bool:
    """Check whether adding ``source -> target`` would create a cycle.

    Args:
        edges: Existing ``(source, target)`` pairs, meaning "target depends on source".
        source: Proposed predecessor.
        target: Proposed dependent.

    Returns:
        True if the edge must be rejected.
    """
    if source == target:
        return True

    graph: nx.DiGraph = nx.DiGraph()
    graph.add_edges_from(edges)
    if source not in graph or target not in graph:
        return False

    # Breadth-first search from target; each node visited once
    return source in nx.descendants(graph, target)
