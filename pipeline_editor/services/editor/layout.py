"""Layered (Sugiyama-style) layout for the pipeline graph.

Phases:
  1. Rank assignment: longest path from any source node.
  2. In-rank ordering: one top-down barycenter sweep, ties by input order.
  3. Coordinate assignment: fixed rank and node spacing, each rank centered
     on the secondary axis.

Node boxes have a fixed size; the engine never looks at step content.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import networkx as nx

from pipeline_editor.models.editor import Position
from pipeline_editor.settings import LayoutDirection, Settings, settings
from pipeline_editor.types import ClientId, Edge


@dataclass(frozen=True)
class LayoutConfig:
    """Node box size and spacing used by the layout engine."""

    direction: LayoutDirection = LayoutDirection.LEFT_RIGHT
    node_width: float = 220.0
    node_height: float = 100.0
    node_sep: float = 60.0
    rank_sep: float = 150.0

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> LayoutConfig:
        config = config or settings
        return cls(
            direction=config.layout_direction,
            node_width=config.node_width,
            node_height=config.node_height,
            node_sep=config.node_sep,
            rank_sep=config.rank_sep,
        )


def _build_graph(node_ids: Sequence[ClientId], edges: Iterable[Edge]) -> nx.DiGraph:
    graph: nx.DiGraph = nx.DiGraph()
    graph.add_nodes_from(node_ids)
    known = set(node_ids)
    graph.add_edges_from((src, tgt) for src, tgt in edges if src in known and tgt in known)
    return graph


def assign_ranks(graph: nx.DiGraph) -> dict[ClientId, int]:
    """Assign each node the length of the longest path from a source node to it.

    Raises:
        ValueError: If the graph contains a cycle.
    """
    ranks: dict[ClientId, int] = {}
    try:
        order = list(nx.topological_sort(graph))
    except nx.NetworkXUnfeasible as e:
        raise ValueError("Cannot lay out a graph that contains a cycle") from e

    for node in order:
        ranks[node] = max((ranks[pred] + 1 for pred in graph.predecessors(node)), default=0)
    return ranks


def order_ranks(
    graph: nx.DiGraph, ranks: dict[ClientId, int], node_ids: Sequence[ClientId]
) -> list[list[ClientId]]:
    """Group nodes by rank and order each rank by predecessor barycenter.

    Rank 0 keeps input order. Later ranks sort by the mean slot of their
    predecessors; nodes without placed predecessors go last. Ties keep input order.
    """
    input_index = {node_id: i for i, node_id in enumerate(node_ids)}
    rank_count = (max(ranks.values()) + 1) if ranks else 0
    layers: list[list[ClientId]] = [[] for _ in range(rank_count)]
    for node_id in node_ids:
        layers[ranks[node_id]].append(node_id)

    slot: dict[ClientId, int] = {}
    for rank, layer in enumerate(layers):
        if rank > 0:

            def barycenter(node_id: ClientId) -> tuple[float, int]:
                placed = [slot[p] for p in graph.predecessors(node_id) if p in slot]
                center = sum(placed) / len(placed) if placed else float("inf")
                return center, input_index[node_id]

            layer.sort(key=barycenter)
        for i, node_id in enumerate(layer):
            slot[node_id] = i
    return layers


def compute_layout(
    node_ids: Sequence[ClientId],
    edges: Iterable[Edge],
    config: LayoutConfig | None = None,
) -> dict[ClientId, Position]:
    """Compute a position for every node.

    Args:
        node_ids: Node identities, in a stable order.
        edges: ``(source, target)`` pairs; pairs naming unknown nodes are ignored.
        config: Box size and spacing; defaults to the configured settings.

    Returns:
        Mapping from node id to the top-left corner of its box.
    """
    config = config or LayoutConfig.from_settings()
    if not node_ids:
        return {}

    graph = _build_graph(node_ids, edges)
    layers = order_ranks(graph, assign_ranks(graph), node_ids)

    if config.direction == LayoutDirection.LEFT_RIGHT:
        primary_size, secondary_size = config.node_width, config.node_height
    else:
        primary_size, secondary_size = config.node_height, config.node_width

    rank_step = primary_size + config.rank_sep
    slot_step = secondary_size + config.node_sep

    def span(count: int) -> float:
        return count * secondary_size + (count - 1) * config.node_sep

    widest = max(span(len(layer)) for layer in layers)

    positions: dict[ClientId, Position] = {}
    for rank, layer in enumerate(layers):
        start = (widest - span(len(layer))) / 2
        for i, node_id in enumerate(layer):
            primary = rank * rank_step
            secondary = start + i * slot_step
            if config.direction == LayoutDirection.LEFT_RIGHT:
                positions[node_id] = Position(x=primary, y=secondary)
            else:
                positions[node_id] = Position(x=secondary, y=primary)
    return positions
