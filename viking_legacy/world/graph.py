"""Graph utilities for region adjacency and overland routing."""

from __future__ import annotations

import math
from itertools import combinations
from typing import TYPE_CHECKING, Iterable, Mapping, Sequence, TypeAlias

import networkx as nx

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .regions import Region

if TYPE_CHECKING:  # pragma: no cover - typing only
    RegionGraph: TypeAlias = nx.Graph[str]
else:  # pragma: no cover - runtime alias without subscripting
    RegionGraph: TypeAlias = nx.Graph


def regions_touch(region_a: Region, region_b: Region, *, divisor: float = 1.5) -> bool:
    """Return ``True`` when two regions sit close enough to share a border.

    This is a distance threshold on the region centres scaled by their widths,
    standing in for real border data.
    """

    if region_a.identifier == region_b.identifier:
        return False
    if region_a.landmass != region_b.landmass:
        return False
    distance = region_a.distance_to(region_b)
    threshold = (region_a.size[0] + region_b.size[0]) / divisor
    return distance <= threshold


def build_region_graph(
    regions: Iterable[Region],
    *,
    connections: Mapping[str, Iterable[str]] | None = None,
) -> RegionGraph:
    """Return an undirected graph of region adjacency.

    When ``connections`` is supplied it is used verbatim; otherwise edges come
    from :func:`regions_touch`.
    """

    graph: RegionGraph = nx.Graph()
    region_list = list(regions)
    for region in region_list:
        graph.add_node(region.identifier, region=region)

    if connections is not None:
        for origin, neighbors in connections.items():
            if origin not in graph:
                continue
            for neighbor in neighbors:
                if neighbor not in graph or neighbor == origin:
                    continue
                graph.add_edge(origin, neighbor, weight=_edge_weight(graph, origin, neighbor))
        return graph

    for region_a, region_b in combinations(region_list, 2):
        if regions_touch(region_a, region_b):
            graph.add_edge(
                region_a.identifier,
                region_b.identifier,
                weight=region_a.distance_to(region_b),
            )
    return graph


def adjacent_regions(graph: RegionGraph, region_id: str) -> list[str]:
    """Return neighbours of ``region_id`` in insertion order."""

    if region_id not in graph:
        return []
    return [str(node) for node in graph.neighbors(region_id)]


def shortest_region_path(graph: RegionGraph, start: str, goal: str) -> Sequence[str]:
    """Return the waypoints after ``start`` leading to ``goal`` (A* search).

    An empty sequence means ``start == goal`` or no route exists.
    """

    if start == goal or start not in graph or goal not in graph:
        return []

    def heuristic(node_a: str, node_b: str) -> float:
        region_a = graph.nodes[node_a].get("region")
        region_b = graph.nodes[node_b].get("region")
        if region_a is None or region_b is None:
            return 0.0
        return region_a.distance_to(region_b)

    try:
        path = nx.astar_path(graph, start, goal, heuristic=heuristic, weight="weight")
    except nx.NetworkXNoPath:
        return []
    return [str(node) for node in path[1:]]


def _edge_weight(graph: RegionGraph, origin: str, neighbor: str) -> float:
    region_a = graph.nodes[origin].get("region")
    region_b = graph.nodes[neighbor].get("region")
    if region_a is None or region_b is None:
        return 1.0
    distance = region_a.distance_to(region_b)
    return distance if math.isfinite(distance) and distance > 0 else 1.0


__all__ = [
    "adjacent_regions",
    "build_region_graph",
    "regions_touch",
    "shortest_region_path",
]
