"""Iso-contours of a sampled field: marching squares, graph stitching, Chaikin smoothing."""

from __future__ import annotations

import logging

import numpy as np

from BEACON.src.core.types import ScalarGrid

logger = logging.getLogger(__name__)

CHAIKIN_ITERATIONS = 2
CLOSED_EPS = 1e-5

# Corner bits
TL, TR, BR, BL = 8, 4, 2, 1

# Cell edges
TOP, RIGHT, BOTTOM, LEFT = "top", "right", "bottom", "left"

# Edge pairs joined inside a cell, per configuration. Saddles (5, 10) cut
# off the two below-threshold corners, keeping the above-threshold
# diagonal connected.
CONNECTIONS: dict[int, tuple[tuple[str, str], ...]] = {
    1: ((LEFT, BOTTOM),),
    2: ((BOTTOM, RIGHT),),
    3: ((LEFT, RIGHT),),
    4: ((TOP, RIGHT),),
    5: ((TOP, LEFT), (BOTTOM, RIGHT)),
    6: ((TOP, BOTTOM),),
    7: ((TOP, LEFT),),
    8: ((LEFT, TOP),),
    9: ((TOP, BOTTOM),),
    10: ((TOP, RIGHT), (LEFT, BOTTOM)),
    11: ((TOP, RIGHT),),
    12: ((LEFT, RIGHT),),
    13: ((BOTTOM, RIGHT),),
    14: ((LEFT, BOTTOM),),
}


def _interpolate(val1: float, val2: float, out1: float, out2: float, threshold: float) -> float:
    if abs(val2 - val1) < 1e-9:
        return (out1 + out2) / 2.0
    return out1 + (out2 - out1) * ((threshold - val1) / (val2 - val1))


class EdgeGraph:
    """Undirected graph of threshold crossings keyed by grid-edge identity.

    Nodes live in an arena (``points``/``adjacency`` indexed by node id);
    ``index`` maps ``("H"|"V", x, y)`` to the node id, so an edge shared by
    two cells resolves to the same node.
    """

    def __init__(self):
        self.index: dict[tuple[str, int, int], int] = {}
        self.points: list[tuple[float, float]] = []
        self.adjacency: list[list[int]] = []

    def add_node(self, key: tuple[str, int, int], point: tuple[float, float]) -> int:
        node = self.index.get(key)
        if node is None:
            node = len(self.points)
            self.index[key] = node
            self.points.append(point)
            self.adjacency.append([])
        return node

    def connect(self, a: int, b: int) -> None:
        self.adjacency[a].append(b)
        self.adjacency[b].append(a)
        assert len(self.adjacency[a]) <= 2 and len(self.adjacency[b]) <= 2, (
            "contour node with degree > 2"
        )

    def __len__(self) -> int:
        return len(self.points)


def build_graph(grid: ScalarGrid, threshold: float) -> EdgeGraph:
    """Marching-squares pass: one node per crossed edge, one link per in-cell connection."""
    graph = EdgeGraph()
    if grid.width < 2 or grid.height < 2:
        return graph

    data = grid.as_array()
    above = (data >= threshold).astype(np.uint8)
    configs = (
        (above[:-1, :-1] << 3)
        | (above[:-1, 1:] << 2)
        | (above[1:, 1:] << 1)
        | above[1:, :-1]
    )
    active = np.argwhere((configs > 0) & (configs < 15))

    for gy, gx in active:
        gy = int(gy)
        gx = int(gx)
        config = int(configs[gy, gx])
        v_tl = float(data[gy, gx])
        v_tr = float(data[gy, gx + 1])
        v_br = float(data[gy + 1, gx + 1])
        v_bl = float(data[gy + 1, gx])

        nodes: dict[str, int] = {}
        if bool(config & TL) != bool(config & TR):
            tx = _interpolate(v_tl, v_tr, grid.x_at(gx), grid.x_at(gx + 1), threshold)
            nodes[TOP] = graph.add_node(("H", gx, gy), (tx, grid.y_at(gy)))
        if bool(config & TR) != bool(config & BR):
            ty = _interpolate(v_tr, v_br, grid.y_at(gy), grid.y_at(gy + 1), threshold)
            nodes[RIGHT] = graph.add_node(("V", gx + 1, gy), (grid.x_at(gx + 1), ty))
        if bool(config & BL) != bool(config & BR):
            tx = _interpolate(v_bl, v_br, grid.x_at(gx), grid.x_at(gx + 1), threshold)
            nodes[BOTTOM] = graph.add_node(("H", gx, gy + 1), (tx, grid.y_at(gy + 1)))
        if bool(config & TL) != bool(config & BL):
            ty = _interpolate(v_tl, v_bl, grid.y_at(gy), grid.y_at(gy + 1), threshold)
            nodes[LEFT] = graph.add_node(("V", gx, gy), (grid.x_at(gx), ty))

        for e1, e2 in CONNECTIONS[config]:
            graph.connect(nodes[e1], nodes[e2])

    return graph


def trace_paths(graph: EdgeGraph) -> list[np.ndarray]:
    """Walk the graph into polylines: open strands from degree-1 ends first, then closed loops."""
    visited = [False] * len(graph)
    paths: list[np.ndarray] = []

    def walk(start: int) -> list[tuple[float, float]]:
        path = []
        curr = start
        while curr is not None and not visited[curr]:
            visited[curr] = True
            path.append(graph.points[curr])
            curr = next((n for n in graph.adjacency[curr] if not visited[n]), None)
        return path

    for node, neighbours in enumerate(graph.adjacency):
        if len(neighbours) == 1 and not visited[node]:
            paths.append(np.array(walk(node), dtype=np.float64))

    for node in range(len(graph)):
        if visited[node]:
            continue
        path = walk(node)
        if len(path) > 2:
            path.append(path[0])
        paths.append(np.array(path, dtype=np.float64))

    return paths


def is_closed(points: np.ndarray, eps: float = CLOSED_EPS) -> bool:
    return len(points) > 1 and bool(np.all(np.abs(points[0] - points[-1]) < eps))


def chaikin(points: np.ndarray, iterations: int = CHAIKIN_ITERATIONS) -> np.ndarray:
    """Chaikin corner cutting (1/4, 3/4 split).

    Open polylines keep their end points; closed ones are re-closed on the
    first cut point.
    """
    if iterations == 0 or len(points) < 3:
        return points

    current = np.asarray(points, dtype=np.float64)
    for _ in range(iterations):
        closed = is_closed(current)
        p0 = current[:-1]
        p1 = current[1:]
        cuts = np.empty((2 * len(p0), current.shape[1]), dtype=np.float64)
        cuts[0::2] = 0.75 * p0 + 0.25 * p1
        cuts[1::2] = 0.25 * p0 + 0.75 * p1

        if closed:
            current = np.vstack([cuts, cuts[:1]])
        else:
            current = np.vstack([current[:1], cuts, current[-1:]])
    return current


def extract(grid: ScalarGrid, threshold: float, iterations: int = CHAIKIN_ITERATIONS) -> list[np.ndarray]:
    """Smoothed iso-lines of ``grid`` at ``threshold`` in world coordinates."""
    if grid.width < 2 or grid.height < 2:
        return []
    graph = build_graph(grid, threshold)
    paths = trace_paths(graph)
    logger.debug("Contour pass: %d nodes, %d polylines", len(graph), len(paths))
    return [chaikin(p, iterations) for p in paths]
