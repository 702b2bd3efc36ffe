"""Sampling the summed field over planar windows."""

from __future__ import annotations

import logging
import math
from typing import Callable, Optional

import numpy as np

from BEACON.src.core.field import total_illuminance
from BEACON.src.core.types import FieldConfig, GridLimits, ScalarGrid

logger = logging.getLogger(__name__)

# grid x axis -> world axis, for each slicing plane
_PLANES = {
    "z": ("x", "y"),  # plan: fixed elevation
    "x": ("z", "y"),  # elevation: fixed lateral offset
    "y": ("x", "z"),  # cross-section: fixed range
}


def slice_steps(min_v: float, max_v: float, count: int) -> list[float]:
    """``count + 1`` evenly spaced positions, with 0 always included."""
    steps = {0.0}
    inc = (max_v - min_v) / count
    for i in range(count + 1):
        steps.add(min_v + i * inc)
    return sorted(steps)


class FieldSampler:
    def __init__(self, field: FieldConfig):
        self.field = field

    def slice(
        self,
        axis: str,
        fixed: float,
        min_a: float,
        max_a: float,
        min_b: float,
        max_b: float,
        width: int,
        height: int,
    ) -> ScalarGrid:
        """Sample the plane ``axis == fixed``.

        Grid x spans [min_a, max_a], grid y spans [min_b, max_b]; which world
        axes they map to depends on ``axis`` (see ``_PLANES``).
        """
        if axis not in _PLANES:
            raise ValueError(f"Unknown slice axis '{axis}'")
        a = np.linspace(min_a, max_a, width) if width > 1 else np.array([float(min_a)])
        b = np.linspace(min_b, max_b, height) if height > 1 else np.array([float(min_b)])
        bb, aa = np.meshgrid(b, a, indexing="ij")

        coords = {axis: np.full(aa.shape, float(fixed))}
        a_axis, b_axis = _PLANES[axis]
        coords[a_axis] = aa
        coords[b_axis] = bb

        values = total_illuminance(self.field, coords["x"], coords["y"], coords["z"])
        return ScalarGrid(
            values.ravel(), width, height, float(min_a), float(max_a), float(min_b), float(max_b)
        )

    def top_view(self, limits: GridLimits, resolution: int, elevation: float = 0.0) -> ScalarGrid:
        return self.slice(
            "z", elevation, limits.min_x, limits.max_x, limits.min_y, limits.max_y,
            resolution, resolution,
        )

    def side_view(self, limits: GridLimits, resolution: int, lateral: float = 0.0) -> ScalarGrid:
        # Vertical range is taken symmetric to the lateral window.
        return self.slice(
            "x", lateral, limits.min_x, limits.max_x, limits.min_y, limits.max_y,
            resolution, resolution,
        )

    def volume_slices(
        self,
        limits: GridLimits,
        resolution: int,
        count: int,
        threshold: float,
        extract: Callable[[ScalarGrid, float], list],
    ) -> list[np.ndarray]:
        """Contour stacks at fixed z (plan slices) and fixed x (elevation slices) as 3D polylines."""
        min_z, max_z = limits.min_x, limits.max_x
        paths: list[np.ndarray] = []

        for z in slice_steps(min_z, max_z, count):
            grid = self.slice(
                "z", z, limits.min_x, limits.max_x, limits.min_y, limits.max_y,
                resolution, resolution,
            )
            for p in extract(grid, threshold):
                paths.append(np.column_stack([p[:, 0], p[:, 1], np.full(len(p), z)]))

        for x in slice_steps(limits.min_x, limits.max_x, count):
            grid = self.slice(
                "x", x, min_z, max_z, limits.min_y, limits.max_y, resolution, resolution
            )
            for p in extract(grid, threshold):
                paths.append(np.column_stack([np.full(len(p), x), p[:, 1], p[:, 0]]))

        logger.debug("Volume slices produced %d polylines", len(paths))
        return paths


def _lit_extent(grid: ScalarGrid, threshold: float) -> tuple[float, float]:
    lit = grid.as_array() >= threshold
    if not lit.any():
        return 0.0, 0.0
    gy, gx = np.nonzero(lit)
    xs = np.abs(grid.min_x + gx * ((grid.max_x - grid.min_x) / (grid.width - 1)))
    ys = grid.min_y + gy * ((grid.max_y - grid.min_y) / (grid.height - 1))
    return float(xs.max()), float(ys.max())


def suggest_limits(
    top: ScalarGrid,
    side: ScalarGrid,
    threshold: float,
    limits: GridLimits,
    infrared: bool = False,
) -> Optional[GridLimits]:
    """Window that frames the lit region with some padding, or None to keep ``limits``."""
    if min(top.width, top.height, side.width, side.height) < 2:
        return None
    top_lat, top_range = _lit_extent(top, threshold)
    side_lat, side_range = _lit_extent(side, threshold)
    needed_lat = max(top_lat, side_lat)
    needed_range = max(top_range, side_range)
    if needed_lat == 0 or needed_range == 0:
        return None

    new_x = math.ceil(needed_lat * 1.3 / 100) * 100
    new_y = math.ceil(needed_range * 1.2 / 100) * 100

    diff_x = abs(new_x - limits.max_x) / limits.max_x if limits.max_x else math.inf
    diff_y = abs(new_y - limits.max_y) / limits.max_y if limits.max_y else math.inf
    if diff_x <= 0.1 and diff_y <= 0.1:
        return None

    min_clamp = 10 if infrared else 200
    min_change = 5 if infrared else 50
    clamped_x = max(min_clamp, new_x)
    clamped_y = max(min_clamp, new_y)
    if abs(clamped_x - limits.max_x) <= min_change and abs(clamped_y - limits.max_y) <= min_change:
        return None

    logger.info("Auto-scaling view to %s x %s", clamped_x, clamped_y)
    return GridLimits(-float(clamped_x), float(clamped_x), 0.0, float(clamped_y))
