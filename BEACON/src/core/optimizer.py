"""Brute-force search over horizontal/vertical spread angles for target-volume coverage."""

from __future__ import annotations

import csv
import logging
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Optional

import matplotlib
import matplotlib.pyplot as plt
import numpy as np

from BEACON.config import Config
from BEACON.src.core.field import source_orientations, total_illuminance, total_illuminance_at
from BEACON.src.core.types import FieldConfig, OptimizationCandidate

matplotlib.use("Agg")

logger = logging.getLogger(__name__)


def coverage_lattice(width: float, height: float, rng: float) -> np.ndarray:
    """(225, 3) sample points over the positive quadrant of the target box.

    Lateral and vertical use 5 steps from the centre line to the half size,
    range uses 9 steps from the emitter to the full range.
    """
    xs = np.arange(5) / 4 * (width / 2)
    zs = np.arange(5) / 4 * (height / 2)
    ys = np.arange(9) / 8 * rng
    gx, gz, gy = np.meshgrid(xs, zs, ys, indexing="ij")
    return np.column_stack([gx.ravel(), gy.ravel(), gz.ravel()])


class GeometryOptimizer:
    def __init__(self, config: Config, field: FieldConfig, threshold: float, worker=None):
        self.config = config
        self.field = field
        self.threshold = threshold
        self.worker = worker

    def _status(self, msg: str) -> None:
        logger.info(msg)
        if self.worker:
            self.worker.status_msg.emit(msg)

    def _field_for(self, h_deg: float, v_deg: float) -> FieldConfig:
        orientations = source_orientations(
            self.config.LED_COUNT, h_deg, self.config.ROW_COUNT, v_deg
        )
        return replace(self.field, orientations=orientations)

    def coverage(self, field: FieldConfig, samples: np.ndarray) -> float:
        """Percentage of sample points at or above the detection threshold."""
        totals = total_illuminance(field, samples[:, 0], samples[:, 1], samples[:, 2])
        hits = int(np.count_nonzero(totals >= self.threshold))
        return hits / len(samples) * 100.0

    def find_extent(
        self,
        field: FieldConfig,
        start: tuple[float, float, float],
        direction: tuple[float, float, float],
        max_dist: float,
    ) -> float:
        """Furthest distance from ``start`` along ``direction`` still at threshold (bisection)."""
        low, high = 0.0, float(max_dist)
        limit = 0.0
        for _ in range(self.config.OPT_EXTENT_ITERATIONS):
            mid = (low + high) / 2
            x = start[0] + direction[0] * mid
            y = start[1] + direction[1] * mid
            z = start[2] + direction[2] * mid
            if total_illuminance_at(field, x, y, z) >= self.threshold:
                limit = mid
                low = mid
            else:
                high = mid
        return limit

    def evaluate(self, h_deg: float, v_deg: float, samples: np.ndarray) -> Optional[OptimizationCandidate]:
        field = self._field_for(h_deg, v_deg)
        cov = self.coverage(field, samples)
        if cov <= self.config.OPT_MIN_COVERAGE:
            return None

        target_w = self.config.TARGET_WIDTH
        target_h = self.config.TARGET_HEIGHT
        target_r = self.config.TARGET_RANGE
        rng = self.find_extent(field, (0.0, 0.0, 0.0), (0.0, 1.0, 0.0), target_r * 2)
        half_w = self.find_extent(field, (0.0, rng * 0.5, 0.0), (1.0, 0.0, 0.0), target_w * 2)
        half_h = self.find_extent(field, (0.0, rng * 0.5, 0.0), (0.0, 0.0, 1.0), target_h * 2)
        return OptimizationCandidate(float(h_deg), float(v_deg), cov, half_w * 2, half_h * 2, rng)

    def run(self) -> list[OptimizationCandidate]:
        """Rank every (h, v) pair on the search grid by coverage; best first, top N."""
        cfg = self.config
        samples = coverage_lattice(cfg.TARGET_WIDTH, cfg.TARGET_HEIGHT, cfg.TARGET_RANGE)
        angles = np.arange(0.0, cfg.OPT_MAX_SPREAD_DEG + 1e-9, cfg.OPT_STEP_DEG)
        self._status(
            f"Optimizing spread over {len(angles)}x{len(angles)} candidates "
            f"({len(samples)} samples each)..."
        )

        results: list[OptimizationCandidate] = []
        for h in angles:
            if self.worker and self.worker.stop_requested:
                self._status("Optimization aborted by user.")
                break
            for v in angles:
                cand = self.evaluate(float(h), float(v), samples)
                if cand is not None:
                    results.append(cand)
            if self.worker:
                self.worker.status_msg.emit(f"Optimizing: h={h:.0f}° ({len(results)} viable)")

        results.sort(key=lambda c: c.coverage, reverse=True)
        ranked = results[: cfg.OPT_TOP_N]
        if ranked:
            best = ranked[0]
            self._status(
                f"Optimization DONE. Best h={best.horizontal_spread:.0f}° "
                f"v={best.vertical_spread:.0f}° | {best.coverage:.1f}%"
            )
        else:
            self._status("Optimization DONE. No configuration reached the coverage floor.")
        return ranked


def save_results(data: list[OptimizationCandidate], output_dir: Path) -> Optional[Path]:
    """Write the ranking as CSV plus a coverage/extent plot; returns the CSV path."""
    if not data:
        return None
    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

    csv_path = out_dir / f"spread_optimization_{timestamp}.csv"
    with csv_path.open("w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["H_Spread_deg", "V_Spread_deg", "Coverage_pct", "Width", "Height", "Range"])
        writer.writerows(data)

    h_vals = [c.horizontal_spread for c in data]
    v_vals = [c.vertical_spread for c in data]
    cov = [c.coverage for c in data]

    fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(10, 12))
    sc = ax1.scatter(h_vals, v_vals, c=cov, cmap="viridis", s=40)
    ax1.set_title("Target Coverage by Spread")
    ax1.set_xlabel("Horizontal Spread (deg)")
    ax1.set_ylabel("Vertical Spread (deg)")
    ax1.grid(True, which="both", linestyle="-", alpha=0.6)
    fig.colorbar(sc, ax=ax1, label="Coverage (%)")

    ranks = np.arange(1, len(data) + 1)
    ax2.plot(ranks, [c.width for c in data], "r.-", ms=6, lw=1.0, label="Width")
    ax2.plot(ranks, [c.height for c in data], "g.-", ms=6, lw=1.0, label="Height")
    ax2.plot(ranks, [c.range for c in data], "b.-", ms=6, lw=1.0, label="Range")
    ax2.set_title("Realized Extents (ranked)")
    ax2.set_xlabel("Rank")
    ax2.set_ylabel("Distance")
    ax2.grid(True, which="both", linestyle="-", alpha=0.6)
    ax2.legend()

    plt.tight_layout()
    plot_path = out_dir / f"spread_optimization_{timestamp}.png"
    plt.savefig(plot_path)
    plt.close(fig)

    logger.info("Optimizer results saved to %s", plot_path.name)
    return csv_path
