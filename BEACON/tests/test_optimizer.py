import unittest
from pathlib import Path
import csv
import tempfile
import sys
import numpy as np

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from BEACON.config import Config
from BEACON.src.core.optimizer import GeometryOptimizer, coverage_lattice, save_results
from BEACON.src.core.types import FieldConfig, OptimizationCandidate, Photometric

PATTERN = [(0, 1.0), (10, 0.9), (20, 0.45), (30, 0.0)]


class FakeSignal:
    def __init__(self):
        self.messages = []

    def emit(self, msg):
        self.messages.append(msg)


class FakeWorker:
    def __init__(self, stop_requested=False):
        self.status_msg = FakeSignal()
        self.stop_requested = stop_requested


def plain_field(intensity=1.0):
    return FieldConfig(Photometric(intensity), 525.0, 1.0, PATTERN, ((0.0, 0.0),))


def small_config(**overrides):
    cfg = Config(
        LED_COUNT=1,
        TARGET_WIDTH=200.0,
        TARGET_HEIGHT=100.0,
        TARGET_RANGE=500.0,
        OPT_MAX_SPREAD_DEG=20.0,
        OPT_STEP_DEG=10.0,
    )
    for k, v in overrides.items():
        setattr(cfg, k, v)
    return cfg


class TestCoverageLattice(unittest.TestCase):
    def test_shape_and_bounds(self):
        pts = coverage_lattice(1000.0, 600.0, 2000.0)
        self.assertEqual(pts.shape, (225, 3))
        self.assertEqual(pts[:, 0].max(), 500.0)
        self.assertEqual(pts[:, 1].max(), 2000.0)
        self.assertEqual(pts[:, 2].max(), 300.0)
        self.assertTrue(np.all(pts >= 0.0))
        self.assertTrue(any(np.array_equal(p, [0.0, 0.0, 0.0]) for p in pts))

    def test_unique_points(self):
        pts = coverage_lattice(100.0, 100.0, 100.0)
        self.assertEqual(len(np.unique(pts, axis=0)), 225)


class TestGeometryOptimizer(unittest.TestCase):
    def test_find_extent_on_axis(self):
        opt = GeometryOptimizer(small_config(), plain_field(), 1e-6)
        rng = opt.find_extent(plain_field(), (0.0, 0.0, 0.0), (0.0, 1.0, 0.0), 2000.0)
        self.assertLessEqual(rng, 932.47)
        self.assertAlmostEqual(rng, 932.46, delta=1.0)

    def test_find_extent_dark_start(self):
        opt = GeometryOptimizer(small_config(), plain_field(), 1e-6)
        self.assertEqual(opt.find_extent(plain_field(), (0.0, -10.0, 0.0), (0.0, -1.0, 0.0), 100.0), 0.0)

    def test_coverage_excludes_emitter_plane(self):
        # every point on y = 0 except the emitter itself is behind the source
        opt = GeometryOptimizer(small_config(), plain_field(), 1e-6)
        samples = coverage_lattice(10.0, 10.0, 100.0)
        self.assertAlmostEqual(opt.coverage(plain_field(), samples), 201 / 225 * 100.0)

    def test_coverage_monotone_in_threshold(self):
        samples = coverage_lattice(400.0, 200.0, 2000.0)
        field = plain_field()
        low = GeometryOptimizer(small_config(), field, 1e-7).coverage(field, samples)
        high = GeometryOptimizer(small_config(), field, 1e-5).coverage(field, samples)
        self.assertGreaterEqual(low, high)

    def test_coverage_monotone_in_intensity(self):
        samples = coverage_lattice(400.0, 200.0, 2000.0)
        opt = GeometryOptimizer(small_config(), plain_field(), 1e-6)
        prev = 0.0
        for intensity in (0.25, 1.0, 4.0, 16.0):
            cov = opt.coverage(plain_field(intensity), samples)
            self.assertGreaterEqual(cov, prev)
            prev = cov

    def test_evaluate_below_floor(self):
        opt = GeometryOptimizer(small_config(), plain_field(), 1e3)
        self.assertIsNone(opt.evaluate(10.0, 0.0, coverage_lattice(200.0, 100.0, 500.0)))

    def test_run_ranks_by_coverage(self):
        cfg = small_config(LED_COUNT=3, ROW_COUNT=2)
        opt = GeometryOptimizer(cfg, plain_field(), 1e-6)
        results = opt.run()
        self.assertGreater(len(results), 0)
        self.assertLessEqual(len(results), 9)
        coverages = [c.coverage for c in results]
        self.assertEqual(coverages, sorted(coverages, reverse=True))
        for c in results:
            self.assertGreater(c.coverage, cfg.OPT_MIN_COVERAGE)
            self.assertIn(c.horizontal_spread, (0.0, 10.0, 20.0))
            self.assertIn(c.vertical_spread, (0.0, 10.0, 20.0))
            self.assertGreater(c.range, 0.0)

    def test_top_n(self):
        cfg = small_config(OPT_TOP_N=3)
        self.assertLessEqual(len(GeometryOptimizer(cfg, plain_field(), 1e-6).run()), 3)

    def test_nothing_viable(self):
        worker = FakeWorker()
        results = GeometryOptimizer(small_config(), plain_field(), 1e3, worker=worker).run()
        self.assertEqual(results, [])
        self.assertTrue(any("No configuration" in m for m in worker.status_msg.messages))

    def test_abort(self):
        worker = FakeWorker(stop_requested=True)
        results = GeometryOptimizer(small_config(), plain_field(), 1e-6, worker=worker).run()
        self.assertEqual(results, [])
        self.assertTrue(any("aborted" in m for m in worker.status_msg.messages))


class TestSaveResults(unittest.TestCase):
    def test_writes_csv_and_plot(self):
        data = [
            OptimizationCandidate(10.0, 0.0, 80.0, 400.0, 120.0, 900.0),
            OptimizationCandidate(20.0, 10.0, 60.0, 600.0, 200.0, 700.0),
        ]
        with tempfile.TemporaryDirectory() as td:
            csv_path = save_results(data, Path(td))
            self.assertIsNotNone(csv_path)
            with csv_path.open() as f:
                rows = list(csv.reader(f))
            pngs = list(Path(td).glob("*.png"))

        self.assertEqual(rows[0], ["H_Spread_deg", "V_Spread_deg", "Coverage_pct", "Width", "Height", "Range"])
        self.assertEqual(len(rows), 3)
        self.assertEqual(float(rows[1][2]), 80.0)
        self.assertEqual(len(pngs), 1)

    def test_empty(self):
        with tempfile.TemporaryDirectory() as td:
            self.assertIsNone(save_results([], Path(td)))
            self.assertEqual(list(Path(td).iterdir()), [])


if __name__ == "__main__":
    unittest.main()
