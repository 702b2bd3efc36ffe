import unittest
from pathlib import Path
import sys

from PyQt5 import QtCore, QtTest

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from BEACON.config import Config
from BEACON.src.core.worker import SimulationWorker, WorkerState


def small_config(**overrides):
    cfg = Config(GRID_RES=21, SLICE_RES=11, NUM_SLICES=1, LED_COUNT=1)
    for k, v in overrides.items():
        setattr(cfg, k, v)
    return cfg


class TestSimulationWorker(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = QtCore.QCoreApplication.instance() or QtCore.QCoreApplication([])

    def setUp(self):
        self.worker = SimulationWorker()
        self.states = []
        self.sims = []
        self.opts = []
        self.failures = []
        self.worker.state_changed.connect(self.states.append)
        self.worker.simulation_finished.connect(self.sims.append)
        self.worker.optimization_finished.connect(self.opts.append)
        self.worker.computation_failed.connect(self.failures.append)

    def test_latest_request_wins(self):
        cfg = small_config()
        self.worker.request_simulation(cfg)
        self.worker.request_simulation(cfg)
        self.worker.request_simulation(small_config(LOG_THRESHOLD=-5.0))
        self.worker._drain_commands()

        self.assertEqual(len(self.sims), 1)
        self.assertAlmostEqual(self.sims[0].threshold, 1e-5)
        self.assertEqual(self.states, [WorkerState.SIMULATING, WorkerState.IDLE])

    def test_config_is_snapshotted(self):
        cfg = small_config()
        self.worker.request_simulation(cfg)
        cfg.LOG_THRESHOLD = -3.0
        self.worker._drain_commands()
        self.assertAlmostEqual(self.sims[0].threshold, 1e-6)

    def test_failure_reports_and_recovers(self):
        with self.assertLogs("BEACON.src.core.worker", level="ERROR"):
            self.worker.request_simulation(small_config(BEAM_PATTERN=[]))
            self.worker._drain_commands()

        self.assertEqual(self.sims, [])
        self.assertEqual(len(self.failures), 1)
        self.assertIn("SIMULATE", self.failures[0])
        self.assertEqual(self.states, [WorkerState.SIMULATING, WorkerState.ERROR, WorkerState.IDLE])
        self.assertEqual(self.worker.state, WorkerState.IDLE)

        self.worker.request_simulation(small_config())
        self.worker._drain_commands()
        self.assertEqual(len(self.sims), 1)

    def test_result_superseded_mid_run_is_discarded(self):
        resubmitted = []

        def resubmit(msg):
            if msg.startswith("Sampling") and not resubmitted:
                resubmitted.append(self.worker.request_simulation(small_config(LOG_THRESHOLD=-5.0)))

        self.worker.status_msg.connect(resubmit)
        self.worker.request_simulation(small_config())
        self.worker._drain_commands()

        self.assertEqual(len(resubmitted), 1)
        self.assertEqual(len(self.sims), 1)
        self.assertAlmostEqual(self.sims[0].threshold, 1e-5)
        self.assertEqual(
            self.states,
            [WorkerState.SIMULATING, WorkerState.IDLE, WorkerState.SIMULATING, WorkerState.IDLE],
        )

    def test_optimization_coalesces(self):
        cfg = small_config(
            TARGET_WIDTH=200.0, TARGET_HEIGHT=100.0, TARGET_RANGE=500.0,
            OPT_MAX_SPREAD_DEG=10.0, OPT_STEP_DEG=10.0,
        )
        self.worker.request_optimization(cfg)
        self.worker.request_optimization(cfg)
        self.worker._drain_commands()
        self.assertEqual(len(self.opts), 1)
        self.assertEqual(self.states, [WorkerState.OPTIMIZING, WorkerState.IDLE])

    def test_stop_when_idle(self):
        self.worker.request_simulation(small_config())
        self.worker.request_stop()
        self.assertEqual(self.worker.state, WorkerState.IDLE)
        self.assertTrue(self.worker.command_queue.empty())
        self.worker._drain_commands()
        self.assertEqual(self.sims, [])

    def test_runs_on_thread(self):
        spy = QtTest.QSignalSpy(self.worker.simulation_finished)
        self.worker.start()
        try:
            self.worker.request_simulation(small_config())
            self.assertTrue(spy.wait(30000))
        finally:
            self.worker.stop()
        self.assertEqual(len(spy), 1)
        self.assertGreater(len(spy[0][0].top_paths), 0)


if __name__ == "__main__":
    unittest.main()
