"""Background worker thread for field sampling, contouring and spread optimization."""

from __future__ import annotations

import copy
import itertools
import logging
import queue
from typing import Any

from PyQt5 import QtCore

from BEACON.config import Config
from BEACON.src.core.optimizer import GeometryOptimizer
from BEACON.src.core.simulation import SimulationRunner, build_field_config, effective_threshold

logger = logging.getLogger(__name__)


class WorkerState:
    IDLE = "IDLE"
    SIMULATING = "SIMULATING"
    OPTIMIZING = "OPTIMIZING"
    STOPPING = "STOPPING"
    ERROR = "ERROR"


SIMULATE = "SIMULATE"
OPTIMIZE = "OPTIMIZE"


class SimulationWorker(QtCore.QThread):
    """Runs requests off the caller's thread.

    Each request carries a snapshot of the Config taken at submission. Only
    the most recently requested computation of a kind gets its result
    emitted; older queued requests are dropped and older in-flight results
    are discarded.
    """

    status_msg = QtCore.pyqtSignal(str)
    state_changed = QtCore.pyqtSignal(str)
    simulation_finished = QtCore.pyqtSignal(object)
    optimization_finished = QtCore.pyqtSignal(object)
    computation_failed = QtCore.pyqtSignal(str)

    def __init__(self, poll_interval_s: float = 0.05):
        super().__init__()
        self.running = True
        self.stop_requested = False
        self.state = WorkerState.IDLE
        self.poll_interval_s = poll_interval_s

        self.command_queue: queue.Queue[tuple[str, int, Any]] = queue.Queue()
        self._ids = itertools.count(1)
        self._latest: dict[str, int] = {SIMULATE: 0, OPTIMIZE: 0}

    @property
    def is_busy(self) -> bool:
        return self.state in (WorkerState.SIMULATING, WorkerState.OPTIMIZING, WorkerState.STOPPING)

    def _set_state(self, state: str) -> None:
        if self.state != state:
            self.state = state
            self.state_changed.emit(state)

    def _submit(self, kind: str, config: Config) -> int:
        req_id = next(self._ids)
        self._latest[kind] = req_id
        self.command_queue.put((kind, req_id, copy.deepcopy(config)))
        return req_id

    def request_simulation(self, config: Config) -> int:
        return self._submit(SIMULATE, config)

    def request_optimization(self, config: Config) -> int:
        self.stop_requested = False
        return self._submit(OPTIMIZE, config)

    def request_stop(self) -> None:
        self.stop_requested = True
        if self.is_busy:
            self._set_state(WorkerState.STOPPING)
        with self.command_queue.mutex:
            self.command_queue.queue.clear()
        self.status_msg.emit("Stopping...")

    def stop(self) -> None:
        self.running = False
        self.wait()

    def run(self) -> None:
        while self.running:
            try:
                cmd = self.command_queue.get(timeout=self.poll_interval_s)
            except queue.Empty:
                continue
            self._dispatch(*cmd)
            self._drain_commands()

    def _drain_commands(self) -> None:
        while not self.command_queue.empty():
            self._dispatch(*self.command_queue.get_nowait())

    def _is_stale(self, kind: str, req_id: int) -> bool:
        return req_id != self._latest[kind]

    def _dispatch(self, kind: str, req_id: int, config: Config) -> None:
        if self._is_stale(kind, req_id):
            logger.debug("Skipping superseded %s request #%d", kind, req_id)
            return
        try:
            if kind == SIMULATE:
                self._handle_simulation(req_id, config)
            elif kind == OPTIMIZE:
                self._handle_optimization(req_id, config)
        except Exception as exc:
            self._set_state(WorkerState.ERROR)
            logger.exception("%s request #%d failed", kind, req_id)
            self.status_msg.emit("Computation failed. Check logs for details.")
            self.computation_failed.emit(f"{kind}: {exc}")
        self._set_state(WorkerState.IDLE)

    def _handle_simulation(self, req_id: int, config: Config) -> None:
        self._set_state(WorkerState.SIMULATING)
        result = SimulationRunner(config, worker=self).run()
        if self._is_stale(SIMULATE, req_id):
            logger.debug("Discarding superseded simulation #%d", req_id)
            return
        self.status_msg.emit(f"Simulation done: {len(result.top_paths)} plan contours")
        self.simulation_finished.emit(result)

    def _handle_optimization(self, req_id: int, config: Config) -> None:
        self.stop_requested = False
        self._set_state(WorkerState.OPTIMIZING)
        optimizer = GeometryOptimizer(
            config, build_field_config(config), effective_threshold(config), worker=self
        )
        results = optimizer.run()
        if self._is_stale(OPTIMIZE, req_id):
            logger.debug("Discarding superseded optimization #%d", req_id)
            return
        self.optimization_finished.emit(results)
