import sys
import argparse
import logging
from pathlib import Path

from PyQt5 import QtCore

from BEACON.config import COLOR_PRESETS, Config
from BEACON.src.core.optimizer import save_results
from BEACON.src.core.worker import SimulationWorker
from BEACON.src.export.dxf import default_filename, write_dxf

logger = logging.getLogger("BEACON")


class HeadlessSession(QtCore.QObject):
    """Drives one simulation (and optionally one optimization) through the worker."""

    def __init__(self, app: QtCore.QCoreApplication, config: Config, out_dir: Path, optimize: bool):
        super().__init__()
        self.app = app
        self.config = config
        self.out_dir = out_dir
        self.optimize = optimize
        self.exit_code = 0

        self.worker = SimulationWorker()
        self.worker.status_msg.connect(lambda msg: logger.info(msg))
        self.worker.simulation_finished.connect(self.on_simulation)
        self.worker.optimization_finished.connect(self.on_optimization)
        self.worker.computation_failed.connect(self.on_failure)
        self.worker.start()

    def begin(self) -> None:
        self.worker.request_simulation(self.config)

    def on_simulation(self, result) -> None:
        if result.top_paths:
            name = default_filename(self.config.WAVELENGTH_NM, self.config.FLASHING)
            path = write_dxf(result.top_paths, self.out_dir / name)
            print(f"Wrote {len(result.top_paths)} contours to {path}")
        else:
            print("No visibility boundary inside the view window; nothing exported.")
        if len(result.source_envelope):
            print(f"Single-source on-axis detection range: {result.source_envelope[0, 1]:.0f}")
        if result.suggested_limits is not None:
            lim = result.suggested_limits
            print(f"Suggested view: x [{lim.min_x:g}, {lim.max_x:g}], y [{lim.min_y:g}, {lim.max_y:g}]")

        if self.optimize:
            self.worker.request_optimization(self.config)
        else:
            self.finish()

    def on_optimization(self, results) -> None:
        if not results:
            print("Optimizer: no solution found.")
        else:
            for c in results[:10]:
                print(
                    f"h={c.horizontal_spread:4.0f}°  v={c.vertical_spread:4.0f}°  "
                    f"coverage={c.coverage:5.1f}%  W={c.width:.0f} H={c.height:.0f} R={c.range:.0f}"
                )
            save_results(results, self.out_dir)
        self.finish()

    def on_failure(self, msg: str) -> None:
        print(f"Computation failed: {msg}", file=sys.stderr)
        self.exit_code = 1
        self.finish()

    def finish(self) -> None:
        self.worker.stop()
        self.app.exit(self.exit_code)


def main():
    parser = argparse.ArgumentParser(description="LED array visibility envelope")
    parser.add_argument("--config", type=Path, help="JSON config file (default ~/.beacon_config.json)")
    parser.add_argument("--preset", help="Colour preset name, e.g. 'Green' or 'Infrared'")
    parser.add_argument("--optimize", action="store_true", help="Also search spread angles for the target box")
    parser.add_argument("--out", type=Path, help="Output directory")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    config = Config.load(args.config)
    if args.preset:
        try:
            config.apply_preset(args.preset)
        except KeyError:
            names = ", ".join(p[0] for p in COLOR_PRESETS)
            parser.error(f"unknown preset '{args.preset}' (choose from: {names})")
    out_dir = args.out or Path(config.OUTPUT_DIR)

    app = QtCore.QCoreApplication(sys.argv)
    session = HeadlessSession(app, config, out_dir, args.optimize)
    QtCore.QTimer.singleShot(0, session.begin)

    sys.exit(app.exec_())

if __name__ == "__main__":
    main()
