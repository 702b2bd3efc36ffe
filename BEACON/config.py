"""Application configuration with simple JSON persistence."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Optional, get_type_hints

logger = logging.getLogger(__name__)


# (name, wavelength_nm, hex)
COLOR_PRESETS: list[tuple[str, float, str]] = [
    ("Deep Blue", 450.0, "#0000FF"),
    ("Blue", 470.0, "#0080FF"),
    ("Cyan", 495.0, "#00FFFF"),
    ("Green", 525.0, "#00FF00"),
    ("Yellow-Green", 565.0, "#9ACD32"),
    ("Yellow", 585.0, "#FFFF00"),
    ("Amber", 595.0, "#FFBF00"),
    ("Red-Orange", 610.0, "#FF4500"),
    ("Red", 625.0, "#FF0000"),
    ("Deep Red", 660.0, "#8B0000"),
    ("Infrared", 850.0, "#be123c"),
]

DEFAULT_BEAM_PATTERN: list[list[float]] = [[0.0, 1.0], [10.0, 0.9], [20.0, 0.45], [30.0, 0.0]]


@dataclass
class Config:
    # Source array
    LED_COUNT: int = 3
    SPREAD_DEG: float = 45.0
    ROW_COUNT: int = 1
    VERTICAL_SPREAD_DEG: float = 0.0
    PEAK_INTENSITY: float = 1.0  # cd, or mW/sr in the infrared regime
    WAVELENGTH_NM: float = 525.0
    INFRARED_MIN_NM: float = 800.0
    BEAM_PATTERN: list = field(default_factory=lambda: [list(p) for p in DEFAULT_BEAM_PATTERN])

    # Physics policies
    SPECTRAL_POLICY: str = "CORRECTION"  # CORRECTION, ENVELOPE
    BEAM_EDGE_POLICY: str = "CUTOFF"  # CUTOFF, CLAMP
    ALPHA_PER_M: float = 0.00015

    # Detection
    LOG_THRESHOLD: float = -6.0
    FLASHING: bool = False
    CONSPICUITY_GAIN: float = 8.0

    # View window (world units, x lateral, y forward)
    GRID_MIN_X: float = -2000.0
    GRID_MAX_X: float = 2000.0
    GRID_MIN_Y: float = 0.0
    GRID_MAX_Y: float = 2000.0
    GRID_RES: int = 450
    AUTO_SCALE: bool = True

    # Volume wireframe
    SLICE_RES: int = 151
    NUM_SLICES: int = 24

    # Optimizer
    TARGET_WIDTH: float = 1000.0
    TARGET_HEIGHT: float = 600.0
    TARGET_RANGE: float = 2000.0
    OPT_MAX_SPREAD_DEG: float = 80.0
    OPT_STEP_DEG: float = 2.0
    OPT_MIN_COVERAGE: float = 2.0
    OPT_TOP_N: int = 100
    OPT_EXTENT_ITERATIONS: int = 12

    # Output
    OUTPUT_DIR: str = "plots"

    @staticmethod
    def default_path() -> Path:
        return Path.home() / ".beacon_config.json"

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Config":
        cfg = cls()
        cfg_path = path or cls.default_path()
        if not cfg_path.exists():
            return cfg

        try:
            data = json.loads(cfg_path.read_text())
        except Exception:
            logger.exception("Failed to read config file: %s", cfg_path)
            return cfg

        hints = get_type_hints(cls)
        for f in fields(cfg):
            if f.name not in data:
                continue
            raw = data[f.name]
            kind = hints.get(f.name)
            try:
                if kind is bool:
                    val = bool(raw)
                elif kind is int:
                    val = int(raw)
                elif kind is float:
                    val = float(raw)
                elif kind is str:
                    val = str(raw)
                else:
                    val = raw
                setattr(cfg, f.name, val)
            except Exception:
                logger.warning("Ignoring invalid config value for %s", f.name)

        cfg.normalize()
        return cfg

    def save(self, path: Optional[Path] = None) -> None:
        cfg_path = path or self.default_path()
        cfg_path.write_text(json.dumps(asdict(self), indent=2, sort_keys=True))

    @property
    def is_infrared(self) -> bool:
        return self.WAVELENGTH_NM >= self.INFRARED_MIN_NM

    def normalize(self) -> None:
        if self.GRID_MIN_X > self.GRID_MAX_X:
            self.GRID_MIN_X, self.GRID_MAX_X = self.GRID_MAX_X, self.GRID_MIN_X
        if self.GRID_MIN_Y > self.GRID_MAX_Y:
            self.GRID_MIN_Y, self.GRID_MAX_Y = self.GRID_MAX_Y, self.GRID_MIN_Y
        self.LED_COUNT = max(1, self.LED_COUNT)
        self.ROW_COUNT = max(1, self.ROW_COUNT)
        self.GRID_RES = max(2, self.GRID_RES)
        self.SLICE_RES = max(2, self.SLICE_RES)
        self.NUM_SLICES = max(1, self.NUM_SLICES)
        self.OPT_EXTENT_ITERATIONS = max(1, self.OPT_EXTENT_ITERATIONS)
        if self.OPT_STEP_DEG <= 0:
            self.OPT_STEP_DEG = 2.0
        self.SPECTRAL_POLICY = self.SPECTRAL_POLICY.upper()
        self.BEAM_EDGE_POLICY = self.BEAM_EDGE_POLICY.upper()

    def apply_preset(self, name: str) -> None:
        """Switch wavelength to a named colour preset.

        Crossing into or out of the infrared regime also resets intensity,
        threshold and view window to the defaults of that regime.
        """
        matches = [p for p in COLOR_PRESETS if p[0].lower() == name.lower()]
        if not matches:
            raise KeyError(f"Unknown colour preset: {name}")
        wavelength = matches[0][1]

        to_ir = wavelength >= self.INFRARED_MIN_NM
        from_ir = self.is_infrared and not to_ir
        self.WAVELENGTH_NM = wavelength

        if to_ir:
            self.PEAK_INTENSITY = 180.0  # mW/sr
            self.LOG_THRESHOLD = -9.0  # 1 nW/m^2
            self.GRID_MIN_X, self.GRID_MAX_X = -5000.0, 5000.0
            self.GRID_MIN_Y, self.GRID_MAX_Y = 0.0, 10000.0
        elif from_ir:
            defaults = Config()
            self.PEAK_INTENSITY = defaults.PEAK_INTENSITY
            self.LOG_THRESHOLD = defaults.LOG_THRESHOLD
            self.GRID_MIN_X, self.GRID_MAX_X = defaults.GRID_MIN_X, defaults.GRID_MAX_X
            self.GRID_MIN_Y, self.GRID_MAX_Y = defaults.GRID_MIN_Y, defaults.GRID_MAX_Y
