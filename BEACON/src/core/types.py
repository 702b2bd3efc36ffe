"""Shared core data structures used across the field model, contouring and optimizer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple, Optional, Union

import numpy as np


class ConfigurationError(ValueError):
    """Raised when a field configuration violates a precondition."""


class BeamPoint(NamedTuple):
    """One sample of a beam pattern: off-axis angle (deg) and relative intensity."""

    angle: float
    intensity: float


class SourceOrientation(NamedTuple):
    """Aim of a single source, radians."""

    yaw: float
    pitch: float


@dataclass(frozen=True)
class Photometric:
    candela: float

    @property
    def value(self) -> float:
        return self.candela


@dataclass(frozen=True)
class Radiometric:
    watts_per_sr: float

    @property
    def value(self) -> float:
        return self.watts_per_sr


Intensity = Union[Photometric, Radiometric]

# (N, 2) for plan/elevation contours, (N, 3) for volume slices
Polyline = np.ndarray


class GridLimits(NamedTuple):
    min_x: float
    max_x: float
    min_y: float
    max_y: float


class ScalarGrid(NamedTuple):
    """Row-major sampled field: ``values[gy * width + gx]``."""

    values: np.ndarray
    width: int
    height: int
    min_x: float
    max_x: float
    min_y: float
    max_y: float

    def x_at(self, gx: float) -> float:
        return self.min_x + gx * ((self.max_x - self.min_x) / (self.width - 1))

    def y_at(self, gy: float) -> float:
        return self.min_y + gy * ((self.max_y - self.min_y) / (self.height - 1))

    def as_array(self) -> np.ndarray:
        return self.values.reshape(self.height, self.width)


class OptimizationCandidate(NamedTuple):
    horizontal_spread: float
    vertical_spread: float
    coverage: float
    width: float
    height: float
    range: float


class SimulationResult(NamedTuple):
    top_grid: ScalarGrid
    side_grid: ScalarGrid
    top_paths: list
    side_paths: list
    slice_paths: list
    threshold: float
    suggested_limits: Optional[GridLimits]
    # (radius, axial distance) detection profile of a single source
    source_envelope: np.ndarray


SPECTRAL_POLICIES = ("CORRECTION", "ENVELOPE")
BEAM_EDGE_POLICIES = ("CUTOFF", "CLAMP")


@dataclass(frozen=True)
class FieldConfig:
    """Immutable snapshot feeding one or more field evaluations."""

    peak_intensity: Intensity
    wavelength_nm: float
    spectral_factor: float
    beam_pattern: tuple
    orientations: tuple
    alpha: float = 0.00015
    edge_policy: str = "CUTOFF"

    def __post_init__(self):
        # Local import: beam depends on this module.
        from BEACON.src.core.beam import validate_pattern

        object.__setattr__(self, "beam_pattern", validate_pattern(self.beam_pattern))
        object.__setattr__(
            self, "orientations", tuple(SourceOrientation(*o) for o in self.orientations)
        )
        if self.edge_policy not in BEAM_EDGE_POLICIES:
            raise ConfigurationError(f"Unknown beam edge policy: {self.edge_policy}")
        if self.alpha < 0:
            raise ConfigurationError(f"Attenuation coefficient must be >= 0, got {self.alpha}")
        if not isinstance(self.peak_intensity, (Photometric, Radiometric)):
            raise ConfigurationError("peak_intensity must be Photometric or Radiometric")

    @property
    def intensity_value(self) -> float:
        return float(self.peak_intensity.value)

    @property
    def is_radiometric(self) -> bool:
        return isinstance(self.peak_intensity, Radiometric)
