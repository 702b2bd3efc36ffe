"""Turning a Config into field snapshots, sampled views and contours."""

from __future__ import annotations

import logging
from typing import Optional

from BEACON.config import Config
from BEACON.src.core import contours
from BEACON.src.core.field import beam_envelope, source_orientations
from BEACON.src.core.sampler import FieldSampler, suggest_limits
from BEACON.src.core.spectral import spectral_factor
from BEACON.src.core.types import (
    FieldConfig,
    GridLimits,
    Photometric,
    Radiometric,
    SimulationResult,
)

logger = logging.getLogger(__name__)


def build_field_config(config: Config) -> FieldConfig:
    """Snapshot the physical parameters of ``config``.

    In the infrared regime PEAK_INTENSITY is read as mW/sr and handed to the
    field as W/sr, so results come out in W/m^2 instead of lux.
    """
    if config.is_infrared:
        intensity = Radiometric(config.PEAK_INTENSITY / 1000.0)
    else:
        intensity = Photometric(config.PEAK_INTENSITY)

    return FieldConfig(
        peak_intensity=intensity,
        wavelength_nm=config.WAVELENGTH_NM,
        spectral_factor=spectral_factor(config.WAVELENGTH_NM, config.SPECTRAL_POLICY),
        beam_pattern=config.BEAM_PATTERN,
        orientations=source_orientations(
            config.LED_COUNT, config.SPREAD_DEG, config.ROW_COUNT, config.VERTICAL_SPREAD_DEG
        ),
        alpha=config.ALPHA_PER_M,
        edge_policy=config.BEAM_EDGE_POLICY,
    )


def effective_threshold(config: Config) -> float:
    """Detection threshold (lux, or W/m^2 in infrared), lowered for flashing sources."""
    base = 10.0 ** config.LOG_THRESHOLD
    return base / config.CONSPICUITY_GAIN if config.FLASHING else base


def view_limits(config: Config) -> GridLimits:
    return GridLimits(config.GRID_MIN_X, config.GRID_MAX_X, config.GRID_MIN_Y, config.GRID_MAX_Y)


class SimulationRunner:
    def __init__(self, config: Config, worker=None):
        self.config = config
        self.worker = worker

    def _status(self, msg: str) -> None:
        if self.worker:
            self.worker.status_msg.emit(msg)

    def run(self, field: Optional[FieldConfig] = None, with_volume: bool = True) -> SimulationResult:
        cfg = self.config
        field = field or build_field_config(cfg)
        threshold = effective_threshold(cfg)
        limits = view_limits(cfg)
        sampler = FieldSampler(field)

        self._status("Sampling plan and elevation views...")
        top = sampler.top_view(limits, cfg.GRID_RES)
        side = sampler.side_view(limits, cfg.GRID_RES)
        top_paths = contours.extract(top, threshold)
        side_paths = contours.extract(side, threshold)

        slice_paths = []
        if with_volume:
            self._status(f"Slicing volume ({cfg.NUM_SLICES} slices per axis)...")
            slice_paths = sampler.volume_slices(
                limits, cfg.SLICE_RES, cfg.NUM_SLICES, threshold, contours.extract
            )

        suggested = None
        if cfg.AUTO_SCALE:
            suggested = suggest_limits(top, side, threshold, limits, cfg.is_infrared)

        envelope = beam_envelope(
            field.beam_pattern,
            field.intensity_value * field.spectral_factor,
            threshold,
            field.alpha,
            edge_policy=field.edge_policy,
        )

        logger.info(
            "Simulation: %d sources, threshold %.3g, %d/%d plan/elevation contours, %d slice contours",
            len(field.orientations), threshold, len(top_paths), len(side_paths), len(slice_paths),
        )
        return SimulationResult(
            top, side, top_paths, side_paths, slice_paths, threshold, suggested, envelope
        )
