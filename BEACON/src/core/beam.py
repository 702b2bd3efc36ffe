"""Off-axis beam pattern lookup."""

from __future__ import annotations

import numpy as np

from BEACON.src.core.spectral import lerp
from BEACON.src.core.types import BEAM_EDGE_POLICIES, BeamPoint, ConfigurationError


def validate_pattern(points) -> tuple[BeamPoint, ...]:
    """Return the pattern as an immutable tuple of BeamPoints or raise ConfigurationError."""
    pattern = tuple(BeamPoint(float(p[0]), float(p[1])) for p in points)
    if not pattern:
        raise ConfigurationError("Beam pattern is empty")
    if pattern[0].angle != 0.0:
        raise ConfigurationError(
            f"Beam pattern must start at angle 0, got {pattern[0].angle}"
        )
    for prev, cur in zip(pattern, pattern[1:]):
        if cur.angle < prev.angle:
            raise ConfigurationError("Beam pattern angles must be ascending")
    return pattern


def beam_intensity(pattern, angle_deg: float, policy: str = "CUTOFF") -> float:
    """Relative intensity at an off-axis angle. The pattern is symmetric about the axis."""
    if policy not in BEAM_EDGE_POLICIES:
        raise ConfigurationError(f"Unknown beam edge policy: {policy}")
    a = abs(angle_deg)
    if a <= pattern[0].angle:
        return pattern[0].intensity

    last = pattern[-1]
    if a > last.angle:
        return 0.0 if policy == "CUTOFF" else last.intensity

    for p0, p1 in zip(pattern, pattern[1:]):
        if p0.angle <= a <= p1.angle:
            return lerp(a, p0.angle, p1.angle, p0.intensity, p1.intensity)
    return 0.0


def beam_intensity_array(pattern, angles_deg: np.ndarray, policy: str = "CUTOFF") -> np.ndarray:
    """Vectorised ``beam_intensity``; the first bracketing pair wins as in the scalar loop."""
    if policy not in BEAM_EDGE_POLICIES:
        raise ConfigurationError(f"Unknown beam edge policy: {policy}")
    a = np.abs(np.asarray(angles_deg, dtype=np.float64))
    out = np.zeros_like(a)
    done = a <= pattern[0].angle
    out[done] = pattern[0].intensity

    last = pattern[-1]
    beyond = ~done & (a > last.angle)
    if policy == "CLAMP":
        out[beyond] = last.intensity
    done |= beyond

    for p0, p1 in zip(pattern, pattern[1:]):
        sel = ~done & (a >= p0.angle) & (a <= p1.angle)
        if not sel.any():
            continue
        span = p1.angle - p0.angle
        if abs(span) < 1e-9:
            out[sel] = (p0.intensity + p1.intensity) / 2.0
        else:
            out[sel] = p0.intensity + (a[sel] - p0.angle) * (p1.intensity - p0.intensity) / span
        done |= sel
    return out
