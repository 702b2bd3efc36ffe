"""Allard's Law point-source field for an array of oriented sources.

Sources aim along +y when yaw and pitch are zero. Yaw rotates about the
vertical z axis, pitch about the lateral x axis, so a source points along
``(sin(yaw) cos(pitch), cos(yaw) cos(pitch), sin(pitch))``.

Per source:

    E = I_peak * k_spectral * B(theta) * exp(-alpha * d) / d**2

with ``d`` clamped to the near-field floor and ``B`` the beam pattern. Points
in or behind the plane of the emitter receive nothing. Sources are summed
independently.
"""

from __future__ import annotations

import math

import numpy as np

from BEACON.src.core.beam import beam_intensity, beam_intensity_array
from BEACON.src.core.types import FieldConfig, SourceOrientation

ALPHA = 0.00015  # atmospheric attenuation, 1/m
NEAR_FIELD_MIN = 0.05
BACKFACE_EPS = 0.001
ON_AXIS_EPS = 1e-12  # cosines this close to 1 are read as exactly on-axis


def _direction(yaw: float, pitch: float) -> tuple[float, float, float]:
    cos_p = math.cos(pitch)
    return math.sin(yaw) * cos_p, math.cos(yaw) * cos_p, math.sin(pitch)


def illuminance(
    x: float,
    y: float,
    z: float,
    yaw: float,
    pitch: float,
    peak_intensity: float,
    spectral_factor: float,
    beam_pattern,
    alpha: float = ALPHA,
    edge_policy: str = "CUTOFF",
) -> float:
    """Illuminance at (x, y, z) from one source at the origin."""
    dist = math.sqrt(x * x + y * y + z * z)
    d_safe = max(NEAR_FIELD_MIN, dist)

    dx, dy, dz = _direction(yaw, pitch)
    if dist > 0.0:
        cos_theta = (dx * x + dy * y + dz * z) / dist
    else:
        # At the emitter itself: on-axis value at the clamped distance.
        cos_theta = 1.0

    if cos_theta <= BACKFACE_EPS:
        return 0.0

    if cos_theta >= 1.0 - ON_AXIS_EPS:
        theta_deg = 0.0
    else:
        theta_deg = math.degrees(math.acos(cos_theta))
    relative = beam_intensity(beam_pattern, theta_deg, edge_policy)
    if relative <= 0.0:
        return 0.0

    effective = peak_intensity * spectral_factor * relative
    transmissivity = math.exp(-alpha * d_safe)
    return effective * transmissivity / (d_safe * d_safe)


def illuminance_array(
    x,
    y,
    z,
    yaw: float,
    pitch: float,
    peak_intensity: float,
    spectral_factor: float,
    beam_pattern,
    alpha: float = ALPHA,
    edge_policy: str = "CUTOFF",
) -> np.ndarray:
    """Vectorised ``illuminance`` over broadcastable coordinate arrays."""
    x, y, z = np.broadcast_arrays(
        np.asarray(x, dtype=np.float64),
        np.asarray(y, dtype=np.float64),
        np.asarray(z, dtype=np.float64),
    )
    dist = np.sqrt(x * x + y * y + z * z)
    d_safe = np.maximum(NEAR_FIELD_MIN, dist)

    dx, dy, dz = _direction(yaw, pitch)
    dot = dx * x + dy * y + dz * z
    at_source = dist <= 0.0
    cos_theta = np.where(at_source, 1.0, dot / np.where(at_source, 1.0, dist))

    lit = cos_theta > BACKFACE_EPS
    out = np.zeros(x.shape, dtype=np.float64)
    if not lit.any():
        return out

    cos_lit = cos_theta[lit]
    theta_deg = np.where(
        cos_lit >= 1.0 - ON_AXIS_EPS, 0.0, np.degrees(np.arccos(np.minimum(1.0, cos_lit)))
    )
    relative = beam_intensity_array(beam_pattern, theta_deg, edge_policy)
    d_lit = d_safe[lit]
    vals = peak_intensity * spectral_factor * relative * np.exp(-alpha * d_lit) / (d_lit * d_lit)
    out[lit] = np.where(relative > 0.0, vals, 0.0)
    return out


def total_illuminance(field: FieldConfig, x, y, z) -> np.ndarray:
    """Summed field of every source in ``field``; accepts scalars or arrays."""
    total = None
    for o in field.orientations:
        e = illuminance_array(
            x, y, z, o.yaw, o.pitch,
            field.intensity_value, field.spectral_factor, field.beam_pattern,
            field.alpha, field.edge_policy,
        )
        total = e if total is None else total + e
    if total is None:
        return np.zeros(np.broadcast(np.asarray(x), np.asarray(y), np.asarray(z)).shape)
    return total


def total_illuminance_at(field: FieldConfig, x: float, y: float, z: float) -> float:
    """Scalar ``total_illuminance`` for single-point probes."""
    return sum(
        illuminance(
            x, y, z, o.yaw, o.pitch,
            field.intensity_value, field.spectral_factor, field.beam_pattern,
            field.alpha, field.edge_policy,
        )
        for o in field.orientations
    )


def _spread_angles(count: int, spread_deg: float) -> list[float]:
    if count <= 1:
        return [0.0]
    half = math.radians(spread_deg)
    step = (half * 2) / (count - 1)
    return [-half + i * step for i in range(count)]


def source_orientations(
    columns: int, spread_deg: float, rows: int, vertical_spread_deg: float
) -> tuple[SourceOrientation, ...]:
    """Cartesian product of a symmetric yaw fan (columns) and pitch fan (rows)."""
    yaws = _spread_angles(columns, spread_deg)
    pitches = _spread_angles(rows, vertical_spread_deg)
    return tuple(SourceOrientation(h, v) for h in yaws for v in pitches)


def detection_range(intensity: float, threshold: float, alpha: float = ALPHA, iterations: int = 15) -> float:
    """Distance where ``intensity * exp(-alpha d) / d**2`` falls to ``threshold`` (bisection)."""
    if threshold <= 0:
        return 0.0
    k = intensity / threshold
    if k <= 1e-6:
        return 0.0

    low = 0.0
    high = min(50000.0, math.sqrt(k))
    for _ in range(iterations):
        mid = (low + high) * 0.5
        if mid * mid * math.exp(alpha * mid) < k:
            low = mid
        else:
            high = mid
    return high


def beam_envelope(
    beam_pattern,
    intensity: float,
    threshold: float,
    alpha: float = ALPHA,
    step_deg: float = 2.0,
    edge_policy: str = "CUTOFF",
) -> np.ndarray:
    """Detection envelope of one source as (radius, axial distance) rows by off-axis angle.

    The profile starts on-axis, ends when the range collapses inside the
    near-field floor, and is closed back to the emitter.
    """
    if intensity <= 0 or threshold <= 0:
        return np.zeros((0, 2))

    max_angle = max(90.0, beam_pattern[-1].angle)
    pts: list[tuple[float, float]] = []
    a = 0.0
    while a <= max_angle:
        rel = beam_intensity(beam_pattern, a, edge_policy)
        d = detection_range(intensity * rel, threshold, alpha)
        rad = math.radians(a)
        pts.append((d * math.sin(rad), d * math.cos(rad)))
        if d < NEAR_FIELD_MIN and a > 0:
            break
        a += step_deg

    if pts[-1][0] > 0.1 or pts[-1][1] > 0.1:
        pts.append((0.0, 0.0))
    return np.array(pts, dtype=np.float64)
