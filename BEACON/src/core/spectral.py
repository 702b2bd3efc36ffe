"""Scotopic/photopic luminous efficiency and the spectral factor applied to source intensity."""

from __future__ import annotations

from BEACON.src.core.types import SPECTRAL_POLICIES, ConfigurationError

# CIE 1951 scotopic V'(lambda), rods.
SCOTOPIC_DATA: tuple[tuple[float, float], ...] = (
    (380, 0.000589), (400, 0.00929), (420, 0.0966), (440, 0.3281),
    (460, 0.647), (480, 0.909), (500, 0.982), (507, 1.000),
    (520, 0.935), (540, 0.650), (560, 0.3288), (580, 0.1212),
    (600, 0.03315), (620, 0.00737), (640, 0.001497), (660, 0.0003129),
    (680, 0.0000715), (700, 0.0000178),
)

# CIE 1924 photopic V(lambda), cones.
PHOTOPIC_DATA: tuple[tuple[float, float], ...] = (
    (380, 0.000039), (400, 0.000396), (420, 0.004000), (440, 0.023000),
    (460, 0.060000), (480, 0.139020), (500, 0.323000), (520, 0.710000),
    (540, 0.954000), (555, 1.000000), (560, 0.995000), (580, 0.870000),
    (600, 0.631000), (620, 0.381000), (640, 0.175000), (660, 0.061000),
    (680, 0.017000), (700, 0.004102),
)

SCOTOPIC_PHOTOPIC_RATIO = 2.489
RADIOMETRIC_MIN_NM = 700.0


def lerp(x: float, x0: float, x1: float, y0: float, y1: float) -> float:
    if abs(x1 - x0) < 1e-9:
        return (y0 + y1) / 2.0
    return y0 + (x - x0) * (y1 - y0) / (x1 - x0)


def lookup(table, x: float) -> float:
    """Piecewise-linear table lookup, clamped to the first/last entry."""
    if x <= table[0][0]:
        return table[0][1]
    if x >= table[-1][0]:
        return table[-1][1]
    for (x0, y0), (x1, y1) in zip(table, table[1:]):
        if x0 <= x <= x1:
            return lerp(x, x0, x1, y0, y1)
    return 0.0


def scotopic(wavelength_nm: float) -> float:
    return lookup(SCOTOPIC_DATA, wavelength_nm)


def photopic(wavelength_nm: float) -> float:
    return lookup(PHOTOPIC_DATA, wavelength_nm)


def correction_factor(wavelength_nm: float) -> float:
    """Purkinje-shift boost of photopic candela for night vision, floored at 1.0.

    At and above 700 nm the intensity is radiometric power and is left unscaled.
    """
    if wavelength_nm >= RADIOMETRIC_MIN_NM:
        return 1.0
    v_scot = scotopic(wavelength_nm)
    v_phot = max(photopic(wavelength_nm), 1e-6)
    return max(1.0, SCOTOPIC_PHOTOPIC_RATIO * v_scot / v_phot)


def effective_efficiency(wavelength_nm: float) -> float:
    """Envelope of the scotopic and photopic curves."""
    return max(scotopic(wavelength_nm), photopic(wavelength_nm))


def spectral_factor(wavelength_nm: float, policy: str = "CORRECTION") -> float:
    policy = policy.upper()
    if policy not in SPECTRAL_POLICIES:
        raise ConfigurationError(f"Unknown spectral policy: {policy}")
    if policy == "ENVELOPE":
        return effective_efficiency(wavelength_nm)
    return correction_factor(wavelength_nm)
