"""DXF (AC1015) serialisation of plan-view contours as LWPOLYLINE entities."""

from __future__ import annotations

from pathlib import Path

LAYER = "Visibility_Boundary"
CLOSED_EPS = 1e-4

# $INSUNITS 4: millimetres
_HEADER = "0\nSECTION\n2\nHEADER\n9\n$ACADVER\n1\nAC1015\n9\n$INSUNITS\n70\n4\n0\nENDSEC\n"
_TABLES = (
    "0\nSECTION\n2\nTABLES\n0\nTABLE\n2\nLAYER\n70\n1\n"
    f"0\nLAYER\n2\n{LAYER}\n70\n0\n62\n3\n6\nCONTINUOUS\n"
    "0\nENDTAB\n0\nENDSEC\n"
)


def _is_closed(path) -> bool:
    return abs(path[0][0] - path[-1][0]) < CLOSED_EPS and abs(path[0][1] - path[-1][1]) < CLOSED_EPS


def generate_dxf(paths) -> str:
    """One LWPOLYLINE per path; paths with fewer than two points are skipped."""
    parts = [_HEADER, _TABLES, "0\nSECTION\n2\nENTITIES\n"]

    for path in paths:
        if len(path) < 2:
            continue
        parts.append("0\nLWPOLYLINE\n")
        parts.append(f"8\n{LAYER}\n")
        parts.append(f"90\n{len(path)}\n")
        parts.append(f"70\n{1 if _is_closed(path) else 0}\n")
        parts.append("43\n0.0\n")
        for p in path:
            parts.append(f"10\n{float(p[0]):.4f}\n")
            parts.append(f"20\n{float(p[1]):.4f}\n")

    parts.append("0\nENDSEC\n0\nEOF\n")
    return "".join(parts)


def default_filename(wavelength_nm: float, flashing: bool) -> str:
    return f"LED_Visibility_{wavelength_nm:g}nm_{'Flash' if flashing else 'Steady'}.dxf"


def write_dxf(paths, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(generate_dxf(paths))
    return path
