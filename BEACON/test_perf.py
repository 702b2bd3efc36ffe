import time
import numpy as np
from BEACON.config import Config
from BEACON.src.core import contours
from BEACON.src.core.sampler import FieldSampler
from BEACON.src.core.simulation import build_field_config, effective_threshold, view_limits

def test_perf():
    config = Config()
    config.LED_COUNT = 5
    config.ROW_COUNT = 3
    config.VERTICAL_SPREAD_DEG = 15.0
    field = build_field_config(config)
    threshold = effective_threshold(config)
    limits = view_limits(config)
    sampler = FieldSampler(field)

    res = config.GRID_RES
    print(f"Sampling {res}x{res} plan view from {len(field.orientations)} sources...")
    start = time.time()
    grid = sampler.top_view(limits, res)
    end = time.time()
    print(f"Sample Time: {end - start:.4f} seconds")

    if end - start > 2.0:
        print("FAIL: Sampling too slow!")
    else:
        print("PASS: Sampling vectorised!")

    print("\nStarting contour extraction...")
    start = time.time()
    paths = contours.extract(grid, threshold)
    end = time.time()
    n_points = sum(len(p) for p in paths)
    print(f"Contour Time: {end - start:.4f} seconds")
    print(f"Result: {len(paths)} polylines, {n_points} points")

    if end - start > 2.0:
        print("FAIL: Contouring too slow!")
    elif not paths:
        print("FAIL: Boundary not found!")
    else:
        print("PASS: Contours extracted!")

    print("\nStarting contour extraction (NOISE - Worst case)...")
    rng = np.random.default_rng(0)
    noise = grid._replace(values=rng.random(res * res))
    start = time.time()
    paths = contours.extract(noise, 0.5)
    end = time.time()
    print(f"Noise Contour Time: {end - start:.4f} seconds ({len(paths)} polylines)")

    if end - start > 10.0:
        print("FAIL: Worst case too slow!")
    else:
        print("PASS: Worst case bounded!")

if __name__ == "__main__":
    test_perf()
