from __future__ import annotations

from typing import Sequence

import numpy as np
from affine import Affine
from rasterio.crs import CRS

from pansharp.raster import Raster

UTM_CRS = CRS.from_epsg(32633)
ORIGIN = (500000.0, 4100000.0)


def make_raster(
    data,
    resolution: float = 10.0,
    band_names: Sequence[str] | None = None,
    crs: CRS | None = UTM_CRS,
) -> Raster:
    """Raster on a north-up UTM grid anchored at ORIGIN."""
    transform = Affine(resolution, 0.0, ORIGIN[0], 0.0, -resolution, ORIGIN[1])
    return Raster.from_array(np.asarray(data, dtype=np.float64), transform, crs, band_names)


def smooth_field(rng: np.random.Generator, shape: tuple[int, int], low: float, high: float) -> np.ndarray:
    rows, cols = np.mgrid[0 : shape[0], 0 : shape[1]]
    phase = rng.uniform(0, np.pi, size=2)
    wave = np.sin(rows / 3.0 + phase[0]) + np.cos(cols / 4.0 + phase[1])
    field = wave + rng.normal(0.0, 0.1, size=shape)
    field = (field - field.min()) / (field.max() - field.min())
    return low + field * (high - low)
