from __future__ import annotations

import logging

import numpy as np
import pytest

from pansharp.raster import Raster
from pansharp.utils.logger import setup_logging
from tests.utils import make_raster, smooth_field


@pytest.fixture(autouse=True)
def _reset_logging():
    """Restore console-only logging after tests that reconfigure handlers."""
    yield
    root = logging.getLogger("pansharp")
    for handler in list(root.handlers):
        handler.close()
    setup_logging(force=True)


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(42)


@pytest.fixture
def ms(rng) -> Raster:
    """Three-band multispectral image, 8x8 pixels at 20 m."""
    bands = [smooth_field(rng, (8, 8), 100.0 + 20 * i, 200.0 + 30 * i) for i in range(3)]
    return make_raster(np.stack(bands), resolution=20.0, band_names=["red", "green", "blue"])


@pytest.fixture
def pan(rng) -> Raster:
    """Panchromatic band, 16x16 pixels at 10 m covering the same extent as ``ms``."""
    return make_raster(smooth_field(rng, (16, 16), 80.0, 240.0), resolution=10.0, band_names=["pan"])


@pytest.fixture
def ms_fine(rng) -> Raster:
    """Multispectral image already on the panchromatic grid."""
    bands = [smooth_field(rng, (16, 16), 50.0 + 10 * i, 150.0 + 40 * i) for i in range(3)]
    return make_raster(np.stack(bands), resolution=10.0, band_names=["red", "green", "blue"])
