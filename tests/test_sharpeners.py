from __future__ import annotations

import numpy as np
import pytest
from scipy import ndimage

from pansharp.config import BroveyOptions, HPFAOptions, PCAOptions
from pansharp.exceptions import InvalidInputError, NumericFailureError
from pansharp.pansharpening import PansharpeningMethodFactory
from pansharp.pansharpening.cs.brovey import BroveyPansharpening, brovey
from pansharp.pansharpening.cs.ihs import ihs
from pansharp.pansharpening.cs.pca import PCAPansharpening, pca, principal_components
from pansharp.pansharpening.cs.simple_mean import simple_mean
from pansharp.pansharpening.model_based.gs import gs, gs_coefficient
from pansharp.pansharpening.mra.hpfa import HPFAPansharpening, hpfa
from pansharp.pansharpening.mra.sfim import sfim
from tests.utils import make_raster


@pytest.mark.parametrize("method", PansharpeningMethodFactory.get_available_methods())
def test_output_on_pan_grid_with_ms_band_names(method, ms, pan) -> None:
    sharpened = PansharpeningMethodFactory.create_method(method).sharpen(ms, pan)

    assert sharpened.grid == pan.grid
    assert sharpened.band_names == ms.band_names


@pytest.mark.parametrize("method", PansharpeningMethodFactory.get_available_methods())
def test_pan_must_have_one_band(method, ms, ms_fine) -> None:
    two_band_pan = ms_fine.select(["red", "green"])
    with pytest.raises(InvalidInputError):
        PansharpeningMethodFactory.create_method(method).sharpen(ms, two_band_pan)


def test_simple_mean_is_exact_average(ms, pan) -> None:
    expected = (ms.resample_to(pan.grid, "bilinear").data + pan.data) / 2
    np.testing.assert_array_equal(simple_mean(ms, pan).data, expected)


def test_brovey_default_weights_are_uniform(ms, pan) -> None:
    np.testing.assert_array_equal(
        brovey(ms, pan).data,
        brovey(ms, pan, weights=[1 / 3, 1 / 3, 1 / 3]).data,
    )


def test_brovey_formula(ms_fine, pan) -> None:
    weights = [0.2, 0.3, 0.5]
    intensity = np.tensordot(weights, ms_fine.data, axes=1)
    expected = ms_fine.data / intensity * pan.data[0]

    np.testing.assert_allclose(brovey(ms_fine, pan, weights).data, expected)


def test_brovey_weight_length_mismatch(ms, pan) -> None:
    with pytest.raises(InvalidInputError):
        brovey(ms, pan, weights=[0.5, 0.5])


def test_brovey_zero_intensity_propagates(pan) -> None:
    ms_zero = make_raster(np.zeros((2, 16, 16)), resolution=10.0, band_names=["a", "b"])
    sharpened = BroveyPansharpening(BroveyOptions()).sharpen(ms_zero, pan)
    assert np.all(np.isnan(sharpened.data))


def test_ihs_with_value_channel_as_pan_is_identity(rng) -> None:
    rgb = make_raster(rng.uniform(0.1, 0.9, size=(3, 16, 16)), band_names=["r", "g", "b"])
    value_pan = rgb.rgb_to_hsv().select("value").rename(["pan"])

    sharpened = ihs(rgb, value_pan)

    assert sharpened.band_names == ("r", "g", "b")
    np.testing.assert_allclose(sharpened.data, rgb.data, atol=1e-12)


def test_ihs_requires_three_bands(ms, pan) -> None:
    with pytest.raises(InvalidInputError):
        ihs(ms.select(["red", "green"]), pan)


def test_hpfa_adds_high_pass_detail(ms_fine, pan) -> None:
    sharpened = hpfa(ms_fine, pan, kernel_width=3)

    detail = pan.data[0] - ndimage.uniform_filter(pan.data[0], size=3, mode="reflect")
    np.testing.assert_allclose(sharpened.data - ms_fine.data, np.broadcast_to(detail, ms_fine.shape), atol=1e-9)


def test_hpfa_default_kernel_width(ms, pan) -> None:
    assert HPFAPansharpening()._kernel_width(ms, pan) == 5
    assert HPFAPansharpening(HPFAOptions(kernel_width=7))._kernel_width(ms, pan) == 7


def test_hpfa_constant_pan_adds_nothing(ms) -> None:
    flat_pan = make_raster(np.full((16, 16), 120.0), resolution=10.0, band_names=["pan"])
    sharpened = hpfa(ms, flat_pan)
    np.testing.assert_allclose(sharpened.data, ms.resample_to(flat_pan.grid).data, atol=1e-9)


def test_pca_is_near_identity_when_pan_replicates_pc1(ms_fine) -> None:
    pcs, eigen_values, eigen_vectors, _ = principal_components(ms_fine)
    assert pcs.band_names == ("PC1", "PC2", "PC3")
    assert np.all(np.diff(eigen_values) <= 0)
    np.testing.assert_allclose(eigen_vectors @ eigen_vectors.T, np.eye(3), atol=1e-12)

    replica_pan = pcs.select("PC1").rename(["pan"])

    np.testing.assert_allclose(pca(ms_fine, replica_pan).data, ms_fine.data, atol=1e-8)
    np.testing.assert_allclose(pca(ms_fine, replica_pan, match_pan=False).data, ms_fine.data, atol=1e-8)


def test_pca_substitute_pc_out_of_range(ms, pan) -> None:
    with pytest.raises(InvalidInputError):
        PCAPansharpening(PCAOptions(substitute_pc=4)).sharpen(ms, pan)


def test_pca_substitutes_selected_component(ms_fine, pan) -> None:
    first = pca(ms_fine, pan, substitute_pc=1)
    third = pca(ms_fine, pan, substitute_pc=3)
    assert first.band_names == third.band_names == ms_fine.band_names
    assert not np.allclose(first.data, third.data)


def test_gs_zero_detail_returns_resampled_ms(ms_fine) -> None:
    simulated_pan = ms_fine.reduce_bands("mean").rename(["pan"])
    np.testing.assert_allclose(gs(ms_fine, simulated_pan).data, ms_fine.data, atol=1e-9)


def test_gs_matches_numpy_chain(ms_fine, pan) -> None:
    x = ms_fine.resample_to(pan.grid, "bilinear").data.reshape(3, -1)
    p = pan.data.reshape(-1)
    simulated = x.mean(axis=0)

    previous = simulated
    gs_bands = []
    for band in x:
        g = np.cov(band, previous, bias=True)[0, 1] / previous.var()
        current = band - g * previous
        gs_bands.append(current)
        previous = current

    matched = (p - p.mean()) * simulated.std() / p.std() + simulated.mean()
    detail = matched - simulated
    coefficients = [np.cov(band, simulated, bias=True)[0, 1] / simulated.var() for band in gs_bands]
    expected = (x + np.outer(coefficients, detail)).reshape(ms_fine.shape)

    sharpened = gs(ms_fine, pan)

    assert not np.allclose(sharpened.data, ms_fine.data)
    np.testing.assert_allclose(sharpened.data, expected, rtol=1e-9, atol=1e-9)


def test_gs_coefficient(ms_fine) -> None:
    red = ms_fine.select("red")
    doubled = red.multiply(2).add(5)
    assert gs_coefficient(doubled, red) == pytest.approx(2.0)


def test_gs_constant_band_is_numeric_failure(rng, pan) -> None:
    bands = np.stack([np.full((16, 16), 50.0), rng.uniform(0, 100, (16, 16)), rng.uniform(0, 100, (16, 16))])
    ms_degenerate = make_raster(bands, resolution=10.0, band_names=["a", "b", "c"])
    with pytest.raises(NumericFailureError):
        gs(ms_degenerate, pan)


def test_sfim_constant_pan_keeps_bicubic_ms(ms) -> None:
    flat_pan = make_raster(np.full((16, 16), 90.0), resolution=10.0, band_names=["pan"])
    np.testing.assert_allclose(sfim(ms, flat_pan).data, ms.resample_to(flat_pan.grid, "bicubic").data)


def test_sfim_smooths_pan_over_half_ratio_window(ms, pan) -> None:
    # 20 m MS over 10 m PAN: radius 1, 3x3 window
    pan_smooth = ndimage.uniform_filter(pan.data[0], size=3, mode="nearest")
    expected = ms.resample_to(pan.grid, "bicubic").data * pan.data[0] / pan_smooth

    np.testing.assert_allclose(sfim(ms, pan).data, expected, rtol=1e-10)


def test_sfim_modulates_by_smoothed_pan(ms_fine, pan) -> None:
    # equal resolutions give a 1x1 window, so PAN / PAN_smooth == 1
    np.testing.assert_allclose(sfim(ms_fine, pan).data, ms_fine.data)
