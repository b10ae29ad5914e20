from __future__ import annotations

import json
import logging
import math

import numpy as np
import pytest

from pansharp.config import QualityOptions
from pansharp.exceptions import InvalidInputError
from pansharp.pansharpening.metrics import (
    PansharpeningMetricsCalculator,
    bias,
    cc,
    cmc,
    cml,
    div,
    ergas,
    mse,
    psnr,
    q_index,
    rase,
    rmse,
)
from tests.utils import make_raster

PER_BAND = QualityOptions(per_band=True)


@pytest.fixture
def reference(ms_fine):
    return ms_fine


@pytest.fixture
def assessment(ms_fine, rng):
    noise = rng.normal(0.0, 5.0, size=ms_fine.shape)
    return make_raster(ms_fine.data * 1.05 + noise, resolution=10.0, band_names=ms_fine.band_names)


def test_two_by_two_example() -> None:
    ref = make_raster([[1.0, 2.0], [3.0, 4.0]], band_names=["b"])
    assess = make_raster([[1.0, 2.0], [3.0, 5.0]], band_names=["b"])

    assert mse(ref, assess) == pytest.approx(0.25)
    assert bias(ref, assess) == pytest.approx(-0.1)
    assert rmse(ref, assess) == pytest.approx(0.5)


def test_identity_case(reference) -> None:
    assert mse(reference, reference) == 0.0
    assert rmse(reference, reference) == 0.0
    assert bias(reference, reference) == 0.0
    assert div(reference, reference) == 0.0
    assert cc(reference, reference) == pytest.approx(1.0)
    assert cml(reference, reference) == pytest.approx(1.0)
    assert cmc(reference, reference) == pytest.approx(1.0)
    assert q_index(reference, reference) == pytest.approx(1.0)
    assert ergas(reference, reference, QualityOptions(h=10.0, l=10.0)) == 0.0
    assert rase(reference, reference) == 0.0
    assert psnr(reference, reference) == math.inf


def test_rmse_is_sqrt_of_mse(reference, assessment) -> None:
    mse_values = mse(reference, assessment, PER_BAND)
    rmse_values = rmse(reference, assessment, PER_BAND)
    for band in reference.band_names:
        assert rmse_values[band] == math.sqrt(mse_values[band])


def test_per_band_and_mean_results(reference, assessment) -> None:
    per_band = mse(reference, assessment, PER_BAND)
    assert set(per_band) == {"red", "green", "blue"}
    assert mse(reference, assessment) == pytest.approx(np.mean(list(per_band.values())))


def test_metrics_match_numpy(reference, assessment) -> None:
    x = reference.data.reshape(3, -1)
    y = assessment.data.reshape(3, -1)

    expected_mse = ((x - y) ** 2).mean(axis=1)
    expected_cc = [np.corrcoef(x[i], y[i])[0, 1] for i in range(3)]
    expected_cml = 2 * x.mean(axis=1) * y.mean(axis=1) / (x.mean(axis=1) ** 2 + y.mean(axis=1) ** 2)
    expected_cmc = 2 * x.std(axis=1) * y.std(axis=1) / (x.var(axis=1) + y.var(axis=1))
    expected_div = 1 - y.var(axis=1) / x.var(axis=1)
    expected_bias = 1 - y.mean(axis=1) / x.mean(axis=1)

    def values(metric):
        result = metric(reference, assessment, PER_BAND)
        return [result[band] for band in reference.band_names]

    np.testing.assert_allclose(values(mse), expected_mse)
    np.testing.assert_allclose(values(cc), expected_cc)
    np.testing.assert_allclose(values(cml), expected_cml)
    np.testing.assert_allclose(values(cmc), expected_cmc)
    np.testing.assert_allclose(values(div), expected_div)
    np.testing.assert_allclose(values(bias), expected_bias)
    np.testing.assert_allclose(
        values(q_index), np.array(expected_cc) * expected_cml * expected_cmc
    )
    np.testing.assert_allclose(
        values(psnr), 20 * np.log10(x.max(axis=1)) - 10 * np.log10(expected_mse)
    )


def test_ergas_and_rase(reference, assessment) -> None:
    x = reference.data.reshape(3, -1)
    y = assessment.data.reshape(3, -1)
    band_mse = ((x - y) ** 2).mean(axis=1)
    band_mean = x.mean(axis=1)

    expected_ergas = 100 * np.sqrt(np.mean(band_mse / band_mean ** 2))
    assert ergas(reference, assessment, QualityOptions(h=10.0, l=10.0)) == pytest.approx(expected_ergas)
    assert ergas(reference, assessment, QualityOptions(h=20.0, l=10.0)) == pytest.approx(2 * expected_ergas)
    assert ergas(reference, assessment, QualityOptions(h=10.0, l=20.0)) == pytest.approx(0.5 * expected_ergas)

    per_band = QualityOptions(per_band=True, h=10.0, l=40.0)
    assert ergas(reference, assessment, per_band) == pytest.approx(0.25 * expected_ergas)

    expected_rase = 100 * np.sqrt(band_mse.mean()) / band_mean.mean()
    assert rase(reference, assessment) == pytest.approx(expected_rase)


@pytest.mark.parametrize(
    "options",
    [None, QualityOptions(h=10.0), QualityOptions(l=20.0)],
    ids=["both-missing", "l-missing", "h-missing"],
)
def test_ergas_requires_both_resolutions(options, reference, assessment) -> None:
    with pytest.raises(InvalidInputError, match=r"h \(.*l \("):
        ergas(reference, assessment, options)


def test_band_order_does_not_matter(reference, assessment) -> None:
    reordered = assessment.select(["blue", "red", "green"])
    assert mse(reference, reordered, PER_BAND) == mse(reference, assessment, PER_BAND)
    assert cc(reference, reordered) == pytest.approx(cc(reference, assessment))


@pytest.mark.parametrize("metric", [mse, rmse, bias, cc, cml, cmc, q_index, div, ergas, rase, psnr])
def test_mismatched_band_names_rejected(metric, reference, assessment) -> None:
    renamed = assessment.rename(["red", "green", "nir"])
    with pytest.raises(InvalidInputError):
        metric(reference, renamed)
    with pytest.raises(InvalidInputError):
        metric(reference, assessment.select(["red", "green"]))


def test_different_grids_rejected(reference) -> None:
    coarse = make_raster(np.ones((3, 8, 8)), resolution=20.0, band_names=reference.band_names)
    with pytest.raises(InvalidInputError):
        mse(reference, coarse)


def test_zero_reference_mean_propagates() -> None:
    ref = make_raster([[1.0, -1.0]], band_names=["b"])
    assess = make_raster([[2.0, 0.0]], band_names=["b"])
    assert math.isinf(bias(ref, assess))


def test_calculator_registry_and_optimum_lists() -> None:
    names = PansharpeningMetricsCalculator.get_available_metrics()
    assert names == ["MSE", "RMSE", "bias", "CC", "CML", "CMC", "Q", "DIV", "ERGAS", "RASE", "PSNR"]

    calculator = PansharpeningMetricsCalculator
    classified = calculator.maximize_metrics + calculator.minimize_metrics + calculator.zero_optimum_metrics
    assert sorted(classified) == sorted(names)

    assert calculator.get_metric_function("ergas") is ergas
    with pytest.raises(InvalidInputError, match="RASE"):
        calculator.get_metric_function("SAM")


def test_calculator_calculate_all_logs_metrics(reference, assessment, caplog) -> None:
    calculator = PansharpeningMetricsCalculator()

    with caplog.at_level(logging.INFO, logger="pansharp"):
        results = calculator.calculate_all(
            reference, assessment, ["MSE", "ERGAS"], {"perBand": True, "h": 10.0, "l": 20.0}
        )

    assert set(results["MSE"]) == {"red", "green", "blue"}
    assert isinstance(results["ERGAS"], float)

    metric_lines = [
        json.loads(record.getMessage()[len("METRIC "):])
        for record in caplog.records
        if record.getMessage().startswith("METRIC ")
    ]
    assert [line["metric"] for line in metric_lines] == ["MSE", "MSE", "MSE", "ERGAS"]
    assert metric_lines[0]["context"] == {"band": "red"}


def test_calculator_uses_args_for_statistics(reference, assessment) -> None:
    calculator = PansharpeningMetricsCalculator()
    full = calculator.calculate(reference, assessment, "MSE")
    subsampled = calculator.calculate(reference, assessment, "MSE", {"maxPixels": 16})
    assert subsampled != full

    with pytest.raises(InvalidInputError):
        calculator.calculate(reference, assessment, "MSE", {"window": 3})
