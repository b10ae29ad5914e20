from typing import Optional

import numpy as np

from pansharp.config import DEFAULT_MAX_PIXELS, GSOptions, ReductionOptions
from pansharp.exceptions import NumericFailureError
from pansharp.pansharpening.base import BasePansharpening
from pansharp.raster.base import RasterAlgebra
from pansharp.utils.helpers import (
    linear_histogram_match,
    multiband_to_collection,
    collection_to_multiband
)
from pansharp.utils.logger import get_logger

logger = get_logger(__name__)


def gs_coefficient(img: RasterAlgebra, reference: RasterAlgebra,
                   options: Optional[ReductionOptions] = None) -> float:
    """
    Коэффициент Грама-Шмидта: cov(img, reference) / var(reference)
    """
    pair = img.rename(['img']).add_bands(reference.rename(['reference']))
    covariance = pair.covariance(options)

    variance = covariance[1, 1]
    if not np.isfinite(variance) or variance == 0:
        raise NumericFailureError(
            f"Дисперсия опорного канала равна нулю или не определена ({variance}), "
            f"коэффициент Грама-Шмидта не определен"
        )
    return float(covariance[0, 1] / variance)


class GramSchmidtPansharpening(BasePansharpening):
    """
    Паншарпинг методом Грама-Шмидта

    Симулированный PAN (среднее MS каналов) ортогонализуется с каналами MS,
    затем деталь (PAN - симулированный PAN) добавляется к каждому каналу
    с коэффициентом Грама-Шмидта
    """

    method_name = 'GS'
    options_class = GSOptions

    def _apply_pansharpening(self, ms: RasterAlgebra, pan: RasterAlgebra) -> RasterAlgebra:
        reduction = self.options.reduction
        ms_upsampled = self._upsample_ms_to_pan(ms, pan)
        ms_bands = multiband_to_collection(ms_upsampled)

        pan_sim = ms_upsampled.reduce_bands('mean').rename(['pan_sim'])

        # Ортогонализация: каждый канал относительно предыдущего элемента последовательности
        gs_bands = [pan_sim]
        for band in ms_bands:
            previous = gs_bands[-1]
            g = gs_coefficient(band, previous, reduction)
            gs_bands.append(band.subtract(previous.multiply(g)))

        pan_matched = linear_histogram_match(pan, pan_sim, reduction)
        gs_bands[0] = pan_matched

        detail = pan_matched.subtract(pan_sim)

        # Коэффициенты ортогонализованных каналов относительно симулированного PAN
        coefficients = [gs_coefficient(gs_band, pan_sim, reduction) for gs_band in gs_bands[1:]]
        logger.debug(f"Коэффициенты Грама-Шмидта: {coefficients}")

        sharpened = [
            band.add(detail.multiply(g))
            for band, g in zip(ms_bands, coefficients)
        ]
        return collection_to_multiband(sharpened)


def gs(ms: RasterAlgebra, pan: RasterAlgebra, region=None, scale: Optional[float] = None,
       max_pixels: float = DEFAULT_MAX_PIXELS) -> RasterAlgebra:
    """Паншарпенинг методом Грама-Шмидта"""
    options = GSOptions(region=region, scale=scale, max_pixels=max_pixels)
    return GramSchmidtPansharpening(options).sharpen(ms, pan)
