from typing import Optional, Sequence

import numpy as np

from pansharp.config import BroveyOptions
from pansharp.exceptions import InvalidInputError
from pansharp.pansharpening.base import BasePansharpening
from pansharp.raster.base import RasterAlgebra
from pansharp.utils.helpers import calculate_weighted_intensity
from pansharp.utils.logger import get_logger

logger = get_logger(__name__)


class BroveyPansharpening(BasePansharpening):
    """
    Паншарпинг методом Brovey Transform
    Formula: PS_i = MS_i / I * PAN, где I - взвешенная сумма MS каналов
    """

    method_name = 'brovey'
    options_class = BroveyOptions

    def _band_weights(self, ms: RasterAlgebra) -> np.ndarray:
        """Веса каналов: заданные пользователем или равные 1/n"""
        if self.options.weights is None:
            return np.full(ms.band_count, 1.0 / ms.band_count)

        if len(self.options.weights) != ms.band_count:
            raise InvalidInputError(
                f"Число весов ({len(self.options.weights)}) не совпадает с числом каналов MS ({ms.band_count})"
            )
        return np.asarray(self.options.weights, dtype=np.float64)

    def _apply_pansharpening(self, ms: RasterAlgebra, pan: RasterAlgebra) -> RasterAlgebra:
        weights = self._band_weights(ms)
        logger.debug(f"Веса каналов Brovey: {weights}")

        # Интенсивность считается на исходной сетке MS и затем передискретизируется
        intensity = calculate_weighted_intensity(ms, weights)
        intensity_sharp = self._upsample_ms_to_pan(intensity, pan)

        ms_upsampled = self._upsample_ms_to_pan(ms, pan)

        # Деление без ограничения: нулевая интенсивность дает inf/nan
        return ms_upsampled.divide(intensity_sharp).multiply(pan)


def brovey(ms: RasterAlgebra, pan: RasterAlgebra, weights: Optional[Sequence[float]] = None) -> RasterAlgebra:
    """Паншарпенинг Brovey с весами каналов (по умолчанию равные)"""
    return BroveyPansharpening(BroveyOptions(weights=weights)).sharpen(ms, pan)
