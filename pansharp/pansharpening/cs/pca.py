from typing import Optional, Tuple

import numpy as np

from pansharp.config import DEFAULT_MAX_PIXELS, PCAOptions, ReductionOptions
from pansharp.exceptions import InvalidInputError, NumericFailureError
from pansharp.pansharpening.base import BasePansharpening
from pansharp.raster.base import RasterAlgebra
from pansharp.utils.helpers import reduce_image, rescale_band, collection_to_multiband
from pansharp.utils.logger import get_logger

logger = get_logger(__name__)


def principal_components(img: RasterAlgebra, options: Optional[ReductionOptions] = None
                         ) -> Tuple[RasterAlgebra, np.ndarray, np.ndarray, np.ndarray]:
    """
    Разложение изображения на главные компоненты

    Returns:
        pcs           - компоненты PC1..PCn (по убыванию собственных значений)
        eigen_values  - собственные значения по убыванию
        eigen_vectors - собственные векторы в строках, pcs = eigen_vectors @ (img - mean)
        img_mean      - средние значения каналов
    """
    img_mean = reduce_image(img, 'mean', options)
    centered = img.subtract(img_mean)

    covariance = centered.covariance(options, centered=True)
    if not np.all(np.isfinite(covariance)):
        raise NumericFailureError(f"Ковариационная матрица содержит нечисловые значения:\n{covariance}")

    try:
        eigen_values, eigen_vectors = np.linalg.eigh(covariance)
    except np.linalg.LinAlgError as e:
        raise NumericFailureError(f"Не удалось найти собственные векторы ковариационной матрицы: {e}") from e

    order = np.argsort(eigen_values)[::-1]
    eigen_values = eigen_values[order]
    eigen_vectors = eigen_vectors[:, order].T

    logger.debug(f"Собственные значения PCA: {eigen_values}")

    pc_names = [f"PC{i + 1}" for i in range(img.band_count)]
    pcs = centered.matrix_multiply(eigen_vectors, pc_names)

    return pcs, eigen_values, eigen_vectors, img_mean


class PCAPansharpening(BasePansharpening):
    """
    Паншарпинг методом главных компонент:
    выбранная компонента заменяется согласованным PAN, затем обратное преобразование
    """

    method_name = 'PCA'
    options_class = PCAOptions

    def _apply_pansharpening(self, ms: RasterAlgebra, pan: RasterAlgebra) -> RasterAlgebra:
        substitute_pc = int(self.options.substitute_pc)
        if substitute_pc > ms.band_count:
            raise InvalidInputError(
                f"Номер заменяемой компоненты {substitute_pc} больше числа каналов MS ({ms.band_count})"
            )

        reduction = self.options.reduction
        ms_upsampled = self._upsample_ms_to_pan(ms, pan)

        pcs, _, eigen_vectors, img_mean = principal_components(ms_upsampled, reduction)

        substitute_index = substitute_pc - 1
        substitute_name = pcs.band_names[substitute_index]
        pan_matched = rescale_band(
            pan, pcs.select(substitute_index), self.options.match_pan, reduction
        ).rename([substitute_name])

        components = [
            pan_matched if i == substitute_index else pcs.select(i)
            for i in range(pcs.band_count)
        ]
        substituted = collection_to_multiband(components)

        # Собственные векторы ортонормированы, обратное преобразование через решение системы
        restored = substituted.matrix_solve(eigen_vectors, ms_upsampled.band_names)

        return restored.add(img_mean)


def pca(ms: RasterAlgebra, pan: RasterAlgebra, substitute_pc: int = 1, match_pan: bool = True,
        region=None, scale: Optional[float] = None, max_pixels: float = DEFAULT_MAX_PIXELS) -> RasterAlgebra:
    """Паншарпенинг PCA с заменой компоненты substitute_pc"""
    options = PCAOptions(
        region=region,
        scale=scale,
        max_pixels=max_pixels,
        substitute_pc=substitute_pc,
        match_pan=match_pan,
    )
    return PCAPansharpening(options).sharpen(ms, pan)
