"""
Общие численные утилиты методов паншарпенинга
"""

from typing import Any, List, Optional, Sequence

import numpy as np

from pansharp.config import ReductionOptions
from pansharp.exceptions import InvalidInputError, NumericFailureError
from pansharp.raster.base import RasterAlgebra


def is_missing(x: Any) -> bool:
    """Проверка отсутствующего аргумента"""
    return x is None


def default_if_missing(value: Any, default: Any) -> Any:
    """Значение по умолчанию для отсутствующего аргумента"""
    return default if is_missing(value) else value


def reduce_image(img: RasterAlgebra, reducer: str, options: Optional[ReductionOptions] = None) -> np.ndarray:
    """
    Региональная статистика каждого канала как массив постоянных значений
    в порядке каналов изображения
    """
    values = img.reduce_region(reducer, options)
    return np.array([values[name] for name in img.band_names], dtype=np.float64)


def get_image_range(img: RasterAlgebra, options: Optional[ReductionOptions] = None) -> np.ndarray:
    """Диапазон (max - min) каждого канала"""
    return reduce_image(img, 'max', options) - reduce_image(img, 'min', options)


def _checked_ratio(numerator: np.ndarray, denominator: np.ndarray, description: str) -> np.ndarray:
    with np.errstate(divide='ignore', invalid='ignore'):
        ratio = numerator / denominator
    if not np.all(np.isfinite(ratio)):
        raise NumericFailureError(
            f"{description}: знаменатель равен нулю или не определен ({denominator.tolist()})"
        )
    return ratio


def linear_histogram_match(target: RasterAlgebra, reference: RasterAlgebra,
                           options: Optional[ReductionOptions] = None) -> RasterAlgebra:
    """
    Линейное гистограммное согласование: среднее и СКО target
    приводятся к среднему и СКО reference
    """
    offset_target = reduce_image(target, 'mean', options)
    offset = reduce_image(reference, 'mean', options)
    scale = _checked_ratio(
        reduce_image(reference, 'std_dev', options),
        reduce_image(target, 'std_dev', options),
        "Гистограммное согласование по СКО"
    )

    return target.subtract(offset_target).multiply(scale).add(offset)


def rescale_band(target: RasterAlgebra, reference: RasterAlgebra, match: bool = True,
                 options: Optional[ReductionOptions] = None) -> RasterAlgebra:
    """
    Масштабирование канала к эталону
    match=True  - согласование среднего и СКО
    match=False - согласование минимума и диапазона
    """
    if match:
        return linear_histogram_match(target, reference, options)

    offset_target = reduce_image(target, 'min', options)
    offset = reduce_image(reference, 'min', options)
    scale = _checked_ratio(
        get_image_range(reference, options),
        get_image_range(target, options),
        "Гистограммное согласование по диапазону"
    )

    return target.subtract(offset_target).multiply(scale).add(offset)


def calculate_weighted_intensity(img: RasterAlgebra, weights: Sequence[float]) -> RasterAlgebra:
    """
    Интенсивность как взвешенная сумма каналов
    """
    weights = np.asarray(weights, dtype=np.float64)
    if weights.ndim != 1 or weights.shape[0] != img.band_count:
        raise InvalidInputError(
            f"Число весов ({weights.size}) не совпадает с числом каналов ({img.band_count})"
        )

    return img.multiply(weights).reduce_bands('sum').rename(['intensity'])


def multiband_to_collection(img: RasterAlgebra) -> List[RasterAlgebra]:
    """Разбиение многоканального изображения на список одноканальных в порядке каналов"""
    return [img.select(name) for name in img.band_names]


def collection_to_multiband(images: Sequence[RasterAlgebra]) -> RasterAlgebra:
    """Объединение списка изображений в одно многоканальное"""
    if not images:
        raise InvalidInputError("Пустой список изображений")

    combined = images[0]
    for img in images[1:]:
        combined = combined.add_bands(img)
    return combined
