import math
from typing import Sequence

import numpy as np

from pansharp.exceptions import InvalidInputError, NumericFailureError


def fixed_kernel(weights: Sequence[Sequence[float]], normalize: bool = False) -> np.ndarray:
    """
    Ядро с заданными весами

    При normalize=True веса делятся на их сумму. Ядро с нулевой суммой
    (фильтр высоких частот) делится на число ячеек.
    """
    kernel = np.asarray(weights, dtype=np.float64)
    if kernel.ndim != 2 or kernel.size == 0:
        raise InvalidInputError(f"Ядро должно быть непустой 2D матрицей, получена форма {kernel.shape}")

    if not normalize:
        return kernel

    total = kernel.sum()
    if np.isclose(total, 0.0):
        total = kernel.size

    kernel = kernel / total
    if not np.all(np.isfinite(kernel)):
        raise NumericFailureError("Нормализация ядра дала нечисловые значения")
    return kernel


def square_kernel(radius: float) -> np.ndarray:
    """Квадратное ядро из единиц шириной 2 * floor(radius) + 1"""
    if radius < 0:
        raise InvalidInputError(f"Радиус ядра не может быть отрицательным: {radius}")
    width = 2 * int(math.floor(radius)) + 1
    return np.ones((width, width), dtype=np.float64)


def high_pass_kernel(width: int) -> np.ndarray:
    """
    Ядро фильтра высоких частот: все ячейки -1, центральная width^2 - 1
    """
    width = int(width)
    if width < 1:
        raise InvalidInputError(f"Ширина ядра должна быть >= 1, получено {width}")

    kernel = np.full((width, width), -1.0)
    center = width // 2
    kernel[center, center] = width ** 2 - 1
    return kernel
