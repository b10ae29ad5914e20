"""
Абстрактная растровая алгебра

Алгоритмы паншарпенинга и метрики качества вызывают только примитивы,
перечисленные здесь, поэтому реализацию растра можно заменить
(например, на распределенную) без изменения кода алгоритмов.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple, Union

import numpy as np
from affine import Affine
from rasterio.crs import CRS

# Редукторы региональной статистики и соседства
REGION_REDUCERS = ('mean', 'variance', 'std_dev', 'sum', 'min', 'max')
NEIGHBORHOOD_REDUCERS = ('mean', 'min', 'max')
RESAMPLING_METHODS = ('nearest', 'bilinear', 'bicubic', 'average')

BandSelector = Union[str, int, Sequence[Union[str, int]]]
Operand = Union['RasterAlgebra', float, int, Sequence[float], np.ndarray]


@dataclass(frozen=True)
class RasterGrid:
    """Пространственная сетка растра: трансформация, система координат, размеры"""
    transform: Affine
    crs: Optional[CRS]
    width: int
    height: int

    @property
    def resolution(self) -> float:
        """Номинальный размер пикселя (ширина пикселя в единицах проекции)"""
        return abs(self.transform.a)

    @property
    def shape(self) -> Tuple[int, int]:
        return self.height, self.width

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """Охват (left, bottom, right, top)"""
        left, top = self.transform * (0, 0)
        right, bottom = self.transform * (self.width, self.height)
        return min(left, right), min(bottom, top), max(left, right), max(bottom, top)


class RasterAlgebra(ABC):
    """
    Неизменяемый многоканальный георастр и его примитивы.
    Каждая операция возвращает новый растр.
    """

    # --- атрибуты ---

    @property
    @abstractmethod
    def band_names(self) -> Tuple[str, ...]:
        """Упорядоченные уникальные имена каналов"""

    @property
    @abstractmethod
    def grid(self) -> RasterGrid:
        """Пространственная сетка"""

    @property
    def band_count(self) -> int:
        return len(self.band_names)

    @property
    def resolution(self) -> float:
        return self.grid.resolution

    def nominal_scale(self) -> float:
        return self.grid.resolution

    # --- каналы ---

    @abstractmethod
    def select(self, bands: BandSelector) -> 'RasterAlgebra':
        """Выбор каналов по имени или индексу (с нуля)"""

    @abstractmethod
    def rename(self, names: Sequence[str]) -> 'RasterAlgebra':
        """Переименование каналов"""

    @abstractmethod
    def add_bands(self, other: 'RasterAlgebra') -> 'RasterAlgebra':
        """Добавление каналов другого растра на той же сетке"""

    # --- поэлементная арифметика ---

    @abstractmethod
    def add(self, other: Operand) -> 'RasterAlgebra':
        pass

    @abstractmethod
    def subtract(self, other: Operand) -> 'RasterAlgebra':
        pass

    @abstractmethod
    def multiply(self, other: Operand) -> 'RasterAlgebra':
        pass

    @abstractmethod
    def divide(self, other: Operand) -> 'RasterAlgebra':
        """Деление без ограничения знаменателя: inf/nan передаются дальше"""

    @abstractmethod
    def pow(self, exponent: Operand) -> 'RasterAlgebra':
        pass

    @abstractmethod
    def reduce_bands(self, reducer: str) -> 'RasterAlgebra':
        """Попиксельная редукция по каналам в одноканальный растр"""

    # --- пространственные операции ---

    @abstractmethod
    def resample_to(self, grid: RasterGrid, method: str = 'bilinear') -> 'RasterAlgebra':
        """Передискретизация и перепроецирование на заданную сетку"""

    @abstractmethod
    def convolve(self, kernel: np.ndarray) -> 'RasterAlgebra':
        """Свертка каждого канала с ядром"""

    @abstractmethod
    def reduce_neighborhood(self, kernel: np.ndarray, reducer: str = 'mean') -> 'RasterAlgebra':
        """Редукция окрестности, заданной ядром"""

    @abstractmethod
    def rgb_to_hsv(self) -> 'RasterAlgebra':
        """RGB (3 канала) -> hue, saturation, value"""

    @abstractmethod
    def hsv_to_rgb(self) -> 'RasterAlgebra':
        """hue, saturation, value -> red, green, blue"""

    # --- статистика ---

    @abstractmethod
    def reduce_region(self, reducer: str, options=None) -> Dict[str, float]:
        """Региональная статистика по каналам: {канал: значение}"""

    @abstractmethod
    def covariance(self, options=None, centered: bool = False) -> np.ndarray:
        """Ковариационная матрица каналов (n x n)"""

    # --- матричные операции над вектором каналов пикселя ---

    @abstractmethod
    def matrix_multiply(self, matrix: np.ndarray, names: Sequence[str]) -> 'RasterAlgebra':
        """Для каждого пикселя: matrix @ вектор каналов"""

    @abstractmethod
    def matrix_solve(self, matrix: np.ndarray, names: Sequence[str]) -> 'RasterAlgebra':
        """Для каждого пикселя: решение matrix @ x = вектор каналов"""

    # --- операторы ---

    def __add__(self, other):
        return self.add(other)

    def __sub__(self, other):
        return self.subtract(other)

    def __mul__(self, other):
        return self.multiply(other)

    def __truediv__(self, other):
        return self.divide(other)

    def __pow__(self, exponent):
        return self.pow(exponent)
