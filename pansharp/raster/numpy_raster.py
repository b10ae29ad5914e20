import math
import numbers
import warnings
from typing import Dict, Optional, Sequence, Tuple

import numpy as np
from affine import Affine
from rasterio.crs import CRS
from rasterio.features import geometry_mask
from rasterio.transform import from_origin
from rasterio.warp import reproject, Resampling
from scipy import ndimage
from skimage.color import rgb2hsv, hsv2rgb

from pansharp.config import ReductionOptions
from pansharp.exceptions import InvalidInputError, NumericFailureError
from pansharp.raster.base import (
    RasterAlgebra,
    RasterGrid,
    BandSelector,
    Operand,
    REGION_REDUCERS,
    NEIGHBORHOOD_REDUCERS,
    RESAMPLING_METHODS,
)
from pansharp.utils.logger import get_logger

logger = get_logger(__name__)

_RESAMPLING = {
    'nearest': Resampling.nearest,
    'bilinear': Resampling.bilinear,
    'bicubic': Resampling.cubic,
    'average': Resampling.average,
}

# NaN - маска: пропуски игнорируются при региональной статистике
_REGION_FUNCS = {
    'mean': np.nanmean,
    'variance': np.nanvar,
    'std_dev': np.nanstd,
    'sum': np.nansum,
    'min': np.nanmin,
    'max': np.nanmax,
}

# Попиксельная редукция по каналам: маскированный канал маскирует пиксель
_BAND_FUNCS = {
    'mean': np.mean,
    'variance': np.var,
    'std_dev': np.std,
    'sum': np.sum,
    'min': np.min,
    'max': np.max,
}


class Raster(RasterAlgebra):
    """
    Растр в памяти: массив float64 (каналы, строки, столбцы), имена каналов,
    аффинная трансформация и CRS. Массив доступен только для чтения.
    """

    def __init__(self, data, band_names: Sequence[str], transform: Affine, crs: Optional[CRS],
                 copy: bool = True):
        data = np.array(data, dtype=np.float64, copy=True) if copy else np.asarray(data, dtype=np.float64)
        if data.ndim == 2:
            data = data[np.newaxis]
        if data.ndim != 3:
            raise InvalidInputError(f"Ожидается массив (каналы, строки, столбцы), получена форма {data.shape}")

        names = tuple(str(name) for name in band_names)
        if len(names) != data.shape[0]:
            raise InvalidInputError(
                f"Число имен каналов ({len(names)}) не совпадает с числом каналов ({data.shape[0]})"
            )
        if len(set(names)) != len(names):
            raise InvalidInputError(f"Имена каналов должны быть уникальны: {names}")

        data.setflags(write=False)
        self._data = data
        self._band_names = names
        self._grid = RasterGrid(transform=transform, crs=crs, width=data.shape[2], height=data.shape[1])

    # ------------------------------------------------------------------
    # Конструкторы
    # ------------------------------------------------------------------

    @classmethod
    def from_array(cls, data, transform: Affine, crs: Optional[CRS] = None,
                   band_names: Optional[Sequence[str]] = None) -> 'Raster':
        """Создание растра из массива 2D или 3D; имена по умолчанию B1..Bn"""
        array = np.asarray(data, dtype=np.float64)
        n_bands = 1 if array.ndim == 2 else array.shape[0]
        if band_names is None:
            band_names = [f"B{i + 1}" for i in range(n_bands)]
        return cls(array, band_names, transform, crs)

    @classmethod
    def constant(cls, values: Sequence[float], grid: RasterGrid, band_names: Sequence[str]) -> 'Raster':
        """Растр с постоянным значением в каждом канале"""
        values = np.asarray(values, dtype=np.float64).reshape(-1, 1, 1)
        data = np.broadcast_to(values, (values.shape[0], grid.height, grid.width))
        return cls(data, band_names, grid.transform, grid.crs)

    def _derive(self, data: np.ndarray, band_names: Optional[Sequence[str]] = None,
                grid: Optional[RasterGrid] = None) -> 'Raster':
        grid = grid or self._grid
        names = self._band_names if band_names is None else band_names
        return Raster(data, names, grid.transform, grid.crs, copy=False)

    # ------------------------------------------------------------------
    # Атрибуты
    # ------------------------------------------------------------------

    @property
    def data(self) -> np.ndarray:
        return self._data

    @property
    def band_names(self) -> Tuple[str, ...]:
        return self._band_names

    @property
    def grid(self) -> RasterGrid:
        return self._grid

    @property
    def transform(self) -> Affine:
        return self._grid.transform

    @property
    def crs(self) -> Optional[CRS]:
        return self._grid.crs

    @property
    def shape(self) -> Tuple[int, int, int]:
        return self._data.shape

    def band(self, band: BandSelector) -> np.ndarray:
        """Массив одного канала"""
        return self._data[self._band_index(band)]

    def __repr__(self) -> str:
        return (f"Raster(bands={list(self._band_names)}, shape={self._data.shape[1:]}, "
                f"resolution={self.resolution}, crs={self.crs})")

    # ------------------------------------------------------------------
    # Каналы
    # ------------------------------------------------------------------

    def _band_index(self, band) -> int:
        if isinstance(band, (int, np.integer)):
            if not -self.band_count <= band < self.band_count:
                raise InvalidInputError(f"Индекс канала {band} вне диапазона 0..{self.band_count - 1}")
            return int(band) % self.band_count
        if band not in self._band_names:
            raise InvalidInputError(f"Канал '{band}' не найден. Доступные каналы: {', '.join(self._band_names)}")
        return self._band_names.index(band)

    def select(self, bands: BandSelector) -> 'Raster':
        if isinstance(bands, (str, int, np.integer)):
            bands = [bands]
        indices = [self._band_index(b) for b in bands]
        return self._derive(self._data[indices], [self._band_names[i] for i in indices])

    def rename(self, names: Sequence[str]) -> 'Raster':
        if isinstance(names, str):
            names = [names]
        return self._derive(self._data, list(names))

    def add_bands(self, other: RasterAlgebra) -> 'Raster':
        other_data = self._raster_data(other)
        return self._derive(np.concatenate([self._data, other_data]),
                            self._band_names + tuple(other.band_names))

    # ------------------------------------------------------------------
    # Поэлементная арифметика
    # ------------------------------------------------------------------

    def _raster_data(self, other: RasterAlgebra) -> np.ndarray:
        if not isinstance(other, Raster):
            raise InvalidInputError(f"Ожидается Raster, получено {type(other).__name__}")
        if other.grid != self._grid:
            raise InvalidInputError(
                f"Растры на разных сетках: {self._grid} и {other.grid}. "
                f"Сначала выполните resample_to"
            )
        return other.data

    def _operand(self, other: Operand):
        """Приводит операнд к массиву, совместимому по форме, и возвращает имена результата"""
        if isinstance(other, RasterAlgebra):
            other_data = self._raster_data(other)
            if other.band_count == self.band_count or other.band_count == 1:
                return other_data, self._band_names
            if self.band_count == 1:
                return other_data, tuple(other.band_names)
            raise InvalidInputError(
                f"Несовместимое число каналов: {self.band_count} и {other.band_count}"
            )

        if isinstance(other, numbers.Number):
            return float(other), self._band_names

        values = np.asarray(other, dtype=np.float64)
        if values.ndim == 0:
            return float(values), self._band_names
        if values.ndim != 1 or values.shape[0] not in (1, self.band_count):
            raise InvalidInputError(
                f"Ожидается {self.band_count} постоянных значений по каналам, получена форма {values.shape}"
            )
        return values.reshape(-1, 1, 1), self._band_names

    def _binary(self, func, other: Operand) -> 'Raster':
        other_data, names = self._operand(other)
        with np.errstate(divide='ignore', invalid='ignore', over='ignore'):
            result = func(self._data, other_data)
        return self._derive(result, names)

    def add(self, other: Operand) -> 'Raster':
        return self._binary(np.add, other)

    def subtract(self, other: Operand) -> 'Raster':
        return self._binary(np.subtract, other)

    def multiply(self, other: Operand) -> 'Raster':
        return self._binary(np.multiply, other)

    def divide(self, other: Operand) -> 'Raster':
        return self._binary(np.divide, other)

    def pow(self, exponent: Operand) -> 'Raster':
        return self._binary(np.power, exponent)

    def __neg__(self) -> 'Raster':
        return self.multiply(-1)

    def reduce_bands(self, reducer: str) -> 'Raster':
        if reducer not in _BAND_FUNCS:
            raise InvalidInputError(f"Неизвестный редуктор '{reducer}'. Доступные: {', '.join(_BAND_FUNCS)}")
        result = _BAND_FUNCS[reducer](self._data, axis=0, keepdims=True)
        return self._derive(result, [reducer])

    # ------------------------------------------------------------------
    # Пространственные операции
    # ------------------------------------------------------------------

    def resample_to(self, grid: RasterGrid, method: str = 'bilinear') -> 'Raster':
        """
        Передискретизация на сетку grid через rasterio.warp.reproject
        Совпадающая сетка возвращает растр без изменений
        """
        if method not in RESAMPLING_METHODS:
            raise InvalidInputError(
                f"Неизвестный метод передискретизации '{method}'. Доступные: {', '.join(RESAMPLING_METHODS)}"
            )
        if grid == self._grid:
            return self
        if self.crs is None or grid.crs is None:
            raise InvalidInputError("Для передискретизации обе сетки должны иметь CRS")

        resampled = np.full((self.band_count, grid.height, grid.width), np.nan, dtype=np.float64)

        # Репроецируем каждый канал к целевой сетке
        for i in range(self.band_count):
            reproject(
                source=np.array(self._data[i]),
                destination=resampled[i],
                src_transform=self.transform,
                src_crs=self.crs,
                dst_transform=grid.transform,
                dst_crs=grid.crs,
                src_nodata=np.nan,
                dst_nodata=np.nan,
                resampling=_RESAMPLING[method]
            )

        return self._derive(resampled, grid=grid)

    def convolve(self, kernel: np.ndarray) -> 'Raster':
        kernel = np.asarray(kernel, dtype=np.float64)
        convolved = np.stack([ndimage.convolve(band, kernel, mode='reflect') for band in self._data])
        return self._derive(convolved)

    def reduce_neighborhood(self, kernel: np.ndarray, reducer: str = 'mean') -> 'Raster':
        if reducer not in NEIGHBORHOOD_REDUCERS:
            raise InvalidInputError(
                f"Неизвестный редуктор окрестности '{reducer}'. Доступные: {', '.join(NEIGHBORHOOD_REDUCERS)}"
            )
        kernel = np.asarray(kernel, dtype=np.float64)

        if reducer == 'mean':
            total = kernel.sum()
            if total == 0:
                raise NumericFailureError("Сумма весов ядра равна нулю, среднее по окрестности не определено")
            weights = kernel / total
            reduced = [ndimage.correlate(band, weights, mode='nearest') for band in self._data]
        else:
            filter_func = ndimage.minimum_filter if reducer == 'min' else ndimage.maximum_filter
            reduced = [filter_func(band, footprint=kernel != 0, mode='nearest') for band in self._data]

        return self._derive(np.stack(reduced), [f"{name}_{reducer}" for name in self._band_names])

    def _require_three_bands(self, operation: str):
        if self.band_count != 3:
            raise InvalidInputError(f"{operation} требует ровно 3 канала, получено {self.band_count}")

    def rgb_to_hsv(self) -> 'Raster':
        self._require_three_bands("Преобразование RGB -> HSV")
        hsv = rgb2hsv(np.moveaxis(self._data, 0, -1))
        return self._derive(np.moveaxis(hsv, -1, 0), ['hue', 'saturation', 'value'])

    def hsv_to_rgb(self) -> 'Raster':
        self._require_three_bands("Преобразование HSV -> RGB")
        rgb = hsv2rgb(np.moveaxis(self._data, 0, -1))
        return self._derive(np.moveaxis(rgb, -1, 0), ['red', 'green', 'blue'])

    # ------------------------------------------------------------------
    # Региональная статистика
    # ------------------------------------------------------------------

    def _grid_at_scale(self, scale: float) -> RasterGrid:
        left, bottom, right, top = self._grid.bounds
        width = max(1, int(math.ceil(round((right - left) / scale, 6))))
        height = max(1, int(math.ceil(round((top - bottom) / scale, 6))))
        return RasterGrid(from_origin(left, top, scale, scale), self.crs, width, height)

    def _sample(self, options: Optional[ReductionOptions]) -> np.ndarray:
        """
        Выборка пикселей (каналы, пиксели) с учетом масштаба, региона и бюджета пикселей
        """
        options = options or ReductionOptions()
        raster = self

        if options.scale is not None and not np.isclose(options.scale, self.resolution):
            method = 'average' if options.scale > self.resolution else 'bilinear'
            raster = self.resample_to(self._grid_at_scale(options.scale), method)

        sample = raster.data.reshape(raster.band_count, -1)

        if options.region is not None:
            inside = geometry_mask(
                [options.region],
                out_shape=raster.grid.shape,
                transform=raster.transform,
                invert=True
            )
            sample = sample[:, inside.ravel()]

        n_pixels = sample.shape[1]
        if n_pixels == 0:
            raise InvalidInputError("Регион статистики не содержит пикселей растра")

        if n_pixels > options.max_pixels:
            step = int(math.ceil(n_pixels / options.max_pixels))
            sample = sample[:, ::step]
            logger.debug(f"Бюджет пикселей превышен ({n_pixels} > {options.max_pixels:g}), "
                         f"используется каждый {step}-й пиксель")

        return sample

    def reduce_region(self, reducer: str, options: Optional[ReductionOptions] = None) -> Dict[str, float]:
        if reducer not in _REGION_FUNCS:
            raise InvalidInputError(f"Неизвестный редуктор '{reducer}'. Доступные: {', '.join(REGION_REDUCERS)}")

        sample = self._sample(options)

        # Полностью маскированный канал дает NaN
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", RuntimeWarning)
            values = _REGION_FUNCS[reducer](sample, axis=1)

        return {name: float(value) for name, value in zip(self._band_names, values)}

    def covariance(self, options: Optional[ReductionOptions] = None, centered: bool = False) -> np.ndarray:
        """
        Ковариационная матрица каналов по пикселям, валидным во всех каналах
        centered=True предполагает уже центрированные данные (сумма произведений / N)
        """
        sample = self._sample(options)
        sample = sample[:, np.all(np.isfinite(sample), axis=0)]
        if sample.shape[1] == 0:
            raise InvalidInputError("Нет пикселей, валидных во всех каналах, для ковариации")

        if centered:
            return sample @ sample.T / sample.shape[1]
        return np.atleast_2d(np.cov(sample, bias=True))

    # ------------------------------------------------------------------
    # Матричные операции
    # ------------------------------------------------------------------

    def _check_matrix(self, matrix: np.ndarray, names: Sequence[str]) -> np.ndarray:
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.ndim != 2 or matrix.shape[1] != self.band_count:
            raise InvalidInputError(
                f"Матрица {matrix.shape} несовместима с {self.band_count} каналами"
            )
        if len(names) != matrix.shape[0]:
            raise InvalidInputError(f"Ожидается {matrix.shape[0]} имен каналов, получено {len(names)}")
        return matrix

    def matrix_multiply(self, matrix: np.ndarray, names: Sequence[str]) -> 'Raster':
        matrix = self._check_matrix(matrix, names)
        flat = self._data.reshape(self.band_count, -1)
        product = matrix @ flat
        return self._derive(product.reshape(-1, *self._grid.shape), list(names))

    def matrix_solve(self, matrix: np.ndarray, names: Sequence[str]) -> 'Raster':
        matrix = self._check_matrix(matrix, names)
        if matrix.shape[0] != matrix.shape[1]:
            raise InvalidInputError(f"Для решения системы нужна квадратная матрица, получена {matrix.shape}")

        flat = self._data.reshape(self.band_count, -1)
        try:
            solved = np.linalg.solve(matrix, flat)
        except np.linalg.LinAlgError as e:
            raise NumericFailureError(f"Матрица вырождена, обратное преобразование невозможно: {e}") from e

        return self._derive(solved.reshape(-1, *self._grid.shape), list(names))
