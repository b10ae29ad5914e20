"""
Растровая алгебра: абстрактный интерфейс, реализация в памяти и ядра фильтров
"""

from .base import RasterAlgebra, RasterGrid, REGION_REDUCERS, NEIGHBORHOOD_REDUCERS, RESAMPLING_METHODS
from .numpy_raster import Raster
from .kernels import fixed_kernel, square_kernel, high_pass_kernel

__all__ = [
    'RasterAlgebra',
    'RasterGrid',
    'Raster',
    'fixed_kernel',
    'square_kernel',
    'high_pass_kernel',
    'REGION_REDUCERS',
    'NEIGHBORHOOD_REDUCERS',
    'RESAMPLING_METHODS'
]
