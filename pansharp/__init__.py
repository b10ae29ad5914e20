"""
Пакет паншарпенинга: слияние многозонального изображения низкого разрешения
с панхроматическим каналом высокого разрешения и метрики качества слияния.

Модули:
- raster          : растровая алгебра (интерфейс и реализация в памяти)
- pansharpening   : методы паншарпенинга, метрики качества, фабрика
- utils           : логирование и общие численные утилиты
- config          : конфигурация и параметры методов
"""

# Утилиты
from .utils import (
    setup_logging,
    get_logger,
)

# Исключения и параметры
from .exceptions import PansharpError, InvalidInputError, NumericFailureError
from .config import (
    load_config,
    ReductionOptions,
    BroveyOptions,
    HPFAOptions,
    PCAOptions,
    GSOptions,
    QualityOptions,
)

# Растры
from .raster import RasterAlgebra, RasterGrid, Raster

# Паншарпенинг <- Фабрика, Метрики
from .pansharpening import (
    pansharpening_factory,
    PansharpeningMethodFactory,
    PansharpeningMetricsCalculator,
    PansharpeningResult,
    sharpen,
    quality,
    METHODS,
    METRICS,
)

# Прямые точки входа методов и метрик
from .pansharpening.cs import brovey, simple_mean, ihs, pca
from .pansharpening.mra import hpfa, sfim
from .pansharpening.model_based import gs
from .pansharpening.metrics import mse, rmse, bias, cc, cml, cmc, q_index, div, ergas, rase, psnr

__version__ = '0.1.0'

# Публичный API
__all__ = [
    # утилиты
    "setup_logging",
    "get_logger",

    # исключения и параметры
    "PansharpError",
    "InvalidInputError",
    "NumericFailureError",
    "load_config",
    "ReductionOptions",
    "BroveyOptions",
    "HPFAOptions",
    "PCAOptions",
    "GSOptions",
    "QualityOptions",

    # растры
    "RasterAlgebra",
    "RasterGrid",
    "Raster",

    # фасад
    "pansharpening_factory",
    "PansharpeningMethodFactory",
    "PansharpeningMetricsCalculator",
    "PansharpeningResult",
    "sharpen",
    "quality",
    "METHODS",
    "METRICS",

    # методы
    "brovey",
    "simple_mean",
    "ihs",
    "pca",
    "hpfa",
    "sfim",
    "gs",

    # метрики
    "mse",
    "rmse",
    "bias",
    "cc",
    "cml",
    "cmc",
    "q_index",
    "div",
    "ergas",
    "rase",
    "psnr",
]
