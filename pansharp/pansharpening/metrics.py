"""
Метрики качества паншарпенинга

Каждая метрика принимает эталонное и оцениваемое изображения и QualityOptions.
При per_band=True возвращается словарь {канал: значение}, иначе среднее по каналам.
ERGAS и RASE всегда возвращают одно значение для всего изображения.
"""

import time
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from pansharp.config import QualityOptions, load_config, options_from_args
from pansharp.exceptions import InvalidInputError
from pansharp.raster.base import RasterAlgebra
from pansharp.utils.helpers import reduce_image
from pansharp.utils.logger import get_logger, log_metric

logger = get_logger(__name__)

MetricResult = Union[Dict[str, float], float]


def _prepare(reference: RasterAlgebra, assessment: RasterAlgebra,
             options: Optional[QualityOptions]) -> Tuple[RasterAlgebra, QualityOptions]:
    """
    Проверка совпадения имен каналов и приведение порядка каналов
    оцениваемого изображения к эталону
    """
    options = options or QualityOptions()

    if set(reference.band_names) != set(assessment.band_names) \
            or reference.band_count != assessment.band_count:
        raise InvalidInputError(
            f"Каналы эталона {list(reference.band_names)} и оцениваемого изображения "
            f"{list(assessment.band_names)} не совпадают"
        )

    return assessment.select(list(reference.band_names)), options


def _result(values: np.ndarray, band_names: Sequence[str], options: QualityOptions) -> MetricResult:
    if options.per_band:
        return {name: float(value) for name, value in zip(band_names, values)}
    return float(np.mean(values))


def _ratio(numerator, denominator) -> np.ndarray:
    # Деление попиксельных статистик не ограничивается: 0 в знаменателе дает inf/nan
    with np.errstate(divide='ignore', invalid='ignore'):
        return np.asarray(numerator, dtype=np.float64) / denominator


# ----------------------------------------------------------------------
# Базовые статистики
# ----------------------------------------------------------------------

def _mse_values(reference: RasterAlgebra, assessment: RasterAlgebra, options: QualityOptions) -> np.ndarray:
    squared_error = reference.subtract(assessment).pow(2)
    return reduce_image(squared_error, 'mean', options)


def _cc_values(reference: RasterAlgebra, assessment: RasterAlgebra, options: QualityOptions) -> np.ndarray:
    a = reference.subtract(reduce_image(reference, 'mean', options))
    b = assessment.subtract(reduce_image(assessment, 'mean', options))

    x1 = reduce_image(a.multiply(b), 'sum', options)
    x2 = reduce_image(a.pow(2), 'sum', options)
    x3 = reduce_image(b.pow(2), 'sum', options)

    return _ratio(x1, np.sqrt(x2 * x3))


def _cml_values(reference: RasterAlgebra, assessment: RasterAlgebra, options: QualityOptions) -> np.ndarray:
    x_mean = reduce_image(reference, 'mean', options)
    y_mean = reduce_image(assessment, 'mean', options)
    return _ratio(2 * x_mean * y_mean, x_mean ** 2 + y_mean ** 2)


def _cmc_values(reference: RasterAlgebra, assessment: RasterAlgebra, options: QualityOptions) -> np.ndarray:
    x_std = reduce_image(reference, 'std_dev', options)
    y_std = reduce_image(assessment, 'std_dev', options)
    return _ratio(2 * x_std * y_std, x_std ** 2 + y_std ** 2)


# ----------------------------------------------------------------------
# Метрики
# ----------------------------------------------------------------------

def mse(reference: RasterAlgebra, assessment: RasterAlgebra,
        options: Optional[QualityOptions] = None) -> MetricResult:
    """Mean Squared Error: mean((ref - assess)^2)"""
    assessment, options = _prepare(reference, assessment, options)
    return _result(_mse_values(reference, assessment, options), reference.band_names, options)


def rmse(reference: RasterAlgebra, assessment: RasterAlgebra,
         options: Optional[QualityOptions] = None) -> MetricResult:
    """Root Mean Squared Error: sqrt(MSE)"""
    assessment, options = _prepare(reference, assessment, options)
    values = np.sqrt(_mse_values(reference, assessment, options))
    return _result(values, reference.band_names, options)


def bias(reference: RasterAlgebra, assessment: RasterAlgebra,
         options: Optional[QualityOptions] = None) -> MetricResult:
    """Смещение: 1 - mean(assess) / mean(ref)"""
    assessment, options = _prepare(reference, assessment, options)
    x_mean = reduce_image(reference, 'mean', options)
    y_mean = reduce_image(assessment, 'mean', options)
    return _result(1 - _ratio(y_mean, x_mean), reference.band_names, options)


def cc(reference: RasterAlgebra, assessment: RasterAlgebra,
       options: Optional[QualityOptions] = None) -> MetricResult:
    """Коэффициент корреляции: sum(a*b) / sqrt(sum(a^2) * sum(b^2)), a, b центрированы"""
    assessment, options = _prepare(reference, assessment, options)
    return _result(_cc_values(reference, assessment, options), reference.band_names, options)


def cml(reference: RasterAlgebra, assessment: RasterAlgebra,
        options: Optional[QualityOptions] = None) -> MetricResult:
    """Изменение яркости: 2*x*y / (x^2 + y^2) по средним значениям"""
    assessment, options = _prepare(reference, assessment, options)
    return _result(_cml_values(reference, assessment, options), reference.band_names, options)


def cmc(reference: RasterAlgebra, assessment: RasterAlgebra,
        options: Optional[QualityOptions] = None) -> MetricResult:
    """Изменение контраста: 2*sx*sy / (sx^2 + sy^2)"""
    assessment, options = _prepare(reference, assessment, options)
    return _result(_cmc_values(reference, assessment, options), reference.band_names, options)


def q_index(reference: RasterAlgebra, assessment: RasterAlgebra,
            options: Optional[QualityOptions] = None) -> MetricResult:
    """
    Универсальный индекс качества (Wang & Bovik, 2002) как произведение
    CC * CML * CMC на общей сетке эталона и оцениваемого изображения
    """
    assessment, options = _prepare(reference, assessment, options)
    values = (
        _cc_values(reference, assessment, options)
        * _cml_values(reference, assessment, options)
        * _cmc_values(reference, assessment, options)
    )
    return _result(values, reference.band_names, options)


def div(reference: RasterAlgebra, assessment: RasterAlgebra,
        options: Optional[QualityOptions] = None) -> MetricResult:
    """Разность дисперсий: 1 - var(assess) / var(ref)"""
    assessment, options = _prepare(reference, assessment, options)
    x_var = reduce_image(reference, 'variance', options)
    y_var = reduce_image(assessment, 'variance', options)
    return _result(1 - _ratio(y_var, x_var), reference.band_names, options)


def ergas(reference: RasterAlgebra, assessment: RasterAlgebra,
          options: Optional[QualityOptions] = None) -> float:
    """
    ERGAS (Wald, 2000): 100 * h/l * sqrt(mean_k(MSE_k / mean_k^2))
    h, l - номинальное разрешение оцениваемого и эталонного изображений,
    оба параметра обязательны
    """
    assessment, options = _prepare(reference, assessment, options)

    if options.h is None or options.l is None:
        raise InvalidInputError(
            f"ERGAS требует номинальные разрешения h (оцениваемое изображение) и "
            f"l (эталонное изображение), получено h={options.h}, l={options.l}"
        )
    h, l = options.h, options.l

    mse_values = _mse_values(reference, assessment, options)
    x_mean = reduce_image(reference, 'mean', options)

    relative_error = _ratio(mse_values, x_mean ** 2)
    return float(100 * _ratio(h, l) * np.sqrt(np.mean(relative_error)))


def rase(reference: RasterAlgebra, assessment: RasterAlgebra,
         options: Optional[QualityOptions] = None) -> float:
    """RASE: 100 * sqrt(mean(MSE)) / mean(mean_k)"""
    assessment, options = _prepare(reference, assessment, options)

    mse_values = _mse_values(reference, assessment, options)
    x_mean = reduce_image(reference, 'mean', options)

    return float(_ratio(100 * np.sqrt(np.mean(mse_values)), np.mean(x_mean)))


def psnr(reference: RasterAlgebra, assessment: RasterAlgebra,
         options: Optional[QualityOptions] = None) -> MetricResult:
    """PSNR: 20*log10(max(ref)) - 10*log10(MSE); совпадающие изображения дают +inf"""
    assessment, options = _prepare(reference, assessment, options)

    mse_values = _mse_values(reference, assessment, options)
    x_max = reduce_image(reference, 'max', options)

    with np.errstate(divide='ignore', invalid='ignore'):
        values = 20 * np.log10(x_max) - 10 * np.log10(mse_values)
    return _result(values, reference.band_names, options)


class PansharpeningMetricsCalculator:
    """
    Калькулятор метрик качества паншарпенинга с реестром метрик по именам
    """

    _metrics: Dict[str, Callable[..., MetricResult]] = {
        'MSE': mse,
        'RMSE': rmse,
        'bias': bias,
        'CC': cc,
        'CML': cml,
        'CMC': cmc,
        'Q': q_index,
        'DIV': div,
        'ERGAS': ergas,
        'RASE': rase,
        'PSNR': psnr,
    }

    # Направление оптимума метрик
    maximize_metrics = ['CC', 'CML', 'CMC', 'Q', 'PSNR']
    minimize_metrics = ['MSE', 'RMSE', 'ERGAS', 'RASE']
    zero_optimum_metrics = ['bias', 'DIV']

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        self.config = load_config(config_path)

    @classmethod
    def get_available_metrics(cls) -> List[str]:
        """Возвращает список доступных метрик"""
        return list(cls._metrics.keys())

    @classmethod
    def get_metric_function(cls, metric_name: str) -> Callable[..., MetricResult]:
        """Функция метрики по имени (без учета регистра)"""
        lookup = {name.lower(): name for name in cls._metrics}
        if not isinstance(metric_name, str) or metric_name.lower() not in lookup:
            available_metrics = ', '.join(cls._metrics.keys())
            raise InvalidInputError(
                f"Метрика '{metric_name}' не найдена. Доступные метрики: {available_metrics}"
            )
        return cls._metrics[lookup[metric_name.lower()]]

    def build_options(self, args: Optional[Dict] = None) -> QualityOptions:
        return options_from_args(QualityOptions, args, self.config)

    def calculate(self, reference: RasterAlgebra, assessment: RasterAlgebra, metric_name: str,
                  args: Optional[Dict] = None) -> MetricResult:
        """
        Вычисление одной метрики по имени с параметрами args
        (perBand, geometry/region, scale, maxPixels, h, l)
        """
        metric_function = self.get_metric_function(metric_name)
        options = self.build_options(args)

        start_time = time.time()
        value = metric_function(reference, assessment, options)
        logger.debug(f"Метрика {metric_function.__name__} вычислена за {time.time() - start_time:.3f}с")

        self._log_value(metric_name, value)
        return value

    def calculate_all(self, reference: RasterAlgebra, assessment: RasterAlgebra,
                      metric_names: Optional[Sequence[str]] = None,
                      args: Optional[Dict] = None) -> Dict[str, MetricResult]:
        """Вычисление набора метрик (по умолчанию всех доступных)"""
        if metric_names is None:
            metric_names = self.get_available_metrics()

        results = {}
        for metric_name in metric_names:
            results[metric_name] = self.calculate(reference, assessment, metric_name, args)

        logger.info(f"Вычислено метрик: {len(results)}")
        return results

    def _log_value(self, metric_name: str, value: MetricResult):
        if isinstance(value, dict):
            for band_name, band_value in value.items():
                log_metric(logger, metric_name, band_value, {'band': band_name})
        else:
            log_metric(logger, metric_name, value, {'band': 'mean'})
