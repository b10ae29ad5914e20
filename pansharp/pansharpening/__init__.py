import time
from dataclasses import asdict
from pathlib import Path
from typing import Dict, Any, List, Optional, Sequence, Union

from pansharp.config import load_config, options_from_args
from pansharp.exceptions import InvalidInputError, PansharpError
from pansharp.raster.base import RasterAlgebra
from pansharp.utils.logger import get_logger

from pansharp.pansharpening.base import BasePansharpening, PansharpeningResult

# Импорт всех методов паншарпенинга
from pansharp.pansharpening.cs import (
    BroveyPansharpening,
    SimpleMeanPansharpening,
    IHSPansharpening,
    PCAPansharpening,
    principal_components
)
from pansharp.pansharpening.mra import HPFAPansharpening, SFIMPansharpening
from pansharp.pansharpening.model_based import GramSchmidtPansharpening

# Импорт калькулятора метрик
from pansharp.pansharpening.metrics import PansharpeningMetricsCalculator, MetricResult

logger = get_logger(__name__)


class PansharpeningMethodFactory:
    """
    Фабрика для создания и запуска методов паншарпенинга
    """

    # Реестр всех доступных методов
    _methods = {
        # CS методы
        'brovey': BroveyPansharpening,
        'simpleMean': SimpleMeanPansharpening,
        'IHS': IHSPansharpening,
        'PCA': PCAPansharpening,

        # MRA методы
        'HPFA': HPFAPansharpening,
        'SFIM': SFIMPansharpening,

        # Model-Based методы
        'GS': GramSchmidtPansharpening,
    }

    default_method = 'SFIM'

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        self.config = load_config(config_path)
        self.metrics_calculator = PansharpeningMetricsCalculator(config_path)

    @classmethod
    def _resolve_name(cls, method_name: str) -> str:
        """Каноническое имя метода (без учета регистра)"""
        lookup = {name.lower(): name for name in cls._methods}
        if not isinstance(method_name, str) or method_name.lower() not in lookup:
            available_methods = ', '.join(cls._methods.keys())
            raise InvalidInputError(
                f"Метод паншарпенинга '{method_name}' не найден. "
                f"Доступные методы: {available_methods}"
            )
        return lookup[method_name.lower()]

    @classmethod
    def create_method(cls, method_name: str, args: Optional[Dict[str, Any]] = None,
                      config: Optional[Dict[str, Any]] = None) -> BasePansharpening:
        """
        Создает экземпляр метода паншарпенинга по имени и словарю аргументов
        """
        method_class = cls._methods[cls._resolve_name(method_name)]
        options = options_from_args(method_class.options_class, args, config)
        return method_class(options)

    @classmethod
    def get_available_methods(cls) -> List[str]:
        """
        Возвращает список доступных методов паншарпенинга
        """
        return list(cls._methods.keys())

    @classmethod
    def get_method_categories(cls) -> Dict[str, List[str]]:
        """
        Возвращает методы, сгруппированные по категориям
        """
        return {
            'cs': ['brovey', 'simpleMean', 'IHS', 'PCA'],
            'mra': ['HPFA', 'SFIM'],
            'model_based': ['GS']
        }

    def sharpen(self, ms: RasterAlgebra, pan: RasterAlgebra, method: Optional[str] = None,
                args: Optional[Dict[str, Any]] = None) -> RasterAlgebra:
        """
        Паншарпенинг методом method (по умолчанию SFIM)
        """
        method_name = self._resolve_name(method if method is not None else self.default_method)
        pansharpening_method = self.create_method(method_name, args, self.config)

        logger.info(f"Паншарпенинг методом {method_name}")
        try:
            return pansharpening_method.sharpen(ms, pan)
        except PansharpError as e:
            logger.error(f"Ошибка паншарпенинга методом {method_name}: {e}")
            raise

    def quality(self, reference: RasterAlgebra, assessment: RasterAlgebra, metric: str,
                args: Optional[Dict[str, Any]] = None) -> MetricResult:
        """
        Метрика качества metric между эталоном и оцениваемым изображением
        """
        try:
            return self.metrics_calculator.calculate(reference, assessment, metric, args)
        except PansharpError as e:
            logger.error(f"Ошибка вычисления метрики {metric}: {e}")
            raise

    def run(self, ms: RasterAlgebra, pan: RasterAlgebra, method: Optional[str] = None,
            args: Optional[Dict[str, Any]] = None, reference: Optional[RasterAlgebra] = None,
            metrics: Optional[Sequence[str]] = None,
            metric_args: Optional[Dict[str, Any]] = None) -> PansharpeningResult:
        """
        Паншарпенинг с замером времени и, при наличии эталона, оценкой качества
        """
        method_name = self._resolve_name(method if method is not None else self.default_method)
        pansharpening_method = self.create_method(method_name, args, self.config)

        logger.info(f"Паншарпенинг методом {method_name}")
        start_time = time.time()
        try:
            sharpened = pansharpening_method.sharpen(ms, pan)
        except PansharpError as e:
            logger.error(f"Ошибка паншарпенинга методом {method_name}: {e}")
            raise
        execution_time = time.time() - start_time

        logger.info(f"Метод {method_name} выполнен за {execution_time:.3f}с")

        result_metrics = None
        if reference is not None:
            result_metrics = self.metrics_calculator.calculate_all(
                reference, sharpened, metrics, metric_args
            )

        return PansharpeningResult(
            sharpened_image=sharpened,
            method_name=method_name,
            parameters=asdict(pansharpening_method.options),
            execution_time=execution_time,
            metrics=result_metrics
        )


# Создаем глобальный экземпляр фабрики для удобства использования
pansharpening_factory = PansharpeningMethodFactory()

# Имена зарегистрированных методов и метрик
METHODS = PansharpeningMethodFactory.get_available_methods()
METRICS = PansharpeningMetricsCalculator.get_available_metrics()


def sharpen(ms: RasterAlgebra, pan: RasterAlgebra, method: Optional[str] = None,
            args: Optional[Dict[str, Any]] = None) -> RasterAlgebra:
    """Паншарпенинг методом из реестра по имени"""
    return pansharpening_factory.sharpen(ms, pan, method, args)


def quality(reference: RasterAlgebra, assessment: RasterAlgebra, metric: str,
            args: Optional[Dict[str, Any]] = None) -> MetricResult:
    """Метрика качества из реестра по имени"""
    return pansharpening_factory.quality(reference, assessment, metric, args)


__all__ = [
    # Фабрика
    'PansharpeningMethodFactory',
    'pansharpening_factory',
    'sharpen',
    'quality',
    'METHODS',
    'METRICS',

    # Структуры данных
    'PansharpeningResult',
    'BasePansharpening',

    # CS методы
    'BroveyPansharpening',
    'SimpleMeanPansharpening',
    'IHSPansharpening',
    'PCAPansharpening',
    'principal_components',

    # MRA методы
    'HPFAPansharpening',
    'SFIMPansharpening',

    # Model-Based методы
    'GramSchmidtPansharpening',

    # Метрики
    'PansharpeningMetricsCalculator',
]
