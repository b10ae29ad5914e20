import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

from pansharp.config import SharpeningOptions
from pansharp.exceptions import InvalidInputError
from pansharp.raster.base import RasterAlgebra
from pansharp.utils.logger import get_logger, log_module_start, log_module_end

logger = get_logger(__name__)


@dataclass
class PansharpeningResult:
    """Результат паншарпенинга с параметрами, временем выполнения и метриками"""
    sharpened_image: RasterAlgebra
    method_name: str
    parameters: Dict[str, Any]
    execution_time: float
    metrics: Optional[Dict[str, Any]] = None


class BasePansharpening(ABC):
    """
    Общий шаблон метода паншарпенинга:
    проверка входных данных -> алгоритм метода -> результат на сетке PAN
    """

    method_name = ''
    options_class = SharpeningOptions

    def __init__(self, options: Optional[object] = None):
        if options is None:
            options = self.options_class()
        if not isinstance(options, self.options_class):
            raise InvalidInputError(
                f"Метод {self.method_name} ожидает параметры {self.options_class.__name__}, "
                f"получено {type(options).__name__}"
            )
        self.options = options
        logger.debug(f"Инициализирован метод {self.method_name} паншарпенинга")

    def _validate_inputs(self, ms: RasterAlgebra, pan: RasterAlgebra):
        """Проверка числа каналов MS и PAN"""
        if pan.band_count != 1:
            raise InvalidInputError(
                f"PAN изображение должно иметь ровно один канал, получено {pan.band_count}: {list(pan.band_names)}"
            )
        if ms.band_count < 1:
            raise InvalidInputError("MS изображение не содержит каналов")

    def _upsample_ms_to_pan(self, ms: RasterAlgebra, pan: RasterAlgebra,
                            method: str = 'bilinear') -> RasterAlgebra:
        """Апсемплинг MS данных до сетки PAN"""
        return ms.resample_to(pan.grid, method)

    def sharpen(self, ms: RasterAlgebra, pan: RasterAlgebra) -> RasterAlgebra:
        """
        Паншарпенинг MS изображения по PAN каналу
        Returns: растр на сетке PAN
        """
        self._validate_inputs(ms, pan)

        start_time = time.time()
        log_module_start(logger, self.method_name, {
            'ms_bands': list(ms.band_names),
            'ms_resolution': ms.resolution,
            'pan_resolution': pan.resolution,
            'options': self.options,
        })

        sharpened = self._apply_pansharpening(ms, pan)

        log_module_end(logger, self.method_name, time.time() - start_time)
        return sharpened

    @abstractmethod
    def _apply_pansharpening(self, ms: RasterAlgebra, pan: RasterAlgebra) -> RasterAlgebra:
        """Алгоритм конкретного метода"""
