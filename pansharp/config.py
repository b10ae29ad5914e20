"""
Конфигурация пакета и типизированные наборы параметров методов

Параметры методов задаются записями dataclass со значениями по умолчанию.
Файл config.yaml может переопределить значения по умолчанию для статистик
(max_pixels, scale) и логирования.
"""

import copy
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Type, TypeVar, Union

import yaml

from pansharp.exceptions import InvalidInputError

# Бюджет пикселей для региональной статистики
DEFAULT_MAX_PIXELS = 1e12

DEFAULT_CONFIG = {
    'statistics': {
        'max_pixels': DEFAULT_MAX_PIXELS,
        'scale': None,
    },
}

# Имена аргументов фасада в camelCase -> поля записей параметров
ARG_ALIASES = {
    'geometry': 'region',
    'maxPixels': 'max_pixels',
    'perBand': 'per_band',
    'substitutePC': 'substitute_pc',
    'matchPan': 'match_pan',
    'kernelWidth': 'kernel_width',
}


def deep_update(original: Dict, update: Mapping) -> Dict:
    """Рекурсивно обновляет словарь конфигурации"""
    for key, value in update.items():
        if isinstance(value, Mapping) and key in original and isinstance(original[key], dict):
            original[key] = deep_update(original[key], value)
        else:
            original[key] = value
    return original


def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Загружает YAML конфигурацию поверх значений по умолчанию
    Отсутствующий путь дает конфигурацию по умолчанию
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    if config_path is None:
        return config

    config_path = Path(config_path)
    if not config_path.exists():
        raise InvalidInputError(f"Файл конфигурации не найден: {config_path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        user_config = yaml.safe_load(f) or {}

    if not isinstance(user_config, dict):
        raise InvalidInputError(f"Некорректный формат конфигурации: {config_path}")

    return deep_update(config, user_config)


def _to_float(name: str, value: Any) -> Optional[float]:
    """Числовой параметр из аргументов или конфигурации, None остается None"""
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"{name} должен быть числом, получено {value!r}") from None


@dataclass(frozen=True)
class SharpeningOptions:
    """Пустой набор параметров для методов без настроек (simpleMean, IHS, SFIM)"""


@dataclass(frozen=True)
class ReductionOptions:
    """
    Параметры региональной статистики

    region     : геометрия (GeoJSON-подобная или shapely), None - весь растр
    scale      : размер пикселя для статистики, None - родное разрешение
    max_pixels : бюджет пикселей, при превышении используется подвыборка
    """
    region: Optional[Any] = None
    scale: Optional[float] = None
    max_pixels: float = DEFAULT_MAX_PIXELS

    def __post_init__(self):
        # YAML 1.1 читает "1e12" как строку
        object.__setattr__(self, 'max_pixels', _to_float('max_pixels', self.max_pixels))
        object.__setattr__(self, 'scale', _to_float('scale', self.scale))

        if self.max_pixels is None or self.max_pixels < 1:
            raise InvalidInputError(f"max_pixels должен быть >= 1, получено {self.max_pixels}")
        if self.scale is not None and self.scale <= 0:
            raise InvalidInputError(f"scale должен быть положительным, получено {self.scale}")

    @property
    def reduction(self) -> 'ReductionOptions':
        """Только параметры статистики (без параметров метода)"""
        return ReductionOptions(region=self.region, scale=self.scale, max_pixels=self.max_pixels)


@dataclass(frozen=True)
class BroveyOptions:
    """Веса каналов для интенсивности Brovey, None - равные веса 1/n"""
    weights: Optional[Tuple[float, ...]] = None

    def __post_init__(self):
        if self.weights is not None:
            object.__setattr__(self, 'weights', tuple(float(w) for w in self.weights))


@dataclass(frozen=True)
class HPFAOptions:
    """Ширина ядра фильтра высоких частот, None - 2 * round(msRes / panRes) + 1"""
    kernel_width: Optional[int] = None

    def __post_init__(self):
        if self.kernel_width is not None and int(self.kernel_width) < 1:
            raise InvalidInputError(f"Ширина ядра должна быть >= 1, получено {self.kernel_width}")


@dataclass(frozen=True)
class PCAOptions(ReductionOptions):
    """
    substitute_pc : номер заменяемой главной компоненты (с единицы)
    match_pan     : True - согласование среднего и СКО, False - согласование диапазона
    """
    substitute_pc: int = 1
    match_pan: bool = True

    def __post_init__(self):
        super().__post_init__()
        if int(self.substitute_pc) != self.substitute_pc or self.substitute_pc < 1:
            raise InvalidInputError(
                f"Номер главной компоненты должен быть целым >= 1, получено {self.substitute_pc}"
            )


@dataclass(frozen=True)
class GSOptions(ReductionOptions):
    """Gram-Schmidt использует только параметры статистики"""


@dataclass(frozen=True)
class QualityOptions(ReductionOptions):
    """
    per_band : True - словарь {канал: значение}, False - среднее по каналам
    h, l     : номинальное разрешение оцениваемого и эталонного изображений,
               обязательны для ERGAS, остальные метрики их не используют
    """
    per_band: bool = False
    h: Optional[float] = None
    l: Optional[float] = None


OptionsT = TypeVar('OptionsT')


def options_from_args(options_class: Type[OptionsT], args: Optional[Mapping[str, Any]] = None,
                      config: Optional[Mapping[str, Any]] = None) -> OptionsT:
    """
    Создает запись параметров из словаря аргументов фасада
    Значения max_pixels и scale, не заданные вызывающим, берутся из конфигурации
    """
    field_names = {f.name for f in fields(options_class)}
    kwargs = {}

    for key, value in (args or {}).items():
        name = ARG_ALIASES.get(key, key)
        if name not in field_names:
            valid = ', '.join(sorted(field_names)) or '-'
            raise InvalidInputError(
                f"Неизвестный параметр '{key}' для {options_class.__name__}. Допустимые параметры: {valid}"
            )
        kwargs[name] = value

    if config is not None:
        statistics = config.get('statistics', {})
        for name in ('max_pixels', 'scale'):
            if name in field_names and name not in kwargs and statistics.get(name) is not None:
                kwargs[name] = statistics[name]

    return options_class(**kwargs)
