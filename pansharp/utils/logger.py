import logging
import logging.handlers
import sys
import json
from pathlib import Path
from datetime import datetime
from typing import Optional, Dict, Any, Union

import yaml

from pansharp.config import deep_update

ROOT_LOGGER_NAME = 'pansharp'


class CustomFormatter(logging.Formatter):
    """Кастомный форматтер с временными метками"""

    def format(self, record):
        # Добавляем timestamp ко всем записям
        record.timestamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]
        return super().format(record)


class MetricsFilter(logging.Filter):
    """Фильтр для отбора записей METRIC"""

    def filter(self, record: logging.LogRecord) -> bool:
        message = getattr(record, 'msg', '')
        if isinstance(message, str) and message.startswith('METRIC '):
            return True
        return False


class PansharpLogger:
    """
    Логгер пакета паншарпенинга: консоль и, если задана директория логов,
    файлы с ротацией (основной, метрики, ошибки)
    """

    def __init__(self, config_path: Optional[Union[str, Path]] = None,
                 log_dir: Optional[Union[str, Path]] = None):
        self.config = self._load_config(config_path)

        if log_dir is None:
            log_dir = self.config.get('log_dir')
        self.log_dir = Path(log_dir) if log_dir else None

        self._setup_logging()

    def _load_config(self, config_path: Optional[Union[str, Path]]) -> Dict[str, Any]:
        """Загружает конфигурацию или использует значения по умолчанию"""
        default_config = {
            'console_level': 'INFO',
            'file_level': 'DEBUG',
            'log_dir': None,
            'rotation': {
                'backup_count': 5,
                'when': 'D',
                'interval': 1,
            },
            'formats': {
                'detailed': '%(timestamp)s - %(name)-35s - %(levelname)-8s - %(message)s',
                'console': '%(asctime)s - %(levelname)-8s [%(name)s] %(message)s',
            }
        }

        if config_path and Path(config_path).exists():
            with open(config_path, 'r', encoding='utf-8') as f:
                user_config = yaml.safe_load(f) or {}
            if 'logging' in user_config:
                return deep_update(default_config, user_config['logging'])

        return default_config

    def _setup_logging(self):
        """Настраивает всю систему логирования"""
        main_logger = logging.getLogger(ROOT_LOGGER_NAME)
        main_logger.setLevel(logging.DEBUG)
        main_logger.handlers.clear()

        self._setup_console_handler(main_logger)

        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            self._setup_file_handlers(main_logger)

        main_logger.debug("Система логирования инициализирована, директория логов: %s", self.log_dir)

    def _setup_console_handler(self, logger: logging.Logger):
        """Настраивает вывод в консоль"""
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(getattr(logging, self.config['console_level']))

        console_formatter = logging.Formatter(self.config['formats']['console'], datefmt='%H:%M:%S')
        console_handler.setFormatter(console_formatter)
        logger.addHandler(console_handler)

    def _setup_file_handlers(self, logger: logging.Logger):
        """Настраивает файловые обработчики с ротацией"""
        rotation_config = self.config['rotation']

        # 1. Основной лог-файл (ВСЕ сообщения)
        main_handler = self._rotating_handler('pansharp.log', rotation_config)
        main_handler.setLevel(getattr(logging, self.config['file_level']))
        main_handler.setFormatter(CustomFormatter(self.config['formats']['detailed']))
        logger.addHandler(main_handler)

        # 2. Лог-файл для метрик (только METRIC JSON)
        metrics_handler = self._rotating_handler('metrics.log', rotation_config)
        metrics_handler.setLevel(logging.INFO)
        metrics_handler.addFilter(MetricsFilter())
        metrics_handler.setFormatter(logging.Formatter('%(message)s'))
        logger.addHandler(metrics_handler)

        # 3. Лог-файл для ошибок (WARNING и выше)
        error_handler = self._rotating_handler('errors.log', rotation_config)
        error_handler.setLevel(logging.WARNING)
        error_handler.setFormatter(CustomFormatter('%(timestamp)s - %(name)s - %(levelname)s - %(message)s'))
        logger.addHandler(error_handler)

    def _rotating_handler(self, filename: str, rotation_config: Dict) -> logging.Handler:
        return logging.handlers.TimedRotatingFileHandler(
            filename=self.log_dir / filename,
            when=rotation_config['when'],
            interval=rotation_config['interval'],
            backupCount=rotation_config['backup_count'],
            encoding='utf-8'
        )

    def get_logger(self, name: str) -> logging.Logger:
        """Создает и возвращает именованный логгер для модуля"""
        if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + '.'):
            return logging.getLogger(name)
        return logging.getLogger(f'{ROOT_LOGGER_NAME}.{name}')

    def log_metric(self, logger: logging.Logger, metric_name: str, value: float,
                   context: Optional[Dict] = None):
        """Логирует метрику в структурированном JSON формате"""
        metric_data = {
            'metric': metric_name,
            'value': float(value),
            'timestamp': datetime.now().isoformat(),
            'context': context or {}
        }

        logger.info(f"METRIC {json.dumps(metric_data, ensure_ascii=False)}")

    def log_module_start(self, logger: logging.Logger, module_name: str,
                         params: Optional[Dict] = None):
        """Логирует начало работы модуля"""
        logger.debug("┌─ НАЧАЛО: %s", module_name)
        if params:
            logger.debug("│ Параметры: %s", params)

    def log_module_end(self, logger: logging.Logger, module_name: str,
                       execution_time: Optional[float] = None):
        """Логирует завершение работы модуля"""
        if execution_time is not None:
            logger.debug("└─ ЗАВЕРШЕНИЕ: %s (время: %.3fс)", module_name, execution_time)
        else:
            logger.debug("└─ ЗАВЕРШЕНИЕ: %s", module_name)


# Глобальный экземпляр логгера
_pansharp_logger = None


def setup_logging(config_path: Optional[Union[str, Path]] = None,
                  log_dir: Optional[Union[str, Path]] = None,
                  force: bool = False) -> PansharpLogger:
    """Инициализирует систему логирования (повторный вызов без force ничего не меняет)"""
    global _pansharp_logger
    if _pansharp_logger is None or force:
        _pansharp_logger = PansharpLogger(config_path, log_dir)
    return _pansharp_logger


def get_logger(name: str) -> logging.Logger:
    """Возвращает именованный логгер"""
    return setup_logging().get_logger(name)


def log_metric(logger: logging.Logger, metric_name: str, value: float,
               context: Optional[Dict] = None):
    """Логирует метрику"""
    setup_logging().log_metric(logger, metric_name, value, context)


def log_module_start(logger: logging.Logger, module_name: str, params: Optional[Dict] = None):
    setup_logging().log_module_start(logger, module_name, params)


def log_module_end(logger: logging.Logger, module_name: str, execution_time: Optional[float] = None):
    setup_logging().log_module_end(logger, module_name, execution_time)
