"""
Пакет утилит: логирование и общие численные функции
"""

from .logger import (
    PansharpLogger,
    setup_logging,
    get_logger,
    log_metric,
    log_module_start,
    log_module_end,
    CustomFormatter,
    MetricsFilter
)

from .helpers import (
    is_missing,
    default_if_missing,
    reduce_image,
    get_image_range,
    linear_histogram_match,
    rescale_band,
    calculate_weighted_intensity,
    multiband_to_collection,
    collection_to_multiband
)

__all__ = [
    # logging
    'PansharpLogger',
    'setup_logging',
    'get_logger',
    'log_metric',
    'log_module_start',
    'log_module_end',
    'CustomFormatter',
    'MetricsFilter',

    # helpers
    'is_missing',
    'default_if_missing',
    'reduce_image',
    'get_image_range',
    'linear_histogram_match',
    'rescale_band',
    'calculate_weighted_intensity',
    'multiband_to_collection',
    'collection_to_multiband'
]
