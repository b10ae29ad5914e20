"""
Модуль методов паншарпенинга на основе Multi-Resolution Analysis (MRA)

Включает:
- Метод High-Pass Filter Addition (HPFAPansharpening)
- Метод Smoothing Filter-based Intensity Modulation (SFIMPansharpening)
"""

from .hpfa import HPFAPansharpening, hpfa
from .sfim import SFIMPansharpening, sfim

__all__ = [
    'HPFAPansharpening',
    'SFIMPansharpening',
    'hpfa',
    'sfim'
]
