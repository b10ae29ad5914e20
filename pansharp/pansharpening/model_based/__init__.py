"""
Модуль методов паншарпенинга на основе Model-Based подходов

Включает:
- Метод Gram-Schmidt (GramSchmidtPansharpening)
"""

from .gs import GramSchmidtPansharpening, gs, gs_coefficient

__all__ = [
    'GramSchmidtPansharpening',
    'gs',
    'gs_coefficient'
]
