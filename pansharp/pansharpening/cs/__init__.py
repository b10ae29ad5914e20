"""
Модуль методов паншарпенинга на основе Component Substitution (CS)

Включает:
- Метод Brovey (BroveyPansharpening)
- Метод простого среднего (SimpleMeanPansharpening)
- Метод IHS (IHSPansharpening)
- Метод главных компонент (PCAPansharpening)
"""

from .brovey import BroveyPansharpening, brovey
from .simple_mean import SimpleMeanPansharpening, simple_mean
from .ihs import IHSPansharpening, ihs
from .pca import PCAPansharpening, pca, principal_components

__all__ = [
    'BroveyPansharpening',
    'SimpleMeanPansharpening',
    'IHSPansharpening',
    'PCAPansharpening',
    'brovey',
    'simple_mean',
    'ihs',
    'pca',
    'principal_components'
]
