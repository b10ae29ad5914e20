"""
Иерархия исключений пакета паншарпенинга

    PansharpError                    <- базовое исключение
    ├── InvalidInputError            <- неверные входные данные (каналы, имена, параметры)
    └── NumericFailureError          <- вырожденные матрицы, нулевая дисперсия
"""


class PansharpError(Exception):
    """Базовое исключение пакета"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


class InvalidInputError(PansharpError, ValueError):
    """
    Неверные входные данные: число каналов PAN != 1, несовпадение имен каналов,
    индекс главной компоненты вне диапазона, неизвестное имя метода или метрики
    """


class NumericFailureError(PansharpError, ArithmeticError):
    """
    Численный сбой: вырожденная ковариационная матрица, нулевая дисперсия
    в знаменателе статистики
    """
