from __future__ import annotations

from abc import ABC
from typing import Any, Callable, Dict, Optional, Union


# General idea is taken from: https://github.com/Onyo/jsonbender
class Bender(ABC):
    """
    Base bending class. A bender transforms a source json element into a target value.
    Benders are composed with `>>`: the result of the left side is the source of the right side.
    """

    def __call__(self, source: Any) -> Any:
        return self.execute(source)

    def execute(self, source: Any) -> Any:
        return source

    def or_else(self, other: Bender) -> Bender:
        return OrElse(self, other)

    def __rshift__(self, other: Mapping) -> Bender:
        return Compose(self, other if isinstance(other, Bender) else Bend(other))


Mapping = Union[Bender, Dict[str, Bender]]


class BendingError(Exception):
    pass


class S(Bender):
    """
    Retrieve a value from a JSON object under given path.
    """

    def __init__(self, *path: Union[str, int], default: Optional[Any] = None):
        if not path:
            raise ValueError("No path given")
        self._path = path
        self._default = default

    def execute(self, source: Any) -> Any:
        try:
            for key in self._path:
                source = source[key]
            return self._default if source is None else source
        except (KeyError, TypeError, IndexError):
            return self._default


class K(Bender):
    """
    Selects a constant value.
    """

    def __init__(self, value: Any):
        self._val = value

    def execute(self, source: Any) -> Any:
        return self._val


class F(Bender):
    """
    Lifts a python callable into a Bender, so it can be composed.
    Extra parameters are passed to the function after the bended value.
    """

    def __init__(self, func: Callable[..., Any], *args: Any, **kwargs: Any):
        self._func = func
        self._args = args
        self._kwargs = kwargs

    def execute(self, value: Any) -> Any:
        return self._func(value, *self._args, **self._kwargs)


class OrElse(Bender):
    def __init__(self, source_bender: Bender, else_bender: Bender):
        self.source_bender = source_bender
        self.else_bender = else_bender

    def execute(self, source: Any) -> Any:
        first = self.source_bender.execute(source)
        return first if first is not None else self.else_bender.execute(source)


class Compose(Bender):
    """
    Compose two benders. Use `>>` instead of calling `Compose` directly.
    A None result of the first bender is not handed to the second one.
    """

    def __init__(self, first: Bender, second: Bender):
        self._first = first
        self._second = second

    def execute(self, source: Any) -> Any:
        first = self._first.execute(source)
        return self._second.execute(first) if first is not None else None


class Bend(Bender):
    """
    Apply a mapping of target property to bender on the source element.
    """

    def __init__(self, mapping: Dict[str, Bender]):
        self._mapping = mapping

    def execute(self, source: Any) -> Any:
        return bend(self._mapping, source)


class ForallBend(Bender):
    """
    Apply the given mapping to all elements of a list.
    """

    def __init__(self, mapping: Mapping):
        self._bender = mapping if isinstance(mapping, Bender) else Bend(mapping)

    def execute(self, source: Any) -> Any:
        if source is None:
            return []
        if not isinstance(source, (list, tuple, set, frozenset)):
            raise BendingError(f"Expected a list but got {type(source).__name__}: {source}")
        return [self._bender.execute(elem) for elem in source]


def bend(mapping: Mapping, source: Any) -> Any:
    if isinstance(mapping, Bender):
        return mapping.execute(source)
    elif isinstance(mapping, dict):
        result: Dict[str, Any] = {}
        for name, bender in mapping.items():
            try:
                result[name] = bend(bender, source)
            except Exception as e:
                raise BendingError(f"Error in property {name}: {e}") from e
        return result
    raise BendingError(f"Can not bend with mapping of type {type(mapping).__name__}")
