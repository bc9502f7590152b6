from typing import Any, Callable, Dict, Mapping, Sequence, TypeVar, Union

# mypy does not support recursive type definitions
Json = Dict[str, Any]
JsonElement = Union[str, int, float, bool, None, Mapping[str, Any], Sequence[Any]]
DecoratedFn = TypeVar("DecoratedFn", bound=Callable[..., Any])
