from datetime import datetime, timedelta
from typing import Any, Callable, List, Optional, Type, TypeVar, Union

import cattrs
from dateutil.parser import isoparse

from fix_provider_aws.durations import duration_str, parse_duration
from fix_provider_aws.logger import log
from fix_provider_aws.types import Json, JsonElement
from fix_provider_aws.utils import utc_str

AnyT = TypeVar("AnyT")

# the global converter instance
__converter = cattrs.Converter()


def register_json(
    cls: Type[AnyT],
    to_json_fn: Optional[Callable[[AnyT], JsonElement]] = None,
    from_json_fn: Optional[Callable[[Any], AnyT]] = None,
) -> None:
    """
    Register a json marshaller/unmarshaller for the given class.
    """
    if from_json_fn is not None:
        __converter.register_structure_hook(cls, lambda obj, _: from_json_fn(obj))
    if to_json_fn is not None:
        __converter.register_unstructure_hook(cls, to_json_fn)


def _datetime_from_json(js: Any) -> datetime:
    if isinstance(js, datetime):
        return js
    return isoparse(js)


# allow timedelta either as number of seconds or as duration string
def _timedelta_from_json(js: Any) -> timedelta:
    if isinstance(js, timedelta):
        return js
    elif isinstance(js, (str, int, float)):
        return parse_duration(js)
    raise ValueError(f"Cannot convert {js} to timedelta")


register_json(datetime, utc_str, _datetime_from_json)
register_json(timedelta, duration_str, _timedelta_from_json)


def to_json(node: Any, strip_nulls: bool = False) -> Json:
    """
    Use this method, if the given node is known as complex object,
    so the result will be a json object.
    """
    unstructured: Json = __converter.unstructure(node)
    if strip_nulls:
        return {k: v for k, v in unstructured.items() if v is not None}
    return unstructured


def from_json(js: JsonElement, clazz: Type[AnyT]) -> AnyT:
    """
    Loads a json object into a python object.
    :param js: the json object to load.
    :param clazz: the type of the python object.
    :return: the loaded python object.
    """
    try:
        return __converter.structure(js, clazz)
    except Exception as e:
        log.debug(f"Can not deserialize json into class {clazz.__name__}: {js}. Error: {e}")
        raise


def value_in_path(element: JsonElement, path_or_name: Union[List[str], str]) -> Optional[Any]:
    """
    Access a value in a json object by a defined path.
    {"a": {"b": {"c": 1}}} -> value_in_path({"a": {"b": {"c": 1}}}, ["a", "b", "c"]) -> 1
    The path can be defined as a list of strings or as a string with dots as separator.
    """
    path = path_or_name if isinstance(path_or_name, list) else path_or_name.split(".")
    current: Any = element
    for name in path:
        if not isinstance(current, dict) or name not in current:
            return None
        current = current[name]
    return current
