"""
Declarative attribute schema of resources and data sources.

The schema of a resource is an attrs class: every attribute is declared with `attribute()`,
which stores the schema flags (required, computed, force_new, ...) in the field metadata.
Desired configuration is validated once at the boundary with `parse_config()`,
the adapters only work with the typed instance afterwards.
"""

from typing import (
    Any,
    Callable,
    Dict,
    FrozenSet,
    List,
    Optional,
    Set,
    Tuple,
    Type,
    TypeVar,
    Union,
    get_args,
    get_origin,
)

import attrs
import cattrs
from attrs import NOTHING, frozen

from fix_provider_aws.errors import ValidationError
from fix_provider_aws.json import from_json
from fix_provider_aws.types import Json
from fix_provider_aws.utils import is_arn

T = TypeVar("T")


@frozen
class AttributeSchema:
    name: str
    type: str
    required: bool = False
    optional: bool = False
    computed: bool = False
    force_new: bool = False
    description: Optional[str] = None
    min_items: Optional[int] = None
    max_items: Optional[int] = None
    elem: Optional[Dict[str, "AttributeSchema"]] = None

    def to_json(self) -> Json:
        result: Json = {
            "type": self.type,
            "required": self.required,
            "optional": self.optional,
            "computed": self.computed,
            "force_new": self.force_new,
        }
        if self.description:
            result["description"] = self.description
        if self.min_items is not None:
            result["min_items"] = self.min_items
        if self.max_items is not None:
            result["max_items"] = self.max_items
        if self.elem:
            result["elem"] = {name: elem.to_json() for name, elem in self.elem.items()}
        return result


def attribute(
    *,
    required: bool = False,
    computed: bool = False,
    force_new: bool = False,
    description: Optional[str] = None,
    default: Any = None,
    factory: Optional[Callable[[], Any]] = None,
    validator: Optional[Callable[[Any, Any, Any], Any]] = None,
    converter: Optional[Callable[[Any], Any]] = None,
    min_items: Optional[int] = None,
    max_items: Optional[int] = None,
) -> Any:
    metadata = {
        "required": required,
        "optional": not required and not computed,
        "computed": computed,
        "force_new": force_new,
        "description": description,
        "min_items": min_items,
        "max_items": max_items,
    }
    if required:
        return attrs.field(validator=validator, converter=converter, metadata=metadata)
    if factory is not None:
        return attrs.field(factory=factory, validator=validator, converter=converter, metadata=metadata)
    return attrs.field(default=default, validator=validator, converter=converter, metadata=metadata)


def arn_validator(instance: Any, attribute: "attrs.Attribute[Any]", value: Any) -> None:
    if not is_arn(value):
        raise ValueError(f"{attribute.name}: invalid ARN: {value}")


def optional_arn_validator(instance: Any, attribute: "attrs.Attribute[Any]", value: Any) -> None:
    if value is not None:
        arn_validator(instance, attribute, value)


def items_validator(instance: Any, attribute: "attrs.Attribute[Any]", value: Any) -> None:
    min_items = attribute.metadata.get("min_items")
    max_items = attribute.metadata.get("max_items")
    if min_items is not None and len(value) < min_items:
        raise ValueError(f"{attribute.name}: expected at least {min_items} items, got {len(value)}")
    if max_items is not None and len(value) > max_items:
        raise ValueError(f"{attribute.name}: expected at most {max_items} items, got {len(value)}")


def sorted_set(value: Any) -> List[str]:
    # set semantics: unordered and deduplicated
    return sorted(set(value or []))


def _type_name(tpe: Any) -> Tuple[str, Optional[Type[Any]]]:
    origin = get_origin(tpe)
    if origin is Union:
        args = [a for a in get_args(tpe) if a is not type(None)]
        return _type_name(args[0]) if len(args) == 1 else ("any", None)
    if origin in (list, List):
        (elem,) = get_args(tpe) or (Any,)
        return "list", elem if attrs.has(elem) else None
    if origin in (set, frozenset, Set, FrozenSet):
        return "set", None
    if origin in (dict, Dict):
        return "map", None
    if attrs.has(tpe):
        return "object", tpe
    return {str: "string", bool: "bool", int: "int", float: "number"}.get(tpe, "any"), None


def schema_of(clazz: Type[Any]) -> Dict[str, AttributeSchema]:
    attrs.resolve_types(clazz)
    result: Dict[str, AttributeSchema] = {}
    for fld in attrs.fields(clazz):
        if fld.name.startswith("_"):
            continue
        meta = fld.metadata
        type_name, elem_class = _type_name(fld.type)
        # sets are declared as list with the sorted_set converter
        if type_name == "list" and fld.converter is sorted_set:
            type_name = "set"
        result[fld.name] = AttributeSchema(
            name=fld.name,
            type=type_name,
            required=meta.get("required", False),
            optional=meta.get("optional", fld.default is not NOTHING),
            computed=meta.get("computed", False),
            force_new=meta.get("force_new", False),
            description=meta.get("description"),
            min_items=meta.get("min_items"),
            max_items=meta.get("max_items"),
            elem=schema_of(elem_class) if elem_class is not None else None,
        )
    return result


def _error_messages(e: BaseException) -> List[str]:
    if isinstance(e, cattrs.BaseValidationError):
        return [msg for sub in e.exceptions for msg in _error_messages(sub)]
    elif isinstance(e, KeyError):
        return [f"missing required argument: {e.args[0]}"]
    return [str(e)]


def parse_config(js: Json, clazz: Type[T]) -> T:
    """
    Validate the desired configuration and load it into the typed config class.
    :raises ValidationError: if required attributes are missing, unknown or computed attributes are set
                             or any attribute has an invalid value.
    """
    if not isinstance(js, dict):
        raise ValidationError(f"expected a json object as configuration, got: {js}")
    schema = schema_of(clazz)
    problems: List[str] = []
    for name in js:
        if name not in schema:
            problems.append(f"unsupported argument: {name}")
        elif schema[name].computed and js[name] is not None:
            problems.append(f"{name} is computed and can not be configured")
    for name, attr in schema.items():
        if attr.required and js.get(name) is None:
            problems.append(f"missing required argument: {name}")
    if problems:
        raise ValidationError(", ".join(problems))
    try:
        return from_json({k: v for k, v in js.items() if v is not None}, clazz)
    except cattrs.BaseValidationError as e:
        raise ValidationError(", ".join(_error_messages(e))) from e
    except (ValueError, TypeError) as e:
        raise ValidationError(str(e)) from e
