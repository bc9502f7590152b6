from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Any, ClassVar, Dict, List, Optional, Sequence, Tuple, Type

from attrs import define, field, frozen
from prometheus_client import Summary

from fix_provider_aws.aws_client import AwsClient
from fix_provider_aws.errors import (
    CreateError,
    DeleteError,
    NotFoundError,
    PostCreateNotFoundError,
    ProviderError,
    ReadError,
    TransientError,
    UpdateError,
    UpdateNotSupportedError,
    ValidationError,
)
from fix_provider_aws.finder import AwsApiSpec
from fix_provider_aws.identifier import ResourceIdCodec
from fix_provider_aws.json import to_json
from fix_provider_aws.schema import AttributeSchema, parse_config, schema_of
from fix_provider_aws.status import StatusPoller
from fix_provider_aws.types import Json

log = logging.getLogger("fix.provider.aws")

metrics_operation = Summary(
    "fix_provider_aws_operation_seconds", "Time it took to run a resource lifecycle operation", ["type", "operation"]
)

DefaultTimeout = timedelta(minutes=20)


@define(slots=False)
class ResourceState:
    """
    Working copy of the desired and observed attributes of a single resource.
    An empty id means: the resource does not exist (anymore).
    """

    id: str = ""
    attributes: Json = field(factory=dict)
    is_new_resource: bool = False

    @property
    def exists(self) -> bool:
        return bool(self.id)

    def set_id(self, identifier: str) -> None:
        self.id = identifier

    def clear(self) -> None:
        self.id = ""
        self.attributes = {}
        self.is_new_resource = False


@frozen
class Timeouts:
    create: Optional[timedelta] = None
    read: Optional[timedelta] = None
    update: Optional[timedelta] = None
    delete: Optional[timedelta] = None


def _annotate(e: ProviderError, operation: str, resource_id: Optional[str]) -> ProviderError:
    e.operation = e.operation or operation
    e.resource_id = e.resource_id or resource_id or None
    return e


class AwsResourceAdapter(ABC):
    """
    Base class of all resource adapters.

    Subclasses define the type name, the config class (the attribute schema) and implement
    do_create, do_read and do_delete. The public lifecycle methods take care of validation,
    the not-found conventions and error reporting.
    """

    # Terraform style type name of the resource. Needs to be globally unique.
    type_name: ClassVar[str] = "aws_resource"
    # Human readable name used in messages.
    display_name: ClassVar[str] = "AWS Resource"
    # The boto3 service name.
    service: ClassVar[str] = ""
    # attrs class that defines the attribute schema.
    config_class: ClassVar[Type[Any]]
    # Codec of the resource identifier, if the identifier is composite.
    id_codec: ClassVar[Optional[ResourceIdCodec]] = None
    # Default timeouts of the lifecycle operations.
    timeouts: ClassVar[Timeouts] = Timeouts()

    def __init__(self, client: AwsClient) -> None:
        self.client = client

    @classmethod
    def schema(cls) -> Dict[str, AttributeSchema]:
        return schema_of(cls.config_class)

    @classmethod
    def called_apis(cls) -> List[AwsApiSpec]:
        return []

    @classmethod
    def updatable(cls) -> bool:
        return any(not a.force_new and not a.computed for a in cls.schema().values())

    def timeout(self, operation: str) -> timedelta:
        default = getattr(self.timeouts, operation, None) or DefaultTimeout
        return self.client.config.timeout_for(self.type_name, operation, default)

    def poll_settings(self) -> Dict[str, Any]:
        config = self.client.config
        return dict(
            poll_interval=config.poll_interval_delta(),
            max_poll_interval=config.max_poll_interval_delta(),
            not_found_checks=config.not_found_checks,
        )

    def poller(
        self, operation: str, pending: Sequence[str], target: Sequence[str], **kwargs: Any
    ) -> StatusPoller:
        args: Dict[str, Any] = dict(name=self.display_name, **self.poll_settings())
        args.update(kwargs)
        return StatusPoller(pending=pending, target=target, timeout=self.timeout(operation), **args)

    def parse_id(self, identifier: str) -> Tuple[str, ...]:
        return self.id_codec.decode(identifier) if self.id_codec else (identifier,)

    # ----------------------------------------------------------------
    # Implemented by every resource
    # ----------------------------------------------------------------

    @abstractmethod
    def do_create(self, config: Any, state: ResourceState) -> None:
        """Issue the remote create call and set the identifier of the state."""

    @abstractmethod
    def do_read(self, state: ResourceState) -> Json:
        """Find the remote entity and return its attributes. Raises NotFoundError if absent."""

    @abstractmethod
    def do_delete(self, state: ResourceState) -> None:
        """Issue the remote delete call (and wait for it, if it is asynchronous)."""

    def do_update(self, config: Any, state: ResourceState, changed: List[str]) -> None:
        raise UpdateNotSupportedError(self.type_name)

    # ----------------------------------------------------------------
    # Lifecycle entry points
    # ----------------------------------------------------------------

    def parse(self, desired: Json, operation: str) -> Any:
        try:
            return parse_config(desired, self.config_class)
        except ValidationError as e:
            raise _annotate(e, operation, None)

    def create(self, desired: Json) -> ResourceState:
        operation = f"creating {self.display_name}"
        config = self.parse(desired, operation)
        state = ResourceState(attributes=to_json(config, strip_nulls=True))
        with metrics_operation.labels(self.type_name, "create").time():
            try:
                self.do_create(config, state)
            except (TransientError, NotFoundError) as e:
                raise CreateError(e.message, operation=operation, resource_id=state.id or None) from e
            except ProviderError as e:
                raise _annotate(e, operation, state.id)
        log.info(f"Created {self.display_name} ({state.id})")
        state.is_new_resource = True
        return self.read(state)

    def read(self, state: ResourceState) -> ResourceState:
        operation = f"reading {self.display_name}"
        with metrics_operation.labels(self.type_name, "read").time():
            try:
                attributes = self.do_read(state)
            except NotFoundError:
                if state.is_new_resource:
                    raise PostCreateNotFoundError(self.display_name, state.id)
                log.warning(f"{self.display_name} ({state.id}) not found, removing from state")
                state.clear()
                return state
            except TransientError as e:
                raise ReadError(e.message, operation=operation, resource_id=state.id) from e
            except ProviderError as e:
                raise _annotate(e, operation, state.id)
        state.attributes = attributes
        state.is_new_resource = False
        return state

    def update(self, state: ResourceState, desired: Json) -> ResourceState:
        operation = f"updating {self.display_name}"
        config = self.parse(desired, operation)
        normalized = to_json(config)
        replace = self._replacements(state, normalized)
        if replace:
            raise ValidationError(
                f"changing {', '.join(replace)} requires a new resource", operation=operation, resource_id=state.id
            )
        changed = self._changes(state, normalized)
        if changed:
            with metrics_operation.labels(self.type_name, "update").time():
                try:
                    self.do_update(config, state, changed)
                except (TransientError, NotFoundError) as e:
                    raise UpdateError(e.message, operation=operation, resource_id=state.id) from e
                except ProviderError as e:
                    raise _annotate(e, operation, state.id)
            log.info(f"Updated {self.display_name} ({state.id}): {', '.join(changed)}")
        return self.read(state)

    def delete(self, state: ResourceState) -> ResourceState:
        operation = f"deleting {self.display_name}"
        if not state.exists:
            log.debug(f"{self.display_name} has no identifier: nothing to delete")
            return state
        log.debug(f"Deleting {self.display_name}: {state.id}")
        with metrics_operation.labels(self.type_name, "delete").time():
            try:
                self.do_delete(state)
            except NotFoundError:
                log.debug(f"{self.display_name} ({state.id}) already deleted")
            except TransientError as e:
                raise DeleteError(e.message, operation=operation, resource_id=state.id) from e
            except ProviderError as e:
                raise _annotate(e, operation, state.id)
        state.clear()
        return state

    def import_state(self, identifier: str) -> ResourceState:
        operation = f"importing {self.display_name}"
        try:
            self.parse_id(identifier)
        except ValidationError as e:
            raise _annotate(e, operation, identifier)
        state = self.read(ResourceState(id=identifier))
        if not state.exists:
            raise NotFoundError(f"cannot import non-existent remote object {identifier}")
        return state

    # ----------------------------------------------------------------
    # Plan helpers
    # ----------------------------------------------------------------

    def _changes(self, state: ResourceState, normalized: Json) -> List[str]:
        return [
            name
            for name, attr in self.schema().items()
            if not attr.computed and normalized.get(name) != state.attributes.get(name)
        ]

    def _replacements(self, state: ResourceState, normalized: Json) -> List[str]:
        schema = self.schema()
        return [name for name in self._changes(state, normalized) if schema[name].force_new]

    def changed_attributes(self, state: ResourceState, desired: Json) -> List[str]:
        """Names of all configurable attributes where desired and current state differ."""
        return self._changes(state, to_json(self.parse(desired, f"planning {self.display_name}")))

    def requires_replacement(self, state: ResourceState, desired: Json) -> List[str]:
        """Names of changed attributes that can not be updated in place."""
        return self._replacements(state, to_json(self.parse(desired, f"planning {self.display_name}")))


class AwsDataSource(ABC):
    """
    Read only counterpart of a resource: looks up an existing entity by its arguments.
    """

    type_name: ClassVar[str] = "aws_data_source"
    display_name: ClassVar[str] = "AWS Data Source"
    service: ClassVar[str] = ""
    config_class: ClassVar[Type[Any]]

    def __init__(self, client: AwsClient) -> None:
        self.client = client

    @classmethod
    def schema(cls) -> Dict[str, AttributeSchema]:
        return schema_of(cls.config_class)

    @classmethod
    def called_apis(cls) -> List[AwsApiSpec]:
        return []

    @abstractmethod
    def do_read(self, config: Any) -> Json:
        pass

    def read(self, arguments: Json) -> Json:
        operation = f"reading {self.display_name} data source"
        config = parse_config_annotated(arguments, self.config_class, operation)
        with metrics_operation.labels(self.type_name, "read").time():
            try:
                return self.do_read(config)
            except TransientError as e:
                raise ReadError(e.message, operation=operation) from e
            except ProviderError as e:
                raise _annotate(e, operation, None)


def parse_config_annotated(js: Json, clazz: Type[Any], operation: str) -> Any:
    try:
        return parse_config(js, clazz)
    except ValidationError as e:
        raise _annotate(e, operation, None)


@frozen
class ResourceRegistration:
    factory: Type[AwsResourceAdapter]
    type_name: str
    name: str


@frozen
class DataSourceRegistration:
    factory: Type[AwsDataSource]
    type_name: str
    name: str


@frozen
class ServicePackage:
    """
    Registration manifest of all resources and data sources of one AWS service.
    """

    name: str
    resources: Tuple[ResourceRegistration, ...] = field(default=(), converter=tuple)
    data_sources: Tuple[DataSourceRegistration, ...] = field(default=(), converter=tuple)
