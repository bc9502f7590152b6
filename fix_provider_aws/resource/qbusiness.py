"""
Amazon Q Business: finders and status pollers for applications, indices and retrievers
and the application resource.

Indices and retrievers belong to an application. They are addressed with the composite
identifier `<application_id>,<index_id>` and `<application_id>,<retriever_id>`.
"""

import logging
from datetime import timedelta
from typing import Any, ClassVar, Dict, List, Optional

from attrs import define

from fix_provider_aws.aws_client import AwsClient
from fix_provider_aws.finder import AwsApiSpec, call_spec, find_single
from fix_provider_aws.identifier import ResourceIdCodec
from fix_provider_aws.json_bender import Bender, S, bend
from fix_provider_aws.resource.base import (
    AwsResourceAdapter,
    ResourceRegistration,
    ResourceState,
    ServicePackage,
    Timeouts,
)
from fix_provider_aws.schema import attribute, optional_arn_validator
from fix_provider_aws.status import StateRefresh, status_from_finder, wait_for_state
from fix_provider_aws.types import Json

log = logging.getLogger("fix.provider.aws")

service_name = "qbusiness"

# status domain shared by applications, indices and retrievers
StatusCreating = "CREATING"
StatusActive = "ACTIVE"
StatusDeleting = "DELETING"
StatusFailed = "FAILED"
StatusUpdating = "UPDATING"

ChildIdCodec = ResourceIdCodec(2)

GetApplication = AwsApiSpec(service_name, "get-application")
GetIndex = AwsApiSpec(service_name, "get-index")
GetRetriever = AwsApiSpec(service_name, "get-retriever")


def find_app_by_id(client: AwsClient, app_id: str) -> Json:
    return find_single(client, GetApplication, applicationId=app_id)


def find_index_by_id(client: AwsClient, index_id: str) -> Json:
    app_id, idx_id = ChildIdCodec.decode(index_id)
    return find_single(client, GetIndex, applicationId=app_id, indexId=idx_id)


def find_retriever_by_id(client: AwsClient, retriever_id: str) -> Json:
    app_id, ret_id = ChildIdCodec.decode(retriever_id)
    return find_single(client, GetRetriever, applicationId=app_id, retrieverId=ret_id)


def _status(entity: Json) -> Optional[str]:
    return entity.get("status")  # type: ignore


def error_reason(entity: Json) -> Optional[str]:
    error = entity.get("error") or {}
    if message := error.get("errorMessage"):
        code = error.get("errorCode")
        return f"{code}: {message}" if code else message  # type: ignore
    return None


def status_app_availability(client: AwsClient, app_id: str) -> StateRefresh:
    return status_from_finder(lambda: find_app_by_id(client, app_id), _status)


def status_index_availability(client: AwsClient, index_id: str) -> StateRefresh:
    return status_from_finder(lambda: find_index_by_id(client, index_id), _status)


def status_retriever_availability(client: AwsClient, retriever_id: str) -> StateRefresh:
    return status_from_finder(lambda: find_retriever_by_id(client, retriever_id), _status)


def wait_app_created(client: AwsClient, app_id: str, timeout: timedelta, **kwargs: Any) -> Optional[Json]:
    return wait_for_state(
        status_app_availability(client, app_id),
        pending=[StatusCreating],
        target=[StatusActive],
        failed=[StatusFailed],
        timeout=timeout,
        reason_of=error_reason,
        name="Amazon Q Business application",
        **kwargs,
    )


def wait_app_updated(client: AwsClient, app_id: str, timeout: timedelta, **kwargs: Any) -> Optional[Json]:
    return wait_for_state(
        status_app_availability(client, app_id),
        pending=[StatusUpdating],
        target=[StatusActive],
        failed=[StatusFailed],
        timeout=timeout,
        reason_of=error_reason,
        name="Amazon Q Business application",
        **kwargs,
    )


def wait_app_deleted(client: AwsClient, app_id: str, timeout: timedelta, **kwargs: Any) -> None:
    wait_for_state(
        status_app_availability(client, app_id),
        pending=[StatusActive, StatusDeleting],
        target=[],
        failed=[StatusFailed],
        timeout=timeout,
        reason_of=error_reason,
        name="Amazon Q Business application",
        **kwargs,
    )


def wait_index_created(client: AwsClient, index_id: str, timeout: timedelta, **kwargs: Any) -> Optional[Json]:
    return wait_for_state(
        status_index_availability(client, index_id),
        pending=[StatusCreating, StatusUpdating],
        target=[StatusActive],
        failed=[StatusFailed],
        timeout=timeout,
        reason_of=error_reason,
        name="Amazon Q Business index",
        **kwargs,
    )


def wait_index_deleted(client: AwsClient, index_id: str, timeout: timedelta, **kwargs: Any) -> None:
    wait_for_state(
        status_index_availability(client, index_id),
        pending=[StatusActive, StatusDeleting],
        target=[],
        failed=[StatusFailed],
        timeout=timeout,
        reason_of=error_reason,
        name="Amazon Q Business index",
        **kwargs,
    )


def wait_retriever_created(client: AwsClient, retriever_id: str, timeout: timedelta, **kwargs: Any) -> Optional[Json]:
    return wait_for_state(
        status_retriever_availability(client, retriever_id),
        pending=[StatusCreating],
        target=[StatusActive],
        failed=[StatusFailed],
        timeout=timeout,
        name="Amazon Q Business retriever",
        **kwargs,
    )


def wait_retriever_deleted(client: AwsClient, retriever_id: str, timeout: timedelta, **kwargs: Any) -> None:
    wait_for_state(
        status_retriever_availability(client, retriever_id),
        pending=[StatusActive, StatusDeleting],
        target=[],
        failed=[StatusFailed],
        timeout=timeout,
        name="Amazon Q Business retriever",
        **kwargs,
    )


@define(slots=False)
class AwsQBusinessAppConfig:
    display_name: str = attribute(required=True, description="Name of the application.")
    description: Optional[str] = attribute(description="Description of the application.")
    role_arn: Optional[str] = attribute(
        validator=optional_arn_validator,
        description="IAM role with permissions to access Amazon CloudWatch logs and metrics.",
    )
    identity_center_instance_arn: Optional[str] = attribute(
        force_new=True,
        validator=optional_arn_validator,
        description="IAM Identity Center instance the application is connected to.",
    )
    arn: Optional[str] = attribute(computed=True, description="ARN of the application.")
    status: Optional[str] = attribute(computed=True, description="Status of the application.")
    created_at: Optional[str] = attribute(computed=True)
    updated_at: Optional[str] = attribute(computed=True)


class AwsQBusinessApp(AwsResourceAdapter):
    type_name: ClassVar[str] = "aws_qbusiness_app"
    display_name: ClassVar[str] = "Amazon Q Business Application"
    service: ClassVar[str] = service_name
    config_class: ClassVar[Any] = AwsQBusinessAppConfig
    timeouts: ClassVar[Timeouts] = Timeouts(
        create=timedelta(minutes=30), update=timedelta(minutes=30), delete=timedelta(minutes=40)
    )
    mapping: ClassVar[Dict[str, Bender]] = {
        "display_name": S("displayName"),
        "description": S("description"),
        "role_arn": S("roleArn"),
        "arn": S("applicationArn"),
        "status": S("status"),
        "created_at": S("createdAt"),
        "updated_at": S("updatedAt"),
    }
    api_create: ClassVar[AwsApiSpec] = AwsApiSpec(service_name, "create-application")
    api_update: ClassVar[AwsApiSpec] = AwsApiSpec(service_name, "update-application")
    api_delete: ClassVar[AwsApiSpec] = AwsApiSpec(service_name, "delete-application")

    @classmethod
    def called_apis(cls) -> List[AwsApiSpec]:
        return [cls.api_create, GetApplication, cls.api_update, cls.api_delete]

    def do_create(self, config: AwsQBusinessAppConfig, state: ResourceState) -> None:
        args = {
            "displayName": config.display_name,
            "description": config.description,
            "roleArn": config.role_arn,
            "identityCenterInstanceArn": config.identity_center_instance_arn,
        }
        result = call_spec(self.client, self.api_create, **{k: v for k, v in args.items() if v is not None})
        state.set_id(result["applicationId"])
        wait_app_created(self.client, state.id, self.timeout("create"), **self.poll_settings())

    def do_read(self, state: ResourceState) -> Json:
        app = find_app_by_id(self.client, state.id)
        attributes: Json = bend(self.mapping, app)
        # get-application only reports the identity center application, not the instance
        attributes["identity_center_instance_arn"] = state.attributes.get("identity_center_instance_arn")
        return attributes

    def do_update(self, config: AwsQBusinessAppConfig, state: ResourceState, changed: List[str]) -> None:
        args = {"applicationId": state.id, "displayName": config.display_name}
        if config.description is not None:
            args["description"] = config.description
        if config.role_arn is not None:
            args["roleArn"] = config.role_arn
        call_spec(self.client, self.api_update, **args)
        wait_app_updated(self.client, state.id, self.timeout("update"), **self.poll_settings())

    def do_delete(self, state: ResourceState) -> None:
        call_spec(self.client, self.api_delete, applicationId=state.id)
        wait_app_deleted(self.client, state.id, self.timeout("delete"), **self.poll_settings())


service_package = ServicePackage(
    name=service_name,
    resources=[ResourceRegistration(AwsQBusinessApp, AwsQBusinessApp.type_name, "Application")],
)
