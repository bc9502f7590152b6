import logging
from typing import Any, Callable, Dict, List, Optional

from attrs import define

from fix_provider_aws.aws_client import AwsClient
from fix_provider_aws.errors import NotFoundError
from fix_provider_aws.types import Json

log = logging.getLogger("fix.provider.aws")


@define
class AwsApiSpec:
    """
    Specifications for the AWS API to call and the expected response.
    """

    service: str
    api_action: str
    result_property: Optional[str] = None
    parameter: Optional[Dict[str, Any]] = None
    expected_errors: Optional[List[str]] = None
    # service specific error codes that signal the absence of the entity
    not_found_errors: Optional[List[str]] = None
    override_iam_permission: Optional[str] = None  # only set if the permission can not be derived

    def iam_permission(self) -> str:
        if self.override_iam_permission:
            return self.override_iam_permission
        action = "".join(word.title() for word in self.api_action.split("-"))
        return f"{self.service}:{action}"

    def last_request(self, **kwargs: Any) -> Json:
        return {"service": self.service, "action": self.api_action, "args": {**(self.parameter or {}), **kwargs}}


def call_spec(client: AwsClient, spec: AwsApiSpec, **kwargs: Any) -> Any:
    return client.call(
        aws_service=spec.service,
        action=spec.api_action,
        result_name=spec.result_property,
        expected_errors=spec.expected_errors,
        not_found_errors=spec.not_found_errors,
        **{**(spec.parameter or {}), **kwargs},
    )


def find_first(client: AwsClient, spec: AwsApiSpec, predicate: Callable[[Json], bool], **kwargs: Any) -> Json:
    """
    Issue a single list request and return the first element that satisfies the predicate.
    Used for APIs without a point lookup.

    :raises NotFoundError: if the API signals absence, the result is empty or nothing matches.
    :raises TransientError: on any other API error.
    """
    result = call_spec(client, spec, **kwargs)
    if result is None:
        raise NotFoundError("Empty result", spec.last_request(**kwargs))
    items = result if isinstance(result, list) else [result]
    if not items:
        raise NotFoundError("Empty result", spec.last_request(**kwargs))
    for item in items:
        if predicate(item):
            return item  # type: ignore
    raise NotFoundError("No matching element in result", spec.last_request(**kwargs))


def find_single(client: AwsClient, spec: AwsApiSpec, **kwargs: Any) -> Json:
    """
    Issue a single get/describe request and return the only element of the result.

    :raises NotFoundError: if the API signals absence or the result is empty.
    :raises TransientError: on any other API error.
    """
    result = call_spec(client, spec, **kwargs)
    if isinstance(result, list):
        if len(result) > 1:
            log.warning(f"Expected a single result from {spec.service} {spec.api_action}, got {len(result)}")
        result = result[0] if result else None
    if not result:
        raise NotFoundError("Empty result", spec.last_request(**kwargs))
    return result  # type: ignore
