import logging
import re
from datetime import timedelta
from typing import Any, ClassVar, Dict, List, Optional, Sequence, Union

import attrs
from attrs import define

from fix_provider_aws.aws_client import AwsClient
from fix_provider_aws.finder import AwsApiSpec, call_spec, find_first
from fix_provider_aws.identifier import ResourceIdCodec
from fix_provider_aws.json_bender import Bender, F, S, bend
from fix_provider_aws.resource.base import (
    AwsResourceAdapter,
    ResourceRegistration,
    ResourceState,
    ServicePackage,
    Timeouts,
)
from fix_provider_aws.schema import arn_validator, attribute, items_validator, sorted_set
from fix_provider_aws.types import Json

log = logging.getLogger("fix.provider.aws")

service_name = "eks"

ClusterNameRe = re.compile(r"^[0-9A-Za-z][A-Za-z0-9\-_]*$")
AccessScopeTypes = ("cluster", "namespace")


def cluster_name_validator(instance: Any, attribute: "attrs.Attribute[Any]", value: Any) -> None:
    if not (1 <= len(value) <= 100):
        raise ValueError(f"{attribute.name}: must be between 1 and 100 characters, got: {value}")
    if not ClusterNameRe.match(value):
        raise ValueError(
            f"{attribute.name}: must start with a letter or digit and contain only letters, digits, - and _: {value}"
        )


@define(slots=False)
class AwsEksAccessScope:
    mapping: ClassVar[Dict[str, Bender]] = {
        "type": S("type"),
        "namespaces": S("namespaces", default=[]) >> F(sorted_set),
    }
    type: str = attribute(
        required=True,
        force_new=True,
        validator=attrs.validators.in_(AccessScopeTypes),
        description="Scope of the policy: cluster or namespace.",
    )
    namespaces: List[str] = attribute(
        force_new=True,
        factory=list,
        converter=sorted_set,
        description="Kubernetes namespaces the policy is scoped to. Only used with type namespace.",
    )


@define(slots=False)
class AwsEksAccessPolicyAssociationConfig:
    cluster_name: str = attribute(
        required=True, force_new=True, validator=cluster_name_validator, description="Name of the EKS cluster."
    )
    principal_arn: str = attribute(
        required=True,
        force_new=True,
        validator=arn_validator,
        description="IAM principal (user or role) of the access entry.",
    )
    policy_arn: str = attribute(
        required=True, force_new=True, validator=arn_validator, description="ARN of the EKS access policy."
    )
    access_scope: List[AwsEksAccessScope] = attribute(
        required=True,
        force_new=True,
        validator=items_validator,
        min_items=1,
        max_items=1,
        description="Scope of the association.",
    )
    associated_at: Optional[str] = attribute(computed=True, description="Time the policy was associated.")
    modified_at: Optional[str] = attribute(computed=True, description="Time the association was last modified.")


def expand_access_scope(scopes: Sequence[Union[AwsEksAccessScope, Json]]) -> Optional[Json]:
    """
    Attribute representation (list with at most one scope) to the wire representation.
    An empty list maps to None.
    """
    if not scopes:
        return None
    scope = scopes[0]
    if isinstance(scope, AwsEksAccessScope):
        scope_type, namespaces = scope.type, scope.namespaces
    else:
        scope_type, namespaces = scope.get("type"), scope.get("namespaces")
    result: Json = {}
    if scope_type:
        result["type"] = scope_type
    if namespaces is not None:
        result["namespaces"] = sorted_set(namespaces)
    return result


def flatten_access_scope(api_object: Optional[Json]) -> List[Json]:
    """
    Wire representation to the attribute representation.
    A missing scope maps to an empty list.
    """
    if not api_object:
        return []
    return [bend(AwsEksAccessScope.mapping, api_object)]


ListAssociatedAccessPolicies = AwsApiSpec(service_name, "list-associated-access-policies", "associatedAccessPolicies")


def find_access_policy_by_id(client: AwsClient, cluster_name: str, principal_arn: str, policy_arn: str) -> Json:
    """
    EKS has no point lookup for a single association: list all policies
    associated with the principal and filter by the policy ARN.
    """
    return find_first(
        client,
        ListAssociatedAccessPolicies,
        lambda p: p.get("policyArn") == policy_arn,
        clusterName=cluster_name,
        principalArn=principal_arn,
    )


class AwsEksAccessPolicyAssociation(AwsResourceAdapter):
    type_name: ClassVar[str] = "aws_eks_access_policy_association"
    display_name: ClassVar[str] = "EKS Access Policy Association"
    service: ClassVar[str] = service_name
    config_class: ClassVar[Any] = AwsEksAccessPolicyAssociationConfig
    # <cluster_name>:<principal_arn>:<policy_arn>
    id_codec: ClassVar[ResourceIdCodec] = ResourceIdCodec(3, ":")
    timeouts: ClassVar[Timeouts] = Timeouts(create=timedelta(minutes=10), delete=timedelta(minutes=10))
    mapping: ClassVar[Dict[str, Bender]] = {
        "access_scope": S("accessScope", default={}) >> F(flatten_access_scope),
        "associated_at": S("associatedAt"),
        "modified_at": S("modifiedAt"),
    }
    api_associate: ClassVar[AwsApiSpec] = AwsApiSpec(service_name, "associate-access-policy")
    api_disassociate: ClassVar[AwsApiSpec] = AwsApiSpec(service_name, "disassociate-access-policy")

    @classmethod
    def called_apis(cls) -> List[AwsApiSpec]:
        return [cls.api_associate, ListAssociatedAccessPolicies, cls.api_disassociate]

    def do_create(self, config: AwsEksAccessPolicyAssociationConfig, state: ResourceState) -> None:
        identifier = self.id_codec.encode(config.cluster_name, config.principal_arn, config.policy_arn)
        call_spec(
            self.client,
            self.api_associate,
            clusterName=config.cluster_name,
            principalArn=config.principal_arn,
            policyArn=config.policy_arn,
            accessScope=expand_access_scope(config.access_scope),
        )
        state.set_id(identifier)

    def do_read(self, state: ResourceState) -> Json:
        cluster_name, principal_arn, policy_arn = self.parse_id(state.id)
        policy = find_access_policy_by_id(self.client, cluster_name, principal_arn, policy_arn)
        return {
            "cluster_name": cluster_name,
            "principal_arn": principal_arn,
            "policy_arn": policy_arn,
            **bend(self.mapping, policy),
        }

    def do_delete(self, state: ResourceState) -> None:
        cluster_name, principal_arn, policy_arn = self.parse_id(state.id)
        call_spec(
            self.client,
            self.api_disassociate,
            clusterName=cluster_name,
            principalArn=principal_arn,
            policyArn=policy_arn,
        )


service_package = ServicePackage(
    name=service_name,
    resources=[
        ResourceRegistration(
            AwsEksAccessPolicyAssociation,
            AwsEksAccessPolicyAssociation.type_name,
            "Access Policy Association",
        ),
    ],
)
