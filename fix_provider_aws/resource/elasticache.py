import logging
from datetime import timedelta
from typing import Any, ClassVar, Dict, List, Optional

from attrs import define

from fix_provider_aws.aws_client import AwsClient
from fix_provider_aws.finder import AwsApiSpec, call_spec, find_single
from fix_provider_aws.json_bender import Bender, F, ForallBend, S, bend
from fix_provider_aws.resource.base import (
    AwsDataSource,
    AwsResourceAdapter,
    DataSourceRegistration,
    ResourceRegistration,
    ResourceState,
    ServicePackage,
    Timeouts,
)
from fix_provider_aws.schema import attribute, items_validator, sorted_set
from fix_provider_aws.status import StateRefresh, status_from_finder
from fix_provider_aws.types import Json

log = logging.getLogger("fix.provider.aws")

service_name = "elasticache"

DescribeCacheSubnetGroups = AwsApiSpec(
    service_name,
    "describe-cache-subnet-groups",
    "CacheSubnetGroups",
    not_found_errors=["CacheSubnetGroupNotFoundFault"],
)
DescribeServerlessCaches = AwsApiSpec(
    service_name,
    "describe-serverless-caches",
    "ServerlessCaches",
    not_found_errors=["ServerlessCacheNotFoundFault"],
)


def find_cache_subnet_group_by_name(client: AwsClient, name: str) -> Json:
    return find_single(client, DescribeCacheSubnetGroups, CacheSubnetGroupName=name)


def find_serverless_cache_by_name(client: AwsClient, name: str) -> Json:
    return find_single(client, DescribeServerlessCaches, ServerlessCacheName=name)


# ------------------------------------------------------------------------------------------------
# Subnet Group
# ------------------------------------------------------------------------------------------------


def _lower(value: str) -> str:
    # ElastiCache stores subnet group names in lower case
    return value.lower()


@define(slots=False)
class AwsElastiCacheSubnetGroupConfig:
    name: str = attribute(
        required=True, force_new=True, converter=_lower, description="Name of the cache subnet group."
    )
    subnet_ids: List[str] = attribute(
        required=True,
        converter=sorted_set,
        validator=items_validator,
        min_items=1,
        description="VPC subnets of the cache subnet group.",
    )
    description: str = attribute(default="Managed by fix", description="Description of the cache subnet group.")
    arn: Optional[str] = attribute(computed=True)
    vpc_id: Optional[str] = attribute(computed=True)


class AwsElastiCacheSubnetGroup(AwsResourceAdapter):
    type_name: ClassVar[str] = "aws_elasticache_subnet_group"
    display_name: ClassVar[str] = "ElastiCache Subnet Group"
    service: ClassVar[str] = service_name
    config_class: ClassVar[Any] = AwsElastiCacheSubnetGroupConfig
    mapping: ClassVar[Dict[str, Bender]] = {
        "name": S("CacheSubnetGroupName"),
        "description": S("CacheSubnetGroupDescription"),
        "subnet_ids": S("Subnets", default=[]) >> ForallBend(S("SubnetIdentifier")) >> F(sorted_set),
        "arn": S("ARN"),
        "vpc_id": S("VpcId"),
    }
    api_create: ClassVar[AwsApiSpec] = AwsApiSpec(service_name, "create-cache-subnet-group")
    api_modify: ClassVar[AwsApiSpec] = AwsApiSpec(service_name, "modify-cache-subnet-group")
    api_delete: ClassVar[AwsApiSpec] = AwsApiSpec(
        service_name, "delete-cache-subnet-group", not_found_errors=["CacheSubnetGroupNotFoundFault"]
    )

    @classmethod
    def called_apis(cls) -> List[AwsApiSpec]:
        return [cls.api_create, DescribeCacheSubnetGroups, cls.api_modify, cls.api_delete]

    def do_create(self, config: AwsElastiCacheSubnetGroupConfig, state: ResourceState) -> None:
        call_spec(
            self.client,
            self.api_create,
            CacheSubnetGroupName=config.name,
            CacheSubnetGroupDescription=config.description,
            SubnetIds=config.subnet_ids,
        )
        state.set_id(config.name)

    def do_read(self, state: ResourceState) -> Json:
        return bend(self.mapping, find_cache_subnet_group_by_name(self.client, state.id))  # type: ignore

    def do_update(self, config: AwsElastiCacheSubnetGroupConfig, state: ResourceState, changed: List[str]) -> None:
        call_spec(
            self.client,
            self.api_modify,
            CacheSubnetGroupName=state.id,
            CacheSubnetGroupDescription=config.description,
            SubnetIds=config.subnet_ids,
        )

    def do_delete(self, state: ResourceState) -> None:
        call_spec(self.client, self.api_delete, CacheSubnetGroupName=state.id)


# ------------------------------------------------------------------------------------------------
# Serverless Cache
# ------------------------------------------------------------------------------------------------

ServerlessCacheStatusAvailable = "available"
ServerlessCacheStatusCreating = "creating"
ServerlessCacheStatusDeleting = "deleting"
ServerlessCacheStatusModifying = "modifying"
ServerlessCacheStatusCreateFailed = "create-failed"


@define(slots=False)
class AwsElastiCacheServerlessCacheEndpoint:
    mapping: ClassVar[Dict[str, Bender]] = {"address": S("Address"), "port": S("Port")}
    address: Optional[str] = attribute(computed=True)
    port: Optional[int] = attribute(computed=True)


@define(slots=False)
class AwsElastiCacheServerlessCacheConfig:
    name: str = attribute(required=True, force_new=True, description="Name of the serverless cache.")
    engine: str = attribute(required=True, force_new=True, description="Cache engine: redis, valkey or memcached.")
    description: Optional[str] = attribute(force_new=True, description="Description of the serverless cache.")
    major_engine_version: Optional[str] = attribute(force_new=True)
    kms_key_id: Optional[str] = attribute(force_new=True, description="KMS key used to encrypt the data at rest.")
    security_group_ids: List[str] = attribute(force_new=True, factory=list, converter=sorted_set)
    subnet_ids: List[str] = attribute(force_new=True, factory=list, converter=sorted_set)
    arn: Optional[str] = attribute(computed=True)
    status: Optional[str] = attribute(computed=True)
    create_time: Optional[str] = attribute(computed=True)
    full_engine_version: Optional[str] = attribute(computed=True)
    endpoint: List[AwsElastiCacheServerlessCacheEndpoint] = attribute(computed=True, factory=list)
    reader_endpoint: List[AwsElastiCacheServerlessCacheEndpoint] = attribute(computed=True, factory=list)


def _endpoints(endpoint: Json) -> List[Json]:
    return [bend(AwsElastiCacheServerlessCacheEndpoint.mapping, endpoint)] if endpoint else []


ServerlessCacheMapping: Dict[str, Bender] = {
    "name": S("ServerlessCacheName"),
    "engine": S("Engine"),
    "description": S("Description"),
    "major_engine_version": S("MajorEngineVersion"),
    "kms_key_id": S("KmsKeyId"),
    "security_group_ids": S("SecurityGroupIds", default=[]) >> F(sorted_set),
    "subnet_ids": S("SubnetIds", default=[]) >> F(sorted_set),
    "arn": S("ARN"),
    "status": S("Status"),
    "create_time": S("CreateTime"),
    "full_engine_version": S("FullEngineVersion"),
    "endpoint": S("Endpoint", default={}) >> F(_endpoints),
    "reader_endpoint": S("ReaderEndpoint", default={}) >> F(_endpoints),
}


class AwsElastiCacheServerlessCache(AwsResourceAdapter):
    type_name: ClassVar[str] = "aws_elasticache_serverless_cache"
    display_name: ClassVar[str] = "ElastiCache Serverless Cache"
    service: ClassVar[str] = service_name
    config_class: ClassVar[Any] = AwsElastiCacheServerlessCacheConfig
    timeouts: ClassVar[Timeouts] = Timeouts(create=timedelta(minutes=40), delete=timedelta(minutes=40))
    api_create: ClassVar[AwsApiSpec] = AwsApiSpec(service_name, "create-serverless-cache")
    api_delete: ClassVar[AwsApiSpec] = AwsApiSpec(
        service_name, "delete-serverless-cache", not_found_errors=["ServerlessCacheNotFoundFault"]
    )

    @classmethod
    def called_apis(cls) -> List[AwsApiSpec]:
        return [cls.api_create, DescribeServerlessCaches, cls.api_delete]

    def status_refresh(self, name: str) -> StateRefresh:
        return status_from_finder(lambda: find_serverless_cache_by_name(self.client, name), lambda c: c.get("Status"))

    def do_create(self, config: AwsElastiCacheServerlessCacheConfig, state: ResourceState) -> None:
        args = {
            "ServerlessCacheName": config.name,
            "Engine": config.engine,
            "Description": config.description,
            "MajorEngineVersion": config.major_engine_version,
            "KmsKeyId": config.kms_key_id,
            "SecurityGroupIds": config.security_group_ids or None,
            "SubnetIds": config.subnet_ids or None,
        }
        call_spec(self.client, self.api_create, **{k: v for k, v in args.items() if v is not None})
        state.set_id(config.name)
        self.poller(
            "create",
            pending=[ServerlessCacheStatusCreating, ServerlessCacheStatusModifying],
            target=[ServerlessCacheStatusAvailable],
            failed=[ServerlessCacheStatusCreateFailed],
        ).wait(self.status_refresh(state.id))

    def do_read(self, state: ResourceState) -> Json:
        return bend(ServerlessCacheMapping, find_serverless_cache_by_name(self.client, state.id))  # type: ignore

    def do_delete(self, state: ResourceState) -> None:
        call_spec(self.client, self.api_delete, ServerlessCacheName=state.id)
        self.poller(
            "delete",
            pending=[
                ServerlessCacheStatusAvailable,
                ServerlessCacheStatusCreating,
                ServerlessCacheStatusDeleting,
                ServerlessCacheStatusModifying,
            ],
            target=[],
        ).wait(self.status_refresh(state.id))


@define(slots=False)
class AwsElastiCacheServerlessCacheLookup:
    name: str = attribute(required=True, description="Name of the serverless cache to look up.")


class AwsElastiCacheServerlessCacheDataSource(AwsDataSource):
    type_name: ClassVar[str] = "aws_elasticache_serverless_cache"
    display_name: ClassVar[str] = "ElastiCache Serverless Cache"
    service: ClassVar[str] = service_name
    config_class: ClassVar[Any] = AwsElastiCacheServerlessCacheLookup

    @classmethod
    def called_apis(cls) -> List[AwsApiSpec]:
        return [DescribeServerlessCaches]

    def do_read(self, config: AwsElastiCacheServerlessCacheLookup) -> Json:
        return bend(ServerlessCacheMapping, find_serverless_cache_by_name(self.client, config.name))  # type: ignore


service_package = ServicePackage(
    name=service_name,
    resources=[
        ResourceRegistration(
            AwsElastiCacheServerlessCache,
            AwsElastiCacheServerlessCache.type_name,
            "Serverless Cache",
        ),
        ResourceRegistration(
            AwsElastiCacheSubnetGroup,
            AwsElastiCacheSubnetGroup.type_name,
            "Subnet Group",
        ),
    ],
    data_sources=[
        DataSourceRegistration(
            AwsElastiCacheServerlessCacheDataSource,
            AwsElastiCacheServerlessCacheDataSource.type_name,
            "Serverless Cache",
        ),
    ],
)
