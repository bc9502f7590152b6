import pytest

from fix_provider_aws.errors import FailedStateError, NotFoundError, UpdateNotSupportedError, ValidationError
from fix_provider_aws.resource.base import ResourceState
from fix_provider_aws.resource.elasticache import (
    AwsElastiCacheServerlessCache,
    AwsElastiCacheServerlessCacheDataSource,
    AwsElastiCacheSubnetGroup,
    find_cache_subnet_group_by_name,
    find_serverless_cache_by_name,
)
from test.resources import client_error, file_client, scripted_client

SubnetGroup = {
    "CacheSubnetGroupName": "my-group",
    "CacheSubnetGroupDescription": "Managed by fix",
    "VpcId": "vpc-0a1b2c3d",
    "Subnets": [{"SubnetIdentifier": "subnet-b"}, {"SubnetIdentifier": "subnet-a"}],
    "ARN": "arn:aws:elasticache:us-east-1:123456789012:subnetgroup:my-group",
}


def test_find_by_name() -> None:
    client = file_client()
    assert find_cache_subnet_group_by_name(client, "my-group")["VpcId"] == "vpc-0a1b2c3d"
    assert find_serverless_cache_by_name(client, "my-cache")["Status"] == "available"
    with pytest.raises(NotFoundError):
        find_serverless_cache_by_name(client, "other-cache")


def test_read_subnet_group() -> None:
    state = AwsElastiCacheSubnetGroup(file_client()).read(ResourceState(id="my-group"))
    assert state.attributes == {
        "name": "my-group",
        "description": "Managed by fix",
        "subnet_ids": ["subnet-a", "subnet-b"],
        "arn": "arn:aws:elasticache:us-east-1:123456789012:subnetgroup:my-group",
        "vpc_id": "vpc-0a1b2c3d",
    }


def test_subnet_group_lifecycle() -> None:
    client, session = scripted_client(
        {
            ("elasticache", "describe-cache-subnet-groups"): [
                {"CacheSubnetGroups": [SubnetGroup]},
                {"CacheSubnetGroups": [{**SubnetGroup, "Subnets": [{"SubnetIdentifier": "subnet-c"}]}]},
                client_error("CacheSubnetGroupNotFoundFault"),
            ],
            ("elasticache", "delete-cache-subnet-group"): [{}, client_error("CacheSubnetGroupNotFoundFault")],
        }
    )
    adapter = AwsElastiCacheSubnetGroup(client)
    # the name is stored in lower case
    state = adapter.create({"name": "My-Group", "subnet_ids": ["subnet-b", "subnet-a", "subnet-a"]})
    assert state.id == "my-group"
    assert session.calls[0][2] == {
        "CacheSubnetGroupName": "my-group",
        "CacheSubnetGroupDescription": "Managed by fix",
        "SubnetIds": ["subnet-a", "subnet-b"],
    }
    # set semantics: the order of subnets is not a change
    assert adapter.changed_attributes(state, {"name": "my-group", "subnet_ids": ["subnet-b", "subnet-a"]}) == []

    state = adapter.update(state, {"name": "my-group", "subnet_ids": ["subnet-c"]})
    assert state.attributes["subnet_ids"] == ["subnet-c"]
    assert session.calls[2][1] == "modify-cache-subnet-group"

    # drift: the group was removed outside
    assert not adapter.read(state).exists
    assert not adapter.delete(ResourceState(id="my-group")).exists
    assert not adapter.delete(ResourceState(id="my-group")).exists


def test_subnet_group_needs_subnets() -> None:
    with pytest.raises(ValidationError) as ex:
        AwsElastiCacheSubnetGroup(file_client()).create({"name": "my-group", "subnet_ids": []})
    assert "at least 1 items" in str(ex.value)


def test_read_serverless_cache() -> None:
    state = AwsElastiCacheServerlessCache(file_client()).read(ResourceState(id="my-cache"))
    assert state.attributes["engine"] == "redis"
    assert state.attributes["security_group_ids"] == ["sg-1", "sg-2"]
    assert state.attributes["endpoint"] == [
        {"address": "my-cache-abc.serverless.use1.cache.amazonaws.com", "port": 6379}
    ]
    assert state.attributes["reader_endpoint"][0]["port"] == 6380
    assert state.attributes["kms_key_id"] is None


def test_create_serverless_cache() -> None:
    client, session = scripted_client(
        {
            ("elasticache", "describe-serverless-caches"): [
                {"ServerlessCaches": [{"ServerlessCacheName": "my-cache", "Status": "creating"}]},
                {"ServerlessCaches": [{"ServerlessCacheName": "my-cache", "Status": "creating"}]},
                {
                    "ServerlessCaches": [
                        {"ServerlessCacheName": "my-cache", "Engine": "valkey", "Status": "available"}
                    ]
                },
            ],
        }
    )
    state = AwsElastiCacheServerlessCache(client).create({"name": "my-cache", "engine": "valkey"})
    assert state.attributes["status"] == "available"
    assert state.attributes["endpoint"] == []
    assert session.calls[0] == (
        "elasticache",
        "create-serverless-cache",
        {"ServerlessCacheName": "my-cache", "Engine": "valkey"},
    )


def test_create_serverless_cache_failed() -> None:
    client, _ = scripted_client(
        {
            ("elasticache", "describe-serverless-caches"): [
                {"ServerlessCaches": [{"ServerlessCacheName": "my-cache", "Status": "create-failed"}]}
            ],
        }
    )
    with pytest.raises(FailedStateError) as ex:
        AwsElastiCacheServerlessCache(client).create({"name": "my-cache", "engine": "redis"})
    assert ex.value.state == "create-failed"
    assert ex.value.resource_id == "my-cache"


def test_serverless_cache_can_not_be_updated() -> None:
    adapter = AwsElastiCacheServerlessCache(file_client())
    state = adapter.read(ResourceState(id="my-cache"))
    assert not AwsElastiCacheServerlessCache.updatable()
    assert adapter.requires_replacement(state, {"name": "my-cache", "engine": "valkey"}) == [
        "engine",
        "description",
        "major_engine_version",
        "security_group_ids",
        "subnet_ids",
    ]
    with pytest.raises(UpdateNotSupportedError):
        adapter.do_update(None, state, ["engine"])


def test_delete_serverless_cache() -> None:
    client, session = scripted_client(
        {
            ("elasticache", "describe-serverless-caches"): [
                {"ServerlessCaches": [{"ServerlessCacheName": "my-cache", "Status": "deleting"}]},
                client_error("ServerlessCacheNotFoundFault"),
            ],
        }
    )
    assert not AwsElastiCacheServerlessCache(client).delete(ResourceState(id="my-cache")).exists
    assert session.actions() == [
        "elasticache:delete-serverless-cache",
        "elasticache:describe-serverless-caches",
        "elasticache:describe-serverless-caches",
    ]


def test_serverless_cache_data_source() -> None:
    data_source = AwsElastiCacheServerlessCacheDataSource(file_client())
    result = data_source.read({"name": "my-cache"})
    assert result["arn"] == "arn:aws:elasticache:us-east-1:123456789012:serverlesscache:my-cache"
    with pytest.raises(NotFoundError):
        data_source.read({"name": "other-cache"})
    with pytest.raises(ValidationError):
        data_source.read({})
