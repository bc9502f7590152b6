import pytest

from fix_provider_aws.errors import ValidationError
from fix_provider_aws.registry import ProviderRegistry, default_registry
from fix_provider_aws.resource import eks, elasticache
from fix_provider_aws.resource.base import ServicePackage
from fix_provider_aws.resource.eks import AwsEksAccessPolicyAssociation
from fix_provider_aws.resource.elasticache import AwsElastiCacheServerlessCache, AwsElastiCacheServerlessCacheDataSource


def test_lookup() -> None:
    registry = default_registry()
    assert registry.resource("aws_eks_access_policy_association") is AwsEksAccessPolicyAssociation
    assert registry.resource("aws_elasticache_serverless_cache") is AwsElastiCacheServerlessCache
    # the same type name can be used by a resource and a data source
    assert registry.data_source("aws_elasticache_serverless_cache") is AwsElastiCacheServerlessCacheDataSource
    with pytest.raises(ValidationError):
        registry.resource("aws_does_not_exist")
    with pytest.raises(ValidationError):
        registry.data_source("aws_eks_access_policy_association")


def test_all_types_registered() -> None:
    registry = default_registry()
    assert sorted(registry.resources) == [
        "aws_eks_access_policy_association",
        "aws_elasticache_serverless_cache",
        "aws_elasticache_subnet_group",
        "aws_qbusiness_app",
        "aws_ses_domain_identity",
        "aws_ses_email_identity",
    ]
    assert sorted(registry.data_sources) == ["aws_elasticache_serverless_cache", "aws_ses_domain_identity"]
    for type_name, registration in registry.resources.items():
        assert registration.factory.type_name == type_name
        assert registration.factory.schema()


def test_package_of() -> None:
    registry = default_registry()
    package = registry.package_of("aws_elasticache_subnet_group")
    assert package is not None and package.name == "elasticache"
    assert registry.package_of("aws_does_not_exist") is None


def test_duplicate_registration() -> None:
    with pytest.raises(ValueError):
        ProviderRegistry([eks.service_package, eks.service_package])
    # data sources are checked on their own
    duplicate = ServicePackage("other", data_sources=elasticache.service_package.data_sources)
    with pytest.raises(ValueError):
        ProviderRegistry([elasticache.service_package, duplicate])


def test_called_apis() -> None:
    permissions = default_registry().called_apis()
    assert permissions == sorted(set(permissions))
    for permission in [
        "eks:AssociateAccessPolicy",
        "eks:DisassociateAccessPolicy",
        "eks:ListAssociatedAccessPolicies",
        "elasticache:CreateServerlessCache",
        "elasticache:DescribeCacheSubnetGroups",
        "qbusiness:GetApplication",
        "ses:GetIdentityVerificationAttributes",
        "ses:VerifyEmailIdentity",
    ]:
        assert permission in permissions
