from typing import Dict, Iterable, List, Optional, Type

from fix_provider_aws.errors import ValidationError
from fix_provider_aws.resource import elasticache, eks, qbusiness, ses
from fix_provider_aws.resource.base import (
    AwsDataSource,
    AwsResourceAdapter,
    DataSourceRegistration,
    ResourceRegistration,
    ServicePackage,
)

# all service packages shipped with this provider
service_packages: List[ServicePackage] = [
    eks.service_package,
    elasticache.service_package,
    qbusiness.service_package,
    ses.service_package,
]


class ProviderRegistry:
    """
    Index of all registered resources and data sources by type name.
    A type name can be registered once as resource and once as data source.
    """

    def __init__(self, packages: Iterable[ServicePackage]) -> None:
        self.packages = list(packages)
        self.resources: Dict[str, ResourceRegistration] = {}
        self.data_sources: Dict[str, DataSourceRegistration] = {}
        for package in self.packages:
            for resource in package.resources:
                if resource.type_name in self.resources:
                    raise ValueError(f"Resource {resource.type_name} registered twice (package {package.name})")
                self.resources[resource.type_name] = resource
            for data_source in package.data_sources:
                if data_source.type_name in self.data_sources:
                    raise ValueError(f"Data source {data_source.type_name} registered twice (package {package.name})")
                self.data_sources[data_source.type_name] = data_source

    def resource(self, type_name: str) -> Type[AwsResourceAdapter]:
        if registration := self.resources.get(type_name):
            return registration.factory
        raise ValidationError(f"Unknown resource type: {type_name}")

    def data_source(self, type_name: str) -> Type[AwsDataSource]:
        if registration := self.data_sources.get(type_name):
            return registration.factory
        raise ValidationError(f"Unknown data source type: {type_name}")

    def package_of(self, type_name: str) -> Optional[ServicePackage]:
        for package in self.packages:
            if any(r.type_name == type_name for r in package.resources) or any(
                d.type_name == type_name for d in package.data_sources
            ):
                return package
        return None

    def called_apis(self) -> List[str]:
        """
        All IAM permissions required by the registered resources and data sources.
        """
        permissions = {
            spec.iam_permission()
            for registration in [*self.resources.values(), *self.data_sources.values()]
            for spec in registration.factory.called_apis()
        }
        return sorted(permissions)


def default_registry() -> ProviderRegistry:
    return ProviderRegistry(service_packages)
