import logging
from typing import Any, ClassVar, List, Optional

from attrs import define

from fix_provider_aws.aws_client import AwsClient
from fix_provider_aws.errors import NotFoundError
from fix_provider_aws.finder import AwsApiSpec, call_spec
from fix_provider_aws.resource.base import (
    AwsDataSource,
    AwsResourceAdapter,
    DataSourceRegistration,
    ResourceRegistration,
    ResourceState,
    ServicePackage,
)
from fix_provider_aws.schema import attribute
from fix_provider_aws.types import Json

log = logging.getLogger("fix.provider.aws")

service_name = "ses"

GetIdentityVerificationAttributes = AwsApiSpec(
    service_name, "get-identity-verification-attributes", "VerificationAttributes"
)
DeleteIdentity = AwsApiSpec(service_name, "delete-identity")
GetCallerIdentity = AwsApiSpec("sts", "get-caller-identity", "Account")


def _strip_dot(value: str) -> str:
    # a trailing dot is accepted but not stored
    return value.rstrip(".")


def find_identity_verification(client: AwsClient, identity: str) -> Json:
    """
    SES reports unknown identities by leaving them out of the result.
    """
    result = call_spec(client, GetIdentityVerificationAttributes, Identities=[identity])
    if not isinstance(result, dict) or identity not in result:
        raise NotFoundError("Empty result", GetIdentityVerificationAttributes.last_request(Identities=[identity]))
    return result[identity]  # type: ignore


def identity_arn(client: AwsClient, identity: str) -> str:
    account = client.account_id or call_spec(client, GetCallerIdentity)
    return f"arn:{client.partition}:ses:{client.effective_region}:{account}:identity/{identity}"


@define(slots=False)
class AwsSesDomainIdentityConfig:
    domain: str = attribute(
        required=True, force_new=True, converter=_strip_dot, description="Domain name to verify."
    )
    arn: Optional[str] = attribute(computed=True)
    verification_token: Optional[str] = attribute(
        computed=True, description="Token to add as TXT record _amazonses.<domain> to verify the domain."
    )


def _domain_identity_attributes(client: AwsClient, domain: str) -> Json:
    verification = find_identity_verification(client, domain)
    return {
        "domain": domain,
        "arn": identity_arn(client, domain),
        "verification_token": verification.get("VerificationToken"),
    }


class AwsSesDomainIdentity(AwsResourceAdapter):
    type_name: ClassVar[str] = "aws_ses_domain_identity"
    display_name: ClassVar[str] = "SES Domain Identity"
    service: ClassVar[str] = service_name
    config_class: ClassVar[Any] = AwsSesDomainIdentityConfig
    api_verify: ClassVar[AwsApiSpec] = AwsApiSpec(service_name, "verify-domain-identity")

    @classmethod
    def called_apis(cls) -> List[AwsApiSpec]:
        return [cls.api_verify, GetIdentityVerificationAttributes, DeleteIdentity]

    def do_create(self, config: AwsSesDomainIdentityConfig, state: ResourceState) -> None:
        call_spec(self.client, self.api_verify, Domain=config.domain)
        state.set_id(config.domain)

    def do_read(self, state: ResourceState) -> Json:
        return _domain_identity_attributes(self.client, state.id)

    def do_delete(self, state: ResourceState) -> None:
        call_spec(self.client, DeleteIdentity, Identity=state.id)


@define(slots=False)
class AwsSesDomainIdentityLookup:
    domain: str = attribute(required=True, converter=_strip_dot, description="Domain name of the identity.")


class AwsSesDomainIdentityDataSource(AwsDataSource):
    type_name: ClassVar[str] = "aws_ses_domain_identity"
    display_name: ClassVar[str] = "SES Domain Identity"
    service: ClassVar[str] = service_name
    config_class: ClassVar[Any] = AwsSesDomainIdentityLookup

    @classmethod
    def called_apis(cls) -> List[AwsApiSpec]:
        return [GetIdentityVerificationAttributes]

    def do_read(self, config: AwsSesDomainIdentityLookup) -> Json:
        return _domain_identity_attributes(self.client, config.domain)


@define(slots=False)
class AwsSesEmailIdentityConfig:
    email: str = attribute(
        required=True, force_new=True, converter=_strip_dot, description="Email address to verify."
    )
    arn: Optional[str] = attribute(computed=True)


class AwsSesEmailIdentity(AwsResourceAdapter):
    type_name: ClassVar[str] = "aws_ses_email_identity"
    display_name: ClassVar[str] = "SES Email Identity"
    service: ClassVar[str] = service_name
    config_class: ClassVar[Any] = AwsSesEmailIdentityConfig
    api_verify: ClassVar[AwsApiSpec] = AwsApiSpec(service_name, "verify-email-identity")

    @classmethod
    def called_apis(cls) -> List[AwsApiSpec]:
        return [cls.api_verify, GetIdentityVerificationAttributes, DeleteIdentity]

    def do_create(self, config: AwsSesEmailIdentityConfig, state: ResourceState) -> None:
        call_spec(self.client, self.api_verify, EmailAddress=config.email)
        state.set_id(config.email)

    def do_read(self, state: ResourceState) -> Json:
        find_identity_verification(self.client, state.id)
        return {"email": state.id, "arn": identity_arn(self.client, state.id)}

    def do_delete(self, state: ResourceState) -> None:
        call_spec(self.client, DeleteIdentity, Identity=state.id)


service_package = ServicePackage(
    name=service_name,
    resources=[
        ResourceRegistration(AwsSesDomainIdentity, AwsSesDomainIdentity.type_name, "Domain Identity"),
        ResourceRegistration(AwsSesEmailIdentity, AwsSesEmailIdentity.type_name, "Email Identity"),
    ],
    data_sources=[
        DataSourceRegistration(
            AwsSesDomainIdentityDataSource, AwsSesDomainIdentityDataSource.type_name, "Domain Identity"
        ),
    ],
)
