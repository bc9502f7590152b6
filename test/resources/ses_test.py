import pytest

from fix_provider_aws.aws_client import AwsClient
from fix_provider_aws.configuration import AwsConfig
from fix_provider_aws.errors import NotFoundError
from fix_provider_aws.resource.base import ResourceState
from fix_provider_aws.resource.ses import (
    AwsSesDomainIdentity,
    AwsSesDomainIdentityDataSource,
    AwsSesEmailIdentity,
    find_identity_verification,
    identity_arn,
)
from test.resources import file_client, scripted_client

Token = "QTKknzFg2J4ygwa+XvHAxUl1hyHoY0gVfZdfjIedHZ0="


def test_find_identity_verification() -> None:
    client = file_client()
    assert find_identity_verification(client, "example.com")["VerificationToken"] == Token
    with pytest.raises(NotFoundError):
        find_identity_verification(client, "example.org")


def test_identity_arn() -> None:
    assert identity_arn(file_client(), "example.com") == "arn:aws:ses:us-east-1:123456789012:identity/example.com"
    # the account is looked up, if the client does not know it
    client, _ = scripted_client({})
    anonymous = AwsClient(client.config, region="eu-west-1")
    assert identity_arn(anonymous, "example.com") == "arn:aws:ses:eu-west-1:123456789012:identity/example.com"
    # without a configured region, the global region of the partition is used
    no_region = AwsClient(AwsConfig(), "123456789012")
    assert identity_arn(no_region, "example.com") == "arn:aws:ses:us-east-1:123456789012:identity/example.com"
    china = AwsClient(AwsConfig(partition="aws-cn"), "123456789012")
    assert identity_arn(china, "example.com") == "arn:aws-cn:ses:cn-north-1:123456789012:identity/example.com"


def test_read_domain_identity() -> None:
    state = AwsSesDomainIdentity(file_client()).read(ResourceState(id="example.com"))
    assert state.attributes == {
        "domain": "example.com",
        "arn": "arn:aws:ses:us-east-1:123456789012:identity/example.com",
        "verification_token": Token,
    }


def test_create_domain_identity() -> None:
    client, session = scripted_client(
        {
            ("ses", "verify-domain-identity"): [{"VerificationToken": "abc"}],
            ("ses", "get-identity-verification-attributes"): [
                {"VerificationAttributes": {"example.com": {"VerificationToken": "abc"}}}
            ],
        }
    )
    # a trailing dot is removed
    state = AwsSesDomainIdentity(client).create({"domain": "example.com."})
    assert state.id == "example.com"
    assert state.attributes["verification_token"] == "abc"
    assert session.calls[0][2] == {"Domain": "example.com"}
    assert session.calls[1][2] == {"Identities": ["example.com"]}


def test_delete_identity() -> None:
    client, session = scripted_client({})
    assert not AwsSesEmailIdentity(client).delete(ResourceState(id="noreply@example.com")).exists
    assert session.calls == [("ses", "delete-identity", {"Identity": "noreply@example.com"})]


def test_removed_identity() -> None:
    client, _ = scripted_client({("ses", "get-identity-verification-attributes"): [{"VerificationAttributes": {}}]})
    assert not AwsSesEmailIdentity(client).read(ResourceState(id="noreply@example.com")).exists
    with pytest.raises(NotFoundError):
        AwsSesEmailIdentity(client).import_state("noreply@example.com")


def test_domain_identity_data_source() -> None:
    result = AwsSesDomainIdentityDataSource(file_client()).read({"domain": "example.com."})
    assert result["verification_token"] == Token
    with pytest.raises(NotFoundError):
        AwsSesDomainIdentityDataSource(file_client()).read({"domain": "example.org"})
