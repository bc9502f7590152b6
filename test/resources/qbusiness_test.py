from datetime import timedelta

import pytest

from fix_provider_aws.errors import FailedStateError, MalformedIdentifierError, NotFoundError, PollTimeoutError
from fix_provider_aws.resource.base import ResourceState
from fix_provider_aws.resource.qbusiness import (
    AwsQBusinessApp,
    error_reason,
    find_app_by_id,
    find_index_by_id,
    wait_app_created,
    wait_index_created,
    wait_index_deleted,
    wait_retriever_created,
    wait_retriever_deleted,
)
from test.resources import client_error, file_client, scripted_client

fast = dict(poll_interval=timedelta(milliseconds=1), max_poll_interval=timedelta(milliseconds=5))
timeout = timedelta(seconds=5)

App = {
    "displayName": "support-assistant",
    "applicationId": "app-1",
    "applicationArn": "arn:aws:qbusiness:us-east-1:123456789012:application/app-1",
    "description": "answers support questions",
    "status": "ACTIVE",
    "createdAt": "2024-07-01T10:00:00Z",
    "updatedAt": "2024-07-01T10:00:00Z",
}


def test_find_app_by_id() -> None:
    app = find_app_by_id(file_client(), "app-1")
    assert app["displayName"] == "support-assistant"
    with pytest.raises(NotFoundError):
        find_app_by_id(file_client(), "app-2")


def test_find_index_by_id() -> None:
    client, session = scripted_client({("qbusiness", "get-index"): [{"indexId": "idx-1", "status": "ACTIVE"}]})
    assert find_index_by_id(client, "app-1,idx-1")["indexId"] == "idx-1"
    assert session.calls[0][2] == {"applicationId": "app-1", "indexId": "idx-1"}
    with pytest.raises(MalformedIdentifierError):
        find_index_by_id(client, "idx-1")


def test_wait_app_created() -> None:
    client, session = scripted_client(
        {
            ("qbusiness", "get-application"): [
                {"status": "CREATING"},
                {"status": "CREATING"},
                {"applicationId": "app-1", "status": "ACTIVE"},
            ]
        }
    )
    app = wait_app_created(client, "app-1", timeout, **fast)
    assert app == {"applicationId": "app-1", "status": "ACTIVE"}
    assert len(session.calls) == 3


def test_wait_app_created_failed() -> None:
    client, _ = scripted_client(
        {
            ("qbusiness", "get-application"): [
                {"status": "CREATING"},
                {"status": "FAILED", "error": {"errorCode": "ValidationException", "errorMessage": "invalid role"}},
            ]
        }
    )
    with pytest.raises(FailedStateError) as ex:
        wait_app_created(client, "app-1", timeout, **fast)
    assert ex.value.state == "FAILED"
    assert ex.value.reason == "ValidationException: invalid role"


def test_wait_app_created_timeout() -> None:
    client, _ = scripted_client({("qbusiness", "get-application"): [{"status": "CREATING"}]})
    with pytest.raises(PollTimeoutError) as ex:
        wait_app_created(client, "app-1", timedelta(milliseconds=30), **fast)
    assert ex.value.last_state == "CREATING"


def test_wait_index() -> None:
    client, _ = scripted_client(
        {
            ("qbusiness", "get-index"): [
                {"status": "CREATING"},
                {"status": "UPDATING"},
                {"indexId": "idx-1", "status": "ACTIVE"},
                {"status": "DELETING"},
                client_error("ResourceNotFoundException"),
            ]
        }
    )
    assert wait_index_created(client, "app-1,idx-1", timeout, **fast) == {"indexId": "idx-1", "status": "ACTIVE"}
    assert wait_index_deleted(client, "app-1,idx-1", timeout, **fast) is None


def test_wait_retriever() -> None:
    client, _ = scripted_client(
        {
            ("qbusiness", "get-retriever"): [
                {"status": "CREATING"},
                {"retrieverId": "ret-1", "status": "ACTIVE"},
                client_error("ResourceNotFoundException"),
            ]
        }
    )
    retriever = wait_retriever_created(client, "app-1,ret-1", timeout, **fast)
    assert retriever == {"retrieverId": "ret-1", "status": "ACTIVE"}
    assert wait_retriever_deleted(client, "app-1,ret-1", timeout, **fast) is None


def test_error_reason() -> None:
    assert error_reason({"error": {"errorCode": "X", "errorMessage": "broken"}}) == "X: broken"
    assert error_reason({"error": {"errorMessage": "broken"}}) == "broken"
    assert error_reason({"status": "FAILED"}) is None


def test_create_app() -> None:
    client, session = scripted_client(
        {
            ("qbusiness", "create-application"): [{"applicationId": "app-1"}],
            # the application is not visible right after creation
            ("qbusiness", "get-application"): [
                client_error("ResourceNotFoundException"),
                {"status": "CREATING"},
                App,
            ],
        }
    )
    state = AwsQBusinessApp(client).create(
        {"display_name": "support-assistant", "description": "answers support questions"}
    )
    assert state.id == "app-1"
    assert state.attributes["status"] == "ACTIVE"
    assert state.attributes["arn"] == "arn:aws:qbusiness:us-east-1:123456789012:application/app-1"
    assert session.calls[0][2] == {"displayName": "support-assistant", "description": "answers support questions"}


def test_create_app_failed() -> None:
    client, _ = scripted_client(
        {
            ("qbusiness", "create-application"): [{"applicationId": "app-1"}],
            ("qbusiness", "get-application"): [
                {"status": "FAILED", "error": {"errorCode": "AccessDenied", "errorMessage": "role not assumable"}}
            ],
        }
    )
    with pytest.raises(FailedStateError) as ex:
        AwsQBusinessApp(client).create({"display_name": "support-assistant"})
    assert ex.value.resource_id == "app-1"
    assert "role not assumable" in str(ex.value)


def test_update_app() -> None:
    client, session = scripted_client(
        {
            ("qbusiness", "get-application"): [{"status": "UPDATING"}, {**App, "description": "new"}],
        }
    )
    current = ResourceState(
        id="app-1",
        attributes={
            "display_name": "support-assistant",
            "description": "answers support questions",
            "arn": App["applicationArn"],
            "status": "ACTIVE",
        },
    )
    state = AwsQBusinessApp(client).update(current, {"display_name": "support-assistant", "description": "new"})
    assert state.attributes["description"] == "new"
    assert session.calls[0] == (
        "qbusiness",
        "update-application",
        {"applicationId": "app-1", "displayName": "support-assistant", "description": "new"},
    )


def test_identity_center_instance_forces_replacement() -> None:
    adapter = AwsQBusinessApp(file_client())
    state = adapter.read(ResourceState(id="app-1"))
    desired = {
        "display_name": "support-assistant",
        "identity_center_instance_arn": "arn:aws:sso:::instance/ssoins-1234",
    }
    assert adapter.requires_replacement(state, desired) == ["identity_center_instance_arn"]


def test_delete_app() -> None:
    client, session = scripted_client(
        {
            ("qbusiness", "get-application"): [
                {"status": "DELETING"},
                {"status": "DELETING"},
                client_error("ResourceNotFoundException"),
            ],
        }
    )
    state = AwsQBusinessApp(client).delete(ResourceState(id="app-1", attributes=App))
    assert not state.exists
    assert session.actions() == [
        "qbusiness:delete-application",
        "qbusiness:get-application",
        "qbusiness:get-application",
        "qbusiness:get-application",
    ]
