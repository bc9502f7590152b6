import json
import os
import re
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from boto3 import Session
from botocore.exceptions import ClientError

from fix_provider_aws.aws_client import AwsClient
from fix_provider_aws.configuration import AwsConfig
from fix_provider_aws.finder import AwsApiSpec


class BotoDummyStsClient:
    def close(self) -> None:
        pass

    @staticmethod
    def can_paginate(_: str) -> bool:
        return False

    def __getattr__(self, action_name: str) -> Callable[..., Any]:
        def call(*args: Any, **kwargs: Any) -> Any:
            if action_name == "get_caller_identity":
                return {"Account": "123456789012", "Arn": "arn:aws:iam::123456789012:user/test", "UserId": "test"}
            return {"Credentials": {"AccessKeyId": "xxx", "SecretAccessKey": "xxx", "SessionToken": "xxx"}}

        return call


class BotoFileClient:
    def __init__(self, service: str) -> None:
        self.service = service

    @staticmethod
    def can_paginate(_: str) -> bool:
        return False

    def close(self) -> None:
        pass

    @classmethod
    def path_from_action(cls, a: AwsApiSpec, **kwargs: Any) -> str:
        return cls.path_from(a.service, a.api_action, **{**(a.parameter or {}), **kwargs})

    @staticmethod
    def path_from(service_name: str, action_name: str, **kwargs: Any) -> str:
        def arg_string(v: Any) -> str:
            if isinstance(v, list):
                return "_".join(arg_string(x) for x in v)
            elif isinstance(v, dict):
                return "_".join(arg_string(v) for k, v in v.items())
            else:
                return re.sub(r"[^a-zA-Z0-9]", "_", str(v))

        vals = "__" + ("_".join(arg_string(v) for _, v in sorted(kwargs.items()))) if kwargs else ""
        # cut the action string if it becomes too long
        vals = vals[0:220] if len(vals) > 220 else vals
        action = action_name.replace("_", "-")
        service = service_name.replace("-", "_")
        path = os.path.dirname(__file__) + f"/files/{service}/{action}{vals}.json"
        return os.path.abspath(path)

    def __getattr__(self, action_name: str) -> Callable[..., Any]:
        def call_action(*args: Any, **kwargs: Any) -> Any:
            assert not args, "No arguments allowed!"
            path = self.path_from(self.service, action_name, **kwargs)
            if os.path.exists(path):
                with open(path) as f:
                    return json.load(f)
            else:
                return {}

        return call_action


# use this factory in tests, to rely on API responses from file system
class BotoFileBasedSession(Session):  # type: ignore
    def client(self, service_name: str, **kwargs: Any) -> Any:
        return BotoDummyStsClient() if service_name == "sts" else BotoFileClient(service_name)


class BotoErrorClient:
    def __init__(self, exception: Exception):
        self.exception = exception

    def close(self) -> None:
        pass

    def __getattr__(self, action_name: str) -> Callable[..., Any]:
        raise self.exception


# use this factory in tests, to check how the client behaves in terms of errors
class BotoErrorSession(Session):  # type: ignore
    def __init__(self, exception: Exception = Exception("Test exception"), **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.exception = exception

    def client(self, service_name: str, **kwargs: Any) -> Any:
        return BotoErrorClient(self.exception)

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self


Response = Union[Dict[str, Any], Exception]


class BotoScriptedClient:
    def __init__(self, session: "BotoScriptedSession", service: str) -> None:
        self.session = session
        self.service = service

    @staticmethod
    def can_paginate(_: str) -> bool:
        return False

    def close(self) -> None:
        pass

    def __getattr__(self, action_name: str) -> Callable[..., Any]:
        action = action_name.replace("_", "-")

        def call_action(*args: Any, **kwargs: Any) -> Any:
            assert not args, "No arguments allowed!"
            self.session.calls.append((self.service, action, kwargs))
            responses = self.session.responses.get((self.service, action))
            if not responses:
                return {}
            # the last response is repeated
            response = responses.pop(0) if len(responses) > 1 else responses[0]
            if isinstance(response, Exception):
                raise response
            return response

        return call_action


# use this factory in tests, that need a sequence of responses for the same action (e.g. status polling)
class BotoScriptedSession(Session):  # type: ignore
    def __init__(self, responses: Optional[Dict[Tuple[str, str], Sequence[Response]]] = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.responses: Dict[Tuple[str, str], List[Response]] = {k: list(v) for k, v in (responses or {}).items()}
        self.calls: List[Tuple[str, str, Dict[str, Any]]] = []

    def client(self, service_name: str, **kwargs: Any) -> Any:
        return BotoDummyStsClient() if service_name == "sts" else BotoScriptedClient(self, service_name)

    def actions(self) -> List[str]:
        return [f"{service}:{action}" for service, action, _ in self.calls]

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self


def fast_config(**kwargs: Any) -> AwsConfig:
    return AwsConfig(poll_interval="0.01s", max_poll_interval="0.05s", not_found_checks=2, **kwargs)


def file_client(**kwargs: Any) -> AwsClient:
    config = fast_config(**kwargs)
    config.sessions().session_class_factory = BotoFileBasedSession
    return AwsClient(config, "123456789012", region="us-east-1")


def scripted_client(responses: Dict[Tuple[str, str], Sequence[Response]], **kwargs: Any) -> Tuple[AwsClient, Any]:
    config = fast_config(**kwargs)
    session = BotoScriptedSession(responses)
    config.sessions().session_class_factory = session
    return AwsClient(config, "123456789012", region="us-east-1"), session


def client_error(code: str, message: str = "Err!", operation: str = "foo") -> Exception:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)
