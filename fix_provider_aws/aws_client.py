from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, EndpointConnectionError, ParamValidationError
from prometheus_client import Counter
from retrying import retry

from fix_provider_aws.configuration import AwsConfig
from fix_provider_aws.errors import NotFoundError, TransientError, ValidationError
from fix_provider_aws.json import value_in_path
from fix_provider_aws.types import Json, JsonElement
from fix_provider_aws.utils import global_region_by_partition, log_runtime, utc_str

log = logging.getLogger("fix.provider.aws")

metrics_api_calls = Counter("fix_provider_aws_api_calls_total", "Number of AWS API calls", ["service", "action"])
metrics_api_errors = Counter(
    "fix_provider_aws_api_errors_total", "Number of failed AWS API calls", ["service", "action", "code"]
)

ThrottlingErrors = {
    "EC2ThrottledException",
    "RequestThrottled",
    "RequestThrottledException",
    "ThrottledException",
    "Throttling",
    "ThrottlingException",
}
RetryableErrors = ThrottlingErrors | {
    "LimitExceededException",
    "RequestLimitExceeded",
    "RequestTimeout",
    "RequestTimeoutException",
    "TooManyRequestsException",
}
# codes that always signal the absence of the requested entity
NotFoundErrors = {
    "NoSuchEntity",
    "NotFoundException",
    "ResourceNotFoundException",
}
AuthErrors = {"AuthorizationError", "AuthFailure", "AuthFailureException", "UnauthorizedOperation"}


def error_code(e: ClientError) -> str:
    return e.response.get("Error", {}).get("Code") or "Unknown Code"


def is_retryable_exception(e: Exception) -> bool:
    if isinstance(e, ClientError) and error_code(e) in RetryableErrors:
        log.debug("AWS API request limit exceeded or throttling, retrying with exponential backoff")
        return True
    return False


class AwsClient:
    def __init__(
        self,
        config: AwsConfig,
        account_id: Optional[str] = None,
        *,
        role: Optional[str] = None,
        profile: Optional[str] = None,
        region: Optional[str] = None,
        partition: Optional[str] = None,
    ) -> None:
        self.config = config
        self.account_id = account_id or config.account
        self.role = role or config.role
        self.profile = profile or config.profile
        self.region = region or config.region
        self.partition = partition or config.partition

    @property
    def effective_region(self) -> str:
        # sessions are created in the global region of the partition, which applies when no region is set
        return self.region or global_region_by_partition(self.partition)

    def __to_json(self, node: Any) -> JsonElement:
        if node is None or isinstance(node, (str, int, float, bool)):
            return node
        elif isinstance(node, list):
            return [self.__to_json(item) for item in node]
        elif isinstance(node, dict):
            return {key: self.__to_json(value) for key, value in node.items() if key != "ResponseMetadata"}
        elif isinstance(node, datetime):
            return utc_str(node)
        elif isinstance(node, bytes):
            return node.decode("utf-8")
        else:
            raise AttributeError(f"Unsupported type: {type(node)}")

    def call_single(
        self, aws_service: str, action: str, result_name: Optional[str] = None, **kwargs: Any
    ) -> JsonElement:
        arg_info = ""
        if kwargs:
            arg_info += " with args " + ", ".join([f"{key}={value}" for key, value in kwargs.items()])
        log.debug(f"[Aws] calling service={aws_service} action={action}{arg_info}")
        metrics_api_calls.labels(aws_service, action).inc()
        py_action = action.replace("-", "_")
        # adaptive mode allows automated client-side throttling
        config = Config(retries={"max_attempts": self.config.max_attempts, "mode": "adaptive"})
        client = self.config.sessions().client(
            aws_account=self.account_id,
            aws_role=self.role,
            aws_profile=self.profile,
            aws_service=aws_service,
            region_name=self.region,
            config=config,
            aws_partition=self.partition,
            endpoint_url=self.config.endpoint_for(aws_service),
        )
        try:
            if client.can_paginate(py_action):
                paginator = client.get_paginator(py_action)
                result: List[Json] = []
                for page in paginator.paginate(**kwargs):
                    next_page: Json = self.__to_json(page)  # type: ignore
                    if result_name is None:
                        result.append(next_page)
                    else:
                        child = value_in_path(next_page, result_name)
                        if isinstance(child, list):
                            result.extend(child)
                        elif child is not None:
                            result.append(child)
                log.debug(f"[Aws] called service={aws_service} action={action}{arg_info}: {len(result)} results.")
                return result
            else:
                single: Json = self.__to_json(getattr(client, py_action)(**kwargs))  # type: ignore
                log.debug(f"[Aws] called service={aws_service} action={action}{arg_info}: single result")
                return value_in_path(single, result_name) if result_name else single
        finally:
            client.close()

    @retry(  # type: ignore
        stop_max_attempt_number=10,  # 10 attempts: 1000 max 60000: max wait time is 5 minutes
        wait_exponential_multiplier=1000,
        wait_exponential_max=60000,
        retry_on_exception=is_retryable_exception,
    )
    def call_with_retry(self, aws_service: str, action: str, result_name: Optional[str], **kwargs: Any) -> JsonElement:
        return self.call_single(aws_service, action, result_name, **kwargs)

    @log_runtime
    def call(
        self,
        aws_service: str,
        action: str,
        result_name: Optional[str] = None,
        expected_errors: Optional[Iterable[str]] = None,
        not_found_errors: Optional[Iterable[str]] = None,
        **kwargs: Any,
    ) -> JsonElement:
        """
        Call the given AWS API action.
        Throttled requests are retried with exponential backoff.

        :param aws_service: the boto3 service name, e.g. eks.
        :param action: the action in cli notation, e.g. list-associated-access-policies.
        :param result_name: path to the part of the response to return.
        :param expected_errors: error codes that are not an error: None is returned instead.
        :param not_found_errors: service specific error codes that signal the absence of the entity.
        :raises NotFoundError: if AWS signals the absence of the requested entity.
        :raises ValidationError: if boto rejects the request parameters.
        :raises TransientError: on any other API or botocore error.
        """
        try:
            return self.call_with_retry(aws_service, action, result_name, **kwargs)
        except ClientError as e:
            return self.__handle_client_error(e, aws_service, action, kwargs, expected_errors, not_found_errors)
        except EndpointConnectionError as e:
            metrics_api_errors.labels(aws_service, action, "EndpointConnectionError").inc()
            raise TransientError(
                f"AWS endpoint of {aws_service} not reachable in region {self.effective_region}: {e}",
                "EndpointConnectionError",
            ) from e
        except ParamValidationError as e:
            metrics_api_errors.labels(aws_service, action, "ParamValidationError").inc()
            raise ValidationError(f"{aws_service} {action}: invalid request: {e}") from e
        except BotoCoreError as e:
            code = type(e).__name__
            metrics_api_errors.labels(aws_service, action, code).inc()
            log.warning(f"Call to {aws_service} action {action} failed with {code}: {e}")
            raise TransientError(f"{aws_service} {action} failed with {code}: {e}", code) from e

    def list(
        self,
        aws_service: str,
        action: str,
        result_name: Optional[str] = None,
        expected_errors: Optional[Iterable[str]] = None,
        not_found_errors: Optional[Iterable[str]] = None,
        **kwargs: Any,
    ) -> List[Any]:
        res = self.call(aws_service, action, result_name, expected_errors, not_found_errors, **kwargs)
        if res is None:
            return []
        elif isinstance(res, list):
            return res
        else:
            return [res]

    def get(
        self,
        aws_service: str,
        action: str,
        result_name: Optional[str] = None,
        expected_errors: Optional[Iterable[str]] = None,
        not_found_errors: Optional[Iterable[str]] = None,
        **kwargs: Any,
    ) -> Optional[Json]:
        return self.call(aws_service, action, result_name, expected_errors, not_found_errors, **kwargs)  # type: ignore

    def for_region(self, region: str) -> AwsClient:
        return AwsClient(
            self.config,
            self.account_id,
            role=self.role,
            profile=self.profile,
            region=region,
            partition=self.partition,
        )

    def __handle_client_error(
        self,
        e: ClientError,
        aws_service: str,
        action: str,
        args: Dict[str, Any],
        expected_errors: Optional[Iterable[str]],
        not_found_errors: Optional[Iterable[str]],
    ) -> None:
        code = error_code(e)
        if code in set(expected_errors or []):
            log.debug(f"Expected error: {code}")
            return None
        metrics_api_errors.labels(aws_service, action, code).inc()
        if code in NotFoundErrors or code in set(not_found_errors or []):
            log.debug(f"Call to {aws_service} action {action}: entity not found ({code})")
            raise NotFoundError(
                f"{aws_service} {action}: {code}",
                last_request={"service": aws_service, "action": action, "args": args},
            ) from e
        elif code in AuthErrors or code.lower().startswith("accessdenied"):
            log.warning(
                f"Access denied to call service {aws_service} with action {action} code {code} "
                f"in account {self.account_id} region {self.effective_region}: {e}"
            )
        elif code in RetryableErrors:
            log.warning(f"Call to {aws_service} action {action} failed after retries. Error: {e}")
        else:
            log.info(f"An AWS API error {code} occurred calling {aws_service} action {action}: {e}")
        raise TransientError(f"{aws_service} {action} failed with {code}: {e}", code) from e
