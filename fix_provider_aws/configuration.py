import logging
import threading
import time
import uuid
from datetime import timedelta
from functools import lru_cache
from typing import Any, ClassVar, Dict, Optional, Type

from attrs import define, field, fields_dict
from boto3.session import Session as BotoSession
from botocore.client import BaseClient
from botocore.config import Config as BotoConfig

from fix_provider_aws.durations import parse_duration
from fix_provider_aws.json import from_json as from_js
from fix_provider_aws.types import Json
from fix_provider_aws.utils import global_region_by_partition

log = logging.getLogger("fix.provider.aws")


@define(hash=True, slots=False)
class AwsSessionHolder:
    access_key_id: Optional[str]
    secret_access_key: Optional[str]
    role: Optional[str] = None
    role_override: bool = False
    # Only here to override in tests
    session_class_factory: Type[BotoSession] = BotoSession
    kind: ClassVar[str] = "aws_session_holder"
    session_lock: threading.Lock = threading.Lock()

    # noinspection PyUnusedLocal
    @lru_cache(maxsize=128)
    def __direct_session(self, profile: Optional[str], partition: str) -> BotoSession:
        global_region = global_region_by_partition(partition)
        if profile:
            return self.session_class_factory(profile_name=profile, region_name=global_region)
        return self.session_class_factory(
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            region_name=global_region,
        )

    # noinspection PyUnusedLocal
    @lru_cache(maxsize=128)
    def __sts_session(
        self, aws_account: str, aws_role: str, profile: Optional[str], partition: str, cache_key: int
    ) -> BotoSession:
        role = self.role if self.role_override and self.role else aws_role
        role_arn = f"arn:{partition}:iam::{aws_account}:role/{role}"
        session = self.__direct_session(profile, partition)
        log.info(f"Create AWS session by assuming role: {role_arn}.")
        token = session.client("sts").assume_role(
            RoleArn=role_arn,
            RoleSessionName=f"fix-provider-{aws_account}-{uuid.uuid4()}",
            DurationSeconds=3600,
        )
        credentials = token["Credentials"]
        return self.session_class_factory(
            aws_access_key_id=credentials["AccessKeyId"],
            aws_secret_access_key=credentials["SecretAccessKey"],
            aws_session_token=credentials["SessionToken"],
            region_name=global_region_by_partition(partition),
        )

    def _session(
        self,
        aws_account: Optional[str],
        aws_role: Optional[str] = None,
        aws_profile: Optional[str] = None,
        aws_partition: str = "aws",
    ) -> BotoSession:
        """
        Note: the session is not thread safe - caller needs to synchronize access.
        Use client() instead.
        """
        if aws_role is None or aws_account is None:
            return self.__direct_session(aws_profile, aws_partition)
        # The sts session is valid for one hour: renew it every 10 minutes.
        return self.__sts_session(aws_account, aws_role, aws_profile, aws_partition, int(time.time() / 600))

    def client(
        self,
        aws_account: Optional[str],
        aws_role: Optional[str],
        aws_profile: Optional[str],
        aws_service: str,
        region_name: Optional[str] = None,
        config: Optional[BotoConfig] = None,
        aws_partition: str = "aws",
        endpoint_url: Optional[str] = None,
    ) -> BaseClient:
        with self.session_lock:
            session = self._session(aws_account, aws_role, aws_profile, aws_partition)
            return session.client(aws_service, region_name=region_name, config=config, endpoint_url=endpoint_url)


@define(slots=False)
class AwsConfig:
    kind: ClassVar[str] = "aws"
    access_key_id: Optional[str] = field(
        default=None,
        metadata={"description": "AWS Access Key ID (null to load from env - recommended)"},
    )
    secret_access_key: Optional[str] = field(
        default=None,
        metadata={"description": "AWS Secret Access Key (null to load from env - recommended)"},
    )
    account: Optional[str] = field(default=None, metadata={"description": "AWS account id to manage resources in"})
    role: Optional[str] = field(default=None, metadata={"description": "IAM role name to assume in the account"})
    role_override: bool = field(
        default=False,
        metadata={"description": "Override any role name passed to the client with the configured role"},
    )
    profile: Optional[str] = field(default=None, metadata={"description": "AWS profile to use"})
    region: Optional[str] = field(default=None, metadata={"description": "AWS region (null to load from env)"})
    partition: str = field(default="aws", metadata={"description": "AWS partition: aws, aws-cn or aws-us-gov"})
    endpoints: Dict[str, str] = field(
        factory=dict,
        metadata={"description": 'Custom endpoint URL per AWS service. Example: {"eks": "http://localhost:4566"}'},
    )
    max_attempts: int = field(
        default=5,
        metadata={"description": "Maximum number of attempts botocore makes for a single API request"},
    )
    poll_interval: str = field(
        default="2s",
        metadata={
            "type_hint": "duration",
            "description": "Initial wait between two status polls while waiting for a resource state.",
        },
    )
    max_poll_interval: str = field(
        default="10s",
        metadata={
            "type_hint": "duration",
            "description": "The wait between status polls grows exponentially up to this value.",
        },
    )
    not_found_checks: int = field(
        default=20,
        metadata={"description": "Number of consecutive polls a resource may be absent before waiting fails"},
    )
    timeouts: Dict[str, str] = field(
        factory=dict,
        metadata={
            "description": "Override the default operation timeout of a resource type.\n"
            'Example: {"aws_qbusiness_app.create": "1h", "aws_eks_access_policy_association.delete": "5min"}'
        },
    )

    @staticmethod
    def from_json(json: Json) -> "AwsConfig":
        valid_fields = fields_dict(AwsConfig).keys()
        return from_js({k: v for k, v in json.items() if k in valid_fields}, AwsConfig)

    def poll_interval_delta(self) -> timedelta:
        return parse_duration(self.poll_interval)

    def max_poll_interval_delta(self) -> timedelta:
        return parse_duration(self.max_poll_interval)

    def timeout_for(self, type_name: str, operation: str, default: timedelta) -> timedelta:
        if override := self.timeouts.get(f"{type_name}.{operation}"):
            return parse_duration(override)
        return default

    def endpoint_for(self, aws_service: str) -> Optional[str]:
        return self.endpoints.get(aws_service)

    def __attrs_post_init__(self) -> None:
        self._lock = threading.RLock()
        self._holder: Optional[AwsSessionHolder] = None

    def sessions(self) -> AwsSessionHolder:
        if self._holder is None:
            with self._lock:
                if self._holder is None:
                    log.debug("Creating a new AWS session holder")
                    self._holder = AwsSessionHolder(
                        access_key_id=self.access_key_id,
                        secret_access_key=self.secret_access_key,
                        role=self.role,
                        role_override=self.role_override,
                    )
        return self._holder

    def __getstate__(self) -> Dict[str, Any]:
        d = self.__dict__.copy()
        d.pop("_lock", None)
        d.pop("_holder", None)
        return d

    def __setstate__(self, d: Dict[str, Any]) -> None:
        d["_lock"] = threading.RLock()
        d["_holder"] = None
        self.__dict__.update(d)
