import re
import time
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Optional

from attrs import frozen

from fix_provider_aws.logger import log
from fix_provider_aws.types import DecoratedFn

UTC_Date_Format = "%Y-%m-%dT%H:%M:%SZ"

# arn:partition:service:region:account-id:resource
ArnRe = re.compile(r"^arn:(aws|aws-cn|aws-us-gov|aws-iso|aws-iso-b):([a-z0-9-]+):([a-z0-9-]*):(\d{12}|\d*|aws):(.+)$")


def utc() -> datetime:
    return datetime.now(timezone.utc)


def utc_str(dto: Optional[datetime] = None) -> str:
    dt = dto if dto is not None else utc()
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return dt.strftime(UTC_Date_Format)


def log_runtime(f: DecoratedFn) -> DecoratedFn:
    @wraps(f)
    def timer(*args: Any, **kwargs: Any) -> Any:
        start = time.monotonic()
        try:
            return f(*args, **kwargs)
        finally:
            runtime = time.monotonic() - start
            log.debug(f"Runtime of {f.__name__}: {runtime:.3f} seconds")

    return timer  # type: ignore


@frozen
class Arn:
    partition: str
    service: str
    region: str
    account: str
    resource: str

    def __str__(self) -> str:
        return f"arn:{self.partition}:{self.service}:{self.region}:{self.account}:{self.resource}"


def parse_arn(value: str) -> Optional[Arn]:
    if matched := ArnRe.match(value):
        partition, service, region, account, resource = matched.groups()
        return Arn(partition, service, region, account, resource)
    return None


def is_arn(value: Any) -> bool:
    return isinstance(value, str) and parse_arn(value) is not None


def global_region_by_partition(partition: str) -> str:
    if partition == "aws-us-gov":
        return "us-gov-west-1"
    elif partition == "aws-cn":
        return "cn-north-1"
    return "us-east-1"
