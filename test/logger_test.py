import json
import logging

from fix_provider_aws.logger import JsonFormatter
from fix_provider_aws.utils import global_region_by_partition, is_arn, parse_arn


def test_json_logging() -> None:
    format = JsonFormatter({"level": "levelname", "message": "message"}, static_values={"process": "test"})
    record = logging.getLogger("fix.provider.aws").makeRecord(
        "test", logging.INFO, "test_path", 1, "test message %s", ("arg",), None
    )
    assert json.loads(format.format(record)) == {"level": "INFO", "message": "test message arg", "process": "test"}


def test_json_logging_with_exception() -> None:
    format = JsonFormatter({"message": "message"})
    try:
        raise ValueError("boom")
    except ValueError as e:
        record = logging.getLogger("fix.provider.aws").makeRecord(
            "test", logging.ERROR, "test_path", 1, "failed", (), (type(e), e, e.__traceback__)
        )
    js = json.loads(format.format(record))
    assert js["message"] == "failed"
    assert "ValueError: boom" in js["exception"]


def test_arn() -> None:
    arn = parse_arn("arn:aws:iam::123456789012:role/admin")
    assert arn is not None
    assert arn.service == "iam"
    assert arn.region == ""
    assert arn.resource == "role/admin"
    assert str(arn) == "arn:aws:iam::123456789012:role/admin"
    assert is_arn("arn:aws:eks::aws:cluster-access-policy/AmazonEKSViewPolicy")
    assert not is_arn("role/admin")
    assert not is_arn(None)
    assert global_region_by_partition("aws-cn") == "cn-north-1"
    assert global_region_by_partition("aws") == "us-east-1"
