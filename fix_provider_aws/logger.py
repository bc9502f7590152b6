import json
import logging
import os
import sys
from logging import (
    CRITICAL,
    DEBUG,
    INFO,
    WARNING,
    ERROR,
    Formatter,
    LogRecord,
    StreamHandler,
    basicConfig,
    getLogger,
)
from typing import Any, Dict, Mapping, Optional

from fix_provider_aws.types import Json

TRACE = DEBUG - 5
LOGGER_NAME = "fix.provider.aws"

getLogger().setLevel(ERROR)
getLogger(LOGGER_NAME).setLevel(INFO)
# botocore logs every retry and credential lookup on info level
getLogger("boto").setLevel(CRITICAL)
getLogger("botocore").setLevel(WARNING)


class JsonFormatter(Formatter):
    """
    Render a log record as single line json object.
    The keys of fmt_dict define the json property names, the values the LogRecord attribute to use.
    """

    def __init__(
        self,
        fmt_dict: Mapping[str, str],
        time_format: str = "%Y-%m-%dT%H:%M:%S",
        static_values: Optional[Dict[str, str]] = None,
    ) -> None:
        super().__init__()
        self.fmt_dict = fmt_dict
        self.time_format = time_format
        self.static_values = static_values or {}
        self.__use_time = "asctime" in self.fmt_dict.values()

    def usesTime(self) -> bool:  # noqa: N802
        return self.__use_time

    def json_message(self, record: LogRecord) -> Json:
        record.message = record.getMessage()
        if self.__use_time:
            record.asctime = self.formatTime(record, self.time_format)
        result: Json = {key: record.__dict__.get(attr) for key, attr in self.fmt_dict.items()}
        result.update(self.static_values)
        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            result["exception"] = record.exc_text
        if record.stack_info:
            result["stack_info"] = self.formatStack(record.stack_info)
        return result

    def format(self, record: LogRecord) -> str:
        return json.dumps(self.json_message(record), default=str)


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "false").lower() == "true"


def setup_logger(
    proc: str,
    *,
    force: bool = True,
    verbose: bool = False,
    quiet: bool = False,
    trace: bool = False,
    level: Optional[str] = None,
    json_format: bool = True,
) -> None:
    if json_format and not _env_flag("FIX_LOG_TEXT"):
        handler = StreamHandler()
        handler.setFormatter(
            JsonFormatter(
                {
                    "timestamp": "asctime",
                    "level": "levelname",
                    "message": "message",
                    "pid": "process",
                    "thread": "threadName",
                },
                static_values={"process": proc},
            )
        )
        basicConfig(handlers=[handler], force=force)
    else:
        log_format = f"%(asctime)s|{proc}|%(levelname)5s|%(process)d|%(threadName)10s  %(message)s"
        basicConfig(format=os.environ.get("FIX_LOG_FORMAT", log_format), datefmt="%y-%m-%d %H:%M:%S", force=force)

    argv = sys.argv[1:]
    provider_log = getLogger(LOGGER_NAME)
    if level:
        provider_log.setLevel(level)
    elif trace or "--trace" in argv or _env_flag("FIX_TRACE"):
        provider_log.setLevel(TRACE)
    elif verbose or "-v" in argv or "--verbose" in argv or _env_flag("FIX_VERBOSE"):
        provider_log.setLevel(DEBUG)
    elif quiet or "--quiet" in argv or _env_flag("FIX_QUIET"):
        getLogger().setLevel(WARNING)
        provider_log.setLevel(CRITICAL)


def _log_trace(self: logging.Logger, message: str, *args: Any, **kwargs: Any) -> None:
    if self.isEnabledFor(TRACE):
        self._log(TRACE, message, args, **kwargs)


if not hasattr(logging.getLoggerClass(), "trace"):
    logging.addLevelName(TRACE, "TRACE")
    setattr(logging.getLoggerClass(), "trace", _log_trace)

log = getLogger(LOGGER_NAME)
