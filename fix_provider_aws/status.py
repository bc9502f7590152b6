"""
Wait for a remote entity to reach a desired status.

A refresh function returns the current entity together with its status.
An absent entity is reported with the status `ABSENT` (empty string).
"""

import logging
import time
from datetime import timedelta
from typing import Any, Callable, Optional, Sequence, Tuple, TypeVar

from attrs import define, field
from prometheus_client import Counter
from retrying import RetryError, Retrying

from fix_provider_aws.errors import FailedStateError, NotFoundError, PollTimeoutError, UnexpectedStateError

log = logging.getLogger("fix.provider.aws")

metrics_poll_attempts = Counter(
    "fix_provider_aws_status_polls_total", "Number of status polls while waiting for a state", ["name"]
)

T = TypeVar("T")
ABSENT = ""
UNKNOWN = "UNKNOWN"
StateRefresh = Callable[[], Tuple[Optional[Any], str]]


def status_from_finder(find: Callable[[], T], status_of: Callable[[T], Optional[str]]) -> StateRefresh:
    """
    Turn a finder into a refresh function.
    NotFoundError is reported as absent entity, all other errors abort the poll.
    """

    def refresh() -> Tuple[Optional[Any], str]:
        try:
            entity = find()
        except NotFoundError:
            return None, ABSENT
        return entity, status_of(entity) or UNKNOWN

    return refresh


@define
class _Outcome:
    done: bool
    entity: Optional[Any] = None


@define
class StatusPoller:
    """
    Poll until one of the target states is reached.
    An empty target means: wait until the entity is absent.
    """

    pending: Sequence[str]
    target: Sequence[str]
    timeout: timedelta
    failed: Sequence[str] = ()
    delay: timedelta = timedelta(0)
    poll_interval: timedelta = timedelta(seconds=2)
    max_poll_interval: timedelta = timedelta(seconds=10)
    not_found_checks: int = 20
    continuous_target_occurrence: int = 1
    reason_of: Optional[Callable[[Any], Optional[str]]] = None
    name: str = "resource"
    _not_found: int = field(default=0, init=False)
    _in_target: int = field(default=0, init=False)
    _last_state: Optional[str] = field(default=None, init=False)

    def wait(self, refresh: StateRefresh) -> Optional[Any]:
        """
        :return: the entity in target state, None if the target is the absence of the entity.
        :raises PollTimeoutError: if no target state is reached before the timeout.
        :raises FailedStateError: if a failed or unexpected state is observed.
        :raises NotFoundError: if the entity is absent for more than not_found_checks polls.
        """
        self._not_found = 0
        self._in_target = 0
        self._last_state = None
        remaining_ms = max(0.0, (self.timeout - self.delay).total_seconds() * 1000)
        if self.delay > timedelta(0):
            log.debug(f"Waiting {self.delay} before polling {self.name}")
            time.sleep(min(self.delay, self.timeout).total_seconds())

        def next_wait(attempt: int, elapsed_ms: int) -> float:
            interval = self.poll_interval.total_seconds() * 1000 * (2 ** (attempt - 1))
            capped = min(interval, self.max_poll_interval.total_seconds() * 1000)
            return max(0.0, min(capped, remaining_ms - elapsed_ms))

        retrying = Retrying(
            stop_func=lambda attempt, elapsed_ms: elapsed_ms >= remaining_ms,
            wait_func=next_wait,
            retry_on_result=lambda outcome: not outcome.done,
            retry_on_exception=lambda e: False,
        )
        try:
            outcome: _Outcome = retrying.call(self._tick, refresh)
        except RetryError as e:
            raise PollTimeoutError(
                f"timeout while waiting for {self.name} to become {self._target_str()} "
                f"(last state: {self._last_state or 'absent'}, timeout: {self.timeout})",
                self._last_state,
            ) from e
        return outcome.entity

    def _tick(self, refresh: StateRefresh) -> _Outcome:
        entity, state = refresh()
        metrics_poll_attempts.labels(self.name).inc()
        log.debug(f"Waiting for {self.name} to become {self._target_str()}, current state: {state or 'absent'}")
        self._last_state = state
        if state == ABSENT:
            self._in_target = 0
            if not self.target:
                return _Outcome(True)
            self._not_found += 1
            if self._not_found > self.not_found_checks:
                raise NotFoundError(f"couldn't find {self.name} ({self._not_found} retries)")
            return _Outcome(False)

        self._not_found = 0
        if state in self.target:
            self._in_target += 1
            return _Outcome(self._in_target >= self.continuous_target_occurrence, entity)

        self._in_target = 0
        if state in self.failed:
            raise FailedStateError(state, self.reason_of(entity) if self.reason_of and entity is not None else None)
        if self.pending and state not in self.pending:
            raise UnexpectedStateError(state, ", ".join(list(self.pending) + list(self.target)))
        return _Outcome(False)

    def _target_str(self) -> str:
        return ", ".join(self.target) if self.target else "absent"


def wait_for_state(
    refresh: StateRefresh,
    *,
    pending: Sequence[str],
    target: Sequence[str],
    timeout: timedelta,
    **kwargs: Any,
) -> Optional[Any]:
    return StatusPoller(pending=pending, target=target, timeout=timeout, **kwargs).wait(refresh)
