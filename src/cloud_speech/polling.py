"""
Bounded-retry polling for server-side jobs.

A poll repeatedly fetches the status of one resource until it reaches a
terminal state or the attempt budget runs out. Only the "still pending"
outcome is retried; every other outcome (transport failure, terminal
failure, unknown status) ends the poll on first occurrence.

``await_completion`` is the asyncio entry point; ``wait_for_completion`` is
its blocking twin for synchronous callers.
"""
import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Type

from loguru import logger

from .errors import DomainFailureError, PollTimeoutError, UnexpectedStatusError


class Classification(Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class PollPolicy:
    """How long to wait between status checks and how many checks to make.

    Attributes:
        interval: Delay between attempts in milliseconds
        max_attempts: Total number of status fetches, the first one included
    """

    interval: int = 5000
    max_attempts: int = 30

    def __post_init__(self) -> None:
        if self.interval < 0:
            raise ValueError("interval must not be negative")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    @property
    def interval_seconds(self) -> float:
        return self.interval / 1000.0


Classifier = Callable[[Any], Classification]


class Poller:
    """Runs one poll-until-ready loop per call to ``run`` / ``run_sync``.

    The poller keeps no state between runs, so a single instance can serve
    several concurrent polls.

    Args:
        fetch_status: Returns the current snapshot for a handle. A coroutine
            function for ``run``, a plain function for ``run_sync``.
        classify: Maps a snapshot to a Classification
        policy: Interval and attempt budget (defaults to PollPolicy())
        precondition: Checked once before the first fetch, never retried.
            It signals failure by raising.
        failure_error: Raised when a snapshot classifies as FAILURE
        label: Resource name used in error messages
        status_of: Renders a snapshot's status for error messages
        sleep: Override of the inter-attempt delay function
    """

    def __init__(
        self,
        fetch_status: Callable[[str], Any],
        classify: Classifier,
        policy: Optional[PollPolicy] = None,
        *,
        precondition: Optional[Callable[[str], Any]] = None,
        failure_error: Type[DomainFailureError] = DomainFailureError,
        label: str = "Resource",
        status_of: Callable[[Any], str] = str,
        sleep: Optional[Callable[[float], Any]] = None,
    ) -> None:
        self.fetch_status = fetch_status
        self.classify = classify
        self.policy = policy or PollPolicy()
        self.precondition = precondition
        self.failure_error = failure_error
        self.label = label
        self.status_of = status_of
        self._sleep = sleep

    async def run(self, handle: str) -> Any:
        """Poll until ``handle`` is ready and return the final snapshot."""
        sleep = self._sleep or asyncio.sleep
        if self.precondition is not None:
            await self.precondition(handle)
        snapshot = None
        for attempt in range(1, self.policy.max_attempts + 1):
            snapshot = await self.fetch_status(handle)
            if self._settle(handle, attempt, snapshot):
                return snapshot
            if attempt < self.policy.max_attempts:
                await sleep(self.policy.interval_seconds)
        raise self._timeout(handle, snapshot)

    def run_sync(self, handle: str) -> Any:
        """Blocking variant of ``run``; ``fetch_status`` and ``precondition`` must be plain functions."""
        sleep = self._sleep or time.sleep
        if self.precondition is not None:
            self.precondition(handle)
        snapshot = None
        for attempt in range(1, self.policy.max_attempts + 1):
            snapshot = self.fetch_status(handle)
            if self._settle(handle, attempt, snapshot):
                return snapshot
            if attempt < self.policy.max_attempts:
                sleep(self.policy.interval_seconds)
        raise self._timeout(handle, snapshot)

    def _settle(self, handle: str, attempt: int, snapshot: Any) -> bool:
        """Return True when the snapshot is a success, False when still pending, raise otherwise."""
        outcome = self.classify(snapshot)
        logger.debug(
            "{} {} attempt {}/{}: {}",
            self.label,
            handle,
            attempt,
            self.policy.max_attempts,
            outcome.value,
        )
        if outcome is Classification.SUCCESS:
            return True
        if outcome is Classification.PENDING:
            return False
        if outcome is Classification.FAILURE:
            raise self.failure_error(
                f"{self.label} {handle} failed with status: {self.status_of(snapshot)}",
                handle=handle,
                snapshot=snapshot,
            )
        raise UnexpectedStatusError(
            f"Unexpected {self.label.lower()} status: {self.status_of(snapshot)}",
            handle=handle,
            snapshot=snapshot,
        )

    def _timeout(self, handle: str, snapshot: Any) -> PollTimeoutError:
        attempts = self.policy.max_attempts
        logger.info("{} {} still pending after {} attempts", self.label, handle, attempts)
        return PollTimeoutError(
            f"{self.label} {handle} is still pending after {attempts} attempts, "
            "try increasing interval or times params",
            handle=handle,
            last_snapshot=snapshot,
            attempts=attempts,
        )


async def await_completion(
    handle: str,
    fetch_status: Callable[[str], Awaitable[Any]],
    classify: Classifier,
    policy: Optional[PollPolicy] = None,
    **options: Any,
) -> Any:
    """Poll ``fetch_status(handle)`` until ``classify`` reports a terminal state.

    Returns the successful snapshot. Raises PollTimeoutError when every
    attempt came back pending, the poller's failure_error on a terminal
    failure, UnexpectedStatusError on an unknown status, and lets errors
    from ``fetch_status`` or ``precondition`` propagate unchanged.
    Keyword ``options`` are passed to Poller.
    """
    return await Poller(fetch_status, classify, policy, **options).run(handle)


def wait_for_completion(
    handle: str,
    fetch_status: Callable[[str], Any],
    classify: Classifier,
    policy: Optional[PollPolicy] = None,
    **options: Any,
) -> Any:
    """Blocking twin of ``await_completion``."""
    return Poller(fetch_status, classify, policy, **options).run_sync(handle)
