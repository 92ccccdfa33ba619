"""
Bounded exponential-backoff polling.

``wait_for_status`` polls a status source until it reports the target status,
sleeping between polls with a delay that grows geometrically up to a cap.
The whole wait runs under the schedule's deadline and is cancellable at every
suspension point.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Collection, Iterator

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..core.exceptions import ConvergenceTimeout, StatusPollError, UnexpectedStateError
from .status import ServiceStatus

logger = logging.getLogger(__name__)

StatusPoll = Callable[[], Awaitable[ServiceStatus]]
Sleep = Callable[[float], Awaitable[None]]

# Statuses a service may legitimately report on its way to the target.
TRANSITIONAL_STATUSES: dict[ServiceStatus, frozenset[ServiceStatus]] = {
    ServiceStatus.STOPPED: frozenset({ServiceStatus.STOP_PENDING}),
    ServiceStatus.RUNNING: frozenset({ServiceStatus.START_PENDING}),
    ServiceStatus.PAUSED: frozenset({ServiceStatus.PAUSE_PENDING}),
}


class BackoffSchedule(BaseModel):
    """Delay schedule for convergence polling.

    Delays start at ``initial_delay``, grow by ``multiplier`` after every
    poll and never exceed ``max_delay``. ``deadline`` bounds the whole wait
    in seconds; ``None`` leaves it to the caller.
    """
    model_config = ConfigDict(frozen=True)

    initial_delay: float = Field(default=0.1, gt=0)
    multiplier: float = Field(default=2.0, ge=1)
    max_delay: float = Field(default=5.0, gt=0)
    deadline: float | None = Field(default=30.0, gt=0)

    @model_validator(mode='after')
    def validate_delays(self):
        if self.max_delay < self.initial_delay:
            raise ValueError("max_delay must not be lower than initial_delay")
        return self

    def next_delay(self, delay: float) -> float:
        """Delay to use after a poll that slept for ``delay``."""
        return min(delay * self.multiplier, self.max_delay)

    def delays(self) -> Iterator[float]:
        """Infinite sequence of delays: initial * multiplier**n, capped."""
        delay = self.initial_delay
        while True:
            yield delay
            delay = self.next_delay(delay)


DEFAULT_SCHEDULE = BackoffSchedule()


async def wait_for_status(
    poll: StatusPoll,
    target: ServiceStatus,
    schedule: BackoffSchedule = DEFAULT_SCHEDULE,
    transitional: Collection[ServiceStatus] | None = None,
    *,
    sleep: Sleep = asyncio.sleep,
) -> int:
    """
    Poll until ``target`` is observed.

    Args:
        poll: Coroutine function returning the current status
        target: Status to wait for
        schedule: Delays and deadline for the wait
        transitional: Statuses that justify another poll; defaults to the
            pending status leading to ``target``
        sleep: Sleep coroutine, replaceable in tests

    Returns:
        Number of polls performed

    Raises:
        StatusPollError: ``poll`` raised; the wait is not retried
        UnexpectedStateError: a status outside ``transitional`` was observed
        ConvergenceTimeout: the deadline elapsed before ``target`` was observed
    """
    if transitional is None:
        transitional = TRANSITIONAL_STATUSES.get(target, frozenset())

    polls = 0
    delay = schedule.initial_delay
    last_status: ServiceStatus | None = None

    try:
        async with asyncio.timeout(schedule.deadline):
            while True:
                await sleep(delay)

                try:
                    status = await poll()
                except Exception as exc:
                    raise StatusPollError(
                        f"Failed to poll status while waiting for {target.name}: {exc}",
                        details={"target_status": target.name, "polls": polls + 1},
                    ) from exc

                polls += 1
                last_status = status
                logger.debug(
                    f"Poll {polls}: {status.name} (waiting for {target.name}, slept {delay:.3f}s)",
                    extra={"event_type": "convergence_poll", "status": status.name, "delay": delay}
                )

                if status == target:
                    return polls

                if status not in transitional:
                    raise UnexpectedStateError(
                        f"Unexpected status {status.name} while waiting for {target.name}",
                        target_status=target.name,
                        observed_status=status.name,
                    )

                delay = schedule.next_delay(delay)
    except TimeoutError as exc:
        raise ConvergenceTimeout(
            f"Status {target.name} not reached within {schedule.deadline}s",
            target_status=target.name,
            last_status=last_status.name if last_status is not None else None,
        ) from exc
