"""
Service controller.

Implements stop, start and restart as status-driven state machines over a
remote command executor:

1. query the current status once,
2. pick an action from the operation's transition table,
3. issue the action command and check its output for an embedded failure,
4. (restart) wait for the intermediate status with exponential backoff,
5. write the resulting status to the cache on a best-effort basis.

The controller holds no per-service state. Operations on the same service
are not serialized here; callers that need that use ``ServiceLockRegistry``.
"""

import asyncio
import logging

from ..core.config_schema import ControlConfig
from ..core.exceptions import (
    CacheWriteFailure,
    ConvergenceTimeout,
    LogicalCommandFailure,
    StatusPollError,
    TransportError,
    UnexpectedStateError,
)
from ..core.interfaces import RemoteCommandExecutor, StatusSink
from ..models.operations import (
    ErrorKind,
    OperationKind,
    OperationOutcome,
    ServiceIdentity,
)
from .backoff import Sleep, wait_for_status
from .commands import SC_QUERY, SC_START, SC_STOP, build_command
from .outcome import classify_command_output
from .status import ServiceStatus, parse_status

logger = logging.getLogger(__name__)


class ServiceController:
    """Runs stop/start/restart operations against one remote service."""

    def __init__(self, config: ControlConfig | None = None, *, sleep: Sleep = asyncio.sleep):
        self.config = config or ControlConfig()
        self.schedule = self.config.backoff_schedule()
        self._sleep = sleep
        self._handlers = {
            OperationKind.STOP: self._stop_from,
            OperationKind.START: self._start_from,
            OperationKind.RESTART: self._restart_from,
        }

    async def execute(
        self,
        kind: OperationKind,
        identity: ServiceIdentity,
        executor: RemoteCommandExecutor,
        sink: StatusSink,
    ) -> OperationOutcome:
        """
        Run one operation and return its outcome.

        Transport failures, rejected commands and convergence problems are
        reported through the returned outcome; status cache write failures
        are logged and never change it.
        """
        kind = OperationKind(kind)
        extra = {"service_name": identity.service_name, "operation": kind.value}

        try:
            status = await self.query_status(identity, executor)
        except TransportError as exc:
            logger.warning(
                f"Failed to query status of service `{identity.label}`: {exc.message}",
                extra={**extra, "event_type": "status_query_failed"}
            )
            return OperationOutcome.failed(
                ErrorKind.TRANSPORT,
                f"Failed to get status of service `{identity.label}`",
                details=exc.details,
            )

        logger.debug(
            f"Service `{identity.label}` is {status.name}, running {kind.value}",
            extra={**extra, "event_type": "operation_start", "observed_status": status.name}
        )

        outcome = await self._handlers[kind](identity, executor, sink, status)

        log_level = logging.INFO if outcome.is_success else logging.WARNING
        logger.log(
            log_level,
            f"{kind.value.capitalize()} of service `{identity.label}`: {outcome.message}",
            extra={
                **extra,
                "event_type": "operation_complete",
                "outcome": outcome.kind.value,
                "observed_status": status.name,
            }
        )
        return outcome

    async def stop(self, identity: ServiceIdentity, executor: RemoteCommandExecutor, sink: StatusSink) -> OperationOutcome:
        return await self.execute(OperationKind.STOP, identity, executor, sink)

    async def start(self, identity: ServiceIdentity, executor: RemoteCommandExecutor, sink: StatusSink) -> OperationOutcome:
        return await self.execute(OperationKind.START, identity, executor, sink)

    async def restart(self, identity: ServiceIdentity, executor: RemoteCommandExecutor, sink: StatusSink) -> OperationOutcome:
        return await self.execute(OperationKind.RESTART, identity, executor, sink)

    async def query_status(self, identity: ServiceIdentity, executor: RemoteCommandExecutor) -> ServiceStatus:
        """Query and classify the current status of a service."""
        output = await self._run(
            executor,
            build_command(SC_QUERY, identity.service_name),
            self.config.status_timeout,
        )
        return parse_status(output)

    async def refresh_statuses(
        self,
        identities: list[ServiceIdentity],
        executor: RemoteCommandExecutor,
        sink: StatusSink,
    ) -> dict[str, ServiceStatus | None]:
        """
        Query each service in turn and resync its cached status label.

        A failed query maps that service to None and leaves its cached label
        untouched; the remaining services are still refreshed.
        """
        results: dict[str, ServiceStatus | None] = {}

        for identity in identities:
            try:
                status = await self.query_status(identity, executor)
            except TransportError as exc:
                logger.warning(
                    f"Failed to refresh status of service `{identity.label}`: {exc.message}",
                    extra={"service_name": identity.service_name, "event_type": "status_refresh_failed"}
                )
                results[identity.service_name] = None
                continue

            await self.record_status(sink, identity, status)
            results[identity.service_name] = status

        refreshed = sum(1 for status in results.values() if status is not None)
        logger.info(
            f"Refreshed {refreshed} of {len(results)} service statuses",
            extra={"event_type": "status_refresh_complete", "refreshed": refreshed, "total": len(results)}
        )
        return results

    # Transition tables

    async def _stop_from(self, identity, executor, sink, status: ServiceStatus) -> OperationOutcome:
        name = identity.label

        if status in (ServiceStatus.RUNNING, ServiceStatus.START_PENDING):
            failure = await self._perform(SC_STOP, identity, executor, f"Failed to stop service `{name}`")
            if failure is not None:
                return failure
            await self.record_status(sink, identity, ServiceStatus.STOPPED)
            return OperationOutcome.succeeded(ServiceStatus.STOPPED, f"Service `{name}` stopped")

        if status == ServiceStatus.STOPPED:
            # Resync the cache even though nothing changed remotely
            await self.record_status(sink, identity, ServiceStatus.STOPPED)
            return OperationOutcome.already_in_target_state(
                f"Service `{name}` is already stopped", ServiceStatus.STOPPED
            )

        if status in (ServiceStatus.STOP_PENDING, ServiceStatus.PAUSE_PENDING):
            return OperationOutcome.conflict(f"Service `{name}` is already stopping", status)

        return OperationOutcome.invalid_state(
            f"Service `{name}` is in a state that does not allow stopping", status
        )

    async def _start_from(self, identity, executor, sink, status: ServiceStatus) -> OperationOutcome:
        name = identity.label

        if status in (ServiceStatus.STOPPED, ServiceStatus.STOP_PENDING):
            failure = await self._perform(SC_START, identity, executor, f"Failed to start service `{name}`")
            if failure is not None:
                return failure
            await self.record_status(sink, identity, ServiceStatus.RUNNING)
            return OperationOutcome.succeeded(ServiceStatus.RUNNING, f"Service `{name}` started")

        if status == ServiceStatus.RUNNING:
            await self.record_status(sink, identity, ServiceStatus.RUNNING)
            return OperationOutcome.already_in_target_state(
                f"Service `{name}` is already running", ServiceStatus.RUNNING
            )

        if status in (ServiceStatus.START_PENDING, ServiceStatus.PAUSE_PENDING):
            return OperationOutcome.conflict(f"Service `{name}` is already starting", status)

        return OperationOutcome.invalid_state(
            f"Service `{name}` is in a state that does not allow starting", status
        )

    async def _restart_from(self, identity, executor, sink, status: ServiceStatus) -> OperationOutcome:
        name = identity.label

        if status == ServiceStatus.RUNNING:
            failure = await self._perform(SC_STOP, identity, executor, f"Failed to stop service `{name}`")
            if failure is not None:
                return failure

            failure = await self._wait_stopped(identity, executor)
            if failure is not None:
                return failure
            await self.record_status(sink, identity, ServiceStatus.STOPPED)

            failure = await self._perform(SC_START, identity, executor, f"Failed to start service `{name}`")
            if failure is not None:
                return failure
            await self.record_status(sink, identity, ServiceStatus.RUNNING)
            return OperationOutcome.succeeded(ServiceStatus.RUNNING, f"Service `{name}` restarted")

        if status == ServiceStatus.STOPPED:
            failure = await self._perform(SC_START, identity, executor, f"Failed to start service `{name}`")
            if failure is not None:
                return failure
            await self.record_status(sink, identity, ServiceStatus.RUNNING)
            return OperationOutcome.succeeded(ServiceStatus.RUNNING, f"Service `{name}` restarted")

        if status in (ServiceStatus.START_PENDING, ServiceStatus.STOP_PENDING):
            return OperationOutcome.conflict(
                f"Service `{name}` is already changing state, try again later", status
            )

        return OperationOutcome.invalid_state(
            f"Service `{name}` is in a state that does not allow restarting", status
        )

    # Steps

    async def _run(self, executor: RemoteCommandExecutor, command: str, timeout: float) -> str:
        """Run one remote command under its own deadline."""
        try:
            async with asyncio.timeout(timeout):
                return await executor.run_command(command)
        except TransportError:
            raise
        except TimeoutError as exc:
            raise TransportError(f"Command timed out after {timeout}s", command=command) from exc
        except OSError as exc:
            raise TransportError(f"Command failed: {exc}", command=command) from exc
        except Exception as exc:
            raise TransportError(
                f"Command failed: {type(exc).__name__}: {exc}", command=command
            ) from exc

    async def _issue(self, verb: str, identity: ServiceIdentity, executor: RemoteCommandExecutor) -> None:
        """Issue an action command and check its output for a reported failure."""
        command = build_command(verb, identity.service_name)
        output = await self._run(executor, command, self.config.action_timeout)

        detail = classify_command_output(output)
        if detail is not None:
            raise LogicalCommandFailure(
                f"Service `{identity.label}` rejected {verb}: {detail}",
                reason=str(detail),
                code=detail.code,
                details={"command": command, "raw_reason": detail.raw_reason},
            )

    async def _perform(
        self,
        verb: str,
        identity: ServiceIdentity,
        executor: RemoteCommandExecutor,
        failure_message: str,
    ) -> OperationOutcome | None:
        """Issue an action command; return a failed outcome or None on success."""
        extra = {"service_name": identity.service_name, "command": verb}
        try:
            await self._issue(verb, identity, executor)
        except TransportError as exc:
            logger.warning(
                f"{failure_message}: {exc.message}",
                extra={**extra, "event_type": "command_transport_error"}
            )
            return OperationOutcome.failed(ErrorKind.TRANSPORT, failure_message, details=exc.details)
        except LogicalCommandFailure as exc:
            logger.warning(
                f"{failure_message}: {exc.reason}",
                extra={**extra, "event_type": "command_rejected", "code": exc.code}
            )
            return OperationOutcome.failed(
                ErrorKind.COMMAND_REJECTED,
                f"{failure_message}: {exc.reason}",
                details=exc.details,
            )
        return None

    async def _wait_stopped(self, identity: ServiceIdentity, executor: RemoteCommandExecutor) -> OperationOutcome | None:
        """Wait for the service to report STOPPED; return a failed outcome or None."""
        name = identity.label

        async def poll() -> ServiceStatus:
            return await self.query_status(identity, executor)

        try:
            polls = await wait_for_status(poll, ServiceStatus.STOPPED, self.schedule, sleep=self._sleep)
        except ConvergenceTimeout as exc:
            logger.warning(exc.message, extra={"service_name": identity.service_name, "event_type": "convergence_timeout"})
            return OperationOutcome.failed(
                ErrorKind.CONVERGENCE_TIMEOUT,
                f"Service `{name}` did not stop in the expected time",
                details=exc.details,
            )
        except UnexpectedStateError as exc:
            logger.warning(exc.message, extra={"service_name": identity.service_name, "event_type": "unexpected_state"})
            return OperationOutcome.failed(
                ErrorKind.UNEXPECTED_STATE,
                f"Service `{name}` entered unexpected state {exc.observed_status} while stopping",
                details=exc.details,
            )
        except StatusPollError as exc:
            logger.warning(exc.message, extra={"service_name": identity.service_name, "event_type": "status_poll_failed"})
            return OperationOutcome.failed(
                ErrorKind.TRANSPORT,
                f"Failed to get status of service `{name}` while waiting for it to stop",
                details=exc.details,
            )

        logger.debug(f"Service `{name}` stopped after {polls} polls")
        return None

    async def record_status(self, sink: StatusSink, identity: ServiceIdentity, status: ServiceStatus) -> None:
        """Best-effort status cache update; failures are logged only."""
        try:
            await sink.change_service_status(identity.service_name, status.label)
        except Exception as exc:
            failure = CacheWriteFailure(
                f"Failed to update cached status of service `{identity.label}` to {status.label}: {exc}",
                service_name=identity.service_name,
            )
            logger.warning(
                failure.message,
                extra={
                    "event_type": "cache_write_failed",
                    "error_code": failure.error_code,
                    "service_name": identity.service_name,
                    "status": status.label,
                }
            )
