"""
Service status classification.

Maps the free-text output of a status query (``sc query``) to a closed set of
status codes. Classification is a pure function and never raises: output
that carries no recognizable state degrades to ``ServiceStatus.UNKNOWN``.
"""

from enum import IntEnum


class ServiceStatus(IntEnum):
    """Canonical service status codes."""
    UNKNOWN = 0
    RUNNING = 1
    STOPPED = 2
    START_PENDING = 3
    STOP_PENDING = 4
    CONTINUE_PENDING = 5
    PAUSE_PENDING = 6
    PAUSED = 7

    @property
    def label(self) -> str:
        """Human readable label, as stored in the status cache."""
        return STATUS_LABELS[self]

    @property
    def is_pending(self) -> bool:
        return self in PENDING_STATUSES


# Specific tokens come first: "STOP_PENDING" must not be read as "STOPPED"
# and "PAUSE_PENDING" must not be read as "PAUSED".
STATUS_KEYWORDS: tuple[tuple[str, ServiceStatus], ...] = (
    ("START_PENDING", ServiceStatus.START_PENDING),
    ("STOP_PENDING", ServiceStatus.STOP_PENDING),
    ("CONTINUE_PENDING", ServiceStatus.CONTINUE_PENDING),
    ("PAUSE_PENDING", ServiceStatus.PAUSE_PENDING),
    ("RUNNING", ServiceStatus.RUNNING),
    ("STOPPED", ServiceStatus.STOPPED),
    ("PAUSED", ServiceStatus.PAUSED),
)

STATUS_LABELS: dict[ServiceStatus, str] = {
    ServiceStatus.UNKNOWN: "Unknown",
    ServiceStatus.RUNNING: "Running",
    ServiceStatus.STOPPED: "Stopped",
    ServiceStatus.START_PENDING: "Starting",
    ServiceStatus.STOP_PENDING: "Stopping",
    ServiceStatus.CONTINUE_PENDING: "Resuming",
    ServiceStatus.PAUSE_PENDING: "Pausing",
    ServiceStatus.PAUSED: "Paused",
}

PENDING_STATUSES = frozenset({
    ServiceStatus.START_PENDING,
    ServiceStatus.STOP_PENDING,
    ServiceStatus.CONTINUE_PENDING,
    ServiceStatus.PAUSE_PENDING,
})


def parse_status(raw_output: str | None) -> ServiceStatus:
    """
    Classify status query output.

    Args:
        raw_output: Text returned by the status query

    Returns:
        The status of the first matching keyword, ``UNKNOWN`` if none matches
    """
    if not raw_output or not isinstance(raw_output, str):
        return ServiceStatus.UNKNOWN

    for keyword, status in STATUS_KEYWORDS:
        if keyword in raw_output:
            return status

    return ServiceStatus.UNKNOWN
