"""
Detection of failures reported inside command output.

A start/stop command can complete on the transport level while the service
control manager refuses the request, e.g.::

    [SC] StartService FAILED 1056:

    An instance of the service is already running.

The executor reports no error in that case, so every action command output is
run through ``classify_command_output``.
"""

import re

from pydantic import BaseModel, ConfigDict

_FAILED_RE = re.compile(r"FAILED\s+(\d+)\s*:\s*(.*)", re.IGNORECASE | re.DOTALL)
# Upper-case only, so service names such as ErrorReporting are not misread
_ERROR_MARKER = "ERROR"

UNKNOWN_ERROR_CODE = -1

SERVICE_ERROR_CODES: dict[int, str] = {
    1: "Invalid function",
    2: "File not found",
    5: "Access denied",
    87: "Invalid parameter",
    1051: "A stop control has been sent to a service that other running services are dependent on",
    1052: "The requested control is not valid for this service",
    1053: "The service did not respond to the start or control request in a timely fashion",
    1056: "An instance of the service is already running",
    1058: "The service cannot be started, either because it is disabled or because it has no enabled devices associated with it",
    1060: "The specified service does not exist as an installed service",
    1061: "The service cannot accept control messages at this time",
    1062: "The service has not been started",
    1063: "The service process could not connect to the service controller",
    1064: "An exception occurred in the service when handling the control request",
    1065: "The database specified does not exist",
    1066: "The service has returned a service-specific error code",
    1067: "The process terminated unexpectedly",
    1068: "The dependency service or group failed to start",
    1069: "The service did not start due to a logon failure",
    1070: "After starting, the service hung in a start-pending state",
    1072: "The specified service has been marked for deletion",
    1075: "The dependency service does not exist or has been marked for deletion",
    1079: "The account specified for this service is different from the account specified for other services running in the same process",
    1083: "The executable program that this service is configured to run in does not implement the service",
    1084: "This service cannot be started in Safe Mode",
}


class CommandErrorDetail(BaseModel):
    """Failure reported by the remote service control manager."""
    model_config = ConfigDict(frozen=True)

    code: int
    reason: str
    raw_reason: str = ""

    def __str__(self) -> str:
        if self.code == UNKNOWN_ERROR_CODE:
            return self.reason
        return f"{self.reason} (code {self.code})"


def describe_error_code(code: int) -> str:
    """Translate a service control error code to its description."""
    return SERVICE_ERROR_CODES.get(code, f"Windows error code {code}")


def classify_command_output(output: str | None) -> CommandErrorDetail | None:
    """
    Inspect action command output for an embedded failure marker.

    Args:
        output: Text returned by a start/stop command

    Returns:
        None when the command reported no failure, otherwise the failure detail
    """
    if not output:
        return None

    text = output.strip()

    match = _FAILED_RE.search(text)
    if match:
        code = int(match.group(1))
        raw_reason = " ".join(match.group(2).split())
        return CommandErrorDetail(
            code=code,
            reason=describe_error_code(code),
            raw_reason=raw_reason,
        )

    if _ERROR_MARKER in text:
        return CommandErrorDetail(
            code=UNKNOWN_ERROR_CODE,
            reason="Unknown service error",
            raw_reason=" ".join(text.split()),
        )

    return None
