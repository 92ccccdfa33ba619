"""Unit tests for failure detection in action command output."""

import pytest

from oaServiceControl.control.outcome import (
    UNKNOWN_ERROR_CODE,
    CommandErrorDetail,
    classify_command_output,
    describe_error_code,
)


class TestClassifyCommandOutput:
    """Test classify_command_output."""

    def test_already_running(self):
        """Test the failure sc prints when starting a running service."""
        output = (
            "[SC] StartService FAILED 1056:\r\n\r\n"
            "An instance of the service is already running.\r\n"
        )

        detail = classify_command_output(output)

        assert detail is not None
        assert detail.code == 1056
        assert detail.reason == "An instance of the service is already running"
        assert detail.raw_reason == "An instance of the service is already running."

    def test_unknown_code_uses_generic_description(self):
        detail = classify_command_output("[SC] ControlService FAILED 4242:\n\nSomething odd.")

        assert detail.code == 4242
        assert detail.reason == "Windows error code 4242"
        assert detail.raw_reason == "Something odd."

    def test_failed_marker_is_case_insensitive(self):
        detail = classify_command_output("OpenService failed 1060: missing")
        assert detail.code == 1060

    def test_error_without_code(self):
        """Test that a bare ERROR marker yields the unknown error code."""
        detail = classify_command_output("ERROR: service control manager unavailable")

        assert detail.code == UNKNOWN_ERROR_CODE
        assert detail.reason == "Unknown service error"

    def test_error_prefixed_token(self):
        """Test that ERROR inside a longer upper-case token is a failure."""
        detail = classify_command_output("[SC] ERROR_SERVICE_DISABLED")

        assert detail is not None
        assert detail.code == UNKNOWN_ERROR_CODE
        assert detail.raw_reason == "[SC] ERROR_SERVICE_DISABLED"

    def test_lower_case_error_is_not_a_marker(self):
        assert classify_command_output("error: access denied") is None

    @pytest.mark.parametrize("output", [
        "",
        None,
        "\r\nSERVICE_NAME: Spooler\r\n        STATE              : 2  START_PENDING\r\n",
        "SERVICE_NAME: ErrorReporting\r\n  STATE : 3  STOP_PENDING",
        "        WIN32_EXIT_CODE    : 0  (0x0)",
    ])
    def test_clean_output(self, output):
        """Test that normal command output reports no failure."""
        assert classify_command_output(output) is None

    def test_failed_wins_over_error(self):
        detail = classify_command_output("ERROR\n[SC] StopService FAILED 1062:\n\nThe service has not been started.")
        assert detail.code == 1062


class TestCommandErrorDetail:
    """Test CommandErrorDetail rendering."""

    def test_str_with_code(self):
        detail = CommandErrorDetail(code=5, reason="Access denied")
        assert str(detail) == "Access denied (code 5)"

    def test_str_without_code(self):
        detail = CommandErrorDetail(code=UNKNOWN_ERROR_CODE, reason="Unknown service error")
        assert str(detail) == "Unknown service error"

    def test_describe_known_code(self):
        assert describe_error_code(1060) == "The specified service does not exist as an installed service"
