"""Unit tests for status query output classification."""

import pytest

from oaServiceControl.control.status import ServiceStatus, parse_status


class TestParseStatus:
    """Test parse_status keyword matching."""

    @pytest.mark.parametrize("state,expected", [
        ("RUNNING", ServiceStatus.RUNNING),
        ("STOPPED", ServiceStatus.STOPPED),
        ("START_PENDING", ServiceStatus.START_PENDING),
        ("STOP_PENDING", ServiceStatus.STOP_PENDING),
        ("CONTINUE_PENDING", ServiceStatus.CONTINUE_PENDING),
        ("PAUSE_PENDING", ServiceStatus.PAUSE_PENDING),
        ("PAUSED", ServiceStatus.PAUSED),
    ])
    def test_query_output_states(self, sc_output, state, expected):
        """Test every state token in realistic sc query output."""
        assert parse_status(sc_output("Spooler", state)) == expected

    def test_stop_pending_not_read_as_stopped(self):
        """Test that the pending token wins over its stable prefix."""
        assert parse_status("STATE : 3 STOP_PENDING") == ServiceStatus.STOP_PENDING
        assert parse_status("STATE : 6 PAUSE_PENDING") == ServiceStatus.PAUSE_PENDING

    def test_bare_running(self):
        assert parse_status("RUNNING") == ServiceStatus.RUNNING

    @pytest.mark.parametrize("output", ["", None, "garbage", "The service is up"])
    def test_unrecognized_output_is_unknown(self, output):
        """Test that unrecognized output degrades to UNKNOWN."""
        assert parse_status(output) == ServiceStatus.UNKNOWN

    def test_non_string_is_unknown(self):
        assert parse_status(42) == ServiceStatus.UNKNOWN

    def test_matching_is_case_sensitive(self):
        """Test that lowercase words in service names are not taken as states."""
        assert parse_status("SERVICE_NAME: running-agent") == ServiceStatus.UNKNOWN


class TestServiceStatus:
    """Test ServiceStatus helpers."""

    def test_codes_are_stable(self):
        assert [int(s) for s in ServiceStatus] == [0, 1, 2, 3, 4, 5, 6, 7]

    def test_labels(self):
        assert ServiceStatus.RUNNING.label == "Running"
        assert ServiceStatus.STOPPED.label == "Stopped"
        assert ServiceStatus.UNKNOWN.label == "Unknown"

    def test_pending(self):
        assert ServiceStatus.STOP_PENDING.is_pending
        assert not ServiceStatus.STOPPED.is_pending
