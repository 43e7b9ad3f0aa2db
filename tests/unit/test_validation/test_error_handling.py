"""
Unit tests for the error taxonomy and error handling helpers.
"""

import logging

import pytest
from unittest.mock import Mock

from buildpilot.validation import (
    AuthenticationError,
    BuildPilotError,
    ChannelError,
    ConnectionFailedError,
    ErrorSeverity,
    PersistenceError,
    ProcessFailedError,
    RemoteEnvironmentError,
    TransportError,
    handle_cli_error,
    handle_error,
)


@pytest.mark.unit
class TestErrorTaxonomy:
    """Test cases for the exception hierarchy."""

    def test_transport_errors_share_a_base(self):
        for error in (
            ConnectionFailedError("x"),
            AuthenticationError("x"),
            ChannelError("x"),
        ):
            assert isinstance(error, TransportError)
            assert isinstance(error, BuildPilotError)

    def test_kinds_are_distinct(self):
        kinds = {
            cls.kind
            for cls in (
                ConnectionFailedError,
                AuthenticationError,
                ChannelError,
                RemoteEnvironmentError,
                ProcessFailedError,
                PersistenceError,
            )
        }
        assert len(kinds) == 6

    def test_reason_and_phase_carried(self):
        assert ConnectionFailedError("x", reason=ConnectionFailedError.HANDSHAKE).reason == "handshake"
        assert AuthenticationError("x", reason=AuthenticationError.KEY_NOT_FOUND).reason == "key_not_found"
        assert ChannelError("x", phase=ChannelError.OPEN).phase == "open"

    def test_process_failed_keeps_exit_code(self):
        error = ProcessFailedError("rsync failed", exit_code=23, output="partial transfer")

        assert error.exit_code == 23
        assert error.output == "partial transfer"


@pytest.mark.unit
class TestHandleError:
    """Test cases for the logging helpers."""

    def test_reraise(self):
        with pytest.raises(ValueError):
            handle_error(ValueError("boom"), "testing", logger=Mock())

    def test_logs_at_requested_severity(self):
        mock_logger = Mock(spec=logging.Logger)

        handle_error(ValueError("boom"), "testing", severity=ErrorSeverity.WARNING,
                     reraise=False, logger=mock_logger)

        mock_logger.warning.assert_called_once()
        assert "testing" in mock_logger.warning.call_args[0][0]

    def test_string_severity(self):
        mock_logger = Mock(spec=logging.Logger)

        handle_error(ValueError("boom"), "testing", severity="INFO", reraise=False, logger=mock_logger)

        mock_logger.info.assert_called_once()

    def test_cli_error_exits(self):
        with pytest.raises(SystemExit) as exc_info:
            handle_cli_error(ValueError("bad"), "parsing", exit_code=2, logger=Mock())

        assert exc_info.value.code == 2
