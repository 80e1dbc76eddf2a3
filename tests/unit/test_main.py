"""Unit tests for application wiring in talk2me.main."""

import asyncio
import logging
import pytest
from pathlib import Path
from unittest.mock import Mock, patch

from talk2me.config import Talk2MeConfig
from talk2me.main import Server, setup_logging, main


def bare_server():
    """A Server with collaborators replaced by mocks, bypassing config loading."""
    server = Server.__new__(Server)
    server.state_machine = Mock()
    server.playback = None
    server.should_exit = False
    return server


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.mark.unit
class TestSetupLogging:
    """Test cases for logging configuration."""

    def test_file_and_console_handlers(self, temp_data_dir, restore_root_logger):
        log_path = Path(temp_data_dir) / "logs" / "talk2me.log"
        config_path = Path(temp_data_dir) / "talk2me.yaml"
        config_path.write_text(f"logging:\n  file_path: {log_path}\n  console_output: true\n")

        setup_logging(Talk2MeConfig(str(config_path)), "DEBUG")

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 2
        assert log_path.exists()

    def test_console_output_disabled(self, temp_data_dir, restore_root_logger):
        config_path = Path(temp_data_dir) / "talk2me.yaml"
        config_path.write_text("logging:\n  file_path: app.log\n  console_output: false\n")

        setup_logging(Talk2MeConfig(str(config_path)), "INFO")

        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.FileHandler)


@pytest.mark.unit
class TestServerPlayback:
    """Test cases for forwarding playback outcomes to the state machine."""

    def test_natural_end_forwarded(self):
        server = bare_server()
        playback = Mock()
        server.playback = playback

        server._on_playback_finished(playback, paused=False)

        server.state_machine.on_playback_ended.assert_called_once()
        assert server.playback is None

    def test_pause_forwarded(self):
        server = bare_server()
        playback = Mock()
        server.playback = playback

        server._on_playback_finished(playback, paused=True)

        server.state_machine.on_playback_paused.assert_called_once()

    def test_superseded_playback_ignored(self):
        server = bare_server()
        old, current = Mock(), Mock()
        server.playback = current

        server._on_playback_finished(old, paused=True)

        server.state_machine.on_playback_paused.assert_not_called()
        assert server.playback is current

    def test_toggle_recording(self):
        server = bare_server()
        server.state_machine.is_recording = False
        server._toggle_recording()
        server.state_machine.start_recording.assert_called_once()

        server.state_machine.is_recording = True
        server._toggle_recording()
        server.state_machine.stop_recording.assert_called_once()


@pytest.mark.unit
class TestServerStartup:
    """Test cases for startup outcomes reported by the state machine."""

    def _server(self):
        server = bare_server()
        server.manual = False
        server.startup_failed = False
        server.view = Mock()
        server.cleanup = Mock()
        server.loop = asyncio.new_event_loop()
        return server

    def test_calibration_failure_ends_run(self):
        """Test a failed calibration stops the loop and reports failure."""
        server = self._server()

        def fail_calibration(on_ready, on_failed):
            on_failed("Ambient calibration failed: no samples")
            return True

        server.state_machine.initialize.side_effect = fail_calibration
        try:
            assert server.run(0) is False
        finally:
            server.loop.close()

        assert server.should_exit is True
        server.cleanup.assert_called_once()

    def test_capture_failure_ends_run(self):
        server = self._server()
        server.state_machine.initialize.return_value = False
        try:
            assert server.run(0) is False
        finally:
            server.loop.close()

        server.cleanup.assert_called_once()

    def test_duration_elapses(self):
        server = self._server()
        server.state_machine.initialize.return_value = True
        try:
            assert server.run(0.2) is True
        finally:
            server.loop.close()

        server.cleanup.assert_called_once()


@pytest.mark.unit
class TestMain:
    """Test cases for the command line entry point."""

    def test_version(self, capsys):
        with patch('sys.argv', ['talk2me', '--version']):
            with pytest.raises(SystemExit) as exc_info:
                main()

        assert exc_info.value.code == 0
        assert "Talk2Me v0.1.0" in capsys.readouterr().out

    def test_missing_config_exits_with_error(self, temp_data_dir, capsys):
        missing = str(Path(temp_data_dir) / "absent.yaml")
        with patch('sys.argv', ['talk2me', '--config', missing]):
            with pytest.raises(SystemExit) as exc_info:
                main()

        assert exc_info.value.code == 1
        assert "Configuration file not found" in capsys.readouterr().out
