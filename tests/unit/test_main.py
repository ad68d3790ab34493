"""Tests for the stdio entrypoint: startup, signals, broken pipes."""

import json
import logging
import os
import subprocess
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from raindrop_mcp import main as entry
from raindrop_mcp.tool_dispatcher import ServerState, ToolDispatcher

PROJECT_ROOT = Path(__file__).resolve().parents[2]


@pytest.fixture
def dispatcher(packaged_registry):
    return ToolDispatcher(AsyncMock(), packaged_registry)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


# ── Logging ────────────────────────────────────────────────────────────


class TestConfigureLogging:
    def test_logs_to_stderr(self, restore_root_logger):
        entry.configure_logging("debug")
        root = restore_root_logger
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert root.handlers[0].stream is sys.stderr


# ── Broken pipe ────────────────────────────────────────────────────────


class TestIsBrokenPipe:
    def test_plain(self):
        assert entry.is_broken_pipe(BrokenPipeError())

    def test_group_of_broken_pipes(self):
        group = ExceptionGroup("g", [BrokenPipeError(), ExceptionGroup("inner", [BrokenPipeError()])])
        assert entry.is_broken_pipe(group)

    def test_mixed_group(self):
        assert not entry.is_broken_pipe(ExceptionGroup("g", [BrokenPipeError(), ValueError()]))

    def test_other_error(self):
        assert not entry.is_broken_pipe(ConnectionResetError())


class TestExceptionHandler:
    def test_logs_and_keeps_running(self, caplog):
        exit_fn = MagicMock()
        handler = entry._make_exception_handler(exit_fn)
        with caplog.at_level("ERROR", logger="raindrop_mcp.main"):
            handler(MagicMock(), {"message": "Task exception was never retrieved", "exception": ValueError("x")})
        exit_fn.assert_not_called()
        assert "Task exception was never retrieved" in caplog.text

    def test_broken_pipe_exits_cleanly(self):
        exit_fn = MagicMock()
        handler = entry._make_exception_handler(exit_fn)
        with patch.object(entry, "_detach_stdout") as detach:
            handler(MagicMock(), {"message": "write failed", "exception": BrokenPipeError()})
        detach.assert_called_once()
        exit_fn.assert_called_once_with(0)

    def test_context_without_exception(self, caplog):
        exit_fn = MagicMock()
        handler = entry._make_exception_handler(exit_fn)
        with caplog.at_level("ERROR", logger="raindrop_mcp.main"):
            handler(MagicMock(), {"message": "something odd"})
        exit_fn.assert_not_called()
        assert "something odd" in caplog.text


class TestProtocolStdout:
    async def test_writes_pass_through(self):
        stream, exit_fn = AsyncMock(), MagicMock()
        stdout = entry._ExitOnBrokenPipe(stream, exit_fn)
        await stdout.write("{}\n")
        await stdout.flush()
        stream.write.assert_awaited_once_with("{}\n")
        stream.flush.assert_awaited_once()
        exit_fn.assert_not_called()

    async def test_broken_write_exits_immediately(self, caplog):
        stream, exit_fn = AsyncMock(), MagicMock()
        stream.write.side_effect = BrokenPipeError()
        stdout = entry._ExitOnBrokenPipe(stream, exit_fn)
        with patch.object(entry, "_detach_stdout") as detach, caplog.at_level("INFO", logger="raindrop_mcp.main"):
            await stdout.write("{}\n")
        detach.assert_called_once()
        exit_fn.assert_called_once_with(0)
        assert "Client disconnected" in caplog.text

    async def test_broken_flush_exits_immediately(self):
        stream, exit_fn = AsyncMock(), MagicMock()
        stream.flush.side_effect = BrokenPipeError()
        stdout = entry._ExitOnBrokenPipe(stream, exit_fn)
        with patch.object(entry, "_detach_stdout"):
            await stdout.flush()
        exit_fn.assert_called_once_with(0)

    async def test_other_os_errors_propagate(self):
        stream, exit_fn = AsyncMock(), MagicMock()
        stream.flush.side_effect = OSError("disk full")
        stdout = entry._ExitOnBrokenPipe(stream, exit_fn)
        with pytest.raises(OSError, match="disk full"):
            await stdout.flush()
        exit_fn.assert_not_called()


class TestClientDisconnect:
    """Run the real entrypoint and drop its stdout while stdin stays open."""

    def test_exits_0_when_client_stops_reading(self, tmp_path):
        env = {**os.environ, "RAINDROP_API_TOKEN": "test-token"}
        initialize = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "initialize",
            "params": {
                "protocolVersion": "2025-03-26",
                "capabilities": {},
                "clientInfo": {"name": "test-client", "version": "0"},
            },
        }
        log_path = tmp_path / "stderr.log"
        with open(log_path, "wb") as stderr:
            proc = subprocess.Popen(
                [sys.executable, "-m", "raindrop_mcp"],
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=stderr,
                cwd=PROJECT_ROOT,
                env=env,
            )
            try:
                proc.stdout.close()
                proc.stdin.write((json.dumps(initialize) + "\n").encode())
                proc.stdin.flush()
                assert proc.wait(timeout=15) == 0
            finally:
                if proc.poll() is None:
                    proc.kill()
                    proc.wait()
                proc.stdin.close()
        assert "Client disconnected (broken pipe)" in log_path.read_text()


# ── Graceful shutdown ──────────────────────────────────────────────────


class TestGracefulShutdown:
    def test_signal_starts_drain_and_schedules_exit(self, dispatcher):
        loop, exit_fn = MagicMock(), MagicMock()
        entry._begin_graceful_shutdown("SIGTERM", dispatcher, loop, 5.0, exit_fn)
        assert dispatcher.state is ServerState.SHUTTING_DOWN
        loop.call_later.assert_called_once_with(5.0, entry._force_exit, exit_fn)
        exit_fn.assert_not_called()

    def test_scheduled_exit_uses_status_zero(self, dispatcher):
        loop, exit_fn = MagicMock(), MagicMock()
        entry._begin_graceful_shutdown("SIGINT", dispatcher, loop, 5.0, exit_fn)
        delay, callback, *args = loop.call_later.call_args.args
        callback(*args)
        exit_fn.assert_called_once_with(0)

    def test_repeated_signal_does_not_reschedule(self, dispatcher):
        loop, exit_fn = MagicMock(), MagicMock()
        entry._begin_graceful_shutdown("SIGINT", dispatcher, loop, 5.0, exit_fn)
        entry._begin_graceful_shutdown("SIGINT", dispatcher, loop, 5.0, exit_fn)
        assert loop.call_later.call_count == 1

    def test_install_handlers_tolerates_unsupported_loop(self, dispatcher):
        loop = MagicMock()
        loop.add_signal_handler.side_effect = NotImplementedError
        entry._install_signal_handlers(loop, dispatcher, 5.0)
        assert loop.add_signal_handler.call_count == 1

    def test_install_handlers_registers_sigint_and_sigterm(self, dispatcher):
        import signal

        loop = MagicMock()
        entry._install_signal_handlers(loop, dispatcher, 5.0)
        registered = [c.args[0] for c in loop.add_signal_handler.call_args_list]
        assert registered == [signal.SIGINT, signal.SIGTERM]


# ── main() ─────────────────────────────────────────────────────────────


class TestMain:
    @pytest.fixture(autouse=True)
    def _no_logging_setup(self):
        with patch.object(entry, "configure_logging"):
            yield

    def test_missing_token_exits_1(self, caplog):
        with caplog.at_level("CRITICAL", logger="raindrop_mcp.main"):
            with pytest.raises(SystemExit) as exc_info:
                entry.main()
        assert exc_info.value.code == 1
        assert "RAINDROP_API_TOKEN environment variable is required" in caplog.text

    def test_serves_with_loaded_settings(self, monkeypatch):
        monkeypatch.setenv("RAINDROP_API_TOKEN", "abc")
        with patch.object(entry, "serve", new_callable=AsyncMock) as serve:
            entry.main()
        (settings,) = serve.await_args.args
        assert settings.API_TOKEN == "abc"

    @pytest.mark.parametrize(
        "error",
        [BrokenPipeError(), ExceptionGroup("tasks", [BrokenPipeError()])],
    )
    def test_broken_pipe_exits_normally(self, monkeypatch, error):
        monkeypatch.setenv("RAINDROP_API_TOKEN", "abc")
        with (
            patch.object(entry, "serve", new_callable=AsyncMock, side_effect=error),
            patch.object(entry, "_detach_stdout") as detach,
        ):
            entry.main()
        detach.assert_called_once()

    def test_keyboard_interrupt_exits_normally(self, monkeypatch):
        monkeypatch.setenv("RAINDROP_API_TOKEN", "abc")
        with (
            patch.object(entry, "serve"),
            patch.object(entry.asyncio, "run", side_effect=KeyboardInterrupt),
        ):
            entry.main()

    def test_fatal_error_exits_1(self, monkeypatch):
        monkeypatch.setenv("RAINDROP_API_TOKEN", "abc")
        with patch.object(entry, "serve", new_callable=AsyncMock, side_effect=RuntimeError("boom")):
            with pytest.raises(SystemExit) as exc_info:
                entry.main()
        assert exc_info.value.code == 1

    def test_invalid_log_level_exits_1(self, monkeypatch, caplog):
        monkeypatch.setenv("RAINDROP_API_TOKEN", "abc")
        monkeypatch.setenv("RAINDROP_LOG_LEVEL", "verbose")
        with (
            patch.object(entry, "serve", new_callable=AsyncMock) as serve,
            caplog.at_level("CRITICAL", logger="raindrop_mcp.main"),
        ):
            with pytest.raises(SystemExit) as exc_info:
                entry.main()
        assert exc_info.value.code == 1
        assert "Invalid configuration" in caplog.text
        serve.assert_not_awaited()
