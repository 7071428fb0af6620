"""Tests for application startup and restart handling."""

import pytest

pytest.importorskip("PyQt5.QtWidgets")

import app as app_module  # noqa: E402
from backup_engine.errors import DatabaseMissingError  # noqa: E402
from utils.logger import AppLogger  # noqa: E402


class CallLog:
    def __init__(self):
        self.calls = []


class FakeWindow:
    def __init__(self, call_log):
        self.call_log = call_log

    def wait_for_worker(self, timeout_ms=10000):
        self.call_log.calls.append("wait_for_worker")
        return True


class FakeApp:
    def __init__(self, call_log):
        self.call_log = call_log

    def quit(self):
        self.call_log.calls.append("quit")


class FakeProcess:
    launched = []

    @staticmethod
    def startDetached(program, arguments):
        FakeProcess.launched.append(program)
        return True


class RaisingManager:
    def __init__(self, error):
        self.error = error

    def create_backup(self):
        raise self.error


@pytest.fixture
def logger():
    return AppLogger(log_to_file=False)


def test_restart_waits_for_worker_before_quitting(logger, monkeypatch):
    """The restore worker thread is joined before the event loop stops."""
    call_log = CallLog()
    monkeypatch.setattr(app_module, "QProcess", FakeProcess)
    restarter = app_module.RestartRequester(FakeApp(call_log), logger)
    restarter.window = FakeWindow(call_log)

    restarter.restart()

    assert call_log.calls == ["wait_for_worker", "quit"]
    assert FakeProcess.launched


def test_restart_without_window_still_quits(logger, monkeypatch):
    """Restart requested before the window exists just quits."""
    call_log = CallLog()
    monkeypatch.setattr(app_module, "QProcess", FakeProcess)
    restarter = app_module.RestartRequester(FakeApp(call_log), logger)

    restarter.restart()

    assert call_log.calls == ["quit"]


def test_startup_backup_logs_backup_error(logger):
    """A missing database at startup is logged and startup continues."""
    manager = RaisingManager(DatabaseMissingError("/nowhere/lessons.db"))

    assert app_module.run_startup_backup(manager, logger) is None
    assert any("Startup backup failed" in line for line in logger.get_logs())


def test_startup_backup_survives_unexpected_error(logger):
    """Errors outside the backup taxonomy never crash startup."""
    manager = RaisingManager(RuntimeError("engine exploded"))

    assert app_module.run_startup_backup(manager, logger) is None
    assert any("Unexpected error during startup backup" in line for line in logger.get_logs())
