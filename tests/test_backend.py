from __future__ import annotations

import functools
import json
import threading
import time

import pytest

from pingwatch import backend as backend_module
from pingwatch.backend import ProbeBackend
from pingwatch.errors import BackendCallError
from pingwatch.events import EventBus
from pingwatch.models import AlertSettings, SmtpSettings, TlsMode
from pingwatch.monitor import ProbeRunner


class FakeRunner:
    def __init__(self, **kwargs) -> None:
        self.kwargs = kwargs
        self.address = kwargs["address"]
        self.started = False
        self.stopped = False

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True


@pytest.fixture
def runners():
    return []


@pytest.fixture
def backend(tmp_path, runners) -> ProbeBackend:
    def factory(**kwargs):
        runner = FakeRunner(**kwargs)
        runners.append(runner)
        return runner

    return ProbeBackend(settings_path=tmp_path / "settings.json", events=EventBus(), runner_factory=factory)


def test_start_ping_launches_runner_in_default_folder(backend, runners, tmp_path) -> None:
    base = backend.start_ping(" 8.8.8.8 ")
    assert base == str(tmp_path / "ping-logs")
    assert backend.running
    runner = runners[0]
    assert runner.started
    assert runner.address == "8.8.8.8"
    assert runner.kwargs["logs"] is backend.logs


def test_start_ping_errors(backend) -> None:
    with pytest.raises(BackendCallError, match="Address cannot be empty"):
        backend.start_ping("  ")
    backend.start_ping("8.8.8.8")
    with pytest.raises(BackendCallError, match="Ping is already running"):
        backend.start_ping("1.1.1.1")


def test_start_uses_a_fresh_log_store(backend) -> None:
    previous = backend.logs
    previous.push("old run")
    backend.start_ping("8.8.8.8")
    assert backend.logs is not previous
    assert backend.get_recent_logs() == []
    assert backend.logs.push("first") == 1


def test_stop_ping(backend, runners) -> None:
    with pytest.raises(BackendCallError, match="Ping is not running"):
        backend.stop_ping()
    backend.start_ping("8.8.8.8")
    backend.stop_ping()
    assert runners[0].stopped
    assert not backend.running


def test_runner_emit_reaches_listeners(backend, runners) -> None:
    got = []
    backend.listen("ping-log", got.append)
    backend.start_ping("8.8.8.8")
    runners[0].kwargs["emit"]("ping-log", {"seq": 1, "line": "a"})
    assert got == [{"seq": 1, "line": "a"}]


def test_notifications_toggle(backend, runners, monkeypatch) -> None:
    shown = []
    monkeypatch.setattr(backend_module, "notify_desktop", lambda title, message: shown.append(title))
    backend.start_ping("8.8.8.8")
    notify = runners[0].kwargs["notify"]
    notify("Network outage", "x")
    backend.notifications_enabled = False
    notify("Network recovered", "x")
    assert shown == ["Network outage"]


def test_log_dir_persists_and_is_used(backend, runners, tmp_path) -> None:
    target = tmp_path / "custom"
    assert backend.set_log_dir(str(target)) == str(target)
    assert backend.get_log_dir() == str(target)
    data = json.loads((tmp_path / "settings.json").read_text(encoding="utf-8"))
    assert data["log_dir"] == str(target)
    backend.start_ping("8.8.8.8")
    assert str(runners[0].kwargs["base_dir"]) == str(target)


def test_set_log_dir_refused_while_running(backend) -> None:
    backend.start_ping("8.8.8.8")
    with pytest.raises(BackendCallError):
        backend.set_log_dir("/elsewhere")


def test_alert_settings_save_keeps_log_dir(backend, tmp_path) -> None:
    backend.set_log_dir(str(tmp_path / "logs"))
    alert = AlertSettings(smtp=SmtpSettings(host="smtp.example.com", port=587, tls_mode=TlsMode.STARTTLS))
    backend.save_alert_settings(alert)
    assert backend.get_alert_settings() == alert
    assert backend.get_log_dir() == str(tmp_path / "logs")


def test_export_and_import(backend, tmp_path) -> None:
    backend.save_alert_settings(AlertSettings(smtp=SmtpSettings(host="a.example.com")))
    path = tmp_path / "export" / "alert.json"
    assert backend.export_alert_settings(str(path)) == str(path)

    backend.save_alert_settings(AlertSettings(smtp=SmtpSettings(host="b.example.com")))
    imported = backend.import_alert_settings(str(path))
    assert imported.smtp.host == "a.example.com"
    assert backend.get_alert_settings().smtp.host == "a.example.com"


def test_import_errors(backend, tmp_path) -> None:
    with pytest.raises(BackendCallError, match="Import failed"):
        backend.import_alert_settings(str(tmp_path / "missing.json"))
    bad = tmp_path / "bad.json"
    bad.write_text('"just a string"', encoding="utf-8")
    with pytest.raises(BackendCallError, match="Invalid alert settings file"):
        backend.import_alert_settings(str(bad))


def test_save_failure_becomes_backend_error(tmp_path) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")
    backend = ProbeBackend(settings_path=blocker / "settings.json")
    with pytest.raises(BackendCallError, match="Failed to save settings"):
        backend.save_alert_settings(AlertSettings())


def test_test_smtp_returns_confirmation(backend, monkeypatch) -> None:
    monkeypatch.setattr(backend_module.mailer, "send_test_email", lambda smtp: "Test email sent.")
    assert backend.test_smtp(SmtpSettings()) == "Test email sent."


def test_test_smtp_propagates_failure(backend, monkeypatch) -> None:
    def fail(smtp):
        raise BackendCallError("SMTP host cannot be empty")

    monkeypatch.setattr(backend_module.mailer, "send_test_email", fail)
    with pytest.raises(BackendCallError, match="SMTP host cannot be empty"):
        backend.test_smtp(SmtpSettings())


def test_test_smtp_times_out(backend, monkeypatch) -> None:
    release = threading.Event()
    monkeypatch.setattr(backend_module, "SMTP_TEST_TIMEOUT_SEC", 0.05)
    monkeypatch.setattr(backend_module.mailer, "send_test_email", lambda smtp: release.wait(5))
    try:
        with pytest.raises(BackendCallError, match="Connection timed out"):
            backend.test_smtp(SmtpSettings())
    finally:
        release.set()


def test_shutdown_stops_runner(backend, runners) -> None:
    backend.start_ping("8.8.8.8")
    backend.shutdown()
    assert runners[0].stopped
    backend.shutdown()


def test_stopped_runner_cannot_write_into_next_run(tmp_path) -> None:
    release = threading.Event()
    blocked = threading.Event()

    def ping(address):
        if address == "old.host":
            blocked.set()
            release.wait(5)
        return True, f"Reply from {address}"

    events = EventBus()
    pushed = []
    events.listen("ping-log", pushed.append)
    backend = ProbeBackend(
        settings_path=tmp_path / "settings.json",
        events=events,
        runner_factory=functools.partial(ProbeRunner, ping=ping, interval=0.01),
    )

    backend.start_ping("old.host")
    assert blocked.wait(5)
    old_runner = backend._runner
    backend.stop_ping()
    backend.start_ping("new.host")
    release.set()
    old_runner.join(5)
    assert not old_runner.is_alive()

    deadline = time.monotonic() + 5
    while len(backend.get_recent_logs()) < 2 and time.monotonic() < deadline:
        time.sleep(0.01)
    backend.shutdown()

    window = backend.get_recent_logs()
    assert window[0]["seq"] == 1
    assert all("new.host" in entry["line"] for entry in window)
    assert all("old.host" not in payload["line"] for payload in pushed)
