from __future__ import annotations

import threading
from datetime import datetime, timedelta

import pytest

from pingwatch.errors import BackendCallError
from pingwatch.models import SmtpSettings
from pingwatch.monitor import ProbeRunner
from pingwatch.repository import RecentLogs


class Clock:
    def __init__(self) -> None:
        self.now = datetime(2024, 1, 15, 12, 0, 0)

    def __call__(self) -> datetime:
        current = self.now
        self.now += timedelta(seconds=1)
        return current


class ScriptedPing:
    def __init__(self, results) -> None:
        self.results = list(results)

    def __call__(self, address):
        ok = self.results.pop(0)
        return ok, "Reply from 8.8.8.8: bytes=32 time=5ms TTL=117" if ok else "Request timed out."


@pytest.fixture
def emitted():
    return []


@pytest.fixture
def notified():
    return []


def _runner(tmp_path, results, emitted, notified, send_alert=None) -> ProbeRunner:
    return ProbeRunner(
        address="8.8.8.8",
        base_dir=tmp_path,
        logs=RecentLogs(),
        emit=lambda event, payload: emitted.append((event, payload)),
        load_smtp=lambda: SmtpSettings(host="smtp.example.com"),
        notify=lambda title, message: notified.append(title),
        ping=ScriptedPing(results),
        send_alert=send_alert or (lambda smtp, html: None),
        clock=Clock(),
    )


def test_tick_writes_file_pushes_and_emits(tmp_path, emitted, notified) -> None:
    runner = _runner(tmp_path, [True], emitted, notified)
    assert runner.tick() is True

    log_file = tmp_path / "2024-01-15" / "12" / "ping_2024-01-15_12-00.log"
    expected = "[2024-01-15 12:00:00] 8.8.8.8 | Reply from 8.8.8.8: bytes=32 time=5ms TTL=117"
    assert log_file.read_text(encoding="utf-8") == expected + "\n"
    assert runner.logs.snapshot() == [{"seq": 1, "line": expected}]
    assert emitted == [("ping-log", {"seq": 1, "line": expected})]
    assert notified == []


def test_failed_ping_line_is_marked_error(tmp_path, emitted, notified) -> None:
    runner = _runner(tmp_path, [False], emitted, notified)
    runner.tick()
    assert emitted[0][1]["line"].endswith("8.8.8.8 | error: Request timed out.")


def test_outage_declared_on_third_failure(tmp_path, emitted, notified) -> None:
    runner = _runner(tmp_path, [False, False, False, False], emitted, notified)
    for _ in range(2):
        runner.tick()
    assert notified == []
    runner.tick()
    assert notified == ["Network outage"]
    runner.tick()
    assert notified == ["Network outage"]

    lines = [e["line"] for e in runner.logs.snapshot()]
    alerts = [line for line in lines if "ALERT" in line]
    assert alerts == ["[2024-01-15 12:00:02] ALERT | 3 consecutive failures, started at 2024-01-15 12:00:00"]
    # alert lines are poll-only
    assert all("ALERT" not in payload["line"] for _, payload in emitted)
    assert [p["seq"] for _, p in emitted] == [1, 2, 3, 5]


def test_recovery_alerts_and_sends_email(tmp_path, emitted, notified) -> None:
    sent = threading.Event()
    mails = []

    def send_alert(smtp, html):
        mails.append((smtp.host, html))
        sent.set()

    runner = _runner(tmp_path, [False, False, False, True], emitted, notified, send_alert)
    for _ in range(4):
        runner.tick()

    assert notified == ["Network outage", "Network recovered"]
    assert sent.wait(5)
    host, html = mails[0]
    assert host == "smtp.example.com"
    assert "Start time: 2024-01-15 12:00:00" in html
    assert "Recovery time: 2024-01-15 12:00:03" in html
    assert runner.logs.snapshot()[-1]["line"] == (
        "[2024-01-15 12:00:03] ALERT | packet loss from 2024-01-15 12:00:00 until 2024-01-15 12:00:03"
    )
    assert runner.outage_start is None
    assert runner.fail_count == 0


def test_short_failure_streak_does_not_alert(tmp_path, emitted, notified) -> None:
    runner = _runner(tmp_path, [False, False, True, False, False], emitted, notified)
    for _ in range(5):
        runner.tick()
    assert notified == []


def test_alert_email_failure_is_logged(tmp_path, emitted, notified, caplog) -> None:
    done = threading.Event()

    def send_alert(smtp, html):
        done.set()
        raise BackendCallError("SMTP host is not configured")

    runner = _runner(tmp_path, [True], emitted, notified, send_alert)
    runner._send_alert_email("x")
    assert done.is_set()
    assert "Alert email not sent" in caplog.text


def test_failing_listener_does_not_stop_probe(tmp_path, notified) -> None:
    def emit(event, payload):
        raise RuntimeError("listener exploded")

    runner = ProbeRunner(
        address="8.8.8.8",
        base_dir=tmp_path,
        logs=RecentLogs(),
        emit=emit,
        load_smtp=SmtpSettings,
        notify=lambda t, m: None,
        ping=ScriptedPing([True]),
        clock=Clock(),
    )
    assert runner.tick() is True
    assert len(runner.logs.snapshot()) == 1


def test_loop_runs_until_stopped(tmp_path, emitted, notified) -> None:
    ticked = threading.Event()
    runner = _runner(tmp_path, [True] * 1000, emitted, notified)
    runner.interval = 0.01
    runner.emit = lambda event, payload: ticked.set()
    runner.start()
    assert ticked.wait(5)
    runner.stop()
    runner.join(5)
    assert not runner.is_alive()
