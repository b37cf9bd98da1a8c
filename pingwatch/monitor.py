"""
Background probe worker.

Design:
- Runs in its own thread so the UI stays responsive.
- Every cycle (at least PING_INTERVAL_SEC apart):
    1) Ping the target once and summarize the result into one display line.
    2) Append the line to <base>/<date>/<hour>/ping_<date>_<HH-MM>.log.
    3) Push it to RecentLogs (poll source) and emit a ping-log event (push source).
    4) Track consecutive failures: declare an outage on the 3rd, and on the first success
       afterwards write a recovery alert, notify the desktop and send an alert email.
 - Methods:
    start(): begin the daemon thread
    stop(): signal the thread to stop; it exits within one wait
    tick(): one probe cycle (used by the loop and directly in tests)
- Thread-safety: RecentLogs does its own locking; events are marshalled by the EventBus.
"""

import logging
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Tuple

from .config import OUTAGE_FAIL_COUNT, PING_EVENT, PING_INTERVAL_SEC
from .errors import BackendCallError
from .mailer import send_alert_email
from .models import SmtpSettings
from .repository import RecentLogs
from .utils import notify_desktop, ping_once

logger = logging.getLogger(__name__)


class ProbeRunner:
    def __init__(
        self,
        address: str,
        base_dir: Path,
        logs: RecentLogs,
        emit: Callable[[str, Dict[str, Any]], None],
        load_smtp: Callable[[], SmtpSettings],
        notify: Callable[[str, str], None] = notify_desktop,
        ping: Callable[[str], Tuple[bool, str]] = ping_once,
        send_alert: Callable[[SmtpSettings, str], None] = send_alert_email,
        clock: Callable[[], datetime] = datetime.now,
        interval: float = PING_INTERVAL_SEC,
    ):
        self.address = address
        self.base_dir = Path(base_dir)
        self.logs = logs
        self.emit = emit
        self.load_smtp = load_smtp
        self.notify = notify
        self.ping = ping
        self.send_alert = send_alert
        self.clock = clock
        self.interval = interval

        self.fail_count = 0
        self.first_fail_time: str | None = None
        self.outage_start: str | None = None

        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._loop, daemon=True, name=f"probe-{address}")

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()

    def join(self, timeout: float | None = None) -> None:
        self._thread.join(timeout)

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def _loop(self) -> None:
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.error("Failed to create log base dir %s: %s", self.base_dir, exc)
            return

        while not self._stop.is_set():
            started = time.monotonic()
            if not self.tick():
                break
            remaining = self.interval - (time.monotonic() - started)
            if remaining > 0 and self._stop.wait(remaining):
                break
        logger.info("Probe loop for %s exited", self.address)

    def tick(self) -> bool:
        """
        Purpose: Run one probe cycle.
        Outputs: False if the log folder cannot be created (the loop then stops).
        Side effects: File append, RecentLogs push, event emit, alerts.
        """
        now = self.clock()
        timestamp = now.strftime("%Y-%m-%d %H:%M:%S")
        directory = self.base_dir / now.strftime("%Y-%m-%d") / now.strftime("%H")
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.error("Failed to create log dir %s: %s", directory, exc)
            return False
        file_path = directory / f"ping_{now.strftime('%Y-%m-%d_%H-%M')}.log"

        ok, summary = self.ping(self.address)
        result = summary if ok else f"error: {summary}"
        line = f"[{timestamp}] {self.address} | {result}"
        if not self._append(file_path, line):
            logger.warning("Failed to write log line to %s", file_path)

        seq = self.logs.push(line)
        # emit a per-ping event for the live view; the poll covers anything lost here
        try:
            self.emit(PING_EVENT, {"seq": seq, "line": line})
        except Exception as exc:  # a failing listener never stops the loop
            logger.warning("Failed to emit %s event: %s", PING_EVENT, exc)

        if ok:
            self._on_success(file_path, timestamp)
        else:
            self._on_failure(file_path, timestamp)
        return True

    def _on_failure(self, file_path: Path, timestamp: str) -> None:
        self.fail_count += 1
        if self.fail_count == 1:
            self.first_fail_time = timestamp
        if self.fail_count == OUTAGE_FAIL_COUNT and self.outage_start is None:
            start_time = self.first_fail_time or timestamp
            self.outage_start = start_time
            logger.info("Outage declared for %s (since %s)", self.address, start_time)
            self._alert(file_path, timestamp, f"{OUTAGE_FAIL_COUNT} consecutive failures, started at {start_time}")
            self.notify("Network outage", f"{self.address} unreachable since {start_time}")

    def _on_success(self, file_path: Path, timestamp: str) -> None:
        if self.outage_start is not None:
            start_time, self.outage_start = self.outage_start, None
            logger.info("Outage for %s recovered at %s", self.address, timestamp)
            self._alert(file_path, timestamp, f"packet loss from {start_time} until {timestamp}")
            self.notify("Network recovered", f"{self.address} reachable again at {timestamp}")
            html = (
                f"Target: {self.address}<br>"
                f"Start time: {start_time}<br>"
                f"Recovery time: {timestamp}<br>"
                "Packet loss detected on the network"
            )
            threading.Thread(target=self._send_alert_email, args=(html,), daemon=True).start()
        self.fail_count = 0
        self.first_fail_time = None

    def _alert(self, file_path: Path, timestamp: str, message: str) -> None:
        alert_line = f"[{timestamp}] ALERT | {message}"
        # alert lines reach the UI through the poll only
        if self._append(file_path, alert_line):
            self.logs.push(alert_line)
        else:
            logger.warning("Failed to write alert line to %s", file_path)

    def _send_alert_email(self, html: str) -> None:
        try:
            self.send_alert(self.load_smtp(), html)
        except BackendCallError as exc:
            logger.warning("Alert email not sent: %s", exc)

    @staticmethod
    def _append(path: Path, line: str) -> bool:
        try:
            with open(path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError:
            return False
        return True
