"""
Design (backend.py)
- Purpose: In-process command surface the UI invokes: probe start/stop, recent logs,
           log folder, alert settings persistence and SMTP testing.
- Inputs: Command arguments from the UI (address, paths, settings).
- Outputs: Plain results (str, list of dicts, settings); failures raise BackendCallError.
- Side effects: Starts/stops the ProbeRunner thread; reads/writes settings files; SMTP I/O.
- Thread-safety: Runner ownership guarded by a lock; settings calls come from the UI thread,
                 test_smtp blocks and is meant for a worker thread.
"""

import logging
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List

from . import mailer, storage
from .config import SMTP_TEST_TIMEOUT_SEC
from .errors import BackendCallError
from .events import EventBus
from .models import AlertSettings, AppSettings, SmtpSettings
from .monitor import ProbeRunner
from .repository import RecentLogs
from .utils import notify_desktop

logger = logging.getLogger(__name__)


class ProbeBackend:
    """
    Design (ProbeBackend)
    - State:
        logs: RecentLogs shared with the running probe (poll source)
        events: EventBus carrying ping-log pushes
        notifications_enabled: toggled from the UI; gates desktop notifications
        _runner: the active ProbeRunner or None (guarded by _lock)
    """

    def __init__(
        self,
        settings_path: Path | None = None,
        events: EventBus | None = None,
        runner_factory: Callable[..., Any] = ProbeRunner,
    ) -> None:
        self.settings_path = Path(settings_path) if settings_path else storage.get_settings_path()
        self.events = events or EventBus()
        self.logs = RecentLogs()
        self.notifications_enabled = True
        self._runner_factory = runner_factory
        self._runner: Any = None
        self._lock = threading.Lock()

    # -------- probe --------

    @property
    def running(self) -> bool:
        with self._lock:
            return self._runner is not None

    def listen(self, event: str, handler: Callable[[Any], None]) -> Callable[[], None]:
        return self.events.listen(event, handler)

    def start_ping(self, address: str) -> str:
        """
        Purpose: Start probing `address`.
        Outputs: The log base folder the probe writes to.
        Raises: BackendCallError if the address is empty or a probe is already running.
        """
        address = (address or "").strip()
        if not address:
            raise BackendCallError("Address cannot be empty")

        with self._lock:
            if self._runner is not None:
                raise BackendCallError("Ping is already running")
            base_dir = self.resolve_log_base()
            # one store per run; a stopped runner still finishing its tick writes to its own
            logs = RecentLogs()
            self.logs = logs
            runner = self._runner_factory(
                address=address,
                base_dir=base_dir,
                logs=logs,
                emit=lambda event, payload: self._emit_for(logs, event, payload),
                load_smtp=self._load_smtp,
                notify=self._notify,
            )
            runner.start()
            self._runner = runner

        logger.info("Started probe for %s, logging to %s", address, base_dir)
        return str(base_dir)

    def stop_ping(self) -> None:
        """Signal the running probe to stop; does not wait for the thread."""
        with self._lock:
            runner = self._runner
            if runner is None:
                raise BackendCallError("Ping is not running")
            self._runner = None
        runner.stop()
        logger.info("Stop requested for probe %s", getattr(runner, "address", ""))

    def get_recent_logs(self) -> List[Dict[str, Any]]:
        return self.logs.snapshot()

    def shutdown(self) -> None:
        with self._lock:
            runner, self._runner = self._runner, None
        if runner is not None:
            runner.stop()

    # -------- log folder --------

    def resolve_log_base(self) -> Path:
        settings = self._load()
        if settings.log_dir:
            return Path(settings.log_dir)
        return storage.default_log_dir(self.settings_path)

    def get_log_dir(self) -> str:
        return str(self.resolve_log_base())

    def set_log_dir(self, path: str) -> str:
        if self.running:
            raise BackendCallError("Cannot change the log folder while running")
        settings = self._load()
        settings.log_dir = str(path)
        self._save(settings)
        return settings.log_dir

    # -------- alert settings --------

    def get_alert_settings(self) -> AlertSettings:
        return self._load().alert

    def save_alert_settings(self, alert: AlertSettings) -> None:
        settings = self._load()
        settings.smtp = alert.smtp
        settings.wechat = alert.wechat
        self._save(settings)

    def export_alert_settings(self, path: str) -> str:
        try:
            storage.export_alert_settings(self.get_alert_settings(), Path(path))
        except OSError as exc:
            raise BackendCallError(f"Export failed: {exc}") from exc
        return str(path)

    def import_alert_settings(self, path: str) -> AlertSettings:
        try:
            alert = storage.import_alert_settings(Path(path))
        except OSError as exc:
            raise BackendCallError(f"Import failed: {exc}") from exc
        except (ValueError, TypeError) as exc:
            raise BackendCallError(f"Invalid alert settings file: {exc}") from exc
        self.save_alert_settings(alert)
        return alert

    def test_smtp(self, smtp: SmtpSettings) -> str:
        """
        Purpose: Send a test mail, giving up after SMTP_TEST_TIMEOUT_SEC.
        Outputs: Confirmation text.
        Raises: BackendCallError on invalid settings, delivery failure or timeout.
        Thread-safety: Blocks; call from a worker thread.
        """
        outcome: Dict[str, Any] = {}

        def attempt() -> None:
            try:
                outcome["message"] = mailer.send_test_email(smtp)
            except BackendCallError as exc:
                outcome["error"] = exc

        worker = threading.Thread(target=attempt, daemon=True, name="smtp-test")
        worker.start()
        worker.join(SMTP_TEST_TIMEOUT_SEC)
        if worker.is_alive():
            # the daemon thread is abandoned; its socket timeout ends it eventually
            raise BackendCallError(f"Connection timed out ({SMTP_TEST_TIMEOUT_SEC} seconds)")
        if "error" in outcome:
            raise outcome["error"]
        return outcome["message"]

    # -------- internals --------

    def _load(self) -> AppSettings:
        return storage.load_settings(self.settings_path)

    def _save(self, settings: AppSettings) -> None:
        try:
            storage.save_settings(settings, self.settings_path)
        except OSError as exc:
            raise BackendCallError(f"Failed to save settings: {exc}") from exc

    def _emit_for(self, logs: RecentLogs, event: str, payload: Any) -> None:
        """Forward a runner's event only while its store is the current run's."""
        with self._lock:
            current = logs is self.logs
        if current:
            self.events.emit(event, payload)

    def _load_smtp(self) -> SmtpSettings:
        return self._load().smtp

    def _notify(self, title: str, message: str) -> None:
        if self.notifications_enabled:
            notify_desktop(title, message)
