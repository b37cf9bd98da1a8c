"""
Design (alert_settings.py)
- Purpose: Logic behind the alert settings dialog, kept free of widgets: port defaults per
           TLS mode, collecting the form into SmtpSettings, and the load/save/import/export/test
           flows with their status messages.
- Inputs: Raw form strings; a backend (get/save/import/export alert settings, test_smtp).
- Outputs: SmtpSettings; status via on_status(message, kind) where kind is "", "success" or "error".
- Side effects: Backend calls.
- Thread-safety: UI thread, except run_test() which runs on a worker thread.
"""

from typing import Any, Callable, Mapping

from .config import SMTP_SSL_PORT, SMTP_STARTTLS_PORT
from .errors import BackendCallError
from .models import AlertSettings, SmtpSettings, TlsMode

DEFAULT_PORTS = {str(SMTP_SSL_PORT), str(SMTP_STARTTLS_PORT)}


def default_port(tls_mode: str) -> int:
    return SMTP_STARTTLS_PORT if tls_mode == TlsMode.STARTTLS.value else SMTP_SSL_PORT


def port_for_mode_change(current: str, tls_mode: str) -> str | None:
    """New port text after a TLS mode change, or None to leave a custom port alone."""
    current = (current or "").strip()
    if not current or current in DEFAULT_PORTS:
        return str(default_port(tls_mode))
    return None


def resolve_port(raw: str, tls_mode: str) -> int:
    try:
        port = int(str(raw).strip())
    except ValueError:
        port = 0
    return port if port > 0 else default_port(tls_mode)


def collect_smtp(fields: Mapping[str, str]) -> SmtpSettings:
    """
    Purpose: Build SmtpSettings from form values (keys: host, port, username, password,
             from, to, tls_mode). Text is trimmed except the password.
    """
    tls_mode = fields.get("tls_mode") or TlsMode.SSL.value
    return SmtpSettings(
        host=(fields.get("host") or "").strip(),
        port=resolve_port(fields.get("port") or "", tls_mode),
        username=(fields.get("username") or "").strip(),
        password=fields.get("password") or "",
        sender=(fields.get("from") or "").strip(),
        to=(fields.get("to") or "").strip(),
        tls_mode=TlsMode(tls_mode),
        use_tls=False,
    )


def smtp_to_fields(smtp: SmtpSettings) -> dict:
    return {
        "host": smtp.host,
        "port": str(smtp.port) if smtp.port else "",
        "username": smtp.username,
        "password": smtp.password,
        "from": smtp.sender,
        "to": smtp.to,
        "tls_mode": smtp.effective_tls_mode().value,
    }


class AlertSettingsController:
    """
    Design (AlertSettingsController)
    - State:
        cache: last loaded/imported AlertSettings (keeps the wechat section on save)
        sending: True while a test mail is in flight
    """

    def __init__(self, backend: Any, on_status: Callable[[str, str], None]) -> None:
        self.backend = backend
        self.on_status = on_status
        self.cache: AlertSettings | None = None
        self.sending = False

    def load(self) -> SmtpSettings | None:
        try:
            self.cache = self.backend.get_alert_settings()
        except BackendCallError as exc:
            self.on_status(str(exc), "error")
            return None
        self.on_status("", "")
        return self.cache.smtp

    def save(self, smtp: SmtpSettings) -> bool:
        alert = self.cache or AlertSettings()
        alert.smtp = smtp
        self.cache = alert
        try:
            self.backend.save_alert_settings(alert)
        except BackendCallError as exc:
            self.on_status(str(exc), "error")
            return False
        self.on_status("Settings saved.", "success")
        return True

    def export(self, path: str | None) -> bool:
        if not path:
            self.on_status("Export cancelled.", "")
            return False
        self.on_status("Exporting...", "")
        try:
            written = self.backend.export_alert_settings(path)
        except BackendCallError as exc:
            self.on_status(str(exc), "error")
            return False
        self.on_status(f"Exported to: {written}", "success")
        return True

    def import_from(self, path: str | None) -> SmtpSettings | None:
        if not path:
            self.on_status("Import cancelled.", "")
            return None
        self.on_status("Importing...", "")
        try:
            self.cache = self.backend.import_alert_settings(path)
        except BackendCallError as exc:
            self.on_status(str(exc), "error")
            return None
        self.on_status("Imported settings.", "success")
        return self.cache.smtp

    def begin_test(self) -> bool:
        """Claim the single test slot; False if a test is already running."""
        if self.sending:
            return False
        self.sending = True
        self.on_status("Sending...", "")
        return True

    def run_test(self, smtp: SmtpSettings) -> tuple[str, str]:
        """Blocking send; returns (message, kind) for finish_test()."""
        try:
            return self.backend.test_smtp(smtp) or "Sent.", "success"
        except BackendCallError as exc:
            return str(exc), "error"

    def finish_test(self, message: str, kind: str) -> None:
        self.sending = False
        self.on_status(message, kind)
