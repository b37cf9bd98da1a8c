"""
Design (models.py)
- Purpose: Define simple, typed data structures for log lines and alert/app settings.
- Inputs: Field values, or JSON-decoded dicts via from_dict().
- Outputs: Dataclass instances; to_dict() gives the on-disk/wire shape.
- Side effects: None.
- Thread-safety: Plain containers; LogEntry is immutable and safe to share between threads.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping

from .config import SMTP_SSL_PORT


@dataclass(frozen=True)
class LogEntry:
    """
    Design (LogEntry)
    - Purpose: One probe output line.
    - Fields:
        seq: monotonic sequence number assigned by the probe's log store (unique within a run).
        line: display text, e.g. "[2024-01-15 12:00:00] 8.8.8.8 | Reply from 8.8.8.8 ...".
    """
    seq: int
    line: str

    def to_dict(self) -> Dict[str, Any]:
        return {"seq": self.seq, "line": self.line}


class TlsMode(str, Enum):
    NONE = "none"
    SSL = "ssl"
    STARTTLS = "starttls"


def _text(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    return "" if value is None else str(value)


def _port(value: Any) -> int:
    if value is None or value == "":
        return SMTP_SSL_PORT
    if isinstance(value, bool):
        raise ValueError(f"invalid port: {value!r}")
    port = int(value)
    if not 0 <= port <= 65535:
        raise ValueError(f"port out of range: {port}")
    return port


@dataclass
class SmtpSettings:
    """
    Design (SmtpSettings)
    - Purpose: Mail server settings used for test mail and outage alerts.
    - Fields:
        sender: stored under the "from" key on disk.
        tls_mode: None means "not recorded"; use_tls then decides (legacy files).
    """
    host: str = ""
    port: int = SMTP_SSL_PORT
    username: str = ""
    password: str = ""
    sender: str = ""
    to: str = ""
    tls_mode: TlsMode | None = TlsMode.SSL
    use_tls: bool = False

    def effective_tls_mode(self) -> TlsMode:
        if self.tls_mode is not None:
            return self.tls_mode
        return TlsMode.SSL if self.use_tls else TlsMode.NONE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "host": self.host,
            "port": self.port,
            "username": self.username,
            "password": self.password,
            "from": self.sender,
            "to": self.to,
            "tls_mode": self.tls_mode.value if self.tls_mode is not None else None,
            "use_tls": self.use_tls,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "SmtpSettings":
        """Missing keys take defaults; wrong types raise ValueError/TypeError."""
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise TypeError("smtp settings must be an object")
        raw_mode = data.get("tls_mode")
        return cls(
            host=_text(data, "host"),
            port=_port(data.get("port")),
            username=_text(data, "username"),
            password=_text(data, "password"),
            sender=_text(data, "from"),
            to=_text(data, "to"),
            tls_mode=TlsMode(raw_mode) if raw_mode else None,
            use_tls=bool(data.get("use_tls", False)),
        )


@dataclass
class WechatSettings:
    # Reserved channel; carried through files untouched.
    enabled: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"enabled": self.enabled}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "WechatSettings":
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise TypeError("wechat settings must be an object")
        return cls(enabled=bool(data.get("enabled", False)))


@dataclass
class AlertSettings:
    smtp: SmtpSettings = field(default_factory=SmtpSettings)
    wechat: WechatSettings = field(default_factory=WechatSettings)

    def to_dict(self) -> Dict[str, Any]:
        return {"smtp": self.smtp.to_dict(), "wechat": self.wechat.to_dict()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AlertSettings":
        if not isinstance(data, Mapping):
            raise TypeError("alert settings must be an object")
        return cls(
            smtp=SmtpSettings.from_dict(data.get("smtp")),
            wechat=WechatSettings.from_dict(data.get("wechat")),
        )


@dataclass
class AppSettings:
    """Whole settings file: optional log folder override plus the alert sections."""
    log_dir: str | None = None
    smtp: SmtpSettings = field(default_factory=SmtpSettings)
    wechat: WechatSettings = field(default_factory=WechatSettings)

    @property
    def alert(self) -> AlertSettings:
        return AlertSettings(smtp=self.smtp, wechat=self.wechat)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "log_dir": self.log_dir,
            "smtp": self.smtp.to_dict(),
            "wechat": self.wechat.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AppSettings":
        if not isinstance(data, Mapping):
            raise TypeError("settings must be an object")
        log_dir = data.get("log_dir")
        return cls(
            log_dir=str(log_dir) if log_dir else None,
            smtp=SmtpSettings.from_dict(data.get("smtp")),
            wechat=WechatSettings.from_dict(data.get("wechat")),
        )
