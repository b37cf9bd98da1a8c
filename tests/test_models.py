from __future__ import annotations

import pytest

from pingwatch.models import AppSettings, SmtpSettings, TlsMode


def test_smtp_defaults() -> None:
    smtp = SmtpSettings.from_dict({})
    assert smtp.port == 465
    assert smtp.tls_mode is None
    assert smtp.effective_tls_mode() is TlsMode.NONE


def test_smtp_reads_from_key_as_sender() -> None:
    smtp = SmtpSettings.from_dict({"from": "Ops <ops@example.com>", "tls_mode": "ssl", "port": "2525"})
    assert smtp.sender == "Ops <ops@example.com>"
    assert smtp.port == 2525
    assert smtp.effective_tls_mode() is TlsMode.SSL


@pytest.mark.parametrize("data", [{"port": 70000}, {"port": "x"}, {"port": True}, {"tls_mode": "tls13"}])
def test_smtp_rejects_bad_values(data) -> None:
    with pytest.raises(ValueError):
        SmtpSettings.from_dict(data)


def test_app_settings_round_trip_keeps_wechat_section() -> None:
    data = {"log_dir": "/logs", "smtp": {"host": "h"}, "wechat": {"enabled": True}}
    settings = AppSettings.from_dict(data)
    assert settings.wechat.enabled is True
    assert AppSettings.from_dict(settings.to_dict()) == settings
    assert settings.alert.smtp.host == "h"
