"""
Design (mailer.py)
- Purpose: Validate SMTP settings and deliver test mail and outage alert mail.
- Inputs: SmtpSettings, message body.
- Outputs: Confirmation text (test mail); None (alert mail).
- Side effects: Opens an SMTP connection (implicit TLS, STARTTLS or plain).
- Thread-safety: Stateless; called from worker threads only (blocking network I/O).
"""

import logging
import smtplib
import ssl
from datetime import datetime
from email.message import EmailMessage
from email.utils import parseaddr

from .config import SMTP_TIMEOUT_SEC
from .errors import BackendCallError
from .models import SmtpSettings, TlsMode

logger = logging.getLogger(__name__)

TEST_SUBJECT = "PingWatch test email"
ALERT_SUBJECT = "Network packet loss alert"


def parse_mailbox(value: str) -> str | None:
    """Return the bare address of 'Name <user@host>' or 'user@host', or None if malformed."""
    _, address = parseaddr(value.strip())
    if not address or address.count("@") != 1:
        return None
    local, domain = address.split("@")
    if not local or not domain or " " in address:
        return None
    return address


def validate_test_settings(smtp: SmtpSettings) -> tuple[str, str]:
    """
    Purpose: Check settings before sending a test mail.
    Outputs: (sender_address, recipient_address).
    Raises: BackendCallError naming the first problem found.
    """
    if not smtp.host.strip():
        raise BackendCallError("SMTP host cannot be empty")
    if not 0 < smtp.port <= 65535:
        raise BackendCallError("SMTP port is invalid")
    if not smtp.sender.strip():
        raise BackendCallError("Sender address cannot be empty")
    if not smtp.to.strip():
        raise BackendCallError("Test recipient address cannot be empty")
    sender = parse_mailbox(smtp.sender)
    if sender is None:
        raise BackendCallError("Sender address is malformed")
    recipient = parse_mailbox(smtp.to)
    if recipient is None:
        raise BackendCallError("Test recipient address is malformed")
    return sender, recipient


def validate_alert_settings(smtp: SmtpSettings) -> tuple[str, str]:
    if not smtp.host.strip():
        raise BackendCallError("SMTP host is not configured")
    if not 0 < smtp.port <= 65535:
        raise BackendCallError("SMTP port is invalid")
    if not smtp.sender.strip() or not smtp.to.strip():
        raise BackendCallError("SMTP sender or recipient is not configured")
    sender = parse_mailbox(smtp.sender)
    if sender is None:
        raise BackendCallError("Sender address is malformed")
    recipient = parse_mailbox(smtp.to)
    if recipient is None:
        raise BackendCallError("Recipient address is malformed")
    return sender, recipient


def open_transport(smtp: SmtpSettings) -> smtplib.SMTP:
    """
    Purpose: Connect according to the TLS mode and log in when a username is set.
    Outputs: A connected smtplib client (caller closes it).
    """
    host = smtp.host.strip()
    mode = smtp.effective_tls_mode()
    context = ssl.create_default_context()
    if mode is TlsMode.SSL:
        client = smtplib.SMTP_SSL(host, smtp.port, timeout=SMTP_TIMEOUT_SEC, context=context)
    else:
        client = smtplib.SMTP(host, smtp.port, timeout=SMTP_TIMEOUT_SEC)
    try:
        if mode is TlsMode.STARTTLS:
            client.starttls(context=context)
        if smtp.username:
            client.login(smtp.username, smtp.password)
    except (smtplib.SMTPException, OSError):
        client.close()
        raise
    return client


def build_message(sender: str, recipient: str, subject: str, body: str, subtype: str = "plain") -> EmailMessage:
    msg = EmailMessage()
    msg["From"] = sender
    msg["To"] = recipient
    msg["Subject"] = subject
    msg.set_content(body, subtype=subtype)
    return msg


def _deliver(smtp: SmtpSettings, msg: EmailMessage, failure: str) -> None:
    try:
        with open_transport(smtp) as client:
            client.send_message(msg)
    except (smtplib.SMTPException, OSError) as exc:
        raise BackendCallError(f"{failure}: {exc}") from exc


def send_test_email(smtp: SmtpSettings) -> str:
    """
    Purpose: Send a plain-text test mail to smtp.to.
    Outputs: Confirmation text for the status line.
    Raises: BackendCallError on invalid settings or delivery failure.
    """
    sender, recipient = validate_test_settings(smtp)
    body = (
        "This is a test email to verify the SMTP settings.\n\n"
        f"Sent at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}"
    )
    _deliver(smtp, build_message(sender, recipient, TEST_SUBJECT, body), "Send failed")
    logger.info("Test email sent to %s", recipient)
    return "Test email sent."


def send_alert_email(smtp: SmtpSettings, html_body: str) -> None:
    sender, recipient = validate_alert_settings(smtp)
    msg = build_message(sender, recipient, ALERT_SUBJECT, html_body, subtype="html")
    _deliver(smtp, msg, "Failed to send alert email")
    logger.info("Alert email sent to %s", recipient)
