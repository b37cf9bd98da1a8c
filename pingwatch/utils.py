"""
Design (utils.py)
- Purpose: Reusable helpers: icon path detection (PyInstaller), ping wrapper and output
           summarizing, desktop notifications.
- Inputs: Various helper parameters (address, raw ping output, notification text).
- Outputs: Helper results (paths, command lines, (ok, summary) tuples).
- Side effects: ping_once runs a subprocess; notify_desktop shows an OS notification.
- Thread-safety: Stateless; safe to call from any thread.
"""

import logging
import os
import subprocess
import sys
from typing import List, Sequence, Tuple

from plyer import notification

from .config import NOTIFY_TIMEOUT_SEC, PING_TIMEOUT_SEC

logger = logging.getLogger(__name__)

SUCCESS_MARKERS = ("Reply from", "bytes from", "bytes=", "时间", "字节=")
SUCCESS_MARKERS_LOWER = ("time=", "time<", "ttl=", "ms")
ERROR_MARKERS_LOWER = (
    "timed out",
    "timeout",
    "unreachable",
    "general failure",
    "could not find host",
    "name or service not known",
)
ERROR_MARKERS = ("请求超时", "无法访问", "一般故障", "找不到主机", "无法解析")


def get_icon_path(filename: str) -> str:
    """
    Purpose: Resolve icon path for both dev (script) and PyInstaller (frozen) runs.
    Inputs: filename (e.g., "logo.ico")
    Outputs: Path usable with Tk.iconbitmap (may not exist; caller checks).
    """
    if getattr(sys, "frozen", False) and hasattr(sys, "_MEIPASS"):
        return os.path.join(sys._MEIPASS, filename)  # type: ignore[attr-defined]
    here = os.path.dirname(os.path.abspath(__file__))
    return os.path.join(here, "icons", filename)


def ping_command(address: str, windows: bool | None = None) -> List[str]:
    """One echo request: `-n 1` on Windows, `-c 1` elsewhere."""
    if windows is None:
        windows = os.name == "nt"
    if windows:
        return ["ping", "-n", "1", address]
    return ["ping", "-c", "1", address]


def decode_ping_output(data: bytes) -> str:
    """
    Purpose: Decode ping output in the console's code page on Windows (e.g. cp936), UTF-8 elsewhere.
    Outputs: Text; undecodable bytes are replaced, never raised.
    """
    if not data:
        return ""
    if os.name == "nt":
        import ctypes

        encoding = f"cp{ctypes.windll.kernel32.GetOEMCP()}"  # type: ignore[attr-defined]
        try:
            return data.decode(encoding, errors="replace")
        except LookupError:
            pass
    return data.decode("utf-8", errors="replace")


def is_header_line(line: str) -> bool:
    lower = line.lower()
    return (
        lower.startswith("pinging ")
        or lower.startswith("ping ")
        or "正在 Ping" in line
        or "正在ping" in line
    )


def select_success_line(lines: Sequence[str]) -> str | None:
    for line in lines:
        lower = line.lower()
        if any(m in line for m in SUCCESS_MARKERS) or any(m in lower for m in SUCCESS_MARKERS_LOWER):
            return line
    return None


def select_error_line(lines: Sequence[str]) -> str | None:
    for line in lines:
        lower = line.lower()
        if any(m in lower for m in ERROR_MARKERS_LOWER) or any(m in line for m in ERROR_MARKERS):
            return line
    return None


def select_non_header_line(lines: Sequence[str]) -> str | None:
    for line in lines:
        if not is_header_line(line):
            return line
    return None


def summarize_ping(address: str, success: bool, stdout: str, stderr: str) -> str:
    """
    Purpose: Pick the one line worth showing from a ping run.
    Inputs: success flag (exit status 0) and decoded output streams.
    Outputs: Reply/error line, else first non-header line, else first line,
             else "ping <address> ok|failed".
    """
    if success:
        text = stdout
    elif stderr.strip():
        text = stderr
    else:
        text = stdout

    lines = [line.strip() for line in text.splitlines() if line.strip()]
    preferred = select_success_line(lines) if success else select_error_line(lines)
    if preferred is None:
        preferred = select_non_header_line(lines)
    if preferred is None and lines:
        preferred = lines[0]
    return preferred or f"ping {address} {'ok' if success else 'failed'}"


def ping_once(address: str) -> Tuple[bool, str]:
    """
    Purpose: Ping the given address once.
    Inputs: address (host name or IP)
    Outputs: (reachable, summary line).
    Side Effects: Spawns a 'ping' subprocess (no console window on Windows).
    Thread-safety: Safe; no shared state.
    """
    creationflags = subprocess.CREATE_NO_WINDOW if os.name == "nt" else 0
    try:
        result = subprocess.run(
            ping_command(address),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            creationflags=creationflags,
            timeout=PING_TIMEOUT_SEC,
        )
    except subprocess.TimeoutExpired:
        return False, f"ping {address} timed out"
    except OSError as exc:
        return False, f"failed to spawn ping: {exc}"

    success = result.returncode == 0
    stdout = decode_ping_output(result.stdout)
    stderr = decode_ping_output(result.stderr)
    return success, summarize_ping(address, success, stdout, stderr)


def notify_desktop(title: str, message: str) -> None:
    """Show an OS notification; platforms without a backend only get a log line."""
    try:
        notification.notify(title=title, message=message, timeout=NOTIFY_TIMEOUT_SEC)
    except (NotImplementedError, ImportError, OSError, RuntimeError) as exc:
        logger.warning("Desktop notification failed: %s", exc)
