"""
Design (storage.py)
- Purpose: Load and save the settings file (JSON) and alert-settings export files.
- Inputs: Paths (settings path from get_settings_path()), settings dataclasses for save.
- Outputs: AppSettings / AlertSettings on load; None on save.
- Side effects: Reads/writes files. load_settings never fails (defaults on any problem);
                save/export/import surface OSError and ValueError to the caller.
- Thread-safety: Each call opens and closes its own file; callers serialize writes.
"""

import json
import os
import sys
from pathlib import Path

from .config import APP_DIR_NAME, HOME_OVERRIDE, LOG_DIR_NAME, SETTINGS_FILENAME
from .models import AlertSettings, AppSettings


def get_settings_path() -> Path:
    """
    Resolve path for settings.json. Prefer the app data dir on Windows so it survives
    reinstalls; honour PINGWATCH_HOME; otherwise ~/.pingwatch.
    """
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / APP_DIR_NAME / SETTINGS_FILENAME
    if HOME_OVERRIDE:
        return Path(HOME_OVERRIDE) / SETTINGS_FILENAME
    return Path.home() / ".pingwatch" / SETTINGS_FILENAME


def default_log_dir(settings_path: Path) -> Path:
    return settings_path.parent / LOG_DIR_NAME


def load_settings(path: Path) -> AppSettings:
    """
    Load settings from JSON file. Returns defaults on missing file, parse error or bad values.
    """
    if not path.exists():
        return AppSettings()
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return AppSettings.from_dict(data)
    except (OSError, ValueError, TypeError):
        return AppSettings()


def _write_json(data: dict, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


def save_settings(settings: AppSettings, path: Path) -> None:
    """Write the whole settings file. Raises OSError (e.g. read-only location)."""
    _write_json(settings.to_dict(), path)


def export_alert_settings(alert: AlertSettings, path: Path) -> None:
    _write_json(alert.to_dict(), path)


def import_alert_settings(path: Path) -> AlertSettings:
    """
    Read an exported alert file. Raises OSError if unreadable, ValueError/TypeError if the
    content is not a valid alert settings object.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return AlertSettings.from_dict(data)
