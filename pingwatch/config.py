"""
Design (config.py)
- Purpose: Centralize constants and configuration.
- Inputs: Environment (PINGWATCH_LOG_LEVEL, PINGWATCH_HOME) read once at import.
- Outputs: Constants (capacities, intervals, file names, SMTP defaults).
- Side effects: None.
- Thread-safety: N/A (read-only constants).
"""

import os

# Logs panel keeps the most recent lines only (oldest evicted)
LOG_CAPACITY = 100

# UI-side polling of the probe's recent logs
POLL_INTERVAL_MS = 1000

# Distance (pixels) from an edge that still counts as "at the edge" for auto-follow
SCROLL_THRESHOLD = 6

# Push channel event carrying one {seq, line} payload per probe cycle
PING_EVENT = "ping-log"

## Probe behavior
PING_INTERVAL_SEC = 1     # one echo request per cycle
PING_TIMEOUT_SEC = 5      # subprocess timeout; counts as a failed ping
OUTAGE_FAIL_COUNT = 3     # consecutive failures before an outage is declared

ICON_FILE = "logo.ico"  # Expected at pingwatch/icons/logo.ico (added to the exe with --add-data)
NOTIFY_TIMEOUT_SEC = 5

# Persistence: settings file and default log folder (paths resolved in storage module)
APP_DIR_NAME = "Ping Watch"
SETTINGS_FILENAME = "settings.json"
LOG_DIR_NAME = "ping-logs"
ALERT_EXPORT_FILENAME = "alert-settings.json"

## SMTP
SMTP_SSL_PORT = 465
SMTP_STARTTLS_PORT = 587
SMTP_TIMEOUT_SEC = 10       # socket timeout per SMTP operation
SMTP_TEST_TIMEOUT_SEC = 15  # whole test-mail attempt

LOG_LEVEL = os.environ.get("PINGWATCH_LOG_LEVEL", "INFO").upper()
HOME_OVERRIDE = os.environ.get("PINGWATCH_HOME", "")
