"""
Design (session.py)
- Purpose: Own the probe run lifecycle on the UI side: start/stop commands, buffer reset,
           the recurring poll timer and the status fields the main window displays.
- Inputs: A backend (start_ping/stop_ping/get_recent_logs/listen/get_log_dir/set_log_dir)
          and a scheduler with Tk's after(ms, fn) / after_cancel(handle) interface.
- Outputs: running, address, log_path, error_message; on_render / on_status callbacks.
- Side effects: Invokes backend commands; arms/cancels Tk timers.
- Thread-safety: UI thread only. Backend commands are quick in-process calls.
"""

import logging
from enum import Enum
from typing import Any, Callable

from .config import LOG_CAPACITY, POLL_INTERVAL_MS
from .errors import BackendCallError, ValidationError
from .log_buffer import LogBuffer
from .reconciler import StreamReconciler
from .scroll import ScrollPositionController

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    IDLE = "idle"
    RUNNING = "running"


class ConnectionLifecycle:
    """
    Design (ConnectionLifecycle)
    - State:
        state: IDLE or RUNNING
        _poll_handle: Tk timer id; set only while RUNNING (cleared while a tick runs)
        buffer / reconciler / scroll: the log view model for the current run
    - Public methods:
        attach(): subscribe the reconciler to the push channel (once per process)
        start(address) / stop(): lifecycle commands; failures end in error_message
        refresh_log_dir() / change_log_dir(path): log folder display
    """

    def __init__(
        self,
        backend: Any,
        scheduler: Any,
        on_render: Callable[[], None] | None = None,
        on_status: Callable[[], None] | None = None,
        poll_interval_ms: int = POLL_INTERVAL_MS,
        capacity: int = LOG_CAPACITY,
    ) -> None:
        self.backend = backend
        self.scheduler = scheduler
        self.on_render = on_render
        self.on_status = on_status
        self.poll_interval_ms = poll_interval_ms

        self.scroll = ScrollPositionController()
        self.buffer = LogBuffer(capacity, on_change=self._render)
        self.reconciler = StreamReconciler(self.buffer, backend.get_recent_logs)

        self.state = ConnectionState.IDLE
        self.address = ""
        self.log_path = ""
        self.error_message = ""
        self._poll_handle: Any = None

    @property
    def running(self) -> bool:
        return self.state is ConnectionState.RUNNING

    @property
    def polling(self) -> bool:
        return self._poll_handle is not None

    def attach(self) -> bool:
        return self.reconciler.attach(self.backend.listen)

    # -------- lifecycle --------

    def start(self, address: str) -> bool:
        """
        Purpose: Start a probe run against `address`.
        Outputs: True on success. On failure the state stays IDLE and error_message is set.
        Side effects: Clears the buffer, resets scrolling to follow, polls once, arms the poll timer.
        """
        address = (address or "").strip()
        self.error_message = ""
        try:
            if not address:
                raise ValidationError("Please enter a target address.")
            base_dir = self.backend.start_ping(address)
        except (ValidationError, BackendCallError) as exc:
            self._fail(exc)
            return False

        logger.info("Probe started for %s", address)
        self.address = address
        self.log_path = str(base_dir)
        self._cancel_poll()
        self.scroll.reset()
        self.buffer.reset()
        self.state = ConnectionState.RUNNING
        self._status()
        self.reconciler.poll()
        self._arm_poll()
        return True

    def stop(self) -> bool:
        """
        Purpose: Stop the running probe.
        Outputs: True on success. On failure the state stays RUNNING and error_message is set.
        """
        self.error_message = ""
        try:
            self.backend.stop_ping()
        except BackendCallError as exc:
            self._fail(exc)
            return False

        logger.info("Probe stopped for %s", self.address)
        self._cancel_poll()
        self.state = ConnectionState.IDLE
        self._status()
        return True

    # -------- log folder --------

    def refresh_log_dir(self) -> None:
        try:
            self.log_path = self.backend.get_log_dir()
        except BackendCallError as exc:
            self._fail(exc)
            return
        self._status()

    def change_log_dir(self, path: str) -> bool:
        """Persist a new log folder; ignored while running or when the chooser was cancelled."""
        if self.running or not path:
            return False
        self.error_message = ""
        try:
            self.log_path = self.backend.set_log_dir(path)
        except BackendCallError as exc:
            self._fail(exc)
            return False
        self._status()
        return True

    # -------- polling --------

    def _arm_poll(self) -> None:
        self._poll_handle = self.scheduler.after(self.poll_interval_ms, self._poll_tick)

    def _cancel_poll(self) -> None:
        if self._poll_handle is not None:
            self.scheduler.after_cancel(self._poll_handle)
            self._poll_handle = None

    def _poll_tick(self) -> None:
        # re-armed only after this poll settles, so polls never overlap
        self._poll_handle = None
        if not self.running:
            return
        self.reconciler.poll()
        if self.running and self._poll_handle is None:
            self._arm_poll()

    # -------- callbacks --------

    def _fail(self, exc: Exception) -> None:
        self.error_message = str(exc)
        logger.info("Command failed: %s", exc)
        self._status()

    def _render(self) -> None:
        if self.on_render is not None:
            self.on_render()

    def _status(self) -> None:
        if self.on_status is not None:
            self.on_status()
