"""
Design (reconciler.py)
- Purpose: Merge the two probe-output channels into one LogBuffer.
    push: one {seq, line} payload per event, low latency, may be dropped or repeated.
    poll: the probe's recent window (list of {seq, line}), authoritative but slower.
- Inputs: Untrusted payloads (event bus / backend.get_recent_logs()).
- Outputs: LogBuffer mutations only.
- Side effects: Counts and debug-logs absorbed MalformedPayload / TransientChannelError.
- Thread-safety: UI thread only.

The outcome does not depend on arrival order between the channels: push goes through
LogBuffer.append (strictly newer seq only) and poll goes through
LogBuffer.replace_if_different (whole-window resync). The poll always wins: any differing
window replaces the buffer, so a late push from a previous run is overwritten on the next poll.
"""

import logging
from typing import Any, Callable, List, Mapping

from .config import PING_EVENT
from .errors import BackendCallError, MalformedPayload, TransientChannelError
from .log_buffer import LogBuffer
from .models import LogEntry

logger = logging.getLogger(__name__)


def parse_entry(payload: Any) -> LogEntry:
    """
    Purpose: Validate one {seq, line} payload.
    Outputs: LogEntry.
    Raises: MalformedPayload when seq is not a non-negative int or line is not a str.
    """
    if not isinstance(payload, Mapping):
        raise MalformedPayload(f"expected an object, got {type(payload).__name__}")
    seq = payload.get("seq")
    line = payload.get("line")
    # bool is an int subclass; a JSON true is not a sequence number
    if isinstance(seq, bool) or not isinstance(seq, int) or seq < 0:
        raise MalformedPayload(f"invalid seq: {seq!r}")
    if not isinstance(line, str):
        raise MalformedPayload(f"invalid line for seq {seq}")
    return LogEntry(seq=seq, line=line)


def parse_window(raw: Any) -> List[LogEntry]:
    """
    Purpose: Validate a poll response as a whole.
    Raises: MalformedPayload if it is not a list, any item is invalid, or seq is not
            strictly increasing. Nothing is returned partially.
    """
    if not isinstance(raw, (list, tuple)):
        raise MalformedPayload(f"expected a list, got {type(raw).__name__}")
    entries = [parse_entry(item) for item in raw]
    for prev, cur in zip(entries, entries[1:]):
        if cur.seq <= prev.seq:
            raise MalformedPayload(f"window out of order at seq {cur.seq}")
    return entries


class StreamReconciler:
    """
    Design (StreamReconciler)
    - State:
        buffer: the LogBuffer being fed
        fetch: callable returning the raw poll window (may raise BackendCallError)
        dropped_payloads: MalformedPayload count
        channel_errors: TransientChannelError count
    """

    def __init__(self, buffer: LogBuffer, fetch: Callable[[], Any]) -> None:
        self.buffer = buffer
        self.fetch = fetch
        self.dropped_payloads = 0
        self.channel_errors = 0
        self._unlisten: Callable[[], None] | None = None

    # -------- push channel --------

    def attach(self, listen: Callable[[str, Callable[[Any], None]], Callable[[], None]]) -> bool:
        """
        Purpose: Subscribe on_push to the ping-log event.
        Outputs: True if attached. A failed attach is absorbed; polling alone keeps the view correct.
        """
        try:
            self._unlisten = listen(PING_EVENT, self.on_push)
        except (BackendCallError, TransientChannelError) as exc:
            self._absorb(TransientChannelError(f"push subscription failed: {exc}"))
            return False
        return True

    def detach(self) -> None:
        if self._unlisten is not None:
            self._unlisten()
            self._unlisten = None

    def on_push(self, payload: Any) -> bool:
        try:
            entry = parse_entry(payload)
        except MalformedPayload as exc:
            self._discard(exc)
            return False
        return self.buffer.append(entry)

    # -------- poll channel --------

    def poll(self) -> bool:
        """Fetch and apply one snapshot. Returns True if the buffer changed."""
        try:
            raw = self.fetch()
        except BackendCallError as exc:
            self._absorb(TransientChannelError(f"poll failed: {exc}"))
            return False
        return self.apply_snapshot(raw)

    def apply_snapshot(self, raw: Any) -> bool:
        try:
            window = parse_window(raw)
        except MalformedPayload as exc:
            self._discard(exc)
            return False

        if not window and not self.buffer:
            # flips the view from "waiting" to the "no data" state
            self.buffer.touch()
            return False
        return self.buffer.replace_if_different(window)

    # -------- absorbed errors --------

    def _discard(self, exc: MalformedPayload) -> None:
        self.dropped_payloads += 1
        logger.debug("Dropped malformed payload: %s", exc)

    def _absorb(self, exc: TransientChannelError) -> None:
        self.channel_errors += 1
        logger.debug("Transient channel error: %s", exc)
