"""
Design (log_buffer.py)
- Purpose: Bounded, sequence-ordered store of the most recent log lines shown in the Logs panel.
- Inputs: Sanitized LogEntry objects (validation happens in reconciler.py).
- Outputs: Ordered copies of the entries; on_change() after every mutation (drives a render).
- Side effects: Calls on_change.
- Thread-safety: UI thread only (no lock); every mutation is a single step between Tk callbacks.
"""

from collections import deque
from typing import Callable, Deque, Iterator, List, Sequence

from .config import LOG_CAPACITY
from .models import LogEntry


class LogBuffer:
    """
    Design (LogBuffer)
    - Invariants:
        seq strictly increasing front to back (no duplicates, no inversions).
        len(buffer) <= capacity; overflow evicts from the front (lowest seq).
    - State:
        _entries: deque of LogEntry, ascending by seq
        on_change: optional callback, fired once per effective mutation
    """

    def __init__(self, capacity: int = LOG_CAPACITY, on_change: Callable[[], None] | None = None) -> None:
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self.on_change = on_change
        self._entries: Deque[LogEntry] = deque()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[LogEntry]:
        return iter(list(self._entries))

    def entries(self) -> List[LogEntry]:
        return list(self._entries)

    @property
    def last_seq(self) -> int | None:
        return self._entries[-1].seq if self._entries else None

    def append(self, entry: LogEntry) -> bool:
        """
        Purpose: Accept a newer entry; ignore duplicates and out-of-order deliveries.
        Outputs: True if the entry was stored.
        Side effects: May evict the oldest entry; fires on_change when accepted.
        """
        if self._entries and entry.seq <= self._entries[-1].seq:
            return False
        self._entries.append(entry)
        while len(self._entries) > self.capacity:
            self._entries.popleft()
        self._changed()
        return True

    def replace_if_different(self, entries: Sequence[LogEntry]) -> bool:
        """
        Purpose: Adopt an authoritative window wholesale unless it equals current contents.
        Inputs: entries ascending by seq (already validated); clipped to the newest `capacity`.
        Outputs: True if contents changed.
        """
        window = list(entries)[-self.capacity:]
        if window == list(self._entries):
            return False
        self._entries = deque(window)
        self._changed()
        return True

    def reset(self) -> None:
        """Clear to empty; always fires on_change so the view shows the empty state."""
        self._entries.clear()
        self._changed()

    def touch(self) -> None:
        """Request a render without changing contents."""
        self._changed()

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change()
