"""
Design (repository.py)
- Purpose: Encapsulate the probe's recent output behind a tiny API (and a lock), so the probe
           thread and the UI's poll never touch a shared deque directly.
- Inputs: Display lines from the probe thread.
- Outputs: Sequence numbers on push; snapshots (copies) of the recent window.
- Side effects: Mutates the internal deque and sequence counter.
- Thread-safety: All methods take the internal lock; snapshot returns copies.
"""

import threading
from collections import deque
from typing import Any, Deque, Dict, List

from .config import LOG_CAPACITY
from .models import LogEntry


class RecentLogs:
    """
    Design (RecentLogs)
    - State:
        _next_seq: sequence number for the next pushed line (starts at 1; one store per run)
        _entries: deque of LogEntry, at most `capacity`, oldest first
        _lock: threading.Lock protecting both
    """

    def __init__(self, capacity: int = LOG_CAPACITY) -> None:
        self._lock = threading.Lock()
        self.capacity = capacity
        self._next_seq = 1
        self._entries: Deque[LogEntry] = deque()

    def push(self, line: str) -> int:
        """
        Purpose: Append one line under the next sequence number.
        Outputs: The assigned seq.
        Side effects: Evicts the oldest entries beyond capacity.
        Thread-safety: Protected by _lock.
        """
        with self._lock:
            seq = self._next_seq
            self._next_seq += 1
            self._entries.append(LogEntry(seq=seq, line=line))
            while len(self._entries) > self.capacity:
                self._entries.popleft()
            return seq

    def snapshot(self) -> List[Dict[str, Any]]:
        """
        Purpose: Return the recent window in poll-response shape.
        Outputs: [{"seq": int, "line": str}, ...] ascending by seq.
        Thread-safety: Protected by _lock; returns copies.
        """
        with self._lock:
            return [entry.to_dict() for entry in self._entries]
