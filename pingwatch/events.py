"""
Design (events.py)
- Purpose: Process-wide push channel between the probe thread and the UI.
- Inputs: listen(event, handler); emit(event, payload) from any thread.
- Outputs: handler(payload) calls, optionally marshalled through `dispatch`
           (main.py passes a root.after(0, ...) wrapper so handlers run on the Tk thread).
- Side effects: None beyond calling handlers.
- Thread-safety: Listener table guarded by a lock; emit iterates over a copy.
"""

import threading
from typing import Any, Callable, Dict, List

Handler = Callable[[Any], None]


class EventBus:
    def __init__(self, dispatch: Callable[[Callable[[], None]], Any] | None = None) -> None:
        self._lock = threading.Lock()
        self._listeners: Dict[str, List[Handler]] = {}
        self._dispatch = dispatch

    def listen(self, event: str, handler: Handler) -> Callable[[], None]:
        """Register `handler` for `event`; returns a callable that unregisters it."""
        with self._lock:
            self._listeners.setdefault(event, []).append(handler)

        def unlisten() -> None:
            with self._lock:
                handlers = self._listeners.get(event, [])
                if handler in handlers:
                    handlers.remove(handler)

        return unlisten

    def emit(self, event: str, payload: Any) -> None:
        with self._lock:
            handlers = list(self._listeners.get(event, []))
        for handler in handlers:
            if self._dispatch is None:
                handler(payload)
            else:
                self._dispatch(lambda h=handler: h(payload))
