from __future__ import annotations

from typing import Any, Callable, Dict, List

import pytest

from pingwatch.errors import BackendCallError


class FakeScheduler:
    """Manual clock with Tk's after/after_cancel interface."""

    def __init__(self) -> None:
        self.now = 0
        self._next_id = 0
        self._timers: Dict[int, tuple[int, Callable[[], None]]] = {}

    def after(self, ms: int, fn: Callable[[], None]) -> int:
        self._next_id += 1
        self._timers[self._next_id] = (self.now + ms, fn)
        return self._next_id

    def after_cancel(self, handle: int) -> None:
        self._timers.pop(handle, None)

    @property
    def pending(self) -> int:
        return len(self._timers)

    def advance(self, ms: int) -> None:
        end = self.now + ms
        while True:
            due = [(when, handle) for handle, (when, _) in self._timers.items() if when <= end]
            if not due:
                break
            when, handle = min(due)
            _, fn = self._timers.pop(handle)
            self.now = when
            fn()
        self.now = end


class FakeBackend:
    """Scriptable stand-in for ProbeBackend."""

    def __init__(self) -> None:
        self.window: Any = []
        self.fetch_calls = 0
        self.fetch_error: BackendCallError | None = None
        self.start_error: BackendCallError | None = None
        self.stop_error: BackendCallError | None = None
        self.listen_error: BackendCallError | None = None
        self.started: List[str] = []
        self.stopped = 0
        self.handlers: Dict[str, List[Callable[[Any], None]]] = {}
        self.log_dir = "/var/log/pingwatch"

    def start_ping(self, address: str) -> str:
        if self.start_error is not None:
            raise self.start_error
        self.started.append(address)
        return "/tmp/ping-logs"

    def stop_ping(self) -> None:
        if self.stop_error is not None:
            raise self.stop_error
        self.stopped += 1

    def get_recent_logs(self) -> Any:
        self.fetch_calls += 1
        if self.fetch_error is not None:
            raise self.fetch_error
        return self.window

    def listen(self, event: str, handler: Callable[[Any], None]) -> Callable[[], None]:
        if self.listen_error is not None:
            raise self.listen_error
        self.handlers.setdefault(event, []).append(handler)
        return lambda: self.handlers[event].remove(handler)

    def push(self, event: str, payload: Any) -> None:
        for handler in list(self.handlers.get(event, [])):
            handler(payload)

    def get_log_dir(self) -> str:
        return self.log_dir

    def set_log_dir(self, path: str) -> str:
        self.log_dir = path
        return path


class RenderCounter:
    def __init__(self) -> None:
        self.count = 0

    def __call__(self) -> None:
        self.count += 1


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def renders() -> RenderCounter:
    return RenderCounter()
