"""
Entry point: wire the Tk root, the event bus, the probe backend and the UI, then run the loop.

Events emitted by the probe thread are marshalled onto the Tk thread with root.after(0, ...),
so every log view mutation happens on the main thread.
"""

import logging
import tkinter as tk

from pingwatch.backend import ProbeBackend
from pingwatch.config import LOG_LEVEL
from pingwatch.events import EventBus
from pingwatch.ui import AppUI


def main() -> None:
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )
    root = tk.Tk()
    events = EventBus(dispatch=lambda fn: root.after(0, fn))
    backend = ProbeBackend(events=events)
    AppUI(root, backend)
    root.mainloop()


if __name__ == "__main__":
    main()
