"""
Design (scroll.py)
- Purpose: Decide whether the Logs panel follows new lines or keeps the user's position,
           and which edge buttons (to top / to bottom) are visible.
- Inputs: ScrollMetrics measured by the view (pixels).
- Outputs: Target offsets and Affordances; no widget access here.
- Side effects: None besides the controller's own mode.
- Thread-safety: UI thread only.
"""

from dataclasses import dataclass
from enum import Enum

from .config import SCROLL_THRESHOLD


@dataclass(frozen=True)
class ScrollMetrics:
    offset: float            # distance scrolled from the top
    content_height: float
    viewport_height: float

    @property
    def max_offset(self) -> float:
        return max(0.0, self.content_height - self.viewport_height)

    @property
    def distance_to_top(self) -> float:
        return self.offset

    @property
    def distance_to_bottom(self) -> float:
        return self.content_height - self.viewport_height - self.offset


class ScrollMode(Enum):
    FOLLOWING = "following"
    PINNED = "pinned"


@dataclass(frozen=True)
class Affordances:
    show_to_top: bool
    show_to_bottom: bool


class ScrollPositionController:
    """
    Design (ScrollPositionController)
    - FOLLOWING: every render scrolls to the newest line.
    - PINNED: every render restores the previous offset (lines evicted above may shift content).
    - Mode follows user gestures: within `threshold` of the bottom means FOLLOWING.
    """

    def __init__(self, threshold: float = SCROLL_THRESHOLD) -> None:
        self.threshold = threshold
        self.mode = ScrollMode.FOLLOWING

    @property
    def following(self) -> bool:
        return self.mode is ScrollMode.FOLLOWING

    def reset(self) -> None:
        self.mode = ScrollMode.FOLLOWING

    def on_user_scroll(self, metrics: ScrollMetrics) -> ScrollMode:
        if metrics.distance_to_bottom <= self.threshold:
            self.mode = ScrollMode.FOLLOWING
        else:
            self.mode = ScrollMode.PINNED
        return self.mode

    def resolve_offset(self, metrics: ScrollMetrics, previous_offset: float) -> float:
        """Offset to apply after a content update."""
        if self.following:
            return metrics.max_offset
        return min(max(0.0, previous_offset), metrics.max_offset)

    def affordances(self, metrics: ScrollMetrics) -> Affordances:
        at_top = metrics.distance_to_top <= self.threshold
        at_bottom = metrics.distance_to_bottom <= self.threshold
        if at_top:
            return Affordances(show_to_top=False, show_to_bottom=True)
        if at_bottom:
            return Affordances(show_to_top=True, show_to_bottom=False)
        return Affordances(show_to_top=True, show_to_bottom=True)
