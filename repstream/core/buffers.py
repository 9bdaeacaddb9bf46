"""
Fixed-capacity circular buffers for streaming data.

Appends are O(1); once full, the oldest element is overwritten.
"""

from collections import deque
from itertools import islice
from typing import Deque, Generic, Iterator, List, Optional, TypeVar

from repstream.core.pose import PoseFrame

T = TypeVar("T")


class RingBuffer(Generic[T]):
    """Generic circular buffer, overwrite-oldest-on-full."""

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError(f"RingBuffer capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._items: Deque[T] = deque(maxlen=capacity)

    def append(self, item: T):
        self._items.append(item)

    @property
    def count(self) -> int:
        return len(self._items)

    @property
    def is_full(self) -> bool:
        return len(self._items) == self.capacity

    def to_chronological(self) -> List[T]:
        """Elements oldest to newest."""
        return list(self._items)

    def recent(self, n: int) -> List[T]:
        """Last min(n, count) elements, oldest first."""
        n = min(max(n, 0), len(self._items))
        if n == 0:
            return []
        newest_first = list(islice(reversed(self._items), n))
        newest_first.reverse()
        return newest_first

    def latest(self) -> Optional[T]:
        return self._items[-1] if self._items else None

    def clear(self):
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __reversed__(self) -> Iterator[T]:
        return reversed(self._items)


class PoseRingBuffer(RingBuffer[PoseFrame]):
    """Ring buffer of pose frames with time-based retrieval."""

    def __init__(self, capacity: int = 180):
        super().__init__(capacity)

    def recent_frames(self, n: int) -> List[PoseFrame]:
        """Last min(n, count) frames in time order."""
        return self.recent(n)

    def get_time_window(self, duration: float) -> List[PoseFrame]:
        """
        Frames no older than `duration` seconds relative to the newest frame.

        Walks backward from the newest frame and stops at the first frame
        outside the window. Requires non-decreasing timestamps.
        """
        if not self._items:
            return []

        latest_time = self._items[-1].time
        frames: List[PoseFrame] = []
        for frame in reversed(self._items):
            if latest_time - frame.time > duration:
                break
            frames.append(frame)
        frames.reverse()
        return frames
