"""
Signal conditioning for the movement intensity stream.

SmoothingFilter: EMA re-folded over a short window of raw values. Because the
whole window is folded on every update, changing the window size changes the
effective smoothing depth immediately, with no warm-up.

HysteresisFilter: two-threshold Schmitt trigger turning the smoothed
intensity into a stable boolean "moving" signal.
"""

from repstream.core.buffers import RingBuffer


class SmoothingFilter:
    """Exponential moving average recomputed over the last `window_size` values."""

    def __init__(self, window_size: int = 5, factor: float = 0.3):
        """
        Args:
            window_size: Number of raw values folded on each update
            factor: EMA weight of the newer value (0 < factor <= 1)
        """
        if not 0 < factor <= 1:
            raise ValueError(f"Smoothing factor must be in (0, 1], got {factor}")
        self.window_size = window_size
        self.factor = factor
        self._history: RingBuffer[float] = RingBuffer(window_size)

    def update(self, value: float) -> float:
        self._history.append(value)
        values = self._history.to_chronological()

        result = values[0]
        for v in values[1:]:
            result = self.factor * v + (1 - self.factor) * result
        return result

    def reset(self):
        self._history.clear()


class HysteresisFilter:
    """
    Schmitt trigger with separate on/off thresholds.

    Still -> moving only when value > high; moving -> still only when value < low.
    """

    def __init__(self, low: float, high: float):
        if not low < high:
            raise ValueError(f"Hysteresis requires low < high, got low={low}, high={high}")
        self.low = low
        self.high = high
        self._state = False

    @property
    def state(self) -> bool:
        return self._state

    def update(self, value: float) -> bool:
        if self._state:
            if value < self.low:
                self._state = False
        elif value > self.high:
            self._state = True
        return self._state

    def reset(self):
        self._state = False
