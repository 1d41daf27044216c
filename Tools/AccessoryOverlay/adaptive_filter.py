"""
One Euro Filter implementation for placement smoothing.

Timestamps are in milliseconds, matching the frame loop clock.
"""

import math
from typing import Optional

from .config import FILTER_INITIAL_RATE_HZ, FILTER_D_CUTOFF, FilterSettings

TWO_PI = 2.0 * math.pi


def wrap_angle(angle: float) -> float:
    """Wrap an angle in radians to [-pi, pi]."""
    wrapped = (angle + math.pi) % TWO_PI - math.pi
    # Keep +pi instead of folding it onto -pi
    if wrapped == -math.pi and angle > 0:
        return math.pi
    return wrapped


def shortest_angle_delta(from_angle: float, to_angle: float) -> float:
    """Signed shortest rotation from one angle to another, in [-pi, pi]."""
    return wrap_angle(to_angle - from_angle)


class AdaptiveFilter:
    """
    One Euro Filter - adaptive low-pass filter for noisy input.

    Adapts smoothing based on signal speed:
    - Slow movement = heavy smoothing (reduces jitter)
    - Fast movement = light smoothing (reduces latency)

    Reference: Casiez et al. "1€ Filter: A Simple Speed-based Low-pass
    Filter for Noisy Input in Interactive Systems" (CHI 2012)
    """

    def __init__(
        self,
        min_cutoff: float = 1.0,
        beta: float = 0.0,
        d_cutoff: float = FILTER_D_CUTOFF,
        initial_rate_hz: float = FILTER_INITIAL_RATE_HZ
    ):
        """
        Initialize the filter.

        Args:
            min_cutoff: Minimum cutoff frequency (Hz). Lower = smoother but more lag.
            beta: Speed coefficient. Higher = more responsive to fast movements.
            d_cutoff: Derivative cutoff frequency for velocity smoothing.
            initial_rate_hz: Sampling rate assumed until two timestamps are known.
        """
        self.min_cutoff = min_cutoff
        self.beta = beta
        self.d_cutoff = d_cutoff
        self.initial_rate_hz = initial_rate_hz

        self._value: Optional[float] = None
        self._derivative: float = 0.0
        self._last_timestamp: Optional[float] = None
        self._rate: float = initial_rate_hz

    @classmethod
    def from_settings(cls, settings: FilterSettings) -> "AdaptiveFilter":
        return cls(
            min_cutoff=settings.min_cutoff,
            beta=settings.beta,
            d_cutoff=settings.d_cutoff
        )

    @property
    def value(self) -> Optional[float]:
        """Last filtered value, None before the first sample."""
        return self._value

    @property
    def derivative(self) -> float:
        return self._derivative

    @property
    def rate(self) -> float:
        """Current sampling rate estimate in Hz."""
        return self._rate

    def _smoothing_factor(self, cutoff: float) -> float:
        """Calculate smoothing factor alpha from cutoff frequency."""
        te = 1.0 / self._rate
        tau = 1.0 / (2.0 * math.pi * cutoff)
        return 1.0 / (1.0 + tau / te)

    def filter(self, x: float, timestamp_ms: Optional[float] = None) -> float:
        """
        Apply the filter to a single value.

        Args:
            x: Input value.
            timestamp_ms: Sample time in milliseconds. Without it the current
                rate estimate is reused.

        Returns:
            Filtered value.
        """
        if self._value is None:
            self._value = x
            self._derivative = 0.0
            self._last_timestamp = timestamp_ms
            return x

        if timestamp_ms is not None and self._last_timestamp is not None:
            dt = timestamp_ms - self._last_timestamp
            # Repeated or out-of-order timestamps keep the previous rate
            if dt > 0:
                self._rate = 1000.0 / dt
        if timestamp_ms is not None:
            self._last_timestamp = timestamp_ms

        # Estimate velocity (derivative)
        dx = (x - self._value) * self._rate

        # Smooth the derivative
        a_d = self._smoothing_factor(self.d_cutoff)
        dx_smooth = a_d * dx + (1.0 - a_d) * self._derivative

        # Adaptive cutoff based on velocity
        cutoff = self.min_cutoff + self.beta * abs(dx_smooth)

        # Filter the signal
        a = self._smoothing_factor(cutoff)
        x_filtered = a * x + (1.0 - a) * self._value

        self._value = x_filtered
        self._derivative = dx_smooth

        return x_filtered

    def reset(self) -> None:
        """Reset filter state."""
        self._value = None
        self._derivative = 0.0
        self._last_timestamp = None
        self._rate = self.initial_rate_hz


class AngleFilter(AdaptiveFilter):
    """
    One Euro Filter for angles in radians.

    Each new angle is unwrapped next to the current value before filtering,
    so a rotation across the +/-pi seam is seen as the short way round.
    Output is wrapped to [-pi, pi].
    """

    def filter(self, x: float, timestamp_ms: Optional[float] = None) -> float:
        if self._value is None:
            return super().filter(wrap_angle(x), timestamp_ms)

        target = self._value + shortest_angle_delta(self._value, x)
        filtered = super().filter(target, timestamp_ms)

        self._value = wrap_angle(filtered)
        return self._value
