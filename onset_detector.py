"""
pulsebands - Onset Detector
Per-band adaptive decaying threshold with an edge-triggered hit flag.
"""

from typing import Optional

# Calibration constants, tuned empirically. Keep as-is for behavioral parity.
INITIAL_THRESHOLD = 2.0
THRESHOLD_FLOOR = 0.1
DECAY_RATE = 0.15           # Fraction of the gap to val closed per reference tick
HIT_EXPONENT = 1.3          # Makes the test more selective at low levels
HIT_MARGIN = 1.3
REFERENCE_TICK_MS = 16.0

QUIET = "quiet"
HIT_EDGE = "hit-edge"
SUSTAINED_ABOVE = "sustained-above"


class OnsetDetector:
    """
    Envelope-following onset detector for one band.

    The threshold chases the level downward at DECAY_RATE per reference tick
    (scaled by the real tick spacing), jumps straight up to the level when
    the level exceeds it, and never drops below THRESHOLD_FLOOR. A hit fires
    only on the rising edge; the latch holds while the level stays above the
    threshold and clears once it falls back under.
    """
    __slots__ = ('threshold', 'in_hit', '_fired_last')

    def __init__(self):
        self.threshold: float = INITIAL_THRESHOLD
        self.in_hit: bool = False
        self._fired_last: bool = False

    @property
    def state(self) -> str:
        if not self.in_hit:
            return QUIET
        return HIT_EDGE if self._fired_last else SUSTAINED_ABOVE

    def update(self, val: float, t: float, previous_t: Optional[float] = None) -> bool:
        """Feed one level. Returns True only on the tick an onset is first detected."""
        m = (t - previous_t) / REFERENCE_TICK_MS if previous_t is not None else 1.0
        threshold = self.threshold

        hit = False
        # Negative input would make the power complex
        if max(val, 0.0) ** HIT_EXPONENT > threshold * HIT_MARGIN:
            if not self.in_hit:
                hit = self.in_hit = True
        else:
            self.in_hit = False
        self._fired_last = hit

        self.threshold = max(THRESHOLD_FLOOR, val, threshold - (threshold - val) * DECAY_RATE * m)
        return hit

    def reset(self) -> None:
        """Clear all state for a fresh start."""
        self.threshold = INITIAL_THRESHOLD
        self.in_hit = False
        self._fired_last = False
