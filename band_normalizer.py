"""
pulsebands - Band Normalizer
Maps unbounded compressor reduction readings onto a calibrated 0..1 level.
"""

import math

# Conservative seed so early spikes don't immediately saturate the estimate
DEFAULT_ADJUSTMENT_FACTOR = 0.1


class BandNormalizer:
    """
    Self-calibrating scale for one metering channel.

    Each reading is multiplied by an adjustment factor. When the product
    exceeds 1 the factor is divided by that product, so the factor only ever
    tightens within a session and the visible level stays in [0, 1] while
    relative dynamics between ticks are kept. The caller's gain is applied
    after the clamp, so output lies in [0, gain].

    The engine keeps one instance for the aggregate channel and one shared by
    all narrow bands, since their dynamic ranges differ systematically.
    """
    __slots__ = ('initial_factor', 'factor')

    def __init__(self, initial_factor: float = DEFAULT_ADJUSTMENT_FACTOR):
        self.initial_factor = initial_factor
        self.factor = initial_factor

    def normalize(self, raw: float, gain: float = 1.0) -> float:
        """Scale one raw reading. Returns a value in [0, gain]."""
        raw = abs(float(raw))
        if not math.isfinite(raw):
            raw = 0.0

        scaled = raw * self.factor
        if scaled > 1.0:
            self.factor /= scaled
            scaled = 1.0
        return scaled * gain

    def reset(self) -> None:
        """Forget the calibration for a fresh session."""
        self.factor = self.initial_factor
