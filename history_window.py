"""
pulsebands - History Window
Bounded-duration, newest-first frame history and the rolling statistics
(average, delta, trend) computed from it on every tick.
"""

from collections import deque
from dataclasses import dataclass, field, asdict
from typing import Deque, Dict, Mapping, Optional, List


@dataclass
class BandReading:
    """Per-band analysis result for one tick"""
    val: float = 0.0          # Normalized level (0..gain)
    avg: float = 0.0          # Mean of val over the averaging window
    delta: float = 0.0        # val minus the reference frame's val
    trend: float = 0.0        # avg minus the avg at the averaging boundary
    hit: bool = False         # True only on the tick an onset is first detected


@dataclass
class Frame:
    """One tick of analysis output, ordered newest-first in the window"""
    t: float = 0.0                                   # Monotonic timestamp (ms)
    bands: Dict[str, BandReading] = field(default_factory=dict)
    spectrum: Optional[List[float]] = None           # Bucketized magnitudes (0..1) when enabled
    level: Optional[float] = None                    # Waveform level when a waveform was supplied

    def __getitem__(self, band: str) -> BandReading:
        return self.bands[band]

    def __contains__(self, band: str) -> bool:
        return band in self.bands

    def to_dict(self) -> dict:
        return asdict(self)


def _band_val(frame: Frame, band: str) -> float:
    reading = frame.bands.get(band)
    return reading.val if reading is not None else 0.0


def _band_avg(frame: Frame, band: str) -> float:
    reading = frame.bands.get(band)
    return reading.avg if reading is not None else 0.0


class HistoryWindow:
    """
    Newest-first frame sequence shared across all bands.

    Every retained frame is at most ``max_window_ms`` older than the newest
    one; older frames are evicted from the tail on each push, however many
    there are. When ``recycle_frames`` is set, the last evicted frame object
    is reused for the next push instead of allocating a new one. Consumers
    holding on to emitted frames should leave recycling off.
    """

    def __init__(self, delta_window_ms: float = 50.0, avg_window_ms: float = 150.0,
                 recycle_frames: bool = False):
        self.delta_window_ms = float(delta_window_ms)
        self.avg_window_ms = float(avg_window_ms)
        self.max_window_ms = max(self.delta_window_ms, self.avg_window_ms)
        self.recycle_frames = recycle_frames
        self._frames: Deque[Frame] = deque()
        self._spare: Optional[Frame] = None
        self._previous: Optional[Frame] = None
        self.evicted_total = 0

    def __len__(self) -> int:
        return len(self._frames)

    def __iter__(self):
        return iter(self._frames)

    def __getitem__(self, index: int) -> Frame:
        return self._frames[index]

    @property
    def newest(self) -> Optional[Frame]:
        return self._frames[0] if self._frames else None

    @property
    def previous(self) -> Optional[Frame]:
        """Frame that preceded the newest one, even if it was evicted on this tick."""
        return self._previous

    def clear(self) -> None:
        self._frames.clear()
        self._spare = None
        self._previous = None
        self.evicted_total = 0

    def _new_frame(self, t: float) -> Frame:
        frame = self._spare
        self._spare = None
        if frame is None:
            return Frame(t=t)
        frame.t = t
        frame.bands.clear()
        frame.spectrum = None
        frame.level = None
        return frame

    def push_frame(self, band_values: Mapping[str, Optional[float]], t: float) -> Frame:
        """
        Insert a frame for time ``t`` and fill avg/delta/trend for each band.

        Bands whose value is None are skipped. Returns the new frame.
        """
        frames = self._frames
        frame = self._new_frame(t)
        for band, val in band_values.items():
            if val is None:
                continue
            frame.bands[band] = BandReading(val=float(val))

        frames.appendleft(frame)

        # Single pass: furthest frame still inside the averaging window, and
        # the oldest frame still inside the delta window.
        avg_cutoff = t - self.avg_window_ms
        delta_cutoff = t - self.delta_window_ms
        reference = frames[1] if len(frames) > 1 else None
        self._previous = reference
        avg_index = 0
        for i in range(1, len(frames)):
            ft = frames[i].t
            if ft >= avg_cutoff:
                avg_index = i
            if ft >= delta_cutoff:
                reference = frames[i]

        self._evict(t)

        for band, reading in frame.bands.items():
            if avg_index > 0:
                total = 0.0
                for i in range(avg_index + 1):
                    total += _band_val(frames[i], band)
                reading.avg = total / avg_index
            else:
                reading.avg = 0.0

            if reference is not None:
                reading.delta = reading.val - _band_val(reference, band)
                reading.trend = reading.avg - _band_avg(frames[avg_index], band)
            else:
                reading.delta = 0.0
                reading.trend = 0.0

        return frame

    def _evict(self, t: float) -> int:
        cutoff = t - self.max_window_ms
        frames = self._frames
        evicted = 0
        while len(frames) > 1 and frames[-1].t < cutoff:
            stale = frames.pop()
            evicted += 1
            if self.recycle_frames and stale is not self._previous:
                self._spare = stale
        self.evicted_total += evicted
        return evicted
