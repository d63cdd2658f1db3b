import math

import numpy as np

from config import MAX_SPECTRUM_BINS

# Raw magnitudes arrive as unsigned bytes
MAX_MAGNITUDE = 255.0


def bucket_edges(length: int, bins: int, coverage: float) -> list[tuple[int, int]]:
    """Raw-index [start, stop) range for each bucket; contiguous and ascending."""
    bins = max(0, min(MAX_SPECTRUM_BINS, int(bins)))
    edges = []
    start = 0
    for i in range(bins):
        stop = min(length, math.ceil((i + 1) / bins * length * coverage))
        stop = max(start, stop)
        edges.append((start, stop))
        start = stop
    return edges


def bucketize_spectrum(
    magnitudes: np.ndarray | list | None,
    bins: int,
    coverage: float = 0.65,
) -> list[float]:
    """Compress raw frequency-bin magnitudes (0-255) into ``bins`` values in [0, 1].

    Only the lowest ``coverage`` fraction of the spectrum is used. Each bucket
    is the mean of its raw samples divided by 255; an empty range yields 0.
    """
    if magnitudes is None:
        return []
    data = np.asarray(magnitudes, dtype=np.float64)
    buckets = []
    for start, stop in bucket_edges(len(data), bins, coverage):
        if stop <= start:
            buckets.append(0.0)
            continue
        buckets.append(float(np.mean(data[start:stop])) / MAX_MAGNITUDE)
    return buckets
