import numpy as np

from config import LevelMode

# Byte waveforms are centred on 128
WAVEFORM_CENTER = 128.0


def measure_level(
    waveform: np.ndarray | list | None,
    mode: LevelMode = LevelMode.PEAK,
    gain: float = 1.0,
) -> float:
    """Reduce one byte time-domain waveform (0-255) to a level in [0, 1].

    Samples are folded to |b/128 - 1| and combined as peak, RMS or mean
    depending on ``mode``. ``gain`` bends the result with
    ``1 - (1 - level) ** gain`` so quiet material reads louder when gain > 1.
    """
    if waveform is None:
        return 0.0
    samples = np.abs(np.asarray(waveform, dtype=np.float64) / WAVEFORM_CENTER - 1.0)
    if samples.size == 0:
        return 0.0

    if mode == LevelMode.RMS:
        level = float(np.sqrt(np.mean(samples ** 2)))
    elif mode == LevelMode.AVERAGE:
        level = float(np.mean(samples))
    else:
        level = float(np.max(samples))

    level = 1.0 - (1.0 - min(level, 1.0)) ** gain
    return min(level, 1.0)
