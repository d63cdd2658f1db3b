# pulsebands Configuration
# All default values and constants

from dataclasses import dataclass, field, is_dataclass
from enum import IntEnum
from typing import List

from logging_utils import log_event


CURRENT_CONFIG_VERSION = 1

# Spectrum bucket count is capped so the display array stays small
MAX_SPECTRUM_BINS = 128

DEFAULT_BANDS = ["low", "mid", "high", "all"]


class LevelMode(IntEnum):
    """How a time-domain waveform is reduced to a single level"""
    PEAK = 0
    RMS = 1
    AVERAGE = 2


@dataclass
class AnalysisConfig:
    """Rolling statistics, normalization and spectrum parameters"""
    delta_window_ms: float = 50.0     # Age of the reference frame used for delta/trend (ms)
    avg_window_ms: float = 150.0      # Averaging window (ms)
    gain: float = 1.0                 # Multiplier applied after normalization (may exceed 1)
    spectrum_bins: int = 0            # Bucket count for spectrum snapshots (0 = disabled, max 128)
    spectrum_coverage: float = 0.65   # Fraction of the raw spectrum mapped into buckets
    recycle_frames: bool = False      # Reuse evicted frame objects instead of allocating
    bands: List[str] = field(default_factory=lambda: list(DEFAULT_BANDS))
    aggregate_band: str = "all"       # Band normalized with its own adjustment factor

    @property
    def max_window_ms(self) -> float:
        return max(self.delta_window_ms, self.avg_window_ms)


@dataclass
class MeterConfig:
    """Waveform level meter settings"""
    mode: LevelMode = LevelMode.PEAK
    gain: float = 1.0                 # Curve exponent: level = 1 - (1 - level) ** gain


@dataclass
class Config:
    """Master configuration"""
    version: int = 1                  # Schema version for persisted configs
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    meter: MeterConfig = field(default_factory=MeterConfig)

    # Global
    log_level: str = "INFO"           # Logging level (DEBUG/INFO/WARNING/ERROR)
    report_generation_enabled: bool = True    # Write session reports when a report dir is given


def apply_dict_to_dataclass(target, data) -> None:
    """Recursively apply values from a dict onto a dataclass instance.
    Unknown keys are ignored; IntEnum fields are coerced when possible."""
    if not isinstance(data, dict):
        return

    for key, value in data.items():
        if not hasattr(target, key):
            continue

        current = getattr(target, key)

        if is_dataclass(current) and isinstance(value, dict):
            apply_dict_to_dataclass(current, value)
            continue

        if isinstance(current, IntEnum):
            try:
                setattr(target, key, current.__class__(value))
            except (TypeError, ValueError):
                log_event("WARNING", "Config", "Could not convert value, keeping default",
                          key=key, expected=current.__class__.__name__)
            continue

        if isinstance(getattr(type(target), key, None), property):
            continue

        setattr(target, key, value)


def _clamped_float(value, default: float, low: float, high: float | None = None) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        value = default
    if value != value:  # NaN
        value = default
    value = max(low, value)
    if high is not None:
        value = min(high, value)
    return value


def migrate_config(config: Config, loaded_version) -> None:
    """Upgrade older config structures to the current schema.
    Fills missing fields with defaults, clamps ranges and bumps version."""
    analysis = config.analysis
    defaults = AnalysisConfig()

    try:
        version = int(loaded_version) if loaded_version is not None else 0
    except (TypeError, ValueError):
        version = 0

    if version < 1:
        # Pre-versioned files had no band list or meter section
        if not analysis.bands:
            analysis.bands = list(DEFAULT_BANDS)
        if getattr(config.meter, 'gain', None) is None:
            config.meter.gain = 1.0

    if getattr(config, 'report_generation_enabled', True) is None:
        config.report_generation_enabled = True
    if not config.log_level:
        config.log_level = "INFO"
    if analysis.aggregate_band is None:
        analysis.aggregate_band = defaults.aggregate_band
    if analysis.recycle_frames is None:
        analysis.recycle_frames = defaults.recycle_frames
    # A bare string would otherwise be iterated as one band per character
    bands = analysis.bands
    if not isinstance(bands, list) or not bands or not all(isinstance(b, str) and b for b in bands):
        analysis.bands = list(DEFAULT_BANDS)

    # Always clamp the ranges the engine relies on
    analysis.delta_window_ms = _clamped_float(analysis.delta_window_ms, defaults.delta_window_ms, 1.0)
    analysis.avg_window_ms = _clamped_float(analysis.avg_window_ms, defaults.avg_window_ms, 1.0)
    analysis.gain = _clamped_float(analysis.gain, defaults.gain, 0.0)
    analysis.spectrum_coverage = _clamped_float(analysis.spectrum_coverage, defaults.spectrum_coverage, 0.01, 1.0)
    try:
        bins = int(analysis.spectrum_bins)
    except (TypeError, ValueError):
        bins = 0
    analysis.spectrum_bins = max(0, min(MAX_SPECTRUM_BINS, bins))
    config.meter.gain = _clamped_float(config.meter.gain, 1.0, 0.0)

    config.version = CURRENT_CONFIG_VERSION


# Default config instance
DEFAULT_CONFIG = Config()
