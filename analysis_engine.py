"""
pulsebands - Analysis Engine
Turns per-band compressor reduction readings into normalized, smoothed,
trend-aware band levels with onset (hit) events, once per tick.
"""

import time
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional

import numpy as np

from audio_session_reporter import AudioSessionReporter
from band_normalizer import BandNormalizer
from config import Config
from frequency_utils import bucketize_spectrum
from history_window import Frame, HistoryWindow
from level_meter import measure_level
from logging_utils import is_enabled, log_event
from onset_detector import OnsetDetector


class AnalysisEngine:
    """
    Single-threaded, tick-driven analysis session.

    State (history window, normalization factors, onset thresholds) is
    created lazily on the first tick that carries readings and cleared back
    to its initial values by reset(). Engines share no mutable state with
    each other.
    """

    def __init__(self, config: Optional[Config] = None,
                 on_tick: Optional[Callable[[Frame], None]] = None,
                 report_dir: Optional[Path] = None):
        self.config = config if config is not None else Config()
        self.on_tick = on_tick
        self._reporter: Optional[AudioSessionReporter] = None
        if report_dir is not None and self.config.report_generation_enabled:
            self._reporter = AudioSessionReporter(report_dir)

        analysis = self.config.analysis
        self.bands = list(analysis.bands)
        self.aggregate_band = analysis.aggregate_band

        # Analysis state (created on activation)
        self.active = False
        self._window: Optional[HistoryWindow] = None
        self._aggregate_normalizer: Optional[BandNormalizer] = None
        self._band_normalizer: Optional[BandNormalizer] = None
        self._detectors: Dict[str, OnsetDetector] = {}

        self._reset_session_stats()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _activate(self) -> None:
        analysis = self.config.analysis
        if self._window is None:
            self._window = HistoryWindow(
                delta_window_ms=analysis.delta_window_ms,
                avg_window_ms=analysis.avg_window_ms,
                recycle_frames=analysis.recycle_frames,
            )
            self._aggregate_normalizer = BandNormalizer()
            self._band_normalizer = BandNormalizer()
            self._detectors = {band: OnsetDetector() for band in self.bands}
        self.active = True
        self._session_started_at = time.time()
        log_event("INFO", "Engine", "Analysis activated",
                  bands=",".join(self.bands),
                  delta_ms=analysis.delta_window_ms,
                  avg_ms=analysis.avg_window_ms,
                  spectrum_bins=analysis.spectrum_bins)

    def reset(self) -> None:
        """Discard all analysis state, e.g. when a new audio source is loaded."""
        if not self.active:
            return
        self.close()
        self._window.clear()
        self._aggregate_normalizer.reset()
        self._band_normalizer.reset()
        for detector in self._detectors.values():
            detector.reset()
        self.active = False
        log_event("INFO", "Engine", "Analysis reset")

    def close(self) -> None:
        """End the current session: log its summary and write the report."""
        self._log_session_summary()
        self._reset_session_stats()

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    @property
    def latest(self) -> Optional[Frame]:
        return self._window.newest if self._window is not None else None

    @property
    def window(self) -> Optional[HistoryWindow]:
        return self._window

    def threshold(self, band: str) -> float:
        detector = self._detectors.get(band)
        return detector.threshold if detector is not None else 0.0

    def adjustment_factor(self, band: str) -> float:
        normalizer = self._normalizer_for(band)
        return normalizer.factor if normalizer is not None else 0.0

    def _normalizer_for(self, band: str) -> Optional[BandNormalizer]:
        if band == self.aggregate_band:
            return self._aggregate_normalizer
        return self._band_normalizer

    def tick(self, readings: Optional[Mapping[str, Optional[float]]], t: float,
             spectrum: Optional[np.ndarray] = None,
             waveform: Optional[np.ndarray] = None) -> Optional[Frame]:
        """
        Run one analysis pass for time ``t`` (ms).

        ``readings`` maps band name to the absolute compressor reduction for
        that band; bands with no value are skipped. When no tracked band has
        a value the tick is skipped without touching any state and None is
        returned.
        """
        if not readings:
            self._session_skipped += 1
            return None
        present = {band: readings.get(band) for band in self.bands}
        if all(v is None for v in present.values()):
            self._session_skipped += 1
            return None

        if not self.active:
            self._activate()

        analysis = self.config.analysis
        gain = analysis.gain

        values: Dict[str, Optional[float]] = {}
        for band in self.bands:
            raw = present[band]
            if raw is None:
                values[band] = None
                continue
            normalizer = self._normalizer_for(band)
            before = normalizer.factor
            values[band] = normalizer.normalize(raw, gain)
            if normalizer.factor != before and is_enabled("DEBUG"):
                log_event("DEBUG", "Normalize", "Adjustment factor tightened",
                          band=band, raw=float(raw), factor=normalizer.factor)

        window = self._window
        frame = window.push_frame(values, t)
        previous = window.previous
        previous_t = previous.t if previous is not None else None

        for band, reading in frame.bands.items():
            detector = self._detectors.get(band)
            if detector is None:
                continue
            reading.hit = detector.update(reading.val, t, previous_t)

        if analysis.spectrum_bins > 0 and spectrum is not None:
            frame.spectrum = bucketize_spectrum(spectrum, analysis.spectrum_bins, analysis.spectrum_coverage)

        if waveform is not None:
            frame.level = measure_level(waveform, self.config.meter.mode, self.config.meter.gain)

        self._update_session_stats(frame)

        if self.on_tick is not None:
            self.on_tick(frame)
        return frame

    # ------------------------------------------------------------------
    # Session statistics
    # ------------------------------------------------------------------

    def _reset_session_stats(self) -> None:
        self._session_started_at = time.time()
        self._session_frame_count = 0
        self._session_skipped = 0
        self._session_val_min: Dict[str, float] = {}
        self._session_val_max: Dict[str, float] = {}
        self._session_val_sum: Dict[str, float] = {}
        self._session_val_count: Dict[str, int] = {}
        self._session_hits: Dict[str, int] = {}
        self._session_first_t: Optional[float] = None
        self._session_last_t: Optional[float] = None

    def _update_session_stats(self, frame: Frame) -> None:
        self._session_frame_count += 1
        if self._session_first_t is None:
            self._session_first_t = frame.t
        self._session_last_t = frame.t
        for band, reading in frame.bands.items():
            val = reading.val
            self._session_val_sum[band] = self._session_val_sum.get(band, 0.0) + val
            self._session_val_count[band] = self._session_val_count.get(band, 0) + 1
            if band not in self._session_val_min or val < self._session_val_min[band]:
                self._session_val_min[band] = val
            if band not in self._session_val_max or val > self._session_val_max[band]:
                self._session_val_max[band] = val
            if reading.hit:
                self._session_hits[band] = self._session_hits.get(band, 0) + 1

    def session_summary(self) -> dict:
        """Per-band ranges and hit counts for the current session."""
        span_ms = 0.0
        if self._session_first_t is not None and self._session_last_t is not None:
            span_ms = self._session_last_t - self._session_first_t
        minutes = span_ms / 60000.0

        bands = {}
        for band in self._session_val_sum:
            detector = self._detectors.get(band)
            normalizer = self._normalizer_for(band)
            hits = self._session_hits.get(band, 0)
            bands[band] = {
                "val_min": self._session_val_min[band],
                "val_max": self._session_val_max[band],
                "val_mean": self._session_val_sum[band] / self._session_val_count[band],
                "hits": hits,
                "hits_per_minute": hits / minutes if minutes > 0 else 0.0,
                "final_threshold": detector.threshold if detector is not None else None,
                "final_factor": normalizer.factor if normalizer is not None else None,
            }

        return {
            "session_started_at": self._session_started_at,
            "session_ended_at": time.time(),
            "seconds": span_ms / 1000.0,
            "frames": self._session_frame_count,
            "skipped_ticks": self._session_skipped,
            "evicted_frames": self._window.evicted_total if self._window is not None else 0,
            "bands": bands,
        }

    def _log_session_summary(self) -> None:
        if self._session_frame_count <= 0:
            return

        summary = self.session_summary()
        fields = {
            "frames": summary["frames"],
            "seconds": f"{summary['seconds']:.1f}",
            "skipped": summary["skipped_ticks"],
        }
        for band, stats in summary["bands"].items():
            fields[f"{band}_min"] = f"{stats['val_min']:.4f}"
            fields[f"{band}_max"] = f"{stats['val_max']:.4f}"
            fields[f"{band}_mean"] = f"{stats['val_mean']:.4f}"
            fields[f"{band}_hits"] = stats["hits"]
        log_event("INFO", "Engine", "Session levels summary", **fields)

        if self._reporter is not None:
            try:
                self._reporter.save_session(summary)
            except OSError as e:
                log_event("ERROR", "Report", "Failed to write session report", error=e)
