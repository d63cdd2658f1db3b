#!/usr/bin/env python3
"""
pulsebands - Replay recorded band readings through the analysis engine

Reads a CSV with a ``t`` column (milliseconds), one column per band and
optional ``s0..sN`` spectrum magnitude columns, ticks an engine once per row
and writes one JSON frame per line.
"""

import argparse
import cProfile
import csv
import json
import sys
from pathlib import Path
from typing import Iterator, Optional, TextIO

import numpy as np

import config_persistence
from analysis_engine import AnalysisEngine
from config import MAX_SPECTRUM_BINS, Config
from logging_utils import log_event, set_log_level


def _parse_cell(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    return float(value)


def _spectrum_columns(fieldnames: list[str]) -> list[str]:
    """Magnitude columns ``s0..sN`` in bin order."""
    columns = [name for name in fieldnames if name[:1] == "s" and name[1:].isdigit()]
    return sorted(columns, key=lambda name: int(name[1:]))


def iter_readings(handle: TextIO, bands: list[str]) -> Iterator[tuple[float, dict, Optional[np.ndarray]]]:
    """
    Yield (t, readings, spectrum) per CSV row.

    Blank band cells become missing readings. Columns named ``s0``, ``s1``...
    hold byte magnitudes (0-255) of one spectrum snapshot; blank magnitudes
    read as 0. spectrum is None when the CSV has no such columns.
    """
    reader = csv.DictReader(handle)
    if reader.fieldnames is None or "t" not in reader.fieldnames:
        raise ValueError("input CSV needs a 't' column")
    spectrum_columns = _spectrum_columns(reader.fieldnames)
    for line_no, row in enumerate(reader, start=2):
        try:
            t = float(row["t"])
            readings = {band: _parse_cell(row.get(band)) for band in bands}
            spectrum = None
            if spectrum_columns:
                spectrum = np.array([_parse_cell(row.get(name)) or 0.0 for name in spectrum_columns],
                                    dtype=np.float64)
        except ValueError as e:
            raise ValueError(f"line {line_no}: {e}") from e
        yield t, readings, spectrum


def replay(input_path: Path, out: TextIO, config: Config) -> int:
    """Tick an engine over every row of ``input_path``. Returns frames written."""
    written = 0

    def emit(frame) -> None:
        nonlocal written
        out.write(json.dumps(frame.to_dict()) + "\n")
        written += 1

    engine = AnalysisEngine(config, on_tick=emit)
    with open(input_path, "r", newline="", encoding="utf-8") as f:
        for t, readings, spectrum in iter_readings(f, engine.bands):
            engine.tick(readings, t, spectrum=spectrum)
    engine.close()
    return written


def run_replay(args: argparse.Namespace) -> int:
    config = config_persistence.load_config(args.config) if args.config else Config()
    set_log_level(args.log_level or config.log_level)
    if args.spectrum_bins is not None:
        config.analysis.spectrum_bins = max(0, min(MAX_SPECTRUM_BINS, args.spectrum_bins))

    out = sys.stdout
    try:
        if args.output:
            out = open(args.output, "w", encoding="utf-8")
        written = replay(Path(args.input), out, config)
    except (OSError, ValueError) as e:
        log_event("ERROR", "Replay", "Replay failed", input=args.input, output=args.output, error=e)
        return 1
    finally:
        if out is not sys.stdout:
            out.close()

    log_event("INFO", "Replay", "Replay complete", frames=written)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Replay band readings through pulsebands")
    parser.add_argument("input", help="CSV file with a 't' column, one column per band and optional s0..sN magnitudes")
    parser.add_argument("--config", help="Path to a JSON config file")
    parser.add_argument("--output", help="Write JSON Lines frames here (default: stdout)")
    parser.add_argument("--log-level", help="DEBUG/INFO/WARNING/ERROR (default: from config)")
    parser.add_argument("--spectrum-bins", type=int, help="Override the configured spectrum bucket count")
    parser.add_argument(
        "--profile",
        action="store_true",
        help="Enable cProfile and save stats to --profile-out",
    )
    parser.add_argument(
        "--profile-out",
        default="profile.prof",
        help="Path to save cProfile stats (default: profile.prof)",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    args = build_parser().parse_args(argv)

    if args.profile:
        profiler = cProfile.Profile()
        profiler.enable()
        exit_code = run_replay(args)
        profiler.disable()
        profiler.dump_stats(args.profile_out)
    else:
        exit_code = run_replay(args)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
