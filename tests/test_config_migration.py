import unittest

from config import (
    Config,
    CURRENT_CONFIG_VERSION,
    LevelMode,
    MAX_SPECTRUM_BINS,
    apply_dict_to_dataclass,
    migrate_config,
)


class TestConfigMigration(unittest.TestCase):
    def test_missing_version_sets_defaults_and_bumps(self):
        cfg = Config()
        data = {
            # version intentionally omitted to simulate legacy file
            "analysis": {"bands": []},
        }

        apply_dict_to_dataclass(cfg, data)
        migrate_config(cfg, data.get("version"))

        self.assertEqual(cfg.version, CURRENT_CONFIG_VERSION)
        self.assertEqual(cfg.analysis.bands, ["low", "mid", "high", "all"])
        self.assertEqual(cfg.meter.gain, 1.0)

    def test_none_values_are_sanitized(self):
        cfg = Config()
        data = {
            "version": 0,
            "analysis": {"aggregate_band": None, "recycle_frames": None, "gain": None},
            "meter": {"gain": None},
            "report_generation_enabled": None,
        }

        apply_dict_to_dataclass(cfg, data)
        migrate_config(cfg, data.get("version"))

        self.assertEqual(cfg.analysis.aggregate_band, "all")
        self.assertFalse(cfg.analysis.recycle_frames)
        self.assertEqual(cfg.analysis.gain, 1.0)
        self.assertEqual(cfg.meter.gain, 1.0)
        self.assertTrue(cfg.report_generation_enabled)

    def test_spectrum_bins_clamped(self):
        cfg = Config()
        cfg.analysis.spectrum_bins = 500
        migrate_config(cfg, CURRENT_CONFIG_VERSION)
        self.assertEqual(cfg.analysis.spectrum_bins, MAX_SPECTRUM_BINS)

        cfg.analysis.spectrum_bins = -3
        migrate_config(cfg, CURRENT_CONFIG_VERSION)
        self.assertEqual(cfg.analysis.spectrum_bins, 0)

    def test_coverage_and_windows_clamped(self):
        cfg = Config()
        cfg.analysis.spectrum_coverage = 4.0
        cfg.analysis.delta_window_ms = -10.0
        cfg.analysis.avg_window_ms = "bogus"
        migrate_config(cfg, CURRENT_CONFIG_VERSION)

        self.assertEqual(cfg.analysis.spectrum_coverage, 1.0)
        self.assertEqual(cfg.analysis.delta_window_ms, 1.0)
        self.assertEqual(cfg.analysis.avg_window_ms, 150.0)

    def test_preserves_custom_values(self):
        cfg = Config()
        data = {
            "version": CURRENT_CONFIG_VERSION,
            "analysis": {"delta_window_ms": 80.0, "gain": 1.5, "spectrum_bins": 16},
            "meter": {"mode": 1},
            "log_level": "DEBUG",
        }

        apply_dict_to_dataclass(cfg, data)
        migrate_config(cfg, data.get("version"))

        self.assertEqual(cfg.analysis.delta_window_ms, 80.0)
        self.assertEqual(cfg.analysis.gain, 1.5)
        self.assertEqual(cfg.analysis.spectrum_bins, 16)
        self.assertEqual(cfg.meter.mode, LevelMode.RMS)
        self.assertEqual(cfg.log_level, "DEBUG")
        self.assertEqual(cfg.analysis.max_window_ms, 150.0)

    def test_malformed_bands_fall_back_to_defaults(self):
        for bad in ("low", [1, 2], ["low", ""], None, {"low": 1}):
            cfg = Config()
            data = {"version": CURRENT_CONFIG_VERSION, "analysis": {"bands": bad}}
            apply_dict_to_dataclass(cfg, data)
            migrate_config(cfg, data.get("version"))
            self.assertEqual(cfg.analysis.bands, ["low", "mid", "high", "all"], msg=repr(bad))

    def test_custom_bands_preserved(self):
        cfg = Config()
        data = {"version": CURRENT_CONFIG_VERSION, "analysis": {"bands": ["sub", "all"]}}
        apply_dict_to_dataclass(cfg, data)
        migrate_config(cfg, data.get("version"))
        self.assertEqual(cfg.analysis.bands, ["sub", "all"])

    def test_invalid_enum_keeps_default(self):
        cfg = Config()
        apply_dict_to_dataclass(cfg, {"meter": {"mode": 99}})
        self.assertEqual(cfg.meter.mode, LevelMode.PEAK)

    def test_unknown_keys_ignored(self):
        cfg = Config()
        apply_dict_to_dataclass(cfg, {"legacy_section": {"mode": 2}, "analysis": {"nope": 1}})
        self.assertFalse(hasattr(cfg, "legacy_section"))
        self.assertFalse(hasattr(cfg.analysis, "nope"))


if __name__ == "__main__":
    unittest.main()
