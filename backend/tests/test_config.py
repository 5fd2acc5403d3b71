"""Unit tests for YAML settings loading."""

from pathlib import Path
import sys
import tempfile
import unittest

_BACKEND_DIR = Path(__file__).resolve().parent.parent
if str(_BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(_BACKEND_DIR))

from core.config import load_settings


class SettingsTests(unittest.TestCase):

    def _write_config(self, body: str) -> Path:
        handle = tempfile.NamedTemporaryFile("w", suffix=".yml", delete=False, encoding="utf-8")
        with handle:
            handle.write(body)
        self.addCleanup(Path(handle.name).unlink)
        return Path(handle.name)

    def test_defaults_when_file_missing(self) -> None:
        settings = load_settings(Path(tempfile.gettempdir()) / "does-not-exist.yml")
        params = settings.protocol_parameters()
        self.assertEqual(params.ltv_percent, 70)
        self.assertEqual(params.liquidation_threshold_percent, 80)
        self.assertTrue(params.liquidate_when_paused)
        self.assertFalse(settings.keeper_enabled)
        self.assertEqual(settings.ledger_initial_price, 0)

    def test_values_are_coerced(self) -> None:
        path = self._write_config(
            "app:\n"
            "  port: '9001'\n"
            "  log_level: debug\n"
            "ledger:\n"
            "  ltv_percent: 60\n"
            "  liquidate_when_paused: 'no'\n"
            "  annual_interest_percent: not-a-number\n"
            "keeper:\n"
            "  enabled: 'true'\n"
        )
        settings = load_settings(path)
        self.assertEqual(settings.port, 9001)
        self.assertEqual(settings.log_level, "DEBUG")
        self.assertEqual(settings.ledger_ltv_percent, 60)
        self.assertFalse(settings.ledger_liquidate_when_paused)
        self.assertEqual(settings.ledger_annual_interest_percent, 5)
        self.assertTrue(settings.keeper_enabled)

    def test_malformed_yaml_falls_back_to_defaults(self) -> None:
        path = self._write_config("ledger: [unclosed\n")
        with self.assertLogs("core.config", level="ERROR"):
            settings = load_settings(path)
        self.assertEqual(settings.ledger_ltv_percent, 70)
        self.assertEqual(settings.port, 8000)

    def test_bundled_config_loads(self) -> None:
        settings = load_settings()
        self.assertEqual(settings.ledger_admin, "0x0000000000000000000000000000000000000001")
        self.assertEqual(settings.ledger_interest_rate_scale, 10**18)


if __name__ == "__main__":
    unittest.main()
