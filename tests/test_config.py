import os
import unittest

from pydantic import ValidationError

from dronecast.config import Settings


class _EnvOverride:
    """Set environment variables for the duration of a with-block."""

    def __init__(self, **values):
        self._values = values
        self._previous = {}

    def __enter__(self):
        for key, value in self._values.items():
            self._previous[key] = os.environ.get(key)
            os.environ[key] = value
        return self

    def __exit__(self, *exc):
        for key, previous in self._previous.items():
            if previous is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = previous


class TestConfig(unittest.TestCase):
    def test_settings_defaults(self):
        s = Settings()
        self.assertEqual(s.forecast_source, "open_meteo")
        self.assertEqual(s.forecast_cache_seconds, 600)
        self.assertEqual(s.thresholds.wind_good, 12)
        self.assertEqual(s.thresholds.visibility_bad, 3)

    def test_forecast_days_override(self):
        with _EnvOverride(DRONE_FORECAST_DAYS="3"):
            self.assertEqual(Settings().forecast_days, 3)

    def test_source_name_is_normalized(self):
        with _EnvOverride(DRONE_FORECAST_SOURCE=" Open_Meteo "):
            self.assertEqual(Settings().forecast_source, "open_meteo")

    def test_nested_threshold_override(self):
        with _EnvOverride(DRONE_THRESHOLDS__GUST_RISKY="30", DRONE_THRESHOLDS__TEMP_RISKY_F="20"):
            s = Settings()
            self.assertEqual(s.thresholds.gust_risky, 30)
            self.assertEqual(s.thresholds.temp_risky_f, 20)
            self.assertEqual(s.thresholds.wind_good, 12)

    def test_inconsistent_thresholds_rejected(self):
        with _EnvOverride(DRONE_THRESHOLDS__WIND_GOOD="40"):
            with self.assertRaises(ValidationError):
                Settings()


if __name__ == "__main__":
    unittest.main()
