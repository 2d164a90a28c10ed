from datetime import datetime, timezone

import pytest

from features.common.exceptions.engine_exceptions import UpstreamError
from features.conditions.services.ndbc_buoy_client import parse_observation
from features.conditions.services.open_meteo_client import current_hour_index, parse_forecast
from features.tides.services.noaa_tide_client import (
    parse_hilo_predictions,
    parse_hourly_predictions,
    parse_noaa_time
)

class TestNOAATideParsing:
    def test_parse_time_is_utc(self):
        assert parse_noaa_time("2024-06-01 06:12") == datetime(2024, 6, 1, 6, 12, tzinfo=timezone.utc)

    def test_hilo_predictions_sorted_with_types(self):
        payload = {
            "predictions": [
                {"t": "2024-06-01 06:12", "v": "5.873", "type": "H"},
                {"t": "2024-06-01 00:03", "v": "-0.214", "type": "L"},
            ]
        }
        predictions = parse_hilo_predictions(payload)
        assert [p.is_high for p in predictions] == [False, True]
        assert predictions[0].height_ft == pytest.approx(-0.214)
        assert predictions[1].height_ft == pytest.approx(5.873)

    def test_hourly_predictions(self):
        payload = {"predictions": [{"t": "2024-06-01 01:00", "v": "1.5"}, {"t": "2024-06-01 00:00", "v": "0.9"}]}
        hourly = parse_hourly_predictions(payload)
        assert [h.height_ft for h in hourly] == [0.9, 1.5]

    def test_station_without_predictions_is_empty(self):
        payload = {"error": {"message": "No Predictions data was found. Please make sure the Datum input is valid."}}
        assert parse_hilo_predictions(payload) == []

    def test_other_api_errors_raise(self):
        with pytest.raises(UpstreamError) as exc_info:
            parse_hilo_predictions({"error": {"message": "Wrong Station ID"}})
        assert exc_info.value.source == "noaa_coops"

    @pytest.mark.parametrize("payload", [
        {"predictions": [{"t": "2024-06-01 00:00", "v": "", "type": "H"}]},
        {"predictions": [{"v": "1.2", "type": "L"}]},
        {"predictions": [{"t": "June 1st", "v": "1.2", "type": "L"}]},
        {"predictions": ["2024-06-01 00:00"]},
        ["not", "an", "object"],
    ])
    def test_malformed_hilo_body_is_upstream_error(self, payload):
        with pytest.raises(UpstreamError) as exc_info:
            parse_hilo_predictions(payload)
        assert exc_info.value.source == "noaa_coops"

    def test_malformed_hourly_body_is_upstream_error(self):
        with pytest.raises(UpstreamError):
            parse_hourly_predictions({"predictions": [{"t": "2024-06-01 00:00", "v": None}]})

class TestOpenMeteoParsing:
    TIMES = ["2024-06-01T00:00", "2024-06-01T01:00", "2024-06-01T02:00"]

    def marine(self, **overrides):
        hourly = {
            "time": self.TIMES,
            "swell_wave_height": [1.0, 1.5, 2.0],
            "swell_wave_period": [10.0, 11.0, 12.0],
            "swell_wave_direction": [200.0, 210.0, 220.0],
            "wind_wave_height": [0.3, 0.4, 0.5],
            "wind_wave_period": [4.0, 4.5, 5.0],
        }
        hourly.update(overrides)
        return {"hourly": hourly}

    def weather(self):
        return {
            "hourly": {
                "time": self.TIMES,
                "wind_speed_10m": [10.0, 16.0, 20.0],
                "wind_direction_10m": [270.0, 280.0, 290.0],
            }
        }

    def test_current_hour_index(self):
        assert current_hour_index(self.TIMES, datetime(2024, 6, 1, 1, 30, tzinfo=timezone.utc)) == 1
        assert current_hour_index(self.TIMES, datetime(2024, 6, 1, 1, 0, tzinfo=timezone.utc)) == 1
        assert current_hour_index(self.TIMES, datetime(2024, 6, 2, tzinfo=timezone.utc)) == 0

    def test_parse_forecast_converts_units(self):
        now = datetime(2024, 6, 1, 1, 30, tzinfo=timezone.utc)
        forecast = parse_forecast(self.marine(), self.weather(), now)
        assert forecast.time == datetime(2024, 6, 1, 1, tzinfo=timezone.utc)
        assert forecast.swell_height_ft == pytest.approx(4.92)
        assert forecast.swell_period_sec == 11.0
        assert forecast.swell_direction_deg == 210.0
        assert forecast.wind_speed_mph == pytest.approx(9.94)
        assert forecast.wind_direction_deg == 280.0

    def test_missing_values_raise(self):
        now = datetime(2024, 6, 1, 1, 30, tzinfo=timezone.utc)
        marine = self.marine(swell_wave_period=[10.0, None, 12.0])
        with pytest.raises(UpstreamError) as exc_info:
            parse_forecast(marine, self.weather(), now)
        assert "swell_wave_period" in exc_info.value.message

    def test_empty_series_raises(self):
        with pytest.raises(UpstreamError):
            parse_forecast({"hourly": {"time": []}}, self.weather(), datetime.now(timezone.utc))

    def test_malformed_values_raise(self):
        now = datetime(2024, 6, 1, 1, 30, tzinfo=timezone.utc)
        marine = self.marine(swell_wave_height=[1.0, "n/a", 2.0])
        with pytest.raises(UpstreamError) as exc_info:
            parse_forecast(marine, self.weather(), now)
        assert exc_info.value.source == "open_meteo"

    def test_non_object_body_raises(self):
        with pytest.raises(UpstreamError):
            parse_forecast([], self.weather(), datetime.now(timezone.utc))

NDBC_TEXT = """\
#YY  MM DD hh mm WDIR WSPD GST  WVHT   DPD   APD MWD   PRES  ATMP  WTMP  DEWP  VIS PTDY  TIDE
#yr  mo dy hr mn degT m/s  m/s     m   sec   sec degT   hPa  degC  degC  degC  nmi  hPa    ft
2024 06 01 12 40 270  5.0  6.0    MM    MM    MM  MM 1015.2  20.1  21.3  15.0   MM   MM    MM
2024 06 01 12 10 260  4.0  5.0   1.5  12.0   7.1 200 1015.0  20.0  21.2  15.0   MM -0.3    MM
2024 06 01 11 40 250  3.0  4.0   1.4  11.0   7.0 195 1014.8  19.9  21.2  15.0   MM   MM    MM
"""

class TestNDBCParsing:
    def test_skips_lines_without_wave_height(self):
        now = datetime(2024, 6, 1, 13, 0, tzinfo=timezone.utc)
        observation = parse_observation(NDBC_TEXT, "46225", now=now, stale_minutes=45, max_age_hours=48)
        assert observation.time == datetime(2024, 6, 1, 12, 10, tzinfo=timezone.utc)
        assert observation.wave_height_ft == pytest.approx(4.92)
        assert observation.dominant_period_sec == 12.0
        assert observation.mean_wave_direction_deg == 200.0
        assert observation.wind_speed_mph == pytest.approx(8.95)
        assert observation.wind_direction_deg == 260.0
        assert observation.age_minutes == pytest.approx(50)
        assert observation.is_stale

    def test_fresh_observation_is_not_stale(self):
        now = datetime(2024, 6, 1, 12, 30, tzinfo=timezone.utc)
        observation = parse_observation(NDBC_TEXT, "46225", now=now, stale_minutes=45, max_age_hours=48)
        assert not observation.is_stale

    def test_too_old_is_rejected(self):
        now = datetime(2024, 6, 4, tzinfo=timezone.utc)
        assert parse_observation(NDBC_TEXT, "46225", now=now, stale_minutes=45, max_age_hours=48) is None

    def test_no_wave_height_anywhere(self):
        text = "\n".join(NDBC_TEXT.splitlines()[:3])
        now = datetime(2024, 6, 1, 13, 0, tzinfo=timezone.utc)
        assert parse_observation(text, "46225", now=now) is None

    def test_line_with_bad_timestamp_is_skipped(self):
        lines = NDBC_TEXT.splitlines()
        garbled = "2024 06 xx 12 10 260  4.0  5.0   1.5  12.0   7.1 200 1015.0  20.0  21.2  15.0   MM -0.3    MM"
        text = "\n".join(lines[:2] + [garbled] + lines[4:])
        now = datetime(2024, 6, 1, 13, 0, tzinfo=timezone.utc)
        observation = parse_observation(text, "46225", now=now, stale_minutes=45, max_age_hours=48)
        assert observation.time == datetime(2024, 6, 1, 11, 40, tzinfo=timezone.utc)
