import pytest

from features.common.exceptions.engine_exceptions import InvalidRangeError
from features.tides.models.tide_types import TideDirection
from features.triggers.models.trigger_types import (
    ConditionSnapshot,
    TideDirectionPreference,
    TriggerDimension,
    TriggerWindow
)
from features.triggers.services.trigger_evaluator import TriggerEvaluator

TRIGGER_ROW = {
    "id": "t1",
    "user_id": "u1",
    "spot_id": "s1",
    "name": "Fun south swell",
    "min_height": 3,
    "max_height": 6,
    "min_period": 8,
    "max_period": 20,
    "min_swell_direction": 112,
    "max_swell_direction": 202,
    "min_wind_speed": 0,
    "max_wind_speed": 12,
    "min_wind_direction": 0,
    "max_wind_direction": 360,
    "min_tide_height": -3,
    "max_tide_height": 8,
    "tide_type": "any",
}

SNAPSHOT = ConditionSnapshot(
    height_ft=4.5,
    period_sec=11,
    swell_direction_deg=160,
    wind_speed_mph=8,
    wind_direction_deg=270,
    tide_height_ft=2.0,
    tide_direction=TideDirection.RISING
)

def snapshot(**overrides) -> ConditionSnapshot:
    return SNAPSHOT.model_copy(update=overrides)

def trigger(**overrides) -> TriggerWindow:
    return TriggerWindow.from_record({**TRIGGER_ROW, **overrides})

@pytest.fixture
def evaluator() -> TriggerEvaluator:
    return TriggerEvaluator(enforce_min_wind_speed=False)

class TestScenarios:
    def test_matching_conditions(self, evaluator):
        assert evaluator.matches(trigger(), SNAPSHOT)

    def test_wind_too_strong(self, evaluator):
        result = evaluator.evaluate(trigger(), snapshot(wind_speed_mph=20))
        assert not result.matches
        assert result.failed_dimension == TriggerDimension.WIND_SPEED

    def test_swell_direction_outside_arc(self, evaluator):
        result = evaluator.evaluate(trigger(), snapshot(swell_direction_deg=30))
        assert not result.matches
        assert result.failed_dimension == TriggerDimension.SWELL_DIRECTION
        assert "NNE" in result.reason
        assert result.reason.endswith("ESE - SSW")

class TestDimensions:
    def test_short_circuits_on_first_failure(self, evaluator):
        result = evaluator.evaluate(trigger(), snapshot(height_ft=1, period_sec=3))
        assert result.failed_dimension == TriggerDimension.HEIGHT

    def test_exact_period_when_bounds_equal(self, evaluator):
        t = trigger(min_period=10, max_period=10)
        assert evaluator.matches(t, snapshot(period_sec=10))
        assert evaluator.evaluate(t, snapshot(period_sec=10.5)).failed_dimension == TriggerDimension.PERIOD

    def test_swell_direction_wraps_through_north(self, evaluator):
        t = trigger(min_swell_direction=350, max_swell_direction=10)
        assert evaluator.matches(t, snapshot(swell_direction_deg=0))
        assert evaluator.matches(t, snapshot(swell_direction_deg=355))
        assert not evaluator.matches(t, snapshot(swell_direction_deg=11))
        assert not evaluator.matches(t, snapshot(swell_direction_deg=349))

    def test_wind_minimum_not_enforced_by_default(self, evaluator):
        assert evaluator.matches(trigger(min_wind_speed=5), snapshot(wind_speed_mph=2))

    def test_wind_minimum_enforced_when_enabled(self):
        strict = TriggerEvaluator(enforce_min_wind_speed=True)
        result = strict.evaluate(trigger(min_wind_speed=5), snapshot(wind_speed_mph=2))
        assert result.failed_dimension == TriggerDimension.WIND_SPEED

    def test_wind_direction(self, evaluator):
        t = trigger(min_wind_direction=45, max_wind_direction=135)
        assert evaluator.matches(t, snapshot(wind_direction_deg=90))
        assert evaluator.evaluate(t, snapshot()).failed_dimension == TriggerDimension.WIND_DIRECTION

    def test_tide_height(self, evaluator):
        t = trigger(min_tide_height=0, max_tide_height=3)
        assert evaluator.evaluate(t, snapshot(tide_height_ft=4)).failed_dimension == TriggerDimension.TIDE_HEIGHT

    def test_full_tide_range_is_unconstrained(self, evaluator):
        assert evaluator.matches(trigger(), snapshot(tide_height_ft=9.2))

    def test_tide_direction_is_strict(self, evaluator):
        t = trigger(tide_type="rising")
        assert evaluator.matches(t, snapshot(tide_direction=TideDirection.RISING))
        result = evaluator.evaluate(t, snapshot(tide_direction=TideDirection.SLACK))
        assert result.failed_dimension == TriggerDimension.TIDE_DIRECTION
        assert not evaluator.matches(t, snapshot(tide_direction=TideDirection.FALLING))

    def test_any_tide_direction(self, evaluator):
        assert evaluator.matches(trigger(), snapshot(tide_direction=TideDirection.SLACK))

class TestMissingTide:
    NO_TIDE = SNAPSHOT.model_copy(update={"tide_height_ft": None, "tide_direction": None})

    def test_unconstrained_tide_still_matches(self, evaluator):
        assert evaluator.matches(trigger(), self.NO_TIDE)

    def test_tide_height_window_cannot_be_judged(self, evaluator):
        result = evaluator.evaluate(trigger(max_tide_height=2), self.NO_TIDE)
        assert not result.matches
        assert result.missing_data
        assert result.failed_dimension == TriggerDimension.TIDE_HEIGHT

    def test_tide_direction_cannot_be_judged(self, evaluator):
        result = evaluator.evaluate(trigger(tide_type="falling"), self.NO_TIDE)
        assert result.missing_data
        assert result.failed_dimension == TriggerDimension.TIDE_DIRECTION

    def test_earlier_dimension_failure_is_a_real_no_match(self, evaluator):
        result = evaluator.evaluate(trigger(max_tide_height=2), snapshot(height_ft=9, tide_height_ft=None, tide_direction=None))
        assert result.failed_dimension == TriggerDimension.HEIGHT
        assert not result.missing_data

class TestBuoyConfirmation:
    BUOY_ROW = {"buoy_trigger_enabled": True, "buoy_min_height": 4, "buoy_max_height": 8, "buoy_min_period": 12}

    def test_and_mode_needs_both(self, evaluator):
        t = trigger(**self.BUOY_ROW, buoy_trigger_mode="and")
        result = evaluator.evaluate(t, snapshot(buoy_height_ft=5.0, buoy_period_sec=14))
        assert result.matches
        assert result.confirmed_by_buoy

        result = evaluator.evaluate(t, snapshot(buoy_height_ft=3.0, buoy_period_sec=14))
        assert not result.matches
        assert result.failed_dimension == TriggerDimension.BUOY
        assert result.reason.startswith("Buoy height 3.0ft")

    def test_and_mode_reports_forecast_failure_first(self, evaluator):
        t = trigger(**self.BUOY_ROW, buoy_trigger_mode="and")
        result = evaluator.evaluate(t, snapshot(wind_speed_mph=20, buoy_height_ft=3.0))
        assert result.failed_dimension == TriggerDimension.WIND_SPEED

    def test_and_mode_without_buoy_reading(self, evaluator):
        result = evaluator.evaluate(trigger(**self.BUOY_ROW, buoy_trigger_mode="and"), SNAPSHOT)
        assert not result.matches
        assert result.missing_data
        assert result.reason == "No buoy data"

    def test_and_mode_without_buoy_period(self, evaluator):
        t = trigger(**self.BUOY_ROW, buoy_trigger_mode="and")
        result = evaluator.evaluate(t, snapshot(buoy_height_ft=5.0))
        assert result.missing_data
        assert result.failed_dimension == TriggerDimension.BUOY

    def test_or_mode_buoy_rescues_forecast(self, evaluator):
        t = trigger(**self.BUOY_ROW, buoy_trigger_mode="or")
        result = evaluator.evaluate(t, snapshot(height_ft=2.0, buoy_height_ft=5.0, buoy_period_sec=13))
        assert result.matches
        assert result.confirmed_by_buoy

    def test_or_mode_forecast_alone(self, evaluator):
        t = trigger(**self.BUOY_ROW)
        result = evaluator.evaluate(t, SNAPSHOT)
        assert result.matches
        assert not result.confirmed_by_buoy

    def test_or_mode_neither_keeps_forecast_reason(self, evaluator):
        t = trigger(**self.BUOY_ROW, buoy_trigger_mode=None)
        result = evaluator.evaluate(t, snapshot(height_ft=2.0, buoy_height_ft=3.0, buoy_period_sec=13))
        assert not result.matches
        assert result.failed_dimension == TriggerDimension.HEIGHT
        assert not result.missing_data

    def test_disabled_buoy_trigger_is_ignored(self, evaluator):
        t = trigger(buoy_trigger_enabled=False, buoy_min_height=10, buoy_trigger_mode="and")
        assert t.buoy is None
        assert evaluator.matches(t, SNAPSHOT)

class TestTriggerWindow:
    def test_empty_record_is_fully_unconstrained(self, evaluator):
        window = TriggerWindow.from_record({})
        assert window.enabled
        assert window.tide_direction == TideDirectionPreference.ANY
        extreme = snapshot(height_ft=40, period_sec=25, wind_speed_mph=60, tide_height_ft=-5)
        assert evaluator.matches(window, extreme)

    def test_cardinal_direction_lists(self, evaluator):
        window = TriggerWindow.from_record({"swell_directions": ["S", "SW"], "wind_directions": ["NW", "N", "NE"]})
        assert window.swell_direction.bounds() == (168.75, 236.25)
        assert evaluator.matches(window, snapshot(swell_direction_deg=200, wind_direction_deg=0))
        assert not evaluator.matches(window, snapshot(swell_direction_deg=160, wind_direction_deg=0))
        assert not evaluator.matches(window, snapshot(swell_direction_deg=200, wind_direction_deg=90))

    def test_degree_bounds_take_precedence_over_names(self):
        window = TriggerWindow.from_record(
            {"min_swell_direction": 90, "max_swell_direction": 180, "swell_directions": ["N"]}
        )
        assert window.swell_direction.bounds() == (90, 180)

    def test_single_bound_uses_absolute_ceiling(self):
        window = TriggerWindow.from_record({"min_height": 3})
        assert not window.height_ft.unconstrained
        assert window.height_ft.range.min == 3
        assert window.height_ft.range.max == 15

    def test_invalid_range_raises(self):
        with pytest.raises(InvalidRangeError):
            trigger(min_height=6, max_height=3)

    def test_disabled_flag(self):
        assert not trigger(enabled=False).enabled
        assert trigger(enabled=None).enabled

    def test_record_round_trip_preserves_evaluation(self, evaluator):
        battery = [
            SNAPSHOT,
            snapshot(wind_speed_mph=20),
            snapshot(swell_direction_deg=30),
            snapshot(tide_height_ft=9.5),
            snapshot(height_ft=6.01),
            snapshot(tide_direction=TideDirection.SLACK),
        ]
        windows = [
            trigger(),
            trigger(min_swell_direction=350, max_swell_direction=10, tide_type="falling"),
            TriggerWindow.from_record({"min_wind_speed": 2}),
            trigger(buoy_trigger_enabled=True, buoy_min_height=4, buoy_trigger_mode="and"),
        ]
        for window in windows:
            rebuilt = TriggerWindow.from_record(window.to_record())
            assert rebuilt == window
            for reading in battery:
                assert evaluator.evaluate(rebuilt, reading) == evaluator.evaluate(window, reading)

    def test_json_round_trip(self):
        window = trigger(min_swell_direction=350, max_swell_direction=10)
        assert TriggerWindow.model_validate_json(window.model_dump_json()) == window

    def test_unconstrained_dimensions_serialize_as_nulls(self):
        record = trigger().to_record()
        assert record["min_wind_direction"] is None
        assert record["max_wind_direction"] is None
        assert record["min_tide_height"] is None
        assert record["min_height"] == 3
        assert record["wind_directions"] == []
        assert record["swell_directions"] == ["ESE", "SE", "SSE", "S", "SSW"]
        assert record["buoy_trigger_enabled"] is False
        assert record["buoy_min_height"] is None

    def test_buoy_window_record(self):
        record = trigger(buoy_trigger_enabled=True, buoy_max_period=16).to_record()
        assert record["buoy_trigger_enabled"] is True
        assert record["buoy_trigger_mode"] == "or"
        assert record["buoy_min_period"] == 0
        assert record["buoy_max_period"] == 16
        assert record["buoy_min_height"] is None
