import logging
from typing import Optional

from features.triggers.models.trigger_types import (
    BuoyTriggerMode,
    BuoyWindow,
    ConditionSnapshot,
    MatchResult,
    TideDirectionPreference,
    TriggerDimension,
    TriggerWindow
)
from features.common.utils.directions import degrees_to_cardinal, format_direction_range
from core.config import settings

logger = logging.getLogger(__name__)

class TriggerEvaluator:
    """Checks a condition snapshot against a trigger's preference window.

    Forecast matching is conjunctive and stops at the first failing dimension,
    checked in order: height, period, swell direction, wind speed, wind
    direction, tide height, tide direction. Tide is skipped when the snapshot
    has none and the trigger leaves tide unconstrained.

    Triggers with a buoy window are then combined with the live buoy check:
    in "and" mode both must match, in "or" mode either is enough.
    """

    def __init__(self, enforce_min_wind_speed: Optional[bool] = None):
        if enforce_min_wind_speed is None:
            enforce_min_wind_speed = settings.enforce_min_wind_speed
        self.enforce_min_wind_speed = enforce_min_wind_speed

    def matches(self, trigger: TriggerWindow, snapshot: ConditionSnapshot) -> bool:
        return self.evaluate(trigger, snapshot).matches

    def evaluate(self, trigger: TriggerWindow, snapshot: ConditionSnapshot) -> MatchResult:
        forecast = self._evaluate_forecast(trigger, snapshot)
        if trigger.buoy is None:
            return forecast

        buoy = self._evaluate_buoy(trigger.buoy, snapshot)
        if trigger.buoy.mode == BuoyTriggerMode.AND:
            if not forecast.matches:
                return forecast
            if not buoy.matches:
                return buoy
            return MatchResult(matches=True, confirmed_by_buoy=True)

        if buoy.matches:
            return MatchResult(matches=True, confirmed_by_buoy=True)
        return forecast

    def _evaluate_forecast(self, trigger: TriggerWindow, snapshot: ConditionSnapshot) -> MatchResult:
        if not trigger.height_ft.admits(snapshot.height_ft):
            return self._fail(
                TriggerDimension.HEIGHT,
                f"Height {snapshot.height_ft:.1f}ft outside "
                f"{trigger.height_ft.range.min}-{trigger.height_ft.range.max}ft"
            )

        if not trigger.period_sec.admits(snapshot.period_sec):
            return self._fail(
                TriggerDimension.PERIOD,
                f"Period {snapshot.period_sec:.0f}s outside "
                f"{trigger.period_sec.range.min}-{trigger.period_sec.range.max}s"
            )

        swell = trigger.swell_direction
        if not swell.admits(snapshot.swell_direction_deg):
            return self._fail(
                TriggerDimension.SWELL_DIRECTION,
                f"Swell from {degrees_to_cardinal(snapshot.swell_direction_deg)} "
                f"({snapshot.swell_direction_deg:.0f}°) outside "
                + format_direction_range(swell.range.start_deg, swell.range.end_deg)
            )

        wind = trigger.wind_speed_mph
        if not wind.unconstrained:
            too_strong = snapshot.wind_speed_mph > wind.range.max
            # The lower bound is stored but only applied when enabled
            too_light = self.enforce_min_wind_speed and snapshot.wind_speed_mph < wind.range.min
            if too_strong or too_light:
                return self._fail(
                    TriggerDimension.WIND_SPEED,
                    f"Wind {snapshot.wind_speed_mph:.0f}mph "
                    + (f"above {wind.range.max}mph" if too_strong else f"below {wind.range.min}mph")
                )

        wind_dir = trigger.wind_direction
        if not wind_dir.admits(snapshot.wind_direction_deg):
            return self._fail(
                TriggerDimension.WIND_DIRECTION,
                f"Wind from {degrees_to_cardinal(snapshot.wind_direction_deg)} "
                f"({snapshot.wind_direction_deg:.0f}°) outside "
                + format_direction_range(wind_dir.range.start_deg, wind_dir.range.end_deg)
            )

        wanted = trigger.tide_direction
        if not snapshot.has_tide:
            if trigger.constrains_tide:
                dimension = (
                    TriggerDimension.TIDE_HEIGHT
                    if not trigger.tide_height_ft.unconstrained
                    else TriggerDimension.TIDE_DIRECTION
                )
                return self._fail(dimension, "Tide data unavailable", missing_data=True)
            return MatchResult(matches=True)

        if not trigger.tide_height_ft.admits(snapshot.tide_height_ft):
            return self._fail(
                TriggerDimension.TIDE_HEIGHT,
                f"Tide {snapshot.tide_height_ft:.1f}ft outside "
                f"{trigger.tide_height_ft.range.min}-{trigger.tide_height_ft.range.max}ft"
            )

        if wanted != TideDirectionPreference.ANY and snapshot.tide_direction.value != wanted.value:
            return self._fail(
                TriggerDimension.TIDE_DIRECTION,
                f"Tide is {snapshot.tide_direction.value}, need {wanted.value}"
            )

        return MatchResult(matches=True)

    def _evaluate_buoy(self, buoy: BuoyWindow, snapshot: ConditionSnapshot) -> MatchResult:
        if snapshot.buoy_height_ft is None:
            return self._fail(TriggerDimension.BUOY, "No buoy data", missing_data=True)

        if not buoy.height_ft.admits(snapshot.buoy_height_ft):
            return self._fail(
                TriggerDimension.BUOY,
                f"Buoy height {snapshot.buoy_height_ft:.1f}ft outside "
                f"{buoy.height_ft.range.min}-{buoy.height_ft.range.max}ft"
            )

        if not buoy.period_sec.unconstrained:
            if snapshot.buoy_period_sec is None:
                return self._fail(TriggerDimension.BUOY, "No buoy period reported", missing_data=True)
            if not buoy.period_sec.admits(snapshot.buoy_period_sec):
                return self._fail(
                    TriggerDimension.BUOY,
                    f"Buoy period {snapshot.buoy_period_sec:.0f}s outside "
                    f"{buoy.period_sec.range.min}-{buoy.period_sec.range.max}s"
                )

        return MatchResult(matches=True)

    @staticmethod
    def _fail(dimension: TriggerDimension, reason: str, missing_data: bool = False) -> MatchResult:
        logger.debug(f"Trigger failed on {dimension.value}: {reason}")
        return MatchResult(matches=False, failed_dimension=dimension, reason=reason, missing_data=missing_data)
