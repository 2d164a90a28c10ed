from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field

from features.common.models.range_types import CircularRange, NumericRange
from features.common.utils.directions import (
    degree_range_to_directions,
    directions_to_degree_bounds,
    is_full_circle
)
from features.tides.models.tide_types import TideDirection

# Absolute floors and ceilings per dimension, as offered by the trigger form
HEIGHT_BOUNDS_FT: Tuple[float, float] = (0.0, 15.0)
PERIOD_BOUNDS_SEC: Tuple[float, float] = (0.0, 20.0)
WIND_SPEED_BOUNDS_MPH: Tuple[float, float] = (0.0, 20.0)
TIDE_HEIGHT_BOUNDS_FT: Tuple[float, float] = (-3.0, 8.0)
DIRECTION_BOUNDS_DEG: Tuple[float, float] = (0.0, 360.0)

class TideDirectionPreference(str, Enum):
    ANY = "any"
    RISING = "rising"
    FALLING = "falling"

class BuoyTriggerMode(str, Enum):
    AND = "and"
    OR = "or"

class NumericWindow(BaseModel):
    """Scalar preference; unconstrained windows admit every reading."""
    model_config = ConfigDict(frozen=True)

    range: NumericRange
    unconstrained: bool = False

    @classmethod
    def from_bounds(
        cls,
        min_value: Optional[float],
        max_value: Optional[float],
        bounds: Tuple[float, float],
        unconstrained_when_full: bool = False
    ) -> "NumericWindow":
        floor, ceiling = bounds
        if min_value is None and max_value is None:
            return cls(range=NumericRange(min=floor, max=ceiling), unconstrained=True)
        window_range = NumericRange(
            min=floor if min_value is None else min_value,
            max=ceiling if max_value is None else max_value
        )
        unconstrained = unconstrained_when_full and window_range.spans(floor, ceiling)
        return cls(range=window_range, unconstrained=unconstrained)

    def admits(self, value: float) -> bool:
        return self.unconstrained or self.range.contains(value)

class DirectionWindow(BaseModel):
    """Compass preference; unconstrained windows admit every direction."""
    model_config = ConfigDict(frozen=True)

    range: CircularRange
    unconstrained: bool = False

    @classmethod
    def from_bounds(
        cls,
        start_deg: Optional[float],
        end_deg: Optional[float]
    ) -> "DirectionWindow":
        if start_deg is None or end_deg is None or is_full_circle(start_deg, end_deg):
            return cls(range=CircularRange(start_deg=0, end_deg=0), unconstrained=True)
        return cls(range=CircularRange(start_deg=start_deg, end_deg=end_deg))

    def admits(self, angle_deg: float) -> bool:
        return self.unconstrained or self.range.contains(angle_deg)

    def bounds(self) -> Tuple[Optional[float], Optional[float]]:
        if self.unconstrained:
            return None, None
        return self.range.start_deg, self.range.end_deg

    def cardinal_names(self) -> List[str]:
        if self.unconstrained:
            return []
        return degree_range_to_directions(self.range.start_deg, self.range.end_deg)

def _direction_window(record: Mapping[str, Any], key: str) -> DirectionWindow:
    start, end = record.get(f"min_{key}"), record.get(f"max_{key}")
    # Rows saved by the form may carry cardinal names instead of degrees
    names = record.get(f"{key}s")
    if start is None and end is None and names:
        start, end = directions_to_degree_bounds(names)
    return DirectionWindow.from_bounds(start, end)

def _unconstrained_numeric(bounds: Tuple[float, float]) -> NumericWindow:
    return NumericWindow.from_bounds(None, None, bounds)

def _unconstrained_direction() -> DirectionWindow:
    return DirectionWindow.from_bounds(None, None)

class BuoyWindow(BaseModel):
    """Live buoy confirmation attached to a trigger.

    With mode "and" the buoy must agree with the forecast match; with "or"
    either source matching is enough.
    """
    model_config = ConfigDict(frozen=True)

    height_ft: NumericWindow = Field(default_factory=lambda: _unconstrained_numeric(HEIGHT_BOUNDS_FT))
    period_sec: NumericWindow = Field(default_factory=lambda: _unconstrained_numeric(PERIOD_BOUNDS_SEC))
    mode: BuoyTriggerMode = BuoyTriggerMode.OR

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Optional["BuoyWindow"]:
        if not record.get("buoy_trigger_enabled"):
            return None
        mode = record.get("buoy_trigger_mode") or BuoyTriggerMode.OR.value
        return cls(
            height_ft=NumericWindow.from_bounds(
                record.get("buoy_min_height"), record.get("buoy_max_height"), HEIGHT_BOUNDS_FT
            ),
            period_sec=NumericWindow.from_bounds(
                record.get("buoy_min_period"), record.get("buoy_max_period"), PERIOD_BOUNDS_SEC
            ),
            mode=BuoyTriggerMode(str(mode).lower())
        )

class TriggerWindow(BaseModel):
    """A user's preference window for one spot.

    Every dimension is fully populated; defaults for missing bounds are
    resolved once in from_record and the unconstrained flags are the only
    thing evaluation looks at.
    """
    model_config = ConfigDict(frozen=True)

    trigger_id: str = ""
    user_id: str = ""
    spot_id: str = ""
    name: str = ""
    enabled: bool = True

    height_ft: NumericWindow = Field(default_factory=lambda: _unconstrained_numeric(HEIGHT_BOUNDS_FT))
    period_sec: NumericWindow = Field(default_factory=lambda: _unconstrained_numeric(PERIOD_BOUNDS_SEC))
    swell_direction: DirectionWindow = Field(default_factory=_unconstrained_direction)
    wind_speed_mph: NumericWindow = Field(default_factory=lambda: _unconstrained_numeric(WIND_SPEED_BOUNDS_MPH))
    wind_direction: DirectionWindow = Field(default_factory=_unconstrained_direction)
    tide_height_ft: NumericWindow = Field(default_factory=lambda: _unconstrained_numeric(TIDE_HEIGHT_BOUNDS_FT))
    tide_direction: TideDirectionPreference = TideDirectionPreference.ANY
    buoy: Optional[BuoyWindow] = None

    @property
    def constrains_tide(self) -> bool:
        return not self.tide_height_ft.unconstrained or self.tide_direction != TideDirectionPreference.ANY

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "TriggerWindow":
        """Build a window from a nullable trigger row.

        Direction bounds may instead be given as lists of cardinal names
        under swell_directions and wind_directions. A buoy window is attached
        when buoy_trigger_enabled is set.

        Raises InvalidRangeError for non-finite bounds or min > max.
        """
        tide_type = record.get("tide_type") or TideDirectionPreference.ANY.value
        return cls(
            trigger_id=str(record.get("id") or ""),
            user_id=str(record.get("user_id") or ""),
            spot_id=str(record.get("spot_id") or ""),
            name=record.get("name") or "",
            enabled=record.get("enabled") is not False,
            height_ft=NumericWindow.from_bounds(
                record.get("min_height"), record.get("max_height"), HEIGHT_BOUNDS_FT
            ),
            period_sec=NumericWindow.from_bounds(
                record.get("min_period"), record.get("max_period"), PERIOD_BOUNDS_SEC
            ),
            swell_direction=_direction_window(record, "swell_direction"),
            wind_speed_mph=NumericWindow.from_bounds(
                record.get("min_wind_speed"), record.get("max_wind_speed"), WIND_SPEED_BOUNDS_MPH
            ),
            wind_direction=_direction_window(record, "wind_direction"),
            tide_height_ft=NumericWindow.from_bounds(
                record.get("min_tide_height"),
                record.get("max_tide_height"),
                TIDE_HEIGHT_BOUNDS_FT,
                unconstrained_when_full=True
            ),
            tide_direction=TideDirectionPreference(str(tide_type).lower()),
            buoy=BuoyWindow.from_record(record)
        )

    def to_record(self) -> Dict[str, Any]:
        """Inverse of from_record; unconstrained dimensions become nulls."""
        record: Dict[str, Any] = {
            "id": self.trigger_id,
            "user_id": self.user_id,
            "spot_id": self.spot_id,
            "name": self.name,
            "enabled": self.enabled,
            "tide_type": self.tide_direction.value,
        }
        numeric = {
            "height": self.height_ft,
            "period": self.period_sec,
            "wind_speed": self.wind_speed_mph,
            "tide_height": self.tide_height_ft,
        }
        for key, window in numeric.items():
            if window.unconstrained:
                record[f"min_{key}"] = record[f"max_{key}"] = None
            else:
                record[f"min_{key}"] = window.range.min
                record[f"max_{key}"] = window.range.max
        for key, window in (("swell_direction", self.swell_direction), ("wind_direction", self.wind_direction)):
            record[f"min_{key}"], record[f"max_{key}"] = window.bounds()
            record[f"{key}s"] = window.cardinal_names()

        record["buoy_trigger_enabled"] = self.buoy is not None
        record["buoy_trigger_mode"] = self.buoy.mode.value if self.buoy else None
        buoy_numeric = {"height": self.buoy.height_ft, "period": self.buoy.period_sec} if self.buoy else {}
        for key in ("height", "period"):
            window = buoy_numeric.get(key)
            if window is None or window.unconstrained:
                record[f"buoy_min_{key}"] = record[f"buoy_max_{key}"] = None
            else:
                record[f"buoy_min_{key}"] = window.range.min
                record[f"buoy_max_{key}"] = window.range.max
        return record

class ConditionSnapshot(BaseModel):
    """Conditions at a spot at one instant.

    Tide fields are None when no tide station could answer; buoy fields are
    only filled when a live buoy reading was requested and available.
    """
    model_config = ConfigDict(frozen=True)

    height_ft: float
    period_sec: float
    swell_direction_deg: float
    wind_speed_mph: float
    wind_direction_deg: float
    tide_height_ft: Optional[float] = None
    tide_direction: Optional[TideDirection] = None
    buoy_height_ft: Optional[float] = None
    buoy_period_sec: Optional[float] = None

    @property
    def has_tide(self) -> bool:
        return self.tide_height_ft is not None and self.tide_direction is not None

class TriggerDimension(str, Enum):
    HEIGHT = "height"
    PERIOD = "period"
    SWELL_DIRECTION = "swell_direction"
    WIND_SPEED = "wind_speed"
    WIND_DIRECTION = "wind_direction"
    TIDE_HEIGHT = "tide_height"
    TIDE_DIRECTION = "tide_direction"
    BUOY = "buoy"

class MatchResult(BaseModel):
    matches: bool
    failed_dimension: Optional[TriggerDimension] = None
    reason: Optional[str] = None
    # Failed because a reading was absent rather than out of range
    missing_data: bool = False
    confirmed_by_buoy: bool = False

class TriggerEvaluationRequest(BaseModel):
    trigger: TriggerWindow
    snapshot: ConditionSnapshot
