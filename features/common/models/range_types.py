import math
from typing import Any
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from features.common.exceptions.engine_exceptions import InvalidRangeError
from features.common.utils.geo import normalize_degrees

def _finite(value: Any, label: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidRangeError(f"{label} must be a number, got {value!r}")
    if not math.isfinite(number):
        raise InvalidRangeError(f"{label} must be finite, got {value!r}")
    return number

class CircularRange(BaseModel):
    """Clockwise arc of compass directions from start_deg to end_deg.

    Both bounds are normalized into [0, 360). When start_deg > end_deg the arc
    crosses north. A range whose bounds coincide holds exactly one angle; the
    "any direction" convention is carried by the caller, not by this type.
    """
    model_config = ConfigDict(frozen=True)

    start_deg: float = Field(..., description="Arc start, degrees clockwise from true N")
    end_deg: float = Field(..., description="Arc end, degrees clockwise from true N")

    @field_validator("start_deg", "end_deg", mode="before")
    @classmethod
    def _normalize(cls, value: Any, info) -> float:
        return normalize_degrees(_finite(value, info.field_name))

    @property
    def wraps(self) -> bool:
        return self.start_deg > self.end_deg

    def contains(self, angle_deg: float) -> bool:
        angle = normalize_degrees(angle_deg)
        if self.start_deg <= self.end_deg:
            return self.start_deg <= angle <= self.end_deg
        return angle >= self.start_deg or angle <= self.end_deg

    def arc_span_deg(self, full_circle: bool = False) -> float:
        if self.start_deg == self.end_deg:
            return 360.0 if full_circle else 0.0
        return (self.end_deg - self.start_deg + 360.0) % 360.0

    def distance_outside(self, angle_deg: float) -> float:
        """Angular distance from angle_deg to the nearest edge, 0 when inside."""
        if self.contains(angle_deg):
            return 0.0
        angle = normalize_degrees(angle_deg)
        to_start = abs(angle - self.start_deg)
        to_end = abs(angle - self.end_deg)
        return min(
            min(to_start, 360.0 - to_start),
            min(to_end, 360.0 - to_end),
        )

class NumericRange(BaseModel):
    """Inclusive scalar interval with min <= max."""
    model_config = ConfigDict(frozen=True)

    min: float
    max: float

    @field_validator("min", "max", mode="before")
    @classmethod
    def _check_finite(cls, value: Any, info) -> float:
        return _finite(value, info.field_name)

    @model_validator(mode="after")
    def _check_order(self) -> "NumericRange":
        if self.min > self.max:
            raise InvalidRangeError(f"min {self.min} is greater than max {self.max}")
        return self

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max

    def spans(self, floor: float, ceiling: float) -> bool:
        return self.min == floor and self.max == ceiling
