from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field

from features.common.models.geo_types import GeoPoint
from features.conditions.models.condition_types import SpotConditions
from features.triggers.models.trigger_types import MatchResult, TriggerWindow

class SpotTriggers(BaseModel):
    """A surf spot and every trigger watching it."""
    spot_id: str
    name: str
    location: GeoPoint
    buoy_id: Optional[str] = None
    triggers: List[TriggerWindow] = []

class EvaluationStatus(str, Enum):
    MATCHED = "matched"
    NO_MATCH = "no_match"
    UNKNOWN = "unknown"

class TriggerOutcome(BaseModel):
    trigger_id: str
    user_id: str
    status: EvaluationStatus
    result: Optional[MatchResult] = None
    reason: Optional[str] = None

class TriggerMatch(BaseModel):
    """Handed to the notifier for every satisfied trigger."""
    spot_id: str
    spot_name: str
    trigger: TriggerWindow
    conditions: SpotConditions
    matched_at: datetime

class SpotEvaluation(BaseModel):
    spot_id: str
    outcomes: List[TriggerOutcome]
    conditions: Optional[SpotConditions] = None
    unavailable_reason: Optional[str] = Field(None, description="Set when conditions could not be assembled")

class CycleSummary(BaseModel):
    started_at: datetime
    finished_at: datetime
    spots_evaluated: int = 0
    spots_unavailable: int = 0
    matched: int = 0
    no_match: int = 0
    unknown: int = 0
    notifications_failed: int = 0
