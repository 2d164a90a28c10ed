import json
import logging
from collections import defaultdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Sequence

from features.alerts.models.alert_types import (
    CycleSummary,
    EvaluationStatus,
    SpotEvaluation,
    SpotTriggers,
    TriggerMatch,
    TriggerOutcome
)
from features.common.exceptions.engine_exceptions import DataUnavailableError, InvalidRangeError
from features.common.models.geo_types import GeoPoint
from features.conditions.services.conditions_service import ConditionsService
from features.triggers.models.trigger_types import TriggerDimension, TriggerWindow
from features.triggers.services.trigger_evaluator import TriggerEvaluator

logger = logging.getLogger(__name__)

class Notifier(Protocol):
    async def notify(self, match: TriggerMatch) -> None:
        ...

class SpotProvider(Protocol):
    def load(self) -> List[SpotTriggers]:
        ...

class LoggingNotifier:
    """Default notifier; delivery channels plug in through the Notifier protocol."""

    async def notify(self, match: TriggerMatch) -> None:
        snapshot = match.conditions.snapshot
        tide = (
            f"tide {snapshot.tide_height_ft:.1f}ft {snapshot.tide_direction.value}"
            if snapshot.has_tide else "tide unknown"
        )
        logger.info(
            f"Trigger '{match.trigger.name}' matched at {match.spot_name} for user {match.trigger.user_id}: "
            f"{snapshot.height_ft:.1f}ft @ {snapshot.period_sec:.0f}s, "
            f"wind {snapshot.wind_speed_mph:.0f}mph, {tide}"
        )

class JsonSpotProvider:
    """Reads spots and trigger rows from a JSON file.

    Expected shape: {"spots": [{"id", "name", "latitude", "longitude", "buoy_id"}],
    "triggers": [trigger rows keyed by spot_id]}. Rows with malformed ranges
    or unknown spots are logged and left out.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> List[SpotTriggers]:
        with open(self.path) as f:
            data = json.load(f)

        grouped: Dict[str, List[TriggerWindow]] = defaultdict(list)
        for row in data.get("triggers", []):
            try:
                trigger = TriggerWindow.from_record(row)
            except (InvalidRangeError, ValueError) as e:
                logger.error(f"Skipping trigger {row.get('id')}: {str(e)}")
                continue
            grouped[trigger.spot_id].append(trigger)

        spots = []
        for spot in data.get("spots", []):
            spot_id = str(spot["id"])
            spots.append(
                SpotTriggers(
                    spot_id=spot_id,
                    name=spot.get("name", spot_id),
                    location=GeoPoint(lat=spot["latitude"], lon=spot["longitude"]),
                    buoy_id=spot.get("buoy_id"),
                    triggers=grouped.pop(spot_id, [])
                )
            )

        for spot_id, triggers in grouped.items():
            logger.warning(f"Ignoring {len(triggers)} triggers for unknown spot {spot_id}")

        logger.info(f"Loaded {len(spots)} spots from {self.path}")
        return spots

class AlertEvaluationService:
    """Runs every enabled trigger against its spot's current conditions."""

    def __init__(
        self,
        conditions_service: ConditionsService,
        evaluator: TriggerEvaluator,
        notifier: Optional[Notifier] = None,
        spot_provider: Optional[SpotProvider] = None
    ):
        self.conditions_service = conditions_service
        self.evaluator = evaluator
        self.notifier = notifier or LoggingNotifier()
        self.spot_provider = spot_provider

    async def evaluate_spot(self, spot: SpotTriggers) -> SpotEvaluation:
        """Evaluate a spot's enabled triggers against one shared snapshot.

        When conditions cannot be assembled every trigger is reported unknown.
        A trigger that fails only because its tide or buoy reading is missing
        is unknown as well; the others are still evaluated.
        """
        triggers = [t for t in spot.triggers if t.enabled]
        try:
            conditions = await self.conditions_service.get_conditions(
                spot.location,
                buoy_id=spot.buoy_id,
                include_buoy=any(t.buoy is not None for t in triggers)
            )
        except DataUnavailableError as e:
            logger.warning(f"Skipping spot {spot.spot_id}: {str(e)}")
            return self._unavailable(spot, triggers, e.reason)

        outcomes = []
        for trigger in triggers:
            result = self.evaluator.evaluate(trigger, conditions.snapshot)
            status, reason = EvaluationStatus.NO_MATCH, result.reason
            if result.matches:
                status, reason = EvaluationStatus.MATCHED, None
            elif result.missing_data:
                status = EvaluationStatus.UNKNOWN
                if result.failed_dimension != TriggerDimension.BUOY and conditions.tide_unavailable_reason:
                    reason = conditions.tide_unavailable_reason
            outcomes.append(
                TriggerOutcome(
                    trigger_id=trigger.trigger_id,
                    user_id=trigger.user_id,
                    status=status,
                    result=result,
                    reason=reason
                )
            )

        return SpotEvaluation(spot_id=spot.spot_id, outcomes=outcomes, conditions=conditions)

    @staticmethod
    def _unavailable(spot: SpotTriggers, triggers: List[TriggerWindow], reason: str) -> SpotEvaluation:
        return SpotEvaluation(
            spot_id=spot.spot_id,
            outcomes=[
                TriggerOutcome(
                    trigger_id=t.trigger_id,
                    user_id=t.user_id,
                    status=EvaluationStatus.UNKNOWN,
                    reason=reason
                )
                for t in triggers
            ],
            unavailable_reason=reason
        )

    async def run_cycle(self, spots: Optional[Sequence[SpotTriggers]] = None) -> CycleSummary:
        """Evaluate all spots once and notify every match."""
        started_at = datetime.now(timezone.utc)
        if spots is None:
            spots = self.spot_provider.load() if self.spot_provider else []

        logger.info(f"Starting alert cycle for {len(spots)} spots")
        summary = CycleSummary(started_at=started_at, finished_at=started_at)

        for spot in spots:
            # Outcomes follow the order of the enabled triggers
            enabled = [t for t in spot.triggers if t.enabled]
            if not enabled:
                continue

            try:
                evaluation = await self.evaluate_spot(spot)
            except Exception as e:
                logger.error(f"Error evaluating spot {spot.spot_id}: {str(e)}")
                evaluation = self._unavailable(spot, enabled, str(e))

            summary.spots_evaluated += 1
            if evaluation.conditions is None:
                summary.spots_unavailable += 1

            for trigger, outcome in zip(enabled, evaluation.outcomes):
                if outcome.status == EvaluationStatus.UNKNOWN:
                    summary.unknown += 1
                    continue
                if outcome.status == EvaluationStatus.NO_MATCH:
                    summary.no_match += 1
                    continue

                summary.matched += 1
                match = TriggerMatch(
                    spot_id=spot.spot_id,
                    spot_name=spot.name,
                    trigger=trigger,
                    conditions=evaluation.conditions,
                    matched_at=datetime.now(timezone.utc)
                )
                try:
                    await self.notifier.notify(match)
                except Exception as e:
                    summary.notifications_failed += 1
                    logger.error(f"Error notifying trigger {outcome.trigger_id} at spot {spot.spot_id}: {str(e)}")

        summary.finished_at = datetime.now(timezone.utc)
        logger.info(
            f"Alert cycle complete: {summary.spots_evaluated} spots, {summary.matched} matched, "
            f"{summary.no_match} no match, {summary.unknown} unknown"
        )
        return summary
