from fastapi import APIRouter, Depends, Request
from features.triggers.models.trigger_types import MatchResult, TriggerEvaluationRequest
from features.triggers.services.trigger_evaluator import TriggerEvaluator

router = APIRouter(
    prefix="/triggers",
    tags=["Triggers"]
)

def get_evaluator(request: Request) -> TriggerEvaluator:
    """Dependency to get the TriggerEvaluator instance."""
    return request.app.state.trigger_evaluator

@router.post(
    "/evaluate",
    response_model=MatchResult,
    summary="Evaluate a trigger against conditions",
    description="Returns whether the snapshot satisfies the trigger and, if not, the first failing dimension"
)
async def evaluate_trigger(
    body: TriggerEvaluationRequest,
    evaluator: TriggerEvaluator = Depends(get_evaluator)
) -> MatchResult:
    return evaluator.evaluate(body.trigger, body.snapshot)
