"""
Prediction Endpoint.

POST /api/predict — consensus forecast from the oracle fan-out, or the
deterministic fallback when every oracle call fails.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from skysniper.api.deps import get_orchestrator
from skysniper.exceptions import InputValidationError
from skysniper.schemas.prediction import ErrorResponse, PredictRequest, PredictionResponse
from skysniper.services.orchestrator import PredictionOrchestrator
from skysniper.services.prompt_builder import PromptContext

router = APIRouter(prefix="/api", tags=["prediction"])


@router.post(
    "/predict",
    response_model=PredictionResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}},
)
async def predict(
    body: PredictRequest,
    orchestrator: PredictionOrchestrator = Depends(get_orchestrator),
):
    """Always 200 unless the series is too short or invalid."""
    try:
        outcome = await orchestrator.predict(
            body.crash_points,
            body.strategy,
            PromptContext(
                pattern_summary=body.pattern_summary,
                hash_history=body.hash_history,
                round_data=body.round_data,
                volatility_index=body.volatility_index,
            ),
        )
    except InputValidationError as e:
        return JSONResponse(
            status_code=e.status_code,
            content={"error": "Insufficient data", "message": e.message},
        )
    return PredictionResponse(**outcome.to_dict())
