"""
Explanation endpoint.

Explains the upstream analysis pipeline: decision tree, agent attributions,
uncertainty, and a natural-language summary.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import ValidationError

from src.api.dependencies import get_explainability_service
from src.models.requests import ExplanationRequest
from src.models.responses import ExplanationResponse
from src.services.explainability_service import ExplainabilityService
from src.utils.tracing import generate_correlation_id

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "/explanation",
    response_model=ExplanationResponse,
    response_model_exclude_none=True,
    summary="Explain a supply-chain analysis",
    description="""
    Builds a human-auditable explanation of a scenario analysis.

    Provides:
    - Natural-language summary (reasoning service, rule-based fallback)
    - Decision tree of the pipeline stages
    - Attribution of each component to the agent that produced it
    - Prediction ranges with confidence levels

    `metadata.generationMethod` is `reasoning-service`, `rule-based-fallback`
    or `structured` (no summary requested).
    """,
    responses={
        200: {"description": "Explanation generated"},
        400: {"description": "Invalid input (e.g., no agent contributions)"},
        500: {"description": "Internal computation error"},
    },
)
async def generate_explanation(
    request: ExplanationRequest,
    http_request: Request,
    service: ExplainabilityService = Depends(get_explainability_service),
) -> ExplanationResponse:
    """
    Generate a full explanation.

    Args:
        request: Explanation request
        http_request: Raw request (correlation id from middleware)
        service: Injected explainability service

    Returns:
        ExplanationResponse
    """
    request_id = getattr(http_request.state, "correlation_id", None) or generate_correlation_id()

    try:
        return await service.explain(request, request_id=request_id)

    except ValidationError:
        raise
    except ValueError as e:
        logger.warning(
            "explanation_validation_error",
            extra={"request_id": request_id, "error": str(e)},
        )
        raise HTTPException(status_code=400, detail=f"Validation error: {str(e)}")
