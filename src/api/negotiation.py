"""
Negotiation API Endpoint.

Resolves competing cost, risk and sustainability objectives into three
balanced mitigation strategies, or escalates irreconcilable thresholds.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from pydantic import ValidationError

from src.api.dependencies import get_negotiation_orchestrator
from src.models.requests import NegotiationRequest
from src.models.responses import NegotiationResult
from src.services.negotiation_orchestrator import NegotiationOrchestrator
from src.services.strategy_selector import InsufficientStrategiesError
from src.utils.tracing import ANONYMOUS_USER, generate_correlation_id

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "/negotiate",
    response_model=NegotiationResult,
    response_model_exclude_none=True,
    summary="Negotiate balanced mitigation strategies",
    description="""
    Selects exactly three mitigation strategies from a candidate pool using a
    weighted sum of min-max normalized objectives.

    **Weights:** each objective starts at 1; `prioritize*` flags multiply it by
    the priority boost (default 3.0); weights are normalized to sum to 1.

    **Thresholds:** `maxCostImpact`, `minRiskReduction` and
    `maxSustainabilityImpact` are hard constraints. When no candidate meets
    all of them, the response carries a `conflictEscalation` instead of
    `balancedStrategies`.

    **Audit:** every negotiation writes one hash-stamped decision record.
    """,
    responses={
        200: {"description": "Negotiation completed (balanced strategies or conflict escalation)"},
        400: {"description": "Invalid input or fewer than 3 distinct strategies"},
        500: {"description": "Internal computation error"},
    },
)
async def negotiate(
    request: NegotiationRequest,
    http_request: Request,
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    orchestrator: NegotiationOrchestrator = Depends(get_negotiation_orchestrator),
) -> NegotiationResult:
    """
    Negotiate balanced strategies.

    Args:
        request: Negotiation request
        http_request: Raw request (correlation id from middleware)
        x_user_id: Optional user id header
        orchestrator: Injected negotiation orchestrator

    Returns:
        NegotiationResult
    """
    correlation_id = (
        request.correlation_id
        or getattr(http_request.state, "correlation_id", None)
        or generate_correlation_id()
    )
    user_id = request.user_id or x_user_id or ANONYMOUS_USER

    try:
        return orchestrator.negotiate(
            request,
            user_id=user_id,
            correlation_id=correlation_id,
        )

    except (InsufficientStrategiesError, ValidationError):
        # Response model failures are server-side; handled as 500
        raise
    except ValueError as e:
        logger.warning(
            "negotiation_validation_error",
            extra={"request_id": correlation_id, "error": str(e)},
        )
        raise HTTPException(status_code=400, detail=f"Validation error: {str(e)}")
