"""
Response Pydantic models for API endpoints.
"""

from enum import Enum
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator

from .metadata import ResponseMetadata
from .shared import (
    CamelModel,
    DecisionTree,
    MitigationStrategy,
    Objective,
)


class ErrorCode(str, Enum):
    """
    Engine error codes.

    All codes use the NEG_ prefix for clarity in multi-service debugging.
    """

    # Input Errors
    INVALID_INPUT = "NEG_INVALID_INPUT"
    VALIDATION_ERROR = "NEG_VALIDATION_ERROR"
    INSUFFICIENT_STRATEGIES = "NEG_INSUFFICIENT_STRATEGIES"
    NOT_FOUND = "NEG_NOT_FOUND"

    # Computation Errors
    COMPUTATION_ERROR = "NEG_COMPUTATION_ERROR"

    # Resource Errors
    TIMEOUT = "NEG_TIMEOUT"
    SERVICE_UNAVAILABLE = "NEG_SERVICE_UNAVAILABLE"


class RecoveryHints(BaseModel):
    """Recovery hints for error resolution."""

    hints: List[str] = Field(..., description="List of actionable hints")
    suggestion: str = Field(..., description="Primary suggestion")
    example: Optional[str] = Field(default=None, description="Example fix")


class ErrorResponse(BaseModel):
    """Error body returned for every rejected or failed request."""

    code: str = Field(..., description="Error code (e.g., 'NEG_VALIDATION_ERROR')")
    message: str = Field(..., description="Human-readable error message")
    reason: Optional[str] = Field(
        default=None,
        description="Fine-grained reason code for the error"
    )
    recovery: Optional[RecoveryHints] = Field(
        default=None,
        description="Recovery suggestions and hints"
    )
    validation_failures: Optional[List[str]] = Field(
        default=None,
        description="Field-level validation failures"
    )
    retryable: bool = Field(..., description="Can client retry this request?")
    source: str = Field(default="negotiation-engine", description="Service that generated error")
    request_id: str = Field(
        default_factory=lambda: f"req_{uuid4().hex[:16]}",
        description="Correlation id (from X-Correlation-Id header)"
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "code": "NEG_INSUFFICIENT_STRATEGIES",
                "message": "At least 3 distinct strategies are required, got 2",
                "reason": "bad_request",
                "retryable": False,
                "source": "negotiation-engine",
                "request_id": "corr_abc123",
            }
        }
    }


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str = Field(default="healthy", description="Service status")
    version: str = Field(..., description="Service version")
    timestamp: str = Field(..., description="Current timestamp")
    reasoning_service_configured: bool = Field(
        default=False,
        description="Whether natural-language summaries will try the reasoning service"
    )


# =============================================================================
# Negotiation
# =============================================================================


class NegotiationThresholds(CamelModel):
    """Hard thresholds applied during negotiation (null = unconstrained)."""

    max_cost_impact: Optional[float] = None
    min_risk_reduction: Optional[float] = None
    max_sustainability_impact: Optional[float] = None


class NegotiationParameters(CamelModel):
    """Resolved objective weights and thresholds."""

    cost_weight: float = Field(..., ge=0.0, le=1.0)
    risk_weight: float = Field(..., ge=0.0, le=1.0)
    sustainability_weight: float = Field(..., ge=0.0, le=1.0)
    thresholds: NegotiationThresholds = Field(default_factory=NegotiationThresholds)

    @model_validator(mode="after")
    def validate_weights_sum(self) -> "NegotiationParameters":
        """Weights must sum to 1."""
        total = self.cost_weight + self.risk_weight + self.sustainability_weight
        if abs(total - 1.0) > 1e-9:
            raise ValueError(f"Weights must sum to 1.0, got {total:.6f}")
        return self


class TradeoffDataPoint(CamelModel):
    """One strategy projected onto two objectives."""

    strategy_id: str
    strategy_name: str
    x: float
    y: float
    selected: bool = Field(
        default=False,
        description="Whether the strategy is among the balanced strategies",
    )


class OptimalRegion(CamelModel):
    """Region of a projection satisfying the thresholds."""

    x_min: Optional[float] = None
    x_max: Optional[float] = None
    y_min: Optional[float] = None
    y_max: Optional[float] = None


class TradeoffVisualization(CamelModel):
    """Pairwise projection of the full candidate pool."""

    type: str = Field(..., description="cost_vs_risk, cost_vs_sustainability or risk_vs_sustainability")
    x_axis: str
    y_axis: str
    data_points: List[TradeoffDataPoint]
    optimal_region: OptimalRegion = Field(default_factory=OptimalRegion)


class ConflictEscalation(CamelModel):
    """Raised to the user when no strategy satisfies every threshold."""

    reason: str = Field(..., min_length=1)
    conflicting_objectives: List[Objective] = Field(..., min_length=1)
    explanation: str = Field(..., min_length=1)
    requires_user_input: bool = True

    @model_validator(mode="after")
    def validate_requires_user_input(self) -> "ConflictEscalation":
        """Escalations always hand the decision back to the user."""
        if not self.requires_user_input:
            raise ValueError("requiresUserInput must be true for a conflict escalation")
        return self


class NegotiationWarning(CamelModel):
    """Non-fatal observation about a negotiation."""

    code: str
    message: str
    affected_items: List[str] = Field(default_factory=list)


class NegotiationResult(CamelModel):
    """Outcome of one negotiation."""

    balanced_strategies: Optional[List[MitigationStrategy]] = Field(
        default=None,
        description="Exactly three strategies, best first; absent when escalated",
    )
    tradeoff_visualizations: List[TradeoffVisualization]
    negotiation_parameters: NegotiationParameters
    conflict_escalation: Optional[ConflictEscalation] = None
    warnings: List[NegotiationWarning] = Field(default_factory=list)
    audit_record_id: Optional[str] = None
    metadata: Optional[ResponseMetadata] = None

    @model_validator(mode="after")
    def validate_outcome(self) -> "NegotiationResult":
        """Either three unique strategies or an escalation, never both."""
        if self.conflict_escalation is not None:
            if self.balanced_strategies is not None:
                raise ValueError("balancedStrategies must be absent when escalated")
            return self

        if self.balanced_strategies is None or len(self.balanced_strategies) != 3:
            raise ValueError("Exactly 3 balanced strategies are required without escalation")

        ids = {s.strategy_id for s in self.balanced_strategies}
        if len(ids) != 3:
            raise ValueError("Balanced strategies must be unique by strategyId")

        return self


# =============================================================================
# Explanation
# =============================================================================


class AgentAttribution(CamelModel):
    """Credit for one component of the explanation."""

    agent_name: str
    component_id: str
    contribution_description: str
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class PredictionRange(CamelModel):
    """Uncertainty band around a point estimate."""

    metric: str
    point_estimate: float
    lower_bound: float
    upper_bound: float
    confidence_level: float = Field(..., gt=0.0, le=1.0)

    @model_validator(mode="after")
    def validate_ordering(self) -> "PredictionRange":
        """lower_bound <= point_estimate <= upper_bound."""
        if not self.lower_bound <= self.point_estimate <= self.upper_bound:
            raise ValueError(
                f"Range for {self.metric} is not ordered: "
                f"{self.lower_bound} <= {self.point_estimate} <= {self.upper_bound}"
            )
        return self


class UncertaintyQuantification(CamelModel):
    """Confidence, prediction ranges and caveats of an explanation."""

    overall_confidence: float = Field(..., ge=0.0, le=1.0)
    prediction_ranges: List[PredictionRange] = Field(default_factory=list)
    assumptions: List[str] = Field(..., min_length=1)
    limitations_and_caveats: List[str] = Field(..., min_length=1)


class ExplanationMetadata(CamelModel):
    """How and when an explanation was generated."""

    generated_at: str
    generation_method: str
    completeness: float = Field(..., ge=0.0, le=1.0)
    request_id: Optional[str] = None
    computation_time_ms: Optional[float] = Field(default=None, ge=0.0)


class ExplanationResponse(CamelModel):
    """Full explanation of the upstream pipeline."""

    scenario_id: str
    natural_language_summary: Optional[str] = None
    decision_tree: Optional[DecisionTree] = None
    agent_attributions: List[AgentAttribution]
    uncertainty_quantification: Optional[UncertaintyQuantification] = None
    metadata: ExplanationMetadata

    @model_validator(mode="after")
    def validate_unique_components(self) -> "ExplanationResponse":
        """componentId is unique across attributions."""
        component_ids = [a.component_id for a in self.agent_attributions]
        if len(set(component_ids)) != len(component_ids):
            raise ValueError("Agent attribution componentIds must be unique")
        return self
