"""
Request Pydantic models for API endpoints.
"""

from typing import List, Optional

from pydantic import Field, field_validator

from .shared import (
    AgentContribution,
    CamelModel,
    ImpactAnalysis,
    MitigationStrategy,
    Scenario,
    UserPreferences,
)


class NegotiationRequest(CamelModel):
    """Request model for the negotiation endpoint."""

    scenario_id: str = Field(
        ...,
        description="Scenario the candidate strategies were generated for",
        min_length=1,
        max_length=200,
    )
    impacts: ImpactAnalysis = Field(..., description="Predicted disruption impact")
    strategies: List[MitigationStrategy] = Field(
        ...,
        description="Candidate pool from the strategy generation collaborator",
        min_length=1,
        max_length=500,
    )
    user_preferences: Optional[UserPreferences] = Field(
        default=None,
        description="Weighting flags and hard thresholds",
    )
    user_id: Optional[str] = Field(
        default=None,
        description="Opaque identity used to stamp the audit record",
        max_length=200,
    )
    correlation_id: Optional[str] = Field(
        default=None,
        description="Opaque correlation id (falls back to X-Correlation-Id)",
        max_length=200,
    )

    @field_validator("scenario_id")
    @classmethod
    def validate_scenario_id(cls, v: str) -> str:
        """Reject blank scenario ids."""
        if not v.strip():
            raise ValueError("scenarioId must not be blank")
        return v

    model_config = {
        "json_schema_extra": {
            "example": {
                "scenarioId": "scn-port-closure-01",
                "impacts": {
                    "costImpact": 250000,
                    "deliveryTimeImpact": 72,
                    "inventoryImpact": 1200,
                },
                "strategies": [
                    {
                        "strategyId": "A",
                        "name": "Alternate supplier",
                        "costImpact": 1000,
                        "riskReduction": 0.6,
                        "sustainabilityImpact": 200,
                        "implementationTime": 24,
                        "tradeoffs": ["Qualification effort"],
                    },
                    {
                        "strategyId": "B",
                        "name": "Air freight",
                        "costImpact": 2000,
                        "riskReduction": 0.9,
                        "sustainabilityImpact": 100,
                        "implementationTime": 12,
                        "tradeoffs": ["High freight cost"],
                    },
                    {
                        "strategyId": "C",
                        "name": "Draw down safety stock",
                        "costImpact": 500,
                        "riskReduction": 0.3,
                        "sustainabilityImpact": 500,
                        "implementationTime": 2,
                        "tradeoffs": ["Exposes later demand"],
                    },
                ],
                "userPreferences": {"prioritizeCost": True},
                "userId": "user-42",
            }
        },
    }


class ExplanationRequest(CamelModel):
    """Request model for the explanation endpoint."""

    scenario_id: str = Field(..., min_length=1, max_length=200)
    scenario: Optional[Scenario] = None
    impacts: Optional[ImpactAnalysis] = None
    strategies: Optional[List[MitigationStrategy]] = Field(
        default=None,
        description="Strategies returned by negotiation, best first",
        max_length=500,
    )
    agent_contributions: List[AgentContribution] = Field(
        ...,
        description="Upstream agent outputs to attribute",
        min_length=1,
        max_length=200,
    )
    include_natural_language: bool = True
    include_decision_tree: bool = True
    include_uncertainty: bool = True

    @field_validator("scenario_id")
    @classmethod
    def validate_scenario_id(cls, v: str) -> str:
        """Reject blank scenario ids."""
        if not v.strip():
            raise ValueError("scenarioId must not be blank")
        return v
