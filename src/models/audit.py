"""
Audit record models.

Records are immutable once built. `record_hash` is the SHA-256 of the
canonical JSON of every other field, so any later edit is detectable.
"""

from typing import List, Optional

from pydantic import Field

from src.constants import AUDIT_EVENT_NEGOTIATION_DECISION

from .responses import NegotiationParameters
from .shared import FrozenCamelModel, MitigationStrategy, Objective


class StrategySummary(FrozenCamelModel):
    """Compact view of a selected strategy."""

    strategy_id: str
    name: str
    cost_impact: float
    risk_reduction: float
    sustainability_impact: float

    @classmethod
    def from_strategy(cls, strategy: MitigationStrategy) -> "StrategySummary":
        return cls(
            strategy_id=strategy.strategy_id,
            name=strategy.name,
            cost_impact=strategy.cost_impact,
            risk_reduction=strategy.risk_reduction,
            sustainability_impact=strategy.sustainability_impact,
        )


class AuditRecord(FrozenCamelModel):
    """One negotiation decision, as written to the audit sink."""

    record_id: str = Field(..., min_length=1)
    timestamp: str = Field(..., description="ISO-8601 UTC")
    event_type: str = AUDIT_EVENT_NEGOTIATION_DECISION
    scenario_id: str
    user_id: str
    correlation_id: str
    selected_strategies: List[StrategySummary] = Field(default_factory=list)
    negotiation_parameters: NegotiationParameters
    conflict_escalated: bool
    conflict_reason: Optional[str] = None
    conflicting_objectives: List[Objective] = Field(default_factory=list)
    rationale: str = Field(..., min_length=1)
    record_hash: str = Field(default="", description="SHA-256 of the canonical record")

    def hashable_payload(self) -> dict:
        """JSON payload covered by `record_hash`."""
        return self.model_dump(mode="json", by_alias=True, exclude={"record_hash"})
