"""
Shared Pydantic models used across requests and responses.

Attributes are snake_case in Python and camelCase on the wire.
Inputs produced by upstream collaborators are frozen: the engine ranks and
filters them but never mutates them.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serializing to camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FrozenCamelModel(BaseModel):
    """Immutable camelCase model for upstream inputs and audit records."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class Objective(str, Enum):
    """Negotiation objective."""

    COST = "cost"
    RISK = "risk"
    SUSTAINABILITY = "sustainability"


class DisruptionType(str, Enum):
    """Kind of supply-chain disruption a scenario simulates."""

    NATURAL_DISASTER = "NATURAL_DISASTER"
    SUPPLIER_FAILURE = "SUPPLIER_FAILURE"
    TRANSPORTATION_DELAY = "TRANSPORTATION_DELAY"
    DEMAND_SPIKE = "DEMAND_SPIKE"
    QUALITY_ISSUE = "QUALITY_ISSUE"
    GEOPOLITICAL = "GEOPOLITICAL"
    CYBER_ATTACK = "CYBER_ATTACK"
    LABOR_SHORTAGE = "LABOR_SHORTAGE"


class Severity(str, Enum):
    """Scenario severity."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class DecisionNodeType(str, Enum):
    """Role of a node in the explanation decision tree."""

    DECISION = "decision"
    OUTCOME = "outcome"
    CONDITION = "condition"


# =============================================================================
# Impact & Strategy Inputs
# =============================================================================


class SustainabilityMetrics(FrozenCamelModel):
    """Environmental side of a predicted impact."""

    carbon_footprint: float = Field(..., ge=0.0, description="Total kg CO2")
    emissions_by_route: Dict[str, float] = Field(
        default_factory=dict,
        description="kg CO2 keyed by route id",
    )
    sustainability_score: float = Field(
        default=0.0,
        ge=0.0,
        le=100.0,
        description="Composite sustainability score (0-100)",
    )

    @model_validator(mode="after")
    def validate_route_emissions(self) -> "SustainabilityMetrics":
        """Route emissions cannot be negative."""
        negative = [route for route, kg in self.emissions_by_route.items() if kg < 0]
        if negative:
            raise ValueError(f"Negative emissions for routes: {sorted(negative)}")
        return self


class ImpactAnalysis(FrozenCamelModel):
    """Predicted disruption impact supplied by the impact analysis collaborator."""

    cost_impact: float = Field(..., ge=0.0, description="Currency units")
    delivery_time_impact: float = Field(..., ge=0.0, description="Hours")
    inventory_impact: float = Field(..., ge=0.0, description="Units")
    sustainability_impact: Optional[SustainabilityMetrics] = None


class MitigationStrategy(FrozenCamelModel):
    """One candidate mitigation action."""

    strategy_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: str = ""
    cost_impact: float = Field(..., ge=0.0)
    risk_reduction: float = Field(..., ge=0.0, le=1.0)
    sustainability_impact: float = Field(..., ge=0.0, description="kg CO2")
    implementation_time: float = Field(..., ge=0.0, description="Hours")
    tradeoffs: List[str] = Field(..., min_length=1)

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        json_schema_extra={
            "example": {
                "strategyId": "reroute-air",
                "name": "Reroute via air freight",
                "description": "Move priority SKUs through the secondary air hub",
                "costImpact": 120000,
                "riskReduction": 0.7,
                "sustainabilityImpact": 4200,
                "implementationTime": 48,
                "tradeoffs": ["Higher freight cost", "Higher emissions"],
            }
        },
    )


class UserPreferences(FrozenCamelModel):
    """Stakeholder weighting flags and hard thresholds."""

    prioritize_cost: bool = False
    prioritize_risk: bool = False
    prioritize_sustainability: bool = False
    max_cost_impact: Optional[float] = Field(default=None, ge=0.0)
    min_risk_reduction: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    max_sustainability_impact: Optional[float] = Field(default=None, ge=0.0)


# =============================================================================
# Scenario & Agent Contributions
# =============================================================================


class Location(FrozenCamelModel):
    """Where a disruption happens."""

    city: str = Field(..., min_length=1)
    country: str = Field(..., min_length=1)
    address: Optional[str] = None
    latitude: Optional[float] = Field(default=None, ge=-90.0, le=90.0)
    longitude: Optional[float] = Field(default=None, ge=-180.0, le=180.0)


class ScenarioParameters(FrozenCamelModel):
    """Parameters of a simulated disruption."""

    location: Location
    severity: Severity
    duration: float = Field(..., ge=0.0, description="Hours")
    affected_nodes: List[str] = Field(default_factory=list)


class Scenario(FrozenCamelModel):
    """Disruption scenario produced by the scenario generation stage."""

    scenario_id: Optional[str] = None
    type: DisruptionType
    parameters: ScenarioParameters


class UncertaintyRange(FrozenCamelModel):
    """Interval reported by an upstream agent."""

    lower: float
    upper: float
    confidence_level: float = Field(..., gt=0.0, le=1.0)

    @model_validator(mode="after")
    def validate_bounds(self) -> "UncertaintyRange":
        """Lower bound must not exceed upper bound."""
        if self.lower > self.upper:
            raise ValueError(
                f"lower ({self.lower}) must not exceed upper ({self.upper})"
            )
        return self


class AgentContribution(FrozenCamelModel):
    """What one upstream agent contributed. `data` is passed through untouched."""

    agent_name: str = Field(..., min_length=1)
    contribution_type: str = Field(..., min_length=1)
    data: Any = None
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    uncertainty_range: Optional[UncertaintyRange] = None


# =============================================================================
# Decision Tree
# =============================================================================


class DecisionNode(CamelModel):
    """Node of the explanation decision tree."""

    node_id: str = Field(..., min_length=1)
    label: str = Field(..., min_length=1)
    type: DecisionNodeType
    agent_attribution: Optional[str] = None
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class DecisionEdge(CamelModel):
    """Directed, labeled edge between two decision tree nodes."""

    from_node: str = Field(..., alias="from", min_length=1)
    to_node: str = Field(..., alias="to", min_length=1)
    label: str = Field(..., min_length=1)


class DecisionTree(CamelModel):
    """
    Fixed-shape explanation graph of the pipeline stages.

    Well-formedness is validated on construction:
    - node ids are unique
    - every edge references existing nodes
    - every node except the root is the target of at least one edge
    """

    root_id: str = Field(default="root", min_length=1)
    nodes: List[DecisionNode] = Field(default_factory=list)
    edges: List[DecisionEdge] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_structure(self) -> "DecisionTree":
        """Enforce the tree invariants."""
        node_ids = [node.node_id for node in self.nodes]
        known = set(node_ids)

        if len(known) != len(node_ids):
            duplicates = sorted({n for n in node_ids if node_ids.count(n) > 1})
            raise ValueError(f"Duplicate node ids: {duplicates}")

        if self.nodes and self.root_id not in known:
            raise ValueError(f"Root node '{self.root_id}' is missing")

        dangling = [
            f"{edge.from_node}->{edge.to_node}"
            for edge in self.edges
            if edge.from_node not in known or edge.to_node not in known
        ]
        if dangling:
            raise ValueError(f"Edges reference unknown nodes: {dangling}")

        targets = {edge.to_node for edge in self.edges}
        orphans = [n for n in node_ids if n != self.root_id and n not in targets]
        if orphans:
            raise ValueError(f"Nodes not reachable by any edge: {orphans}")

        return self
