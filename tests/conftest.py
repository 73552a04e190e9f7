"""
Pytest configuration and fixtures.

Provides reusable test fixtures for all test modules.
"""

import pytest
from fastapi.testclient import TestClient

from src.api.dependencies import (
    get_explainability_service,
    get_negotiation_orchestrator,
)
from src.api.main import app
from src.config.reasoning_config import ReasoningConfig
from src.models.shared import (
    AgentContribution,
    ImpactAnalysis,
    MitigationStrategy,
    Scenario,
    SustainabilityMetrics,
)
from src.services.audit_logger import AuditLogger, InMemoryAuditSink
from src.services.explainability_service import ExplainabilityService
from src.services.explanation_builder import ExplanationBuilder
from src.services.negotiation_orchestrator import NegotiationOrchestrator
from src.services.reasoning_client import ReasoningClient


def make_strategy(
    strategy_id: str,
    cost: float,
    risk: float,
    sustainability: float,
    implementation_time: float = 24.0,
    name: str = None,
) -> MitigationStrategy:
    """Build a strategy with sensible defaults."""
    return MitigationStrategy(
        strategy_id=strategy_id,
        name=name or f"Strategy {strategy_id}",
        description=f"Mitigation option {strategy_id}",
        cost_impact=cost,
        risk_reduction=risk,
        sustainability_impact=sustainability,
        implementation_time=implementation_time,
        tradeoffs=[f"Tradeoff of {strategy_id}"],
    )


def strategy_payload(strategy: MitigationStrategy) -> dict:
    """camelCase JSON payload for a strategy."""
    return strategy.model_dump(mode="json", by_alias=True)


@pytest.fixture
def strategy_factory():
    """Factory building MitigationStrategy objects."""
    return make_strategy


@pytest.fixture
def to_payload():
    """Serializer turning a strategy into its JSON payload."""
    return strategy_payload


@pytest.fixture
def unconfigured_reasoning_config():
    """Reasoning config without a service URL (always falls back)."""
    return ReasoningConfig(enabled=True, service_url=None)


@pytest.fixture
def audit_sink():
    """In-memory audit sink."""
    return InMemoryAuditSink()


@pytest.fixture
def orchestrator(audit_sink):
    """Negotiation orchestrator writing to the in-memory sink."""
    return NegotiationOrchestrator(audit_logger=AuditLogger(sink=audit_sink))


@pytest.fixture
def explainability_service(unconfigured_reasoning_config):
    """Explainability service that never reaches the network."""
    client = ReasoningClient(config=unconfigured_reasoning_config)
    return ExplainabilityService(ExplanationBuilder(client))


@pytest.fixture
def client(orchestrator, explainability_service):
    """
    FastAPI test client.

    Services are overridden so tests use the in-memory audit sink and an
    unconfigured reasoning client.
    """
    app.dependency_overrides[get_negotiation_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_explainability_service] = lambda: explainability_service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def example_strategies():
    """
    Four-candidate pool.

    C is cheapest, B has the best risk reduction and lowest emissions.
    """
    return [
        make_strategy("A", 1000, 0.6, 200),
        make_strategy("B", 2000, 0.9, 100),
        make_strategy("C", 500, 0.3, 500),
        make_strategy("D", 1500, 0.7, 150),
    ]


@pytest.fixture
def sample_impacts():
    """Impact analysis with sustainability metrics."""
    return ImpactAnalysis(
        cost_impact=250000,
        delivery_time_impact=72,
        inventory_impact=1200,
        sustainability_impact=SustainabilityMetrics(
            carbon_footprint=4200,
            emissions_by_route={"route-1": 3000, "route-2": 1200},
            sustainability_score=62,
        ),
    )


@pytest.fixture
def sample_scenario():
    """Port closure scenario."""
    return Scenario.model_validate(
        {
            "scenarioId": "scn-1",
            "type": "NATURAL_DISASTER",
            "parameters": {
                "location": {"city": "Rotterdam", "country": "Netherlands"},
                "severity": "HIGH",
                "duration": 96,
                "affectedNodes": ["port-rtm"],
            },
        }
    )


@pytest.fixture
def sample_contributions():
    """Contributions from three upstream agents."""
    return [
        AgentContribution(
            agent_name="Info Agent",
            contribution_type="data_aggregation",
            data={"sources": 12},
            confidence=0.9,
        ),
        AgentContribution(
            agent_name="Impact Agent",
            contribution_type="impact_simulation",
            data=[1, 2, 3],
            confidence=0.7,
            uncertainty_range={"lower": 200000, "upper": 300000, "confidenceLevel": 0.9},
        ),
        AgentContribution(
            agent_name="Strategy Agent",
            contribution_type="strategy_generation",
            data="opaque",
        ),
    ]
