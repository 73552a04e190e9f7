"""
Property-based tests for negotiation.

Uses Hypothesis to generate candidate pools and preferences and checks the
cardinality, weighting and escalation guarantees.
"""

from hypothesis import assume, given, settings, strategies as st

from src.models.requests import NegotiationRequest
from src.models.shared import ImpactAnalysis, MitigationStrategy, Objective, UserPreferences
from src.services.audit_logger import AuditLogger, InMemoryAuditSink
from src.services.constraint_checker import ConstraintChecker, thresholds_from_preferences
from src.services.negotiation_orchestrator import NegotiationOrchestrator
from src.services.strategy_selector import StrategySelector

IMPACTS = ImpactAnalysis(cost_impact=100000, delivery_time_impact=24, inventory_impact=100)

metric = st.floats(min_value=0.0, max_value=1e6, allow_nan=False, allow_infinity=False)
fraction = st.floats(min_value=0.0, max_value=1.0, allow_nan=False)


@st.composite
def strategy_pools(draw, min_size=3, max_size=12):
    """Pools of strategies with unique ids."""
    size = draw(st.integers(min_value=min_size, max_value=max_size))
    return [
        MitigationStrategy(
            strategy_id=f"S{i}",
            name=f"Strategy {i}",
            cost_impact=draw(metric),
            risk_reduction=draw(fraction),
            sustainability_impact=draw(metric),
            implementation_time=draw(st.floats(min_value=0.0, max_value=1000.0)),
            tradeoffs=["tradeoff"],
        )
        for i in range(size)
    ]


flag_preferences = st.builds(
    UserPreferences,
    prioritize_cost=st.booleans(),
    prioritize_risk=st.booleans(),
    prioritize_sustainability=st.booleans(),
)


def _orchestrator() -> NegotiationOrchestrator:
    return NegotiationOrchestrator(
        selector=StrategySelector(priority_boost=3.0),
        audit_logger=AuditLogger(sink=InMemoryAuditSink()),
    )


def _request(pool, preferences) -> NegotiationRequest:
    return NegotiationRequest(
        scenario_id="scn-prop",
        impacts=IMPACTS,
        strategies=pool,
        user_preferences=preferences,
    )


class TestCardinalityProperties:
    """Unconstrained negotiations always return three unique strategies."""

    @given(pool=strategy_pools(), preferences=flag_preferences)
    @settings(max_examples=100, deadline=None)
    def test_exactly_three_unique(self, pool, preferences):
        result = _orchestrator().negotiate(_request(pool, preferences))

        assert result.conflict_escalation is None
        ids = [s.strategy_id for s in result.balanced_strategies]
        assert len(ids) == 3
        assert len(set(ids)) == 3
        assert set(ids) <= {s.strategy_id for s in pool}

    @given(pool=strategy_pools(), preferences=flag_preferences)
    @settings(max_examples=50, deadline=None)
    def test_duplicated_input_same_selection(self, pool, preferences):
        """Duplicating the pool never changes the outcome."""
        once = _orchestrator().negotiate(_request(pool, preferences))
        twice = _orchestrator().negotiate(_request(pool + pool, preferences))

        assert [s.strategy_id for s in once.balanced_strategies] == [
            s.strategy_id for s in twice.balanced_strategies
        ]

    @given(pool=strategy_pools(), preferences=flag_preferences)
    @settings(max_examples=50, deadline=None)
    def test_selection_is_deterministic(self, pool, preferences):
        first = _orchestrator().negotiate(_request(pool, preferences))
        second = _orchestrator().negotiate(_request(pool, preferences))

        assert [s.strategy_id for s in first.balanced_strategies] == [
            s.strategy_id for s in second.balanced_strategies
        ]


class TestWeightingProperties:
    """Preference flags steer the resolved weights."""

    @given(pool=strategy_pools())
    @settings(max_examples=50, deadline=None)
    def test_cost_versus_sustainability_priority(self, pool):
        cost_first = _orchestrator().negotiate(
            _request(pool, UserPreferences(prioritize_cost=True))
        ).negotiation_parameters
        sustainability_first = _orchestrator().negotiate(
            _request(pool, UserPreferences(prioritize_sustainability=True))
        ).negotiation_parameters

        assert cost_first.cost_weight > cost_first.sustainability_weight
        assert sustainability_first.sustainability_weight > sustainability_first.cost_weight

    @given(preferences=flag_preferences, pool=strategy_pools())
    @settings(max_examples=50, deadline=None)
    def test_weights_sum_to_one(self, preferences, pool):
        params = _orchestrator().negotiate(_request(pool, preferences)).negotiation_parameters
        total = params.cost_weight + params.risk_weight + params.sustainability_weight
        assert abs(total - 1.0) < 1e-9


class TestEscalationProperties:
    """Unsatisfiable thresholds always escalate."""

    @given(pool=strategy_pools(), gap=st.floats(min_value=0.001, max_value=1.0))
    @settings(max_examples=100, deadline=None)
    def test_cost_below_cheapest_escalates(self, pool, gap):
        cheapest = min(s.cost_impact for s in pool)
        assume(cheapest >= gap)
        preferences = UserPreferences(max_cost_impact=cheapest - gap)

        result = _orchestrator().negotiate(_request(pool, preferences))

        escalation = result.conflict_escalation
        assert result.balanced_strategies is None
        assert escalation.requires_user_input is True
        assert Objective.COST in escalation.conflicting_objectives

    @given(
        pool=strategy_pools(),
        max_cost=st.one_of(st.none(), metric),
        min_risk=st.one_of(st.none(), fraction),
        max_sustainability=st.one_of(st.none(), metric),
    )
    @settings(max_examples=200, deadline=None)
    def test_escalation_iff_no_candidate_feasible(
        self, pool, max_cost, min_risk, max_sustainability
    ):
        preferences = UserPreferences(
            max_cost_impact=max_cost,
            min_risk_reduction=min_risk,
            max_sustainability_impact=max_sustainability,
        )
        checker = ConstraintChecker()
        thresholds = thresholds_from_preferences(preferences)
        any_feasible = any(checker.is_feasible(s, thresholds) for s in pool)

        result = _orchestrator().negotiate(_request(pool, preferences))

        if any_feasible:
            assert result.conflict_escalation is None
            assert len(result.balanced_strategies) == 3
        else:
            escalation = result.conflict_escalation
            assert result.balanced_strategies is None
            assert escalation.requires_user_input is True
            assert escalation.conflicting_objectives
            assert set(escalation.conflicting_objectives) <= set(Objective)
