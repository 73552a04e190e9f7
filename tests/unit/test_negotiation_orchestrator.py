"""
Unit tests for NegotiationOrchestrator.

Covers the success and escalation branches, warnings, trade-off
visualizations and audit emission.
"""

import pytest
from pydantic import ValidationError

from src.models.requests import NegotiationRequest
from src.models.shared import ImpactAnalysis, Objective, UserPreferences
from src.services.audit_logger import AuditLogger, InMemoryAuditSink, verify_record_hash
from src.services.negotiation_orchestrator import (
    WARNING_DUPLICATES_COLLAPSED,
    WARNING_NEAR_TIE,
    WARNING_SELECTION_OUTSIDE_THRESHOLDS,
    NegotiationOrchestrator,
)
from src.services.strategy_selector import InsufficientStrategiesError


@pytest.fixture
def impacts():
    return ImpactAnalysis(cost_impact=100000, delivery_time_impact=48, inventory_impact=500)


def _request(strategies, impacts, preferences=None):
    return NegotiationRequest(
        scenario_id="scn-1",
        impacts=impacts,
        strategies=strategies,
        user_preferences=preferences,
    )


class TestSuccessBranch:
    """Negotiations that reach consensus."""

    def test_example_scenario(self, orchestrator, example_strategies, impacts):
        result = orchestrator.negotiate(
            _request(example_strategies, impacts, UserPreferences(prioritize_cost=True)),
            user_id="user-1",
            correlation_id="corr-1",
        )

        ids = [s.strategy_id for s in result.balanced_strategies]
        assert len(ids) == 3
        assert "C" in ids
        assert set(ids) <= {"A", "B", "C", "D"}
        assert result.conflict_escalation is None
        assert result.negotiation_parameters.cost_weight == pytest.approx(0.6)

    def test_three_projections_over_full_pool(self, orchestrator, example_strategies, impacts):
        result = orchestrator.negotiate(_request(example_strategies, impacts))

        assert [v.type for v in result.tradeoff_visualizations] == [
            "cost_vs_risk",
            "cost_vs_sustainability",
            "risk_vs_sustainability",
        ]
        for visualization in result.tradeoff_visualizations:
            assert len(visualization.data_points) == 4
            assert sum(p.selected for p in visualization.data_points) == 3

    def test_optimal_region_from_thresholds(self, orchestrator, example_strategies, impacts):
        prefs = UserPreferences(max_cost_impact=1500, min_risk_reduction=0.5)
        result = orchestrator.negotiate(_request(example_strategies, impacts, prefs))

        cost_vs_risk = result.tradeoff_visualizations[0]
        assert cost_vs_risk.optimal_region.x_max == 1500
        assert cost_vs_risk.optimal_region.y_min == 0.5
        assert result.tradeoff_visualizations[1].optimal_region.y_max is None

    def test_metadata_populated(self, orchestrator, example_strategies, impacts):
        result = orchestrator.negotiate(
            _request(example_strategies, impacts), correlation_id="corr-xyz"
        )

        assert result.metadata.request_id == "corr-xyz"
        assert result.metadata.algorithm == "multi-objective-weighted"
        assert result.metadata.computation_time_ms >= 0


class TestEscalationBranch:
    """Negotiations with irreconcilable thresholds."""

    def test_escalation_shape(self, orchestrator, example_strategies, impacts):
        prefs = UserPreferences(max_cost_impact=100)
        result = orchestrator.negotiate(_request(example_strategies, impacts, prefs))

        assert result.balanced_strategies is None
        escalation = result.conflict_escalation
        assert escalation.requires_user_input is True
        assert escalation.conflicting_objectives == [Objective.COST]
        assert escalation.reason == "threshold_violations"
        assert "threshold" in escalation.explanation
        assert "100" in escalation.explanation

    def test_joint_conflict_explanation_names_each_objective(
        self, orchestrator, example_strategies, impacts
    ):
        prefs = UserPreferences(max_cost_impact=500, min_risk_reduction=0.9)
        result = orchestrator.negotiate(_request(example_strategies, impacts, prefs))

        escalation = result.conflict_escalation
        assert escalation.reason == "joint_threshold_conflict"
        assert set(escalation.conflicting_objectives) == {Objective.COST, Objective.RISK}
        assert "cost" in escalation.explanation
        assert "risk" in escalation.explanation
        assert "0.9" in escalation.explanation

    def test_escalation_visualizations_have_no_selection(
        self, orchestrator, example_strategies, impacts
    ):
        prefs = UserPreferences(max_cost_impact=100)
        result = orchestrator.negotiate(_request(example_strategies, impacts, prefs))

        for visualization in result.tradeoff_visualizations:
            assert not any(p.selected for p in visualization.data_points)


class TestWarnings:
    """Informational warnings."""

    def test_near_tie_warning(self, orchestrator, strategy_factory, impacts):
        pool = [
            strategy_factory("A", 100, 0.5, 10),
            strategy_factory("B", 100, 0.5, 10),
            strategy_factory("C", 100, 0.5, 10),
        ]
        result = orchestrator.negotiate(_request(pool, impacts))

        codes = [w.code for w in result.warnings]
        assert WARNING_NEAR_TIE in codes
        # Near ties never escalate
        assert result.conflict_escalation is None
        assert len(result.balanced_strategies) == 3

    def test_no_near_tie_for_distinct_scores(self, orchestrator, example_strategies, impacts):
        result = orchestrator.negotiate(
            _request(example_strategies, impacts, UserPreferences(prioritize_cost=True))
        )
        assert WARNING_NEAR_TIE not in [w.code for w in result.warnings]

    def test_selection_outside_thresholds(self, orchestrator, example_strategies, impacts):
        # Only C is within cost, but equal weights rank B, A, D above it
        prefs = UserPreferences(max_cost_impact=500)
        result = orchestrator.negotiate(_request(example_strategies, impacts, prefs))

        assert result.conflict_escalation is None
        warning = next(
            w for w in result.warnings if w.code == WARNING_SELECTION_OUTSIDE_THRESHOLDS
        )
        assert set(warning.affected_items) == {"A", "B", "D"}

    def test_duplicate_warning(self, orchestrator, example_strategies, impacts):
        result = orchestrator.negotiate(
            _request(example_strategies + [example_strategies[1]], impacts)
        )

        warning = next(w for w in result.warnings if w.code == WARNING_DUPLICATES_COLLAPSED)
        assert warning.affected_items == ["B"]


class TestValidation:
    """Caller errors."""

    def test_insufficient_strategies(self, orchestrator, audit_sink, strategy_factory, impacts):
        pool = [strategy_factory("A", 1, 0.1, 1), strategy_factory("B", 2, 0.2, 2)]

        with pytest.raises(InsufficientStrategiesError):
            orchestrator.negotiate(_request(pool, impacts))

        assert audit_sink.records == []


class TestAudit:
    """Audit emission."""

    def test_success_is_audited(self, orchestrator, audit_sink, example_strategies, impacts):
        result = orchestrator.negotiate(
            _request(example_strategies, impacts),
            user_id="user-7",
            correlation_id="corr-7",
        )

        [record] = audit_sink.records
        assert record.record_id == result.audit_record_id
        assert record.user_id == "user-7"
        assert record.correlation_id == "corr-7"
        assert record.conflict_escalated is False
        assert len(record.selected_strategies) == 3
        assert verify_record_hash(record)

    def test_escalation_is_audited(self, orchestrator, audit_sink, example_strategies, impacts):
        orchestrator.negotiate(
            _request(example_strategies, impacts, UserPreferences(max_cost_impact=1))
        )

        [record] = audit_sink.records
        assert record.conflict_escalated is True
        assert record.conflict_reason == "threshold_violations"
        assert record.selected_strategies == []
        assert record.conflicting_objectives == [Objective.COST]

    def test_unbuildable_result_is_not_audited(self, orchestrator, audit_sink, example_strategies, impacts):
        with pytest.raises(ValidationError):
            orchestrator.negotiate(_request(example_strategies, impacts), correlation_id="c" * 201)

        assert audit_sink.records == []

    def test_sink_failure_does_not_fail_negotiation(self, example_strategies, impacts):
        class BrokenSink:
            def append(self, record):
                raise IOError("disk full")

        orchestrator = NegotiationOrchestrator(audit_logger=AuditLogger(sink=BrokenSink()))
        result = orchestrator.negotiate(_request(example_strategies, impacts))

        assert len(result.balanced_strategies) == 3
        assert result.audit_record_id is None

    def test_disabled_audit(self, example_strategies, impacts):
        sink = InMemoryAuditSink()
        orchestrator = NegotiationOrchestrator(
            audit_logger=AuditLogger(sink=sink, enabled=False)
        )
        orchestrator.negotiate(_request(example_strategies, impacts))

        assert sink.records == []
