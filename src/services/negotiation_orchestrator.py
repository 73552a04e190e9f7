"""
Negotiation Orchestrator.

Composes the strategy selector and the constraint checker:

    ScoreAndSelect -> ConstraintCheck -> {Success | Escalate} -> Audit

Success returns three balanced strategies; irreconcilable thresholds return a
conflict escalation instead. Both branches are audited.
"""

import logging
from typing import Dict, List, Optional

import numpy as np

from src.config import get_settings
from src.constants import BALANCED_STRATEGY_COUNT, NEGOTIATION_METHOD
from src.models.metadata import MetadataBuilder
from src.models.requests import NegotiationRequest
from src.models.responses import (
    ConflictEscalation,
    NegotiationParameters,
    NegotiationResult,
    NegotiationThresholds,
    NegotiationWarning,
    OptimalRegion,
    TradeoffDataPoint,
    TradeoffVisualization,
)
from src.models.shared import MitigationStrategy, Objective
from src.services.audit_logger import AuditLogger
from src.services.constraint_checker import (
    ConstraintChecker,
    ConstraintReport,
    REASON_JOINT_THRESHOLD_CONFLICT,
    thresholds_from_preferences,
    threshold_value,
)
from src.services.strategy_selector import ScoredStrategy, StrategySelector
from src.utils.business_metrics import negotiation_candidates, negotiations_total

logger = logging.getLogger(__name__)

WARNING_NEAR_TIE = "NEAR_TIE"
WARNING_SELECTION_OUTSIDE_THRESHOLDS = "SELECTION_OUTSIDE_THRESHOLDS"
WARNING_DUPLICATES_COLLAPSED = "DUPLICATE_STRATEGIES_COLLAPSED"

_THRESHOLD_PHRASES = {
    Objective.COST: "exceed the maximum cost threshold of {value:g}",
    Objective.RISK: "fail to meet the minimum risk reduction threshold of {value:g}",
    Objective.SUSTAINABILITY: "exceed the maximum sustainability impact threshold of {value:g}",
}

_THRESHOLD_LABELS = {
    Objective.COST: "maximum cost threshold of {value:g}",
    Objective.RISK: "minimum risk reduction threshold of {value:g}",
    Objective.SUSTAINABILITY: "maximum sustainability impact threshold of {value:g}",
}


def build_escalation_explanation(report: ConstraintReport) -> str:
    """Enumerate every conflicting objective with its unmet threshold."""
    parts = ["None of the available strategies satisfy all defined constraints."]

    if report.reason == REASON_JOINT_THRESHOLD_CONFLICT:
        labels = [
            _THRESHOLD_LABELS[o].format(value=threshold_value(report.thresholds, o))
            for o in report.conflicting_objectives
        ]
        parts.append(
            "Each constraint is met by at least one strategy, but no strategy "
            f"meets them together: {', '.join(labels)} ({', '.join(o.value for o in report.conflicting_objectives)})."
        )
    else:
        for objective in report.conflicting_objectives:
            phrase = _THRESHOLD_PHRASES[objective].format(
                value=threshold_value(report.thresholds, objective)
            )
            parts.append(f"All strategies {phrase} ({objective.value}).")

    parts.append(
        "Please consider adjusting your constraints or accepting a strategy with trade-offs."
    )
    return " ".join(parts)


def build_tradeoff_visualizations(
    candidates: List[MitigationStrategy],
    thresholds: NegotiationThresholds,
    selected_ids: Optional[set] = None,
) -> List[TradeoffVisualization]:
    """Project the full candidate pool onto each pair of objectives."""
    selected_ids = selected_ids or set()

    def points(x_attr: str, y_attr: str) -> List[TradeoffDataPoint]:
        return [
            TradeoffDataPoint(
                strategy_id=s.strategy_id,
                strategy_name=s.name,
                x=getattr(s, x_attr),
                y=getattr(s, y_attr),
                selected=s.strategy_id in selected_ids,
            )
            for s in candidates
        ]

    return [
        TradeoffVisualization(
            type="cost_vs_risk",
            x_axis="Cost Impact",
            y_axis="Risk Reduction",
            data_points=points("cost_impact", "risk_reduction"),
            optimal_region=OptimalRegion(
                x_max=thresholds.max_cost_impact,
                y_min=thresholds.min_risk_reduction,
            ),
        ),
        TradeoffVisualization(
            type="cost_vs_sustainability",
            x_axis="Cost Impact",
            y_axis="Sustainability Impact",
            data_points=points("cost_impact", "sustainability_impact"),
            optimal_region=OptimalRegion(
                x_max=thresholds.max_cost_impact,
                y_max=thresholds.max_sustainability_impact,
            ),
        ),
        TradeoffVisualization(
            type="risk_vs_sustainability",
            x_axis="Risk Reduction",
            y_axis="Sustainability Impact",
            data_points=points("risk_reduction", "sustainability_impact"),
            optimal_region=OptimalRegion(
                x_min=thresholds.min_risk_reduction,
                y_max=thresholds.max_sustainability_impact,
            ),
        ),
    ]


class NegotiationOrchestrator:
    """Resolves competing objectives into three balanced strategies."""

    def __init__(
        self,
        selector: Optional[StrategySelector] = None,
        checker: Optional[ConstraintChecker] = None,
        audit_logger: Optional[AuditLogger] = None,
        near_tie_threshold: Optional[float] = None,
    ):
        settings = get_settings()
        self.selector = selector or StrategySelector(
            settings.NEGOTIATION_PRIORITY_BOOST,
            settings.NEGOTIATION_MIN_STRATEGIES,
        )
        self.checker = checker or ConstraintChecker()
        self.audit_logger = audit_logger or AuditLogger(enabled=settings.ENABLE_AUDIT_LOGGING)
        self.near_tie_threshold = (
            near_tie_threshold
            if near_tie_threshold is not None
            else settings.NEAR_TIE_VARIANCE_THRESHOLD
        )

    def negotiate(
        self,
        request: NegotiationRequest,
        user_id: str = "anonymous",
        correlation_id: str = "unknown",
    ) -> NegotiationResult:
        """
        Run one negotiation.

        Args:
            request: Negotiation request
            user_id: Identity stamped on the audit record
            correlation_id: Correlation id for tracing and audit

        Returns:
            NegotiationResult with either balanced strategies or an escalation

        Raises:
            ValueError: Malformed request
            InsufficientStrategiesError: Fewer than 3 distinct candidates
        """
        self._validate(request)
        metadata = MetadataBuilder(correlation_id)

        logger.info(
            "negotiation_started",
            extra={
                "scenario_id": request.scenario_id,
                "num_strategies": len(request.strategies),
                "user_id": user_id,
            },
        )

        selection = self.selector.select(request.strategies, request.user_preferences)
        negotiation_candidates.observe(len(selection.candidates))

        thresholds = thresholds_from_preferences(request.user_preferences)
        parameters = NegotiationParameters(
            cost_weight=selection.weights[Objective.COST],
            risk_weight=selection.weights[Objective.RISK],
            sustainability_weight=selection.weights[Objective.SUSTAINABILITY],
            thresholds=thresholds,
        )

        report = self.checker.check(selection.candidates, thresholds)
        warnings = self._duplicate_warnings(selection.duplicate_ids)

        if report.is_conflict:
            escalation = ConflictEscalation(
                reason=report.reason,
                conflicting_objectives=report.conflicting_objectives,
                explanation=build_escalation_explanation(report),
                requires_user_input=True,
            )
            selected: List[MitigationStrategy] = []
            visualizations = build_tradeoff_visualizations(selection.candidates, thresholds)
            outcome = "escalated"

            logger.warning(
                "negotiation_escalated",
                extra={
                    "scenario_id": request.scenario_id,
                    "reason": escalation.reason,
                    "conflicting_objectives": [o.value for o in escalation.conflicting_objectives],
                },
            )
        else:
            escalation = None
            selected = selection.selected
            visualizations = build_tradeoff_visualizations(
                selection.candidates,
                thresholds,
                selected_ids={s.strategy_id for s in selected},
            )
            warnings.extend(self._near_tie_warnings(selection.scored))
            warnings.extend(self._threshold_warnings(selected, thresholds))
            outcome = "success"

        # Fully built before auditing so a failed response never leaves a record
        result = NegotiationResult(
            balanced_strategies=selected if escalation is None else None,
            tradeoff_visualizations=visualizations,
            negotiation_parameters=parameters,
            conflict_escalation=escalation,
            warnings=warnings,
            metadata=metadata.build(algorithm=NEGOTIATION_METHOD),
        )

        record = self.audit_logger.log_decision(
            scenario_id=request.scenario_id,
            user_id=user_id,
            correlation_id=correlation_id,
            selected=selected,
            parameters=parameters,
            escalation=escalation,
        )
        if record is not None:
            result.audit_record_id = record.record_id

        negotiations_total.labels(outcome=outcome).inc()

        logger.info(
            "negotiation_completed",
            extra={
                "scenario_id": request.scenario_id,
                "outcome": outcome,
                "selected_ids": [s.strategy_id for s in selected],
                "num_warnings": len(warnings),
            },
        )

        return result

    def _validate(self, request: NegotiationRequest) -> None:
        if not request.scenario_id or not request.scenario_id.strip():
            raise ValueError("scenarioId is required")
        if request.impacts is None:
            raise ValueError("impacts are required")
        if not request.strategies:
            raise ValueError("At least one strategy is required")

    def _duplicate_warnings(self, duplicate_ids: List[str]) -> List[NegotiationWarning]:
        if not duplicate_ids:
            return []
        return [
            NegotiationWarning(
                code=WARNING_DUPLICATES_COLLAPSED,
                message=(
                    f"{len(duplicate_ids)} duplicate strategy id(s) collapsed; "
                    "the first occurrence of each was kept"
                ),
                affected_items=duplicate_ids,
            )
        ]

    def _near_tie_warnings(self, ranked: List[ScoredStrategy]) -> List[NegotiationWarning]:
        top = ranked[:BALANCED_STRATEGY_COUNT]
        variance = float(np.var([s.score for s in top]))

        if variance >= self.near_tie_threshold:
            return []

        return [
            NegotiationWarning(
                code=WARNING_NEAR_TIE,
                message=(
                    f"The top strategies have very similar scores (variance {variance:.6f}). "
                    "The objectives are in tension; review the trade-off visualizations "
                    "before deciding."
                ),
                affected_items=[s.strategy_id for s in top],
            )
        ]

    def _threshold_warnings(
        self,
        selected: List[MitigationStrategy],
        thresholds: NegotiationThresholds,
    ) -> List[NegotiationWarning]:
        outside: Dict[str, List[str]] = {}
        for strategy in selected:
            violations = self.checker.check_strategy(strategy, thresholds)
            if violations:
                outside[strategy.strategy_id] = [v.objective.value for v in violations]

        if not outside:
            return []

        details = "; ".join(
            f"{sid} misses {', '.join(objectives)}" for sid, objectives in outside.items()
        )
        return [
            NegotiationWarning(
                code=WARNING_SELECTION_OUTSIDE_THRESHOLDS,
                message=f"Selected strategies outside at least one threshold: {details}",
                affected_items=list(outside.keys()),
            )
        ]
