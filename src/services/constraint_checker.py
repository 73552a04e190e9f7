"""
Constraint Checker Service.

Checks candidate strategies against the hard thresholds in user preferences:
- max_cost_impact: strategy.cost_impact must not exceed it
- min_risk_reduction: strategy.risk_reduction must reach it
- max_sustainability_impact: strategy.sustainability_impact must not exceed it

Absent thresholds are unconstrained.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from src.models.responses import NegotiationThresholds
from src.models.shared import MitigationStrategy, Objective, UserPreferences

logger = logging.getLogger(__name__)

REASON_THRESHOLD_VIOLATIONS = "threshold_violations"
REASON_JOINT_THRESHOLD_CONFLICT = "joint_threshold_conflict"


@dataclass(frozen=True)
class ThresholdViolation:
    """One threshold missed by one strategy."""

    strategy_id: str
    objective: Objective
    threshold: float
    actual: float


@dataclass
class ConstraintReport:
    """Result of checking a candidate pool against thresholds."""

    thresholds: NegotiationThresholds
    feasible_ids: List[str] = field(default_factory=list)
    violations: List[ThresholdViolation] = field(default_factory=list)
    conflicting_objectives: List[Objective] = field(default_factory=list)
    reason: Optional[str] = None

    @property
    def is_conflict(self) -> bool:
        return bool(self.conflicting_objectives)


def thresholds_from_preferences(
    preferences: Optional[UserPreferences],
) -> NegotiationThresholds:
    """Extract the applied thresholds (absent ones stay null)."""
    if preferences is None:
        return NegotiationThresholds()
    return NegotiationThresholds(
        max_cost_impact=preferences.max_cost_impact,
        min_risk_reduction=preferences.min_risk_reduction,
        max_sustainability_impact=preferences.max_sustainability_impact,
    )


def present_objectives(thresholds: NegotiationThresholds) -> List[Objective]:
    """Objectives that carry a threshold, in canonical order."""
    objectives = []
    if thresholds.max_cost_impact is not None:
        objectives.append(Objective.COST)
    if thresholds.min_risk_reduction is not None:
        objectives.append(Objective.RISK)
    if thresholds.max_sustainability_impact is not None:
        objectives.append(Objective.SUSTAINABILITY)
    return objectives


def threshold_value(thresholds: NegotiationThresholds, objective: Objective) -> Optional[float]:
    return {
        Objective.COST: thresholds.max_cost_impact,
        Objective.RISK: thresholds.min_risk_reduction,
        Objective.SUSTAINABILITY: thresholds.max_sustainability_impact,
    }[objective]


class ConstraintChecker:
    """Evaluates hard thresholds against strategies."""

    def check_strategy(
        self,
        strategy: MitigationStrategy,
        thresholds: NegotiationThresholds,
    ) -> List[ThresholdViolation]:
        """
        List every threshold the strategy misses.

        Returns:
            Empty list when the strategy is feasible
        """
        violations = []

        if thresholds.max_cost_impact is not None and strategy.cost_impact > thresholds.max_cost_impact:
            violations.append(
                ThresholdViolation(
                    strategy_id=strategy.strategy_id,
                    objective=Objective.COST,
                    threshold=thresholds.max_cost_impact,
                    actual=strategy.cost_impact,
                )
            )

        if (
            thresholds.min_risk_reduction is not None
            and strategy.risk_reduction < thresholds.min_risk_reduction
        ):
            violations.append(
                ThresholdViolation(
                    strategy_id=strategy.strategy_id,
                    objective=Objective.RISK,
                    threshold=thresholds.min_risk_reduction,
                    actual=strategy.risk_reduction,
                )
            )

        if (
            thresholds.max_sustainability_impact is not None
            and strategy.sustainability_impact > thresholds.max_sustainability_impact
        ):
            violations.append(
                ThresholdViolation(
                    strategy_id=strategy.strategy_id,
                    objective=Objective.SUSTAINABILITY,
                    threshold=thresholds.max_sustainability_impact,
                    actual=strategy.sustainability_impact,
                )
            )

        return violations

    def is_feasible(
        self,
        strategy: MitigationStrategy,
        thresholds: NegotiationThresholds,
    ) -> bool:
        return not self.check_strategy(strategy, thresholds)

    def check(
        self,
        candidates: List[MitigationStrategy],
        thresholds: NegotiationThresholds,
    ) -> ConstraintReport:
        """
        Check the whole candidate pool.

        A conflict exists when no candidate satisfies every present
        threshold. The conflicting objectives are those no candidate
        satisfies on its own; if each threshold is individually met by some
        candidate but never jointly, every present objective conflicts.

        Args:
            candidates: Deduplicated candidate pool
            thresholds: Applied thresholds

        Returns:
            ConstraintReport
        """
        report = ConstraintReport(thresholds=thresholds)
        objectives = present_objectives(thresholds)

        if not objectives:
            report.feasible_ids = [c.strategy_id for c in candidates]
            return report

        satisfied_somewhere = set()
        for candidate in candidates:
            violations = self.check_strategy(candidate, thresholds)
            report.violations.extend(violations)

            missed = {v.objective for v in violations}
            satisfied_somewhere.update(o for o in objectives if o not in missed)

            if not violations:
                report.feasible_ids.append(candidate.strategy_id)

        if report.feasible_ids:
            return report

        individually_unmet = [o for o in objectives if o not in satisfied_somewhere]
        if individually_unmet:
            report.conflicting_objectives = individually_unmet
            report.reason = REASON_THRESHOLD_VIOLATIONS
        else:
            report.conflicting_objectives = objectives
            report.reason = REASON_JOINT_THRESHOLD_CONFLICT

        logger.info(
            "threshold_conflict_detected",
            extra={
                "reason": report.reason,
                "conflicting_objectives": [o.value for o in report.conflicting_objectives],
                "num_candidates": len(candidates),
            },
        )

        return report
