"""
Strategy Selection Service.

Scores candidate mitigation strategies with a weighted sum of min-max
normalized objectives and selects the three best:

    score = w_cost * cost_norm + w_risk * risk_norm + w_sust * sustainability_norm

Cost, sustainability impact and implementation time are inverted (lower is
better); risk reduction is direct (higher is better). Implementation time is
reported but not weighted.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np

from src.config import get_settings
from src.constants import (
    BALANCED_STRATEGY_COUNT,
    NO_SPREAD_NORMALIZED_SCORE,
    SCORE_COMPARISON_PRECISION,
)
from src.models.shared import MitigationStrategy, Objective, UserPreferences

logger = logging.getLogger(__name__)


class InsufficientStrategiesError(ValueError):
    """Raised when fewer than three distinct candidates are supplied."""

    def __init__(self, distinct_count: int, required: int = BALANCED_STRATEGY_COUNT):
        self.distinct_count = distinct_count
        self.required = required
        super().__init__(
            f"At least {required} distinct strategies are required, got {distinct_count}"
        )


@dataclass(frozen=True)
class ScoredStrategy:
    """A candidate with its normalized objective scores and weighted total."""

    strategy: MitigationStrategy
    score: float
    cost_score: float
    risk_score: float
    sustainability_score: float
    implementation_time_score: float

    @property
    def strategy_id(self) -> str:
        return self.strategy.strategy_id

    def sort_key(self) -> Tuple[float, float, str]:
        return (
            -round(self.score, SCORE_COMPARISON_PRECISION),
            self.strategy.cost_impact,
            self.strategy.strategy_id,
        )


@dataclass
class SelectionResult:
    """Output of `StrategySelector.select`."""

    selected: List[MitigationStrategy]
    weights: Dict[Objective, float]
    scored: List[ScoredStrategy]
    candidates: List[MitigationStrategy]
    duplicate_ids: List[str] = field(default_factory=list)


def deduplicate_strategies(
    strategies: List[MitigationStrategy],
) -> Tuple[List[MitigationStrategy], List[str]]:
    """
    Collapse strategies sharing a strategy_id, keeping the first occurrence.

    Returns:
        Tuple of (unique strategies in input order, ids that were duplicated)
    """
    seen = set()
    unique: List[MitigationStrategy] = []
    duplicates: List[str] = []

    for strategy in strategies:
        if strategy.strategy_id in seen:
            if strategy.strategy_id not in duplicates:
                duplicates.append(strategy.strategy_id)
            continue
        seen.add(strategy.strategy_id)
        unique.append(strategy)

    return unique, duplicates


def derive_weights(
    preferences: Optional[UserPreferences],
    boost: Optional[float] = None,
) -> Dict[Objective, float]:
    """
    Resolve objective weights from preference flags.

    Each objective starts at 1; a prioritize flag multiplies it by the boost
    factor. The result is normalized to sum to 1.

    Args:
        preferences: User preferences (None means no flags)
        boost: Boost factor, defaults to NEGOTIATION_PRIORITY_BOOST

    Returns:
        Mapping objective -> weight
    """
    if boost is None:
        boost = get_settings().NEGOTIATION_PRIORITY_BOOST

    raw = {
        Objective.COST: 1.0,
        Objective.RISK: 1.0,
        Objective.SUSTAINABILITY: 1.0,
    }

    if preferences is not None:
        if preferences.prioritize_cost:
            raw[Objective.COST] *= boost
        if preferences.prioritize_risk:
            raw[Objective.RISK] *= boost
        if preferences.prioritize_sustainability:
            raw[Objective.SUSTAINABILITY] *= boost

    total = sum(raw.values())
    return {objective: value / total for objective, value in raw.items()}


def _min_max(values: np.ndarray, invert: bool) -> np.ndarray:
    """Scale values to [0, 1]; a metric without spread maps to 0.5."""
    low = float(np.min(values))
    spread = float(np.max(values)) - low

    if spread == 0:
        return np.full(values.shape, NO_SPREAD_NORMALIZED_SCORE)

    scaled = (values - low) / spread
    return 1.0 - scaled if invert else scaled


def score_strategies(
    strategies: List[MitigationStrategy],
    weights: Dict[Objective, float],
) -> List[ScoredStrategy]:
    """
    Score every strategy relative to the pool.

    Pure function: the same pool and weights always produce the same scores.

    Args:
        strategies: Candidate pool (normalization is pool-relative)
        weights: Objective weights summing to 1

    Returns:
        Scored strategies in input order
    """
    if not strategies:
        return []

    cost = _min_max(np.array([s.cost_impact for s in strategies], dtype=float), invert=True)
    risk = _min_max(np.array([s.risk_reduction for s in strategies], dtype=float), invert=False)
    sustainability = _min_max(
        np.array([s.sustainability_impact for s in strategies], dtype=float), invert=True
    )
    implementation = _min_max(
        np.array([s.implementation_time for s in strategies], dtype=float), invert=True
    )

    totals = (
        weights[Objective.COST] * cost
        + weights[Objective.RISK] * risk
        + weights[Objective.SUSTAINABILITY] * sustainability
    )

    return [
        ScoredStrategy(
            strategy=strategy,
            score=float(totals[i]),
            cost_score=float(cost[i]),
            risk_score=float(risk[i]),
            sustainability_score=float(sustainability[i]),
            implementation_time_score=float(implementation[i]),
        )
        for i, strategy in enumerate(strategies)
    ]


def rank_strategies(scored: List[ScoredStrategy]) -> List[ScoredStrategy]:
    """Order by score descending, then lower cost, then strategy_id."""
    return sorted(scored, key=lambda s: s.sort_key())


class StrategySelector:
    """Selects the three best-balanced strategies from a candidate pool."""

    def __init__(
        self,
        priority_boost: Optional[float] = None,
        min_strategies: int = BALANCED_STRATEGY_COUNT,
    ):
        self.priority_boost = priority_boost
        self.min_strategies = max(min_strategies, BALANCED_STRATEGY_COUNT)

    def select(
        self,
        candidates: List[MitigationStrategy],
        preferences: Optional[UserPreferences] = None,
    ) -> SelectionResult:
        """
        Deduplicate, score, rank and pick the top three.

        Raises:
            InsufficientStrategiesError: Fewer than 3 distinct candidates
        """
        unique, duplicates = deduplicate_strategies(candidates)

        if len(unique) < self.min_strategies:
            raise InsufficientStrategiesError(len(unique), self.min_strategies)

        if duplicates:
            logger.warning(
                "duplicate_strategies_collapsed",
                extra={"duplicate_ids": duplicates},
            )

        weights = derive_weights(preferences, self.priority_boost)
        ranked = rank_strategies(score_strategies(unique, weights))
        selected = [s.strategy for s in ranked[:BALANCED_STRATEGY_COUNT]]

        logger.debug(
            "strategies_ranked",
            extra={
                "num_candidates": len(unique),
                "selected_ids": [s.strategy_id for s in selected],
            },
        )

        return SelectionResult(
            selected=selected,
            weights=weights,
            scored=ranked,
            candidates=unique,
            duplicate_ids=duplicates,
        )
