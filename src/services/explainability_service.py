"""
Explainability Service.

Composes explanation builder outputs into a single response and scores how
complete the explanation is.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from src.constants import (
    COMPLETENESS_COMPONENTS,
    GENERATION_METHOD_STRUCTURED,
    MIN_SUMMARY_LENGTH,
)
from src.models.metadata import MetadataBuilder
from src.models.requests import ExplanationRequest
from src.models.responses import (
    AgentAttribution,
    ExplanationMetadata,
    ExplanationResponse,
    UncertaintyQuantification,
)
from src.models.shared import DecisionTree
from src.services.explanation_builder import ExplanationBuilder
from src.utils.business_metrics import explanation_completeness, explanations_total

logger = logging.getLogger(__name__)


def calculate_completeness(
    summary: Optional[str],
    tree: Optional[DecisionTree],
    attributions: List[AgentAttribution],
    uncertainty: Optional[UncertaintyQuantification],
) -> float:
    """Fraction of the four explanation components that carry content."""
    present = 0
    if summary and len(summary) > MIN_SUMMARY_LENGTH:
        present += 1
    if tree is not None and tree.nodes and tree.edges:
        present += 1
    if attributions:
        present += 1
    if uncertainty is not None and uncertainty.prediction_ranges:
        present += 1
    return present / COMPLETENESS_COMPONENTS


class ExplainabilityService:
    """Builds full explanations of the upstream analysis pipeline."""

    def __init__(self, builder: Optional[ExplanationBuilder] = None):
        self.builder = builder or ExplanationBuilder()

    async def explain(
        self,
        request: ExplanationRequest,
        request_id: str = "unknown",
    ) -> ExplanationResponse:
        """
        Generate an explanation.

        Args:
            request: Explanation request
            request_id: Correlation id for tracing

        Returns:
            ExplanationResponse

        Raises:
            ValueError: No agent contributions
        """
        if not request.agent_contributions:
            raise ValueError("agentContributions must not be empty")

        metadata = MetadataBuilder(request_id)
        generated_at = datetime.now(timezone.utc).isoformat()

        logger.info(
            "explanation_started",
            extra={
                "request_id": request_id,
                "scenario_id": request.scenario_id,
                "num_contributions": len(request.agent_contributions),
            },
        )

        summary = None
        generation_method = GENERATION_METHOD_STRUCTURED
        if request.include_natural_language:
            summary, generation_method = await self.builder.summarize(
                request.scenario,
                request.impacts,
                request.strategies,
                request.agent_contributions,
                request_id=request_id,
            )

        tree = None
        if request.include_decision_tree:
            tree = self.builder.build_decision_tree(
                request.scenario,
                request.impacts,
                request.strategies,
                request.agent_contributions,
            )

        attributions = self.builder.build_attributions(request.agent_contributions, tree)

        uncertainty = None
        if request.include_uncertainty:
            uncertainty = self.builder.build_uncertainty(
                request.impacts, request.agent_contributions
            )

        completeness = calculate_completeness(summary, tree, attributions, uncertainty)

        explanations_total.labels(generation_method=generation_method).inc()
        explanation_completeness.observe(completeness)

        logger.info(
            "explanation_completed",
            extra={
                "request_id": request_id,
                "scenario_id": request.scenario_id,
                "generation_method": generation_method,
                "completeness": completeness,
            },
        )

        return ExplanationResponse(
            scenario_id=request.scenario_id,
            natural_language_summary=summary,
            decision_tree=tree,
            agent_attributions=attributions,
            uncertainty_quantification=uncertainty,
            metadata=ExplanationMetadata(
                generated_at=generated_at,
                generation_method=generation_method,
                completeness=completeness,
                request_id=request_id,
                computation_time_ms=metadata.elapsed_ms(),
            ),
        )
