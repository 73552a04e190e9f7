"""
Explanation Builder.

Builds the parts of an explanation of the upstream analysis pipeline:
- Decision tree of the pipeline stages
- Per-agent attributions
- Uncertainty quantification
- Natural-language summary (reasoning service, rule-based fallback)
"""

import logging
from statistics import mean
from typing import Dict, List, Optional, Tuple

from src.constants import (
    BASELINE_OVERALL_CONFIDENCE,
    CARBON_UNCERTAINTY_BAND,
    COST_UNCERTAINTY_BAND,
    DELIVERY_TIME_UNCERTAINTY_BAND,
    GENERATION_METHOD_FALLBACK,
    GENERATION_METHOD_REASONING,
    INVENTORY_UNCERTAINTY_BAND,
    MAX_STRATEGY_NODES,
    UNCERTAINTY_ASSUMPTIONS,
    UNCERTAINTY_LIMITATIONS,
)
from src.models.responses import (
    AgentAttribution,
    PredictionRange,
    UncertaintyQuantification,
)
from src.models.shared import (
    AgentContribution,
    DecisionEdge,
    DecisionNode,
    DecisionNodeType,
    DecisionTree,
    ImpactAnalysis,
    MitigationStrategy,
    Scenario,
)
from src.services.reasoning_client import ReasoningClient, ReasoningServiceError
from src.utils.business_metrics import reasoning_fallbacks_total

logger = logging.getLogger(__name__)

AGENT_SYSTEM = "System"
AGENT_INFO = "Info Agent"
AGENT_SCENARIO = "Scenario Agent"
AGENT_IMPACT = "Impact Agent"
AGENT_SUSTAINABILITY = "Sustainability Service"
AGENT_STRATEGY = "Strategy Agent"


def _humanize(value: str) -> str:
    return value.lower().replace("_", " ")


def _agent_confidences(contributions: List[AgentContribution]) -> Dict[str, float]:
    """Mean reported confidence per agent name."""
    by_agent: Dict[str, List[float]] = {}
    for contribution in contributions:
        if contribution.confidence is not None:
            by_agent.setdefault(contribution.agent_name, []).append(contribution.confidence)
    return {agent: mean(values) for agent, values in by_agent.items()}


def _midpoint(lower: float, upper: float) -> float:
    """Midpoint that cannot overflow for finite bounds."""
    if (lower < 0) != (upper < 0):
        return (lower + upper) / 2
    return lower + (upper - lower) / 2


def _band(metric: str, point: float, band: Tuple[float, float]) -> PredictionRange:
    half_width, confidence_level = band
    return PredictionRange(
        metric=metric,
        point_estimate=point,
        lower_bound=point * (1 - half_width),
        upper_bound=point * (1 + half_width),
        confidence_level=confidence_level,
    )


class _TreeBuilder:
    """Accumulates nodes and edges, resolving node confidences."""

    def __init__(self, confidences: Dict[str, float]):
        self.confidences = confidences
        self.nodes: List[DecisionNode] = []
        self.edges: List[DecisionEdge] = []

    def add(
        self,
        node_id: str,
        label: str,
        node_type: DecisionNodeType,
        agent: str,
        default_confidence: Optional[float] = None,
        parent: Optional[str] = None,
        edge_label: Optional[str] = None,
    ) -> str:
        self.nodes.append(
            DecisionNode(
                node_id=node_id,
                label=label,
                type=node_type,
                agent_attribution=agent,
                confidence=self.confidences.get(agent, default_confidence),
            )
        )
        if parent is not None:
            self.edges.append(DecisionEdge(from_node=parent, to_node=node_id, label=edge_label))
        return node_id

    def build(self) -> DecisionTree:
        return DecisionTree(root_id="root", nodes=self.nodes, edges=self.edges)


class ExplanationBuilder:
    """Builds explanation components from pipeline inputs."""

    def __init__(self, reasoning_client: Optional[ReasoningClient] = None):
        self.reasoning_client = reasoning_client or ReasoningClient()

    # -------------------------------------------------------------------------
    # Decision tree
    # -------------------------------------------------------------------------

    def build_decision_tree(
        self,
        scenario: Optional[Scenario],
        impacts: Optional[ImpactAnalysis],
        strategies: Optional[List[MitigationStrategy]],
        contributions: List[AgentContribution],
    ) -> DecisionTree:
        """
        Build the pipeline decision tree.

        Backbone: root -> data-gathering -> [scenario-gen] -> [impact-analysis
        and its outcomes] -> [strategy-gen and up to three strategy outcomes].
        Each stage attaches to the nearest present predecessor.
        """
        tree = _TreeBuilder(_agent_confidences(contributions))

        root_label = f"{scenario.type.value} Analysis" if scenario else "Scenario Analysis"
        tree.add("root", root_label, DecisionNodeType.DECISION, AGENT_SYSTEM)
        last = tree.add(
            "data-gathering",
            "Data Collection & Aggregation",
            DecisionNodeType.CONDITION,
            AGENT_INFO,
            parent="root",
            edge_label="Initiate Analysis",
        )

        if scenario is not None:
            last = tree.add(
                "scenario-gen",
                f"Generate {scenario.type.value} Scenario",
                DecisionNodeType.CONDITION,
                AGENT_SCENARIO,
                default_confidence=0.85,
                parent=last,
                edge_label="Scenario Parameters",
            )

        if impacts is not None:
            last = tree.add(
                "impact-analysis",
                "Analyze Multi-Dimensional Impacts",
                DecisionNodeType.CONDITION,
                AGENT_IMPACT,
                parent=last,
                edge_label="Run Simulation",
            )
            tree.add(
                "cost-outcome",
                f"Cost: ${round(impacts.cost_impact):,}",
                DecisionNodeType.OUTCOME,
                AGENT_IMPACT,
                default_confidence=0.80,
                parent=last,
                edge_label="Cost Analysis",
            )
            tree.add(
                "time-outcome",
                f"Delay: {round(impacts.delivery_time_impact)}h",
                DecisionNodeType.OUTCOME,
                AGENT_IMPACT,
                default_confidence=0.75,
                parent=last,
                edge_label="Time Analysis",
            )
            tree.add(
                "inventory-outcome",
                f"Inventory: {round(impacts.inventory_impact):,} units",
                DecisionNodeType.OUTCOME,
                AGENT_IMPACT,
                default_confidence=0.75,
                parent=last,
                edge_label="Inventory Analysis",
            )
            if impacts.sustainability_impact is not None:
                tree.add(
                    "sustainability-outcome",
                    f"Carbon: {round(impacts.sustainability_impact.carbon_footprint):,} kg CO2",
                    DecisionNodeType.OUTCOME,
                    AGENT_SUSTAINABILITY,
                    default_confidence=0.70,
                    parent=last,
                    edge_label="Sustainability Analysis",
                )

        if strategies:
            tree.add(
                "strategy-gen",
                "Generate Mitigation Strategies",
                DecisionNodeType.CONDITION,
                AGENT_STRATEGY,
                parent=last,
                edge_label="Optimize Solutions",
            )
            for index, strategy in enumerate(strategies[:MAX_STRATEGY_NODES]):
                tree.add(
                    f"strategy-{index}",
                    strategy.name,
                    DecisionNodeType.OUTCOME,
                    AGENT_STRATEGY,
                    default_confidence=round(0.85 - index * 0.05, 2),
                    parent="strategy-gen",
                    edge_label=f"Option {index + 1}",
                )

        return tree.build()

    # -------------------------------------------------------------------------
    # Attributions
    # -------------------------------------------------------------------------

    def build_attributions(
        self,
        contributions: List[AgentContribution],
        tree: Optional[DecisionTree] = None,
    ) -> List[AgentAttribution]:
        """One attribution per contribution, then one per attributed tree node."""
        attributions: List[AgentAttribution] = []
        seen = set()

        for index, contribution in enumerate(contributions):
            component_id = f"contribution-{index}"
            seen.add((contribution.agent_name, component_id))
            attributions.append(
                AgentAttribution(
                    agent_name=contribution.agent_name,
                    component_id=component_id,
                    contribution_description=contribution.contribution_type,
                    confidence=contribution.confidence,
                )
            )

        if tree is not None:
            for node in tree.nodes:
                if not node.agent_attribution:
                    continue
                key = (node.agent_attribution, node.node_id)
                if key in seen:
                    continue
                seen.add(key)
                attributions.append(
                    AgentAttribution(
                        agent_name=node.agent_attribution,
                        component_id=node.node_id,
                        contribution_description=node.label,
                        confidence=node.confidence,
                    )
                )

        return attributions

    # -------------------------------------------------------------------------
    # Uncertainty
    # -------------------------------------------------------------------------

    def build_uncertainty(
        self,
        impacts: Optional[ImpactAnalysis],
        contributions: List[AgentContribution],
    ) -> UncertaintyQuantification:
        """Prediction bands for impacts and agent-reported ranges."""
        ranges: List[PredictionRange] = []

        if impacts is not None:
            ranges.append(_band("Cost Impact", impacts.cost_impact, COST_UNCERTAINTY_BAND))
            ranges.append(
                _band("Delivery Time Impact", impacts.delivery_time_impact, DELIVERY_TIME_UNCERTAINTY_BAND)
            )
            ranges.append(_band("Inventory Impact", impacts.inventory_impact, INVENTORY_UNCERTAINTY_BAND))
            if impacts.sustainability_impact is not None:
                ranges.append(
                    _band(
                        "Carbon Footprint",
                        impacts.sustainability_impact.carbon_footprint,
                        CARBON_UNCERTAINTY_BAND,
                    )
                )

        for contribution in contributions:
            reported = contribution.uncertainty_range
            if reported is None:
                continue
            ranges.append(
                PredictionRange(
                    metric=f"{contribution.agent_name}: {contribution.contribution_type}",
                    point_estimate=_midpoint(reported.lower, reported.upper),
                    lower_bound=reported.lower,
                    upper_bound=reported.upper,
                    confidence_level=reported.confidence_level,
                )
            )

        confidences = [c.confidence for c in contributions if c.confidence is not None]
        overall = mean(confidences) if confidences else BASELINE_OVERALL_CONFIDENCE

        return UncertaintyQuantification(
            overall_confidence=overall,
            prediction_ranges=ranges,
            assumptions=list(UNCERTAINTY_ASSUMPTIONS),
            limitations_and_caveats=list(UNCERTAINTY_LIMITATIONS),
        )

    # -------------------------------------------------------------------------
    # Natural-language summary
    # -------------------------------------------------------------------------

    def build_prompt(
        self,
        scenario: Optional[Scenario],
        impacts: Optional[ImpactAnalysis],
        strategies: Optional[List[MitigationStrategy]],
        contributions: List[AgentContribution],
    ) -> str:
        """Deterministic prompt for the reasoning service."""
        lines = [
            "You are an expert supply chain analyst. Generate a clear, "
            "business-friendly summary of the following analysis:",
            "",
        ]

        if scenario is not None:
            params = scenario.parameters
            lines += [
                f"Scenario: {scenario.type.value} disruption at "
                f"{params.location.city}, {params.location.country}",
                f"Severity: {params.severity.value}",
                f"Duration: {params.duration:g} hours",
                "",
            ]

        if impacts is not None:
            lines += [
                "Predicted Impacts:",
                f"- Cost Impact: ${round(impacts.cost_impact):,}",
                f"- Delivery Time Impact: {round(impacts.delivery_time_impact)} hours",
                f"- Inventory Impact: {round(impacts.inventory_impact)} units",
            ]
            if impacts.sustainability_impact is not None:
                lines.append(
                    f"- Carbon Footprint: {round(impacts.sustainability_impact.carbon_footprint)} kg CO2"
                )
            lines.append("")

        if strategies:
            lines.append("Recommended Mitigation Strategies:")
            for index, strategy in enumerate(strategies[:MAX_STRATEGY_NODES]):
                lines.append(f"{index + 1}. {strategy.name}: {strategy.description}")
            lines.append("")

        agents = list(dict.fromkeys(c.agent_name for c in contributions))
        if agents:
            lines.append("Analysis Contributors:")
            lines += [f"- {agent}" for agent in agents]
            lines.append("")

        lines += [
            "Please provide a concise 2-3 paragraph summary in business terms that:",
            "1. Explains the key findings and their business implications",
            "2. Highlights the most critical risks and opportunities",
            "3. Recommends immediate next steps",
            "",
            "Avoid technical jargon and focus on actionable insights.",
        ]
        return "\n".join(lines)

    def rule_based_summary(
        self,
        scenario: Optional[Scenario],
        impacts: Optional[ImpactAnalysis],
        strategies: Optional[List[MitigationStrategy]],
    ) -> str:
        """Template summary used when the reasoning service is unavailable."""
        parts = []

        if scenario is not None:
            params = scenario.parameters
            parts.append(
                f"A {_humanize(params.severity.value)} severity {_humanize(scenario.type.value)} "
                f"at {params.location.city}, {params.location.country} "
                "is predicted to cause significant supply chain disruptions."
            )

        if impacts is not None:
            parts.append(
                f"The estimated cost impact is ${round(impacts.cost_impact):,}, "
                f"with delivery delays of approximately {round(impacts.delivery_time_impact)} hours."
            )
            parts.append(
                f"Inventory levels are expected to be affected by {round(impacts.inventory_impact):,} units."
            )
            if impacts.sustainability_impact is not None:
                parts.append(
                    "Environmental impact includes "
                    f"{round(impacts.sustainability_impact.carbon_footprint):,} kg of CO2 emissions."
                )

        summary = " ".join(parts)

        if strategies:
            names = ", ".join(s.name for s in strategies[:MAX_STRATEGY_NODES])
            summary += f"\n\nRecommended mitigation strategies include: {names}."

        closing = (
            "Immediate action is recommended to minimize these impacts "
            "and ensure supply chain resilience."
        )
        return f"{summary} {closing}".strip()

    async def _attempt_reasoning_summary(self, prompt: str, request_id: str) -> str:
        """
        Ask the reasoning service once.

        Raises:
            ReasoningServiceError: Any failure, including not being configured
        """
        return await self.reasoning_client.generate(prompt, request_id=request_id)

    async def summarize(
        self,
        scenario: Optional[Scenario],
        impacts: Optional[ImpactAnalysis],
        strategies: Optional[List[MitigationStrategy]],
        contributions: List[AgentContribution],
        request_id: str = "unknown",
    ) -> Tuple[str, str]:
        """
        Produce the natural-language summary.

        Returns:
            Tuple of (summary, generation_method)
        """
        prompt = self.build_prompt(scenario, impacts, strategies, contributions)

        try:
            text = await self._attempt_reasoning_summary(prompt, request_id)
            return text, GENERATION_METHOD_REASONING
        except ReasoningServiceError as e:
            reasoning_fallbacks_total.labels(reason=e.reason).inc()
            log = logger.debug if e.reason == "not_configured" else logger.warning
            log(
                "reasoning_fallback_used",
                extra={"request_id": request_id, "reason": e.reason, "error": str(e)},
            )

        return self.rule_based_summary(scenario, impacts, strategies), GENERATION_METHOD_FALLBACK
