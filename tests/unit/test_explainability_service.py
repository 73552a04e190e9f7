"""
Unit tests for ExplainabilityService and completeness scoring.
"""

import pytest

from src.constants import GENERATION_METHOD_FALLBACK, GENERATION_METHOD_STRUCTURED
from src.models.requests import ExplanationRequest
from src.models.responses import AgentAttribution
from src.services.explainability_service import calculate_completeness


def _request(**kwargs) -> ExplanationRequest:
    return ExplanationRequest(scenario_id="scn-1", **kwargs)


class TestCompleteness:
    """Tests for calculate_completeness."""

    def test_nothing_present(self):
        assert calculate_completeness(None, None, [], None) == 0.0

    def test_short_summary_does_not_count(self):
        assert calculate_completeness("Too short.", None, [], None) == 0.0

    def test_long_summary_counts(self):
        assert calculate_completeness("x" * 51, None, [], None) == 0.25

    def test_attributions_count(self):
        attribution = AgentAttribution(
            agent_name="Info Agent",
            component_id="contribution-0",
            contribution_description="data_aggregation",
        )
        assert calculate_completeness(None, None, [attribution], None) == 0.25


class TestExplain:
    """Tests for ExplainabilityService.explain."""

    @pytest.mark.asyncio
    async def test_full_explanation(
        self,
        explainability_service,
        sample_scenario,
        sample_impacts,
        example_strategies,
        sample_contributions,
    ):
        response = await explainability_service.explain(
            _request(
                scenario=sample_scenario,
                impacts=sample_impacts,
                strategies=example_strategies,
                agent_contributions=sample_contributions,
            ),
            request_id="corr-1",
        )

        assert response.scenario_id == "scn-1"
        assert response.metadata.generation_method == GENERATION_METHOD_FALLBACK
        assert response.metadata.completeness == 1.0
        assert response.metadata.request_id == "corr-1"
        assert response.decision_tree is not None
        assert response.uncertainty_quantification is not None
        assert len(response.natural_language_summary) > 50

    @pytest.mark.asyncio
    async def test_structured_when_summary_not_requested(
        self, explainability_service, sample_impacts, sample_contributions
    ):
        response = await explainability_service.explain(
            _request(
                impacts=sample_impacts,
                agent_contributions=sample_contributions,
                include_natural_language=False,
            )
        )

        assert response.natural_language_summary is None
        assert response.metadata.generation_method == GENERATION_METHOD_STRUCTURED
        assert response.metadata.completeness == 0.75

    @pytest.mark.asyncio
    async def test_only_attributions(self, explainability_service, sample_contributions):
        response = await explainability_service.explain(
            _request(
                agent_contributions=sample_contributions,
                include_natural_language=False,
                include_decision_tree=False,
                include_uncertainty=False,
            )
        )

        assert response.decision_tree is None
        assert response.uncertainty_quantification is None
        assert len(response.agent_attributions) == 3
        assert response.metadata.completeness == 0.25

    @pytest.mark.asyncio
    async def test_empty_contributions_rejected(self, explainability_service):
        request = ExplanationRequest.model_construct(
            scenario_id="scn-1",
            scenario=None,
            impacts=None,
            strategies=None,
            agent_contributions=[],
            include_natural_language=True,
            include_decision_tree=True,
            include_uncertainty=True,
        )

        with pytest.raises(ValueError):
            await explainability_service.explain(request)

    @pytest.mark.asyncio
    async def test_inputs_not_mutated(
        self, explainability_service, sample_impacts, example_strategies, sample_contributions
    ):
        request = _request(
            impacts=sample_impacts,
            strategies=example_strategies,
            agent_contributions=sample_contributions,
        )
        before = request.model_dump()

        await explainability_service.explain(request)

        assert request.model_dump() == before
