"""
Dependency injection providers for FastAPI endpoints.

Services are stateless apart from immutable configuration, so each provider
returns a cached singleton. Tests override providers through
`app.dependency_overrides`.
"""

from functools import lru_cache

from src.services.audit_logger import AuditLogger
from src.services.explainability_service import ExplainabilityService
from src.services.explanation_builder import ExplanationBuilder
from src.services.negotiation_orchestrator import NegotiationOrchestrator
from src.services.reasoning_client import ReasoningClient


# ============================================================================
# Negotiation Services
# ============================================================================

@lru_cache()
def get_audit_logger() -> AuditLogger:
    """
    Get AuditLogger service instance.

    Returns:
        AuditLogger: Writes decision records to the structured audit log
    """
    from src.config import get_settings

    return AuditLogger(enabled=get_settings().ENABLE_AUDIT_LOGGING)


@lru_cache()
def get_negotiation_orchestrator() -> NegotiationOrchestrator:
    """
    Get NegotiationOrchestrator service instance.

    Returns:
        NegotiationOrchestrator: Scores, checks and audits negotiations
    """
    return NegotiationOrchestrator(audit_logger=get_audit_logger())


# ============================================================================
# Explanation Services
# ============================================================================

@lru_cache()
def get_reasoning_client() -> ReasoningClient:
    """
    Get ReasoningClient instance.

    Returns:
        ReasoningClient: Client for the external reasoning service
    """
    return ReasoningClient()


@lru_cache()
def get_explainability_service() -> ExplainabilityService:
    """
    Get ExplainabilityService instance.

    Returns:
        ExplainabilityService: Builds full pipeline explanations
    """
    return ExplainabilityService(ExplanationBuilder(get_reasoning_client()))
