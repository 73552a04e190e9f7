"""
Business-level metrics for negotiation and explanation.

Tracks domain KPIs beyond technical HTTP metrics.
"""

from prometheus_client import Counter, Histogram


negotiations_total = Counter(
    'negotiation_engine_negotiations_total',
    'Total negotiations performed',
    ['outcome']  # success, escalated
)

negotiation_candidates = Histogram(
    'negotiation_engine_candidate_pool_size',
    'Distribution of deduplicated candidate pool sizes',
    buckets=[3, 5, 10, 20, 50, 100, 250, 500]
)

audit_write_failures_total = Counter(
    'negotiation_engine_audit_write_failures_total',
    'Audit records that could not be written to the sink'
)

explanations_total = Counter(
    'negotiation_engine_explanations_total',
    'Total explanations generated',
    ['generation_method']  # reasoning-service, rule-based-fallback, structured
)

reasoning_fallbacks_total = Counter(
    'negotiation_engine_reasoning_fallbacks_total',
    'Summaries produced by the rule-based fallback',
    ['reason']  # not_configured, timeout, http_error, transport_error, invalid_response
)

explanation_completeness = Histogram(
    'negotiation_engine_explanation_completeness',
    'Completeness score of generated explanations',
    buckets=[0.25, 0.5, 0.75, 1.0]
)
