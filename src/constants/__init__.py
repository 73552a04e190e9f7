"""
Shared constants for negotiation and explanation.

These values are part of the engine's observable contract: downstream
consumers rely on the bands, defaults, and boilerplate lists below.
"""

# =============================================================================
# Negotiation
# =============================================================================

# Number of strategies returned by a successful negotiation
BALANCED_STRATEGY_COUNT = 3

# Score assigned to every candidate when a metric has no spread across the pool
NO_SPREAD_NORMALIZED_SCORE = 0.5

# Decimal places used when comparing scores, so float noise cannot reorder ties
SCORE_COMPARISON_PRECISION = 12

NEGOTIATION_METHOD = "multi-objective-weighted"

AUDIT_EVENT_NEGOTIATION_DECISION = "negotiation_decision"


# =============================================================================
# Uncertainty Bands
# =============================================================================

# metric -> (relative half-width, confidence level)
COST_UNCERTAINTY_BAND = (0.20, 0.90)
DELIVERY_TIME_UNCERTAINTY_BAND = (0.15, 0.85)
INVENTORY_UNCERTAINTY_BAND = (0.25, 0.80)
CARBON_UNCERTAINTY_BAND = (0.30, 0.75)

# Used when no agent contribution reports a confidence
BASELINE_OVERALL_CONFIDENCE = 0.80

UNCERTAINTY_ASSUMPTIONS = (
    "Historical patterns remain relevant for future predictions",
    "Supply chain network topology remains stable during disruption",
    "External market conditions remain within normal ranges",
    "Mitigation strategies can be implemented as planned",
)

UNCERTAINTY_LIMITATIONS = (
    "Predictions based on Monte Carlo simulation with 1000 iterations",
    "Actual outcomes may vary due to unforeseen circumstances",
    "Confidence intervals assume normal distribution of uncertainties",
    "Long-term impacts beyond 90 days have higher uncertainty",
)


# =============================================================================
# Explanation Generation
# =============================================================================

GENERATION_METHOD_REASONING = "reasoning-service"
GENERATION_METHOD_FALLBACK = "rule-based-fallback"
GENERATION_METHOD_STRUCTURED = "structured"

# A summary must be longer than this to count towards completeness
MIN_SUMMARY_LENGTH = 50

# Maximum strategy outcome nodes in the decision tree
MAX_STRATEGY_NODES = 3

COMPLETENESS_COMPONENTS = 4
