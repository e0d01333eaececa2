"""
Point values and thresholds for rule-based scoring.
"""

# ============================================
# POINTS
# ============================================

POINTS_PROPERTY_TYPE = 32
POINTS_AREA = 24
POINTS_BUDGET_HIT = 24
POINTS_BUDGET_NEAR = 12
POINTS_YIELD = 10
POINTS_TAG = 6
POINTS_READY_FOR_MEMO = 4

MAX_RULE_SCORE = 100

# Score returned when there is no mandate to compare against
BASE_RULE_SCORE = 0


# ============================================
# THRESHOLDS
# ============================================

BUDGET_NEAR_TOLERANCE = 0.15   # within 15% of the nearer bound
READY_FOR_MEMO = "READY_FOR_MEMO"
