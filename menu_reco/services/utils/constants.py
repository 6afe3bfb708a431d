"""
Shared constants for services
"""

# Order statuses that never count as demand
ORDER_STATUS_CANCELLED = 'cancelled'
ORDER_STATUS_REFUNDED = 'refunded'
EXCLUDED_ORDER_STATUSES = (ORDER_STATUS_CANCELLED, ORDER_STATUS_REFUNDED)

# Bandit feedback actions
FEEDBACK_IMPRESSION = 'impression'
FEEDBACK_CONVERSION = 'conversion'
FEEDBACK_ACTIONS = (FEEDBACK_IMPRESSION, FEEDBACK_CONVERSION)
