"""
Core Constants

Centralized configuration values for the application.
"""

# Pagination defaults
PAGINATION = {
    "default_limit": 20,
    "max_limit": 100,
}

# Hierarchy traversal guard (upline chains deeper than this are cut off)
MAX_HIERARCHY_DEPTH = 20

# Standardized statuses for deals
STANDARDIZED_STATUSES = [
    {
        "value": "active",
        "label": "Active",
        "impact": "positive",
        "description": "Policy is active and in force",
    },
    {
        "value": "pending",
        "label": "Pending",
        "impact": "neutral",
        "description": "Policy is pending approval or processing",
    },
    {
        "value": "cancelled",
        "label": "Cancelled",
        "impact": "negative",
        "description": "Policy was cancelled by request",
    },
    {
        "value": "lapsed",
        "label": "Lapsed",
        "impact": "negative",
        "description": "Policy lapsed due to non-payment",
    },
    {
        "value": "terminated",
        "label": "Terminated",
        "impact": "negative",
        "description": "Policy was terminated",
    },
]

# Billing cycles
BILLING_CYCLES = ["monthly", "quarterly", "semi-annually", "annually"]

# SSN benefit billing pattern: week of the month and weekday
BILLING_WEEKS_OF_MONTH = ["1st", "2nd", "3rd", "4th"]
BILLING_WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]

# Client statuses that mean an invitation is still outstanding
PENDING_CLIENT_STATUSES = ["pre-invite", "invited"]
