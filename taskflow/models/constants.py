"""Constants for taskflow.

This module centralizes all magic numbers and default values used throughout the application.
"""


# Task defaults
DEFAULT_USER_PRIORITY = 5
MIN_USER_PRIORITY = 1
MAX_USER_PRIORITY = 10

# Priority score bounds
MIN_PRIORITY_SCORE = 0
MAX_PRIORITY_SCORE = 100

# Factor weights (sum to 1.0 before the effort multiplier)
WEIGHT_USER_PRIORITY = 0.4
WEIGHT_TIME_DECAY = 0.3
WEIGHT_DEADLINE_URGENCY = 0.2
WEIGHT_BUMP_PENALTY = 0.1

# Time decay: linear growth to 100 over this many days
TIME_DECAY_FULL_DAYS = 30.0

# Deadline urgency: quadratic ramp inside this window
DEADLINE_WINDOW_DAYS = 7.0

# Bump penalty: points per bump, capped
BUMP_PENALTY_PER_BUMP = 10
BUMP_PENALTY_CAP = 50

# At-risk reporting thresholds
AT_RISK_BUMP_COUNT = 3
AT_RISK_OVERDUE_DAYS = 3.0

# Text limits
MAX_TITLE_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 2000
MAX_CATEGORY_LENGTH = 50
