"""Pure scoring/analytics constants. No UI."""
# Score bands: Excellent >= 80, Good >= 60, else Needs Improvement
# Trend = mean(first 3 scores) - mean(next 3), only with >= 6 scored tests

SCORE_EXCELLENT = 80
SCORE_GOOD = 60
TREND_WINDOW = 3
MONTHLY_WINDOW_MONTHS = 6
MONTH_LABEL_FORMAT = "%b %Y"

RECENT_TESTS_LIMIT = 5
UPCOMING_PLANS_LIMIT = 5

# (min activity, level), highest first
LEVEL_THRESHOLDS = [(20, "Expert"), (10, "Advanced"), (5, "Intermediate")]
DEFAULT_LEVEL = "Beginner"
STREAK_CAP_DAYS = 30

STATUS_PENDING = "Pending"
STATUS_COMPLETED = "Completed"
UNKNOWN_SUBJECT = "Unknown"
