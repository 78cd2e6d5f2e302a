# constants.py
# Centralized constants for the MNPS pipeline. Do not change values without bumping schema_version.

SCHEMA_VERSION = "1.0.0"

# Derived score (MNPS)
TOP_BONUS = 5.0
MULTIPLIER_CHANGE_SEASON = 2024
MULTIPLIER_CURRENT = 0.0653  # seasons >= 2024
MULTIPLIER_LEGACY = 0.082  # seasons before 2024

# Top performer cutoffs per league variant
LEAGUE_VARIANTS = {
    "standard": 6,
    "dynasty": 5,
}
DEFAULT_VARIANT = "standard"

# Season windows
FIRST_WEEK = 1
MAX_WEEK = 17
REGULAR_SEASON_END = 14
PLAYOFF_START = 15
PLAYOFF_END = 17
QUALIFIER_COUNT = 5

# Formatting
POINTS_PLACES = 2
SCORE_PLACES = 3

# Throttling / fetching defaults
DEFAULT_MIN_INTERVAL_SEC = 0.10  # ~600 rpm
DEFAULT_BATCH_SIZE = 4
REQUEST_TIMEOUT_SEC = 20
