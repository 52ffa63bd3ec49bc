"""Constants and defaults.

Note: Keep thresholds here to avoid magic numbers spread across code.
"""

EARTH_RADIUS_METERS = 6_371_000.0

DEFAULT_FRAUD_RADIUS_METERS = 30.0
DEFAULT_MAX_DISTANCE_METERS = 20.0
DEFAULT_TOKEN_VALIDITY_HOURS = 24

MIN_SESSION_MINUTES = 60
MAX_SESSION_MINUTES = 240
EARLIEST_START_HOUR = 8
LATEST_END_HOUR = 20

DEFAULT_LIST_LIMIT = 500
DIRECTION_RECIPIENT_ID = "direction"
