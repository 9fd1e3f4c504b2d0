"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from datetime import time

EARTH_RADIUS_METERS = 6_371_000
DEFAULT_RADIUS_METERS = 500
DEFAULT_LATENESS_CUTOFF = time(8, 5)
DEFAULT_LATE_FINE_MINOR = 50_000
DEFAULT_HISTORY_LIMIT = 30
DEFAULT_QUEUE_LIMIT = 200
MINOR_UNITS_PER_MAJOR = 100
MAX_DAYS_IN_MONTH = 31
