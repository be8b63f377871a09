"""
Constants shared across the stravamcp package.

Zone percentage bands, Strava endpoints, sport mappings and defaults.
"""

# Strava API
STRAVA_API_BASE_URL = "https://www.strava.com/api/v3"
STRAVA_TOKEN_URL = "https://www.strava.com/oauth/token"
DEFAULT_TIMEOUT = 10
DEFAULT_STREAM_RESOLUTION = "high"
MAX_PER_PAGE = 100
DEFAULT_RECENT_DAYS = 30

# Credential store keys
ENV_ACCESS_TOKEN = "STRAVA_ACCESS_TOKEN"
ENV_REFRESH_TOKEN = "STRAVA_REFRESH_TOKEN"
ENV_CLIENT_ID = "STRAVA_CLIENT_ID"
ENV_CLIENT_SECRET = "STRAVA_CLIENT_SECRET"
DEFAULT_ENV_FILE = ".env"
DEFAULT_ZONES_CONFIG = "zones.config.json"

# Sports
RUNNING = "running"
CYCLING = "cycling"
SPORTS = (RUNNING, CYCLING)
DEFAULT_SPORT = RUNNING

HEARTRATE = "heartrate"
POWER = "power"

# Source documents mark the open-ended top zone with a large max value
HR_SENTINEL = 999
POWER_SENTINEL = 9999

# Seconds per sample when elapsed-time data is unusable
DEFAULT_SAMPLE_INTERVAL = 1.0

# (zone name, lower %, upper %) of max heart rate; None = no upper limit
HR_ZONE_BANDS = (
    ("Zone 1", 0.50, 0.60),
    ("Low Zone 2", 0.60, 0.65),
    ("High Zone 2", 0.65, 0.70),
    ("Zone 3", 0.70, 0.80),
    ("Zone 4", 0.80, 0.90),
    ("Zone 5", 0.90, None),
)

# (zone name, lower %, upper %) of FTP
POWER_ZONE_BANDS = (
    ("Zone 1", 0.0, 0.55),
    ("Zone 2", 0.55, 0.75),
    ("Zone 3", 0.75, 0.90),
    ("Zone 4", 0.90, 1.05),
    ("Zone 5", 1.05, 1.20),
    ("Zone 6", 1.20, None),
)

HR_ZONE_DESCRIPTIONS = {
    RUNNING: {
        "Zone 1": "Active Recovery - Easy conversational pace",
        "Low Zone 2": "Aerobic Base - Comfortable endurance pace",
        "High Zone 2": "Aerobic Base - Moderate endurance pace",
        "Zone 3": "Aerobic Threshold - Comfortably hard pace",
        "Zone 4": "Lactate Threshold - Hard sustainable pace",
        "Zone 5": "VO2 Max - Very hard to maximal effort",
    },
    CYCLING: {
        "Zone 1": "Active Recovery - Easy spinning, minimal effort",
        "Low Zone 2": "Aerobic Base - Comfortable endurance riding",
        "High Zone 2": "Aerobic Base - Moderate endurance riding",
        "Zone 3": "Aerobic Threshold - Tempo riding pace",
        "Zone 4": "Lactate Threshold - Hard sustainable cycling effort",
        "Zone 5": "VO2 Max - Very hard to maximal cycling effort",
    },
}

POWER_ZONE_DESCRIPTIONS = {
    "Zone 1": "Active Recovery - Easy spinning, minimal power output",
    "Zone 2": "Aerobic Base - Comfortable endurance power",
    "Zone 3": "Aerobic Threshold - Tempo power output",
    "Zone 4": "Lactate Threshold - Functional Threshold Power (FTP)",
    "Zone 5": "VO2 Max - Hard anaerobic power",
    "Zone 6": "Anaerobic Capacity - Maximal power output",
}

# Strava activity type -> zone sport
SPORT_MAPPING = {
    "Run": RUNNING,
    "TrailRun": RUNNING,
    "VirtualRun": RUNNING,
    "Walk": RUNNING,
    "Hike": RUNNING,
    "Ride": CYCLING,
    "VirtualRide": CYCLING,
    "EBikeRide": CYCLING,
    "MountainBikeRide": CYCLING,
    "GravelRide": CYCLING,
}

# Unit conversion
METERS_TO_MILES = 0.000621371
METERS_TO_FEET = 3.28084
FEET_PER_MILE = 5280
