"""
Strava MCP - expose Strava activity data to AI assistants.

This package provides tools for:
- Accessing the Strava API with automatic token refresh
- Classifying heart rate and power readings into training zones
- Computing time-in-zone breakdowns for activities and laps
"""

from .activities import ActivityService
from .client import ResilientApiClient, StravaClient
from .credentials import CredentialStore, StravaCredentials
from .credentials import create_env_file as setup_credentials
from .metrics import ZoneSummary, ZonesNotConfigured, aggregate_zones, summarize_zones
from .zones import (
    Zone,
    ZoneConfig,
    classify,
    classify_reading,
    default_zones_config,
    derive_from_ftp,
    derive_from_max_heart_rate,
    load_zones_config,
)

__version__ = "0.1.0"
__author__ = "Strava MCP Contributors"

__all__ = [
    "ActivityService",
    "ResilientApiClient",
    "StravaClient",
    "CredentialStore",
    "StravaCredentials",
    "setup_credentials",
    "ZoneSummary",
    "ZonesNotConfigured",
    "aggregate_zones",
    "summarize_zones",
    "Zone",
    "ZoneConfig",
    "classify",
    "classify_reading",
    "default_zones_config",
    "derive_from_ftp",
    "derive_from_max_heart_rate",
    "load_zones_config",
]
