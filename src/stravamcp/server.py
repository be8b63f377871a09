"""
Strava MCP server.

Registers the activity tools on a FastMCP server and runs it over stdio.
Everything the tools share (settings, credential store, API client, service)
is built once in ``main()`` and passed in explicitly.

To run the server:
    $ stravamcp
"""

import logging
import sys
from typing import Any, Dict, Optional

from mcp.server.fastmcp import FastMCP

from stravamcp import __version__
from stravamcp.activities import ActivityService
from stravamcp.client import ResilientApiClient
from stravamcp.config import Settings, load_settings
from stravamcp.credentials import CredentialStore
from stravamcp.exceptions import StravaMcpError
from stravamcp.logging_config import setup_logging

__all__ = ["create_server", "build_service", "main"]

logger = logging.getLogger(__name__)

SERVER_NAME = "strava"


def build_service(settings: Settings) -> ActivityService:
    """Wire the credential store, resilient client and activity service."""
    store = CredentialStore(
        settings.credentials(), env_path=settings.env_file, timeout=settings.timeout
    )
    api = ResilientApiClient(store, timeout=settings.timeout)
    return ActivityService(api, zones_path=settings.zones_config)


def create_server(service: ActivityService) -> FastMCP:
    """Create a FastMCP server exposing ``service`` as tools."""
    mcp = FastMCP(SERVER_NAME)

    @mcp.tool()
    def get_athlete_profile() -> Dict[str, Any]:
        """Get the authenticated athlete's Strava profile."""
        return service.athlete_profile()

    @mcp.tool()
    def get_recent_activities(count: int = 10, with_heartrate: bool = False) -> Dict[str, Any]:
        """Get the most recent activities from the last 30 days.

        Args:
            count: Number of activities to retrieve (max 100)
            with_heartrate: Only list activities that recorded heart rate
        """
        return service.recent_activities(count=count, with_heartrate=with_heartrate)

    @mcp.tool()
    def get_most_recent_activity() -> Dict[str, Any]:
        """Get the athlete's most recent activity."""
        return service.most_recent_activity()

    @mcp.tool()
    def get_activities_by_date(
        start_date: str,
        end_date: Optional[str] = None,
        count: int = 30,
        aggregate: bool = False,
    ) -> Dict[str, Any]:
        """Get activities within a date range.

        Args:
            start_date: Start date in ISO format (YYYY-MM-DD)
            end_date: End date in ISO format (YYYY-MM-DD), defaults to today
            count: Maximum number of activities to retrieve
            aggregate: Include totals per activity type
        """
        return service.activities_by_date(
            start_date, end_date=end_date, count=count, aggregate=aggregate
        )

    @mcp.tool()
    def get_activity_by_id(activity_id: int) -> Dict[str, Any]:
        """Get detailed information about a specific activity.

        Args:
            activity_id: The Strava activity ID
        """
        return service.activity_by_id(activity_id)

    @mcp.tool()
    def get_activity_heart_rate_zones(
        activity_id: int, sport: Optional[str] = None
    ) -> Dict[str, Any]:
        """Get time spent in each heart rate zone for an activity.

        Args:
            activity_id: The Strava activity ID
            sport: "running" or "cycling"; inferred from the activity type if omitted
        """
        return service.heart_rate_zones(activity_id, sport=sport)

    @mcp.tool()
    def get_activity_power_zones(activity_id: int) -> Dict[str, Any]:
        """Get time spent in each cycling power zone for an activity.

        Args:
            activity_id: The Strava activity ID
        """
        return service.power_zones(activity_id)

    @mcp.tool()
    def get_activity_laps(
        activity_id: int, sport: Optional[str] = None, include_zones: bool = True
    ) -> Dict[str, Any]:
        """Get a lap-by-lap breakdown with heart rate zones per lap.

        Args:
            activity_id: The Strava activity ID
            sport: "running" or "cycling"; inferred from the activity type if omitted
            include_zones: Analyze heart rate zones for each lap
        """
        return service.lap_breakdown(activity_id, sport=sport, include_zones=include_zones)

    return mcp


def main() -> int:
    """Entry point for the ``stravamcp`` command."""
    try:
        settings = load_settings()
    except StravaMcpError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1

    setup_logging(settings.log_level)
    logger.info("Starting Strava MCP server %s", __version__)

    if not settings.access_token and not settings.refresh_token:
        logger.error(
            "No Strava tokens configured. Run stravamcp-setup or set "
            "STRAVA_ACCESS_TOKEN / STRAVA_REFRESH_TOKEN."
        )
        return 1

    service = build_service(settings)
    create_server(service).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
