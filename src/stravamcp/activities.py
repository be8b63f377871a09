"""
Activity operations behind the MCP tools.

ActivityService combines the resilient API client, zone configuration and
zone aggregation. Every method returns a plain dict with a ``status`` field,
a human-readable ``summary`` and the structured data. Expected gaps in the
data (no heart rate stream, no laps, no zones configured) are reported as
statuses rather than raised.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from dateutil import parser as date_parser

from stravamcp import formatting
from stravamcp.client import ResilientApiClient
from stravamcp.constants import (
    CYCLING,
    DEFAULT_RECENT_DAYS,
    DEFAULT_ZONES_CONFIG,
    HEARTRATE,
    MAX_PER_PAGE,
    POWER,
    SPORT_MAPPING,
    SPORTS,
)
from stravamcp.exceptions import ValidationError
from stravamcp.metrics import (
    ZonesNotConfigured,
    aggregate_zones,
    summarize_activity_totals,
)
from stravamcp.zones import ZoneConfig, load_zones_config

__all__ = [
    "STATUS_OK",
    "STATUS_NO_ACTIVITIES",
    "STATUS_NO_HEARTRATE",
    "STATUS_NO_POWER",
    "STATUS_NO_LAPS",
    "STATUS_ZONES_NOT_CONFIGURED",
    "ActivityService",
    "parse_date",
    "sport_for_activity",
    "stream_data",
]

logger = logging.getLogger(__name__)

STATUS_OK = "ok"
STATUS_NO_ACTIVITIES = "no_activities"
STATUS_NO_HEARTRATE = "no_heartrate_data"
STATUS_NO_POWER = "no_power_data"
STATUS_NO_LAPS = "no_laps"
STATUS_ZONES_NOT_CONFIGURED = "zones_not_configured"

ACTIVITY_FIELDS = (
    "id",
    "name",
    "type",
    "sport_type",
    "start_date",
    "start_date_local",
    "distance",
    "moving_time",
    "elapsed_time",
    "total_elevation_gain",
    "has_heartrate",
    "average_heartrate",
    "max_heartrate",
    "average_watts",
)

LAP_FIELDS = (
    "lap_index",
    "name",
    "distance",
    "elapsed_time",
    "moving_time",
    "average_speed",
    "average_heartrate",
    "max_heartrate",
    "average_watts",
    "start_index",
    "end_index",
)


def parse_date(value: str, end_of_day: bool = False) -> datetime:
    """Parse an ISO date or datetime; naive values are taken as UTC.

    Args:
        value: ``YYYY-MM-DD`` or a full ISO 8601 timestamp.
        end_of_day: For a bare date, return the start of the following day so
            the whole day is included in a range.

    Raises:
        ValidationError: If the value is not a valid ISO date.
    """
    try:
        parsed = date_parser.isoparse(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid date {value!r}. Please use YYYY-MM-DD.") from e

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    if end_of_day and len(value.strip()) == 10:
        parsed += timedelta(days=1)
    return parsed


def sport_for_activity(activity: Dict[str, Any], config: ZoneConfig) -> str:
    """Map a Strava activity type onto a zone sport, else the default sport."""
    for key in ("sport_type", "type"):
        sport = SPORT_MAPPING.get(activity.get(key) or "")
        if sport:
            return sport
    return config.default_sport


def stream_data(streams: Union[Dict[str, Any], List[Dict[str, Any]], None], key: str) -> List[Any]:
    """Extract one stream's samples from a keyed or list-shaped streams response."""
    if isinstance(streams, dict):
        entry = streams.get(key)
        return list(entry.get("data", [])) if entry else []
    for entry in streams or []:
        if entry.get("type") == key:
            return list(entry.get("data", []))
    return []


def _activity_fields(activity: Dict[str, Any]) -> Dict[str, Any]:
    return {name: activity.get(name) for name in ACTIVITY_FIELDS if name in activity}


def _start_date(activity: Dict[str, Any]) -> str:
    return activity.get("start_date") or ""


class ActivityService:
    """Named activity operations for the tool surface.

    Args:
        api: Resilient Strava client shared by the process.
        zones_path: Zones document, re-read for every analysis request.
        zones_loader: Loader used for the zones document.
        clock: Returns the current UTC time.
    """

    def __init__(
        self,
        api: ResilientApiClient,
        zones_path: str = DEFAULT_ZONES_CONFIG,
        zones_loader: Callable[[str], ZoneConfig] = load_zones_config,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.api = api
        self.zones_path = zones_path
        self._zones_loader = zones_loader
        self._clock = clock

    def load_zones(self) -> ZoneConfig:
        return self._zones_loader(self.zones_path)

    def athlete_profile(self) -> Dict[str, Any]:
        athlete = self.api.get_athlete()
        name = f"{athlete.get('firstname', '')} {athlete.get('lastname', '')}".strip()
        location = ", ".join(
            part for part in (athlete.get("city"), athlete.get("country")) if part
        )
        summary = f"👤 {name or 'Unknown athlete'} (ID: {athlete.get('id')})"
        if location:
            summary += f"\nLocation: {location}"
        if athlete.get("ftp"):
            summary += f"\nFTP: {athlete['ftp']} W"
        return {"status": STATUS_OK, "summary": summary, "athlete": athlete}

    def recent_activities(
        self, count: int = 10, days: int = DEFAULT_RECENT_DAYS, with_heartrate: bool = False
    ) -> Dict[str, Any]:
        """Most recent activities from the last ``days`` days, newest first.

        With ``with_heartrate`` only activities that recorded heart rate are
        listed; ``count`` still bounds the activities fetched.
        """
        count = max(1, min(count, MAX_PER_PAGE))
        after = self._clock() - timedelta(days=days)
        activities = [
            activity
            for activity in self.api.list_activities(page=1, per_page=count)
            if _start_date(activity) and parse_date(_start_date(activity)) >= after
        ]
        if with_heartrate:
            activities = [activity for activity in activities if activity.get("has_heartrate")]
            empty_message = f"No activities with heart rate data in the last {days} days."
        else:
            empty_message = f"No activities in the last {days} days."
        return self._activity_listing(activities, empty_message=empty_message)

    def most_recent_activity(self) -> Dict[str, Any]:
        activities = self.api.list_activities(page=1, per_page=1)
        if not activities:
            return {
                "status": STATUS_NO_ACTIVITIES,
                "summary": "No activities found.",
                "activity": None,
            }
        activity = activities[0]
        return {
            "status": STATUS_OK,
            "summary": formatting.activity_details(activity),
            "activity": _activity_fields(activity),
        }

    def activities_by_date(
        self,
        start_date: str,
        end_date: Optional[str] = None,
        count: int = 30,
        aggregate: bool = False,
    ) -> Dict[str, Any]:
        """Activities within a date range, optionally with per-type totals.

        Args:
            start_date: Inclusive start, ``YYYY-MM-DD`` or ISO timestamp.
            end_date: Inclusive end date; defaults to now.
            count: Maximum number of activities (pages are fetched as needed).
            aggregate: Add totals per activity type.
        """
        start = parse_date(start_date)
        end = parse_date(end_date, end_of_day=True) if end_date else self._clock()
        if end <= start:
            raise ValidationError("end_date must be after start_date")

        activities = list(
            self.api.iter_activities(
                after=int(start.timestamp()),
                before=int(end.timestamp()),
                limit=max(1, count),
            )
        )
        result = self._activity_listing(
            activities,
            empty_message=f"No activities between {start.date()} and {end.date()}.",
        )
        result["start_date"] = start.isoformat()
        result["end_date"] = end.isoformat()

        if aggregate:
            totals = summarize_activity_totals(activities)
            result["aggregate"] = totals
            if activities:
                result["summary"] += "\n\n" + self._totals_text(totals)
        return result

    def activity_by_id(self, activity_id: int) -> Dict[str, Any]:
        activity = self.api.get_activity(activity_id)
        return {
            "status": STATUS_OK,
            "summary": formatting.activity_details(activity),
            "activity": _activity_fields(activity),
        }

    def heart_rate_zones(self, activity_id: int, sport: Optional[str] = None) -> Dict[str, Any]:
        """Time in each heart-rate zone for one activity."""
        activity = self.api.get_activity(activity_id)
        base = {"activity_id": activity_id, "activity_name": activity.get("name")}
        if not activity.get("has_heartrate"):
            return dict(
                base,
                status=STATUS_NO_HEARTRATE,
                summary="❌ This activity does not have heart rate data",
            )

        config = self.load_zones()
        sport = self._resolve_sport(sport, activity, config)
        streams = self.api.get_activity_streams(activity_id, ["heartrate", "time"])
        breakdown = aggregate_zones(
            stream_data(streams, "heartrate"), stream_data(streams, "time"), sport, config
        )
        return self._zone_result(base, activity, sport, breakdown, HEARTRATE)

    def power_zones(self, activity_id: int) -> Dict[str, Any]:
        """Time in each cycling power zone for one activity."""
        activity = self.api.get_activity(activity_id)
        base = {"activity_id": activity_id, "activity_name": activity.get("name")}

        config = self.load_zones()
        streams = self.api.get_activity_streams(activity_id, ["watts", "time"])
        breakdown = aggregate_zones(
            stream_data(streams, "watts"), stream_data(streams, "time"), CYCLING, config, POWER
        )
        return self._zone_result(base, activity, CYCLING, breakdown, POWER)

    def lap_breakdown(
        self, activity_id: int, sport: Optional[str] = None, include_zones: bool = True
    ) -> Dict[str, Any]:
        """Per-lap summary with a heart-rate zone breakdown for each lap.

        A lap's zones are computed over the stream slice
        ``start_index..end_index`` (inclusive) of the activity streams.
        """
        activity = self.api.get_activity(activity_id)
        base = {"activity_id": activity_id, "activity_name": activity.get("name")}

        laps = self.api.get_activity_laps(activity_id)
        if not laps:
            return dict(base, status=STATUS_NO_LAPS, summary="This activity has no laps.", laps=[])

        config = self.load_zones()
        sport = self._resolve_sport(sport, activity, config)

        heartrate: List[Any] = []
        times: List[Any] = []
        if include_zones and activity.get("has_heartrate"):
            streams = self.api.get_activity_streams(activity_id, ["heartrate", "time"])
            heartrate = stream_data(streams, "heartrate")
            times = stream_data(streams, "time")

        lap_rows = []
        lines = [f"🏁 {activity.get('name', 'Untitled')}: {len(laps)} laps ({sport} zones)"]
        for position, lap in enumerate(laps, start=1):
            row = {name: lap.get(name) for name in LAP_FIELDS if name in lap}
            line = (
                f"Lap {lap.get('lap_index', position)}: "
                f"{formatting.format_distance(lap.get('distance'))} in "
                f"{formatting.format_duration(lap.get('moving_time') or lap.get('elapsed_time'))}"
            )
            if lap.get("average_heartrate"):
                line += f", avg HR {round(lap['average_heartrate'])} bpm"

            if heartrate:
                start = int(lap.get("start_index") or 0)
                end = lap.get("end_index")
                end = len(heartrate) - 1 if end is None else int(end)
                breakdown = aggregate_zones(
                    heartrate[start : end + 1], times[start : end + 1], sport, config
                )
                row["zones"], row["zones_status"] = self._breakdown_payload(breakdown, HEARTRATE)
                if row["zones_status"] == STATUS_OK and row["zones"]:
                    top = row["zones"][0]
                    line += f" - mostly {top['zone']} ({top['percentage']}%)"
            lap_rows.append(row)
            lines.append(line)

        return dict(base, status=STATUS_OK, sport=sport, summary="\n".join(lines), laps=lap_rows)

    def _resolve_sport(
        self, sport: Optional[str], activity: Dict[str, Any], config: ZoneConfig
    ) -> str:
        if sport is None:
            return sport_for_activity(activity, config)
        sport = sport.lower()
        if sport not in SPORTS:
            raise ValidationError(f"Unknown sport {sport!r}; expected one of {', '.join(SPORTS)}")
        return sport

    @staticmethod
    def _breakdown_payload(breakdown, kind: str):
        if breakdown is None:
            return [], STATUS_NO_POWER if kind == POWER else STATUS_NO_HEARTRATE
        if isinstance(breakdown, ZonesNotConfigured):
            return [], STATUS_ZONES_NOT_CONFIGURED
        return [row.to_dict() for row in breakdown], STATUS_OK

    def _zone_result(
        self,
        base: Dict[str, Any],
        activity: Dict[str, Any],
        sport: str,
        breakdown,
        kind: str,
    ) -> Dict[str, Any]:
        zones, status = self._breakdown_payload(breakdown, kind)
        result = dict(base, status=status, sport=sport, kind=kind, zones=zones)

        if status == STATUS_NO_HEARTRATE:
            result["summary"] = "❌ This activity does not have heart rate data"
        elif status == STATUS_NO_POWER:
            result["summary"] = "❌ This activity does not have power data"
        elif status == STATUS_ZONES_NOT_CONFIGURED:
            result["summary"] = f"⚠️ {breakdown.message}. Add them to the zones config."
        else:
            unit = "W" if kind == POWER else "bpm"
            title = "Power" if kind == POWER else "Heart rate"
            result["summary"] = (
                f"{'⚡' if kind == POWER else '❤️'} {title} zones for "
                f"{activity.get('name', 'Untitled')} ({sport})\n"
                + formatting.zone_table(breakdown, unit=unit)
            )
        return result

    def _activity_listing(
        self, activities: Sequence[Dict[str, Any]], empty_message: str
    ) -> Dict[str, Any]:
        ordered = sorted(activities, key=_start_date, reverse=True)
        if not ordered:
            return {
                "status": STATUS_NO_ACTIVITIES,
                "summary": empty_message,
                "count": 0,
                "activities": [],
            }
        return {
            "status": STATUS_OK,
            "summary": "\n".join(formatting.activity_line(a) for a in ordered),
            "count": len(ordered),
            "activities": [_activity_fields(a) for a in ordered],
        }

    @staticmethod
    def _totals_text(totals: Dict[str, Any]) -> str:
        lines = ["📊 Totals:"]
        for row in [dict(totals["totals"], type="All")] + totals["by_type"]:
            line = (
                f"{row['type']}: {row['count']} activities, "
                f"{formatting.format_distance(row['distance'])}, "
                f"{formatting.format_duration(row['moving_time'])}, "
                f"{formatting.format_elevation(row['elevation_gain'])} elevation gain"
            )
            if row["average_heartrate"] is not None:
                line += f", avg HR {row['average_heartrate']} bpm"
            lines.append(line)
        return "\n".join(lines)
