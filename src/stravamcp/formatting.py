"""Human-readable rendering of activities and zone breakdowns."""

from typing import Any, Dict, List, Optional

from dateutil import parser as date_parser

from stravamcp.constants import FEET_PER_MILE, METERS_TO_FEET, METERS_TO_MILES
from stravamcp.metrics import ZoneSummary


def meters_to_miles(meters: float) -> float:
    return meters * METERS_TO_MILES


def meters_to_feet(meters: float) -> float:
    return meters * METERS_TO_FEET


def format_distance(meters: Optional[float]) -> str:
    """Format a distance in miles, or feet below a tenth of a mile."""
    miles = meters_to_miles(meters or 0)
    if miles < 0.1:
        return f"{round(miles * FEET_PER_MILE)} ft"
    return f"{miles:.2f} mi"


def format_elevation(meters: Optional[float]) -> str:
    return f"{round(meters_to_feet(meters or 0))} ft"


def format_duration(seconds: Optional[float]) -> str:
    """Format seconds as ``1h 02m 03s`` / ``2m 03s`` / ``45s``."""
    seconds = int(seconds or 0)
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}h {minutes:02d}m {secs:02d}s"
    if minutes:
        return f"{minutes}m {secs:02d}s"
    return f"{secs}s"


def format_date(value: Optional[str]) -> str:
    """Render an ISO timestamp as YYYY-MM-DD."""
    if not value:
        return "unknown date"
    return date_parser.isoparse(value).date().isoformat()


def activity_line(activity: Dict[str, Any]) -> str:
    """One-line activity summary used in listings."""
    line = (
        f"🏃 {activity.get('name', 'Untitled')} (ID: {activity.get('id')}) - "
        f"{format_distance(activity.get('distance'))}"
    )
    if activity.get("total_elevation_gain"):
        line += f", {format_elevation(activity['total_elevation_gain'])} elevation gain"
    line += f" on {format_date(activity.get('start_date_local') or activity.get('start_date'))}"
    if activity.get("has_heartrate") and activity.get("average_heartrate"):
        line += f" (avg HR {round(activity['average_heartrate'])} bpm)"
    return line


def activity_details(activity: Dict[str, Any]) -> str:
    details = [
        f"🏃 {activity.get('name', 'Untitled')}",
        f"Type: {activity.get('sport_type') or activity.get('type', 'Unknown')}",
        f"Date: {format_date(activity.get('start_date_local') or activity.get('start_date'))}",
        f"Distance: {format_distance(activity.get('distance'))}",
        f"Moving Time: {format_duration(activity.get('moving_time'))}",
    ]
    if activity.get("total_elevation_gain"):
        details.append(f"Elevation Gain: {format_elevation(activity['total_elevation_gain'])}")
    if activity.get("has_heartrate"):
        details.append(f"Average HR: {activity.get('average_heartrate')} bpm")
        details.append(f"Max HR: {activity.get('max_heartrate')} bpm")
    if activity.get("average_watts"):
        details.append(f"Average Power: {activity['average_watts']} W")
    return "\n".join(details)


def zone_table(rows: List[ZoneSummary], unit: str = "bpm") -> str:
    """Render zone rows as aligned text lines."""
    lines = []
    for row in rows:
        line = (
            f"{row.zone:<12} {row.percentage:5.1f}%  {format_duration(row.time_seconds):>11}"
            f"  {row.sample_count:>5} samples"
        )
        if row.sample_count:
            line += f"  avg {row.average} {unit} ({row.min}-{row.max})"
        lines.append(line)
    return "\n".join(lines)
