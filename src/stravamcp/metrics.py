"""
Time-in-zone aggregation for activity streams.

This module turns a heart-rate or power stream (with its elapsed-time stream)
into one summary row per configured zone: time spent, share of the activity,
sample count and the average/min/max reading inside the zone.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from stravamcp.constants import DEFAULT_SAMPLE_INTERVAL, HEARTRATE
from stravamcp.zones import Zone, ZoneConfig, classify_reading, round_half_up

__all__ = [
    "ZoneSummary",
    "ZonesNotConfigured",
    "sample_interval",
    "summarize_zones",
    "aggregate_zones",
    "summarize_activity_totals",
]


@dataclass(frozen=True)
class ZoneSummary:
    """Time-in-zone statistics for a single zone."""

    zone: str
    description: str
    time_seconds: int
    time_minutes: float
    percentage: float
    sample_count: int
    average: int
    min: Optional[float]
    max: Optional[float]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "zone": self.zone,
            "description": self.description,
            "time_seconds": self.time_seconds,
            "time_minutes": self.time_minutes,
            "percentage": self.percentage,
            "sample_count": self.sample_count,
            "average": self.average,
            "min": self.min,
            "max": self.max,
        }


@dataclass(frozen=True)
class ZonesNotConfigured:
    """Result marker for a sport that has no zones to classify against."""

    sport: str
    kind: str = HEARTRATE

    @property
    def message(self) -> str:
        return f"No {self.kind} zones configured for {self.sport}"


ZoneBreakdown = Union[List[ZoneSummary], ZonesNotConfigured]


def sample_interval(readings: Sequence[Any], times: Optional[Sequence[float]]) -> float:
    """Estimate a uniform seconds-per-sample value for a stream.

    Uses the mean of successive elapsed-time differences when ``times`` lines
    up with ``readings`` and has at least two points; otherwise falls back to
    DEFAULT_SAMPLE_INTERVAL. The same value is applied to every sample.
    """
    if times is None or len(times) != len(readings) or len(times) < 2:
        return DEFAULT_SAMPLE_INTERVAL
    return float(np.mean(np.diff(np.asarray(times, dtype=float))))


def _reading_value(value: float) -> float:
    """Keep integer readings integral in the output (150.0 -> 150)."""
    return int(value) if float(value).is_integer() else float(value)


def summarize_zones(
    readings: Sequence[Any], times: Optional[Sequence[float]], zones: List[Zone]
) -> List[ZoneSummary]:
    """Bucket readings into zones and summarize each zone.

    Readings that fall outside every zone are dropped from all buckets but
    still count towards total activity time.

    Args:
        readings: Heart rate (bpm) or power (watts) samples.
        times: Elapsed seconds for each sample; may be None or mismatched.
        zones: Ordered zones to classify against.

    Returns:
        One ZoneSummary per zone, including empty zones, sorted by percentage
        descending. Zones with equal percentage keep their configured order.
    """
    interval = sample_interval(readings, times)
    total_time = len(readings) * interval

    samples = pd.DataFrame({"value": pd.Series(list(readings), dtype=float)})
    samples["zone"] = [classify_reading(value, zones) for value in samples["value"]]
    stats = samples.dropna(subset=["zone"]).groupby("zone")["value"].agg(
        ["count", "mean", "min", "max"]
    )

    rows = []
    for zone in zones:
        if zone.name in stats.index:
            zone_stats = stats.loc[zone.name]
            count = int(zone_stats["count"])
        else:
            zone_stats = None
            count = 0

        time_in_zone = count * interval
        percentage = (time_in_zone / total_time * 100) if total_time > 0 else 0.0

        rows.append(
            ZoneSummary(
                zone=zone.name,
                description=zone.description,
                time_seconds=round_half_up(time_in_zone),
                time_minutes=round_half_up(time_in_zone / 60, 1),
                percentage=round_half_up(percentage, 1),
                sample_count=count,
                average=round_half_up(zone_stats["mean"]) if count else 0,
                min=_reading_value(zone_stats["min"]) if count else None,
                max=_reading_value(zone_stats["max"]) if count else None,
            )
        )

    # sorted() is stable, so ties keep configuration order
    return sorted(rows, key=lambda row: row.percentage, reverse=True)


def aggregate_zones(
    readings: Sequence[Any],
    times: Optional[Sequence[float]],
    sport: str,
    config: ZoneConfig,
    kind: str = HEARTRATE,
) -> Optional[ZoneBreakdown]:
    """Compute the zone breakdown of a stream for a sport.

    Args:
        readings: Heart rate or power samples.
        times: Elapsed-time samples in seconds.
        sport: ``running`` or ``cycling``.
        config: Loaded zone configuration.
        kind: ``heartrate`` or ``power``.

    Returns:
        - None when there are no readings (no activity data)
        - ZonesNotConfigured when the sport has no zones of this kind
        - otherwise the sorted list of ZoneSummary rows

    Example:
        >>> rows = aggregate_zones([150, 165, 170], [0, 10, 20], "running", config)
        >>> [(r.zone, r.percentage) for r in rows]
        [('Zone 3', 66.7), ('Zone 2', 33.3), ('Zone 1', 0.0)]
    """
    if readings is None or len(readings) == 0:
        return None

    zones = config.zones_for(sport, kind)
    if not zones:
        return ZonesNotConfigured(sport=sport, kind=kind)

    return summarize_zones(readings, times, zones)


def summarize_activity_totals(activities: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
    """Aggregate a list of Strava activity summaries per activity type.

    Average heart rate is weighted by moving time and only uses activities
    that recorded heart rate.

    Returns:
        Dict with ``totals`` (all activities) and ``by_type`` (one entry per
        type, most frequent first). Distances are meters, times seconds.
    """
    if not activities:
        empty = {"count": 0, "distance": 0.0, "moving_time": 0, "elevation_gain": 0.0}
        return {"totals": dict(empty, average_heartrate=None), "by_type": []}

    frame = pd.DataFrame(
        [
            {
                "type": activity.get("sport_type") or activity.get("type") or "Unknown",
                "distance": activity.get("distance") or 0.0,
                "moving_time": activity.get("moving_time") or 0,
                "elevation_gain": activity.get("total_elevation_gain") or 0.0,
                "average_heartrate": (
                    activity.get("average_heartrate") if activity.get("has_heartrate") else None
                ),
            }
            for activity in activities
        ]
    )
    frame["average_heartrate"] = pd.to_numeric(frame["average_heartrate"], errors="coerce")

    by_type = [
        dict(type=activity_type, **_totals_row(group))
        for activity_type, group in frame.groupby("type", sort=False)
    ]
    by_type.sort(key=lambda row: row["count"], reverse=True)

    return {"totals": _totals_row(frame), "by_type": by_type}


def _totals_row(frame: pd.DataFrame) -> Dict[str, Any]:
    with_hr = frame.dropna(subset=["average_heartrate"])
    hr_time = with_hr["moving_time"].sum()
    if len(with_hr) and hr_time > 0:
        average_hr: Optional[float] = round_half_up(
            float((with_hr["average_heartrate"] * with_hr["moving_time"]).sum() / hr_time), 1
        )
    elif len(with_hr):
        average_hr = round_half_up(float(with_hr["average_heartrate"].mean()), 1)
    else:
        average_hr = None

    return {
        "count": int(len(frame)),
        "distance": float(frame["distance"].sum()),
        "moving_time": int(frame["moving_time"].sum()),
        "elevation_gain": float(frame["elevation_gain"].sum()),
        "average_heartrate": average_hr,
    }
