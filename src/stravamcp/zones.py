"""
Training zone configuration and classification.

Zones are loaded from a JSON document (``zones.config.json``) that lists, per
sport, an ordered mapping of zone name to ``{min, max, description}``. Each
zone is a half-open interval ``[min, max)``; the top zone has no upper limit.
Source documents mark that open end with a large sentinel max (999 bpm, 9999
watts), which is converted to ``None`` on load.

Classification is a first-match scan in configured order, so the order of
zones in the document matters.
"""

import json
import logging
import math
from decimal import ROUND_HALF_UP, Decimal
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from stravamcp.constants import (
    CYCLING,
    DEFAULT_SPORT,
    DEFAULT_ZONES_CONFIG,
    HEARTRATE,
    HR_SENTINEL,
    HR_ZONE_BANDS,
    HR_ZONE_DESCRIPTIONS,
    POWER,
    POWER_SENTINEL,
    POWER_ZONE_BANDS,
    POWER_ZONE_DESCRIPTIONS,
    RUNNING,
    SPORTS,
)

__all__ = [
    "Zone",
    "ZoneConfig",
    "round_half_up",
    "load_zones_config",
    "zones_config_from_dict",
    "default_zones_config",
    "derive_from_max_heart_rate",
    "derive_from_ftp",
    "apply_auto_derivation",
    "check_zone_layout",
    "classify_reading",
    "classify",
]

logger = logging.getLogger(__name__)

Number = Union[int, float]


def round_half_up(value: float, ndigits: int = 0) -> Number:
    """Round with halves away from zero for positive values (2.5 -> 3).

    Python's built-in ``round`` uses banker's rounding, which would put
    boundaries such as ``0.65 * 190 = 123.5`` on the even neighbour.
    Rounding goes through the shortest decimal repr of the float, so
    ``0.15`` rounds to ``0.2`` at one digit.
    """
    quantum = Decimal(1).scaleb(-ndigits)
    rounded = Decimal(str(float(value))).quantize(quantum, rounding=ROUND_HALF_UP)
    return int(rounded) if ndigits == 0 else float(rounded)


@dataclass
class Zone:
    """A named half-open interval over a heart-rate or power reading."""

    name: str
    min: float
    max: Optional[float]
    description: str = ""
    unit: Optional[str] = None

    def contains(self, value: float) -> bool:
        """Check whether ``value`` falls in ``[min, max)``."""
        return value >= self.min and (self.max is None or value < self.max)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "name": self.name,
            "min": self.min,
            "max": self.max,
            "description": self.description,
        }
        if self.unit:
            data["unit"] = self.unit
        return data


@dataclass
class ZoneConfig:
    """Per-sport heart-rate zones, cycling power zones and derivation settings."""

    sports: Dict[str, List[Zone]] = field(default_factory=dict)
    power_zones: Dict[str, List[Zone]] = field(default_factory=dict)
    default_sport: str = DEFAULT_SPORT
    auto_calculate: bool = False
    max_heart_rate: Dict[str, int] = field(default_factory=dict)
    resting_heart_rate: Dict[str, int] = field(default_factory=dict)
    auto_calculate_power: bool = False
    ftp: float = 0

    def zones_for(self, sport: str, kind: str = HEARTRATE) -> List[Zone]:
        """Return the ordered zones for a sport, or an empty list."""
        source = self.power_zones if kind == POWER else self.sports
        return source.get(sport, [])


def _parse_zones(raw: Dict[str, Any], sentinel: int, unit: Optional[str] = None) -> List[Zone]:
    zones = []
    for name, bounds in raw.items():
        upper = bounds.get("max")
        upper = None if upper is None or float(upper) >= sentinel else float(upper)
        zones.append(
            Zone(
                name=name,
                min=float(bounds.get("min", 0)),
                max=upper,
                description=bounds.get("description", ""),
                unit=bounds.get("unit", unit),
            )
        )
    return zones


def zones_config_from_dict(data: Dict[str, Any]) -> ZoneConfig:
    """Build a ZoneConfig from the parsed JSON document.

    Raises:
        ValueError, TypeError, AttributeError: If the document is malformed.
    """
    sports = {
        sport: _parse_zones(zones, HR_SENTINEL)
        for sport, zones in (data.get("sports") or {}).items()
    }
    power_zones = {
        sport: _parse_zones(zones, POWER_SENTINEL, unit="watts")
        for sport, zones in (data.get("powerZones") or {}).items()
    }

    metadata = data.get("metadata") or {}
    user_settings = metadata.get("userSettings") or {}
    power_settings = (data.get("powerSettings") or {}).get(CYCLING) or {}

    return ZoneConfig(
        sports=sports,
        power_zones=power_zones,
        default_sport=metadata.get("defaultSport", DEFAULT_SPORT),
        auto_calculate=bool(metadata.get("autoCalculate", False)),
        max_heart_rate={
            sport: int(settings.get("maxHeartRate", 0) or 0)
            for sport, settings in user_settings.items()
        },
        resting_heart_rate={
            sport: int(settings.get("restingHeartRate", 0) or 0)
            for sport, settings in user_settings.items()
        },
        auto_calculate_power=bool(power_settings.get("autoCalculate", False)),
        ftp=float(power_settings.get("ftp", 0) or 0),
    )


def default_zones_config() -> ZoneConfig:
    """Return the fallback configuration with every boundary zeroed.

    With ``[0, 0)`` intervals no reading is ever classified.
    """
    sports = {
        sport: [
            Zone(name=name, min=0, max=0, description=description)
            for name, description in HR_ZONE_DESCRIPTIONS[sport].items()
        ]
        for sport in SPORTS
    }
    power_zones = {
        CYCLING: [
            Zone(name=name, min=0, max=0, description=description, unit="watts")
            for name, description in POWER_ZONE_DESCRIPTIONS.items()
        ]
    }
    return ZoneConfig(sports=sports, power_zones=power_zones)


def derive_from_max_heart_rate(config: ZoneConfig, sport: str, max_hr: float) -> None:
    """Overwrite a sport's heart-rate zones with percentage bands of max HR.

    Zone 1 [50-60%), Low Zone 2 [60-65%), High Zone 2 [65-70%),
    Zone 3 [70-80%), Zone 4 [80-90%), Zone 5 [90%-open).

    Descriptions of zones with a matching name are kept.
    """
    existing = {zone.name: zone for zone in config.sports.get(sport, [])}
    descriptions = HR_ZONE_DESCRIPTIONS.get(sport, HR_ZONE_DESCRIPTIONS[RUNNING])

    zones = []
    for name, lower, upper in HR_ZONE_BANDS:
        previous = existing.get(name)
        zones.append(
            Zone(
                name=name,
                min=round_half_up(max_hr * lower),
                max=None if upper is None else round_half_up(max_hr * upper),
                description=previous.description if previous else descriptions[name],
                unit=previous.unit if previous else None,
            )
        )
    config.sports[sport] = zones


def derive_from_ftp(config: ZoneConfig, ftp: float) -> None:
    """Overwrite cycling power zones with percentage bands of FTP.

    Zone 1 [0-55%), Zone 2 [55-75%), Zone 3 [75-90%), Zone 4 [90-105%),
    Zone 5 [105-120%), Zone 6 [120%-open).
    """
    existing = {zone.name: zone for zone in config.power_zones.get(CYCLING, [])}

    zones = []
    for name, lower, upper in POWER_ZONE_BANDS:
        previous = existing.get(name)
        zones.append(
            Zone(
                name=name,
                min=round_half_up(ftp * lower),
                max=None if upper is None else round_half_up(ftp * upper),
                description=previous.description if previous else POWER_ZONE_DESCRIPTIONS[name],
                unit="watts",
            )
        )
    config.power_zones[CYCLING] = zones


def apply_auto_derivation(config: ZoneConfig) -> ZoneConfig:
    """Run the derivation passes enabled by the configuration flags.

    A sport is derived only when ``auto_calculate`` is set and its max heart
    rate is positive; power zones only when ``auto_calculate_power`` is set
    and FTP is positive. Manually configured zones are left alone otherwise.
    """
    if config.auto_calculate:
        for sport in SPORTS:
            max_hr = config.max_heart_rate.get(sport, 0)
            if max_hr > 0:
                derive_from_max_heart_rate(config, sport, max_hr)
                logger.debug("Derived %s heart rate zones from max HR %s", sport, max_hr)

    if config.auto_calculate_power and config.ftp > 0:
        derive_from_ftp(config, config.ftp)
        logger.debug("Derived cycling power zones from FTP %s", config.ftp)

    return config


def check_zone_layout(zones: List[Zone]) -> List[str]:
    """Describe gaps, overlaps and bounded top zones in an ordered zone list.

    Returns:
        Human-readable problems; empty when zones are contiguous with an
        open-ended top zone.
    """
    problems = []
    for current, following in zip(zones, zones[1:]):
        if current.max is None:
            problems.append(f"'{current.name}' has no upper limit but is not the last zone")
        elif current.max < following.min:
            problems.append(f"gap between '{current.name}' and '{following.name}'")
        elif current.max > following.min:
            problems.append(f"'{current.name}' overlaps '{following.name}'")
    if zones and zones[-1].max is not None:
        problems.append(f"top zone '{zones[-1].name}' is bounded at {zones[-1].max}")
    return problems


def load_zones_config(path: Optional[Union[str, Path]] = None) -> ZoneConfig:
    """Load zones from a JSON document and apply auto-derivation.

    Args:
        path: Location of the zones document. Defaults to
              ``zones.config.json`` in the working directory.

    Returns:
        The parsed configuration, or ``default_zones_config()`` when the file
        is missing or malformed. Never raises for configuration problems.
    """
    config_path = Path(path or DEFAULT_ZONES_CONFIG).expanduser()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = zones_config_from_dict(json.load(f))
    except (OSError, ValueError, TypeError, AttributeError) as e:
        logger.warning("Could not load zones config %s, using defaults: %s", config_path, e)
        return default_zones_config()

    apply_auto_derivation(config)

    for kind, zone_sets in ((HEARTRATE, config.sports), (POWER, config.power_zones)):
        for sport, zones in zone_sets.items():
            for problem in check_zone_layout(zones):
                logger.warning("%s %s zones: %s", sport, kind, problem)

    return config


def classify_reading(reading: Any, zones: List[Zone]) -> Optional[str]:
    """Return the name of the first zone containing ``reading``.

    Missing or non-numeric readings, and readings outside every zone, yield
    ``None``.
    """
    if reading is None:
        return None
    try:
        value = float(reading)
    except (TypeError, ValueError):
        return None
    if math.isnan(value):
        return None

    for zone in zones:
        if zone.contains(value):
            return zone.name
    return None


def classify(reading: Any, sport: str, config: ZoneConfig, kind: str = HEARTRATE) -> Optional[str]:
    """Classify a reading against the sport's heart-rate or power zones."""
    return classify_reading(reading, config.zones_for(sport, kind))
