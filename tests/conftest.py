"""Shared fixtures for stravamcp tests."""

import json

import pytest

from stravamcp.zones import Zone, ZoneConfig, zones_config_from_dict

ZONES_DOCUMENT = {
    "sports": {
        "running": {
            "Zone 1": {"min": 0, "max": 140, "description": "Easy"},
            "Zone 2": {"min": 140, "max": 160, "description": "Steady"},
            "Zone 3": {"min": 160, "max": 999, "description": "Hard"},
        },
        "cycling": {
            "Zone 1": {"min": 0, "max": 130, "description": "Easy"},
            "Zone 2": {"min": 130, "max": 150, "description": "Steady"},
            "Zone 3": {"min": 150, "max": 999, "description": "Hard"},
        },
    },
    "powerZones": {
        "cycling": {
            "Zone 1": {"min": 0, "max": 150, "description": "Recovery", "unit": "watts"},
            "Zone 2": {"min": 150, "max": 250, "description": "Endurance", "unit": "watts"},
            "Zone 3": {"min": 250, "max": 9999, "description": "Threshold", "unit": "watts"},
        }
    },
    "metadata": {
        "version": "2.0",
        "defaultSport": "running",
        "autoCalculate": False,
        "userSettings": {
            "running": {"maxHeartRate": 190, "restingHeartRate": 50},
            "cycling": {"maxHeartRate": 185, "restingHeartRate": 50},
        },
    },
    "powerSettings": {"cycling": {"ftp": 250, "autoCalculate": False}},
}


@pytest.fixture
def zones_document():
    """A fresh copy of the zones JSON document."""
    return json.loads(json.dumps(ZONES_DOCUMENT))


@pytest.fixture
def zone_config(zones_document):
    """ZoneConfig parsed from the zones document."""
    return zones_config_from_dict(zones_document)


@pytest.fixture
def zones_file(tmp_path, zones_document):
    """Write the zones document to a temporary file and return its path."""
    path = tmp_path / "zones.config.json"
    path.write_text(json.dumps(zones_document), encoding="utf-8")
    return path


@pytest.fixture
def three_zone_config():
    """Running zones Zone1 [0,140) Zone2 [140,160) Zone3 [160,200)."""
    return ZoneConfig(
        sports={
            "running": [
                Zone("Zone1", 0, 140, "Easy"),
                Zone("Zone2", 140, 160, "Steady"),
                Zone("Zone3", 160, 200, "Hard"),
            ]
        }
    )
