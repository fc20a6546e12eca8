"""
Pytest fixtures for evstats tests.
"""

import os
import sys
from datetime import datetime, timezone

import pytest

# Add the repository root to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from tests.factories import ChargeFactory, TripRowFactory  # noqa: E402


@pytest.fixture
def as_of():
    """Fixed 'now' for calendar ageing."""
    return datetime(2025, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def utc_settings():
    """Settings with a fixed timezone so hour/weekday buckets are stable."""
    return {
        'batterySize': 60.48,
        'soh': 100,
        'electricStrategy': 'custom',
        'electricPrice': 0.15,
        'fuelStrategy': 'custom',
        'fuelPrice': 1.5,
        'timezone': 'UTC',
    }


@pytest.fixture
def single_trip_rows():
    """One 100 km trip using 15 kWh."""
    return [{'trip': 100, 'electricity': 15, 'duration': 3600, 'date': '20240101'}]


@pytest.fixture
def week_of_trips():
    """Seven daily commutes, one per day starting Monday 2024-01-01 08:00 UTC."""
    return [TripRowFactory.create(day_offset=day) for day in range(7)]


@pytest.fixture
def mixed_chargers():
    """Charging history across all four speed tiers."""
    return [
        ChargeFactory.create(speedKw=2.3, kwhCharged=10, finalPercentage=100),
        ChargeFactory.create(speedKw=11, kwhCharged=30, finalPercentage=80),
        ChargeFactory.create(speedKw=50, kwhCharged=40, finalPercentage=80),
        ChargeFactory.create(speedKw=150, kwhCharged=45, finalPercentage=80),
    ]


@pytest.fixture
def sample_settings():
    """Settings mapping as stored by the dashboard, including UI-only keys."""
    return {
        'carModel': 'Seal',
        'licensePlate': '1234ABC',
        'batterySize': 82.56,
        'soh': 98,
        'sohMode': 'manual',
        'mfgDate': '2023-05-10',
        'thermalStressFactor': 1.1,
        'electricStrategy': 'average',
        'electricPrice': 0.2,
        'fuelStrategy': 'custom',
        'fuelPrice': 1.6,
        'odometerOffset': 1200,
        'theme': 'dark',
        'hiddenTabs': ['history'],
        'timezone': 'Europe/Madrid',
        'chargerTypes': [
            {'id': 'home', 'name': 'Wallbox', 'speedKw': 7.4, 'efficiency': 0.9},
            {'id': 'schuko', 'name': 'Schuko', 'speedKw': 2.3},
        ],
    }
