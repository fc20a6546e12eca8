"""
Tests for efficiency-related calculations
"""

import pytest
from evstats.calculations.efficiency import (
    calculate_average_speed,
    calculate_kwh_per_100km,
    calculate_liters_per_100km,
    estimate_range,
    estimate_ranges,
    is_stationary_trip,
    scatter_point,
)


class TestStationaryTrips:
    def test_below_threshold(self):
        assert is_stationary_trip(0.0) is True
        assert is_stationary_trip(0.49) is True

    def test_threshold_is_a_trip(self):
        assert is_stationary_trip(0.5) is False

    def test_custom_threshold(self):
        assert is_stationary_trip(0.8, threshold_km=1.0) is True


class TestConsumption:
    def test_kwh_per_100km(self):
        assert calculate_kwh_per_100km(15, 100) == 15.0

    def test_kwh_per_100km_zero_distance(self):
        assert calculate_kwh_per_100km(5, 0) == 0.0

    def test_liters_per_100km(self):
        assert calculate_liters_per_100km(1.2, 20) == pytest.approx(6.0)

    def test_overflow_reads_as_zero(self):
        assert calculate_kwh_per_100km(1e307, 1) == 0.0
        assert calculate_liters_per_100km(1e307, 0.5) == 0.0

    def test_liters_per_100km_zero_distance(self):
        assert calculate_liters_per_100km(1.2, 0) == 0.0

    def test_average_speed(self):
        assert calculate_average_speed(100, 3600) == 100.0

    def test_average_speed_no_duration(self):
        assert calculate_average_speed(10, 0) == 0.0


class TestEstimateRange:
    def test_mixed(self):
        assert estimate_range(60, 100, 15) == 400

    def test_degraded_battery(self):
        assert estimate_range(60, 90, 15) == 360

    def test_highway_factor(self):
        assert estimate_range(60, 100, 15, consumption_factor=1.2) == 333

    def test_city_factor(self):
        assert estimate_range(60, 100, 15, consumption_factor=0.8) == 500

    @pytest.mark.parametrize("battery,soh,consumption", [(0, 100, 15), (60, 0, 15), (60, 100, 0), (60, 100, -3)])
    def test_degenerate_inputs(self, battery, soh, consumption):
        assert estimate_range(battery, soh, consumption) == 0

    def test_overflowing_quotient(self):
        assert estimate_range(60, 100, 1e-320) == 0

    def test_all_ranges(self):
        ranges = estimate_ranges(60.48, 100, 15)
        assert ranges == {
            "estimated_range_km": 403,
            "estimated_range_highway_km": 336,
            "estimated_range_city_km": 504,
        }


class TestScatterPoint:
    def test_regular_trip(self):
        assert scatter_point(10, 1.5, 0) == {"x": 10, "y": 15.0, "fuel": 0}

    def test_outlier_excluded(self):
        """60 kWh/100km is noise"""
        assert scatter_point(1, 0.6, 0) is None

    def test_upper_bound_exclusive(self):
        assert scatter_point(10, 5, 0) is None

    @pytest.mark.parametrize("distance,energy", [(0, 1), (10, 0), (10, -1)])
    def test_requires_positive_distance_and_energy(self, distance, energy):
        assert scatter_point(distance, energy, 0) is None
