"""
Tests for trip aggregation.

Covers the dashboard data set:
- No-data sentinel and malformed-record isolation
- Summary totals and stationary records
- Calendar, clock and distance buckets
- Top records ordering
- Pricing strategies and hybrid data
"""

import copy
import math
from datetime import datetime, timezone

import pytest
from evstats.calculations.aggregation import aggregate
from evstats.exceptions import ConfigurationError

from tests.factories import ChargeFactory, FuelChargeFactory, TripRowFactory


def ts(*args):
    return int(datetime(*args, tzinfo=timezone.utc).timestamp())


def iter_numbers(value):
    if isinstance(value, dict):
        for item in value.values():
            yield from iter_numbers(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from iter_numbers(item)
    elif isinstance(value, float):
        yield value


class TestNoData:
    def test_empty_trips(self):
        assert aggregate([], [ChargeFactory.create()]) is None

    def test_none_trips(self):
        assert aggregate(None) is None

    def test_only_malformed_trips(self):
        assert aggregate([{"trip": -1}, {"electricity": 3}, "garbage"]) is None

    def test_only_deleted_trips(self):
        assert aggregate([{"trip": 10, "isDeleted": True}]) is None


class TestEndToEnd:
    def test_single_trip(self, single_trip_rows):
        result = aggregate(single_trip_rows, [], None, "es")
        summary = result["summary"]

        assert summary["total_km"] == 100
        assert summary["total_kwh"] == 15
        assert summary["avg_efficiency"] == 15
        assert summary["trips_count"] == 1
        assert summary["active_days"] == 1
        assert summary["avg_speed_kmh"] == 100
        assert summary["total_hours"] == 1
        assert summary["total_days"] == 1
        assert summary["date_range"] == "01/01/2024 - 01/01/2024"
        assert result["skipped_records"] == 0
        assert result["is_hybrid"] is False

    def test_single_trip_cost_and_range(self, single_trip_rows):
        summary = aggregate(single_trip_rows)["summary"]

        assert summary["total_cost"] == pytest.approx(2.25)
        assert summary["cost_per_100km"] == pytest.approx(2.25)
        assert summary["soh"] == 100
        assert summary["estimated_range_km"] == 403
        assert summary["estimated_range_highway_km"] == 336
        assert summary["estimated_range_city_km"] == 504

    def test_deterministic(self, week_of_trips, mixed_chargers, utc_settings):
        first = aggregate(week_of_trips, mixed_chargers, utc_settings, "en")
        second = aggregate(week_of_trips, mixed_chargers, utc_settings, "en")
        assert first == second

    def test_inputs_not_mutated(self, week_of_trips, mixed_chargers, utc_settings):
        trips_before = copy.deepcopy(week_of_trips)
        charges_before = copy.deepcopy(mixed_chargers)

        aggregate(week_of_trips, mixed_chargers, utc_settings)

        assert week_of_trips == trips_before
        assert mixed_chargers == charges_before

    def test_no_nan_or_infinity(self, week_of_trips, utc_settings):
        rows = week_of_trips + [{"trip": 0, "electricity": 1.2, "duration": 0}]
        result = aggregate(rows, [], utc_settings)
        assert all(math.isfinite(number) for number in iter_numbers(result))


class TestZeroDistance:
    def test_all_stationary(self):
        result = aggregate([{"trip": 0, "electricity": 2, "date": "20240101"}])
        summary = result["summary"]

        assert summary["trips_count"] == 0
        assert summary["total_km"] == 0
        assert summary["avg_efficiency"] == 0
        assert summary["total_kwh"] == 2
        assert summary["stationary_kwh"] == 2
        assert summary["electric_percentage"] == 100
        assert summary["ev_mode_usage"] == 100
        assert summary["estimated_range_km"] == 0

    def test_zero_km_with_zero_energy(self):
        summary = aggregate([{"trip": 0}])["summary"]
        assert summary["avg_efficiency"] == 0
        assert summary["avg_speed_kmh"] == 0


class TestStationaryRecords:
    @pytest.fixture
    def result(self):
        rows = [
            {"trip": 100, "electricity": 15, "duration": 3600, "date": "20240101"},
            {"trip": 0.3, "electricity": 1, "duration": 1200, "date": "20240102"},
        ]
        return aggregate(rows)

    def test_energy_in_totals_not_efficiency(self, result):
        summary = result["summary"]
        assert summary["total_kwh"] == 16
        assert summary["driving_kwh"] == 15
        assert summary["stationary_kwh"] == 1
        assert summary["avg_efficiency"] == 15

    def test_not_counted_as_trip(self, result):
        summary = result["summary"]
        assert summary["trips_count"] == 1
        assert summary["stationary_trips"] == 1
        assert summary["active_days"] == 1
        assert summary["total_duration_seconds"] == 3600

    def test_excluded_from_buckets(self, result):
        assert sum(bucket["count"] for bucket in result["trip_distribution"]) == 1
        assert [day["date"] for day in result["daily"]] == ["20240101"]
        assert len(result["top"]["km"]) == 1

    def test_counts_towards_date_range(self, result):
        assert result["summary"]["last_date"] == "20240102"


class TestMalformedRecords:
    def test_skipped_and_counted(self):
        rows = [{"trip": 10, "electricity": 1.5}, {"trip": "abc"}, "garbage", {"trip": None}]
        result = aggregate(rows)

        assert result["skipped_records"] == 3
        assert result["summary"]["trips_count"] == 1

    def test_deleted_rows_not_counted_as_skipped(self):
        result = aggregate([{"trip": 10}, {"trip": 20, "isDeleted": True}])
        assert result["skipped_records"] == 0
        assert result["summary"]["total_km"] == 10

    def test_garbage_numbers_coerced(self):
        result = aggregate([{"trip": 10, "electricity": "n/a", "duration": "?"}])
        assert result["summary"]["total_kwh"] == 0
        assert result["summary"]["total_duration_seconds"] == 0

    def test_invalid_settings_raise(self):
        with pytest.raises(ConfigurationError):
            aggregate([{"trip": 10}], settings={"electricStrategy": "free"})


class TestCalendarBuckets:
    def test_month_field_wins_over_date(self):
        result = aggregate([{"trip": 10, "date": "20240131", "month": "202402"}])
        assert [month["month"] for month in result["monthly"]] == ["202402"]

    def test_month_from_date(self):
        result = aggregate([{"trip": 10, "date": "20240131"}])
        assert [month["month"] for month in result["monthly"]] == ["202401"]

    def test_timestamp_fallback(self, utc_settings):
        result = aggregate([{"trip": 10, "start_timestamp": ts(2024, 2, 3, 10)}], settings=utc_settings)
        assert [day["date"] for day in result["daily"]] == ["20240203"]
        assert [month["month"] for month in result["monthly"]] == ["202402"]

    def test_no_date_information(self):
        result = aggregate([{"trip": 10, "electricity": 1.5}])

        assert result["monthly"] == []
        assert result["daily"] == []
        assert result["summary"]["trips_count"] == 1
        assert result["summary"]["active_days"] == 0
        assert result["summary"]["trips_per_day"] == 0

    def test_sorted_by_key(self):
        rows = [
            {"trip": 10, "date": "20240301"},
            {"trip": 10, "date": "20240115"},
            {"trip": 10, "date": "20240210"},
        ]
        result = aggregate(rows)
        assert [month["month"] for month in result["monthly"]] == ["202401", "202402", "202403"]
        assert [day["date"] for day in result["daily"]] == ["20240115", "20240210", "20240301"]

    def test_bucket_values(self):
        rows = [
            {"trip": 20, "electricity": 3, "fuel": 0, "duration": 1200, "date": "20240105"},
            {"trip": 30, "electricity": 6, "fuel": 0, "duration": 1800, "date": "20240106"},
        ]
        month = aggregate(rows)["monthly"][0]

        assert month["trips"] == 2
        assert month["km"] == 50
        assert month["kwh"] == 9
        assert month["duration_seconds"] == 3000
        assert month["efficiency"] == 18

    def test_labels_follow_locale(self):
        rows = [{"trip": 10, "date": "20240115"}]
        assert aggregate(rows, locale="en")["monthly"][0]["label"] == "Jan 2024"
        assert aggregate(rows, locale="es")["monthly"][0]["label"] == "Ene 2024"
        assert aggregate(rows, locale="en")["daily"][0]["label"] == "01/15/2024"

    def test_locale_does_not_change_numbers(self, week_of_trips, utc_settings):
        english = aggregate(week_of_trips, [], utc_settings, "en")
        spanish = aggregate(week_of_trips, [], utc_settings, "es")
        assert english["summary"]["total_km"] == spanish["summary"]["total_km"]
        assert [m["km"] for m in english["monthly"]] == [m["km"] for m in spanish["monthly"]]


class TestClockBuckets:
    def test_hour_and_weekday(self, week_of_trips, utc_settings):
        result = aggregate(week_of_trips, [], utc_settings, "en")

        assert result["hourly"][8]["trips"] == 7
        assert sum(hour["trips"] for hour in result["hourly"]) == 7
        assert [day["trips"] for day in result["weekday"]] == [1] * 7
        assert result["weekday"][0]["day"] == "mon"
        assert result["weekday"][0]["label"] == "Mon"

    def test_configured_timezone(self, week_of_trips, utc_settings):
        settings = dict(utc_settings, timezone="Europe/Madrid")
        result = aggregate(week_of_trips, [], settings)
        assert result["hourly"][9]["trips"] == 7

    def test_missing_timestamp_excluded_from_clock_only(self, utc_settings):
        rows = [{"trip": 10, "date": "20240101"}, {"trip": 10, "start_timestamp": 0, "date": "20240101"}]
        result = aggregate(rows, [], utc_settings)

        assert sum(hour["trips"] for hour in result["hourly"]) == 0
        assert sum(day["trips"] for day in result["weekday"]) == 0
        assert result["summary"]["trips_count"] == 2

    def test_total_days_span(self, week_of_trips, utc_settings):
        summary = aggregate(week_of_trips, [], utc_settings)["summary"]
        assert summary["total_days"] == 7
        assert summary["active_days"] == 7
        assert summary["trips_per_day"] == 1


class TestDistribution:
    def test_bucket_boundaries(self):
        rows = [{"trip": km} for km in (5, 5.1, 15, 30, 50, 50.1)]
        result = aggregate(rows)

        counts = {bucket["range"]: bucket["count"] for bucket in result["trip_distribution"]}
        assert counts == {"0-5": 1, "5-15": 2, "15-30": 1, "30-50": 1, "50+": 1}

    def test_scatter_filters_outliers(self):
        rows = [{"trip": 10, "electricity": 1.5}, {"trip": 1, "electricity": 0.6}, {"trip": 10}]
        scatter = aggregate(rows)["efficiency_scatter"]
        assert scatter == [{"x": 10, "y": 15.0, "fuel": 0}]


class TestTopRecords:
    def test_ties_keep_insertion_order(self):
        rows = [{"id": "a", "trip": 10}, {"id": "b", "trip": 10}, {"id": "c", "trip": 5}]
        top = aggregate(rows)["top"]["km"]
        assert [record["trip_id"] for record in top] == ["a", "b", "c"]

    def test_limit(self):
        rows = [{"trip": km} for km in range(1, 16)]
        top = aggregate(rows)["top"]["km"]
        assert len(top) == 10
        assert top[0]["distance_km"] == 15

    def test_each_slice_sorted_independently(self):
        rows = [
            {"id": "long", "trip": 100, "electricity": 10, "duration": 3600},
            {"id": "hungry", "trip": 50, "electricity": 12, "duration": 4000},
        ]
        top = aggregate(rows)["top"]
        assert top["km"][0]["trip_id"] == "long"
        assert top["kwh"][0]["trip_id"] == "hungry"
        assert top["duration"][0]["trip_id"] == "hungry"
        assert top["fuel"] == []

    def test_records_carry_costs(self):
        record = aggregate([{"trip": 100, "electricity": 10}])["top"]["km"][0]
        assert record["electric_cost"] == pytest.approx(1.5)
        assert record["fuel_cost"] == 0
        assert record["calculated_cost"] == pytest.approx(1.5)


class TestPricing:
    @pytest.fixture
    def rows(self):
        return [{"trip": 100, "electricity": 10, "date": "20240102", "start_timestamp": ts(2024, 1, 2, 8)}]

    @pytest.fixture
    def charges(self):
        return [
            ChargeFactory.create(date="2024-01-01", time="22:00", kwhCharged=40, totalCost=4),
            ChargeFactory.create(date="2024-01-03", time="22:00", kwhCharged=10, totalCost=6),
        ]

    def test_custom(self, rows, charges, utc_settings):
        summary = aggregate(rows, charges, dict(utc_settings, electricPrice=0.2))["summary"]
        assert summary["electric_cost"] == pytest.approx(2.0)

    def test_average(self, rows, charges, utc_settings):
        settings = dict(utc_settings, electricStrategy="average")
        summary = aggregate(rows, charges, settings)["summary"]
        assert summary["electric_cost"] == pytest.approx(2.0)  # 10 / 50 kWh = 0.2

    def test_average_without_charges(self, rows, utc_settings):
        settings = dict(utc_settings, electricStrategy="average")
        summary = aggregate(rows, [], settings)["summary"]
        assert summary["electric_cost"] == pytest.approx(1.5)

    def test_dynamic(self, rows, charges, utc_settings):
        settings = dict(utc_settings, electricStrategy="dynamic")
        summary = aggregate(rows, charges, settings)["summary"]
        assert summary["electric_cost"] == pytest.approx(1.0)  # 4 / 40 kWh session before the trip

    def test_legacy_use_calculated_price(self, rows, charges, utc_settings):
        settings = dict(utc_settings, useCalculatedPrice=True)
        summary = aggregate(rows, charges, settings)["summary"]
        assert summary["electric_cost"] == pytest.approx(2.0)

    def test_max_cost(self, utc_settings):
        rows = [{"trip": 10, "electricity": 2, "date": "20240101"}, {"trip": 20, "electricity": 4, "date": "20240102"}]
        summary = aggregate(rows, [], utc_settings)["summary"]
        assert summary["max_cost"] == pytest.approx(0.6)
        assert summary["max_cost_date"] == "20240102"


class TestHybrid:
    @pytest.fixture
    def result(self, utc_settings):
        rows = [
            {"id": "ev", "trip": 40, "electricity": 6, "fuel": 0},
            {"id": "mixed", "trip": 60, "electricity": 8, "fuel": 2},
        ]
        charges = [FuelChargeFactory.create(litersCharged=40, totalCost=80)]
        settings = dict(utc_settings, fuelStrategy="average")
        return aggregate(rows, charges, settings)

    def test_hybrid_flag(self, result):
        assert result["is_hybrid"] is True
        assert result["summary"]["is_hybrid"] is True

    def test_fuel_split(self, result):
        summary = result["summary"]
        assert summary["total_fuel"] == 2
        assert summary["electric_only_trips"] == 1
        assert summary["fuel_used_trips"] == 1
        assert summary["electric_percentage"] == 40
        assert summary["fuel_percentage"] == 60
        assert summary["ev_mode_usage"] == 50
        assert summary["avg_fuel_efficiency"] == 2
        assert summary["max_fuel"] == 2

    def test_fuel_priced_with_average(self, result):
        assert result["summary"]["fuel_cost"] == pytest.approx(4.0)

    def test_fuel_top_only_fuel_trips(self, result):
        assert [record["trip_id"] for record in result["top"]["fuel"]] == ["mixed"]


class TestExtremeValues:
    """Valid but extreme floats must not overflow into errors or infinities"""

    def test_near_zero_energy(self):
        rows = [{"trip": 1, "electricity": 1e-320, "duration": 60, "date": "20240101"}]
        result = aggregate(rows)

        assert result["summary"]["estimated_range_km"] == 0
        assert result["summary"]["estimated_range_city_km"] == 0
        assert all(math.isfinite(number) for number in iter_numbers(result))

    def test_huge_energy(self):
        rows = [{"trip": 1, "electricity": 1e307, "duration": 60, "date": "20240101"}]
        result = aggregate(rows)

        assert result["summary"]["avg_efficiency"] == 0
        assert result["monthly"][0]["efficiency"] == 0
        assert result["daily"][0]["efficiency"] == 0
        assert all(math.isfinite(number) for number in iter_numbers(result))

    def test_overflowing_totals(self):
        rows = [{"trip": 10, "electricity": 1.5e308, "date": "20240101"} for _ in range(3)]
        result = aggregate(rows)

        assert result["summary"]["total_kwh"] == 0
        assert all(math.isfinite(number) for number in iter_numbers(result))
