from datetime import datetime

import pytest
from pydantic import ValidationError

from solar_engine_pro.peak_optimizer import (
    PeakOptimizer,
    PeakShavingConfig,
    SolarLookup,
    analyze_peak_shaving,
)
from solar_engine_pro.tariff_model import TariffModel
from solar_engine_pro.types import HourlySolarProduction, MeterReading
from generators import random_readings, readings_at


def night_readings():
    """Three months at 02:00, so no solar netting applies."""
    return readings_at([
        (datetime(2025, 1, 5, 2), 100.0),
        (datetime(2025, 1, 6, 2), 200.0),
        (datetime(2025, 1, 7, 2), 150.0),
        (datetime(2025, 2, 5, 2), 300.0),
        (datetime(2025, 2, 6, 2), 120.0),
        (datetime(2025, 3, 5, 2), 80.0),
    ])


def config(**kwargs):
    kwargs.setdefault("tariff_code", "M")
    return PeakShavingConfig(**kwargs)


# ------------------------------------------------------------
# Tariffs
# ------------------------------------------------------------

def test_tariff_table():
    assert TariffModel("M").demand_rate == pytest.approx(17.573)
    assert TariffModel("L").energy_rate == pytest.approx(0.03681)
    assert TariffModel("G").demand_rate == 0.0
    assert TariffModel("X").demand_rate == 0.0


# ------------------------------------------------------------
# Core analysis
# ------------------------------------------------------------

def test_monthly_peaks_and_charge():
    result = PeakOptimizer.analyze(night_readings(), config())

    assert [p.net_kw for p in result.monthly_peaks] == [300.0, 200.0, 80.0]
    assert all(p.is_monthly_peak for p in result.monthly_peaks)
    assert result.current_annual_demand_charge == pytest.approx(580 * 17.573)


def test_target_savings_and_battery_sizing():
    """
    max peak 300, target 255 → reduction 45
    only February is above target → savings 45 × 17.573
    power = ceil(45 × 1.1) = 50, energy = ceil(50 × 0.5) = 25
    """
    result = PeakOptimizer.analyze(night_readings(), config())

    assert result.potential_demand_reduction == pytest.approx(45.0)
    assert result.demand_charge_savings == pytest.approx(45 * 17.573)
    assert result.recommended_battery_power_kw == 50
    assert result.recommended_battery_energy_kwh == 25


def test_top_peaks_sorted_descending():
    result = PeakOptimizer.analyze(night_readings(), config())

    values = [p.net_kw for p in result.top_peaks]
    assert values == sorted(values, reverse=True)
    assert values[0] == 300.0
    assert result.top_peaks[0].is_monthly_peak


def test_top_peaks_limited_to_ten():
    result = PeakOptimizer.analyze(random_readings(n=500), config())
    assert len(result.top_peaks) == 10


def test_peak_distribution():
    result = PeakOptimizer.analyze(night_readings(), config())
    january = result.peak_distribution[0]

    assert [s.month for s in result.peak_distribution] == [1, 2, 3]
    assert january.peak_kw == 200.0
    assert january.average_peak_kw == pytest.approx(150.0)
    # only 200 is above 1.2 × 150
    assert january.peak_count == 1


def test_demand_charge_free_tariff():
    result = PeakOptimizer.analyze(night_readings(), config(tariff_code="G"))

    assert result.current_annual_demand_charge == 0
    assert result.demand_charge_savings == 0
    assert result.recommended_battery_power_kw == 50
    assert result.tariff_details.code == "G"


def test_savings_never_exceed_current_charge():
    for seed in range(5):
        result = PeakOptimizer.analyze(random_readings(seed=seed), config(target_reduction_percent=0.4))
        assert 0 <= result.demand_charge_savings <= result.current_annual_demand_charge


def test_no_reduction_target():
    result = PeakOptimizer.analyze(night_readings(), config(target_reduction_percent=0.0))

    assert result.potential_demand_reduction == 0
    assert result.demand_charge_savings == 0
    assert result.recommended_battery_power_kw == 0


# ------------------------------------------------------------
# Reading selection
# ------------------------------------------------------------

def test_prefers_fifteen_minute_readings():
    hourly = readings_at([(datetime(2025, 1, 5, 2), 900.0)], granularity="HOUR")
    result = PeakOptimizer.analyze(night_readings() + hourly, config())

    assert result.top_peaks[0].net_kw == 300.0


def test_falls_back_to_other_granularities():
    hourly = readings_at(
        [(datetime(2025, 1, 5, 2), 90.0), (datetime(2025, 1, 5, 3), 0.0)],
        granularity="HOUR",
    )
    result = PeakOptimizer.analyze(hourly, config())

    assert len(result.top_peaks) == 1
    assert result.monthly_peaks[0].net_kw == 90.0


def test_readings_without_demand_are_ignored():
    readings = [MeterReading(timestamp=datetime(2025, 1, 1), kwh=12.0)]
    result = analyze_peak_shaving(readings, config())

    assert result.top_peaks == ()
    assert result.monthly_peaks == ()
    assert result.current_annual_demand_charge == 0
    assert result.recommended_battery_power_kw == 0
    assert result.tariff_details.demand_rate == pytest.approx(17.573)


def test_empty_input():
    result = analyze_peak_shaving([], config())
    assert result.peak_distribution == ()


# ------------------------------------------------------------
# Solar netting
# ------------------------------------------------------------

def profile(*points):
    return [HourlySolarProduction(hour=h, month=m, production_kw=kw) for m, h, kw in points]


def test_solar_lookup_exact_and_nearest_hour():
    lookup = SolarLookup(profile((1, 11, 20.0), (1, 14, 50.0)))

    assert lookup.at(datetime(2025, 1, 3, 11)) == 20.0
    assert lookup.at(datetime(2025, 1, 3, 13)) == 50.0
    assert lookup.at(datetime(2025, 2, 3, 13)) == 0.0


def test_solar_lookup_first_duplicate_wins():
    lookup = SolarLookup(profile((6, 12, 10.0), (6, 12, 99.0)))
    assert lookup.at(datetime(2025, 6, 1, 12)) == 10.0


def test_solar_is_netted_from_demand():
    readings = readings_at([(datetime(2025, 1, 5, 12), 200.0), (datetime(2025, 1, 5, 13), 30.0)])
    result = PeakOptimizer.analyze(
        readings,
        config(solar_production_profile=profile((1, 12, 50.0), (1, 13, 50.0))),
    )

    peak = result.monthly_peaks[0]
    assert peak.gross_kw == 200.0
    assert peak.solar_kw == 50.0
    assert peak.net_kw == 150.0
    # net demand never goes negative
    assert min(p.net_kw for p in result.top_peaks) == 0.0


# ------------------------------------------------------------
# Config validation
# ------------------------------------------------------------

def test_reduction_percent_out_of_range():
    with pytest.raises(ValidationError):
        config(target_reduction_percent=1.5)


def test_unknown_tariff_code_rejected():
    with pytest.raises(ValidationError):
        config(tariff_code="X")


def test_all_zero_readings():
    readings = readings_at([(datetime(2025, 1, d, 2), 0.0) for d in range(1, 10)])
    result = analyze_peak_shaving(readings, config())

    assert result.current_annual_demand_charge == 0
    assert result.top_peaks == ()
    assert result.monthly_peaks == ()
