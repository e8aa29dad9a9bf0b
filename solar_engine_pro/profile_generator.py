# solar_engine_pro/profile_generator.py

from __future__ import annotations
from typing import List

from .types import HourlySolarProduction


# ------------------------------------------------------------
# Shape tables (Québec): seasonal factor and daily bell curve
# ------------------------------------------------------------

MONTH_PV_FACTORS = [0.40, 0.50, 0.70, 0.90, 1.00, 1.10, 1.10, 1.00, 0.85, 0.65, 0.45, 0.35]

HOUR_PV_FACTORS = [
    0.00, 0.00, 0.00, 0.00, 0.00, 0.05, 0.15, 0.35, 0.55, 0.75, 0.90, 0.98,
    1.00, 0.98, 0.90, 0.75, 0.55, 0.35, 0.15, 0.05, 0.00, 0.00, 0.00, 0.00,
]

PEAK_OUTPUT_RATIO = 0.85      # AC peak vs nameplate DC
REFERENCE_YIELD = 1150.0      # kWh/kWp/year the shapes were tuned for


def generate_solar_production_profile(
    system_size_kw: float,
    yield_kwh_per_kwp: float = REFERENCE_YIELD,
) -> List[HourlySolarProduction]:
    """
    Synthetic typical-day production per (month, hour), 12 × 24 points.
    Used to net solar out of meter readings when no simulated profile exists.

    Output scales linearly with yield_kwh_per_kwp / 1150, so a site with a
    better yield nets out more solar. The default 1150 gives the plain
    reference shape.
    """
    peak_kw = system_size_kw * PEAK_OUTPUT_RATIO * (yield_kwh_per_kwp / REFERENCE_YIELD)

    profile: List[HourlySolarProduction] = []
    for month in range(1, 13):
        for hour in range(24):
            profile.append(HourlySolarProduction(
                hour=hour,
                month=month,
                production_kw=peak_kw * MONTH_PV_FACTORS[month - 1] * HOUR_PV_FACTORS[hour],
            ))
    return profile
