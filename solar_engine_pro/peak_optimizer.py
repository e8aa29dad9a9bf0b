# solar_engine_pro/peak_optimizer.py

from __future__ import annotations
import math
from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Literal, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .types import (
    FIFTEEN_MIN,
    HourlySolarProduction,
    MeterReading,
    MonthlyPeakStats,
    Peak,
    PeakShavingResult,
)
from .tariff_model import TariffModel


BATTERY_POWER_MARGIN = 1.1        # 10% safety margin on shaving power
ELEVATED_PEAK_FACTOR = 1.2        # "elevated" = above 120% of the month average
TOP_PEAKS = 10


class PeakShavingConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    tariff_code: Literal["G", "M", "L"]
    target_reduction_percent: float = Field(default=0.15, ge=0.0, le=1.0)
    min_battery_coverage: float = Field(default=0.5, ge=0.0)   # hours of shaving power
    solar_production_profile: Optional[List[HourlySolarProduction]] = None


class SolarLookup:
    """(month, hour) → kW, falling back to the nearest hour of the same month."""

    def __init__(self, profile: Optional[Sequence[HourlySolarProduction]]):
        self.exact: Dict[Tuple[int, int], float] = {}
        self.by_month: Dict[int, List[HourlySolarProduction]] = {}
        for point in profile or []:
            self.exact.setdefault((point.month, point.hour), point.production_kw)
            self.by_month.setdefault(point.month, []).append(point)

    def at(self, timestamp: datetime) -> float:
        month, hour = timestamp.month, timestamp.hour
        if (month, hour) in self.exact:
            return self.exact[(month, hour)]

        same_month = self.by_month.get(month)
        if not same_month:
            return 0.0
        closest = min(same_month, key=lambda p: abs(p.hour - hour))
        return closest.production_kw


# ============================================================
# PEAK SHAVING ANALYSIS
# ============================================================

class PeakOptimizer:

    @staticmethod
    def select_readings(readings: Sequence[MeterReading]) -> List[MeterReading]:
        """15-minute demand readings if there are any, else every positive-kW reading."""
        fifteen_min = [
            r for r in readings
            if r.granularity == FIFTEEN_MIN and r.kw is not None and r.kw > 0
        ]
        if fifteen_min:
            return fifteen_min
        return [r for r in readings if r.kw is not None and r.kw > 0]

    @staticmethod
    def compute_net_demand(
        readings: Sequence[MeterReading],
        profile: Optional[Sequence[HourlySolarProduction]] = None,
    ) -> List[Peak]:
        solar = SolarLookup(profile)
        points = []
        for reading in readings:
            solar_kw = solar.at(reading.timestamp)
            gross_kw = reading.kw or 0.0
            points.append(Peak(
                timestamp=reading.timestamp,
                gross_kw=gross_kw,
                solar_kw=solar_kw,
                net_kw=max(0.0, gross_kw - solar_kw),
                month=reading.timestamp.month,
            ))
        return points

    @staticmethod
    def group_by_month(points: Sequence[Peak]) -> Dict[int, List[int]]:
        """Month → indices into points, in reading order."""
        groups: Dict[int, List[int]] = {}
        for i, p in enumerate(points):
            groups.setdefault(p.month, []).append(i)
        return groups

    @staticmethod
    def compute_monthly_distribution(
        points: Sequence[Peak], groups: Dict[int, List[int]]
    ) -> List[MonthlyPeakStats]:
        stats = []
        for month, indices in groups.items():
            values = [points[i].net_kw for i in indices]
            average = sum(values) / len(values)
            stats.append(MonthlyPeakStats(
                month=month,
                peak_kw=max(values),
                average_peak_kw=average,
                peak_count=sum(1 for v in values if v > average * ELEVATED_PEAK_FACTOR),
            ))
        return sorted(stats, key=lambda s: s.month)

    @staticmethod
    def analyze(readings: Sequence[MeterReading], config: PeakShavingConfig) -> PeakShavingResult:
        tariff = TariffModel(config.tariff_code)
        demand_rate = tariff.demand_rate

        selected = PeakOptimizer.select_readings(readings)
        if not selected:
            return PeakShavingResult(
                top_peaks=(),
                monthly_peaks=(),
                current_annual_demand_charge=0.0,
                potential_demand_reduction=0.0,
                demand_charge_savings=0.0,
                recommended_battery_power_kw=0.0,
                recommended_battery_energy_kwh=0.0,
                peak_distribution=(),
                tariff_details=tariff.details(),
            )

        points = PeakOptimizer.compute_net_demand(selected, config.solar_production_profile)
        groups = PeakOptimizer.group_by_month(points)

        # -------------------------
        # Monthly billing peaks
        # -------------------------
        for indices in groups.values():
            best = max(indices, key=lambda i: points[i].net_kw)
            points[best] = replace(points[best], is_monthly_peak=True)

        monthly_peaks = [p for p in points if p.is_monthly_peak]
        current_charge = sum(p.net_kw * demand_rate for p in monthly_peaks)

        # -------------------------
        # Target & savings
        # -------------------------
        max_peak = max(p.net_kw for p in monthly_peaks)
        target_peak = max_peak * (1.0 - config.target_reduction_percent)
        reduction = max(0.0, max_peak - target_peak)

        savings = sum(
            (p.net_kw - target_peak) * demand_rate
            for p in monthly_peaks
            if p.net_kw > target_peak
        )

        power_kw = math.ceil(reduction * BATTERY_POWER_MARGIN)
        energy_kwh = math.ceil(power_kw * config.min_battery_coverage)

        top_peaks = sorted(points, key=lambda p: p.net_kw, reverse=True)[:TOP_PEAKS]

        return PeakShavingResult(
            top_peaks=tuple(top_peaks),
            monthly_peaks=tuple(sorted(monthly_peaks, key=lambda p: p.net_kw, reverse=True)),
            current_annual_demand_charge=current_charge,
            potential_demand_reduction=reduction,
            demand_charge_savings=savings,
            recommended_battery_power_kw=float(power_kw),
            recommended_battery_energy_kwh=float(energy_kwh),
            peak_distribution=tuple(PeakOptimizer.compute_monthly_distribution(points, groups)),
            tariff_details=tariff.details(),
        )


def analyze_peak_shaving(
    readings: Sequence[MeterReading], config: PeakShavingConfig
) -> PeakShavingResult:
    return PeakOptimizer.analyze(readings, config)
