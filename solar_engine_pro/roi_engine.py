# solar_engine_pro/roi_engine.py

from __future__ import annotations
from typing import List, Sequence, Tuple

from .types import CashflowEntry


ANALYSIS_YEARS = 25
IRR_LOW = -0.5
IRR_HIGH = 1.0
IRR_MAX_ITER = 100


class ROIEngine:
    """
    Discounted-cashflow metrics over a yearly series (index = year, 0 = investment).
    """

    @staticmethod
    def build_cashflows(values: Sequence[float]) -> Tuple[CashflowEntry, ...]:
        entries: List[CashflowEntry] = []
        cumulative = 0.0
        for year, value in enumerate(values):
            cumulative += value
            entries.append(CashflowEntry(year=year, net_cashflow=value, cumulative=cumulative))
        return tuple(entries)

    @staticmethod
    def npv(values: Sequence[float], rate: float, horizon: int = ANALYSIS_YEARS) -> float:
        last = min(horizon, len(values) - 1)
        return sum(values[y] / (1.0 + rate) ** y for y in range(last + 1))

    @staticmethod
    def irr(values: Sequence[float], horizon: int = ANALYSIS_YEARS, scale: float = 0.0) -> float:
        """
        Bisection on [-0.5, 1.0] against the series truncated at `horizon`.
        - tolerance on NPV is |scale| * 1e-6 (scale = net CAPEX)
        - result is clamped to [0, 1]; without a sign change in the bracket
          the nearest bound is reported
        """
        cf = list(values[: horizon + 1])
        if all(v == 0 for v in cf):
            return 0.0

        def npv_at(rate: float) -> float:
            return sum(v / (1.0 + rate) ** t for t, v in enumerate(cf))

        low, high = IRR_LOW, IRR_HIGH
        npv_low = npv_at(low)
        npv_high = npv_at(high)

        # Never recovers, even at -50%
        if npv_low < 0 and npv_high < 0:
            return 0.0
        # Still profitable at 100%
        if npv_low > 0 and npv_high > 0:
            return 1.0

        tolerance = abs(scale) * 1e-6
        mid = (low + high) / 2
        for _ in range(IRR_MAX_ITER):
            mid = (low + high) / 2
            npv_mid = npv_at(mid)

            if abs(npv_mid) < tolerance or (high - low) < 1e-6:
                break

            if npv_low * npv_mid < 0:
                high = mid
            else:
                low = mid
                npv_low = npv_mid

        return max(0.0, min(1.0, mid))

    @staticmethod
    def payback_years(cashflows: Sequence[CashflowEntry], horizon: int = ANALYSIS_YEARS) -> float:
        """
        First year where the cumulative sum crosses from negative to >= 0,
        interpolated within that year. Never recovered → horizon.
        """
        previous = None
        for cf in cashflows:
            if previous is not None and previous < 0 <= cf.cumulative:
                fraction = abs(previous) / abs(cf.net_cashflow) if cf.net_cashflow != 0 else 0.0
                return min(float(horizon), cf.year - 1 + fraction)
            previous = cf.cumulative
        return float(horizon)

    @staticmethod
    def lcoe(
        capex_net: float,
        om_cost_year1: float,
        production_year1_kwh: float,
        degradation_rate: float,
        years: int = ANALYSIS_YEARS,
    ) -> float:
        total_production = sum(
            production_year1_kwh * (1.0 - degradation_rate) ** (y - 1)
            for y in range(1, years + 1)
        )
        if total_production <= 0:
            return 0.0
        return (capex_net + om_cost_year1 * years) / total_production
