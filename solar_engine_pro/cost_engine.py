# solar_engine_pro/cost_engine.py

from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple

from .types import EconomicAssumptions


HQ_INCENTIVE_PER_KW = 1000.0          # $/kW
HQ_INCENTIVE_CAPEX_CAP = 0.40         # fraction of gross CAPEX
HQ_INCENTIVE_ABSOLUTE_CAP = 1000 * 1000.0   # 1 MW equivalent
FEDERAL_ITC_RATE = 0.30
TAX_SHIELD_RECOVERY = 0.90            # not all depreciation is realized


@dataclass(frozen=True)
class CapexBreakdown:
    capex_gross: float
    hq_incentive: float
    federal_itc: float
    capex_net: float
    tax_shield: float


class CostEngine:
    """
    CAPEX, incentives and tax shield for a PV system:
    - utility incentive: $1000/kW, capped at 40% of gross CAPEX and at $1M
    - federal ITC: 30% of what remains after the utility incentive
    - tax shield (accelerated depreciation): net CAPEX × tax rate × 0.90
    """

    def __init__(self, assumptions: EconomicAssumptions):
        self.assumptions = assumptions

    def gross_capex(self, pv_size_kw: float) -> float:
        return pv_size_kw * 1000.0 * self.assumptions.solar_cost_per_w

    @staticmethod
    def incentives(pv_size_kw: float, capex_gross: float) -> Tuple[float, float]:
        """(HQ incentive, federal ITC) for a given gross cost."""
        hq_incentive = min(
            pv_size_kw * HQ_INCENTIVE_PER_KW,
            capex_gross * HQ_INCENTIVE_CAPEX_CAP,
            HQ_INCENTIVE_ABSOLUTE_CAP,
        )
        federal_itc = (capex_gross - hq_incentive) * FEDERAL_ITC_RATE
        return hq_incentive, federal_itc

    def compute(self, pv_size_kw: float) -> CapexBreakdown:
        capex_gross = self.gross_capex(pv_size_kw)

        hq_incentive, federal_itc = self.incentives(pv_size_kw, capex_gross)
        capex_net = capex_gross - hq_incentive - federal_itc

        tax_shield = capex_net * self.assumptions.tax_rate * TAX_SHIELD_RECOVERY

        return CapexBreakdown(
            capex_gross=capex_gross,
            hq_incentive=hq_incentive,
            federal_itc=federal_itc,
            capex_net=capex_net,
            tax_shield=tax_shield,
        )

    def om_cost_year1(self, pv_size_kw: float) -> float:
        return pv_size_kw * self.assumptions.effective_om_per_kwc()


# ============================================================
# Custom build pricing (used against catalog kit prices)
# ============================================================

def custom_build_price(
    pv_kw: float,
    battery_kwh: float,
    battery_kw: float,
    price_per_watt: float = 2.25,
    battery_capacity_cost: float = 550.0,
    battery_power_cost: float = 800.0,
) -> float:
    solar_cost = pv_kw * 1000.0 * price_per_watt
    battery_cost = battery_kwh * battery_capacity_cost + battery_kw * battery_power_cost
    return solar_cost + battery_cost


# ============================================================
# Tiered solar pricing: economies of scale (Québec, 2025)
# ============================================================

SOLAR_PRICE_TIERS = [
    # (min kW, $/W, label per language)
    (3000.0, 1.70, {"fr": "Tier 1 (3 MW+)", "en": "Tier 1 (3 MW+)"}),
    (1000.0, 1.85, {"fr": "Tier 2 (1-3 MW)", "en": "Tier 2 (1-3 MW)"}),
    (500.0, 2.00, {"fr": "Tier 3 (500 kW-1 MW)", "en": "Tier 3 (500 kW-1 MW)"}),
    (100.0, 2.15, {"fr": "Tier 4 (100-500 kW)", "en": "Tier 4 (100-500 kW)"}),
    (0.0, 2.30, {"fr": "Tier 5 (<100 kW)", "en": "Tier 5 (<100 kW)"}),
]


def _tier(pv_size_kw: float):
    for tier in SOLAR_PRICE_TIERS:
        if pv_size_kw >= tier[0]:
            return tier
    return SOLAR_PRICE_TIERS[-1]


def tiered_solar_cost_per_w(pv_size_kw: float) -> float:
    return _tier(pv_size_kw)[1]


def solar_pricing_tier_label(pv_size_kw: float, lang: str = "fr") -> str:
    _, price, labels = _tier(pv_size_kw)
    return labels.get(lang, f"${price:.2f}/W")
