# solar_engine_pro/types.py

from __future__ import annotations
from dataclasses import dataclass, field, replace, asdict
from datetime import datetime
from typing import Dict, Optional, Tuple


# ============================================================
# EconomicAssumptions: financial inputs per analysis request
# ============================================================

@dataclass(frozen=True)
class EconomicAssumptions:
    """
    Immutable bundle of economic assumptions.
    Rates are fractions (0.035 = 3.5%), costs are absolute ($/W, $/kWc).
    Variants are built with with_overrides(), never patched in place.
    """
    solar_yield_kwh_per_kwp: float = 1150.0
    degradation_rate: float = 0.004          # per year
    tariff_escalation: float = 0.035         # energy + surplus
    demand_escalation: Optional[float] = None  # None → tariff_escalation
    discount_rate: float = 0.06              # WACC

    # O&M: $/kWc/year, or a fraction of solar CAPEX when om_per_kwc is None
    om_per_kwc: Optional[float] = 15.0
    om_solar_percent: Optional[float] = None
    om_escalation: float = 0.025

    solar_cost_per_w: float = 2.00
    tax_rate: float = 0.265

    temperature_coefficient: float = -0.004  # per °C
    wire_loss: float = 0.03
    hq_surplus_rate: float = 0.046           # $/kWh for exported surplus

    bifacial_enabled: bool = False
    bifacial_boost: float = 0.0

    # Fallback tariffs (Rate M 2025) when the site does not carry its own
    tariff_energy: float = 0.06061           # $/kWh
    tariff_power: float = 17.573             # $/kW/month

    def with_overrides(self, **changes) -> "EconomicAssumptions":
        return replace(self, **changes)

    def effective_om_per_kwc(self) -> float:
        if self.om_per_kwc is not None:
            return self.om_per_kwc
        if self.om_solar_percent is not None:
            return self.om_solar_percent * self.solar_cost_per_w * 1000.0
        return 15.0

    def effective_demand_escalation(self) -> float:
        if self.demand_escalation is None:
            return self.tariff_escalation
        return self.demand_escalation

    def to_dict(self):
        return asdict(self)


# ============================================================
# SiteScenarioParams: what the site looks like
# ============================================================

@dataclass(frozen=True)
class SiteScenarioParams:
    pv_size_kw: float
    annual_consumption_kwh: float
    tariff_energy: Optional[float] = None    # $/kWh
    tariff_power: Optional[float] = None     # $/kW/month
    peak_kw: float = 0.0

    def to_dict(self):
        return asdict(self)


# ============================================================
# Cashflows & ScenarioResult
# ============================================================

@dataclass(frozen=True)
class CashflowEntry:
    year: int
    net_cashflow: float
    cumulative: float

    def to_dict(self):
        return {
            "year": self.year,
            "net_cashflow": self.net_cashflow,
            "cumulative": self.cumulative,
        }


@dataclass(frozen=True)
class ScenarioResult:
    npv10: float
    npv20: float
    npv25: float
    irr10: float
    irr20: float
    irr25: float
    capex_gross: float
    capex_net: float
    cashflows: Tuple[CashflowEntry, ...]

    # Breakdown
    hq_incentive: float = 0.0
    federal_itc: float = 0.0
    tax_shield: float = 0.0
    annual_production_kwh: float = 0.0
    self_consumed_kwh: float = 0.0
    exported_kwh: float = 0.0
    self_consumption_ratio: float = 0.0
    self_sufficiency_percent: float = 0.0
    payback_years: float = 25.0
    lcoe: float = 0.0
    co2_avoided_tonnes_per_year: float = 0.0

    @property
    def total_cashflow_25(self) -> float:
        return sum(cf.net_cashflow for cf in self.cashflows)

    def to_dict(self):
        data = asdict(self)
        data["cashflows"] = [cf.to_dict() for cf in self.cashflows]
        data["total_cashflow_25"] = self.total_cashflow_25
        return data


# ============================================================
# Monte Carlo output
# ============================================================

@dataclass(frozen=True)
class FinancialSummary:
    npv25: float
    npv10: float
    npv20: float
    irr25: float
    irr10: float
    irr20: float
    payback_years: float
    capex_net: float
    total_savings_25: float

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class MonteCarloDistribution:
    """Sorted (ascending) per-iteration values, for histograms."""
    npv25: Tuple[float, ...]
    irr25: Tuple[float, ...]
    payback_years: Tuple[float, ...]

    def to_dict(self):
        return {
            "npv25": list(self.npv25),
            "irr25": list(self.irr25),
            "payback_years": list(self.payback_years),
        }


@dataclass(frozen=True)
class MonteCarloResult:
    p10: FinancialSummary
    p50: FinancialSummary
    p90: FinancialSummary
    mean: FinancialSummary
    iterations: int                      # iterations that succeeded
    distribution: MonteCarloDistribution
    input_ranges: Dict[str, Tuple[float, float]]
    failed_iterations: int = 0

    def to_dict(self):
        return {
            "p10": self.p10.to_dict(),
            "p50": self.p50.to_dict(),
            "p90": self.p90.to_dict(),
            "mean": self.mean.to_dict(),
            "iterations": self.iterations,
            "failed_iterations": self.failed_iterations,
            "distribution": self.distribution.to_dict(),
            "input_ranges": {k: list(v) for k, v in self.input_ranges.items()},
        }


# ============================================================
# Meter data & peak shaving
# ============================================================

FIFTEEN_MIN = "FIFTEEN_MIN"


@dataclass(frozen=True)
class MeterReading:
    timestamp: datetime
    kwh: Optional[float] = None
    kw: Optional[float] = None
    granularity: Optional[str] = None    # "FIFTEEN_MIN", "HOUR", ...


@dataclass(frozen=True)
class HourlySolarProduction:
    hour: int            # 0..23
    month: int           # 1..12
    production_kw: float


@dataclass(frozen=True)
class Peak:
    timestamp: datetime
    gross_kw: float
    solar_kw: float
    net_kw: float
    month: int
    is_monthly_peak: bool = False

    def to_dict(self):
        return {
            "timestamp": self.timestamp.isoformat(),
            "gross_kw": self.gross_kw,
            "solar_kw": self.solar_kw,
            "net_kw": self.net_kw,
            "month": self.month,
            "is_monthly_peak": self.is_monthly_peak,
        }


@dataclass(frozen=True)
class MonthlyPeakStats:
    month: int
    peak_kw: float
    average_peak_kw: float
    peak_count: int      # points above 120% of the month average

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class TariffDetails:
    code: str
    demand_rate: float   # $/kW/month
    energy_rate: float   # $/kWh

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class PeakShavingResult:
    top_peaks: Tuple[Peak, ...]
    monthly_peaks: Tuple[Peak, ...]
    current_annual_demand_charge: float
    potential_demand_reduction: float
    demand_charge_savings: float
    recommended_battery_power_kw: float
    recommended_battery_energy_kwh: float
    peak_distribution: Tuple[MonthlyPeakStats, ...]
    tariff_details: TariffDetails

    def to_dict(self):
        return {
            "top_peaks": [p.to_dict() for p in self.top_peaks],
            "monthly_peaks": [p.to_dict() for p in self.monthly_peaks],
            "current_annual_demand_charge": self.current_annual_demand_charge,
            "potential_demand_reduction": self.potential_demand_reduction,
            "demand_charge_savings": self.demand_charge_savings,
            "recommended_battery_power_kw": self.recommended_battery_power_kw,
            "recommended_battery_energy_kwh": self.recommended_battery_energy_kwh,
            "peak_distribution": [s.to_dict() for s in self.peak_distribution],
            "tariff_details": self.tariff_details.to_dict(),
        }


# ============================================================
# Standard kits
# ============================================================

@dataclass(frozen=True)
class StandardKit:
    id: str
    name: str
    name_fr: str
    pv_kw: float
    battery_kwh: float
    battery_kw: float
    base_price: float
    price_per_watt: float
    target_market: str                   # small / medium / large / industrial
    features: Tuple[str, ...] = field(default_factory=tuple)
    features_fr: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def has_storage(self) -> bool:
        return self.battery_kwh > 0

    def to_dict(self):
        data = asdict(self)
        data["features"] = list(self.features)
        data["features_fr"] = list(self.features_fr)
        return data


@dataclass(frozen=True)
class OptimalSizing:
    pv_kw: float
    battery_kwh: float = 0.0
    battery_kw: float = 0.0

    @property
    def needs_battery(self) -> bool:
        return self.battery_kwh > 0 or self.battery_kw > 0

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class KitComparison:
    oversize_percent: float
    undersize_percent: Optional[float]
    price_vs_custom: float
    custom_price: float

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class KitRecommendation:
    recommended_kit: StandardKit
    alternative_kit: Optional[StandardKit]
    optimal_sizing: OptimalSizing
    comparison: KitComparison
    reasoning: str
    reasoning_fr: str
    exceeds_catalog: bool = False

    def to_dict(self):
        return {
            "recommended_kit": self.recommended_kit.to_dict(),
            "alternative_kit": self.alternative_kit.to_dict() if self.alternative_kit else None,
            "optimal_sizing": self.optimal_sizing.to_dict(),
            "comparison": self.comparison.to_dict(),
            "reasoning": self.reasoning,
            "reasoning_fr": self.reasoning_fr,
            "exceeds_catalog": self.exceeds_catalog,
        }



# ============================================================
# Financing: cash / lease / PPA comparison
# ============================================================

@dataclass(frozen=True)
class YearlyCashflow:
    year: int
    production_kwh: float
    grid_rate: float
    grid_savings: float
    om_cost: float
    net_cashflow: float
    cumulative: float
    cca_benefit: Optional[float] = None      # cash only
    lease_payment: Optional[float] = None    # lease only
    ppa_payment: Optional[float] = None      # PPA only

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class FinancingScenario:
    name: str
    name_fr: str
    investment: float
    yearly_cashflows: Tuple[YearlyCashflow, ...]
    total_savings: float
    avg_annual_savings: float
    payback_year: Optional[int]          # None → not within 25 years
    ownership_year: int

    def to_dict(self):
        return {
            "name": self.name,
            "name_fr": self.name_fr,
            "investment": self.investment,
            "yearly_cashflows": [cf.to_dict() for cf in self.yearly_cashflows],
            "total_savings": self.total_savings,
            "avg_annual_savings": self.avg_annual_savings,
            "payback_year": self.payback_year,
            "ownership_year": self.ownership_year,
        }


@dataclass(frozen=True)
class ProviderEconomics:
    gross_cost: float
    hq_incentive: float
    itc: float
    cca_shield: float
    total_incentives: float
    actual_investment: float

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class CashflowModel:
    cost_per_w: float
    pricing_tier: str
    gross_capex: float
    hq_incentive: float
    net_after_hq: float
    itc: float
    net_client_investment: float

    cash: FinancingScenario
    lease: FinancingScenario
    ppa: FinancingScenario

    provider_economics: ProviderEconomics
    foregone_incentives: float           # what the client gives up with a PPA

    def to_dict(self):
        return {
            "cost_per_w": self.cost_per_w,
            "pricing_tier": self.pricing_tier,
            "gross_capex": self.gross_capex,
            "hq_incentive": self.hq_incentive,
            "net_after_hq": self.net_after_hq,
            "itc": self.itc,
            "net_client_investment": self.net_client_investment,
            "cash": self.cash.to_dict(),
            "lease": self.lease.to_dict(),
            "ppa": self.ppa.to_dict(),
            "provider_economics": self.provider_economics.to_dict(),
            "foregone_incentives": self.foregone_incentives,
        }
