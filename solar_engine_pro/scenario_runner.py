# solar_engine_pro/scenario_runner.py

from __future__ import annotations
from typing import List

from .types import EconomicAssumptions, ScenarioResult, SiteScenarioParams
from .cost_engine import CostEngine
from .roi_engine import ROIEngine, ANALYSIS_YEARS


ASSUMED_TEMP_DELTA_C = 15.0       # operating temperature above STC (25 °C)
INVERTER_EFFICIENCY = 0.96
MAX_SELF_CONSUMPTION = 0.95
SURPLUS_START_YEAR = 3            # 24-month HQ netting cycle
SOLAR_PEAK_SHARE_OF_PV = 0.15
SOLAR_PEAK_SHARE_OF_DEMAND = 0.10
CO2_KG_PER_KWH = 0.002
NPV_HORIZONS = (10, 20, 25)


class ScenarioRunner:
    """
    Closed-form 26-year cashflow model for one site (no hourly simulation).
    Callable with an EconomicAssumptions, so it can be handed to the
    Monte Carlo simulator as-is.
    """

    def __init__(self, site: SiteScenarioParams):
        self.site = site

    def __call__(self, assumptions: EconomicAssumptions) -> ScenarioResult:
        return self.run(assumptions)

    # =================================================
    # PRODUCTION
    # =================================================
    @staticmethod
    def effective_yield(assumptions: EconomicAssumptions) -> float:
        base = assumptions.solar_yield_kwh_per_kwp
        if assumptions.bifacial_enabled:
            base *= 1.0 + assumptions.bifacial_boost

        temp_loss = abs(assumptions.temperature_coefficient) * ASSUMED_TEMP_DELTA_C
        return base * (1.0 - temp_loss) * (1.0 - assumptions.wire_loss) * INVERTER_EFFICIENCY

    # =================================================
    # MAIN RUNNER
    # =================================================
    def run(self, assumptions: EconomicAssumptions) -> ScenarioResult:
        h = assumptions
        site = self.site
        pv_kw = site.pv_size_kw

        annual_production = pv_kw * self.effective_yield(h)
        if annual_production > 0:
            self_consumption_ratio = min(
                MAX_SELF_CONSUMPTION,
                site.annual_consumption_kwh / (annual_production * 1.1),
            )
        else:
            self_consumption_ratio = 0.0
        self_consumed = annual_production * self_consumption_ratio
        exported = annual_production - self_consumed

        # -------------------------
        # CAPEX, incentives, tax shield
        # -------------------------
        cost_engine = CostEngine(h)
        capex = cost_engine.compute(pv_kw)

        # -------------------------
        # Year-1 components
        # -------------------------
        energy_rate = site.tariff_energy if site.tariff_energy is not None else h.tariff_energy
        demand_rate = site.tariff_power if site.tariff_power is not None else h.tariff_power

        energy_savings_y1 = self_consumed * energy_rate
        surplus_revenue_y1 = exported * h.hq_surplus_rate

        solar_peak_contribution = min(
            pv_kw * SOLAR_PEAK_SHARE_OF_PV,
            site.peak_kw * SOLAR_PEAK_SHARE_OF_DEMAND,
        )
        demand_savings_y1 = solar_peak_contribution * demand_rate * 12
        om_cost_y1 = cost_engine.om_cost_year1(pv_kw)

        # -------------------------
        # Year 0..25
        # -------------------------
        values: List[float] = [-capex.capex_net + capex.tax_shield]
        demand_escalation = h.effective_demand_escalation()

        for year in range(1, ANALYSIS_YEARS + 1):
            degradation = (1.0 - h.degradation_rate) ** year
            escalation = (1.0 + h.tariff_escalation) ** year

            energy = energy_savings_y1 * degradation * escalation
            surplus = surplus_revenue_y1 * degradation * escalation if year >= SURPLUS_START_YEAR else 0.0
            demand = demand_savings_y1 * (1.0 + demand_escalation) ** year
            om = om_cost_y1 * (1.0 + h.om_escalation) ** year

            values.append(energy + surplus + demand - om)

        cashflows = ROIEngine.build_cashflows(values)
        npv = {n: ROIEngine.npv(values, h.discount_rate, n) for n in NPV_HORIZONS}
        irr = {n: ROIEngine.irr(values, n, scale=capex.capex_net) for n in NPV_HORIZONS}

        consumption = site.annual_consumption_kwh
        return ScenarioResult(
            npv10=npv[10],
            npv20=npv[20],
            npv25=npv[25],
            irr10=irr[10],
            irr20=irr[20],
            irr25=irr[25],
            capex_gross=capex.capex_gross,
            capex_net=capex.capex_net,
            cashflows=cashflows,
            hq_incentive=capex.hq_incentive,
            federal_itc=capex.federal_itc,
            tax_shield=capex.tax_shield,
            annual_production_kwh=annual_production,
            self_consumed_kwh=self_consumed,
            exported_kwh=exported,
            self_consumption_ratio=self_consumption_ratio,
            self_sufficiency_percent=(self_consumed / consumption * 100.0) if consumption > 0 else 0.0,
            payback_years=ROIEngine.payback_years(cashflows),
            lcoe=ROIEngine.lcoe(capex.capex_net, om_cost_y1, annual_production, h.degradation_rate),
            co2_avoided_tonnes_per_year=self_consumed * CO2_KG_PER_KWH / 1000.0,
        )


def run_scenario(site: SiteScenarioParams, assumptions: EconomicAssumptions) -> ScenarioResult:
    return ScenarioRunner(site).run(assumptions)
