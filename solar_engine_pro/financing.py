# solar_engine_pro/financing.py

from __future__ import annotations
import logging
from typing import List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from .types import (
    CashflowModel,
    FinancingScenario,
    ProviderEconomics,
    YearlyCashflow,
)
from .cost_engine import CostEngine, solar_pricing_tier_label, tiered_solar_cost_per_w
from .roi_engine import ANALYSIS_YEARS


logger = logging.getLogger(__name__)

CCA_HALF_YEAR_FACTOR = 0.5        # only half the CCA rate in the acquisition year
EFFECTIVE_CCA_SHIELD = 0.26       # lifetime CCA benefit as a share of net investment


class FinancingTerms(BaseModel):
    """Market assumptions for comparing cash, capital lease and PPA."""

    model_config = ConfigDict(frozen=True)

    kwh_inflation: float = 0.048          # grid rate escalation seen by the client
    provider_inflation: float = 0.03      # PPA provider rate escalation
    degradation: float = Field(default=0.005, ge=0.0, lt=1.0)
    om_rate: float = Field(default=0.01, ge=0.0)          # share of gross CAPEX per year
    om_escalation: float = 0.025

    cca_rate: float = Field(default=0.50, ge=0.0, le=1.0)  # class 43.2 declining balance
    tax_rate: float = Field(default=0.265, ge=0.0, le=1.0)

    lease_term: int = Field(default=7, gt=0)
    lease_premium: float = Field(default=0.15, ge=0.0)

    ppa_term: int = Field(default=16, ge=0)
    ppa_discount: float = Field(default=0.40, ge=0.0, le=1.0)
    ppa_om_rate: float = Field(default=0.07, ge=0.0, le=1.0)  # post-term O&M, share of solar value


# ============================================================
# FINANCING COMPARISON
# ============================================================

class FinancingEngine:
    """
    25-year client cashflows for three ways of paying for the same system:
    - cash: client pays net CAPEX, keeps savings and the CCA tax shield
    - lease: no upfront cost, fixed payments (net CAPEX + premium) over the term
    - PPA: no upfront cost, buys production at a discount during the term,
      owns the system afterwards and pays O&M as a share of its value
    """

    @staticmethod
    def yearly_base(
        year: int,
        production_y1: float,
        grid_rate_y1: float,
        gross_capex: float,
        terms: FinancingTerms,
    ):
        """(production, grid rate, grid savings, O&M) shared by all three options."""
        production = production_y1 * (1.0 - terms.degradation) ** (year - 1)
        grid_rate = grid_rate_y1 * (1.0 + terms.kwh_inflation) ** (year - 1)
        om_cost = gross_capex * terms.om_rate * (1.0 + terms.om_escalation) ** (year - 1)
        return production, grid_rate, production * grid_rate, om_cost

    @staticmethod
    def payback_year(cashflows: Sequence[YearlyCashflow], threshold: float = 0.0) -> Optional[int]:
        """First year whose cumulative reaches threshold, None if never."""
        return next((cf.year for cf in cashflows if cf.cumulative >= threshold), None)

    @staticmethod
    def summarize(
        name: str,
        name_fr: str,
        investment: float,
        cashflows: List[YearlyCashflow],
        ownership_year: int,
        payback_threshold: float = 0.0,
    ) -> FinancingScenario:
        total = cashflows[-1].cumulative
        return FinancingScenario(
            name=name,
            name_fr=name_fr,
            investment=investment,
            yearly_cashflows=tuple(cashflows),
            total_savings=total,
            avg_annual_savings=(total + investment) / ANALYSIS_YEARS,
            payback_year=FinancingEngine.payback_year(cashflows, payback_threshold),
            ownership_year=ownership_year,
        )

    # -------------------------
    # Cash purchase
    # -------------------------
    @staticmethod
    def cash(
        net_investment: float,
        production_y1: float,
        grid_rate_y1: float,
        gross_capex: float,
        terms: FinancingTerms,
    ) -> FinancingScenario:
        cashflows: List[YearlyCashflow] = []
        cumulative = -net_investment
        ucc = net_investment   # undepreciated capital cost

        for year in range(1, ANALYSIS_YEARS + 1):
            production, grid_rate, savings, om = FinancingEngine.yearly_base(
                year, production_y1, grid_rate_y1, gross_capex, terms
            )

            rate = terms.cca_rate * CCA_HALF_YEAR_FACTOR if year == 1 else terms.cca_rate
            deduction = ucc * rate
            ucc -= deduction
            cca_benefit = deduction * terms.tax_rate

            net = savings - om + cca_benefit
            cumulative += net
            cashflows.append(YearlyCashflow(
                year=year,
                production_kwh=production,
                grid_rate=grid_rate,
                grid_savings=savings,
                om_cost=om,
                net_cashflow=net,
                cumulative=cumulative,
                cca_benefit=cca_benefit,
            ))

        return FinancingEngine.summarize("Cash", "Comptant", net_investment, cashflows, ownership_year=1)

    # -------------------------
    # Capital lease
    # -------------------------
    @staticmethod
    def lease(
        net_investment: float,
        production_y1: float,
        grid_rate_y1: float,
        gross_capex: float,
        terms: FinancingTerms,
    ) -> FinancingScenario:
        annual_payment = net_investment / terms.lease_term * (1.0 + terms.lease_premium)

        cashflows: List[YearlyCashflow] = []
        cumulative = 0.0
        for year in range(1, ANALYSIS_YEARS + 1):
            production, grid_rate, savings, om = FinancingEngine.yearly_base(
                year, production_y1, grid_rate_y1, gross_capex, terms
            )
            payment = annual_payment if year <= terms.lease_term else 0.0

            net = savings - om - payment
            cumulative += net
            cashflows.append(YearlyCashflow(
                year=year,
                production_kwh=production,
                grid_rate=grid_rate,
                grid_savings=savings,
                om_cost=om,
                net_cashflow=net,
                cumulative=cumulative,
                lease_payment=payment,
            ))

        return FinancingEngine.summarize(
            "Lease", "Crédit-bail", 0.0, cashflows, ownership_year=terms.lease_term + 1
        )

    # -------------------------
    # PPA
    # -------------------------
    @staticmethod
    def ppa(
        production_y1: float,
        grid_rate_y1: float,
        gross_capex: float,
        terms: FinancingTerms,
        foregone_incentives: float,
    ) -> FinancingScenario:
        cashflows: List[YearlyCashflow] = []
        cumulative = 0.0
        for year in range(1, ANALYSIS_YEARS + 1):
            production, grid_rate, savings, om = FinancingEngine.yearly_base(
                year, production_y1, grid_rate_y1, gross_capex, terms
            )

            if year <= terms.ppa_term:
                provider_rate = (
                    grid_rate_y1
                    * (1.0 + terms.provider_inflation) ** (year - 1)
                    * (1.0 - terms.ppa_discount)
                )
                payment = production * provider_rate
            else:
                payment = savings * terms.ppa_om_rate

            net = savings - payment
            cumulative += net
            cashflows.append(YearlyCashflow(
                year=year,
                production_kwh=production,
                grid_rate=grid_rate,
                grid_savings=savings,
                om_cost=om,
                net_cashflow=net,
                cumulative=cumulative,
                ppa_payment=payment,
            ))

        # A PPA only "pays back" once it beats the incentives given up to the provider
        return FinancingEngine.summarize(
            "PPA", "PPA", 0.0, cashflows,
            ownership_year=terms.ppa_term + 1,
            payback_threshold=foregone_incentives,
        )

    @staticmethod
    def provider_economics(system_size_kw: float, provider_cost: float) -> ProviderEconomics:
        hq_incentive, itc = CostEngine.incentives(system_size_kw, provider_cost)
        cca_shield = (provider_cost - hq_incentive - itc) * EFFECTIVE_CCA_SHIELD
        total = hq_incentive + itc + cca_shield
        return ProviderEconomics(
            gross_cost=provider_cost,
            hq_incentive=hq_incentive,
            itc=itc,
            cca_shield=cca_shield,
            total_incentives=total,
            actual_investment=max(0.0, provider_cost - total),
        )

    # =================================================
    # MAIN BUILDER
    # =================================================
    @staticmethod
    def build(
        system_size_kw: float,
        annual_production_kwh: float,
        grid_rate_y1: float,
        cost_per_w: Optional[float] = None,
        terms: Optional[FinancingTerms] = None,
        provider_project_cost: Optional[float] = None,
    ) -> CashflowModel:
        """
        cost_per_w None → tiered market price for the system size.
        provider_project_cost None (or 0) → provider pays the same gross CAPEX.
        """
        terms = terms or FinancingTerms()
        if cost_per_w is None:
            cost_per_w = tiered_solar_cost_per_w(system_size_kw)

        gross_capex = system_size_kw * 1000.0 * cost_per_w
        hq_incentive, itc = CostEngine.incentives(system_size_kw, gross_capex)
        net_after_hq = gross_capex - hq_incentive
        net_investment = net_after_hq - itc

        foregone = hq_incentive + itc + net_investment * EFFECTIVE_CCA_SHIELD

        logger.debug(
            "Financing model for %.1f kW at $%.2f/W: net investment %.0f",
            system_size_kw, cost_per_w, net_investment,
        )

        return CashflowModel(
            cost_per_w=cost_per_w,
            pricing_tier=solar_pricing_tier_label(system_size_kw, "en"),
            gross_capex=gross_capex,
            hq_incentive=hq_incentive,
            net_after_hq=net_after_hq,
            itc=itc,
            net_client_investment=net_investment,
            cash=FinancingEngine.cash(
                net_investment, annual_production_kwh, grid_rate_y1, gross_capex, terms
            ),
            lease=FinancingEngine.lease(
                net_investment, annual_production_kwh, grid_rate_y1, gross_capex, terms
            ),
            ppa=FinancingEngine.ppa(
                annual_production_kwh, grid_rate_y1, gross_capex, terms, foregone
            ),
            provider_economics=FinancingEngine.provider_economics(
                system_size_kw, provider_project_cost or gross_capex
            ),
            foregone_incentives=foregone,
        )


def build_cashflow_model(
    system_size_kw: float,
    annual_production_kwh: float,
    grid_rate_y1: float,
    cost_per_w: Optional[float] = None,
    terms: Optional[FinancingTerms] = None,
    provider_project_cost: Optional[float] = None,
) -> CashflowModel:
    return FinancingEngine.build(
        system_size_kw, annual_production_kwh, grid_rate_y1,
        cost_per_w=cost_per_w, terms=terms, provider_project_cost=provider_project_cost,
    )
