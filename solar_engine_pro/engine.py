# solar_engine_pro/engine.py

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .types import (
    CashflowModel,
    EconomicAssumptions,
    KitRecommendation,
    MeterReading,
    MonteCarloResult,
    OptimalSizing,
    PeakShavingResult,
    ScenarioResult,
    SiteScenarioParams,
)
from .financing import FinancingEngine, FinancingTerms
from .kit_catalog import KitCatalog
from .kit_recommender import KitRecommender, KitSelectionConfig
from .monte_carlo import MonteCarloConfig, MonteCarloSimulator
from .peak_optimizer import PeakOptimizer, PeakShavingConfig
from .profile_generator import generate_solar_production_profile
from .random_source import RandomSource
from .scenario_runner import ScenarioRunner
from .tariff_model import TariffModel


logger = logging.getLogger(__name__)


@dataclass
class AnalysisInput:
    """Everything a request handler hands over for one site analysis."""
    site: SiteScenarioParams
    assumptions: EconomicAssumptions = field(default_factory=EconomicAssumptions)

    # Meter data (optional) → peak shaving + battery sizing
    readings: List[MeterReading] = field(default_factory=list)
    tariff_code: str = "M"
    target_reduction_percent: float = 0.15
    min_battery_coverage: float = 0.5

    # Monte Carlo (None → skipped)
    monte_carlo: Optional[MonteCarloConfig] = None

    # Cash / lease / PPA comparison (None → skipped)
    financing: Optional[FinancingTerms] = None

    kit_selection: KitSelectionConfig = field(default_factory=KitSelectionConfig)


@dataclass(frozen=True)
class AnalysisReport:
    scenario: ScenarioResult
    peak_shaving: Optional[PeakShavingResult]
    monte_carlo: Optional[MonteCarloResult]
    kit: Optional[KitRecommendation]
    financing: Optional[CashflowModel] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scenario": self.scenario.to_dict(),
            "peak_shaving": self.peak_shaving.to_dict() if self.peak_shaving else None,
            "monte_carlo": self.monte_carlo.to_dict() if self.monte_carlo else None,
            "kit": self.kit.to_dict() if self.kit else None,
            "financing": self.financing.to_dict() if self.financing else None,
        }


class SolarEnginePro:
    """
    Public entry point: peak shaving → scenario → Monte Carlo → standard kit
    → financing options.
    """

    def __init__(
        self,
        catalog: Optional[KitCatalog] = None,
        random_source: Optional[RandomSource] = None,
    ):
        self.recommender = KitRecommender(catalog)
        self.random_source = random_source

    def compute(self, data: AnalysisInput) -> AnalysisReport:
        site = data.site
        assumptions = data.assumptions

        # ------------------------------------------------------
        # 1) Peak shaving (only with meter data)
        # ------------------------------------------------------
        peak_shaving = None
        if data.readings:
            profile = generate_solar_production_profile(
                site.pv_size_kw, assumptions.solar_yield_kwh_per_kwp
            )
            peak_shaving = PeakOptimizer.analyze(
                data.readings,
                PeakShavingConfig(
                    tariff_code=data.tariff_code,
                    target_reduction_percent=data.target_reduction_percent,
                    min_battery_coverage=data.min_battery_coverage,
                    solar_production_profile=profile,
                ),
            )

        # ------------------------------------------------------
        # 2) Deterministic scenario
        # ------------------------------------------------------
        site = self._with_tariff_defaults(site, data.tariff_code, peak_shaving)
        runner = ScenarioRunner(site)
        scenario = runner.run(assumptions)

        # ------------------------------------------------------
        # 3) Monte Carlo
        # ------------------------------------------------------
        monte_carlo = None
        if data.monte_carlo is not None:
            simulator = MonteCarloSimulator(runner, random_source=self.random_source)
            monte_carlo = simulator.run(assumptions, data.monte_carlo)

        # ------------------------------------------------------
        # 4) Standard kit
        # ------------------------------------------------------
        kit = None
        if site.pv_size_kw > 0:
            sizing = OptimalSizing(
                pv_kw=site.pv_size_kw,
                battery_kwh=peak_shaving.recommended_battery_energy_kwh if peak_shaving else 0.0,
                battery_kw=peak_shaving.recommended_battery_power_kw if peak_shaving else 0.0,
            )
            kit = self.recommender.recommend(sizing, data.kit_selection)
        else:
            logger.info("No PV size given, skipping standard kit recommendation")

        # ------------------------------------------------------
        # 5) Financing options
        # ------------------------------------------------------
        financing = None
        if data.financing is not None and site.pv_size_kw > 0:
            financing = FinancingEngine.build(
                site.pv_size_kw,
                scenario.annual_production_kwh,
                site.tariff_energy,
                cost_per_w=assumptions.solar_cost_per_w,
                terms=data.financing,
            )

        return AnalysisReport(
            scenario=scenario,
            peak_shaving=peak_shaving,
            monte_carlo=monte_carlo,
            kit=kit,
            financing=financing,
        )

    @staticmethod
    def _with_tariff_defaults(
        site: SiteScenarioParams,
        tariff_code: str,
        peak_shaving: Optional[PeakShavingResult],
    ) -> SiteScenarioParams:
        """Fill missing rates from the tariff table, and the peak from meter data."""
        tariff = TariffModel(tariff_code)
        peak_kw = site.peak_kw
        if peak_kw <= 0 and peak_shaving and peak_shaving.monthly_peaks:
            peak_kw = max(p.gross_kw for p in peak_shaving.monthly_peaks)

        return SiteScenarioParams(
            pv_size_kw=site.pv_size_kw,
            annual_consumption_kwh=site.annual_consumption_kwh,
            tariff_energy=site.tariff_energy if site.tariff_energy is not None else tariff.energy_rate,
            tariff_power=site.tariff_power if site.tariff_power is not None else tariff.demand_rate,
            peak_kw=peak_kw,
        )
