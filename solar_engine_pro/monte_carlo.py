# solar_engine_pro/monte_carlo.py

from __future__ import annotations
import logging
import math
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .types import (
    EconomicAssumptions,
    FinancialSummary,
    MonteCarloDistribution,
    MonteCarloResult,
    ScenarioResult,
)
from .random_source import LCGRandom, RandomSource, SystemRandomSource, random_in_range
from .roi_engine import ROIEngine
from .settings import get_settings


logger = logging.getLogger(__name__)

Range = Tuple[float, float]
ScenarioFn = Callable[[EconomicAssumptions], ScenarioResult]


class MonteCarloError(RuntimeError):
    """Raised when no iteration of a run produced a result."""


# ============================================================
# Configuration
# ============================================================

class VariableRanges(BaseModel):
    """Closed [min, max] sampling interval per uncertain variable."""

    model_config = ConfigDict(frozen=True)

    tariff_escalation: Range = (0.025, 0.035)    # HQ historic CAGR 2.6-3.1%
    discount_rate: Range = (0.06, 0.08)          # WACC
    solar_yield: Range = (1075.0, 1225.0)        # kWh/kWp/year
    bifacial_boost: Range = (0.10, 0.20)
    om_per_kwc: Range = (10.0, 20.0)             # $/kWc/year
    solar_cost_per_w: Range = (1.75, 2.35)

    @model_validator(mode="after")
    def check_bounds(self) -> "VariableRanges":
        for name, (low, high) in self:
            if low > high:
                raise ValueError(f"{name}: min {low} is greater than max {high}")
        return self

    def as_dict(self) -> Dict[str, Range]:
        return {name: (float(low), float(high)) for name, (low, high) in self}


class MonteCarloConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    iterations: int = Field(default=500, gt=0)
    variable_ranges: VariableRanges = Field(default_factory=VariableRanges)
    seed: Optional[int] = None


# ============================================================
# Per-iteration unit
# ============================================================

@dataclass(frozen=True)
class SampledInputs:
    tariff_escalation: float
    discount_rate: float
    solar_yield: float
    bifacial_boost: float
    om_per_kwc: float
    solar_cost_per_w: float

    @property
    def effective_yield(self) -> float:
        return _round_half_up(self.solar_yield * (1.0 + self.bifacial_boost))

    def apply(self, base: EconomicAssumptions) -> EconomicAssumptions:
        """
        Fresh assumptions for this iteration.
        - bifacial boost is folded into the yield, so the flag is switched off
        - O&M becomes a fraction of CAPEX using the sampled $/W
        """
        return base.with_overrides(
            tariff_escalation=self.tariff_escalation,
            discount_rate=self.discount_rate,
            solar_yield_kwh_per_kwp=self.effective_yield,
            bifacial_enabled=False,
            om_per_kwc=None,
            om_solar_percent=self.om_per_kwc / (self.solar_cost_per_w * 1000.0),
            solar_cost_per_w=self.solar_cost_per_w,
        )


@dataclass(frozen=True)
class IterationOutcome:
    index: int
    sample: SampledInputs
    result: Optional[ScenarioResult] = None
    payback_years: float = 0.0
    total_savings_25: float = 0.0
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.result is not None


def _round_half_up(value: float) -> float:
    return float(math.floor(value + 0.5))


# ============================================================
# Statistics
# ============================================================

def percentile(values: Sequence[float], p: float) -> float:
    """Nearest-rank: sort ascending, index = floor(n * p), clamped to n - 1."""
    ordered = sorted(values)
    index = min(int(math.floor(len(ordered) * p)), len(ordered) - 1)
    return ordered[index]


def mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


SUMMARY_METRICS: Dict[str, Callable[[IterationOutcome], float]] = {
    "npv25": lambda o: o.result.npv25,
    "npv10": lambda o: o.result.npv10,
    "npv20": lambda o: o.result.npv20,
    "irr25": lambda o: o.result.irr25,
    "irr10": lambda o: o.result.irr10,
    "irr20": lambda o: o.result.irr20,
    "payback_years": lambda o: o.payback_years,
    "capex_net": lambda o: o.result.capex_net,
    "total_savings_25": lambda o: o.total_savings_25,
}


def summarize(outcomes: Sequence[IterationOutcome], stat: Callable[[Sequence[float]], float]) -> FinancialSummary:
    return FinancialSummary(**{
        name: stat([accessor(o) for o in outcomes])
        for name, accessor in SUMMARY_METRICS.items()
    })


# ============================================================
# Simulator
# ============================================================

class MonteCarloSimulator:
    """
    Runs the scenario model under sampled assumption variants and reports
    P10/P50/P90/mean. Samples are drawn up front in iteration order, so a
    seeded run gives the same result whatever the worker count.
    """

    def __init__(
        self,
        run_scenario: ScenarioFn,
        random_source: Optional[RandomSource] = None,
        max_workers: Optional[int] = None,
        deadline_seconds: Optional[float] = None,
    ):
        settings = get_settings()
        self.run_scenario = run_scenario
        self.random_source = random_source
        self.max_workers = max_workers if max_workers is not None else settings.monte_carlo_workers
        self.deadline_seconds = (
            deadline_seconds if deadline_seconds is not None
            else settings.monte_carlo_deadline_seconds
        )

    def _source_for(self, config: MonteCarloConfig) -> RandomSource:
        if self.random_source is not None:
            return self.random_source
        if config.seed is not None:
            return LCGRandom(config.seed)
        return SystemRandomSource()

    @staticmethod
    def sample(source: RandomSource, ranges: VariableRanges) -> SampledInputs:
        # Order matters for seeded reproducibility
        tariff_escalation = random_in_range(source, ranges.tariff_escalation)
        discount_rate = random_in_range(source, ranges.discount_rate)
        solar_yield = _round_half_up(random_in_range(source, ranges.solar_yield))
        bifacial_boost = random_in_range(source, ranges.bifacial_boost)
        om_per_kwc = random_in_range(source, ranges.om_per_kwc)
        solar_cost_per_w = random_in_range(source, ranges.solar_cost_per_w)

        return SampledInputs(
            tariff_escalation=tariff_escalation,
            discount_rate=discount_rate,
            solar_yield=solar_yield,
            bifacial_boost=bifacial_boost,
            om_per_kwc=om_per_kwc,
            solar_cost_per_w=solar_cost_per_w,
        )

    def run_iteration(
        self, index: int, base: EconomicAssumptions, sample: SampledInputs
    ) -> IterationOutcome:
        try:
            result = self.run_scenario(sample.apply(base))
            payback = ROIEngine.payback_years(result.cashflows)
            total = result.total_cashflow_25
        except Exception as exc:
            logger.warning("Monte Carlo iteration %d failed: %s", index, exc)
            return IterationOutcome(index=index, sample=sample, error=exc)

        return IterationOutcome(
            index=index,
            sample=sample,
            result=result,
            payback_years=payback,
            total_savings_25=total,
        )

    def _evaluate(self, base: EconomicAssumptions, samples: List[SampledInputs]) -> List[IterationOutcome]:
        deadline = None
        if self.deadline_seconds is not None:
            deadline = time.monotonic() + self.deadline_seconds

        if self.max_workers <= 1:
            outcomes = []
            for index, sample in enumerate(samples):
                if deadline is not None and time.monotonic() > deadline:
                    logger.warning(
                        "Monte Carlo deadline reached after %d of %d iterations",
                        index, len(samples),
                    )
                    break
                outcomes.append(self.run_iteration(index, base, sample))
            return outcomes

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = [
                pool.submit(self.run_iteration, index, base, sample)
                for index, sample in enumerate(samples)
            ]
            timeout = None if deadline is None else max(0.0, deadline - time.monotonic())
            done, not_done = wait(futures, timeout=timeout)
            for future in not_done:
                future.cancel()
            if not_done:
                logger.warning(
                    "Monte Carlo deadline reached after %d of %d iterations",
                    len(done), len(samples),
                )
            return [f.result() for f in futures if f in done]

    def run(
        self, base: EconomicAssumptions, config: Optional[MonteCarloConfig] = None
    ) -> MonteCarloResult:
        if config is None:
            config = MonteCarloConfig(iterations=get_settings().monte_carlo_iterations)

        source = self._source_for(config)
        samples = [self.sample(source, config.variable_ranges) for _ in range(config.iterations)]

        logger.debug(
            "Running %d Monte Carlo iterations on %d worker(s)",
            config.iterations, self.max_workers,
        )
        outcomes = self._evaluate(base, samples)

        succeeded = [o for o in outcomes if o.ok]
        failed = [o for o in outcomes if not o.ok]

        if not outcomes:
            raise MonteCarloError("Monte Carlo deadline reached before any iteration completed")
        if not succeeded:
            raise MonteCarloError("All Monte Carlo iterations failed")
        if failed:
            logger.info(
                "Monte Carlo run kept %d iterations, %d failed",
                len(succeeded), len(failed),
            )

        return self.aggregate(succeeded, config.variable_ranges, failed_iterations=len(failed))

    @staticmethod
    def aggregate(
        outcomes: Sequence[IterationOutcome],
        ranges: VariableRanges,
        failed_iterations: int = 0,
    ) -> MonteCarloResult:
        return MonteCarloResult(
            p10=summarize(outcomes, lambda v: percentile(v, 0.10)),
            p50=summarize(outcomes, lambda v: percentile(v, 0.50)),
            p90=summarize(outcomes, lambda v: percentile(v, 0.90)),
            mean=summarize(outcomes, mean),
            iterations=len(outcomes),
            distribution=MonteCarloDistribution(
                npv25=tuple(sorted(o.result.npv25 for o in outcomes)),
                irr25=tuple(sorted(o.result.irr25 for o in outcomes)),
                payback_years=tuple(sorted(o.payback_years for o in outcomes)),
            ),
            input_ranges=ranges.as_dict(),
            failed_iterations=failed_iterations,
        )


def run_monte_carlo(
    base: EconomicAssumptions,
    run_scenario: ScenarioFn,
    config: Optional[MonteCarloConfig] = None,
    random_source: Optional[RandomSource] = None,
) -> MonteCarloResult:
    return MonteCarloSimulator(run_scenario, random_source=random_source).run(base, config)
