import pytest

from solar_engine_pro.scenario_runner import ScenarioRunner, run_scenario
from solar_engine_pro.types import EconomicAssumptions, SiteScenarioParams


def make_site(pv_kw=100, consumption=480_000, peak_kw=220, **kwargs):
    return SiteScenarioParams(
        pv_size_kw=pv_kw,
        annual_consumption_kwh=consumption,
        peak_kw=peak_kw,
        **kwargs,
    )


# ------------------------------------------------------------
# Production
# ------------------------------------------------------------

def test_effective_yield_applies_losses(assumptions):
    # 1150 × (1 - 0.004 × 15) × 0.97 × 0.96
    assert ScenarioRunner.effective_yield(assumptions) == pytest.approx(1006.6272)


def test_bifacial_boost_only_when_enabled(assumptions):
    base = ScenarioRunner.effective_yield(assumptions)

    ignored = assumptions.with_overrides(bifacial_boost=0.10)
    assert ScenarioRunner.effective_yield(ignored) == pytest.approx(base)

    enabled = assumptions.with_overrides(bifacial_enabled=True, bifacial_boost=0.10)
    assert ScenarioRunner.effective_yield(enabled) == pytest.approx(base * 1.10)


def test_self_consumption_is_capped(reference_site, assumptions):
    result = ScenarioRunner(reference_site).run(assumptions)

    assert result.annual_production_kwh == pytest.approx(100_662.72)
    assert result.self_consumption_ratio == pytest.approx(0.95)
    assert result.self_consumed_kwh + result.exported_kwh == pytest.approx(result.annual_production_kwh)


def test_small_load_limits_self_consumption(assumptions):
    result = run_scenario(make_site(consumption=50_000), assumptions)
    expected = 50_000 / (result.annual_production_kwh * 1.1)

    assert result.self_consumption_ratio == pytest.approx(expected)
    assert result.exported_kwh > 0


# ------------------------------------------------------------
# Reference site
# ------------------------------------------------------------

def test_reference_site_capex(reference_site, assumptions):
    result = ScenarioRunner(reference_site).run(assumptions)

    assert result.capex_gross == pytest.approx(200_000)
    assert result.capex_net == pytest.approx(84_000)
    assert result.capex_net < result.capex_gross


def test_reference_site_pays_back(reference_site, assumptions):
    result = ScenarioRunner(reference_site).run(assumptions)

    assert result.irr25 > 0
    assert result.npv25 > 0
    assert 0 < result.payback_years < 25
    assert result.lcoe > 0
    assert result.co2_avoided_tonnes_per_year == pytest.approx(result.self_consumed_kwh * 0.002 / 1000)


def test_year0_is_net_capex_minus_tax_shield(reference_site, assumptions):
    result = ScenarioRunner(reference_site).run(assumptions)

    assert len(result.cashflows) == 26
    assert result.cashflows[0].net_cashflow == pytest.approx(-result.capex_net + result.tax_shield)


@pytest.mark.parametrize("pv_kw", [0, 10, 100, 750, 2500])
def test_cumulative_cashflow_integrity(pv_kw, assumptions):
    result = run_scenario(make_site(pv_kw=pv_kw), assumptions)

    running = 0.0
    for year, entry in enumerate(result.cashflows):
        running += entry.net_cashflow
        assert entry.year == year
        assert entry.cumulative == pytest.approx(running)

    assert 0 <= result.payback_years <= 25
    for irr in (result.irr10, result.irr20, result.irr25):
        assert 0.0 <= irr <= 1.0


# ------------------------------------------------------------
# Edge cases
# ------------------------------------------------------------

def test_zero_pv(assumptions):
    result = run_scenario(make_site(pv_kw=0), assumptions)

    assert result.annual_production_kwh == 0
    assert result.self_consumption_ratio == 0
    assert result.capex_net == 0
    assert result.payback_years == 25
    assert result.irr25 == 0.0
    assert all(c.net_cashflow <= 0 for c in result.cashflows[1:])


def test_zero_consumption(assumptions):
    result = run_scenario(make_site(consumption=0), assumptions)

    assert result.self_consumed_kwh == 0
    assert result.self_sufficiency_percent == 0
    assert result.exported_kwh == pytest.approx(result.annual_production_kwh)


def test_surplus_revenue_starts_in_year_3(assumptions):
    site = make_site(consumption=20_000)
    with_surplus = run_scenario(site, assumptions)
    without = run_scenario(site, assumptions.with_overrides(hq_surplus_rate=0.0))

    for year in (0, 1, 2):
        assert with_surplus.cashflows[year].net_cashflow == pytest.approx(without.cashflows[year].net_cashflow)
    assert with_surplus.cashflows[3].net_cashflow > without.cashflows[3].net_cashflow


# ------------------------------------------------------------
# Discount rate
# ------------------------------------------------------------

def test_irr_does_not_depend_on_discount_rate(reference_site, assumptions):
    low = run_scenario(reference_site, assumptions.with_overrides(discount_rate=0.04))
    high = run_scenario(reference_site, assumptions.with_overrides(discount_rate=0.10))

    assert low.irr25 == high.irr25
    assert low.irr10 == high.irr10


def test_npv_decreases_with_discount_rate(reference_site, assumptions):
    npvs = [
        run_scenario(reference_site, assumptions.with_overrides(discount_rate=r)).npv25
        for r in (0.02, 0.04, 0.06, 0.08, 0.10)
    ]
    assert npvs == sorted(npvs, reverse=True)


# ------------------------------------------------------------
# Tariffs & O&M
# ------------------------------------------------------------

def test_missing_site_tariffs_use_assumptions(assumptions):
    explicit = run_scenario(make_site(tariff_energy=0.06061, tariff_power=17.573), assumptions)
    implicit = run_scenario(make_site(), assumptions)

    assert implicit.npv25 == pytest.approx(explicit.npv25)


def test_om_share_of_capex_matches_per_kwc(reference_site, assumptions):
    per_kwc = run_scenario(reference_site, assumptions.with_overrides(om_per_kwc=15.0))
    share = run_scenario(
        reference_site,
        assumptions.with_overrides(om_per_kwc=None, om_solar_percent=0.0075),
    )
    assert share.npv25 == pytest.approx(per_kwc.npv25)


def test_runner_is_callable(reference_site, assumptions):
    runner = ScenarioRunner(reference_site)
    assert runner(assumptions).npv25 == pytest.approx(runner.run(assumptions).npv25)
