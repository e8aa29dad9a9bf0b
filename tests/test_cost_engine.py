import pytest

from solar_engine_pro.cost_engine import (
    CostEngine,
    custom_build_price,
    solar_pricing_tier_label,
    tiered_solar_cost_per_w,
)
from solar_engine_pro.types import EconomicAssumptions


def make_engine(**overrides):
    return CostEngine(EconomicAssumptions().with_overrides(**overrides))


def test_reference_100kw_breakdown():
    """
    100 kW × $2.00/W = 200 000 gross
    HQ = min(100 000, 80 000, 1M) = 80 000
    ITC = 30% × 120 000 = 36 000
    net = 84 000
    """
    capex = make_engine().compute(100)

    assert capex.capex_gross == pytest.approx(200_000)
    assert capex.hq_incentive == pytest.approx(80_000)
    assert capex.federal_itc == pytest.approx(36_000)
    assert capex.capex_net == pytest.approx(84_000)
    assert capex.tax_shield == pytest.approx(84_000 * 0.265 * 0.90)


def test_hq_incentive_capped_per_kw_on_cheap_systems():
    # 40% of 120 000 = 48 000 < 100 kW × $1000
    capex = make_engine(solar_cost_per_w=1.20).compute(100)
    assert capex.hq_incentive == pytest.approx(48_000)


def test_hq_incentive_absolute_cap():
    capex = make_engine().compute(2000)

    assert capex.capex_gross == pytest.approx(4_000_000)
    assert capex.hq_incentive == pytest.approx(1_000_000)
    assert capex.federal_itc == pytest.approx(900_000)
    assert capex.capex_net == pytest.approx(2_100_000)


def test_zero_pv_costs_nothing():
    capex = make_engine().compute(0)

    assert capex.capex_gross == 0
    assert capex.capex_net == 0
    assert capex.tax_shield == 0


def test_om_cost_year1_per_kwc():
    assert make_engine(om_per_kwc=15.0).om_cost_year1(100) == pytest.approx(1500)


def test_om_cost_year1_from_capex_share():
    # 0.75% of $2000/kW = $15/kWc
    engine = make_engine(om_per_kwc=None, om_solar_percent=0.0075, solar_cost_per_w=2.0)
    assert engine.om_cost_year1(100) == pytest.approx(1500)


def test_custom_build_price():
    # 100 kW × $2.25/W + 50 kWh × 550 + 25 kW × 800
    assert custom_build_price(100, 50, 25) == pytest.approx(272_500)
    assert custom_build_price(100, 0, 0, price_per_watt=2.0) == pytest.approx(200_000)


@pytest.mark.parametrize(
    "pv_kw, price",
    [
        (50, 2.30),
        (100, 2.15),
        (499.9, 2.15),
        (500, 2.00),
        (1000, 1.85),
        (3000, 1.70),
        (10_000, 1.70),
    ],
)
def test_tiered_pricing(pv_kw, price):
    assert tiered_solar_cost_per_w(pv_kw) == pytest.approx(price)


def test_tier_labels():
    assert solar_pricing_tier_label(20) == "Tier 5 (<100 kW)"
    assert solar_pricing_tier_label(750) == "Tier 3 (500 kW-1 MW)"
    assert solar_pricing_tier_label(5000) == "Tier 1 (3 MW+)"


def test_tier_label_language():
    assert solar_pricing_tier_label(250, "en") == "Tier 4 (100-500 kW)"
    assert solar_pricing_tier_label(250, "fr") == "Tier 4 (100-500 kW)"
    assert solar_pricing_tier_label(250, "de") == "$2.15/W"


def test_incentives_shared_with_compute():
    capex = make_engine().compute(100)
    hq, itc = CostEngine.incentives(100, 200_000)

    assert hq == pytest.approx(capex.hq_incentive)
    assert itc == pytest.approx(capex.federal_itc)
