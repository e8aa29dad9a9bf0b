import pytest

from solar_engine_pro.types import EconomicAssumptions, SiteScenarioParams


@pytest.fixture
def assumptions():
    return EconomicAssumptions()


@pytest.fixture
def reference_site():
    """100 kW on a Rate M site with 480 MWh/year and a 220 kW peak."""
    return SiteScenarioParams(
        pv_size_kw=100,
        annual_consumption_kwh=480_000,
        tariff_energy=0.06061,
        tariff_power=17.573,
        peak_kw=220,
    )
