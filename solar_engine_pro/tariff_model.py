# solar_engine_pro/tariff_model.py

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict

from .types import TariffDetails


# Hydro-Québec 2025 rates, looked up, never computed
HQ_DEMAND_RATES: Dict[str, float] = {
    "G": 0.0,        # small power, no demand charge
    "M": 17.573,     # $/kW/month
    "L": 14.521,
}

HQ_ENERGY_RATES: Dict[str, float] = {
    "G": 0.11933,    # $/kWh
    "M": 0.06061,
    "L": 0.03681,
}


@dataclass(frozen=True)
class TariffModel:
    """Fixed rate table for one tariff code. Unknown codes bill nothing."""
    code: str

    @property
    def demand_rate(self) -> float:
        return HQ_DEMAND_RATES.get(self.code, 0.0)

    @property
    def energy_rate(self) -> float:
        return HQ_ENERGY_RATES.get(self.code, 0.0)

    def details(self) -> TariffDetails:
        return TariffDetails(
            code=self.code,
            demand_rate=self.demand_rate,
            energy_rate=self.energy_rate,
        )
