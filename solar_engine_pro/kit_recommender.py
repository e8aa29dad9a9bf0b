# solar_engine_pro/kit_recommender.py

from __future__ import annotations
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .types import KitComparison, KitRecommendation, OptimalSizing, StandardKit
from .cost_engine import custom_build_price
from .kit_catalog import KitCatalog, default_catalog


EXCELLENT_MATCH_PERCENT = 5.0


class KitSelectionConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    prefer_oversizing: bool = True
    max_oversize_percent: float = Field(default=30.0, ge=0.0)
    include_alternative: bool = True
    custom_price_per_watt: float = Field(default=2.25, gt=0.0)
    custom_battery_capacity_cost: float = Field(default=550.0, gt=0.0)   # $/kWh
    custom_battery_power_cost: float = Field(default=800.0, gt=0.0)      # $/kW


class KitRecommender:
    """
    Snaps an optimal continuous sizing onto the standard catalog.
    - default: smallest kit at least as large as the optimum (no undersizing),
      plus the next size down as an alternative
    - nearest: smallest absolute PV difference
    """

    def __init__(self, catalog: Optional[KitCatalog] = None):
        self.catalog = catalog if catalog is not None else default_catalog()

    def candidates(self, optimal: OptimalSizing) -> List[StandardKit]:
        if optimal.needs_battery:
            kits = [k for k in self.catalog if k.has_storage]
        else:
            kits = [k for k in self.catalog if not k.has_storage]
        return sorted(kits, key=lambda k: k.pv_kw)

    @staticmethod
    def pick_oversized(
        kits: List[StandardKit], optimal_pv_kw: float, include_alternative: bool
    ) -> Tuple[StandardKit, Optional[StandardKit], bool]:
        chosen = next((k for k in kits if k.pv_kw >= optimal_pv_kw), None)
        exceeds_catalog = chosen is None
        if chosen is None:
            chosen = kits[-1]

        alternative = None
        if include_alternative:
            index = kits.index(chosen)
            if index > 0:
                alternative = kits[index - 1]
        return chosen, alternative, exceeds_catalog

    @staticmethod
    def pick_nearest(kits: List[StandardKit], optimal_pv_kw: float) -> StandardKit:
        return min(kits, key=lambda k: abs(k.pv_kw - optimal_pv_kw))

    def recommend(
        self,
        optimal: OptimalSizing,
        config: Optional[KitSelectionConfig] = None,
    ) -> KitRecommendation:
        config = config or KitSelectionConfig()

        if optimal.pv_kw <= 0:
            raise ValueError(f"Optimal PV size must be positive, got {optimal.pv_kw}")

        kits = self.candidates(optimal)
        if not kits:
            raise ValueError("No catalog kit matches the storage requirement")

        alternative = None
        exceeds_catalog = False
        if config.prefer_oversizing:
            kit, alternative, exceeds_catalog = self.pick_oversized(
                kits, optimal.pv_kw, config.include_alternative
            )
        else:
            kit = self.pick_nearest(kits, optimal.pv_kw)
            exceeds_catalog = optimal.pv_kw > kits[-1].pv_kw

        oversize = (kit.pv_kw / optimal.pv_kw - 1.0) * 100.0
        undersize = (1.0 - alternative.pv_kw / optimal.pv_kw) * 100.0 if alternative else None

        custom_price = custom_build_price(
            optimal.pv_kw,
            optimal.battery_kwh,
            optimal.battery_kw,
            price_per_watt=config.custom_price_per_watt,
            battery_capacity_cost=config.custom_battery_capacity_cost,
            battery_power_cost=config.custom_battery_power_cost,
        )

        reasoning, reasoning_fr = self.explain(kit, oversize, config.max_oversize_percent, exceeds_catalog)

        return KitRecommendation(
            recommended_kit=kit,
            alternative_kit=alternative,
            optimal_sizing=optimal,
            comparison=KitComparison(
                oversize_percent=oversize,
                undersize_percent=undersize,
                price_vs_custom=kit.base_price - custom_price,
                custom_price=custom_price,
            ),
            reasoning=reasoning,
            reasoning_fr=reasoning_fr,
            exceeds_catalog=exceeds_catalog,
        )

    @staticmethod
    def explain(
        kit: StandardKit, oversize_percent: float, max_oversize_percent: float, exceeds_catalog: bool
    ) -> Tuple[str, str]:
        pct = f"{oversize_percent:.0f}"

        if exceeds_catalog:
            short = f"{abs(oversize_percent):.0f}"
            return (
                f"The optimal system exceeds the largest standard kit ({kit.name}) by {short}%. "
                f"A custom solution is recommended.",
                f"Le système optimal dépasse le plus grand kit standard ({kit.name_fr}) de {short}%. "
                f"Une solution sur mesure est recommandée.",
            )
        if oversize_percent <= EXCELLENT_MATCH_PERCENT:
            return (
                f"The {kit.name} kit is an excellent match, only {pct}% larger than the optimal size.",
                f"Le kit {kit.name_fr} est un excellent choix, seulement {pct}% plus grand que la taille optimale.",
            )
        if oversize_percent <= max_oversize_percent:
            return (
                f"The {kit.name} kit is {pct}% larger than optimal, providing room for future load growth.",
                f"Le kit {kit.name_fr} est {pct}% plus grand que l'optimal, permettant une croissance future.",
            )
        return (
            f"The {kit.name} kit is significantly larger ({pct}%) than optimal. Consider a custom solution.",
            f"Le kit {kit.name_fr} est significativement plus grand ({pct}%) que l'optimal. "
            f"Considérez une solution sur mesure.",
        )


def recommend_standard_kit(
    optimal_pv_kw: float,
    optimal_battery_kwh: float = 0.0,
    optimal_battery_kw: float = 0.0,
    config: Optional[KitSelectionConfig] = None,
    catalog: Optional[KitCatalog] = None,
) -> KitRecommendation:
    sizing = OptimalSizing(
        pv_kw=optimal_pv_kw,
        battery_kwh=optimal_battery_kwh,
        battery_kw=optimal_battery_kw,
    )
    return KitRecommender(catalog).recommend(sizing, config)
