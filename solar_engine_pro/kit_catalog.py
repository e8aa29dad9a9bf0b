# solar_engine_pro/kit_catalog.py

from __future__ import annotations
from functools import lru_cache
from typing import Iterable, Iterator, List, Optional, Tuple

from .types import StandardKit


class KitCatalog:
    """Read-only registry of standard kits, injected into the recommender."""

    def __init__(self, kits: Iterable[StandardKit]):
        self._kits: Tuple[StandardKit, ...] = tuple(kits)

    def __iter__(self) -> Iterator[StandardKit]:
        return iter(self._kits)

    def __len__(self) -> int:
        return len(self._kits)

    def get(self, kit_id: str) -> Optional[StandardKit]:
        return next((k for k in self._kits if k.id == kit_id), None)

    def for_market(self, market: str) -> List[StandardKit]:
        return [k for k in self._kits if k.target_market == market]

    def in_range(self, min_kw: float, max_kw: float) -> List[StandardKit]:
        return [k for k in self._kits if min_kw <= k.pv_kw <= max_kw]


STANDARD_KITS: Tuple[StandardKit, ...] = (
    StandardKit(
        id="kit-20-0", name="Starter 20", name_fr="Débutant 20",
        pv_kw=20, battery_kwh=0, battery_kw=0,
        base_price=45000, price_per_watt=2.25, target_market="small",
        features=("Entry-level commercial", "No storage", "Quick installation"),
        features_fr=("Commercial entrée de gamme", "Sans stockage", "Installation rapide"),
    ),
    StandardKit(
        id="kit-30-0", name="Starter 30", name_fr="Débutant 30",
        pv_kw=30, battery_kwh=0, battery_kw=0,
        base_price=67500, price_per_watt=2.25, target_market="small",
        features=("Small commercial", "No storage", "Quick installation"),
        features_fr=("Petit commercial", "Sans stockage", "Installation rapide"),
    ),
    StandardKit(
        id="kit-50-0", name="Business 50", name_fr="Affaires 50",
        pv_kw=50, battery_kwh=0, battery_kw=0,
        base_price=110000, price_per_watt=2.20, target_market="small",
        features=("Medium commercial", "Volume discount", "Standard warranty"),
        features_fr=("Commercial moyen", "Rabais volume", "Garantie standard"),
    ),
    StandardKit(
        id="kit-50-50", name="Business 50 + Storage", name_fr="Affaires 50 + Stockage",
        pv_kw=50, battery_kwh=50, battery_kw=25,
        base_price=150000, price_per_watt=2.20, target_market="medium",
        features=("Peak shaving ready", "Demand charge reduction", "Backup capable"),
        features_fr=("Écrêtage des pointes", "Réduction frais de puissance", "Secours possible"),
    ),
    StandardKit(
        id="kit-100-0", name="Pro 100", name_fr="Pro 100",
        pv_kw=100, battery_kwh=0, battery_kw=0,
        base_price=210000, price_per_watt=2.10, target_market="medium",
        features=("Large commercial", "Significant savings", "Extended warranty"),
        features_fr=("Grand commercial", "Économies importantes", "Garantie étendue"),
    ),
    StandardKit(
        id="kit-100-100", name="Pro 100 + Storage", name_fr="Pro 100 + Stockage",
        pv_kw=100, battery_kwh=100, battery_kw=50,
        base_price=290000, price_per_watt=2.10, target_market="medium",
        features=("Full peak shaving", "Rate M optimized", "Premium support"),
        features_fr=("Écrêtage complet", "Optimisé Tarif M", "Support premium"),
    ),
    StandardKit(
        id="kit-250-0", name="Industrial 250", name_fr="Industriel 250",
        pv_kw=250, battery_kwh=0, battery_kw=0,
        base_price=500000, price_per_watt=2.15, target_market="large",
        features=("Industrial scale", "Major energy offset", "Project management included"),
        features_fr=("Échelle industrielle", "Compensation énergétique majeure", "Gestion de projet incluse"),
    ),
    StandardKit(
        id="kit-250-250", name="Industrial 250 + Storage", name_fr="Industriel 250 + Stockage",
        pv_kw=250, battery_kwh=250, battery_kw=125,
        base_price=700000, price_per_watt=2.15, target_market="large",
        features=("Full industrial", "Maximum demand reduction", "Turnkey solution"),
        features_fr=("Industriel complet", "Réduction de puissance maximale", "Solution clé en main"),
    ),
    StandardKit(
        id="kit-500-0", name="Mega 500", name_fr="Méga 500",
        pv_kw=500, battery_kwh=0, battery_kw=0,
        base_price=950000, price_per_watt=1.90, target_market="industrial",
        features=("Utility scale", "Corporate PPA ready", "Full EPC service"),
        features_fr=("Échelle utilitaire", "Prêt pour AAE corporatif", "Service EPC complet"),
    ),
    StandardKit(
        id="kit-500-500", name="Mega 500 + Storage", name_fr="Méga 500 + Stockage",
        pv_kw=500, battery_kwh=500, battery_kw=250,
        base_price=1350000, price_per_watt=1.90, target_market="industrial",
        features=("Maximum scale", "Grid services ready", "Dedicated account team"),
        features_fr=("Échelle maximale", "Prêt services réseau", "Équipe dédiée"),
    ),
    StandardKit(
        id="kit-1000-0", name="Enterprise 1MW", name_fr="Entreprise 1MW",
        pv_kw=1000, battery_kwh=0, battery_kw=0,
        base_price=1800000, price_per_watt=1.80, target_market="industrial",
        features=("Megawatt class", "Net metering limit", "Multi-year financing"),
        features_fr=("Classe mégawatt", "Limite mesurage net", "Financement pluriannuel"),
    ),
)


@lru_cache()
def default_catalog() -> KitCatalog:
    """Process-wide standard catalog, built once."""
    return KitCatalog(STANDARD_KITS)
