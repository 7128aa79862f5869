from __future__ import annotations

# =========================================
# catalog.py
# Livvitt Order - product catalog
# =========================================
# Static product definitions shared by the pricing engine, the
# quote/order API and the templates. Adding a product means adding
# an entry to PRODUCTS; the pricer never branches on product keys.
# =========================================

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

OPTION_FLAGS = ("hems", "grommets", "lamination", "polePockets", "doubleSided")


@dataclass(frozen=True)
class SuggestedSize:
    w: Decimal
    h: Decimal
    unit: str

    def to_dict(self) -> dict:
        return {"w": float(self.w), "h": float(self.h), "unit": self.unit}


@dataclass(frozen=True)
class ProductDefinition:
    key: str
    name: str
    base_per_sqft: Decimal
    supported_options: frozenset
    suggested_sizes: tuple = ()
    pricing_basis: str = "sqft"

    def supports(self, option: str) -> bool:
        return option in self.supported_options

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "name": self.name,
            "type": self.pricing_basis,
            "basePerSqft": str(self.base_per_sqft),
            "options": {flag: flag in self.supported_options for flag in OPTION_FLAGS},
            "quickSizes": [s.to_dict() for s in self.suggested_sizes],
        }


def _sizes(unit: str, *pairs) -> tuple:
    return tuple(SuggestedSize(Decimal(str(w)), Decimal(str(h)), unit) for w, h in pairs)


PRODUCTS: dict[str, ProductDefinition] = {
    p.key: p
    for p in (
        ProductDefinition(
            key="banner13oz",
            name="13oz Vinyl Banner",
            base_per_sqft=Decimal("5.50"),
            supported_options=frozenset({"hems", "grommets", "polePockets", "doubleSided"}),
            suggested_sizes=_sizes("ft", (2, 4), (3, 6), (4, 8)),
        ),
        ProductDefinition(
            key="adhesiveVinyl",
            name="Adhesive Vinyl (Print/Cut)",
            base_per_sqft=Decimal("8.00"),
            supported_options=frozenset({"lamination"}),
            suggested_sizes=_sizes("in", (12, 12), (24, 24), (48, 24)),
        ),
        ProductDefinition(
            key="coroplast4mm",
            name="Coroplast 4mm (Yard Sign)",
            base_per_sqft=Decimal("9.00"),
            supported_options=frozenset({"lamination"}),
            suggested_sizes=_sizes("in", (18, 24), (24, 36), (24, 18)),
        ),
    )
}


def lookup(key) -> Optional[ProductDefinition]:
    """Return the product for `key`, or None when it is not in the catalog."""
    if not isinstance(key, str):
        return None
    return PRODUCTS.get(key)


def list_products() -> list[ProductDefinition]:
    return list(PRODUCTS.values())
