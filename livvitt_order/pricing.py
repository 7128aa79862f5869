from __future__ import annotations

# =========================================
# pricing.py
# Livvitt Order - central pricing + calculation
# =========================================
# Shared by the quote API (live preview) and the order submission path
# (authoritative totals). Pure functions: no I/O, no shared state.
#
# Per item:
#   base area cost + options (hems, grommets, lamination, pole pockets,
#   double-sided surcharge) -> $15 minimum -> x qty -> volume discount
#
# Every money value is a Decimal; cents are derived with units.to_cents
# (ROUND_HALF_UP) at the output boundary only. The order subtotal is the
# sum of the per-line cent totals.
# =========================================

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_FLOOR
from typing import Iterable, Optional, Union

from .catalog import lookup
from .units import (
    ZERO,
    area_sqft,
    estimate_grommet_count,
    perimeter_ft,
    to_cents,
    to_decimal,
    to_feet,
    to_inches,
)

# Options pricing constants
HEM_PER_LF = Decimal("0.50")            # $/linear ft
GROMMET_EACH = Decimal("0.35")          # $ each
LAM_PER_SQFT = Decimal("2.00")          # $/sqft
POCKET_PER_LF_BASE = Decimal("2.00")    # $/lf for a 3" pocket
POCKET_BASE_SIZE_IN = Decimal("3")
POCKET_MIN_FACTOR = Decimal("0.5")
DOUBLE_SIDED_FACTOR = Decimal("0.60")   # +60% of base area cost
MIN_PER_ITEM = Decimal("15.00")         # $ min per item

# Beyond these a line is refused rather than priced
MAX_DIMENSION_FT = Decimal("10000")
MAX_POCKET_SIZE_IN = Decimal("120")
MAX_QTY = 1_000_000

# (min qty, rate), highest threshold first; exactly one rate applies
VOLUME_TIERS = (
    (50, Decimal("0.12")),
    (25, Decimal("0.08")),
    (10, Decimal("0.05")),
)

POCKET_SIDES = ("top", "bottom", "left", "right")

UNKNOWN_PRODUCT = "Unknown product"
OUT_OF_RANGE = "Size or quantity out of range"

_TRUTHY = {"1", "true", "yes", "y", "on"}


def _flag(val) -> bool:
    if isinstance(val, str):
        return val.strip().lower() in _TRUTHY
    return bool(val)


def normalize_quantity(qty) -> int:
    """Quantities below 1 (or unusable) price as a single item."""
    d = to_decimal(qty)
    if d < 1:
        return 1
    return int(d.to_integral_value(rounding=ROUND_FLOOR))


def volume_rate(qty) -> Decimal:
    q = normalize_quantity(qty)
    for threshold, rate in VOLUME_TIERS:
        if q >= threshold:
            return rate
    return ZERO


def pocket_factor(size_in) -> Decimal:
    size = to_decimal(size_in)
    if size == 0:
        size = POCKET_BASE_SIZE_IN
    return max(POCKET_MIN_FACTOR, size / POCKET_BASE_SIZE_IN)


@dataclass(frozen=True)
class OptionSelection:
    hems: bool = False
    grommets: bool = False
    lamination: bool = False
    double_sided: bool = False
    pocket_sides: frozenset = frozenset()
    pocket_size_in: Decimal = POCKET_BASE_SIZE_IN

    @classmethod
    def from_dict(cls, opts: Optional[dict]) -> "OptionSelection":
        if not isinstance(opts, dict):
            opts = {}
        pockets = opts.get("polePockets") or {}
        if not isinstance(pockets, dict):
            pockets = {}
        sides = pockets.get("sides") or ()
        if isinstance(sides, str):
            sides = (sides,)
        elif not isinstance(sides, (list, tuple, set, frozenset)):
            sides = ()
        return cls(
            hems=_flag(opts.get("hems")),
            grommets=_flag(opts.get("grommets")),
            lamination=_flag(opts.get("lamination")),
            double_sided=_flag(opts.get("doubleSided")),
            pocket_sides=frozenset(s for s in sides if s in POCKET_SIDES),
            pocket_size_in=to_decimal(pockets.get("sizeIn")),
        )


@dataclass(frozen=True)
class PricingError:
    product_key: str
    reason: str = UNKNOWN_PRODUCT

    ok = False

    def to_dict(self) -> dict:
        return {"ok": False, "productKey": self.product_key, "error": self.reason}


@dataclass(frozen=True)
class PricedLine:
    product_key: str
    product_name: str
    width_ft: Decimal
    height_ft: Decimal
    sqft: Decimal
    perimeter_lf: Decimal
    grommet_count: int
    base_area_cost: Decimal
    hems_cost: Decimal
    grommet_cost: Decimal
    lam_cost: Decimal
    pocket_cost: Decimal
    double_sided_extra: Decimal
    one_item_before_min: Decimal
    one_item: Decimal
    min_applied: bool
    qty: int
    line_sub: Decimal
    volume_rate: Decimal
    discount: Decimal
    line_total: Decimal
    cents: dict = field(default_factory=dict)

    ok = True

    def breakdown(self) -> dict:
        return {
            "baseAreaCost": self.base_area_cost,
            "hemsCost": self.hems_cost,
            "grommetCost": self.grommet_cost,
            "lamCost": self.lam_cost,
            "pocketCost": self.pocket_cost,
            "doubleSidedExtra": self.double_sided_extra,
            "oneItemBeforeMin": self.one_item_before_min,
        }

    def to_dict(self) -> dict:
        return {
            "ok": True,
            "productKey": self.product_key,
            "productName": self.product_name,
            "qty": self.qty,
            "sqft": str(self.sqft),
            "perimeterLf": str(self.perimeter_lf),
            "grommetCount": self.grommet_count,
            "grommetCountIsEstimate": True,
            "breakdown": {
                **{k: str(v) for k, v in self.breakdown().items()},
                "minApplied": self.min_applied,
            },
            "oneItem": str(self.one_item),
            "lineSub": str(self.line_sub),
            "discount": str(self.discount),
            "lineTotal": str(self.line_total),
            "volumeRate": str(self.volume_rate),
            "cents": dict(self.cents),
        }


PriceResult = Union[PricedLine, PricingError]


def price_line(product_key, w, h, unit, qty, opts=None) -> PriceResult:
    """
    Price one line item.

    w/h are in `unit` ("in" or "ft"). Bad dimensions clamp to 0, bad
    quantities to 1, and options the product does not offer are ignored.
    An unknown product key, or a size, quantity or pocket size past the
    MAX_* limits, comes back as a PricingError, never raised.
    """
    prod = lookup(product_key)
    if prod is None:
        return PricingError(product_key=str(product_key))

    # Feet for area/lf; inches for the grommet estimate
    w_ft = to_feet(w, unit)
    h_ft = to_feet(h, unit)
    sel = OptionSelection.from_dict(opts)
    if (
        w_ft > MAX_DIMENSION_FT
        or h_ft > MAX_DIMENSION_FT
        or to_decimal(qty) > MAX_QTY
        or sel.pocket_size_in > MAX_POCKET_SIZE_IN
    ):
        return PricingError(product_key=prod.key, reason=OUT_OF_RANGE)

    w_in = to_inches(w, unit)
    h_in = to_inches(h, unit)
    quantity = normalize_quantity(qty)

    sqft = area_sqft(w_ft, h_ft)
    perimeter_lf = perimeter_ft(w_ft, h_ft)

    base_area_cost = sqft * prod.base_per_sqft

    hems_cost = ZERO
    grommet_cost = ZERO
    lam_cost = ZERO
    pocket_cost = ZERO
    double_sided_extra = ZERO
    grommet_count = 0

    if sel.hems and prod.supports("hems"):
        hems_cost = perimeter_lf * HEM_PER_LF

    if sel.grommets and prod.supports("grommets"):
        grommet_count = estimate_grommet_count(w_in, h_in)
        grommet_cost = grommet_count * GROMMET_EACH

    if sel.lamination and prod.supports("lamination"):
        lam_cost = sqft * LAM_PER_SQFT

    if sel.pocket_sides and prod.supports("polePockets"):
        # Estimate: pocket cost scales with pocket size vs the 3" baseline
        lf = ZERO
        for side in sel.pocket_sides:
            lf += w_ft if side in ("top", "bottom") else h_ft
        pocket_cost = lf * POCKET_PER_LF_BASE * pocket_factor(sel.pocket_size_in)

    if sel.double_sided and prod.supports("doubleSided"):
        double_sided_extra = base_area_cost * DOUBLE_SIDED_FACTOR

    one_item_before_min = (
        base_area_cost + hems_cost + grommet_cost + lam_cost + pocket_cost + double_sided_extra
    )
    one_item = max(one_item_before_min, MIN_PER_ITEM)
    min_applied = one_item_before_min < MIN_PER_ITEM and one_item == MIN_PER_ITEM

    line_sub = one_item * quantity
    rate = volume_rate(quantity)
    discount = line_sub * rate
    line_total = line_sub - discount

    cents = {
        "oneItem": to_cents(one_item),
        "lineSub": to_cents(line_sub),
        "discount": to_cents(discount),
        "total": to_cents(line_total),
        "baseAreaCost": to_cents(base_area_cost),
        "hemsCost": to_cents(hems_cost),
        "grommetCost": to_cents(grommet_cost),
        "lamCost": to_cents(lam_cost),
        "pocketCost": to_cents(pocket_cost),
        "doubleSidedExtra": to_cents(double_sided_extra),
        "oneItemBeforeMin": to_cents(one_item_before_min),
    }

    return PricedLine(
        product_key=prod.key,
        product_name=prod.name,
        width_ft=w_ft,
        height_ft=h_ft,
        sqft=sqft,
        perimeter_lf=perimeter_lf,
        grommet_count=grommet_count,
        base_area_cost=base_area_cost,
        hems_cost=hems_cost,
        grommet_cost=grommet_cost,
        lam_cost=lam_cost,
        pocket_cost=pocket_cost,
        double_sided_extra=double_sided_extra,
        one_item_before_min=one_item_before_min,
        one_item=one_item,
        min_applied=min_applied,
        qty=quantity,
        line_sub=line_sub,
        volume_rate=rate,
        discount=discount,
        line_total=line_total,
        cents=cents,
    )


def price_item(item: dict) -> PriceResult:
    """Price an item in the wire shape used by the UI and the order payload."""
    if not isinstance(item, dict):
        item = {}
    size = item.get("size")
    if not isinstance(size, dict):
        size = {}
    return price_line(
        item.get("productKey"),
        size.get("w"),
        size.get("h"),
        size.get("unit", "in"),
        item.get("qty"),
        item.get("opts"),
    )


@dataclass(frozen=True)
class OrderQuote:
    lines: tuple
    subtotal_cents: int

    @property
    def errors(self) -> list[PricingError]:
        return [r for r in self.lines if not r.ok]

    def to_dict(self) -> dict:
        return {
            "lines": [r.to_dict() for r in self.lines],
            "subtotalCents": self.subtotal_cents,
        }


def aggregate(results: Iterable[PriceResult]) -> OrderQuote:
    """
    Sum the already-rounded per-line cent totals. Error results stay in
    the quote so the caller can show them, but add nothing.
    """
    lines = tuple(results)
    subtotal = sum(r.cents["total"] for r in lines if r.ok)
    return OrderQuote(lines=lines, subtotal_cents=subtotal)


def price_order(items: Iterable[dict]) -> OrderQuote:
    return aggregate(price_item(it) for it in items)
