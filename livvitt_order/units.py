from __future__ import annotations

# =========================================
# units.py
# Livvitt Order - unit, geometry and money helpers
# =========================================
# All helpers are total: missing, non-numeric or negative input is
# treated as zero so a price can always be produced.
# Rounding is ROUND_HALF_UP everywhere (cents and grommet estimate).
# =========================================

from decimal import (
    MAX_EMAX,
    MIN_EMIN,
    ROUND_HALF_UP,
    Context,
    Decimal,
    getcontext,
    localcontext,
)

ZERO = Decimal("0")
_ONE = Decimal("1")
INCHES_PER_FOOT = Decimal("12")
GROMMET_SPACING_IN = Decimal("24")
MIN_GROMMETS = 4


def to_decimal(value) -> Decimal:
    """Best-effort Decimal conversion; anything unusable becomes 0."""
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        d = value
    else:
        try:
            d = Decimal(str(value).strip())
        except (ArithmeticError, ValueError):
            return ZERO
    if not d.is_finite():
        return ZERO
    return d


def clamp_non_negative(value) -> Decimal:
    d = to_decimal(value)
    return d if d > 0 else ZERO


def inches_to_feet(inches) -> Decimal:
    return clamp_non_negative(inches) / INCHES_PER_FOOT


def to_feet(value, unit: str) -> Decimal:
    """Inches are divided by 12; any other unit is taken as feet."""
    if unit == "in":
        return inches_to_feet(value)
    return clamp_non_negative(value)


def to_inches(value, unit: str) -> Decimal:
    if unit == "in":
        return clamp_non_negative(value)
    return clamp_non_negative(value) * INCHES_PER_FOOT


def area_sqft(w_ft, h_ft) -> Decimal:
    return clamp_non_negative(w_ft) * clamp_non_negative(h_ft)


def perimeter_ft(w_ft, h_ft) -> Decimal:
    return 2 * (clamp_non_negative(w_ft) + clamp_non_negative(h_ft))


def _wide_context(*values: Decimal) -> Context:
    # Room for every integer digit of the operands and no exponent overflow
    ctx = getcontext().copy()
    ctx.Emax = MAX_EMAX
    ctx.Emin = MIN_EMIN
    ctx.prec = max([ctx.prec] + [v.adjusted() + 4 for v in values])
    return ctx


def estimate_grommet_count(w_in, h_in) -> int:
    # One grommet roughly every 24" of perimeter, never fewer than 4.
    # This is an estimate, not a fabrication count.
    w = clamp_non_negative(w_in)
    h = clamp_non_negative(h_in)
    with localcontext(_wide_context(w, h)):
        per_in = 2 * (w + h)
        count = int((per_in / GROMMET_SPACING_IN).quantize(_ONE, rounding=ROUND_HALF_UP))
    return max(MIN_GROMMETS, count)


def to_cents(amount) -> int:
    d = to_decimal(amount)
    with localcontext(_wide_context(d)):
        return int((d * 100).quantize(_ONE, rounding=ROUND_HALF_UP))


def from_cents(cents) -> Decimal:
    return Decimal(int(cents or 0)) / 100


def format_usd(cents) -> str:
    return f"${from_cents(cents):,.2f}"
