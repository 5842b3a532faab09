# storefront/utils/money.py

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

Money = Decimal


def D(x) -> Money:
    return x if isinstance(x, Decimal) else Decimal(str(x or "0"))


def round_money(x: Money) -> Money:
    return D(x).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def parse_money(x) -> Money | None:
    """Strict parse for client input: None for anything non-numeric."""
    if x is None or isinstance(x, bool):
        return None
    try:
        v = Decimal(str(x).strip())
    except (InvalidOperation, ValueError):
        return None
    if not v.is_finite():
        return None
    return v


def as_number(x):
    """JSON-friendly money: int when whole, else float."""
    v = round_money(x)
    return int(v) if v == v.to_integral_value() else float(v)
