# src/models/price_record.py

"""Normalised external price record shared by every source."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

CENTS = Decimal("0.01")


def to_money(value: Decimal | float | int | str) -> Decimal:
    """Convert a number to a Decimal rounded to cents."""
    if isinstance(value, float):
        value = repr(value)
    amount = Decimal(value)
    if not amount.is_finite():
        raise ValueError(f"Non-finite amount: {value}")
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass
class PriceRecord:
    """One vendor's price for a drug, as reported by one source."""

    source_name: str
    vendor_label: str
    price: Decimal
    available: bool = True
    region: str = "SP"
    origin_url: str | None = None
    is_synthetic: bool = False

    def __post_init__(self) -> None:
        self.price = to_money(self.price)
