# src/models/catalog_product.py

"""Local catalog product, read from the pharmacy's own storage."""

from dataclasses import dataclass
from decimal import Decimal

from src.models.price_record import to_money


@dataclass
class CatalogProduct:
    """A product the pharmacy sells, with its own sell and cost prices."""

    id: str
    name: str
    sell_price: Decimal
    cost_price: Decimal
    current_stock: int = 0
    active_ingredient: str | None = None
    manufacturer: str | None = None
    barcode: str | None = None

    def __post_init__(self) -> None:
        self.sell_price = to_money(self.sell_price)
        self.cost_price = to_money(self.cost_price)
        if self.sell_price < 0 or self.cost_price < 0:
            msg = f"Negative price on catalog product {self.id!r}"
            raise ValueError(msg)

    @property
    def margin_percent(self) -> Decimal:
        """Gross margin over the sell price; zero when cost is unknown."""
        if self.cost_price <= 0 or self.sell_price <= 0:
            return Decimal(0)
        return (
            (self.sell_price - self.cost_price) / self.sell_price * 100
        )
