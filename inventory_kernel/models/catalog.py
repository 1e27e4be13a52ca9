"""
Module: inventory_kernel.models.catalog
Responsibility: The legacy product tables.  Each carries a single,
    location-unaware stock count that predates the ledger.
Architecture position: Kernel > Models.  May import from db/ only.

The ledger core only ever READS these rows: their quantity seeds ledger
entries through lazy migration and their price seeds the informational
unit price of new ledger rows.  They are never decremented by transfers.
"""

from decimal import Decimal

from sqlalchemy import Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TimestampedBase


class Drink(TimestampedBase):
    """Bar product.  ``bar_stock`` supersedes ``quantity`` when set."""

    __tablename__ = "drinks"

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Selling price; may carry more precision than a ledger price
    price: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False, default=Decimal("0"))

    quantity: Mapped[int | None] = mapped_column(nullable=True)

    bar_stock: Mapped[int | None] = mapped_column(nullable=True)

    @property
    def legacy_quantity(self) -> int:
        if self.bar_stock is not None:
            return self.bar_stock
        if self.quantity is not None:
            return self.quantity
        return 0

    def __repr__(self) -> str:
        return f"<Drink {self.name}>"


class InventoryItem(TimestampedBase):
    """Store-room item (supplies, ingredients, linen)."""

    __tablename__ = "inventory_items"

    __table_args__ = (
        Index("idx_inventory_item_sku", "sku"),
        Index("idx_inventory_item_category", "category"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    sku: Mapped[str | None] = mapped_column(String(100), nullable=True)

    category: Mapped[str | None] = mapped_column(String(100), nullable=True)

    quantity: Mapped[int] = mapped_column(nullable=False, default=0)

    unit_price: Mapped[Decimal | None] = mapped_column(nullable=True)

    @property
    def legacy_quantity(self) -> int:
        return self.quantity or 0

    def __repr__(self) -> str:
        return f"<InventoryItem {self.sku or self.name}>"
