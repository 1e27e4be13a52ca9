"""
Module: inventory_kernel.selectors.catalog_selector
Responsibility: Batched reads of legacy, location-unaware stock counts.
Architecture position: Kernel > Selectors.

A drink's legacy count is ``bar_stock`` when set, else ``quantity``, else 0.
An inventory item's is ``quantity``.  The informational unit price is the
drink price or the item unit price, rounded to two places.
"""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select

from inventory_kernel.db.types import round_price
from inventory_kernel.domain.dtos import LegacyStockRecord
from inventory_kernel.domain.products import ProductType
from inventory_kernel.models.catalog import Drink, InventoryItem
from inventory_kernel.selectors.base import BaseSelector


def _model_for(product_type: ProductType):
    if product_type is ProductType.DRINK:
        return Drink
    return InventoryItem


def _to_record(product_type: ProductType, row) -> LegacyStockRecord:
    if product_type is ProductType.DRINK:
        price = row.price
    else:
        price = row.unit_price
    return LegacyStockRecord(
        product_type=product_type,
        product_id=row.id,
        quantity=row.legacy_quantity,
        unit_price=round_price(price),
    )


class CatalogSelector(BaseSelector):
    """Read legacy product rows as LegacyStockRecord DTOs."""

    def legacy_records(
        self,
        product_type: ProductType | str,
        product_ids: Iterable[UUID],
    ) -> dict[UUID, LegacyStockRecord]:
        """
        Load legacy records for many products of one type in one query.

        Ids with no matching product are absent from the result.
        """
        product_type = ProductType.parse(product_type)
        ids = list(dict.fromkeys(product_ids))
        if not ids:
            return {}

        model = _model_for(product_type)
        rows = self.session.scalars(select(model).where(model.id.in_(ids))).all()
        return {row.id: _to_record(product_type, row) for row in rows}

    def legacy_record(
        self,
        product_type: ProductType | str,
        product_id: UUID,
    ) -> LegacyStockRecord | None:
        return self.legacy_records(product_type, [product_id]).get(product_id)

    def records_with_stock(self, product_type: ProductType | str) -> list[LegacyStockRecord]:
        """Every product of the type whose legacy count is positive."""
        product_type = ProductType.parse(product_type)
        model = _model_for(product_type)
        rows = self.session.scalars(select(model).order_by(model.id)).all()
        records = [_to_record(product_type, row) for row in rows]
        return [r for r in records if r.quantity > 0]
