"""Product type discriminator shared by the ledger and the legacy catalog."""

from enum import Enum

from inventory_kernel.exceptions import UnsupportedProductTypeError


class ProductType(str, Enum):
    """
    Closed set of legacy product tables that share the ledger.

    Values are the wire discriminators callers pass in.  Department
    "extras" (service items stocked per department) are not a product type:
    they keep their own counts and never move through the ledger or a
    transfer.
    """

    DRINK = "drink"
    INVENTORY_ITEM = "inventoryItem"

    @classmethod
    def parse(cls, value: "ProductType | str") -> "ProductType":
        """
        Coerce a discriminator string to a ProductType.

        Raises:
            UnsupportedProductTypeError: value is outside the closed set.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnsupportedProductTypeError(str(value)) from None
