"""
Typed exception hierarchy for the inventory kernel.

Every failure a caller can act on has its own class, a machine-readable
``code`` class attribute, and the structured data needed to explain it.
Callers branch on the type, never on the message text.

    InventoryKernelError (base)
    |
    +-- LocationError
    |   +-- DepartmentNotFoundError
    |   +-- SectionNotFoundError
    |   +-- InvalidDestinationCodeError
    |   +-- DepartmentCodeConflictError
    |   +-- SectionSlugConflictError
    |
    +-- ProductError
    |   +-- UnsupportedProductTypeError
    |
    +-- TransferError
    |   +-- TransferNotFoundError
    |   +-- TransferAlreadyProcessedError
    |   +-- InvalidTransferError
    |
    +-- StockError
    |   +-- InsufficientStockError
    |       +-- StockRaceError
    |
    +-- ConcurrencyError
    |   +-- TransientLedgerError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Location        | DEPARTMENT_NOT_FOUND        | Department id/code doesn't exist or inactive
                | SECTION_NOT_FOUND           | Section slug/id not found under its parent
                | INVALID_DESTINATION_CODE    | Malformed "DEPT:slug" destination code
                | DEPARTMENT_CODE_CONFLICT    | Department code already taken
                | SECTION_SLUG_CONFLICT       | Slug already used inside the department
----------------|-----------------------------|-----------------------------------------
Product         | UNSUPPORTED_PRODUCT_TYPE    | productType outside the closed set
----------------|-----------------------------|-----------------------------------------
Transfer        | TRANSFER_NOT_FOUND          | Transfer id doesn't exist
                | TRANSFER_ALREADY_PROCESSED  | Status not eligible for execution
                | INVALID_TRANSFER            | Empty items, bad quantity, same location
----------------|-----------------------------|-----------------------------------------
Stock           | INSUFFICIENT_STOCK          | Preflight shortfall at the source
                | STOCK_RACE                  | Conditional decrement hit zero rows
----------------|-----------------------------|-----------------------------------------
Concurrency     | TRANSIENT_LEDGER_ERROR      | Retryable store failure
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | Update/delete of an append-only record
"""

from uuid import UUID


class InventoryKernelError(Exception):
    """
    Base exception for all inventory kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "INVENTORY_KERNEL_ERROR"


# Location-related exceptions


class LocationError(InventoryKernelError):
    """Base exception for department/section resolution errors."""

    code: str = "LOCATION_ERROR"


class DepartmentNotFoundError(LocationError):
    """Department with given id or code was not found."""

    code: str = "DEPARTMENT_NOT_FOUND"

    def __init__(self, department_ref: str):
        self.department_ref = department_ref
        super().__init__(f"Department not found: {department_ref}")


class SectionNotFoundError(LocationError):
    """Section was not found (or is inactive) under its parent department."""

    code: str = "SECTION_NOT_FOUND"

    def __init__(self, department_ref: str | None, section_ref: str):
        self.department_ref = department_ref
        self.section_ref = section_ref
        if department_ref is None:
            message = f"Section not found: {section_ref}"
        else:
            message = f"Section '{section_ref}' not found in department {department_ref}"
        super().__init__(message)


class InvalidDestinationCodeError(LocationError):
    """Destination code does not have the ``DEPT`` or ``DEPT:slug`` shape."""

    code: str = "INVALID_DESTINATION_CODE"

    def __init__(self, destination_code: str, reason: str):
        self.destination_code = destination_code
        self.reason = reason
        super().__init__(f"Invalid destination code '{destination_code}': {reason}")


class DepartmentCodeConflictError(LocationError):
    """A department with this code already exists."""

    code: str = "DEPARTMENT_CODE_CONFLICT"

    def __init__(self, department_code: str):
        self.department_code = department_code
        super().__init__(f"Department code already exists: {department_code}")


class SectionSlugConflictError(LocationError):
    """A section with this slug already exists in the department."""

    code: str = "SECTION_SLUG_CONFLICT"

    def __init__(self, department_id: str, slug: str):
        self.department_id = department_id
        self.slug = slug
        super().__init__(f"Section slug '{slug}' already used in department {department_id}")


# Product-related exceptions


class ProductError(InventoryKernelError):
    """Base exception for product reference errors."""

    code: str = "PRODUCT_ERROR"


class UnsupportedProductTypeError(ProductError):
    """productType is not one of the supported legacy product tables."""

    code: str = "UNSUPPORTED_PRODUCT_TYPE"

    def __init__(self, product_type: str):
        self.product_type = product_type
        super().__init__(f"Unsupported product type: {product_type}")


# Transfer-related exceptions


class TransferError(InventoryKernelError):
    """Base exception for transfer lifecycle errors."""

    code: str = "TRANSFER_ERROR"


class TransferNotFoundError(TransferError):
    """Transfer with given id was not found."""

    code: str = "TRANSFER_NOT_FOUND"

    def __init__(self, transfer_id: str):
        self.transfer_id = transfer_id
        super().__init__(f"Transfer not found: {transfer_id}")


class TransferAlreadyProcessedError(TransferError):
    """Transfer status does not allow execution (already completed)."""

    code: str = "TRANSFER_ALREADY_PROCESSED"

    def __init__(self, transfer_id: str, status: str):
        self.transfer_id = transfer_id
        self.status = status
        super().__init__(f"Transfer {transfer_id} is already {status}")


class InvalidTransferError(TransferError):
    """Transfer request is malformed."""

    code: str = "INVALID_TRANSFER"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid transfer: {reason}")


# Stock-related exceptions


class StockError(InventoryKernelError):
    """Base exception for stock balance errors."""

    code: str = "STOCK_ERROR"


class InsufficientStockError(StockError):
    """
    Source location does not hold enough units.

    A business condition, never retried.  ``message`` is the canonical
    user-facing shortfall string produced by availability checks.
    """

    code: str = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        product_id: UUID | str,
        department_id: UUID | str,
        available: int,
        required: int,
        section_id: UUID | str | None = None,
        message: str | None = None,
        shortfalls: tuple = (),
    ):
        self.product_id = str(product_id)
        self.department_id = str(department_id)
        self.section_id = str(section_id) if section_id is not None else None
        self.available = available
        self.required = required
        self.message = message or f"Insufficient stock: have {available}, need {required}"
        # AvailabilityCheck per short product when raised by a batch check
        self.shortfalls = tuple(shortfalls)
        super().__init__(self.message)


class StockRaceError(InsufficientStockError):
    """
    Conditional decrement affected zero rows at commit time.

    Preflight saw enough stock but a concurrent writer drained the row
    before the guarded update ran.  Reported as insufficient stock.
    """

    code: str = "STOCK_RACE"

    def __init__(
        self,
        product_id: UUID | str,
        department_id: UUID | str,
        required: int,
        observed_available: int,
    ):
        super().__init__(
            product_id=product_id,
            department_id=department_id,
            available=observed_available,
            required=required,
            message=(
                f"Insufficient stock for product {product_id} in department "
                f"{department_id}: balance fell below {required} before commit"
            ),
        )


# Concurrency-related exceptions


class ConcurrencyError(InventoryKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class TransientLedgerError(ConcurrencyError):
    """Retryable failure while executing a ledger mutation."""

    code: str = "TRANSIENT_LEDGER_ERROR"

    def __init__(self, reason: str, attempt: int | None = None):
        self.reason = reason
        self.attempt = attempt
        super().__init__(f"Transient ledger failure: {reason}")


# Immutability-related exceptions


class ImmutabilityError(InventoryKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
