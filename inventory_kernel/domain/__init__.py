"""
Pure domain layer.

Value objects, DTOs and policies with NO dependencies on the ORM, the
database or I/O (SystemClock excepted).  All domain objects are immutable.
"""

from inventory_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from inventory_kernel.domain.dtos import (
    AvailabilityCheck,
    DepartmentInfo,
    LedgerEntryView,
    LegacyStockRecord,
    LocationSummary,
    MigrationReport,
    MovementView,
    SectionInfo,
    TransferItemRecord,
    TransferItemSpec,
    TransferRecord,
    shortfall_message,
)
from inventory_kernel.domain.locations import (
    DEPARTMENT_SCOPE_KEY,
    SECTION_DELIMITER,
    DepartmentLocation,
    DestinationCode,
    Location,
    SectionLocation,
    compose_section_code,
    location_for,
    location_scope_key,
    parse_destination_code,
    slugify,
)
from inventory_kernel.domain.policy import RetryPolicy
from inventory_kernel.domain.products import ProductType

__all__ = [
    # Clock
    "Clock",
    "SystemClock",
    "DeterministicClock",
    # Locations
    "DEPARTMENT_SCOPE_KEY",
    "SECTION_DELIMITER",
    "DepartmentLocation",
    "SectionLocation",
    "Location",
    "DestinationCode",
    "compose_section_code",
    "location_for",
    "location_scope_key",
    "parse_destination_code",
    "slugify",
    # Products
    "ProductType",
    # DTOs
    "AvailabilityCheck",
    "DepartmentInfo",
    "SectionInfo",
    "LedgerEntryView",
    "LegacyStockRecord",
    "LocationSummary",
    "MigrationReport",
    "MovementView",
    "TransferItemRecord",
    "TransferItemSpec",
    "TransferRecord",
    "shortfall_message",
    # Policy
    "RetryPolicy",
]
