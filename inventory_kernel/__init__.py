"""
Inventory Kernel - multi-location stock ledger

A location-scoped inventory ledger with:
- One authoritative balance row per (department, section, product)
- Transparent, idempotent migration of legacy per-product quantities
- Atomic multi-item transfers guarded by conditional decrements
- Append-only movement audit trail
"""

__version__ = "0.1.0"
