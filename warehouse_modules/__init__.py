"""
Warehouse Modules.

Thin orchestration layers over the warehouse kernel.  Each module contains:
- Domain models (validated inputs and results)
- Workflows (state machines)
- Configuration schemas
- A service facade that owns the transaction

Modules:
- Procurement: Material requests, purchase orders, receipts, delivery orders
- Inventory: Shelf maintenance
"""

from warehouse_modules import inventory, procurement

__all__ = ["inventory", "procurement"]
