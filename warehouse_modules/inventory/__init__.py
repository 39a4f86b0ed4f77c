"""
Inventory Module.

Shelf maintenance.  Shelf allocation for incoming goods lives in the kernel
(``warehouse_kernel.services.shelf_allocator``).
"""

from warehouse_modules.inventory.models import ShelfInput, ShelfUpdate
from warehouse_modules.inventory.service import InventoryService

__all__ = ["InventoryService", "ShelfInput", "ShelfUpdate"]
