"""
Warehouse Kernel

Transactional core of the warehouse procurement workflow:
- Material requests, purchase orders, goods receipts, delivery orders
- Derived parent statuses with explicit per-context vocabularies
- Quorum-based multi-party approval
- Locked per-document-type sequence counters
- Shelf allocation for received goods
"""

__version__ = "0.1.0"
