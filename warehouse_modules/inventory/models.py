"""
Inventory Domain Models.

Validated inputs for shelf maintenance.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from warehouse_kernel.exceptions import ValidationError
from warehouse_kernel.logging_config import get_logger

logger = get_logger("modules.inventory.models")


def _text_errors(field_name: str, value: Any, limit: int = 100) -> list[dict]:
    if not isinstance(value, str) or not value.strip():
        return [{"field": field_name, "value": value, "message": "must be a non-empty string"}]
    if len(value) > limit:
        return [{"field": field_name, "value": value, "message": f"must be at most {limit} characters"}]
    return []


def _stock_errors(value: Any) -> list[dict]:
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        return [{"field": "stock_qty", "value": value, "message": "must be a non-negative integer"}]
    return []


def _raise_if_errors(subject: str, errors: list[dict]) -> None:
    if errors:
        logger.warning(
            "inventory_input_invalid",
            extra={"subject": subject, "field_errors": errors},
        )
        raise ValidationError(subject, errors)


@dataclass(frozen=True)
class ShelfInput:
    location: str
    position: str
    stock_qty: int = 0
    item_id: UUID | None = None
    warehouse_id: UUID | None = None

    def __post_init__(self):
        errors = _text_errors("location", self.location) + _text_errors("position", self.position)
        errors += _stock_errors(self.stock_qty)
        _raise_if_errors("shelf", errors)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ShelfInput":
        return cls(
            location=data.get("location"),
            position=data.get("position"),
            stock_qty=data.get("stock_qty", 0),
            item_id=UUID(data["item_id"]) if data.get("item_id") else None,
            warehouse_id=UUID(data["warehouse_id"]) if data.get("warehouse_id") else None,
        )


@dataclass(frozen=True)
class ShelfUpdate:
    """Fields left as None are unchanged; ``clear_item`` releases the shelf."""
    location: str | None = None
    position: str | None = None
    stock_qty: int | None = None
    item_id: UUID | None = None
    warehouse_id: UUID | None = None
    clear_item: bool = False

    def __post_init__(self):
        errors = []
        if self.location is not None:
            errors += _text_errors("location", self.location)
        if self.position is not None:
            errors += _text_errors("position", self.position)
        if self.stock_qty is not None:
            errors += _stock_errors(self.stock_qty)
        if self.clear_item and self.item_id is not None:
            errors.append({
                "field": "item_id",
                "value": str(self.item_id),
                "message": "cannot set item_id together with clear_item",
            })
        _raise_if_errors("shelf", errors)
