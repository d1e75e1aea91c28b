# Overview: Service-layer operations for inventory; the only code allowed to change stock counters.

# backend/rally/services/inventory_service.py

from __future__ import annotations

from flask import current_app
from sqlalchemy import func, update

from ..extensions import db
from ..errors import Forbidden, InsufficientStock, InvalidQuantity, NotFound
from ..models import InventoryLine, Product
from ..models.inventory import TICKET_SIZE
from .concurrency import begin_write, lock_for_update, run_with_retry
"""
Rally Inventory Invariants (authoritative)

- One InventoryLine per (product, size); the store is size-key agnostic.
  Tickets use the single key ONESIZE, garments one line per size.
- quantity >= 0 at every observable instant, including under concurrency.
- reserve() is a compare-and-decrement: the availability check and the
  decrement are one conditional UPDATE. Two sales of the last unit cannot
  both succeed.
- reserve() never waits for stock; it fails immediately with InsufficientStock.
- restock() is the unconditional inverse used when a sale is deleted.
- reserve()/restock() join the caller's transaction and never commit.
  set_quantity() and remove_size() are admin edits with their own commit.
"""


def normalize_size(size) -> str:
    if size is None or str(size).strip() == "":
        raise InvalidQuantity("size is required")
    return str(size).strip().upper()


def _require_quantity(quantity, *, allow_zero: bool) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidQuantity("quantity must be an integer", details={"quantity": quantity})
    if quantity < 0 or (quantity == 0 and not allow_zero):
        raise InvalidQuantity(
            "quantity must be >= 0" if allow_zero else "quantity must be > 0",
            details={"quantity": quantity},
        )
    return quantity


def get_product(product_id: int, *, require_active: bool = False, lock: bool = False) -> Product:
    query = db.session.query(Product).filter_by(id=product_id)
    if lock:
        query = lock_for_update(query)
    product = query.first()
    if product is None:
        raise NotFound("Product not found", details={"product_id": product_id})
    if require_active and not product.is_active:
        raise NotFound("Product is inactive", details={"product_id": product_id})
    return product


def _load_line(product_id: int, size: str) -> InventoryLine | None:
    return (
        db.session.query(InventoryLine)
        .filter_by(product_id=product_id, size=size)
        .populate_existing()
        .first()
    )


def get_quantity(product_id: int, size: str) -> int:
    """Current on-hand for one line; a missing line reads as 0."""
    size = normalize_size(size)
    qty = (
        db.session.query(InventoryLine.quantity)
        .filter_by(product_id=product_id, size=size)
        .scalar()
    )
    return int(qty or 0)


def reserve(product_id: int, size: str, quantity: int) -> InventoryLine:
    """
    Atomically take `quantity` units out of (product, size).

    Raises InsufficientStock (with the current on-hand) when the line is
    missing or holds fewer units; nothing is changed in that case.
    """
    quantity = _require_quantity(quantity, allow_zero=False)
    size = normalize_size(size)

    result = db.session.execute(
        update(InventoryLine)
        .where(
            InventoryLine.product_id == product_id,
            InventoryLine.size == size,
            InventoryLine.quantity >= quantity,
        )
        .values(quantity=InventoryLine.quantity - quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        on_hand = get_quantity(product_id, size)
        raise InsufficientStock(
            "Insufficient inventory",
            details={
                "product_id": product_id,
                "size": size,
                "requested_quantity": quantity,
                "on_hand": on_hand,
            },
        )

    return _load_line(product_id, size)


def restock(product_id: int, size: str, quantity: int) -> InventoryLine:
    """
    Unconditionally return `quantity` units to (product, size).

    Recreates the line when an admin removed the size after the sale.
    """
    quantity = _require_quantity(quantity, allow_zero=False)
    size = normalize_size(size)

    result = db.session.execute(
        update(InventoryLine)
        .where(InventoryLine.product_id == product_id, InventoryLine.size == size)
        .values(quantity=InventoryLine.quantity + quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.session.add(InventoryLine(product_id=product_id, size=size, quantity=quantity))
        db.session.flush()

    return _load_line(product_id, size)


def set_quantity(product_id: int, size: str, quantity: int) -> InventoryLine:
    """
    Admin edit: set a line to an absolute quantity (creating it if needed).

    Not used by sales. Rejects negative and non-integer values with
    InvalidQuantity.
    """
    quantity = _require_quantity(quantity, allow_zero=True)
    size = normalize_size(size)

    def _op():
        begin_write()
        product = get_product(product_id, lock=True)
        if product.is_ticket and size != TICKET_SIZE:
            raise Forbidden("Tickets only carry the ONESIZE line", details={"product_id": product_id, "size": size})

        line = lock_for_update(
            db.session.query(InventoryLine).filter_by(product_id=product_id, size=size)
        ).first()
        previous = line.quantity if line else None
        if line is None:
            line = InventoryLine(product_id=product_id, size=size, quantity=quantity)
            db.session.add(line)
        else:
            line.quantity = quantity

        db.session.commit()
        current_app.logger.info(
            "Inventory set product_id=%s size=%s quantity=%s (was %s)",
            product_id, size, quantity, previous,
        )
        return line

    return run_with_retry(_op)


def add_size(product_id: int, size: str) -> InventoryLine:
    """Add an empty size line to a garment. Idempotent for an existing line."""
    size = normalize_size(size)

    def _op():
        begin_write()
        product = get_product(product_id, lock=True)
        if product.is_ticket:
            raise Forbidden("Tickets only carry a single size", details={"product_id": product_id})

        line = _load_line(product_id, size)
        if line is None:
            line = InventoryLine(product_id=product_id, size=size, quantity=0)
            db.session.add(line)
            current_app.logger.info("Inventory size added product_id=%s size=%s", product_id, size)
        db.session.commit()
        return line

    return run_with_retry(_op)


def remove_size(product_id: int, size: str) -> None:
    """Delete an empty inventory line. Lines with stock must be zeroed first."""
    size = normalize_size(size)

    def _op():
        begin_write()
        line = lock_for_update(
            db.session.query(InventoryLine).filter_by(product_id=product_id, size=size)
        ).first()
        if line is None:
            raise NotFound("Inventory line not found", details={"product_id": product_id, "size": size})
        if line.quantity != 0:
            raise Forbidden(
                "Cannot remove a size that still has stock",
                details={"product_id": product_id, "size": size, "on_hand": line.quantity},
            )
        db.session.delete(line)
        db.session.commit()

    run_with_retry(_op)


def get_inventory(product_id: int) -> dict:
    product = get_product(product_id)
    lines = (
        db.session.query(InventoryLine)
        .filter_by(product_id=product_id)
        .order_by(InventoryLine.id.asc())
        .all()
    )
    return {
        "product": product.to_dict(),
        "lines": [line.to_dict() for line in lines],
        "total_quantity": sum(line.quantity for line in lines),
    }


def list_inventory(*, include_inactive: bool = False) -> list[dict]:
    query = db.session.query(Product)
    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))
    products = query.order_by(Product.name.asc()).all()

    totals = dict(
        db.session.query(InventoryLine.product_id, func.coalesce(func.sum(InventoryLine.quantity), 0))
        .group_by(InventoryLine.product_id)
        .all()
    )

    items = []
    for product in products:
        items.append({
            **product.to_dict(),
            "inventory": [line.to_dict() for line in product.inventory],
            "total_quantity": int(totals.get(product.id, 0)),
        })
    return items
