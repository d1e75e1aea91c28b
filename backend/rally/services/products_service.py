# backend/rally/services/products_service.py
"""
Products Service

Product rows hold price and points-per-unit. Stock lives in InventoryLine
and is only changed through inventory_service. Editing points never touches
past sales: each sale snapshots its own points_awarded.
"""
from __future__ import annotations

from ..extensions import db
from ..errors import InvalidQuantity
from ..models import InventoryLine, Product, ProductSale
from ..models.inventory import GARMENT_SIZES, PRODUCT_TYPE_TICKET, PRODUCT_TYPES, TICKET_SIZE
from ..validation import ConflictError, ValidationError
from .concurrency import run_with_retry
from .inventory_service import get_product, normalize_size

PRODUCT_MUTABLE_FIELDS = {"name", "description", "price_cents", "points", "team_id", "image_url", "is_active"}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _check_numbers(patch: dict) -> None:
    for field in ("price_cents", "points"):
        if field in patch:
            value = patch[field]
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise InvalidQuantity(f"{field} must be an integer >= 0", details={field: value})


def create_product(patch: dict, sizes: dict[str, int] | None = None) -> Product:
    """
    Create a product and its inventory lines.

    Tickets always get exactly one ONESIZE line; garments default to the
    standard size run at quantity 0 unless sizes are given.
    """
    product_type = patch.get("type", "GARMENT")
    if product_type not in PRODUCT_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(PRODUCT_TYPES)}")
    if not patch.get("name"):
        raise ValidationError("name is required")
    _check_numbers(patch)

    if product_type == PRODUCT_TYPE_TICKET:
        sizes = {TICKET_SIZE: (sizes or {}).get(TICKET_SIZE, sum((sizes or {}).values()))}
    elif not sizes:
        sizes = {size: 0 for size in GARMENT_SIZES}

    lines = {}
    for size, qty in sizes.items():
        if isinstance(qty, bool) or not isinstance(qty, int) or qty < 0:
            raise InvalidQuantity("quantity must be an integer >= 0", details={"size": size, "quantity": qty})
        lines[normalize_size(size)] = qty

    def _op():
        if db.session.query(Product).filter(Product.name == patch["name"]).first() is not None:
            raise ConflictError("A product with this name already exists.")
        product = Product(type=product_type)
        apply_product_patch(product, patch)
        db.session.add(product)
        db.session.flush()
        for size, qty in lines.items():
            db.session.add(InventoryLine(product_id=product.id, size=size, quantity=qty))
        db.session.commit()
        return product

    return run_with_retry(_op)


def update_product(product_id: int, patch: dict) -> Product:
    _check_numbers(patch)

    def _op():
        product = get_product(product_id)
        if "name" in patch:
            clash = db.session.query(Product).filter(Product.name == patch["name"], Product.id != product_id).first()
            if clash is not None:
                raise ConflictError("A product with this name already exists.")
        apply_product_patch(product, patch)
        db.session.commit()
        return product

    return run_with_retry(_op)


def delete_product(product_id: int) -> dict:
    """
    Delete a product and its inventory lines in one transaction.

    Products with sales history are refused; deactivate those instead so
    past sales keep their product.
    """

    def _op():
        product = get_product(product_id)
        if db.session.query(ProductSale).filter(ProductSale.product_id == product_id).first() is not None:
            raise ConflictError("Cannot delete a product with sales history. Deactivate it instead.")
        snapshot = product.to_dict()
        for line in db.session.query(InventoryLine).filter(InventoryLine.product_id == product_id).all():
            db.session.delete(line)
        db.session.flush()
        db.session.delete(product)
        db.session.commit()
        return snapshot

    return run_with_retry(_op)
