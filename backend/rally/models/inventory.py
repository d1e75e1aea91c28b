from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


PRODUCT_TYPE_GARMENT = "GARMENT"
PRODUCT_TYPE_TICKET = "TICKET"
PRODUCT_TYPES = (PRODUCT_TYPE_GARMENT, PRODUCT_TYPE_TICKET)

# Tickets carry exactly one inventory line under this key
TICKET_SIZE = "ONESIZE"
GARMENT_SIZES = ("XS", "S", "M", "L", "XL", "XXL")


class Product(db.Model):
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_type_active", "type", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    type = db.Column(db.String(16), nullable=False, default=PRODUCT_TYPE_GARMENT)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False, default=0)

    # Points earned per unit sold; snapshotted onto each sale
    points = db.Column(db.Integer, nullable=False, default=0)

    # Ticket beneficiary team for purchases whose buyer has no team
    team_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=True, index=True)

    image_url = db.Column(db.String(512), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    team = db.relationship("Team")
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} type={self.type}>"

    @property
    def is_ticket(self) -> bool:
        return self.type == PRODUCT_TYPE_TICKET

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "type": self.type,
            "price_cents": self.price_cents,
            "points": self.points,
            "team_id": self.team_id,
            "image_url": self.image_url,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class InventoryLine(db.Model):
    """
    One authoritative stock counter per (product, size).

    INVARIANT: quantity >= 0 at every observable instant. All writes go
    through inventory_service (conditional UPDATE); the check constraint is
    the storage-level backstop.
    """
    __tablename__ = "inventory_lines"
    __table_args__ = (
        db.UniqueConstraint("product_id", "size", name="uq_inventory_lines_product_size"),
        db.CheckConstraint("quantity >= 0", name="ck_inventory_lines_quantity_nonnegative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    size = db.Column(db.String(16), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=0)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product", backref=db.backref("inventory", lazy=True, order_by="InventoryLine.id"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "size": self.size,
            "quantity": self.quantity,
            "updated_at": to_utc_z(self.updated_at),
        }
