from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


PAYMENT_METHODS = ("CASH", "CARD", "VENMO", "CHECK", "ONLINE", "OTHER")


class ProductSale(db.Model):
    """
    One sale of N units of a single (product, size).

    team_id and points_awarded are snapshots taken at sale time: scoring
    never follows a buyer who later changes teams, and deleting the sale
    reverses exactly the points it granted even if the product was edited.
    """
    __tablename__ = "product_sales"
    __table_args__ = (
        db.Index("ix_product_sales_coach_sold", "coach_id", "sold_at"),
        db.Index("ix_product_sales_team_sold", "team_id", "sold_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    size = db.Column(db.String(16), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    # Either a resolved account or an inline identity (external / online buyers)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    buyer_name = db.Column(db.String(120), nullable=True)
    buyer_email = db.Column(db.String(255), nullable=True)
    is_external = db.Column(db.Boolean, nullable=False, default=False)

    team_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=True)

    # Null for online ticket purchases
    coach_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    payment_method = db.Column(db.String(16), nullable=False)
    amount_paid_cents = db.Column(db.Integer, nullable=False, default=0)
    points_awarded = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    sold_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product")
    user = db.relationship("User", foreign_keys=[user_id])
    coach = db.relationship("User", foreign_keys=[coach_id])
    team = db.relationship("Team")
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "size": self.size,
            "quantity": self.quantity,
            "user_id": self.user_id,
            "buyer_name": self.buyer_name if self.buyer_name else (self.user.name if self.user else None),
            "buyer_email": self.buyer_email if self.buyer_email else (self.user.email if self.user else None),
            "is_external": self.is_external,
            "team_id": self.team_id,
            "coach_id": self.coach_id,
            "payment_method": self.payment_method,
            "amount_paid_cents": self.amount_paid_cents,
            "points_awarded": self.points_awarded,
            "version_id": self.version_id,
            "sold_at": to_utc_z(self.sold_at),
        }


class Donation(db.Model):
    """
    Financial record. Donations never carry points.

    Sales write one donation row each (product_sale_id set) so that deleting
    a sale removes exactly its own financial record.
    """
    __tablename__ = "donations"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    currency = db.Column(db.String(8), nullable=False, default="usd")

    team_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=True, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    product_sale_id = db.Column(db.Integer, db.ForeignKey("product_sales.id"), nullable=True, unique=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "amount_cents": self.amount_cents,
            "currency": self.currency,
            "team_id": self.team_id,
            "user_id": self.user_id,
            "product_sale_id": self.product_sale_id,
            "created_at": to_utc_z(self.created_at),
        }
