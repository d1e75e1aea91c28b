"""
Sale Service - inventory-backed, point-bearing product and ticket sales

WHY: A sale touches three stores at once: stock leaves the Inventory Store,
the Award Ledger grants the buyer's team points, and the Donation ledger
records the money. All three commit together or not at all, and delete_sale
is the exact inverse.

Team-less sales (external customers, tickets bought by an inline identity
with no beneficiary team) are financial only: they get no ledger award and
never reach a team score.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import Forbidden, InvalidQuantity, NotFound
from ..models import ProductSale, Team, User
from ..models.inventory import TICKET_SIZE
from ..models.ledger import SOURCE_SALE
from ..models.sales import PAYMENT_METHODS
from ..validation import ValidationError
from . import award_ledger_service, donation_service, inventory_service, leaderboard_service
from .concurrency import begin_write, lock_for_update, run_with_retry


def _require_payment(payment_method: str, amount_paid_cents) -> tuple[str, int]:
    method = (payment_method or "").strip().upper()
    if method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")
    if isinstance(amount_paid_cents, bool) or not isinstance(amount_paid_cents, int) or amount_paid_cents < 0:
        raise InvalidQuantity("amount_paid_cents must be an integer >= 0", details={"amount_paid_cents": amount_paid_cents})
    return method, amount_paid_cents


def _record_sale(
    *,
    product,
    size: str,
    quantity: int,
    payment_method: str,
    amount_paid_cents: int,
    coach_id: int | None,
    user_id: int | None,
    team_id: int | None,
    buyer_name: str | None = None,
    buyer_email: str | None = None,
    is_external: bool = False,
) -> ProductSale:
    """
    reserve -> sale row -> donation -> award, inside the caller's transaction.

    InsufficientStock from the reservation aborts before anything else is
    written; any later failure is rolled back with the reservation.
    """
    inventory_service.reserve(product.id, size, quantity)

    points = product.points * quantity if team_id is not None else 0
    sale = ProductSale(
        product_id=product.id,
        size=inventory_service.normalize_size(size),
        quantity=quantity,
        user_id=user_id,
        buyer_name=buyer_name,
        buyer_email=buyer_email,
        is_external=is_external,
        team_id=team_id,
        coach_id=coach_id,
        payment_method=payment_method,
        amount_paid_cents=amount_paid_cents,
        points_awarded=points,
    )
    db.session.add(sale)
    db.session.flush()

    donation_service.add_sale_donation(
        sale_id=sale.id,
        amount_cents=amount_paid_cents,
        team_id=team_id,
        user_id=user_id,
    )

    if points > 0:
        award_ledger_service.create_award(SOURCE_SALE, sale.id, user_id, team_id, points)

    return sale


def _finish(sale: ProductSale, reason: str) -> ProductSale:
    current_app.logger.info(
        "Sale %s recorded: product=%s size=%s qty=%s team=%s points=%s",
        sale.id, sale.product_id, sale.size, sale.quantity, sale.team_id, sale.points_awarded,
    )
    if sale.points_awarded:
        leaderboard_service.publish(reason, team_ids=[sale.team_id])
    return sale


def sell(
    *,
    product_id: int,
    size: str,
    quantity: int,
    buyer_id: int,
    coach_id: int | None,
    payment_method: str,
    amount_paid_cents: int,
    team_id: int | None = None,
) -> ProductSale:
    """
    Sell `quantity` units to a registered buyer and award
    product.points * quantity to the buyer's team (snapshotted now).

    Raises InsufficientStock with no effects when the line cannot cover it.
    """
    method, amount = _require_payment(payment_method, amount_paid_cents)

    def _op():
        begin_write()
        product = inventory_service.get_product(product_id, require_active=True, lock=True)
        buyer = db.session.get(User, buyer_id)
        if buyer is None:
            raise NotFound("Buyer not found", details={"user_id": buyer_id})
        if team_id is not None:
            team = db.session.get(Team, team_id)
            if team is None or not team.is_active:
                raise NotFound("Team not found", details={"team_id": team_id})

        sale = _record_sale(
            product=product,
            size=size,
            quantity=quantity,
            payment_method=method,
            amount_paid_cents=amount,
            coach_id=coach_id,
            user_id=buyer.id,
            team_id=team_id if team_id is not None else buyer.team_id,
        )
        db.session.commit()
        return sale

    return _finish(run_with_retry(_op), "sale.created")


def sell_external(
    *,
    product_id: int,
    size: str,
    quantity: int,
    customer_name: str,
    customer_email: str | None,
    coach_id: int | None,
    payment_method: str,
    amount_paid_cents: int,
) -> ProductSale:
    """Sale to someone without an account: stock and money move, no points."""
    method, amount = _require_payment(payment_method, amount_paid_cents)
    if not customer_name or not str(customer_name).strip():
        raise ValidationError("customer_name is required for external sales")

    def _op():
        begin_write()
        product = inventory_service.get_product(product_id, require_active=True, lock=True)
        sale = _record_sale(
            product=product,
            size=size,
            quantity=quantity,
            payment_method=method,
            amount_paid_cents=amount,
            coach_id=coach_id,
            user_id=None,
            team_id=None,
            buyer_name=str(customer_name).strip(),
            buyer_email=customer_email,
            is_external=True,
        )
        db.session.commit()
        return sale

    return _finish(run_with_retry(_op), "sale.external")


def purchase_ticket(
    *,
    product_id: int,
    buyer_id: int | None = None,
    buyer_name: str | None = None,
    buyer_email: str | None = None,
) -> ProductSale:
    """
    Online ticket purchase: one ONESIZE unit at the ticket price, no coach.

    Buyer: explicit account, else the account matching buyer_email, else the
    inline name/email. Team: the buyer's team, else the ticket's configured
    team, else none (financial only).
    """
    if buyer_id is None and not (buyer_email or buyer_name):
        raise ValidationError("buyer_id or an inline buyer name/email is required")

    def _op():
        begin_write()
        product = inventory_service.get_product(product_id, require_active=True, lock=True)
        if not product.is_ticket:
            raise NotFound("Ticket not found", details={"product_id": product_id})

        buyer = None
        if buyer_id is not None:
            buyer = db.session.get(User, buyer_id)
            if buyer is None:
                raise NotFound("Buyer not found", details={"user_id": buyer_id})
        elif buyer_email:
            buyer = db.session.query(User).filter(User.email == buyer_email.strip().lower()).first()

        team_id = buyer.team_id if buyer is not None and buyer.team_id is not None else product.team_id

        sale = _record_sale(
            product=product,
            size=TICKET_SIZE,
            quantity=1,
            payment_method="ONLINE",
            amount_paid_cents=product.price_cents,
            coach_id=None,
            user_id=buyer.id if buyer is not None else None,
            team_id=team_id,
            buyer_name=None if buyer is not None else buyer_name,
            buyer_email=None if buyer is not None else buyer_email,
            is_external=buyer is None,
        )
        db.session.commit()
        return sale

    return _finish(run_with_retry(_op), "ticket.purchased")


def delete_sale(sale_id: int, actor_id: int | None, *, allow_any_seller: bool = False) -> dict:
    """
    Inverse of a sale: void its award, restock, drop its donation and the
    sale row, all in one transaction.

    Points removed are the snapshot taken at sale time. Only the selling
    coach may delete unless allow_any_seller (admin consoles).
    """

    def _op():
        begin_write()
        sale = lock_for_update(db.session.query(ProductSale).filter_by(id=sale_id)).first()
        if sale is None:
            raise NotFound("Sale not found", details={"sale_id": sale_id})
        if not allow_any_seller and sale.coach_id != actor_id:
            raise Forbidden("You can only delete sales you made", details={"sale_id": sale_id})

        snapshot = sale.to_dict()
        points_removed = 0
        if award_ledger_service.is_live(SOURCE_SALE, sale.id):
            award = award_ledger_service.void_award(SOURCE_SALE, sale.id, actor_id)
            points_removed = award.points

        inventory_service.restock(sale.product_id, sale.size, sale.quantity)
        donation_service.remove_sale_donation(sale.id)
        db.session.delete(sale)
        db.session.commit()
        return snapshot, points_removed

    snapshot, points_removed = run_with_retry(_op)
    current_app.logger.info(
        "Sale %s deleted by %s (restocked %s x %s, points removed: %s)",
        sale_id, actor_id, snapshot["quantity"], snapshot["size"], points_removed,
    )
    if points_removed:
        leaderboard_service.publish("sale.deleted", team_ids=[snapshot["team_id"]])
    return {"sale": snapshot, "points_removed": points_removed}


def get_sale(sale_id: int) -> ProductSale:
    sale = db.session.get(ProductSale, sale_id)
    if sale is None:
        raise NotFound("Sale not found", details={"sale_id": sale_id})
    return sale


def list_sales(*, coach_id: int | None = None, team_id: int | None = None, limit: int = 200) -> list[ProductSale]:
    query = db.session.query(ProductSale)
    if coach_id is not None:
        query = query.filter(ProductSale.coach_id == coach_id)
    if team_id is not None:
        query = query.filter(ProductSale.team_id == team_id)
    return query.order_by(ProductSale.sold_at.desc(), ProductSale.id.desc()).limit(limit).all()
