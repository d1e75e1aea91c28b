# Overview: Flask API routes for product sales and ticket purchases; parses input and returns JSON responses.

# backend/rally/routes/sales.py
"""Sales API routes with role enforcement"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_role
from ..errors import RallyError
from ..models import ProductSale
from ..models.teams import ROLE_ADMIN, ROLE_COACH, ROLE_STAFF
from ..services import sale_service
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_amount,
    parse_strict_int,
    validate_payload,
)


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")

SELLER_ROLES = (ROLE_COACH, ROLE_STAFF, ROLE_ADMIN)

SALE_POLICY = ModelValidationPolicy(
    writable_fields={
        "product_id", "size", "quantity", "user_id", "team_id",
        "payment_method", "amount_paid_cents",
    },
    required_on_create={"product_id", "size", "quantity", "user_id", "payment_method", "amount_paid_cents"},
)

EXTERNAL_SALE_POLICY = ModelValidationPolicy(
    writable_fields={
        "product_id", "size", "quantity", "buyer_name", "buyer_email",
        "payment_method", "amount_paid_cents",
    },
    required_on_create={"product_id", "size", "quantity", "buyer_name", "payment_method", "amount_paid_cents"},
)

TICKET_POLICY = ModelValidationPolicy(
    writable_fields={"product_id", "user_id", "buyer_name", "buyer_email"},
    required_on_create={"product_id"},
)


@sales_bp.post("/")
@require_auth
@require_role(*SELLER_ROLES)
def create_sale_route():
    """
    Sell product units to a registered buyer.

    Awards product points x quantity to the buyer's team (or team_id when
    given). Returns 409 with on_hand details when stock runs out.
    Available to: coach, staff, admin
    """
    try:
        patch = validate_payload(
            model=ProductSale,
            payload=request.get_json(silent=True),
            policy=SALE_POLICY,
            partial=False,
        )
        enforce_rules_amount(patch)
        sale = sale_service.sell(
            product_id=patch["product_id"],
            size=patch["size"],
            quantity=patch["quantity"],
            buyer_id=patch["user_id"],
            coach_id=g.current_user.id,
            payment_method=patch["payment_method"],
            amount_paid_cents=patch["amount_paid_cents"],
            team_id=patch.get("team_id"),
        )
        return jsonify({"sale": sale.to_dict()}), 201

    except RallyError as e:
        return jsonify(e.to_dict()), e.status_code
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/external")
@require_auth
@require_role(*SELLER_ROLES)
def create_external_sale_route():
    """
    Sell to a customer without an account. Stock and money move; no points.

    Available to: coach, staff, admin
    """
    try:
        patch = validate_payload(
            model=ProductSale,
            payload=request.get_json(silent=True),
            policy=EXTERNAL_SALE_POLICY,
            partial=False,
        )
        enforce_rules_amount(patch)

        sale = sale_service.sell_external(
            product_id=patch["product_id"],
            size=patch["size"],
            quantity=patch["quantity"],
            customer_name=patch["buyer_name"],
            customer_email=patch.get("buyer_email"),
            coach_id=g.current_user.id,
            payment_method=patch["payment_method"],
            amount_paid_cents=patch["amount_paid_cents"],
        )
        return jsonify({"sale": sale.to_dict()}), 201

    except RallyError as e:
        return jsonify(e.to_dict()), e.status_code
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create external sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/tickets")
@require_auth
def purchase_ticket_route():
    """
    Purchase one ticket. Students always buy for themselves; staff may
    record a purchase for another account or an inline buyer.
    """
    try:
        patch = validate_payload(
            model=ProductSale,
            payload=request.get_json(silent=True),
            policy=TICKET_POLICY,
            partial=False,
        )

        buyer_id = patch.get("user_id")
        if g.current_user.role not in SELLER_ROLES or (
            buyer_id is None and not (patch.get("buyer_name") or patch.get("buyer_email"))
        ):
            buyer_id = g.current_user.id

        sale = sale_service.purchase_ticket(
            product_id=patch["product_id"],
            buyer_id=buyer_id,
            buyer_name=patch.get("buyer_name"),
            buyer_email=patch.get("buyer_email"),
        )
        return jsonify({"sale": sale.to_dict()}), 201

    except RallyError as e:
        return jsonify(e.to_dict()), e.status_code
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to purchase ticket")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.delete("/<int:sale_id>")
@require_auth
@require_role(*SELLER_ROLES)
def delete_sale_route(sale_id: int):
    """
    Delete a sale: restock, void its points, drop its donation.

    Coaches may only delete their own sales; admins may delete any.
    """
    try:
        result = sale_service.delete_sale(
            sale_id,
            g.current_user.id,
            allow_any_seller=g.current_user.is_admin,
        )
        return jsonify(result), 200

    except RallyError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_role(*SELLER_ROLES)
def get_sale_route(sale_id: int):
    try:
        sale = sale_service.get_sale(sale_id)
    except RallyError as e:
        return jsonify(e.to_dict()), e.status_code
    return jsonify({"sale": sale.to_dict()}), 200


@sales_bp.get("/")
@require_auth
@require_role(*SELLER_ROLES)
def list_sales_route():
    """
    List sales, newest first. Coaches see their own sales unless they are
    staff or admin.

    Query: team_id, coach_id, limit
    """
    try:
        filters = {}
        for field in ("team_id", "coach_id", "limit"):
            if request.args.get(field):
                filters[field] = parse_strict_int(request.args[field], field)
        if g.current_user.role == ROLE_COACH:
            filters["coach_id"] = g.current_user.id

        sales = sale_service.list_sales(**filters)
        return jsonify({"sales": [s.to_dict() for s in sales]}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
