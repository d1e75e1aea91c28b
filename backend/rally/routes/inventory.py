# Overview: Flask API routes for inventory operations; parses input and returns JSON responses.

# backend/rally/routes/inventory.py
from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_role
from ..errors import RallyError
from ..models.teams import ROLE_ADMIN, ROLE_STAFF, REVIEWER_ROLES
from ..services import inventory_service
from ..validation import ValidationError, parse_strict_int

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("/")
@require_auth
def list_inventory_route():
    include_inactive = request.args.get("include_inactive", "").lower() in {"1", "true", "yes"}
    return jsonify({"items": inventory_service.list_inventory(include_inactive=include_inactive)}), 200


@inventory_bp.get("/<int:product_id>")
@require_auth
def get_inventory_route(product_id: int):
    try:
        return jsonify(inventory_service.get_inventory(product_id)), 200
    except RallyError as e:
        return jsonify(e.to_dict()), e.status_code


@inventory_bp.get("/<int:product_id>/<size>")
@require_auth
@require_role(*REVIEWER_ROLES)
def get_quantity_route(product_id: int, size: str):
    try:
        quantity = inventory_service.get_quantity(product_id, size)
        return jsonify({"product_id": product_id, "size": size.upper(), "quantity": quantity}), 200
    except RallyError as e:
        return jsonify(e.to_dict()), e.status_code


@inventory_bp.put("/<int:product_id>/<size>")
@require_auth
@require_role(ROLE_STAFF, ROLE_ADMIN)
def set_quantity_route(product_id: int, size: str):
    """
    Set a line to an absolute on-hand quantity.

    Body: {"quantity": int >= 0}
    Available to: staff, admin
    """
    try:
        data = request.get_json(silent=True) or {}
        if "quantity" not in data:
            return jsonify({"error": "quantity required"}), 400

        line = inventory_service.set_quantity(product_id, size, parse_strict_int(data["quantity"], "quantity"))
        return jsonify({"line": line.to_dict()}), 200

    except RallyError as e:
        return jsonify(e.to_dict()), e.status_code
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to set inventory quantity")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/<int:product_id>/<size>")
@require_auth
@require_role(ROLE_STAFF, ROLE_ADMIN)
def add_size_route(product_id: int, size: str):
    try:
        line = inventory_service.add_size(product_id, size)
        return jsonify({"line": line.to_dict()}), 201

    except RallyError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to add inventory size")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.delete("/<int:product_id>/<size>")
@require_auth
@require_role(ROLE_STAFF, ROLE_ADMIN)
def remove_size_route(product_id: int, size: str):
    try:
        inventory_service.remove_size(product_id, size)
        return jsonify({"removed": True, "product_id": product_id, "size": size.upper()}), 200

    except RallyError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to remove inventory size")
        return jsonify({"error": "Internal server error"}), 500
