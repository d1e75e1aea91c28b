# Overview: Flask API routes for the product catalogue (garments and tickets).

# backend/rally/routes/products.py
"""
Product management routes.

Stock is not editable here; it moves through sales and the inventory
routes. Read operations are open to any authenticated user, writes to
staff and admins.
"""
from flask import Blueprint, request, jsonify

from ..decorators import require_auth, require_role
from ..errors import RallyError
from ..models import Product
from ..models.teams import ROLE_ADMIN, ROLE_STAFF
from ..services import inventory_service, products_service
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_amount,
    enforce_rules_points,
    validate_payload,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "type", "price_cents", "points", "team_id", "image_url", "is_active"},
    required_on_create={"name"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("/")
@require_auth
def list_products_route():
    include_inactive = request.args.get("include_inactive", "").lower() in {"1", "true", "yes"}
    return jsonify({"products": inventory_service.list_inventory(include_inactive=include_inactive)}), 200


@products_bp.post("/")
@require_auth
@require_role(ROLE_STAFF, ROLE_ADMIN)
def create_product_route():
    """
    Create a product with its inventory lines.

    Body: product fields plus optional "sizes": {"M": 10, ...}. Tickets
    always get a single ONESIZE line.
    """
    payload = dict(request.get_json(silent=True) or {})
    sizes = payload.pop("sizes", None)
    if sizes is not None and not isinstance(sizes, dict):
        return {"error": "sizes must be an object"}, 400

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_amount(patch, field="price_cents")
        enforce_rules_points(patch)
        created = products_service.create_product(patch, sizes=sizes)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    except RallyError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify(inventory_service.get_inventory(created.id)), 201


@products_bp.patch("/<int:product_id>")
@require_auth
@require_role(ROLE_STAFF, ROLE_ADMIN)
def update_product_route(product_id: int):
    """
    Edit a product. Point changes apply to future sales only.
    """
    payload = request.get_json(silent=True) or {}
    if "type" in payload:
        return {"error": "type cannot be changed"}, 400

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_amount(patch, field="price_cents")
        enforce_rules_points(patch)
        product = products_service.update_product(product_id, patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    except RallyError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify({"product": product.to_dict()}), 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_role(ROLE_ADMIN)
def delete_product_route(product_id: int):
    """
    Delete a product that has never been sold. Sold products return 409.

    Available to: admin
    """
    try:
        product = products_service.delete_product(product_id)
    except ConflictError as e:
        return {"error": str(e)}, 409
    except RallyError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify({"deleted": True, "product": product}), 200
