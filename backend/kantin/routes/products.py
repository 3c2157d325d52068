# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/kantin/routes/products.py
"""
Product catalog routes.

The till client addresses products by query string (?id=) for update and
delete, so PUT/DELETE live on the collection URL.
"""
from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth
from ..models import Product
from ..services import products_service
from ..validation import (
    PRODUCT_CATEGORIES,
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    ConflictError,
    NotFoundError,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"barcode_id", "nama_produk", "kategori", "stok", "harga_modal", "harga_jual"},
    required_on_create={"barcode_id", "nama_produk", "kategori"},
    ignored_fields={"id", "created_at", "updated_at"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _product_id_arg():
    raw = request.args.get("id")
    if raw is None or not raw.strip():
        raise ValidationError("ID required")
    try:
        return int(raw)
    except ValueError:
        raise NotFoundError("Produk tidak ditemukan")


@products_bp.get("")
@require_auth
def list_products_route():
    """All products, newest first."""
    try:
        return jsonify([p.to_dict() for p in products_service.list_products()])
    except Exception as e:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": str(e)}), 500


@products_bp.get("/categories")
@require_auth
def list_categories_route():
    return jsonify(list(PRODUCT_CATEGORIES))


@products_bp.post("")
@require_auth
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        created = products_service.create_product(patch=patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception as e:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": str(e)}), 500

    return jsonify(created.to_dict()), 201


@products_bp.put("")
@require_auth
def update_product_route():
    """
    Partial update: only the keys sent are changed. The price rule is checked
    against the stored record merged with the patch.
    """
    payload = request.get_json(silent=True) or {}

    try:
        product_id = _product_id_arg()
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        updated = products_service.update_product(product_id=product_id, patch=patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception as e:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": str(e)}), 500

    return jsonify(updated.to_dict())


@products_bp.delete("")
@require_auth
def delete_product_route():
    try:
        product_id = _product_id_arg()
        products_service.delete_product(product_id=product_id)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception as e:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": str(e)}), 500

    return jsonify({"message": "Deleted successfully"})


@products_bp.get("/low-stock")
@require_auth
def low_stock_route():
    threshold = request.args.get("threshold", type=int)
    if threshold is None:
        threshold = current_app.config.get("LOW_STOCK_THRESHOLD", 10)
    products = products_service.low_stock_products(threshold)
    return jsonify({"threshold": threshold, "items": [p.to_dict() for p in products]})
