# Overview: Flask API routes for the scanning screen; camera errors and cart quotes.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth
from ..services import barcode_service
from ..services.cart import Cart
from ..services.scan_service import classify_camera_error
from ..validation import InsufficientStockError, ValidationError, require_positive_int


scan_bp = Blueprint("scan", __name__, url_prefix="/api")


@scan_bp.post("/scan/camera-error")
@require_auth
def camera_error_route():
    """
    The browser reports getUserMedia failures here ({name, message}) and gets
    back the category and the message to show the cashier.
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid request data"}), 400
    name = data.get("name")
    if not name or not isinstance(name, str):
        return jsonify({"error": "Invalid request data"}), 400

    error = classify_camera_error(name, detail=data.get("message") or None)
    current_app.logger.info("Camera error reported: %s (%s)", name, error.category)
    return jsonify(error.to_dict())


@scan_bp.post("/cart/quote")
@require_auth
def cart_quote_route():
    """
    Price a cart against current catalog data without selling anything.

    Body: {items: [{barcode_id, jumlah, diskon?}]}
    Returns the cart totals, or the first line that cannot be filled.
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid request data"}), 400
    items = data.get("items")
    if not isinstance(items, list):
        return jsonify({"error": "Invalid request data"}), 400

    cart = Cart()
    try:
        for item in items:
            if not isinstance(item, dict):
                raise ValidationError("Invalid request data")
            product = barcode_service.resolve_barcode(item.get("barcode_id"))
            if product is None:
                return jsonify({
                    "error": "Produk tidak ditemukan",
                    "barcode_id": item.get("barcode_id"),
                }), 404
            line = cart.add(product.to_dict(), require_positive_int(item.get("jumlah", 1)))
            if item.get("diskon"):
                cart.set_discount(line.barcode_id, require_positive_int(item["diskon"]))
    except InsufficientStockError as e:
        return jsonify({"error": str(e), "available": e.available, "barcode_id": e.barcode_id}), 400
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    quote = cart.to_dict()
    quote["checkout_items"] = cart.to_checkout_items()
    return jsonify(quote)
