# Overview: Flask API routes for barcode lookup; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth
from ..services import barcode_service


barcode_bp = Blueprint("barcode", __name__, url_prefix="/api/barcode")


@barcode_bp.post("")
@require_auth
def resolve_barcode_route():
    """
    Resolve a scanned or typed code.

    200 {success, found: true, product}
    404 {error, barcode_id, found: false}
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid request data"}), 400
    raw = data.get("barcode_id")

    if raw is None or not str(raw).strip():
        return jsonify({"error": "Barcode ID required"}), 400

    try:
        product = barcode_service.resolve_barcode(str(raw))
    except Exception as e:
        current_app.logger.exception("Barcode lookup failed")
        return jsonify({"error": str(e)}), 500

    if product is None:
        return jsonify({
            "error": "Produk tidak ditemukan",
            "barcode_id": barcode_service.normalize_barcode(str(raw)),
            "found": False,
        }), 404

    return jsonify({"success": True, "found": True, "product": product.to_dict()})


@barcode_bp.get("/generate")
@require_auth
def generate_barcode_route():
    """Suggest an unused BRKnnnn code for a product without a printed barcode."""
    try:
        return jsonify({"barcode_id": barcode_service.generate_barcode_id()})
    except RuntimeError as e:
        return jsonify({"error": str(e)}), 409
    except Exception as e:
        current_app.logger.exception("Failed to generate barcode")
        return jsonify({"error": str(e)}), 500
