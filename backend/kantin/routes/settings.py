from __future__ import annotations

from flask import Blueprint, jsonify, request, current_app

from ..decorators import require_auth
from ..services import receipt_service, settings_service
from ..validation import ValidationError


settings_bp = Blueprint("settings", __name__, url_prefix="/api")


@settings_bp.get("/settings/receipt")
@require_auth
def get_receipt_settings_route():
    return jsonify(settings_service.get_receipt_settings())


@settings_bp.put("/settings/receipt")
@require_auth
def update_receipt_settings_route():
    payload = request.get_json(silent=True)
    try:
        settings = settings_service.update_receipt_settings(payload)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        current_app.logger.exception("Failed to update receipt settings")
        return jsonify({"error": str(e)}), 500
    return jsonify(settings)


@settings_bp.delete("/settings/receipt")
@require_auth
def reset_receipt_settings_route():
    return jsonify(settings_service.reset_receipt_settings())


@settings_bp.post("/receipts/preview")
@require_auth
def preview_receipt_route():
    """
    Test print.

    Body (all optional):
    - receipt: a receipt dict or a single ledger entry dict; a sample sale
      is used when omitted
    - settings: unsaved setting overrides to preview
    """
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid request data"}), 400
    overrides = payload.get("settings") or {}
    receipt = payload.get("receipt") or receipt_service.sample_receipt()

    if not isinstance(overrides, dict) or not isinstance(receipt, dict):
        return jsonify({"error": "Invalid request data"}), 400

    try:
        settings = settings_service.get_receipt_settings()
        settings.update(settings_service.validate_receipt_patch(overrides))
        html = receipt_service.render_receipt(receipt, settings)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except (KeyError, TypeError, ValueError) as e:
        return jsonify({"error": f"Invalid receipt: {e}"}), 400
    except Exception as e:
        current_app.logger.exception("Failed to render receipt preview")
        return jsonify({"error": str(e)}), 500

    return html, 200, {"Content-Type": "text/html; charset=utf-8"}
