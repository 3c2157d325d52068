# Overview: Flask API routes for transactions operations; parses input and returns JSON responses.

# backend/kantin/routes/transactions.py
"""
Sales routes.

POST /api/transactions            one line  {barcode_id, jumlah}
POST /api/transactions/checkout   whole cart {items: [{barcode_id, jumlah, diskon?}]}

Both go through checkout_service, which records the ledger rows and
decrements stock in a single DB transaction.
"""
from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth
from ..extensions import db
from ..models import User
from ..services import checkout_service, ledger_service, receipt_service, settings_service
from ..services.checkout_service import CheckoutError
from ..services.reporting_service import ReportError, parse_range
from ..validation import InsufficientStockError, NotFoundError, ValidationError


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


def _kasir_name(user) -> str | None:
    if user is None:
        return None
    return user.display_name or user.username


def _checkout_error_response(e: Exception):
    if isinstance(e, InsufficientStockError):
        return jsonify({"error": str(e), "available": e.available, "barcode_id": e.barcode_id}), 400
    if isinstance(e, ValidationError):
        return jsonify({"error": str(e)}), 400
    if isinstance(e, NotFoundError):
        return jsonify({"error": str(e)}), 404
    if isinstance(e, CheckoutError):
        return jsonify({"error": str(e), "details": e.details}), 500
    current_app.logger.exception("Checkout failed")
    return jsonify({"error": str(e)}), 500


@transactions_bp.get("")
@require_auth
def list_transactions_route():
    """
    Ledger, newest first.

    Query params:
    - start, end: YYYY-MM-DD (optional, inclusive)
    """
    try:
        start, end = parse_range(request.args.get("start"), request.args.get("end"))
    except ReportError as e:
        return jsonify({"error": str(e)}), 400

    try:
        entries = ledger_service.list_transactions(start, end)
    except Exception as e:
        current_app.logger.exception("Failed to list transactions")
        return jsonify({"error": str(e)}), 500

    return jsonify([t.to_dict() for t in entries])


@transactions_bp.get("/<transaksi_id>")
@require_auth
def get_transaction_route(transaksi_id: str):
    try:
        entry = ledger_service.get_transaction(transaksi_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(entry.to_dict())


@transactions_bp.post("")
@require_auth
def create_transaction_route():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid request data"}), 400

    try:
        entry = checkout_service.checkout_line(
            data.get("barcode_id"),
            data.get("jumlah"),
            user_id=g.current_user.id,
        )
    except Exception as e:
        return _checkout_error_response(e)

    return jsonify(entry.to_dict()), 201


@transactions_bp.post("/checkout")
@require_auth
def checkout_route():
    """
    All-or-nothing cart checkout.

    Returns 201 {checkout_id, transactions, receipt}. On any failing line
    nothing is recorded and no stock changes.
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid request data"}), 400

    try:
        result = checkout_service.checkout_cart(data.get("items"), user_id=g.current_user.id)
    except Exception as e:
        return _checkout_error_response(e)

    receipt = receipt_service.build_receipt(
        result.entries,
        result.discounts,
        kasir=_kasir_name(g.current_user),
    )
    return jsonify({
        "checkout_id": result.checkout_id,
        "transactions": [t.to_dict() for t in result.entries],
        "receipt": receipt,
    }), 201


@transactions_bp.get("/<transaksi_id>/receipt")
@require_auth
def receipt_route(transaksi_id: str):
    """
    Printable HTML receipt. A line sold as part of a cart reprints the
    whole cart.
    """
    try:
        entry = ledger_service.get_transaction(transaksi_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    try:
        entries = ledger_service.get_checkout_entries(entry.checkout_id) if entry.checkout_id else [entry]
        cashier = db.session.get(User, entry.created_by_user_id) if entry.created_by_user_id else None
        receipt = receipt_service.build_receipt(entries, kasir=_kasir_name(cashier))
        html = receipt_service.render_receipt(receipt, settings_service.get_receipt_settings())
    except Exception as e:
        current_app.logger.exception("Failed to render receipt for %s", transaksi_id)
        return jsonify({"error": str(e)}), 500

    return html, 200, {"Content-Type": "text/html; charset=utf-8"}
