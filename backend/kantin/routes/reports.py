# Overview: Flask API routes for reports operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, Response

from ..decorators import require_auth
from ..services import reporting_service
from ..services.reporting_service import ReportError


reports_bp = Blueprint("reports", __name__, url_prefix="/api")


@reports_bp.get("/reports/summary")
@require_auth
def sales_summary_route():
    """
    Query params:
    - start, end: YYYY-MM-DD (optional, inclusive)
    """
    try:
        start, end = reporting_service.parse_range(request.args.get("start"), request.args.get("end"))
        summary = reporting_service.sales_summary(start=start, end=end)
        summary["top_products"] = reporting_service.top_products(start=start, end=end)
        return jsonify(summary)
    except ReportError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        current_app.logger.exception("Failed to build sales summary")
        return jsonify({"error": str(e)}), 500


@reports_bp.get("/reports/export")
@require_auth
def export_route():
    """Download the ledger as CSV (default) or XLSX, or open it as a printable HTML page."""
    fmt = (request.args.get("format") or "csv").strip().lower()
    try:
        start, end = reporting_service.parse_range(request.args.get("start"), request.args.get("end"))
        body, mimetype, filename = reporting_service.export_transactions(start=start, end=end, fmt=fmt)
    except ReportError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        current_app.logger.exception("Failed to export transactions")
        return jsonify({"error": str(e)}), 500

    disposition = "inline" if fmt == "html" else "attachment"
    return Response(
        body,
        mimetype=mimetype,
        headers={"Content-Disposition": f"{disposition}; filename={filename}"},
    )


@reports_bp.get("/dashboard")
@require_auth
def dashboard_route():
    try:
        return jsonify(reporting_service.dashboard_stats())
    except Exception as e:
        current_app.logger.exception("Failed to load dashboard stats")
        return jsonify({"error": str(e)}), 500
