# Overview: Service-layer operations for reporting; encapsulates sales aggregates and exports.

from __future__ import annotations

import csv
import io
from datetime import date

from flask import current_app, render_template
from openpyxl import Workbook
from openpyxl.styles import Font
from sqlalchemy import func

from kantin.extensions import db
from kantin.formatting import format_datetime
from kantin.models import Product, Transaction
from kantin.services import ledger_service, settings_service
from kantin.time_utils import day_bounds, parse_date, utcnow

EXPORT_FORMATS = ("csv", "xlsx", "html")

DETAIL_HEADERS = [
    "ID Transaksi",
    "Produk",
    "Barcode",
    "Jumlah",
    "Harga Satuan",
    "Total Harga",
    "Keuntungan",
    "Tanggal",
]


class ReportError(Exception):
    """Raised when report generation fails."""
    pass


def parse_range(start: str | None, end: str | None) -> tuple[date | None, date | None]:
    """Parse "YYYY-MM-DD" query values; the range is inclusive on both ends."""
    try:
        start_d = parse_date(start)
        end_d = parse_date(end)
    except ValueError:
        raise ReportError("start/end must be dates (YYYY-MM-DD)")
    if start_d and end_d and start_d > end_d:
        raise ReportError("start must not be after end")
    return start_d, end_d


def sales_summary(*, start: date | None = None, end: date | None = None) -> dict:
    start_dt, end_dt = day_bounds(start, end)

    query = db.session.query(
        func.count(Transaction.id).label("total_transactions"),
        func.coalesce(func.sum(Transaction.jumlah), 0).label("total_items"),
        func.coalesce(func.sum(Transaction.total_harga), 0).label("total_revenue"),
        func.coalesce(func.sum(Transaction.keuntungan), 0).label("total_profit"),
    )
    if start_dt:
        query = query.filter(Transaction.created_at >= start_dt)
    if end_dt:
        query = query.filter(Transaction.created_at < end_dt)

    row = query.one()
    return {
        "start": start.isoformat() if start else None,
        "end": end.isoformat() if end else None,
        "total_transactions": int(row.total_transactions or 0),
        "total_items": int(row.total_items or 0),
        "total_revenue": int(row.total_revenue or 0),
        "total_profit": int(row.total_profit or 0),
    }


def top_products(*, start: date | None = None, end: date | None = None, limit: int = 5) -> list[dict]:
    start_dt, end_dt = day_bounds(start, end)
    query = db.session.query(
        Transaction.barcode_id,
        Transaction.nama_produk,
        func.sum(Transaction.jumlah).label("jumlah"),
        func.sum(Transaction.total_harga).label("total_harga"),
    )
    if start_dt:
        query = query.filter(Transaction.created_at >= start_dt)
    if end_dt:
        query = query.filter(Transaction.created_at < end_dt)
    rows = (
        query.group_by(Transaction.barcode_id, Transaction.nama_produk)
        .order_by(func.sum(Transaction.jumlah).desc())
        .limit(limit)
        .all()
    )
    return [
        {
            "barcode_id": r.barcode_id,
            "nama_produk": r.nama_produk,
            "jumlah": int(r.jumlah or 0),
            "total_harga": int(r.total_harga or 0),
        }
        for r in rows
    ]


def dashboard_stats(today: date | None = None) -> dict:
    today = today or utcnow().date()
    threshold = current_app.config.get("LOW_STOCK_THRESHOLD", 10)

    total_products, total_stock = db.session.query(
        func.count(Product.id),
        func.coalesce(func.sum(Product.stok), 0),
    ).one()
    low_stock = db.session.query(func.count(Product.id)).filter(Product.stok <= threshold).scalar()

    todays = sales_summary(start=today, end=today)
    return {
        "date": today.isoformat(),
        "total_products": int(total_products or 0),
        "total_stock": int(total_stock or 0),
        "low_stock_products": int(low_stock or 0),
        "low_stock_threshold": threshold,
        "today_transactions": todays["total_transactions"],
        "today_revenue": todays["total_revenue"],
        "today_profit": todays["total_profit"],
    }


def _detail_row(t: Transaction) -> list:
    return [
        t.transaksi_id,
        t.nama_produk,
        t.barcode_id,
        t.jumlah,
        t.harga_satuan,
        t.total_harga,
        t.keuntungan,
        format_datetime(t.created_at),
    ]


def _summary_rows(summary: dict) -> list[list]:
    return [
        ["Total Transaksi", summary["total_transactions"]],
        ["Total Item Terjual", summary["total_items"]],
        ["Total Pendapatan", summary["total_revenue"]],
        ["Total Keuntungan", summary["total_profit"]],
        ["Periode", f"{summary['start'] or 'Awal'} s/d {summary['end'] or 'Sekarang'}"],
    ]


def export_transactions_csv(*, start: date | None = None, end: date | None = None) -> str:
    summary = sales_summary(start=start, end=end)
    entries = ledger_service.list_transactions(start, end)

    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(["LAPORAN TRANSAKSI"])
    writer.writerow([])
    writer.writerow(["RINGKASAN"])
    writer.writerows(_summary_rows(summary))
    writer.writerow([])
    writer.writerow(["DETAIL TRANSAKSI"])
    writer.writerow(DETAIL_HEADERS)
    for t in entries:
        writer.writerow(_detail_row(t))
    return buf.getvalue()


def export_transactions_xlsx(*, start: date | None = None, end: date | None = None) -> bytes:
    summary = sales_summary(start=start, end=end)
    entries = ledger_service.list_transactions(start, end)

    wb = Workbook()
    ws = wb.active
    ws.title = "Ringkasan"
    ws.append(["LAPORAN TRANSAKSI"])
    ws["A1"].font = Font(bold=True, size=14)
    ws.append([])
    for row in _summary_rows(summary):
        ws.append(row)

    detail = wb.create_sheet("Detail")
    detail.append(DETAIL_HEADERS)
    for cell in detail[1]:
        cell.font = Font(bold=True)
    for t in entries:
        detail.append(_detail_row(t))

    out = io.BytesIO()
    wb.save(out)
    return out.getvalue()


def export_transactions_html(*, start: date | None = None, end: date | None = None) -> str:
    """Printable report page; the browser's print dialog turns it into a PDF."""
    return render_template(
        "report.html",
        summary=sales_summary(start=start, end=end),
        entries=ledger_service.list_transactions(start, end),
        headers=DETAIL_HEADERS,
        printed_at=utcnow(),
        store_name=settings_service.get_receipt_settings()["store_name"],
    )


def export_transactions(*, start: date | None, end: date | None, fmt: str = "csv") -> tuple[bytes, str, str]:
    """Returns (body, mimetype, filename)."""
    stamp = utcnow().date().isoformat()
    if fmt == "html":
        body = export_transactions_html(start=start, end=end).encode("utf-8")
        return body, "text/html; charset=utf-8", f"laporan_transaksi_{stamp}.html"
    if fmt == "csv":
        body = export_transactions_csv(start=start, end=end).encode("utf-8")
        return body, "text/csv; charset=utf-8", f"laporan_transaksi_{stamp}.csv"
    if fmt == "xlsx":
        body = export_transactions_xlsx(start=start, end=end)
        return (
            body,
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            f"laporan_transaksi_{stamp}.xlsx",
        )
    raise ReportError(f"format must be one of: {', '.join(EXPORT_FORMATS)}")
