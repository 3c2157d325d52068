"""
Checkout tests.

Verifies:
- A sale writes one ledger row with totals and takes the units off stock
- Overselling is rejected with the available count and changes nothing
- A failed stock write rolls back the ledger row and releases the TRX number
- Cart checkout is all-or-nothing
"""

import pytest
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from kantin.extensions import db
from kantin.models import Product, Transaction, TransactionSequence
from kantin.services import checkout_service, concurrency, products_service
from kantin.services.checkout_service import CheckoutError, merge_lines, parse_line
from kantin.validation import InsufficientStockError, NotFoundError, ValidationError


def _stock(product) -> int:
    return db.session.get(Product, product.id, populate_existing=True).stok


def _ledger_count() -> int:
    return db.session.query(Transaction).count()


class TestSingleLineCheckout:
    def test_sale_records_totals_and_decrements_stock(self, client, headers, brk100):
        resp = client.post("/api/transactions", json={"barcode_id": "BRK100", "jumlah": 3}, headers=headers)
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["transaksi_id"] == "TRX00001"
        assert body["jumlah"] == 3
        assert body["harga_satuan"] == 4000
        assert body["total_harga"] == 12000
        assert body["keuntungan"] == 3000
        assert body["nama_produk"] == "Roti Coklat"
        assert body["created_by_user_id"] is not None
        assert _stock(brk100) == 7

    def test_oversell_rejected_without_changes(self, client, headers, brk100):
        client.post("/api/transactions", json={"barcode_id": "BRK100", "jumlah": 3}, headers=headers)

        resp = client.post("/api/transactions", json={"barcode_id": "BRK100", "jumlah": 8}, headers=headers)
        assert resp.status_code == 400
        body = resp.get_json()
        assert body["error"] == "Stok tidak cukup. Tersedia: 7"
        assert body["available"] == 7
        assert _stock(brk100) == 7
        assert _ledger_count() == 1

    def test_selling_the_last_units(self, brk100):
        entry = checkout_service.checkout_line("brk100", 10)
        assert entry.total_harga == 40000
        assert _stock(brk100) == 0

    def test_unknown_barcode(self, client, headers, products):
        resp = client.post("/api/transactions", json={"barcode_id": "NOPE1", "jumlah": 1}, headers=headers)
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "Produk tidak ditemukan"
        assert _ledger_count() == 0

    @pytest.mark.parametrize("payload", [
        {"jumlah": 1},
        {"barcode_id": "BRK001"},
        {"barcode_id": "BRK001", "jumlah": 0},
        {"barcode_id": "BRK001", "jumlah": -2},
        {"barcode_id": "BRK001", "jumlah": 1.5},
        {"barcode_id": "BRK001", "jumlah": "dua"},
        {"barcode_id": "BRK001", "jumlah": "²"},
        {"barcode_id": "BRK001", "jumlah": " 2 x"},
        {"barcode_id": "BRK001", "jumlah": True},
        {"barcode_id": "", "jumlah": 1},
    ])
    def test_invalid_request_data(self, client, headers, products, payload):
        resp = client.post("/api/transactions", json=payload, headers=headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Invalid request data"
        assert _stock(products["BRK001"]) == 100

    def test_non_object_body(self, client, headers):
        resp = client.post("/api/transactions", json=[1, 2], headers=headers)
        assert resp.status_code == 400

    def test_codes_are_sequential(self, products):
        codes = [checkout_service.checkout_line("BRK001", 1).transaksi_id for _ in range(3)]
        assert codes == ["TRX00001", "TRX00002", "TRX00003"]


class TestCheckoutFailure:
    def test_stock_write_failure_rolls_back_ledger(self, client, headers, brk100, monkeypatch):
        def boom(product_id, quantity):
            raise SQLAlchemyError("disk I/O error")

        monkeypatch.setattr(products_service, "decrement_stock", boom)

        resp = client.post("/api/transactions", json={"barcode_id": "BRK100", "jumlah": 2}, headers=headers)
        assert resp.status_code == 500
        assert resp.get_json()["error"] == "Gagal memperbarui stok, transaksi dibatalkan"
        assert _ledger_count() == 0
        assert _stock(brk100) == 10

    def test_locked_database_after_retries(self, client, headers, brk100, monkeypatch):
        calls = []

        def locked(product_id, quantity):
            calls.append(product_id)
            raise OperationalError("UPDATE products", {}, Exception("database is locked"))

        monkeypatch.setattr(products_service, "decrement_stock", locked)
        monkeypatch.setattr(concurrency.time, "sleep", lambda seconds: None)

        with pytest.raises(CheckoutError):
            checkout_service.checkout_line("BRK100", 2)
        assert len(calls) == 3

        resp = client.post("/api/transactions", json={"barcode_id": "BRK100", "jumlah": 2}, headers=headers)
        assert resp.status_code == 500
        assert resp.get_json()["error"] == "Gagal memperbarui stok, transaksi dibatalkan"
        assert "database is locked" not in resp.get_data(as_text=True)
        assert _ledger_count() == 0
        assert _stock(brk100) == 10

    def test_failed_checkout_releases_its_number(self, brk100, monkeypatch):
        def boom(product_id, quantity):
            raise SQLAlchemyError("disk I/O error")

        monkeypatch.setattr(products_service, "decrement_stock", boom)
        with pytest.raises(CheckoutError):
            checkout_service.checkout_line("BRK100", 1)
        monkeypatch.undo()

        assert checkout_service.checkout_line("BRK100", 1).transaksi_id == "TRX00001"

    def test_lost_race_reports_fresh_stock(self, brk100, monkeypatch):
        # Another till sold the units between the stock check and the update
        monkeypatch.setattr(products_service, "decrement_stock", lambda product_id, quantity: False)

        with pytest.raises(InsufficientStockError) as exc:
            checkout_service.checkout_line("BRK100", 4)

        assert exc.value.available == 10
        assert _ledger_count() == 0
        assert db.session.query(TransactionSequence).count() == 0

    def test_conditional_decrement(self, brk100):
        assert products_service.decrement_stock(brk100.id, 11) is False
        assert products_service.decrement_stock(brk100.id, 10) is True
        db.session.commit()
        assert _stock(brk100) == 0


class TestCartCheckout:
    def test_checkout_records_every_line(self, client, headers, products):
        resp = client.post("/api/transactions/checkout", json={"items": [
            {"barcode_id": "BRK001", "jumlah": 2},
            {"barcode_id": "brk002", "jumlah": 1, "diskon": 500},
        ]}, headers=headers)
        assert resp.status_code == 201
        body = resp.get_json()

        assert [t["transaksi_id"] for t in body["transactions"]] == ["TRX00001", "TRX00002"]
        assert {t["checkout_id"] for t in body["transactions"]} == {body["checkout_id"]}

        receipt = body["receipt"]
        assert receipt["subtotal"] == 9500
        assert receipt["discount"] == 500
        assert receipt["total"] == 9000
        assert receipt["kasir"] == "Bu Sari"

        assert _stock(products["BRK001"]) == 98
        assert _stock(products["BRK002"]) == 74

    def test_one_bad_line_rolls_back_the_cart(self, client, headers, products):
        resp = client.post("/api/transactions/checkout", json={"items": [
            {"barcode_id": "BRK001", "jumlah": 2},
            {"barcode_id": "BRK003", "jumlah": 51},
        ]}, headers=headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Stok tidak cukup. Tersedia: 50"
        assert resp.get_json()["barcode_id"] == "BRK003"

        assert _ledger_count() == 0
        assert _stock(products["BRK001"]) == 100
        assert _stock(products["BRK003"]) == 50

    def test_unknown_line_rolls_back_the_cart(self, products):
        with pytest.raises(NotFoundError):
            checkout_service.checkout_cart([
                {"barcode_id": "BRK001", "jumlah": 1},
                {"barcode_id": "NOPE", "jumlah": 1},
            ])
        assert _ledger_count() == 0
        assert _stock(products["BRK001"]) == 100

    def test_repeated_barcodes_are_merged(self, products):
        result = checkout_service.checkout_cart([
            {"barcode_id": "BRK001", "jumlah": 2},
            {"barcode_id": "brk001", "jumlah": 3},
        ])
        assert len(result.entries) == 1
        assert result.entries[0].jumlah == 5
        assert _stock(products["BRK001"]) == 95

    def test_merged_quantity_checked_against_stock(self, brk100):
        with pytest.raises(InsufficientStockError):
            checkout_service.checkout_cart([
                {"barcode_id": "BRK100", "jumlah": 6},
                {"barcode_id": "BRK100", "jumlah": 5},
            ])
        assert _stock(brk100) == 10

    @pytest.mark.parametrize("items", [None, [], "BRK001"])
    def test_empty_cart(self, client, headers, items):
        resp = client.post("/api/transactions/checkout", json={"items": items}, headers=headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Keranjang kosong"

    def test_non_object_body(self, client, headers, products):
        resp = client.post("/api/transactions/checkout", json=[{"barcode_id": "BRK001", "jumlah": 1}],
                           headers=headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Invalid request data"
        assert _ledger_count() == 0


class TestLineParsing:
    def test_parse_line_normalizes(self):
        line = parse_line({"barcode_id": " brk001 ", "jumlah": "3"})
        assert line.barcode_id == "BRK001"
        assert line.jumlah == 3
        assert line.diskon == 0

    def test_negative_discount_rejected(self):
        with pytest.raises(ValidationError):
            parse_line({"barcode_id": "BRK001", "jumlah": 1, "diskon": -1})

    def test_merge_keeps_first_seen_order(self):
        lines = merge_lines([
            parse_line({"barcode_id": "B", "jumlah": 1}),
            parse_line({"barcode_id": "A", "jumlah": 1, "diskon": 100}),
            parse_line({"barcode_id": "B", "jumlah": 2}),
        ])
        assert [(l.barcode_id, l.jumlah, l.diskon) for l in lines] == [("B", 3, 0), ("A", 1, 100)]


class TestLedgerQueries:
    def test_list_newest_first(self, client, headers, products):
        for code in ("BRK001", "BRK002", "BRK003"):
            checkout_service.checkout_line(code, 1)

        resp = client.get("/api/transactions", headers=headers)
        assert resp.status_code == 200
        assert [t["transaksi_id"] for t in resp.get_json()] == ["TRX00003", "TRX00002", "TRX00001"]

    def test_get_one(self, client, headers, products):
        checkout_service.checkout_line("BRK002", 2)
        resp = client.get("/api/transactions/trx00001", headers=headers)
        assert resp.status_code == 200
        assert resp.get_json()["total_harga"] == 7000

    def test_get_missing(self, client, headers):
        resp = client.get("/api/transactions/TRX09999", headers=headers)
        assert resp.status_code == 404

    def test_bad_date_filter(self, client, headers):
        resp = client.get("/api/transactions?start=kemarin", headers=headers)
        assert resp.status_code == 400
