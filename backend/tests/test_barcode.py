import pytest

from kantin.services import barcode_service


class TestResolveBarcode:
    @pytest.mark.parametrize("raw", ["BRK001", "brk001", "  brk001 ", "brk 001"])
    def test_normalized_lookup(self, products, raw):
        product = barcode_service.resolve_barcode(raw)
        assert product is not None
        assert product.nama_produk == "Aqua 600ml"

    @pytest.mark.parametrize("raw", [None, "", "   ", "BRK00", "BRK0011"])
    def test_no_partial_match(self, products, raw):
        assert barcode_service.resolve_barcode(raw) is None

    def test_found(self, client, headers, products):
        resp = client.post("/api/barcode", json={"barcode_id": "brk002"}, headers=headers)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["success"] is True
        assert body["found"] is True
        assert body["product"]["barcode_id"] == "BRK002"
        assert body["product"]["harga_jual"] == 3500

    def test_not_found(self, client, headers, products):
        resp = client.post("/api/barcode", json={"barcode_id": "xyz999"}, headers=headers)
        assert resp.status_code == 404
        body = resp.get_json()
        assert body["error"] == "Produk tidak ditemukan"
        assert body["found"] is False
        assert body["barcode_id"] == "XYZ999"

    @pytest.mark.parametrize("payload", [{}, {"barcode_id": ""}, {"barcode_id": "  "}])
    def test_barcode_required(self, client, headers, payload):
        resp = client.post("/api/barcode", json=payload, headers=headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Barcode ID required"

    @pytest.mark.parametrize("body", [["BRK001"], "BRK001", 7])
    def test_non_object_body(self, client, headers, products, body):
        resp = client.post("/api/barcode", json=body, headers=headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Invalid request data"


class TestGenerateBarcode:
    def test_format(self, client, headers, products):
        resp = client.get("/api/barcode/generate", headers=headers)
        assert resp.status_code == 200
        code = resp.get_json()["barcode_id"]
        assert code.startswith("BRK")
        assert len(code) == 7
        assert code[3:].isdigit()

    def test_skips_used_codes(self, products, monkeypatch):
        picks = iter([1, 2, 42])
        monkeypatch.setattr(barcode_service.random, "randint", lambda a, b: next(picks))
        assert barcode_service.generate_barcode_id() == "BRK0042"

    def test_gives_up(self, products, monkeypatch):
        monkeypatch.setattr(barcode_service.random, "randint", lambda a, b: 1)
        with pytest.raises(RuntimeError):
            barcode_service.generate_barcode_id(max_attempts=3)
