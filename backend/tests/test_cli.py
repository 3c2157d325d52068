"""
CLI and health endpoint tests.
"""

from kantin.extensions import db
from kantin.models import Product, TransactionSequence, User
from kantin.services import auth_service, checkout_service


class TestSystemInit:
    def test_init_is_idempotent(self, app, db_session):
        runner = app.test_cli_runner()

        first = runner.invoke(args=["system", "init"])
        assert first.exit_code == 0, first.output
        assert "PASS Created user: admin" in first.output
        assert "PASS Created product: BRK001 Aqua 600ml" in first.output
        assert db.session.query(Product).count() == 3

        second = runner.invoke(args=["system", "init"])
        assert second.exit_code == 0
        assert "WARN  User 'admin' already exists" in second.output
        assert "WARN  Product BRK003 already exists" in second.output
        assert db.session.query(Product).count() == 3

        assert auth_service.authenticate("admin", "Admin123!") is not None

    def test_no_samples(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["system", "init", "--no-samples"])
        assert result.exit_code == 0
        assert db.session.query(Product).count() == 0


class TestUserCommands:
    def test_create_and_list(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            "users", "create", "--username", "kasir2", "--password", "Kasir123!", "--display-name", "Pak Budi",
        ])
        assert "PASS Created user: kasir2" in result.output

        listing = runner.invoke(args=["users", "list"])
        assert "kasir2" in listing.output
        assert "Pak Budi" in listing.output

    def test_create_weak_password(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["users", "create", "--username", "x", "--password", "lemah"])
        assert "FAIL Password validation failed" in result.output
        assert db.session.query(User).count() == 0

    def test_deactivate(self, app, cashier):
        result = app.test_cli_runner().invoke(args=["users", "deactivate", "kasir"])
        assert "PASS Deactivated kasir" in result.output
        assert db.session.get(User, cashier.id, populate_existing=True).is_active is False

    def test_deactivate_unknown(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["users", "deactivate", "hantu"])
        assert "FAIL User not found" in result.output

    def test_list_empty(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["users", "list"])
        assert "No users found." in result.output


class TestLowStockCommand:
    def test_default_threshold(self, app, products, brk100):
        result = app.test_cli_runner().invoke(args=["products", "low-stock"])
        assert "BRK100" in result.output
        assert "BRK001" not in result.output

    def test_custom_threshold(self, app, products):
        result = app.test_cli_runner().invoke(args=["products", "low-stock", "--threshold", "60"])
        assert "BRK003" in result.output
        assert "BRK002" not in result.output

    def test_none_low(self, app, products):
        result = app.test_cli_runner().invoke(args=["products", "low-stock"])
        assert "No products at or below 10 units." in result.output


class TestHealth:
    def test_healthy(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["status"] == "healthy"
        assert set(body["checks"]) == {"database", "transaction_sequence", "session_service"}

    def test_counter_behind_ledger_is_degraded(self, client, products):
        checkout_service.checkout_line("BRK001", 1)
        checkout_service.checkout_line("BRK001", 1)
        seq = db.session.query(TransactionSequence).one()
        seq.next_number = 2
        db.session.commit()

        body = client.get("/health").get_json()
        assert body["status"] == "degraded"
        assert "warning" in body["checks"]["transaction_sequence"]
