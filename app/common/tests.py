"""
Tests de la capa común: validadores, marcas de tiempo, errores y middleware
"""
from datetime import timedelta
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from app.common.exceptions import ConflictError, ServiceUnavailableError
from app.common.mixins import TimestampMixin, utcnow
from app.common.validators import INT_MAX, normalize_price, validate_category, validate_product
from app.database.database import commit_or_raise


class TestValidators:

    @pytest.mark.parametrize("raw, expected", [
        ("9.99", Decimal("9.99")),
        ("9.995", Decimal("10.00")),
        ("0.004", Decimal("0.00")),
        (12, Decimal("12.00")),
        ("abc", None),
        ("NaN", None),
    ])
    def test_normalize_price(self, raw, expected):
        assert normalize_price(raw) == expected

    @pytest.mark.parametrize("price", ["0.004", "0.005", "999999.991", "999999.994"])
    def test_price_range_checked_before_rounding(self, price):
        violations = validate_product("Pen", None, Decimal(price), 1)
        assert [v.field for v in violations] == ["price"]

    def test_price_rounded_inside_range_is_valid(self):
        assert validate_product("Pen", None, Decimal("9.999"), 1) == []

    def test_stock_range(self):
        assert validate_product("Pen", None, "1.00", INT_MAX) == []
        assert [v.field for v in validate_product("Pen", None, "1.00", INT_MAX + 1)] == ["stock"]

    def test_stock_must_be_integer(self):
        assert [v.field for v in validate_product("Pen", None, "1.00", True)] == ["stock"]
        assert [v.field for v in validate_product("Pen", None, "1.00", 1.5)] == ["stock"]

    def test_valid_product(self):
        assert validate_product("Pen", "Blue ink", "1.50", 0) == []

    def test_category_limits(self):
        assert validate_category("x" * 100, "y" * 500) == []
        fields = [v.field for v in validate_category("x" * 101, None)]
        assert fields == ["name"]


class Stamped(TimestampMixin):
    """Objeto simple con las columnas del mixin como atributos de instancia"""

    def __init__(self, created_at, updated_at=None):
        self.created_at = created_at
        self.updated_at = updated_at


class TestTimestamps:

    def test_touch_after_creation(self):
        item = Stamped(utcnow())

        stamp = item.touch()

        assert item.updated_at == stamp
        assert stamp > item.created_at

    def test_touch_with_clock_behind(self):
        future = utcnow() + timedelta(hours=1)
        item = Stamped(future, future + timedelta(seconds=1))

        stamp = item.touch()

        assert stamp == future + timedelta(seconds=1, microseconds=1)

    def test_utcnow_is_naive(self):
        assert utcnow().tzinfo is None


class TestCommitOrRaise:

    def test_integrity_error_is_translated(self):
        db = MagicMock()
        db.commit.side_effect = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))

        with pytest.raises(ConflictError):
            commit_or_raise(db, ConflictError("duplicado"))

        db.rollback.assert_called_once()

    def test_integrity_error_without_translation_propagates(self):
        db = MagicMock()
        db.commit.side_effect = IntegrityError("DELETE", {}, Exception("constraint failed"))

        with pytest.raises(IntegrityError):
            commit_or_raise(db)

        db.rollback.assert_called_once()

    def test_operational_error_is_unavailable(self):
        db = MagicMock()
        db.commit.side_effect = OperationalError("COMMIT", {}, Exception("database is locked"))

        with pytest.raises(ServiceUnavailableError) as exc_info:
            commit_or_raise(db, ConflictError("duplicado"))

        assert exc_info.value.status_code == 503
        db.rollback.assert_called_once()


class TestAppSurface:

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["message"] == "Catalog API is running"

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_response_headers(self, client):
        response = client.get("/categories")

        assert response.headers["x-content-type-options"] == "nosniff"
        assert response.headers["x-frame-options"] == "DENY"
        assert response.headers["x-process-time"].endswith("ms")

    def test_invalid_path_parameter(self, client):
        response = client.get("/products/abc")

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "product_id"
