"""
Tests para el módulo de Productos

Cubren:
- Filtros, orden y paginación del listado
- Validación de campos y existencia de la categoría al escribir
- Marcas de tiempo de creación y actualización
- Endpoints HTTP, cabeceras de paginación y formato de errores
- Datos iniciales idempotentes
"""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.common.exceptions import NotFoundError, ValidationError
from app.common.validators import INT_MAX
from app.core.config import settings
from app.modules.categories.models import Category
from app.modules.products.models import Product
from app.modules.products.query import ProductQuery
from app.modules.products.schemas import ProductCreate, ProductUpdate, ProductFilters
from app.modules.products.seed_data import DEFAULT_CATALOG, seed_catalog
from app.modules.products.service import ProductService, product_to_response


# ===== FIXTURES =====

@pytest.fixture
def catalog(make_category, make_product):
    """Dos categorías y cinco productos con precios, stock y fechas distintas"""
    books = make_category("Books")
    toys = make_category("Toys")
    base = datetime(2024, 1, 1, 12, 0, 0)
    products = [
        make_product(books, "Novel", price="9.99", stock=3, description="A long story",
                     created_at=base),
        make_product(books, "Atlas", price="45.00", stock=1, description=None,
                     created_at=base + timedelta(days=3)),
        make_product(books, "Cookbook", price="20.50", stock=7, description="Recipes with FOOD",
                     is_active=False, created_at=base + timedelta(days=1)),
        make_product(toys, "Ball", price="5.00", stock=12, description="Red rubber ball",
                     created_at=base + timedelta(days=4)),
        make_product(toys, "Kite", price="15.75", stock=0, description="Flies high",
                     created_at=base + timedelta(days=2)),
    ]
    return {"books": books, "toys": toys, "products": products}


def list_names(db_session, **filters):
    page = ProductService(db_session).list_products(ProductFilters(pageSize=100, **filters))
    return [p.name for p in page.items]


# ===== TESTS DEL LISTADO =====

class TestProductListing:
    """Tests de filtros, orden y paginación"""

    def test_default_sort_is_name(self, db_session: Session, catalog):
        assert list_names(db_session) == ["Atlas", "Ball", "Cookbook", "Kite", "Novel"]

    def test_filter_by_category(self, db_session: Session, catalog):
        page = ProductService(db_session).list_products(ProductFilters(categoryId=catalog["toys"].id))

        assert page.total == 2
        assert {p.categoryId for p in page.items} == {catalog["toys"].id}
        assert {p.categoryName for p in page.items} == {"Toys"}

    def test_filter_by_active(self, db_session: Session, catalog):
        assert "Cookbook" not in list_names(db_session, isActive=True)
        assert list_names(db_session, isActive=False) == ["Cookbook"]

    def test_search_name_or_description(self, db_session: Session, catalog):
        assert list_names(db_session, search="ball") == ["Ball"]
        assert list_names(db_session, search="story") == ["Novel"]

    def test_search_is_case_insensitive(self, db_session: Session, catalog):
        assert list_names(db_session, search="food") == ["Cookbook"]
        assert list_names(db_session, search="NOVEL") == ["Novel"]

    def test_search_escapes_wildcards(self, db_session: Session, catalog):
        assert list_names(db_session, search="%") == []

    def test_blank_search_is_ignored(self, db_session: Session, catalog):
        assert len(list_names(db_session, search="   ")) == 5

    def test_filters_compose_with_and(self, db_session: Session, catalog):
        names = list_names(db_session, categoryId=catalog["books"].id, isActive=True, search="o")
        assert names == ["Novel"]

    def test_sort_by_price(self, db_session: Session, catalog):
        page = ProductService(db_session).list_products(ProductFilters(sortBy="price"))
        prices = [p.price for p in page.items]
        assert prices == sorted(prices)

    def test_sort_by_price_desc(self, db_session: Session, catalog):
        page = ProductService(db_session).list_products(ProductFilters(sortBy="price_desc"))
        prices = [p.price for p in page.items]
        assert prices == sorted(prices, reverse=True)

    def test_sort_by_date_newest_first(self, db_session: Session, catalog):
        assert list_names(db_session, sortBy="date") == ["Ball", "Atlas", "Kite", "Cookbook", "Novel"]

    def test_sort_by_stock(self, db_session: Session, catalog):
        assert list_names(db_session, sortBy="stock") == ["Kite", "Atlas", "Novel", "Cookbook", "Ball"]

    def test_sort_key_is_case_insensitive(self, db_session: Session, catalog):
        assert list_names(db_session, sortBy="PRICE") == list_names(db_session, sortBy="price")

    def test_unknown_sort_falls_back_to_name(self, db_session: Session, catalog):
        assert list_names(db_session, sortBy="popularity") == ["Atlas", "Ball", "Cookbook", "Kite", "Novel"]

    def test_second_page(self, db_session: Session, catalog):
        page = ProductService(db_session).list_products(ProductFilters(page=2, pageSize=2))

        assert [p.name for p in page.items] == ["Cookbook", "Kite"]
        assert page.total == 5
        assert page.page == 2
        assert page.pageSize == 2

    def test_page_past_the_end(self, db_session: Session, catalog):
        page = ProductService(db_session).list_products(ProductFilters(page=9, pageSize=2))

        assert page.items == []
        assert page.total == 5

    def test_total_counts_filtered_rows(self, db_session: Session, catalog):
        page = ProductService(db_session).list_products(
            ProductFilters(categoryId=catalog["books"].id, pageSize=1)
        )
        assert len(page.items) == 1
        assert page.total == 3

    def test_query_builder_ordering(self):
        price_desc = str(ProductQuery().sort_by("Price_Desc").statement())
        fallback = str(ProductQuery().sort_by(None).statement())

        assert "ORDER BY products.price DESC, products.id ASC" in price_desc
        assert "ORDER BY products.name ASC, products.id ASC" in fallback

    def test_page_size_upper_bound(self):
        with pytest.raises(PydanticValidationError):
            ProductFilters(pageSize=settings.MAX_PAGE_SIZE + 1)


# ===== TESTS DE ESCRITURA =====

class TestProductService:
    """Tests para ProductService"""

    def test_create_product_success(self, db_session: Session, sample_category):
        product = ProductService(db_session).create_product(ProductCreate(
            name="Novel", description="Story", price=Decimal("9.99"), stock=3, categoryId=sample_category.id
        ))

        assert product.id is not None
        assert product.price == Decimal("9.99")
        assert product.isActive is True
        assert product.categoryName == sample_category.name

        stored = db_session.get(Product, product.id)
        assert stored.created_at is not None
        assert stored.updated_at is None

    def test_create_product_rounds_price_to_cents(self, db_session: Session, sample_category):
        product = ProductService(db_session).create_product(ProductCreate(
            name="Novel", price=Decimal("9.999"), stock=1, categoryId=sample_category.id
        ))
        assert product.price == Decimal("10.00")

    def test_create_product_missing_category(self, db_session: Session, sample_category):
        with pytest.raises(ValidationError) as exc_info:
            ProductService(db_session).create_product(ProductCreate(
                name="Orphan", price=Decimal("1.00"), stock=1, categoryId=999
            ))

        assert exc_info.value.status_code == 400
        assert exc_info.value.violations[0].field == "categoryId"
        assert db_session.query(Product).count() == 0

    def test_create_product_missing_category_detected_by_store(self, db_session: Session, monkeypatch):
        """Si la categoría desaparece tras la verificación, la clave foránea lo detecta"""
        product_service = ProductService(db_session)
        monkeypatch.setattr(product_service, "_get_category_name", lambda category_id: "Ghost")

        with pytest.raises(ValidationError):
            product_service.create_product(ProductCreate(
                name="Orphan", price=Decimal("1.00"), stock=1, categoryId=999
            ))

        assert db_session.query(Product).count() == 0

    @pytest.mark.parametrize("overrides, field", [
        ({"name": ""}, "name"),
        ({"name": "x" * 201}, "name"),
        ({"description": "x" * 1001}, "description"),
        ({"price": Decimal("0")}, "price"),
        ({"price": Decimal("-5")}, "price"),
        ({"price": Decimal("1000000")}, "price"),
        ({"price": Decimal("999999.994")}, "price"),
        ({"price": Decimal("0.005")}, "price"),
        ({"stock": -1}, "stock"),
        ({"stock": INT_MAX + 1}, "stock"),
        ({"stock": 2 ** 63}, "stock"),
    ])
    def test_create_product_invalid_field(self, db_session: Session, sample_category, overrides, field):
        data = {"name": "Novel", "price": Decimal("9.99"), "stock": 1, "categoryId": sample_category.id}
        data.update(overrides)

        with pytest.raises(ValidationError) as exc_info:
            ProductService(db_session).create_product(ProductCreate(**data))

        assert [v.field for v in exc_info.value.violations] == [field]
        assert db_session.query(Product).count() == 0

    def test_create_product_reports_every_invalid_field(self, db_session: Session, sample_category):
        with pytest.raises(ValidationError) as exc_info:
            ProductService(db_session).create_product(ProductCreate(
                name="", price=Decimal("0"), stock=-2, categoryId=sample_category.id
            ))

        assert {v.field for v in exc_info.value.violations} == {"name", "price", "stock"}

    def test_price_bounds_are_inclusive(self, db_session: Session, sample_category):
        product_service = ProductService(db_session)
        cheap = product_service.create_product(ProductCreate(
            name="Sticker", price=Decimal("0.01"), stock=1, categoryId=sample_category.id
        ))
        dear = product_service.create_product(ProductCreate(
            name="Rare book", price=Decimal("999999.99"), stock=1, categoryId=sample_category.id
        ))
        assert cheap.price == Decimal("0.01")
        assert dear.price == Decimal("999999.99")

    def test_stock_upper_bound_is_inclusive(self, db_session: Session, sample_category):
        product = ProductService(db_session).create_product(ProductCreate(
            name="Pencil", price=Decimal("0.50"), stock=INT_MAX, categoryId=sample_category.id
        ))
        assert product.stock == INT_MAX

    def test_update_product(self, db_session: Session, make_category, make_product):
        books = make_category("Books")
        toys = make_category("Toys")
        product = make_product(books, "Novel", price="9.99")

        updated = ProductService(db_session).update_product(product.id, ProductUpdate(
            name="Kite", description="Flies", price=Decimal("15.75"), stock=4,
            isActive=False, categoryId=toys.id
        ))

        assert updated.name == "Kite"
        assert updated.price == Decimal("15.75")
        assert updated.isActive is False
        assert updated.categoryId == toys.id
        assert updated.categoryName == "Toys"
        assert updated.createdAt == product.created_at

    def test_update_sets_increasing_timestamps(self, db_session: Session, sample_category, make_product):
        product = make_product(sample_category, "Novel")
        product_service = ProductService(db_session)
        data = ProductUpdate(name="Novel", price=Decimal("9.99"), stock=1, categoryId=sample_category.id)

        product_service.update_product(product.id, data)
        first = db_session.get(Product, product.id).updated_at
        product_service.update_product(product.id, data)
        second = db_session.get(Product, product.id).updated_at

        assert first > product.created_at
        assert second > first

    def test_update_product_not_found(self, db_session: Session, sample_category):
        with pytest.raises(NotFoundError):
            ProductService(db_session).update_product(99, ProductUpdate(
                name="Ghost", price=Decimal("1.00"), stock=0, categoryId=sample_category.id
            ))

    def test_update_product_missing_category(self, db_session: Session, sample_category, make_product):
        product = make_product(sample_category, "Novel")

        with pytest.raises(ValidationError):
            ProductService(db_session).update_product(product.id, ProductUpdate(
                name="Novel", price=Decimal("1.00"), stock=0, categoryId=12345
            ))

        db_session.expire_all()
        assert db_session.get(Product, product.id).category_id == sample_category.id

    def test_get_product(self, db_session: Session, sample_category, make_product):
        product = make_product(sample_category, "Novel")

        found = ProductService(db_session).get_product(product.id)

        assert found.id == product.id
        assert found.categoryName == sample_category.name

    def test_get_product_not_found(self, db_session: Session):
        with pytest.raises(NotFoundError):
            ProductService(db_session).get_product(1)

    def test_delete_product(self, db_session: Session, sample_category, make_product):
        product = make_product(sample_category, "Novel")
        product_service = ProductService(db_session)

        product_service.delete_product(product.id)

        with pytest.raises(NotFoundError):
            product_service.get_product(product.id)

    def test_delete_product_not_found(self, db_session: Session):
        with pytest.raises(NotFoundError):
            ProductService(db_session).delete_product(1)

    def test_delete_product_store_error_propagates(self, db_session: Session, sample_category,
                                                   make_product, monkeypatch):
        """Un error de integridad al borrar no se presenta como conflicto de negocio"""
        product = make_product(sample_category, "Novel")

        def failing_commit():
            raise IntegrityError("DELETE", {}, Exception("constraint failed"))

        monkeypatch.setattr(db_session, "commit", failing_commit)

        with pytest.raises(IntegrityError):
            ProductService(db_session).delete_product(product.id)

        assert ProductService(db_session).get_product(product.id).id == product.id

    def test_product_to_response_without_category(self):
        product = Product(
            id=1, name="Novel", description=None, price=Decimal("9.99"), stock=2,
            is_active=True, created_at=datetime(2024, 1, 1), category_id=3
        )

        response = product_to_response(product)

        assert response.categoryName == "N/A"
        assert response.categoryId == 3
        assert "updatedAt" not in response.model_dump()


# ===== TESTS DE DATOS INICIALES =====

class TestSeedData:

    def test_seed_is_idempotent(self, db_session: Session):
        expected = len(DEFAULT_CATALOG["categories"]) + len(DEFAULT_CATALOG["products"])

        assert seed_catalog(db_session) == expected
        assert seed_catalog(db_session) == 0
        assert db_session.query(Category).count() == 3
        assert db_session.query(Product).count() == 5

    def test_seed_keeps_existing_rows(self, db_session: Session, make_category):
        make_category("Livres", "Custom description")

        seed_catalog(db_session)

        livres = db_session.query(Category).filter(Category.name == "Livres").one()
        assert livres.description == "Custom description"
        assert db_session.query(Category).count() == 3


# ===== TESTS DE API ENDPOINTS =====

class TestProductAPI:
    """Tests de endpoints API"""

    def test_list_products_headers(self, client, catalog):
        response = client.get("/products", params={"page": 2, "pageSize": 2})

        assert response.status_code == 200
        assert [p["name"] for p in response.json()] == ["Cookbook", "Kite"]
        assert response.headers["x-total-count"] == "5"
        assert response.headers["x-page"] == "2"
        assert response.headers["x-page-size"] == "2"

    def test_list_products_filters(self, client, catalog):
        response = client.get("/products", params={
            "categoryId": catalog["books"].id, "isActive": "true", "sortBy": "price_desc"
        })

        assert response.status_code == 200
        assert [p["name"] for p in response.json()] == ["Atlas", "Novel"]
        assert response.headers["x-total-count"] == "2"

    def test_list_products_defaults(self, client, catalog):
        response = client.get("/products")

        assert response.headers["x-page"] == "1"
        assert response.headers["x-page-size"] == "10"

    def test_list_products_invalid_page_size(self, client):
        response = client.get("/products", params={"pageSize": 0})

        assert response.status_code == 400
        data = response.json()
        assert "message" in data
        assert data["errors"][0]["field"] == "pageSize"

    def test_list_products_page_size_too_large(self, client):
        response = client.get("/products", params={"pageSize": settings.MAX_PAGE_SIZE + 1})

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "pageSize"

    def test_list_products_category_id_out_of_range(self, client):
        response = client.get("/products", params={"categoryId": 2 ** 63})

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "categoryId"

    def test_product_id_out_of_range(self, client):
        for method in ("get", "delete"):
            response = getattr(client, method)(f"/products/{2 ** 63}")
            assert response.status_code == 400
            assert response.json()["errors"][0]["field"] == "product_id"

    def test_create_product_out_of_range_integers(self, client, sample_category):
        response = client.post("/products", json={
            "name": "Novel", "price": 1, "stock": 2 ** 63, "categoryId": sample_category.id
        })
        assert response.status_code == 400
        assert [e["field"] for e in response.json()["errors"]] == ["stock"]

        response = client.post("/products", json={
            "name": "Novel", "price": 1, "stock": 1, "categoryId": 2 ** 63
        })
        assert response.status_code == 400
        assert [e["field"] for e in response.json()["errors"]] == ["categoryId"]

    def test_create_product_price_checked_before_rounding(self, client, sample_category):
        for price in ("999999.994", 0.005):
            response = client.post("/products", json={
                "name": "Novel", "price": price, "stock": 1, "categoryId": sample_category.id
            })
            assert response.status_code == 400
            assert [e["field"] for e in response.json()["errors"]] == ["price"]

    def test_product_json_shape(self, client, sample_category, make_product):
        product = make_product(sample_category, "Novel", price="9.99", stock=3)

        data = client.get(f"/products/{product.id}").json()

        assert set(data) == {
            "id", "name", "description", "price", "stock", "isActive",
            "createdAt", "categoryId", "categoryName"
        }
        assert data["price"] == 9.99

    def test_get_product_not_found(self, client):
        response = client.get("/products/123")

        assert response.status_code == 404
        assert "123" in response.json()["message"]

    def test_create_product_endpoint(self, client, sample_category):
        response = client.post("/products", json={
            "name": "Novel", "price": 9.99, "stock": 3, "categoryId": sample_category.id
        })

        assert response.status_code == 201
        data = response.json()
        assert data["categoryName"] == sample_category.name
        assert data["isActive"] is True
        assert response.headers["location"].endswith(f"/products/{data['id']}")

    def test_create_product_unknown_category(self, client):
        response = client.post("/products", json={
            "name": "Orphan", "price": 1, "stock": 1, "categoryId": 77
        })

        assert response.status_code == 400
        assert "77" in response.json()["message"]

    def test_create_product_invalid_fields(self, client, sample_category):
        response = client.post("/products", json={
            "name": "Novel", "price": -1, "stock": -1, "categoryId": sample_category.id
        })

        assert response.status_code == 400
        fields = {e["field"] for e in response.json()["errors"]}
        assert fields == {"price", "stock"}

    def test_create_product_malformed_body(self, client, sample_category):
        response = client.post("/products", json={"name": "Novel", "price": "cheap"})

        assert response.status_code == 400
        fields = {e["field"] for e in response.json()["errors"]}
        assert {"price", "categoryId"} <= fields

    def test_update_product_endpoint(self, client, sample_category, make_product):
        product = make_product(sample_category, "Novel")

        response = client.put(f"/products/{product.id}", json={
            "name": "Novel (2nd ed.)", "price": 12.5, "stock": 8,
            "isActive": False, "categoryId": sample_category.id
        })

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Novel (2nd ed.)"
        assert data["isActive"] is False

    def test_update_product_endpoint_errors(self, client, sample_category, make_product):
        product = make_product(sample_category, "Novel")
        body = {"name": "Novel", "price": 1, "stock": 1, "categoryId": sample_category.id}

        assert client.put("/products/999", json=body).status_code == 404
        assert client.put(f"/products/{product.id}", json={**body, "categoryId": 999}).status_code == 400

    def test_delete_product_endpoint(self, client, sample_category, make_product):
        product = make_product(sample_category, "Novel")

        assert client.delete(f"/products/{product.id}").status_code == 204
        assert client.delete(f"/products/{product.id}").status_code == 404
