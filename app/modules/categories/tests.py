"""
Tests para el módulo de Categorías

Cubren:
- Listado ordenado por nombre con conteo de productos
- Unicidad del nombre al crear
- Eliminación bloqueada mientras existan productos
- Endpoints HTTP y formato de errores
"""

import pytest
from sqlalchemy.orm import Session

from app.common.exceptions import ConflictError, NotFoundError, ValidationError
from app.modules.categories.models import Category
from app.modules.categories.schemas import CategoryCreate, CategoryUpdate
from app.modules.categories.service import CategoryService, category_to_response


# ===== TESTS DE SERVICIOS =====

class TestCategoryService:
    """Tests para CategoryService"""

    def test_create_category_success(self, db_session: Session):
        category_service = CategoryService(db_session)

        category = category_service.create_category(CategoryCreate(name="Books", description="Paper"))

        assert category.id is not None
        assert category.name == "Books"
        assert category.description == "Paper"
        assert category.productCount == 0

    def test_create_category_duplicate_name(self, db_session: Session, sample_category):
        category_service = CategoryService(db_session)

        with pytest.raises(ConflictError) as exc_info:
            category_service.create_category(CategoryCreate(name=sample_category.name))

        assert exc_info.value.status_code == 409
        assert db_session.query(Category).count() == 1

    def test_create_category_name_match_is_exact(self, db_session: Session, sample_category):
        """Solo un nombre idéntico cuenta como duplicado"""
        category_service = CategoryService(db_session)

        category = category_service.create_category(CategoryCreate(name="books"))

        assert category.name == "books"
        assert category.productCount == 0

    def test_create_category_invalid_fields(self, db_session: Session):
        category_service = CategoryService(db_session)

        with pytest.raises(ValidationError) as exc_info:
            category_service.create_category(CategoryCreate(name="  ", description="x" * 501))

        fields = {v.field for v in exc_info.value.violations}
        assert fields == {"name", "description"}
        assert db_session.query(Category).count() == 0

    def test_list_categories_sorted_with_counts(self, db_session: Session, make_category, make_product):
        toys = make_category("Toys")
        books = make_category("Books")
        garden = make_category("Garden")
        make_product(books, "Novel")
        make_product(books, "Atlas")
        make_product(toys, "Ball")

        result = CategoryService(db_session).get_all_categories()

        assert [c.name for c in result] == ["Books", "Garden", "Toys"]
        counts = {c.id: c.productCount for c in result}
        assert counts == {books.id: 2, garden.id: 0, toys.id: 1}

    def test_get_category_with_count(self, db_session: Session, sample_category, make_product):
        make_product(sample_category, "Novel")

        category = CategoryService(db_session).get_category(sample_category.id)

        assert category.name == sample_category.name
        assert category.productCount == 1

    def test_get_category_not_found(self, db_session: Session):
        with pytest.raises(NotFoundError) as exc_info:
            CategoryService(db_session).get_category(999)
        assert exc_info.value.status_code == 404

    def test_get_category_products_sorted_by_name(self, db_session: Session, make_category, make_product):
        books = make_category("Books")
        other = make_category("Other")
        make_product(books, "Zebra guide")
        make_product(books, "Atlas")
        make_product(other, "Unrelated")

        products = CategoryService(db_session).get_category_products(books.id)

        assert [p.name for p in products] == ["Atlas", "Zebra guide"]
        assert all(p.categoryName == "Books" for p in products)
        assert all(p.categoryId == books.id for p in products)

    def test_get_category_products_not_found(self, db_session: Session):
        with pytest.raises(NotFoundError):
            CategoryService(db_session).get_category_products(42)

    def test_update_category(self, db_session: Session, sample_category, make_product):
        make_product(sample_category, "Novel")

        updated = CategoryService(db_session).update_category(
            sample_category.id, CategoryUpdate(name="Livres", description=None)
        )

        assert updated.id == sample_category.id
        assert updated.name == "Livres"
        assert updated.description is None
        assert updated.productCount == 1

    def test_update_category_not_found(self, db_session: Session):
        with pytest.raises(NotFoundError):
            CategoryService(db_session).update_category(7, CategoryUpdate(name="Nope"))

    def test_update_category_to_existing_name_rejected_by_store(self, db_session: Session, make_category):
        make_category("Books")
        toys = make_category("Toys")

        with pytest.raises(ConflictError):
            CategoryService(db_session).update_category(toys.id, CategoryUpdate(name="Books"))

        db_session.expire_all()
        assert db_session.get(Category, toys.id).name == "Toys"

    def test_delete_empty_category(self, db_session: Session, sample_category):
        category_service = CategoryService(db_session)

        category_service.delete_category(sample_category.id)

        assert category_service.get_all_categories() == []
        with pytest.raises(NotFoundError):
            category_service.get_category(sample_category.id)

    def test_delete_category_with_products(self, db_session: Session, sample_category, make_product):
        make_product(sample_category, "Novel")
        category_service = CategoryService(db_session)

        with pytest.raises(ConflictError) as exc_info:
            category_service.delete_category(sample_category.id)

        assert exc_info.value.status_code == 409
        assert category_service.get_category(sample_category.id).productCount == 1

    def test_delete_category_blocked_by_store(self, db_session: Session, sample_category, make_product, monkeypatch):
        """Un producto creado tras la verificación lo detecta la clave foránea"""
        make_product(sample_category, "Novel")
        category_service = CategoryService(db_session)
        monkeypatch.setattr(category_service, "count_products", lambda category_id: 0)

        with pytest.raises(ConflictError):
            category_service.delete_category(sample_category.id)

        db_session.expire_all()
        assert db_session.get(Category, sample_category.id) is not None

    def test_delete_category_not_found(self, db_session: Session):
        with pytest.raises(NotFoundError):
            CategoryService(db_session).delete_category(3)

    def test_category_to_response(self):
        category = Category(id=5, name="Books", description=None)

        response = category_to_response(category, 3)

        assert response.model_dump() == {"id": 5, "name": "Books", "description": None, "productCount": 3}


# ===== TESTS DE API ENDPOINTS =====

class TestCategoryAPI:
    """Tests de endpoints API"""

    def test_create_category_endpoint(self, client):
        response = client.post("/categories", json={"name": "Books", "description": "Paper"})

        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "Books"
        assert data["productCount"] == 0
        assert response.headers["location"].endswith(f"/categories/{data['id']}")

    def test_create_duplicate_category_endpoint(self, client, sample_category):
        response = client.post("/categories", json={"name": sample_category.name})

        assert response.status_code == 409
        assert "message" in response.json()

    def test_create_category_missing_name(self, client):
        response = client.post("/categories", json={"description": "no name"})

        assert response.status_code == 400
        data = response.json()
        assert "message" in data
        assert data["errors"][0]["field"] == "name"

    def test_list_categories_endpoint(self, client, make_category):
        make_category("Toys")
        make_category("Books")

        response = client.get("/categories")

        assert response.status_code == 200
        assert [c["name"] for c in response.json()] == ["Books", "Toys"]

    def test_get_category_not_found_endpoint(self, client):
        response = client.get("/categories/999")

        assert response.status_code == 404
        assert "999" in response.json()["message"]

    def test_category_id_out_of_range(self, client):
        for path in (f"/categories/{2 ** 63}", f"/categories/{2 ** 63}/products"):
            response = client.get(path)
            assert response.status_code == 400
            assert response.json()["errors"][0]["field"] == "category_id"

    def test_category_products_endpoint(self, client, sample_category, make_product):
        make_product(sample_category, "Novel", price="9.99")

        response = client.get(f"/categories/{sample_category.id}/products")

        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert data[0]["categoryName"] == sample_category.name
        assert data[0]["price"] == 9.99

    def test_update_category_endpoint(self, client, sample_category):
        response = client.put(
            f"/categories/{sample_category.id}",
            json={"name": "Livres", "description": "Papier"}
        )

        assert response.status_code == 200
        assert response.json()["name"] == "Livres"

    def test_update_missing_category_endpoint(self, client):
        response = client.put("/categories/404", json={"name": "Ghost"})
        assert response.status_code == 404

    def test_delete_category_endpoints(self, client, sample_category):
        response = client.delete(f"/categories/{sample_category.id}")
        assert response.status_code == 204

        response = client.delete(f"/categories/{sample_category.id}")
        assert response.status_code == 404

    def test_catalog_lifecycle(self, client):
        """Categoría y producto de punta a punta"""
        response = client.post("/categories", json={"name": "Books"})
        assert response.status_code == 201
        books = response.json()
        assert books["productCount"] == 0

        response = client.post(
            "/products",
            json={"name": "Novel", "price": 9.99, "stock": 3, "categoryId": books["id"]}
        )
        assert response.status_code == 201
        novel = response.json()
        assert novel["categoryName"] == "Books"

        assert client.get(f"/categories/{books['id']}").json()["productCount"] == 1

        assert client.delete(f"/categories/{books['id']}").status_code == 409
        assert client.delete(f"/products/{novel['id']}").status_code == 204
        assert client.delete(f"/categories/{books['id']}").status_code == 204
