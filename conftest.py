"""
Fixtures compartidos para los tests del catálogo.

Cada test usa una base SQLite en memoria nueva, con claves foráneas
activadas, inyectada en la API mediante dependency_overrides.
"""
import os

# Must be set before app.core.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ["SEED_DATA"] = "false"

from datetime import datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app.database.database import Base, build_engine, get_db
from app.main import app
from app.modules.categories.models import Category
from app.modules.products.models import Product


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_category(db_session):
    """Crea categorías directamente en la base"""
    def _make(name: str, description: str = None) -> Category:
        category = Category(name=name, description=description)
        db_session.add(category)
        db_session.commit()
        db_session.refresh(category)
        return category
    return _make


@pytest.fixture
def make_product(db_session):
    """Crea productos directamente en la base, con valores por defecto"""
    def _make(category: Category, name: str, price="10.00", stock: int = 1,
              description: str = None, is_active: bool = True,
              created_at: datetime = None) -> Product:
        product = Product(
            name=name,
            description=description,
            price=Decimal(str(price)),
            stock=stock,
            is_active=is_active,
            category_id=category.id,
        )
        if created_at is not None:
            product.created_at = created_at
        db_session.add(product)
        db_session.commit()
        db_session.refresh(product)
        return product
    return _make


@pytest.fixture
def sample_category(make_category):
    return make_category("Books", "Printed and digital books")
