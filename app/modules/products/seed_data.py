"""
Datos iniciales del catálogo: categorías y productos de ejemplo.
"""
import logging
from decimal import Decimal
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.common.mixins import utcnow
from app.modules.categories.models import Category
from app.modules.products.models import Product

logger = logging.getLogger(__name__)


DEFAULT_CATALOG = {
    "categories": [
        {"name": "Électronique", "description": "Appareils et gadgets électroniques"},
        {"name": "Livres", "description": "Livres papier et numériques"},
        {"name": "Vêtements", "description": "Mode et accessoires"},
    ],
    "products": [
        {"name": "Laptop Pro 15", "description": "Ordinateur portable 15 pouces, 16Go RAM, 512Go SSD",
         "price": Decimal("1299.99"), "stock": 25, "category": "Électronique"},
        {"name": "Clavier Mécanique RGB", "description": "Clavier gaming switches Cherry MX",
         "price": Decimal("89.99"), "stock": 150, "category": "Électronique"},
        {"name": "Clean Code", "description": "Robert C. Martin - Guide du code propre",
         "price": Decimal("34.50"), "stock": 80, "category": "Livres"},
        {"name": "Design Patterns", "description": "Gang of Four - Patterns de conception",
         "price": Decimal("42.00"), "stock": 45, "category": "Livres"},
        {"name": "T-Shirt .NET", "description": "T-shirt développeur .NET, 100% coton",
         "price": Decimal("24.99"), "stock": 200, "category": "Vêtements"},
    ],
}


def seed_catalog(db: Session, catalog: dict = DEFAULT_CATALOG) -> int:
    """
    Poblar el catálogo con los datos iniciales.

    Es idempotente: una categoría se crea solo si no existe otra con el mismo
    nombre, y un producto solo si su categoría no tiene ya uno con ese nombre.

    Returns:
        int: Cantidad de filas creadas
    """
    created = 0
    category_ids = {}

    for category_data in catalog["categories"]:
        category = db.execute(
            select(Category).where(Category.name == category_data["name"])
        ).scalar_one_or_none()

        if category is None:
            category = Category(**category_data)
            db.add(category)
            db.flush()
            created += 1
        category_ids[category.name] = category.id

    for product_data in catalog["products"]:
        data = dict(product_data)
        category_id = category_ids[data.pop("category")]

        existing = db.execute(
            select(Product.id).where(Product.name == data["name"], Product.category_id == category_id)
        ).first()
        if existing:
            continue

        db.add(Product(**data, category_id=category_id, is_active=True, created_at=utcnow()))
        created += 1

    db.commit()

    if created:
        logger.info(f"Seeded {created} catalog rows")
    else:
        logger.debug("Catalog seed already applied")
    return created
