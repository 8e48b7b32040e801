from sqlalchemy.orm import Session
from sqlalchemy import select, func, exists
from typing import List
import logging

from app.common.exceptions import ConflictError, NotFoundError, ValidationError
from app.common.validators import validate_category
from app.database.database import commit_or_raise
from app.modules.categories.models import Category
from app.modules.categories.schemas import CategoryCreate, CategoryUpdate, CategoryOut
from app.modules.products.models import Product
from app.modules.products.query import ProductQuery
from app.modules.products.schemas import ProductOut
from app.modules.products.service import product_to_response

logger = logging.getLogger(__name__)


def category_to_response(category: Category, product_count: int = 0) -> CategoryOut:
    """Convierte un modelo Category al formato CategoryOut"""
    return CategoryOut(
        id=category.id,
        name=category.name,
        description=category.description,
        productCount=product_count or 0,
    )


def _product_count():
    return (
        select(func.count(Product.id))
        .where(Product.category_id == Category.id)
        .correlate(Category)
        .scalar_subquery()
        .label("product_count")
    )


class CategoryService:
    """Servicio para gestión de categorías"""

    def __init__(self, db: Session):
        self.db = db

    def _validate(self, data) -> None:
        violations = validate_category(data.name, data.description)
        if violations:
            fields = ", ".join(v.field for v in violations)
            raise ValidationError(f"Datos de categoría inválidos: {fields}", violations)

    def get_all_categories(self) -> List[CategoryOut]:
        """Listar categorías ordenadas por nombre, con su cantidad de productos"""
        rows = self.db.execute(
            select(Category, _product_count()).order_by(Category.name.asc(), Category.id.asc())
        ).all()
        return [category_to_response(category, count) for category, count in rows]

    def get_category_by_id(self, category_id: int) -> Category:
        """Obtener categoría por ID"""
        category = self.db.get(Category, category_id)
        if not category:
            raise NotFoundError(f"Categoría {category_id} no encontrada")
        return category

    def count_products(self, category_id: int) -> int:
        return self.db.execute(
            select(func.count(Product.id)).where(Product.category_id == category_id)
        ).scalar_one()

    def get_category(self, category_id: int) -> CategoryOut:
        """Obtener categoría con su cantidad de productos"""
        row = self.db.execute(
            select(Category, _product_count()).where(Category.id == category_id)
        ).first()

        if row is None:
            raise NotFoundError(f"Categoría {category_id} no encontrada")
        category, count = row
        return category_to_response(category, count)

    def get_category_products(self, category_id: int) -> List[ProductOut]:
        """Productos de una categoría ordenados por nombre"""
        exists_stmt = select(exists().where(Category.id == category_id))
        if not self.db.execute(exists_stmt).scalar():
            raise NotFoundError(f"Categoría {category_id} no encontrada")

        query = ProductQuery().with_category(category_id).sort_by("name")
        rows = self.db.execute(query.statement()).all()
        return [product_to_response(product, category_name) for product, category_name in rows]

    def create_category(self, data: CategoryCreate) -> CategoryOut:
        """
        Crear nueva categoría

        Args:
            data: Datos de la categoría

        Returns:
            CategoryOut: Categoría creada, sin productos

        Raises:
            ConflictError: Si ya existe una categoría con el mismo nombre
        """
        self._validate(data)

        existing = self.db.execute(
            select(Category.id).where(Category.name == data.name)
        ).first()

        if existing:
            logger.warning(f"Category '{data.name}' already exists")
            raise ConflictError(f"Ya existe una categoría con el nombre '{data.name}'")

        category = Category(name=data.name, description=data.description)

        self.db.add(category)
        # A concurrent insert of the same name is caught by the unique constraint
        commit_or_raise(self.db, ConflictError(f"Ya existe una categoría con el nombre '{data.name}'"))
        self.db.refresh(category)

        logger.info(f"Category {category.id} '{category.name}' created")
        return category_to_response(category, 0)

    def update_category(self, category_id: int, data: CategoryUpdate) -> CategoryOut:
        """
        Actualizar categoría

        El nombre no se vuelve a verificar contra las demás categorías; solo la
        restricción única de la base de datos puede rechazarlo.
        """
        self._validate(data)

        category = self.get_category_by_id(category_id)
        category.name = data.name
        category.description = data.description

        commit_or_raise(self.db, ConflictError(f"Ya existe una categoría con el nombre '{data.name}'"))
        self.db.refresh(category)

        logger.info(f"Category {category_id} updated")
        return category_to_response(category, self.count_products(category_id))

    def delete_category(self, category_id: int) -> None:
        """Eliminar categoría; solo si no tiene productos asociados"""
        category = self.get_category_by_id(category_id)

        if self.count_products(category_id) > 0:
            logger.warning(f"Category {category_id} delete rejected: it still has products")
            raise ConflictError("No se puede eliminar una categoría que contiene productos")

        self.db.delete(category)
        # A product inserted after the check is caught by ON DELETE RESTRICT
        commit_or_raise(self.db, ConflictError("No se puede eliminar una categoría que contiene productos"))

        logger.info(f"Category {category_id} deleted")
