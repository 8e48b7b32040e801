from sqlalchemy.orm import Session
from sqlalchemy import select
from typing import Optional
import logging

from app.common.exceptions import NotFoundError, ValidationError
from app.common.mixins import utcnow
from app.common.validators import FieldViolation, normalize_price, validate_product
from app.database.database import commit_or_raise
from app.modules.categories.models import Category
from .models import Product
from .query import ProductQuery
from .schemas import (
    ProductCreate, ProductUpdate, ProductOut, ProductFilters, ProductPage, UNKNOWN_CATEGORY_NAME
)

logger = logging.getLogger(__name__)


def product_to_response(product: Product, category_name: Optional[str] = None) -> ProductOut:
    """Convierte un modelo Product al formato ProductOut"""
    return ProductOut(
        id=product.id,
        name=product.name,
        description=product.description,
        price=product.price,
        stock=product.stock,
        isActive=product.is_active,
        createdAt=product.created_at,
        categoryId=product.category_id,
        categoryName=category_name if category_name is not None else UNKNOWN_CATEGORY_NAME,
    )


def _missing_category(category_id: int) -> ValidationError:
    message = f"Categoría {category_id} no encontrada"
    return ValidationError(message, [FieldViolation("categoryId", message)])


class ProductService:
    """Servicio para gestión de productos"""

    def __init__(self, db: Session):
        self.db = db

    def list_products(self, filters: ProductFilters) -> ProductPage:
        """
        Listar productos con filtros, orden y paginación

        El total se calcula con los mismos filtros y antes de paginar.
        """
        query = ProductQuery.from_filters(filters)

        total = self.db.execute(query.count_statement()).scalar_one()
        rows = self.db.execute(query.page_statement(filters.page, filters.pageSize)).all()

        return ProductPage(
            items=[product_to_response(product, category_name) for product, category_name in rows],
            total=total,
            page=filters.page,
            pageSize=filters.pageSize,
        )

    def get_product(self, product_id: int) -> ProductOut:
        """Obtener producto por ID con el nombre de su categoría"""
        row = self.db.execute(
            select(Product, Category.name)
            .outerjoin(Category, Category.id == Product.category_id)
            .where(Product.id == product_id)
        ).first()

        if row is None:
            raise NotFoundError(f"Producto {product_id} no encontrado")
        product, category_name = row
        return product_to_response(product, category_name)

    def get_product_by_id(self, product_id: int) -> Product:
        product = self.db.get(Product, product_id)
        if not product:
            raise NotFoundError(f"Producto {product_id} no encontrado")
        return product

    def _get_category_name(self, category_id: int) -> Optional[str]:
        return self.db.execute(
            select(Category.name).where(Category.id == category_id)
        ).scalar_one_or_none()

    def _validate(self, data) -> None:
        violations = validate_product(data.name, data.description, data.price, data.stock)
        if violations:
            fields = ", ".join(v.field for v in violations)
            raise ValidationError(f"Datos de producto inválidos: {fields}", violations)

    def create_product(self, data: ProductCreate) -> ProductOut:
        """
        Crear nuevo producto

        Args:
            data: Datos del producto

        Returns:
            ProductOut: Producto creado con el nombre de su categoría

        Raises:
            ValidationError: Si los datos son inválidos o la categoría no existe
        """
        self._validate(data)

        category_name = self._get_category_name(data.categoryId)
        if category_name is None:
            logger.warning(f"Product rejected: category {data.categoryId} does not exist")
            raise _missing_category(data.categoryId)

        product = Product(
            name=data.name,
            description=data.description,
            price=normalize_price(data.price),
            stock=data.stock,
            is_active=True,
            category_id=data.categoryId,
            created_at=utcnow(),
            updated_at=None,
        )

        self.db.add(product)
        # The category may disappear between the check and the insert
        commit_or_raise(self.db, _missing_category(data.categoryId))
        self.db.refresh(product)

        logger.info(f"Product {product.id} created in category {product.category_id}")
        return product_to_response(product, category_name)

    def update_product(self, product_id: int, data: ProductUpdate) -> ProductOut:
        """Actualizar todos los campos editables de un producto"""
        self._validate(data)

        product = self.get_product_by_id(product_id)

        category_name = self._get_category_name(data.categoryId)
        if category_name is None:
            logger.warning(f"Product {product_id} update rejected: category {data.categoryId} does not exist")
            raise _missing_category(data.categoryId)

        product.name = data.name
        product.description = data.description
        product.price = normalize_price(data.price)
        product.stock = data.stock
        product.is_active = data.isActive
        product.category_id = data.categoryId
        product.touch()

        commit_or_raise(self.db, _missing_category(data.categoryId))
        self.db.refresh(product)

        logger.info(f"Product {product.id} updated")
        return product_to_response(product, category_name)

    def delete_product(self, product_id: int) -> None:
        """Eliminar producto"""
        product = self.get_product_by_id(product_id)

        self.db.delete(product)
        commit_or_raise(self.db)

        logger.info(f"Product {product_id} deleted")
