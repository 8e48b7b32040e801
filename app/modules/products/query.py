"""
Constructor de consultas para el listado de productos.

Los filtros se acumulan como predicados y se traducen una sola vez en la
sentencia de conteo y en la sentencia paginada, que comparten predicados.
"""
from typing import List, Optional

from sqlalchemy import Select, and_, func, or_, select
from sqlalchemy.sql.elements import ColumnElement

from app.modules.categories.models import Category
from app.modules.products.models import Product
from app.modules.products.schemas import ProductFilters

DEFAULT_SORT = "name"

SORT_OPTIONS = {
    "name": Product.name.asc(),
    "price": Product.price.asc(),
    "price_desc": Product.price.desc(),
    "date": Product.created_at.desc(),
    "stock": Product.stock.asc(),
}


class ProductQuery:
    """Acumula predicados y orden sobre la tabla de productos"""

    def __init__(self):
        self._predicates: List[ColumnElement[bool]] = []
        self._sort_key = DEFAULT_SORT

    @classmethod
    def from_filters(cls, filters: ProductFilters) -> "ProductQuery":
        return (
            cls()
            .with_category(filters.categoryId)
            .with_active(filters.isActive)
            .with_search(filters.search)
            .sort_by(filters.sortBy)
        )

    def with_category(self, category_id: Optional[int]) -> "ProductQuery":
        if category_id is not None:
            self._predicates.append(Product.category_id == category_id)
        return self

    def with_active(self, is_active: Optional[bool]) -> "ProductQuery":
        if is_active is not None:
            self._predicates.append(Product.is_active == is_active)
        return self

    def with_search(self, term: Optional[str]) -> "ProductQuery":
        """Coincidencia parcial, sin distinguir mayúsculas, en nombre o descripción."""
        if term and term.strip():
            self._predicates.append(
                or_(
                    Product.name.icontains(term, autoescape=True),
                    and_(
                        Product.description.is_not(None),
                        Product.description.icontains(term, autoescape=True)
                    )
                )
            )
        return self

    def sort_by(self, key: Optional[str]) -> "ProductQuery":
        # Unknown keys fall back to name ascending
        key = (key or "").lower()
        self._sort_key = key if key in SORT_OPTIONS else DEFAULT_SORT
        return self

    def _where(self, stmt: Select) -> Select:
        if self._predicates:
            stmt = stmt.where(*self._predicates)
        return stmt

    def count_statement(self) -> Select:
        return self._where(select(func.count(Product.id)))

    def statement(self) -> Select:
        """Productos con el nombre de su categoría, ya ordenados."""
        stmt = select(Product, Category.name).outerjoin(Category, Category.id == Product.category_id)
        return self._where(stmt).order_by(SORT_OPTIONS[self._sort_key], Product.id.asc())

    def page_statement(self, page: int, page_size: int) -> Select:
        return self.statement().offset((page - 1) * page_size).limit(page_size)
