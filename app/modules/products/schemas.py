from pydantic import BaseModel, Field, field_serializer
from typing import Optional
from datetime import datetime
from decimal import Decimal

from app.common.validators import INT_MAX, INT_MIN
from app.core.config import settings

# Valor mostrado cuando la categoría de un producto no se pudo resolver
UNKNOWN_CATEGORY_NAME = "N/A"

class ProductCreate(BaseModel):
    name: str
    description: Optional[str] = None
    price: Decimal
    stock: int = 0
    categoryId: int = Field(ge=INT_MIN, le=INT_MAX)

class ProductUpdate(BaseModel):
    name: str
    description: Optional[str] = None
    price: Decimal
    stock: int = 0
    isActive: bool = True
    categoryId: int = Field(ge=INT_MIN, le=INT_MAX)

class ProductOut(BaseModel):
    """Representación pública de un producto"""
    id: int
    name: str
    description: Optional[str] = None
    price: Decimal
    stock: int
    isActive: bool
    createdAt: datetime
    categoryId: int
    categoryName: str = UNKNOWN_CATEGORY_NAME

    @field_serializer("price")
    def serialize_price(self, price: Decimal) -> float:
        return float(price)

    class Config:
        from_attributes = True

class ProductFilters(BaseModel):
    """
    Filtros, orden y paginación del listado de productos

    Se recibe directamente como parámetros de query; los nombres de campo
    son los del contrato HTTP.
    """
    categoryId: Optional[int] = Field(None, ge=INT_MIN, le=INT_MAX, description="Filtrar por categoría")
    isActive: Optional[bool] = Field(None, description="Filtrar por estado activo")
    search: Optional[str] = Field(None, description="Buscar en nombre o descripción")
    sortBy: str = Field("name", description="name, price, price_desc, date o stock")
    page: int = Field(1, ge=1, le=INT_MAX, description="Número de página")
    pageSize: int = Field(
        settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE, description="Elementos por página"
    )

class ProductPage(BaseModel):
    """Página de productos más el total de coincidencias antes de paginar"""
    items: list[ProductOut]
    total: int
    page: int
    pageSize: int
