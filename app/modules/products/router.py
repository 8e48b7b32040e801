from fastapi import APIRouter, status, Path, Query, Request, Response
from typing import Annotated, List

from app.common.validators import INT_MAX, INT_MIN
from app.dependencies.dbDependecies import db_dependency
from app.modules.products import service
from app.modules.products.schemas import ProductCreate, ProductUpdate, ProductOut, ProductFilters

product_router = APIRouter(prefix="/products", tags=["Products"])

ProductId = Annotated[int, Path(ge=INT_MIN, le=INT_MAX)]


@product_router.get("", response_model=List[ProductOut])
def list_products(response: Response, db: db_dependency, filters: Annotated[ProductFilters, Query()]):
    """List products with filters, sorting and pagination.

    Pagination metadata goes in the X-Total-Count, X-Page and X-Page-Size headers.
    """
    result = service.ProductService(db).list_products(filters)

    response.headers["X-Total-Count"] = str(result.total)
    response.headers["X-Page"] = str(result.page)
    response.headers["X-Page-Size"] = str(result.pageSize)
    return result.items


@product_router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: ProductId, db: db_dependency):
    return service.ProductService(db).get_product(product_id)


@product_router.post("", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
def create_product(data: ProductCreate, request: Request, response: Response, db: db_dependency):
    """Create a product in an existing category."""
    product = service.ProductService(db).create_product(data)
    response.headers["Location"] = str(request.url_for("get_product", product_id=product.id))
    return product


@product_router.put("/{product_id}", response_model=ProductOut)
def update_product(product_id: ProductId, data: ProductUpdate, db: db_dependency):
    """Replace every editable field of a product."""
    return service.ProductService(db).update_product(product_id, data)


@product_router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(product_id: ProductId, db: db_dependency):
    service.ProductService(db).delete_product(product_id)
