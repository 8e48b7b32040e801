from fastapi import APIRouter, Path, Request, Response, status
from typing import Annotated, List

from app.common.validators import INT_MAX, INT_MIN
from app.dependencies.dbDependecies import db_dependency
from app.modules.categories import service
from app.modules.categories.schemas import CategoryCreate, CategoryUpdate, CategoryOut
from app.modules.products.schemas import ProductOut

categories_router = APIRouter(tags=["Categories"])

CategoryId = Annotated[int, Path(ge=INT_MIN, le=INT_MAX)]

@categories_router.get("", response_model=List[CategoryOut])
def list_categories(db: db_dependency):
    """List all categories ordered by name, with their product count."""
    category_service = service.CategoryService(db)
    return category_service.get_all_categories()

@categories_router.get("/{category_id}", response_model=CategoryOut)
def get_category(category_id: CategoryId, db: db_dependency):
    category_service = service.CategoryService(db)
    return category_service.get_category(category_id)

@categories_router.get("/{category_id}/products", response_model=List[ProductOut])
def list_category_products(category_id: CategoryId, db: db_dependency):
    """Products of a category ordered by name."""
    category_service = service.CategoryService(db)
    return category_service.get_category_products(category_id)

@categories_router.post("", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
def create_category(data: CategoryCreate, request: Request, response: Response, db: db_dependency):
    category_service = service.CategoryService(db)
    category = category_service.create_category(data)
    response.headers["Location"] = str(request.url_for("get_category", category_id=category.id))
    return category

@categories_router.put("/{category_id}", response_model=CategoryOut)
def update_category(category_id: CategoryId, data: CategoryUpdate, db: db_dependency):
    category_service = service.CategoryService(db)
    return category_service.update_category(category_id, data)

@categories_router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(category_id: CategoryId, db: db_dependency):
    category_service = service.CategoryService(db)
    category_service.delete_category(category_id)
