"""
Catalog exceptions and their HTTP rendering.

Services raise these; the handlers registered here turn them (and request
parsing or database failures) into JSON responses with a ``message`` field.
"""
import logging
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from app.common.validators import FieldViolation

logger = logging.getLogger(__name__)


class CatalogException(HTTPException):
    """Base de los errores de negocio del catálogo"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(status_code=self.status_code, detail=message)
        self.message = message


class NotFoundError(CatalogException):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(CatalogException):
    status_code = status.HTTP_409_CONFLICT


class ValidationError(CatalogException):
    """Datos inválidos o referencia a una categoría inexistente"""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, violations: Optional[List[FieldViolation]] = None):
        super().__init__(message)
        self.violations = violations or []


class ServiceUnavailableError(CatalogException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


def _error_body(message: str, violations: Optional[List[FieldViolation]] = None) -> dict:
    body = {"message": message}
    if violations:
        body["errors"] = [v.as_dict() for v in violations]
    return body


async def catalog_exception_handler(request: Request, exc: CatalogException):
    violations = exc.violations if isinstance(exc, ValidationError) else None
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message, violations))


async def request_validation_handler(request: Request, exc: RequestValidationError):
    violations = []
    for error in exc.errors():
        # loc looks like ("body", "price") or ("query", "page")
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        violations.append(FieldViolation(".".join(loc) or "body", error.get("msg", "Valor inválido")))
    fields = ", ".join(v.field for v in violations)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body(f"Datos inválidos: {fields}", violations)
    )


async def database_unavailable_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database unavailable on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=_error_body("Base de datos no disponible, intente nuevamente")
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("Error interno de base de datos")
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CatalogException, catalog_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(OperationalError, database_unavailable_handler)
    app.add_exception_handler(PoolTimeoutError, database_unavailable_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
