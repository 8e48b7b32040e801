"""
Validadores de datos del catálogo.

Cada entidad tiene una función que devuelve la lista de violaciones por
campo en lugar de lanzar una excepción; el servicio decide qué hacer con ella.
"""
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import List, Optional

CATEGORY_NAME_MAX_LENGTH = 100
CATEGORY_DESCRIPTION_MAX_LENGTH = 500

PRODUCT_NAME_MAX_LENGTH = 200
PRODUCT_DESCRIPTION_MAX_LENGTH = 1000
PRICE_MIN = Decimal("0.01")
PRICE_MAX = Decimal("999999.99")

CENTS = Decimal("0.01")

# Range of the 32-bit INTEGER columns (ids, stock)
INT_MIN = -2_147_483_648
INT_MAX = 2_147_483_647


@dataclass(frozen=True)
class FieldViolation:
    field: str
    message: str

    def as_dict(self) -> dict:
        return {"field": self.field, "message": self.message}


def to_decimal(value) -> Optional[Decimal]:
    """Decimal finito o None si el valor no es un número."""
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return None
    return result if result.is_finite() else None


def normalize_price(price) -> Optional[Decimal]:
    """Redondea el precio a centavos; None si no es un número."""
    value = to_decimal(price)
    if value is None:
        return None
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def check_required(field: str, value: Optional[str], violations: List[FieldViolation]) -> None:
    if value is None or not value.strip():
        violations.append(FieldViolation(field, f"{field} es obligatorio"))


def check_max_length(field: str, value: Optional[str], max_length: int, violations: List[FieldViolation]) -> None:
    if value is not None and len(value) > max_length:
        violations.append(FieldViolation(field, f"{field} no puede superar {max_length} caracteres"))


def validate_category(name: Optional[str], description: Optional[str]) -> List[FieldViolation]:
    violations: List[FieldViolation] = []
    check_required("name", name, violations)
    check_max_length("name", name, CATEGORY_NAME_MAX_LENGTH, violations)
    check_max_length("description", description, CATEGORY_DESCRIPTION_MAX_LENGTH, violations)
    return violations


def validate_product(name: Optional[str], description: Optional[str], price, stock) -> List[FieldViolation]:
    """
    Valida los campos editables de un producto.

    Reglas:
    - name obligatorio, máximo 200 caracteres
    - description opcional, máximo 1000 caracteres
    - price entre 0.01 y 999999.99, comparado antes de redondear a centavos
    - stock entero entre 0 y el máximo de la columna
    """
    violations: List[FieldViolation] = []
    check_required("name", name, violations)
    check_max_length("name", name, PRODUCT_NAME_MAX_LENGTH, violations)
    check_max_length("description", description, PRODUCT_DESCRIPTION_MAX_LENGTH, violations)

    value = to_decimal(price)
    if value is None or not PRICE_MIN <= value <= PRICE_MAX:
        violations.append(FieldViolation("price", f"price debe estar entre {PRICE_MIN} y {PRICE_MAX}"))

    if isinstance(stock, bool) or not isinstance(stock, int) or not 0 <= stock <= INT_MAX:
        violations.append(FieldViolation("stock", f"stock debe ser un entero entre 0 y {INT_MAX}"))

    return violations
