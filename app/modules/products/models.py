from app.database.database import Base
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, Numeric, text
from app.common.mixins import TimestampMixin
from app.common.validators import PRODUCT_NAME_MAX_LENGTH, PRODUCT_DESCRIPTION_MAX_LENGTH

class Product(Base, TimestampMixin):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(PRODUCT_NAME_MAX_LENGTH), nullable=False)
    description = Column(String(PRODUCT_DESCRIPTION_MAX_LENGTH), nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True, server_default=text("true"))

    # Deleting a referenced category is blocked, never cascaded
    category_id = Column(
        Integer,
        ForeignKey("categories.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
