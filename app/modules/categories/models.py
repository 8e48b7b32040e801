from sqlalchemy import Column, Integer, String

from app.database.database import Base
from app.common.validators import CATEGORY_NAME_MAX_LENGTH, CATEGORY_DESCRIPTION_MAX_LENGTH

class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(CATEGORY_NAME_MAX_LENGTH), nullable=False, unique=True)
    description = Column(String(CATEGORY_DESCRIPTION_MAX_LENGTH), nullable=True)
