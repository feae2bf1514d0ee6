from sqlalchemy import Column, Integer, String
from invenflow.core.db import Base
from invenflow.models.base.mixins import TimestampMixin, SoftDeleteMixin


class Product(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    sku = Column(String(50), nullable=True, unique=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    image_url = Column(String(500), nullable=True)
    unit = Column(String(30), nullable=True)

    def __repr__(self):
        return f"<Product id={self.id} sku={self.sku} name={self.name}>"
