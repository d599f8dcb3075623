from sqlalchemy import CheckConstraint, Column, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Largest value an Integer column holds on every supported store
MAX_QUANTITY = 2**31 - 1


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
        CheckConstraint(f"stock_quantity <= {MAX_QUANTITY}", name="ck_products_stock_in_range"),
        CheckConstraint("low_stock_threshold >= 0", name="ck_products_threshold_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    stock_quantity = Column(Integer, nullable=False, default=0)
    low_stock_threshold = Column(Integer, nullable=False, default=10)

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock_quantity}>"
