# cart_service/data/models/cart.py
from sqlalchemy import Column, Integer, String, Text

from cart_service.data.database import Base


class CartModel(Base):
    __tablename__ = "carts"

    user_id = Column(String, primary_key=True)

    order_list = Column(Text, nullable=False, default=";")
    # str(Decimal), catalog prices can be finer than a cent
    total_price = Column(Text, nullable=False, default="0")
    version = Column(Integer, nullable=False, default=1)
