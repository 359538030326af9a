import enum
from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, Text, ForeignKey, Numeric, DateTime, Boolean
)
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()


class Role(str, enum.Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"


class OrderStatus(str, enum.Enum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class User(Base):
    __tablename__ = "user"
    user_id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(120), unique=True, nullable=False)
    password = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=Role.CUSTOMER.value)


class Category(Base):
    __tablename__ = "categories"
    category_id = Column(Integer, primary_key=True, index=True)
    category_name = Column(String(100), unique=True, nullable=False)
    items = relationship("MenuItem", back_populates="category")


class MenuItem(Base):
    __tablename__ = "menu_items"
    menu_id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    category_id = Column(Integer, ForeignKey("categories.category_id"), nullable=False)
    description = Column(Text)
    image = Column(String(255))
    is_active = Column(Boolean, nullable=False, default=True)
    category = relationship("Category", back_populates="items")


class PaymentMethod(Base):
    __tablename__ = "payment_methods"
    method_id = Column(Integer, primary_key=True, index=True)
    method_name = Column(String(50), unique=True, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    is_cash = Column(Boolean, nullable=False, default=False)  # 現金付款不需付款證明


class Order(Base):
    __tablename__ = "orders"
    order_id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("user.user_id"), nullable=False, index=True)
    order_date = Column(DateTime, nullable=False, default=datetime.now)
    total_amount = Column(Numeric(12, 2), nullable=False)
    status = Column(String(20), nullable=False, default=OrderStatus.PENDING.value)
    customer_name = Column(String(100), nullable=False)
    customer_address = Column(Text, nullable=False)
    payment_method_id = Column(Integer, ForeignKey("payment_methods.method_id"), nullable=False)
    payment_proof = Column(String(255))
    items = relationship("OrderItem", back_populates="order")
    payment_method = relationship("PaymentMethod")
    user = relationship("User")


class OrderItem(Base):
    __tablename__ = "order_item"
    order_item_id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.order_id"), nullable=False, index=True)
    menu_id = Column(Integer, ForeignKey("menu_items.menu_id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    price_per_item = Column(Numeric(12, 2), nullable=False)  # 下單當下的單價
    order = relationship("Order", back_populates="items")
    menu = relationship("MenuItem")
