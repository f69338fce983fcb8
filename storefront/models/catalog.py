from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from ..db import Base


class Supplier(Base):
    __tablename__ = "supplier"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(160), nullable=False)  # nombre o razón social
    email = Column(String(120), nullable=True)
    phones = Column(JSON, default=list)
    tax_id = Column(String(20), nullable=True)  # CPF / CNPJ
    person_type = Column(String(10), default="juridica")  # fisica | juridica
    address = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    products = relationship("Product", back_populates="supplier")


class Product(Base):
    __tablename__ = "product"
    id = Column(Integer, primary_key=True, index=True)
    supplier_code = Column(String(50), nullable=True)
    company_code = Column(String(50), unique=True, index=True, nullable=True)
    supplier_description = Column(String(255), nullable=True)
    short_description = Column(String(120), nullable=False)
    detailed_description = Column(Text, nullable=True)
    weight_kg = Column(Numeric(10, 3), default=0)
    height_m = Column(Numeric(10, 3), default=0)
    width_m = Column(Numeric(10, 3), default=0)
    length_m = Column(Numeric(10, 3), default=0)
    storage_guidance = Column(Text, nullable=True)
    last_purchase_price = Column(Numeric(12, 2), default=0)
    last_sale_price = Column(Numeric(12, 2), nullable=False, default=0)
    stock_qty = Column(Integer, default=0)
    sold_qty_year = Column(Integer, default=0)
    images = Column(JSON, default=list)
    supplier_id = Column(Integer, ForeignKey("supplier.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    supplier = relationship("Supplier", back_populates="products")
