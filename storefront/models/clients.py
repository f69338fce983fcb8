from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Integer, Numeric, String, Text

from ..db import Base


class Client(Base):
    __tablename__ = "client"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(160), nullable=False)  # nombre o razón social
    tax_id = Column(String(14), unique=True, index=True, nullable=False)  # CPF / CNPJ, solo dígitos
    person_type = Column(String(10), default="fisica")
    emails = Column(JSON, default=list)
    phones = Column(JSON, default=list)
    mailing_address = Column(JSON, nullable=True)
    delivery_address = Column(JSON, nullable=True)
    receiving_hours = Column(String(80), default="")
    delivery_notes = Column(Text, default="")
    payment_info = Column(JSON, nullable=True)
    # Se actualizan al registrar cada venta vinculada
    first_purchase_at = Column(DateTime, nullable=True)
    last_purchase_at = Column(DateTime, nullable=True)
    largest_purchase = Column(Numeric(12, 2), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
