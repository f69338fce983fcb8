from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, Numeric, String

from ..db import Base

SALE_STATUSES = ("pendente", "confirmada", "enviada", "entregue", "cancelada")


class Sale(Base):
    __tablename__ = "sale"
    id = Column(Integer, primary_key=True, index=True)
    customer = Column(JSON, nullable=False)
    items = Column(JSON, nullable=False)
    subtotal = Column(Numeric(12, 2), default=0)
    adjustment_total = Column(Numeric(12, 2), default=0)
    shipping_total = Column(Numeric(12, 2), default=0)
    total = Column(Numeric(12, 2), default=0)
    client_id = Column(Integer, ForeignKey("client.id"), nullable=True, index=True)
    payment_method_id = Column(Integer, ForeignKey("payment_method.id"), nullable=False)
    payment_kind = Column(String(20), nullable=False)
    installments = Column(Integer, default=1)
    per_installment_amount = Column(Numeric(12, 2), nullable=True)
    installment_plan = Column(JSON, default=list)
    card_last4 = Column(String(4), nullable=True)
    delivery = Column(JSON, nullable=False)
    status = Column(String(20), default="pendente", index=True)
    idempotency_key = Column(String(64), unique=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
