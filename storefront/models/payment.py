from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, Numeric, String

from ..db import Base


class PaymentMethod(Base):
    __tablename__ = "payment_method"
    id = Column(Integer, primary_key=True, index=True)
    kind = Column(String(20), nullable=False)  # cartao_credito | cartao_debito | pix | boleto
    details = Column(JSON, nullable=False, default=dict)
    installment_options = Column(JSON, nullable=False, default=list)
    # positivo = acréscimo, negativo = desconto
    adjustment_percent = Column(Numeric(6, 2), nullable=False, default=0)
    active = Column(Boolean, default=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
