import re
from decimal import Decimal, InvalidOperation
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

PaymentKind = Literal["cartao_credito", "cartao_debito", "pix", "boleto"]
CREDIT_CARD = "cartao_credito"
CARD_KINDS = ("cartao_credito", "cartao_debito")


def only_digits(value: Optional[str]) -> str:
    return re.sub(r"\D", "", value or "")


# ====== Carrito ======
class CartCandidate(BaseModel):
    product_id: str = Field(..., min_length=1)
    name: str
    unit_price: Decimal = Field(..., ge=0)
    image_ref: str = ""
    available_stock: int = Field(..., ge=0)

    @field_validator("unit_price", mode="before")
    @classmethod
    def _to_decimal(cls, v):
        try:
            return Decimal(str(v))
        except (InvalidOperation, TypeError) as exc:
            # ValueError para que pydantic lo reporte como ValidationError
            raise ValueError(f"invalid price {v!r}") from exc


class CartLine(CartCandidate):
    quantity: int = Field(..., ge=1)


class QuantityIn(BaseModel):
    quantity: int


class CartOpenIn(BaseModel):
    open: bool


# ====== Formas de pago (unión etiquetada por kind) ======
class CardDetails(BaseModel):
    kind: Literal["cartao_credito", "cartao_debito"]
    brand: str = Field(..., min_length=1)
    processing_fee_percent: Decimal = Decimal("0")


class PixDetails(BaseModel):
    kind: Literal["pix"]
    pix_key: str = Field(..., min_length=1)
    bank: str = ""


class BoletoDetails(BaseModel):
    kind: Literal["boleto"]
    issuing_bank: str = Field(..., min_length=1)
    due_days: int = Field(default=7, ge=0)
    issuance_fee: Decimal = Field(default=Decimal("0"), ge=0)


PaymentDetails = Annotated[
    Union[CardDetails, PixDetails, BoletoDetails], Field(discriminator="kind")
]


class PaymentMethodIn(BaseModel):
    details: PaymentDetails
    installment_options: List[int] = Field(default_factory=lambda: [1])
    adjustment_percent: Decimal = Decimal("0")
    active: bool = True

    @field_validator("installment_options")
    @classmethod
    def _ordered_set(cls, v: List[int]) -> List[int]:
        if any(n <= 0 for n in v):
            raise ValueError("installment options must be positive")
        return sorted(set(v))

    @property
    def kind(self) -> str:
        return self.details.kind


class PaymentMethodOut(BaseModel):
    """Snapshot de solo lectura que consume la calculadora."""

    id: int
    kind: PaymentKind
    details: PaymentDetails
    installment_options: List[int] = Field(default_factory=list)
    adjustment_percent: Decimal = Decimal("0")
    active: bool = True


# ====== Totales ======
class InstallmentOption(BaseModel):
    count: int
    amount: Decimal


class OrderTotals(BaseModel):
    subtotal: Decimal
    shipping_fee: Decimal
    adjustment_amount: Decimal
    grand_total: Decimal
    installment_count: Optional[int] = None
    per_installment_amount: Optional[Decimal] = None
    installment_plan: List[InstallmentOption] = Field(default_factory=list)


class QuoteIn(BaseModel):
    payment_method_id: Optional[int] = None
    installments: Optional[int] = None


# ====== Checkout ======
# Todo con default "" para poder listar lo que falta en lugar de responder 422.
class CustomerData(BaseModel):
    name: str = ""
    cpf: str = ""
    email: str = ""
    phone: str = ""


class DeliveryAddress(BaseModel):
    cep: str = ""
    street: str = ""
    number: str = ""
    complement: str = ""
    neighborhood: str = ""
    city: str = ""
    state: str = ""


class CardData(BaseModel):
    number: str = ""
    holder_name: str = ""
    expiry: str = ""
    cvv: str = ""


class CheckoutForm(BaseModel):
    customer: CustomerData = Field(default_factory=CustomerData)
    address: DeliveryAddress = Field(default_factory=DeliveryAddress)
    payment_method_id: Optional[int] = None
    installments: int = 1
    card: Optional[CardData] = None


class OrderSnapshot(BaseModel):
    customer: CustomerData
    address: DeliveryAddress
    lines: List[CartLine]
    totals: OrderTotals
    payment_method_id: int
    payment_kind: PaymentKind
    installments: int = 1
    card_last4: Optional[str] = None


class OrderReceipt(BaseModel):
    sale_id: int
    status: str
    idempotency_key: str
    totals: OrderTotals
    replay: bool = False


class PostalAddress(BaseModel):
    cep: str
    street: str = ""
    neighborhood: str = ""
    city: str = ""
    state: str = ""


# ====== Catálogo / back office ======
class SupplierIn(BaseModel):
    name: str = Field(..., min_length=1)
    email: Optional[str] = None
    phones: List[str] = Field(default_factory=list)
    tax_id: Optional[str] = None
    person_type: Literal["fisica", "juridica"] = "juridica"
    address: Optional[DeliveryAddress] = None


class ProductIn(BaseModel):
    short_description: str = Field(..., min_length=1)
    supplier_code: Optional[str] = None
    company_code: Optional[str] = None
    supplier_description: Optional[str] = None
    detailed_description: Optional[str] = None
    weight_kg: Decimal = Field(default=Decimal("0"), ge=0)
    height_m: Decimal = Field(default=Decimal("0"), ge=0)
    width_m: Decimal = Field(default=Decimal("0"), ge=0)
    length_m: Decimal = Field(default=Decimal("0"), ge=0)
    storage_guidance: Optional[str] = None
    last_purchase_price: Decimal = Field(default=Decimal("0"), ge=0)
    last_sale_price: Decimal = Field(..., ge=0)
    stock_qty: int = Field(default=0, ge=0)
    sold_qty_year: int = Field(default=0, ge=0)
    images: List[str] = Field(default_factory=list)
    supplier_id: Optional[int] = None


class SaleStatusIn(BaseModel):
    status: Literal["pendente", "confirmada", "enviada", "entregue", "cancelada"]


# ====== Clientes ======
class ClientPaymentInfo(BaseModel):
    bank: str = ""
    branch: str = ""
    account: str = ""
    preferred_method: str = ""


class ClientIn(BaseModel):
    name: str = Field(..., min_length=1)  # nombre o razón social
    tax_id: str  # CPF / CNPJ, se guarda solo con dígitos
    person_type: Literal["fisica", "juridica"] = "fisica"
    emails: List[str] = Field(default_factory=list)
    phones: List[str] = Field(default_factory=list)
    mailing_address: Optional[DeliveryAddress] = None
    delivery_address: Optional[DeliveryAddress] = None
    receiving_hours: str = ""
    delivery_notes: str = ""
    payment_info: Optional[ClientPaymentInfo] = None

    @field_validator("tax_id")
    @classmethod
    def _tax_id_digits(cls, v: str) -> str:
        digits = only_digits(v)
        if len(digits) not in (11, 14):
            raise ValueError("tax_id must have 11 (CPF) or 14 (CNPJ) digits")
        return digits

    @field_validator("emails", "phones")
    @classmethod
    def _drop_blank(cls, v: List[str]) -> List[str]:
        return [x.strip() for x in v if x.strip()]
