from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = Field(default="Storefront", alias="APP_NAME")
    app_env: str = Field(default="dev", alias="APP_ENV")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    database_url: str = Field(default="sqlite:///./storefront.db", alias="DATABASE_URL")
    # Almacenamiento local clave-valor (carrito)
    storage_file: str = Field(default="data/storefront_storage.json", alias="STORAGE_FILE")
    cart_storage_key: str = Field(default="cart", alias="CART_STORAGE_KEY")
    audit_file: str = Field(default="data/checkout_audit.jsonl", alias="AUDIT_FILE")
    currency: str = Field(default="BRL", alias="CURRENCY")
    shipping_fee: float = Field(default=15.90, alias="SHIPPING_FEE")
    order_submit_timeout: float = Field(default=15.0, alias="ORDER_SUBMIT_TIMEOUT")
    idempotency_ttl: int = Field(default=3600, alias="IDEMPOTENCY_TTL")
    postal_lookup_url: str = Field(
        default="https://viacep.com.br/ws/{cep}/json/", alias="POSTAL_LOOKUP_URL"
    )
    postal_lookup_timeout: float = Field(default=5.0, alias="POSTAL_LOOKUP_TIMEOUT")
    low_stock_threshold: int = Field(default=10, alias="LOW_STOCK_THRESHOLD")

    class Config:
        env_file = ".env"
        populate_by_name = True
