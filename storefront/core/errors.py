from typing import List, Optional


class StorefrontError(Exception):
    """Base de los errores de dominio; middleware/errors.py los traduce a respuestas HTTP."""


class StorageUnavailable(StorefrontError):
    """Lectura o escritura del almacenamiento local fallida (o payload corrupto)."""


class NotFound(StorefrontError):
    pass


class InvalidInstallments(StorefrontError):
    pass


class Conflict(StorefrontError):
    """Violación de unicidad o borrado con dependencias (409)."""


class CheckoutValidationError(StorefrontError):
    def __init__(self, fields: List[str], message: str = "checkout_incomplete"):
        super().__init__(message)
        self.fields = list(fields)
        self.message = message


class CheckoutInProgress(StorefrontError):
    pass


class SubmissionFailure(StorefrontError):
    """El alta del pedido falló; el carrito queda intacto y se puede reintentar."""

    retriable = True

    def __init__(self, message: str = "order_submission_failed", idempotency_key: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.idempotency_key = idempotency_key


class SubmissionTimeout(SubmissionFailure):
    pass


class PostalLookupError(StorefrontError):
    pass


class InvalidPostalCode(PostalLookupError):
    pass


class PostalCodeNotFound(PostalLookupError):
    pass
