from fastapi.responses import JSONResponse

from storefront.core.errors import (
    CheckoutInProgress,
    CheckoutValidationError,
    Conflict,
    InvalidInstallments,
    InvalidPostalCode,
    NotFound,
    PostalCodeNotFound,
    PostalLookupError,
    SubmissionFailure,
    SubmissionTimeout,
)


async def _not_found(request, exc: NotFound):
    return JSONResponse(status_code=404, content={"detail": f"not_found: {exc}"})


async def _validation(request, exc: CheckoutValidationError):
    return JSONResponse(status_code=422, content={"detail": {"error": exc.message, "fields": exc.fields}})


async def _conflict(request, exc: Conflict):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


async def _installments(request, exc: InvalidInstallments):
    return JSONResponse(status_code=422, content={"detail": f"invalid_installments: {exc}"})


async def _in_progress(request, exc: CheckoutInProgress):
    return JSONResponse(status_code=409, content={"detail": "checkout_in_progress"})


async def _submission(request, exc: SubmissionFailure):
    status = 504 if isinstance(exc, SubmissionTimeout) else 502
    return JSONResponse(
        status_code=status,
        content={"detail": exc.message, "retriable": exc.retriable, "idempotency_key": exc.idempotency_key},
    )


async def _postal(request, exc: PostalLookupError):
    if isinstance(exc, InvalidPostalCode):
        return JSONResponse(status_code=422, content={"detail": f"invalid_cep: {exc}"})
    if isinstance(exc, PostalCodeNotFound):
        return JSONResponse(status_code=404, content={"detail": "cep_not_found"})
    return JSONResponse(status_code=502, content={"detail": "postal_lookup_failed"})


def install_error_handlers(app):
    app.add_exception_handler(NotFound, _not_found)
    app.add_exception_handler(CheckoutValidationError, _validation)
    app.add_exception_handler(Conflict, _conflict)
    app.add_exception_handler(InvalidInstallments, _installments)
    app.add_exception_handler(CheckoutInProgress, _in_progress)
    app.add_exception_handler(SubmissionFailure, _submission)
    app.add_exception_handler(PostalLookupError, _postal)
