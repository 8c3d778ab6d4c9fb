"""CommandError → HTTP mapping shared by the routers."""

from fastapi import HTTPException

from ..domain.domain_type import CommandErrorKind
from ..domain.errors import CommandError
from .contracts import CommandErrorResponse

STATUS_BY_KIND: dict[CommandErrorKind, int] = {
    CommandErrorKind.TARGET_NOT_FOUND: 404,
    CommandErrorKind.RATE_LIMITED: 429,
    CommandErrorKind.PROVIDER_UNAVAILABLE: 503,
    CommandErrorKind.REQUEST_FAILED: 502,
    CommandErrorKind.MALFORMED_RESPONSE: 502,
    CommandErrorKind.TIMEOUT: 504,
    CommandErrorKind.MISSING_CREDENTIALS: 424,
    CommandErrorKind.VALIDATION_ERROR: 422,
    CommandErrorKind.DOMAIN_ERROR: 409,
}


def to_http_exception(exc: CommandError) -> HTTPException:
    """Status from the error kind; detail carries the kind and the user-facing message."""
    detail = CommandErrorResponse(kind=exc.kind.value, message=exc.user_message, provider=exc.provider)
    return HTTPException(status_code=STATUS_BY_KIND[exc.kind], detail=detail.model_dump())
