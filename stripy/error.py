"""API error module."""

import enum
import http

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any


class ErrorType(enum.StrEnum):
    """Category of error reported by the API in the error object "type" member."""

    API = "api_error"
    AUTHENTICATION = "authentication_error"
    CARD = "card_error"
    INVALID_REQUEST = "invalid_request_error"
    RATE_LIMIT = "rate_limit_error"


class ErrorCode(enum.StrEnum):
    """Reason a card error occurred, reported in the error object "code" member."""

    INCORRECT_NUMBER = "incorrect_number"
    INVALID_NUMBER = "invalid_number"
    INVALID_EXPIRY_MONTH = "invalid_expiry_month"
    INVALID_EXPIRY_YEAR = "invalid_expiry_year"
    INVALID_CVC = "invalid_cvc"
    EXPIRED_CARD = "expired_card"
    INCORRECT_CVC = "incorrect_cvc"
    INCORRECT_ZIP = "incorrect_zip"
    CARD_DECLINED = "card_declined"
    MISSING = "missing"
    PROCESSING_ERROR = "processing_error"
    RATE_LIMIT = "rate_limit"


class Error(Exception):
    """
    Base class for API errors.

    Parameters and attributes:
    • message: human-readable message describing the error
    • type: category of error, as reported by the API
    • code: specific reason for the error, as reported by the API
    • param: name of the request parameter the error relates to
    • json: the decoded error object of the response, if any

    Class attributes:
    • status: HTTP status code (int), or None if no response was received
    • phrase: HTTP reason phrase
    """

    status: int | None = None
    phrase: str | None = None

    def __init__(
        self,
        message: str | None = None,
        *,
        type: str | None = None,
        code: str | None = None,
        param: str | None = None,
        json: Any = None,
    ):
        super().__init__(*((message,) if message is not None else ()))
        self.message = message
        self.type = type
        self.code = code
        self.param = param
        self.json = json

    def __str__(self):
        parts = [str(self.status) if self.status else None, self.message or self.phrase]
        if self.param:
            parts.append(f"(param: {self.param})")
        return " ".join(p for p in parts if p) or self.__class__.__name__

    @classmethod
    def from_json(cls, value: Any) -> "Error":
        """Return an error instance populated from a response error object."""
        error = value.get("error") if isinstance(value, Mapping) else None
        if not isinstance(error, Mapping):
            return cls(json=value)
        return cls(
            error.get("message"),
            type=error.get("type"),
            code=error.get("code"),
            param=error.get("param"),
            json=error,
        )


class ClientError(Error):
    """
    Base class for errors caused by the request.
    """


class ServerError(Error):
    """
    Base class for errors reported by the API server.
    """


class TransportError(Error):
    """
    Error raised if a request could not be sent or its response could not be received.
    """


class _Errors:
    """
    Encapsulates API error exception classes. Errors are dynamically generated from errors in
    the http.HTTPStatus enum.

    Errors can be accessed by HTTP status or name.
    Example: stripy.error.errors[402] == stripy.error.errors.PaymentRequiredError
    """

    def __init__(self):
        self._names = {}
        self._codes = {}
        for status in (s for s in http.HTTPStatus if 400 <= s.value <= 599):
            name = "".join(
                w.title() if w not in {"HTTP", "URI"} else w for w in status.name.split("_")
            )
            if not name.endswith("Error"):
                name += "Error"
            error = type(
                name,
                (ClientError if 400 <= status.value <= 499 else ServerError,),
                {
                    "__module__": __name__,
                    "status": status.value,
                    "phrase": status.phrase,
                    "__doc__": f"{status.description or status.phrase.capitalize()}.",
                },
            )
            self._names[name] = error
            self._codes[status.value] = error

    def get(self, code: int, default=None) -> type[Error]:
        """Return error for code."""
        return self._codes.get(code, default)

    def for_status(self, code: int) -> type[Error]:
        """Return error for code, falling back to the generic client or server error."""
        if error := self._codes.get(code):
            return error
        return ClientError if code < 500 else ServerError

    def __getitem__(self, code: int) -> type[Error]:
        return self._codes[code]

    def __getattr__(self, name: str) -> type[Error]:
        if error := self._names.get(name):
            return error
        raise AttributeError(name)

    def __iter__(self) -> Iterator[type[Error]]:
        return iter(self._codes.values())


errors = _Errors()


@contextmanager
def wrap_exception(
    *, catch: type[Exception] | tuple[type[Exception], ...], throw: type[Exception]
):
    """
    Return a context manager that raises the specified exception in place of a caught
    exception, chaining the caught exception as its cause.

    Parameters:
    • catch: exception class or tuple of classes to catch
    • throw: exception class to raise
    """
    try:
        yield
    except throw:
        raise
    except catch as e:
        message = str(e)
        raise (throw(message) if message else throw()) from e


# commonly used errors
BadRequestError: type[ClientError] = errors.BadRequestError
UnauthorizedError: type[ClientError] = errors.UnauthorizedError
PaymentRequiredError: type[ClientError] = errors.PaymentRequiredError
ForbiddenError: type[ClientError] = errors.ForbiddenError
NotFoundError: type[ClientError] = errors.NotFoundError
TooManyRequestsError: type[ClientError] = errors.TooManyRequestsError
InternalServerError: type[ServerError] = errors.InternalServerError
