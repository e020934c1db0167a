"""
Module to send requests to the API.

A backend performs a single request/response exchange with the API. Resource operations
supply the HTTP method, the path of the resource, the secret key to authenticate with and the
form fields of the request; the backend returns the decoded JSON value of the response.
"""

import httpx
import logging
import stripy

from stripy.codec import DecodeError
from stripy.error import Error, TransportError, errors, wrap_exception
from stripy.form import Form
from typing import Any


_logger = logging.getLogger(__name__)


DEFAULT_URL = "https://api.stripe.com/v1"
DEFAULT_TIMEOUT = 80.0


class Backend:
    """
    Base class for API backends.
    """

    async def call(self, method: str, path: str, key: str, form: Form | None = None) -> Any:
        """
        Perform a request and return the decoded JSON value of its response.

        Parameters:
        • method: HTTP method name, in upper case
        • path: path of the resource, relative to the API URL
        • key: secret key to authenticate the request
        • form: form fields to send in the request, or None

        Raises an Error if the API responds with an error status, TransportError if the
        request could not be performed, or DecodeError if the response is not valid JSON.
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release resources held by the backend."""


class HTTPBackend(Backend):
    """
    Backend that sends requests to the API over HTTP.

    Parameters:
    • url: base URL of the API  [https://api.stripe.com/v1]
    • timeout: request timeout, in seconds  [80]
    • api_version: API version to request, or None for the account default
    • client: HTTP client to send requests with, or None to create one

    The secret key is sent using HTTP basic authentication. Form fields are sent in the query
    string of GET and DELETE requests, and in the body of other requests.

    An HTTP client that is supplied is not closed by the backend.
    """

    def __init__(
        self,
        url: str = DEFAULT_URL,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        api_version: str | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.url = url.rstrip("/")
        self.timeout = timeout
        self.api_version = api_version
        self._owned = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "User-Agent": f"stripy/{stripy.__version__}",
        }
        if self.api_version:
            headers["Stripe-Version"] = self.api_version
        return headers

    async def call(self, method: str, path: str, key: str, form: Form | None = None) -> Any:
        method = method.upper()
        fields = list(form.items()) if form else []
        request = {
            "headers": self._headers(),
            "auth": httpx.BasicAuth(key, ""),
            "timeout": self.timeout,
        }
        if method in {"GET", "DELETE"}:
            request["params"] = fields
        else:
            request["data"] = _group(fields)
        _logger.debug("%s %s", method, path)
        with wrap_exception(catch=httpx.HTTPError, throw=TransportError):
            response = await self.client.request(method, f"{self.url}{path}", **request)
        _logger.debug("%s %s: %d", method, path, response.status_code)
        try:
            value = response.json()
        except ValueError as e:
            if response.status_code >= 400:
                raise errors.for_status(response.status_code)() from e
            raise DecodeError("response is not valid JSON") from e
        if response.status_code >= 400:
            raise _error(response.status_code, value)
        return value

    async def aclose(self) -> None:
        if self._owned:
            await self.client.aclose()


def _group(fields: list[tuple[str, str]]) -> dict[str, str | list[str]]:
    """Group form fields by name, for form-encoded request bodies."""
    result = {}
    for name, value in fields:
        if name in result:
            if not isinstance(result[name], list):
                result[name] = [result[name]]
            result[name].append(value)
        else:
            result[name] = value
    return result


def _error(status: int, value: Any) -> Error:
    error = errors.for_status(status).from_json(value)
    _logger.debug("error response: %s", error)
    return error
