"""
Module to configure access to the API.

A client binds a secret key to the backend that performs requests, and exposes the
operations of each resource:

  async with Client("sk_test_...") as client:
      recipient = await client.recipients.get("rp_104bYJ2eZvKYlo2C")
      events = await client.events.list(EventListParams(type="transfer.*"))

Multiple clients, each with its own key and backend, can be used concurrently.
"""

from stripy.backend import Backend, HTTPBackend
from stripy.codec import JSONCodec
from stripy.event import Events
from stripy.form import Form
from stripy.recipient import Recipients
from typing import Any


class Client:
    """
    API client.

    Parameters:
    • key: secret key to authenticate requests
    • backend: backend to perform requests  [HTTPBackend()]

    Attributes:
    • recipients: operations of the /recipients resource
    • events: operations of the /events resource
    """

    def __init__(self, key: str, *, backend: Backend | None = None):
        if not key:
            raise ValueError("secret key is required")
        self.key = key
        self.backend = backend or HTTPBackend()
        self.recipients = Recipients(self)
        self.events = Events(self)

    def __repr__(self):
        return f"Client(backend={self.backend!r})"

    async def call(
        self, method: str, path: str, form: Form | None = None, python_type: Any = Any
    ) -> Any:
        """
        Perform a request with the client key, and return its response decoded into the
        specified type.

        Parameters:
        • method: HTTP method name, in upper case
        • path: path of the resource, relative to the API URL
        • form: form fields to send in the request, or None
        • python_type: type to decode the JSON response value into  [Any]
        """
        value = await self.backend.call(method, path, self.key, form)
        return JSONCodec.get(python_type).decode(value)

    async def aclose(self) -> None:
        """Release resources held by the client backend."""
        await self.backend.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.aclose()
