import base64
import httpx
import pytest
import stripy

from stripy.backend import HTTPBackend
from stripy.codec import DecodeError
from stripy.error import (
    InternalServerError,
    NotFoundError,
    PaymentRequiredError,
    TransportError,
)
from stripy.form import Form
from urllib.parse import parse_qsl


pytestmark = pytest.mark.asyncio


KEY = "sk_test_BQokikJOvBiI2HlWgH4olfQ2"


def backend(handler, **kwargs) -> HTTPBackend:
    transport = httpx.MockTransport(handler)
    return HTTPBackend(client=httpx.AsyncClient(transport=transport), **kwargs)


async def test_get_query_and_auth():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={"id": "rp_1"})

    form = Form([("limit", "3"), ("expand[]", "a"), ("expand[]", "b")])
    result = await backend(handler).call("GET", "/recipients", KEY, form)
    assert result == {"id": "rp_1"}
    request = requests[0]
    assert request.method == "GET"
    assert request.url.host == "api.stripe.com"
    assert request.url.path == "/v1/recipients"
    assert request.url.params.get_list("expand[]") == ["a", "b"]
    assert request.url.params["limit"] == "3"
    credentials = base64.b64encode(f"{KEY}:".encode()).decode()
    assert request.headers["Authorization"] == f"Basic {credentials}"
    assert request.headers["User-Agent"] == f"stripy/{stripy.__version__}"
    assert "Stripe-Version" not in request.headers


async def test_post_form_body():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={"id": "rp_1"})

    form = Form([("name", "Jenny Rosen"), ("expand[]", "a"), ("expand[]", "b")])
    await backend(handler).call("POST", "/recipients", KEY, form)
    request = requests[0]
    assert request.method == "POST"
    assert request.headers["Content-Type"] == "application/x-www-form-urlencoded"
    assert parse_qsl(request.content.decode()) == [
        ("name", "Jenny Rosen"),
        ("expand[]", "a"),
        ("expand[]", "b"),
    ]
    assert not request.url.params


async def test_delete_without_form():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={"id": "rp_1", "deleted": True})

    result = await backend(handler).call("DELETE", "/recipients/rp_1", KEY)
    assert result["deleted"] is True
    assert requests[0].url.path == "/v1/recipients/rp_1"


async def test_api_version_and_url():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={})

    await backend(handler, url="http://localhost:12111/v1/", api_version="2014-05-19").call(
        "GET", "/events", KEY
    )
    request = requests[0]
    assert request.url.host == "localhost"
    assert request.url.path == "/v1/events"
    assert request.headers["Stripe-Version"] == "2014-05-19"


async def test_error_response():
    def handler(request):
        return httpx.Response(
            404,
            json={
                "error": {
                    "type": "invalid_request_error",
                    "message": "No such recipient: rp_missing",
                    "param": "id",
                }
            },
        )

    with pytest.raises(NotFoundError) as exc_info:
        await backend(handler).call("GET", "/recipients/rp_missing", KEY)
    error = exc_info.value
    assert error.status == 404
    assert error.type == "invalid_request_error"
    assert error.message == "No such recipient: rp_missing"
    assert error.param == "id"


async def test_card_error_response():
    def handler(request):
        return httpx.Response(
            402,
            json={
                "error": {
                    "type": "card_error",
                    "code": "incorrect_number",
                    "message": "Your card number is incorrect.",
                }
            },
        )

    with pytest.raises(PaymentRequiredError) as exc_info:
        await backend(handler).call("POST", "/recipients", KEY, Form(name="x"))
    assert exc_info.value.code == "incorrect_number"


async def test_error_response_not_json():
    def handler(request):
        return httpx.Response(500, text="<html>oops</html>")

    with pytest.raises(InternalServerError):
        await backend(handler).call("GET", "/events", KEY)


async def test_response_not_json():
    def handler(request):
        return httpx.Response(200, text="not json")

    with pytest.raises(DecodeError):
        await backend(handler).call("GET", "/events", KEY)


async def test_transport_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportError) as exc_info:
        await backend(handler).call("GET", "/events", KEY)
    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
    assert exc_info.value.status is None


async def test_supplied_client_not_closed():
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
    await HTTPBackend(client=client).aclose()
    assert not client.is_closed


async def test_owned_client_closed():
    b = HTTPBackend()
    await b.aclose()
    assert b.client.is_closed
