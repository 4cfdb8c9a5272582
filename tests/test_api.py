"""
HTTP surface of the gateway, driven through the ASGI app.
"""

import json
import os
import sys

import httpx
import pytest
import pytest_asyncio

ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.append(ROOT_DIR)
sys.path.append(os.path.join(ROOT_DIR, "app"))

from adapters.naboopay import NaboopayAdapter  # noqa: E402
from adapters.sandbox import SandboxAdapter  # noqa: E402
from config import get_settings  # noqa: E402
from main import app, get_provider  # noqa: E402

ORDER_PAYLOAD = {
    "currency": "XOF",
    "items": [
        {"name": "Bissap", "unit_price": "500", "quantity": 2},
        {"name": "Fataya", "category": "Food", "unit_price": "250.00"},
    ],
}


@pytest.fixture
def provider(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"order_id": "naboo_api_1", "checkout_url": "https://checkout.naboopay.com/naboo_api_1"},
        )

    return NaboopayAdapter(
        settings.NABOOPAY_API_TOKEN,
        settings.NABOOPAY_WEBHOOK_SECRET,
        api_url=settings.NABOOPAY_API_URL,
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


@pytest_asyncio.fixture
async def client(order_store, settings, provider):
    app.state.order_store = order_store
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_provider] = lambda: provider
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://gateway") as ac:
        yield ac
    app.dependency_overrides.clear()


async def create_and_checkout(client) -> dict:
    created = await client.post("/orders", json=ORDER_PAYLOAD)
    assert created.status_code == 201
    order = created.json()
    resp = await client.post(f"/orders/{order['order_id']}/checkout")
    assert resp.status_code == 200
    return order


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.json() == {"status": "healthy", "service": "naboopay-gateway"}


@pytest.mark.asyncio
async def test_gateway_info(client):
    resp = await client.get("/gateway")
    data = resp.json()
    assert data["id"] == "naboopay"
    assert data["title"] == "Naboopay"
    assert data["enabled"] is True
    assert data["payment_methods"] == ["WAVE"]


@pytest.mark.asyncio
async def test_checkout_redirects_and_links_order(client):
    created = await client.post("/orders", json=ORDER_PAYLOAD)
    order_id = created.json()["order_id"]

    resp = await client.post(
        f"/orders/{order_id}/checkout", json={"payment_methods": ["ORANGE_MONEY"]}
    )

    assert resp.status_code == 200
    assert resp.json() == {
        "result": "success",
        "redirect": "https://checkout.naboopay.com/naboo_api_1",
        "notices": [],
    }
    order = (await client.get(f"/orders/{order_id}")).json()
    assert order["transaction_id"] == "naboo_api_1"


@pytest.mark.asyncio
async def test_checkout_rejects_unsupported_payment_method(client):
    created = await client.post("/orders", json=ORDER_PAYLOAD)
    order_id = created.json()["order_id"]

    resp = await client.post(f"/orders/{order_id}/checkout", json={"payment_methods": ["PAYPAL"]})

    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_checkout_provider_failure(client, settings):
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    failing = NaboopayAdapter(
        "token",
        settings.NABOOPAY_WEBHOOK_SECRET,
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    app.dependency_overrides[get_provider] = lambda: failing
    created = await client.post("/orders", json=ORDER_PAYLOAD)

    resp = await client.post(f"/orders/{created.json()['order_id']}/checkout")

    assert resp.status_code == 502
    assert resp.json()["result"] == "fail"
    assert resp.json()["notices"] == ["Payment error: Unable to reach the payment provider"]


@pytest.mark.asyncio
async def test_checkout_unknown_order(client):
    resp = await client.post("/orders/999/checkout")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_checkout_disabled_gateway(client, settings):
    settings.NABOOPAY_ENABLED = False
    created = await client.post("/orders", json=ORDER_PAYLOAD)

    resp = await client.post(f"/orders/{created.json()['order_id']}/checkout")

    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_webhook_paid(client, sign):
    order = await create_and_checkout(client)
    payload = json.dumps({"order_id": "naboo_api_1", "transaction_status": "paid"}).encode()

    resp = await client.post("/webhook", content=payload, headers={"x_signature": sign(payload)})

    assert resp.status_code == 200
    assert resp.text == "Webhook received"
    assert resp.headers["content-type"].startswith("text/plain")
    updated = (await client.get(f"/orders/{order['order_id']}")).json()
    assert updated["status"] == "processing"


@pytest.mark.asyncio
async def test_webhook_accepts_hyphenated_header(client, sign):
    await create_and_checkout(client)
    payload = json.dumps({"order_id": "naboo_api_1", "transaction_status": "cancel"}).encode()

    resp = await client.post("/webhook", content=payload, headers={"X-Signature": sign(payload)})

    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_webhook_invalid_signature(client, sign):
    order = await create_and_checkout(client)
    payload = json.dumps({"order_id": "naboo_api_1", "transaction_status": "paid"}).encode()

    resp = await client.post("/webhook", content=payload, headers={"x_signature": "deadbeef"})

    assert resp.status_code == 403
    assert resp.text == "Invalid signature"
    unchanged = (await client.get(f"/orders/{order['order_id']}")).json()
    assert unchanged["status"] == "pending"


@pytest.mark.asyncio
async def test_webhook_without_secret(client, sign):
    app.dependency_overrides[get_provider] = lambda: NaboopayAdapter("token", None)
    payload = json.dumps({"order_id": "naboo_api_1", "transaction_status": "paid"}).encode()

    resp = await client.post("/webhook", content=payload, headers={"x_signature": sign(payload)})

    assert resp.status_code == 500


@pytest.mark.asyncio
async def test_webhook_unknown_order(client, sign):
    payload = json.dumps({"order_id": "naboo_nope", "transaction_status": "paid"}).encode()

    resp = await client.post("/webhook", content=payload, headers={"x_signature": sign(payload)})

    assert resp.status_code == 404
    assert resp.text == "Order not found"


@pytest.mark.asyncio
async def test_sandbox_flow(client, settings, sign):
    settings.NABOOPAY_SANDBOX = True
    app.dependency_overrides[get_provider] = lambda: SandboxAdapter(
        settings.NABOOPAY_WEBHOOK_SECRET, checkout_base_url="http://gateway/sandbox/checkout"
    )
    created = await client.post("/orders", json=ORDER_PAYLOAD)
    order_id = created.json()["order_id"]

    redirect = (await client.post(f"/orders/{order_id}/checkout")).json()["redirect"]
    landing = await client.get(redirect)
    assert landing.status_code == 200
    transaction_id = landing.json()["transaction_id"]

    payload = json.dumps({"order_id": transaction_id, "transaction_status": "part_paid"}).encode()
    resp = await client.post("/webhook", content=payload, headers={"x_signature": sign(payload)})

    assert resp.status_code == 200
    order = (await client.get(f"/orders/{order_id}")).json()
    assert order["status"] == "on-hold"
    assert order["notes"][0]["note"] == "Payment partially paid via Naboopay."


@pytest.mark.asyncio
async def test_checkout_disabled_gateway_unknown_order(client, settings):
    settings.NABOOPAY_ENABLED = False

    resp = await client.post("/orders/999/checkout")

    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_checkout_of_paid_order_is_conflict(client, sign):
    order = await create_and_checkout(client)
    payload = json.dumps({"order_id": "naboo_api_1", "transaction_status": "paid"}).encode()
    await client.post("/webhook", content=payload, headers={"x_signature": sign(payload)})

    resp = await client.post(f"/orders/{order['order_id']}/checkout")

    assert resp.status_code == 409
    linked = (await client.get(f"/orders/{order['order_id']}")).json()
    assert linked["transaction_id"] == "naboo_api_1"
