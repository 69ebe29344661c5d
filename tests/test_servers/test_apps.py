"""
Test suite for the HTTP server.
Tests: 1) Generate/verify endpoints 2) Error mapping 3) Lookups 4) Health 5) Event hooks
"""
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from conftest import CLAIMANT, SIGNER_ADDRESS, TOKEN
from voucher_signer.engine.events import IssueVoucherEvent, VoucherIssuedEvent
from voucher_signer.servers import VoucherSignerServer


@pytest.fixture
def app(signer, memory_store):
    return VoucherSignerServer(signer, memory_store)


@pytest.fixture
def client(app):
    return TestClient(app)


def generate(client, expire_at, amount="1000000", claimant=CLAIMANT):
    return client.post(
        "/signatures/generate",
        json={"claimant": claimant, "token": TOKEN, "amount": amount, "expireAt": expire_at},
    )


def test_generate_and_verify(client, future_expiry):
    response = generate(client, future_expiry)
    assert response.status_code == 201

    voucher = response.json()
    assert voucher["claimant"] == CLAIMANT
    assert voucher["signer"] == SIGNER_ADDRESS
    assert voucher["amount"] == "1000000"
    assert isinstance(voucher["nonce"], str)
    assert voucher["expireAt"] == future_expiry
    assert voucher["messageHash"].startswith("0x") and len(voucher["messageHash"]) == 66

    body = {
        "claimant": CLAIMANT,
        "token": TOKEN,
        "amount": 1000000,
        "nonce": voucher["nonce"],
        "expireAt": future_expiry,
        "signature": voucher["signature"],
    }
    verified = client.post("/signatures/verify", json=body)
    assert verified.status_code == 200
    assert verified.json() == {
        "isValid": True,
        "recoveredSigner": SIGNER_ADDRESS,
        "expectedSigner": SIGNER_ADDRESS,
        "messageHash": voucher["messageHash"],
        "isExpired": False,
    }

    body["amount"] = "1000001"
    tampered = client.post("/signatures/verify", json=body)
    assert tampered.status_code == 200
    assert tampered.json()["isValid"] is False


@pytest.mark.parametrize(
    "payload, field",
    [
        ({"amount": "0"}, "amount"),
        ({"amount": 1.5}, "amount"),
        ({"expireAt": 1}, "expireAt"),
        ({"claimant": "0x1234"}, "claimant"),
        ({"token": "not-an-address"}, "token"),
    ],
)
def test_generate_invalid_input(client, future_expiry, payload, field):
    body = {"claimant": CLAIMANT, "token": TOKEN, "amount": "5", "expireAt": future_expiry}
    body.update(payload)

    response = client.post("/signatures/generate", json=body)

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_input"
    assert response.json()["field"] == field


def test_generate_missing_field(client):
    response = client.post("/signatures/generate", json={"claimant": CLAIMANT, "token": TOKEN, "amount": 1})
    assert response.status_code == 400
    assert response.json()["field"] == "expireAt"


def test_verify_malformed_signature(client, future_expiry):
    body = {
        "claimant": CLAIMANT,
        "token": TOKEN,
        "amount": 1,
        "nonce": 1,
        "expireAt": future_expiry,
        "signature": "0xdeadbeef",
    }
    response = client.post("/signatures/verify", json=body)
    assert response.status_code == 400
    assert response.json()["field"] == "signature"


def test_unavailable_signer(unavailable_signer, memory_store, future_expiry):
    client = TestClient(VoucherSignerServer(unavailable_signer, memory_store))

    assert client.get("/health").status_code == 503
    assert client.get("/health").json()["status"] == "UNAVAILABLE"

    response = generate(client, future_expiry)
    assert response.status_code == 503
    assert response.json()["error"] == "signing_unavailable"
    assert memory_store.count_for_claimant(CLAIMANT) == 0

    assert client.get("/signatures/signer").status_code == 503


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "OK"}


def test_signer_info_without_chain(client):
    response = client.get("/signatures/signer")
    assert response.status_code == 200
    assert response.json() == {
        "signerAddress": SIGNER_ADDRESS,
        "contractAddress": None,
        "contractSigner": None,
        "signerMatchesContract": None,
    }


def test_signer_info_with_chain(signer, memory_store):
    reader = MagicMock()
    reader.contract_address = TOKEN
    reader.contract_signer_or_none = AsyncMock(return_value=SIGNER_ADDRESS)
    client = TestClient(VoucherSignerServer(signer, memory_store, contract_reader=reader))

    body = client.get("/signatures/signer").json()
    assert body["contractAddress"] == TOKEN
    assert body["signerMatchesContract"] is True


def test_claimant_history_and_lookup(signer, memory_store, future_expiry):
    reader = MagicMock()
    reader.nonce_used_or_none = AsyncMock(return_value=False)
    client = TestClient(VoucherSignerServer(signer, memory_store, contract_reader=reader))

    issued = [generate(client, future_expiry, amount=str(i)).json() for i in (1, 2, 3)]

    history = client.get(f"/signatures/claimants/{CLAIMANT.lower()}").json()
    assert history["claimant"] == CLAIMANT
    assert history["count"] == 3
    assert {v["nonce"] for v in history["vouchers"]} == {v["nonce"] for v in issued}

    lookup = client.get(f"/signatures/claimants/{CLAIMANT}/{issued[0]['nonce']}")
    assert lookup.status_code == 200
    assert lookup.json()["signature"] == issued[0]["signature"]
    assert lookup.json()["nonceUsedOnChain"] is False
    reader.nonce_used_or_none.assert_awaited_once_with(CLAIMANT, int(issued[0]["nonce"]))


def test_lookup_not_found(client):
    response = client.get(f"/signatures/claimants/{CLAIMANT}/12345")
    assert response.status_code == 404
    assert response.json()["error"] == "voucher_not_found"


def test_lookup_rejects_bad_input(client):
    assert client.get("/signatures/claimants/0x1234").json()["field"] == "claimant"
    assert client.get(f"/signatures/claimants/{CLAIMANT}/abc").json()["field"] == "nonce"


def test_hooks_see_events(app, client, future_expiry):
    seen = []

    @app.hook(IssueVoucherEvent)
    async def on_request(event, deps):
        seen.append(type(event).__name__)

    @app.hook(VoucherIssuedEvent)
    async def on_issued(event, deps):
        seen.append(event.voucher.claimant)

    assert generate(client, future_expiry).status_code == 201
    assert seen == ["IssueVoucherEvent", CLAIMANT]


def test_unknown_route_and_method_carry_error_kind(client):
    missing = client.get("/signatures/nope")
    assert missing.status_code == 404
    assert missing.json() == {"error": "not_found", "message": "Not Found"}

    wrong_method = client.get("/signatures/generate")
    assert wrong_method.status_code == 405
    assert wrong_method.json()["error"] == "method_not_allowed"


def test_unexpected_error_returns_internal_error(app, future_expiry):
    @app.hook(IssueVoucherEvent)
    async def broken(event, deps):
        raise RuntimeError("hook failed")

    client = TestClient(app, raise_server_exceptions=False)
    response = generate(client, future_expiry)

    assert response.status_code == 500
    assert response.json() == {"error": "internal_error", "message": "internal server error"}


def test_cors_preflight(client):
    response = client.options(
        "/signatures/generate",
        headers={
            "Origin": "https://claim.example.org",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "content-type",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
    assert "POST" in response.headers["access-control-allow-methods"]


def test_cors_restricted_origins(signer, memory_store):
    client = TestClient(
        VoucherSignerServer(signer, memory_store, cors_origins=["https://claim.example.org"])
    )

    allowed = client.get("/health", headers={"Origin": "https://claim.example.org"})
    assert allowed.headers["access-control-allow-origin"] == "https://claim.example.org"

    other = client.get("/health", headers={"Origin": "https://evil.example.com"})
    assert "access-control-allow-origin" not in other.headers
