"""Payment adapter tests using ``httpx.MockTransport`` in place of the providers."""

from __future__ import annotations

import json

import httpx
import pytest

from src.config import Settings
from src.domain.enums import PaymentProvider
from src.domain.errors import ConfigurationError
from src.services.payments import (
    AUTHORIZE_PRODUCTION_URL,
    AUTHORIZE_SANDBOX_URL,
    STRIPE_API_URL,
    AuthorizeNetAdapter,
    PaymentGateway,
    StripeAdapter,
    build_payment_gateway,
)


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


STRIPE_CONFIG = Settings(stripe_secret_key="sk_test_123")
AUTHORIZE_CONFIG = Settings(
    authorize_api_login_id="login", authorize_transaction_key="txn-key"
)


class TestStripeAdapter:
    async def test_successful_charge(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["form"] = dict(httpx.QueryParams(request.content.decode()))
            return httpx.Response(200, json={"id": "pi_123", "status": "succeeded"})

        async with mock_client(handler) as client:
            result = await StripeAdapter(STRIPE_CONFIG, client).authorize(12550, "pm_card_visa")

        assert result.success
        assert result.transaction_id == "pi_123"
        assert seen["url"] == STRIPE_API_URL
        assert seen["form"]["amount"] == "12550"
        assert seen["form"]["payment_method"] == "pm_card_visa"
        assert seen["form"]["confirm"] == "true"

    async def test_card_declined(self):
        def handler(request):
            return httpx.Response(
                402,
                json={"error": {"message": "Your card was declined.", "code": "card_declined"}},
            )

        async with mock_client(handler) as client:
            result = await StripeAdapter(STRIPE_CONFIG, client).authorize(5000, "pm_bad")

        assert not result.success
        assert result.error == "Your card was declined."

    async def test_requires_action_is_not_success(self):
        def handler(request):
            return httpx.Response(200, json={"id": "pi_9", "status": "requires_action"})

        async with mock_client(handler) as client:
            result = await StripeAdapter(STRIPE_CONFIG, client).authorize(5000, "pm_3ds")

        assert not result.success
        assert "requires_action" in result.error

    async def test_below_minimum_is_declined_locally(self):
        def handler(request):
            raise AssertionError("no request expected")

        async with mock_client(handler) as client:
            result = await StripeAdapter(STRIPE_CONFIG, client).authorize(49, "pm_card_visa")
        assert not result.success

    async def test_missing_key_raises_at_call_time(self):
        adapter = StripeAdapter(Settings(stripe_secret_key=None))
        with pytest.raises(ConfigurationError) as exc_info:
            await adapter.authorize(5000, "pm_card_visa")
        assert exc_info.value.code == "MISSING_CONFIG"


class TestAuthorizeNetAdapter:
    async def test_approved(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            body = {
                "transactionResponse": {"responseCode": "1", "transId": "60123"},
                "messages": {"resultCode": "Ok", "message": [{"code": "I00001", "text": "Successful."}]},
            }
            # The live endpoint prefixes its JSON with a byte-order mark.
            return httpx.Response(200, content=b"\xef\xbb\xbf" + json.dumps(body).encode())

        async with mock_client(handler) as client:
            result = await AuthorizeNetAdapter(AUTHORIZE_CONFIG, client).authorize(29400, "opaque-token")

        assert result.success
        assert result.transaction_id == "60123"
        assert seen["url"] == AUTHORIZE_SANDBOX_URL
        txn = seen["body"]["createTransactionRequest"]["transactionRequest"]
        assert txn["transactionType"] == "authCaptureTransaction"
        assert txn["amount"] == "294.00"
        assert txn["payment"]["opaqueData"]["dataValue"] == "opaque-token"

    async def test_declined(self):
        def handler(request):
            return httpx.Response(
                200,
                json={
                    "transactionResponse": {
                        "responseCode": "2",
                        "transId": "0",
                        "errors": [{"errorCode": "2", "errorText": "This transaction has been declined."}],
                    },
                    "messages": {"resultCode": "Error", "message": []},
                },
            )

        async with mock_client(handler) as client:
            result = await AuthorizeNetAdapter(AUTHORIZE_CONFIG, client).authorize(1000, "tok")

        assert not result.success
        assert result.error == "This transaction has been declined."

    async def test_production_endpoint(self):
        adapter = AuthorizeNetAdapter(
            Settings(authorize_env="production", authorize_api_login_id="a", authorize_transaction_key="b")
        )
        assert adapter.endpoint == AUTHORIZE_PRODUCTION_URL

    async def test_missing_credentials(self):
        adapter = AuthorizeNetAdapter(Settings(authorize_api_login_id=None, authorize_transaction_key=None))
        with pytest.raises(ConfigurationError):
            await adapter.authorize(1000, "tok")


class TestPaymentGateway:
    def test_select_default(self):
        gateway = build_payment_gateway(STRIPE_CONFIG)
        assert isinstance(gateway.select(), StripeAdapter)

    def test_select_explicit(self):
        gateway = build_payment_gateway(STRIPE_CONFIG)
        assert isinstance(gateway.select(PaymentProvider.AUTHORIZE_NET), AuthorizeNetAdapter)

    def test_unknown_default_provider(self):
        gateway = PaymentGateway({}, default_provider="paypal")
        with pytest.raises(ConfigurationError):
            gateway.select()

    def test_provider_not_registered(self):
        gateway = PaymentGateway({PaymentProvider.STRIPE: StripeAdapter(STRIPE_CONFIG)})
        with pytest.raises(ConfigurationError):
            gateway.select(PaymentProvider.AUTHORIZE_NET)
