"""
Payment gateway adapters  (Strategy Pattern)
============================================

Card details never reach this service: the browser tokenises them with the
provider's client library and posts only the token.  Each adapter submits
``amount_cents`` + token for an immediate charge and reports a
``PaymentResult``.

* ``StripeAdapter``        -- PaymentIntents API, confirmed server-side
* ``AuthorizeNetAdapter``  -- ``authCaptureTransaction`` with Accept.js opaque data

Credentials are read when ``authorize`` is called, so a missing key surfaces as
``ConfigurationError`` (``MISSING_CONFIG``) on the request that needs it rather
than at startup.  ``PaymentGateway`` picks the adapter for a provider once, at
the call boundary.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

import httpx

from src.config import Settings, settings as app_settings
from src.domain.enums import PaymentProvider
from src.domain.errors import ConfigurationError

logger = logging.getLogger(__name__)

STRIPE_API_URL = "https://api.stripe.com/v1/payment_intents"
STRIPE_MINIMUM_CENTS = 50

AUTHORIZE_SANDBOX_URL = "https://apitest.authorize.net/xml/v1/request.api"
AUTHORIZE_PRODUCTION_URL = "https://api2.authorize.net/xml/v1/request.api"
AUTHORIZE_DATA_DESCRIPTOR = "COMMON.ACCEPT.INAPP.PAYMENT"


@dataclass(frozen=True)
class PaymentResult:
    success: bool
    transaction_id: Optional[str] = None
    error: Optional[str] = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)


class PaymentAdapter(ABC):
    provider: PaymentProvider

    def __init__(
        self,
        config: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or app_settings
        self._client = client

    @abstractmethod
    async def authorize(self, amount_cents: int, token: str) -> PaymentResult: ...

    async def _post(self, url: str, **kwargs: Any) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(url, **kwargs)
        async with httpx.AsyncClient(
            timeout=self.config.payment_timeout_seconds
        ) as client:
            return await client.post(url, **kwargs)


class StripeAdapter(PaymentAdapter):
    provider = PaymentProvider.STRIPE

    def _secret_key(self) -> str:
        key = self.config.stripe_secret_key
        if not key:
            raise ConfigurationError(
                "Stripe is not configured: set STRIPE_SECRET_KEY"
            )
        return key

    async def authorize(self, amount_cents: int, token: str) -> PaymentResult:
        secret_key = self._secret_key()
        if amount_cents < STRIPE_MINIMUM_CENTS:
            return PaymentResult(
                success=False, error="Amount must be at least $0.50 (50 cents)"
            )

        response = await self._post(
            STRIPE_API_URL,
            auth=(secret_key, ""),
            data={
                "amount": str(amount_cents),
                "currency": self.config.stripe_currency,
                "payment_method": token,
                "confirm": "true",
                "capture_method": "automatic",
                "automatic_payment_methods[enabled]": "true",
                "automatic_payment_methods[allow_redirects]": "never",
            },
        )
        body = response.json()

        if response.status_code >= 400 or "error" in body:
            error = body.get("error") or {}
            message = error.get("message") or "Payment failed"
            logger.warning(
                "Stripe declined charge: status=%s code=%s",
                response.status_code,
                error.get("code") or error.get("decline_code"),
            )
            return PaymentResult(success=False, error=message, raw=body)

        status = body.get("status")
        if status != "succeeded":
            logger.warning("Stripe intent %s ended in status %s", body.get("id"), status)
            return PaymentResult(
                success=False,
                transaction_id=body.get("id"),
                error=f"Payment was not completed (status: {status})",
                raw=body,
            )

        return PaymentResult(success=True, transaction_id=body.get("id"), raw=body)


class AuthorizeNetAdapter(PaymentAdapter):
    provider = PaymentProvider.AUTHORIZE_NET

    @property
    def endpoint(self) -> str:
        if self.config.authorize_env.lower() == "production":
            return AUTHORIZE_PRODUCTION_URL
        return AUTHORIZE_SANDBOX_URL

    def _credentials(self) -> tuple[str, str]:
        login_id = self.config.authorize_api_login_id
        transaction_key = self.config.authorize_transaction_key
        missing = [
            name
            for name, value in (
                ("AUTHORIZE_API_LOGIN_ID", login_id),
                ("AUTHORIZE_TRANSACTION_KEY", transaction_key),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"Authorize.Net is not configured: set {', '.join(missing)}"
            )
        return login_id, transaction_key  # type: ignore[return-value]

    async def authorize(self, amount_cents: int, token: str) -> PaymentResult:
        login_id, transaction_key = self._credentials()
        payload = {
            "createTransactionRequest": {
                "merchantAuthentication": {
                    "name": login_id,
                    "transactionKey": transaction_key,
                },
                "transactionRequest": {
                    "transactionType": "authCaptureTransaction",
                    "amount": f"{amount_cents / 100:.2f}",
                    "payment": {
                        "opaqueData": {
                            "dataDescriptor": AUTHORIZE_DATA_DESCRIPTOR,
                            "dataValue": token,
                        }
                    },
                },
            }
        }
        logger.debug("Authorize.Net charge: endpoint=%s cents=%d", self.endpoint, amount_cents)
        response = await self._post(self.endpoint, json=payload)
        body = _decode_authorize_body(response)

        transaction = body.get("transactionResponse") or {}
        if transaction.get("responseCode") == "1":
            return PaymentResult(
                success=True, transaction_id=transaction.get("transId") or None, raw=body
            )

        errors = transaction.get("errors") or []
        messages = (body.get("messages") or {}).get("message") or []
        error = (
            (errors[0].get("errorText") if errors else None)
            or (messages[0].get("text") if messages else None)
            or "Payment failed"
        )
        logger.warning("Authorize.Net declined charge: %s", error)
        return PaymentResult(success=False, error=error, raw=body)


def _decode_authorize_body(response: httpx.Response) -> dict[str, Any]:
    # The JSON endpoint prefixes its body with a UTF-8 byte-order mark.
    text = response.content.decode("utf-8-sig")
    return json.loads(text) if text.strip() else {}


# ── Registry ──────────────────────────────────────────────────────────


class PaymentGateway:
    """Maps providers to adapters and selects one per booking."""

    def __init__(
        self,
        adapters: Mapping[PaymentProvider, PaymentAdapter],
        default_provider: PaymentProvider | str = PaymentProvider.STRIPE,
    ):
        self.adapters = dict(adapters)
        self.default_provider = default_provider

    def select(self, provider: Optional[PaymentProvider] = None) -> PaymentAdapter:
        chosen = provider or self.default_provider
        try:
            chosen = PaymentProvider(chosen)
        except ValueError:
            raise ConfigurationError(f"Unknown payment provider: {chosen}") from None
        adapter = self.adapters.get(chosen)
        if adapter is None:
            raise ConfigurationError(
                f"Payment provider {chosen.value} is not available"
            )
        return adapter


def build_payment_gateway(
    config: Optional[Settings] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> PaymentGateway:
    config = config or app_settings
    return PaymentGateway(
        {
            PaymentProvider.STRIPE: StripeAdapter(config, client),
            PaymentProvider.AUTHORIZE_NET: AuthorizeNetAdapter(config, client),
        },
        default_provider=config.default_payment_provider,
    )
