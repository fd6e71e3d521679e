"""
Payment gateway adapters for disbursing commissions to resellers.

The gateway is chosen once, explicitly, by build_payment_gateway() and injected
into the approval workflow. A missing processor credential never silently
downgrades a live deployment to mock payouts.
"""
import logging
import secrets
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from app.config.database import Collections
from app.config.settings import settings as app_settings
from app.database.db_operations import db_ops
from app.utils.errors import GatewayError, ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class DisbursementResult:
    success: bool
    transaction_id: str
    status: str
    amount: float
    mode: str

    def to_dict(self) -> Dict:
        return {
            "success": self.success,
            "transactionId": self.transaction_id,
            "status": self.status,
            "amount": self.amount,
            "mode": self.mode,
        }


class PaymentGateway:
    """Contract every payout processor adapter implements."""

    mode = "abstract"
    is_live = False

    async def disburse(self, reseller_id: str, amount: float, reference_id: str,
                       description: str) -> DisbursementResult:
        raise NotImplementedError


class MockPaymentGateway(PaymentGateway):
    """Reports every payout as completed. No money moves."""

    mode = "mock"
    is_live = False

    async def disburse(self, reseller_id: str, amount: float, reference_id: str,
                       description: str) -> DisbursementResult:
        logger.warning(
            "MOCK payout (no funds moved): %.2f to reseller %s ref=%s", amount, reseller_id, reference_id
        )
        return DisbursementResult(
            success=True,
            transaction_id=f"mock_txn_{int(time.time() * 1000)}_{secrets.token_hex(4)}",
            status="completed",
            amount=amount,
            mode=self.mode,
        )


class BeamWalletGateway(PaymentGateway):
    """Live commission transfers through the Beam Wallet API."""

    mode = "live"
    is_live = True

    def __init__(self, api_url: str, api_key: str, timeout: float = 10.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        if not api_key:
            raise ConfigurationError("Live payment gateway requires BEAM_WALLET_API_KEY")
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    async def disburse(self, reseller_id: str, amount: float, reference_id: str,
                       description: str) -> DisbursementResult:
        payload = {
            "recipientId": reseller_id,
            "amount": amount,
            "currency": app_settings.DEFAULT_CURRENCY,
            "reference": reference_id,
            "description": description,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            # Retries reuse the reference so the processor pays at most once
            "Idempotency-Key": reference_id,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(f"{self.api_url}/transfers/commission", json=payload, headers=headers)
        except httpx.TimeoutException as e:
            raise GatewayError(f"Payout request timed out: {e}", retryable=True, outcome_unknown=True)
        except httpx.TransportError as e:
            raise GatewayError(f"Payout request failed: {e}", retryable=True)

        if resp.status_code >= 500:
            raise GatewayError(f"Payout processor error {resp.status_code}", retryable=True)
        if resp.status_code >= 400:
            raise GatewayError(f"Payout rejected by processor ({resp.status_code}): {resp.text[:200]}")

        try:
            data = resp.json()
        except ValueError:
            raise GatewayError("Payout processor returned an unreadable response", outcome_unknown=True)

        transaction_id = data.get("transactionId") or data.get("id")
        if not data.get("success", True) or not transaction_id:
            raise GatewayError(data.get("error") or data.get("message") or "Payout declined by processor")

        return DisbursementResult(
            success=True,
            transaction_id=str(transaction_id),
            status=data.get("status", "completed"),
            amount=float(data.get("amount", amount)),
            mode=self.mode,
        )


def build_payment_gateway(settings=app_settings) -> PaymentGateway:
    """Select the payout gateway from explicit configuration."""
    mode = (settings.PAYMENT_GATEWAY_MODE or "").strip().lower()

    if mode == "live":
        return BeamWalletGateway(
            api_url=settings.BEAM_WALLET_API_URL,
            api_key=settings.BEAM_WALLET_API_KEY,
            timeout=settings.GATEWAY_TIMEOUT_SECONDS,
        )

    if mode == "mock":
        if settings.APP_ENV.lower() == "production" and not settings.ALLOW_MOCK_PAYOUTS:
            raise ConfigurationError(
                "Mock payouts are disabled in production; set PAYMENT_GATEWAY_MODE=live "
                "or ALLOW_MOCK_PAYOUTS=true"
            )
        logger.warning("Payment gateway running in MOCK mode: payouts are simulated")
        return MockPaymentGateway()

    raise ConfigurationError(f"Unknown PAYMENT_GATEWAY_MODE '{settings.PAYMENT_GATEWAY_MODE}'")


# ─── Retry policy ─────────────────────────────────────────────────────────────

@dataclass
class RetryPolicy:
    max_attempts: int = 3
    backoff_seconds: float = 1.0
    max_backoff_seconds: float = 30.0

    @classmethod
    def from_settings(cls, settings=app_settings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.PAYOUT_MAX_ATTEMPTS,
            backoff_seconds=settings.PAYOUT_BACKOFF_SECONDS,
            max_backoff_seconds=settings.PAYOUT_BACKOFF_MAX_SECONDS,
        )


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, GatewayError) and exc.retryable


async def disburse_with_retry(gateway: PaymentGateway, payment: Dict,
                              policy: Optional[RetryPolicy] = None) -> DisbursementResult:
    """
    Disburse a payment's commission with bounded, exponentially backed-off
    retries. Every attempt is recorded on the payment document. The last
    GatewayError is re-raised once attempts are exhausted.
    """
    policy = policy or RetryPolicy.from_settings()
    payment_id = payment["paymentId"]
    # Once any attempt may have moved funds, the final outcome stays unknown
    outcome_unknown = False

    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(max(1, policy.max_attempts)),
        wait=wait_exponential(multiplier=policy.backoff_seconds, max=policy.max_backoff_seconds),
        retry=retry_if_exception(_is_retryable),
        reraise=True,
    ):
        with attempt:
            try:
                result = await gateway.disburse(
                    payment["resellerId"],
                    payment["commissionAmount"],
                    payment_id,
                    f"Commission for {payment.get('productName') or payment.get('productId')}",
                )
            except GatewayError as e:
                outcome_unknown = outcome_unknown or e.outcome_unknown
                e.outcome_unknown = outcome_unknown
                await _record_attempt(payment_id, error=e.message)
                logger.warning(
                    "Payout attempt %d for %s failed: %s", attempt.retry_state.attempt_number, payment_id, e.message
                )
                raise
            await _record_attempt(payment_id)
            return result


async def _record_attempt(payment_id: str, error: Optional[str] = None):
    await db_ops.update_one_where(
        Collections.PAYMENTS,
        {"paymentId": payment_id},
        {
            "$inc": {"disbursementAttempts": 1},
            "$set": {"lastDisbursementError": error, "lastDisbursementAt": datetime.utcnow()},
        },
    )
