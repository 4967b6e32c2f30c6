"""
Tests for the Stripe adapter.

Tests cover:
- Idempotency key generation
- Error translation for each Stripe exception type
- Successful transfers and refunds
- Helper functions (is_retryable_provider_error, backoff_delay)
"""

import uuid

import pytest
import stripe

from payments.adapters import (
    IdempotencyKeyGenerator,
    PayoutResult,
    RefundResult,
    backoff_delay,
    is_retryable_provider_error,
)
from payments.adapters.base import PayoutRequest
from payments.exceptions import (
    ProviderAuthenticationError,
    ProviderDeclinedError,
    ProviderInvalidAccountError,
    ProviderInvalidRequestError,
    ProviderRateLimitError,
    ProviderTimeoutError,
    ProviderUnavailableError,
)


# =============================================================================
# IdempotencyKeyGenerator Tests
# =============================================================================


class TestIdempotencyKeyGenerator:
    def test_generate_key_format(self):
        entity_id = uuid.uuid4()

        key = IdempotencyKeyGenerator.generate("payout", entity_id)

        parts = key.split(":")
        assert parts[0] == "payout"
        assert parts[1] == str(entity_id)
        assert parts[2] == "1"
        assert len(parts[3]) == 8

    def test_same_inputs_produce_same_key(self):
        entity_id = uuid.uuid4()

        assert IdempotencyKeyGenerator.generate(
            "payout", entity_id
        ) == IdempotencyKeyGenerator.generate("payout", entity_id)

    def test_different_operations_produce_different_keys(self):
        entity_id = uuid.uuid4()

        assert IdempotencyKeyGenerator.generate(
            "payout", entity_id
        ) != IdempotencyKeyGenerator.generate("refund", entity_id)


# =============================================================================
# Retry Helper Tests
# =============================================================================


class TestIsRetryableProviderError:
    def test_retryable_errors(self):
        assert is_retryable_provider_error(ProviderRateLimitError("slow down"))
        assert is_retryable_provider_error(ProviderUnavailableError("down"))
        assert is_retryable_provider_error(ProviderTimeoutError("timeout"))

    def test_non_retryable_errors(self):
        assert not is_retryable_provider_error(ProviderDeclinedError("declined"))
        assert not is_retryable_provider_error(ProviderInvalidAccountError("bad account"))
        assert not is_retryable_provider_error(ProviderAuthenticationError("bad key"))

    def test_non_provider_errors(self):
        assert not is_retryable_provider_error(ValueError("nope"))


class TestBackoffDelay:
    def test_exponential_growth(self):
        assert backoff_delay(0, jitter=False) == 1.0
        assert backoff_delay(1, jitter=False) == 2.0
        assert backoff_delay(2, jitter=False) == 4.0

    def test_respects_max_delay(self):
        assert backoff_delay(20, base=1.0, max_delay=60.0, jitter=False) == 60.0

    def test_jitter_stays_within_quarter(self):
        for _ in range(20):
            delay = backoff_delay(2, base=1.0)
            assert 4.0 <= delay <= 5.0


# =============================================================================
# Transfer Tests
# =============================================================================


class TestSendPayout:
    def test_send_payout_success(self, adapter, payout_request, mock_stripe_transfer, mock_transfer):
        mock_stripe_transfer.create.return_value = mock_transfer(id="tr_abc")

        result = adapter.send_payout(payout_request)

        assert result == PayoutResult(provider_ref="tr_abc")
        call_kwargs = mock_stripe_transfer.create.call_args.kwargs
        assert call_kwargs["amount"] == 9000
        assert call_kwargs["currency"] == "ron"
        assert call_kwargs["destination"] == "acct_dest123"
        assert call_kwargs["idempotency_key"] == payout_request.idempotency_key
        assert call_kwargs["api_key"] == "sk_test_123"
        assert call_kwargs["metadata"]["payout_id"] == payout_request.payout_id

    def test_missing_destination_is_permanent(self, adapter, mock_stripe_transfer):
        request = PayoutRequest(
            payout_id="p1",
            seller_id="s1",
            destination="",
            amount_cents=100,
            currency="RON",
            idempotency_key="k",
        )

        with pytest.raises(ProviderInvalidAccountError) as exc_info:
            adapter.send_payout(request)

        assert exc_info.value.is_retryable is False
        mock_stripe_transfer.create.assert_not_called()


# =============================================================================
# Refund Tests
# =============================================================================


class TestRefund:
    def test_refund_success(self, adapter, refund_request, mock_stripe_refund, mock_refund):
        mock_stripe_refund.create.return_value = mock_refund(id="re_abc")

        result = adapter.refund(refund_request)

        assert result == RefundResult(provider_ref="re_abc", status="succeeded")
        call_kwargs = mock_stripe_refund.create.call_args.kwargs
        assert call_kwargs["payment_intent"] == "pi_test123456"
        assert call_kwargs["amount"] == 5000
        assert call_kwargs["idempotency_key"] == refund_request.idempotency_key

    def test_failed_refund_status_is_declined(
        self, adapter, refund_request, mock_stripe_refund, mock_refund
    ):
        mock_stripe_refund.create.return_value = mock_refund(status="failed")

        with pytest.raises(ProviderDeclinedError):
            adapter.refund(refund_request)

    def test_missing_payment_ref_is_invalid_request(self, adapter, mock_stripe_refund):
        from payments.adapters.base import RefundRequest

        request = RefundRequest(
            refund_id="r1",
            order_id="o1",
            payment_ref=None,
            amount_cents=100,
            currency="RON",
            idempotency_key="k",
        )

        with pytest.raises(ProviderInvalidRequestError):
            adapter.refund(request)
        mock_stripe_refund.create.assert_not_called()


# =============================================================================
# Error Translation Tests
# =============================================================================


class TestErrorTranslation:
    @pytest.mark.parametrize(
        "stripe_error,expected,retryable",
        [
            (
                stripe.CardError("Declined.", None, "card_declined"),
                ProviderDeclinedError,
                False,
            ),
            (
                stripe.InvalidRequestError("No such destination account", "destination"),
                ProviderInvalidAccountError,
                False,
            ),
            (
                stripe.InvalidRequestError("Amount must be positive", "amount"),
                ProviderInvalidRequestError,
                False,
            ),
            (
                stripe.AuthenticationError("Invalid API Key provided"),
                ProviderAuthenticationError,
                False,
            ),
            (stripe.RateLimitError("Too many requests"), ProviderRateLimitError, True),
            (
                stripe.APIConnectionError("Request timed out"),
                ProviderTimeoutError,
                True,
            ),
            (
                stripe.APIConnectionError("Could not connect"),
                ProviderUnavailableError,
                True,
            ),
            (stripe.APIError("Internal error"), ProviderUnavailableError, True),
        ],
    )
    def test_transfer_errors(
        self, adapter, payout_request, mock_stripe_transfer, stripe_error, expected, retryable
    ):
        mock_stripe_transfer.create.side_effect = stripe_error

        with pytest.raises(expected) as exc_info:
            adapter.send_payout(payout_request)

        assert exc_info.value.is_retryable is retryable
        assert exc_info.value.__cause__ is stripe_error
