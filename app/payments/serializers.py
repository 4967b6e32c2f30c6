"""
DRF serializers for payments app.

This module provides serializers for:
- Refund request, approval and void input
- Payout batch input and results
- Ledger balance queries

Related files:
    - views.py: Payment API views
    - services/: Services whose results these serializers render

Usage:
    serializer = RefundRequestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
"""

from __future__ import annotations

from rest_framework import serializers

from payments.models import Payout, Refund


# =============================================================================
# Refunds
# =============================================================================


class RefundRequestSerializer(serializers.Serializer):
    """
    Input for POST /refunds/{order_id}/.

    Range checks against the order total happen in RefundProcessor.
    """

    amount_cents = serializers.IntegerField(min_value=1)
    reason = serializers.CharField(max_length=1000, allow_blank=True, default="")


class RefundVoidSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=1000, allow_blank=True, default="")


class RefundRequestResultSerializer(serializers.Serializer):
    refund_id = serializers.CharField()
    status = serializers.CharField()
    approval_required = serializers.BooleanField()
    provider_ref = serializers.CharField(allow_null=True, required=False)
    failure_reason = serializers.CharField(allow_null=True, required=False)


class RefundRunResultSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    status = serializers.CharField()
    provider_ref = serializers.CharField(allow_null=True)
    failure_reason = serializers.CharField(allow_null=True)


class RefundSerializer(serializers.ModelSerializer):
    class Meta:
        model = Refund
        fields = [
            "id",
            "order",
            "amount_cents",
            "currency",
            "reason",
            "status",
            "failure_reason",
            "provider_ref",
            "requested_by",
            "approved_by",
            "voided_by",
            "attempts",
            "seller_recovered_cents",
            "refunded_at",
            "voided_at",
            "created_at",
        ]
        read_only_fields = fields


# =============================================================================
# Payouts
# =============================================================================


class PayoutRunSerializer(serializers.Serializer):
    as_of_date = serializers.DateField(required=False, allow_null=True)


class BatchResultSerializer(serializers.Serializer):
    processed = serializers.IntegerField()
    successful = serializers.IntegerField()
    failed = serializers.IntegerField()
    created = serializers.IntegerField()
    stopped = serializers.BooleanField()


class PayoutSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payout
        fields = [
            "id",
            "seller",
            "order",
            "amount_cents",
            "currency",
            "status",
            "provider_ref",
            "failure_reason",
            "attempts",
            "next_attempt_at",
            "paid_at",
            "created_at",
        ]
        read_only_fields = fields


# =============================================================================
# Ledger
# =============================================================================


class LedgerBalanceQuerySerializer(serializers.Serializer):
    account = serializers.CharField(max_length=128)
    currency = serializers.CharField(min_length=3, max_length=3)

    def validate_currency(self, value: str) -> str:
        return value.upper()


class LedgerBalanceSerializer(serializers.Serializer):
    account = serializers.CharField()
    currency = serializers.CharField()
    balance_cents = serializers.IntegerField()
