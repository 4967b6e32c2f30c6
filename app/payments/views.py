"""
DRF views for payments app.

This module provides staff-only API views for:
- Refund request, approval and void
- Payout batch runs and manual payout retry
- Ledger balance lookup

Related files:
    - services/: RefundProcessor, PayoutOrchestrator
    - serializers.py: Request/response serializers
    - webhooks/views.py: Provider webhook (not DRF, signature based)
    - urls.py: URL routing

Endpoints:
    POST /api/v1/payments/refunds/{order_id}/ - Request a refund
    POST /api/v1/payments/refunds/{refund_id}/approve/ - Approve a large refund
    POST /api/v1/payments/refunds/{refund_id}/void/ - Void a pending/failed refund
    POST /api/v1/payments/payouts/run/ - Run the payout batch
    POST /api/v1/payments/payouts/{payout_id}/retry/ - Re-queue a failed payout
    GET /api/v1/payments/ledger/balance/ - Account balance

Security:
    - All endpoints require an authenticated staff user (JWT or session)
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from payments.container import get_container
from payments.exceptions import LockAcquisitionError

from .serializers import (
    BatchResultSerializer,
    LedgerBalanceQuerySerializer,
    LedgerBalanceSerializer,
    PayoutRunSerializer,
    PayoutSerializer,
    RefundRequestResultSerializer,
    RefundRequestSerializer,
    RefundRunResultSerializer,
    RefundSerializer,
    RefundVoidSerializer,
)

logger = logging.getLogger(__name__)


def actor_id(request) -> str:
    """Stable actor id recorded on refunds (requested_by, approved_by)."""
    return f"user:{request.user.pk}"


def error_response(exc: BaseApplicationError) -> Response:
    """Map a domain exception onto an HTTP error response."""
    if isinstance(exc, ValidationError):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, ConflictError):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return Response(exc.to_dict(), status=code)


# =============================================================================
# Refunds
# =============================================================================


class RefundRequestView(APIView):
    """
    Request a refund for an order.

    POST /api/v1/payments/refunds/{order_id}/

    Request body:
        {"amount_cents": 2500, "reason": "Damaged on arrival"}

    Returns:
        {"refund_id": "...", "status": "refunded", "approval_required": false}
    """

    permission_classes = [IsAdminUser]

    @extend_schema(
        operation_id="request_refund",
        summary="Request a refund",
        request=RefundRequestSerializer,
        responses={
            201: OpenApiResponse(response=RefundRequestResultSerializer),
            400: OpenApiResponse(description="Invalid amount"),
            404: OpenApiResponse(description="Order not found"),
            409: OpenApiResponse(description="Refund not allowed for this order"),
        },
        tags=["Payments - Refunds"],
    )
    def post(self, request, order_id):
        serializer = RefundRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            result = get_container().refunds.request_refund(
                order_id=order_id,
                amount_cents=serializer.validated_data["amount_cents"],
                reason=serializer.validated_data["reason"],
                actor=actor_id(request),
            )
        except BaseApplicationError as e:
            logger.warning(
                "Refund request rejected",
                extra={"order_id": str(order_id), "error_code": e.error_code},
            )
            return error_response(e)

        output = RefundRequestResultSerializer(result)
        return Response(output.data, status=status.HTTP_201_CREATED)


class RefundApproveView(APIView):
    """
    Approve a refund waiting on a second actor and send it.

    POST /api/v1/payments/refunds/{refund_id}/approve/

    The approver must differ from the requester.
    """

    permission_classes = [IsAdminUser]

    @extend_schema(
        operation_id="approve_refund",
        summary="Approve a large refund",
        request=None,
        responses={
            200: OpenApiResponse(response=RefundRunResultSerializer),
            404: OpenApiResponse(description="Refund not found"),
            409: OpenApiResponse(description="Not awaiting approval or same actor"),
        },
        tags=["Payments - Refunds"],
    )
    def post(self, request, refund_id):
        try:
            result = get_container().refunds.approve_and_process(
                refund_id, approver=actor_id(request)
            )
        except BaseApplicationError as e:
            return error_response(e)

        output = RefundRunResultSerializer(result.data)
        return Response(output.data, status=status.HTTP_200_OK)


class RefundVoidView(APIView):
    """
    Void a pending or failed refund.

    POST /api/v1/payments/refunds/{refund_id}/void/
    """

    permission_classes = [IsAdminUser]

    @extend_schema(
        operation_id="void_refund",
        summary="Void a refund",
        request=RefundVoidSerializer,
        responses={
            200: OpenApiResponse(response=RefundSerializer),
            404: OpenApiResponse(description="Refund not found"),
            409: OpenApiResponse(description="Refund cannot be voided"),
        },
        tags=["Payments - Refunds"],
    )
    def post(self, request, refund_id):
        serializer = RefundVoidSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            refund = get_container().refunds.void_refund(
                refund_id,
                actor=actor_id(request),
                reason=serializer.validated_data["reason"],
            )
        except BaseApplicationError as e:
            return error_response(e)

        return Response(RefundSerializer(refund).data)


# =============================================================================
# Payouts
# =============================================================================


class PayoutRunView(APIView):
    """
    Run the payout batch synchronously.

    POST /api/v1/payments/payouts/run/

    Request body:
        {"as_of_date": "2026-10-19"}  (optional, defaults to today)
    """

    permission_classes = [IsAdminUser]

    @extend_schema(
        operation_id="run_payouts",
        summary="Run the payout batch",
        request=PayoutRunSerializer,
        responses={
            200: OpenApiResponse(response=BatchResultSerializer),
            409: OpenApiResponse(description="Another batch is running"),
        },
        tags=["Payments - Payouts"],
    )
    def post(self, request):
        serializer = PayoutRunSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            result = get_container().payouts.run_batch(
                as_of=serializer.validated_data.get("as_of_date"),
            )
        except LockAcquisitionError as e:
            return error_response(e)

        return Response(BatchResultSerializer(result).data)


class PayoutRetryView(APIView):
    """
    Re-queue a failed payout.

    POST /api/v1/payments/payouts/{payout_id}/retry/
    """

    permission_classes = [IsAdminUser]

    @extend_schema(
        operation_id="retry_payout",
        summary="Retry a failed payout",
        request=None,
        responses={
            200: OpenApiResponse(response=PayoutSerializer),
            404: OpenApiResponse(description="Payout not found"),
            409: OpenApiResponse(description="Payout is not failed"),
        },
        tags=["Payments - Payouts"],
    )
    def post(self, request, payout_id):
        try:
            payout = get_container().payouts.retry_payout(payout_id)
        except BaseApplicationError as e:
            return error_response(e)

        return Response(PayoutSerializer(payout).data)


# =============================================================================
# Ledger
# =============================================================================


class LedgerBalanceView(APIView):
    """
    Balance of one ledger account.

    GET /api/v1/payments/ledger/balance/?account=seller_payable:<id>&currency=RON
    """

    permission_classes = [IsAdminUser]

    @extend_schema(
        operation_id="ledger_balance",
        summary="Ledger account balance",
        parameters=[
            OpenApiParameter("account", str, required=True),
            OpenApiParameter("currency", str, required=True),
        ],
        responses={200: OpenApiResponse(response=LedgerBalanceSerializer)},
        tags=["Payments - Ledger"],
    )
    def get(self, request):
        query = LedgerBalanceQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return Response(query.errors, status=status.HTTP_400_BAD_REQUEST)

        account = query.validated_data["account"]
        money = get_container().ledger.balance(account, query.validated_data["currency"])
        return Response(
            LedgerBalanceSerializer(
                {"account": account, "currency": money.currency, "balance_cents": money.cents}
            ).data
        )
