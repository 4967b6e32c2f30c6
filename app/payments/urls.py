"""
URL configuration for the payments app.

Routes:
    - POST /webhooks/provider/ - Payment provider webhook
    - POST /refunds/<order_id>/ - Request a refund
    - POST /refunds/<refund_id>/approve/ - Approve a large refund
    - POST /refunds/<refund_id>/void/ - Void a refund
    - POST /payouts/run/ - Run the payout batch
    - POST /payouts/<payout_id>/retry/ - Retry a failed payout
    - GET /ledger/balance/ - Ledger account balance

All routes are prefixed with /api/v1/payments/ when included in the main URLconf.
"""

from django.urls import path

from payments import views
from payments.webhooks.views import provider_webhook

app_name = "payments"

urlpatterns = [
    # Webhook endpoints
    path("webhooks/provider/", provider_webhook, name="provider_webhook"),
    # Refunds
    path("refunds/<uuid:order_id>/", views.RefundRequestView.as_view(), name="refund_request"),
    path(
        "refunds/<uuid:refund_id>/approve/",
        views.RefundApproveView.as_view(),
        name="refund_approve",
    ),
    path("refunds/<uuid:refund_id>/void/", views.RefundVoidView.as_view(), name="refund_void"),
    # Payouts
    path("payouts/run/", views.PayoutRunView.as_view(), name="payout_run"),
    path(
        "payouts/<uuid:payout_id>/retry/",
        views.PayoutRetryView.as_view(),
        name="payout_retry",
    ),
    # Ledger
    path("ledger/balance/", views.LedgerBalanceView.as_view(), name="ledger_balance"),
]
