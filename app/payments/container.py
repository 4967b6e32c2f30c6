"""
Composition root for the payments services.

Every service gets its collaborators through its constructor; this module
is the one place that wires them together. External providers are
resolved from dotted paths in settings:

    PAYMENTS_PAYOUT_PROVIDER   -> PayoutProvider
    PAYMENTS_REFUND_PROVIDER   -> RefundProvider
    PAYMENTS_INVOICE_PROVIDER  -> InvoiceProvider
    PAYMENTS_NOTIFIER          -> Notifier

Two settings naming the same class share one instance.

The container is built once from PaymentsConfig.ready(). Tests swap in
fakes with build_container(...) and set_container(...).

Usage:
    from payments.container import get_container

    result = get_container().payouts.run_one(payout_id)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.conf import settings
from django.utils.module_loading import import_string

from orders.state_machine import OrderStateMachine
from payments.adapters.base import describe
from payments.idempotency import IdempotencyGuard
from payments.ledger import LedgerService
from payments.services.payout_service import PayoutOrchestrator
from payments.services.reconciler import PaymentReconciler
from payments.services.refund_service import RefundProcessor
from payments.webhooks.ingestion import WebhookIngestionService

if TYPE_CHECKING:
    from typing import Any

    from payments.adapters.base import (
        InvoiceProvider,
        Notifier,
        PayoutProvider,
        RefundProvider,
    )

logger = logging.getLogger(__name__)

PROVIDER_SETTINGS = {
    "payout_provider": "PAYMENTS_PAYOUT_PROVIDER",
    "refund_provider": "PAYMENTS_REFUND_PROVIDER",
    "invoice_provider": "PAYMENTS_INVOICE_PROVIDER",
    "notifier": "PAYMENTS_NOTIFIER",
}


@dataclass
class PaymentsContainer:
    ledger: LedgerService
    guard: IdempotencyGuard
    state_machine: OrderStateMachine
    payout_provider: PayoutProvider
    refund_provider: RefundProvider
    invoice_provider: InvoiceProvider
    notifier: Notifier
    reconciler: PaymentReconciler
    ingestion: WebhookIngestionService
    payouts: PayoutOrchestrator
    refunds: RefundProcessor


def _resolve_providers(overrides: dict[str, Any]) -> dict[str, Any]:
    instances: dict[str, Any] = {}
    providers: dict[str, Any] = {}
    for name, setting_name in PROVIDER_SETTINGS.items():
        if name in overrides:
            providers[name] = overrides[name]
            continue
        path = getattr(settings, setting_name)
        if path not in instances:
            instances[path] = import_string(path)()
        providers[name] = instances[path]
    return providers


def build_container(**overrides: Any) -> PaymentsContainer:
    """
    Build a fully wired container.

    Keyword overrides replace providers by name (payout_provider,
    refund_provider, invoice_provider, notifier) and service options
    (payout_options, refund_options: dicts of constructor kwargs).
    """
    payout_options = overrides.pop("payout_options", {})
    refund_options = overrides.pop("refund_options", {})
    unknown = set(overrides) - set(PROVIDER_SETTINGS)
    if unknown:
        raise TypeError(f"Unknown container overrides: {', '.join(sorted(unknown))}")

    providers = _resolve_providers(overrides)
    ledger = LedgerService()
    guard = IdempotencyGuard()
    state_machine = OrderStateMachine()

    reconciler = PaymentReconciler(
        ledger=ledger,
        state_machine=state_machine,
        invoice_provider=providers["invoice_provider"],
        notifier=providers["notifier"],
    )
    ingestion = WebhookIngestionService(
        guard=guard,
        reconciler=reconciler,
        secret=settings.PAYMENT_WEBHOOK_SECRET,
        verify_v2=settings.PAYMENT_WEBHOOK_VERIFY_V2,
    )
    payouts = PayoutOrchestrator(
        ledger=ledger,
        provider=providers["payout_provider"],
        **payout_options,
    )
    refunds = RefundProcessor(
        ledger=ledger,
        state_machine=state_machine,
        provider=providers["refund_provider"],
        notifier=providers["notifier"],
        **refund_options,
    )

    logger.debug(
        "Payments container built",
        extra={name: describe(provider) for name, provider in providers.items()},
    )
    return PaymentsContainer(
        ledger=ledger,
        guard=guard,
        state_machine=state_machine,
        reconciler=reconciler,
        ingestion=ingestion,
        payouts=payouts,
        refunds=refunds,
        **providers,
    )


_container: PaymentsContainer | None = None


def get_container() -> PaymentsContainer:
    global _container
    if _container is None:
        _container = build_container()
    return _container


def set_container(container: PaymentsContainer | None) -> None:
    """Install ``container`` (or clear it with None so the next get rebuilds)."""
    global _container
    _container = container


def reset_container() -> None:
    set_container(None)
