"""
Webhook ingestion service.

Pipeline for one provider callback:

    1. Parse the request into a callback variant (400 on failure)
    2. Verify the signature (400 on failure, nothing written)
    3. Normalize to a PaymentEvent (unsupported status -> ignored)
    4. In one transaction: claim the event id, store the redacted payload,
       reconcile. A duplicate claim short-circuits; a business rejection is
       recorded on the WebhookEvent and acknowledged.

Post-commit effects scheduled by the reconciler only run when the outer
transaction commits, so they are never visible for duplicates.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.db import transaction

from core.services import BaseService
from orders.exceptions import InvalidTransitionError, OrderNotFoundError
from payments.exceptions import PaymentAmountMismatchError
from payments.webhooks.parsers import normalize, parse_callback, verify_signature
from payments.webhooks.redaction import redact

if TYPE_CHECKING:
    from collections.abc import Mapping
    from typing import Any

    from payments.idempotency import IdempotencyGuard
    from payments.services.reconciler import PaymentReconciler

# Business rejections: recorded and acknowledged so the provider stops retrying
REJECTABLE_ERRORS = (OrderNotFoundError, PaymentAmountMismatchError, InvalidTransitionError)

UNSUPPORTED_STATUS = "unsupported_status"


@dataclass(frozen=True)
class IngestResult:
    """
    Outcome of one ingestion.

    ``status`` is ``ok``, ``ignored`` or ``rejected``; ``accepted`` is True
    only when the event was processed (first delivery or duplicate).
    """

    accepted: bool
    duplicate: bool = False
    status: str = "ok"
    reason: str | None = None
    event_id: str | None = None
    order_status: str | None = None

    def to_response(self) -> dict[str, Any]:
        if self.status == "ok":
            return {"status": "ok", "duplicate": self.duplicate}
        return {"status": self.status, "reason": self.reason}


class WebhookIngestionService(BaseService):
    """Turns raw provider callbacks into reconciled, deduplicated events."""

    def __init__(
        self,
        guard: IdempotencyGuard,
        reconciler: PaymentReconciler,
        secret: str,
        verify_v2: bool = False,
    ) -> None:
        self.guard = guard
        self.reconciler = reconciler
        self.secret = secret
        self.verify_v2 = verify_v2

    def ingest(
        self,
        body: bytes,
        content_type: str,
        form: Mapping[str, str],
        signature_header: str | None = None,
    ) -> IngestResult:
        """
        Process one callback.

        Raises:
            WebhookPayloadError: malformed payload
            WebhookSignatureError: signature missing or wrong
            IdempotencyStoreError: the dedup store failed
        """
        logger = self.get_logger()

        callback = parse_callback(body, content_type, form)
        verify_signature(callback, self.secret, signature_header, verify_v2=self.verify_v2)

        event = normalize(callback)
        if event is None:
            logger.info(
                "Webhook status not supported, ignoring",
                extra={"source": callback.source, "raw_status": callback.raw_status},
            )
            return IngestResult(accepted=False, status="ignored", reason=UNSUPPORTED_STATUS)

        log_context = {
            "event_id": event.event_id,
            "order_id": event.order_id,
            "source": event.source,
            "status_reported": event.status,
        }

        with transaction.atomic():
            claim = self.guard.claim_once(
                event.event_id,
                source=event.source,
                order_ref=event.order_id,
                status_reported=event.status,
                amount_cents=event.amount_cents,
                currency=event.currency,
                provider_ref=event.provider_ref or "",
                payload=redact(callback.payload()),
            )
            if claim.already_claimed:
                logger.info("Duplicate webhook delivery", extra=log_context)
                return IngestResult(accepted=True, duplicate=True, event_id=event.event_id)

            try:
                with transaction.atomic():
                    result = self.reconciler.reconcile(event)
            except REJECTABLE_ERRORS as e:
                logger.warning(
                    "Webhook rejected",
                    extra={**log_context, "error_code": e.error_code, "error": e.message},
                )
                claim.event.mark_rejected(e.error_code, e.message)
                claim.event.save(
                    update_fields=["outcome", "error_code", "error_message", "updated_at"]
                )
                return IngestResult(
                    accepted=False,
                    status="rejected",
                    reason=e.error_code,
                    event_id=event.event_id,
                )

        logger.info(
            "Webhook processed",
            extra={**log_context, "order_status": result.current_status},
        )
        return IngestResult(
            accepted=True,
            event_id=event.event_id,
            order_status=result.current_status,
        )
