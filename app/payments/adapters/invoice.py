"""
Default invoice provider.

Invoice rendering and e-invoicing live outside this system. The default
provider records the request in the log and hands back a deterministic
reference; deployments point PAYMENTS_INVOICE_PROVIDER at a real
integration.
"""

from __future__ import annotations

import hashlib
import logging

from payments.adapters.base import InvoiceResult, InvoiceType

logger = logging.getLogger(__name__)


class LoggingInvoiceProvider:
    """InvoiceProvider that only logs requests."""

    SUPPORTED_TYPES = (InvoiceType.RECEIPT, InvoiceType.INVOICE)

    def request_invoice(self, order_id: str, invoice_type: str) -> InvoiceResult:
        if invoice_type not in self.SUPPORTED_TYPES:
            return InvoiceResult.failure(invoice_type, f"Unsupported invoice type: {invoice_type}")

        reference = hashlib.sha256(f"{invoice_type}|{order_id}".encode()).hexdigest()[:16]
        logger.info(
            "Invoice requested",
            extra={"order_id": str(order_id), "invoice_type": invoice_type, "reference": reference},
        )
        return InvoiceResult.success(invoice_type, reference)
