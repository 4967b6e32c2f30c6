"""
Webhook endpoint for payment provider callbacks.

The view:
1. Hands the raw request to WebhookIngestionService
2. Maps the outcome to the provider-facing status codes

Status codes:
    200: processed, duplicate, ignored (unsupported status) or rejected
         (business rule); the provider must not retry these
    400: malformed payload or bad signature; nothing was written
    500: idempotency store failure or unexpected error; the provider
         redelivers and the rolled-back claim lets it through again

Usage:
    # In urls.py
    from payments.webhooks.views import provider_webhook

    urlpatterns = [
        path("webhooks/provider/", provider_webhook, name="provider_webhook"),
    ]
"""

from __future__ import annotations

import logging

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from payments.container import get_container
from payments.exceptions import (
    IdempotencyStoreError,
    WebhookPayloadError,
    WebhookSignatureError,
)
from payments.webhooks.parsers import V2_SIGNATURE_HEADER

logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def provider_webhook(request: HttpRequest) -> JsonResponse:
    """Receive a payment notification (legacy form or v2 JSON)."""
    content_type = request.content_type or ""
    # body must be read first; request.POST is then parsed from the cached bytes
    raw = request.body
    form = request.POST if "json" not in content_type.lower() else {}

    try:
        result = get_container().ingestion.ingest(
            body=raw,
            content_type=content_type,
            form=form,
            signature_header=request.headers.get(V2_SIGNATURE_HEADER),
        )
    except WebhookSignatureError as e:
        logger.warning("Webhook signature verification failed", extra={"error": e.message})
        return JsonResponse({"status": "error", **e.to_dict()}, status=400)
    except WebhookPayloadError as e:
        logger.warning("Malformed webhook payload", extra={"error": e.message})
        return JsonResponse({"status": "error", **e.to_dict()}, status=400)
    except IdempotencyStoreError as e:
        return JsonResponse({"status": "error", **e.to_dict()}, status=500)
    except Exception:
        logger.error("Unexpected error processing webhook", exc_info=True)
        return JsonResponse(
            {"status": "error", "error": "Internal error", "error_code": "INTERNAL_ERROR"},
            status=500,
        )

    return JsonResponse(result.to_response(), status=200)
