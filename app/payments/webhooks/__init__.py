"""
Webhook handling for payment provider callbacks.

Callbacks are parsed (parsers), verified, deduplicated and reconciled
synchronously (ingestion) behind a CSRF-exempt endpoint (views).

Usage:
    # In urls.py
    from payments.webhooks.views import provider_webhook

    urlpatterns = [
        path("webhooks/provider/", provider_webhook, name="provider_webhook"),
    ]
"""
