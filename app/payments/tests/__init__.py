"""
Tests for payments app.

This package contains test modules for:
- test_models.py: Payout, Refund, WebhookEvent model tests
- test_idempotency.py: Event claiming
- test_reconciler.py: Payment events to order and ledger state
- test_payout_service.py / test_refund_service.py: Orchestration services
- test_views.py: Staff API endpoint tests
- test_integration.py: Webhook to payout and refund journeys

Ledger, adapter and webhook tests live beside their subpackages.

Usage:
    pytest payments/tests/
    pytest payments/tests/test_refund_service.py
"""
