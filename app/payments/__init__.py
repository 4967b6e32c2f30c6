"""
Payments app: money side of the marketplace.

This app handles:
- Provider webhook ingestion and payment reconciliation
- Double-entry ledger (payments.ledger)
- Seller payouts and buyer refunds through injected providers

Related apps:
    - orders: Order lifecycle and commission snapshot

Usage:
    from payments.container import get_container

    container = get_container()
    container.payouts.run_batch()
    container.ledger.balance("commission_revenue", "RON")
"""
