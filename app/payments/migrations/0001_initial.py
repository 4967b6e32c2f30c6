import uuid

import django.db.models.deletion
import django_fsm
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("orders", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="LedgerEntry",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, help_text="Unique identifier (UUID v4)", primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this entry was recorded")),
                ("group_id", models.CharField(db_index=True, help_text="Id shared by all entries of one business event", max_length=128)),
                ("line", models.PositiveSmallIntegerField(help_text="Position of this entry within its group")),
                ("account", models.CharField(db_index=True, help_text="Ledger account name", max_length=128)),
                ("direction", models.CharField(choices=[("debit", "Debit"), ("credit", "Credit")], max_length=6)),
                ("amount_cents", models.PositiveBigIntegerField(help_text="Amount in minor units (always positive)")),
                ("currency", models.CharField(help_text="ISO 4217 currency code", max_length=3)),
                ("reference_type", models.CharField(choices=[("order", "Order"), ("payout", "Payout"), ("refund", "Refund")], help_text="Type of related entity", max_length=20)),
                ("reference_id", models.CharField(help_text="Id of related entity (order, payout or refund)", max_length=64)),
                ("description", models.TextField(blank=True, default="", help_text="Human-readable description of this entry")),
                ("metadata", models.JSONField(blank=True, default=dict, help_text="Arbitrary JSON data for extensibility")),
            ],
            options={
                "verbose_name": "Ledger Entry",
                "verbose_name_plural": "Ledger Entries",
                "ordering": ["created_at", "group_id", "line"],
                "indexes": [
                    models.Index(fields=["reference_type", "reference_id"], name="ledger_reference_idx"),
                    models.Index(fields=["account", "currency"], name="ledger_account_currency_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("group_id", "line"), name="unique_ledger_group_line"),
                    models.CheckConstraint(condition=models.Q(("amount_cents__gt", 0)), name="ledger_entry_amount_cents_positive"),
                ],
            },
        ),
        migrations.CreateModel(
            name="WebhookEvent",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, help_text="Unique identifier (UUID v4)", primary_key=True, serialize=False)),
                ("event_id", models.CharField(help_text="Derived event key - unique constraint for idempotency", max_length=64, unique=True)),
                ("source", models.CharField(choices=[("legacy", "Legacy form callback"), ("v2", "JSON v2 callback")], help_text="Wire variant of the callback", max_length=10)),
                ("order_ref", models.CharField(db_index=True, help_text="Order id reported by the provider", max_length=64)),
                ("status_reported", models.CharField(help_text="Normalized payment status (paid / failed)", max_length=20)),
                ("amount_cents", models.BigIntegerField(blank=True, null=True)),
                ("currency", models.CharField(blank=True, default="", max_length=3)),
                ("provider_ref", models.CharField(blank=True, default="", help_text="Provider transaction id, when present", max_length=255)),
                ("outcome", models.CharField(choices=[("processed", "Processed"), ("rejected", "Rejected")], db_index=True, default="processed", max_length=20)),
                ("error_code", models.CharField(blank=True, default="", max_length=64)),
                ("error_message", models.TextField(blank=True, default="")),
                ("payload", models.JSONField(default=dict, help_text="Callback payload with sensitive values redacted")),
            ],
            options={
                "verbose_name": "Webhook Event",
                "verbose_name_plural": "Webhook Events",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["outcome", "created_at"], name="webhook_outcome_created_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Payout",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("version", models.PositiveIntegerField(default=1, help_text="Version for optimistic locking - incremented on each save")),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, help_text="Unique identifier (UUID v4)", primary_key=True, serialize=False)),
                ("amount_cents", models.PositiveBigIntegerField(help_text="Payout amount in minor units")),
                ("currency", models.CharField(help_text="ISO 4217 currency code", max_length=3)),
                ("status", django_fsm.FSMField(choices=[("pending", "Pending"), ("processing", "Processing"), ("paid", "Paid"), ("failed", "Failed"), ("cancelled", "Cancelled")], db_index=True, default="pending", help_text="Current state of the payout (managed by FSM)", max_length=50, protected=True)),
                ("provider_ref", models.CharField(blank=True, help_text="Provider transfer id", max_length=255, null=True)),
                ("failure_reason", models.TextField(blank=True, null=True)),
                ("attempts", models.PositiveSmallIntegerField(default=0)),
                ("next_attempt_at", models.DateTimeField(blank=True, db_index=True, help_text="Earliest time the payout may be attempted again", null=True)),
                ("processing_started_at", models.DateTimeField(blank=True, null=True)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("failed_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("order", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="payouts", to="orders.order")),
                ("seller", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="payouts", to="orders.seller")),
            ],
            options={
                "verbose_name": "Payout",
                "verbose_name_plural": "Payouts",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status", "next_attempt_at"], name="payout_status_next_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("order", "seller"), name="unique_payout_per_order_seller"),
                    models.CheckConstraint(condition=models.Q(("amount_cents__gt", 0)), name="payout_amount_positive"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Refund",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("version", models.PositiveIntegerField(default=1, help_text="Version for optimistic locking - incremented on each save")),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, help_text="Unique identifier (UUID v4)", primary_key=True, serialize=False)),
                ("amount_cents", models.PositiveBigIntegerField(help_text="Refund amount in smallest currency unit")),
                ("currency", models.CharField(max_length=3)),
                ("reason", models.TextField(blank=True, default="")),
                ("status", django_fsm.FSMField(choices=[("pending", "Pending"), ("processing", "Processing"), ("refunded", "Refunded"), ("failed", "Failed"), ("void", "Void")], db_index=True, default="pending", help_text="Current state of the refund (managed by FSM)", max_length=50, protected=True)),
                ("failure_reason", models.TextField(blank=True, null=True)),
                ("provider_ref", models.CharField(blank=True, help_text="Provider refund id", max_length=255, null=True)),
                ("requested_by", models.CharField(max_length=64)),
                ("approved_by", models.CharField(blank=True, max_length=64, null=True)),
                ("voided_by", models.CharField(blank=True, max_length=64, null=True)),
                ("attempts", models.PositiveSmallIntegerField(default=0)),
                ("seller_recovered_cents", models.PositiveBigIntegerField(default=0, help_text="Part of the refund recovered from the seller's share")),
                ("refunded_at", models.DateTimeField(blank=True, null=True)),
                ("failed_at", models.DateTimeField(blank=True, null=True)),
                ("voided_at", models.DateTimeField(blank=True, null=True)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("order", models.ForeignKey(help_text="Order being refunded", on_delete=django.db.models.deletion.PROTECT, related_name="refunds", to="orders.order")),
            ],
            options={
                "verbose_name": "Refund",
                "verbose_name_plural": "Refunds",
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(condition=models.Q(("status", "void"), _negated=True), fields=("order",), name="unique_open_refund_per_order"),
                    models.CheckConstraint(condition=models.Q(("amount_cents__gt", 0)), name="refund_amount_positive"),
                ],
            },
        ),
    ]
