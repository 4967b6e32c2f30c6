import uuid

import django.db.models.deletion
import django_fsm
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Seller",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, help_text="Unique identifier (UUID v4)", primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("payout_destination", models.CharField(blank=True, default="", help_text="Provider account that receives payouts for this seller", max_length=255)),
                ("commission_rate", models.DecimalField(blank=True, decimal_places=2, help_text="Commission percent override; platform default when empty", max_digits=5, null=True)),
                ("payouts_enabled", models.BooleanField(default=True)),
            ],
            options={
                "verbose_name": "Seller",
                "verbose_name_plural": "Sellers",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Order",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, help_text="Unique identifier (UUID v4)", primary_key=True, serialize=False)),
                ("buyer_ref", models.CharField(help_text="Identifier of the buyer in the storefront", max_length=255)),
                ("status", django_fsm.FSMField(choices=[("pending", "Pending"), ("paid", "Paid"), ("failed", "Payment Failed"), ("packed", "Packed"), ("shipped", "Shipped"), ("delivered", "Delivered"), ("canceled", "Canceled"), ("return_requested", "Return Requested"), ("return_approved", "Return Approved"), ("returned", "Returned"), ("refunded", "Refunded")], db_index=True, default="pending", help_text="Current state of the order (managed by FSM)", max_length=50, protected=True)),
                ("currency", models.CharField(help_text="ISO 4217 currency code", max_length=3)),
                ("subtotal_cents", models.PositiveBigIntegerField()),
                ("discount_cents", models.PositiveBigIntegerField(default=0)),
                ("shipping_fee_cents", models.PositiveBigIntegerField(default=0)),
                ("total_cents", models.PositiveBigIntegerField()),
                ("payment_ref", models.CharField(blank=True, db_index=True, help_text="Payment provider transaction reference", max_length=255, null=True)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("delivered_at", models.DateTimeField(blank=True, db_index=True, null=True)),
                ("canceled_at", models.DateTimeField(blank=True, null=True)),
                ("refunded_at", models.DateTimeField(blank=True, null=True)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("seller", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="orders", to="orders.seller")),
            ],
            options={
                "verbose_name": "Order",
                "verbose_name_plural": "Orders",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["seller", "status"], name="orders_orde_seller__idx"),
                    models.Index(fields=["status", "delivered_at"], name="orders_orde_status_dlv_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(total_cents=models.F("subtotal_cents") + models.F("shipping_fee_cents") - models.F("discount_cents")),
                        name="order_total_matches_components",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderLineItem",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, help_text="Unique identifier (UUID v4)", primary_key=True, serialize=False)),
                ("product_ref", models.CharField(max_length=255)),
                ("quantity", models.PositiveIntegerField()),
                ("unit_price_cents", models.PositiveBigIntegerField()),
                ("discount_cents", models.PositiveBigIntegerField(default=0)),
                ("commission_rate", models.DecimalField(decimal_places=2, help_text="Commission percent applied when the order was created", max_digits=5)),
                ("commission_amount_cents", models.PositiveBigIntegerField()),
                ("seller_due_cents", models.PositiveBigIntegerField()),
                ("order", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="line_items", to="orders.order")),
            ],
            options={
                "verbose_name": "Order Line Item",
                "verbose_name_plural": "Order Line Items",
                "ordering": ["created_at"],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(quantity__gt=0), name="order_line_quantity_positive"),
                ],
            },
        ),
    ]
