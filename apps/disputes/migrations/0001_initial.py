import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("orders", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Dispute",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "reason",
                    models.CharField(
                        choices=[
                            ("quality_issue", "Quality Issue"),
                            ("quantity_mismatch", "Quantity Mismatch"),
                            ("wrong_material", "Wrong Material"),
                            ("delivery_issue", "Delivery Issue"),
                            ("payment_issue", "Payment Issue"),
                            ("communication_issue", "Communication Issue"),
                            ("fraud_suspected", "Fraud Suspected"),
                            ("other", "Other"),
                        ],
                        help_text="Why the dispute was raised",
                        max_length=30,
                    ),
                ),
                (
                    "description",
                    models.TextField(
                        help_text="Details provided by the party opening the dispute"
                    ),
                ),
                (
                    "evidence_urls",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="References to supporting files in external storage",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("open", "Open"),
                            ("under_review", "Under Review"),
                            ("awaiting_response", "Awaiting Response"),
                            ("resolved_buyer_favor", "Resolved for Buyer"),
                            ("resolved_seller_favor", "Resolved for Seller"),
                            ("resolved_mutual", "Resolved Mutually"),
                            ("closed", "Closed"),
                        ],
                        default="open",
                        help_text="Current status of the dispute",
                        max_length=25,
                    ),
                ),
                ("admin_notes", models.TextField(blank=True)),
                (
                    "resolution_notes",
                    models.TextField(
                        blank=True, help_text="Notes on how dispute was resolved"
                    ),
                ),
                (
                    "order_outcome",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("resume", "Resume Order"),
                            ("cancel", "Cancel Order"),
                            ("complete", "Complete Order"),
                        ],
                        max_length=10,
                    ),
                ),
                ("resolved_at", models.DateTimeField(blank=True, null=True)),
                (
                    "order",
                    models.ForeignKey(
                        help_text="The order under dispute",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="disputes",
                        to="orders.order",
                    ),
                ),
                (
                    "raised_by",
                    models.ForeignKey(
                        help_text="Party who opened this dispute",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="raised_disputes",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "admin",
                    models.ForeignKey(
                        blank=True,
                        help_text="Staff member handling this dispute",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="handled_disputes",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Dispute",
                "verbose_name_plural": "Disputes",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status"], name="dispute_status_idx"),
                    models.Index(fields=["raised_by"], name="dispute_raised_by_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(
                            (
                                "status__in",
                                ["open", "under_review", "awaiting_response"],
                            )
                        ),
                        fields=("order",),
                        name="unique_unresolved_dispute_per_order",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="DisputeMessage",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("message", models.TextField()),
                ("is_admin", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "dispute",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="messages",
                        to="disputes.dispute",
                    ),
                ),
                (
                    "sender",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="dispute_messages",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["created_at", "id"],
            },
        ),
    ]
