from django.db import migrations, models
import django.db.models.deletion


ORDER_STATES = [
    "Order Created",
    "Pending Collection",
    "Sample Collected",
    "In Progress",
    "Pending Approval",
    "Completed",
    "Delivered",
]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Analyte",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("name", models.CharField(max_length=255)),
                ("code", models.CharField(blank=True, max_length=50)),
                ("unit", models.CharField(blank=True, max_length=50)),
                ("reference_range", models.CharField(blank=True, max_length=100)),
                ("low_critical", models.DecimalField(blank=True, decimal_places=4, max_digits=12, null=True)),
                ("high_critical", models.DecimalField(blank=True, decimal_places=4, max_digits=12, null=True)),
            ],
            options={
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="TestGroup",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("code", models.CharField(max_length=50, unique=True)),
                ("name", models.CharField(max_length=255)),
                ("department", models.CharField(blank=True, max_length=100)),
                ("tat_hours", models.PositiveIntegerField(blank=True, null=True)),
                ("analytes", models.ManyToManyField(blank=True, related_name="test_groups", to="orders_core.analyte")),
            ],
            options={
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("patient_name", models.CharField(blank=True, max_length=255)),
                (
                    "priority",
                    models.CharField(
                        choices=[("Normal", "Normal"), ("Urgent", "Urgent"), ("STAT", "STAT")],
                        default="Normal",
                        max_length=10,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[(s, s) for s in ORDER_STATES],
                        db_index=True,
                        default="Order Created",
                        max_length=32,
                    ),
                ),
                ("sample_collected_at", models.DateTimeField(blank=True, null=True)),
                ("sample_collected_by", models.CharField(blank=True, max_length=255, null=True)),
                ("status_updated_at", models.DateTimeField(blank=True, null=True)),
                ("status_updated_by", models.CharField(blank=True, max_length=255)),
            ],
            options={
                "db_table": "orders",
                "ordering": ["-created_at", "-id"],
            },
        ),
        migrations.CreateModel(
            name="OrderTest",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="order_tests",
                        to="orders_core.order",
                    ),
                ),
                (
                    "test_group",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="order_tests",
                        to="orders_core.testgroup",
                    ),
                ),
            ],
            options={
                "db_table": "order_tests",
                "ordering": ["id"],
                "unique_together": {("order", "test_group")},
            },
        ),
        migrations.AddField(
            model_name="order",
            name="test_groups",
            field=models.ManyToManyField(
                related_name="orders",
                through="orders_core.OrderTest",
                to="orders_core.testgroup",
            ),
        ),
        migrations.AddConstraint(
            model_name="order",
            constraint=models.CheckConstraint(
                condition=models.Q(
                    models.Q(("sample_collected_at__isnull", True), ("sample_collected_by__isnull", True)),
                    models.Q(("sample_collected_at__isnull", False), ("sample_collected_by__isnull", False)),
                    _connector="OR",
                ),
                name="order_sample_collected_pair",
            ),
        ),
        migrations.AddConstraint(
            model_name="order",
            constraint=models.CheckConstraint(
                condition=models.Q(("status__in", ORDER_STATES)),
                name="order_status_known",
            ),
        ),
        migrations.CreateModel(
            name="Result",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "status",
                    models.CharField(
                        choices=[("entered", "Entered"), ("pending_verification", "Pending verification")],
                        default="entered",
                        max_length=32,
                    ),
                ),
                (
                    "verification_status",
                    models.CharField(
                        choices=[
                            ("pending_verification", "Pending verification"),
                            ("verified", "Verified"),
                            ("rejected", "Rejected"),
                        ],
                        db_index=True,
                        default="pending_verification",
                        max_length=32,
                    ),
                ),
                ("verified_by", models.CharField(blank=True, max_length=255, null=True)),
                ("verified_at", models.DateTimeField(blank=True, null=True)),
                ("review_comment", models.TextField(blank=True, null=True)),
                ("critical_flag", models.BooleanField(default=False)),
                ("manually_verified", models.BooleanField(default=False)),
                ("entered_by", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="results",
                        to="orders_core.order",
                    ),
                ),
                (
                    "test_group",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="results",
                        to="orders_core.testgroup",
                    ),
                ),
            ],
            options={
                "db_table": "results",
                "ordering": ["order_id", "test_group_id", "-created_at", "-id"],
                "indexes": [models.Index(fields=["order", "test_group"], name="result_order_group_idx")],
            },
        ),
        migrations.CreateModel(
            name="ResultValue",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("analyte_name", models.CharField(max_length=255)),
                ("value", models.CharField(blank=True, max_length=255)),
                ("unit", models.CharField(blank=True, max_length=50)),
                ("reference_range", models.CharField(blank=True, max_length=100)),
                (
                    "flag",
                    models.CharField(
                        blank=True,
                        choices=[("", "Normal"), ("H", "High"), ("L", "Low"), ("C", "Critical")],
                        default="",
                        max_length=2,
                    ),
                ),
                (
                    "analyte",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="result_values",
                        to="orders_core.analyte",
                    ),
                ),
                (
                    "result",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="values",
                        to="orders_core.result",
                    ),
                ),
            ],
            options={
                "db_table": "result_values",
                "ordering": ["result_id", "id"],
            },
        ),
        migrations.CreateModel(
            name="WorkflowTransition",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("kind", models.CharField(choices=[("order", "Order"), ("result", "Result")], max_length=32)),
                ("object_id", models.PositiveBigIntegerField()),
                ("from_status", models.CharField(max_length=64)),
                ("to_status", models.CharField(max_length=64)),
                ("action", models.CharField(blank=True, max_length=64)),
                ("performed_by", models.CharField(blank=True, max_length=255)),
                ("comment", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["created_at", "id"],
                "indexes": [models.Index(fields=["kind", "object_id"], name="transition_kind_obj_idx")],
            },
        ),
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("action", models.CharField(db_index=True, max_length=255)),
                ("actor", models.CharField(blank=True, max_length=255)),
                ("details", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [models.Index(fields=["action", "created_at"], name="audit_action_time_idx")],
            },
        ),
    ]
