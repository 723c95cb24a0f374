# Generated manually: field ids unique per form, form version history.
from __future__ import annotations

import uuid

from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):
    dependencies = [
        ("formbuilder", "0001_initial"),
    ]

    operations = [
        migrations.AlterField(
            model_name="formfield",
            name="uid",
            field=models.CharField(max_length=40),
        ),
        migrations.AddConstraint(
            model_name="formfield",
            constraint=models.UniqueConstraint(fields=("form", "uid"), name="uq_formfield_form_uid"),
        ),
        migrations.CreateModel(
            name="FormVersion",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("number", models.PositiveIntegerField()),
                ("title", models.CharField(max_length=255)),
                ("field_data", models.JSONField(blank=True, default=list)),
                ("change_description", models.TextField(blank=True, default="")),
                ("is_published", models.BooleanField(default=False)),
                ("published_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "form",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="versions",
                        to="formbuilder.form",
                    ),
                ),
            ],
            options={
                "ordering": ["-number"],
                "constraints": [
                    models.UniqueConstraint(fields=("form", "number"), name="uq_formversion_form_number"),
                ],
            },
        ),
    ]
