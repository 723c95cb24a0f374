# Generated manually for initial schema.
from __future__ import annotations

import uuid

from django.db import migrations, models
import django.db.models.deletion
import django.db.models.functions.text


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Form",
            fields=[
                ("id", models.CharField(editable=False, max_length=64, primary_key=True, serialize=False)),
                ("title", models.CharField(max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["-updated_at", "id"],
                "constraints": [
                    models.UniqueConstraint(
                        django.db.models.functions.text.Lower("title"),
                        name="uq_form_title_ci",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="FormField",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("uid", models.CharField(db_index=True, max_length=40)),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("singleLine", "Single Line Text"),
                            ("paragraph", "Paragraph Text"),
                            ("dropdown", "Dropdown"),
                            ("multipleChoice", "Multiple Choice"),
                            ("checkboxes", "Checkboxes"),
                            ("number", "Number"),
                            ("name", "Full Name"),
                            ("email", "Email"),
                            ("phone", "Phone Number"),
                            ("password", "Password"),
                            ("date", "Date"),
                            ("time", "Time"),
                            ("datetime", "Datetime"),
                            ("url", "URL"),
                            ("file", "File Upload"),
                            ("richText", "Rich Text"),
                        ],
                        max_length=32,
                    ),
                ),
                ("label", models.CharField(max_length=255)),
                ("name", models.CharField(max_length=128)),
                ("placeholder", models.CharField(blank=True, max_length=255)),
                ("required", models.BooleanField(default=False)),
                ("do_not_store", models.BooleanField(default=False)),
                ("options", models.JSONField(blank=True, default=list)),
                ("position", models.PositiveIntegerField(default=0)),
                (
                    "form",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="fields",
                        to="formbuilder.form",
                    ),
                ),
            ],
            options={
                "ordering": ["position", "id"],
                "constraints": [
                    models.UniqueConstraint(fields=("form", "name"), name="uq_formfield_form_name"),
                ],
            },
        ),
        migrations.CreateModel(
            name="FormSubmission",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("payload", models.JSONField(default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "form",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="submissions",
                        to="formbuilder.form",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["form", "created_at"], name="fb_submission_form_created"),
                ],
            },
        ),
    ]
