"""Database models for the form builder service."""
from __future__ import annotations

import uuid

from django.db import models
from django.db.models.functions import Lower

from . import field_types

TITLE_CONSTRAINT = "uq_form_title_ci"
FIELD_NAME_CONSTRAINT = "uq_formfield_form_name"
FIELD_ID_CONSTRAINT = "uq_formfield_form_uid"
VERSION_NUMBER_CONSTRAINT = "uq_formversion_form_number"


class Form(models.Model):
    """A titled, ordered collection of fields."""

    id = models.CharField(max_length=64, primary_key=True, editable=False)
    title = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-updated_at", "id"]
        constraints = [
            models.UniqueConstraint(Lower("title"), name=TITLE_CONSTRAINT),
        ]

    def __str__(self) -> str:
        return f"{self.title} ({self.id})"


class FormField(models.Model):
    """A field that belongs to a form, stored at its list position."""

    uid = models.CharField(max_length=40)
    form = models.ForeignKey(Form, related_name="fields", on_delete=models.CASCADE)
    type = models.CharField(max_length=32, choices=field_types.FIELD_TYPES)
    label = models.CharField(max_length=field_types.MAX_LABEL_LENGTH)
    name = models.CharField(max_length=128)
    placeholder = models.CharField(max_length=field_types.MAX_PLACEHOLDER_LENGTH, blank=True)
    required = models.BooleanField(default=False)
    do_not_store = models.BooleanField(default=False)
    options = models.JSONField(default=list, blank=True)
    position = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["position", "id"]
        constraints = [
            models.UniqueConstraint(fields=["form", "name"], name=FIELD_NAME_CONSTRAINT),
            models.UniqueConstraint(fields=["form", "uid"], name=FIELD_ID_CONSTRAINT),
        ]

    def __str__(self) -> str:
        return f"{self.label} ({self.type})"


class FormSubmission(models.Model):
    """A stored copy of a public submission, kept only with consent."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    form = models.ForeignKey(Form, related_name="submissions", on_delete=models.CASCADE)
    payload = models.JSONField(default=dict)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["form", "created_at"], name="fb_submission_form_created"),
        ]


class FormVersion(models.Model):
    """Snapshot of a form's title and fields taken on every save."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    form = models.ForeignKey(Form, related_name="versions", on_delete=models.CASCADE)
    number = models.PositiveIntegerField()
    title = models.CharField(max_length=255)
    field_data = models.JSONField(default=list, blank=True)
    change_description = models.TextField(blank=True, default="")
    is_published = models.BooleanField(default=False)
    published_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-number"]
        constraints = [
            models.UniqueConstraint(fields=["form", "number"], name=VERSION_NUMBER_CONSTRAINT),
        ]

    def __str__(self) -> str:
        return f"{self.form_id} v{self.number}"
