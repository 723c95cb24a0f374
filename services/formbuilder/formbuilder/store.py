"""Storage access for forms, fields and submissions.

Every method runs on the default connection, so calls made inside
:meth:`FormStore.atomic` share one transaction.
"""
from __future__ import annotations

from typing import Any, ContextManager, Dict, Iterable, List, Optional

from django.db import transaction
from django.db.models import Max, QuerySet
from django.utils import timezone

from .field_list import Field, FieldList, new_field_id
from .models import Form, FormField, FormSubmission, FormVersion


def field_from_row(row: FormField) -> Field:
    return Field(
        id=row.uid,
        type=row.type,
        label=row.label,
        name=row.name,
        placeholder=row.placeholder,
        required=row.required,
        do_not_store=row.do_not_store,
        options=list(row.options or []),
        position=row.position,
    )


class FormStore:
    def atomic(self) -> ContextManager[Any]:
        return transaction.atomic()

    def find_form_by_id(self, form_id: str, for_update: bool = False) -> Optional[Form]:
        queryset = Form.objects.all()
        if for_update:
            queryset = queryset.select_for_update()
        return queryset.filter(pk=form_id).first()

    def find_form_by_title_case_insensitive(
        self, title: str, exclude_id: Optional[str] = None
    ) -> Optional[Form]:
        queryset = Form.objects.filter(title__iexact=title)
        if exclude_id:
            queryset = queryset.exclude(pk=exclude_id)
        return queryset.first()

    def insert_form(self, form_id: str, title: str) -> Form:
        return Form.objects.create(id=form_id, title=title)

    def update_form(self, form: Form, title: Optional[str] = None) -> Form:
        """Persist a title change, or just bump ``updated_at``."""

        if title is not None:
            form.title = title
            form.save(update_fields=["title", "updated_at"])
        else:
            form.save(update_fields=["updated_at"])
        return form

    def insert_fields(self, form: Form, fields: Iterable[Field]) -> List[FormField]:
        rows = [
            FormField(
                uid=field.id or new_field_id(),
                form=form,
                type=field.type,
                label=field.label,
                name=field.name,
                placeholder=field.placeholder,
                required=field.required,
                do_not_store=field.do_not_store,
                options=list(field.options),
                position=index if field.position is None else field.position,
            )
            for index, field in enumerate(fields)
        ]
        return FormField.objects.bulk_create(rows)

    def delete_fields_by_form(self, form: Form) -> int:
        deleted, _ = FormField.objects.filter(form=form).delete()
        return deleted

    def load_fields(self, form: Form) -> FieldList:
        rows = FormField.objects.filter(form=form).order_by("position", "id")
        return FieldList(field_from_row(row) for row in rows)

    def list_forms(self) -> QuerySet:
        return Form.objects.prefetch_related("fields").order_by("-updated_at", "id")

    def delete_form(self, form: Form) -> None:
        form.delete()

    def insert_submission(self, form_id: str, payload: Dict[str, Any]) -> FormSubmission:
        return FormSubmission.objects.create(form_id=form_id, payload=payload)

    def list_submissions(self, form: Form) -> QuerySet:
        return FormSubmission.objects.filter(form=form).order_by("-created_at")

    def next_version_number(self, form: Form) -> int:
        latest = FormVersion.objects.filter(form=form).aggregate(latest=Max("number"))["latest"]
        return (latest or 0) + 1

    def insert_version(
        self,
        form: Form,
        number: int,
        title: str,
        field_data: List[Dict[str, Any]],
        change_description: str = "",
    ) -> FormVersion:
        return FormVersion.objects.create(
            form=form,
            number=number,
            title=title,
            field_data=field_data,
            change_description=change_description,
        )

    def find_version(self, form: Form, number: int) -> Optional[FormVersion]:
        return FormVersion.objects.filter(form=form, number=number).first()

    def list_versions(self, form: Form) -> QuerySet:
        return FormVersion.objects.filter(form=form).order_by("-number")

    def publish_version(self, version: FormVersion) -> FormVersion:
        """Mark ``version`` as the only published version of its form."""

        FormVersion.objects.filter(form_id=version.form_id, is_published=True).exclude(
            pk=version.pk
        ).update(is_published=False, published_at=None)
        version.is_published = True
        version.published_at = timezone.now()
        version.save(update_fields=["is_published", "published_at"])
        return version
