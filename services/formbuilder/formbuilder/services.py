"""Create, update and query forms with all writes in one transaction."""
from __future__ import annotations

import dataclasses
import logging
import re
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from django.conf import settings
from django.db import DatabaseError, IntegrityError

from . import reorder
from .exceptions import (
    FormNotFound,
    IdGenerationExhausted,
    StorageFailure,
    TitleConflict,
    classify_integrity_error,
    is_form_id_collision,
)
from .field_list import Field, FieldList, new_field_id
from .ids import Exhausted, candidate_form_id, retry
from .models import Form, FormVersion
from .store import FormStore, field_from_row
from .validation import normalize_title, validate_fields, validate_title

logger = logging.getLogger(__name__)

_NON_UPPER_WORD = re.compile(r"[^A-Z0-9]+")
_UNSAFE_KEY = re.compile(r"[^a-zA-Z0-9_]")


@dataclasses.dataclass(frozen=True)
class SavedForm:
    id: str
    title: str
    fields: List[Field]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, form: Form, fields: Iterable[Field]) -> "SavedForm":
        return cls(
            id=form.id,
            title=form.title,
            fields=list(fields),
            created_at=form.created_at,
            updated_at=form.updated_at,
        )


def submission_prefix(title: str) -> str:
    prefix = _NON_UPPER_WORD.sub("_", (title or "").upper()).strip("_")
    return prefix or "FORM"


def submission_key(key: Any) -> str:
    return _UNSAFE_KEY.sub("_", str(key or ""))


class FormCoordinator:
    """Turns an in-memory field list into stored rows.

    Updates replace the whole stored field set rather than diffing it.
    """

    def __init__(self, store: Optional[FormStore] = None, max_attempts: Optional[int] = None) -> None:
        self.store = store or FormStore()
        self.max_attempts = max_attempts or settings.FORM_ID_MAX_ATTEMPTS

    @contextmanager
    def _transaction(self, action: str, form_id: Optional[str] = None) -> Iterator[None]:
        try:
            with self.store.atomic():
                yield
        except IntegrityError as exc:
            error = classify_integrity_error(exc)
            logger.warning("%s of form %s rejected by storage (%s): %s", action, form_id, error.kind, exc)
            raise error from exc
        except DatabaseError as exc:
            logger.exception("%s of form %s failed", action, form_id)
            raise StorageFailure() from exc

    def _get_form(self, form_id: str, for_update: bool = False) -> Form:
        form = self.store.find_form_by_id(form_id, for_update=for_update)
        if form is None:
            raise FormNotFound()
        return form

    def _write_fields(self, form: Form, fields: FieldList) -> List[Field]:
        positioned = fields.positioned()
        for field in positioned:
            if not field.id:
                field.id = new_field_id()
        self.store.delete_fields_by_form(form)
        self.store.insert_fields(form, positioned)
        return positioned

    def is_title_unique(self, title: str, exclude_id: Optional[str] = None) -> bool:
        normalized = normalize_title(title)
        if not normalized:
            return False
        return self.store.find_form_by_title_case_insensitive(normalized, exclude_id) is None

    def _claim_form_id(self, candidate: str, title: str, claimed: List[Form]) -> bool:
        """Insert the form under ``candidate``; ``False`` if the id is taken."""

        if self.store.find_form_by_id(candidate) is not None:
            return False
        try:
            with self.store.atomic():
                claimed.append(self.store.insert_form(candidate, title))
        except IntegrityError as exc:
            if not is_form_id_collision(exc):
                raise
            logger.info("Form id %s was taken concurrently", candidate)
            return False
        return True

    def _record_version(self, form: Form, fields: Iterable[Field], change_description: str = "") -> FormVersion:
        number = self.store.next_version_number(form)
        return self.store.insert_version(
            form,
            number,
            form.title,
            [field.to_payload() for field in fields],
            change_description,
        )

    def create(self, title: str, fields: Iterable[Field], change_description: str = "") -> SavedForm:
        title = validate_title(title)
        cleaned = validate_fields(fields)

        with self._transaction("create"):
            if self.store.find_form_by_title_case_insensitive(title) is not None:
                raise TitleConflict()

            claimed: List[Form] = []
            result = retry(
                lambda: candidate_form_id(title),
                lambda candidate: self._claim_form_id(candidate, title, claimed),
                self.max_attempts,
            )
            if isinstance(result, Exhausted):
                logger.error("No free form id for %r after %d attempts", title, result.attempts)
                raise IdGenerationExhausted()

            form = claimed[-1]
            stored = self._write_fields(form, cleaned)
            self._record_version(form, stored, change_description)

        logger.info("Created form %s with %d fields", form.id, len(stored))
        return SavedForm.from_model(form, stored)

    def update(
        self,
        form_id: str,
        title: Optional[str] = None,
        fields: Optional[Iterable[Field]] = None,
        change_description: str = "",
    ) -> SavedForm:
        """Apply a title change and/or replace the field set.

        ``None`` leaves that part untouched. Every update is recorded as a
        new version of the form.
        """

        self._get_form(form_id)
        new_title = validate_title(title) if title is not None else None
        cleaned = validate_fields(fields) if fields is not None else None

        with self._transaction("update", form_id):
            form = self._get_form(form_id, for_update=True)
            if new_title is not None:
                if self.store.find_form_by_title_case_insensitive(new_title, exclude_id=form.id):
                    raise TitleConflict()
            self.store.update_form(form, new_title)
            if cleaned is not None:
                stored = self._write_fields(form, cleaned)
            else:
                stored = list(self.store.load_fields(form))
            self._record_version(form, stored, change_description)

        logger.info("Updated form %s (%d fields)", form.id, len(stored))
        return SavedForm.from_model(form, stored)

    def save(
        self,
        title: str,
        fields: Iterable[Field],
        form_id: Optional[str] = None,
        change_description: str = "",
    ) -> SavedForm:
        """Create-or-update entry point: an id means update."""

        if form_id:
            return self.update(form_id, title=title, fields=fields, change_description=change_description)
        return self.create(title, fields, change_description=change_description)

    def read(self, form_id: str) -> SavedForm:
        form = self._get_form(form_id)
        return SavedForm.from_model(form, self.store.load_fields(form))

    def list_forms(self) -> List[SavedForm]:
        return [
            SavedForm.from_model(form, (field_from_row(row) for row in form.fields.all()))
            for form in self.store.list_forms()
        ]

    def delete(self, form_id: str) -> None:
        with self._transaction("delete", form_id):
            form = self._get_form(form_id, for_update=True)
            self.store.delete_form(form)
        logger.info("Deleted form %s", form_id)

    def move_field(self, form_id: str, from_index: int, to_index: int) -> Tuple[SavedForm, bool]:
        """Move one stored field; returns the form and whether anything changed."""

        with self._transaction("move", form_id):
            form = self._get_form(form_id, for_update=True)
            current = self.store.load_fields(form)
            moved = reorder.commit(current, from_index, to_index)
            if moved is current:
                return SavedForm.from_model(form, current), False
            self.store.update_form(form)
            stored = self._write_fields(form, moved)
        return SavedForm.from_model(form, stored), True

    def drop_field(self, form_id: str, field_id: str, preview_index: int) -> Tuple[SavedForm, bool]:
        """Resolve a finished drag (field plus placeholder index) against storage."""

        with self._transaction("drop", form_id):
            form = self._get_form(form_id, for_update=True)
            current = self.store.load_fields(form)
            session = reorder.begin_drag(current, field_id)
            if not session.active:
                raise FormNotFound(detail="Field not found.")
            session = dataclasses.replace(session, preview_index=preview_index)
            outcome = reorder.drop(session, current)
            if not outcome.moved:
                return SavedForm.from_model(form, current), False
            self.store.update_form(form)
            stored = self._write_fields(form, outcome.fields)
        return SavedForm.from_model(form, stored), True

    def duplicate_field(self, form_id: str, field_id: str) -> Tuple[SavedForm, Field]:
        with self._transaction("duplicate", form_id):
            form = self._get_form(form_id, for_update=True)
            current = self.store.load_fields(form)
            copy = current.duplicate(field_id)
            if copy is None:
                raise FormNotFound(detail="Field not found.")
            self.store.update_form(form)
            stored = self._write_fields(form, current)
        created = next(field for field in stored if field.id == copy.id)
        return SavedForm.from_model(form, stored), created

    def prepare_submission(self, form_id: str, data: Mapping[str, Any]) -> Dict[str, Any]:
        """Prefix submitted keys with the form title and drop do-not-store fields."""

        form = self._get_form(form_id)
        by_name = {field.name: field for field in self.store.load_fields(form)}
        prefix = submission_prefix(form.title)
        payload: Dict[str, Any] = {}
        for key, value in data.items():
            field = by_name.get(key)
            if field is not None and field.do_not_store:
                continue
            payload[f"{prefix}_{submission_key(key)}"] = value
        return payload

    def record_submission(self, form_id: str, payload: Dict[str, Any]):
        with self._transaction("submit", form_id):
            form = self._get_form(form_id)
            return self.store.insert_submission(form.id, payload)

    def submissions(self, form_id: str):
        return self.store.list_submissions(self._get_form(form_id))

    def versions(self, form_id: str):
        return self.store.list_versions(self._get_form(form_id))

    def publish_version(self, form_id: str, number: int) -> Tuple[SavedForm, FormVersion]:
        """Publish version ``number`` and make its title and fields the live form."""

        with self._transaction("publish", form_id):
            form = self._get_form(form_id, for_update=True)
            version = self.store.find_version(form, number)
            if version is None:
                raise FormNotFound(detail="Version not found.")
            if self.store.find_form_by_title_case_insensitive(version.title, exclude_id=form.id):
                raise TitleConflict()
            self.store.update_form(form, version.title)
            stored = self._write_fields(
                form, FieldList(Field.from_payload(item) for item in version.field_data)
            )
            self.store.publish_version(version)

        logger.info("Published version %d of form %s", version.number, form.id)
        return SavedForm.from_model(form, stored), version
