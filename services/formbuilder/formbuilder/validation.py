"""Checks a field list must pass before it is written to storage."""
from __future__ import annotations

import dataclasses
import re
import unicodedata
from typing import Any, Iterable, Optional

from . import field_types
from .exceptions import ValidationFailed
from .field_list import Field, FieldList, normalize_name

NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")

TITLE_REQUIRED = "title_required"
TITLE_TOO_LONG = "title_too_long"
TYPE_UNKNOWN = "type_unknown"
LABEL_REQUIRED = "label_required"
LABEL_TOO_LONG = "label_too_long"
NAME_REQUIRED = "name_required"
NAME_TOO_LONG = "name_too_long"
NAME_PATTERN_MISMATCH = "name_pattern"
NAME_DUPLICATE = "name_duplicate"
FIELD_ID_DUPLICATE = "field_id_duplicate"
PLACEHOLDER_TOO_LONG = "placeholder_too_long"
OPTIONS_REQUIRED = "options_required"

MAX_TITLE_LENGTH = 255


@dataclasses.dataclass(frozen=True)
class FieldViolation:
    index: int
    field_id: str
    name: str
    rule: str
    message: str


def normalize_title(raw: Any) -> str:
    return unicodedata.normalize("NFKC", str(raw or "")).strip()


def validate_title(raw: Any) -> str:
    """Return the normalised title or raise ``ValidationFailed``."""

    title = normalize_title(raw)
    if not title:
        raise ValidationFailed(detail="Form title is required.", rule=TITLE_REQUIRED)
    if len(title) > MAX_TITLE_LENGTH:
        raise ValidationFailed(
            detail=f"Form title must be no more than {MAX_TITLE_LENGTH} characters long.",
            rule=TITLE_TOO_LONG,
        )
    return title


def clean_field(field: Field) -> Field:
    """Normalise a field without judging it.

    Names are NFKC-normalised, choice types get their options re-parsed and
    every other type loses its options.
    """

    options = field_types.parse_options(field.options) if field_types.needs_options(field.type) else []
    return dataclasses.replace(
        field,
        label=field.label.strip(),
        name=normalize_name(field.name),
        placeholder=field.placeholder.strip(),
        options=options,
    )


def clean_fields(fields: Iterable[Field]) -> FieldList:
    return FieldList(clean_field(field) for field in fields)


def check_field(field: Field, index: int = 0) -> Optional[FieldViolation]:
    def violation(rule: str, message: str) -> FieldViolation:
        return FieldViolation(
            index=index, field_id=field.id, name=field.name, rule=rule, message=f"Field {index + 1}: {message}"
        )

    if not field_types.is_known_type(field.type):
        return violation(TYPE_UNKNOWN, f"unknown field type {field.type!r}.")

    label = field.label.strip()
    if not label:
        return violation(LABEL_REQUIRED, "Field label is required.")
    if len(label) > field_types.MAX_LABEL_LENGTH:
        return violation(
            LABEL_TOO_LONG,
            f"Field label must be no more than {field_types.MAX_LABEL_LENGTH} characters long.",
        )

    name = normalize_name(field.name)
    if not name:
        return violation(NAME_REQUIRED, "Field name is required.")
    if len(name) > field_types.MAX_NAME_LENGTH:
        return violation(
            NAME_TOO_LONG,
            f"Field name must be no more than {field_types.MAX_NAME_LENGTH} characters long.",
        )
    if not NAME_PATTERN.match(name):
        return violation(
            NAME_PATTERN_MISMATCH,
            "Field name must start with a letter and contain only letters, numbers, and underscores.",
        )

    if len(field.placeholder) > field_types.MAX_PLACEHOLDER_LENGTH:
        return violation(
            PLACEHOLDER_TOO_LONG,
            f"Placeholder must be no more than {field_types.MAX_PLACEHOLDER_LENGTH} characters long.",
        )

    if field_types.needs_options(field.type) and not field_types.parse_options(field.options):
        return violation(OPTIONS_REQUIRED, "Options are required for this field type.")
    return None


def check_fields(fields: Iterable[Field]) -> Optional[FieldViolation]:
    """First violation in the set, or ``None``.

    Each field is checked on its own before names are compared across the
    set.
    """

    fields = list(fields)
    for index, field in enumerate(fields):
        found = check_field(field, index)
        if found is not None:
            return found

    seen = set()
    for index, field in enumerate(fields):
        name = normalize_name(field.name)
        if name in seen:
            return FieldViolation(
                index=index,
                field_id=field.id,
                name=field.name,
                rule=NAME_DUPLICATE,
                message=f'Field names must be unique within a form. Duplicate: "{name}"',
            )
        seen.add(name)

    seen_ids = set()
    for index, field in enumerate(fields):
        if not field.id:
            continue
        if field.id in seen_ids:
            return FieldViolation(
                index=index,
                field_id=field.id,
                name=field.name,
                rule=FIELD_ID_DUPLICATE,
                message=f'Field ids must be unique within a form. Duplicate: "{field.id}"',
            )
        seen_ids.add(field.id)
    return None


def validate_fields(fields: Iterable[Field]) -> FieldList:
    """Clean and check ``fields``; raise ``ValidationFailed`` on the first problem."""

    cleaned = clean_fields(fields)
    found = check_fields(cleaned)
    if found is not None:
        raise ValidationFailed(found)
    return cleaned
