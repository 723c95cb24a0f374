"""Field type catalogue shared by validation, option parsing and defaults."""
from __future__ import annotations

from typing import Dict, FrozenSet, Iterable, List, Union

SINGLE_LINE = "singleLine"
PARAGRAPH = "paragraph"
DROPDOWN = "dropdown"
MULTIPLE_CHOICE = "multipleChoice"
CHECKBOXES = "checkboxes"
NUMBER = "number"
NAME = "name"
EMAIL = "email"
PHONE = "phone"
PASSWORD = "password"
DATE = "date"
TIME = "time"
DATETIME = "datetime"
URL = "url"
FILE = "file"
RICH_TEXT = "richText"

FIELD_TYPES = [
    (SINGLE_LINE, "Single Line Text"),
    (PARAGRAPH, "Paragraph Text"),
    (DROPDOWN, "Dropdown"),
    (MULTIPLE_CHOICE, "Multiple Choice"),
    (CHECKBOXES, "Checkboxes"),
    (NUMBER, "Number"),
    (NAME, "Full Name"),
    (EMAIL, "Email"),
    (PHONE, "Phone Number"),
    (PASSWORD, "Password"),
    (DATE, "Date"),
    (TIME, "Time"),
    (DATETIME, "Datetime"),
    (URL, "URL"),
    (FILE, "File Upload"),
    (RICH_TEXT, "Rich Text"),
]

TYPE_VALUES: FrozenSet[str] = frozenset(value for value, _ in FIELD_TYPES)

CHOICE_TYPES: FrozenSet[str] = frozenset({DROPDOWN, MULTIPLE_CHOICE, CHECKBOXES})

LABEL = "label"
INTERNAL_NAME = "name"
OPTIONS = "options"

# Attributes every field must carry, plus the extra ones choice types need.
REQUIRED_ATTRIBUTES: Dict[str, FrozenSet[str]] = {
    field_type: frozenset({LABEL, INTERNAL_NAME, OPTIONS})
    if field_type in CHOICE_TYPES
    else frozenset({LABEL, INTERNAL_NAME})
    for field_type in TYPE_VALUES
}

MAX_LABEL_LENGTH = 255
MAX_NAME_LENGTH = 64
MAX_PLACEHOLDER_LENGTH = 255

_DEFAULT_PLACEHOLDERS = {
    SINGLE_LINE: "Enter text…",
    PARAGRAPH: "Type your message…",
    DROPDOWN: "Select…",
    NUMBER: "0",
    EMAIL: "email@example.com",
    PHONE: "Phone number",
    URL: "https://example.com",
}

DEFAULT_OPTIONS = ["Option 1", "Option 2"]


def is_known_type(field_type: str) -> bool:
    return field_type in TYPE_VALUES


def required_attributes(field_type: str) -> FrozenSet[str]:
    """Return the attributes a field of ``field_type`` must have filled in."""

    return REQUIRED_ATTRIBUTES.get(field_type, frozenset({LABEL, INTERNAL_NAME}))


def needs_options(field_type: str) -> bool:
    return OPTIONS in required_attributes(field_type)


def parse_options(raw: Union[str, Iterable[object], None]) -> List[str]:
    """Split options given as a comma separated string or a list.

    Entries are trimmed and empty ones dropped; order is preserved.
    """

    if raw is None:
        return []
    if isinstance(raw, str):
        parts: Iterable[object] = raw.split(",")
    else:
        parts = raw
    return [str(part).strip() for part in parts if str(part).strip()]


def default_label(field_type: str) -> str:
    return dict(FIELD_TYPES).get(field_type, field_type or "")


def default_placeholder(field_type: str) -> str:
    return _DEFAULT_PLACEHOLDERS.get(field_type, "")


def default_options(field_type: str) -> List[str]:
    return list(DEFAULT_OPTIONS) if field_type in CHOICE_TYPES else []
