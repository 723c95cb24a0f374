"""In-memory ordered field list with stable field identity."""
from __future__ import annotations

import dataclasses
import re
import secrets
import string
import unicodedata
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, TypeVar

from django.utils.text import slugify

from . import field_types

T = TypeVar("T")

FIELD_ID_PREFIX = "field_"
FIELD_ID_LENGTH = 8
_FIELD_ID_ALPHABET = string.digits + string.ascii_lowercase

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_TRAILING_NUMBER = re.compile(r"^(.*?)(\d+)$")


def new_field_id() -> str:
    suffix = "".join(secrets.choice(_FIELD_ID_ALPHABET) for _ in range(FIELD_ID_LENGTH))
    return FIELD_ID_PREFIX + suffix


def normalize_name(raw: Any) -> str:
    """NFKC-normalise an internal name and strip control characters."""

    text = unicodedata.normalize("NFKC", str(raw or ""))
    return _CONTROL_CHARS.sub("", text).strip()


def to_safe_snake(raw: Any) -> str:
    """Turn free text (usually a label) into a usable internal name."""

    text = slugify(str(raw or "")).replace("-", "_")
    text = re.sub(r"_+", "_", text).strip("_")
    if not text:
        return "field"
    if text[0].isdigit():
        text = "field_" + text
    return text


def numbered_name(stem: str, counter: int) -> str:
    """``stem`` followed by ``counter``, with the stem cut so the result fits a name."""

    suffix = str(counter)
    return stem[: field_types.MAX_NAME_LENGTH - len(suffix)] + suffix


def unique_field_name(base: str, existing: Iterable[str]) -> str:
    """Return ``base`` or the first free ``base1``, ``base2``, ..."""

    taken = set(existing)
    base = base[: field_types.MAX_NAME_LENGTH]
    if base not in taken:
        return base
    counter = 1
    while numbered_name(base, counter) in taken:
        counter += 1
    return numbered_name(base, counter)


def duplicate_name(source: str, existing: Iterable[str]) -> str:
    """Derive a free name for a copy of the field called ``source``.

    A trailing number on the source is continued (``email2`` -> ``email3``),
    otherwise numbering starts at 1.
    """

    taken = set(existing)
    base = to_safe_snake(normalize_name(source))
    match = _TRAILING_NUMBER.match(base)
    if match:
        stem, counter = match.group(1), int(match.group(2)) + 1
    else:
        stem, counter = base, 1
    while numbered_name(stem, counter) in taken:
        counter += 1
    return numbered_name(stem, counter)


def move(items: Sequence[T], from_index: int, to_index: int) -> Sequence[T]:
    """Return a copy of ``items`` with one element relocated.

    Out of range indexes and ``from_index == to_index`` return ``items``
    itself.
    """

    if (
        from_index == to_index
        or from_index < 0
        or to_index < 0
        or from_index >= len(items)
        or to_index > len(items)
    ):
        return items
    moved = list(items)
    item = moved.pop(from_index)
    moved.insert(to_index, item)
    return moved


@dataclasses.dataclass
class Field:
    """One form control definition."""

    type: str
    label: str = ""
    name: str = ""
    placeholder: str = ""
    required: bool = False
    do_not_store: bool = False
    options: List[str] = dataclasses.field(default_factory=list)
    id: str = ""
    position: Optional[int] = None

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "Field":
        do_not_store = data.get("do_not_store", data.get("doNotStore", False))
        return cls(
            id=str(data.get("id") or "").strip(),
            type=str(data.get("type") or ""),
            label=str(data.get("label") or ""),
            name=str(data.get("name") or ""),
            placeholder=str(data.get("placeholder") or ""),
            required=bool(data.get("required", False)),
            do_not_store=bool(do_not_store),
            options=field_types.parse_options(data.get("options")),
        )

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "label": self.label,
            "name": self.name,
            "placeholder": self.placeholder,
            "required": self.required,
            "doNotStore": self.do_not_store,
            "options": list(self.options),
            "position": self.position,
        }


class FieldList:
    """Authoritative ordered sequence of fields.

    List order is the render order; ``Field.position`` is only written
    when the list is serialised with :meth:`positioned`.
    """

    def __init__(self, fields: Iterable[Field] = ()) -> None:
        self._fields: List[Field] = list(fields)

    @classmethod
    def from_payload(cls, items: Iterable[Mapping[str, Any]]) -> "FieldList":
        field_list = cls()
        for item in items:
            field_list.insert(Field.from_payload(item))
        return field_list

    def __iter__(self) -> Iterator[Field]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __getitem__(self, index: int) -> Field:
        return self._fields[index]

    def __repr__(self) -> str:
        return f"FieldList({self.ids()!r})"

    def ids(self) -> List[str]:
        return [field.id for field in self._fields]

    def names(self) -> List[str]:
        return [field.name for field in self._fields]

    def index_of(self, field_id: str) -> int:
        for index, field in enumerate(self._fields):
            if field.id == field_id:
                return index
        return -1

    def get(self, field_id: str) -> Optional[Field]:
        index = self.index_of(field_id)
        return self._fields[index] if index >= 0 else None

    def insert(self, field: Field, at_end: bool = True) -> Field:
        """Add ``field``; a missing or already used id is replaced."""

        if not field.id or self.index_of(field.id) >= 0:
            field.id = new_field_id()
        if at_end:
            self._fields.append(field)
        else:
            self._fields.insert(0, field)
        return field

    def add(self, field_type: str, **attributes: Any) -> Field:
        """Create a field with per-type defaults and a free default name."""

        label = attributes.pop("label", None) or field_types.default_label(field_type)
        field = Field(
            type=field_type,
            label=label,
            placeholder=attributes.pop("placeholder", field_types.default_placeholder(field_type)),
            options=field_types.parse_options(
                attributes.pop("options", field_types.default_options(field_type))
            ),
            **attributes,
        )
        if not field.name:
            field.name = unique_field_name(to_safe_snake(label or field_type), self.names())
        return self.insert(field)

    def remove_by_id(self, field_id: str) -> bool:
        index = self.index_of(field_id)
        if index < 0:
            return False
        del self._fields[index]
        return True

    def duplicate(self, field_id: str) -> Optional[Field]:
        """Insert a copy right after ``field_id``; ``None`` if it is absent."""

        index = self.index_of(field_id)
        if index < 0:
            return None
        source = self._fields[index]
        if normalize_name(source.name):
            name = duplicate_name(source.name, self.names())
        else:
            name = unique_field_name(to_safe_snake(source.label or source.type), self.names())
        copy = dataclasses.replace(
            source,
            id=new_field_id(),
            name=name,
            options=list(source.options),
            position=None,
        )
        self._fields.insert(index + 1, copy)
        return copy

    def move(self, from_index: int, to_index: int) -> "FieldList":
        moved = move(self._fields, from_index, to_index)
        if moved is self._fields:
            return self
        return FieldList(moved)

    def positioned(self) -> List[Field]:
        """Copies of the fields with ``position`` set from list order."""

        return [
            dataclasses.replace(field, options=list(field.options), position=index)
            for index, field in enumerate(self._fields)
        ]
