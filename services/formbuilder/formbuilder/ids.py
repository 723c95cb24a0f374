"""Readable form id generation: ``<slug-of-title>-<random suffix>``."""
from __future__ import annotations

import dataclasses
import logging
import re
import secrets
import string
from typing import Callable, Generic, Optional, TypeVar, Union

from django.conf import settings
from django.utils.text import slugify

logger = logging.getLogger(__name__)

T = TypeVar("T")

SUFFIX_ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase
DEFAULT_SLUG = "form"
SEPARATOR = "-"

_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]+")


@dataclasses.dataclass(frozen=True)
class Ok(Generic[T]):
    value: T
    attempts: int


@dataclasses.dataclass(frozen=True)
class Exhausted:
    attempts: int


RetryResult = Union[Ok[T], Exhausted]


def retry(generate: Callable[[], T], probe: Callable[[T], bool], max_attempts: int) -> RetryResult:
    """Generate candidates until ``probe`` accepts one or attempts run out.

    ``probe`` is called exactly once per generated candidate.
    """

    for attempt in range(1, max_attempts + 1):
        candidate = generate()
        if probe(candidate):
            return Ok(value=candidate, attempts=attempt)
        logger.info("Candidate %s is taken (attempt %d of %d)", candidate, attempt, max_attempts)
    return Exhausted(attempts=max_attempts)


def slugify_title(title: str) -> str:
    slug = _NON_ALPHANUMERIC.sub(SEPARATOR, slugify(title or "")).strip(SEPARATOR)
    return slug or DEFAULT_SLUG


def random_suffix(length: Optional[int] = None) -> str:
    if length is None:
        length = settings.FORM_ID_SUFFIX_LENGTH
    return "".join(secrets.choice(SUFFIX_ALPHABET) for _ in range(length))


def candidate_form_id(
    title: str,
    suffix_length: Optional[int] = None,
    max_length: Optional[int] = None,
) -> str:
    """Build one id candidate; the slug is cut so the suffix always fits."""

    if max_length is None:
        max_length = settings.FORM_ID_MAX_LENGTH
    suffix = random_suffix(suffix_length)
    room = max(max_length - len(suffix) - len(SEPARATOR), 1)
    slug = slugify_title(title)[:room].rstrip(SEPARATOR) or DEFAULT_SLUG[:room]
    return f"{slug}{SEPARATOR}{suffix}"
