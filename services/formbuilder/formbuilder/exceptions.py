"""Error kinds raised by the form builder and their HTTP rendering."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Optional

from django.db import IntegrityError
from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

from .models import FIELD_ID_CONSTRAINT, FIELD_NAME_CONSTRAINT, TITLE_CONSTRAINT

if TYPE_CHECKING:
    from .validation import FieldViolation

logger = logging.getLogger(__name__)

# SQLite names the columns rather than the constraint.
FIELD_NAME_COLUMNS = "formbuilder_formfield.form_id, formbuilder_formfield.name"
FIELD_ID_COLUMNS = "formbuilder_formfield.form_id, formbuilder_formfield.uid"
FORM_ID_COLUMN = "formbuilder_form.id"
FORM_PRIMARY_KEY = "formbuilder_form_pkey"


class FormServiceError(APIException):
    """Base class; ``kind`` is the machine readable error name."""

    kind = "StorageFailure"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "The form could not be saved."

    def __init__(self, detail: Optional[str] = None, **extra: Any) -> None:
        super().__init__(detail)
        self.extra: Dict[str, Any] = extra


class ValidationFailed(FormServiceError):
    kind = "ValidationFailed"
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid form definition."

    def __init__(
        self,
        violation: Optional["FieldViolation"] = None,
        detail: Optional[str] = None,
        rule: Optional[str] = None,
    ) -> None:
        extra: Dict[str, Any] = {"rule": rule} if rule else {}
        if violation is not None:
            detail = detail or violation.message
            extra = {
                "field": violation.field_id,
                "index": violation.index,
                "rule": violation.rule,
            }
        super().__init__(detail, **extra)
        self.violation = violation


class TitleConflict(FormServiceError):
    kind = "TitleConflict"
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Form title already exists. Choose another."


class FieldUniquenessConflict(FormServiceError):
    kind = "FieldUniquenessConflict"
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Field names must be unique within a form."


class IdGenerationExhausted(FormServiceError):
    kind = "IdGenerationExhausted"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Could not generate a unique form id."


class FormNotFound(FormServiceError):
    kind = "NotFound"
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Form not found."


class StorageFailure(FormServiceError):
    kind = "StorageFailure"


def classify_integrity_error(exc: IntegrityError) -> FormServiceError:
    """Map a constraint violation raised at write time to an error kind."""

    message = str(exc).lower()
    if TITLE_CONSTRAINT in message:
        return TitleConflict()
    if FIELD_NAME_CONSTRAINT in message or FIELD_NAME_COLUMNS in message:
        return FieldUniquenessConflict()
    if FIELD_ID_CONSTRAINT in message or FIELD_ID_COLUMNS in message:
        return FieldUniquenessConflict(detail="Field ids must be unique within a form.")
    return StorageFailure()


def is_form_id_collision(exc: IntegrityError) -> bool:
    message = str(exc).lower()
    return FORM_PRIMARY_KEY in message or FORM_ID_COLUMN in message


def form_exception_handler(exc: Exception, context: Dict[str, Any]) -> Optional[Response]:
    """REST framework exception handler adding an ``error`` kind to bodies."""

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, FormServiceError):
        if response.status_code >= 500:
            logger.error("%s: %s", exc.kind, exc.detail)
        response.data = {"error": exc.kind, "detail": str(exc.detail), **exc.extra}
    elif isinstance(exc, ValidationError):
        if isinstance(response.data, dict):
            response.data = {"error": ValidationFailed.kind, **response.data}
        else:
            response.data = {"error": ValidationFailed.kind, "detail": response.data}
    return response
