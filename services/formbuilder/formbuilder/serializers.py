"""Serializers for the form builder API."""
from __future__ import annotations

from typing import Any, Dict, List

from rest_framework import serializers

from .field_list import Field
from .models import FormSubmission, FormVersion


class FieldInputSerializer(serializers.Serializer):
    """Shape check only; content rules live in the validation module."""

    id = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=40)
    type = serializers.CharField(max_length=32)
    label = serializers.CharField(required=False, allow_blank=True, default="")
    name = serializers.CharField(required=False, allow_blank=True, default="")
    placeholder = serializers.CharField(required=False, allow_blank=True, default="")
    required = serializers.BooleanField(required=False, default=False)
    doNotStore = serializers.BooleanField(required=False, default=False)
    options = serializers.JSONField(required=False, default=list)

    def validate_options(self, value: Any) -> Any:
        if value is None:
            return []
        if not isinstance(value, (str, list)):
            raise serializers.ValidationError("Must be a list or a comma separated string.")
        return value


def to_fields(items: List[Dict[str, Any]]) -> List[Field]:
    return [Field.from_payload(item) for item in items]


class FormSaveSerializer(serializers.Serializer):
    id = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=64)
    title = serializers.CharField(allow_blank=True, trim_whitespace=False)
    fields = FieldInputSerializer(many=True, required=False, default=list)
    changeDescription = serializers.CharField(required=False, allow_blank=True, default="")


class FormUpdateSerializer(serializers.Serializer):
    title = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)
    fields = FieldInputSerializer(many=True, required=False)
    changeDescription = serializers.CharField(required=False, allow_blank=True, default="")


class FieldSerializer(serializers.Serializer):
    id = serializers.CharField()
    type = serializers.CharField()
    label = serializers.CharField()
    name = serializers.CharField()
    placeholder = serializers.CharField()
    required = serializers.BooleanField()
    doNotStore = serializers.BooleanField(source="do_not_store")
    options = serializers.ListField(child=serializers.CharField())
    position = serializers.IntegerField(allow_null=True)


class SavedFormSerializer(serializers.Serializer):
    id = serializers.CharField()
    title = serializers.CharField()
    fields = FieldSerializer(many=True)
    createdAt = serializers.DateTimeField(source="created_at", allow_null=True)
    updatedAt = serializers.DateTimeField(source="updated_at", allow_null=True)


class TitleCheckSerializer(serializers.Serializer):
    title = serializers.CharField(required=False, allow_blank=True, default="", trim_whitespace=False)
    excludeId = serializers.CharField(required=False, allow_blank=True, default="")


class ReorderSerializer(serializers.Serializer):
    """Either an explicit ``fromIndex``/``toIndex`` move or a finished drag."""

    fromIndex = serializers.IntegerField(required=False)
    toIndex = serializers.IntegerField(required=False)
    fieldId = serializers.CharField(required=False)
    previewIndex = serializers.IntegerField(required=False, min_value=0)

    def validate(self, attrs: Dict[str, Any]) -> Dict[str, Any]:  # type: ignore[override]
        has_move = "fromIndex" in attrs and "toIndex" in attrs
        has_drop = "fieldId" in attrs and "previewIndex" in attrs
        if has_move == has_drop:
            raise serializers.ValidationError(
                "Send either fromIndex and toIndex, or fieldId and previewIndex."
            )
        return attrs


class SubmitSerializer(serializers.Serializer):
    data = serializers.DictField(required=False, default=dict)
    storeConsent = serializers.BooleanField(required=False, default=False)


class SubmissionSerializer(serializers.ModelSerializer):
    class Meta:
        model = FormSubmission
        fields = [
            "id",
            "form",
            "payload",
            "created_at",
        ]


class FormVersionSerializer(serializers.ModelSerializer):
    fields = serializers.JSONField(source="field_data")
    changeDescription = serializers.CharField(source="change_description")
    isPublished = serializers.BooleanField(source="is_published")
    publishedAt = serializers.DateTimeField(source="published_at", allow_null=True)
    createdAt = serializers.DateTimeField(source="created_at")

    class Meta:
        model = FormVersion
        fields = [
            "id",
            "number",
            "title",
            "fields",
            "changeDescription",
            "isPublished",
            "publishedAt",
            "createdAt",
        ]
