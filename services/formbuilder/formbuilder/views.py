"""API views for the form builder service."""
from __future__ import annotations

from rest_framework import status, viewsets
from rest_framework.decorators import action, api_view
from rest_framework.request import Request
from rest_framework.response import Response

from .serializers import (
    FieldSerializer,
    FormSaveSerializer,
    FormVersionSerializer,
    FormUpdateSerializer,
    ReorderSerializer,
    SavedFormSerializer,
    SubmissionSerializer,
    SubmitSerializer,
    TitleCheckSerializer,
    to_fields,
)
from .services import FormCoordinator
from .tasks import record_submission


class FormViewSet(viewsets.ViewSet):
    lookup_value_regex = "[^/]+"

    def get_coordinator(self) -> FormCoordinator:
        return FormCoordinator()

    def list(self, request: Request) -> Response:
        forms = self.get_coordinator().list_forms()
        return Response(SavedFormSerializer(forms, many=True).data)

    def retrieve(self, request: Request, pk: str) -> Response:
        form = self.get_coordinator().read(pk)
        return Response(SavedFormSerializer(form).data)

    def create(self, request: Request) -> Response:
        """Create-or-update entry point: a body ``id`` updates that form."""

        serializer = FormSaveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        form_id = data.get("id") or None
        form = self.get_coordinator().save(
            title=data["title"],
            fields=to_fields(data.get("fields", [])),
            form_id=form_id,
            change_description=data["changeDescription"],
        )
        status_code = status.HTTP_200_OK if form_id else status.HTTP_201_CREATED
        return Response(SavedFormSerializer(form).data, status=status_code)

    def update(self, request: Request, pk: str) -> Response:
        serializer = FormUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        fields = data.get("fields")
        form = self.get_coordinator().update(
            pk,
            title=data.get("title"),
            fields=to_fields(fields) if fields is not None else None,
            change_description=data["changeDescription"],
        )
        return Response(SavedFormSerializer(form).data)

    def partial_update(self, request: Request, pk: str) -> Response:
        return self.update(request, pk)

    def destroy(self, request: Request, pk: str) -> Response:
        self.get_coordinator().delete(pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=["get"], url_path="check-title", url_name="check-title")
    def check_title(self, request: Request) -> Response:
        """Live uniqueness feedback for the title box."""

        serializer = TitleCheckSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        unique = self.get_coordinator().is_title_unique(
            data["title"], exclude_id=data["excludeId"] or None
        )
        return Response({"unique": unique})

    @action(detail=True, methods=["post"], url_path="reorder", url_name="reorder")
    def reorder(self, request: Request, pk: str) -> Response:
        serializer = ReorderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        coordinator = self.get_coordinator()
        if "fieldId" in data:
            form, moved = coordinator.drop_field(pk, data["fieldId"], data["previewIndex"])
        else:
            form, moved = coordinator.move_field(pk, data["fromIndex"], data["toIndex"])
        payload = SavedFormSerializer(form).data
        payload["moved"] = moved
        return Response(payload)

    @action(
        detail=True,
        methods=["post"],
        url_path=r"fields/(?P<field_id>[^/]+)/duplicate",
        url_name="duplicate-field",
    )
    def duplicate_field(self, request: Request, pk: str, field_id: str) -> Response:
        form, copy = self.get_coordinator().duplicate_field(pk, field_id)
        return Response(
            {"form": SavedFormSerializer(form).data, "field": FieldSerializer(copy).data},
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["post"], url_path="submit", url_name="submit")
    def submit(self, request: Request, pk: str) -> Response:
        """Public submission; stored asynchronously, and only with consent."""

        serializer = SubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        payload = self.get_coordinator().prepare_submission(pk, data["data"])
        if not data["storeConsent"]:
            return Response({"stored": False})
        record_submission.delay(pk, payload)
        return Response({"stored": True}, status=status.HTTP_202_ACCEPTED)

    @action(detail=True, methods=["get"], url_path="submissions", url_name="submissions")
    def submissions(self, request: Request, pk: str) -> Response:
        queryset = self.get_coordinator().submissions(pk)
        return Response(SubmissionSerializer(queryset, many=True).data)

    @action(detail=True, methods=["get"], url_path="versions", url_name="versions")
    def versions(self, request: Request, pk: str) -> Response:
        queryset = self.get_coordinator().versions(pk)
        return Response(FormVersionSerializer(queryset, many=True).data)

    @action(
        detail=True,
        methods=["post"],
        url_path=r"versions/(?P<number>[0-9]+)/publish",
        url_name="publish-version",
    )
    def publish_version(self, request: Request, pk: str, number: str) -> Response:
        """Make a stored version the live form and mark it published."""

        form, version = self.get_coordinator().publish_version(pk, int(number))
        return Response(
            {"form": SavedFormSerializer(form).data, "version": FormVersionSerializer(version).data}
        )


@api_view(["GET"])
def health(request: Request):  # type: ignore[override]
    """Readiness endpoint for orchestration tooling."""

    return Response({"status": "ok"})
