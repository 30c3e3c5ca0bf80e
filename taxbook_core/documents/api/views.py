# taxbook_core/documents/api/views.py
from __future__ import annotations

from django.core.exceptions import ValidationError as DjangoValidationError
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound, ValidationError as DRFValidationError
from rest_framework.response import Response

from taxbook_core.common.api.views import ListingViewSet
from taxbook_core.documents.api.serializers import (
    DocumentCreateSerializer,
    DocumentSerializer,
    DocumentUpdateSerializer,
)
from taxbook_core.documents.models import Document
from taxbook_core.documents.selectors import documents_filtered, get_document
from taxbook_core.documents.services import DocumentService
from taxbook_core.workflows.api.serializers import AllowedTransitionsSerializer, TransitionRequestSerializer


class DocumentViewSet(ListingViewSet):
    """
    Client tax documents: requested -> uploaded -> reviewed -> accepted | rejected.
    """

    serializer_class = DocumentSerializer
    queryset = Document.objects.none()

    def _get_visible(self, request, pk) -> Document:
        document = get_document(user=request.user, document_id=pk)
        if document is None:
            raise NotFound("Document not found.")
        return document

    @extend_schema(
        tags=["Documents"],
        responses={200: DocumentSerializer(many=True)},
        parameters=[
            OpenApiParameter(name="status", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="client_id", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(
                name="appointment_id", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY, required=False
            ),
            OpenApiParameter(
                name="document_type", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False
            ),
            OpenApiParameter(name="tax_year", type=OpenApiTypes.INT, location=OpenApiParameter.QUERY, required=False),
        ],
    )
    def list(self, request):
        try:
            qs = documents_filtered(user=request.user, params=request.query_params)
        except DjangoValidationError as e:
            raise DRFValidationError(e.message_dict if hasattr(e, "error_dict") else {"detail": e.messages})
        return self.paginated(qs, DocumentSerializer)

    @extend_schema(tags=["Documents"], responses={200: DocumentSerializer})
    def retrieve(self, request, pk=None):
        return Response(DocumentSerializer(self._get_visible(request, pk)).data)

    @extend_schema(tags=["Documents"], request=DocumentCreateSerializer, responses={201: DocumentSerializer})
    def create(self, request):
        ser = DocumentCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        document = DocumentService.create_document(user=request.user, data=dict(ser.validated_data))
        return Response(DocumentSerializer(document).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Documents"], request=DocumentUpdateSerializer, responses={200: DocumentSerializer})
    def partial_update(self, request, pk=None):
        ser = DocumentUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        document = DocumentService.update_document(
            user=request.user,
            document_id=pk,
            changes=dict(ser.validated_data),
        )
        return Response(DocumentSerializer(document).data)

    @extend_schema(tags=["Documents"], responses={204: None})
    def destroy(self, request, pk=None):
        DocumentService.delete_document(user=request.user, document_id=pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(tags=["Documents"], request=TransitionRequestSerializer, responses={200: DocumentSerializer})
    @action(detail=True, methods=["post", "patch"])
    def transition(self, request, pk=None):
        ser = TransitionRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        document = DocumentService.transition_document(
            user=request.user,
            document_id=pk,
            transition=ser.validated_data["transition"],
        )
        return Response(DocumentSerializer(document).data)

    @extend_schema(tags=["Documents"], responses={200: AllowedTransitionsSerializer})
    @action(detail=True, methods=["get"], url_path="allowed-transitions")
    def allowed_transitions(self, request, pk=None):
        document = self._get_visible(request, pk)
        payload = {
            "id": document.id,
            "status": document.status,
            "allowed_transitions": DocumentService.allowed_transitions(document),
        }
        return Response(AllowedTransitionsSerializer(payload).data)
