# taxbook_core/appointments/api/views.py
from __future__ import annotations

from django.core.exceptions import ValidationError as DjangoValidationError
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound, ValidationError as DRFValidationError
from rest_framework.response import Response

from taxbook_core.appointments.api.serializers import (
    AppointmentCreateSerializer,
    AppointmentSerializer,
    AppointmentUpdateSerializer,
)
from taxbook_core.appointments.models import Appointment
from taxbook_core.appointments.selectors import appointments_filtered, get_appointment
from taxbook_core.appointments.services import AppointmentService
from taxbook_core.common.api.views import ListingViewSet
from taxbook_core.workflows.api.serializers import AllowedTransitionsSerializer, TransitionRequestSerializer


class AppointmentViewSet(ListingViewSet):
    """
    Thin API layer:
    - reads through selectors (owner-scoped, admins see all)
    - writes through AppointmentService (rules enforced there)
    - status changes only via the transition action
    """

    serializer_class = AppointmentSerializer
    queryset = Appointment.objects.none()

    def _get_visible(self, request, pk) -> Appointment:
        appointment = get_appointment(user=request.user, appointment_id=pk)
        if appointment is None:
            raise NotFound("Appointment not found.")
        return appointment

    # ----------------------------
    # Reads
    # ----------------------------
    @extend_schema(
        tags=["Appointments"],
        responses={200: AppointmentSerializer(many=True)},
        parameters=[
            OpenApiParameter(name="status", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="client_id", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(
                name="starts_after",
                type=OpenApiTypes.DATETIME,
                location=OpenApiParameter.QUERY,
                required=False,
                description="Only appointments starting at or after this ISO datetime.",
            ),
            OpenApiParameter(
                name="starts_before",
                type=OpenApiTypes.DATETIME,
                location=OpenApiParameter.QUERY,
                required=False,
                description="Only appointments starting at or before this ISO datetime.",
            ),
        ],
    )
    def list(self, request):
        try:
            qs = appointments_filtered(user=request.user, params=request.query_params)
        except DjangoValidationError as e:
            raise DRFValidationError(e.message_dict if hasattr(e, "error_dict") else {"detail": e.messages})
        return self.paginated(qs, AppointmentSerializer)

    @extend_schema(tags=["Appointments"], responses={200: AppointmentSerializer})
    def retrieve(self, request, pk=None):
        return Response(AppointmentSerializer(self._get_visible(request, pk)).data)

    # ----------------------------
    # Writes
    # ----------------------------
    @extend_schema(tags=["Appointments"], request=AppointmentCreateSerializer, responses={201: AppointmentSerializer})
    def create(self, request):
        ser = AppointmentCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = dict(ser.validated_data)
        requires_documents = data.pop("requires_documents", False)

        appointment = AppointmentService.create_appointment(
            user=request.user,
            data=data,
            requires_documents=requires_documents,
        )
        return Response(AppointmentSerializer(appointment).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Appointments"], request=AppointmentUpdateSerializer, responses={200: AppointmentSerializer})
    def partial_update(self, request, pk=None):
        ser = AppointmentUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)

        appointment = AppointmentService.update_appointment(
            user=request.user,
            appointment_id=pk,
            changes=dict(ser.validated_data),
        )
        return Response(AppointmentSerializer(appointment).data)

    @extend_schema(tags=["Appointments"], responses={204: None})
    def destroy(self, request, pk=None):
        AppointmentService.delete_appointment(user=request.user, appointment_id=pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    # ----------------------------
    # Workflow
    # ----------------------------
    @extend_schema(tags=["Appointments"], request=TransitionRequestSerializer, responses={200: AppointmentSerializer})
    @action(detail=True, methods=["post", "patch"])
    def transition(self, request, pk=None):
        ser = TransitionRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        appointment = AppointmentService.transition_appointment(
            user=request.user,
            appointment_id=pk,
            transition=ser.validated_data["transition"],
        )
        return Response(AppointmentSerializer(appointment).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Appointments"], responses={200: AllowedTransitionsSerializer})
    @action(detail=True, methods=["get"], url_path="allowed-transitions")
    def allowed_transitions(self, request, pk=None):
        appointment = self._get_visible(request, pk)
        payload = {
            "id": appointment.id,
            "status": appointment.status,
            "allowed_transitions": AppointmentService.allowed_transitions(appointment),
        }
        return Response(AllowedTransitionsSerializer(payload).data)
