"""
API views for refunds.

Provides:
- OrderRefundsView: Create a refund for an order (POST) and list an
  order's refunds (GET)

Errors raised by the service layer are BaseApplicationError subclasses;
their http_status and to_dict() define the response.
"""

from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import BaseApplicationError
from refunds.serializers import RefundCreateSerializer, RefundResultSerializer, RefundSerializer
from refunds.services import RefundService

IDEMPOTENCY_HEADER = OpenApiParameter(
    name="Idempotency-Key",
    type=OpenApiTypes.STR,
    location=OpenApiParameter.HEADER,
    required=False,
    description="Client key identifying the refund request; repeats are rejected with 409",
)


def error_response(exc: BaseApplicationError) -> Response:
    return Response(exc.to_dict(), status=exc.http_status)


class OrderRefundsView(APIView):
    """
    Refunds for one order.

    POST /api/v1/refunds/orders/{order_id}/refunds/
        Refund all or part of a paid order.

    GET /api/v1/refunds/orders/{order_id}/refunds/
        List the order's refunds, newest first.

    Authentication:
        Requires valid JWT token. The user's store scopes the order.
        Only admin and system roles may create refunds.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="create_order_refund",
        summary="Create refund",
        description=(
            "Refund a paid order in full or in part through its payment provider. "
            "Stock is restored and the payment split reversed after the provider "
            "confirms the refund."
        ),
        parameters=[IDEMPOTENCY_HEADER],
        request=RefundCreateSerializer,
        responses={
            201: OpenApiResponse(response=RefundResultSerializer, description="Refund recorded"),
            400: OpenApiResponse(description="Validation error or order not paid"),
            401: OpenApiResponse(description="Authentication or store context required"),
            403: OpenApiResponse(description="Role may not initiate refunds"),
            404: OpenApiResponse(description="Order or payment not found"),
            409: OpenApiResponse(description="Duplicate refund or refund already in progress"),
            502: OpenApiResponse(description="Payment provider error; nothing was recorded"),
        },
        tags=["Refunds"],
    )
    def post(self, request, order_id):
        serializer = RefundCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {
                    "error": "Invalid refund request",
                    "error_code": "VALIDATION_ERROR",
                    "details": serializer.errors,
                },
                status=status.HTTP_400_BAD_REQUEST,
            )

        data = dict(serializer.validated_data)
        data["items"] = [dict(item) for item in data.get("items", [])]
        data["idempotency_key"] = request.headers.get("Idempotency-Key", "")

        try:
            outcome = RefundService.create_refund(
                store=getattr(request.user, "store", None),
                actor=request.user,
                order_id=order_id,
                data=data,
                http_request=request,
            )
        except BaseApplicationError as e:
            return error_response(e)

        return Response(
            RefundResultSerializer(outcome.refund).data,
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(
        operation_id="list_order_refunds",
        summary="List refunds",
        responses={
            200: OpenApiResponse(response=RefundSerializer(many=True), description="Refunds, newest first"),
            401: OpenApiResponse(description="Authentication or store context required"),
            404: OpenApiResponse(description="Order not found"),
        },
        tags=["Refunds"],
    )
    def get(self, request, order_id):
        try:
            refunds = RefundService.list_refunds(
                store=getattr(request.user, "store", None),
                order_id=order_id,
            )
        except BaseApplicationError as e:
            return error_response(e)

        return Response(RefundSerializer(refunds, many=True).data)
