from django.db.models import Q
from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from rest_framework import viewsets, status
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema, OpenApiParameter
from apps.catalog.models import Band
from apps.catalog.permissions import is_band_staff
from apps.catalog.services import SoldOutError
from .models import Order, OrderStatus
from .permissions import IsOrderOwner, IsOrderOwnerOrBandStaff
from .serializers import (
    OrderSerializer,
    OrderItemSerializer,
    OrderListSerializer,
    OrderFilterSerializer,
    CheckoutInputSerializer,
    StatusUpdateInputSerializer,
    PickupInputSerializer,
    PickupResultSerializer,
    MerchantSummarySerializer,
)
from .services import (
    checkout as place_order,
    cancel_order,
    fetch_orders_for_user,
    fetch_orders_for_merchant,
    get_order,
    verify_pickup,
    render_pickup_qr,
    OrderBook,
    CartError,
    InsufficientInventoryError,
    EmptyCartError,
    MixedMerchantCartError,
    ProductUnavailableError,
    PaymentError,
    OrderNotFoundError,
    InvalidStatusTransitionError,
    InsufficientPermissionsError,
    InvalidPickupCodeError,
    PickupCodeAlreadyUsedError,
)


def _error_response(exc, status_code, **extra):
    return Response({'error': str(exc), 'code': exc.code, **extra}, status=status_code)


def _forbidden(message='You must be a member of this band.'):
    return Response(
        {'error': message, 'code': 'insufficient_permissions'},
        status=status.HTTP_403_FORBIDDEN
    )


class OrderPagination(PageNumberPagination):
    """Custom pagination for orders."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


class OrderViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Fan-facing order endpoints.

    list: The current user's orders, newest first (?status= filter)
    retrieve: An order visible to its purchaser or the band's staff
    cancel: Cancel a pending order
    qr_code: PNG pickup code for the purchaser
    checkout: Pay for a cart and place an order
    pickup: Redeem a scanned pickup code (band staff)
    """

    serializer_class = OrderSerializer
    permission_classes = [IsAuthenticated, IsOrderOwnerOrBandStaff]
    pagination_class = OrderPagination

    def get_permissions(self):
        if self.action == 'qr_code':
            return [IsAuthenticated(), IsOrderOwner()]
        return super().get_permissions()

    def get_serializer_class(self):
        if self.action == 'list':
            return OrderListSerializer
        return OrderSerializer

    def get_queryset(self):
        user = self.request.user

        if self.action == 'list':
            filter_serializer = OrderFilterSerializer(data=self.request.query_params)
            filter_serializer.is_valid(raise_exception=True)
            return fetch_orders_for_user(
                user,
                status=filter_serializer.validated_data.get('status')
            )

        queryset = Order.objects.select_related(
            'user', 'band', 'event', 'picked_up_by'
        ).prefetch_related('items')
        if user.is_platform_admin:
            return queryset
        return queryset.filter(
            Q(user=user) | Q(band__owner=user) | Q(band__members=user)
        ).distinct()

    @extend_schema(
        parameters=[
            OpenApiParameter('status', str, description='pending_pickup, picked_up or cancelled'),
        ],
    )
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)

    @extend_schema(request=None, responses={200: OrderSerializer})
    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        """
        Cancel a pending order and return its items to stock.

        POST /api/orders/{id}/cancel/
        """
        try:
            order = cancel_order(pk, request.user)
        except OrderNotFoundError as e:
            return _error_response(e, status.HTTP_404_NOT_FOUND)
        except InsufficientPermissionsError as e:
            return _error_response(e, status.HTTP_403_FORBIDDEN)
        except InvalidStatusTransitionError as e:
            return _error_response(e, status.HTTP_409_CONFLICT)

        return Response(OrderSerializer(order).data)

    @extend_schema(responses={(200, 'image/png'): OpenApiTypes.BINARY})
    @action(detail=True, methods=['get'])
    def qr_code(self, request, pk=None):
        """
        Pickup QR code as a PNG image.

        GET /api/orders/{id}/qr_code/
        """
        order = self.get_object()

        if order.status != OrderStatus.PENDING_PICKUP:
            return Response(
                {
                    'error': f"Order #{order.short_code} is {order.get_status_display().lower()}",
                    'code': 'pickup_code_already_used',
                },
                status=status.HTTP_409_CONFLICT
            )

        return HttpResponse(render_pickup_qr(order.qr_code), content_type='image/png')

    @extend_schema(
        request=CheckoutInputSerializer,
        responses={201: OrderSerializer},
        description="Pay for the submitted lines and place an order.",
    )
    @action(detail=False, methods=['post'], url_path='checkout')
    def checkout(self, request):
        """
        POST /api/orders/checkout/

        400 when the cart itself is invalid (including more than the
        listed stock), 409 when stock ran out during checkout (the charge
        is refunded), 402 when the payment fails.
        """
        input_serializer = CheckoutInputSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)
        data = input_serializer.validated_data

        try:
            order = place_order(
                user=request.user,
                band=data['band'],
                event=data.get('event'),
                lines=data['lines'],
            )
        except SoldOutError as e:
            return _error_response(
                e,
                status.HTTP_409_CONFLICT,
                product_id=str(e.product_id),
                size=e.size,
                refunded=getattr(e, 'refunded', False),
            )
        except PaymentError as e:
            return _error_response(e, status.HTTP_402_PAYMENT_REQUIRED, reason=e.reason.value)
        except (CartError, InsufficientInventoryError, EmptyCartError,
                MixedMerchantCartError, ProductUnavailableError) as e:
            return _error_response(e, status.HTTP_400_BAD_REQUEST)

        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        request=PickupInputSerializer,
        responses={200: PickupResultSerializer},
        description="Redeem a scanned pickup code. Band staff only.",
    )
    @action(detail=False, methods=['post'], url_path='pickup')
    def pickup(self, request):
        """
        POST /api/orders/pickup/
        """
        input_serializer = PickupInputSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        try:
            result = verify_pickup(input_serializer.validated_data['code'], request.user)
        except InvalidPickupCodeError as e:
            return _error_response(e, status.HTTP_404_NOT_FOUND)
        except PickupCodeAlreadyUsedError as e:
            return _error_response(
                e,
                status.HTTP_409_CONFLICT,
                order_id=str(e.order.id),
                status=e.order.status,
            )
        except InsufficientPermissionsError as e:
            return _error_response(e, status.HTTP_403_FORBIDDEN)

        return Response({
            'message': f"Order #{result.order.short_code} picked up",
            'order': OrderSerializer(result.order).data,
            'items': OrderItemSerializer(result.items, many=True).data,
        })


# =============================================================================
# Merchant endpoints
# =============================================================================

def _band_for_staff(request, band_id):
    """Band from the URL, or a 403 response when the user is not its staff."""
    band = get_object_or_404(Band, id=band_id)
    if not is_band_staff(request.user, band):
        return band, _forbidden()
    return band, None


@extend_schema(
    parameters=[
        OpenApiParameter('status', str, description='pending_pickup, picked_up or cancelled'),
    ],
    responses={200: OrderSerializer(many=True)},
    description="Orders placed with a band, newest first. Band staff only.",
    tags=['orders'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def merchant_orders(request, band_id):
    band, denied = _band_for_staff(request, band_id)
    if denied:
        return denied

    filter_serializer = OrderFilterSerializer(data=request.query_params)
    filter_serializer.is_valid(raise_exception=True)
    queryset = fetch_orders_for_merchant(
        band,
        status=filter_serializer.validated_data.get('status')
    )

    paginator = OrderPagination()
    page = paginator.paginate_queryset(queryset, request)
    serializer = OrderSerializer(page, many=True)
    return paginator.get_paginated_response(serializer.data)


@extend_schema(
    responses={200: MerchantSummarySerializer},
    description="Order counts and revenue for a band. Band staff only.",
    tags=['orders'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def merchant_summary(request, band_id):
    band, denied = _band_for_staff(request, band_id)
    if denied:
        return denied

    summary = OrderBook.for_merchant(band).summary()
    return Response(MerchantSummarySerializer(summary).data)


@extend_schema(
    request=StatusUpdateInputSerializer,
    responses={200: OrderSerializer},
    description="Mark a band's order as picked up or cancelled. Band staff only.",
    tags=['orders'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def merchant_update_status(request, band_id, order_id):
    band, denied = _band_for_staff(request, band_id)
    if denied:
        return denied

    input_serializer = StatusUpdateInputSerializer(data=request.data)
    input_serializer.is_valid(raise_exception=True)

    try:
        order = get_order(order_id=order_id)
        if order.band_id != band.id:
            raise OrderNotFoundError(f"Order {order_id} not found")
        order = OrderBook([order]).update_status(
            order.id,
            input_serializer.validated_data['status'],
            actor=request.user
        )
    except OrderNotFoundError as e:
        return _error_response(e, status.HTTP_404_NOT_FOUND)
    except InvalidStatusTransitionError as e:
        return _error_response(e, status.HTTP_409_CONFLICT)

    return Response(OrderSerializer(order).data)
