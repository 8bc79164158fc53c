import uuid

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import ProtectedError
from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated, IsAuthenticatedOrReadOnly
from rest_framework.response import Response
from rest_framework.exceptions import ValidationError
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.utils import extend_schema, OpenApiParameter
from apps.accounts.services import Capability, has_capability
from .models import Band, Product, Event
from .permissions import IsBandMember, IsBandOwner, is_band_staff
from .serializers import (
    BandSerializer,
    BandMemberSerializer,
    ProductSerializer,
    ProductCreateSerializer,
    ProductUpdateSerializer,
    InventorySerializer,
    EventSerializer,
    EventWriteSerializer,
    NearbyEventsQuerySerializer,
    EventProductLinkSerializer,
)
from .services import (
    create_band,
    add_band_member,
    remove_band_member,
    get_product,
    create_product,
    update_product,
    set_inventory,
    delete_product,
    get_event,
    create_event,
    update_event,
    delete_event,
    link_product_to_event,
    unlink_product_from_event,
    get_products_for_event,
    get_events_for_band,
    get_nearby_events,
    archive_expired_events,
    CatalogServiceError,
    BandNotFoundError,
    BandMembershipError,
    ProductNotFoundError,
    EventNotFoundError,
    InvalidProductError,
    InvalidInventoryError,
    InvalidEventError,
)

User = get_user_model()

NOT_FOUND_ERRORS = (BandNotFoundError, ProductNotFoundError, EventNotFoundError)


def _error_response(exc: CatalogServiceError, status_code):
    return Response({'error': str(exc), 'code': exc.code}, status=status_code)


def _uuid_param(request, name):
    """Query parameter as a UUID, or None when absent."""
    value = request.query_params.get(name)
    if not value:
        return None
    try:
        return uuid.UUID(value)
    except ValueError:
        raise ValidationError({name: 'Must be a valid UUID.'})


def _forbidden(message='You must be a member of this band.'):
    return Response(
        {'error': message, 'code': 'insufficient_permissions'},
        status=status.HTTP_403_FORBIDDEN
    )


class CatalogPagination(PageNumberPagination):
    """Custom pagination for catalog listings."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


class BandViewSet(viewsets.ModelViewSet):
    """
    ViewSet for bands (merchants).

    list/retrieve: public
    create: merchants and admins; the creator becomes the owner
    update/partial_update: band members
    destroy: band owner
    members: add (POST) or remove (DELETE) a band member, owner only
    events: events the band takes part in, newest first
    """

    queryset = Band.objects.select_related('owner').prefetch_related('members')
    serializer_class = BandSerializer
    permission_classes = [IsAuthenticatedOrReadOnly]
    pagination_class = CatalogPagination

    def get_permissions(self):
        if self.action in ['update', 'partial_update']:
            return [IsAuthenticated(), IsBandMember()]
        if self.action in ['destroy', 'members']:
            return [IsAuthenticated(), IsBandOwner()]
        return super().get_permissions()

    def create(self, request, *args, **kwargs):
        """Create a band owned by the current merchant."""
        if not has_capability(request.user, Capability.CREATE_BANDS):
            return _forbidden('Only merchant accounts can create bands.')

        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        band = create_band(owner=request.user, **serializer.validated_data)
        return Response(BandSerializer(band).data, status=status.HTTP_201_CREATED)

    def destroy(self, request, *args, **kwargs):
        """Delete a band; refused while orders reference it."""
        band = self.get_object()
        try:
            band.delete()
        except ProtectedError:
            return Response(
                {'error': 'Band has orders and cannot be deleted', 'code': 'band_has_orders'},
                status=status.HTTP_409_CONFLICT
            )
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(request=BandMemberSerializer, responses={200: BandSerializer})
    @action(detail=True, methods=['post', 'delete'])
    def members(self, request, pk=None):
        """Add or remove a band member."""
        band = self.get_object()
        serializer = BandMemberSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            user = User.objects.get(id=serializer.validated_data['user_id'])
        except User.DoesNotExist:
            return Response(
                {'error': 'User not found', 'code': 'user_not_found'},
                status=status.HTTP_404_NOT_FOUND
            )

        try:
            if request.method == 'POST':
                band = add_band_member(band_id=band.id, user=user)
            else:
                band = remove_band_member(band_id=band.id, user=user)
        except BandMembershipError as e:
            return _error_response(e, status.HTTP_400_BAD_REQUEST)

        return Response(BandSerializer(band).data)

    @extend_schema(responses={200: EventSerializer(many=True)})
    @action(detail=True, methods=['get'])
    def events(self, request, pk=None):
        """Events of the band, newest start date first."""
        band = self.get_object()
        events = get_events_for_band(band_id=band.id)
        return Response(EventSerializer(events, many=True).data)


class ProductViewSet(viewsets.ModelViewSet):
    """
    ViewSet for products.

    list: filter with ?band=<id>, ?event=<id> (active products at the event)
        and ?active=true|false
    create/update/destroy: members of the product's band
    inventory: replace per-size stock counts (PUT)
    """

    queryset = (
        Product.objects
        .select_related('band')
        .prefetch_related('size_inventory', 'events')
    )
    serializer_class = ProductSerializer
    permission_classes = [IsAuthenticatedOrReadOnly]
    pagination_class = CatalogPagination

    def get_queryset(self):
        event_id = _uuid_param(self.request, 'event')
        if event_id and self.action == 'list':
            queryset = get_products_for_event(event_id=event_id)
        else:
            queryset = super().get_queryset()

        band_id = _uuid_param(self.request, 'band')
        if band_id:
            queryset = queryset.filter(band_id=band_id)

        active = self.request.query_params.get('active')
        if active is not None:
            queryset = queryset.filter(active=active.lower() in ('1', 'true', 'yes'))

        return queryset

    def get_serializer_class(self):
        """Use different serializers for different actions."""
        if self.action == 'create':
            return ProductCreateSerializer
        if self.action in ['update', 'partial_update']:
            return ProductUpdateSerializer
        if self.action == 'inventory':
            return InventorySerializer
        return ProductSerializer

    def get_permissions(self):
        if self.action in ['update', 'partial_update', 'destroy', 'inventory']:
            return [IsAuthenticated(), IsBandMember()]
        return super().get_permissions()

    @extend_schema(
        parameters=[
            OpenApiParameter('band', str, description='Filter by band id'),
            OpenApiParameter('event', str, description='Active products linked to this event'),
            OpenApiParameter('active', bool),
        ]
    )
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)

    @extend_schema(request=ProductCreateSerializer, responses={201: ProductSerializer})
    def create(self, request, *args, **kwargs):
        """Create a product for one of the user's bands."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        band = serializer.validated_data['band']
        if not is_band_staff(request.user, band):
            return _forbidden()

        try:
            product = create_product(**serializer.validated_data)
        except (InvalidProductError, InvalidInventoryError) as e:
            return _error_response(e, status.HTTP_400_BAD_REQUEST)

        product = get_product(product_id=product.id)
        return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=ProductUpdateSerializer, responses={200: ProductSerializer})
    def update(self, request, *args, **kwargs):
        """Update product fields; PUT and PATCH both accept partial input."""
        product = self.get_object()
        serializer = ProductUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        try:
            product = update_product(product_id=product.id, data=serializer.validated_data)
        except (InvalidProductError, InvalidInventoryError) as e:
            return _error_response(e, status.HTTP_400_BAD_REQUEST)

        return Response(ProductSerializer(product).data)

    def partial_update(self, request, *args, **kwargs):
        return self.update(request, *args, **kwargs)

    def destroy(self, request, *args, **kwargs):
        """Delete a product."""
        product = self.get_object()

        try:
            delete_product(product_id=product.id)
        except ProductNotFoundError as e:
            return _error_response(e, status.HTTP_404_NOT_FOUND)

        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(request=InventorySerializer, responses={200: ProductSerializer})
    @action(detail=True, methods=['put'])
    def inventory(self, request, pk=None):
        """Replace the stock counts of a product."""
        product = self.get_object()
        serializer = InventorySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            product = set_inventory(
                product_id=product.id,
                inventory=serializer.validated_data['inventory']
            )
        except InvalidInventoryError as e:
            return _error_response(e, status.HTTP_400_BAD_REQUEST)

        return Response(ProductSerializer(product).data)


class EventViewSet(viewsets.ModelViewSet):
    """
    ViewSet for events.

    list: non-archived events; ?band=<id>, ?include_archived=true
    create/update/destroy: members of the participating bands
    nearby: active events around a point (?latitude=&longitude=&radius_km=)
    products: active products linked to the event
    link_product/unlink_product: make a product available at the event
    archive_expired: archive ended events of a band
    """

    queryset = Event.objects.prefetch_related('merchants')
    serializer_class = EventSerializer
    permission_classes = [IsAuthenticatedOrReadOnly]
    pagination_class = CatalogPagination

    def get_queryset(self):
        queryset = super().get_queryset()
        params = self.request.query_params

        band_id = _uuid_param(self.request, 'band')
        if band_id:
            queryset = queryset.filter(merchants__id=band_id)

        include_archived = params.get('include_archived', '').lower() in ('1', 'true', 'yes')
        if self.action == 'list' and not include_archived:
            queryset = queryset.filter(archived=False)

        return queryset.order_by('-start_date')

    def get_serializer_class(self):
        if self.action in ['create', 'update', 'partial_update']:
            return EventWriteSerializer
        return EventSerializer

    def get_permissions(self):
        if self.action in ['update', 'partial_update', 'destroy', 'link_product', 'unlink_product']:
            return [IsAuthenticated(), IsBandMember()]
        if self.action == 'archive_expired':
            return [IsAuthenticated()]
        return super().get_permissions()

    def _check_bands(self, request, bands):
        user = request.user
        if user.is_platform_admin:
            return None
        if not bands:
            return _forbidden('An event needs at least one of your bands as a merchant.')
        if not all(is_band_staff(user, band) for band in bands):
            return _forbidden()
        return None

    @extend_schema(request=EventWriteSerializer, responses={201: EventSerializer})
    def create(self, request, *args, **kwargs):
        """Create an event for the user's bands."""
        serializer = EventWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        denied = self._check_bands(request, serializer.validated_data.get('merchants', []))
        if denied:
            return denied

        try:
            event = create_event(**serializer.validated_data)
        except InvalidEventError as e:
            return _error_response(e, status.HTTP_400_BAD_REQUEST)

        return Response(
            EventSerializer(get_event(event_id=event.id)).data,
            status=status.HTTP_201_CREATED
        )

    @extend_schema(request=EventWriteSerializer, responses={200: EventSerializer})
    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        event = self.get_object()
        serializer = EventWriteSerializer(event, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)

        if 'merchants' in serializer.validated_data:
            denied = self._check_bands(request, serializer.validated_data['merchants'])
            if denied:
                return denied

        try:
            event = update_event(event_id=event.id, data=serializer.validated_data)
        except InvalidEventError as e:
            return _error_response(e, status.HTTP_400_BAD_REQUEST)

        return Response(EventSerializer(get_event(event_id=event.id)).data)

    def destroy(self, request, *args, **kwargs):
        """Delete an event and detach it from its products."""
        event = self.get_object()

        try:
            delete_event(event_id=event.id)
        except EventNotFoundError as e:
            return _error_response(e, status.HTTP_404_NOT_FOUND)

        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        parameters=[NearbyEventsQuerySerializer],
        responses={200: EventSerializer(many=True)},
    )
    @action(detail=False, methods=['get'])
    def nearby(self, request):
        """Active events around a point, nearest first."""
        query = NearbyEventsQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        try:
            events = get_nearby_events(**query.validated_data)
        except InvalidEventError as e:
            return _error_response(e, status.HTTP_400_BAD_REQUEST)

        return Response(EventSerializer(events, many=True).data)

    @extend_schema(responses={200: ProductSerializer(many=True)})
    @action(detail=True, methods=['get'])
    def products(self, request, pk=None):
        """Active products available at the event."""
        event = self.get_object()
        products = get_products_for_event(event_id=event.id)
        return Response(ProductSerializer(products, many=True).data)

    def _link(self, request, service):
        event = self.get_object()
        serializer = EventProductLinkSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        product_id = serializer.validated_data['product_id']

        try:
            product = get_product(product_id=product_id)
        except ProductNotFoundError as e:
            return _error_response(e, status.HTTP_404_NOT_FOUND)

        if not is_band_staff(request.user, product.band):
            return _forbidden()

        try:
            service(product_id=product.id, event_id=event.id)
        except NOT_FOUND_ERRORS as e:
            return _error_response(e, status.HTTP_404_NOT_FOUND)

        return Response(ProductSerializer(get_product(product_id=product.id)).data)

    @extend_schema(request=EventProductLinkSerializer, responses={200: ProductSerializer})
    @action(detail=True, methods=['post'])
    def link_product(self, request, pk=None):
        """Make one of the user's products available at the event."""
        return self._link(request, link_product_to_event)

    @extend_schema(request=EventProductLinkSerializer, responses={200: ProductSerializer})
    @action(detail=True, methods=['post'])
    def unlink_product(self, request, pk=None):
        """Withdraw a product from the event."""
        return self._link(request, unlink_product_from_event)

    @action(detail=False, methods=['post'])
    def archive_expired(self, request):
        """Archive ended events of a band. Body: {"band": "<id>"}."""
        band_id = request.data.get('band')
        try:
            band = Band.objects.get(id=band_id)
        except (Band.DoesNotExist, DjangoValidationError, ValueError, TypeError):
            return Response(
                {'error': 'Band not found', 'code': 'band_not_found'},
                status=status.HTTP_404_NOT_FOUND
            )

        if not is_band_staff(request.user, band):
            return _forbidden()

        count = archive_expired_events(band=band)
        return Response({'archived': count})
