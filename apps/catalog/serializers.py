from rest_framework import serializers
from apps.accounts.serializers import UserPublicSerializer
from .models import Band, Product, Event


class BandSerializer(serializers.ModelSerializer):
    """Band profile with staff list."""

    owner = UserPublicSerializer(read_only=True)
    members = UserPublicSerializer(many=True, read_only=True)

    class Meta:
        model = Band
        fields = [
            'id',
            'name',
            'description',
            'logo_url',
            'owner',
            'members',
            'is_verified',
            'created_at',
        ]
        read_only_fields = ['id', 'owner', 'members', 'is_verified', 'created_at']


class BandMemberSerializer(serializers.Serializer):
    """Add or remove a band member."""

    user_id = serializers.UUIDField()


class ProductSerializer(serializers.ModelSerializer):
    """Product with per-size stock."""

    band_name = serializers.CharField(source='band.name', read_only=True)
    sizes = serializers.ListField(child=serializers.CharField(), read_only=True)
    inventory = serializers.DictField(child=serializers.IntegerField(), read_only=True)
    total_inventory = serializers.IntegerField(read_only=True)
    available_sizes = serializers.ListField(child=serializers.CharField(), read_only=True)
    events = serializers.PrimaryKeyRelatedField(many=True, read_only=True)

    class Meta:
        model = Product
        fields = [
            'id',
            'band',
            'band_name',
            'title',
            'price',
            'sizes',
            'inventory',
            'total_inventory',
            'available_sizes',
            'active',
            'events',
            'image_url',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class ProductCreateSerializer(serializers.Serializer):
    """Validate product creation input."""

    band = serializers.PrimaryKeyRelatedField(queryset=Band.objects.all())
    title = serializers.CharField(max_length=200)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    sizes = serializers.ListField(
        child=serializers.CharField(max_length=20),
        allow_empty=False
    )
    inventory = serializers.DictField(
        child=serializers.IntegerField(min_value=0),
        required=False
    )
    image_url = serializers.URLField(max_length=500, required=False, allow_blank=True)
    active = serializers.BooleanField(default=True)


class ProductUpdateSerializer(serializers.Serializer):
    """Validate product update input. All fields optional."""

    title = serializers.CharField(max_length=200, required=False)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, required=False)
    sizes = serializers.ListField(
        child=serializers.CharField(max_length=20),
        allow_empty=False,
        required=False
    )
    image_url = serializers.URLField(max_length=500, required=False, allow_blank=True)
    active = serializers.BooleanField(required=False)


class InventorySerializer(serializers.Serializer):
    """Replace stock counts of a product."""

    inventory = serializers.DictField(child=serializers.IntegerField(min_value=0))


class EventSerializer(serializers.ModelSerializer):
    """Event details with derived status."""

    merchants = serializers.PrimaryKeyRelatedField(many=True, read_only=True)
    status_label = serializers.CharField(read_only=True)
    is_live = serializers.BooleanField(read_only=True)
    distance_km = serializers.SerializerMethodField()

    class Meta:
        model = Event
        fields = [
            'id',
            'name',
            'venue_name',
            'address',
            'start_date',
            'end_date',
            'latitude',
            'longitude',
            'geofence_radius',
            'active',
            'archived',
            'merchants',
            'image_url',
            'description',
            'event_type',
            'max_capacity',
            'ticket_price',
            'status_label',
            'is_live',
            'distance_km',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_distance_km(self, obj):
        """Only set on results of the nearby search."""
        return getattr(obj, 'distance_km', None)


class EventWriteSerializer(serializers.ModelSerializer):
    """Validate event create/update input; persistence goes through services."""

    merchants = serializers.PrimaryKeyRelatedField(
        many=True,
        queryset=Band.objects.all(),
        required=False
    )

    class Meta:
        model = Event
        fields = [
            'name',
            'venue_name',
            'address',
            'start_date',
            'end_date',
            'latitude',
            'longitude',
            'geofence_radius',
            'active',
            'archived',
            'merchants',
            'image_url',
            'description',
            'event_type',
            'max_capacity',
            'ticket_price',
        ]

    def validate(self, attrs):
        start = attrs.get('start_date', getattr(self.instance, 'start_date', None))
        end = attrs.get('end_date', getattr(self.instance, 'end_date', None))
        if start and end and end <= start:
            raise serializers.ValidationError({
                'end_date': 'Event must end after it starts'
            })
        return attrs


class NearbyEventsQuerySerializer(serializers.Serializer):
    """Query parameters of the nearby search."""

    latitude = serializers.FloatField(min_value=-90, max_value=90)
    longitude = serializers.FloatField(min_value=-180, max_value=180)
    radius_km = serializers.FloatField(min_value=0, required=False)


class EventProductLinkSerializer(serializers.Serializer):
    """Product to link to or unlink from an event."""

    product_id = serializers.UUIDField()
