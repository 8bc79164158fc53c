from django.db import models
from django.core.validators import MinValueValidator
from django.utils import timezone
from decimal import Decimal
import uuid


class Band(models.Model):
    """Merchant (band or vendor) that owns products and takes part in events."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    logo_url = models.URLField(max_length=500, blank=True)

    owner = models.ForeignKey(
        'accounts.User',
        on_delete=models.PROTECT,
        related_name='owned_bands'
    )
    members = models.ManyToManyField(
        'accounts.User',
        blank=True,
        related_name='bands'
    )

    is_verified = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'bands'
        ordering = ['name']

    def __str__(self):
        return self.name

    def has_member(self, user):
        """Owner counts as a member."""
        if user is None or not user.is_authenticated:
            return False
        if self.owner_id == user.pk:
            return True
        return self.members.filter(pk=user.pk).exists()


class Product(models.Model):
    """
    Merchandise item sold by a band.

    Sizes are ordered labels; stock for each label lives in ProductSize so
    that it can be decremented with a conditional UPDATE.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    band = models.ForeignKey(
        Band,
        on_delete=models.CASCADE,
        related_name='products'
    )
    title = models.CharField(max_length=200)
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    image_url = models.URLField(max_length=500, blank=True)
    active = models.BooleanField(default=True)

    events = models.ManyToManyField(
        'catalog.Event',
        blank=True,
        related_name='products'
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'products'
        indexes = [
            models.Index(fields=['band', 'active'], name='products_band_active_idx'),
        ]
        ordering = ['title']

    def __str__(self):
        return f"{self.title} ({self.band.name})"

    @property
    def sizes(self):
        """Size labels in display order."""
        return [size.label for size in self.size_inventory.all()]

    @property
    def inventory(self):
        """Mapping of size label to units in stock."""
        return {size.label: size.quantity for size in self.size_inventory.all()}

    @property
    def total_inventory(self):
        return sum(self.inventory.values())

    @property
    def available_sizes(self):
        return [size.label for size in self.size_inventory.all() if size.quantity > 0]

    def inventory_for(self, size):
        """Units in stock for one size label, 0 for unknown labels."""
        return self.inventory.get(size, 0)

    def is_available_for_event(self, event):
        return self.active and self.events.filter(pk=event.pk).exists()


class ProductSize(models.Model):
    """Stock level of one size label of a product."""

    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        related_name='size_inventory'
    )
    label = models.CharField(max_length=20)
    position = models.PositiveSmallIntegerField(default=0)
    quantity = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = 'product_sizes'
        constraints = [
            models.UniqueConstraint(fields=['product', 'label'], name='unique_product_size_label'),
        ]
        ordering = ['position', 'id']

    def __str__(self):
        return f"{self.product.title} [{self.label}]: {self.quantity}"


class EventType(models.TextChoices):
    CONCERT = 'concert', 'Concert'
    FESTIVAL = 'festival', 'Festival'
    CONFERENCE = 'conference', 'Conference'
    SPORTS = 'sports', 'Sports Event'
    THEATER = 'theater', 'Theater'
    COMEDY = 'comedy', 'Comedy Show'
    EXHIBITION = 'exhibition', 'Exhibition'
    OTHER = 'other', 'Other'


class Event(models.Model):
    """A time-and-place-bounded context where bands sell merchandise."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    venue_name = models.CharField(max_length=200)
    address = models.CharField(max_length=300)

    start_date = models.DateTimeField()
    end_date = models.DateTimeField()

    latitude = models.FloatField()
    longitude = models.FloatField()
    # Declared discoverability radius in meters; not used by queries
    geofence_radius = models.FloatField(
        default=500.0,
        validators=[MinValueValidator(0.0)]
    )

    active = models.BooleanField(default=True)
    archived = models.BooleanField(default=False)

    merchants = models.ManyToManyField(
        Band,
        blank=True,
        related_name='events'
    )

    image_url = models.URLField(max_length=500, blank=True, null=True)
    description = models.TextField(blank=True, null=True)
    event_type = models.CharField(
        max_length=20,
        choices=EventType.choices,
        blank=True,
        null=True
    )
    max_capacity = models.PositiveIntegerField(blank=True, null=True)
    ticket_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        blank=True,
        null=True,
        validators=[MinValueValidator(Decimal('0.00'))]
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'events'
        indexes = [
            models.Index(fields=['active', 'archived'], name='events_active_archived_idx'),
            models.Index(fields=['start_date'], name='events_start_date_idx'),
        ]
        ordering = ['-start_date']

    def __str__(self):
        return f"{self.name} @ {self.venue_name}"

    @property
    def is_live(self):
        now = timezone.now()
        return self.active and self.start_date <= now <= self.end_date

    @property
    def is_upcoming(self):
        return self.start_date > timezone.now()

    @property
    def is_past(self):
        return self.end_date < timezone.now()

    @property
    def status_label(self):
        if self.is_live:
            return 'Live Now'
        if self.is_upcoming:
            return 'Upcoming'
        return 'Ended'

    def has_merchant(self, band):
        return self.merchants.filter(pk=band.pk).exists()
