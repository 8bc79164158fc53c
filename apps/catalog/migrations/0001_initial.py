# Generated manually for the catalog app

import uuid
from decimal import Decimal
from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Band',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=200)),
                ('description', models.TextField(blank=True)),
                ('logo_url', models.URLField(blank=True, max_length=500)),
                ('is_verified', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('owner', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='owned_bands', to=settings.AUTH_USER_MODEL)),
                ('members', models.ManyToManyField(blank=True, related_name='bands', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'bands',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Event',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=200)),
                ('venue_name', models.CharField(max_length=200)),
                ('address', models.CharField(max_length=300)),
                ('start_date', models.DateTimeField()),
                ('end_date', models.DateTimeField()),
                ('latitude', models.FloatField()),
                ('longitude', models.FloatField()),
                ('geofence_radius', models.FloatField(default=500.0, validators=[MinValueValidator(0.0)])),
                ('active', models.BooleanField(default=True)),
                ('archived', models.BooleanField(default=False)),
                ('image_url', models.URLField(blank=True, max_length=500, null=True)),
                ('description', models.TextField(blank=True, null=True)),
                ('event_type', models.CharField(blank=True, choices=[('concert', 'Concert'), ('festival', 'Festival'), ('conference', 'Conference'), ('sports', 'Sports Event'), ('theater', 'Theater'), ('comedy', 'Comedy Show'), ('exhibition', 'Exhibition'), ('other', 'Other')], max_length=20, null=True)),
                ('max_capacity', models.PositiveIntegerField(blank=True, null=True)),
                ('ticket_price', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True, validators=[MinValueValidator(Decimal('0.00'))])),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('merchants', models.ManyToManyField(blank=True, related_name='events', to='catalog.band')),
            ],
            options={
                'db_table': 'events',
                'ordering': ['-start_date'],
                'indexes': [
                    models.Index(fields=['active', 'archived'], name='events_active_archived_idx'),
                    models.Index(fields=['start_date'], name='events_start_date_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('title', models.CharField(max_length=200)),
                ('price', models.DecimalField(decimal_places=2, max_digits=10, validators=[MinValueValidator(Decimal('0.00'))])),
                ('image_url', models.URLField(blank=True, max_length=500)),
                ('active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('band', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='products', to='catalog.band')),
                ('events', models.ManyToManyField(blank=True, related_name='products', to='catalog.event')),
            ],
            options={
                'db_table': 'products',
                'ordering': ['title'],
                'indexes': [
                    models.Index(fields=['band', 'active'], name='products_band_active_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ProductSize',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('label', models.CharField(max_length=20)),
                ('position', models.PositiveSmallIntegerField(default=0)),
                ('quantity', models.PositiveIntegerField(default=0)),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='size_inventory', to='catalog.product')),
            ],
            options={
                'db_table': 'product_sizes',
                'ordering': ['position', 'id'],
                'constraints': [
                    models.UniqueConstraint(fields=('product', 'label'), name='unique_product_size_label'),
                ],
            },
        ),
    ]
