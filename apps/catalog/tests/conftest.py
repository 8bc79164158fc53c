import pytest
from datetime import timedelta
from decimal import Decimal
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User, UserRole
from apps.catalog.services import create_band, create_product, create_event


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def merchant(db):
    """Band owner."""
    return User.objects.create_user(
        email='owner@band.example.com',
        password='TestPass123!',
        display_name='Band Owner',
        role=UserRole.MERCHANT,
    )


@pytest.fixture
def other_merchant(db):
    return User.objects.create_user(
        email='owner@otherband.example.com',
        password='TestPass123!',
        display_name='Other Owner',
        role=UserRole.MERCHANT,
    )


@pytest.fixture
def fan(db):
    return User.objects.create_user(
        email='fan@example.com',
        password='TestPass123!',
        display_name='Fan',
    )


@pytest.fixture
def band(merchant):
    return create_band(owner=merchant, name='The Testers')


@pytest.fixture
def other_band(other_merchant):
    return create_band(owner=other_merchant, name='Other Band')


@pytest.fixture
def product(band):
    """T-shirt with S:2, M:5, L:0."""
    return create_product(
        band=band,
        title='Tour Shirt',
        price=Decimal('25.00'),
        sizes=['S', 'M', 'L'],
        inventory={'S': 2, 'M': 5, 'L': 0},
    )


@pytest.fixture
def event(band):
    """Event running right now in Prague."""
    now = timezone.now()
    return create_event(
        name='Summer Fest',
        venue_name='Main Stage',
        address='Vystaviste 1, Prague',
        start_date=now - timedelta(hours=1),
        end_date=now + timedelta(hours=5),
        latitude=50.1047,
        longitude=14.4298,
        merchants=[band],
    )


def _client_for(user):
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture
def merchant_client(merchant):
    """API client authenticated as the band owner."""
    return _client_for(merchant)


@pytest.fixture
def other_merchant_client(other_merchant):
    return _client_for(other_merchant)


@pytest.fixture
def fan_client(fan):
    return _client_for(fan)
