import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User, UserRole
from apps.catalog.models import Band

PASSWORD = 'TestPass123!'


def _account(email, role=UserRole.FAN, **extra):
    return User.objects.create_user(email=email, password=PASSWORD, role=role, **extra)


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def fan(db):
    return _account('fan@example.com', display_name='Front Row')


@pytest.fixture
def merchant(db):
    return _account('booth@example.com', UserRole.MERCHANT, display_name='Merch Booth')


@pytest.fixture
def admin_user(db):
    return _account('ops@example.com', UserRole.ADMIN)


@pytest.fixture
def inactive_merchant(db):
    return _account('gone@example.com', UserRole.MERCHANT, is_active=False)


@pytest.fixture
def band(merchant):
    return Band.objects.create(name='The Amplifiers', owner=merchant)


@pytest.fixture
def fan_client(api_client, fan):
    refresh = RefreshToken.for_user(fan)
    api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return api_client


@pytest.fixture
def merchant_client(api_client, merchant):
    refresh = RefreshToken.for_user(merchant)
    api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return api_client
