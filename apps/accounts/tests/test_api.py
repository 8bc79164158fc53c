import pytest
from django.urls import reverse
from rest_framework import status
from rest_framework_simplejwt.tokens import AccessToken
from apps.accounts.models import User, UserRole

PASSWORD = 'TestPass123!'


def _signup(email, **extra):
    return {'email': email, 'password': PASSWORD, 'password_confirm': PASSWORD, **extra}


@pytest.mark.django_db
class TestRegisterEndpoint:
    """POST /api/auth/register/"""

    def test_fan_by_default(self, api_client):
        response = api_client.post(reverse('accounts:register'), _signup('new@example.com'))

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['user']['role'] == UserRole.FAN
        assert 'purchase' in response.data['user']['capabilities']
        assert response.data['user']['bands'] == []
        assert AccessToken(response.data['tokens']['access'])['role'] == 'fan'

    def test_merchant(self, api_client):
        response = api_client.post(
            reverse('accounts:register'),
            _signup('stand@example.com', role='merchant')
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert 'scan_orders' in response.data['user']['capabilities']
        assert User.objects.get(email='stand@example.com').is_merchant

    def test_admin_refused(self, api_client):
        response = api_client.post(
            reverse('accounts:register'),
            _signup('sneaky@example.com', role='admin')
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data['code'] == 'role_not_allowed'
        assert not User.objects.filter(email='sneaky@example.com').exists()

    def test_unknown_role(self, api_client):
        response = api_client.post(
            reverse('accounts:register'),
            _signup('odd@example.com', role='roadie')
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'role' in response.data

    def test_email_taken(self, api_client, fan):
        response = api_client.post(reverse('accounts:register'), _signup(fan.email))

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'email_taken'

    def test_password_mismatch(self, api_client):
        data = _signup('mismatch@example.com', password_confirm='Different123!')
        response = api_client.post(reverse('accounts:register'), data)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'password_confirm' in response.data


@pytest.mark.django_db
class TestLoginEndpoints:
    """POST /api/auth/login/ and /api/auth/merchant/login/"""

    def test_fan_login(self, api_client, fan):
        response = api_client.post(
            reverse('accounts:login'),
            {'email': fan.email, 'password': PASSWORD}
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['message'] == 'Signed in as fan'
        assert response.data['user']['role'] == UserRole.FAN

    def test_merchant_login_lists_bands(self, api_client, merchant, band):
        response = api_client.post(
            reverse('accounts:merchant-login'),
            {'email': merchant.email, 'password': PASSWORD}
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['message'] == 'Signed in as merchant'
        assert response.data['user']['bands'] == [str(band.id)]
        assert AccessToken(response.data['tokens']['access'])['role'] == 'merchant'

    def test_fan_refused_at_merchant_login(self, api_client, fan):
        response = api_client.post(
            reverse('accounts:merchant-login'),
            {'email': fan.email, 'password': PASSWORD}
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data['code'] == 'role_mismatch'
        assert response.data['role'] == UserRole.FAN
        assert 'tokens' not in response.data

    def test_admin_at_merchant_login(self, api_client, admin_user):
        response = api_client.post(
            reverse('accounts:merchant-login'),
            {'email': admin_user.email, 'password': PASSWORD}
        )

        assert response.status_code == status.HTTP_200_OK
        assert 'manage_events' in response.data['user']['capabilities']

    def test_wrong_password(self, api_client, merchant):
        response = api_client.post(
            reverse('accounts:merchant-login'),
            {'email': merchant.email, 'password': 'WrongPassword123!'}
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.data['code'] == 'invalid_credentials'

    def test_inactive_account(self, api_client, inactive_merchant):
        response = api_client.post(
            reverse('accounts:login'),
            {'email': inactive_merchant.email, 'password': PASSWORD}
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data['code'] == 'account_inactive'


@pytest.mark.django_db
class TestMeEndpoint:
    """GET /api/auth/me/"""

    def test_merchant_profile(self, merchant_client, band):
        response = merchant_client.get(reverse('accounts:me'))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['role'] == UserRole.MERCHANT
        assert response.data['bands'] == [str(band.id)]
        assert response.data['capabilities'] == sorted(response.data['capabilities'])

    def test_fan_profile_has_no_sales(self, fan_client):
        response = fan_client.get(reverse('accounts:me'))

        assert 'view_sales' not in response.data['capabilities']

    def test_unauthenticated(self, api_client):
        response = api_client.get(reverse('accounts:me'))
        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.django_db
class TestPasswordResetEndpoints:

    def test_unknown_email_gets_same_answer(self, api_client, fan):
        known = api_client.post(reverse('accounts:password-reset'), {'email': fan.email})
        unknown = api_client.post(reverse('accounts:password-reset'), {'email': 'ghost@example.com'})

        assert known.status_code == unknown.status_code == status.HTTP_200_OK
        assert known.data == unknown.data

    def test_token_exposed_in_debug(self, api_client, merchant, settings):
        settings.DEBUG = True
        response = api_client.post(reverse('accounts:password-reset'), {'email': merchant.email})

        merchant.refresh_from_db()
        assert response.data['token'] == merchant.verification_token

    def test_confirm_then_merchant_login(self, api_client, merchant):
        merchant.verification_token = 'reset-token-for-booth'
        merchant.save()

        response = api_client.post(reverse('accounts:password-reset-confirm'), {
            'token': 'reset-token-for-booth',
            'new_password': 'NewSecurePass123!',
            'new_password_confirm': 'NewSecurePass123!',
        })
        assert response.status_code == status.HTTP_200_OK

        response = api_client.post(
            reverse('accounts:merchant-login'),
            {'email': merchant.email, 'password': 'NewSecurePass123!'}
        )
        assert response.status_code == status.HTTP_200_OK

    def test_confirm_invalid_token(self, api_client):
        response = api_client.post(reverse('accounts:password-reset-confirm'), {
            'token': 'invalid-token',
            'new_password': 'NewSecurePass123!',
            'new_password_confirm': 'NewSecurePass123!',
        })

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'invalid_token'
