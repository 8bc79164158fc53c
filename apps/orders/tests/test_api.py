import pytest
from uuid import uuid4
from django.urls import reverse
from rest_framework import status
from apps.catalog.models import ProductSize
from apps.orders.models import Order, OrderStatus
from apps.orders.services import update_status


@pytest.mark.django_db
class TestCheckoutEndpoint:
    """Tests for POST /api/orders/checkout/"""

    def test_checkout(self, fan_client, band, event, product):
        url = reverse('orders:order-checkout')
        data = {
            'band': str(band.id),
            'event': str(event.id),
            'lines': [{'product_id': str(product.id), 'size': 'M', 'quantity': 2}],
        }

        response = fan_client.post(url, data, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['status'] == OrderStatus.PENDING_PICKUP
        assert response.data['amount'] == '50.00'
        assert response.data['qr_code'].startswith('QR_')
        assert response.data['transaction_id'].startswith('pi_sim_')
        assert len(response.data['items']) == 1

    def test_over_stock(self, fan_client, band, product):
        url = reverse('orders:order-checkout')
        data = {
            'band': str(band.id),
            'lines': [{'product_id': str(product.id), 'size': 'L', 'quantity': 1}],
        }

        response = fan_client.post(url, data, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'insufficient_inventory'
        assert not Order.objects.exists()

    def test_payment_declined(self, fan_client, band, product, settings):
        settings.PAYMENT_GATEWAY = 'apps.orders.tests.gateways.DecliningGateway'
        url = reverse('orders:order-checkout')
        data = {
            'band': str(band.id),
            'lines': [{'product_id': str(product.id), 'size': 'S', 'quantity': 1}],
        }

        response = fan_client.post(url, data, format='json')

        assert response.status_code == status.HTTP_402_PAYMENT_REQUIRED
        assert response.data['code'] == 'payment_failed'
        assert response.data['reason'] == 'declined'
        assert ProductSize.objects.get(product=product, label='S').quantity == 2

    def test_empty_lines(self, fan_client, band):
        url = reverse('orders:order-checkout')

        response = fan_client.post(url, {'band': str(band.id), 'lines': []}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_zero_quantity(self, fan_client, band, product):
        url = reverse('orders:order-checkout')
        data = {
            'band': str(band.id),
            'lines': [{'product_id': str(product.id), 'size': 'S', 'quantity': 0}],
        }

        response = fan_client.post(url, data, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_other_band_product(self, fan_client, band, foreign_product):
        url = reverse('orders:order-checkout')
        data = {
            'band': str(band.id),
            'lines': [{'product_id': str(foreign_product.id), 'size': 'M', 'quantity': 1}],
        }

        response = fan_client.post(url, data, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'mixed_merchant_cart'

    def test_requires_authentication(self, api_client, band, product):
        url = reverse('orders:order-checkout')
        data = {
            'band': str(band.id),
            'lines': [{'product_id': str(product.id), 'size': 'S', 'quantity': 1}],
        }

        response = api_client.post(url, data, format='json')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.django_db
class TestOrderList:
    """Tests for GET /api/orders/"""

    def test_own_orders_only(self, fan_client, other_fan_client, pending_order):
        url = reverse('orders:order-list')

        response = fan_client.get(url)
        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 1
        assert response.data['results'][0]['id'] == str(pending_order.id)

        response = other_fan_client.get(url)
        assert response.data['count'] == 0

    def test_status_filter(self, fan_client, pending_order):
        url = reverse('orders:order-list')

        response = fan_client.get(url, {'status': 'picked_up'})
        assert response.data['count'] == 0

        response = fan_client.get(url, {'status': 'pending_pickup'})
        assert response.data['count'] == 1

    def test_invalid_status_filter(self, fan_client, pending_order):
        url = reverse('orders:order-list')

        response = fan_client.get(url, {'status': 'shipped'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.django_db
class TestOrderDetail:
    """Tests for GET /api/orders/{id}/"""

    def test_owner(self, fan_client, pending_order):
        url = reverse('orders:order-detail', args=[pending_order.id])

        response = fan_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['short_code'] == pending_order.short_code
        assert response.data['band_name'] == 'The Testers'

    def test_band_staff(self, merchant_client, pending_order):
        url = reverse('orders:order-detail', args=[pending_order.id])

        response = merchant_client.get(url)

        assert response.status_code == status.HTTP_200_OK

    def test_stranger(self, other_fan_client, pending_order):
        url = reverse('orders:order-detail', args=[pending_order.id])

        response = other_fan_client.get(url)

        assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.django_db
class TestCancelOrder:
    """Tests for POST /api/orders/{id}/cancel/"""

    def test_cancel(self, fan_client, pending_order, product):
        url = reverse('orders:order-cancel', args=[pending_order.id])

        response = fan_client.post(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == OrderStatus.CANCELLED
        assert ProductSize.objects.get(product=product, label='M').quantity == 5

    def test_cancel_twice(self, fan_client, pending_order):
        url = reverse('orders:order-cancel', args=[pending_order.id])
        fan_client.post(url)

        response = fan_client.post(url)

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['code'] == 'invalid_status_transition'

    def test_stranger(self, other_fan_client, pending_order):
        url = reverse('orders:order-cancel', args=[pending_order.id])

        response = other_fan_client.post(url)

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_unknown_order(self, fan_client):
        url = reverse('orders:order-cancel', args=[uuid4()])

        response = fan_client.post(url)

        assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.django_db
class TestQrCode:
    """Tests for GET /api/orders/{id}/qr_code/"""

    def test_png(self, fan_client, pending_order):
        url = reverse('orders:order-qr-code', args=[pending_order.id])

        response = fan_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert response['Content-Type'] == 'image/png'
        assert response.content.startswith(b'\x89PNG')

    def test_band_staff_cannot_fetch_code(self, merchant_client, pending_order):
        url = reverse('orders:order-qr-code', args=[pending_order.id])

        response = merchant_client.get(url)

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_picked_up_order(self, fan_client, pending_order, merchant):
        update_status(pending_order.id, OrderStatus.PICKED_UP, actor=merchant)
        url = reverse('orders:order-qr-code', args=[pending_order.id])

        response = fan_client.get(url)

        assert response.status_code == status.HTTP_409_CONFLICT


@pytest.mark.django_db
class TestPickupEndpoint:
    """Tests for POST /api/orders/pickup/"""

    def test_pickup(self, merchant_client, pending_order):
        url = reverse('orders:order-pickup')

        response = merchant_client.post(url, {'code': pending_order.qr_code}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['order']['status'] == OrderStatus.PICKED_UP
        assert len(response.data['items']) == 1

    def test_already_used(self, merchant_client, pending_order):
        url = reverse('orders:order-pickup')
        merchant_client.post(url, {'code': pending_order.qr_code}, format='json')

        response = merchant_client.post(url, {'code': pending_order.qr_code}, format='json')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['code'] == 'pickup_code_already_used'
        assert response.data['status'] == OrderStatus.PICKED_UP

    def test_invalid_code(self, merchant_client, db):
        url = reverse('orders:order-pickup')

        response = merchant_client.post(url, {'code': 'QR_nope'}, format='json')

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['code'] == 'invalid_pickup_code'

    def test_other_band(self, other_merchant_client, pending_order):
        url = reverse('orders:order-pickup')

        response = other_merchant_client.post(url, {'code': pending_order.qr_code}, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.django_db
class TestMerchantEndpoints:
    """Tests for /api/orders/merchant/{band_id}/..."""

    def test_orders(self, merchant_client, band, pending_order):
        url = reverse('orders:merchant-orders', args=[band.id])

        response = merchant_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 1
        assert response.data['results'][0]['user']['display_name'] == 'Fan'

    def test_orders_other_band(self, other_merchant_client, band, pending_order):
        url = reverse('orders:merchant-orders', args=[band.id])

        response = other_merchant_client.get(url)

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_unknown_band(self, merchant_client):
        url = reverse('orders:merchant-orders', args=[uuid4()])

        response = merchant_client.get(url)

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_summary(self, merchant_client, band, pending_order):
        url = reverse('orders:merchant-summary', args=[band.id])

        response = merchant_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['total_orders'] == 1
        assert response.data['pending_count'] == 1
        assert response.data['pending_revenue'] == '50.00'
        assert response.data['total_revenue'] == '0.00'

    def test_update_status(self, merchant_client, merchant, band, pending_order):
        url = reverse('orders:merchant-update-status', args=[band.id, pending_order.id])

        response = merchant_client.post(url, {'status': 'picked_up'}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == OrderStatus.PICKED_UP
        assert response.data['picked_up_by']['id'] == str(merchant.id)

    def test_invalid_transition(self, merchant_client, band, pending_order):
        url = reverse('orders:merchant-update-status', args=[band.id, pending_order.id])
        merchant_client.post(url, {'status': 'cancelled'}, format='json')

        response = merchant_client.post(url, {'status': 'picked_up'}, format='json')

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_order_of_other_band(self, other_merchant_client, other_band, pending_order):
        url = reverse('orders:merchant-update-status', args=[other_band.id, pending_order.id])

        response = other_merchant_client.post(url, {'status': 'cancelled'}, format='json')

        assert response.status_code == status.HTTP_404_NOT_FOUND
        pending_order.refresh_from_db()
        assert pending_order.status == OrderStatus.PENDING_PICKUP
